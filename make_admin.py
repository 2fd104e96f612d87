# make_admin.py
# Usage: python make_admin.py user@example.com

import sys

from app import create_app
from extensions import db
from models import User, UserRole


def make_admin(email):
    app = create_app()
    with app.app_context():
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            print(f"No user with email {email} found. Log in once to create the account.")
            return False

        if user.role == UserRole.ADMIN.value:
            print(f"User id={user.id} ({user.email}) is already admin.")
            return True

        user.role = UserRole.ADMIN.value
        db.session.commit()
        print(f"User (id={user.id}, email={user.email}) is now admin.")
        return True


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python make_admin.py <email>")
        sys.exit(2)
    sys.exit(0 if make_admin(sys.argv[1]) else 1)
