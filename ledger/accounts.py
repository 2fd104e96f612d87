# ledger/accounts.py
import logging
from datetime import datetime, timezone
from typing import Optional, Tuple
from extensions import db
from models import User, UserRole
from ledger.exceptions import ValidationError
from ledger.referral_tree import ReferralTreeHelper
from ledger.unit_of_work import atomic
from utils import validate_email, generate_referral_code

logger = logging.getLogger(__name__)


class AccountHelper:

    @staticmethod
    def login_or_create(email: str, name: Optional[str] = None,
                        referral_code: Optional[str] = None) -> Tuple[User, bool]:
        """
        Returns (user, created). A referral code is only honoured when the
        user is created; returning users keep their original network position.
        """
        email = (email or "").strip().lower()
        if not email or not validate_email(email):
            raise ValidationError("A valid email is required")

        with atomic():
            user = User.query.filter_by(email=email).first()
            created = user is None
            if created:
                user = User(
                    email=email,
                    name=(name or "").strip() or email.split("@")[0],
                    role=UserRole.VISITOR.value,
                    referral_code=generate_referral_code(
                        exists=lambda code: User.query.filter_by(referral_code=code).first() is not None
                    ),
                )
                db.session.add(user)
                db.session.flush()

                if referral_code:
                    ReferralTreeHelper.register_by_code(user.id, referral_code)

            user.last_login = datetime.now(timezone.utc)

        if created:
            logger.info(f"User {user.id} created for {email} (referred_by={user.referred_by})")
        return user, created
