from flask import jsonify, session, Blueprint, current_app
from flask_login import login_user, logout_user
from extensions import db
from models import User, Holding
from ledger.accounts import AccountHelper
from blueprints.common import json_errors, get_json_body
import logging


logger = logging.getLogger(__name__)
#==================================================================================================================

bp = Blueprint("auth", __name__, url_prefix="")


# --------------------------------------------------
#      Login Route
# --------------------------------------------------
@bp.route("/api/auth/login", methods=["POST"])
@json_errors
def login():
    """
    Log a user in, creating a visitor account on first login.
    Expected JSON:
    {
        "email": "",
        "name": "",
        "referralCode": ""   (optional, first login only)
    }
    """
    data = get_json_body()
    user, created = AccountHelper.login_or_create(
        data.get("email"), data.get("name"), data.get("referralCode")
    )

    session["user_id"] = user.id
    login_user(user)

    holding = Holding.query.filter_by(user_id=user.id).first()
    current_app.logger.info(f"User {user.id} logged in (new={created})")

    return jsonify({
        "message": "Login successful",
        "user": user.to_dict(),
        "holding": holding.to_dict() if holding else None,
        "created": created,
    }), 201 if created else 200

#-----------------------------------------------------------------------------------------------------
@bp.route("/api/auth/logout", methods=["POST"])
def logout():
    """
    Destroy User session
    """
    logout_user()
    session.clear()
    return jsonify({"message": "Logged out successfully"}), 200

# --------------------------------------------------
# Check Session (for frontend auto-login)
# --------------------------------------------------
@bp.route("/session", methods=["GET"])
def check_session():
    """Returns current logged-in user data if authenticated"""
    user_id = session.get("user_id")
    if not user_id:
        return jsonify({"authenticated": False}), 200

    user = db.session.get(User, user_id)
    if not user:
        session.clear()
        return jsonify({"authenticated": False}), 200

    holding = Holding.query.filter_by(user_id=user.id).first()
    return jsonify({
        "authenticated": True,
        "user": user.to_dict(),
        "holding": holding.to_dict() if holding else None,
    }), 200
