from functools import wraps
from flask import jsonify, current_app, session, abort, request
from sqlalchemy.exc import SQLAlchemyError
from extensions import db
from models import User, UserRole
from ledger.exceptions import MarketplaceError, ValidationError


def json_errors(f):
    """
    Report ledger errors as {"error": message} with the error's status code.
    Store failures are rolled back and answered with a 500.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except MarketplaceError as e:
            if e.status_code >= 500:
                current_app.logger.error(f"{f.__name__} failed: {e.message}")
            else:
                current_app.logger.warning(f"{f.__name__} rejected: {e.message}")
            return jsonify(e.to_dict()), e.status_code
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.error(f"Store access failure in {f.__name__}", exc_info=True)
            return jsonify({"error": "Store access failure"}), 500

    return decorated_function


def admin_required(f):
    """
    Restrict a route to admins.
    Loads the user in session["user_id"] and aborts with 403 unless its role is admin.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_id = session.get("user_id")
        if not user_id:
            abort(403)

        user = db.session.get(User, user_id)
        if not user or user.role != UserRole.ADMIN.value:
            abort(403)

        return f(*args, **kwargs)

    return decorated_function


def get_json_body():
    """Request JSON as a dict; malformed or missing bodies become {}."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def require_int(data, *keys):
    """First of `keys` present in `data` as an int, or ValidationError."""
    for key in keys:
        value = data.get(key)
        if value is None:
            continue
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{key} must be an integer")
    raise ValidationError(f"{keys[0]} is required")
