import re
import secrets
import string
from decimal import Decimal, InvalidOperation


def validate_email(email):
    return re.match(r'^[\w\.\+-]+@[\w\.-]+\.\w+$', email or "")


def to_decimal(value, default=Decimal("0")) -> Decimal:
    """
    Coerce a DB value, JSON number or string into a Decimal.
    Floats go through str() so 0.1 stays 0.1.
    """
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return default
    # NaN and Infinity never reach the ledger
    return amount if amount.is_finite() else default


def safe_float_convert(value, default=0.0):
    """Safely convert value to float"""
    try:
        if value is None:
            return default
        return float(value)
    except (TypeError, ValueError):
        return default


def safe_isoformat(dt_value):
    """Safely convert datetime to ISO format"""
    if dt_value:
        return dt_value.isoformat()
    return None


def generate_referral_code(exists=None, length=8):
    """
    Random lowercase referral code. `exists` is an optional callable used to
    retry on collision.
    """
    chars = string.ascii_lowercase + string.digits
    for _ in range(10):
        code = ''.join(secrets.choice(chars) for _ in range(length))
        if exists is None or not exists(code):
            return code
    # fallback
    return ''.join(secrets.choice(chars) for _ in range(length + 4))
