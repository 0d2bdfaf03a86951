# ------- storefront/utils/decorators.py -------
from functools import wraps

from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from ..errors import Forbidden, Unauthenticated
from ..extensions import db
from ..model.user import User

def current_user() -> User:
    """Authenticated user behind the request's bearer token."""
    verify_jwt_in_request()
    uid = get_jwt_identity()
    try:
        uid = int(uid)
    except (TypeError, ValueError):
        uid = None
    user = db.session.get(User, uid) if uid else None
    if not user:
        raise Unauthenticated()
    return user

def current_email() -> str:
    return current_user().email

def role_required(*roles, message: str | None = None):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            u = current_user()
            if u.role not in roles:
                raise Forbidden(message or "Forbidden")
            return fn(*args, **kwargs)
        return wrapper
    return decorator
