# storefront/services/auth_service.py
import uuid
from datetime import timedelta

import structlog
from flask_jwt_extended import create_access_token
from werkzeug.security import check_password_hash, generate_password_hash

from ..errors import (
    InvalidCredentials, InvalidInput, InvalidResetToken, UserAlreadyExists, UserNotFound,
)
from ..extensions import db
from ..model import PasswordResetToken, RefreshToken, User
from ..utils.clock import utcnow
from ..utils.tx import unit_of_work

logger = structlog.get_logger(component="auth_service")

MIN_PASSWORD_LENGTH = 6


def find_user(email: str) -> User:
    email = (email or "").strip().lower()
    user = User.query.filter_by(email=email).first() if email else None
    if not user:
        raise UserNotFound(f"User not found with email: {email}")
    return user


class AuthService:
    def __init__(self, refresh_ttl_days: int = 7, reset_ttl_minutes: int = 30):
        self.refresh_ttl = timedelta(days=refresh_ttl_days)
        self.reset_ttl = timedelta(minutes=reset_ttl_minutes)

    # --- helper: create & persist a token pair ---
    def _issue_tokens(self, user: User):
        access_token = create_access_token(identity=str(user.id))
        refresh_token_str = str(uuid.uuid4())
        db.session.add(RefreshToken(
            user_id=user.id,
            token=refresh_token_str,
            expires_at=utcnow() + self.refresh_ttl,
        ))
        return access_token, refresh_token_str

    def register(self, email: str, password: str, name: str):
        email = (email or "").strip().lower()
        name = (name or "").strip()
        if not email:
            raise InvalidInput("Email required")
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidInput(f"Password required, min {MIN_PASSWORD_LENGTH} chars")
        if User.query.filter_by(email=email).first():
            raise UserAlreadyExists(f"User with email {email} already exists")

        with unit_of_work():
            # Bootstrap: very first account becomes admin
            is_first_user = db.session.query(User.id).count() == 0
            user = User(
                email=email,
                name=name or email,
                password_hash=generate_password_hash(password),
                role="admin" if is_first_user else "user",
            )
            db.session.add(user)
            db.session.flush()
            access_token, refresh_token = self._issue_tokens(user)

        logger.info("user_registered", user_id=user.id, role=user.role)
        return {"user": user.as_dict(), "token": access_token, "refresh_token": refresh_token}

    def login(self, email: str, password: str):
        email = (email or "").strip().lower()
        if not email or not password:
            raise InvalidInput("Email and password are required")
        user = User.query.filter_by(email=email).first()
        if not user or not check_password_hash(user.password_hash, password):
            logger.warning("login_failed", email=email)
            raise InvalidCredentials()

        with unit_of_work():
            access_token, refresh_token = self._issue_tokens(user)
        return {"user": user.as_dict(), "token": access_token, "refresh_token": refresh_token}

    def refresh(self, token_str: str):
        if not token_str:
            raise InvalidInput("refresh_token is required")
        with unit_of_work():
            row = RefreshToken.query.filter_by(token=token_str).first()
            if not row or row.expires_at < utcnow():
                raise InvalidCredentials("Invalid or expired refresh token")
            user = db.session.get(User, row.user_id)
            # ROTATE: the presented token is single-use
            db.session.delete(row)
            db.session.flush()
            access_token, refresh_token = self._issue_tokens(user)
        return {"token": access_token, "refresh_token": refresh_token}

    def get_profile(self, email: str):
        return find_user(email).as_dict()

    def update_profile(self, email: str, name: str | None = None, password: str | None = None):
        with unit_of_work():
            user = find_user(email)
            if name is not None and name.strip():
                user.name = name.strip()
            if password is not None:
                if len(password) < MIN_PASSWORD_LENGTH:
                    raise InvalidInput(f"Password required, min {MIN_PASSWORD_LENGTH} chars")
                user.password_hash = generate_password_hash(password)
        return user.as_dict()

    def request_password_reset(self, email: str):
        """Issue a one-time reset token. Delivering it to the user is left to the caller."""
        with unit_of_work():
            user = find_user(email)
            row = PasswordResetToken(
                user_id=user.id,
                token=uuid.uuid4().hex,
                expires_at=utcnow() + self.reset_ttl,
            )
            db.session.add(row)
        logger.info("password_reset_requested", user_id=user.id)
        return {"token": row.token, "expires_at": row.expires_at.isoformat()}

    def reset_password(self, token: str, new_password: str):
        if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
            raise InvalidInput(f"Password required, min {MIN_PASSWORD_LENGTH} chars")
        with unit_of_work():
            row = PasswordResetToken.query.filter_by(token=token or "").first()
            if not row or not row.is_usable(utcnow()):
                raise InvalidResetToken()
            row.user.password_hash = generate_password_hash(new_password)
            row.used = True
        logger.info("password_reset_completed", user_id=row.user_id)
