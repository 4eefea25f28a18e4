"""Authentication service: signup, login, request authorization and password reset."""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta
from functools import lru_cache

import bcrypt
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.errors import (
    DeliveryError,
    EmailDeliveryFailed,
    InvalidOrExpiredToken,
    InvalidTokenError,
    NotFound,
    Unauthenticated,
    ValidationError,
)
from app.models.user import Role, User
from app.services.email import EmailMessage, EmailSender
from app.services.jwt import JWTService, get_jwt_service

logger = logging.getLogger("natours")

MIN_PASSWORD_LENGTH = 8


def normalize_email(email: str) -> str:
    return email.strip().lower()


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


@lru_cache(maxsize=1)
def _dummy_password_hash() -> str:
    return hash_password(secrets.token_hex(16))


def hash_reset_token(token: str) -> str:
    """SHA-256 digest of a reset token; only the digest is stored."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _validate_new_password(password: str, password_confirm: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if password != password_confirm:
        raise ValidationError("Passwords are not the same")


class AuthService:
    """Handles user registration, authentication and the password reset lifecycle."""

    def __init__(self, settings: Settings | None = None, jwt_service: JWTService | None = None) -> None:
        self.settings = settings or get_settings()
        self.jwt_service = jwt_service or get_jwt_service()

    def signup(
        self,
        db: Session,
        name: str,
        email: str,
        password: str,
        password_confirm: str,
        role: Role | None = None,
    ) -> User:
        """Create a new user. Raises ValidationError on bad input or a duplicate email."""
        email = normalize_email(email)
        if not name.strip():
            raise ValidationError("Please tell us your name")
        if not email or "@" not in email:
            raise ValidationError("Please provide a valid email")
        _validate_new_password(password, password_confirm)

        if db.query(User).filter(User.email == email).first():
            raise ValidationError("Email already registered")

        user = User(
            name=name.strip(),
            email=email,
            password_hash=hash_password(password),
            role=(role or Role.USER).value,
            is_active=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info("User %s signed up with role %s", user.id, user.role)
        return user

    def login(self, db: Session, email: str, password: str) -> User:
        """Check credentials. Unknown email and wrong password fail identically."""
        if not email or not password:
            raise ValidationError("Please provide email and password")

        user = db.query(User).filter(User.email == normalize_email(email)).first()
        if user is None:
            # Unknown and known emails cost one bcrypt check each
            check_password(password, _dummy_password_hash())
            raise Unauthenticated("Incorrect email or password")
        if not check_password(password, user.password_hash) or not user.is_active:
            raise Unauthenticated("Incorrect email or password")

        user.last_login_at = datetime.utcnow()
        db.commit()
        return user

    def issue_token(self, user: User) -> str:
        return self.jwt_service.create_token(user.id)

    def authorize(self, db: Session, authorization: str | None) -> User:
        """Resolve the user behind a bearer token.

        Steps run strictly in order and the first failure raises Unauthenticated:
        extract token, verify it, load the user, reject tokens issued before the
        last password change.
        """
        token = extract_bearer_token(authorization)
        if token is None:
            raise Unauthenticated("You are not logged in. Please log in to get access")

        try:
            claims = self.jwt_service.verify_token(token)
        except InvalidTokenError:
            raise Unauthenticated("Invalid or expired token. Please log in again") from None

        user = db.get(User, claims.user_id)
        if user is None or not user.is_active:
            raise Unauthenticated("The user belonging to this token no longer exists")

        if user.changed_password_after(claims.issued_at):
            raise Unauthenticated("User recently changed password. Please log in again")

        return user

    def request_password_reset(self, db: Session, email: str, sender: EmailSender, reset_url: str) -> None:
        """Create a reset token, store its digest and mail the token to the user.

        ``reset_url`` is the URL prefix the plaintext token is appended to. If the
        mail cannot be delivered the stored token is cleared so nothing redeemable
        is left behind.
        """
        user = db.query(User).filter(User.email == normalize_email(email)).first()
        if not user:
            raise NotFound("There is no user with that email address")

        token = secrets.token_hex(32)
        # Only the reset columns are written; signup validation does not run here.
        user.password_reset_token = hash_reset_token(token)
        user.password_reset_expires_at = datetime.utcnow() + timedelta(
            minutes=self.settings.PASSWORD_RESET_EXPIRE_MINUTES
        )
        db.commit()

        minutes = self.settings.PASSWORD_RESET_EXPIRE_MINUTES
        message = EmailMessage(
            recipient=user.email,
            subject=f"Your password reset token (valid for {minutes} min)",
            body=(
                "Forgot your password? Submit a PATCH request with your new password and "
                f"passwordConfirm to: {reset_url}{token}\n"
                "If you didn't forget your password, please ignore this email."
            ),
        )
        try:
            sender.send(message)
        except DeliveryError as e:
            logger.warning("Password reset email to user %s failed: %s", user.id, e)
            user.clear_password_reset()
            db.commit()
            raise EmailDeliveryFailed("There was an error sending the email. Try again later") from e

        logger.info("Password reset token issued for user %s", user.id)

    def reset_password(self, db: Session, token: str, password: str, password_confirm: str) -> User:
        """Redeem a reset token and set a new password. The token works exactly once.

        The token is consumed by a single conditional UPDATE that only matches
        while the digest is still stored and unexpired, so of two overlapping
        redemptions exactly one succeeds.
        """
        digest = hash_reset_token(token)
        user = db.query(User).filter(User.password_reset_token == digest).first()
        if not user:
            raise InvalidOrExpiredToken("Token is invalid or has expired")

        if not user.password_reset_expires_at or user.password_reset_expires_at < datetime.utcnow():
            user.clear_password_reset()
            db.commit()
            raise InvalidOrExpiredToken("Token is invalid or has expired")

        _validate_new_password(password, password_confirm)
        password_hash = hash_password(password)

        now = datetime.utcnow()
        consumed = (
            db.query(User)
            .filter(
                User.id == user.id,
                User.password_reset_token == digest,
                User.password_reset_expires_at >= now,
            )
            .update(
                {
                    User.password_hash: password_hash,
                    User.password_reset_token: None,
                    User.password_reset_expires_at: None,
                    User.password_changed_at: now,
                },
                synchronize_session=False,
            )
        )
        if consumed != 1:
            db.rollback()
            raise InvalidOrExpiredToken("Token is invalid or has expired")
        db.commit()
        db.refresh(user)

        logger.info("Password reset completed for user %s", user.id)
        return user


_auth_service: AuthService | None = None


def get_auth_service() -> AuthService:
    """Get singleton auth service instance."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service
