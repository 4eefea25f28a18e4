"""User model."""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from app.database import Base


class Role(str, Enum):
    USER = "user"
    GUIDE = "guide"
    LEAD_GUIDE = "lead-guide"
    ADMIN = "admin"


class User(Base):
    """Application user. ``password_reset_token`` holds a SHA-256 digest, never the raw token."""

    __tablename__ = "user"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(256), nullable=False)
    email = Column(String(256), unique=True, nullable=False, index=True)
    password_hash = Column(String(256), nullable=False)
    role = Column(String(32), nullable=False, default=Role.USER.value)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    last_login_at = Column(DateTime, nullable=True)
    password_changed_at = Column(DateTime, nullable=True)
    password_reset_token = Column(String(64), nullable=True, index=True)
    password_reset_expires_at = Column(DateTime, nullable=True)

    def changed_password_after(self, issued_at: float) -> bool:
        """Whether the password changed after a token issued at ``issued_at`` (epoch seconds).

        Compared at microsecond precision, so a change later in the same second
        as the token still counts.
        """
        if self.password_changed_at is None:
            return False
        return (self.password_changed_at - datetime(1970, 1, 1)).total_seconds() > issued_at

    def clear_password_reset(self) -> None:
        self.password_reset_token = None
        self.password_reset_expires_at = None
