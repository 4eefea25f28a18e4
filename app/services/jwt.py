"""JWT Token Service."""

from dataclasses import dataclass
from datetime import datetime, timedelta

from jose import JWTError, jwt

from app.config import Settings, get_settings
from app.errors import InvalidTokenError

EPOCH = datetime(1970, 1, 1)


def epoch_seconds(moment: datetime) -> float:
    """Seconds since the epoch for a naive UTC datetime, keeping microseconds."""
    return (moment - EPOCH).total_seconds()


@dataclass(frozen=True)
class TokenClaims:
    """Verified identity carried by a bearer token."""

    user_id: int
    issued_at: float


class JWTService:
    """Handles JWT token creation and validation."""

    def __init__(self, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        self.secret_key = settings.JWT_SECRET_KEY
        self.algorithm = settings.JWT_ALGORITHM
        self.expire_minutes = settings.JWT_EXPIRE_MINUTES

    def create_token(self, user_id: int) -> str:
        """Create a signed token for the given user."""
        now = datetime.utcnow()
        payload = {
            "sub": str(user_id),
            # Fractional seconds, compared against password_changed_at by the gate
            "iat": epoch_seconds(now),
            "exp": now + timedelta(minutes=self.expire_minutes),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> TokenClaims:
        """Verify signature and expiry. Raises InvalidTokenError for any untrusted token."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
            return TokenClaims(user_id=int(payload["sub"]), issued_at=float(payload["iat"]))
        except (JWTError, KeyError, TypeError, ValueError):
            raise InvalidTokenError("Invalid or expired token") from None


_jwt_service: JWTService | None = None


def get_jwt_service() -> JWTService:
    """Get singleton JWT service instance."""
    global _jwt_service
    if _jwt_service is None:
        _jwt_service = JWTService()
    return _jwt_service
