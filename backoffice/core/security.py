"""
Back Office — Password hashing and JWT token service
"""
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

from jose import jwt, JWTError
from passlib.context import CryptContext

from backoffice.core.config import Settings, get_settings
from backoffice.core.exceptions import InvalidToken

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS = "access"
REFRESH = "refresh"


# ─── Password Hashing ─────────────────────────────────────────────────────────

def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


# ─── Identity ─────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Identity:
    """Authenticated caller, resolved once per request and passed explicitly."""

    username: str
    roles: frozenset[str]

    def has_any_role(self, *roles: str) -> bool:
        return bool(self.roles.intersection(roles))


# ─── JWT Token Service ─────────────────────────────────────────────────────────

class TokenService:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def _encode(self, username: str, roles: Iterable[str], token_type: str, lifetime: timedelta) -> str:
        now = datetime.now(tz=timezone.utc)
        payload: dict[str, Any] = {
            "sub": username,
            "roles": sorted(roles),
            "iat": now,
            "exp": now + lifetime,
            "type": token_type,
            "jti": str(uuid.uuid4()),
        }
        return jwt.encode(payload, self.settings.JWT_SECRET_KEY, algorithm=self.settings.JWT_ALGORITHM)

    def issue_access_token(self, username: str, roles: Iterable[str]) -> str:
        return self._encode(
            username, roles, ACCESS,
            timedelta(minutes=self.settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES),
        )

    def issue_refresh_token(self, username: str, roles: Iterable[str]) -> str:
        return self._encode(
            username, roles, REFRESH,
            timedelta(hours=self.settings.JWT_REFRESH_TOKEN_EXPIRE_HOURS),
        )

    def validate(self, token: str, expected_type: str = ACCESS) -> Identity:
        """Decode and verify a JWT. Raises InvalidToken on any failure."""
        try:
            claims = jwt.decode(
                token, self.settings.JWT_SECRET_KEY, algorithms=[self.settings.JWT_ALGORITHM]
            )
        except JWTError as exc:
            raise InvalidToken(f"Invalid or expired token: {exc}") from exc

        if claims.get("type") != expected_type:
            raise InvalidToken(f"Expected a {expected_type} token.")
        username = claims.get("sub")
        if not username:
            raise InvalidToken("Token has no subject.")
        return Identity(username=username, roles=frozenset(claims.get("roles") or []))
