"""
Password hashing and the bearer token service.
JWT access token carries the user id in `sub`; signing key, algorithm and
lifetime come from Settings and are bound once in TokenService.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt as _bcrypt
from jose import JWTError, jwt

from services.errors import InvalidToken


# ─── Password helpers ─────────────────────────────────────────────────────────

def hash_password(password: str, rounds: int = 12) -> str:
    return _bcrypt.hashpw(password.encode("utf-8"), _bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return _bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# ─── Token service ────────────────────────────────────────────────────────────

class TokenService:
    """Issues and verifies signed, time-limited bearer tokens."""

    def __init__(self, secret_key: str, algorithm: str = "HS256",
                 expires_in: timedelta = timedelta(days=1)):
        self._secret_key = secret_key
        self._algorithm = algorithm
        self.expires_in = expires_in

    def issue(self, user_id: int, expires_delta: Optional[timedelta] = None) -> str:
        expire = datetime.now(timezone.utc) + (expires_delta or self.expires_in)
        return jwt.encode(
            {"sub": str(user_id), "exp": expire},
            self._secret_key,
            algorithm=self._algorithm,
        )

    def verify(self, token: str) -> int:
        """Return the user id in the token. Every failure is the same InvalidToken."""
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
            sub = payload.get("sub")
            if sub is None or "exp" not in payload:
                raise InvalidToken()
            return int(sub)
        except (JWTError, ValueError, TypeError):
            raise InvalidToken()
