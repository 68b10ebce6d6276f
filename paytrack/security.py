# paytrack/security.py
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import bcrypt
from jose import JWTError, jwt

from . import config
from .errors import CryptoFailure, ErrorKind, Failure, Ok, Result
from .models import ROLES


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


# ─────────────────────────────────────────────────────────────────────────────
# Passwords
# ─────────────────────────────────────────────────────────────────────────────

class CredentialStore:
    """Salted bcrypt hashing with a tunable work factor."""

    def __init__(self, rounds: int = config.BCRYPT_ROUNDS):
        self.rounds = rounds
        self._dummy_hash: Optional[bytes] = None

    def hash(self, plain: str) -> str:
        try:
            return bcrypt.hashpw(plain.encode(), bcrypt.gensalt(self.rounds)).decode()
        except (ValueError, TypeError) as e:
            raise CryptoFailure(f"password hashing failed: {e}") from e

    def verify(self, plain: str, hashed: str) -> bool:
        """
        True iff ``plain`` matches ``hashed``. An empty or malformed stored
        hash fails closed instead of raising.
        """
        if not hashed:
            return False
        try:
            return bcrypt.checkpw(plain.encode(), hashed.encode())
        except ValueError:
            return False

    def verify_dummy(self, plain: str) -> bool:
        """Burn one verification so unknown emails cost as much as real ones."""
        if self._dummy_hash is None:
            self._dummy_hash = bcrypt.hashpw(b"paytrack-dummy", bcrypt.gensalt(self.rounds))
        try:
            bcrypt.checkpw(plain.encode(), self._dummy_hash)
        except ValueError:
            pass
        return False


# ─────────────────────────────────────────────────────────────────────────────
# JWT helpers
# ─────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TokenClaims:
    subject_id: str
    role: str


class TokenIssuer:
    def __init__(
        self,
        secret: str = config.JWT_SECRET,
        expire_minutes: int = config.JWT_EXPIRE_MIN,
        algorithm: str = config.JWT_ALG,
        clock: Callable[[], datetime] = _now_utc,
    ):
        self.secret = secret
        self.lifetime = timedelta(minutes=expire_minutes)
        self.algorithm = algorithm
        self._clock = clock

    def issue(self, subject_id: str, role: str) -> str:
        """Create a signed JWT carrying the subject id and role."""
        iat = self._clock()
        exp = iat + self.lifetime
        payload = {
            "sub": subject_id,
            "role": role,
            "iat": int(iat.timestamp()),
            "exp": int(exp.timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Result[TokenClaims]:
        try:
            claims = jwt.decode(
                token, self.secret, algorithms=[self.algorithm], options={"require_exp": True},
            )
        except JWTError as e:
            return Failure(ErrorKind.INVALID_TOKEN, str(e))

        sub, role = claims.get("sub"), claims.get("role")
        if not sub or role not in ROLES:
            return Failure(ErrorKind.INVALID_TOKEN, "token is missing subject or role")
        return Ok(TokenClaims(subject_id=sub, role=role))
