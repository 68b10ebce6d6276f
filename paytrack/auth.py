# paytrack/auth.py
from dataclasses import dataclass
from typing import Optional

from .errors import ErrorKind, Failure, Ok, Result
from .logging_config import get_logger
from .security import TokenIssuer

logger = get_logger(__name__)


@dataclass(frozen=True)
class Principal:
    """Authenticated identity taken from a verified token."""
    subject_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def parse_bearer(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an ``Authorization: Bearer <jwt>`` header value."""
    if not authorization:
        return None
    # Handle case-insensitively and allow extra spaces
    parts = authorization.strip().split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


class AuthorizationGuard:
    """
    Per request: Unauthenticated -> Authenticated(principal) -> Authorized | Forbidden.
    """

    def __init__(self, tokens: TokenIssuer):
        self.tokens = tokens

    def authenticate(self, raw_token: Optional[str]) -> Result[Principal]:
        if not raw_token:
            return Failure(ErrorKind.UNAUTHENTICATED, "Unauthorized")
        verified = self.tokens.verify(raw_token)
        if isinstance(verified, Failure):
            # expired and forged look the same to the caller
            logger.info("rejected token: %s", verified.message, extra={"action": "authenticate"})
            return Failure(ErrorKind.UNAUTHENTICATED, "Invalid token")
        claims = verified.value
        return Ok(Principal(subject_id=claims.subject_id, role=claims.role))

    def authorize_admin_only(self, principal: Principal) -> Result[Principal]:
        if principal.is_admin:
            return Ok(principal)
        logger.warning(
            "admin-only action refused for %s", principal.subject_id,
            extra={"user_id": principal.subject_id, "action": "authorize_admin"},
        )
        return Failure(ErrorKind.FORBIDDEN, "Forbidden: Admin only")

    def authorize_self_or_admin(self, principal: Principal, target_id: str) -> Result[Principal]:
        if principal.subject_id == target_id or principal.is_admin:
            return Ok(principal)
        logger.warning(
            "%s refused access to user %s", principal.subject_id, target_id,
            extra={"user_id": principal.subject_id, "action": "authorize_self_or_admin"},
        )
        return Failure(ErrorKind.FORBIDDEN, "Forbidden")
