# paytrack/deps.py
from typing import Any, NoReturn, Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from .auth import AuthorizationGuard, Principal, parse_bearer
from .db import get_db
from .errors import ErrorKind, Failure, Result
from .security import CredentialStore, TokenIssuer
from .service import AccountService

# Process-wide, stateless helpers configured from env
credentials = CredentialStore()
tokens = TokenIssuer()


def get_credentials() -> CredentialStore:
    return credentials


def get_tokens() -> TokenIssuer:
    return tokens


def get_service(
    db: Session = Depends(get_db),
    creds: CredentialStore = Depends(get_credentials),
    issuer: TokenIssuer = Depends(get_tokens),
) -> AccountService:
    return AccountService(db, creds, issuer)


def raise_failure(failure: Failure) -> NoReturn:
    headers = None
    if failure.kind in (ErrorKind.UNAUTHENTICATED, ErrorKind.INVALID_TOKEN):
        headers = {"WWW-Authenticate": "Bearer"}
    raise HTTPException(
        status_code=failure.status_code,
        detail={"error": failure.kind.value, "message": failure.message},
        headers=headers,
    )


def unwrap(result: Result[Any]) -> Any:
    """Value of an Ok result; a Failure becomes the matching HTTPException."""
    if isinstance(result, Failure):
        raise_failure(result)
    return result.value


def require_auth(
    authorization: Optional[str] = Header(default=None),   # "Bearer <jwt>"
    issuer: TokenIssuer = Depends(get_tokens),
) -> Principal:
    """
    Validate the bearer token before any handler logic runs.
    Returns the principal on success; raises 401 on failure.
    """
    return unwrap(AuthorizationGuard(issuer).authenticate(parse_bearer(authorization)))
