# paytrack/service.py
import functools
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Union

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .auth import AuthorizationGuard, Principal
from .errors import CryptoFailure, ErrorKind, Failure, Ok, Result, invalid, not_found
from .ledger import TransactionLedger
from .logging_config import get_logger
from .models import User
from .repository import UserRepository
from .schemas import AdminUserCreate, RegisterIn, TransactionIn, UserUpdate, normalize_email
from .security import CredentialStore, TokenIssuer

logger = get_logger(__name__)

_BAD_LOGIN = Failure(ErrorKind.INVALID_CREDENTIALS, "Invalid credentials")


@dataclass(frozen=True)
class LoginResult:
    token: str
    user: User


def _recover_faults(fn):
    """Turn store and hashing faults into Failure values instead of raising."""

    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except CryptoFailure:
            logger.exception("crypto failure in %s", fn.__name__)
            return Failure(ErrorKind.CRYPTO_FAILURE, "Password processing failed")
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("store failure in %s", fn.__name__)
            return Failure(ErrorKind.STORE_FAILURE, "Internal storage error")

    return wrapper


class AccountService:
    """Use cases over accounts: registration, login, CRUD and ledger appends."""

    def __init__(
        self,
        db: Session,
        credentials: CredentialStore,
        tokens: TokenIssuer,
        guard: Optional[AuthorizationGuard] = None,
    ):
        self.db = db
        self.users = UserRepository(db)
        self.ledger = TransactionLedger(self.users)
        self.credentials = credentials
        self.tokens = tokens
        self.guard = guard or AuthorizationGuard(tokens)

    # ---------- Auth ----------

    @_recover_faults
    def register(self, draft: RegisterIn) -> Result[User]:
        # self-registration always yields a plain user; the unique index rejects duplicates
        result = self.users.create(dict(
            username=draft.username,
            email=draft.email,
            password_hash=self.credentials.hash(draft.password),
            role="user",
        ))
        if isinstance(result, Ok):
            logger.info(
                "registered user %s", result.value.id,
                extra={"user_id": result.value.id, "action": "register"},
            )
        else:
            logger.info(
                "registration rejected: %s", result.kind.value, extra={"action": "register"},
            )
        return result

    @_recover_faults
    def login(self, email: str, password: str) -> Result[LoginResult]:
        # unparseable addresses fail like unknown ones
        normalized = normalize_email(email)
        user = self.users.find_by_email(normalized) if normalized else None
        if user is None or not user.password_hash:
            # same cost as a real check, same answer
            self.credentials.verify_dummy(password)
            matched = False
        else:
            matched = self.credentials.verify(password, user.password_hash)

        if not matched:
            logger.info("failed login for %s", email, extra={"action": "login"})
            return _BAD_LOGIN

        token = self.tokens.issue(user.id, user.role)
        logger.info("login for user %s", user.id, extra={"user_id": user.id, "action": "login"})
        return Ok(LoginResult(token=token, user=user))

    # ---------- Admin ----------

    @_recover_faults
    def create_as_admin(self, draft: AdminUserCreate, principal: Principal) -> Result[User]:
        allowed = self.guard.authorize_admin_only(principal)
        if isinstance(allowed, Failure):
            return allowed

        if draft.passwordless and draft.password is not None:
            return invalid("Give either a password or passwordless=true, not both")
        if not draft.passwordless and draft.password is None:
            return invalid("A password is required unless passwordless=true")

        fields = draft.model_dump(exclude={"password", "passwordless"})
        # passwordless accounts keep the empty placeholder and can never log in
        fields["password_hash"] = "" if draft.passwordless else self.credentials.hash(draft.password)
        result = self.users.create(fields)
        if isinstance(result, Ok):
            logger.info(
                "admin %s created user %s%s",
                principal.subject_id, result.value.id, " (passwordless)" if draft.passwordless else "",
                extra={"user_id": principal.subject_id, "action": "create_user"},
            )
        return result

    @_recover_faults
    def list_users(self, principal: Principal) -> Result[List[User]]:
        allowed = self.guard.authorize_admin_only(principal)
        if isinstance(allowed, Failure):
            return allowed
        return Ok(self.users.list_all())

    @_recover_faults
    def ensure_admin(
        self, email: str, password: Optional[str] = None, password_hash: Optional[str] = None,
    ) -> Result[User]:
        """Create the bootstrap admin unless an account with ``email`` already exists."""
        normalized = normalize_email(email)
        if normalized is None:
            return invalid(f"ADMIN_EMAIL '{email}' is not a valid address")
        email = normalized

        existing = self.users.find_by_email(email)
        if existing is not None:
            return Ok(existing)

        if password_hash:
            if not password_hash.startswith("$2"):
                return invalid("ADMIN_PASSWORD_HASH is not a bcrypt hash")
        elif password:
            password_hash = self.credentials.hash(password)
        else:
            return invalid("An admin password or password hash is required")

        result = self.users.create(dict(
            username="admin", email=email, password_hash=password_hash, role="admin",
        ))
        if isinstance(result, Failure) and result.kind is ErrorKind.DUPLICATE_EMAIL:
            # another worker got there first
            return Ok(self.users.find_by_email(email))
        if isinstance(result, Ok):
            logger.info(
                "bootstrap admin %s created", result.value.id,
                extra={"user_id": result.value.id, "action": "bootstrap_admin"},
            )
        return result

    # ---------- Self-or-admin ----------

    @_recover_faults
    def get_user(self, user_id: str, principal: Principal) -> Result[User]:
        allowed = self.guard.authorize_self_or_admin(principal, user_id)
        if isinstance(allowed, Failure):
            return allowed
        user = self.users.find_by_id(user_id)
        if user is None:
            return not_found()
        return Ok(user)

    @_recover_faults
    def update_user(self, user_id: str, fields: UserUpdate, principal: Principal) -> Result[User]:
        allowed = self.guard.authorize_self_or_admin(principal, user_id)
        if isinstance(allowed, Failure):
            return allowed

        changes = fields.model_dump(exclude_unset=True)
        if "role" in changes and not principal.is_admin:
            logger.warning(
                "%s tried to change a role", principal.subject_id,
                extra={"user_id": principal.subject_id, "action": "update_user"},
            )
            return Failure(ErrorKind.FORBIDDEN, "Forbidden: only admins can change roles")
        if "password" in changes:
            password = changes.pop("password")
            if password is None:
                return invalid("'password' must not be null")
            changes["password_hash"] = self.credentials.hash(password)

        return self.users.update(user_id, changes)

    @_recover_faults
    def delete_user(self, user_id: str, principal: Principal) -> Result[str]:
        allowed = self.guard.authorize_self_or_admin(principal, user_id)
        if isinstance(allowed, Failure):
            return allowed
        if not self.users.delete(user_id):
            return not_found()
        logger.info(
            "user %s deleted by %s", user_id, principal.subject_id,
            extra={"user_id": principal.subject_id, "action": "delete_user"},
        )
        return Ok("User deleted successfully")

    @_recover_faults
    def append_transaction(
        self,
        user_id: str,
        tx: Union[TransactionIn, Mapping[str, Any]],
        principal: Principal,
    ) -> Result[User]:
        allowed = self.guard.authorize_self_or_admin(principal, user_id)
        if isinstance(allowed, Failure):
            return allowed
        entry = tx.model_dump() if isinstance(tx, BaseModel) else tx
        return self.ledger.append(user_id, entry)
