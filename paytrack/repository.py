# paytrack/repository.py
import math
from typing import Any, List, Mapping, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import ErrorKind, Failure, Ok, Result, invalid, not_found
from .logging_config import get_logger
from .models import ROLES, TX_STATUSES, Transaction, User

logger = get_logger(__name__)

# ---------- Field checks (run on create, update and append) ----------

_USER_FIELDS = {"username", "email", "password_hash", "balance", "wallet", "seed", "role"}
_TX_FIELDS = {"date", "amount", "recipient", "status"}


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)


def _is_text(v: Any) -> bool:
    return isinstance(v, str) and bool(v.strip())


def user_problem(fields: Mapping[str, Any]) -> Optional[str]:
    """Return a message describing the first invalid user field, or None."""
    for name in fields:
        if name not in _USER_FIELDS:
            return f"Unknown user field '{name}'"
    for name in ("username", "email"):
        if name in fields and not _is_text(fields[name]):
            return f"'{name}' is required"
    for name in ("password_hash", "wallet", "seed"):
        if name in fields and not isinstance(fields[name], str):
            return f"'{name}' must be a string"
    if "balance" in fields and not _is_number(fields["balance"]):
        return "'balance' must be a number"
    if "role" in fields and fields["role"] not in ROLES:
        return f"Invalid role '{fields['role']}'. Allowed: {', '.join(ROLES)}."
    return None


def transaction_problem(tx: Any) -> Optional[str]:
    """Return a message describing why ``tx`` is not a valid transaction, or None."""
    if not isinstance(tx, Mapping):
        return "Transaction must be an object"
    for name in tx:
        if name not in _TX_FIELDS:
            return f"Unknown transaction field '{name}'"
    for name in ("date", "recipient"):
        if not _is_text(tx.get(name)):
            return f"Transaction '{name}' is required"
    amount = tx.get("amount")
    if not _is_number(amount):
        return "Transaction 'amount' must be a number"
    if amount < 0:
        return "Transaction 'amount' must be >= 0"
    status = tx.get("status", "Pending")
    if status not in TX_STATUSES:
        return f"Invalid status '{status}'. Allowed: {', '.join(TX_STATUSES)}."
    return None


def _tx_row(tx: Mapping[str, Any]) -> dict:
    return dict(
        date=tx["date"],
        amount=float(tx["amount"]),
        recipient=tx["recipient"],
        status=tx.get("status") or "Pending",
    )


def _duplicate_email(err: IntegrityError) -> bool:
    # sqlite: "UNIQUE constraint failed: users.email"; postgres: ix_users_email
    msg = str(err.orig).lower()
    return "email" in msg and ("unique" in msg or "duplicate" in msg)


# ---------- Repository ----------

class UserRepository:
    """
    CRUD over users. Uniqueness and append atomicity come from the store
    (unique index, row inserts), never from read-then-write checks here.
    Non-integrity SQLAlchemy errors propagate to the caller.
    """

    def __init__(self, db: Session):
        self.db = db

    def _commit(self, user: User) -> Result[User]:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if _duplicate_email(e):
                return Failure(ErrorKind.DUPLICATE_EMAIL, "Email already in use.")
            logger.warning("constraint violation on user write: %s", e.orig)
            return invalid("User violates a data constraint")
        self.db.refresh(user)
        return Ok(user)

    def create(self, draft: Mapping[str, Any]) -> Result[User]:
        fields = dict(draft)
        history = fields.pop("transaction_history", None) or []

        missing = [f for f in ("username", "email", "password_hash") if f not in fields]
        if missing:
            return invalid(f"Missing required field(s): {', '.join(missing)}")
        problem = user_problem(fields)
        if problem is None:
            problem = next(filter(None, map(transaction_problem, history)), None)
        if problem:
            return invalid(problem)

        user = User(**fields)
        user.transaction_history = [Transaction(**_tx_row(t)) for t in history]
        self.db.add(user)
        return self._commit(user)

    def find_by_id(self, user_id: str) -> Optional[User]:
        return self.db.get(User, user_id)

    def find_by_email(self, email: str) -> Optional[User]:
        return self.db.execute(select(User).where(User.email == email)).scalar_one_or_none()

    def list_all(self) -> List[User]:
        return list(self.db.execute(select(User).order_by(User.created_at, User.id)).scalars())

    def update(self, user_id: str, fields: Mapping[str, Any]) -> Result[User]:
        if "transaction_history" in fields:
            return invalid("Transaction history is append-only")
        problem = user_problem(fields)
        if problem:
            return invalid(problem)

        user = self.db.get(User, user_id)
        if not user:
            return not_found()
        for name, value in fields.items():
            setattr(user, name, value)
        return self._commit(user)

    def delete(self, user_id: str) -> bool:
        # transactions go with their owner via ON DELETE CASCADE
        res = self.db.execute(delete(User).where(User.id == user_id))
        self.db.commit()
        return res.rowcount > 0

    def append_transaction(self, user_id: str, tx: Mapping[str, Any]) -> Result[User]:
        problem = transaction_problem(tx)
        if problem:
            return invalid(problem)

        touched = self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        if touched.rowcount == 0:
            self.db.rollback()
            return not_found()

        # a new row per entry: concurrent appends never rewrite each other
        self.db.add(Transaction(user_id=user_id, **_tx_row(tx)))
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning("transaction rejected by store: %s", e.orig)
            return invalid("Transaction violates a data constraint")

        user = self.db.get(User, user_id)
        if not user:
            return not_found()
        return Ok(user)
