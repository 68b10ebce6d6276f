# paytrack/ledger.py
from typing import Any, Mapping

from .errors import Result, invalid
from .logging_config import get_logger
from .models import User
from .repository import UserRepository, transaction_problem

logger = get_logger(__name__)


class TransactionLedger:
    """
    Append-only transaction history per user. Entries are checked here
    before the repository is touched, so a rejected entry never mutates state.
    Appending records the reported outcome only; ``balance`` is left alone.
    """

    def __init__(self, users: UserRepository):
        self.users = users

    def append(self, user_id: str, tx: Mapping[str, Any]) -> Result[User]:
        problem = transaction_problem(tx)
        if problem:
            return invalid(problem)
        result = self.users.append_transaction(user_id, tx)
        logger.info(
            "transaction append for %s: %s", user_id, type(result).__name__,
            extra={"user_id": user_id, "action": "append_transaction"},
        )
        return result
