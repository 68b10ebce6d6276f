# paytrack/models.py
import uuid

from sqlalchemy import (
    CheckConstraint, Column, DateTime, Float, ForeignKey, Integer, String,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .db import Base

ROLES = ("user", "admin")
TX_STATUSES = ("Success", "Failed", "Pending")


def _new_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("role IN ('user', 'admin')", name="ck_users_role"),
    )

    id = Column(String(32), primary_key=True, default=_new_id)   # opaque, system-assigned
    username = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)               # bcrypt, or "" for passwordless
    balance = Column(Float, nullable=False, default=0.0)
    wallet = Column(String, nullable=False, default="")          # opaque external address
    seed = Column(String, nullable=False, default="")            # opaque, never serialized out
    role = Column(String, nullable=False, default="user", server_default="user")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False,
    )

    transaction_history = relationship(
        "Transaction",
        order_by="Transaction.seq",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_transactions_amount"),
        CheckConstraint(
            "status IN ('Success', 'Failed', 'Pending')", name="ck_transactions_status"
        ),
    )

    seq = Column(Integer, primary_key=True, autoincrement=True)  # append order
    user_id = Column(
        String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    date = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    recipient = Column(String, nullable=False)
    status = Column(String, nullable=False, default="Pending")
