# paytrack/schemas.py
from datetime import datetime
from typing import Annotated, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, TypeAdapter, ValidationError

Role = Literal["user", "admin"]
TxStatus = Literal["Success", "Failed", "Pending"]

# bcrypt only looks at the first 72 bytes
_MAX_PASSWORD_BYTES = 72


def _check_password(v: str) -> str:
    if not v:
        raise ValueError("password must not be empty")
    if len(v.encode()) > _MAX_PASSWORD_BYTES:
        raise ValueError(f"password must be at most {_MAX_PASSWORD_BYTES} bytes")
    return v


Password = Annotated[str, AfterValidator(_check_password)]

_email = TypeAdapter(EmailStr)


def normalize_email(raw: str) -> Optional[str]:
    """
    The form ``EmailStr`` stores (domain lowercased), or None when ``raw``
    is not an address. Lookups go through this so they match what was written.
    """
    try:
        return _email.validate_python(raw)
    except ValidationError:
        return None


class _In(BaseModel):
    model_config = ConfigDict(extra="forbid")


# ---------- Transactions ----------
class TransactionIn(_In):
    date: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0, allow_inf_nan=False)
    recipient: str = Field(..., min_length=1)
    status: TxStatus = "Pending"


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: str
    amount: float
    recipient: str
    status: TxStatus


# ---------- Users ----------
class RegisterIn(_In):
    username: str = Field(..., min_length=1)
    email: EmailStr
    password: Password


class AdminUserCreate(_In):
    username: str = Field(..., min_length=1)
    email: EmailStr
    password: Optional[Password] = None
    # explicit marker for accounts that are never meant to log in
    passwordless: bool = False
    balance: float = Field(0.0, allow_inf_nan=False)
    wallet: str = ""
    seed: str = ""
    role: Role = "user"
    transaction_history: List[TransactionIn] = Field(default_factory=list)


class UserUpdate(_In):
    """Partial update; only fields present in the body are applied."""
    username: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    password: Optional[Password] = None
    balance: Optional[float] = Field(None, allow_inf_nan=False)
    wallet: Optional[str] = None
    seed: Optional[str] = None
    role: Optional[Role] = None


class UserOut(BaseModel):
    """Redacted profile: never carries the password hash or the seed."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    email: str
    balance: float
    wallet: str
    role: Role
    transaction_history: List[TransactionOut]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PublicProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: str
    email: str
    role: Role


class MessageOut(BaseModel):
    message: str


# ---------- Auth ----------
class LoginIn(_In):
    email: str
    password: str


class LoginOut(BaseModel):
    message: str = "Login successful"
    token: str
    user: PublicProfile
