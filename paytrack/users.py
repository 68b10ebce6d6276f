# paytrack/users.py
from typing import List

from fastapi import APIRouter, Depends, status as http_status

from .auth import Principal
from .deps import get_service, require_auth, unwrap
from .schemas import AdminUserCreate, MessageOut, TransactionIn, UserOut, UserUpdate
from .service import AccountService

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserOut, status_code=http_status.HTTP_201_CREATED)
def admin_create_user(
    payload: AdminUserCreate,
    principal: Principal = Depends(require_auth),
    svc: AccountService = Depends(get_service),
):
    """
    Admin create. Needs either a password or ``passwordless: true``.
    """
    return unwrap(svc.create_as_admin(payload, principal))


@router.get("", response_model=List[UserOut])
def list_users(
    principal: Principal = Depends(require_auth),
    svc: AccountService = Depends(get_service),
):
    """Admin only. Returns [] (200) when there are no users."""
    return unwrap(svc.list_users(principal))


@router.get("/{user_id}", response_model=UserOut)
def get_user(
    user_id: str,
    principal: Principal = Depends(require_auth),
    svc: AccountService = Depends(get_service),
):
    return unwrap(svc.get_user(user_id, principal))


@router.put("/{user_id}", response_model=UserOut)
def update_user(
    user_id: str,
    payload: UserUpdate,
    principal: Principal = Depends(require_auth),
    svc: AccountService = Depends(get_service),
):
    """
    Partial update by the owner or an admin. Only admins may change ``role``.
    """
    return unwrap(svc.update_user(user_id, payload, principal))


@router.delete("/{user_id}", response_model=MessageOut)
def delete_user(
    user_id: str,
    principal: Principal = Depends(require_auth),
    svc: AccountService = Depends(get_service),
):
    """200 with a confirmation message; 404 if not found."""
    return MessageOut(message=unwrap(svc.delete_user(user_id, principal)))


@router.patch("/{user_id}/transactions", response_model=UserOut)
def append_transaction(
    user_id: str,
    payload: TransactionIn,
    principal: Principal = Depends(require_auth),
    svc: AccountService = Depends(get_service),
):
    """Owner or admin appends one entry to the user's transaction history."""
    return unwrap(svc.append_transaction(user_id, payload, principal))
