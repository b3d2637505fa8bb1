# family_portal/api/routers/users.py
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends

from family_portal.api.deps import get_credential_manager, require_admin
from family_portal.models.user import User
from family_portal.schemas.admin import AdminUserOut, AdminUserUpdateIn
from family_portal.services.accounts import CredentialManager

router = APIRouter(prefix="/users", tags=["users"])


# ==============================================================================
# User Management Interface (admin only)
#     Prefix: /api/users
# ==============================================================================
def _user_to_dict(u: User) -> dict:
    """
    Convert User model instance to dictionary format for API responses.

    Args:
        u: User model instance

    Returns:
        dict: Dictionary containing user fields formatted for API response
    """
    return AdminUserOut(
        id=str(u.id),
        email=u.email,
        name=u.name,
        role=u.role,
        disabled=u.disabled,
        createdAt=u.created_at.isoformat() if u.created_at else None,
    ).model_dump()


@router.get(
    "",
    dependencies=[Depends(require_admin)],
)
async def list_users(accounts: CredentialManager = Depends(get_credential_manager)):
    """
    Get the list of all users (admin only), newest first.

    Returns:
        dict: success + data.users

    Raises:
        Forbidden (403): If user is not an admin
        Unauthorized (401): If user is not authenticated
    """
    rows = await accounts.list_users()
    return {"success": True, "data": {"users": [_user_to_dict(u) for u in rows]}}


@router.patch(
    "/{user_id}",
    dependencies=[Depends(require_admin)],
)
async def update_user(
    user_id: uuid.UUID,
    body: AdminUserUpdateIn,
    accounts: CredentialManager = Depends(get_credential_manager),
):
    """
    Update a user (admin only).

    All fields are optional - only provided fields are applied:
        - role: "member" | "admin"
        - disabled: bool (a disabled user is locked out on their next request)
        - resetPassword: str (new password, hashed before storage)

    Returns:
        dict: success + data.user with the updated record

    Raises:
        NotFound (404): USER_NOT_FOUND
        Forbidden (403): If user is not an admin
        Unauthorized (401): If user is not authenticated
    """
    u = await accounts.update_user(
        user_id,
        role=body.role,
        disabled=body.disabled,
        new_password=body.resetPassword,
    )
    return {"success": True, "data": {"user": _user_to_dict(u)}}
