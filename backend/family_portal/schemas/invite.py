"""
Pydantic schemas for invite management endpoints.
"""
from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Optional

class InviteCreateIn(BaseModel):
    """
    Request model for issuing an invite (admin only).
    """
    note: Optional[str] = Field(default=None, max_length=500)  # Free text, e.g. who it is for
    maxUses: int = Field(default=1, ge=1, le=1000, description="How many registrations the code allows")
    expiresInDays: Optional[int] = Field(
        default=7, ge=0, le=3650, description="Days until expiration; 0 or null means never"
    )

class InviteCreatedOut(BaseModel):
    """Returned once after issuing."""
    id: str
    code: str
    expiresAt: Optional[str] = None

class InviteOut(BaseModel):
    """
    Invite as listed for admins.
    `status` is "valid" or the reason the code would be rejected.
    """
    id: str
    code: str
    note: Optional[str] = None
    createdBy: Optional[str] = None
    createdAt: Optional[str] = None
    expiresAt: Optional[str] = None
    maxUses: int
    usedCount: int
    active: bool
    status: str

class InviteCheckIn(BaseModel):
    """Request model for validating a code before registering."""
    code: Optional[str] = None
