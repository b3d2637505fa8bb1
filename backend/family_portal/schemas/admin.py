"""
Pydantic schemas for admin user management endpoints.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Literal

# ========== Common return model ==========
class AdminUserOut(BaseModel):
    """
    User as seen by an admin.
    """
    id: str  # User unique identifier
    email: str
    name: str
    role: Literal["member", "admin"]
    disabled: bool
    createdAt: Optional[str] = None  # Account creation timestamp (ISO format)


# ========== Input model ==========
class AdminUserUpdateIn(BaseModel):
    """
    Request model for updating a user.
    All fields are optional - only provided fields will be updated.
    """
    model_config = ConfigDict(populate_by_name=True)

    role: Optional[Literal["member", "admin"]] = None  # New role
    disabled: Optional[bool] = None  # Lock or unlock the account
    resetPassword: Optional[str] = Field(default=None, min_length=1)  # New password set by the admin
