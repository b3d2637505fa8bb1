"""
Pydantic schemas for authentication endpoints.
Defines request/response models for registration, login and the current user.
"""
from typing import Optional
from pydantic import BaseModel

class RegisterIn(BaseModel):
    """
    Request model for self-registration.
    Missing fields are reported by the service as MISSING_FIELDS (400)
    rather than as a 422, so every field is optional here.
    """
    email: Optional[str] = None  # Login email (trimmed + lower-cased server-side)
    name: Optional[str] = None  # Display name
    password: Optional[str] = None  # Plain text, hashed server-side
    invite: Optional[str] = None  # Invite code (ignored for the very first account)

class LoginIn(BaseModel):
    """Request model for user login endpoint."""
    email: Optional[str] = None
    password: Optional[str] = None

class UserOut(BaseModel):
    """
    User information returned in authentication responses.
    Contains basic user details without sensitive information.
    """
    id: str  # User unique identifier
    email: str  # Login email
    name: str  # Display name
    role: str = "member"  # "member" or "admin"
