"""
Database model for users.
Represents a family member account: credentials, profile, role and the
disabled switch admins use to lock an account out.
"""
import uuid
from tortoise import fields, models

class User(models.Model):
    """
    User database model.

    Relationships:
    - Has many Conversations (one-to-many, via related_name="conversations")
    - Has many UsageLogs (one-to-many, via related_name="usage_logs")
    - Has many issued Invites (one-to-many, via related_name="issued_invites")

    Security:
    - Password is stored as a hash (never store plain text passwords)
    - Email must be unique across all users
    - The very first account ever created becomes "admin", everyone else "member"
    - Accounts are disabled, never hard-deleted
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)  # Primary key: unique user identifier
    email = fields.CharField(
        max_length=256,
        unique=True,
        index=True
    )  # Login identifier (stored trimmed + lower-cased)
    name = fields.CharField(max_length=128)  # Display name
    password_hash = fields.CharField(max_length=255)  # Argon2 hash
    role = fields.CharField(max_length=16, default="member")  # "member" or "admin"
    disabled = fields.BooleanField(default=False)  # Disabled accounts cannot log in or use live tokens
    created_at = fields.DatetimeField(auto_now_add=True)  # Timestamp when account was created

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "users"  # Database table name
