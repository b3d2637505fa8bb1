"""
Database model for conversations.
A conversation groups the ordered chat messages one user exchanged with the
model backend.
"""
import uuid
from tortoise import fields, models

class Conversation(models.Model):
    """
    Conversation database model.

    Relationships:
    - Belongs to a User (many-to-one)
    - Has many Messages (one-to-many, via related_name in Message model)
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)  # Primary key: unique conversation identifier
    user = fields.ForeignKeyField(
        "models.User",
        related_name="conversations",
        on_delete=fields.CASCADE
    )  # Owner; only the owner can read, rename or delete it
    title = fields.CharField(max_length=128, null=True)  # Derived from the first user message, renameable
    created_at = fields.DatetimeField(auto_now_add=True)  # Timestamp when conversation was created

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "conversations"  # Database table name
