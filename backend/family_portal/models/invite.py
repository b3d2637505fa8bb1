"""
Database model for registration invites.
An invite is a bounded-use, optionally time-boxed code an admin hands out.
"""
import uuid
from typing import Optional
from tortoise import fields, models

class Invite(models.Model):
    """
    Registration invite.
    - code: random lowercase alphanumeric string, unique
    - max_uses / used_count: used_count never exceeds max_uses
    - expires_at: optional expiry; null means never expires
    - active: False once revoked
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    code = fields.CharField(max_length=32, unique=True, index=True)
    note = fields.TextField(null=True)

    created_by: Optional[fields.ForeignKeyNullableRelation["User"]] = fields.ForeignKeyField(
        "models.User", related_name="issued_invites", null=True, on_delete=fields.SET_NULL
    )
    created_at = fields.DatetimeField(auto_now_add=True)
    expires_at = fields.DatetimeField(null=True)

    max_uses = fields.IntField(default=1)
    used_count = fields.IntField(default=0)
    active = fields.BooleanField(default=True)

    class Meta:
        table = "invites"
