# family_portal/models/__init__.py
"""
Database models module initialization.
Exports all database models for convenient imports throughout the application.

Models exported:
- User: Account, credentials and role
- Invite: Registration invite codes
- Conversation: Chat conversation owned by a user
- Message: Single chat message (belongs to Conversation)
- UsageLog: Per-user, per-day usage counters
"""
from .user import User
from .invite import Invite
from .conversation import Conversation
from .message import Message
from .usage import UsageLog
