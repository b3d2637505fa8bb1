"""
Services Module

Business logic behind the HTTP routes:
- Invite Ledger: invite code lifecycle
- Credential & Session Manager: registration, login, session tokens, admin changes
- Usage Meter: per-user daily request/token counters and quota admission
- Completion: the external chat model call
- Conversation Gateway: chat turns and conversation history
"""

from .invites import (
    InviteCheck,
    InviteLedger,
    invite_ledger,
)
from .accounts import (
    CredentialManager,
    Principal,
    credential_manager,
)
from .usage import (
    Admission,
    UsageMeter,
    UsageSnapshot,
    usage_meter,
    utc_day_key,
)
from .completion import (
    CompletionClient,
    CompletionResult,
    OpenAIChatClient,
    TokenUsage,
    completion_client,
)
from .chat import (
    ConversationGateway,
    TurnResult,
    conversation_gateway,
)

__all__ = [
    # Invites
    "InviteCheck",
    "InviteLedger",
    "invite_ledger",
    # Accounts
    "CredentialManager",
    "Principal",
    "credential_manager",
    # Usage
    "Admission",
    "UsageMeter",
    "UsageSnapshot",
    "usage_meter",
    "utc_day_key",
    # Completion
    "CompletionClient",
    "CompletionResult",
    "OpenAIChatClient",
    "TokenUsage",
    "completion_client",
    # Chat
    "ConversationGateway",
    "TurnResult",
    "conversation_gateway",
]
