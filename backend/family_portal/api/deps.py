# family_portal/api/deps.py
from fastapi import Depends, Header, Request

from family_portal.models.user import User
from family_portal.services.accounts import CredentialManager, credential_manager
from family_portal.services.chat import ConversationGateway, conversation_gateway
from family_portal.services.invites import InviteLedger, invite_ledger
from family_portal.services.usage import UsageMeter, usage_meter

SESSION_COOKIE = "accessToken"

# Service providers: tests swap these through app.dependency_overrides
def get_credential_manager() -> CredentialManager:
    return credential_manager

def get_invite_ledger() -> InviteLedger:
    return invite_ledger

def get_usage_meter() -> UsageMeter:
    return usage_meter

def get_conversation_gateway() -> ConversationGateway:
    return conversation_gateway

async def get_current_user(
    request: Request,
    authorization: str | None = Header(default=None),
    accounts: CredentialManager = Depends(get_credential_manager),
) -> User:
    """
    FastAPI dependency to get the current authenticated user.

    This dependency extracts the session token from either:
    1. Authorization header (Bearer token)
    2. HttpOnly cookie (accessToken) - what the browser sends

    The token alone is not trusted: the live user row is reloaded so a
    disabled account is locked out immediately, even with an unexpired token.

    Raises:
        Unauthorized (401): no token, bad/expired token, unknown or disabled user
    """
    token = None
    # 1) Prioritize Authorization: Bearer xxx
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
    # 2) Secondly HttpOnly Cookie: accessToken
    if not token:
        token = request.cookies.get(SESSION_COOKIE)

    return await accounts.authenticate(token)

async def require_admin(
    current: User = Depends(get_current_user),
    accounts: CredentialManager = Depends(get_credential_manager),
) -> User:
    """
    FastAPI dependency to ensure the current user is an administrator.

    The role comes from the reloaded user row, not from the token claim.

    Raises:
        Forbidden (403): If user is not an admin
        Unauthorized (401): If user is not authenticated (from get_current_user)
    """
    return accounts.require_role(current, "admin")
