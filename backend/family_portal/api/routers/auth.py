# family_portal/api/routers/auth.py
from fastapi import APIRouter, Depends, Response

from family_portal.api.deps import (
    SESSION_COOKIE,
    get_credential_manager,
    get_current_user,
    get_usage_meter,
)
from family_portal.models.user import User
from family_portal.schemas.auth import LoginIn, RegisterIn, UserOut
from family_portal.services.accounts import CredentialManager
from family_portal.services.usage import UsageMeter

router = APIRouter(tags=["auth"])

def user_out(u: User) -> dict:
    return UserOut(id=str(u.id), email=u.email, name=u.name, role=u.role).model_dump()

def set_session_cookie(response: Response, token: str, accounts: CredentialManager) -> None:
    response.set_cookie(
        SESSION_COOKIE,
        token,
        httponly=True,
        samesite="lax",
        secure=accounts.config.secure_cookies,
        max_age=accounts.config.session_ttl_days * 24 * 60 * 60,
    )

@router.post("/auth/register")
async def register(
    body: RegisterIn,
    response: Response,
    accounts: CredentialManager = Depends(get_credential_manager),
):
    """
    Register a new user account.

    The first account ever created becomes the admin and needs no invite.
    Later accounts are members; registration must be open, and an invite
    code, when given (or required by REQUIRE_INVITE), must be valid and is
    consumed atomically with the account creation.

    Args:
        body: Request body containing:
            - email: str (must be unique)
            - name: str
            - password: str (will be hashed before storage)
            - invite: str | None

    Returns:
        dict: success + data.user and data.accessToken; the token is also set
        as an HttpOnly cookie

    Error codes:
        - MISSING_FIELDS (400): email, name or password missing
        - EMAIL_EXISTS (400): Email already registered
        - REGISTRATION_CLOSED (403): ALLOW_REGISTRATION is off
        - INVITE_MISSING / INVITE_NOT_FOUND / INVITE_REVOKED /
          INVITE_EXPIRED / INVITE_EXHAUSTED (400)
    """
    user, token = await accounts.register(body.email, body.name, body.password, body.invite)
    set_session_cookie(response, token, accounts)
    return {"success": True, "data": {"user": user_out(user), "accessToken": token}}

@router.post("/auth/login")
async def login(
    body: LoginIn,
    response: Response,
    accounts: CredentialManager = Depends(get_credential_manager),
):
    """
    Authenticate user and issue a session token.

    Unknown and disabled accounts get the same answer so the endpoint
    cannot be used to discover which emails are registered.

    Error codes:
        - MISSING_FIELDS (400)
        - ACCOUNT_UNAVAILABLE (401): no such account, or account disabled
        - INVALID_PASSWORD (401)
    """
    user, token = await accounts.login(body.email, body.password)
    set_session_cookie(response, token, accounts)
    return {"success": True, "data": {"user": user_out(user), "accessToken": token}}

@router.post("/auth/logout")
async def logout(response: Response):
    """
    Log out by clearing the session cookie.

    Always succeeds. The token itself stays cryptographically valid until it
    expires; disabling the account is what revokes it server-side.
    """
    response.delete_cookie(SESSION_COOKIE)
    return {"success": True}

@router.get("/me")
async def me(
    user: User = Depends(get_current_user),
    meter: UsageMeter = Depends(get_usage_meter),
):
    """
    Current user, today's usage and the quota ceilings it counts against.
    """
    usage = await meter.get_today(user.id)
    return {
        "success": True,
        "data": {
            "user": user_out(user),
            "usage": usage.to_dict(),
            "limits": {
                "maxRequestsPerDay": meter.config.max_requests_per_day,
                "maxTokensPerDay": meter.config.max_tokens_per_day,
            },
        },
    }
