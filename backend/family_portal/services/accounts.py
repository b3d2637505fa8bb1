"""
Credential & Session Manager

Registration (with the first-user-is-admin rule and invite redemption),
login, session verification and admin-side account changes.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import jwt
from tortoise.exceptions import IntegrityError
from tortoise.transactions import in_transaction

from ..config import Settings, settings
from ..core.errors import (
    Forbidden,
    InviteRejected,
    NotFound,
    Unauthorized,
    ValidationFailed,
)
from ..core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from ..models.user import User
from .invites import InviteLedger, invite_ledger

logger = logging.getLogger("uvicorn.error")

ROLES = ("member", "admin")


@dataclass(frozen=True)
class Principal:
    """Identity + role claimed by a verified session token."""
    user_id: str
    role: str


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


class CredentialManager:
    def __init__(self, config: Settings, invites: InviteLedger):
        self.config = config
        self.invites = invites

    # ----- tokens -----
    def issue_token(self, user: User) -> str:
        return create_access_token(
            str(user.id), user.role,
            secret=self.config.jwt_secret, ttl_days=self.config.session_ttl_days,
        )

    def verify_session(self, token: Optional[str]) -> Optional[Principal]:
        """Signature + expiry check only; no database access."""
        if not token:
            return None
        try:
            payload = decode_access_token(token, secret=self.config.jwt_secret)
        except jwt.PyJWTError:
            return None
        user_id = payload.get("sub")
        if not user_id:
            return None
        return Principal(user_id=str(user_id), role=payload.get("role", "member"))

    async def authenticate(self, token: Optional[str]) -> User:
        """
        Resolve a session token to the live user row.

        A bad token, a deleted user and a disabled user all produce the same
        401 so callers cannot tell which check failed.
        """
        principal = self.verify_session(token)
        if not principal:
            raise Unauthorized()
        try:
            user = await User.get_or_none(id=principal.user_id)
        except ValueError:  # sub is not a UUID
            user = None
        if not user or user.disabled:
            raise Unauthorized()
        return user

    @staticmethod
    def require_role(user: User, role: str) -> User:
        if getattr(user, "role", None) != role:
            raise Forbidden()
        return user

    # ----- registration / login -----
    async def register(
        self,
        email: Optional[str],
        name: Optional[str],
        password: Optional[str],
        invite_code: Optional[str] = None,
    ) -> Tuple[User, str]:
        """
        Create an account and issue its session token.

        The first account ever created becomes admin and bypasses the
        registration switch and invites entirely. Any later account is a
        member; a supplied invite is redeemed in the same transaction that
        inserts the user, so a rejected invite leaves no user row behind and
        a failed insert gives the invite use back.
        """
        email = normalize_email(email)
        name = (name or "").strip()
        invite_code = (invite_code or "").strip() or None
        if not email or not name or not password:
            raise ValidationFailed("email, name and password are required", code="MISSING_FIELDS")

        if await User.filter(email=email).exists():
            raise ValidationFailed("Email already registered", code="EMAIL_EXISTS")

        # Early rejection only; the role is decided again under the transaction
        if await User.all().exists():
            self._check_open(invite_code)

        password_hash = hash_password(password)
        try:
            async with in_transaction() as conn:
                is_first_user = not await User.all().using_db(conn).exists()
                if not is_first_user:
                    # Another registration may have become first meanwhile
                    self._check_open(invite_code)
                if not is_first_user and invite_code:
                    outcome = await self.invites.redeem(invite_code, using_db=conn)
                    if not outcome.ok:
                        raise InviteRejected(outcome.reason)
                user = await User.create(
                    email=email,
                    name=name,
                    password_hash=password_hash,
                    role="admin" if is_first_user else "member",
                    using_db=conn,
                )
        except IntegrityError as e:
            raise ValidationFailed("Email already registered", code="EMAIL_EXISTS") from e

        logger.info("[auth] registered %s as %s%s", user.email, user.role,
                    f" with invite {invite_code}" if invite_code and not is_first_user else "")
        return user, self.issue_token(user)

    def _check_open(self, invite_code: Optional[str]) -> None:
        """Policy for every account after the first one."""
        if not self.config.allow_registration:
            raise Forbidden("Self-registration is currently closed", code="REGISTRATION_CLOSED")
        if self.config.require_invite and not invite_code:
            raise InviteRejected("missing")

    async def login(self, email: Optional[str], password: Optional[str]) -> Tuple[User, str]:
        email = normalize_email(email)
        if not email or not password:
            raise ValidationFailed("email and password are required", code="MISSING_FIELDS")

        user = await User.get_or_none(email=email)
        if not user or user.disabled:
            raise Unauthorized("Account does not exist or is disabled", code="ACCOUNT_UNAVAILABLE")
        if not verify_password(password, user.password_hash):
            raise Unauthorized("Incorrect password", code="INVALID_PASSWORD")
        return user, self.issue_token(user)

    # ----- admin -----
    async def list_users(self) -> List[User]:
        return await User.all().order_by("-created_at")

    async def update_user(
        self,
        user_id,
        role: Optional[str] = None,
        disabled: Optional[bool] = None,
        new_password: Optional[str] = None,
    ) -> User:
        """
        Partial update: only the arguments that are not None are applied.

        Role changes do not touch outstanding tokens; disabling takes effect
        on the user's next request because `authenticate` reloads the row.
        """
        user = await User.get_or_none(id=user_id)
        if not user:
            raise NotFound("User not found", code="USER_NOT_FOUND")

        changed = []
        if role is not None:
            if role not in ROLES:
                raise ValidationFailed(f"role must be one of {ROLES}", code="BAD_ROLE")
            user.role = role
            changed.append("role")
        if disabled is not None:
            user.disabled = disabled
            changed.append("disabled")
        if new_password:
            user.password_hash = hash_password(new_password)
            changed.append("password_hash")

        if changed:
            await user.save(update_fields=changed)
            logger.info("[auth] updated %s: %s", user.email, ", ".join(changed))
        return user


credential_manager = CredentialManager(settings, invite_ledger)

