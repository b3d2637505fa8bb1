"""
Invite Ledger

Issues, validates, consumes and revokes registration invite codes.
"""
import datetime as dt
import logging
import secrets
import string
from dataclasses import dataclass
from typing import List, Optional

from tortoise.exceptions import IntegrityError

from ..config import Settings, settings
from ..models.invite import Invite
from ..models.user import User

logger = logging.getLogger("uvicorn.error")

CODE_ALPHABET = string.digits + string.ascii_lowercase
CODE_LENGTH = 12
ISSUE_ATTEMPTS = 10
CONSUME_ATTEMPTS = 5


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def make_invite_code(length: int = CODE_LENGTH) -> str:
    """Random lowercase alphanumeric code; 36**12 possibilities."""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


@dataclass
class InviteCheck:
    """Outcome of validating a code: `invite` is set when found, `reason` when not ok."""
    ok: bool
    invite: Optional[Invite] = None
    reason: Optional[str] = None  # missing | not_found | revoked | expired | exhausted


def invite_status(invite: Invite, now: Optional[dt.datetime] = None) -> Optional[str]:
    """Return the rejection reason for an existing invite, or None if it is usable."""
    now = now or utc_now()
    if not invite.active:
        return "revoked"
    if invite.expires_at and invite.expires_at <= now:
        return "expired"
    if invite.used_count >= invite.max_uses:
        return "exhausted"
    return None


class InviteLedger:
    """Invite code lifecycle backed by the `invites` table."""

    def __init__(self, config: Settings):
        self.config = config

    async def issue(
        self,
        note: Optional[str],
        max_uses: int = 1,
        expires_in_days: Optional[int] = 7,
        issued_by: Optional[User] = None,
    ) -> Invite:
        """
        Create a new invite.

        A falsy `expires_in_days` (None or 0) creates an invite that never expires.
        The unique index on `code` is the collision check: a violation just
        means we draw another code.
        """
        expires_at = utc_now() + dt.timedelta(days=expires_in_days) if expires_in_days else None

        for _ in range(ISSUE_ATTEMPTS):
            try:
                invite = await Invite.create(
                    code=make_invite_code(),
                    note=note or None,
                    created_by=issued_by,
                    expires_at=expires_at,
                    max_uses=max_uses,
                )
            except IntegrityError:
                logger.warning("[invites] code collision, retrying")
                continue
            logger.info("[invites] issued %s (max_uses=%s, expires_at=%s)",
                        invite.code, max_uses, expires_at)
            return invite
        raise RuntimeError("INVITE_CODE_GENERATION_FAILED")

    async def check(self, code: Optional[str], using_db=None) -> InviteCheck:
        """Read-only validation of a code."""
        if not code:
            return InviteCheck(ok=False, reason="missing")
        invite = await Invite.filter(code=code).using_db(using_db).first()
        if not invite:
            return InviteCheck(ok=False, reason="not_found")
        reason = invite_status(invite)
        if reason:
            return InviteCheck(ok=False, invite=invite, reason=reason)
        return InviteCheck(ok=True, invite=invite)

    async def consume(self, code: str, using_db=None) -> bool:
        """
        Take one use of `code` if, and only if, it is still valid.

        The increment is a compare-and-swap on the used_count we validated,
        so two concurrent callers can never both take the last slot and
        used_count never passes max_uses.
        """
        if not code:
            return False
        for _ in range(CONSUME_ATTEMPTS):
            invite = await Invite.filter(code=code).using_db(using_db).first()
            if not invite or invite_status(invite):
                return False
            updated = await (
                Invite.filter(id=invite.id, active=True, used_count=invite.used_count)
                .using_db(using_db)
                .update(used_count=invite.used_count + 1)
            )
            if updated:
                return True
        logger.warning("[invites] gave up consuming %s after %s contended attempts",
                       code, CONSUME_ATTEMPTS)
        return False

    async def redeem(self, code: Optional[str], using_db=None) -> InviteCheck:
        """Consume one use; on failure report why via `check`."""
        if await self.consume(code, using_db=using_db):
            invite = await Invite.filter(code=code).using_db(using_db).first()
            return InviteCheck(ok=True, invite=invite)
        return await self.check(code, using_db=using_db)

    async def revoke(self, code: str) -> bool:
        """Deactivate an invite. Returns False when the code does not exist."""
        invite = await Invite.get_or_none(code=code)
        if not invite:
            return False
        if invite.active:
            invite.active = False
            await invite.save(update_fields=["active"])
            logger.info("[invites] revoked %s", code)
        return True

    async def list(self) -> List[Invite]:
        return await Invite.all().order_by("-created_at")


invite_ledger = InviteLedger(settings)
