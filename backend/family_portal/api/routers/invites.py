# family_portal/api/routers/invites.py
from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, Depends

from family_portal.api.deps import get_invite_ledger, require_admin
from family_portal.core.errors import NotFound
from family_portal.models.invite import Invite
from family_portal.models.user import User
from family_portal.schemas.invite import (
    InviteCheckIn,
    InviteCreatedOut,
    InviteCreateIn,
    InviteOut,
)
from family_portal.services.invites import InviteLedger, invite_status, utc_now

router = APIRouter(prefix="/invites", tags=["invites"])


def _iso(value: dt.datetime | None) -> str | None:
    return value.isoformat() if value else None


def _invite_to_dict(r: Invite, now: dt.datetime) -> dict:
    return InviteOut(
        id=str(r.id),
        code=r.code,
        note=r.note,
        createdBy=str(r.created_by_id) if r.created_by_id else None,
        createdAt=_iso(r.created_at),
        expiresAt=_iso(r.expires_at),
        maxUses=r.max_uses,
        usedCount=r.used_count,
        active=r.active,
        status=invite_status(r, now) or "valid",
    ).model_dump()


# ==============================================================================
# Invite Management (admin only)
#     Prefix: /api/invites
# ==============================================================================
@router.get("", dependencies=[Depends(require_admin)])
async def list_invites(ledger: InviteLedger = Depends(get_invite_ledger)):
    """
    List all invites, newest first (admin only).

    Each item carries a computed `status`: "valid", or the reason the code
    would be rejected right now (revoked / expired / exhausted).
    """
    now = utc_now()
    rows = await ledger.list()
    return {"success": True, "data": {"invites": [_invite_to_dict(r, now) for r in rows]}}


@router.post("")
async def create_invite(
    body: InviteCreateIn,
    admin: User = Depends(require_admin),
    ledger: InviteLedger = Depends(get_invite_ledger),
):
    """
    Issue a new invite (admin only).

    Args:
        body: Request body containing:
            - note: str | None
            - maxUses: int (default 1)
            - expiresInDays: int | None (default 7; 0 or null = never expires)

    Returns:
        dict: success + data with id and code
    """
    invite = await ledger.issue(
        note=body.note,
        max_uses=body.maxUses,
        expires_in_days=body.expiresInDays,
        issued_by=admin,
    )
    out = InviteCreatedOut(id=str(invite.id), code=invite.code, expiresAt=_iso(invite.expires_at))
    return {"success": True, "data": out.model_dump()}


@router.post("/check")
async def check_invite(body: InviteCheckIn, ledger: InviteLedger = Depends(get_invite_ledger)):
    """
    Validate a code without consuming it (no login required, used by the
    sign-up form). Only reports valid/reason, never the invite itself.
    """
    result = await ledger.check((body.code or "").strip())
    return {"success": True, "data": {"valid": result.ok, "reason": result.reason}}


@router.post("/{code}/revoke", dependencies=[Depends(require_admin)])
async def revoke_invite(code: str, ledger: InviteLedger = Depends(get_invite_ledger)):
    """
    Deactivate an invite (admin only). Revoking twice is fine.

    Raises:
        NotFound (404): INVITE_NOT_FOUND
    """
    if not await ledger.revoke(code):
        raise NotFound("Invite code does not exist", code="INVITE_NOT_FOUND")
    return {"success": True, "data": {"ok": True}}
