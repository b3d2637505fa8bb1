# family_portal/core/errors.py
"""
Domain error taxonomy.

Services raise these; the exception handler registered in main.py renders
them as `{"detail": {"code": ..., "message": ...}}` with the matching status.
"""
from typing import Optional


class PortalError(Exception):
    """Base class for errors that map onto an HTTP response."""
    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None):
        self.message = message or self.message
        self.code = code or self.code
        super().__init__(self.message)

    def to_detail(self) -> dict:
        return {"code": self.code, "message": self.message}


# ----- 400 -----
class ValidationFailed(PortalError):
    status_code = 400
    code = "BAD_REQUEST"
    message = "Invalid request"


class InviteRejected(ValidationFailed):
    """Registration invite was missing or unusable; `reason` comes from the ledger."""
    messages = {
        "missing": "Invite code required",
        "not_found": "Invite code does not exist",
        "revoked": "Invite code has been revoked",
        "expired": "Invite code has expired",
        "exhausted": "Invite code has no uses left",
    }

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(
            self.messages.get(reason, "Invalid invite code"),
            code=f"INVITE_{reason.upper()}",
        )

    def to_detail(self) -> dict:
        return {**super().to_detail(), "reason": self.reason}


# ----- 401 / 403 -----
class Unauthorized(PortalError):
    status_code = 401
    code = "UNAUTHORIZED"
    message = "Unauthorized"


class Forbidden(PortalError):
    status_code = 403
    code = "FORBIDDEN"
    message = "Forbidden"


# ----- 404 -----
class NotFound(PortalError):
    status_code = 404
    code = "NOT_FOUND"
    message = "Not found"


# ----- 429 -----
class QuotaExceeded(PortalError):
    status_code = 429
    messages = {
        "requests": "Daily request limit reached, please try again tomorrow",
        "tokens": "Daily token limit reached, please try again tomorrow",
    }

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(self.messages[kind], code=f"QUOTA_{kind.upper()}_EXCEEDED")

    def to_detail(self) -> dict:
        return {**super().to_detail(), "kind": self.kind}


# ----- 500 -----
class UpstreamError(PortalError):
    """The completion backend failed or answered with something unusable."""
    status_code = 500
    code = "UPSTREAM_ERROR"
    message = "Chat backend failed"


class BackendNotConfigured(PortalError):
    status_code = 500
    code = "BACKEND_NOT_CONFIGURED"
    message = "Chat backend is not configured (OPENAI_API_KEY missing)"
