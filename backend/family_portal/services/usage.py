"""
Usage Meter

Per-user, per-period request and token counters, plus the quota admission
check that gates every chat turn.
"""
import datetime as dt
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from tortoise.exceptions import IntegrityError
from tortoise.expressions import F

from ..config import Settings, settings
from ..models.usage import UsageLog

logger = logging.getLogger("uvicorn.error")


def utc_day_key(now: Optional[dt.datetime] = None) -> str:
    """
    Calendar day in UTC, e.g. "2026-10-18".

    A user's day therefore rolls over at UTC midnight, not local midnight.
    """
    now = now or dt.datetime.now(dt.timezone.utc)
    return now.astimezone(dt.timezone.utc).strftime("%Y-%m-%d")


@dataclass
class UsageSnapshot:
    period_key: str
    requests: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def to_dict(self) -> dict:
        return {
            "date": self.period_key,
            "requests": self.requests,
            "promptTokens": self.prompt_tokens,
            "completionTokens": self.completion_tokens,
            "totalTokens": self.total_tokens,
        }


@dataclass
class Admission:
    admitted: bool
    kind: Optional[str] = None  # "requests" | "tokens" when refused


class UsageMeter:
    """
    Reads and accumulates usage for the current period.

    `period_key` is the strategy that names the accounting bucket; swap it
    for a rolling window or a local-time day without touching the counters.
    """

    def __init__(self, config: Settings, period_key: Callable[[], str] = utc_day_key):
        self.config = config
        self.period_key = period_key

    async def get_today(self, user_id) -> UsageSnapshot:
        """Current period's counters; zeros when nothing was recorded yet. Never writes."""
        key = self.period_key()
        row = await UsageLog.get_or_none(user_id=user_id, period_key=key)
        if not row:
            return UsageSnapshot(period_key=key)
        return UsageSnapshot(
            period_key=key,
            requests=row.requests,
            prompt_tokens=row.prompt_tokens,
            completion_tokens=row.completion_tokens,
            total_tokens=row.total_tokens,
        )

    async def admit(
        self,
        user_id,
        max_requests_per_day: Optional[int] = None,
        max_tokens_per_day: Optional[int] = None,
    ) -> Admission:
        """
        Soft quota check against the latest snapshot.

        Not atomic with `record`: concurrent turns from one user may overshoot
        a ceiling by up to (concurrency - 1) before the next check sees it.
        """
        if max_requests_per_day is None:
            max_requests_per_day = self.config.max_requests_per_day
        if max_tokens_per_day is None:
            max_tokens_per_day = self.config.max_tokens_per_day

        usage = await self.get_today(user_id)
        if usage.requests >= max_requests_per_day:
            return Admission(admitted=False, kind="requests")
        if usage.total_tokens >= max_tokens_per_day:
            return Admission(admitted=False, kind="tokens")
        return Admission(admitted=True)

    async def record(
        self,
        user_id,
        requests: int = 0,
        prompt_tokens: int = 0,
        completion_tokens: int = 0,
        total_tokens: int = 0,
    ) -> None:
        """
        Add deltas to the current period's row, creating it if needed.

        Each step is a single statement: an in-place `x = x + delta` UPDATE,
        an INSERT when no row matched, and one more UPDATE if a concurrent
        request inserted the row first (unique on user + period).
        """
        key = self.period_key()
        deltas = {
            "requests": requests,
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": total_tokens,
        }

        if await self._increment(user_id, key, deltas):
            return
        try:
            await UsageLog.create(user_id=user_id, period_key=key, **deltas)
        except IntegrityError:
            # Lost the insert race; the row exists now
            if not await self._increment(user_id, key, deltas):
                raise

    @staticmethod
    async def _increment(user_id, key: str, deltas: dict) -> int:
        return await UsageLog.filter(user_id=user_id, period_key=key).update(
            **{field: F(field) + delta for field, delta in deltas.items()}
        )


usage_meter = UsageMeter(settings)

