"""
Unit tests for services.usage module.
Tests the UTC day key, counter accumulation and quota admission.
"""
import asyncio
import datetime as dt

import pytest

from family_portal.config import settings
from family_portal.models.usage import UsageLog
from family_portal.services.usage import UsageMeter, UsageSnapshot, utc_day_key


def test_utc_day_key_uses_utc_calendar_day():
    # 23:30 at UTC-5 is already the next day in UTC
    local = dt.datetime(2026, 3, 1, 23, 30, tzinfo=dt.timezone(dt.timedelta(hours=-5)))
    assert utc_day_key(local) == "2026-03-02"
    assert utc_day_key(dt.datetime(2026, 3, 1, 0, 0, tzinfo=dt.timezone.utc)) == "2026-03-01"


def test_snapshot_to_dict_is_camel_case():
    snapshot = UsageSnapshot("2026-01-01", requests=2, prompt_tokens=3, completion_tokens=4, total_tokens=7)
    assert snapshot.to_dict() == {
        "date": "2026-01-01",
        "requests": 2,
        "promptTokens": 3,
        "completionTokens": 4,
        "totalTokens": 7,
    }


@pytest.mark.asyncio
async def test_get_today_defaults_to_zero_without_writing(db, make_user):
    user = await make_user()
    meter = UsageMeter(settings, period_key=lambda: "2026-01-01")
    snapshot = await meter.get_today(user.id)
    assert snapshot.to_dict() == {
        "date": "2026-01-01",
        "requests": 0,
        "promptTokens": 0,
        "completionTokens": 0,
        "totalTokens": 0,
    }
    assert await UsageLog.all().count() == 0


@pytest.mark.asyncio
async def test_record_accumulates(db, make_user):
    user = await make_user()
    meter = UsageMeter(settings, period_key=lambda: "2026-01-01")
    await meter.record(user.id, requests=1, prompt_tokens=10, completion_tokens=5, total_tokens=15)
    await meter.record(user.id, requests=1, prompt_tokens=3, completion_tokens=2, total_tokens=5)

    snapshot = await meter.get_today(user.id)
    assert snapshot.requests == 2
    assert snapshot.prompt_tokens == 13
    assert snapshot.completion_tokens == 7
    assert snapshot.total_tokens == 20
    assert await UsageLog.filter(user_id=user.id).count() == 1


@pytest.mark.asyncio
async def test_concurrent_records_lose_no_increment(db, make_user):
    user = await make_user()
    meter = UsageMeter(settings, period_key=lambda: "2026-01-01")
    await asyncio.gather(*[meter.record(user.id, requests=1, total_tokens=7) for _ in range(8)])

    snapshot = await meter.get_today(user.id)
    assert snapshot.requests == 8
    assert snapshot.total_tokens == 56
    assert await UsageLog.filter(user_id=user.id).count() == 1


@pytest.mark.asyncio
async def test_new_period_starts_from_zero(db, make_user):
    user = await make_user()
    day = {"key": "2026-01-01"}
    meter = UsageMeter(settings, period_key=lambda: day["key"])
    await meter.record(user.id, requests=3, total_tokens=300)

    day["key"] = "2026-01-02"
    assert (await meter.get_today(user.id)).requests == 0
    await meter.record(user.id, requests=1)
    assert (await meter.get_today(user.id)).requests == 1
    assert await UsageLog.filter(user_id=user.id).count() == 2


@pytest.mark.asyncio
async def test_usage_is_per_user(db, make_user):
    alice = await make_user()
    bob = await make_user()
    meter = UsageMeter(settings, period_key=lambda: "2026-01-01")
    await meter.record(alice.id, requests=1, total_tokens=10)
    assert (await meter.get_today(bob.id)).requests == 0


@pytest.mark.asyncio
async def test_admit_checks_requests_then_tokens(db, make_user):
    user = await make_user()
    meter = UsageMeter(settings, period_key=lambda: "2026-01-01")

    admission = await meter.admit(user.id, max_requests_per_day=2, max_tokens_per_day=100)
    assert admission.admitted is True
    assert admission.kind is None

    await meter.record(user.id, requests=1, total_tokens=150)
    admission = await meter.admit(user.id, max_requests_per_day=2, max_tokens_per_day=100)
    assert admission.admitted is False
    assert admission.kind == "tokens"

    await meter.record(user.id, requests=1)
    admission = await meter.admit(user.id, max_requests_per_day=2, max_tokens_per_day=100)
    assert admission.kind == "requests"


@pytest.mark.asyncio
async def test_admit_defaults_to_configured_ceilings(db, make_user):
    user = await make_user()
    config = settings.model_copy(update={"max_requests_per_day": 1})
    meter = UsageMeter(config, period_key=lambda: "2026-01-01")
    assert (await meter.admit(user.id)).admitted is True
    await meter.record(user.id, requests=1)
    assert (await meter.admit(user.id)).kind == "requests"
