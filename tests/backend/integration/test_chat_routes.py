import uuid

import pytest

from family_portal.core.errors import UpstreamError
from family_portal.core.rate_limit import RateLimiter
from family_portal.main import app
from family_portal.models.conversation import Conversation
from family_portal.models.message import Message


pytestmark = pytest.mark.asyncio


def _turn(text: str, conversation_id: str | None = None) -> dict:
    payload = {"messages": [{"role": "user", "content": text}]}
    if conversation_id:
        payload["conversationId"] = conversation_id
    return payload


async def test_chat_turn(client, admin_headers, fake_completion):
    resp = await client.post("/api/chat", headers=admin_headers, json=_turn("Good morning"))
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["reply"] == "Hi! How can I help?"
    assert data["usage"] == {"promptTokens": 12, "completionTokens": 8, "totalTokens": 20}
    uuid.UUID(data["conversationId"])

    sent = fake_completion.calls[0]["messages"]
    assert sent[0]["role"] == "system"
    assert sent[1:] == [{"role": "user", "content": "Good morning"}]

    me = (await client.get("/api/me", headers=admin_headers)).json()["data"]
    assert me["usage"]["requests"] == 1
    assert me["usage"]["totalTokens"] == 20


async def test_chat_model_override(client, admin_headers, fake_completion):
    payload = {**_turn("hi"), "model": "gpt-family"}
    resp = await client.post("/api/chat", headers=admin_headers, json=payload)
    assert resp.status_code == 200
    assert fake_completion.calls[0]["model"] == "gpt-family"


async def test_request_quota(client, admin_headers, portal, fake_completion):
    portal.configure(max_requests_per_day=2)

    first = await client.post("/api/chat", headers=admin_headers, json=_turn("one"))
    cid = first.json()["data"]["conversationId"]
    second = await client.post("/api/chat", headers=admin_headers, json=_turn("two", cid))
    assert second.status_code == 200

    third = await client.post("/api/chat", headers=admin_headers, json=_turn("three", cid))
    assert third.status_code == 429
    assert third.json()["detail"]["code"] == "QUOTA_REQUESTS_EXCEEDED"
    assert third.json()["detail"]["kind"] == "requests"

    # Refused before persistence and before the model call
    assert len(fake_completion.calls) == 2
    assert await Message.filter(conversation_id=cid, content="three").count() == 0

    me = (await client.get("/api/me", headers=admin_headers)).json()["data"]
    assert me["usage"]["requests"] == 2
    assert me["limits"]["maxRequestsPerDay"] == 2


async def test_token_quota(client, admin_headers, portal):
    portal.configure(max_tokens_per_day=30)
    assert (await client.post("/api/chat", headers=admin_headers, json=_turn("a"))).status_code == 200
    # 20 of 30 used: still admitted, overshoot is allowed
    assert (await client.post("/api/chat", headers=admin_headers, json=_turn("b"))).status_code == 200
    resp = await client.post("/api/chat", headers=admin_headers, json=_turn("c"))
    assert resp.status_code == 429
    assert resp.json()["detail"]["code"] == "QUOTA_TOKENS_EXCEEDED"


async def test_quota_is_per_user(client, admin_headers, member_factory, portal):
    portal.configure(max_requests_per_day=1)
    _, member_headers = await member_factory()
    assert (await client.post("/api/chat", headers=admin_headers, json=_turn("a"))).status_code == 200
    assert (await client.post("/api/chat", headers=admin_headers, json=_turn("b"))).status_code == 429
    assert (await client.post("/api/chat", headers=member_headers, json=_turn("c"))).status_code == 200


async def test_upstream_failure_keeps_user_message(client, admin_headers, fake_completion):
    fake_completion.error = UpstreamError("Chat failed: 503 Service Unavailable")
    resp = await client.post("/api/chat", headers=admin_headers, json=_turn("Are you there?"))
    assert resp.status_code == 500
    assert resp.json()["detail"] == {
        "code": "UPSTREAM_ERROR",
        "message": "Chat failed: 503 Service Unavailable",
    }

    conversation = await Conversation.first()
    messages = await Message.filter(conversation_id=conversation.id)
    assert [(m.role, m.content) for m in messages] == [("user", "Are you there?")]

    me = (await client.get("/api/me", headers=admin_headers)).json()["data"]
    assert me["usage"]["requests"] == 0


async def test_backend_not_configured(client, admin_headers, fake_completion):
    fake_completion.configured = False
    resp = await client.post("/api/chat", headers=admin_headers, json=_turn("hello"))
    assert resp.status_code == 500
    assert resp.json()["detail"]["code"] == "BACKEND_NOT_CONFIGURED"
    assert await Conversation.all().count() == 0


async def test_foreign_conversation(client, admin_headers, member_factory, fake_completion):
    _, member_headers = await member_factory()
    first = await client.post("/api/chat", headers=admin_headers, json=_turn("private"))
    cid = first.json()["data"]["conversationId"]

    resp = await client.post("/api/chat", headers=member_headers, json=_turn("hijack", cid))
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "CONVERSATION_NOT_FOUND"
    assert len(fake_completion.calls) == 1


async def test_chat_validation(client, admin_headers):
    bad_role = await client.post(
        "/api/chat", headers=admin_headers, json={"messages": [{"role": "robot", "content": "x"}]}
    )
    assert bad_role.status_code == 422

    bad_id = await client.post(
        "/api/chat", headers=admin_headers, json={**_turn("x"), "conversationId": "nope"}
    )
    assert bad_id.status_code == 422

    unauth = await client.post("/api/chat", json=_turn("x"))
    assert unauth.status_code == 401


async def test_rate_limit_guards_api(client):
    app.state.rate_limiter = RateLimiter(max_requests=2, window_seconds=60)

    first = await client.post("/api/invites/check", json={"code": "abc"})
    assert first.headers["RateLimit-Limit"] == "2"
    assert first.headers["RateLimit-Remaining"] == "1"
    assert (await client.post("/api/invites/check", json={"code": "abc"})).status_code == 200

    limited = await client.post("/api/invites/check", json={"code": "abc"})
    assert limited.status_code == 429
    assert limited.json()["detail"]["code"] == "RATE_LIMITED"
    assert int(limited.headers["Retry-After"]) > 0

    # Only /api is guarded
    assert (await client.get("/healthz")).status_code == 200
