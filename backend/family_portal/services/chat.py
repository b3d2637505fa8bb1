"""
Conversation Gateway

Runs one chat turn end to end (quota admission, persistence, completion call,
usage accounting) and owns the per-user conversation history operations.

A turn is a sequence of separately committed steps, not one transaction:
if the completion call fails, the user's message stays stored without an
assistant reply and nothing is retried.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..config import Settings, settings
from ..core.errors import BackendNotConfigured, NotFound, QuotaExceeded
from ..models.conversation import Conversation
from ..models.message import Message
from ..models.user import User
from .completion import CompletionClient, TokenUsage, completion_client
from .usage import UsageMeter, usage_meter

logger = logging.getLogger("uvicorn.error")

MAX_MESSAGE_CHARS = 8000
TITLE_CHARS = 30
MAX_TITLE_CHARS = 80
DEFAULT_TITLE = "New chat"
UNTITLED = "Untitled chat"


@dataclass
class TurnResult:
    text: str
    conversation_id: str
    usage: TokenUsage


def derive_title(messages: List[Dict[str, str]]) -> str:
    """First user message, cut to 30 characters; placeholder when there is none."""
    for m in messages:
        if m.get("role") == "user" and (m.get("content") or "").strip():
            return m["content"].strip()[:TITLE_CHARS]
    return DEFAULT_TITLE


class ConversationGateway:
    def __init__(self, config: Settings, meter: UsageMeter, completion: CompletionClient):
        self.config = config
        self.meter = meter
        self.completion = completion

    async def start_or_continue_turn(
        self,
        user: User,
        conversation_id: Optional[str],
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
    ) -> TurnResult:
        # Refuse before writing anything that could never get a reply
        if not self.completion.is_configured():
            raise BackendNotConfigured()

        admission = await self.meter.admit(
            user.id, self.config.max_requests_per_day, self.config.max_tokens_per_day
        )
        if not admission.admitted:
            logger.info("[chat] %s over daily %s quota", user.email, admission.kind)
            raise QuotaExceeded(admission.kind)

        if conversation_id:
            conversation = await self._owned(user, conversation_id)
        else:
            conversation = await Conversation.create(user=user, title=derive_title(messages))

        for m in messages:
            if m.get("role") == "user":
                await Message.create(
                    conversation=conversation,
                    role="user",
                    content=str(m.get("content") or "")[:MAX_MESSAGE_CHARS],
                )

        context = [{"role": "system", "content": self.config.system_prompt}] + [
            {"role": m.get("role"), "content": str(m.get("content") or "")[:MAX_MESSAGE_CHARS]}
            for m in messages
        ]
        try:
            result = await self.completion.complete(context, model=model)
        except Exception:
            logger.exception("[chat] completion failed for conversation %s", conversation.id)
            raise

        await Message.create(conversation=conversation, role="assistant", content=result.text)

        usage = result.usage or TokenUsage()
        await self.meter.record(
            user.id,
            requests=1,
            prompt_tokens=usage.prompt_tokens,
            completion_tokens=usage.completion_tokens,
            total_tokens=usage.total_tokens,
        )
        return TurnResult(text=result.text, conversation_id=str(conversation.id), usage=usage)

    # ----- history -----
    async def list_conversations(self, user: User) -> List[Conversation]:
        return await Conversation.filter(user=user).order_by("-created_at")

    async def get_conversation(self, user: User, conversation_id) -> Tuple[Conversation, List[Message]]:
        conversation = await self._owned(user, conversation_id)
        messages = await Message.filter(conversation_id=conversation.id).order_by("id")
        return conversation, messages

    async def rename(self, user: User, conversation_id, title: Optional[str]) -> Conversation:
        conversation = await self._owned(user, conversation_id)
        conversation.title = (title or "").strip()[:MAX_TITLE_CHARS] or UNTITLED
        await conversation.save(update_fields=["title"])
        return conversation

    async def delete(self, user: User, conversation_id) -> None:
        """Idempotent: unknown or foreign ids are a silent no-op."""
        conversation = await Conversation.get_or_none(id=conversation_id, user=user)
        if not conversation:
            return
        # Messages first, then the conversation (FK cascades too, explicit is clearer)
        await Message.filter(conversation_id=conversation.id).delete()
        await conversation.delete()

    @staticmethod
    async def _owned(user: User, conversation_id) -> Conversation:
        """Foreign conversations are reported exactly like missing ones."""
        conversation = await Conversation.get_or_none(id=conversation_id, user=user)
        if not conversation:
            raise NotFound("Conversation not found", code="CONVERSATION_NOT_FOUND")
        return conversation


conversation_gateway = ConversationGateway(settings, usage_meter, completion_client)
