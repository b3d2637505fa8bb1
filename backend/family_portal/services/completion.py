"""
Chat Completion Service

The model backend is an opaque remote function:
    complete(messages) -> (text, token usage)
The default implementation talks to an OpenAI-compatible
`/chat/completions` endpoint over httpx.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import httpx

from ..config import Settings, settings
from ..core.errors import UpstreamError

logger = logging.getLogger("uvicorn.error")


@dataclass
class TokenUsage:
    """Token counts reported by the backend (zeros when it reports none)"""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_payload(cls, payload: Optional[Dict]) -> "TokenUsage":
        payload = payload or {}
        return cls(
            prompt_tokens=int(payload.get("prompt_tokens") or 0),
            completion_tokens=int(payload.get("completion_tokens") or 0),
            total_tokens=int(payload.get("total_tokens") or 0),
        )

    def to_dict(self) -> Dict[str, int]:
        return {
            "promptTokens": self.prompt_tokens,
            "completionTokens": self.completion_tokens,
            "totalTokens": self.total_tokens,
        }


@dataclass
class CompletionResult:
    """One assistant reply"""
    text: str
    usage: TokenUsage = field(default_factory=TokenUsage)
    model: Optional[str] = None


class CompletionClient(ABC):
    """Completion Service Abstract Base Class"""

    @abstractmethod
    async def complete(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
    ) -> CompletionResult:
        """
        Produce the assistant reply for a message list

        Parameters:
        - messages: [{"role": "system" | "user" | "assistant", "content": "..."}]
        - model: Optional model override

        Raises:
        - UpstreamError: the backend failed or returned malformed data
        """
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """Check if the backend can be called at all"""
        pass


class OpenAIChatClient(CompletionClient):
    """OpenAI-compatible chat completions over HTTP"""

    def __init__(self, config: Settings):
        self.api_key = config.openai_api_key
        self.model = config.openai_model
        self.api_url = config.openai_base_url.rstrip("/") + "/chat/completions"
        self.temperature = config.openai_temperature
        self.timeout = config.completion_timeout_seconds

    def is_configured(self) -> bool:
        """Check if API key is configured"""
        return bool(self.api_key)

    async def complete(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
    ) -> CompletionResult:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": model or self.model,
            "messages": messages,
            "temperature": self.temperature,
        }

        logger.info("[chat] calling %s with %d messages", payload["model"], len(messages))
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(self.api_url, headers=headers, json=payload)
                resp.raise_for_status()
                result = resp.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamError(f"Chat failed: {_error_message(e.response)}") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Chat failed: {e.__class__.__name__}: {e}") from e
        except ValueError as e:
            raise UpstreamError("Chat failed: backend returned invalid JSON") from e

        try:
            text = result["choices"][0]["message"].get("content") or ""
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise UpstreamError("Chat failed: backend returned no choices") from e

        return CompletionResult(
            text=text,
            usage=TokenUsage.from_payload(result.get("usage")),
            model=result.get("model") or payload["model"],
        )


def _error_message(response: httpx.Response) -> str:
    """Best-effort extraction of the upstream error text"""
    try:
        data = response.json()
        message = (data.get("error") or {}).get("message")
        if message:
            return f"{response.status_code} {message}"
    except (ValueError, AttributeError):
        pass
    return f"{response.status_code} {response.reason_phrase}"


# Global singleton
completion_client = OpenAIChatClient(settings)
