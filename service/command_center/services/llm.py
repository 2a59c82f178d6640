"""
Claude text generation.

Thin async wrapper around the Anthropic Messages API. Replies are free-form
text; callers that need structure use extract_json_object() and must keep a
deterministic fallback for when it returns None.
"""

import json
import re
from typing import Any, Optional

import anthropic

from ..config import Settings
from ..logging_config import get_logger
from ..results import AdapterResult

logger = get_logger("llm")

JSON_OBJECT_RE = re.compile(r'\{[\s\S]*\}')


class LLMClient:
    """Generative-text adapter (Anthropic Claude)."""

    def __init__(self, settings: Settings, client: Optional[anthropic.AsyncAnthropic] = None):
        self.model = settings.anthropic_model
        self.api_key = settings.anthropic_api_key
        self._client = client
        if self._client is None and self.api_key:
            self._client = anthropic.AsyncAnthropic(
                api_key=self.api_key,
                timeout=settings.http_timeout_seconds * 2,
                max_retries=0,
            )

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    async def complete(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        max_tokens: int = 1024,
    ) -> AdapterResult[str]:
        """Send one user prompt and return the concatenated text blocks of the reply."""
        if self._client is None:
            return AdapterResult.not_configured("ANTHROPIC_API_KEY")

        kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system

        try:
            response = await self._client.messages.create(**kwargs)
        except anthropic.APITimeoutError:
            logger.warning("Claude request timed out")
            return AdapterResult.fail("Claude request timed out")
        except anthropic.APIStatusError as e:
            logger.warning(f"Claude API error: {e.status_code}")
            return AdapterResult.fail(f"Claude API error: {e.status_code}")
        except anthropic.APIError as e:
            logger.warning(f"Claude request failed: {e.__class__.__name__}")
            return AdapterResult.fail(f"Claude request failed: {e.__class__.__name__}")

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        return AdapterResult.ok(text)


def extract_json_object(text: str) -> Optional[dict]:
    """
    Best-effort extraction of one JSON object from a model reply.

    Takes the span from the first "{" to the last "}" and parses it.
    Returns None when there is no such span, it isn't valid JSON, or it
    isn't an object.
    """
    if not text:
        return None
    match = JSON_OBJECT_RE.search(text)
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None
