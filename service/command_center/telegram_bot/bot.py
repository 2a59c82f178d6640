"""
Bot assembly.

Wires the adapters into a Services bundle, builds the command registry and
hands both to a Dispatcher. Also parses raw webhook payloads into the
(chat_id, caller_id, text) triple the dispatcher consumes.
"""

from typing import Any, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from ..config import Settings
from ..errors import MalformedUpdateError
from ..logging_config import get_logger
from ..services.github import GitHubClient
from ..services.llm import LLMClient
from ..services.site_probe import SiteProbe
from ..services.vercel import VercelClient
from . import ai_handlers, handlers
from .context import Services
from .dispatcher import CommandRegistry, Dispatcher
from .telegram_api import TelegramClient

logger = get_logger("bot")


# =========================================================================
# INBOUND UPDATES
# =========================================================================

class TelegramUser(BaseModel):
    id: int
    username: Optional[str] = None


class TelegramChat(BaseModel):
    id: int
    type: str = "private"


class TelegramMessage(BaseModel):
    message_id: int = 0
    chat: TelegramChat
    from_user: Optional[TelegramUser] = Field(default=None, alias="from")
    text: Optional[str] = None


class TelegramUpdate(BaseModel):
    update_id: int
    message: Optional[TelegramMessage] = None
    edited_message: Optional[TelegramMessage] = None


def parse_update(payload: Any) -> Optional[tuple[int, int, str]]:
    """
    Extract (chat_id, caller_id, text) from a webhook payload.

    Returns None for well-formed updates that carry nothing to act on
    (no message, no text, no sender).

    Raises:
        MalformedUpdateError: payload is not a Telegram update
    """
    try:
        update = TelegramUpdate.model_validate(payload)
    except ValidationError as e:
        raise MalformedUpdateError(f"Invalid update: {e.error_count()} validation errors") from e

    message = update.message
    if message is None or message.from_user is None or not message.text:
        return None
    return message.chat.id, message.from_user.id, message.text


# =========================================================================
# ASSEMBLY
# =========================================================================

def build_registry() -> CommandRegistry:
    registry = CommandRegistry()
    handlers.register(registry)
    ai_handlers.register(registry)
    logger.info(f"Registered {len(registry)} commands")
    return registry


def build_services(settings: Settings, http: httpx.AsyncClient) -> Services:
    return Services(
        vercel=VercelClient(settings, http),
        github=GitHubClient(settings, http),
        telegram=TelegramClient(settings, http),
        llm=LLMClient(settings),
        site_probe=SiteProbe(settings, http),
    )


def build_dispatcher(settings: Settings, http: httpx.AsyncClient, services: Optional[Services] = None) -> Dispatcher:
    services = services or build_services(settings, http)
    if not settings.allowed_caller_ids:
        logger.warning("AUTHORIZED_TELEGRAM_IDS is empty: every command will be rejected")
    return Dispatcher(build_registry(), services, settings)
