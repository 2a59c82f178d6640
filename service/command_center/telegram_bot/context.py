"""
Per-invocation state handed to command handlers.

Nothing here outlives one command: the dispatcher builds a CommandContext for
each message and drops it when the handler returns.
"""

from dataclasses import dataclass
from typing import Optional

from ..config import Settings
from ..services.github import GitHubClient
from ..services.llm import LLMClient
from ..services.site_probe import SiteProbe
from ..services.vercel import VercelClient
from .parsing import ParsedCommand
from .telegram_api import TelegramClient


@dataclass(frozen=True)
class Services:
    """Adapters shared by all handlers. Built once at startup."""
    vercel: VercelClient
    github: GitHubClient
    telegram: TelegramClient
    llm: LLMClient
    site_probe: SiteProbe


@dataclass
class CommandContext:
    chat_id: int
    caller_id: int
    command: ParsedCommand
    services: Services
    settings: Settings

    @property
    def args(self) -> list[str]:
        return self.command.args

    def arg(self, index: int, default: Optional[str] = None) -> Optional[str]:
        return self.command.args[index] if len(self.command.args) > index else default

    async def reply(self, text: str) -> None:
        """Send an HTML reply. Transport failures are logged by the client."""
        await self.services.telegram.send_message(self.chat_id, text)

    async def typing(self) -> None:
        await self.services.telegram.send_typing(self.chat_id)
