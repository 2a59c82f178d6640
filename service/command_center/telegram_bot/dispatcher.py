"""
Command registry and dispatcher.

The registry is an explicit table: handler modules expose register(registry)
functions that add commands with the registry.command(...) decorator, and
build_registry() in bot.py calls them. The dispatcher is the single entry
point for an incoming command; it authorizes the caller, resolves the
command, normalizes identifier arguments and runs the handler inside the
only catch-all in the request path.
"""

import dataclasses
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from ..config import Settings
from ..errors import ConfigurationError
from ..logging_config import get_logger
from ..utils.normalize import extract_identifier
from .auth import UNAUTHORIZED_MESSAGE, is_authorized
from .context import CommandContext, Services
from .formatting import escape
from .parsing import parse_command

logger = get_logger("dispatcher")

Handler = Callable[[CommandContext], Awaitable[None]]

FAMILIES = ("info", "mutating", "ai")

NOT_A_COMMAND_MESSAGE = "👋 Send a command like /help to get started."


@dataclass(frozen=True)
class Command:
    name: str
    handler: Handler
    usage: str
    description: str
    family: str = "info"
    identifier_args: int = 0  # leading args passed through extract_identifier
    aliases: tuple[str, ...] = field(default_factory=tuple)


class CommandRegistry:
    """Command name (and alias) -> Command."""

    def __init__(self):
        self._commands: dict[str, Command] = {}
        self._lookup: dict[str, Command] = {}

    def add(self, command: Command) -> Command:
        if command.family not in FAMILIES:
            raise ValueError(f"Unknown command family '{command.family}'")
        for token in (command.name, *command.aliases):
            if token in self._lookup:
                raise ValueError(f"Command '/{token}' registered twice")
        self._commands[command.name] = command
        for token in (command.name, *command.aliases):
            self._lookup[token] = command
        return command

    def command(
        self,
        name: str,
        *,
        usage: str,
        description: str,
        family: str = "info",
        identifier_args: int = 0,
        aliases: tuple[str, ...] = (),
    ) -> Callable[[Handler], Handler]:
        """Decorator form of add()."""
        def decorator(handler: Handler) -> Handler:
            self.add(Command(
                name=name,
                handler=handler,
                usage=usage,
                description=description,
                family=family,
                identifier_args=identifier_args,
                aliases=tuple(aliases),
            ))
            return handler
        return decorator

    def get(self, token: str) -> Optional[Command]:
        return self._lookup.get(token.lower())

    def names(self) -> list[str]:
        return list(self._commands)

    def commands(self) -> list[Command]:
        return list(self._commands.values())

    def __contains__(self, token: str) -> bool:
        return token.lower() in self._lookup

    def __len__(self) -> int:
        return len(self._commands)


class Dispatcher:
    """Routes (chat_id, caller_id, raw_text) to a registered handler."""

    def __init__(self, registry: CommandRegistry, services: Services, settings: Settings):
        self.registry = registry
        self.services = services
        self.settings = settings
        self.allow_list = settings.allowed_caller_ids

    async def _send(self, chat_id: int, text: str) -> None:
        try:
            await self.services.telegram.send_message(chat_id, text)
        except ConfigurationError as e:
            logger.error(f"Cannot reply to chat_id={chat_id}: {e}")

    async def handle_command(self, chat_id: int, caller_id: int, raw_text: str) -> None:
        """
        Handle one incoming command. Never raises.

        Exactly one of: an unauthorized reply, a "not a command" reply, an
        unknown-command reply, or the handler's own replies (plus at most one
        "Command failed" reply if the handler raises).
        """
        if not is_authorized(caller_id, self.allow_list):
            if not self.allow_list:
                logger.warning(f"Rejected caller_id={caller_id}: AUTHORIZED_TELEGRAM_IDS is empty")
            else:
                logger.warning(f"Rejected caller_id={caller_id}: not in allow-list")
            await self._send(chat_id, UNAUTHORIZED_MESSAGE)
            return

        parsed = parse_command(raw_text)
        if parsed is None:
            await self._send(chat_id, NOT_A_COMMAND_MESSAGE)
            return

        command = self.registry.get(parsed.command)
        if command is None:
            await self._send(
                chat_id,
                f"❓ Unknown command: <code>/{escape(parsed.command)}</code>\n\nUse /help to see available commands.",
            )
            return

        if command.identifier_args:
            args = [
                extract_identifier(arg) if index < command.identifier_args else arg
                for index, arg in enumerate(parsed.args)
            ]
            parsed = dataclasses.replace(parsed, args=args)

        context = CommandContext(
            chat_id=chat_id,
            caller_id=caller_id,
            command=parsed,
            services=self.services,
            settings=self.settings,
        )

        logger.info(f"/{command.name} from caller_id={caller_id} ({len(parsed.args)} args)")
        try:
            await command.handler(context)
        except ConfigurationError as e:
            logger.error(f"/{command.name} aborted: {e}")
        except Exception as e:
            logger.error(f"/{command.name} failed: {e}", exc_info=True)
            await self._send(chat_id, f"❌ Command failed: {escape(str(e) or e.__class__.__name__, limit=300)}")
