"""
Command tokenization.

"/deploy@MyBot simmer-down feature/x" -> command "deploy", args
["simmer-down", "feature/x"]. A quoted first argument stays one argument so
business names with spaces survive: '/create "Café Del Mar" restaurant'.
"""

from dataclasses import dataclass, field
from typing import Optional

# Opening quote -> closing quote. Telegram clients on phones send curly quotes.
QUOTES = {'"': '"', "'": "'", "“": "”", "«": "»"}


@dataclass(frozen=True)
class ParsedCommand:
    command: str
    args: list[str] = field(default_factory=list)
    text: str = ""  # raw argument string after the command token

    def remainder(self, skip: int) -> str:
        """Raw text after the first `skip` whitespace-separated words, whitespace inside kept."""
        parts = self.text.split(None, skip)
        return parts[skip].strip() if len(parts) > skip else ""


def unquote(value: str) -> str:
    """Strip one pair of matching surrounding quotes: '"a b"' -> 'a b'."""
    if len(value) >= 2 and QUOTES.get(value[0]) == value[-1]:
        return value[1:-1]
    return value


def split_args(text: str) -> list[str]:
    text = text.strip()
    if not text:
        return []

    closing = QUOTES.get(text[0])
    if closing:
        end = text.find(closing, 1)
        if end > 1:
            return [text[1:end].strip()] + text[end + 1:].split()

    return text.split()


def parse_command(raw_text: str) -> Optional[ParsedCommand]:
    """
    Split a chat message into a command token and arguments.

    Returns None for text that isn't a command (doesn't start with "/").
    The token is lowercased and a trailing "@BotName" is dropped. A bare "/"
    gives an empty command name.
    """
    text = (raw_text or "").strip()
    if not text.startswith("/"):
        return None

    body = text[1:]
    parts = body.split(None, 1)
    token = parts[0] if parts else ""
    rest = parts[1] if len(parts) > 1 else ""

    command = token.split("@", 1)[0].lower()
    return ParsedCommand(command=command, args=split_args(rest), text=rest.strip())
