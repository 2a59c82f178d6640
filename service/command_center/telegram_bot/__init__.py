"""
Telegram Bot module for the command center.

ARCHITECTURE: Thin routing layer over the service adapters.
- Receives webhook payloads (parse_update)
- Authorizes the caller against the allow-list
- Routes "/command args" through an explicit registry
- Handlers call the Vercel / GitHub / Claude / site-probe adapters
- Replies go out through the Telegram Bot API client
"""

from .bot import build_dispatcher, build_registry, build_services, parse_update
from .dispatcher import Command, CommandRegistry, Dispatcher

__all__ = [
    "build_dispatcher",
    "build_registry",
    "build_services",
    "parse_update",
    "Command",
    "CommandRegistry",
    "Dispatcher",
]
