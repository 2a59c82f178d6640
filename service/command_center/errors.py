"""
Exceptions raised across component boundaries.

Adapters report upstream failures as AdapterResult values, not exceptions.
The two cases below are the ones that cross a boundary by raising.
"""


class CommandCenterError(Exception):
    """Base class for command center errors."""


class ConfigurationError(CommandCenterError):
    """A required credential or secret is absent."""

    def __init__(self, capability: str, setting: str):
        self.capability = capability
        self.setting = setting
        super().__init__(f"{capability} is not configured ({setting} not set)")


class MalformedUpdateError(CommandCenterError):
    """Inbound webhook payload does not have the expected shape."""
