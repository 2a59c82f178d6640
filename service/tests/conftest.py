"""
Shared fixtures: settings, a recording Telegram transport and a scripted LLM.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from command_center.config import Settings
from command_center.results import AdapterResult
from command_center.telegram_bot.bot import build_registry
from command_center.telegram_bot.context import Services
from command_center.telegram_bot.dispatcher import Dispatcher

AUTHORIZED_ID = 111
STRANGER_ID = 999
CHAT_ID = 42


def make_settings(**overrides) -> Settings:
    values = {
        "telegram_bot_token": "test-bot-token",
        "telegram_webhook_secret": "",
        "authorized_telegram_ids": str(AUTHORIZED_ID),
        "vercel_api_token": "test-vercel-token",
        "vercel_team_id": "",
        "github_token": "test-github-token",
        "github_owner": "acme",
        "github_automation_repo": "automation",
        "anthropic_api_key": "",
        "google_pagespeed_api_key": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class RecordingTelegram:
    """Stands in for TelegramClient; keeps every outgoing message."""

    def __init__(self):
        self.messages: list[tuple[int, str]] = []
        self.typing: list[int] = []

    async def send_message(self, chat_id, text, parse_mode="HTML"):
        self.messages.append((chat_id, text))
        return AdapterResult.ok()

    async def send_typing(self, chat_id):
        self.typing.append(chat_id)
        return AdapterResult.ok()

    @property
    def texts(self) -> list[str]:
        return [text for _, text in self.messages]


class ScriptedLLM:
    """Stands in for LLMClient. reply=None behaves like a missing API key."""

    def __init__(self, reply=None):
        self.reply = reply
        self.prompts: list[str] = []

    @property
    def is_configured(self) -> bool:
        return self.reply is not None

    async def complete(self, prompt, *, system=None, max_tokens=1024):
        self.prompts.append(prompt)
        if self.reply is None:
            return AdapterResult.not_configured("ANTHROPIC_API_KEY")
        if isinstance(self.reply, AdapterResult):
            return self.reply
        return AdapterResult.ok(self.reply)


def anthropic_message(text: str):
    """Minimal object shaped like an anthropic Message."""
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=text)])


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def telegram():
    return RecordingTelegram()


@pytest.fixture
def llm():
    return ScriptedLLM()


@pytest.fixture
def vercel():
    client = MagicMock()
    for name in (
        "list_projects", "get_project", "list_deployments", "get_deployment_events",
        "get_runtime_logs", "trigger_deployment", "rollback", "promote", "cancel_deployment",
        "list_domains", "add_domain", "list_env_vars", "set_env_var", "get_preview_url",
    ):
        setattr(client, name, AsyncMock(return_value=AdapterResult.fail("unexpected call")))
    return client


@pytest.fixture
def github():
    client = MagicMock()
    for name in (
        "trigger_workflow", "get_latest_workflow_run", "list_repos", "repo_exists",
        "create_repo", "list_commits", "get_file_content",
    ):
        setattr(client, name, AsyncMock(return_value=AdapterResult.fail("unexpected call")))
    return client


@pytest.fixture
def site_probe():
    return MagicMock(speed_test=AsyncMock(), seo_audit=AsyncMock(), uptime=AsyncMock())


@pytest.fixture
def services(vercel, github, telegram, llm, site_probe):
    return Services(vercel=vercel, github=github, telegram=telegram, llm=llm, site_probe=site_probe)


@pytest.fixture
def dispatcher(services, settings):
    return Dispatcher(build_registry(), services, settings)
