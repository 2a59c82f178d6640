from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Telegram
    telegram_bot_token: str = ""
    telegram_webhook_secret: str = ""  # Optional: for webhook verification
    authorized_telegram_ids: str = ""  # Comma-separated caller ids; empty denies everyone

    # Vercel
    vercel_api_token: str = ""
    vercel_team_id: str = ""

    # GitHub
    github_token: str = ""
    github_owner: str = ""
    github_automation_repo: str = ""  # Repo hosting the build/component workflows
    github_build_workflow: str = "genesis-build.yml"
    github_component_workflow: str = "add-component.yml"

    # Anthropic (Claude)
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-5-20250929"

    # Site probes
    google_pagespeed_api_key: str = ""

    # Outbound HTTP
    http_timeout_seconds: float = 30.0

    # Environment
    environment: str = "development"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        frozen = True

    @property
    def allowed_caller_ids(self) -> frozenset[str]:
        return frozenset(
            part.strip()
            for part in self.authorized_telegram_ids.split(",")
            if part.strip()
        )

    def capabilities(self) -> dict[str, bool]:
        """Which upstream services have credentials. Never exposes values."""
        return {
            "telegram": bool(self.telegram_bot_token),
            "vercel": bool(self.vercel_api_token),
            "github": bool(self.github_token and self.github_owner),
            "anthropic": bool(self.anthropic_api_key),
            "pagespeed": bool(self.google_pagespeed_api_key),
        }


@lru_cache()
def get_settings() -> Settings:
    return Settings()
