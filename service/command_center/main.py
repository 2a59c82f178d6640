import json
from typing import Optional

import httpx
from fastapi import BackgroundTasks, FastAPI, Header, HTTPException, Request

from command_center.config import Settings, get_settings
from command_center.errors import MalformedUpdateError
from command_center.logging_config import get_logger, setup_logging
from command_center.telegram_bot.bot import build_dispatcher, parse_update
from command_center.telegram_bot.dispatcher import Dispatcher

VERSION = "0.1.0"

logger = get_logger("main")


def create_app(settings: Optional[Settings] = None, dispatcher: Optional[Dispatcher] = None) -> FastAPI:
    """
    Build the webhook application.

    One httpx.AsyncClient is shared by every adapter and closed on shutdown.
    Tests pass their own settings and dispatcher.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    app = FastAPI(
        title="Command Center Bot",
        description="Telegram command center for Vercel, GitHub and Claude",
        version=VERSION,
    )

    http = httpx.AsyncClient(timeout=settings.http_timeout_seconds)
    app.state.settings = settings
    app.state.http = http
    app.state.dispatcher = dispatcher or build_dispatcher(settings, http)

    # Lifecycle events
    @app.on_event("startup")
    async def startup_event():
        capabilities = settings.capabilities()
        enabled = ", ".join(name for name, on in capabilities.items() if on) or "none"
        logger.info(f"[STARTUP] Command center ready ({settings.environment}); configured: {enabled}")

    @app.on_event("shutdown")
    async def shutdown_event():
        await http.aclose()
        logger.info("[SHUTDOWN] HTTP client closed")

    @app.get("/health")
    async def health_check():
        """Health check endpoint. Reports which capabilities have credentials, never their values."""
        return {
            "status": "ok",
            "environment": settings.environment,
            "version": VERSION,
            "capabilities": settings.capabilities(),
        }

    # Telegram webhook endpoint
    @app.post("/telegram/webhook")
    async def telegram_webhook(
        request: Request,
        background_tasks: BackgroundTasks,
        x_telegram_bot_api_secret_token: Optional[str] = Header(None),
    ):
        """
        Webhook endpoint for Telegram updates.

        Always acknowledges with {"ok": true} once the secret matches, so
        Telegram doesn't retry updates we can't use. The command itself runs
        after the response is sent.
        """
        # Verify secret token if configured
        if settings.telegram_webhook_secret:
            if x_telegram_bot_api_secret_token != settings.telegram_webhook_secret:
                logger.warning("Webhook call with invalid secret token")
                raise HTTPException(status_code=403, detail="Invalid secret token")

        try:
            payload = await request.json()
            incoming = parse_update(payload)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Webhook body is not JSON")
            return {"ok": True}
        except MalformedUpdateError as e:
            logger.warning(f"Ignoring malformed update: {e}")
            return {"ok": True}

        if incoming is None:
            return {"ok": True}

        chat_id, caller_id, text = incoming
        background_tasks.add_task(app.state.dispatcher.handle_command, chat_id, caller_id, text)
        return {"ok": True}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
