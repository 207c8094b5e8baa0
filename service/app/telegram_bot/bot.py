"""
Main Telegram bot handler.

Uses python-telegram-bot library with webhook mode.
"""

from telegram import Update
from telegram.ext import Application, CommandHandler, MessageHandler, filters

from app.config import get_settings
from app.logging_config import bot_logger as logger
from app.services.pipeline import get_pipeline
from .handlers import (
    handle_start_command,
    handle_text_message,
    handle_error,
)


# Global application instance (initialized once)
_application: Application | None = None


def get_bot_application() -> Application:
    """Get or create telegram bot application."""
    global _application

    if _application is None:
        settings = get_settings()

        _application = (
            Application.builder()
            .token(settings.telegram_bot_token)
            .build()
        )

        # Whitelist, cache and model chain are built once per process
        _application.bot_data["pipeline"] = get_pipeline()

        _application.add_handler(CommandHandler(["start", "help"], handle_start_command))

        # New text messages only (edits are ignored)
        _application.add_handler(
            MessageHandler(filters.UpdateType.MESSAGE & filters.TEXT & ~filters.COMMAND, handle_text_message)
        )

        _application.add_error_handler(handle_error)

        logger.info("Telegram bot application initialized")

    return _application


async def handle_telegram_update(update_data: dict) -> None:
    """
    Process incoming webhook update from Telegram.

    Called by the FastAPI webhook endpoint as a background task, so every
    update is an independent run.
    """
    try:
        app = get_bot_application()

        # Convert dict to Update object
        update = Update.de_json(update_data, app.bot)

        if update:
            await app.process_update(update)
        else:
            logger.warning("Received invalid update data")

    except Exception as e:
        logger.error(f"Failed to process update: {e}", exc_info=True)


async def initialize_bot() -> None:
    """
    Initialize bot application (call on startup).
    """
    app = get_bot_application()
    await app.initialize()
    logger.info("Bot initialized successfully")


async def shutdown_bot() -> None:
    """
    Shutdown bot application (call on shutdown).
    """
    global _application
    if _application:
        await _application.shutdown()
        _application = None
        logger.info("Bot shut down")
