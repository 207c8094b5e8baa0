"""
Telegram Bot module for the expert finder.

ARCHITECTURE: Thin routing layer - NO business logic here!
- Receives webhook updates from Telegram
- Maps chat/user to an authorization context
- Runs the expert request pipeline (app.services.pipeline)
- Returns the reply to Telegram
"""

from .bot import handle_telegram_update, initialize_bot, shutdown_bot

__all__ = [
    "handle_telegram_update",
    "initialize_bot",
    "shutdown_bot",
]
