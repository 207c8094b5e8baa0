"""
Telegram message and command handlers.

ARCHITECTURE: Thin transport layer - all decisions live in the pipeline.
- Build the authorization context from the update
- Run the expert request pipeline
- Deliver its single Reply (threaded to the origin message in groups)

Model answers are sent as HTML converted from Markdown; if Telegram rejects
a part, that part and the ones after it go out as plain text.
"""

from telegram import Message, Update
from telegram.constants import ChatAction, ParseMode
from telegram.error import BadRequest
from telegram.ext import ContextTypes

from app import messages
from app.logging_config import bot_logger as logger
from app.services.pipeline import ExpertRequestPipeline, Reply, get_pipeline
from app.services.whitelist import AuthorizationContext, ChatKind
from .formatting import TELEGRAM_MESSAGE_LIMIT, markdown_to_html, split_message


def get_request_pipeline(context: ContextTypes.DEFAULT_TYPE) -> ExpertRequestPipeline:
    """Pipeline registered on the application, or the settings-built default."""
    pipeline = context.bot_data.get("pipeline") if context.bot_data is not None else None
    return pipeline or get_pipeline()


def build_auth_context(update: Update) -> AuthorizationContext:
    chat = update.effective_chat
    user = update.effective_user
    return AuthorizationContext(
        chat_id=chat.id,
        user_id=user.id if user else None,
        chat_kind=ChatKind.from_telegram(chat.type),
    )


async def deliver_reply(message: Message, reply: Reply, is_group: bool) -> None:
    """
    Send one pipeline Reply back to the chat it came from.

    Long replies go out as several parts; only the first is threaded to the
    origin message. Once Telegram rejects a formatted part, that part and the
    rest are sent as plain text, so no part is delivered twice.
    """
    use_html = reply.rich_text
    for index, chunk in enumerate(split_message(reply.text)):
        # Only the first part is threaded to the origin message
        do_quote = is_group and index == 0
        if use_html:
            formatted = markdown_to_html(chunk)
            if len(formatted) <= TELEGRAM_MESSAGE_LIMIT:
                try:
                    await message.reply_text(formatted, parse_mode=ParseMode.HTML, do_quote=do_quote)
                    continue
                except BadRequest as e:
                    logger.warning(f"Telegram rejected formatted part {index} ({e}), sending the rest as plain text")
            use_html = False
        await message.reply_text(chunk, parse_mode=None, do_quote=do_quote)


async def handle_text_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Handle incoming text message.

    1. Whitelist check
    2. Query extraction (mention removal in groups)
    3. Dataset + matching
    4. Reply
    """
    message = update.effective_message
    auth_context = build_auth_context(update)

    logger.info(
        f"Received message chat_id={auth_context.chat_id}, user_id={auth_context.user_id}, "
        f"kind={auth_context.chat_kind.value}, text_len={len(message.text or '')}"
    )

    async def show_typing() -> None:
        try:
            await context.bot.send_chat_action(auth_context.chat_id, ChatAction.TYPING)
        except Exception as e:
            logger.warning(f"Failed to send typing indicator: {e}")

    pipeline = get_request_pipeline(context)
    reply = await pipeline.run(auth_context, message.text, on_lookup=show_typing)
    logger.info(f"Replying to chat_id={auth_context.chat_id}: outcome={reply.outcome.value}")
    await deliver_reply(message, reply, auth_context.is_group)


async def handle_start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start and /help - usage hint for whitelisted chats."""
    auth_context = build_auth_context(update)
    pipeline = get_request_pipeline(context)

    reply = pipeline.check_access(auth_context) or pipeline.usage_hint(auth_context)
    await deliver_reply(update.effective_message, reply, auth_context.is_group)


async def handle_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle errors in handlers."""
    logger.error(f"Bot error: {context.error}", exc_info=context.error)

    if isinstance(update, Update) and update.effective_message:
        try:
            await update.effective_message.reply_text(messages.PROCESSING_FAILED)
        except Exception as e:
            logger.error(f"Failed to send error message: {e}")
