"""
User-facing texts.

These strings are shown verbatim to community members and are kept
byte-for-byte stable.
"""

ACCESS_DENIED = "Этот бот доступен только в авторизованном чате сообщества."

EMPTY_QUERY_GROUP = "Пожалуйста, укажите запрос. Например: @{bot_username} найди мне iOS разработчика"
EMPTY_QUERY_DIRECT = "Пожалуйста, укажите запрос. Например: найди мне iOS разработчика"

PROCESSING_FAILED = "Не удалось обработать ваш запрос. Пожалуйста, попробуйте позже."
MATCHING_UNAVAILABLE = "Сервис временно недоступен. Пожалуйста, попробуйте позже."

# Served by the HTTP read path (/experts), not by the bot
DATA_SOURCE_UNAVAILABLE = "⚠️ Unable to access the expert database. Please try again later."

# Passed to the matching model as instructions, never sent directly
NO_MATCHES = "Совпадений не найдено. Попробуйте переформулировать запрос."
MANY_MATCHES = "Найдено много совпадений, вот топ-5"


def empty_query_hint(is_group: bool, bot_username: str) -> str:
    if is_group:
        return EMPTY_QUERY_GROUP.format(bot_username=bot_username)
    return EMPTY_QUERY_DIRECT
