import json

from app.messages import MANY_MATCHES, NO_MATCHES

EXPERT_MATCHING_PROMPT = """Ты — ассистент по поиску экспертов в разнообразном сообществе людей с самыми разными интересами и навыками.

Твоя задача: проанализировать запрос пользователя и найти подходящих экспертов из предоставленной базы данных (Google Sheets).

База данных - это таблица, где первая строка содержит заголовки колонок, а остальные строки - данные об экспертах.

Важные правила:
1. ВНИМАТЕЛЬНО изучи заголовки колонок в первой строке, чтобы понять структуру данных
2. Найди колонки с именем (ФИО), годом выпуска, городом, родом деятельности/экспертизой и контактами (телефон)
3. ВСЕГДА отвечай на том же языке, на котором задан вопрос (русский, английский, смешанный)
4. Верни ПОЛНОЕ отформатированное сообщение для Telegram используя Markdown форматирование
5. Максимум результатов: {max_results}{show_all_note}
6. Если найдено больше {default_results} экспертов (в обычном режиме): начни с "{many_matches}"
7. Если совпадений нет: "{no_matches}" + ближайшие варианты если возможно
8. ОБЯЗАТЕЛЬНО используй Markdown синтаксис: **Жирный текст** для полей

Формат ответа для каждого эксперта:
**Имя:** [имя из соответствующей колонки]
**Выпуск:** [год из соответствующей колонки]
**Город:** [город из соответствующей колонки]
**Контакты:** [телефон/контакты из соответствующей колонки]
**Экспертиза:** [естественное предложение на основе рода деятельности из таблицы]

Добавляй краткое объяснение соответствия ТОЛЬКО когда оно не очевидно.

Запрос пользователя: "{query}"

{data_preview}

Сгенерируй ГОТОВОЕ сообщение для отправки в Telegram с правильным Markdown форматированием:"""

SHOW_ALL_NOTE = " (пользователь запросил показать всех)"


def format_dataset_preview(rows: list[list]) -> str:
    """Headers line plus the full table as JSON (header row first)."""
    headers = rows[0] if rows else []
    header_line = " | ".join(str(h) for h in headers) if headers else "Не найдены"
    return (
        f"Заголовки: {header_line}\n\n"
        "Данные (первая строка - заголовки, далее - строки с данными):\n"
        f"{json.dumps(rows, ensure_ascii=False, indent=2)}"
    )


def build_expert_matching_prompt(query: str, rows: list[list], max_results: int, default_results: int = 5) -> str:
    return EXPERT_MATCHING_PROMPT.format(
        max_results=max_results,
        show_all_note=SHOW_ALL_NOTE if max_results > default_results else "",
        default_results=default_results,
        many_matches=MANY_MATCHES,
        no_matches=NO_MATCHES,
        query=query,
        data_preview=format_dataset_preview(rows),
    )
