from pydantic_settings import BaseSettings
from functools import lru_cache


DEFAULT_MATCHING_MODELS = (
    "gemini:gemini-2.5-flash,"
    "gemini:gemini-2.0-flash,"
    "gemini:gemini-2.0-flash-lite,"
    "openai:gpt-4o-mini,"
    "anthropic:claude-sonnet-4-20250514"
)


def parse_csv(value: str) -> list[str]:
    """Split a comma-separated env value, dropping blanks."""
    return [item.strip() for item in (value or "").split(",") if item.strip()]


class Settings(BaseSettings):
    # Telegram
    telegram_bot_token: str
    telegram_webhook_secret: str = ""  # Optional: for webhook verification
    telegram_bot_username: str = "polza79bot"  # Mention token, without "@"

    # Whitelist (comma-separated ids, group ids may be negative)
    allowed_group_chat_ids: str = ""
    allowed_user_ids: str = ""

    # Google Sheets (expert database)
    google_sheet_id: str
    google_service_account_key: str  # Service account JSON, as a string
    google_sheet_range: str = "A:Z"

    # Supabase (persistent cache store). Empty URL -> in-process store.
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    cache_table: str = "kv_cache"
    cache_key: str = "experts_data"
    cache_ttl_ms: int = 3_600_000

    # Matching service
    gemini_api_key: str = ""
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    matching_models: str = DEFAULT_MATCHING_MODELS

    # Environment
    environment: str = "development"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def matching_model_chain(self) -> list[str]:
        return parse_csv(self.matching_models)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
