"""
Expert request pipeline.

One run per inbound message, stages strictly in order:

1. Whitelist gate      - denied requests never reach the dataset or the models
2. Query extraction    - empty queries get a usage hint and stop
3. Dataset (cache-or-fetch)
4. Matching (model fallback chain)

Every run ends in exactly one Reply. Upstream faults are logged with full
detail and reduced to a generic localized text.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Awaitable, Callable, Optional

from app import messages
from app.config import get_settings
from app.logging_config import get_logger
from app.services.dataset_cache import DatasetCacheManager, get_dataset_cache
from app.services.errors import envelope_for
from app.services.matching import MatchingOrchestrator, get_matching_orchestrator
from app.services.query_intent import extract_query
from app.services.whitelist import (
    AuthorizationContext, AuthorizationResult, Whitelist, authorize
)

logger = get_logger("pipeline")


class Outcome(str, Enum):
    DENIED = "denied"
    EMPTY_QUERY = "empty_query"
    MATCHED = "matched"
    FAILED = "failed"


@dataclass(frozen=True)
class Reply:
    text: str
    outcome: Outcome
    rich_text: bool = False


class ExpertRequestPipeline:
    def __init__(
        self,
        whitelist: Whitelist,
        dataset_cache: DatasetCacheManager,
        matcher: MatchingOrchestrator,
        bot_username: str,
    ):
        self.whitelist = whitelist
        self.dataset_cache = dataset_cache
        self.matcher = matcher
        self.bot_username = bot_username

    def check_access(self, context: AuthorizationContext) -> Optional[Reply]:
        """Denial reply for unauthorized callers, None otherwise."""
        if authorize(self.whitelist, context) is AuthorizationResult.DENIED:
            logger.info(f"Access denied: chat_id={context.chat_id}, user_id={context.user_id}, kind={context.chat_kind.value}")
            return Reply(messages.ACCESS_DENIED, Outcome.DENIED)
        return None

    def usage_hint(self, context: AuthorizationContext) -> Reply:
        return Reply(messages.empty_query_hint(context.is_group, self.bot_username), Outcome.EMPTY_QUERY)

    async def run(
        self,
        context: AuthorizationContext,
        raw_text: str | None,
        on_lookup: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> Reply:
        """
        Process one request.

        Args:
            context: who is asking and from which kind of chat
            raw_text: message text as received
            on_lookup: called once before the slow stages (typing indicator)
        """
        denied = self.check_access(context)
        if denied:
            return denied

        query = extract_query(raw_text, context.chat_kind, self.bot_username)
        if query.is_empty:
            logger.info(f"Empty query from chat_id={context.chat_id}")
            return self.usage_hint(context)

        logger.info(f"Query from chat_id={context.chat_id}: text_len={len(query.text)}, show_all={query.show_all}")

        try:
            if on_lookup:
                await on_lookup()
            dataset = await self.dataset_cache.get_dataset()
            response = await self.matcher.match(query.text, dataset, query.result_ceiling)
        except Exception as e:
            envelope = envelope_for(e)
            logger.error(f"Request failed for chat_id={context.chat_id}: {envelope.detail}", exc_info=True)
            return Reply(envelope.user_message, Outcome.FAILED)

        return Reply(response.text, Outcome.MATCHED, rich_text=True)


@lru_cache()
def get_pipeline() -> ExpertRequestPipeline:
    settings = get_settings()
    return ExpertRequestPipeline(
        whitelist=Whitelist.from_settings(settings),
        dataset_cache=get_dataset_cache(),
        matcher=get_matching_orchestrator(),
        bot_username=settings.telegram_bot_username,
    )
