"""
Expert matching through an ordered model fallback chain.

The whole dataset and the user's query go into one prompt; ranking and
formatting are left to the model. Models are tried in priority order:

- success                  -> return its text, stop
- transient (overload)     -> try the next model
- anything else            -> stop, the same request would fail everywhere

Each model is tried at most once per request. The attempt history lives
only for the duration of one match() call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Callable, Optional, Sequence

from app.agents.prompts import build_expert_matching_prompt
from app.config import get_settings
from app.logging_config import get_logger
from app.services.dataset_cache import CachedDataset
from app.services.errors import MatchingServiceUnavailable
from app.services.model_backends import ModelBackend, build_model_chain
from app.services.query_intent import DEFAULT_RESULT_CEILING

logger = get_logger("matching")

# Rate limited, model not found, service unavailable, overloaded (Anthropic)
TRANSIENT_STATUS_CODES = {404, 429, 503, 529}
# google-genai status names for the same conditions
TRANSIENT_STATUSES = {"RESOURCE_EXHAUSTED", "NOT_FOUND", "UNAVAILABLE"}


class FailureClass(str, Enum):
    TRANSIENT = "transient"
    FATAL = "fatal"


def _status_code(error: BaseException) -> Optional[int]:
    # openai / anthropic: APIStatusError.status_code; google-genai: APIError.code
    for attr in ("status_code", "code"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def classify_failure(error: BaseException) -> FailureClass:
    """Only errors tied to one model's availability justify switching models."""
    if _status_code(error) in TRANSIENT_STATUS_CODES:
        return FailureClass.TRANSIENT
    status = getattr(error, "status", None)
    if isinstance(status, str) and status.upper() in TRANSIENT_STATUSES:
        return FailureClass.TRANSIENT
    return FailureClass.FATAL


@dataclass(frozen=True)
class ModelAttempt:
    model: str
    succeeded: bool
    failure_class: Optional[FailureClass] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class MatchResponse:
    text: str
    model: str
    attempts: list[ModelAttempt] = field(default_factory=list)


class MatchingOrchestrator:
    def __init__(
        self,
        backends: Sequence[ModelBackend],
        classify: Callable[[BaseException], FailureClass] = classify_failure,
        default_results: int = DEFAULT_RESULT_CEILING,
    ):
        self.backends = list(backends)
        self.classify = classify
        self.default_results = default_results

    def build_prompt(self, query: str, dataset: CachedDataset, result_ceiling: int) -> str:
        return build_expert_matching_prompt(
            query, dataset.rows, result_ceiling, default_results=self.default_results
        )

    async def match(self, query: str, dataset: CachedDataset, result_ceiling: int) -> MatchResponse:
        """
        Find experts for the query.

        Raises:
            MatchingServiceUnavailable: chain exhausted or a fatal error
        """
        prompt = self.build_prompt(query, dataset, result_ceiling)
        attempts: list[ModelAttempt] = []
        logger.info(f"Matching query (ceiling={result_ceiling}, rows={len(dataset.rows)}) via {len(self.backends)} model(s)")

        for backend in self.backends:
            try:
                text = await backend.invoke(prompt)
            except Exception as e:
                failure = self.classify(e)
                attempts.append(ModelAttempt(backend.identifier, False, failure, f"{type(e).__name__}: {e}"))
                if failure is FailureClass.TRANSIENT:
                    logger.warning(f"Model {backend.identifier} unavailable ({type(e).__name__}), trying next")
                    continue
                logger.error(f"Model {backend.identifier} failed: {e}", exc_info=True)
                raise MatchingServiceUnavailable(
                    f"Non-retryable error from {backend.identifier}", attempts
                ) from e

            attempts.append(ModelAttempt(backend.identifier, True))
            logger.info(f"Matched with {backend.identifier} after {len(attempts)} attempt(s)")
            return MatchResponse(text=text, model=backend.identifier, attempts=attempts)

        logger.error(f"All {len(attempts)} matching model(s) unavailable")
        raise MatchingServiceUnavailable("Model fallback chain exhausted", attempts)


@lru_cache()
def get_matching_orchestrator() -> MatchingOrchestrator:
    return MatchingOrchestrator(build_model_chain(get_settings()))
