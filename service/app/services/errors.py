"""
Error taxonomy for the expert request pipeline.

Upstream faults carry their technical detail for the logs; ErrorEnvelope
reduces them to the one localized string a user is allowed to see.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from app import messages

if TYPE_CHECKING:
    from app.services.matching import ModelAttempt


class ExpertBotError(Exception):
    """Base class for pipeline faults."""


class DataSourceUnavailable(ExpertBotError):
    """The spreadsheet could not be fetched on a mandatory refresh."""


class MatchingServiceUnavailable(ExpertBotError):
    """No model in the fallback chain produced an answer."""

    def __init__(self, message: str, attempts: list[ModelAttempt] | None = None):
        super().__init__(message)
        self.attempts = list(attempts or [])


class CachePersistFailure(ExpertBotError):
    """Writing a fresh snapshot to the cache store failed (non-fatal)."""


@dataclass(frozen=True)
class ErrorEnvelope:
    """Failure as surfaced to the caller: user text plus log-only detail."""
    user_message: str
    detail: str


def envelope_for(error: BaseException) -> ErrorEnvelope:
    """Map any pipeline exception to the text the user gets."""
    detail = f"{type(error).__name__}: {error}"
    if isinstance(error, MatchingServiceUnavailable):
        return ErrorEnvelope(messages.MATCHING_UNAVAILABLE, detail)
    return ErrorEnvelope(messages.PROCESSING_FAILED, detail)
