"""
Tests for the matching orchestrator and its fallback chain.
"""

import asyncio

import anthropic
import httpx
import openai
import pytest
from google.genai import errors as genai_errors

from app.messages import NO_MATCHES
from app.services.dataset_cache import CachedDataset
from app.services.errors import MatchingServiceUnavailable
from app.services.matching import (
    FailureClass,
    MatchingOrchestrator,
    classify_failure,
)
from app.services.model_backends import ModelBackend

DATASET = CachedDataset(
    timestamp_ms=0,
    data={"values": [
        ["ФИО", "Выпуск", "Город", "Род деятельности", "Телефон"],
        ["Анна Иванова", "2010", "Москва", "iOS разработка", "+7 900 000-00-00"],
        ["Борис Петров", "2012", "Казань", "юрист", "+7 900 111-11-11"],
    ]},
)


class StatusError(Exception):
    def __init__(self, status_code: int):
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


class FakeModel:
    """Scripted backend: raises or returns, recording each call."""

    def __init__(self, name: str, calls: list, result=None, error: Exception | None = None):
        self.name = name
        self.calls = calls
        self.result = result
        self.error = error

    async def __call__(self, prompt: str) -> str:
        self.calls.append((self.name, prompt))
        if self.error:
            raise self.error
        return self.result

    def backend(self) -> ModelBackend:
        return ModelBackend(self.name, self)


def chain(*models: FakeModel) -> MatchingOrchestrator:
    return MatchingOrchestrator([model.backend() for model in models])


def _response(status_code: int) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("POST", "https://api.example.com/v1"))


class TestClassifyFailure:
    """Only model-availability errors are transient."""

    @pytest.mark.parametrize("status_code", [404, 429, 503, 529])
    def test_transient_status_codes(self, status_code):
        assert classify_failure(StatusError(status_code)) is FailureClass.TRANSIENT

    @pytest.mark.parametrize("status_code", [400, 401, 403, 500])
    def test_fatal_status_codes(self, status_code):
        assert classify_failure(StatusError(status_code)) is FailureClass.FATAL

    def test_plain_exceptions_are_fatal(self):
        assert classify_failure(ValueError("bad payload")) is FailureClass.FATAL
        assert classify_failure(TimeoutError()) is FailureClass.FATAL

    def test_openai_rate_limit(self):
        error = openai.RateLimitError("slow down", response=_response(429), body=None)
        assert classify_failure(error) is FailureClass.TRANSIENT

    def test_openai_auth_error(self):
        error = openai.AuthenticationError("bad key", response=_response(401), body=None)
        assert classify_failure(error) is FailureClass.FATAL

    def test_anthropic_not_found(self):
        error = anthropic.NotFoundError("no such model", response=_response(404), body=None)
        assert classify_failure(error) is FailureClass.TRANSIENT

    def test_anthropic_bad_request(self):
        error = anthropic.BadRequestError("bad request", response=_response(400), body=None)
        assert classify_failure(error) is FailureClass.FATAL

    def test_gemini_resource_exhausted(self):
        error = genai_errors.ClientError(429, {"error": {"code": 429, "status": "RESOURCE_EXHAUSTED", "message": "quota"}})
        assert classify_failure(error) is FailureClass.TRANSIENT

    def test_gemini_unavailable(self):
        error = genai_errors.ServerError(503, {"error": {"code": 503, "status": "UNAVAILABLE", "message": "overloaded"}})
        assert classify_failure(error) is FailureClass.TRANSIENT

    def test_gemini_invalid_argument(self):
        error = genai_errors.ClientError(400, {"error": {"code": 400, "status": "INVALID_ARGUMENT", "message": "bad"}})
        assert classify_failure(error) is FailureClass.FATAL

    def test_status_name_without_code(self):
        error = Exception("quota")
        error.status = "resource_exhausted"
        assert classify_failure(error) is FailureClass.TRANSIENT


class TestFallbackChain:
    """Models are tried strictly in priority order."""

    def test_first_model_success(self):
        calls = []
        orchestrator = chain(
            FakeModel("m1", calls, result="**Имя:** Анна"),
            FakeModel("m2", calls, result="unused"),
        )

        response = asyncio.run(orchestrator.match("ios", DATASET, 5))

        assert response.text == "**Имя:** Анна"
        assert response.model == "m1"
        assert [name for name, _ in calls] == ["m1"]

    def test_overload_then_success(self):
        """Scenario F: attempt 1 overloaded, attempt 2 answers."""
        calls = []
        orchestrator = chain(
            FakeModel("m1", calls, error=StatusError(429)),
            FakeModel("m2", calls, result="answer from m2"),
            FakeModel("m3", calls, result="unused"),
        )

        response = asyncio.run(orchestrator.match("ios", DATASET, 5))

        assert response.text == "answer from m2"
        assert len(calls) == 2
        assert [a.model for a in response.attempts] == ["m1", "m2"]
        assert response.attempts[0].failure_class is FailureClass.TRANSIENT
        assert response.attempts[1].succeeded

    def test_fatal_error_stops_chain(self):
        calls = []
        orchestrator = chain(
            FakeModel("m1", calls, error=StatusError(429)),
            FakeModel("m2", calls, error=StatusError(401)),
            FakeModel("m3", calls, result="never reached"),
        )

        with pytest.raises(MatchingServiceUnavailable) as exc_info:
            asyncio.run(orchestrator.match("ios", DATASET, 5))

        assert [name for name, _ in calls] == ["m1", "m2"]
        assert [a.failure_class for a in exc_info.value.attempts] == [FailureClass.TRANSIENT, FailureClass.FATAL]
        assert isinstance(exc_info.value.__cause__, StatusError)

    def test_all_transient_exhausts_chain(self):
        calls = []
        orchestrator = chain(
            FakeModel("m1", calls, error=StatusError(429)),
            FakeModel("m2", calls, error=StatusError(503)),
            FakeModel("m3", calls, error=StatusError(404)),
        )

        with pytest.raises(MatchingServiceUnavailable) as exc_info:
            asyncio.run(orchestrator.match("ios", DATASET, 5))

        assert [name for name, _ in calls] == ["m1", "m2", "m3"]
        assert len(exc_info.value.attempts) == 3

    def test_each_model_tried_once(self):
        calls = []
        orchestrator = chain(FakeModel("m1", calls, error=StatusError(429)))

        with pytest.raises(MatchingServiceUnavailable):
            asyncio.run(orchestrator.match("ios", DATASET, 5))

        assert len(calls) == 1

    def test_empty_chain_unavailable(self):
        with pytest.raises(MatchingServiceUnavailable):
            asyncio.run(MatchingOrchestrator([]).match("ios", DATASET, 5))

    def test_same_prompt_for_every_model(self):
        calls = []
        orchestrator = chain(
            FakeModel("m1", calls, error=StatusError(429)),
            FakeModel("m2", calls, result="ok"),
        )

        asyncio.run(orchestrator.match("ios", DATASET, 5))

        assert calls[0][1] == calls[1][1]

    def test_no_history_between_requests(self):
        calls = []
        orchestrator = chain(FakeModel("m1", calls, result="ok"))

        first = asyncio.run(orchestrator.match("ios", DATASET, 5))
        second = asyncio.run(orchestrator.match("юрист", DATASET, 5))

        assert len(first.attempts) == 1
        assert len(second.attempts) == 1


class TestMatchingPrompt:
    """The prompt carries query, whole dataset and policy."""

    def build(self, query="найди iOS разработчика", ceiling=5):
        return MatchingOrchestrator([]).build_prompt(query, DATASET, ceiling)

    def test_contains_literal_query(self):
        assert 'Запрос пользователя: "найди iOS разработчика"' in self.build()

    def test_contains_every_row(self):
        prompt = self.build()
        for row in DATASET.rows:
            for cell in row:
                assert cell in prompt

    def test_contains_no_match_message(self):
        assert NO_MATCHES in self.build()

    def test_default_ceiling(self):
        prompt = self.build(ceiling=5)
        assert "Максимум результатов: 5\n" in prompt
        assert "показать всех" not in prompt

    def test_show_all_ceiling(self):
        prompt = self.build(ceiling=20)
        assert "Максимум результатов: 20 (пользователь запросил показать всех)" in prompt

    def test_braces_in_query_are_literal(self):
        assert '"{query} {0}"' in self.build(query="{query} {0}")

    def test_field_layout(self):
        prompt = self.build()
        for label in ("**Имя:**", "**Выпуск:**", "**Город:**", "**Контакты:**", "**Экспертиза:**"):
            assert label in prompt
