from datetime import datetime, timezone

import httpx
import pytest
from openai import AuthenticationError

from assistant.services.conversation_history import Turn
from assistant.services.guardrails import LLMCircuitBreaker
from assistant.services.llm_service import (
    LLMCircuitOpenError,
    LLMCommandValidationError,
    LLMService,
    LLMUnavailableError,
    parse_classification,
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class DummyClient:
    class Responses:
        def __init__(self, output_texts: list[str]) -> None:
            self._output_texts = output_texts
            self.requests: list[dict] = []

        async def create(self, **kwargs):
            self.requests.append(kwargs)

            class Usage:
                input_tokens = 10
                output_tokens = 10

            class Response:
                usage = Usage()

                def __init__(self, output_text: str) -> None:
                    self.output_text = output_text

            output = self._output_texts.pop(0)
            if isinstance(output, Exception):
                raise output
            return Response(output)

    def __init__(self, output_texts: list[str]) -> None:
        self.responses = DummyClient.Responses(output_texts)


@pytest.mark.asyncio
async def test_classify_parses_envelope() -> None:
    client = DummyClient(
        [
            '{"intent":{"command":"github_action","github":{"action":"create_issue","repo":"acme/widgets",'
            '"issue":{"title":"Bug: crash on login"}}},"confidence":0.93,"needs_clarification":false,"question":null}'
        ]
    )
    service = LLMService(client=client)

    result = await service.classify("create an issue titled 'Bug: crash on login' in acme/widgets", now=NOW)

    assert result.intent.command == "github_action"
    assert result.intent.github.repo == "acme/widgets"
    assert result.intent.github.issue.title == "Bug: crash on login"
    assert result.confidence == pytest.approx(0.93)


@pytest.mark.asyncio
async def test_recovers_invalid_first_output() -> None:
    client = DummyClient(["Sure! I will set that reminder.", '{"command":"focus_timer","duration_minutes":25}'])
    service = LLMService(client=client)

    result = await service.classify("focus for 25 minutes", now=NOW)

    assert result.intent.command == "focus_timer"
    assert result.intent.duration_minutes == 25
    assert len(client.responses.requests) == 2


@pytest.mark.asyncio
async def test_unrecoverable_output_raises() -> None:
    client = DummyClient(["nope", "still nope"])
    service = LLMService(client=client)

    with pytest.raises(LLMCommandValidationError):
        await service.classify("???", now=NOW)


@pytest.mark.asyncio
async def test_history_is_sent_as_context() -> None:
    client = DummyClient(['{"intent":{"command":"chat","reply":"hi"}}'])
    service = LLMService(client=client)
    history = [Turn(role="user", content="remember the widgets repo", at=NOW)]

    await service.classify("hello", history=history, timezone_name="Europe/Berlin", now=NOW)

    user_content = client.responses.requests[0]["input"][1]["content"]
    assert "user: remember the widgets repo" in user_content
    assert "Europe/Berlin" in user_content


@pytest.mark.asyncio
async def test_open_circuit_short_circuits() -> None:
    breaker = LLMCircuitBreaker(failure_threshold=1, open_seconds=60)
    breaker.register_failure(now=NOW)
    client = DummyClient([])
    service = LLMService(client=client, circuit_breaker=breaker)

    with pytest.raises(LLMCircuitOpenError):
        await service.classify("hello", now=NOW)
    assert client.responses.requests == []


def test_parse_classification_accepts_fenced_json_and_blank_repo() -> None:
    raw = '```json\n{"intent":{"command":"github_action","github":{"action":"list_repos","repo":" "}}}\n```'

    result = parse_classification(raw)

    assert result.intent.github.repo is None
    assert result.needs_clarification is False


def test_parse_classification_rejects_unknown_command() -> None:
    with pytest.raises(LLMCommandValidationError):
        parse_classification('{"intent":{"command":"launch_rockets"}}')


@pytest.mark.asyncio
async def test_api_status_errors_count_as_unavailable() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/responses")
    error = AuthenticationError("bad key", response=httpx.Response(401, request=request), body=None)
    breaker = LLMCircuitBreaker(failure_threshold=5, open_seconds=60)
    service = LLMService(client=DummyClient([error]), circuit_breaker=breaker)

    with pytest.raises(LLMUnavailableError):
        await service.classify("hello", now=NOW)
    assert breaker.failures == 1
