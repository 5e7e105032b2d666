from __future__ import annotations

import json
import logging
import re
from asyncio import sleep
from datetime import datetime, timezone
from typing import Any

from openai import APIConnectionError, APITimeoutError, AsyncOpenAI, OpenAIError, RateLimitError
from pydantic import ValidationError

from assistant.core.settings import get_settings
from assistant.core.timezones import resolve_timezone
from assistant.llm.prompts import JSON_REPAIR_PROMPT, SYSTEM_PROMPT
from assistant.schemas.commands import Classification, classification_adapter
from assistant.services.conversation_history import Turn
from assistant.services.guardrails import LLMCircuitBreaker


class LLMCommandValidationError(ValueError):
    pass


class LLMRateLimitError(ValueError):
    pass


class LLMCircuitOpenError(ValueError):
    pass


class LLMUnavailableError(ValueError):
    pass


logger = logging.getLogger(__name__)


class LLMService:
    def __init__(
        self,
        client: AsyncOpenAI | None = None,
        circuit_breaker: LLMCircuitBreaker | None = None,
    ) -> None:
        settings = get_settings()
        self._model = settings.openai_model
        self._client = client or AsyncOpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.openai_timeout_seconds,
            max_retries=0,
        )
        self._circuit_breaker = circuit_breaker or LLMCircuitBreaker(
            failure_threshold=settings.llm_circuit_failure_threshold,
            open_seconds=settings.llm_circuit_open_seconds,
        )

    async def classify(
        self,
        text: str,
        history: list[Turn] | None = None,
        timezone_name: str | None = None,
        now: datetime | None = None,
    ) -> Classification:
        now = now or datetime.now(timezone.utc)
        if self._circuit_breaker.is_open(now):
            raise LLMCircuitOpenError("LLM circuit breaker is open")

        tz = resolve_timezone(timezone_name, fallback=get_settings().default_timezone)
        context = _build_user_content(text, history or [], now.astimezone(tz), str(tz))
        raw_output = await self._request(
            [{"role": "system", "content": SYSTEM_PROMPT}, {"role": "user", "content": context}],
            now=now,
        )
        try:
            return parse_classification(raw_output)
        except LLMCommandValidationError:
            recovered = await self._recover_json(context=context, raw_output=raw_output, now=now)
            if recovered is None:
                raise
            return recovered

    async def _request(self, messages: list[dict[str, str]], *, now: datetime) -> str:
        response = None
        for attempt in range(2):
            try:
                response = await self._client.responses.create(model=self._model, input=messages, temperature=0)
                break
            except RateLimitError as exc:
                self._circuit_breaker.register_failure(now)
                raise LLMRateLimitError("OpenAI rate limit or quota exceeded") from exc
            except (APIConnectionError, APITimeoutError) as exc:
                if attempt == 1:
                    self._circuit_breaker.register_failure(now)
                    raise LLMUnavailableError("OpenAI is not reachable") from exc
                await sleep(0.5 * (attempt + 1))
            except OpenAIError as exc:
                self._circuit_breaker.register_failure(now)
                logger.warning("OpenAI request failed: %s", exc.__class__.__name__)
                raise LLMUnavailableError("OpenAI request failed") from exc

        assert response is not None
        self._circuit_breaker.register_success()
        usage = getattr(response, "usage", None)
        logger.info(
            "LLM call finished: input_tokens=%s output_tokens=%s",
            getattr(usage, "input_tokens", 0),
            getattr(usage, "output_tokens", 0),
        )
        raw_output = (response.output_text or "").strip()
        logger.debug("LLM raw output: %s", raw_output)
        return raw_output

    async def _recover_json(self, *, context: str, raw_output: str, now: datetime) -> Classification | None:
        try:
            fixed_output = await self._request(
                [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": context},
                    {"role": "assistant", "content": raw_output},
                    {"role": "user", "content": JSON_REPAIR_PROMPT},
                ],
                now=now,
            )
        except (LLMRateLimitError, LLMUnavailableError):
            logger.exception("Failed to recover invalid classifier JSON")
            return None

        try:
            return parse_classification(fixed_output)
        except LLMCommandValidationError:
            logger.warning("Recovered classifier output is still invalid: %s", fixed_output)
            return None


def _build_user_content(text: str, history: list[Turn], local_now: datetime, tz_name: str) -> str:
    lines = []
    if history:
        lines.append("Recent conversation:")
        lines.extend(f"{turn.role}: {turn.content}" for turn in history)
        lines.append("")
    lines.append(f"User message: {text}")
    lines.append(f"Current local time ({tz_name}): {local_now.isoformat()}")
    lines.append("Return only the JSON envelope.")
    return "\n".join(lines)


def parse_classification(raw_output: str | dict[str, Any]) -> Classification:
    payload: Any
    if isinstance(raw_output, str):
        try:
            payload = json.loads(_normalize_llm_json_text(raw_output))
        except json.JSONDecodeError as exc:
            raise LLMCommandValidationError("LLM output is not valid JSON") from exc
    else:
        payload = raw_output
    if not isinstance(payload, dict):
        raise LLMCommandValidationError("LLM output is not a JSON object")
    payload = _normalize_envelope(payload)

    try:
        return classification_adapter.validate_python(payload)
    except ValidationError as exc:
        logger.warning("LLM schema validation failed. payload=%s errors=%s", payload, exc.errors())
        raise LLMCommandValidationError("LLM output does not match schema") from exc


def _normalize_llm_json_text(text: str) -> str:
    value = text.strip()
    fenced = re.match(r"^```(?:json)?\s*(.*?)\s*```$", value, flags=re.DOTALL | re.IGNORECASE)
    if fenced:
        value = fenced.group(1).strip()
    return value


def _normalize_envelope(payload: dict[str, Any]) -> dict[str, Any]:
    # models sometimes answer with the bare command instead of the envelope
    if "intent" not in payload and "command" in payload:
        return {"intent": payload}
    normalized = dict(payload)
    intent = normalized.get("intent")
    if isinstance(intent, dict) and intent.get("command") == "github_action":
        github = intent.get("github")
        if isinstance(github, dict) and isinstance(github.get("repo"), str) and not github["repo"].strip():
            normalized["intent"] = {**intent, "github": {**github, "repo": None}}
    return normalized
