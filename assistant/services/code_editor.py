from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from openai import APITimeoutError, AsyncOpenAI, OpenAIError

from assistant.core.settings import get_settings

logger = logging.getLogger(__name__)


class CodeEditError(RuntimeError):
    pass


class CodeEditTimeoutError(CodeEditError):
    pass


@dataclass(slots=True)
class SourceFile:
    path: str
    content: str


@dataclass(slots=True)
class FileDiff:
    path: str
    diff: str


def _as_dict(item: Any) -> dict:
    if isinstance(item, dict):
        return item
    if hasattr(item, "model_dump"):
        return item.model_dump()
    return dict(getattr(item, "__dict__", {}))


def build_edit_prompt(files: list[SourceFile], instructions: str) -> str:
    files_block = "\n\n".join(f"File: {item.path}\n---\n{item.content}" for item in files)
    return (
        "You are a coding agent. Produce apply_patch tool calls only.\n\n"
        "Update existing files only. Do not create or delete files.\n"
        f"Files:\n{files_block}\n\n"
        f"Instructions:\n{instructions}"
    )


def extract_file_diffs(output: list[Any]) -> list[FileDiff]:
    calls = [_as_dict(item) for item in output]
    calls = [item for item in calls if item.get("type") == "apply_patch_call"]
    if not calls:
        raise CodeEditError("No apply_patch_call operations returned")

    diffs: list[FileDiff] = []
    for call in calls:
        operation = _as_dict(call.get("operation") or {})
        if operation.get("type") != "update_file":
            raise CodeEditError("Only update_file operations are supported")
        path = operation.get("path")
        diff = operation.get("diff")
        if not path or not diff:
            raise CodeEditError("apply_patch_call missing path or diff")
        diffs.append(FileDiff(path=path, diff=diff))
    return diffs


class CodeEditor:
    def __init__(self, client: AsyncOpenAI | None = None, model: str | None = None) -> None:
        settings = get_settings()
        self._model = model or settings.openai_codex_model
        self._client = client or AsyncOpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.openai_timeout_seconds,
            max_retries=0,
        )

    async def generate_diffs(self, files: list[SourceFile], instructions: str) -> list[FileDiff]:
        try:
            response = await self._client.responses.create(
                model=self._model,
                input=build_edit_prompt(files, instructions),
                tools=[{"type": "apply_patch"}],
            )
        except APITimeoutError as exc:
            raise CodeEditTimeoutError("Code editing model timed out") from exc
        except OpenAIError as exc:
            raise CodeEditError(f"Code editing model request failed: {exc.__class__.__name__}") from exc

        diffs = extract_file_diffs(list(getattr(response, "output", None) or []))
        logger.info("Code edit diffs received: files=%s diffs=%s", len(files), len(diffs))
        return diffs
