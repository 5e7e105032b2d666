from types import SimpleNamespace

import httpx
import pytest
from openai import APITimeoutError

from assistant.services.code_editor import (
    CodeEditError,
    CodeEditor,
    CodeEditTimeoutError,
    SourceFile,
    build_edit_prompt,
    extract_file_diffs,
)


class DummyClient:
    class Responses:
        def __init__(self, output=None, error: Exception | None = None) -> None:
            self._output = output or []
            self._error = error
            self.requests: list[dict] = []

        async def create(self, **kwargs):
            self.requests.append(kwargs)
            if self._error is not None:
                raise self._error
            return SimpleNamespace(output=self._output)

    def __init__(self, output=None, error: Exception | None = None) -> None:
        self.responses = DummyClient.Responses(output, error)


def _call(path: str, diff: str, op_type: str = "update_file") -> dict:
    return {"type": "apply_patch_call", "operation": {"type": op_type, "path": path, "diff": diff}}


def test_extract_file_diffs_keeps_only_patch_calls() -> None:
    output = [{"type": "message", "content": "done"}, _call("app.py", "@@\n-a\n+b\n")]

    [diff] = extract_file_diffs(output)

    assert diff.path == "app.py"
    assert diff.diff == "@@\n-a\n+b\n"


@pytest.mark.parametrize(
    "output",
    [
        [],
        [{"type": "message", "content": "I changed it"}],
        [_call("new.py", "+print(1)", op_type="create_file")],
        [_call("app.py", "")],
    ],
)
def test_extract_file_diffs_rejects_unusable_output(output) -> None:
    with pytest.raises(CodeEditError):
        extract_file_diffs(output)


def test_prompt_lists_every_file() -> None:
    prompt = build_edit_prompt([SourceFile("a.py", "x = 1"), SourceFile("b.py", "y = 2")], "rename x")

    assert "File: a.py\n---\nx = 1" in prompt
    assert "File: b.py" in prompt
    assert prompt.endswith("Instructions:\nrename x")


async def test_generate_diffs_uses_apply_patch_tool() -> None:
    client = DummyClient(output=[_call("a.py", "@@\n-x = 1\n+x = 2\n")])
    editor = CodeEditor(client=client, model="codex-test")

    diffs = await editor.generate_diffs([SourceFile("a.py", "x = 1\n")], "bump x")

    assert [item.path for item in diffs] == ["a.py"]
    assert client.responses.requests[0]["model"] == "codex-test"
    assert client.responses.requests[0]["tools"] == [{"type": "apply_patch"}]


async def test_generate_diffs_maps_timeout() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/responses")
    client = DummyClient(error=APITimeoutError(request=request))
    editor = CodeEditor(client=client, model="codex-test")

    with pytest.raises(CodeEditTimeoutError):
        await editor.generate_diffs([SourceFile("a.py", "x = 1\n")], "bump x")
