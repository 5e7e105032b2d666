"""Exact-match patch application for proposed code edits.

Two input formats are understood:

* a bare V4A diff: one or more hunks, each introduced by a line starting with
  ``@@`` and made of lines prefixed with a space (context), ``-`` (removed) or
  ``+`` (added);
* a full ``*** Begin Patch`` / ``*** End Patch`` block with one
  ``*** Update File: <path>`` section per file, each holding V4A hunks.

A hunk applies only if its context and removed lines appear verbatim and
contiguous in the current text, searching forward from where the previous hunk
ended. There is no fuzzy matching; any miss fails the whole patch.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

_LINE_SPLIT = re.compile(r"\r?\n")


class PatchApplyError(ValueError):
    pass


@dataclass(slots=True)
class Hunk:
    old_lines: list[str] = field(default_factory=list)
    new_lines: list[str] = field(default_factory=list)


@dataclass(slots=True)
class PatchFile:
    path: str
    hunks: list[Hunk]


def _read_hunk(lines: list[str], i: int, stop_prefixes: tuple[str, ...]) -> tuple[Hunk, int]:
    hunk = Hunk()
    while i < len(lines):
        line = lines[i]
        if not line:
            # editors strip the lone space of empty context lines
            hunk.old_lines.append("")
            hunk.new_lines.append("")
            i += 1
            continue
        if line.startswith(stop_prefixes):
            break
        tag, content = line[0], line[1:]
        if tag == " ":
            hunk.old_lines.append(content)
            hunk.new_lines.append(content)
        elif tag == "-":
            hunk.old_lines.append(content)
        elif tag == "+":
            hunk.new_lines.append(content)
        else:
            raise PatchApplyError(f"Invalid diff line: {line}")
        i += 1
    return hunk, i


def parse_v4a_hunks(diff: str) -> list[Hunk]:
    lines = _LINE_SPLIT.split(diff.rstrip("\r\n"))
    hunks: list[Hunk] = []
    i = 0
    while i < len(lines):
        if lines[i].startswith("@@"):
            hunk, i = _read_hunk(lines, i + 1, ("@@",))
            hunks.append(hunk)
            continue
        i += 1
    if not hunks:
        raise PatchApplyError("Diff contains no hunks")
    return hunks


def parse_apply_patch(patch_text: str) -> list[PatchFile]:
    lines = _LINE_SPLIT.split(patch_text)
    if not lines or not lines[0].startswith("*** Begin Patch"):
        raise PatchApplyError("Patch must start with *** Begin Patch")

    files: list[PatchFile] = []
    i = 1
    while i < len(lines):
        line = lines[i]
        if line.startswith("*** End Patch"):
            break
        if line.startswith("*** Add File:") or line.startswith("*** Delete File:"):
            raise PatchApplyError("Only updates to existing files are supported")
        if line.startswith("*** Update File: "):
            path = line[len("*** Update File: ") :].strip()
            i += 1
            hunks: list[Hunk] = []
            while i < len(lines):
                current = lines[i]
                if current.startswith("*** Update File: ") or current.startswith("*** End Patch"):
                    break
                if current.startswith("@@"):
                    hunk, i = _read_hunk(lines, i + 1, ("@@", "***"))
                    hunks.append(hunk)
                    continue
                i += 1
            files.append(PatchFile(path=path, hunks=hunks))
            continue
        i += 1
    return files


def find_subsequence(haystack: list[str], needle: list[str], start_at: int) -> int:
    if not needle:
        return start_at
    last_start = len(haystack) - len(needle)
    for i in range(start_at, last_start + 1):
        if haystack[i : i + len(needle)] == needle:
            return i
    return -1


def apply_hunks(text: str, hunks: list[Hunk]) -> str:
    lines = _LINE_SPLIT.split(text)
    cursor = 0
    for hunk in hunks:
        idx = find_subsequence(lines, hunk.old_lines, cursor)
        if idx < 0:
            raise PatchApplyError("Failed to apply diff: context not found")
        lines[idx : idx + len(hunk.old_lines)] = hunk.new_lines
        cursor = idx + len(hunk.new_lines)
    return "\n".join(lines)


def apply_v4a_diff(text: str, diff: str) -> str:
    return apply_hunks(text, parse_v4a_hunks(diff))


def apply_patch_to_text(text: str, patch_text: str, path: str) -> str:
    files = parse_apply_patch(patch_text)
    target = next((item for item in files if item.path == path), None)
    if target is None:
        raise PatchApplyError(f"No patch found for {path}")
    return apply_hunks(text, target.hunks)


def apply_diff(text: str, diff: str, path: str) -> str:
    """Apply either supported format, picking by the leading marker."""
    if diff.lstrip().startswith("*** Begin Patch"):
        return apply_patch_to_text(text, diff.lstrip(), path)
    return apply_v4a_diff(text, diff)
