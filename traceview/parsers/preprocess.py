"""Line-level cleanup that runs before classification."""
from __future__ import annotations

import re

from traceview import config

# CSI (cursor control, colours), OSC (window titles) and two-byte escapes.
_ESCAPE_SEQUENCE_PATTERN = re.compile(
    r"\x1b\[[0-?]*[ -/]*[@-~]"
    r"|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)?"
    r"|\x1b[@-Z\\-_]"
)
_CONTROL_CHAR_PATTERN = re.compile(r"[\x00-\x08\x0b-\x1f\x7f-\x9f]")
_REPEAT_SUFFIX_PATTERN = re.compile(rf"^(.*\S)\s+\({re.escape(config.REPEAT_MARKER)}(\d+)\)$")


def strip_control(text: str) -> str:
    """Remove terminal escape sequences and other non-printable characters."""
    return _CONTROL_CHAR_PATTERN.sub("", _ESCAPE_SEQUENCE_PATTERN.sub("", text))


def join_continuations(lines: list[str]) -> list[str]:
    """Join shell-style ``\\``-continued lines into single lines."""
    result: list[str] = []
    pending: list[str] | None = None

    for line in lines:
        trimmed = line.strip()
        continues = trimmed.endswith("\\")
        if continues:
            trimmed = trimmed[:-1].strip()

        if pending is None:
            if not continues:
                result.append(line)
                continue
            pending = [trimmed]
            continue

        pending.append(trimmed)
        if not continues:
            result.append(" ".join(part for part in pending if part))
            pending = None

    if pending is not None:
        result.append(" ".join(part for part in pending if part))
    return result


def split_repeat(normalized: str) -> tuple[str, int]:
    """Split a trailing repeat suffix off a line, returning the base and the count."""
    match = _REPEAT_SUFFIX_PATTERN.match(normalized)
    if match:
        return match.group(1), int(match.group(2))
    return normalized, 1


def repeat_suffix(count: int) -> str:
    return f" ({config.REPEAT_MARKER}{count})"


def collapse_duplicates(lines: list[str]) -> list[str]:
    """Collapse runs of identical lines into one line with a repeat count.

    Lines compare equal after control stripping and trimming. A line that
    already carries a repeat suffix counts as that many occurrences, which
    keeps the pass idempotent. Blank lines are never collapsed.
    """
    result: list[str] = []
    index = 0
    total = len(lines)

    while index < total:
        key, count = split_repeat(strip_control(lines[index]).strip())
        end = index + 1
        if key:
            while end < total:
                next_key, next_count = split_repeat(strip_control(lines[end]).strip())
                if next_key != key:
                    break
                count += next_count
                end += 1

        if end - index == 1:
            result.append(lines[index])
        else:
            base, _ = split_repeat(lines[index].rstrip())
            result.append(base + repeat_suffix(count))
        index = end

    return result


def preprocess_lines(lines: list[str]) -> list[str]:
    return collapse_duplicates(join_continuations(lines))
