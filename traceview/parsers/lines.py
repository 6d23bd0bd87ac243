"""Classify raw log lines into empty, raw or structured values.

Each line runs through an ordered chain of strategies. A strategy returns a
``ClassifiedLine`` when it has an opinion about the line, or ``None`` to pass
the line on. The last strategy always answers, so classification is total.
"""
from __future__ import annotations

import json
import re
from collections import Counter
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Optional

from traceview.observability import record_line_decoded
from traceview.parsers.literal import (
    GrammarProfile,
    RawText,
    canonicalize,
    default_profile,
    try_parse_keyword_arguments,
    try_parse_value,
)
from traceview.parsers.preprocess import preprocess_lines, split_repeat, strip_control
from traceview.parsers.shell_command import extract_shell_command

EXTRAS_KEY = "__extras__"

_KEY_VALUE_PATTERN = re.compile(r"^([^:=]+?)\s*(=|:)\s*(.+)$")
_LINE_SPLIT_PATTERN = re.compile(r"\r?\n")


class LineKind(str, Enum):
    EMPTY = "empty"
    RAW = "raw"
    STRUCTURED = "structured"


@dataclass(frozen=True)
class ClassifiedLine:
    kind: LineKind
    text: str = ""
    value: Any = None
    repeat: int = 1

    @classmethod
    def empty(cls) -> ClassifiedLine:
        return cls(LineKind.EMPTY)

    @classmethod
    def raw(cls, text: str) -> ClassifiedLine:
        return cls(LineKind.RAW, text=text)

    @classmethod
    def structured(cls, value: Any, text: str = "") -> ClassifiedLine:
        if isinstance(value, RawText):
            return cls.raw(value.text)
        return cls(LineKind.STRUCTURED, text=text, value=value)


@dataclass(frozen=True)
class LineContext:
    """One line as seen by the strategies."""

    cleaned: str
    trimmed: str
    profile: GrammarProfile


LineStrategy = Callable[[LineContext], Optional[ClassifiedLine]]


def _empty_line(ctx: LineContext) -> ClassifiedLine | None:
    if not ctx.trimmed:
        return ClassifiedLine.empty()
    return None


def _shell_command(ctx: LineContext) -> ClassifiedLine | None:
    record = extract_shell_command(ctx.trimmed, ctx.profile)
    if record is None:
        return None
    return ClassifiedLine.structured(record, ctx.cleaned)


def _embedded_json(ctx: LineContext) -> ClassifiedLine | None:
    if not ctx.trimmed.startswith(("{", "[")):
        return None
    try:
        value = json.loads(ctx.trimmed)
    except (ValueError, RecursionError):
        return None
    if not isinstance(value, (dict, list)):
        return None
    try:
        return ClassifiedLine.structured(canonicalize(value), ctx.cleaned)
    except RecursionError:
        return None


def _whole_literal(ctx: LineContext) -> ClassifiedLine | None:
    parsed = try_parse_value(ctx.trimmed, ctx.profile)
    if not parsed.ok:
        return None
    if isinstance(parsed.value, str) and not ctx.trimmed.startswith(tuple(ctx.profile.quotes)):
        # A bare word is not promoted to a string value.
        return ClassifiedLine.raw(ctx.cleaned)
    return ClassifiedLine.structured(parsed.value, ctx.cleaned)


def _decode_or_raw(text: str, profile: GrammarProfile) -> Any:
    parsed = try_parse_value(text, profile)
    return parsed.value if parsed.ok else RawText(text)


def split_key_value(part: str) -> tuple[str, str] | None:
    """Split ``key=value`` or ``key: value`` at the first ``=`` or ``:``."""
    match = _KEY_VALUE_PATTERN.match(part)
    if not match:
        return None
    return match.group(1).strip(), match.group(3).strip()


def split_segments(text: str) -> list[str]:
    return [part.strip() for part in text.split(";") if part.strip()]


def _segments(ctx: LineContext) -> ClassifiedLine:
    entries: dict[str, Any] = {}
    extras: list[Any] = []
    has_key_value = False

    for part in split_segments(ctx.trimmed):
        keywords = try_parse_keyword_arguments(part, ctx.profile)
        if keywords.ok:
            has_key_value = True
            entries.update(keywords.value)
            continue

        pair = split_key_value(part)
        if pair:
            has_key_value = True
            key, raw_value = pair
            parsed = try_parse_value(raw_value, ctx.profile)
            entries[key] = parsed.value if parsed.ok else raw_value
            continue

        extras.append(_decode_or_raw(part, ctx.profile))

    if has_key_value:
        if extras:
            entries[EXTRAS_KEY] = extras
        return ClassifiedLine.structured(entries, ctx.cleaned)
    if len(extras) == 1:
        return ClassifiedLine.structured(extras[0], ctx.cleaned)
    if extras:
        return ClassifiedLine.structured(extras, ctx.cleaned)
    return ClassifiedLine.raw(ctx.cleaned)


STRATEGIES: tuple[LineStrategy, ...] = (
    _empty_line,
    _shell_command,
    _embedded_json,
    _whole_literal,
)


def classify_line(line: str, profile: GrammarProfile | None = None) -> ClassifiedLine:
    """Decode one line; never raises for any input string."""
    cleaned = strip_control(line or "")
    ctx = LineContext(
        cleaned=cleaned,
        trimmed=cleaned.strip(),
        profile=profile or default_profile(),
    )
    for strategy in STRATEGIES:
        classified = strategy(ctx)
        if classified is not None:
            return classified
    return _segments(ctx)


def split_lines(text: str) -> list[str]:
    return _LINE_SPLIT_PATTERN.split(text or "")


def classify_all(lines: list[str], profile: GrammarProfile | None = None) -> list[ClassifiedLine]:
    """Preprocess a list of raw lines and classify each resulting line.

    A collapsed run is decoded without its repeat suffix; the count is kept
    on ``ClassifiedLine.repeat``.
    """
    profile = profile or default_profile()
    classified: list[ClassifiedLine] = []
    for line in preprocess_lines(lines):
        base, count = split_repeat(line.rstrip())
        if count > 1:
            classified.append(replace(classify_line(base, profile), repeat=count))
        else:
            classified.append(classify_line(line, profile))
    for kind, count in Counter(item.kind.value for item in classified).items():
        record_line_decoded(kind, count)
    return classified


def classify_text(text: str, profile: GrammarProfile | None = None) -> list[ClassifiedLine]:
    return classify_all(split_lines(text), profile)
