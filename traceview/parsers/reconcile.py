"""Reassemble streamed LLM request/response fragments from a whole log.

Streaming proxies (LiteLLM and friends) log the same logical field many
times as it grows chunk by chunk. This module walks every decoded value in
the log, picks out the model, prompt messages and response channels, and
splices overlapping fragments back into one string per field.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from traceview import config
from traceview.parsers.lines import classify_line, split_key_value, split_lines, split_segments
from traceview.parsers.literal import GrammarProfile, TaggedRecord, default_profile, try_parse_value

logger = logging.getLogger("traceview")

DEFAULT_ROLE = "message"

_PROMPT_KEYS = {"prompt", "input", "user_prompt", "system_prompt"}
_CHANNEL_BY_KEY = {
    "content": "content",
    "text": "text",
    "reasoning": "reasoning",
    "reasoning_content": "reasoning",
}
_LEADING_SPACE = re.compile(r"^\s")
_TRAILING_SPACE = re.compile(r"\s$")


def find_overlap(left: str, right: str) -> int:
    """Length of the longest suffix of ``left`` that is a prefix of ``right``."""
    for size in range(min(len(left), len(right)), 0, -1):
        if left.endswith(right[:size]):
            return size
    return 0


def merge_chunk(existing: str, chunk: str) -> str:
    """Merge a new fragment into accumulated text without duplicating it."""
    current = existing or ""
    if not current:
        return chunk
    if chunk in current:
        return current
    if current in chunk:
        return chunk

    overlap = find_overlap(current, chunk)
    if overlap > 0:
        return current + chunk[overlap:]

    if _TRAILING_SPACE.search(current) or _LEADING_SPACE.match(chunk):
        return current + chunk
    return f"{current} {chunk}"


@dataclass
class PromptMessage:
    role: str
    content: str


@dataclass
class ReconciliationState:
    model: str = ""
    prompt_by_role: dict[str, str] = field(default_factory=dict)
    prompt_messages: list[PromptMessage] = field(default_factory=list)
    prompt_extras: dict[str, None] = field(default_factory=dict)
    response_content: str = ""
    response_reasoning: str = ""
    response_text: str = ""

    def set_model(self, model: str) -> None:
        if not self.model and model:
            self.model = model

    def add_prompt_message(self, role: str, content: str) -> None:
        self.prompt_by_role[role] = merge_chunk(self.prompt_by_role.get(role, ""), content)
        if self.prompt_messages and self.prompt_messages[-1].role == role:
            last = self.prompt_messages[-1]
            last.content = merge_chunk(last.content, content)
            return
        self.prompt_messages.append(PromptMessage(role, content))

    def add_prompt_extra(self, text: str) -> None:
        self.prompt_extras.setdefault(text, None)

    def add_response(self, channel: str, chunk: str) -> None:
        if channel == "content":
            self.response_content = merge_chunk(self.response_content, chunk)
        elif channel == "reasoning":
            self.response_reasoning = merge_chunk(self.response_reasoning, chunk)
        else:
            self.response_text = merge_chunk(self.response_text, chunk)

    def output_lines(self) -> list[str]:
        output: list[str] = []
        if self.model:
            output.append(f"model: {self.model}")

        for role, content in self.prompt_by_role.items():
            if content.strip():
                output.append(f"prompt.{role}: {content.strip()}")

        if self.prompt_messages:
            combined = " | ".join(f"{message.role}: {message.content}" for message in self.prompt_messages)
            output.append(f"prompt.sequence: {combined}")

        for extra in self.prompt_extras:
            output.append(f"prompt.raw: {extra}")

        for label, text in (
            ("reasoning", self.response_reasoning),
            ("content", self.response_content),
            ("text", self.response_text),
        ):
            if text.strip():
                output.append(f"response.{label}: {text.strip()}")
        return output


@dataclass(frozen=True)
class ReconcileResult:
    text: str
    line_count: int


def _record_fields(value: Any) -> dict[str, Any] | None:
    if isinstance(value, dict):
        return value
    if isinstance(value, TaggedRecord):
        return value.fields
    return None


def extract_message_content(content: Any) -> str:
    """Flatten a chat message ``content`` value into plain text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(extract_message_content(item) for item in content)
    fields = _record_fields(content)
    if fields is not None:
        for key in ("text", "content", "value"):
            if isinstance(fields.get(key), str):
                return fields[key]
    return ""


def _collect_prompt_message(message: Any, state: ReconciliationState) -> None:
    fields = _record_fields(message)
    if fields is None:
        return
    role = fields.get("role")
    if not isinstance(role, str):
        role = DEFAULT_ROLE
    content = extract_message_content(fields.get("content")).strip()
    if content:
        state.add_prompt_message(role, content)


def collect(value: Any, state: ReconciliationState) -> None:
    """Walk a decoded value and fold recognized fields into ``state``."""
    if isinstance(value, list):
        for item in value:
            collect(item, state)
        return

    if isinstance(value, TaggedRecord):
        for item in value.positional:
            collect(item, state)

    fields = _record_fields(value)
    if fields is None:
        return

    model = fields.get("model")
    if isinstance(model, str):
        state.set_model(model)

    messages = fields.get("messages")
    if isinstance(messages, list):
        for message in messages:
            _collect_prompt_message(message, state)

    for key, entry in fields.items():
        # Prompt-side fields are consumed here so their text never lands in
        # the response channels.
        if key == "messages":
            continue
        if key in _PROMPT_KEYS:
            if isinstance(entry, str) and entry.strip():
                state.add_prompt_extra(entry.strip())
            continue
        channel = _CHANNEL_BY_KEY.get(key)
        if channel and isinstance(entry, str) and entry.strip():
            state.add_response(channel, entry.strip())
        collect(entry, state)


def extract_candidates(line: str, profile: GrammarProfile | None = None) -> list[Any]:
    """Decoded values of one raw line that may carry request/response data."""
    profile = profile or default_profile()
    candidates: list[Any] = []

    classified = classify_line(line, profile)
    fields = _record_fields(classified.value)
    if fields is not None:
        candidates.append(classified.value)
    reached = list(fields.values()) if fields is not None else []

    for part in split_segments(line):
        pair = split_key_value(part)
        if not pair:
            continue
        parsed = try_parse_value(pair[1], profile)
        # A segment value already held by the classified mapping is walked once.
        if parsed.ok and parsed.value not in reached:
            candidates.append(parsed.value)
    return candidates


def reconcile(text: str, profile: GrammarProfile | None = None) -> ReconcileResult:
    """Rebuild one line per recognized field from a streaming log."""
    profile = profile or default_profile()
    state = ReconciliationState()

    for line in split_lines(text):
        trimmed = line.strip()
        if not trimmed or trimmed == config.SECTION_MARKER:
            continue
        for candidate in extract_candidates(line, profile):
            collect(candidate, state)

    output = state.output_lines()
    logger.debug("Reconciled %d output lines (model=%s)", len(output), state.model or "-")
    return ReconcileResult(text="\n".join(output), line_count=len(output))
