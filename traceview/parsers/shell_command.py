"""Structured extraction for ``curl`` invocations pasted into logs."""
from __future__ import annotations

import json
import re
from typing import Any

from traceview.parsers.literal import GrammarProfile, TaggedRecord, canonicalize, try_parse_value

COMMAND_NAME = "curl"

_COMMAND_PATTERN = re.compile(r"^curl\s")
_METHOD_PATTERN = re.compile(r"\s-X\s+['\"]?([A-Za-z]+)")
_URL_AFTER_COMMAND_PATTERN = re.compile(r"^curl\s+['\"]?(https?://[^\s'\"]+)")
_URL_AFTER_METHOD_PATTERN = re.compile(r"\s-X\s+['\"]?[A-Za-z]+['\"]?\s+['\"]?(https?://[^\s'\"]+)")
_DATA_FLAG_PATTERN = re.compile(r"\s-d\s")
_HEADER_PATTERN = re.compile(r"""-H\s+(?:'([^']*)'|"([^"]*)")""")
_BODY_PATTERN = re.compile(r"""\s-d\s+(?:'(.*)'|"(.*)")\s*$""")


def _extract_url(line: str) -> str | None:
    for pattern in (_URL_AFTER_COMMAND_PATTERN, _URL_AFTER_METHOD_PATTERN):
        match = pattern.search(line)
        if match:
            return match.group(1)
    return None


def _extract_headers(line: str) -> dict[str, str]:
    data_flag = _DATA_FLAG_PATTERN.search(line)
    head = line[: data_flag.start()] if data_flag else line
    headers: dict[str, str] = {}
    for single, double in _HEADER_PATTERN.findall(head):
        raw = single or double
        if ":" not in raw:
            continue
        name, _, value = raw.partition(":")
        headers[name.strip()] = value.strip()
    return headers


def _decode_body(body: str, profile: GrammarProfile | None) -> Any:
    stripped = body.strip()
    if stripped.startswith(("{", "[")):
        try:
            return canonicalize(json.loads(stripped))
        except (ValueError, RecursionError):
            pass
    parsed = try_parse_value(stripped, profile)
    return parsed.value if parsed.ok else body


def extract_shell_command(line: str, profile: GrammarProfile | None = None) -> TaggedRecord | None:
    """Return a ``curl`` record for lines starting with ``curl``, else ``None``.

    Each field is searched independently, so flags may appear in any order.
    Headers are only read from the part of the line before the first ``-d``
    flag so header-like text inside a request body is ignored.
    """
    if not _COMMAND_PATTERN.match(line):
        return None

    record = TaggedRecord(COMMAND_NAME)

    method = _METHOD_PATTERN.search(line)
    if method:
        record.fields["method"] = method.group(1)

    url = _extract_url(line)
    if url:
        record.fields["url"] = url

    headers = _extract_headers(line)
    if headers:
        record.fields["headers"] = headers

    body = _BODY_PATTERN.search(line)
    if body:
        raw = body.group(1) if body.group(1) is not None else body.group(2)
        record.fields["body"] = _decode_body(raw, profile)

    return record
