"""Tokenizer and recursive-descent parser for the permissive literal grammar.

The grammar accepts Python- and JS-flavoured literals as they show up in
application logs: quoted strings, numbers, ``None``/``null`` style keywords,
``[...]`` sequences, ``{...}`` mappings and ``Name(arg, key=value)``
constructor calls. Two grammar profiles exist; see ``PYTHON_PROFILE`` and
``EXTENDED_PROFILE``.
"""
from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from traceview import config
from traceview.observability import record_decode_failure

_NUMBER_PATTERN = re.compile(r"-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?")
_IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_HEX4_PATTERN = re.compile(r"[0-9A-Fa-f]{4}")
_WHITESPACE = {" ", "\t", "\n", "\r"}

# Integral doubles below this magnitude are exact and print without a fraction.
_MAX_SAFE_INTEGER = 2**53
_MAX_DEPTH = 200


class TokenKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    IDENTIFIER = "identifier"
    PUNCT = "punct"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str


@dataclass(frozen=True)
class GrammarProfile:
    """Lexical and keyword rules for one flavour of the literal grammar."""

    name: str
    quotes: frozenset[str]
    escapes: dict[str, str]
    keywords: dict[str, Any]
    unicode_escapes: bool = False
    null_literal: str = "None"
    true_literal: str = "True"
    false_literal: str = "False"


PYTHON_PROFILE = GrammarProfile(
    name="python",
    quotes=frozenset({"'"}),
    escapes={"n": "\n", "r": "\r", "t": "\t", "\\": "\\", "'": "'"},
    keywords={"None": None, "True": True, "False": False},
)

EXTENDED_PROFILE = GrammarProfile(
    name="extended",
    quotes=frozenset({"'", '"'}),
    escapes={
        "n": "\n",
        "r": "\r",
        "t": "\t",
        "\\": "\\",
        "'": "'",
        '"': '"',
        "/": "/",
        "b": "\b",
        "f": "\f",
    },
    keywords={
        "None": None,
        "null": None,
        "True": True,
        "true": True,
        "False": False,
        "false": False,
    },
    unicode_escapes=True,
    null_literal="null",
    true_literal="true",
    false_literal="false",
)

PROFILES: dict[str, GrammarProfile] = {
    PYTHON_PROFILE.name: PYTHON_PROFILE,
    EXTENDED_PROFILE.name: EXTENDED_PROFILE,
}


def get_profile(name: str | None) -> GrammarProfile:
    """Resolve a profile by name, falling back to the configured default."""
    token = (name or "").strip().lower()
    if token in PROFILES:
        return PROFILES[token]
    return PROFILES.get(config.GRAMMAR_PROFILE, EXTENDED_PROFILE)


def default_profile() -> GrammarProfile:
    return get_profile(config.GRAMMAR_PROFILE)


@dataclass
class TaggedRecord:
    """Decoded ``Name(positional..., key=value...)`` constructor call."""

    type_name: str
    positional: list[Any] = field(default_factory=list)
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass
class RawText:
    """Opaque text that could not be decoded and is shown verbatim."""

    text: str


class ParseError(ValueError):
    """Raised by the parser when the token stream does not form a literal."""


@dataclass(frozen=True)
class ParseResult:
    ok: bool
    value: Any = None


_FAILED = ParseResult(ok=False)


# ── Tokenizer ──────────────────────────────────────────────────────


def _join_chars(chars: list[str]) -> str:
    text = "".join(chars)
    if any("\ud800" <= char <= "\udfff" for char in text):
        # Pair up \uXXXX surrogate escapes; lone halves become U+FFFD.
        text = text.encode("utf-16", "surrogatepass").decode("utf-16", "replace")
    return text


def _read_string(text: str, index: int, quote: str, profile: GrammarProfile) -> tuple[str, int]:
    chars: list[str] = []
    length = len(text)
    while index < length:
        current = text[index]
        if current == "\\" and index + 1 < length:
            code = text[index + 1]
            if code in profile.escapes:
                chars.append(profile.escapes[code])
                index += 2
                continue
            if code == "u" and profile.unicode_escapes:
                digits = text[index + 2:index + 6]
                if _HEX4_PATTERN.fullmatch(digits):
                    chars.append(chr(int(digits, 16)))
                    index += 6
                    continue
        if current == quote:
            return _join_chars(chars), index + 1
        chars.append(current)
        index += 1
    # Unterminated strings run to the end of the input.
    return _join_chars(chars), index


def tokenize(text: str, profile: GrammarProfile | None = None) -> list[Token]:
    """Split one line into string, number, identifier and punctuation tokens."""
    profile = profile or default_profile()
    tokens: list[Token] = []
    index = 0
    length = len(text)

    while index < length:
        char = text[index]

        if char in _WHITESPACE:
            index += 1
            continue

        if char in profile.quotes:
            value, index = _read_string(text, index + 1, char, profile)
            tokens.append(Token(TokenKind.STRING, value))
            continue

        if char == "-" or "0" <= char <= "9":
            match = _NUMBER_PATTERN.match(text, index)
            if match:
                tokens.append(Token(TokenKind.NUMBER, match.group(0)))
                index = match.end()
                continue

        if char == "_" or ("a" <= char <= "z") or ("A" <= char <= "Z"):
            match = _IDENTIFIER_PATTERN.match(text, index)
            tokens.append(Token(TokenKind.IDENTIFIER, match.group(0)))
            index = match.end()
            continue

        tokens.append(Token(TokenKind.PUNCT, char))
        index += 1

    return tokens


# ── Parser ─────────────────────────────────────────────────────────


class LiteralParser:
    """Single-token-lookahead recursive descent over a token list."""

    def __init__(self, tokens: list[Token], profile: GrammarProfile | None = None):
        self.tokens = tokens
        self.profile = profile or default_profile()
        self.index = 0
        self._depth = 0

    def parse_value(self) -> Any:
        token = self._peek()
        if token is None:
            raise ParseError("Unexpected end of input")

        if token.kind is TokenKind.STRING:
            self.index += 1
            return token.text

        if token.kind is TokenKind.NUMBER:
            self.index += 1
            return float(token.text)

        if token.kind is TokenKind.IDENTIFIER:
            if token.text in self.profile.keywords:
                self.index += 1
                return self.profile.keywords[token.text]
            if self._is_punct("(", offset=1):
                return self._nested(self._parse_call)
            self.index += 1
            return token.text

        if token.text == "[":
            return self._nested(self._parse_sequence)
        if token.text == "{":
            return self._nested(self._parse_mapping)
        if token.text == "(":
            return self._nested(self._parse_group)

        raise ParseError(f"Unexpected token {token.text}")

    def parse_keyword_arguments(self) -> dict[str, Any]:
        """Parse ``key=value, key=value`` with no surrounding call syntax."""
        result: dict[str, Any] = {}
        while self._peek() is not None:
            if not self._starts_keyword_argument():
                raise ParseError("Expected keyword argument")
            key = self._consume_identifier()
            self._consume("=")
            result[key] = self.parse_value()
            if not self._is_punct(","):
                break
            self._consume(",")
        if not result:
            raise ParseError("Expected keyword argument")
        return result

    def ensure_complete(self) -> None:
        token = self._peek()
        if token is not None:
            raise ParseError(f"Unexpected trailing token {token.text}")

    def _nested(self, parse):
        self._depth += 1
        if self._depth > _MAX_DEPTH:
            raise ParseError("Nesting too deep")
        try:
            return parse()
        finally:
            self._depth -= 1

    def _parse_group(self) -> Any:
        self._consume("(")
        value = self.parse_value()
        self._consume(")")
        return value

    def _parse_sequence(self) -> list[Any]:
        self._consume("[")
        items: list[Any] = []
        while not self._is_punct("]"):
            items.append(self.parse_value())
            if not self._is_punct(","):
                break
            self._consume(",")
        self._consume("]")
        return items

    def _parse_mapping(self) -> dict[str, Any]:
        self._consume("{")
        result: dict[str, Any] = {}
        while not self._is_punct("}"):
            key = serialize_key(self.parse_value())
            self._consume(":")
            result[key] = self.parse_value()
            if not self._is_punct(","):
                break
            self._consume(",")
        self._consume("}")
        return result

    def _parse_call(self) -> TaggedRecord:
        record = TaggedRecord(self._consume_identifier())
        self._consume("(")
        while not self._is_punct(")"):
            if self._starts_keyword_argument():
                key = self._consume_identifier()
                self._consume("=")
                record.fields[key] = self.parse_value()
            else:
                record.positional.append(self.parse_value())
            if not self._is_punct(","):
                break
            self._consume(",")
        self._consume(")")
        return record

    def _starts_keyword_argument(self) -> bool:
        token = self._peek()
        return bool(token and token.kind is TokenKind.IDENTIFIER and self._is_punct("=", offset=1))

    def _consume(self, text: str) -> None:
        if not self._is_punct(text):
            raise ParseError(f"Expected '{text}'")
        self.index += 1

    def _consume_identifier(self) -> str:
        token = self._peek()
        if token is None or token.kind is not TokenKind.IDENTIFIER:
            raise ParseError("Expected identifier")
        self.index += 1
        return token.text

    def _is_punct(self, text: str, offset: int = 0) -> bool:
        token = self._peek(offset)
        return bool(token and token.kind is TokenKind.PUNCT and token.text == text)

    def _peek(self, offset: int = 0) -> Token | None:
        position = self.index + offset
        if position < len(self.tokens):
            return self.tokens[position]
        return None


# ── Canonical form ─────────────────────────────────────────────────


def _canonical_number(value: float | int) -> Any:
    number = float(value)
    if not math.isfinite(number):
        return None
    if number.is_integer() and abs(number) < _MAX_SAFE_INTEGER:
        return int(number)
    return number


def _format_number(value: float | int) -> str:
    number = float(value)
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "Infinity" if number > 0 else "-Infinity"
    canonical = _canonical_number(number)
    return str(canonical) if isinstance(canonical, int) else repr(canonical)


def canonicalize(value: Any) -> Any:
    """Normalize a decoded value so only serializable leaf types remain."""
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, (int, float)):
        return _canonical_number(value)
    if isinstance(value, (list, tuple)):
        return [canonicalize(item) for item in value]
    if isinstance(value, dict):
        return {serialize_key(key): canonicalize(item) for key, item in value.items()}
    if isinstance(value, TaggedRecord):
        return TaggedRecord(
            value.type_name,
            [canonicalize(item) for item in value.positional],
            {str(key): canonicalize(item) for key, item in value.fields.items()},
        )
    if isinstance(value, RawText):
        return RawText(value.text)
    return str(value)


def to_jsonable(value: Any) -> Any:
    """Convert a decoded value into plain JSON-compatible structures."""
    if isinstance(value, TaggedRecord):
        payload: dict[str, Any] = {"__type__": value.type_name}
        for key, item in value.fields.items():
            payload[key] = to_jsonable(item)
        if value.positional:
            payload["__args__"] = [to_jsonable(item) for item in value.positional]
        return payload
    if isinstance(value, RawText):
        return {"__raw__": value.text}
    if isinstance(value, list):
        return [to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    return value


def serialize_key(value: Any) -> str:
    """Mapping keys are strings; anything else uses its canonical text."""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _format_number(value)
    return json.dumps(to_jsonable(canonicalize(value)), separators=(",", ":"), ensure_ascii=False)


# ── Writer ─────────────────────────────────────────────────────────


def _quote(text: str) -> str:
    escaped = (
        text.replace("\\", "\\\\")
        .replace("'", "\\'")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f"'{escaped}'"


def to_literal(value: Any, profile: GrammarProfile | None = None) -> str:
    """Write a value in the literal grammar so ``profile`` parses it back."""
    profile = profile or default_profile()
    if value is None:
        return profile.null_literal
    if isinstance(value, bool):
        return profile.true_literal if value else profile.false_literal
    if isinstance(value, (int, float)):
        return _format_number(value)
    if isinstance(value, str):
        return _quote(value)
    if isinstance(value, RawText):
        return _quote(value.text)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(to_literal(item, profile) for item in value) + "]"
    if isinstance(value, dict):
        pairs = (f"{_quote(serialize_key(key))}: {to_literal(item, profile)}" for key, item in value.items())
        return "{" + ", ".join(pairs) + "}"
    if isinstance(value, TaggedRecord):
        names = [value.type_name, *value.fields.keys()]
        for name in names:
            if not _IDENTIFIER_PATTERN.fullmatch(name) or name in profile.keywords:
                raise ValueError(f"Cannot write {name!r} as an identifier")
        args = [to_literal(item, profile) for item in value.positional]
        args.extend(f"{key}={to_literal(item, profile)}" for key, item in value.fields.items())
        return f"{value.type_name}({', '.join(args)})"
    raise TypeError(f"Unsupported value type {type(value).__name__}")


# ── Normalizer ─────────────────────────────────────────────────────


def parse_literal(text: str, profile: GrammarProfile | None = None) -> Any:
    """Parse a complete literal, raising ``ParseError`` on any problem."""
    profile = profile or default_profile()
    parser = LiteralParser(tokenize(text, profile), profile)
    value = parser.parse_value()
    parser.ensure_complete()
    return canonicalize(value)


def try_parse_value(text: str, profile: GrammarProfile | None = None) -> ParseResult:
    """Attempt to decode ``text`` as a literal; never raises."""
    try:
        return ParseResult(ok=True, value=parse_literal(text, profile))
    except ParseError:
        record_decode_failure("literal")
        return _FAILED


def try_parse_keyword_arguments(text: str, profile: GrammarProfile | None = None) -> ParseResult:
    """Attempt to decode ``key=value, ...`` into a mapping; never raises."""
    profile = profile or default_profile()
    parser = LiteralParser(tokenize(text, profile), profile)
    try:
        value = parser.parse_keyword_arguments()
        parser.ensure_complete()
    except ParseError:
        return _FAILED
    return ParseResult(ok=True, value=canonicalize(value))
