"""HTML and plain-text presentation of classified log lines."""
from __future__ import annotations

import html
import json
import logging
from typing import Any, Iterable

from traceview.parsers.lines import ClassifiedLine, LineKind
from traceview.parsers.literal import RawText, TaggedRecord, to_jsonable
from traceview.parsers.preprocess import repeat_suffix

logger = logging.getLogger("traceview")


def esc(value: Any) -> str:
    return html.escape(str(value), quote=True)


def _format_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _node(label: str, children: str, open_: bool) -> str:
    open_attr = " open" if open_ else ""
    return (
        f'<details class="node"{open_attr}>'
        f"<summary>{label}</summary>"
        f'<div class="children">{children}</div>'
        "</details>"
    )


def _entry(key: Any, value: Any, depth: int) -> str:
    return f'<div class="entry"><span class="key">{esc(key)}</span>{render_value(value, depth + 1)}</div>'


def render_value(value: Any, depth: int = 0) -> str:
    """Render a decoded value as a collapsible HTML tree."""
    if value is None:
        return '<span class="literal null">null</span>'
    if isinstance(value, str):
        return f"<span class=\"string\">'{esc(value)}'</span>"
    if isinstance(value, (bool, int, float)):
        return f'<span class="literal">{esc(_format_scalar(value))}</span>'
    if isinstance(value, RawText):
        return f'<span class="raw">{esc(value.text)}</span>'
    if isinstance(value, list):
        items = "".join(_entry(index, item, depth) for index, item in enumerate(value))
        return _node(f"Array({len(value)})", items, depth <= 1)
    if isinstance(value, TaggedRecord):
        entries = list(value.fields.items())
        if value.positional:
            entries.append(("__args__", value.positional))
        label = esc(value.type_name)
    elif isinstance(value, dict):
        entries = list(value.items())
        label = "Object"
    else:
        return f'<span class="literal">{esc(value)}</span>'

    children = "".join(_entry(key, item, depth) for key, item in entries)
    if not entries:
        label += " {}"
    return _node(label, children, depth == 0)


def render_line(line: ClassifiedLine, index: int) -> str:
    number = f'<span class="line-no">{index}</span>'
    try:
        if line.kind is LineKind.EMPTY:
            body = '<span class="empty">(empty)</span>'
        elif line.kind is LineKind.RAW:
            body = f'<span class="raw">{esc(line.text)}</span>'
        else:
            body = render_value(line.value, 0)
    except Exception:  # noqa: BLE001
        logger.exception("Failed to render line %s", index)
        body = f'<span class="raw">{esc(line.text)}</span>'
    if line.repeat > 1:
        body += f'<span class="repeat">{esc(repeat_suffix(line.repeat).strip())}</span>'
    return f'<div class="line">{number}{body}</div>'


_STYLE = """
    :root {
      color-scheme: dark;
      --bg: #0e1116;
      --text: #d6dbe3;
      --muted: #8b96a9;
      --key: #88c0f0;
      --string: #e7c787;
      --literal: #9bd67c;
      --line: #202734;
      --accent: #ffb370;
    }
    * { box-sizing: border-box; }
    body {
      margin: 0;
      font-family: "Fira Code", "JetBrains Mono", "Consolas", monospace;
      background: var(--bg);
      color: var(--text);
    }
    header { padding: 20px 24px 8px; }
    h1 { margin: 0 0 8px; font-size: 1.6rem; letter-spacing: 0.5px; }
    p { margin: 0; color: var(--muted); }
    .container { padding: 8px 24px 32px; }
    .report { display: grid; gap: 4px; }
    .line { display: flex; gap: 12px; padding: 2px 0; border-bottom: 1px solid var(--line); }
    .line-no { display: inline-block; width: 48px; color: var(--muted); flex-shrink: 0; text-align: right; }
    .key { color: var(--key); margin-right: 6px; }
    .string { color: var(--string); }
    .literal { color: var(--literal); }
    .literal.null { color: #e58a8a; }
    .raw { color: var(--text); white-space: pre-wrap; }
    .empty { color: var(--muted); font-style: italic; }
    .repeat { color: var(--muted); margin-left: 8px; }
    details.node > summary { cursor: pointer; color: var(--accent); }
    .children { padding: 6px 0 4px 16px; display: grid; gap: 4px; }
    .entry { display: flex; gap: 8px; align-items: flex-start; }
"""


def render_report(lines: Iterable[ClassifiedLine], status: str) -> str:
    """Render the whole viewer page."""
    rendered = "".join(render_line(line, index) for index, line in enumerate(lines, start=1))
    body = rendered or '<p class="empty">No log lines provided.</p>'
    return f"""<!doctype html>
<html lang="en">
  <head>
    <meta charset="UTF-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>LLM Trace Viewer</title>
    <style>{_STYLE}</style>
  </head>
  <body>
    <header>
      <h1>LLM Trace Raw View</h1>
      <p>{esc(status)}</p>
    </header>
    <section class="container">
      <div class="report">{body}</div>
    </section>
  </body>
</html>"""


def dump_line(line: ClassifiedLine) -> str:
    """Serialize one classified line for the plain-text dump."""
    if line.kind is LineKind.EMPTY:
        return ""
    suffix = repeat_suffix(line.repeat) if line.repeat > 1 else ""
    if line.kind is LineKind.RAW:
        return json.dumps({"__raw__": line.text}, ensure_ascii=False) + suffix
    try:
        return json.dumps(to_jsonable(line.value), ensure_ascii=False) + suffix
    except (TypeError, ValueError) as exc:
        return f"error: {exc}"


def dump_lines(lines: Iterable[ClassifiedLine]) -> str:
    """Line-numbered ``<n>: <value>`` dump of classified lines."""
    return "\n".join(f"{index}: {dump_line(line)}" for index, line in enumerate(lines, start=1))
