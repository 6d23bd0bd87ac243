"""Load the log file once and keep the text the viewer renders."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from traceview.observability import record_log_load, start_span
from traceview.parsers.lines import ClassifiedLine, classify_text, split_lines
from traceview.parsers.literal import GrammarProfile, get_profile
from traceview.parsers.reconcile import reconcile

logger = logging.getLogger("traceview")

USAGE_HINT = "No log file provided. Run: traceview path/to/log.txt"


@dataclass(frozen=True)
class LogState:
    text: str
    status: str
    path: Optional[str] = None


def load_log_from_file(
    path: str | Path | None,
    litellm: bool = False,
    profile: GrammarProfile | None = None,
) -> LogState:
    """Read ``path`` and, in LiteLLM mode, reassemble streamed fragments."""
    if not path:
        return LogState(text="", status=USAGE_HINT)

    file_path = Path(path)
    mode = "litellm" if litellm else "basic"
    if not file_path.is_file():
        record_log_load(mode, "missing", 0.0)
        return LogState(text="", status=f"File not found: {path}", path=str(path))

    started = time.perf_counter()
    with start_span("traceview.load_log", {"log.path": str(file_path), "log.mode": mode}):
        try:
            text = file_path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.error("Failed to read log file %s: %s", file_path, exc)
            record_log_load(mode, "error", (time.perf_counter() - started) * 1000)
            return LogState(text="", status=f"Failed to read {path}: {exc}", path=str(path))

        if litellm:
            normalized = reconcile(text, profile)
            state = LogState(
                text=normalized.text,
                status=f"Loaded {normalized.line_count} LiteLLM message lines from {path}",
                path=str(path),
            )
        else:
            state = LogState(
                text=text,
                status=f"Loaded {len(split_lines(text))} lines from {path}",
                path=str(path),
            )

    record_log_load(mode, "success", (time.perf_counter() - started) * 1000)
    logger.info("%s", state.status)
    return state


class LogStore:
    """Holds the currently loaded log and the options it was loaded with."""

    def __init__(self) -> None:
        self.path: Optional[str] = None
        self.litellm = False
        self.profile: GrammarProfile = get_profile(None)
        self._state = LogState(text="", status=USAGE_HINT)

    def configure(
        self,
        path: str | Path | None,
        litellm: bool = False,
        profile_name: str | None = None,
    ) -> LogState:
        self.path = str(path) if path else None
        self.litellm = litellm
        self.profile = get_profile(profile_name)
        return self.reload()

    def reload(self) -> LogState:
        self._state = load_log_from_file(self.path, self.litellm, self.profile)
        return self._state

    @property
    def state(self) -> LogState:
        return self._state

    def classified_lines(self) -> list[ClassifiedLine]:
        return classify_text(self._state.text, self.profile)


# Singleton instance
log_store = LogStore()
