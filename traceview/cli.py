#!/usr/bin/env python3
"""Command-line entry point.

Usage:
  traceview path/to/log.txt
  traceview path/to/log.txt --litellm
  traceview path/to/log.txt --dump --profile python
"""
from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

from traceview import config
from traceview.log_state import log_store
from traceview.parsers.literal import PROFILES
from traceview.rendering import dump_lines


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="traceview", description="Render semi-structured logs as value trees.")
    parser.add_argument("path", nargs="?", default=config.LOG_PATH or None)
    parser.add_argument("--litellm", action="store_true", default=config.LITELLM_MODE,
                        help="Reassemble streamed LiteLLM fragments before rendering")
    parser.add_argument("--dump", action="store_true", help="Print '<n>: <value>' lines and exit")
    parser.add_argument("--profile", choices=sorted(PROFILES), default=config.GRAMMAR_PROFILE)
    parser.add_argument("--host", default=config.HOST)
    parser.add_argument("--port", type=int, default=config.PORT)
    parser.add_argument("--watch", action="store_true", default=config.WATCH_ENABLED,
                        help="Reload the log file when it changes")
    return parser


def _normalize_flags(argv: Sequence[str]) -> list[str]:
    # `--LiteLLM` and friends are accepted regardless of case.
    return ["--litellm" if arg.lower() == "--litellm" else arg for arg in argv]


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(_normalize_flags(sys.argv[1:] if argv is None else argv))

    state = log_store.configure(args.path, args.litellm, args.profile)

    if args.dump:
        print(state.status)
        if state.text:
            print(dump_lines(log_store.classified_lines()))
        return 0

    import uvicorn

    from traceview.main import app

    config.WATCH_ENABLED = args.watch
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
