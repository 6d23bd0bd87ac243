"""traceview configuration."""
import os


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_choice(name: str, choices: set[str], default: str) -> str:
    value = (os.getenv(name) or "").strip().lower()
    return value if value in choices else default


# Log source
LOG_PATH = os.getenv("TRACEVIEW_LOG_PATH", "")
LITELLM_MODE = _env_bool("TRACEVIEW_LITELLM", False)
WATCH_ENABLED = _env_bool("TRACEVIEW_WATCH", False)

# Decoding
GRAMMAR_PROFILE = _env_choice("TRACEVIEW_GRAMMAR_PROFILE", {"extended", "python"}, "extended")
SECTION_MARKER = "Raw OpenAI Chunk"
REPEAT_MARKER = "×"

# Observability
OTEL_ENABLED = _env_bool("TRACEVIEW_OTEL_ENABLED", False)
OTEL_ENDPOINT = os.getenv("TRACEVIEW_OTEL_ENDPOINT", "http://localhost:4318")
OTEL_SERVICE_NAME = os.getenv("TRACEVIEW_OTEL_SERVICE_NAME", "traceview")
PROM_PORT = _env_int("TRACEVIEW_PROM_PORT", 9464)

# Server settings
HOST = os.getenv("TRACEVIEW_HOST", "127.0.0.1")
PORT = _env_int("TRACEVIEW_PORT", 3000)
