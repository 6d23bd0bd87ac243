"""Pydantic response models for the viewer API."""
from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Any, Optional


class DecodedLine(BaseModel):
    index: int
    kind: str  # "empty" | "raw" | "structured"
    text: str = ""
    value: Any = None
    repeat: int = 1


class LogReport(BaseModel):
    status: str
    path: Optional[str] = None
    litellm: bool = False
    profile: str = "extended"
    total: int = 0
    lines: list[DecodedLine] = Field(default_factory=list)


class HealthStatus(BaseModel):
    status: str = "ok"
    log: str = "unloaded"  # "loaded" | "unloaded"
    watcher: str = "stopped"  # "running" | "stopped"
