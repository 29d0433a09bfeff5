"""Data models for tool execution."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(frozen=True)
class ToolInvocation:
    """A single tool call, alive for the duration of one round."""

    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    correlation_id: str = ""
