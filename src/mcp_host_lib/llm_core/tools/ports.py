"""Protocols for the tool side of the orchestration loop."""

from __future__ import annotations

from typing import Any, Dict, List, Protocol, runtime_checkable

from .models import ToolDescriptor


@runtime_checkable
class ToolExecutionPort(Protocol):
    """Executes a named tool and returns its textual result."""

    async def call(self, name: str, arguments: Dict[str, Any]) -> str:
        """Invoke ``name`` with decoded JSON ``arguments``."""
        ...


@runtime_checkable
class ToolProvider(ToolExecutionPort, Protocol):
    """A server exposing a discoverable set of tools."""

    @property
    def provider_id(self) -> str:
        """Stable identifier used in logs (usually the server endpoint or command)."""
        ...

    async def list_tools(self) -> List[ToolDescriptor]:
        """Fetch the tool descriptors currently offered by the provider."""
        ...
