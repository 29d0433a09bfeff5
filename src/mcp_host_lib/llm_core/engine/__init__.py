"""Orchestration engine and the model port it drives."""

from .orchestrator import OrchestrationEngine, OrchestrationState
from .ports import LanguageModelPort, ToolCallingStyle
from .prompts import DEFAULT_SYSTEM_PROMPT, build_tools_prompt, render_tool_result

__all__ = [
    "OrchestrationEngine",
    "OrchestrationState",
    "LanguageModelPort",
    "ToolCallingStyle",
    "DEFAULT_SYSTEM_PROMPT",
    "build_tools_prompt",
    "render_tool_result",
]
