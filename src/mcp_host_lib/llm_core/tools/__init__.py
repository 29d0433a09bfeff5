"""Tool descriptors, directives, ports and the provider registry."""

from .models import ToolDescriptor, ToolInvocation
from .ports import ToolExecutionPort, ToolProvider
from .registry import ToolRegistry
from .directives import Directive, DirectivePolicy, DIRECTIVE_PREFIX, parse_directives, format_directive
from .schema import SchemaValidator

__all__ = [
    "ToolDescriptor",
    "ToolInvocation",
    "ToolExecutionPort",
    "ToolProvider",
    "ToolRegistry",
    "Directive",
    "DirectivePolicy",
    "DIRECTIVE_PREFIX",
    "parse_directives",
    "format_directive",
    "SchemaValidator",
]
