"""Extraction of tool-call directives from free-form model output.

A directive has the shape ``TOOL_CALL:<name>:<json-object>`` where ``<name>``
consists of ``[a-zA-Z0-9_-]`` characters and ``<json-object>`` is a balanced
``{...}`` span. Directives are read left to right; each one consumes its span
before the search continues. With :attr:`DirectivePolicy.ALLOW_BARE` the
prefix may be omitted (``<name>:{...}``).

The functions in this module are pure: they only look at text and never
decode the JSON themselves.
"""

from __future__ import annotations

import string
from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet, Iterable, List, Optional

DIRECTIVE_PREFIX = "TOOL_CALL:"

_NAME_CHARS = frozenset(string.ascii_letters + string.digits + "_-")


class DirectivePolicy(str, Enum):
    """Which directive spellings are recognised."""

    STRICT = "strict"
    ALLOW_BARE = "allow_bare"


@dataclass(frozen=True)
class Directive:
    """A tool call found in model text.

    Attributes:
        name: Tool name.
        raw_arguments: The argument span exactly as written (may be empty or invalid JSON).
        start: Offset of the first character of the directive.
        end: Offset just past the directive.
        bare: True when the directive was written without the ``TOOL_CALL:`` prefix.
    """

    name: str
    raw_arguments: str
    start: int
    end: int
    bare: bool = False


def format_directive(name: str, arguments_json: str) -> str:
    """Render a tool call in directive form."""
    return f"{DIRECTIVE_PREFIX}{name}:{arguments_json}"


def parse_directives(
    text: str,
    policy: DirectivePolicy = DirectivePolicy.STRICT,
    known_names: Optional[Iterable[str]] = None,
) -> List[Directive]:
    """Extract all directives from ``text`` in textual order.

    Args:
        text: Model output.
        policy: Whether bare ``name:{...}`` directives are accepted.
        known_names: When given, bare directives are only accepted for these names.
            Prefixed directives are always returned so unknown tools can be reported.

    Returns:
        The directives found, possibly empty.
    """
    names = frozenset(known_names) if known_names is not None else None
    directives: List[Directive] = []
    index = 0
    length = len(text)

    while index < length:
        directive = _read_directive(text, index, policy, names)
        if directive is None:
            index += 1
            continue
        directives.append(directive)
        index = directive.end

    return directives


def _read_directive(
    text: str, start: int, policy: DirectivePolicy, names: Optional[AbstractSet[str]]
) -> Optional[Directive]:
    if text.startswith(DIRECTIVE_PREFIX, start):
        name_start = start + len(DIRECTIVE_PREFIX)
        bare = False
    elif policy is DirectivePolicy.ALLOW_BARE and _at_word_start(text, start):
        name_start = start
        bare = True
    else:
        return None

    name_end = _scan_name(text, name_start)
    if name_end == name_start or name_end >= len(text) or text[name_end] != ":":
        return None
    name = text[name_start:name_end]

    args_start = _skip_whitespace(text, name_end + 1)
    has_object = args_start < len(text) and text[args_start] == "{"

    if bare and (not has_object or (names is not None and name not in names)):
        return None

    if not has_object:
        # Prefix and name without arguments; reported as invalid arguments downstream.
        return Directive(name=name, raw_arguments="", start=start, end=name_end + 1, bare=bare)

    args_end = _scan_object(text, args_start)
    return Directive(name=name, raw_arguments=text[args_start:args_end], start=start, end=args_end, bare=bare)


def _at_word_start(text: str, index: int) -> bool:
    if text[index] not in _NAME_CHARS:
        return False
    return index == 0 or (text[index - 1] not in _NAME_CHARS and text[index - 1] != ":")


def _scan_name(text: str, index: int) -> int:
    while index < len(text) and text[index] in _NAME_CHARS:
        index += 1
    return index


def _skip_whitespace(text: str, index: int) -> int:
    while index < len(text) and text[index] in " \t":
        index += 1
    return index


def _scan_object(text: str, start: int) -> int:
    """Return the offset just past the brace that closes the object at ``start``.

    Braces inside JSON strings are ignored. An unterminated object runs to the end of the text.
    """
    depth = 0
    in_string = False
    escaped = False

    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index + 1

    return len(text)
