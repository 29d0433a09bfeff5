import pytest

from mcp_host_lib.llm_core.tools import Directive, DirectivePolicy, format_directive, parse_directives


def test_no_directives_in_plain_text() -> None:
    assert parse_directives("It's 5°C in Linz.") == []
    assert parse_directives("") == []


def test_single_prefixed_directive() -> None:
    text = 'TOOL_CALL:get-weather:{"city":"Linz"}'
    directives = parse_directives(text)

    assert directives == [Directive(name="get-weather", raw_arguments='{"city":"Linz"}', start=0, end=len(text))]


def test_directive_surrounded_by_prose() -> None:
    text = 'Let me check. TOOL_CALL:get_weather:{"city": "Linz"} One moment please.'
    (directive,) = parse_directives(text)

    assert directive.name == "get_weather"
    assert directive.raw_arguments == '{"city": "Linz"}'
    assert text[directive.start : directive.end] == 'TOOL_CALL:get_weather:{"city": "Linz"}'


def test_multiple_directives_in_textual_order() -> None:
    text = 'TOOL_CALL:a:{"x":1}\nthen TOOL_CALL:b:{"y":{"z":2}} and TOOL_CALL:c:{}'
    directives = parse_directives(text)

    assert [d.name for d in directives] == ["a", "b", "c"]
    assert [d.raw_arguments for d in directives] == ['{"x":1}', '{"y":{"z":2}}', "{}"]


def test_braces_inside_strings_do_not_end_the_object() -> None:
    text = 'TOOL_CALL:echo:{"text": "a } b { \\" }"} trailing'
    (directive,) = parse_directives(text)

    assert directive.raw_arguments == '{"text": "a } b { \\" }"}'


def test_whitespace_between_colon_and_object() -> None:
    (directive,) = parse_directives('TOOL_CALL:search: \t{"q": "mcp"}')
    assert directive.raw_arguments == '{"q": "mcp"}'


def test_malformed_json_span_is_returned_verbatim() -> None:
    (directive,) = parse_directives('TOOL_CALL:get-weather:{"city":}')
    assert directive.name == "get-weather"
    assert directive.raw_arguments == '{"city":}'


def test_unterminated_object_consumes_rest_of_text() -> None:
    text = 'TOOL_CALL:get-weather:{"city": "Linz" TOOL_CALL:other:{}'
    directives = parse_directives(text)

    assert len(directives) == 1
    assert directives[0].raw_arguments == text[len("TOOL_CALL:get-weather:") :]
    assert directives[0].end == len(text)


def test_prefix_and_name_without_object_yields_empty_arguments() -> None:
    (directive,) = parse_directives("TOOL_CALL:get-weather: please")
    assert directive.name == "get-weather"
    assert directive.raw_arguments == ""


@pytest.mark.parametrize("text", ["TOOL_CALL:", "TOOL_CALL::{}", "TOOL_CALL:get weather:{}", "TOOL_CALL:name"])
def test_incomplete_prefixes_are_ignored(text: str) -> None:
    assert parse_directives(text) == []


def test_bare_form_rejected_by_default() -> None:
    assert parse_directives('get-weather:{"city":"Linz"}') == []


def test_bare_form_accepted_when_allowed() -> None:
    (directive,) = parse_directives('Sure. get-weather:{"city":"Linz"}', policy=DirectivePolicy.ALLOW_BARE)

    assert directive.name == "get-weather"
    assert directive.bare is True


def test_bare_form_limited_to_known_names() -> None:
    text = 'Note: {"not": "a call"} and get-weather:{"city":"Linz"}'
    directives = parse_directives(text, policy=DirectivePolicy.ALLOW_BARE, known_names=["get-weather"])

    assert [d.name for d in directives] == ["get-weather"]


def test_prefixed_directives_ignore_known_names() -> None:
    directives = parse_directives("TOOL_CALL:foo:{}", known_names=["get-weather"])
    assert [d.name for d in directives] == ["foo"]


def test_prefixed_and_bare_mixed() -> None:
    text = 'TOOL_CALL:a:{"n":1} b:{"n":2}'
    directives = parse_directives(text, policy=DirectivePolicy.ALLOW_BARE)

    assert [(d.name, d.bare) for d in directives] == [("a", False), ("b", True)]


def test_format_directive_round_trips_through_parser() -> None:
    text = format_directive("get-weather", '{"city": "Linz"}')

    assert text == 'TOOL_CALL:get-weather:{"city": "Linz"}'
    assert parse_directives(text)[0].raw_arguments == '{"city": "Linz"}'
