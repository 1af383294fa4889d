"""Unit tests for tolerant model-JSON parsing."""

from __future__ import annotations

from docqa.utils.json_parsing import (
    STRATEGY_BRACKET,
    STRATEGY_FENCED,
    STRATEGY_RAW,
    STRATEGY_STRICT,
    expect_array,
    expect_object,
    parse_model_json,
)


class TestParseModelJson:
    def test_strict_object(self) -> None:
        parsed = parse_model_json('{"title": "Report"}')
        assert parsed.strategy == STRATEGY_STRICT
        assert parsed.value == {"title": "Report"}
        assert parsed.ok

    def test_fenced_block(self) -> None:
        parsed = parse_model_json('```json\n[{"question": "Q", "answer": "A"}]\n```')
        assert parsed.strategy == STRATEGY_FENCED
        assert parsed.value == [{"question": "Q", "answer": "A"}]

    def test_object_wrapped_in_prose(self) -> None:
        parsed = parse_model_json('Here is the data: {"pages": []} Hope this helps!')
        assert parsed.strategy == STRATEGY_BRACKET
        assert parsed.value == {"pages": []}

    def test_braces_inside_strings_do_not_confuse_the_scan(self) -> None:
        text = 'Result -> {"text": "a } tricky \\" {string", "n": 1} trailing'
        parsed = parse_model_json(text)
        assert parsed.value == {"text": 'a } tricky " {string', "n": 1}

    def test_skips_unparseable_bracket_spans(self) -> None:
        parsed = parse_model_json('See [note 1]. {"ok": true}')
        assert parsed.value == {"ok": True}

    def test_plain_text_falls_back_to_raw(self) -> None:
        parsed = parse_model_json("The document discusses quarterly revenue.")
        assert parsed.strategy == STRATEGY_RAW
        assert parsed.value is None
        assert not parsed.ok
        assert parsed.raw_text == "The document discusses quarterly revenue."

    def test_unbalanced_json_is_raw(self) -> None:
        assert parse_model_json('{"pages": [').strategy == STRATEGY_RAW


class TestExpectHelpers:
    def test_expect_object(self) -> None:
        assert expect_object(parse_model_json('{"a": 1}')) == {"a": 1}
        assert expect_object(parse_model_json("[1, 2]")) is None
        assert expect_object(parse_model_json("nope")) is None

    def test_expect_array(self) -> None:
        assert expect_array(parse_model_json("[1, 2]")) == [1, 2]
        assert expect_array(parse_model_json("nope")) is None

    def test_expect_array_unwraps_single_list_in_object(self) -> None:
        parsed = parse_model_json('{"pairs": [{"question": "Q", "answer": "A"}]}')
        assert expect_array(parsed) == [{"question": "Q", "answer": "A"}]

    def test_expect_array_rejects_ambiguous_object(self) -> None:
        assert expect_array(parse_model_json('{"a": [1], "b": [2]}')) is None
