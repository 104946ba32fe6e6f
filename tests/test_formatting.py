"""Tests for Lark content parsing and reply composition."""

import json

from finbot.communication.formatting import (
    FALLBACK_NOTICE,
    ParseFailure,
    ParsedText,
    build_reply_content,
    display_text,
    fallback_text,
    parse_text_content,
    text_content,
)


class TestParseTextContent:

    def test_text_payload(self):
        assert parse_text_content('{"text":"hello"}') == ParsedText("hello")

    def test_missing_text_key_is_empty(self):
        assert parse_text_content('{"other":"x"}') == ParsedText("")

    def test_invalid_json(self):
        assert isinstance(parse_text_content("not json"), ParseFailure)

    def test_none_body(self):
        assert isinstance(parse_text_content(None), ParseFailure)

    def test_non_object(self):
        result = parse_text_content('["a", "b"]')
        assert isinstance(result, ParseFailure)
        assert "list" in result.reason

    def test_non_string_values(self):
        # image payloads and the like do not decode as string maps
        assert isinstance(parse_text_content('{"image_key":"k","width":100}'), ParseFailure)

    def test_null_value_is_allowed(self):
        assert parse_text_content('{"text":"hi","mentions":null}') == ParsedText("hi")

    def test_null_text_is_empty(self):
        assert parse_text_content('{"text":null}') == ParsedText("")

    def test_top_level_null_is_empty(self):
        assert parse_text_content("null") == ParsedText("")


class TestDisplayText:

    def test_text_message(self):
        assert display_text(ParsedText("hi"), "text") == "hi"

    def test_failure_uses_fallback(self):
        assert display_text(ParseFailure("bad"), "text") == FALLBACK_NOTICE

    def test_non_text_kind_uses_fallback(self):
        assert display_text(ParsedText("hi"), "image") == FALLBACK_NOTICE

    def test_fallback_is_pure(self):
        assert fallback_text(ParseFailure("a")) == fallback_text(ParseFailure("b"))


class TestReplyContent:

    def test_two_language_lines(self):
        payload = json.loads(build_reply_content("hello"))
        assert payload == {"text": "收到你发送的消息: hello\nReceived message: hello\n"}

    def test_non_ascii_kept_readable(self):
        assert "收到" in build_reply_content("你好")

    def test_text_content_single_line(self):
        assert json.loads(text_content("helloworld")) == {"text": "helloworld\n"}
