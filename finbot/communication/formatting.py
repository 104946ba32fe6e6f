"""Lark message content parsing and reply composition.

Lark text messages carry their payload as a JSON string, e.g.
``{"text": "hello"}``. Parsing returns a typed result instead of raising,
so callers pick a fallback without exception plumbing.
"""

import json
from dataclasses import dataclass
from typing import Optional, Union

MSG_TYPE_TEXT = "text"

FALLBACK_NOTICE = "解析消息失败，请发送文本消息\nparse message failed, please send text message"

# One line per language; the extracted text is embedded in each.
_REPLY_TEMPLATES = (
    "收到你发送的消息: {text}",
    "Received message: {text}",
)


@dataclass(frozen=True)
class ParsedText:
    text: str


@dataclass(frozen=True)
class ParseFailure:
    reason: str


ParseResult = Union[ParsedText, ParseFailure]


def parse_text_content(body: Optional[str]) -> ParseResult:
    """Extract the display text from a Lark content payload.

    A payload must be a JSON object of string values; a missing ``text``
    key yields empty text. JSON ``null`` reads as empty, both for the
    whole payload and for a single value.
    """
    if body is None:
        return ParseFailure("content is missing")
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, TypeError) as e:
        return ParseFailure(f"invalid JSON: {e}")

    if payload is None:
        return ParsedText("")
    if not isinstance(payload, dict):
        return ParseFailure(f"expected an object, got {type(payload).__name__}")
    if not all(v is None or isinstance(v, str) for v in payload.values()):
        return ParseFailure("payload values must be strings")

    return ParsedText(payload.get("text") or "")


def fallback_text(failure: ParseFailure) -> str:
    """Text shown instead of the user's message when it cannot be echoed."""
    return FALLBACK_NOTICE


def display_text(result: ParseResult, message_kind: Optional[str]) -> str:
    """Pick the text to embed in a reply: parsed text for text messages, else the fallback."""
    if isinstance(result, ParseFailure):
        return fallback_text(result)
    if message_kind != MSG_TYPE_TEXT:
        return fallback_text(ParseFailure(f"unsupported message type: {message_kind}"))
    return result.text


def text_content(*lines: str) -> str:
    """Serialize lines as Lark text content; each line ends with a newline."""
    return json.dumps({"text": "".join(f"{line}\n" for line in lines)}, ensure_ascii=False)


def build_reply_content(text: str) -> str:
    """Two-line bilingual acknowledgement embedding ``text``."""
    return text_content(*(template.format(text=text) for template in _REPLY_TEMPLATES))
