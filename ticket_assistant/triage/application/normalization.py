"""
Provider Response Normalization
===============================

Classification providers (and different versions of the same SDK) hand
back differently shaped responses. Each extraction rule below is a pure
function that inspects one known shape and yields the string payloads it
finds; rules run in priority order.
"""

import json
import re
from typing import Any, Callable, Iterable, Iterator, List, Optional


FENCE_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)

ITEM_TEXT_FIELDS = ("text", "context", "content")


def _field(obj: Any, name: str) -> Any:
    """Read ``name`` from a mapping key or an object attribute."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _strings(*values: Any) -> Iterator[str]:
    for value in values:
        if isinstance(value, str) and value.strip():
            yield value


def output_items(response: Any) -> Iterator[str]:
    """Batched ``output`` list: plain strings or items exposing text/context/content."""
    output = _field(response, "output")
    if not isinstance(output, (list, tuple)):
        return
    for item in output:
        if isinstance(item, str):
            yield from _strings(item)
            continue
        yield from _strings(*(_field(item, name) for name in ITEM_TEXT_FIELDS))


def output_string(response: Any) -> Iterator[str]:
    """``output`` given as a single string."""
    yield from _strings(_field(response, "output"))


def chat_choices(response: Any) -> Iterator[str]:
    """OpenAI-style ``choices[*].message.content``."""
    choices = _field(response, "choices")
    if not isinstance(choices, (list, tuple)):
        return
    for choice in choices:
        yield from _strings(_field(_field(choice, "message"), "content"))


def combined_text(response: Any) -> Iterator[str]:
    """Single combined ``text`` field."""
    yield from _strings(_field(response, "text"))


def combined_content(response: Any) -> Iterator[str]:
    """Single combined ``content`` field."""
    yield from _strings(_field(response, "content"))


def output_text(response: Any) -> Iterator[str]:
    """``output_string`` / ``outputString`` / ``output_text`` convenience fields."""
    yield from _strings(
        _field(response, "output_string"),
        _field(response, "outputString"),
        _field(response, "output_text"),
    )


def raw_string(response: Any) -> Iterator[str]:
    """The response itself is already text."""
    yield from _strings(response)


ExtractionRule = Callable[[Any], Iterable[str]]

EXTRACTION_RULES: List[ExtractionRule] = [
    raw_string,
    output_items,
    output_string,
    chat_choices,
    combined_text,
    combined_content,
    output_text,
]


def extract_payloads(response: Any, rules: Optional[List[ExtractionRule]] = None) -> List[str]:
    """All non-empty string payloads, in rule priority order, without duplicates."""
    payloads: List[str] = []
    for rule in rules or EXTRACTION_RULES:
        for candidate in rule(response):
            if candidate not in payloads:
                payloads.append(candidate)
    return payloads


def strip_code_fence(raw: str) -> str:
    """Return the body of the first ``` fenced block (language tag optional), or the trimmed text if unfenced."""
    match = FENCE_PATTERN.search(raw)
    return match.group(1).strip() if match else raw.strip()


def decode_payload(raw: str) -> dict:
    """
    Decode one candidate payload.

    Raises:
        ValueError: if the text is not JSON or not a JSON object
    """
    decoded = json.loads(strip_code_fence(raw))
    if not isinstance(decoded, dict):
        raise ValueError(f"expected a JSON object, got {type(decoded).__name__}")
    return decoded
