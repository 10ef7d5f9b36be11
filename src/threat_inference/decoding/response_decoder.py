"""
Lenient decoding of inference replies.

Workers AI returns structured output in several shapes depending on the
model and binding:

- {"response": {...}}             already-parsed object
- {"response": "{...}"}           JSON-encoded string
- {"response": "Sure! {...} ..."} JSON embedded in prose
- "{...}"                         bare string, no envelope
- {"choices": [{"message": {"content": "..."}}]}  chat-completions models
- {"result": {...}, "success": true}               raw REST envelope

decode_response unwraps the envelope and runs an ordered chain of
independent attempts. Each attempt either returns a dict or raises a
DecodeError; the first success wins.
"""

import json
from collections.abc import Mapping
from typing import Any, Callable, Optional

import structlog
from pydantic import BaseModel

from threat_inference.decoding.exceptions import (
    DecodeError,
    JSONParseError,
    NoJSONObjectError,
    UnsupportedReplyError,
)
from threat_inference.monitoring.metrics import decode_attempts_total, decode_failures_total

logger = structlog.get_logger(__name__)


def unwrap_reply(reply: Any) -> Any:
    """
    Strip transport envelopes and return the model's payload.

    Anything that is not a known envelope is returned unchanged.
    """
    if isinstance(reply, Mapping):
        if isinstance(reply.get("result"), Mapping) and (
            "response" in reply["result"] or "choices" in reply["result"] or "data" in reply["result"]
        ):
            return unwrap_reply(reply["result"])
        if "response" in reply:
            return reply["response"]
        choices = reply.get("choices")
        if isinstance(choices, list) and choices and isinstance(choices[0], Mapping):
            message = choices[0].get("message")
            if isinstance(message, Mapping) and "content" in message:
                return message["content"]
            if "text" in choices[0]:
                return choices[0]["text"]
    return reply


def find_json_object(text: str) -> Optional[str]:
    """
    Locate the first balanced JSON object in free text.

    Starts at the first "{" and counts braces up to its matching "}".
    Braces inside JSON strings (including escaped quotes) are ignored, so
    nested objects and values such as "a {b} c" do not end the match early.

    Returns:
        The object text, or None when there is no "{" or it never closes.
    """
    start = text.find("{")
    if start == -1:
        return None

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
                return text[start:index + 1]
    return None


# === Decode attempts ===


def _from_typed_object(value: Any) -> dict:
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, Mapping):
        return dict(value)
    raise UnsupportedReplyError(
        "Reply is not an object", details={"reply_type": type(value).__name__}
    )


def _loads_object(text: str) -> dict:
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise JSONParseError(
            f"Failed to parse reply as JSON: {e.msg}",
            raw_content=text,
            parse_error=f"{e.msg} at line {e.lineno} col {e.colno}",
        ) from e

    # Double-encoded payloads: "\"{\\\"tldr\\\": ...}\""
    if isinstance(parsed, str):
        return _loads_object(parsed)
    if not isinstance(parsed, dict):
        raise JSONParseError(
            f"Reply is not a JSON object (got {type(parsed).__name__})",
            raw_content=text,
        )
    return parsed


def _from_json_string(value: Any) -> dict:
    if not isinstance(value, str):
        raise UnsupportedReplyError(
            "Reply is not a string", details={"reply_type": type(value).__name__}
        )
    if not value.strip():
        raise JSONParseError("Reply is empty or whitespace-only")
    return _loads_object(value.strip())


def _from_embedded_object(value: Any) -> dict:
    if not isinstance(value, str):
        raise UnsupportedReplyError(
            "Reply is not a string", details={"reply_type": type(value).__name__}
        )
    candidate = find_json_object(value)
    if candidate is None:
        raise NoJSONObjectError(
            "No balanced JSON object found in reply text",
            details={"content_snippet": value[:200]},
        )
    return _loads_object(candidate)


DECODE_ATTEMPTS: tuple[tuple[str, Callable[[Any], dict]], ...] = (
    ("typed_object", _from_typed_object),
    ("json_string", _from_json_string),
    ("brace_extraction", _from_embedded_object),
)


def decode_response(reply: Any, fallback_value: Any = None) -> Any:
    """
    Turn an inference reply into a dict.

    Args:
        reply: Raw reply from an inference call
        fallback_value: Returned when nothing can be decoded and the reply
            is not itself an object

    Returns:
        The decoded dict; the original reply unchanged when every attempt
        failed but the reply is a mapping; otherwise fallback_value.
    """
    payload = unwrap_reply(reply)

    failures: list[dict[str, Any]] = []
    for name, attempt in DECODE_ATTEMPTS:
        try:
            decoded = attempt(payload)
        except DecodeError as e:
            failures.append({"attempt": name, "error": e.message})
            continue
        decode_attempts_total.labels(attempt=name).inc()
        return decoded

    if isinstance(reply, Mapping):
        # Unknown envelope; hand it through so newer reply shapes still reach validation
        decode_attempts_total.labels(attempt="raw_object").inc()
        logger.debug("Returning undecoded object reply", keys=list(reply.keys())[:20])
        return reply

    decode_failures_total.labels(reply_type=type(payload).__name__).inc()
    logger.warning(
        "Could not decode inference reply",
        reply_type=type(payload).__name__,
        preview=str(payload)[:100],
        failures=failures,
    )
    return fallback_value


def validate_response(value: Any, required_fields: list[str]) -> bool:
    """
    Check that every required field is present and non-empty.

    A field fails when it is absent, None, or an empty string. Empty lists
    pass: "no IOCs found" is a valid answer.
    """
    if not isinstance(value, Mapping):
        return False

    for field in required_fields:
        if field not in value or value[field] is None or value[field] == "":
            logger.warning(
                "Inference reply missing required field",
                field=field,
                available_fields=list(value.keys()),
            )
            return False
    return True


def extract_text_response(reply: Any, fallback: str = "") -> str:
    """Return the text of a free-form reply, or fallback if it has none."""
    payload = unwrap_reply(reply)
    if isinstance(payload, str):
        return payload

    logger.warning("Could not extract text from inference reply", reply_type=type(payload).__name__)
    return fallback


def extract_embedding(reply: Any, dimensions: Optional[int] = None) -> Optional[list[float]]:
    """
    Return the first vector of an embedding reply ({"data": [[...], ...]}).

    Returns None when the reply has no vectors, the first vector contains
    non-numeric values, or its length differs from `dimensions`.
    """
    payload = unwrap_reply(reply)
    if not isinstance(payload, Mapping):
        return None

    data = payload.get("data")
    if not isinstance(data, list) or not data or not isinstance(data[0], list):
        return None

    vector = data[0]
    if not vector or not all(
        isinstance(x, (int, float)) and not isinstance(x, bool) for x in vector
    ):
        return None
    if dimensions is not None and len(vector) != dimensions:
        logger.warning("Embedding has unexpected dimensions", expected=dimensions, actual=len(vector))
        return None
    return [float(x) for x in vector]
