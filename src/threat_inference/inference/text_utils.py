"""
Text processing utilities for the inference layer.

Provides truncation of article text before it is sent to a model, a rough
token estimate, and extraction of token usage from replies so every call
can be charged to the budget governor.
"""

from collections.abc import Mapping
from typing import Any


def truncate_text(text: str, max_chars: int, suffix: str = "...") -> str:
    """
    Truncate text to max_chars, appending suffix when anything was cut.

    Examples:
        >>> truncate_text("Hello World", 5)
        'Hello...'
        >>> truncate_text("Short", 100)
        'Short'
    """
    if not text:
        return ""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + suffix


def count_tokens_approximate(text: str) -> int:
    """
    Rough approximation of token count for text.

    Uses ~4 characters per token for English prose. NOT accurate, but
    good enough to charge a call whose reply carries no usage block.
    """
    if not text:
        return 0
    return max(1, len(text) // 4)


def extract_token_usage(reply: Any) -> tuple[int, int] | None:
    """
    Read (input_tokens, output_tokens) from a reply's usage block.

    Accepts {"usage": {...}} at the top level or inside {"result": {...}}.
    Returns None when the reply carries no usable counts.
    """
    if not isinstance(reply, Mapping):
        return None

    usage = reply.get("usage")
    if usage is None and isinstance(reply.get("result"), Mapping):
        usage = reply["result"].get("usage")
    if not isinstance(usage, Mapping):
        return None

    prompt_tokens = usage.get("prompt_tokens")
    completion_tokens = usage.get("completion_tokens", 0)
    if not isinstance(prompt_tokens, int) or not isinstance(completion_tokens, int):
        return None
    return prompt_tokens, completion_tokens


def estimate_payload_tokens(payload: Mapping[str, Any]) -> int:
    """Approximate input tokens of a chat or embedding payload."""
    if "messages" in payload:
        return sum(
            count_tokens_approximate(str(message.get("content", "")))
            for message in payload["messages"]
        )
    text = payload.get("text", "")
    if isinstance(text, list):
        return sum(count_tokens_approximate(str(t)) for t in text)
    return count_tokens_approximate(str(text))
