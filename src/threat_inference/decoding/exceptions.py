"""
Decoding-specific exceptions.

Raised by the individual decode attempts in response_decoder. The decoder
chain catches them and moves on to the next attempt; they never escape
decode_response itself.
"""

from typing import Any


class DecodeError(Exception):
    """
    Base exception for all decode attempt failures.

    Carries structured details for debug logging.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class UnsupportedReplyError(DecodeError):
    """The reply type is not handled by this attempt (e.g. a list given to a string parser)."""


class JSONParseError(DecodeError):
    """
    Reply text is not valid JSON, or is JSON but not an object.
    """

    def __init__(self, message: str, raw_content: str | None = None, parse_error: str | None = None):
        """
        Initialize JSON parse error.

        Args:
            message: Error description
            raw_content: Offending text (first 200 chars kept for logs)
            parse_error: Original json.JSONDecodeError message
        """
        details = {}
        if raw_content:
            details["content_snippet"] = raw_content[:200]
        if parse_error:
            details["parse_error"] = parse_error

        super().__init__(message, details)


class NoJSONObjectError(DecodeError):
    """No balanced {...} object could be located inside free text."""
