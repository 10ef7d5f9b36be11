"""
Lenient decoding of inference replies into structured values.

Components:
- decode_response: ordered chain of decode attempts with object/fallback passthrough
- validate_response: required-field gate used to decide "usable result"
- extract_text_response / extract_embedding: text and vector replies
- find_json_object: brace-matching locator for JSON embedded in prose
"""

from threat_inference.decoding.exceptions import (
    DecodeError,
    JSONParseError,
    NoJSONObjectError,
    UnsupportedReplyError,
)
from threat_inference.decoding.response_decoder import (
    decode_response,
    extract_embedding,
    extract_text_response,
    find_json_object,
    unwrap_reply,
    validate_response,
)

__all__ = [
    "decode_response",
    "validate_response",
    "extract_text_response",
    "extract_embedding",
    "find_json_object",
    "unwrap_reply",
    "DecodeError",
    "JSONParseError",
    "NoJSONObjectError",
    "UnsupportedReplyError",
]
