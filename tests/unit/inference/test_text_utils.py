"""Unit tests for inference text utilities."""

from threat_inference.inference.text_utils import (
    count_tokens_approximate,
    estimate_payload_tokens,
    extract_token_usage,
    truncate_text,
)


class TestTruncateText:

    def test_no_truncation_needed(self):
        assert truncate_text("Short", 100) == "Short"

    def test_truncates_with_suffix(self):
        assert truncate_text("Hello World", 5) == "Hello..."

    def test_exact_length_untouched(self):
        assert truncate_text("abcde", 5) == "abcde"

    def test_custom_suffix(self):
        assert truncate_text("Hello World", 5, " [more]") == "Hello [more]"

    def test_empty_text(self):
        assert truncate_text("", 10) == ""


class TestTokenUsage:

    def test_usage_block(self):
        reply = {"response": "x", "usage": {"prompt_tokens": 812, "completion_tokens": 240}}
        assert extract_token_usage(reply) == (812, 240)

    def test_usage_inside_result(self):
        reply = {"result": {"response": "x", "usage": {"prompt_tokens": 5}}}
        assert extract_token_usage(reply) == (5, 0)

    def test_missing_usage(self):
        assert extract_token_usage({"response": "x"}) is None
        assert extract_token_usage("text") is None

    def test_non_integer_counts(self):
        assert extract_token_usage({"usage": {"prompt_tokens": "12"}}) is None


class TestEstimates:

    def test_count_tokens_approximate(self):
        assert count_tokens_approximate("") == 0
        assert count_tokens_approximate("abc") == 1
        assert count_tokens_approximate("a" * 400) == 100

    def test_chat_payload(self):
        payload = {"messages": [{"role": "system", "content": "a" * 40}, {"role": "user", "content": "b" * 80}]}
        assert estimate_payload_tokens(payload) == 30

    def test_embedding_payload(self):
        assert estimate_payload_tokens({"text": "a" * 8}) == 2
        assert estimate_payload_tokens({"text": ["a" * 4, "b" * 4]}) == 2
