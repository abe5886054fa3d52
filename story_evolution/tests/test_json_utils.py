"""
Unit tests for JSON recovery and retry helpers.
"""

import httpx

from story_evolution.core.json_utils import (
    backoff_delay,
    extract_json,
    is_retryable_error,
    normalize_dict,
)

FENCE = "`" * 3


class TestExtractJson:
    """Tests for tolerant JSON recovery."""

    def test_direct(self):
        """Test a clean JSON response."""
        assert extract_json('{"a": 1}') == {"a": 1}

    def test_code_block(self):
        """Test a fenced block surrounded by prose."""
        text = f"Here you go:\n{FENCE}json\n{{\"a\": [1, 2]}}\n{FENCE}\nDone."
        assert extract_json(text) == {"a": [1, 2]}

    def test_prose_prefix(self):
        """Test an object embedded after prose."""
        assert extract_json('Sure! {"summary": "x"} hope that helps') == {"summary": "x"}

    def test_truncated_object(self):
        """Test an object missing its opening brace."""
        assert extract_json('"summary": "x"') == {"summary": "x"}

    def test_nothing_parses(self):
        """Test that unparsable text yields None."""
        assert extract_json("no json here") is None
        assert extract_json("") is None
        assert extract_json(None) is None


class TestNormalizeDict:
    """Tests for dict coercion."""

    def test_values(self):
        """Test each accepted input type."""
        assert normalize_dict(None) == {}
        assert normalize_dict({"a": 1}) == {"a": 1}
        assert normalize_dict('{"a": 1}') == {"a": 1}
        assert normalize_dict("plain") == {"description": "plain"}
        assert normalize_dict(42) == {}


class TestRetryability:
    """Tests for retry classification."""

    def test_rate_limit_is_retryable(self):
        """Test transient server-side errors."""
        assert is_retryable_error(Exception("Error 429: rate limit exceeded"))
        assert is_retryable_error(Exception("503 Service Unavailable"))

    def test_auth_is_not_retryable(self):
        """Test that client errors win over retryable words."""
        assert not is_retryable_error(Exception("401 Unauthorized (connection ok)"))
        assert not is_retryable_error(Exception("invalid model"))

    def test_httpx_timeout(self):
        """Test httpx transport exceptions."""
        assert is_retryable_error(httpx.ReadTimeout("slow"))

    def test_unknown_error(self):
        """Test that unrelated errors are not retried."""
        assert not is_retryable_error(KeyError("x"))


class TestBackoff:
    """Tests for backoff timing."""

    def test_exponential_with_jitter(self):
        """Test the delay grows as base ** attempt plus under a second."""
        delay = backoff_delay(2, base=3.0)
        assert 9.0 <= delay <= 10.0
