"""
Tolerant JSON recovery and retry helpers for text-service responses.

Models frequently wrap JSON in prose or markdown fences, truncate it, or
return a bare string where an object was requested. Every call site that
expects structured output goes through `extract_json`, and every retry loop
asks `is_retryable_error` before trying again.
"""

import json
import logging
import random
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger("story_evolution.json")

_FENCE = "`" * 3

RETRYABLE_PATTERNS = [
    "429", "rate limit", "rate_limit", "ratelimit",
    "500", "502", "503", "504",
    "timeout", "timed out", "connection",
    "overloaded", "overload", "capacity",
    "temporarily unavailable", "service unavailable",
    "internal server error", "bad gateway", "gateway timeout",
]

NON_RETRYABLE_PATTERNS = [
    "401", "403", "400",
    "invalid api key", "invalid_api_key", "authentication",
    "unauthorized", "forbidden", "invalid model",
    "model not found", "does not exist",
]

RETRYABLE_TYPE_HINTS = ["timeout", "connection", "network", "http"]


def _balanced_slice(text: str, open_char: str, close_char: str) -> Optional[str]:
    """Return text from the first open_char up to its matching close_char."""
    start = text.find(open_char)
    if start < 0:
        return None
    depth = 0
    for i in range(start, len(text)):
        char = text[i]
        if char == open_char:
            depth += 1
        elif char == close_char:
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def _from_code_block(text: str) -> Optional[Any]:
    for marker in (_FENCE + "json", _FENCE + "JSON", _FENCE):
        if marker not in text:
            continue
        parts = text.split(marker)
        if len(parts) < 2:
            continue
        candidate = parts[1].split(_FENCE)[0].strip()
        try:
            return json.loads(candidate)
        except json.JSONDecodeError as e:
            logger.debug(f"[extract_json] Code block parse failed for '{marker}': {e}")
    return None


def extract_json(text: Optional[str]) -> Optional[Any]:
    """
    Recover a JSON value from a model response.

    Tries, in order: a direct parse, a fenced code block, `raw_decode` from
    the first '{' or '[', a balanced-brace slice, a truncated object missing
    its opening brace, and a balanced array slice.

    Returns:
        The parsed value, or None if nothing parses.
    """
    if not text or not text.strip():
        logger.warning("[extract_json] Empty response text")
        return None

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        logger.debug(f"[extract_json] Direct parse failed: {e}")

    result = _from_code_block(text)
    if result is not None:
        return result

    decoder = json.JSONDecoder()
    for start_char in ("{", "["):
        start = text.find(start_char)
        if start >= 0:
            try:
                result, _ = decoder.raw_decode(text[start:])
                return result
            except json.JSONDecodeError as e:
                logger.debug(f"[extract_json] raw_decode from '{start_char}' failed: {e}")

    candidate = _balanced_slice(text, "{", "}")
    if candidate:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError as e:
            logger.debug(f"[extract_json] Balanced brace slice failed: {e}")

    stripped = text.strip()
    if stripped.startswith('"') and '":' in stripped[:50]:
        wrapped = "{" + stripped
        if wrapped.count("{") > wrapped.count("}"):
            wrapped += "}"
        try:
            return json.loads(wrapped)
        except json.JSONDecodeError as e:
            logger.debug(f"[extract_json] Truncated object recovery failed: {e}")

    if stripped.startswith("["):
        candidate = _balanced_slice(stripped, "[", "]")
        if candidate:
            try:
                return json.loads(candidate)
            except json.JSONDecodeError as e:
                logger.debug(f"[extract_json] Array slice failed: {e}")

    logger.warning(f"[extract_json] No JSON recovered from response (len={len(text)})")
    return None


def normalize_dict(value: Any, fallback_key: str = "description") -> Dict[str, Any]:
    """
    Coerce a model-supplied value into a dict.

    None becomes {}; a JSON-looking string is parsed; any other string is
    wrapped under fallback_key; other types become {}.
    """
    if value is None:
        return {}
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        if value.strip().startswith("{"):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, dict):
                    return parsed
            except json.JSONDecodeError:
                pass
        logger.warning(f"[normalize_dict] Wrapping string (len={len(value)}) under '{fallback_key}'")
        return {fallback_key: value}
    logger.warning(f"[normalize_dict] Expected dict, got {type(value).__name__}")
    return {}


def is_retryable_error(error: BaseException) -> bool:
    """
    Decide whether a text-service error is transient.

    Explicit client errors (bad request, auth, unknown model) are never
    retried even when the message also mentions a retryable word.
    """
    if isinstance(error, (httpx.TimeoutException, httpx.TransportError)):
        return True

    message = str(error).lower()
    if any(pattern in message for pattern in NON_RETRYABLE_PATTERNS):
        return False
    if any(pattern in message for pattern in RETRYABLE_PATTERNS):
        return True

    type_name = type(error).__name__.lower()
    return any(hint in type_name for hint in RETRYABLE_TYPE_HINTS)


def backoff_delay(attempt: int, base: float = 3.0) -> float:
    """Exponential backoff with up to one second of jitter (1, 3, 9, ... for base 3)."""
    return base ** attempt + random.uniform(0, 1)
