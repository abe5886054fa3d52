"""
Pluggable similarity matching for de-duplicating themes, threads and motifs.

Key concepts:
- SubstringMatcher: case-insensitive containment in either direction,
  optionally comparing only a leading prefix of each text (the historical
  behaviour, and the default)
- TokenOverlapMatcher: Jaccard overlap of word tokens with a cutoff
- EditDistanceMatcher: difflib similarity ratio with a cutoff

Empty strings never match anything.
"""

import difflib
import re
from abc import ABC, abstractmethod
from typing import Callable, Iterable, Optional, TypeVar

T = TypeVar("T")

_TOKEN_RE = re.compile(r"[a-z0-9']+")


class SimilarityMatcher(ABC):
    """Scores two texts in [0, 1]; a pair matches when the score reaches the cutoff."""

    cutoff: float = 1.0

    @abstractmethod
    def score(self, a: str, b: str) -> float:
        pass

    def matches(self, a: str, b: str) -> bool:
        return self.score(a, b) >= self.cutoff

    def find(self, text: str, items: Iterable[T], key: Callable[[T], str]) -> Optional[T]:
        """Return the first item whose key matches text."""
        for item in items:
            if self.matches(key(item), text):
                return item
        return None


class SubstringMatcher(SimilarityMatcher):
    """Bidirectional substring containment, optionally on a leading prefix."""

    def __init__(self, prefix_length: Optional[int] = None):
        self.prefix_length = prefix_length
        self.cutoff = 1.0

    def _prefix(self, text: str) -> str:
        if self.prefix_length is None:
            return text
        return text[: self.prefix_length]

    def score(self, a: str, b: str) -> float:
        a_norm = a.lower().strip()
        b_norm = b.lower().strip()
        if not a_norm or not b_norm:
            return 0.0
        if self._prefix(b_norm) in a_norm or self._prefix(a_norm) in b_norm:
            return 1.0
        return 0.0


class TokenOverlapMatcher(SimilarityMatcher):
    """Jaccard similarity over lowercase word tokens."""

    def __init__(self, cutoff: float = 0.5):
        self.cutoff = cutoff

    def score(self, a: str, b: str) -> float:
        tokens_a = set(_TOKEN_RE.findall(a.lower()))
        tokens_b = set(_TOKEN_RE.findall(b.lower()))
        if not tokens_a or not tokens_b:
            return 0.0
        return len(tokens_a & tokens_b) / len(tokens_a | tokens_b)


class EditDistanceMatcher(SimilarityMatcher):
    """difflib.SequenceMatcher ratio on lowercase text."""

    def __init__(self, cutoff: float = 0.8):
        self.cutoff = cutoff

    def score(self, a: str, b: str) -> float:
        a_norm = a.lower().strip()
        b_norm = b.lower().strip()
        if not a_norm or not b_norm:
            return 0.0
        return difflib.SequenceMatcher(None, a_norm, b_norm).ratio()


def create_matcher(
    kind: str = "substring",
    cutoff: Optional[float] = None,
    prefix_length: Optional[int] = None,
) -> SimilarityMatcher:
    """Factory for matchers named in settings ("substring", "token_overlap", "edit_distance")."""
    if kind == "substring":
        return SubstringMatcher(prefix_length=prefix_length)
    elif kind == "token_overlap":
        return TokenOverlapMatcher(cutoff=0.5 if cutoff is None else cutoff)
    elif kind == "edit_distance":
        return EditDistanceMatcher(cutoff=0.8 if cutoff is None else cutoff)
    else:
        raise ValueError(f"Unsupported matcher: {kind}")
