"""
Unit tests for similarity matchers.
"""

import pytest

from story_evolution.core.matching import (
    EditDistanceMatcher,
    SubstringMatcher,
    TokenOverlapMatcher,
    create_matcher,
)


class TestSubstringMatcher:
    """Tests for bidirectional substring matching."""

    def test_either_direction(self):
        """Test containment in both directions, ignoring case."""
        matcher = SubstringMatcher()
        assert matcher.matches("Redemption", "the price of redemption")
        assert matcher.matches("the price of redemption", "REDEMPTION")

    def test_empty_never_matches(self):
        """Test that empty text matches nothing."""
        matcher = SubstringMatcher()
        assert not matcher.matches("", "anything")
        assert not matcher.matches("anything", "   ")

    def test_prefix_length(self):
        """Test that only the leading prefix of each side is compared."""
        matcher = SubstringMatcher(prefix_length=10)
        assert matcher.matches(
            "Who sent the letter to the lighthouse keeper",
            "Who sent the letter, and why now?",
        )
        assert not SubstringMatcher().matches(
            "Who sent the letter to the lighthouse keeper",
            "Who sent the letter, and why now?",
        )

    def test_find_returns_first_match(self):
        """Test find() over keyed items."""
        matcher = SubstringMatcher()
        items = [{"name": "loyalty"}, {"name": "redemption"}]
        found = matcher.find("Redemption", items, key=lambda i: i["name"])
        assert found == {"name": "redemption"}
        assert matcher.find("grief", items, key=lambda i: i["name"]) is None


class TestTokenOverlapMatcher:
    """Tests for Jaccard token overlap."""

    def test_score(self):
        """Test the Jaccard score of two short phrases."""
        matcher = TokenOverlapMatcher(cutoff=0.5)
        assert matcher.score("lost brother", "the lost brother") == pytest.approx(2 / 3)
        assert matcher.matches("lost brother", "the lost brother")

    def test_below_cutoff(self):
        """Test that weak overlap does not match."""
        matcher = TokenOverlapMatcher(cutoff=0.5)
        assert not matcher.matches("lost brother", "the harbor burns tonight")


class TestEditDistanceMatcher:
    """Tests for difflib ratio matching."""

    def test_near_duplicates(self):
        """Test that a typo still matches."""
        matcher = EditDistanceMatcher(cutoff=0.8)
        assert matcher.matches("redemption", "redemtion")

    def test_different_words(self):
        """Test that unrelated words do not match."""
        matcher = EditDistanceMatcher(cutoff=0.8)
        assert not matcher.matches("redemption", "betrayal")


class TestCreateMatcher:
    """Tests for the matcher factory."""

    def test_kinds(self):
        """Test each supported kind and its default cutoff."""
        assert isinstance(create_matcher("substring"), SubstringMatcher)
        assert create_matcher("token_overlap").cutoff == 0.5
        assert create_matcher("edit_distance", cutoff=0.9).cutoff == 0.9

    def test_unknown_kind(self):
        """Test that unknown kinds are rejected."""
        with pytest.raises(ValueError):
            create_matcher("soundex")
