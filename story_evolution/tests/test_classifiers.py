"""
Unit tests for keyword classifiers.
"""

from story_evolution.core.classifiers import Classifiers, KeywordClassifier, KeywordTagger


class TestKeywordClassifier:
    """Tests for ordered single-label rules."""

    def test_first_rule_wins(self):
        """Test that rule order decides between overlapping keywords."""
        classifier = KeywordClassifier([("a", ["storm"]), ("b", ["storm", "rain"])], default="none")
        assert classifier("A STORM of rain") == "a"
        assert classifier("light rain") == "b"

    def test_default(self):
        """Test the default label for unmatched and empty text."""
        classifier = KeywordClassifier([("a", ["storm"])], default="none")
        assert classifier("calm") == "none"
        assert classifier(None) == "none"


class TestKeywordTagger:
    """Tests for multi-label tagging."""

    def test_tags_accumulate_without_duplicates(self):
        """Test that every matching rule contributes its tags once."""
        tagger = KeywordTagger([(["leg"], ["slow"]), (["weak"], ["slow", "tired"])])
        assert tagger("weak leg") == ["slow", "tired"]


class TestDefaultClassifiers:
    """Tests for the shipped rule sets."""

    def test_tone(self):
        """Test tone buckets."""
        classifiers = Classifiers()
        assert classifiers.tone("Rising suspense in the dark") == "tense"
        assert classifiers.tone("A quiet afternoon") == "neutral"

    def test_intensity(self):
        """Test emotional intensity buckets."""
        classifiers = Classifiers()
        assert classifiers.intensity("Furious at Jonah") == "extreme"
        assert classifiers.intensity("worried") == "high"
        assert classifiers.intensity("calm") == "medium"

    def test_capability_impact(self):
        """Test wound capability tags."""
        classifiers = Classifiers()
        assert classifiers.capability_impact("Sprained ankle") == ["cannot run", "limited mobility"]

    def test_replaceable(self):
        """Test that a custom classifier can be swapped in."""
        classifiers = Classifiers(tone=KeywordClassifier([("eerie", ["fog"])], default="flat"))
        assert classifiers.tone("fog rolls in") == "eerie"
