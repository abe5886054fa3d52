"""
Unit tests for NameKeyedMap.

Tests cover:
- Case and whitespace insensitive keys
- Serialization to pairs and objects
- Loading from either serialized form
"""

import pytest

from story_evolution.core.keyed_map import NameKeyedMap, normalize_key


class TestNormalizeKey:
    """Tests for key normalization."""

    def test_strips_and_lowercases(self):
        """Test that surrounding whitespace and case are ignored."""
        assert normalize_key("  Mara ") == "mara"

    def test_collapses_inner_whitespace(self):
        """Test that inner whitespace runs collapse to one space."""
        assert normalize_key("Old   Tom\tHarker") == "old tom harker"


class TestNameKeyedMap:
    """Tests for NameKeyedMap lookups."""

    def test_lookup_ignores_case(self):
        """Test that differently cased names address the same entry."""
        arcs = NameKeyedMap()
        arcs["Mara"] = 1
        arcs["MARA "] = 2

        assert len(arcs) == 1
        assert arcs["mara"] == 2
        assert "  mara" in arcs

    def test_contains_non_string(self):
        """Test that non-string keys are never contained."""
        arcs = NameKeyedMap({"Mara": 1})
        assert 5 not in arcs

    def test_empty_key_rejected(self):
        """Test that a blank name cannot be stored."""
        arcs = NameKeyedMap()
        with pytest.raises(KeyError):
            arcs["   "] = 1

    def test_get_and_delete(self):
        """Test MutableMapping helpers work through normalization."""
        arcs = NameKeyedMap([("Jonah", "ally")])
        assert arcs.get("JONAH") == "ally"
        del arcs["jonah"]
        assert arcs.get("Jonah") is None


class TestSerialization:
    """Tests for serialize and restore."""

    def test_to_pairs(self):
        """Test array-of-pairs output with a value serializer."""
        arcs = NameKeyedMap({"Mara": 3})
        assert arcs.to_pairs(lambda v: v * 2) == [["mara", 6]]

    def test_to_dict(self):
        """Test object output."""
        arcs = NameKeyedMap({"Mara": 3, "Jonah": 4})
        assert arcs.to_dict() == {"mara": 3, "jonah": 4}

    def test_from_pairs(self):
        """Test loading the array-of-pairs form."""
        loaded = NameKeyedMap.from_serialized([["Mara", "1"], ["Jonah", "2"]], int)
        assert loaded["mara"] == 1
        assert loaded["JONAH"] == 2

    def test_from_object(self):
        """Test loading the object form."""
        loaded = NameKeyedMap.from_serialized({"Mara": 1})
        assert loaded["Mara"] == 1

    def test_from_none(self):
        """Test that None loads as an empty map."""
        assert len(NameKeyedMap.from_serialized(None)) == 0

    def test_bad_pair(self):
        """Test that malformed pair entries are rejected."""
        with pytest.raises(ValueError):
            NameKeyedMap.from_serialized([["Mara"]])

    def test_bad_type(self):
        """Test that unsupported containers are rejected."""
        with pytest.raises(TypeError):
            NameKeyedMap.from_serialized("Mara")
