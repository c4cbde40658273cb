"""Unit tests for fuzzy charm name suggestions."""

import pytest

from deepcode_charm.charms.fuzzy import levenshtein_distance, suggest_similar


class TestLevenshteinDistance:
    """Tests for levenshtein_distance."""

    @pytest.mark.parametrize(
        ("a", "b", "expected"),
        [
            ("", "", 0),
            ("ping", "ping", 0),
            ("", "abc", 3),
            ("abc", "", 3),
            ("pog", "pong", 1),
            ("pog", "poll", 2),
            ("kitten", "sitting", 3),
            ("flaw", "lawn", 2),
        ],
    )
    def test_known_distances(self, a, b, expected):
        """Test distances against known values."""
        assert levenshtein_distance(a, b) == expected

    def test_symmetric(self):
        """Test distance does not depend on argument order."""
        assert levenshtein_distance("help", "hlep") == levenshtein_distance("hlep", "help")


class TestSuggestSimilar:
    """Tests for suggest_similar."""

    def test_closest_first(self):
        """Test pong (distance 1) comes before poll (distance 2)."""
        assert suggest_similar("pog", ["ping", "pong", "poll"]) == ["pong", "ping", "poll"]

    def test_ties_keep_candidate_order(self):
        """Test equal distances keep registration order."""
        assert suggest_similar("pxng", ["pong", "ping"]) == ["pong", "ping"]
        assert suggest_similar("pxng", ["ping", "pong"]) == ["ping", "pong"]

    def test_case_insensitive(self):
        """Test matching ignores case."""
        assert suggest_similar("HELP", ["help"]) == ["help"]

    def test_max_distance(self):
        """Test candidates further than max_distance are dropped."""
        assert suggest_similar("xyz", ["ping", "pong"]) == []
        assert suggest_similar("pig", ["ping"], max_distance=0) == []

    def test_limit(self):
        """Test at most ``limit`` suggestions are returned."""
        candidates = ["aa", "ab", "ac", "ad", "ae"]
        assert suggest_similar("a", candidates) == ["aa", "ab", "ac"]
        assert suggest_similar("a", candidates, limit=1) == ["aa"]

    def test_empty_registry(self):
        """Test no candidates means no suggestions."""
        assert suggest_similar("ping", []) == []
