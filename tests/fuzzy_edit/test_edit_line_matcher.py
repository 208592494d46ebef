"""Tests for the line-sequence matcher."""

import pytest

from fuzzy_edit.edit_line_matcher import (
    CONTEXT_FUZZY_THRESHOLD,
    SEQUENCE_FUZZY_THRESHOLD,
    SEQUENCE_STRATEGIES,
    find_context_line,
    seek_sequence,
)


class TestSeekSequenceStructural:
    """Test the structural (first-match-wins) passes."""

    def test_exact(self):
        """Test an exact sequence is found with full confidence."""
        result = seek_sequence(["alpha", "beta", "gamma"], ["beta"], 0, False)

        assert result.index == 1
        assert result.confidence == 1.0

    def test_multi_line_exact(self):
        """Test a multi-line pattern is found at its first line."""
        result = seek_sequence(["a", "b", "c", "d"], ["b", "c"], 0, False)

        assert result.index == 1
        assert result.confidence == 1.0

    def test_empty_pattern(self):
        """Test an empty pattern matches at the start position."""
        result = seek_sequence(["a", "b"], [], 1, False)

        assert result.index == 1
        assert result.confidence == 1.0

    def test_pattern_longer_than_lines(self):
        """Test a pattern longer than the file cannot match."""
        result = seek_sequence(["a"], ["a", "b"], 0, False)

        assert result.index is None
        assert result.confidence == 0.0

    def test_trailing_whitespace(self):
        """Test trailing whitespace differences are tolerated."""
        result = seek_sequence(["a  ", "b"], ["a", "b"], 0, False)

        assert result.index == 0
        assert result.confidence == 0.99

    def test_trimmed(self):
        """Test leading whitespace differences are tolerated."""
        result = seek_sequence(["x", "    a"], ["a"], 0, False)

        assert result.index == 1
        assert result.confidence == 0.98

    def test_unicode(self):
        """Test typographic punctuation differences are tolerated."""
        result = seek_sequence(["x = \u201chi\u201d \u2014 ok"], ["x = \"hi\" - ok"], 0, False)

        assert result.index == 0
        assert result.confidence == 0.97

    def test_prefix(self):
        """Test a pattern line that is a prefix of the file line is accepted."""
        result = seek_sequence(["foo(bar, baz)  # comment"], ["foo(bar, baz)"], 0, False)

        assert result.index == 0
        assert result.confidence == 0.965
        assert result.match_count == 1

    def test_prefix_ambiguity_is_counted(self):
        """Test every window satisfying the prefix pass is counted."""
        result = seek_sequence(["foo(a) # one", "foo(a) # two"], ["foo(a)"], 0, False)

        assert result.index == 0
        assert result.confidence == 0.965
        assert result.match_count == 2

    def test_substring(self):
        """Test a significant substring of the file line is accepted."""
        result = seek_sequence(["result = process(data)"], ["process(data)"], 0, False)

        assert result.index == 0
        assert result.confidence == 0.94
        assert result.match_count == 1

    def test_short_substring_rejected(self):
        """Test a short fragment is not accepted as a substring match."""
        result = seek_sequence(["result = f(x) + f(x)"], ["f(x)"], 0, False)

        assert result.index is None

    def test_exact_pass_reports_single_match(self):
        """Test exact passes stop at the first window."""
        result = seek_sequence(["dup", "dup"], ["dup"], 0, False)

        assert result.match_count == 1

    def test_start_is_respected(self):
        """Test matches before the start position are ignored."""
        result = seek_sequence(["dup", "other", "dup"], ["dup"], 1, False)

        assert result.index == 2

    def test_eof_prefers_end(self):
        """Test the end of file is searched first when eof is set."""
        lines = ["end", "middle", "end"]

        assert seek_sequence(lines, ["end"], 0, False).index == 0
        assert seek_sequence(lines, ["end"], 0, True).index == 2

    def test_strategy_order(self):
        """Test structural strategies are ordered by decreasing confidence."""
        confidences = [strategy.confidence for strategy in SEQUENCE_STRATEGIES]
        assert confidences == sorted(confidences, reverse=True)


class TestSeekSequenceFuzzy:
    """Test the fuzzy (best-match-wins) passes."""

    def test_first_match_wins_for_exact(self):
        """Test two equally exact matches resolve to the first one."""
        result = seek_sequence(["dup", "other", "dup"], ["dup"], 0, False)

        assert result.index == 0
        assert result.confidence == 1.0

    def test_best_match_wins_for_fuzzy(self):
        """Test the best fuzzy window wins even when a weaker one comes first."""
        lines = [
            "the quick brown fix jumpz",
            "the quick brown fox jumpz",
        ]

        result = seek_sequence(lines, ["the quick brown fox jumps"], 0, False)

        assert result.index == 1
        assert result.confidence == pytest.approx(0.96)

    def test_equal_fuzzy_scores_keep_earliest(self):
        """Test a later window must score strictly higher to replace the best."""
        lines = [
            "the quick brown fox jumpz",
            "the quick brown fox jumpx",
        ]

        result = seek_sequence(lines, ["the quick brown fox jumps"], 0, False)

        assert result.index == 0
        assert result.confidence == pytest.approx(0.96)

    def test_fuzzy_below_threshold_fails(self):
        """Test a window below the sequence threshold is rejected."""
        result = seek_sequence(["completely different"], ["nothing alike here"], 0, False)

        assert result.index is None
        assert result.confidence < SEQUENCE_FUZZY_THRESHOLD

    def test_eof_fuzzy_scans_skipped_region(self):
        """Test an eof search still finds a fuzzy match before the end region."""
        lines = ["the quick brown fox jumpz", "unrelated", "also unrelated"]

        result = seek_sequence(lines, ["the quick brown fox jumps"], 0, True)

        assert result.index == 0
        assert result.confidence == pytest.approx(0.96)

    def test_character_window_fallback(self):
        """Test the character-window matcher is used when line fuzzy scoring falls short."""
        result = seek_sequence(["zzz", "abcdefghijkl"], ["abcdefghijkX"], 0, False)

        assert result.index == 1
        assert result.confidence == pytest.approx(1 - 1 / 14)


class TestFindContextLine:
    """Test anchor line location."""

    def test_exact(self):
        """Test an exact anchor line is found."""
        result = find_context_line(["class A:", "def run(self):"], "def run(self):", 0)

        assert result.index == 1
        assert result.confidence == 1.0
        assert result.match_count == 1

    def test_exact_is_first_match(self):
        """Test repeated exact anchors resolve to the first one after the start."""
        lines = ["target", "other", "target"]

        assert find_context_line(lines, "target", 0).index == 0
        assert find_context_line(lines, "target", 1).index == 2

    def test_trimmed(self):
        """Test indentation differences are tolerated."""
        result = find_context_line(["    def run(self):"], "def run(self):", 0)

        assert result.index == 0
        assert result.confidence == 0.99

    def test_unicode(self):
        """Test punctuation differences are tolerated."""
        result = find_context_line(["title = \u201cx\u201d"], "title = \"x\"", 0)

        assert result.index == 0
        assert result.confidence == 0.98

    def test_prefix(self):
        """Test an anchor that is a prefix of the line is accepted."""
        result = find_context_line(["def handle(request, *args):"], "def handle(", 0)

        assert result.index == 0
        assert result.confidence == 0.96
        assert result.match_count == 1

    def test_prefix_ambiguity_is_counted(self):
        """Test every line satisfying the prefix pass is counted."""
        result = find_context_line(["def handle(a):", "x", "def handle(b):"], "def handle", 0)

        assert result.index == 0
        assert result.match_count == 2

    def test_substring(self):
        """Test an anchor that is a significant substring of the line is accepted."""
        result = find_context_line(["    async def handle(request):"], "def handle(request)", 0)

        assert result.index == 0
        assert result.confidence == 0.94

    def test_fuzzy(self):
        """Test a near-miss anchor is accepted by similarity."""
        result = find_context_line(["import os", "def handel(request):"], "def handle(request):", 0)

        assert result.index == 1
        assert result.confidence == pytest.approx(0.9)
        assert result.confidence >= CONTEXT_FUZZY_THRESHOLD
        assert result.match_count == 1

    def test_not_found(self):
        """Test an unrelated anchor is not found."""
        result = find_context_line(["xyz"], "completely different", 0)

        assert result.index is None
