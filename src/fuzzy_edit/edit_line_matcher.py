"""
Line-sequence matcher for patch hunks.

Hunks are located by trying a cascade of comparison strategies, from exact
equality down to fuzzy similarity.  The structural strategies are first-match-wins:
the earliest window that satisfies a strategy is returned.  The fuzzy strategy
is best-match-wins: every window is scored and the highest score is returned if
it clears the threshold.
"""

from typing import Callable, List, NamedTuple

from fuzzy_edit.edit_normalizer import normalize_for_fuzzy, normalize_unicode
from fuzzy_edit.edit_similarity import similarity
from fuzzy_edit.edit_text_matcher import find_match
from fuzzy_edit.edit_types import ContextLineResult, SequenceSearchResult


SEQUENCE_FUZZY_THRESHOLD = 0.92
CHARACTER_MATCH_THRESHOLD = 0.92
CONTEXT_FUZZY_THRESHOLD = 0.80

# Guards for substring matching, so short fragments don't match everywhere
PARTIAL_MATCH_MIN_LENGTH = 6
PARTIAL_MATCH_MIN_RATIO = 0.30


LineComparator = Callable[[str, str], bool]


class MatchStrategy(NamedTuple):
    """A structural comparison pass and the confidence it reports."""

    name: str
    compare: LineComparator  # (file line, pattern line) -> bool
    confidence: float
    counts_matches: bool  # Report how many windows satisfy this pass


def _line_starts_with(line: str, pattern: str) -> bool:
    line_norm = normalize_for_fuzzy(line)
    pattern_norm = normalize_for_fuzzy(pattern)
    if not pattern_norm:
        return not line_norm

    return line_norm.startswith(pattern_norm)


def _line_contains(line: str, pattern: str) -> bool:
    line_norm = normalize_for_fuzzy(line)
    pattern_norm = normalize_for_fuzzy(pattern)
    if not pattern_norm:
        return not line_norm

    return _is_significant_substring(line_norm, pattern_norm)


def _is_significant_substring(line_norm: str, pattern_norm: str) -> bool:
    if len(pattern_norm) < PARTIAL_MATCH_MIN_LENGTH:
        return False

    if pattern_norm not in line_norm:
        return False

    return len(pattern_norm) / max(1, len(line_norm)) >= PARTIAL_MATCH_MIN_RATIO


SEQUENCE_STRATEGIES: List[MatchStrategy] = [
    MatchStrategy('exact', lambda a, b: a == b, 1.0, False),
    MatchStrategy('trailing_whitespace', lambda a, b: a.rstrip() == b.rstrip(), 0.99, False),
    MatchStrategy('trimmed', lambda a, b: a.strip() == b.strip(), 0.98, False),
    MatchStrategy('unicode', lambda a, b: normalize_unicode(a) == normalize_unicode(b), 0.97, False),
    MatchStrategy('prefix', _line_starts_with, 0.965, True),
    MatchStrategy('substring', _line_contains, 0.94, True),
]


def _matches_at(lines: List[str], pattern: List[str], start: int, compare: LineComparator) -> bool:
    for offset, pattern_line in enumerate(pattern):
        if not compare(lines[start + offset], pattern_line):
            return False

    return True


def _fuzzy_score_at(lines: List[str], pattern: List[str], start: int) -> float:
    total = 0.0
    for offset, pattern_line in enumerate(pattern):
        total += similarity(
            normalize_for_fuzzy(lines[start + offset]),
            normalize_for_fuzzy(pattern_line)
        )

    return total / len(pattern)


def seek_sequence(
    lines: List[str],
    pattern: List[str],
    start: int,
    eof: bool
) -> SequenceSearchResult:
    """
    Find a sequence of pattern lines within file lines.

    Args:
        lines: File content split into lines
        pattern: Lines to search for
        start: First line index that may begin a match
        eof: Prefer a match at the end of the file

    Returns:
        SequenceSearchResult with the index of the first matched line, or None
    """
    if not pattern:
        return SequenceSearchResult(index=start, confidence=1.0)

    if len(pattern) > len(lines):
        return SequenceSearchResult(index=None, confidence=0.0)

    max_start = len(lines) - len(pattern)
    search_start = max_start if eof else start

    for strategy in SEQUENCE_STRATEGIES:
        found = None
        match_count = 0
        for i in range(search_start, max_start + 1):
            if not _matches_at(lines, pattern, i, strategy.compare):
                continue

            if found is None:
                found = i

            match_count += 1
            if not strategy.counts_matches:
                break

        if found is not None:
            return SequenceSearchResult(
                index=found,
                confidence=strategy.confidence,
                match_count=match_count
            )

    best_index = None
    best_score = 0.0
    candidates = list(range(search_start, max_start + 1))
    if eof and search_start > start:
        # The end of the file is preferred but the rest of it is still eligible
        candidates.extend(range(start, search_start))

    for i in candidates:
        score = _fuzzy_score_at(lines, pattern, i)
        if score > best_score:
            best_score = score
            best_index = i

    if best_index is not None and best_score >= SEQUENCE_FUZZY_THRESHOLD:
        return SequenceSearchResult(index=best_index, confidence=best_score)

    content_text = "\n".join(lines[start:])
    outcome = find_match(
        content_text,
        "\n".join(pattern),
        allow_fuzzy=True,
        threshold=CHARACTER_MATCH_THRESHOLD
    )
    if outcome.match is not None:
        line_index = start + content_text[:outcome.match.start_index].count("\n")
        return SequenceSearchResult(index=line_index, confidence=outcome.match.confidence)

    return SequenceSearchResult(index=None, confidence=best_score)


def find_context_line(lines: List[str], context: str, start_from: int) -> ContextLineResult:
    """
    Find a single anchor line, such as the text after "@@ " in a hunk header.

    Args:
        lines: File content split into lines
        context: Anchor text to find
        start_from: First line index to consider

    Returns:
        ContextLineResult with the line index, or None if nothing was close enough
    """
    candidates = range(start_from, len(lines))
    trimmed_context = context.strip()
    unicode_context = normalize_unicode(context)
    context_norm = normalize_for_fuzzy(context)

    # (predicate, confidence, counts_matches)
    passes: List[tuple[Callable[[str], bool], float, bool]] = [
        (lambda line: line == context, 1.0, False),
        (lambda line: line.strip() == trimmed_context, 0.99, False),
        (lambda line: normalize_unicode(line) == unicode_context, 0.98, False),
    ]
    if context_norm:
        passes.append((lambda line: normalize_for_fuzzy(line).startswith(context_norm), 0.96, True))
        passes.append((
            lambda line: _is_significant_substring(normalize_for_fuzzy(line), context_norm),
            0.94,
            True
        ))

    for predicate, confidence, counts_matches in passes:
        if not counts_matches:
            first = next((i for i in candidates if predicate(lines[i])), None)
            if first is not None:
                return ContextLineResult(index=first, confidence=confidence, match_count=1)

            continue

        matching = [i for i in candidates if predicate(lines[i])]
        if matching:
            return ContextLineResult(index=matching[0], confidence=confidence, match_count=len(matching))

    best_index = None
    best_score = 0.0
    tied = 0
    for i in candidates:
        score = similarity(normalize_for_fuzzy(lines[i]), context_norm)
        if score > best_score:
            best_score = score
            best_index = i
            tied = 1

        elif score == best_score and best_index is not None:
            tied += 1

    if best_index is not None and best_score >= CONTEXT_FUZZY_THRESHOLD:
        return ContextLineResult(index=best_index, confidence=best_score, match_count=tied)

    return ContextLineResult(index=None, confidence=best_score)
