"""
Character-window matcher for replace-style edits.

Locates a block of text inside file content.  An exact substring search is
tried first; failing that, every window of lines with the same height as the
target is scored by mean per-line similarity.  Lines are compared with their
relative indentation depth encoded as a prefix, so a block that only differs
in its indentation unit (2 vs 4 spaces, say) still scores highly while a block
with a different nesting structure does not.

The fuzzy scan is O(windows * target lines * line length^2); callers are
expected to bound file sizes.
"""

from dataclasses import dataclass
from typing import List

from fuzzy_edit.edit_normalizer import count_leading_whitespace, normalize_for_fuzzy
from fuzzy_edit.edit_similarity import similarity
from fuzzy_edit.edit_types import FuzzyMatch, MatchOutcome


DEFAULT_FUZZY_THRESHOLD = 0.95

# Best scores in [FALLBACK_THRESHOLD, threshold) are retried without indent depth
FALLBACK_THRESHOLD = 0.80


@dataclass
class _WindowScan:
    best: FuzzyMatch | None
    above_threshold_count: int


def find_match(
    content: str,
    target: str,
    allow_fuzzy: bool,
    threshold: float = DEFAULT_FUZZY_THRESHOLD
) -> MatchOutcome:
    """
    Find target text within content.

    Args:
        content: Text to search (LF line endings)
        target: Text to find (LF line endings)
        allow_fuzzy: Whether a fuzzy candidate may be returned as the match
        threshold: Minimum mean line similarity for a fuzzy match

    Returns:
        MatchOutcome.  `match` is only set when the location is unambiguous;
        `occurrences` is set when the target occurs exactly more than once;
        `closest` and `fuzzy_matches` describe the best fuzzy candidate.
    """
    if not target:
        return MatchOutcome()

    exact_index = content.find(target)
    if exact_index != -1:
        occurrences = content.count(target)
        if occurrences > 1:
            return MatchOutcome(occurrences=occurrences)

        return MatchOutcome(match=FuzzyMatch(
            actual_text=target,
            start_index=exact_index,
            start_line=content[:exact_index].count("\n") + 1,
            confidence=1.0
        ))

    scan = _find_best_fuzzy_match(content, target, threshold)
    if scan.best is None:
        return MatchOutcome()

    if allow_fuzzy and scan.best.confidence >= threshold and scan.above_threshold_count == 1:
        return MatchOutcome(match=scan.best, closest=scan.best)

    return MatchOutcome(closest=scan.best, fuzzy_matches=scan.above_threshold_count)


def _find_best_fuzzy_match(content: str, target: str, threshold: float) -> _WindowScan:
    content_lines = content.split("\n")
    target_lines = target.split("\n")
    if len(target_lines) > len(content_lines):
        return _WindowScan(best=None, above_threshold_count=0)

    offsets = _line_offsets(content_lines)
    scan = _scan_windows(content_lines, target_lines, offsets, threshold, include_depth=True)

    best = scan.best
    if best is not None and FALLBACK_THRESHOLD <= best.confidence < threshold:
        no_depth_scan = _scan_windows(content_lines, target_lines, offsets, threshold, include_depth=False)
        if no_depth_scan.best is not None and no_depth_scan.best.confidence > best.confidence:
            scan = no_depth_scan

    return scan


def _scan_windows(
    content_lines: List[str],
    target_lines: List[str],
    offsets: List[int],
    threshold: float,
    include_depth: bool
) -> _WindowScan:
    target_encoded = _encode_lines(target_lines, include_depth)
    height = len(target_lines)

    best: FuzzyMatch | None = None
    best_score = -1.0
    above_threshold_count = 0

    for start in range(len(content_lines) - height + 1):
        window = content_lines[start:start + height]
        window_encoded = _encode_lines(window, include_depth)
        score = sum(
            similarity(target_line, window_line)
            for target_line, window_line in zip(target_encoded, window_encoded)
        ) / height

        if score >= threshold:
            above_threshold_count += 1

        if score > best_score:
            best_score = score
            best = FuzzyMatch(
                actual_text="\n".join(window),
                start_index=offsets[start],
                start_line=start + 1,
                confidence=score
            )

    return _WindowScan(best=best, above_threshold_count=above_threshold_count)


def _indent_depths(lines: List[str]) -> List[int]:
    """Indentation of each line as a multiple of the block's smallest indent step."""
    indents = [count_leading_whitespace(line) for line in lines]
    non_blank = [indent for line, indent in zip(lines, indents) if line.strip()]
    base = min(non_blank) if non_blank else 0
    steps = [indent - base for indent in non_blank if indent > base]
    unit = min(steps) if steps else 1

    return [
        round((indent - base) / unit) if line.strip() else 0
        for line, indent in zip(lines, indents)
    ]


def _encode_lines(lines: List[str], include_depth: bool) -> List[str]:
    depths = _indent_depths(lines) if include_depth else None
    encoded = []
    for i, line in enumerate(lines):
        prefix = f"{depths[i]}|" if depths is not None else "|"
        encoded.append(prefix + normalize_for_fuzzy(line))

    return encoded


def _line_offsets(lines: List[str]) -> List[int]:
    offsets = []
    offset = 0
    for line in lines:
        offsets.append(offset)
        offset += len(line) + 1

    return offsets
