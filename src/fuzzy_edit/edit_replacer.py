"""Search-and-replace edits."""

import logging
import os
from typing import List, Tuple

from fuzzy_edit.edit_diff_renderer import generate_diff_string
from fuzzy_edit.edit_exceptions import EditMatchError, EditStructuralError
from fuzzy_edit.edit_file_system import EditFileSystem, LocalFileSystem
from fuzzy_edit.edit_normalizer import (
    adjust_indentation,
    detect_line_ending,
    normalize_to_lf,
    restore_line_endings,
    strip_bom,
)
from fuzzy_edit.edit_settings import EditSettings
from fuzzy_edit.edit_text_matcher import DEFAULT_FUZZY_THRESHOLD, find_match
from fuzzy_edit.edit_types import FuzzyMatch, ReplaceEditResult, ReplaceResult


def replace_text(
    content: str,
    old_text: str,
    new_text: str,
    fuzzy: bool = True,
    all: bool = False,  # pylint: disable=redefined-builtin
    threshold: float = DEFAULT_FUZZY_THRESHOLD
) -> ReplaceResult:
    """
    Replace old_text with new_text in content.

    In single mode the old text must be found exactly once (or, with fuzzy
    matching, one window must clear the threshold).  In all mode every exact
    occurrence is replaced; if there are none, fuzzy matches are replaced one
    after another until no more are found.  Each replacement is re-indented to
    match the text it replaces.

    Args:
        content: Text to edit
        old_text: Text to replace
        new_text: Replacement text
        fuzzy: Allow approximate matches
        all: Replace every occurrence rather than exactly one
        threshold: Minimum similarity for a fuzzy match

    Returns:
        ReplaceResult with the new content (LF line endings) and number of replacements

    Raises:
        EditStructuralError: If old_text is empty
        EditMatchError: In single mode, if old_text occurs more than once
    """
    if not old_text:
        raise EditStructuralError("old_text must not be empty.")

    content = normalize_to_lf(content)
    old_text = normalize_to_lf(old_text)
    new_text = normalize_to_lf(new_text)

    if all:
        return _replace_all(content, old_text, new_text, fuzzy, threshold)

    outcome = find_match(content, old_text, allow_fuzzy=fuzzy, threshold=threshold)
    if outcome.occurrences is not None and outcome.occurrences > 1:
        raise EditMatchError(
            f"Found {outcome.occurrences} occurrences of the text. The text must be unique. "
            "Please provide more context to make it unique, or use all=True to replace all.",
            search_text=old_text,
            allow_fuzzy=fuzzy,
            threshold=threshold,
            occurrences=outcome.occurrences
        )

    if outcome.match is None:
        return ReplaceResult(content=content, count=0)

    return ReplaceResult(content=_splice(content, outcome.match, old_text, new_text), count=1)


def _replace_all(content: str, old_text: str, new_text: str, fuzzy: bool, threshold: float) -> ReplaceResult:
    exact_count = content.count(old_text)
    if exact_count > 0:
        return ReplaceResult(content=content.replace(old_text, new_text), count=exact_count)

    count = 0
    replaced_spans: List[Tuple[int, int]] = []
    while True:
        match = _best_unreplaced_match(content, old_text, replaced_spans, fuzzy, threshold)
        if match is None:
            break

        start = match.start_index
        end = start + len(match.actual_text)
        adjusted = adjust_indentation(old_text, match.actual_text, new_text)
        content = content[:start] + adjusted + content[end:]

        delta = len(adjusted) - len(match.actual_text)
        replaced_spans = [
            (span_start + delta, span_end + delta) if span_start >= end else (span_start, span_end)
            for span_start, span_end in replaced_spans
        ]
        replaced_spans.append((start, start + len(adjusted)))
        replaced_spans.sort()
        count += 1

    return ReplaceResult(content=content, count=count)


def _best_unreplaced_match(
    content: str,
    old_text: str,
    replaced_spans: List[Tuple[int, int]],
    fuzzy: bool,
    threshold: float
) -> FuzzyMatch | None:
    """
    Find the strongest fuzzy match lying entirely outside the replaced spans.

    The whole content is rescanned each time, one unreplaced segment at a time,
    so a weaker match earlier in the file is still found after a stronger one
    later in the file has been replaced.  Ties keep the earliest candidate.
    """
    best: FuzzyMatch | None = None
    segment_start = 0
    for segment_end, next_start in replaced_spans + [(len(content), len(content))]:
        if segment_start < segment_end:
            outcome = find_match(content[segment_start:segment_end], old_text, allow_fuzzy=fuzzy, threshold=threshold)
            match = outcome.match
            if match is None and fuzzy and outcome.closest is not None and outcome.closest.confidence >= threshold:
                match = outcome.closest

            # An empty window would be matched again at the same place forever
            if match is not None and match.actual_text and (best is None or match.confidence > best.confidence):
                start_index = segment_start + match.start_index
                best = FuzzyMatch(
                    actual_text=match.actual_text,
                    start_index=start_index,
                    start_line=content[:start_index].count("\n") + 1,
                    confidence=match.confidence
                )

        segment_start = next_start

    return best


def _splice(content: str, match: FuzzyMatch, old_text: str, new_text: str) -> str:
    adjusted = adjust_indentation(old_text, match.actual_text, new_text)
    return content[:match.start_index] + adjusted + content[match.start_index + len(match.actual_text):]


class ReplaceApplier:
    """Applies search-and-replace edits to files."""

    def __init__(self, file_system: EditFileSystem | None = None, settings: EditSettings | None = None):
        """
        Initialize the replace applier.

        Args:
            file_system: Storage to read and write files through (local disk by default)
            settings: Matching settings (defaults if not given)
        """
        self._fs = file_system if file_system is not None else LocalFileSystem()
        self._settings = settings if settings is not None else EditSettings.create_default()
        self._logger = logging.getLogger("ReplaceApplier")

    def replace_in_file(
        self,
        path: str,
        old_text: str,
        new_text: str,
        cwd: str = ".",
        all: bool = False,  # pylint: disable=redefined-builtin
        dry_run: bool = False
    ) -> ReplaceEditResult:
        """
        Replace text in a file, preserving its BOM and line endings.

        Args:
            path: File path, relative to cwd or absolute
            old_text: Text to replace
            new_text: Replacement text
            cwd: Directory relative paths are resolved against
            all: Replace every occurrence
            dry_run: Compute the result without writing the file

        Returns:
            ReplaceEditResult including a rendered diff

        Raises:
            EditStructuralError: If old_text is empty, the file is missing, or nothing would change
            EditMatchError: If the text cannot be located unambiguously
        """
        if not old_text:
            raise EditStructuralError("old_text must not be empty.")

        absolute_path = os.path.abspath(os.path.join(cwd, path))
        if not self._fs.exists(absolute_path):
            raise EditStructuralError(f"File not found: {path}", {'phase': 'reading', 'path': path})

        raw_content = self._fs.read(absolute_path)
        bom_result = strip_bom(raw_content)
        line_ending = detect_line_ending(bom_result.text)
        content = normalize_to_lf(bom_result.text)
        old_text = normalize_to_lf(old_text)
        new_text = normalize_to_lf(new_text)

        allow_fuzzy = self._settings.allow_fuzzy
        threshold = self._settings.fuzzy_threshold
        try:
            result = replace_text(content, old_text, new_text, fuzzy=allow_fuzzy, all=all, threshold=threshold)

        except EditMatchError as e:
            self._logger.warning("Ambiguous replacement in %s: %s occurrences", path, e.occurrences)
            raise EditMatchError(
                f"Found {e.occurrences} occurrences of the text in {path}. The text must be unique. "
                "Please provide more context to make it unique, or use all=True to replace all.",
                path=path,
                search_text=old_text,
                allow_fuzzy=allow_fuzzy,
                threshold=threshold,
                occurrences=e.occurrences
            ) from e

        if result.count == 0:
            outcome = find_match(content, old_text, allow_fuzzy=allow_fuzzy, threshold=threshold)
            self._logger.warning(
                "No match in %s (closest confidence %s)",
                path,
                None if outcome.closest is None else round(outcome.closest.confidence, 3)
            )
            raise EditMatchError.for_closest(
                f"Could not find the exact text in {path}. "
                "The old text must match exactly including all whitespace and newlines.",
                path=path,
                search_text=old_text,
                closest=outcome.closest,
                allow_fuzzy=allow_fuzzy,
                threshold=threshold,
                fuzzy_matches=outcome.fuzzy_matches
            )

        if result.content == content:
            raise EditStructuralError(
                f"No changes made to {path}. The replacement produced identical content.",
                {'phase': 'application', 'path': path}
            )

        final_content = bom_result.bom + restore_line_endings(result.content, line_ending)
        if not dry_run:
            self._fs.write(absolute_path, final_content)

        self._logger.debug("Replaced %d occurrence(s) in %s (dry_run=%s)", result.count, path, dry_run)

        return ReplaceEditResult(
            path=absolute_path,
            old_content=raw_content,
            new_content=final_content,
            count=result.count,
            diff=generate_diff_string(content, result.content, self._settings.context_lines)
        )


def replace_in_file(
    path: str,
    old_text: str,
    new_text: str,
    cwd: str = ".",
    all: bool = False,  # pylint: disable=redefined-builtin
    dry_run: bool = False,
    file_system: EditFileSystem | None = None,
    settings: EditSettings | None = None
) -> ReplaceEditResult:
    """Replace text in a file.  See ReplaceApplier.replace_in_file()."""
    applier = ReplaceApplier(file_system, settings)
    return applier.replace_in_file(path, old_text, new_text, cwd=cwd, all=all, dry_run=dry_run)
