"""
Patch application.

Applies a single-file patch (create, delete or update) through an
EditFileSystem.  Update hunks are located with the line-sequence matcher and
applied in order, each against the content as already modified by the hunks
before it.
"""

import logging
import os
from typing import List, Tuple

from fuzzy_edit.edit_exceptions import EditMatchError, EditStructuralError
from fuzzy_edit.edit_file_system import EditFileSystem, LocalFileSystem
from fuzzy_edit.edit_line_matcher import find_context_line, seek_sequence
from fuzzy_edit.edit_normalizer import (
    adjust_indentation,
    adjust_lines_indentation,
    detect_line_ending,
    normalize_to_lf,
    restore_line_endings,
    strip_bom,
)
from fuzzy_edit.edit_parser import HunkParser, normalize_create_content
from fuzzy_edit.edit_settings import EditSettings
from fuzzy_edit.edit_text_matcher import find_match
from fuzzy_edit.edit_types import (
    ApplyPatchResult,
    DiffHunk,
    FileChange,
    PatchInput,
    PatchOperation,
    SequenceSearchResult,
)


def _apply_trailing_newline_policy(content: str, had_final_newline: bool) -> str:
    if had_final_newline:
        return content if content.endswith("\n") else content + "\n"

    return content.rstrip("\n")


class PatchApplier:
    """Applies single-file patches."""

    def __init__(self, file_system: EditFileSystem | None = None, settings: EditSettings | None = None):
        """
        Initialize the patch applier.

        Args:
            file_system: Storage to read and write files through (local disk by default)
            settings: Matching settings (defaults if not given)
        """
        self._fs = file_system if file_system is not None else LocalFileSystem()
        self._settings = settings if settings is not None else EditSettings.create_default()
        self._parser = HunkParser()
        self._logger = logging.getLogger("PatchApplier")

    def apply(self, patch: PatchInput, cwd: str = ".", dry_run: bool = False) -> ApplyPatchResult:
        """
        Apply a patch.

        Args:
            patch: The patch to apply
            cwd: Directory relative paths are resolved against
            dry_run: If True, compute the change without touching storage

        Returns:
            ApplyPatchResult describing the change

        Raises:
            EditStructuralError: If the patch request is malformed
            EditParseError: If the diff cannot be parsed
            EditMatchError: If a hunk cannot be located unambiguously
        """
        absolute_path = self._resolve(cwd, patch.path)
        destination_path = None
        if patch.move_to:
            destination_path = self._resolve(cwd, patch.move_to)
            if destination_path == absolute_path:
                raise EditStructuralError("move_to path is the same as source path")

        if patch.operation == PatchOperation.CREATE:
            return self._create(patch, absolute_path, dry_run)

        if patch.operation == PatchOperation.DELETE:
            return self._delete(absolute_path, dry_run)

        if patch.operation == PatchOperation.UPDATE:
            return self._update(patch, absolute_path, destination_path, dry_run)

        raise EditStructuralError(f"Unknown patch operation: {patch.operation}")

    def _resolve(self, cwd: str, path: str) -> str:
        return os.path.abspath(os.path.join(cwd, path))

    def _create(self, patch: PatchInput, absolute_path: str, dry_run: bool) -> ApplyPatchResult:
        if not patch.diff:
            raise EditStructuralError("Create operation requires diff (file content)")

        content = normalize_create_content(patch.diff)
        if not content.endswith("\n"):
            content += "\n"

        if not dry_run:
            self._fs.mkdir(os.path.dirname(absolute_path))
            self._fs.write(absolute_path, content)

        self._logger.debug("Created %s (dry_run=%s)", absolute_path, dry_run)
        return ApplyPatchResult(change=FileChange(
            type=PatchOperation.CREATE,
            path=absolute_path,
            new_content=content
        ))

    def _delete(self, absolute_path: str, dry_run: bool) -> ApplyPatchResult:
        old_content = None
        if self._fs.exists(absolute_path):
            old_content = self._fs.read(absolute_path)
            if not dry_run:
                self._fs.delete(absolute_path)

        self._logger.debug("Deleted %s (dry_run=%s)", absolute_path, dry_run)
        return ApplyPatchResult(change=FileChange(
            type=PatchOperation.DELETE,
            path=absolute_path,
            old_content=old_content
        ))

    def _update(
        self,
        patch: PatchInput,
        absolute_path: str,
        destination_path: str | None,
        dry_run: bool
    ) -> ApplyPatchResult:
        if not patch.diff:
            raise EditStructuralError("Update operation requires diff (hunks)")

        if not self._fs.exists(absolute_path):
            raise EditStructuralError(f"File not found: {patch.path}", {'phase': 'reading', 'path': patch.path})

        original_content = self._fs.read(absolute_path)
        bom_result = strip_bom(original_content)
        line_ending = detect_line_ending(bom_result.text)
        content = normalize_to_lf(bom_result.text)

        hunks = self._parser.parse(patch.diff)
        if not hunks:
            raise EditStructuralError("Diff contains no hunks")

        new_content = self.apply_hunks(content, patch.path, hunks)
        final_content = bom_result.bom + restore_line_endings(new_content, line_ending)

        if not dry_run:
            if destination_path is not None:
                self._fs.mkdir(os.path.dirname(destination_path))
                self._fs.write(destination_path, final_content)
                self._fs.delete(absolute_path)

            else:
                self._fs.write(absolute_path, final_content)

        self._logger.debug(
            "Updated %s with %d hunk(s) (dry_run=%s, move_to=%s)",
            absolute_path,
            len(hunks),
            dry_run,
            destination_path
        )
        return ApplyPatchResult(change=FileChange(
            type=PatchOperation.UPDATE,
            path=absolute_path,
            new_path=destination_path,
            old_content=original_content,
            new_content=final_content
        ))

    def apply_hunks(self, content: str, path: str, hunks: List[DiffHunk]) -> str:
        """
        Apply parsed hunks to LF-normalized content.

        Args:
            content: File content with LF line endings and no BOM
            path: Path used in error messages
            hunks: Hunks to apply, in order

        Returns:
            New content, keeping the original trailing newline state

        Raises:
            EditMatchError: If a hunk cannot be located unambiguously
        """
        had_final_newline = content.endswith("\n")

        if len(hunks) == 1 and self._is_simple_replace(hunks[0]):
            new_content = self._apply_character_match(content, path, hunks[0])
            return _apply_trailing_newline_policy(new_content, had_final_newline)

        lines = content.split("\n")

        # Only the empty element created by the final newline is set aside; real blank lines stay
        stripped_trailing_empty = False
        if had_final_newline and lines and lines[-1] == "":
            lines.pop()
            stripped_trailing_empty = True

        line_index = 0
        line_delta = 0
        for number, hunk in enumerate(hunks, start=1):
            line_index, delta = self._apply_hunk(lines, hunk, line_index, line_delta, path, number, len(hunks))
            line_delta += delta

        if stripped_trailing_empty:
            lines.append("")

        new_content = "\n".join(lines)
        if had_final_newline and not new_content.endswith("\n"):
            return new_content + "\n"

        if not had_final_newline and new_content.endswith("\n"):
            return new_content[:-1]

        return new_content

    def _is_simple_replace(self, hunk: DiffHunk) -> bool:
        """A hunk of bare -/+ lines with nothing to position it but its own text."""
        return (
            hunk.change_context is None and
            not hunk.has_context_lines and
            len(hunk.old_lines) > 0 and
            hunk.old_start_line is None and
            not hunk.is_end_of_file
        )

    def _apply_character_match(self, content: str, path: str, hunk: DiffHunk) -> str:
        old_text = "\n".join(hunk.old_lines)
        new_text = "\n".join(hunk.new_lines)
        allow_fuzzy = self._settings.allow_fuzzy
        threshold = self._settings.fuzzy_threshold

        outcome = find_match(content, old_text, allow_fuzzy=allow_fuzzy, threshold=threshold)
        if outcome.occurrences is not None and outcome.occurrences > 1:
            self._logger.warning("Ambiguous hunk in %s: %d occurrences", path, outcome.occurrences)
            raise EditMatchError(
                f"Found {outcome.occurrences} occurrences of the text in {path}. "
                "The text must be unique. Please provide more context to make it unique.",
                path=path,
                search_text=old_text,
                allow_fuzzy=allow_fuzzy,
                threshold=threshold,
                occurrences=outcome.occurrences
            )

        if outcome.match is None:
            header = (
                f"Could not find a close enough match in {path}."
                if outcome.closest is not None
                else f"Failed to find expected lines in {path}:\n{old_text}"
            )
            raise EditMatchError.for_closest(
                header,
                path=path,
                search_text=old_text,
                closest=outcome.closest,
                allow_fuzzy=allow_fuzzy,
                threshold=threshold,
                fuzzy_matches=outcome.fuzzy_matches
            )

        match = outcome.match
        adjusted = adjust_indentation(old_text, match.actual_text, new_text)
        return content[:match.start_index] + adjusted + content[match.start_index + len(match.actual_text):]

    def _apply_hunk(
        self,
        lines: List[str],
        hunk: DiffHunk,
        line_index: int,
        line_delta: int,
        path: str,
        number: int,
        total: int
    ) -> Tuple[int, int]:
        """
        Locate a hunk in the current lines and splice in its new lines.

        Args:
            lines: Current file lines (modified in place)
            hunk: The hunk to apply
            line_index: Cursor left by the previous hunk
            line_delta: Net lines added by previous hunks, used to shift line hints
            path: Path used in error messages
            number: 1-based hunk number
            total: Total number of hunks

        Returns:
            Tuple of (new cursor, net lines added by this hunk)
        """
        line_hint = None
        if hunk.old_start_line is not None:
            line_hint = hunk.old_start_line + line_delta

        if line_hint is not None and hunk.change_context is None:
            line_index = max(0, min(line_hint - 1, len(lines) - 1))

        if hunk.change_context is not None:
            line_index = self._locate_change_context(lines, hunk, hunk.change_context, line_hint, line_index, path)

        if not hunk.old_lines:
            insert_at = self._insertion_index(lines, hunk, line_hint, line_index, path)
            lines[insert_at:insert_at] = hunk.new_lines
            self._logger.debug("Hunk %d/%d: inserted %d line(s) at %d", number, total, len(hunk.new_lines), insert_at)
            return insert_at + len(hunk.new_lines), len(hunk.new_lines)

        hint_index = None
        if line_hint is not None and max(0, line_hint - 1) >= line_index:
            hint_index = max(0, line_hint - 1)

        pattern = list(hunk.old_lines)
        new_slice = list(hunk.new_lines)
        result = self._find_sequence_with_hint(lines, pattern, line_index, hint_index, hunk.is_end_of_file)

        # Models often end a hunk with a blank context line the file doesn't have
        if result.index is None and pattern and pattern[-1] == "":
            pattern = pattern[:-1]
            if new_slice and new_slice[-1] == "":
                new_slice = new_slice[:-1]

            result = self._find_sequence_with_hint(lines, pattern, line_index, hint_index, hunk.is_end_of_file)

        error_details = {'failed_hunk': number, 'total_hunks': total}
        found = result.index
        if found is None:
            raise self._not_found_error(lines, hunk, path, error_details)

        if result.match_count is not None and result.match_count > 1:
            self._logger.warning("Hunk %d/%d: %d partial matches in %s", number, total, result.match_count, path)
            raise EditMatchError(
                f"Found {result.match_count} matches for the text in {path}. "
                "The text must be unique. Please provide more context to make it unique.",
                path=path,
                search_text="\n".join(hunk.old_lines),
                occurrences=result.match_count,
                error_details=error_details
            )

        # Without context or an EOF marker, the removed lines themselves must be unique
        if hunk.change_context is None and not hunk.has_context_lines and not hunk.is_end_of_file:
            second = seek_sequence(lines, pattern, found + 1, False)
            if second.index is not None:
                self._logger.warning("Hunk %d/%d: second occurrence at %d in %s", number, total, second.index, path)
                raise EditMatchError(
                    f"Found 2 occurrences of the text in {path}. "
                    "The text must be unique. Please provide more context to make it unique.",
                    path=path,
                    search_text="\n".join(hunk.old_lines),
                    occurrences=2,
                    error_details=error_details
                )

        actual = lines[found:found + len(pattern)]
        adjusted = adjust_lines_indentation(pattern, actual, new_slice)
        lines[found:found + len(pattern)] = adjusted

        self._logger.debug(
            "Hunk %d/%d: replaced %d line(s) at %d (confidence %.3f)",
            number,
            total,
            len(pattern),
            found,
            result.confidence
        )
        return found + len(adjusted), len(adjusted) - len(pattern)

    def _locate_change_context(
        self,
        lines: List[str],
        hunk: DiffHunk,
        context: str,
        line_hint: int | None,
        line_index: int,
        path: str
    ) -> int:
        """
        Find a hunk's "@@ context" anchor and return the cursor to search from.

        The hint is tried first, then the cursor, then the start of the file.
        """
        search_start = max(0, line_hint - 1) if line_hint is not None else line_index
        result = find_context_line(lines, context, search_start)

        if result.index is None and line_hint is not None and search_start != line_index:
            result = find_context_line(lines, context, line_index)

        if result.index is None and search_start != 0:
            result = find_context_line(lines, context, 0)

        if result.index is None:
            raise EditMatchError(
                f"Failed to find context '{context}' in {path}",
                path=path,
                search_text=context
            )

        match_count = result.match_count if result.match_count is not None else 1
        if match_count > 1 and line_hint is None:
            self._logger.warning("Context '%s' matched %d lines in %s", context, match_count, path)
            raise EditMatchError(
                f"Found {match_count} matches for context '{context}' in {path}. "
                "The context must be unique. Please provide more specific context.",
                path=path,
                search_text=context,
                occurrences=match_count
            )

        # The "@@" anchor is often repeated as the first context line
        if hunk.old_lines and hunk.old_lines[0].strip() == context.strip():
            return result.index

        return result.index + 1

    def _insertion_index(
        self,
        lines: List[str],
        hunk: DiffHunk,
        line_hint: int | None,
        line_index: int,
        path: str
    ) -> int:
        if hunk.change_context is not None:
            return line_index

        hint = line_hint if line_hint is not None else hunk.new_start_line
        if hint is not None:
            if hint > len(lines) + 1:
                raise EditMatchError(
                    f"Line hint {hint} is out of range for insertion in {path} "
                    f"(file has {len(lines)} lines)",
                    path=path,
                    error_details={'reason': 'Line hint out of range', 'line_hint': hint}
                )

            return max(0, hint - 1)

        if lines and lines[-1] == "":
            return len(lines) - 1

        return len(lines)

    def _find_sequence_with_hint(
        self,
        lines: List[str],
        pattern: List[str],
        line_index: int,
        hint_index: int | None,
        eof: bool
    ) -> SequenceSearchResult:
        primary_start = hint_index if hint_index is not None else line_index
        result = seek_sequence(lines, pattern, primary_start, eof)

        if result.index is None and hint_index is not None and hint_index != line_index:
            result = seek_sequence(lines, pattern, line_index, eof)

        # Out-of-order hunks
        if result.index is None and primary_start != 0 and line_index != 0:
            result = seek_sequence(lines, pattern, 0, eof)

        return result

    def _not_found_error(
        self,
        lines: List[str],
        hunk: DiffHunk,
        path: str,
        error_details: dict
    ) -> EditMatchError:
        old_text = "\n".join(hunk.old_lines)
        outcome = find_match("\n".join(lines), old_text, allow_fuzzy=True, threshold=self._settings.fuzzy_threshold)
        self._logger.warning(
            "Hunk %d/%d not found in %s",
            error_details["failed_hunk"],
            error_details["total_hunks"],
            path
        )
        return EditMatchError.for_closest(
            f"Failed to find expected lines in {path}:\n{old_text}",
            path=path,
            search_text=old_text,
            closest=outcome.closest,
            allow_fuzzy=self._settings.allow_fuzzy,
            threshold=self._settings.fuzzy_threshold,
            fuzzy_matches=outcome.fuzzy_matches,
            error_details=error_details
        )


def apply_patch(
    patch: PatchInput,
    cwd: str = ".",
    file_system: EditFileSystem | None = None,
    dry_run: bool = False,
    settings: EditSettings | None = None
) -> ApplyPatchResult:
    """Apply a single-file patch.  See PatchApplier.apply()."""
    return PatchApplier(file_system, settings).apply(patch, cwd=cwd, dry_run=dry_run)


def preview_patch(
    patch: PatchInput,
    cwd: str = ".",
    file_system: EditFileSystem | None = None,
    settings: EditSettings | None = None
) -> ApplyPatchResult:
    """Compute the change a patch would make without applying it."""
    return apply_patch(patch, cwd=cwd, file_system=file_system, dry_run=True, settings=settings)
