"""
Diff parsing for patch edits.

Accepts several diff dialects:
- Plain +/-/space diffs with no header
- Bare "@@" and "@@ context" headers
- Unified diff headers ("@@ -10,3 +10,4 @@ optional context")
- Codex-style wrapped patches ("*** Begin Patch" ... "*** End Patch")
"""

import re
from dataclasses import dataclass
from typing import List

from fuzzy_edit.edit_exceptions import EditParseError, EditStructuralError
from fuzzy_edit.edit_types import DiffHunk


EOF_MARKER = "*** End of File"
CHANGE_CONTEXT_MARKER = "@@ "
EMPTY_CHANGE_CONTEXT_MARKER = "@@"

UNIFIED_HUNK_HEADER = re.compile(r'^@@\s*-(\d+)(?:,(\d+))?\s+\+(\d+)(?:,(\d+))?\s*@@(?:\s*(.*))?$')

CODEX_FILE_MARKERS = ("*** Update File:", "*** Add File:", "*** Delete File:")

UNIFIED_METADATA_PREFIXES = (
    "diff --git ",
    "index ",
    "--- ",
    "+++ ",
    "new file mode ",
    "deleted file mode ",
    "rename from ",
    "rename to ",
    "similarity index ",
    "dissimilarity index ",
    "old mode ",
    "new mode ",
)

# Markers that each introduce a separate file in a multi-file patch
MULTI_FILE_MARKERS = CODEX_FILE_MARKERS + ("diff --git ",)


def is_diff_content_line(line: str) -> bool:
    """
    Check if a line is diff content (context, addition or removal).

    "--- " and "+++ " are file headers, not content.
    """
    if line.startswith(" "):
        return True

    if line.startswith("+"):
        return not line.startswith("+++ ")

    if line.startswith("-"):
        return not line.startswith("--- ")

    return False


def normalize_diff(diff: str) -> str:
    """
    Strip patch wrappers and file metadata from a diff, leaving only hunks.

    Trailing empty lines are removed, but a trailing " " line is a blank
    context line and is kept.  "*** End of File" is a hunk marker and is kept.

    Args:
        diff: Raw diff text

    Returns:
        Diff text containing only hunk headers and bodies
    """
    lines = diff.split("\n")

    while lines:
        last = lines[-1]
        if last == "" or (not last.strip() and not is_diff_content_line(last)):
            lines.pop()
            continue

        break

    if lines and lines[0].strip().startswith("*** Begin Patch"):
        lines = lines[1:]

    if lines and lines[-1].strip().startswith("*** End Patch"):
        lines = lines[:-1]

    return "\n".join(line for line in lines if not _is_metadata_line(line))


def normalize_create_content(content: str) -> str:
    """
    Strip "+ " or "+" prefixes from new-file content written as an addition diff.

    Content is only changed if every non-empty line carries the prefix.
    """
    lines = content.split("\n")
    non_empty = [line for line in lines if line]
    if not non_empty or not all(line.startswith("+") for line in non_empty):
        return content

    stripped = []
    for line in lines:
        if line.startswith("+ "):
            stripped.append(line[2:])

        elif line.startswith("+"):
            stripped.append(line[1:])

        else:
            stripped.append(line)

    return "\n".join(stripped)


def _is_metadata_line(line: str) -> bool:
    if is_diff_content_line(line):
        return False

    trimmed = line.strip()
    return trimmed.startswith(CODEX_FILE_MARKERS) or trimmed.startswith(UNIFIED_METADATA_PREFIXES)


def count_file_markers(diff: str) -> int:
    """Count file-level markers in raw diff text, ignoring content lines."""
    count = 0
    for line in diff.split("\n"):
        if is_diff_content_line(line):
            continue

        if line.strip().startswith(MULTI_FILE_MARKERS):
            count += 1

    return count


@dataclass
class _ParsedHunk:
    hunk: DiffHunk
    lines_consumed: int


class HunkParser:
    """Parser for single-file diffs in any of the supported dialects."""

    def parse(self, diff_text: str) -> List[DiffHunk]:
        """
        Parse diff text into hunks.

        Args:
            diff_text: Diff text for a single file

        Returns:
            List of parsed hunks, in diff order

        Raises:
            EditStructuralError: If the diff contains markers for more than one file
            EditParseError: If a hunk is malformed
        """
        marker_count = count_file_markers(diff_text)
        if marker_count > 1:
            raise EditStructuralError(
                f"Diff contains {marker_count} file markers. "
                "Single-file patches cannot contain multi-file markers.",
                {'phase': 'parsing', 'file_markers': marker_count}
            )

        lines = normalize_diff(diff_text).split("\n")
        hunks: List[DiffHunk] = []
        i = 0

        while i < len(lines):
            line = lines[i]
            if not line.strip():
                i += 1
                continue

            # Stray headers between hunks
            if not is_diff_content_line(line) and line.strip().startswith(UNIFIED_METADATA_PREFIXES):
                i += 1
                continue

            parsed = self._parse_hunk(lines[i:], i + 1, allow_missing_header=not hunks)
            hunks.append(parsed.hunk)
            i += parsed.lines_consumed

        return hunks

    def _parse_hunk(self, lines: List[str], line_number: int, allow_missing_header: bool) -> _ParsedHunk:
        """
        Parse a single hunk starting at the first of the given lines.

        Args:
            lines: Remaining diff lines
            line_number: 1-based line number of lines[0] in the normalized diff
            allow_missing_header: True for the first hunk, which may omit its @@ header

        Returns:
            The parsed hunk and the number of lines it used

        Raises:
            EditParseError: If the hunk is malformed
        """
        hunk = DiffHunk()
        header = lines[0].strip()
        unified = UNIFIED_HUNK_HEADER.match(header)

        if header == EMPTY_CHANGE_CONTEXT_MARKER:
            body_start = 1

        elif unified:
            hunk.old_start_line = int(unified.group(1))
            hunk.new_start_line = int(unified.group(3))
            context = (unified.group(5) or "").strip()
            hunk.change_context = context or None
            body_start = 1

        elif header.startswith(CHANGE_CONTEXT_MARKER):
            hunk.change_context = header[len(CHANGE_CONTEXT_MARKER):]
            body_start = 1

        else:
            if not allow_missing_header:
                raise EditParseError(
                    f"Expected hunk to start with @@ context marker, got: '{lines[0]}'",
                    line_number
                )

            body_start = 0

        if body_start >= len(lines):
            raise EditParseError("Hunk does not contain any lines", line_number + 1)

        parsed_lines = 0
        for line in lines[body_start:]:
            if line == EOF_MARKER:
                if parsed_lines == 0:
                    raise EditParseError("Hunk does not contain any lines", line_number + 1)

                hunk.is_end_of_file = True
                parsed_lines += 1
                break

            if line == "":
                hunk.has_context_lines = True
                hunk.old_lines.append("")
                hunk.new_lines.append("")

            elif line[0] == " ":
                hunk.has_context_lines = True
                hunk.old_lines.append(line[1:])
                hunk.new_lines.append(line[1:])

            elif line[0] == "+":
                hunk.new_lines.append(line[1:])

            elif line[0] == "-":
                hunk.old_lines.append(line[1:])

            else:
                if parsed_lines == 0:
                    raise EditParseError(
                        f"Unexpected line in hunk: '{line}'. Lines must start with "
                        "' ' (context), '+' (add), or '-' (remove)",
                        line_number + body_start
                    )

                # Start of the next hunk
                break

            parsed_lines += 1

        return _ParsedHunk(hunk=hunk, lines_consumed=body_start + parsed_lines)


def parse_hunks(diff_text: str) -> List[DiffHunk]:
    """Parse diff text into hunks.  See HunkParser.parse()."""
    return HunkParser().parse(diff_text)
