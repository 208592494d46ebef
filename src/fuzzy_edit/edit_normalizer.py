"""
Text normalization for edit matching.

Line endings, byte order marks, leading whitespace and typographic punctuation
all vary between what a model writes and what is on disk.  The functions here
reduce that variation so the matchers can compare like with like.
"""

import re
from dataclasses import dataclass
from typing import List


CRLF = "\r\n"
LF = "\n"
BOM = "\ufeff"

# Dashes, quotes and odd spaces folded to ASCII by normalize_unicode()
_UNICODE_TRANSLATION = str.maketrans({
    **{chr(code): "-" for code in (0x2010, 0x2011, 0x2012, 0x2013, 0x2014, 0x2015, 0x2212)},
    **{chr(code): "'" for code in (0x2018, 0x2019, 0x201A, 0x201B)},
    **{chr(code): '"' for code in (0x201C, 0x201D, 0x201E, 0x201F)},
    **{chr(code): " " for code in (0x00A0, *range(0x2002, 0x200B), 0x202F, 0x205F, 0x3000)},
})

# normalize_for_fuzzy() also folds guillemets, backticks and acute accents
_FUZZY_TRANSLATION = str.maketrans({
    **{c: '"' for c in "“”„‟«»"},
    **{c: "'" for c in "‘’‚‛`´"},
    **{c: "-" for c in "‐‑‒–—−"},
})

_SPACE_RUN = re.compile(r'[ \t]+')


@dataclass
class BomResult:
    """Content split into its byte order mark and the remaining text."""

    bom: str  # BOM character if present, empty string otherwise
    text: str


def normalize_to_lf(text: str) -> str:
    """Convert CRLF and lone CR line endings to LF."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def detect_line_ending(content: str) -> str:
    """
    Detect the line ending convention of some content.

    Content with no LF at all, or whose first CRLF comes before any bare LF,
    is treated as CRLF.  Everything else is LF.

    Args:
        content: Raw file content

    Returns:
        "\\r\\n" or "\\n"
    """
    lf_index = content.find("\n")
    if lf_index == -1:
        return CRLF

    crlf_index = content.find("\r\n")
    if crlf_index != -1 and crlf_index < lf_index:
        return CRLF

    return LF


def restore_line_endings(text: str, ending: str) -> str:
    """Convert LF-normalized text back to the given line ending."""
    if ending == CRLF:
        return text.replace("\n", "\r\n")

    return text


def strip_bom(content: str) -> BomResult:
    """Split a leading byte order mark from content."""
    if content.startswith(BOM):
        return BomResult(bom=BOM, text=content[1:])

    return BomResult(bom="", text=content)


def count_leading_whitespace(line: str) -> int:
    """Count leading spaces and tabs."""
    count = 0
    for char in line:
        if char not in (" ", "\t"):
            break

        count += 1

    return count


def get_leading_whitespace(line: str) -> str:
    return line[:count_leading_whitespace(line)]


def min_indent(text: str) -> int:
    """Smallest indentation of any non-blank line, or 0 if there are none."""
    return _min_indent_of_lines(text.split("\n"))


def detect_indent_char(text: str) -> str:
    """Return the first indentation character used in text, defaulting to a space."""
    for line in text.split("\n"):
        whitespace = get_leading_whitespace(line)
        if whitespace:
            return whitespace[0]

    return " "


def normalize_unicode(s: str) -> str:
    """
    Trim and fold typographic punctuation and unusual spaces to ASCII.

    Internal runs of whitespace are preserved.
    """
    return s.strip().translate(_UNICODE_TRANSLATION)


def normalize_for_fuzzy(line: str) -> str:
    """
    Normalize a line for fuzzy comparison.

    Trims, folds smart quotes and dashes to ASCII, and collapses runs of
    spaces and tabs to a single space.
    """
    trimmed = line.strip()
    if not trimmed:
        return ""

    return _SPACE_RUN.sub(" ", trimmed.translate(_FUZZY_TRANSLATION))


def adjust_indentation(old_text: str, actual_text: str, new_text: str) -> str:
    """
    Re-indent replacement text to match where the old text was actually found.

    If the model supplied old_text with no indentation but it was found indented
    by 8 spaces, every non-blank line of new_text gains 8 spaces (and the
    reverse for removal, never removing more whitespace than a line has).

    Args:
        old_text: Text the edit asked to replace
        actual_text: Text that was actually matched in the file
        new_text: Replacement text

    Returns:
        Re-indented replacement text
    """
    adjusted = adjust_lines_indentation(
        old_text.split("\n"),
        actual_text.split("\n"),
        new_text.split("\n")
    )
    return "\n".join(adjusted)


def adjust_lines_indentation(
    pattern_lines: List[str],
    actual_lines: List[str],
    new_lines: List[str]
) -> List[str]:
    """
    Line-list form of adjust_indentation().

    Args:
        pattern_lines: Lines the edit asked to replace
        actual_lines: Lines that were actually matched
        new_lines: Replacement lines

    Returns:
        Re-indented replacement lines (a new list)
    """
    delta = _min_indent_of_lines(actual_lines) - _min_indent_of_lines(pattern_lines)
    if delta == 0:
        return list(new_lines)

    indent_char = detect_indent_char("\n".join(actual_lines))
    adjusted = []
    for line in new_lines:
        if not line.strip():
            adjusted.append(line)
            continue

        if delta > 0:
            adjusted.append(indent_char * delta + line)
            continue

        to_remove = min(-delta, count_leading_whitespace(line))
        adjusted.append(line[to_remove:])

    return adjusted


def _min_indent_of_lines(lines: List[str]) -> int:
    indents = [count_leading_whitespace(line) for line in lines if line.strip()]
    return min(indents) if indents else 0
