"""Line-numbered diff rendering for edit results."""

import difflib
import re
from typing import List, Tuple

from fuzzy_edit.edit_normalizer import normalize_to_lf, strip_bom
from fuzzy_edit.edit_types import DiffResult


DEFAULT_CONTEXT_LINES = 4

_LINE_TOKEN = re.compile(r'[^\n]*\n|[^\n]+')


def _split_keep_newlines(text: str) -> List[str]:
    return _LINE_TOKEN.findall(text)


def _diff_parts(old_content: str, new_content: str) -> List[Tuple[str, List[str]]]:
    """
    Group a line diff into runs.

    Returns:
        List of (kind, lines) where kind is ' ', '-' or '+'.  A replaced block
        yields its removed run before its added run.
    """
    old_tokens = _split_keep_newlines(old_content)
    new_tokens = _split_keep_newlines(new_content)
    matcher = difflib.SequenceMatcher(None, old_tokens, new_tokens, autojunk=False)

    parts: List[Tuple[str, List[str]]] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == 'equal':
            parts.append((' ', old_tokens[i1:i2]))
            continue

        if tag in ('replace', 'delete'):
            parts.append(('-', old_tokens[i1:i2]))

        if tag in ('replace', 'insert'):
            parts.append(('+', new_tokens[j1:j2]))

    return [(kind, [token.rstrip("\n") for token in tokens]) for kind, tokens in parts]


def generate_diff_string(
    old_content: str,
    new_content: str,
    context_lines: int = DEFAULT_CONTEXT_LINES
) -> DiffResult:
    """
    Render a line diff with line numbers and limited context.

    Changed lines are prefixed "+" or "-" and numbered in the new or old file
    respectively.  At most `context_lines` unchanged lines are shown either
    side of a change; skipped lines are replaced with a "..." row.

    Args:
        old_content: Content before the edit
        new_content: Content after the edit
        context_lines: Unchanged lines to show around each change

    Returns:
        DiffResult with the rendered text and the first changed line in the new file
    """
    parts = _diff_parts(old_content, new_content)
    width = len(str(max(len(old_content.split("\n")), len(new_content.split("\n")))))
    ellipsis = " " + " " * width + " ..."

    output: List[str] = []
    old_line = 1
    new_line = 1
    last_was_change = False
    first_changed_line = None

    for index, (kind, lines) in enumerate(parts):
        if kind != ' ':
            if first_changed_line is None:
                first_changed_line = new_line

            for line in lines:
                if kind == '+':
                    output.append(f"+{new_line:>{width}} {line}")
                    new_line += 1

                else:
                    output.append(f"-{old_line:>{width}} {line}")
                    old_line += 1

            last_was_change = True
            continue

        next_is_change = index + 1 < len(parts) and parts[index + 1][0] != ' '
        if not last_was_change and not next_is_change:
            old_line += len(lines)
            new_line += len(lines)
            continue

        shown = lines
        skip_start = 0
        skip_end = 0

        if not last_was_change:
            skip_start = max(0, len(lines) - context_lines)
            shown = lines[skip_start:]

        if not next_is_change and len(shown) > context_lines:
            skip_end = len(shown) - context_lines
            shown = shown[:context_lines]

        if skip_start > 0:
            output.append(ellipsis)
            old_line += skip_start
            new_line += skip_start

        for line in shown:
            output.append(f" {old_line:>{width}} {line}")
            old_line += 1
            new_line += 1

        if skip_end > 0:
            output.append(ellipsis)
            old_line += skip_end
            new_line += skip_end

        last_was_change = False

    return DiffResult(diff="\n".join(output), first_changed_line=first_changed_line)


def compute_diff(
    old_content: str,
    new_content: str,
    context_lines: int = DEFAULT_CONTEXT_LINES
) -> DiffResult:
    """Render a diff between two raw file contents, ignoring BOMs and line ending style."""
    old_text = normalize_to_lf(strip_bom(old_content).text)
    new_text = normalize_to_lf(strip_bom(new_content).text)
    return generate_diff_string(old_text, new_text, context_lines)
