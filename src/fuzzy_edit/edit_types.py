"""Shared dataclasses for edit operations."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List


@dataclass
class FuzzyMatch:
    """A located region of text."""

    actual_text: str  # The text as it appears in the content
    start_index: int  # Character offset into the content (0-indexed)
    start_line: int  # Line number of the first character (1-indexed)
    confidence: float  # 0.0 to 1.0, 1.0 only for exact matches


@dataclass
class MatchOutcome:
    """Result of a character-window search."""

    match: FuzzyMatch | None = None  # Set only for an unambiguous match
    closest: FuzzyMatch | None = None  # Best candidate, for diagnostics
    occurrences: int | None = None  # Number of exact occurrences when more than one
    fuzzy_matches: int | None = None  # Number of windows at or above the threshold


@dataclass
class SequenceSearchResult:
    """Result of a line-sequence search."""

    index: int | None  # Line index of the first matched line (0-indexed)
    confidence: float
    match_count: int | None = None  # Candidates that satisfied the winning pass


@dataclass
class ContextLineResult:
    """Result of locating a single anchor line."""

    index: int | None  # Line index (0-indexed)
    confidence: float
    match_count: int | None = None  # Lines that satisfied the winning pass


@dataclass
class DiffHunk:
    """A single hunk of a parsed diff."""

    change_context: str | None = None  # Text after "@@ ", used as an anchor
    old_start_line: int | None = None  # Line hint from a unified header (1-indexed)
    new_start_line: int | None = None
    has_context_lines: bool = False  # True if the body contained any ' ' lines
    old_lines: List[str] = field(default_factory=list)  # Context and removed lines
    new_lines: List[str] = field(default_factory=list)  # Context and added lines
    is_end_of_file: bool = False  # True if the hunk ended with "*** End of File"


class PatchOperation(Enum):
    """Kind of change a patch makes to a file."""

    CREATE = "create"
    DELETE = "delete"
    UPDATE = "update"


@dataclass
class PatchInput:
    """A single-file patch request."""

    path: str
    operation: PatchOperation
    move_to: str | None = None
    diff: str | None = None  # Literal content for CREATE, hunk text for UPDATE


@dataclass
class FileChange:
    """Description of a change made (or to be made) to a file."""

    type: PatchOperation
    path: str
    new_path: str | None = None
    old_content: str | None = None
    new_content: str | None = None


@dataclass
class ApplyPatchResult:
    """Result of applying a patch."""

    change: FileChange


@dataclass
class DiffResult:
    """A rendered line diff."""

    diff: str
    first_changed_line: int | None  # New-file line number (1-indexed)


@dataclass
class ReplaceResult:
    """Result of a text replacement."""

    content: str
    count: int


@dataclass
class ReplaceEditResult:
    """Result of a file-level replace edit."""

    path: str
    old_content: str
    new_content: str
    count: int
    diff: DiffResult
