"""
Fuzzy patch and search-and-replace editing.

This package applies edits produced by language models to source files,
tolerating imprecise whitespace, indentation, punctuation, line numbers and
context.  Ambiguous locations are reported as errors rather than guessed.
"""

from fuzzy_edit.edit_diff_renderer import compute_diff, generate_diff_string
from fuzzy_edit.edit_exceptions import (
    EditError,
    EditMatchError,
    EditParseError,
    EditStructuralError,
)
from fuzzy_edit.edit_file_system import EditFileSystem, LocalFileSystem
from fuzzy_edit.edit_line_matcher import find_context_line, seek_sequence
from fuzzy_edit.edit_normalizer import (
    adjust_indentation,
    detect_line_ending,
    normalize_for_fuzzy,
    normalize_to_lf,
    normalize_unicode,
    restore_line_endings,
    strip_bom,
)
from fuzzy_edit.edit_parser import HunkParser, normalize_create_content, normalize_diff, parse_hunks
from fuzzy_edit.edit_patch_applier import PatchApplier, apply_patch, preview_patch
from fuzzy_edit.edit_replacer import ReplaceApplier, replace_in_file, replace_text
from fuzzy_edit.edit_settings import EditSettings
from fuzzy_edit.edit_similarity import levenshtein_distance, similarity
from fuzzy_edit.edit_text_matcher import DEFAULT_FUZZY_THRESHOLD, find_match
from fuzzy_edit.edit_types import (
    ApplyPatchResult,
    ContextLineResult,
    DiffHunk,
    DiffResult,
    FileChange,
    FuzzyMatch,
    MatchOutcome,
    PatchInput,
    PatchOperation,
    ReplaceEditResult,
    ReplaceResult,
    SequenceSearchResult,
)

__version__ = "1.0.0"

__all__ = [
    # Exceptions
    'EditError',
    'EditParseError',
    'EditStructuralError',
    'EditMatchError',
    # Types
    'FuzzyMatch',
    'MatchOutcome',
    'SequenceSearchResult',
    'ContextLineResult',
    'DiffHunk',
    'PatchOperation',
    'PatchInput',
    'FileChange',
    'ApplyPatchResult',
    'DiffResult',
    'ReplaceResult',
    'ReplaceEditResult',
    # Normalization and similarity
    'normalize_to_lf',
    'detect_line_ending',
    'restore_line_endings',
    'strip_bom',
    'normalize_unicode',
    'normalize_for_fuzzy',
    'adjust_indentation',
    'levenshtein_distance',
    'similarity',
    # Matching
    'DEFAULT_FUZZY_THRESHOLD',
    'find_match',
    'seek_sequence',
    'find_context_line',
    # Parsing and rendering
    'HunkParser',
    'parse_hunks',
    'normalize_diff',
    'normalize_create_content',
    'generate_diff_string',
    'compute_diff',
    # Core classes
    'EditFileSystem',
    'LocalFileSystem',
    'EditSettings',
    'ReplaceApplier',
    'PatchApplier',
    # Operations
    'replace_text',
    'replace_in_file',
    'apply_patch',
    'preview_patch',
]
