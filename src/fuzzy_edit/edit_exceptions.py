"""Custom exceptions for edit operations."""

from typing import Any, Tuple

from fuzzy_edit.edit_types import FuzzyMatch


def _first_difference(requested_text: str, actual_text: str) -> Tuple[str, str] | None:
    requested_lines = requested_text.split("\n")
    actual_lines = actual_text.split("\n")
    for i in range(max(len(requested_lines), len(actual_lines))):
        requested = requested_lines[i] if i < len(requested_lines) else ""
        actual = actual_lines[i] if i < len(actual_lines) else ""
        if requested != actual:
            return requested, actual

    return None


class EditError(Exception):
    """Base exception for edit operations."""

    def __init__(self, message: str, error_details: dict[str, Any] | None = None):
        """
        Initialize the exception.

        Args:
            message: Error message
            error_details: Optional dictionary with detailed error information
        """
        super().__init__(message)
        self.error_details = error_details


class EditParseError(EditError):
    """Raised when diff text cannot be parsed into hunks."""

    def __init__(
        self,
        message: str,
        line_number: int | None = None,
        error_details: dict[str, Any] | None = None
    ):
        """
        Initialize the exception.

        Args:
            message: Error message
            line_number: 1-based line number in the normalized diff, if known
            error_details: Optional dictionary with detailed error information
        """
        full_message = f"Line {line_number}: {message}" if line_number is not None else message
        super().__init__(full_message, error_details)
        self.line_number = line_number


class EditStructuralError(EditError):
    """Raised when an edit request is malformed (missing diff, multi-file patch, no-op, etc.)."""


class EditMatchError(EditError):
    """Raised when the text to edit cannot be located unambiguously."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        search_text: str | None = None,
        closest: FuzzyMatch | None = None,
        allow_fuzzy: bool = True,
        threshold: float | None = None,
        fuzzy_matches: int | None = None,
        occurrences: int | None = None,
        error_details: dict[str, Any] | None = None
    ):
        """
        Initialize the exception.

        Args:
            message: Error message
            path: Path of the file being edited
            search_text: Text the edit asked to locate
            closest: Best candidate found, if any
            allow_fuzzy: Whether fuzzy matching was enabled
            threshold: Confidence threshold the candidate had to clear
            fuzzy_matches: Number of fuzzy candidates at or above the threshold
            occurrences: Number of exact occurrences, when more than one was found
            error_details: Extra details merged into the generated details
        """
        self.path = path
        self.search_text = search_text
        self.closest = closest
        self.allow_fuzzy = allow_fuzzy
        self.threshold = threshold
        self.fuzzy_matches = fuzzy_matches
        self.occurrences = occurrences

        details = self._build_details()
        if error_details:
            details.update(error_details)

        super().__init__(message, details)

    @property
    def similarity_percent(self) -> int | None:
        """Similarity of the closest candidate as a whole percentage."""
        if self.closest is None:
            return None

        return round(self.closest.confidence * 100)

    @property
    def first_difference(self) -> Tuple[str, str] | None:
        """
        Find the first line where the requested text and the closest candidate differ.

        Returns:
            Tuple of (requested line, actual line) or None if there is nothing to compare
        """
        if self.closest is None or self.search_text is None:
            return None

        return _first_difference(self.search_text, self.closest.actual_text)

    def _build_details(self) -> dict[str, Any]:
        details: dict[str, Any] = {
            'phase': 'matching',
            'path': self.path,
            'allow_fuzzy': self.allow_fuzzy,
        }

        if self.occurrences is not None:
            details['reason'] = f'Found {self.occurrences} occurrences of the text'
            details['suggestion'] = 'Add more surrounding context so the text is unique.'
            return details

        if self.closest is None:
            details['reason'] = 'Could not find the text'
            details['suggestion'] = 'Read the current file content and regenerate the edit.'
            return details

        details['reason'] = 'Could not locate the text with sufficient confidence'
        details['closest_line'] = self.closest.start_line
        details['similarity'] = round(self.closest.confidence, 2)
        difference = self.first_difference
        if difference is not None:
            details['requested_line'], details['actual_line'] = difference

        details['suggestion'] = self._hint()
        return details

    def _hint(self) -> str:
        if self.fuzzy_matches is not None and self.fuzzy_matches > 1:
            return (
                f'Found {self.fuzzy_matches} high-confidence matches. '
                'Provide more context to make it unique.'
            )

        if not self.allow_fuzzy:
            return 'Fuzzy matching is disabled. Enable it to accept close matches.'

        return 'The closest match was below the similarity threshold.'

    @classmethod
    def for_closest(
        cls,
        header: str,
        path: str | None,
        search_text: str,
        closest: FuzzyMatch | None,
        allow_fuzzy: bool,
        threshold: float | None,
        fuzzy_matches: int | None = None,
        error_details: dict[str, Any] | None = None
    ) -> 'EditMatchError':
        """
        Build an error with the standard "closest match" explanation.

        Args:
            header: First line of the message
            path: Path of the file being edited
            search_text: Text the edit asked to locate
            closest: Best candidate found, if any
            allow_fuzzy: Whether fuzzy matching was enabled
            threshold: Confidence threshold the candidate had to clear
            fuzzy_matches: Number of fuzzy candidates at or above the threshold
            error_details: Extra details merged into the generated details

        Returns:
            EditMatchError with a multi-line message
        """
        lines = [header]
        if closest is not None:
            lines.append(
                f"Closest match ({round(closest.confidence * 100)}% similar) "
                f"at line {closest.start_line}:"
            )
            difference = _first_difference(search_text, closest.actual_text)
            if difference is not None:
                lines.append(f"  - {difference[0]}")
                lines.append(f"  + {difference[1]}")

            if fuzzy_matches is not None and fuzzy_matches > 1:
                lines.append(
                    f"Found {fuzzy_matches} high-confidence matches. "
                    "Provide more context to make it unique."
                )

            elif not allow_fuzzy:
                lines.append("Fuzzy matching is disabled. Enable it to accept close matches.")

            elif threshold is not None:
                lines.append(f"Similarity is below the {round(threshold * 100)}% threshold.")

        return cls(
            "\n".join(lines),
            path=path,
            search_text=search_text,
            closest=closest,
            allow_fuzzy=allow_fuzzy,
            threshold=threshold,
            fuzzy_matches=fuzzy_matches,
            error_details=error_details
        )
