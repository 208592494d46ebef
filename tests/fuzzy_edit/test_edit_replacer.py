"""Tests for search-and-replace edits."""

import pytest

from fuzzy_edit.edit_exceptions import EditMatchError, EditStructuralError
from fuzzy_edit.edit_normalizer import BOM
from fuzzy_edit.edit_replacer import ReplaceApplier, replace_in_file, replace_text
from fuzzy_edit.edit_settings import EditSettings


FUNCTION_BODY = """def outer():
    x = compute()
    y = x + 1
    return y
"""


class TestReplaceText:
    """Test replacing text in a string."""

    def test_exact_replacement(self):
        """Test a unique exact match is replaced."""
        result = replace_text("a = 1\nb = 2\n", "b = 2", "b = 3")

        assert result.content == "a = 1\nb = 3\n"
        assert result.count == 1

    def test_empty_old_text(self):
        """Test empty search text is rejected."""
        with pytest.raises(EditStructuralError):
            replace_text("content", "", "x")

    def test_multiple_occurrences(self):
        """Test repeated text is rejected in single mode."""
        with pytest.raises(EditMatchError) as exc_info:
            replace_text("x\nx\n", "x", "y")

        assert exc_info.value.occurrences == 2
        assert "all=True" in str(exc_info.value)

    def test_replace_all_exact(self):
        """Test all mode replaces every exact occurrence."""
        result = replace_text("x\nx\ny", "x", "z", all=True)

        assert result.content == "z\nz\ny"
        assert result.count == 2

    def test_not_found(self):
        """Test a missing target leaves content unchanged."""
        result = replace_text("alpha\nbeta\n", "gamma", "delta")

        assert result.content == "alpha\nbeta\n"
        assert result.count == 0

    def test_crlf_inputs_are_normalized(self):
        """Test CRLF in any input is treated as LF."""
        result = replace_text("a\r\nb\r\n", "a\r\nb", "c\r\nd")

        assert result.content == "c\nd\n"
        assert result.count == 1

    def test_fuzzy_indentation_is_adjusted(self):
        """Test a block matched across indent units is re-indented to the file."""
        result = replace_text(
            FUNCTION_BODY,
            "  x = compute()\n  y = x + 1",
            "  x = compute()\n  y = x + 2"
        )

        assert result.count == 1
        assert result.content == "def outer():\n    x = compute()\n    y = x + 2\n    return y\n"

    def test_fuzzy_disabled(self):
        """Test approximate matches are not replaced when fuzzy matching is off."""
        result = replace_text(FUNCTION_BODY, "  x = compute()\n  y = x + 1", "z", fuzzy=False)

        assert result.count == 0
        assert result.content == FUNCTION_BODY

    def test_replace_all_fuzzy(self):
        """Test all mode replaces each fuzzy match once, re-indented."""
        content = "def a():\n    value = computeX(1)\ndef b():\n    value = computeY(1)\n"

        result = replace_text(content, "value = computeZ(1)", "value = 0", all=True)

        assert result.count == 2
        assert result.content == "def a():\n    value = 0\ndef b():\n    value = 0\n"

    def test_replace_all_fuzzy_finds_weaker_earlier_match(self):
        """Test a weaker match before a stronger one is still replaced."""
        content = (
            "total = compute_valuexy(alpha, beta, gamma)\n"
            "print(total)\n"
            "total = compute_valuex(alpha, beta, gamma)\n"
        )

        result = replace_text(content, "total = compute_value(alpha, beta, gamma)", "total = 0", all=True)

        assert result.count == 2
        assert result.content == "total = 0\nprint(total)\ntotal = 0\n"

    def test_replace_all_fuzzy_skips_inserted_text(self):
        """Test replacement text that resembles the old text is not replaced again."""
        content = "if ready:\n    run_scheduled_task(job_id=1)\n"

        result = replace_text(content, "run_scheduled_task(job_id=2)", "run_scheduled_task(job_id=3)", all=True)

        assert result.count == 1
        assert result.content == "if ready:\n    run_scheduled_task(job_id=3)\n"

    def test_replace_all_not_found(self):
        """Test all mode with nothing to replace."""
        result = replace_text("alpha\n", "something quite different", "x", all=True)

        assert result.count == 0
        assert result.content == "alpha\n"


class TestReplaceApplier:
    """Test file-level replacement."""

    def test_replace_in_file(self, memory_fs, replace_applier, cwd, project_path):
        """Test a file is rewritten and a diff returned."""
        memory_fs.files[project_path("app.py")] = "x = 1\ny = 2\n"

        result = replace_applier.replace_in_file("app.py", "y = 2", "y = 3", cwd=cwd)

        assert memory_fs.files[project_path("app.py")] == "x = 1\ny = 3\n"
        assert result.path == project_path("app.py")
        assert result.count == 1
        assert result.old_content == "x = 1\ny = 2\n"
        assert "+2 y = 3" in result.diff.diff
        assert result.diff.first_changed_line == 2

    def test_preserves_bom_and_crlf(self, memory_fs, replace_applier, cwd, project_path):
        """Test the BOM and CRLF line endings survive the edit."""
        memory_fs.files[project_path("win.txt")] = BOM + "a\r\nb\r\n"

        result = replace_applier.replace_in_file("win.txt", "b", "c", cwd=cwd)

        assert memory_fs.files[project_path("win.txt")] == BOM + "a\r\nc\r\n"
        assert result.new_content == BOM + "a\r\nc\r\n"

    def test_dry_run(self, memory_fs, replace_applier, cwd, project_path):
        """Test a dry run computes the result without writing."""
        memory_fs.files[project_path("app.py")] = "x = 1\n"

        result = replace_applier.replace_in_file("app.py", "x = 1", "x = 2", cwd=cwd, dry_run=True)

        assert memory_fs.files[project_path("app.py")] == "x = 1\n"
        assert not memory_fs.writes
        assert result.new_content == "x = 2\n"

    def test_missing_file(self, replace_applier, cwd):
        """Test a missing file is a structural error."""
        with pytest.raises(EditStructuralError) as exc_info:
            replace_applier.replace_in_file("missing.py", "a", "b", cwd=cwd)

        assert "File not found" in str(exc_info.value)

    def test_no_match_reports_closest(self, memory_fs, replace_applier, cwd, project_path):
        """Test a failed match explains the closest candidate."""
        memory_fs.files[project_path("fox.txt")] = "the quick brown fox jumps over the lazy dog\n"

        with pytest.raises(EditMatchError) as exc_info:
            replace_applier.replace_in_file(
                "fox.txt",
                "the quick brown fox jumps over the lazy cat",
                "replacement",
                cwd=cwd
            )

        error = exc_info.value
        message = str(error)
        assert message.startswith("Could not find the exact text in fox.txt.")
        assert "Closest match (93% similar) at line 1:" in message
        assert "  - the quick brown fox jumps over the lazy cat" in message
        assert "  + the quick brown fox jumps over the lazy dog" in message
        assert "Similarity is below the 95% threshold." in message
        assert error.similarity_percent == 93
        assert error.error_details['phase'] == 'matching'
        assert error.error_details['closest_line'] == 1

    def test_fuzzy_disabled_in_settings(self, memory_fs, cwd, project_path):
        """Test settings can turn off fuzzy matching."""
        memory_fs.files[project_path("fox.txt")] = "the quick brown fox jumps over the lazy dog\n"
        applier = ReplaceApplier(file_system=memory_fs, settings=EditSettings(allow_fuzzy=False))

        with pytest.raises(EditMatchError) as exc_info:
            applier.replace_in_file("fox.txt", "the quick brown fox jumps over the lazy cog", "x", cwd=cwd)

        assert "Fuzzy matching is disabled" in str(exc_info.value)
        assert exc_info.value.error_details['allow_fuzzy'] is False

    def test_multiple_occurrences(self, memory_fs, replace_applier, cwd, project_path):
        """Test ambiguous text is rejected with the path in the message."""
        memory_fs.files[project_path("app.py")] = "x\nx\n"

        with pytest.raises(EditMatchError) as exc_info:
            replace_applier.replace_in_file("app.py", "x", "y", cwd=cwd)

        assert exc_info.value.occurrences == 2
        assert "in app.py" in str(exc_info.value)
        assert exc_info.value.path == "app.py"

    def test_replace_all(self, memory_fs, replace_applier, cwd, project_path):
        """Test all mode replaces every occurrence in the file."""
        memory_fs.files[project_path("app.py")] = "x\nx\n"

        result = replace_applier.replace_in_file("app.py", "x", "y", cwd=cwd, all=True)

        assert memory_fs.files[project_path("app.py")] == "y\ny\n"
        assert result.count == 2

    def test_identical_result(self, memory_fs, replace_applier, cwd, project_path):
        """Test a replacement that changes nothing is rejected."""
        memory_fs.files[project_path("app.py")] = "x = 1\n"

        with pytest.raises(EditStructuralError) as exc_info:
            replace_applier.replace_in_file("app.py", "x = 1", "x = 1", cwd=cwd)

        assert "No changes made" in str(exc_info.value)

    def test_module_function(self, memory_fs, cwd, project_path):
        """Test the module-level helper uses the given file system."""
        memory_fs.files[project_path("app.py")] = "old\n"

        result = replace_in_file("app.py", "old", "new", cwd=cwd, file_system=memory_fs)

        assert memory_fs.files[project_path("app.py")] == "new\n"
        assert result.count == 1
