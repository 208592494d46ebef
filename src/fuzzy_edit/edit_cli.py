#!/usr/bin/env python3
"""
Fuzzy Edit - command-line tool for applying model-generated edits to files.

Two kinds of edit are supported:
- Patch: a single-file diff (plain, unified or "*** Begin Patch" style)
- Replace: a search text and a replacement text

Locating the text to change tolerates whitespace, indentation and
punctuation differences, stale line numbers and partially wrong context.

Usage:
    python -m fuzzy_edit --file <file> --patch <diff_file> [options]
    python -m fuzzy_edit --file <file> --old-text <file> --new-text <file> [options]

Options:
    --file PATH         File to edit (required)
    --patch PATH        Diff to apply
    --operation OP      Patch operation: update (default), create or delete
    --move-to PATH      Move the file after updating it
    --old-text PATH     File containing the text to replace
    --new-text PATH     File containing the replacement text
    --all               Replace every occurrence
    --no-fuzzy          Only accept exact or whitespace-insensitive matches
    --apply             Actually apply the edit (default is dry-run)
    --backup            Create backup before applying (file.bak)
    --settings PATH     YAML settings file
    --context-lines N   Unchanged lines to show around each change
    --log-file PATH     Write a debug log (rotated at 1MB)
    --verbose           Show detailed output
    --no-color          Disable colored output
"""

import argparse
from dataclasses import replace
import logging
from logging.handlers import RotatingFileHandler
import os
from pathlib import Path
import shutil
import sys
import traceback
from typing import List

from fuzzy_edit.edit_diff_renderer import compute_diff
from fuzzy_edit.edit_exceptions import EditError, EditMatchError
from fuzzy_edit.edit_patch_applier import PatchApplier
from fuzzy_edit.edit_replacer import ReplaceApplier
from fuzzy_edit.edit_settings import EditSettings
from fuzzy_edit.edit_types import DiffResult, PatchInput, PatchOperation


class Colors:
    """ANSI color codes for terminal output."""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    RED = '\033[91m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    BLUE = '\033[94m'
    CYAN = '\033[96m'

    @classmethod
    def disable(cls):
        """Disable colors (for non-terminal output)."""
        cls.RESET = ''
        cls.BOLD = ''
        cls.RED = ''
        cls.GREEN = ''
        cls.YELLOW = ''
        cls.BLUE = ''
        cls.CYAN = ''


def setup_logging(log_file: str | None, verbose: bool) -> None:
    """Configure logging: a rotating debug log if requested, else warnings to stderr."""
    handlers: List[logging.Handler]
    if log_file:
        handlers = [RotatingFileHandler(
            log_file,
            maxBytes=1024*1024,  # 1MB
            backupCount=49,
            encoding='utf-8'
        )]
        level = logging.DEBUG

    else:
        handlers = [logging.StreamHandler(sys.stderr)]
        level = logging.DEBUG if verbose else logging.WARNING

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


class FuzzyEditor:
    """
    Main editor application.

    Coordinates:
    - Loading settings
    - Reading the edit inputs
    - Applying the edit (or previewing it)
    - Showing the resulting diff
    """

    def __init__(self, args: argparse.Namespace):
        """
        Initialize editor with command-line arguments.

        Args:
            args: Parsed command-line arguments
        """
        self.args = args
        self.target_file = Path(args.file)
        self.verbose = args.verbose
        self._logger = logging.getLogger("FuzzyEditor")

        # Disable colors if not in terminal or if explicitly disabled
        if not sys.stdout.isatty() or args.no_color:
            Colors.disable()

    def run(self) -> int:
        """
        Run the editor.

        Returns:
            Exit code (0 for success, non-zero for failure)
        """
        try:
            settings = self._load_settings()
            if settings is None:
                return 1

            if not self._check_file_size(settings):
                return 1

            if self.args.apply and self.args.backup and self.target_file.is_file():
                if not self._create_backup():
                    return 1

            if self.args.patch:
                diff_result = self._run_patch(settings)

            else:
                diff_result = self._run_replace(settings)

            if diff_result is None:
                return 1

            self._show_diff(diff_result)
            if self.args.apply:
                print(f"{Colors.GREEN}✓ Edit applied successfully{Colors.RESET}")

            else:
                self._show_dry_run_message()

            return 0

        except KeyboardInterrupt:
            self._print_error("\nInterrupted by user")
            return 130

        except EditMatchError as e:
            self._print_error(str(e))
            if self.verbose and e.error_details:
                for key, value in e.error_details.items():
                    self._print_verbose(f"{key}: {value}")

            return 1

        except EditError as e:
            self._print_error(str(e))
            return 1

        except OSError as e:
            self._print_error(f"File operation failed: {e}")
            return 1

        except Exception as e:
            self._print_error(f"Unexpected error: {e}")
            if self.verbose:
                traceback.print_exc()

            return 1

    def _load_settings(self) -> EditSettings | None:
        """Load settings and apply command-line overrides."""
        settings = EditSettings.create_default()
        if self.args.settings:
            try:
                settings = EditSettings.load_from_file(self.args.settings)

            except (OSError, ValueError) as e:
                self._print_error(f"Failed to load settings: {e}")
                return None

        if self.args.no_fuzzy:
            settings = replace(settings, allow_fuzzy=False)

        if self.args.context_lines is not None:
            settings = replace(settings, context_lines=self.args.context_lines)

        self._print_verbose(f"Settings: {settings}")
        return settings

    def _check_file_size(self, settings: EditSettings) -> bool:
        if not self.target_file.is_file():
            return True

        size = self.target_file.stat().st_size
        if size > settings.max_file_size_mb * 1024 * 1024:
            self._print_error(
                f"File is too large to edit: {self.target_file} ({size:,} bytes, "
                f"limit {settings.max_file_size_mb}MB)"
            )
            return False

        return True

    def _read_input(self, path: str) -> str:
        with open(path, 'r', encoding='utf-8', newline='') as f:
            return f.read()

    def _run_patch(self, settings: EditSettings) -> DiffResult | None:
        """Apply (or preview) a patch and return the diff of its effect."""
        operation = PatchOperation(self.args.operation)
        diff_text = self._read_input(self.args.patch)
        patch = PatchInput(
            path=str(self.target_file),
            operation=operation,
            move_to=self.args.move_to,
            diff=diff_text
        )

        applier = PatchApplier(settings=settings)
        result = applier.apply(patch, cwd=os.getcwd(), dry_run=not self.args.apply)
        change = result.change
        self._print_verbose(f"{change.type.value}: {change.path}")
        if change.new_path:
            self._print_verbose(f"Moved to: {change.new_path}")

        return compute_diff(change.old_content or "", change.new_content or "", settings.context_lines)

    def _run_replace(self, settings: EditSettings) -> DiffResult | None:
        """Apply (or preview) a replacement and return the diff of its effect."""
        if not self.args.old_text or not self.args.new_text:
            self._print_error("Replace mode requires both --old-text and --new-text")
            return None

        old_text = self._read_input(self.args.old_text)
        new_text = self._read_input(self.args.new_text)

        applier = ReplaceApplier(settings=settings)
        result = applier.replace_in_file(
            str(self.target_file),
            old_text,
            new_text,
            cwd=os.getcwd(),
            all=self.args.all,
            dry_run=not self.args.apply
        )
        self._print_verbose(f"Replaced {result.count} occurrence(s)")
        return result.diff

    def _show_diff(self, diff_result: DiffResult) -> None:
        print(f"\n{Colors.BOLD}Changes to {self.target_file}:{Colors.RESET}")
        for line in diff_result.diff.split("\n"):
            if line.startswith("+"):
                print(f"{Colors.GREEN}{line}{Colors.RESET}")

            elif line.startswith("-"):
                print(f"{Colors.RED}{line}{Colors.RESET}")

            else:
                print(line)

        if diff_result.first_changed_line is not None:
            self._print_verbose(f"First changed line: {diff_result.first_changed_line}")

    def _create_backup(self) -> bool:
        """Create backup of the target file."""
        backup_file = self.target_file.with_suffix(self.target_file.suffix + '.bak')

        try:
            shutil.copy2(self.target_file, backup_file)
            self._print_verbose(f"Created backup: {backup_file}")
            return True

        except OSError as e:
            self._print_error(f"Failed to create backup: {e}")
            return False

    def _show_dry_run_message(self) -> None:
        """Show message about dry-run mode."""
        print(f"\n{Colors.YELLOW}Dry-run mode: No changes were made{Colors.RESET}")
        print(f"  Use {Colors.BOLD}--apply{Colors.RESET} to actually apply the edit")
        print(f"  Use {Colors.BOLD}--backup{Colors.RESET} to create a backup before applying")

    def _print_error(self, message: str) -> None:
        """Print error message."""
        self._logger.error(message)
        print(f"{Colors.RED}Error:{Colors.RESET} {message}", file=sys.stderr)

    def _print_verbose(self, message: str) -> None:
        """Print verbose message."""
        if self.verbose:
            print(f"{Colors.BLUE}[verbose]{Colors.RESET} {message}")


def parse_arguments(argv: List[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Apply model-generated edits with fuzzy matching",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Dry run (default) - show what would happen
  python -m fuzzy_edit --file src/example.py --patch changes.diff

  # Apply the patch with a backup
  python -m fuzzy_edit --file src/example.py --patch changes.diff --apply --backup

  # Replace every occurrence of a block of text
  python -m fuzzy_edit --file src/example.py --old-text old.txt --new-text new.txt --all --apply

  # Create a file from a diff of additions
  python -m fuzzy_edit --file src/new.py --patch new.diff --operation create --apply
        """
    )

    parser.add_argument(
        '--file',
        required=True,
        help='File to edit'
    )

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument(
        '--patch',
        help='Diff to apply'
    )

    mode.add_argument(
        '--old-text',
        help='File containing the text to replace'
    )

    parser.add_argument(
        '--new-text',
        help='File containing the replacement text'
    )

    parser.add_argument(
        '--operation',
        choices=[op.value for op in PatchOperation],
        default=PatchOperation.UPDATE.value,
        help='Patch operation (default: update)'
    )

    parser.add_argument(
        '--move-to',
        help='Move the file after updating it'
    )

    parser.add_argument(
        '--all',
        action='store_true',
        help='Replace every occurrence'
    )

    parser.add_argument(
        '--no-fuzzy',
        action='store_true',
        help='Disable fuzzy matching'
    )

    parser.add_argument(
        '--apply',
        action='store_true',
        help='Actually apply the edit (default is dry-run)'
    )

    parser.add_argument(
        '--backup',
        action='store_true',
        help='Create backup before applying (file.bak)'
    )

    parser.add_argument(
        '--settings',
        help='YAML settings file'
    )

    parser.add_argument(
        '--context-lines',
        type=int,
        default=None,
        help='Unchanged lines to show around each change'
    )

    parser.add_argument(
        '--log-file',
        help='Write a debug log to this file'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Show detailed output'
    )

    parser.add_argument(
        '--no-color',
        action='store_true',
        help='Disable colored output'
    )

    return parser.parse_args(argv)


def main(argv: List[str] | None = None) -> int:
    """Main entry point."""
    args = parse_arguments(argv)
    setup_logging(args.log_file, args.verbose)
    editor = FuzzyEditor(args)
    return editor.run()


if __name__ == "__main__":
    sys.exit(main())
