"""
CLI entry point for Fuzzy Edit.

This allows the tool to be run as:
    python -m fuzzy_edit --file myfile.py --patch changes.diff
"""

import sys

from fuzzy_edit.edit_cli import main

if __name__ == "__main__":
    sys.exit(main())
