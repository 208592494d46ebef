"""Shared fixtures and utilities for fuzzy edit tests."""

import os
from typing import Dict, List

import pytest

from fuzzy_edit.edit_file_system import EditFileSystem
from fuzzy_edit.edit_patch_applier import PatchApplier
from fuzzy_edit.edit_replacer import ReplaceApplier


class InMemoryFileSystem(EditFileSystem):
    """Dictionary-backed file system for testing."""

    def __init__(self, files: Dict[str, str] | None = None):
        self.files: Dict[str, str] = dict(files or {})
        self.directories: List[str] = []
        self.writes: List[str] = []
        self.deletes: List[str] = []

    def exists(self, path: str) -> bool:
        return path in self.files

    def read(self, path: str) -> str:
        if path not in self.files:
            raise FileNotFoundError(path)

        return self.files[path]

    def write(self, path: str, text: str) -> None:
        self.files[path] = text
        self.writes.append(path)

    def delete(self, path: str) -> None:
        if path not in self.files:
            raise FileNotFoundError(path)

        del self.files[path]
        self.deletes.append(path)

    def mkdir(self, path: str) -> None:
        self.directories.append(path)


CWD = os.path.abspath(os.sep + "project")


def abs_path(name: str) -> str:
    """Absolute path of a file in the test working directory."""
    return os.path.join(CWD, name)


@pytest.fixture
def memory_fs():
    """Create an empty in-memory file system."""
    return InMemoryFileSystem()


@pytest.fixture
def cwd():
    """Working directory used to resolve relative paths."""
    return CWD


@pytest.fixture
def project_path():
    """Map a relative file name to its absolute path in the test working directory."""
    return abs_path


@pytest.fixture
def patch_applier(memory_fs):
    """Create a patch applier over the in-memory file system."""
    return PatchApplier(file_system=memory_fs)


@pytest.fixture
def replace_applier(memory_fs):
    """Create a replace applier over the in-memory file system."""
    return ReplaceApplier(file_system=memory_fs)
