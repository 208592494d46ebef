"""Storage abstraction used by the edit appliers."""

import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path


class EditFileSystem(ABC):
    """Abstract base class for the file storage an applier reads and writes."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        """
        Check whether a file exists.

        Args:
            path: Absolute file path

        Returns:
            True if the file exists
        """

    @abstractmethod
    def read(self, path: str) -> str:
        """
        Read a file's text exactly as stored, including its line endings.

        Args:
            path: Absolute file path

        Returns:
            File content
        """

    @abstractmethod
    def write(self, path: str, text: str) -> None:
        """
        Write text to a file, replacing any existing content.

        Args:
            path: Absolute file path
            text: Content to write, written without line ending translation
        """

    @abstractmethod
    def delete(self, path: str) -> None:
        """
        Delete a file.

        Args:
            path: Absolute file path
        """

    @abstractmethod
    def mkdir(self, path: str) -> None:
        """
        Create a directory and any missing parents.

        Args:
            path: Absolute directory path
        """


class LocalFileSystem(EditFileSystem):
    """EditFileSystem backed by the local disk."""

    def __init__(self, encoding: str = "utf-8"):
        self._encoding = encoding

    def exists(self, path: str) -> bool:
        return Path(path).is_file()

    def read(self, path: str) -> str:
        # newline='' keeps CRLF intact so line endings can be restored on write
        with open(path, 'r', encoding=self._encoding, newline='') as f:
            return f.read()

    def write(self, path: str, text: str) -> None:
        target = Path(path)

        # Write to a temporary file first, then rename for atomicity
        with tempfile.NamedTemporaryFile(
            mode='w',
            encoding=self._encoding,
            newline='',
            dir=target.parent,
            delete=False,
            suffix='.tmp'
        ) as tmp_file:
            tmp_file.write(text)
            tmp_path = Path(tmp_file.name)

        tmp_path.replace(target)

        # NamedTemporaryFile creates files 0600, so apply the usual umask-based mode
        umask = os.umask(0)
        os.umask(umask)
        target.chmod(0o666 & ~umask)

    def delete(self, path: str) -> None:
        Path(path).unlink()

    def mkdir(self, path: str) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)
