"""
JSON Document Store Module.

Base class for the flat-file stores under the data directory. Each store is
one JSON document that is always read and written whole; there are no
partial updates.
"""

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when a store file exists but cannot be read or decoded."""


class JsonDocumentStore:
    """
    A single JSON document on disk with full-document read/write semantics.

    Writes go to a temporary file in the same directory that then replaces
    the target, so readers never observe a half-written document. A lock
    serializes read-modify-write cycles within one process.

    Attributes:
        path: Location of the document.
    """

    def __init__(self, path: str, initial: Callable[[], Any]) -> None:
        """
        Initialize the store.

        Args:
            path: File path of the JSON document.
            initial: Factory for the document written when the file is missing.
        """
        self.path = Path(path)
        self._initial = initial
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def ensure(self) -> None:
        """Creates the data directory and an initial document if missing."""
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if not self.path.exists():
                logger.info(f"Creating store {self.path}")
                self._write(self._initial())

    def read_document(self) -> Any:
        """
        Reads and decodes the whole document.

        Returns:
            The decoded JSON value; the initial document for an empty file.

        Raises:
            StoreError: If the file cannot be read or is not valid JSON.
        """
        with self._lock:
            self.ensure()
            try:
                raw = self.path.read_text(encoding="utf-8")
            except OSError as e:
                raise StoreError(f"Cannot read {self.path}: {e}") from e
            if not raw.strip():
                return self._initial()
            try:
                return json.loads(raw)
            except json.JSONDecodeError as e:
                raise StoreError(f"Corrupt store {self.path}: {e}") from e

    def write_document(self, document: Any) -> None:
        """Atomically replaces the whole document."""
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._write(document)

    def _write(self, document: Any) -> None:
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
                f.write("\n")
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
