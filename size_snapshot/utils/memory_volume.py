"""Process-local file tree used as a throwaway build workspace."""

from __future__ import annotations

import posixpath
from typing import Dict, Iterator


class MemoryVolume:
    """Dict-backed volume addressed by absolute POSIX paths.

    Nothing is written to disk. A volume is meant to live for a single
    bundling run; leaving the ``with`` block drops every file and any later
    access raises ``RuntimeError``.
    """

    def __init__(self) -> None:
        self._files: Dict[str, str] = {}
        self._closed = False

    def __enter__(self) -> "MemoryVolume":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False

    def close(self) -> None:
        self._files.clear()
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    @staticmethod
    def normalize(path: str) -> str:
        if not path.startswith("/"):
            raise ValueError(f"Volume paths must be absolute: {path!r}")
        return posixpath.normpath(path)

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("MemoryVolume is closed")

    def write_text(self, path: str, text: str) -> None:
        self._check_open()
        self._files[self.normalize(path)] = text

    def read_text(self, path: str) -> str:
        self._check_open()
        key = self.normalize(path)
        try:
            return self._files[key]
        except KeyError:
            raise FileNotFoundError(key) from None

    def is_file(self, path: str) -> bool:
        self._check_open()
        return self.normalize(path) in self._files

    def __iter__(self) -> Iterator[str]:
        self._check_open()
        return iter(sorted(self._files))

    def __len__(self) -> int:
        return len(self._files)
