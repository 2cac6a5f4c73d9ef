"""Byte size calculators: raw, minified and gzipped.

Two minifiers are available, picked with ``SIZE_SNAPSHOT_MINIFIER``:

- ``builtin`` folds dead branches and mangles local names on the
  tree-sitter syntax tree, then strips whitespace and comments with rjsmin.
- ``terser`` pipes the code through ``terser --compress --mangle``; it
  needs Node.js and the command from ``SIZE_SNAPSHOT_TERSER_COMMAND``.
"""

import gzip
import shlex
import subprocess
from typing import List, Optional, Protocol

import rjsmin

from size_snapshot.config import settings
from size_snapshot.errors import MinifyError
from size_snapshot.services.compressor import compress
from size_snapshot.utils.js_syntax import parse_source

# Fixed level and zero mtime keep the compressed bytes reproducible.
GZIP_LEVEL = 9


class Minifier(Protocol):
    name: str

    def minify(self, code: str) -> str: ...


class BuiltinMinifier:
    name = "tree-sitter compressor"

    def minify(self, code: str) -> str:
        check_syntax(code)
        return rjsmin.jsmin(compress(code))


class TerserMinifier:
    """Runs the terser CLI once per piece of code, reading it from stdin."""

    name = "terser"

    def __init__(self, command: Optional[str] = None):
        self.command: List[str] = shlex.split(command or settings.terser_command)

    def minify(self, code: str) -> str:
        check_syntax(code)
        try:
            completed = subprocess.run(
                [*self.command, "--compress", "--mangle"],
                input=code,
                capture_output=True,
                check=True,
                encoding="utf-8",
            )
        except FileNotFoundError as exc:
            raise MinifyError(f"Unable to run {self.command[0]!r}: {exc}") from exc
        except subprocess.CalledProcessError as exc:
            message = (exc.stderr or "").strip() or f"exit status {exc.returncode}"
            raise MinifyError(f"terser failed: {message}") from exc
        return completed.stdout.rstrip("\n")


def get_minifier(name: Optional[str] = None) -> Minifier:
    name = name or settings.minifier
    if name == "terser":
        return TerserMinifier()
    if name == "builtin":
        return BuiltinMinifier()
    raise ValueError(f"Unknown minifier: {name}")


def minifier_name() -> str:
    return get_minifier().name


def raw_size(code: str) -> int:
    """UTF-8 byte length of the code."""
    return len(code.encode("utf-8"))


def check_syntax(code: str) -> None:
    """Raise MinifyError at the first syntax error instead of producing a meaningless size."""
    parsed = parse_source(code)
    error = parsed.syntax_error()
    if error is not None:
        line, column = error.start_point[0] + 1, error.start_point[1] + 1
        snippet = parsed.text(error)[:40]
        raise MinifyError(
            f"Unable to minify code: syntax error at line {line}, column {column} near {snippet!r}",
            line=line,
            column=column,
        )


def minify(code: str) -> str:
    """Minify JavaScript source with the configured minifier."""
    return get_minifier().minify(code)


def minified_size(code: str) -> int:
    return raw_size(minify(code))


def gzipped_size(code: str) -> int:
    """Size of the gzip-compressed code."""
    data = code.encode("utf-8")
    return len(gzip.compress(data, compresslevel=GZIP_LEVEL, mtime=0))
