"""Human-readable size summaries and mismatch reports."""

import logging
import sys
from typing import Callable, Optional

from size_snapshot.logging_config import get_logger
from size_snapshot.schemas.snapshot import SizeRecord
from size_snapshot.services.bundlers import MinimalResolverBundler, ModuleGraphBundler
from size_snapshot.services.reconciler import SnapshotDiff
from size_snapshot.services.sizes import minifier_name

logger = get_logger(__name__)

Sink = Callable[[str], None]


def format_bytes(value: int) -> str:
    return f"{value:,} B"


def format_sizes(name: str, output_format: str, record: SizeRecord) -> str:
    """Fixed-structure multi-line summary for one output file."""
    lines = [
        f'Computed sizes of "{name}" with "{output_format}" format',
        f"  bundler parsing size: {format_bytes(record.bundled)}",
        f"  browser parsing size (minified with {minifier_name()}): {format_bytes(record.minified)}",
        f"  download size (minified and gzipped): {format_bytes(record.gzipped)}",
    ]
    treeshaked = record.treeshaked
    if treeshaked is not None:
        lines.append(f"  {MinimalResolverBundler.label}: {format_bytes(treeshaked.rollup.code)}")
        if treeshaked.rollup.import_statements is not None:
            lines.append(
                f"    import statements size of it: {format_bytes(treeshaked.rollup.import_statements)}"
            )
        lines.append(f"  {ModuleGraphBundler.label}: {format_bytes(treeshaked.webpack.code)}")
    return "\n".join(lines) + "\n"


def log_or_print(message: str) -> None:
    """Log at INFO, or write to stdout when nothing would show an INFO record."""
    if logger.isEnabledFor(logging.INFO) and logger.hasHandlers():
        logger.info(message)
    else:
        sys.stdout.write(message)


class Reporter:
    """Sends summaries to injected sinks instead of a global console.

    Without an ``info`` sink, summaries go to the package logger once
    ``setup_logging`` (or the host application) enables INFO for it, and
    to stdout otherwise, so library use still prints them.
    """

    def __init__(self, info: Optional[Sink] = None, error: Optional[Sink] = None):
        self.info = info or log_or_print
        self.error = error or logger.error

    def report_sizes(self, name: str, output_format: str, record: SizeRecord) -> None:
        self.info(format_sizes(name, output_format, record))

    def report_mismatch(self, diff: SnapshotDiff) -> None:
        self.error(diff.render())
