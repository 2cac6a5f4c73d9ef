"""Command line entry point: measure already-built files and reconcile the snapshot."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import List, Optional, Sequence

from pydantic import ValidationError

from size_snapshot.config import LOG_LEVELS
from size_snapshot.errors import (
    DuplicateOutputError,
    InvalidOptionsError,
    MinifyError,
    MissingSnapshotError,
    NoMinifiedCodeError,
    SnapshotMismatchError,
)
from size_snapshot.logging_config import get_logger, setup_logging
from size_snapshot.plugin import SizeSnapshot
from size_snapshot.schemas.options import DEFAULT_SNAPSHOT_PATH
from size_snapshot.schemas.output import BuildOutput

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_SNAPSHOT = 1
EXIT_USAGE = 2

CHUNK_SUFFIXES = (".js", ".mjs", ".cjs")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="size-snapshot",
        description="Measure bundle sizes and write or check a size snapshot",
    )
    parser.add_argument("paths", nargs="+", help="Built files or directories of chunks")
    parser.add_argument(
        "--format",
        default="esm",
        help="Output format of the files; es, esm and module are treeshaked (default: esm)",
    )
    parser.add_argument(
        "--external",
        action="append",
        default=[],
        metavar="SPEC",
        help="Import specifier left external by the build (repeatable)",
    )
    parser.add_argument(
        "--bare-externals",
        action="store_true",
        help="Treat every bare import specifier as external",
    )
    parser.add_argument(
        "--root",
        default=None,
        help="Directory snapshot names are relative to (default: snapshot directory)",
    )
    parser.add_argument(
        "--snapshot-path",
        default=DEFAULT_SNAPSHOT_PATH,
        help=f"Snapshot file (default: {DEFAULT_SNAPSHOT_PATH})",
    )
    parser.add_argument(
        "--match-snapshot",
        action="store_true",
        help="Compare against the existing snapshot instead of rewriting it",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=0,
        help="Allowed absolute byte difference per size in match mode (default: 0)",
    )
    parser.add_argument(
        "--no-print-info",
        dest="print_info",
        action="store_false",
        help="Do not print the size summary of each file",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        type=str.upper,
        choices=LOG_LEVELS,
        help="Override SIZE_SNAPSHOT_LOG_LEVEL",
    )
    return parser.parse_args(argv)


def read_output(path: Path, args: argparse.Namespace) -> BuildOutput:
    """Read a built file, or every chunk below a directory, into a BuildOutput."""
    common = {
        "format": args.format,
        "externals": args.external,
        "bare_externals": args.bare_externals,
    }
    if path.is_dir():
        files = {
            chunk.relative_to(path).as_posix(): chunk.read_text(encoding="utf-8")
            for chunk in sorted(path.rglob("*"))
            if chunk.is_file() and chunk.suffix in CHUNK_SUFFIXES
        }
        if not files:
            logger.warning("No JavaScript files found in %s", path)
        return BuildOutput(dir=str(path), files=files, **common)
    return BuildOutput(file=str(path), code=path.read_text(encoding="utf-8"), **common)


async def run(args: argparse.Namespace) -> int:
    plugin = SizeSnapshot(
        {
            "snapshotPath": args.snapshot_path,
            "matchSnapshot": args.match_snapshot,
            "threshold": args.threshold,
            "printInfo": args.print_info,
        },
        root=Path(args.root) if args.root else None,
    )
    outputs: List[BuildOutput] = [read_output(Path(path), args) for path in args.paths]
    await plugin.write_bundle(outputs)
    await plugin.close_bundle()
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        return asyncio.run(run(args))
    except (MissingSnapshotError, SnapshotMismatchError) as exc:
        logger.error("%s", exc)
        return EXIT_SNAPSHOT
    except (InvalidOptionsError, ValidationError) as exc:
        logger.error("Invalid options: %s", exc)
        return EXIT_USAGE
    except (DuplicateOutputError, MinifyError, NoMinifiedCodeError) as exc:
        logger.error("%s", exc)
        return EXIT_USAGE
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("Cannot read build output: %s", exc)
        return EXIT_USAGE


if __name__ == "__main__":
    raise SystemExit(main())
