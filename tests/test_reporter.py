"""Tests for size summaries and mismatch reports."""

import logging

from size_snapshot.logging_config import PACKAGE_LOGGER
from size_snapshot.schemas.snapshot import PipelineResult, SizeRecord, TreeshakeRecord
from size_snapshot.services.reconciler import diff_snapshots
from size_snapshot.services.reporter import Reporter, format_bytes, format_sizes
from size_snapshot.services.sizes import BuiltinMinifier


def test_format_bytes_groups_thousands():
    assert format_bytes(0) == "0 B"
    assert format_bytes(11138) == "11,138 B"


def test_format_sizes_full_record():
    record = SizeRecord(
        bundled=11138,
        minified=5474,
        gzipped=2093,
        treeshaked=TreeshakeRecord(
            rollup=PipelineResult(code=303, import_statements=303),
            webpack=PipelineResult(code=40),
        ),
    )
    assert format_sizes("output.js", "esm", record) == (
        'Computed sizes of "output.js" with "esm" format\n'
        "  bundler parsing size: 11,138 B\n"
        f"  browser parsing size (minified with {BuiltinMinifier.name}): 5,474 B\n"
        "  download size (minified and gzipped): 2,093 B\n"
        "  treeshaked with rollup with production NODE_ENV and minified: 303 B\n"
        "    import statements size of it: 303 B\n"
        "  treeshaked with webpack in production mode: 40 B\n"
    )


def test_format_sizes_without_treeshake():
    text = format_sizes("out.js", "cjs", SizeRecord(bundled=15, minified=13, gzipped=33))
    assert "treeshaked" not in text
    assert text.count("\n") == 4


def test_reporter_uses_injected_sinks():
    infos, errors = [], []
    reporter = Reporter(info=infos.append, error=errors.append)
    reporter.report_sizes("out.js", "cjs", SizeRecord(bundled=1, minified=1, gzipped=21))
    diff = diff_snapshots({"a.js": {"bundled": 1}}, {"a.js": {"bundled": 2}})
    reporter.report_mismatch(diff)
    assert infos[0].startswith('Computed sizes of "out.js"')
    assert errors == [diff.render()]
    assert '+   "bundled": 2' in errors[0]


def test_default_sink_prints_when_logging_is_not_configured(caplog, capsys):
    caplog.set_level(logging.WARNING, logger=PACKAGE_LOGGER)
    Reporter().report_sizes("out.js", "cjs", SizeRecord(bundled=1, minified=1, gzipped=21))
    assert capsys.readouterr().out.startswith('Computed sizes of "out.js"')
    assert "Computed sizes" not in caplog.text


def test_default_sink_logs_when_info_is_enabled(caplog, capsys):
    caplog.set_level(logging.INFO, logger=PACKAGE_LOGGER)
    Reporter().report_sizes("out.js", "cjs", SizeRecord(bundled=1, minified=1, gzipped=21))
    assert 'Computed sizes of "out.js"' in caplog.text
    assert capsys.readouterr().out == ""
