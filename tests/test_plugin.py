"""End-to-end tests for the plugin facade."""

import json

import pytest

from size_snapshot import (
    BuildOutput,
    InvalidOptionsError,
    MissingSnapshotError,
    NoMinifiedCodeError,
    SizeSnapshot,
    SnapshotMismatchError,
    size_snapshot,
)
from size_snapshot.services.reporter import Reporter


class CollectingReporter(Reporter):
    def __init__(self):
        self.infos = []
        self.errors = []
        super().__init__(info=self.infos.append, error=self.errors.append)


def make_plugin(tmp_path, **options):
    reporter = CollectingReporter()
    options.setdefault("snapshotPath", str(tmp_path / ".size-snapshot.json"))
    return SizeSnapshot(options, reporter=reporter), reporter


def output(tmp_path, name, code, fmt="esm", **kwargs):
    return BuildOutput(format=fmt, file=str(tmp_path / "dist" / name), code=code, **kwargs)


def test_unknown_options_rejected_at_construction():
    with pytest.raises(InvalidOptionsError, match='Option "minify" is invalid'):
        size_snapshot(minify=True)


def test_root_defaults_to_snapshot_directory(tmp_path):
    plugin, _ = make_plugin(tmp_path, snapshotPath=str(tmp_path / "sizes" / "snap.json"))
    assert plugin.root == (tmp_path / "sizes").resolve()


@pytest.mark.asyncio
async def test_commonjs_output_is_not_treeshaked(tmp_path, fixture_code):
    plugin, reporter = make_plugin(tmp_path)
    snapshot = await plugin.write_bundle(
        output(tmp_path, "index.js", fixture_code("commonjs.js"), fmt="cjs")
    )
    assert snapshot["dist/index.js"].treeshaked is None
    written = json.loads((tmp_path / ".size-snapshot.json").read_text(encoding="utf-8"))
    assert set(written["dist/index.js"]) == {"bundled", "minified", "gzipped"}
    assert len(reporter.infos) == 1


@pytest.mark.asyncio
async def test_side_effect_free_module_treeshakes_to_zero(tmp_path, fixture_code):
    plugin, _ = make_plugin(tmp_path)
    snapshot = await plugin.write_bundle(output(tmp_path, "index.js", fixture_code("pure.js")))
    treeshaked = snapshot["dist/index.js"].treeshaked
    assert treeshaked.rollup.code == 0
    assert treeshaked.webpack.code == 0


@pytest.mark.asyncio
async def test_comments_only_module(tmp_path, fixture_code):
    code = fixture_code("comments_only.js")
    plugin, _ = make_plugin(tmp_path)
    with pytest.raises(NoMinifiedCodeError):
        await plugin.write_bundle(output(tmp_path, "index.js", code))
    assert not (tmp_path / ".size-snapshot.json").exists()

    snapshot = await plugin.write_bundle(output(tmp_path, "index.js", code, fmt="cjs"))
    record = snapshot["dist/index.js"]
    assert record.bundled == len(code.encode("utf-8"))
    assert record.gzipped > 0
    assert record.treeshaked is None


@pytest.mark.asyncio
async def test_print_info_disabled(tmp_path, fixture_code):
    plugin, reporter = make_plugin(tmp_path, printInfo=False)
    await plugin.write_bundle(output(tmp_path, "index.js", fixture_code("pure.js")))
    assert reporter.infos == []


@pytest.mark.asyncio
async def test_match_mode_threshold(tmp_path, fixture_code):
    code = fixture_code("commonjs.js")
    grown = code + "/*" + "x" * 185 + "*/"
    writer, _ = make_plugin(tmp_path)
    baseline = await writer.write_bundle(output(tmp_path, "index.js", code, fmt="cjs"))

    lenient, _ = make_plugin(tmp_path, matchSnapshot=True, threshold=1000)
    await lenient.write_bundle(output(tmp_path, "index.js", grown, fmt="cjs"))

    strict, reporter = make_plugin(tmp_path, matchSnapshot=True, threshold=100, printInfo=False)
    with pytest.raises(SnapshotMismatchError):
        await strict.write_bundle(output(tmp_path, "index.js", grown, fmt="cjs"))
    expected = baseline["dist/index.js"].bundled + 189
    assert len(reporter.errors) == 1
    assert f'+   "bundled": {expected},' in reporter.errors[0]


@pytest.mark.asyncio
async def test_match_mode_without_baseline(tmp_path, fixture_code):
    plugin, _ = make_plugin(tmp_path, matchSnapshot=True)
    with pytest.raises(MissingSnapshotError, match="Size snapshot is missing"):
        await plugin.write_bundle(output(tmp_path, "index.js", fixture_code("pure.js")))


@pytest.mark.asyncio
async def test_multiple_outputs_share_one_snapshot(tmp_path, fixture_code):
    plugin, reporter = make_plugin(tmp_path)
    snapshot = await plugin.write_bundle(
        [
            output(tmp_path, "index.mjs", fixture_code("pure.js")),
            output(tmp_path, "index.cjs", fixture_code("commonjs.js"), fmt="cjs"),
        ]
    )
    assert sorted(snapshot) == ["dist/index.cjs", "dist/index.mjs"]
    assert len(reporter.infos) == 2


def two_formats(tmp_path, fixture_code):
    return (
        output(tmp_path, "a.mjs", fixture_code("pure.js")),
        output(tmp_path, "a.cjs", fixture_code("commonjs.js"), fmt="cjs"),
    )


@pytest.mark.asyncio
async def test_hook_called_once_per_output_keeps_every_entry(tmp_path, fixture_code):
    esm, cjs = two_formats(tmp_path, fixture_code)
    plugin, _ = make_plugin(tmp_path, printInfo=False)
    await plugin.write_bundle(esm)
    await plugin.write_bundle(cjs)
    await plugin.close_bundle()

    written = json.loads((tmp_path / ".size-snapshot.json").read_text(encoding="utf-8"))
    assert sorted(written) == ["dist/a.cjs", "dist/a.mjs"]


@pytest.mark.asyncio
async def test_match_mode_with_one_call_per_output(tmp_path, fixture_code):
    esm, cjs = two_formats(tmp_path, fixture_code)
    writer, _ = make_plugin(tmp_path, printInfo=False)
    await writer.write_bundle([esm, cjs])

    matcher, reporter = make_plugin(tmp_path, matchSnapshot=True, printInfo=False)
    first = await matcher.write_bundle(esm)
    second = await matcher.write_bundle(cjs)
    closed = await matcher.close_bundle()
    assert sorted(first) == ["dist/a.mjs"]
    assert sorted(second) == sorted(closed) == ["dist/a.cjs", "dist/a.mjs"]
    assert reporter.errors == []


@pytest.mark.asyncio
async def test_close_bundle_reports_outputs_that_were_never_written(tmp_path, fixture_code):
    esm, cjs = two_formats(tmp_path, fixture_code)
    writer, _ = make_plugin(tmp_path, printInfo=False)
    await writer.write_bundle([esm, cjs])

    matcher, reporter = make_plugin(tmp_path, matchSnapshot=True, printInfo=False)
    await matcher.write_bundle(esm)
    with pytest.raises(SnapshotMismatchError) as exc_info:
        await matcher.close_bundle()
    assert exc_info.value.diff.files() == ["dist/a.cjs"]
    assert len(reporter.errors) == 1


@pytest.mark.asyncio
async def test_close_bundle_starts_a_fresh_build(tmp_path, fixture_code):
    esm, cjs = two_formats(tmp_path, fixture_code)
    plugin, _ = make_plugin(tmp_path, printInfo=False)
    await plugin.write_bundle(esm)
    await plugin.close_bundle()
    snapshot = await plugin.write_bundle(cjs)
    assert sorted(snapshot) == ["dist/a.cjs"]
