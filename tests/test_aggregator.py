"""Tests for measuring every file of a build output."""

import logging

import pytest

from size_snapshot.errors import DuplicateOutputError
from size_snapshot.schemas.output import BuildOutput
from size_snapshot.services.aggregator import OutputAggregator


def test_names_are_relative_with_forward_slashes(tmp_path):
    aggregator = OutputAggregator(tmp_path)
    assert aggregator.normalize_name(tmp_path / "dist" / "index.js") == "dist/index.js"
    assert aggregator.normalize_name(tmp_path / "dist" / ".." / "out.js") == "out.js"


def test_output_shape_is_validated():
    with pytest.raises(ValueError):
        BuildOutput(format="esm")
    with pytest.raises(ValueError):
        BuildOutput(format="esm", file="a.js")
    with pytest.raises(ValueError):
        BuildOutput(format="esm", file="a.js", code="", dir="dist")


@pytest.mark.asyncio
async def test_commonjs_output_has_no_treeshake(tmp_path, fixture_code):
    code = fixture_code("commonjs.js")
    output = BuildOutput(format="cjs", file=str(tmp_path / "out.js"), code=code)
    records = await OutputAggregator(tmp_path).measure(output)
    assert list(records) == ["out.js"]
    record = records["out.js"]
    assert record.bundled == len(code.encode("utf-8"))
    assert 0 < record.minified < record.bundled
    assert record.treeshaked is None


@pytest.mark.asyncio
async def test_every_chunk_is_measured_once(tmp_path):
    output = BuildOutput(
        format="esm",
        dir=str(tmp_path / "dist"),
        files={
            "index.js": 'import { helper } from "./chunk.js";\nconsole.log(helper());\n',
            "chunk.js": "export const helper = () => 1;\n",
        },
    )
    records = await OutputAggregator(tmp_path, max_concurrency=1).measure(output)
    assert sorted(records) == ["dist/chunk.js", "dist/index.js"]
    assert records["dist/chunk.js"].treeshaked.webpack.code == 0
    assert records["dist/index.js"].treeshaked.webpack.code > 0
    assert records["dist/index.js"].treeshaked.rollup.import_statements > 0


@pytest.mark.asyncio
async def test_empty_chunk_warns_but_is_measured(tmp_path, caplog):
    caplog.set_level(logging.WARNING)
    output = BuildOutput(format="cjs", file=str(tmp_path / "empty.js"), code="")
    records = await OutputAggregator(tmp_path).measure(output)
    assert "Generated an empty chunk: empty.js" in caplog.text
    assert records["empty.js"].bundled == 0
    assert records["empty.js"].minified == 0
    assert records["empty.js"].gzipped > 0


@pytest.mark.asyncio
async def test_files_sharing_a_snapshot_name_are_rejected(tmp_path):
    output = BuildOutput(
        format="cjs",
        dir=str(tmp_path / "dist"),
        files={"a.js": "module.exports = 1;\n", "sub/../a.js": "module.exports = 2;\n"},
    )
    with pytest.raises(DuplicateOutputError) as exc_info:
        await OutputAggregator(tmp_path).measure(output)
    assert exc_info.value.name == "dist/a.js"
    assert len(exc_info.value.paths) == 2
