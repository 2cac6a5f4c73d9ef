"""Tests for the zero-import probe builder."""

from size_snapshot.services.probe import (
    ExternalMatcher,
    build_probe,
    collect_export_names,
    is_analyzable,
    probe_sources,
)


def test_only_module_formats_are_analyzable():
    assert is_analyzable("esm")
    assert is_analyzable("es")
    assert is_analyzable("module")
    assert not is_analyzable("cjs")
    assert not is_analyzable("umd")
    assert not is_analyzable("iife")


def test_probe_imports_nothing(fixture_code):
    probe = build_probe("dist/pure.js", fixture_code("pure.js"))
    assert probe.entry_source == 'import {} from "./pure.js";\n'
    assert probe.target_path == "/dist/pure.js"
    assert probe.entry_path == "/dist/__size_snapshot_entry__.js"
    assert probe.environment_substitutions == {"process.env.NODE_ENV": '"production"'}


def test_collect_export_names(fixture_code):
    assert collect_export_names(fixture_code("pure.js")) == {"add", "multiply", "ZERO", "default"}
    code = 'const a = 1, b = 2;\nexport { a, b as c };\nexport * as ns from "./ns.js";\n'
    assert collect_export_names(code) == {"a", "c", "ns"}


def test_external_matcher():
    matcher = ExternalMatcher.of(["react"])
    assert matcher("react")
    assert not matcher("react-dom")
    assert not matcher("./local.js")

    bare = ExternalMatcher.of(bare=True)
    assert bare("react-dom")
    assert bare("@scope/pkg")
    assert not bare("./local.js")
    assert not bare("/abs.js")


def test_graph_sources_exclude_target():
    probe = build_probe(
        "dist/index.js",
        "export const a = 1;\n",
        graph_sources={"dist/index.js": "ignored", "dist/chunk.js": "export const b = 2;\n"},
    )
    assert dict(probe.graph_sources) == {"/dist/chunk.js": "export const b = 2;\n"}
    paths = [path for path, _ in probe_sources(probe)]
    assert paths == ["/dist/__size_snapshot_entry__.js", "/dist/index.js", "/dist/chunk.js"]
