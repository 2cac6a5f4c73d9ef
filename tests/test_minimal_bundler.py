"""Tests for the minimal-resolving treeshake pipeline."""

import logging

from size_snapshot.services.bundlers import MinimalResolverBundler
from size_snapshot.services.bundlers.minimal import import_statements_size, render_import
from size_snapshot.services.bundlers.base import ImportBinding
from size_snapshot.services.probe import build_probe
from size_snapshot.services.sizes import minify


def probe_for(code, externals=()):
    return build_probe("dist/module.js", code, externals)


def test_side_effect_free_module_is_dropped(fixture_code):
    bundler = MinimalResolverBundler()
    for name in ("pure.js", "node_env.js", "pure_annotated.js"):
        result = bundler.bundle_probe(probe_for(fixture_code(name)))
        assert result.code == 0, name
        assert result.import_statements is None


def test_top_level_side_effect_is_kept(fixture_code):
    bundler = MinimalResolverBundler()
    probe = probe_for(fixture_code("side_effects.js"))
    assert bundler.bundle(probe) == 'console.log("loaded");'
    assert bundler.bundle_probe(probe).code == 22


def test_declarations_referenced_by_roots_are_kept():
    code = "const name = 'app';\nconst unused = 1;\ndocument.title = name;\n"
    bundle = MinimalResolverBundler().bundle(probe_for(code))
    assert bundle == "const name = 'app';\ndocument.title = name;"


def test_unannotated_impure_factory_is_kept(fixture_code):
    code = fixture_code("pure_annotated.js").replace("/*#__PURE__*/ ", "")
    result = MinimalResolverBundler().bundle_probe(probe_for(code))
    assert result.code > 0


def test_externals_become_bare_imports(fixture_code):
    bundler = MinimalResolverBundler()
    probe = probe_for(fixture_code("externals.js"), ["react", "react-dom"])
    assert bundler.bundle(probe) == 'import "react";\nimport "react-dom";'
    result = bundler.bundle_probe(probe)
    assert result.code == len(minify('import "react";\nimport "react-dom";'))
    assert result.import_statements == result.code


def test_used_bindings_survive_in_import_clause(fixture_code):
    bundler = MinimalResolverBundler()
    probe = probe_for(fixture_code("import_bindings.js"), ["preact"])
    assert bundler.bundle(probe) == (
        'import {createElement as h} from "preact";\ndocument.title = h("title");'
    )
    result = bundler.bundle_probe(probe)
    assert 0 < result.import_statements < result.code


def test_undeclared_external_warns(fixture_code, caplog):
    caplog.set_level(logging.WARNING)
    MinimalResolverBundler().bundle_probe(probe_for(fixture_code("externals.js"), ["react"]))
    assert "react-dom" in caplog.text
    assert "not declared external" in caplog.text


def test_render_import_shapes():
    assert render_import("x", []) == 'import "x";'
    assert render_import("x", [ImportBinding("X", "default")]) == 'import X from "x";'
    assert render_import("x", [ImportBinding("ns", "*")]) == 'import * as ns from "x";'
    assert (
        render_import("x", [ImportBinding("D", "default"), ImportBinding("a", "a"), ImportBinding("c", "b")])
        == 'import D,{a,b as c} from "x";'
    )


def test_render_import_splits_namespace_and_named_bindings():
    bindings = [ImportBinding("ns", "*"), ImportBinding("helper", "helper"), ImportBinding("D", "default")]
    assert render_import("lib", bindings) == (
        'import D,* as ns from "lib";\nimport {helper} from "lib";'
    )
    assert render_import("lib", [ImportBinding("A", "default"), ImportBinding("B", "default")]) == (
        'import A from "lib";\nimport B from "lib";'
    )


def test_namespace_and_named_imports_of_one_module_both_survive():
    code = 'import * as ns from "lib";\nimport { helper } from "lib";\nns.init();\nhelper();\n'
    bundle = MinimalResolverBundler().bundle(probe_for(code, ["lib"]))
    assert bundle == (
        'import * as ns from "lib";\nimport {helper} from "lib";\nns.init();\nhelper();'
    )


def test_import_statements_size_counts_only_imports():
    assert import_statements_size('import"a";console.log(1);') == len('import"a";')
    assert import_statements_size("console.log(1);") == 0
