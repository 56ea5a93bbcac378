from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from gounused.checker import Checker
from gounused.exceptions import LoadError, ResolutionError
from gounused.model import CompositeLit, KeyValueExpr, ObjectKind, walk
from gounused.model_json import decode_program_model, load_program_model_file, loads_program_model
from gounused.provider import DumpProvider
from gounused.typesys import Interface, Named, Pointer, Signature, Struct


def _pos(line: int, file: str = "/work/app/main.go") -> dict:
    return {"file": file, "line": line, "column": 1}


def sample_dump() -> dict:
    """
    package main

    type pair struct{ a, b int }
    type writer interface{ write(p []byte) (int, error) }
    type sink struct{}
    func (*sink) write(p []byte) (int, error)
    func (sink) flush()
    var _ = pair{1, 2}
    func main() {}
    func unused() {}
    """
    return {
        "packages": [
            {
                "path": "example.com/app",
                "name": "main",
                "dir": "/work/app",
                "files": [
                    {
                        "name": "/work/app/main.go",
                        "root": {
                            "kind": "File",
                            "children": [
                                {
                                    "kind": "CompositeLit",
                                    "id": 100,
                                    "type": {"kind": "Ident", "id": 101, "name": "pair"},
                                    "elts": [{"kind": "BasicLit"}, {"kind": "BasicLit"}],
                                }
                            ],
                        },
                    }
                ],
                "defs": [[1, 1], [2, 2], [3, 3], [4, 4], [5, 5], [6, 6], [7, 7], [8, 8], [9, 9], [10, 10], [11, None]],
                "uses": [[101, 1], [102, 4], [103, 6]],
                "types": [[100, 1]],
            },
            {"path": "fmt", "name": "fmt"},
        ],
        "objects": [
            {"id": 1, "kind": "type", "name": "pair", "pkg": "example.com/app", "pos": _pos(3), "pkg_scope": True, "type": 1},
            {"id": 2, "kind": "field", "name": "a", "pkg": "example.com/app", "pos": _pos(3), "type": 2},
            {"id": 3, "kind": "field", "name": "b", "pkg": "example.com/app", "pos": _pos(3), "type": 2},
            {"id": 4, "kind": "type", "name": "writer", "pkg": "example.com/app", "pos": _pos(4), "pkg_scope": True, "type": 3},
            {"id": 5, "kind": "func", "name": "write", "pkg": "example.com/app", "pos": _pos(4), "type": 5},
            {"id": 6, "kind": "type", "name": "sink", "pkg": "example.com/app", "pos": _pos(5), "pkg_scope": True, "type": 9},
            {"id": 7, "kind": "func", "name": "write", "pkg": "example.com/app", "pos": _pos(6), "type": 11},
            {"id": 8, "kind": "func", "name": "flush", "pkg": "example.com/app", "pos": _pos(7), "type": 12},
            {"id": 9, "kind": "func", "name": "main", "pkg": "example.com/app", "pos": _pos(9), "pkg_scope": True, "type": 13},
            {"id": 10, "kind": "func", "name": "unused", "pkg": "example.com/app", "pos": _pos(10), "pkg_scope": True, "type": 13},
            {"id": 20, "kind": "func", "name": "Println", "pkg": "fmt", "pos": {}, "pkg_scope": True, "type": 13},
        ],
        "types": [
            {"id": 1, "kind": "named", "object": 1, "underlying": 4, "methods": []},
            {"id": 2, "kind": "basic", "name": "int"},
            {"id": 3, "kind": "named", "object": 4, "underlying": 14},
            {"id": 4, "kind": "struct", "fields": [2, 3]},
            {"id": 5, "kind": "signature", "recv": 3, "params": [6], "results": [2, 8]},
            {"id": 6, "kind": "slice", "elem": 7},
            {"id": 7, "kind": "basic", "name": "byte"},
            {"id": 8, "kind": "basic", "name": "error"},
            {"id": 9, "kind": "named", "object": 6, "underlying": 15, "methods": [7, 8]},
            {"id": 10, "kind": "pointer", "elem": 9},
            {"id": 11, "kind": "signature", "recv": 10, "params": [6], "results": [2, 8]},
            {"id": 12, "kind": "signature", "recv": 9},
            {"id": 13, "kind": "signature"},
            {"id": 14, "kind": "interface", "methods": [5]},
            {"id": 15, "kind": "struct", "fields": []},
        ],
        "diagnostics": [{"pos": _pos(12), "message": "declared and not used: x"}],
    }


def _write(tmp_path: Path, data: dict) -> Path:
    p = tmp_path / "program.json"
    p.write_text(json.dumps(data), encoding="utf-8")
    return p


def test_decode_links_objects_and_types():
    model = decode_program_model(sample_dump())
    app = model.packages["example.com/app"]
    pair = app.defs[1]
    assert pair.kind is ObjectKind.TYPE_NAME
    assert isinstance(pair.type, Named) and pair.type.obj is pair
    assert isinstance(pair.type.underlying(), Struct)
    assert [f.name for f in pair.type.underlying().fields] == ["a", "b"]

    writer = app.defs[4].type
    assert isinstance(writer.underlying(), Interface)
    write = app.defs[7]
    assert write.is_method and isinstance(write.type.recv, Pointer)
    assert isinstance(app.defs[9].type, Signature)
    assert app.defs[11] is None
    assert model.diagnostics[0].message == "declared and not used: x"


def test_decode_syntax_and_queries():
    model = decode_program_model(sample_dump())
    app = model.packages["example.com/app"]
    lit = app.files[0].root.children[0]
    assert isinstance(lit, CompositeLit)
    assert lit.positional
    assert app.object_of(lit.type_expr) is app.defs[1]
    assert app.type_of(lit) is app.defs[1].type


def test_keyed_literal_is_not_positional():
    data = {
        "packages": [
            {
                "path": "p",
                "files": [
                    {
                        "name": "p.go",
                        "root": {
                            "kind": "CompositeLit",
                            "elts": [{"kind": "KeyValueExpr", "key": {"kind": "Ident", "name": "a"}, "value": {"kind": "BasicLit"}}],
                        },
                    }
                ],
            }
        ]
    }
    lit = decode_program_model(data).packages["p"].files[0].root
    assert isinstance(lit.elts[0], KeyValueExpr)
    assert not lit.positional


def test_packages_referenced_by_objects_are_created():
    data = {"objects": [{"id": 1, "kind": "func", "name": "Fprintf", "pkg": "fmt"}]}
    model = decode_program_model(data)
    assert "fmt" in model.packages
    assert not model.packages["fmt"].initial


@pytest.mark.parametrize(
    "data",
    [
        {"objects": [{"id": 1, "kind": "macro", "name": "x"}]},
        {"types": [{"id": 1, "kind": "tuple"}]},
        {"types": [{"id": 1, "kind": "pointer", "elem": 99}]},
        {"packages": [{"path": "p", "defs": [[1, 42]]}]},
        {"packages": [{"name": "missing-path"}]},
        ["not", "an", "object"],
    ],
)
def test_malformed_models_raise_load_error(data):
    with pytest.raises(LoadError):
        decode_program_model(data)


def test_invalid_json_raises_load_error():
    with pytest.raises(LoadError):
        loads_program_model("{not json")


def _nested_expr(depth: int) -> dict:
    """``a + a + ... + a`` as the front-end nests it: one BinaryExpr per operator."""
    node: dict = {"kind": "Ident", "id": 1, "name": "a"}
    for i in range(depth):
        node = {"kind": "BinaryExpr", "id": i + 2, "children": [node, {"kind": "Ident", "name": "a"}]}
    return node


def test_deeply_nested_syntax_tree_decodes():
    data = {
        "packages": [
            {"path": "example.com/gen", "name": "gen", "files": [{"name": "gen.go", "root": _nested_expr(5000)}]}
        ]
    }
    model = decode_program_model(data)

    seen = []
    walk(model.packages["example.com/gen"].files[0].root, lambda n: seen.append(n) is None)
    assert len(seen) == 2 * 5000 + 1
    assert seen[-1].kind == "Ident" and seen[-1].name == "a"


def deeply_nested_json(depth: int = 100000) -> str:
    leaf = '{"kind": "Ident", "name": "a"}'
    tree = '{"kind": "BinaryExpr", "children": [' * depth + leaf + "]}" * depth
    return '{"packages": [{"path": "example.com/gen", "files": [{"name": "gen.go", "root": ' + tree + "}]}]}"


def test_json_nested_beyond_recursion_limit_raises_load_error():
    with pytest.raises(LoadError, match="nested too deeply"):
        loads_program_model(deeply_nested_json())


def test_dump_initial_flag_is_kept(tmp_path: Path):
    data = sample_dump()
    data["packages"].append(
        {"path": "example.com/tool", "name": "tool", "initial": True, "files": [], "defs": [[200, 30]]}
    )
    data["objects"].append(
        {"id": 30, "kind": "func", "name": "stale", "pkg": "example.com/tool", "pos": _pos(2, "/work/tool/tool.go"), "pkg_scope": True, "type": 13}
    )
    provider = DumpProvider(_write(tmp_path, data), cwd="/work")

    assert sorted(s.name for s in Checker(provider=provider).check(["./app"])) == ["flush", "stale", "unused"]
    # requesting a package later does not make earlier requests stick
    assert [s.name for s in Checker(provider=provider).check(["example.com/tool"])] == ["stale"]


def test_missing_dump_file_raises_load_error(tmp_path: Path):
    with pytest.raises(LoadError):
        load_program_model_file(tmp_path / "nope.json")


def test_dump_provider_end_to_end(tmp_path: Path):
    provider = DumpProvider(_write(tmp_path, sample_dump()), cwd="/work")
    unused = Checker(provider=provider).check(["./app"])

    # pair fields: positional literal; sink.write: implements writer through *sink;
    # main: entry point. flush satisfies nothing and unused is never called.
    assert sorted(s.name for s in unused) == ["flush", "unused"]
    assert unused[0].pos.file == "/work/app/main.go"


def test_dump_provider_resolution(tmp_path: Path):
    provider = DumpProvider(_write(tmp_path, sample_dump()), cwd="/work/app")
    assert provider.resolve_packages([".", "example.com/app", "/work/app"]) == ["example.com/app"] * 3
    with pytest.raises(ResolutionError):
        provider.resolve_packages(["./missing"])
    with pytest.raises(ResolutionError):
        provider.resolve_packages(["example.com/other"])


def test_diagnostics_logged_only_when_verbose(tmp_path: Path, caplog):
    path = _write(tmp_path, sample_dump())

    with caplog.at_level(logging.WARNING, logger="gounused.provider"):
        quiet = Checker(provider=DumpProvider(path, cwd="/work")).check(["./app"])
    assert "declared and not used" not in caplog.text

    with caplog.at_level(logging.WARNING, logger="gounused.provider"):
        loud = Checker(provider=DumpProvider(path, cwd="/work"), verbose=True).check(["./app"])
    assert "declared and not used: x" in caplog.text
    assert [s.name for s in quiet] == [s.name for s in loud]
