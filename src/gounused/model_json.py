"""
Decoder for the JSON program-model dump written by the Go front-end.

The dump is a flat object graph: ``objects`` and ``types`` are lists of
records referencing each other by integer id, so recursive types decode
without special casing. Syntax trees are nested node records.
"""

from __future__ import annotations

import json
from functools import partial
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from .exceptions import LoadError
from .model import (
    CompositeLit,
    Diagnostic,
    File,
    Ident,
    KeyValueExpr,
    Node,
    ObjectKind,
    Package,
    Position,
    ProgramModel,
    SelectorExpr,
    Symbol,
)
from .typesys import (
    Array,
    Basic,
    Chan,
    Interface,
    Map,
    Named,
    Pointer,
    Signature,
    Slice,
    Struct,
    Type,
)

_TYPE_SHELLS = {
    "basic": lambda d: Basic(name=str(d.get("name", ""))),
    "named": lambda d: Named(),
    "pointer": lambda d: Pointer(),
    "slice": lambda d: Slice(),
    "array": lambda d: Array(length=int(d.get("len", 0))),
    "map": lambda d: Map(),
    "chan": lambda d: Chan(dir=str(d.get("dir", "both"))),
    "struct": lambda d: Struct(),
    "interface": lambda d: Interface(),
    "signature": lambda d: Signature(variadic=bool(d.get("variadic", False))),
}


def load_program_model_file(path: str | Path) -> ProgramModel:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise LoadError(f"cannot read program model {p}: {e}") from e
    return loads_program_model(text)


def loads_program_model(text: str) -> ProgramModel:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise LoadError(f"program model is not valid JSON: {e}") from e
    except RecursionError as e:
        raise LoadError("program model is nested too deeply to decode") from e
    return decode_program_model(data)


def decode_program_model(data: Dict[str, Any]) -> ProgramModel:
    """Build a ProgramModel from an already parsed dump."""
    if not isinstance(data, dict):
        raise LoadError("program model must be a JSON object")
    try:
        return _Decoder(data).decode()
    except LoadError:
        raise
    except RecursionError as e:
        raise LoadError("program model is nested too deeply to decode") from e
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise LoadError(f"malformed program model: {e!r}") from e


def _position(raw: Optional[Dict[str, Any]]) -> Position:
    if not raw:
        return Position()
    return Position(
        file=str(raw.get("file", "")),
        line=int(raw.get("line", 0)),
        column=int(raw.get("column", 0)),
    )


class _Decoder:
    def __init__(self, data: Dict[str, Any]):
        self.data = data
        self.model = ProgramModel()
        self.objects: Dict[int, Symbol] = {}
        self.types: Dict[int, Type] = {}

    def decode(self) -> ProgramModel:
        for raw in self.data.get("packages") or []:
            self.model.add_package(
                Package(
                    path=raw["path"],
                    name=raw.get("name") or raw["path"].rsplit("/", 1)[-1],
                    dir=raw.get("dir") or "",
                    initial=bool(raw.get("initial", False)),
                )
            )
        self._decode_objects()
        self._decode_types()
        for raw in self.data.get("objects") or []:
            tid = raw.get("type")
            if tid is not None:
                self.objects[raw["id"]].type = self._type(tid)
        for raw in self.data.get("packages") or []:
            self._fill_package(self.model.packages[raw["path"]], raw)
        for raw in self.data.get("diagnostics") or []:
            pos = _position(raw.get("pos")) if raw.get("pos") else None
            self.model.diagnostics.append(Diagnostic(message=str(raw["message"]), pos=pos))
        return self.model

    def _package(self, path: Optional[str]) -> Optional[Package]:
        if path is None:
            return None
        pkg = self.model.packages.get(path)
        if pkg is None:
            # dependency referenced only through its objects
            pkg = self.model.add_package(Package(path=path, name=path.rsplit("/", 1)[-1]))
        return pkg

    def _decode_objects(self) -> None:
        for raw in self.data.get("objects") or []:
            try:
                kind = ObjectKind(raw["kind"])
            except ValueError:
                raise LoadError(f"unknown object kind {raw['kind']!r} (object {raw['id']})")
            self.objects[raw["id"]] = Symbol(
                kind=kind,
                name=raw["name"],
                pkg=self._package(raw.get("pkg")),
                pos=_position(raw.get("pos")),
                pkg_scope=bool(raw.get("pkg_scope", False)),
                embedded=bool(raw.get("embedded", False)),
            )

    def _decode_types(self) -> None:
        raws = self.data.get("types") or []
        for raw in raws:
            shell = _TYPE_SHELLS.get(raw["kind"])
            if shell is None:
                raise LoadError(f"unknown type kind {raw['kind']!r} (type {raw['id']})")
            self.types[raw["id"]] = shell(raw)
        for raw in raws:
            self._link_type(self.types[raw["id"]], raw)

    def _type(self, tid: Optional[int]) -> Optional[Type]:
        if tid is None:
            return None
        try:
            return self.types[tid]
        except KeyError:
            raise LoadError(f"reference to undefined type {tid}")

    def _object(self, oid: Optional[int]) -> Optional[Symbol]:
        if oid is None:
            return None
        try:
            return self.objects[oid]
        except KeyError:
            raise LoadError(f"reference to undefined object {oid}")

    def _objects(self, ids: Optional[List[int]]) -> List[Symbol]:
        return [self._object(i) for i in ids or []]

    def _types(self, ids: Optional[List[int]]) -> List[Type]:
        return [self._type(i) for i in ids or []]

    def _link_type(self, t: Type, raw: Dict[str, Any]) -> None:
        if isinstance(t, Named):
            t.obj = self._object(raw.get("object"))
            t.under = self._type(raw.get("underlying"))
            t.methods = self._objects(raw.get("methods"))
        elif isinstance(t, (Pointer, Slice, Array)):
            t.elem = self._type(raw.get("elem"))
        elif isinstance(t, Map):
            t.key = self._type(raw.get("key"))
            t.elem = self._type(raw.get("elem"))
        elif isinstance(t, Chan):
            t.elem = self._type(raw.get("elem"))
        elif isinstance(t, Struct):
            t.fields = self._objects(raw.get("fields"))
        elif isinstance(t, Interface):
            t.methods = self._objects(raw.get("methods"))
            t.embedded = self._types(raw.get("embedded"))
        elif isinstance(t, Signature):
            t.recv = self._type(raw.get("recv"))
            t.params = self._types(raw.get("params"))
            t.results = self._types(raw.get("results"))

    def _fill_package(self, pkg: Package, raw: Dict[str, Any]) -> None:
        for f in raw.get("files") or []:
            pkg.files.append(File(name=f["name"], root=self._node(f["root"])))
        for ident_id, oid in raw.get("defs") or []:
            pkg.defs[int(ident_id)] = self._object(oid)
        for ident_id, oid in raw.get("uses") or []:
            pkg.uses[int(ident_id)] = self._object(oid)
        for node_id, tid in raw.get("types") or []:
            pkg.types[int(node_id)] = self._type(tid)

    def _node(self, raw: Optional[Dict[str, Any]]) -> Optional[Node]:
        # explicit stack: generated code nests deeper than the recursion limit
        holder: List[Optional[Node]] = [None]
        stack: List[Tuple[Optional[Dict[str, Any]], Callable[[Optional[Node]], None]]] = [
            (raw, partial(holder.__setitem__, 0))
        ]
        while stack:
            item, attach = stack.pop()
            if item is None:
                attach(None)
                continue
            kind = item["kind"]
            nid = item.get("id")
            pos = _position(item["pos"]) if item.get("pos") else None
            node: Node
            slots: List[Tuple[str, Any]] = []
            lists: List[Tuple[str, List[Any]]] = []
            if kind == "Ident":
                node = Ident(id=nid, pos=pos, name=item.get("name", ""))
            elif kind == "SelectorExpr":
                node = SelectorExpr(id=nid, pos=pos)
                slots = [("x", item.get("x")), ("sel", item.get("sel"))]
            elif kind == "KeyValueExpr":
                node = KeyValueExpr(id=nid, pos=pos)
                slots = [("key", item.get("key")), ("value", item.get("value"))]
            elif kind == "CompositeLit":
                node = CompositeLit(id=nid, pos=pos)
                slots = [("type_expr", item.get("type"))]
                lists = [("elts", list(item.get("elts") or []))]
            else:
                node = Node(kind=kind, id=nid, pos=pos)
                lists = [("children", list(item.get("children") or []))]
            attach(node)
            for attr, child in slots:
                stack.append((child, partial(setattr, node, attr)))
            for attr, children in lists:
                out: List[Optional[Node]] = [None] * len(children)
                setattr(node, attr, out)
                for i, child in enumerate(children):
                    stack.append((child, partial(out.__setitem__, i)))
        return holder[0]
