"""
Program model handed to the analyzer by the front-end.

Objects here mirror what a Go type checker produces: symbols with their
resolved types, per-package definition/usage tables keyed by identifier
node, and the syntax trees the composite-literal scan walks.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional

from .typesys import Signature, Type


@dataclass(frozen=True)
class Position:
    file: str = ""
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        if not self.file:
            return "-"
        if self.line <= 0:
            return self.file
        if self.column <= 0:
            return f"{self.file}:{self.line}"
        return f"{self.file}:{self.line}:{self.column}"


class ObjectKind(enum.Enum):
    CONST = "const"
    VAR = "var"
    FIELD = "field"
    FUNC = "func"
    TYPE_NAME = "type"
    PKG_NAME = "pkgname"
    LABEL = "label"
    BUILTIN = "builtin"
    NIL = "nil"


@dataclass(eq=False)
class Package:
    path: str
    name: str = ""
    dir: str = ""
    initial: bool = False
    files: List["File"] = field(default_factory=list)
    # identifier node id -> symbol (None where nothing resolves)
    defs: Dict[int, Optional["Symbol"]] = field(default_factory=dict)
    uses: Dict[int, "Symbol"] = field(default_factory=dict)
    # expression node id -> resolved type
    types: Dict[int, Type] = field(default_factory=dict)

    def object_of(self, ident: "Node") -> Optional["Symbol"]:
        if ident.id is None:
            return None
        if ident.id in self.defs:
            return self.defs[ident.id]
        return self.uses.get(ident.id)

    def type_of(self, node: "Node") -> Optional[Type]:
        if node.id is not None and node.id in self.types:
            return self.types[node.id]
        if isinstance(node, Ident):
            obj = self.object_of(node)
            if obj is not None:
                return obj.type
        return None

    def __repr__(self) -> str:
        return f"Package({self.path!r})"


@dataclass(eq=False)
class Symbol:
    kind: ObjectKind
    name: str
    pkg: Optional[Package] = None
    pos: Position = field(default_factory=Position)
    pkg_scope: bool = False
    type: Optional[Type] = None
    embedded: bool = False

    @property
    def exported(self) -> bool:
        return self.name[:1].isupper()

    @property
    def is_field(self) -> bool:
        return self.kind is ObjectKind.FIELD

    @property
    def is_function(self) -> bool:
        return self.kind is ObjectKind.FUNC

    @property
    def is_method(self) -> bool:
        return self.is_function and isinstance(self.type, Signature) and self.type.recv is not None

    def describe(self) -> str:
        """Short kind word used in diagnostics: const, var, field, func, type."""
        return self.kind.value

    def __repr__(self) -> str:
        owner = self.pkg.path if self.pkg is not None else "<universe>"
        return f"Symbol({self.kind.value} {owner}.{self.name} at {self.pos})"


@dataclass(frozen=True)
class Diagnostic:
    message: str
    pos: Optional[Position] = None

    def __str__(self) -> str:
        if self.pos is None:
            return self.message
        return f"{self.pos}: {self.message}"


# --- syntax -----------------------------------------------------------------


@dataclass(eq=False)
class Node:
    kind: str
    id: Optional[int] = None
    pos: Optional[Position] = None
    children: List["Node"] = field(default_factory=list)

    def iter_children(self) -> Iterator["Node"]:
        return iter(self.children)


@dataclass(eq=False)
class Ident(Node):
    kind: str = "Ident"
    name: str = ""


@dataclass(eq=False)
class SelectorExpr(Node):
    kind: str = "SelectorExpr"
    x: Optional[Node] = None
    sel: Optional[Ident] = None

    def iter_children(self) -> Iterator[Node]:
        for child in (self.x, self.sel):
            if child is not None:
                yield child


@dataclass(eq=False)
class KeyValueExpr(Node):
    kind: str = "KeyValueExpr"
    key: Optional[Node] = None
    value: Optional[Node] = None

    def iter_children(self) -> Iterator[Node]:
        for child in (self.key, self.value):
            if child is not None:
                yield child


@dataclass(eq=False)
class CompositeLit(Node):
    kind: str = "CompositeLit"
    type_expr: Optional[Node] = None  # None when elided inside an outer literal
    elts: List[Node] = field(default_factory=list)

    def iter_children(self) -> Iterator[Node]:
        if self.type_expr is not None:
            yield self.type_expr
        yield from self.elts

    @property
    def positional(self) -> bool:
        return any(not isinstance(e, KeyValueExpr) for e in self.elts)


@dataclass(eq=False)
class File:
    name: str
    root: Node


def walk(root: Node, visit: Callable[[Node], bool]) -> None:
    """Pre-order walk over ``root`` using an explicit stack.

    ``visit`` returns False to skip a node's children. Each call starts from
    scratch, so a walk can be restarted on any subtree.
    """
    stack: List[Node] = [root]
    while stack:
        node = stack.pop()
        if not visit(node):
            continue
        children = list(node.iter_children())
        children.reverse()
        stack.extend(children)


@dataclass
class ProgramModel:
    packages: Dict[str, Package] = field(default_factory=dict)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def initial_packages(self) -> List[Package]:
        return [p for p in self.packages.values() if p.initial]

    def add_package(self, pkg: Package) -> Package:
        self.packages[pkg.path] = pkg
        return pkg
