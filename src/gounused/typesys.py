"""
Resolved Go type graph and the structural queries the analyzer needs.

Types come fully resolved from the front-end. Only identity, method sets and
interface satisfaction are computed here; nothing is inferred.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional, Set, Tuple

if TYPE_CHECKING:
    from .model import Symbol


class Type:
    """Base class of all resolved types."""

    def underlying(self) -> "Type":
        return self


@dataclass(eq=False)
class Basic(Type):
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(eq=False)
class Named(Type):
    obj: Optional["Symbol"] = None
    under: Optional[Type] = None
    methods: List["Symbol"] = field(default_factory=list)

    def underlying(self) -> Type:
        return self.under if self.under is not None else self

    def __str__(self) -> str:
        if self.obj is None:
            return "<named>"
        if self.obj.pkg is not None:
            return f"{self.obj.pkg.path}.{self.obj.name}"
        return self.obj.name


@dataclass(eq=False)
class Pointer(Type):
    elem: Optional[Type] = None

    def __str__(self) -> str:
        return f"*{self.elem}"


@dataclass(eq=False)
class Slice(Type):
    elem: Optional[Type] = None

    def __str__(self) -> str:
        return f"[]{self.elem}"


@dataclass(eq=False)
class Array(Type):
    length: int = 0
    elem: Optional[Type] = None

    def __str__(self) -> str:
        return f"[{self.length}]{self.elem}"


@dataclass(eq=False)
class Map(Type):
    key: Optional[Type] = None
    elem: Optional[Type] = None

    def __str__(self) -> str:
        return f"map[{self.key}]{self.elem}"


@dataclass(eq=False)
class Chan(Type):
    dir: str = "both"  # both|send|recv
    elem: Optional[Type] = None

    def __str__(self) -> str:
        prefix = {"send": "chan<- ", "recv": "<-chan "}.get(self.dir, "chan ")
        return f"{prefix}{self.elem}"


@dataclass(eq=False)
class Struct(Type):
    fields: List["Symbol"] = field(default_factory=list)

    def __str__(self) -> str:
        return "struct{" + "; ".join(f"{f.name} {f.type}" for f in self.fields) + "}"


@dataclass(eq=False)
class Interface(Type):
    methods: List["Symbol"] = field(default_factory=list)
    embedded: List[Type] = field(default_factory=list)

    def all_methods(self) -> List["Symbol"]:
        """Explicit and embedded methods, first declaration of a name wins."""
        out: Dict[str, "Symbol"] = {}
        seen: Set[int] = set()
        stack: List[Type] = [self]
        while stack:
            t = stack.pop(0)
            if id(t) in seen:
                continue
            seen.add(id(t))
            u = t.underlying()
            if not isinstance(u, Interface):
                continue
            for m in u.methods:
                out.setdefault(m.name, m)
            stack.extend(u.embedded)
        return list(out.values())

    def __str__(self) -> str:
        return "interface{" + "; ".join(m.name for m in self.all_methods()) + "}"


@dataclass(eq=False)
class Signature(Type):
    params: List[Type] = field(default_factory=list)
    results: List[Type] = field(default_factory=list)
    variadic: bool = False
    recv: Optional[Type] = None

    def __str__(self) -> str:
        ps = ", ".join(str(p) for p in self.params)
        rs = ", ".join(str(r) for r in self.results)
        return f"func({ps}) ({rs})"


def identical(x: Optional[Type], y: Optional[Type]) -> bool:
    """Go type identity. Named types are identical only to themselves."""
    if x is y:
        return True
    if x is None or y is None or type(x) is not type(y):
        return False
    if isinstance(x, Basic):
        return x.name == y.name
    if isinstance(x, Named):
        return False
    if isinstance(x, (Pointer, Slice)):
        return identical(x.elem, y.elem)
    if isinstance(x, Array):
        return x.length == y.length and identical(x.elem, y.elem)
    if isinstance(x, Map):
        return identical(x.key, y.key) and identical(x.elem, y.elem)
    if isinstance(x, Chan):
        return x.dir == y.dir and identical(x.elem, y.elem)
    if isinstance(x, Struct):
        if len(x.fields) != len(y.fields):
            return False
        for fx, fy in zip(x.fields, y.fields):
            if fx.name != fy.name or fx.embedded != fy.embedded:
                return False
            if not identical(fx.type, fy.type):
                return False
        return True
    if isinstance(x, Interface):
        mx = {m.name: m for m in x.all_methods()}
        my = {m.name: m for m in y.all_methods()}
        if mx.keys() != my.keys():
            return False
        return all(identical(mx[k].type, my[k].type) for k in mx)
    if isinstance(x, Signature):
        # receivers are not part of a function type's identity
        if x.variadic != y.variadic:
            return False
        return _identical_lists(x.params, y.params) and _identical_lists(x.results, y.results)
    return False


def _identical_lists(xs: List[Type], ys: List[Type]) -> bool:
    return len(xs) == len(ys) and all(identical(a, b) for a, b in zip(xs, ys))


def is_pointer_receiver(method: "Symbol") -> bool:
    sig = method.type
    return isinstance(sig, Signature) and isinstance(sig.recv, Pointer)


def _embedded_levels(base: Type, addressable: bool) -> Iterator[List[Tuple[Type, bool]]]:
    """Yield embedding depths breadth-first as lists of (type, addressable).

    A type embedded twice at one depth appears twice in that level. Named
    types already expanded at a shallower depth are not expanded again.
    """
    level: List[Tuple[Type, bool]] = [(base, addressable)]
    seen: Set[int] = set()
    while level:
        yield level
        nxt: List[Tuple[Type, bool]] = []
        expanded: Set[int] = set()
        for typ, addr in level:
            if isinstance(typ, Named):
                if id(typ) in seen:
                    continue
                expanded.add(id(typ))
            u = typ.underlying()
            if not isinstance(u, Struct):
                continue
            for f in u.fields:
                if not f.embedded or f.type is None:
                    continue
                if isinstance(f.type, Pointer) and f.type.elem is not None:
                    nxt.append((f.type.elem, True))
                else:
                    nxt.append((f.type, addr))
        seen |= expanded
        level = nxt


def method_set(t: Type) -> Dict[str, "Symbol"]:
    """Methods callable on a value of type ``t``, including promoted ones.

    For ``T`` only value-receiver methods count, for ``*T`` both. Fields and
    methods found at one depth hide every same-named selector deeper down,
    and a name found more than once at the same depth is ambiguous, so it is
    promoted from nowhere.
    """
    addressable = False
    base = t
    if isinstance(t, Pointer):
        if t.elem is None:
            return {}
        base = t.elem
        addressable = True
        if isinstance(base.underlying(), Interface):
            return {}
    u = base.underlying()
    if isinstance(u, Interface):
        return {m.name: m for m in u.all_methods()}

    result: Dict[str, "Symbol"] = {}
    hidden: Set[str] = set()
    for level in _embedded_levels(base, addressable):
        # name -> one entry per selector found at this depth; fields are None
        found: Dict[str, List[Optional["Symbol"]]] = {}
        for typ, addr in level:
            if isinstance(typ, Named):
                for m in typ.methods:
                    callable_here = addr or not is_pointer_receiver(m)
                    found.setdefault(m.name, []).append(m if callable_here else None)
            inner = typ.underlying()
            if isinstance(inner, Interface) and typ is not base:
                for m in inner.all_methods():
                    found.setdefault(m.name, []).append(m)
            elif isinstance(inner, Struct):
                for f in inner.fields:
                    if f.name and f.name != "_":
                        found.setdefault(f.name, []).append(None)
        for name, entries in found.items():
            if name in hidden or len(entries) != 1 or entries[0] is None:
                continue
            result[name] = entries[0]
        hidden.update(found)
    return result


def implements(t: Type, iface: Interface) -> bool:
    """Report whether ``t`` satisfies every method of ``iface``."""
    required = iface.all_methods()
    if not required:
        return True
    have = method_set(t)
    for m in required:
        got = have.get(m.name)
        if got is None or not identical(got.type, m.type):
            return False
    return True
