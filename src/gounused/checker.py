"""
Unused symbol analysis over a type-checked Go program.

Implements the rules:
 - Candidates: package-scope constants, variables, functions and types, all
   methods and all struct fields. Locals and parameters are never tracked.
 - Usage: any identifier resolving to a candidate marks it used. Composite
   literals written positionally mark every field of their struct used.
 - Amnesty: `_`, exported API outside test files (and test entry points in
   test files), `main` in package main, `init`, and methods that satisfy an
   interface seen anywhere in the analyzed program.

The analysis runs in two phases over an AnalysisContext owned by a single
check call: construction fills the definition table, filtering reads it.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .model import (
    CompositeLit,
    Ident,
    Node,
    ObjectKind,
    Package,
    ProgramModel,
    SelectorExpr,
    Symbol,
    walk,
)
from .provider import FrontendProvider, ProgramModelProvider
from .typesys import Interface, Pointer, Signature, Struct, Type, implements

logger = logging.getLogger(__name__)

DEFAULT_TEST_FILE_SUFFIX = "_test.go"
DEFAULT_TEST_ENTRY_PREFIXES: Tuple[str, ...] = ("Test", "Benchmark", "Example", "Fuzz")


class CheckMode(enum.IntFlag):
    CONSTANTS = 1
    FIELDS = 2
    FUNCTIONS = 4
    TYPES = 8
    VARIABLES = 16
    ALL = CONSTANTS | FIELDS | FUNCTIONS | TYPES | VARIABLES

    @classmethod
    def parse(cls, names: str | Iterable[str]) -> "CheckMode":
        """Build a mode from names such as ``"constants,fields"``."""
        if isinstance(names, str):
            names = names.split(",")
        mode = cls(0)
        for raw in names:
            name = raw.strip().upper()
            if not name:
                continue
            try:
                mode |= cls[_MODE_ALIASES.get(name, name)]
            except KeyError:
                raise ValueError(f"unknown check kind: {raw.strip()!r}") from None
        return mode


_MODE_ALIASES = {
    "CONSTS": "CONSTANTS",
    "CONST": "CONSTANTS",
    "FIELD": "FIELDS",
    "FUNCS": "FUNCTIONS",
    "FUNC": "FUNCTIONS",
    "FUNCTION": "FUNCTIONS",
    "TYPE": "TYPES",
    "VARS": "VARIABLES",
    "VAR": "VARIABLES",
    "VARIABLE": "VARIABLES",
}

_KIND_MODE = {
    ObjectKind.CONST: CheckMode.CONSTANTS,
    ObjectKind.FIELD: CheckMode.FIELDS,
    ObjectKind.FUNC: CheckMode.FUNCTIONS,
    ObjectKind.TYPE_NAME: CheckMode.TYPES,
    ObjectKind.VAR: CheckMode.VARIABLES,
}


@dataclass
class AnalysisContext:
    """Definition table and interface contracts of one check run."""

    defs: Dict[Symbol, bool] = field(default_factory=dict)
    interfaces: Dict[Interface, None] = field(default_factory=dict)  # ordered set
    _satisfies: Dict[Tuple[Type, Interface], bool] = field(default_factory=dict)

    def define(self, sym: Symbol) -> None:
        self.defs.setdefault(sym, False)

    def mark_used(self, sym: Optional[Symbol]) -> None:
        if sym is not None and sym in self.defs:
            self.defs[sym] = True

    def record_interface(self, typ: Optional[Type]) -> None:
        if typ is None:
            return
        u = typ.underlying()
        if isinstance(u, Interface):
            self.interfaces.setdefault(u, None)

    def satisfies_contract(self, method: Symbol) -> bool:
        """True if the method's receiver implements a contract naming it."""
        sig = method.type
        if not isinstance(sig, Signature) or sig.recv is None:
            return False
        recv = sig.recv
        for iface in self.interfaces:
            if not any(m.name == method.name for m in iface.all_methods()):
                continue
            key = (recv, iface)
            ok = self._satisfies.get(key)
            if ok is None:
                ok = implements(recv, iface)
                self._satisfies[key] = ok
            if ok:
                return True
        return False


def _is_candidate_definition(sym: Symbol) -> bool:
    if sym.kind is ObjectKind.VAR and not sym.pkg_scope:
        # locals, parameters and results
        return False
    if sym.kind is ObjectKind.PKG_NAME:
        return False
    return True


def _literal_struct(pkg: Package, lit: CompositeLit) -> Optional[Struct]:
    texpr = lit.type_expr
    typ: Optional[Type]
    if isinstance(texpr, Ident):
        obj = pkg.object_of(texpr)
        typ = obj.type if obj is not None else None
    elif isinstance(texpr, SelectorExpr) and texpr.sel is not None:
        obj = pkg.object_of(texpr.sel)
        typ = obj.type if obj is not None else None
    elif texpr is None or texpr.kind == "StructType":
        typ = pkg.type_of(lit)
        if isinstance(typ, Pointer):
            # &T{...} elided inside a []*T literal
            typ = typ.elem
    else:
        return None
    if typ is None:
        return None
    u = typ.underlying()
    return u if isinstance(u, Struct) else None


def _mark_positional_literals(ctx: AnalysisContext, pkg: Package, root: Node) -> None:
    def visit(node: Node) -> bool:
        if isinstance(node, CompositeLit) and node.positional:
            st = _literal_struct(pkg, node)
            if st is not None:
                for f in st.fields:
                    ctx.mark_used(f)
        return True

    walk(root, visit)


def build_context(packages: Sequence[Package]) -> AnalysisContext:
    """Construction phase: definitions, then usages, then literals."""
    ctx = AnalysisContext()
    for pkg in packages:
        for sym in pkg.defs.values():
            if sym is None:
                continue
            if sym.kind in (ObjectKind.VAR, ObjectKind.FIELD, ObjectKind.TYPE_NAME):
                ctx.record_interface(sym.type)
            if _is_candidate_definition(sym):
                ctx.define(sym)
    for pkg in packages:
        for sym in pkg.uses.values():
            ctx.mark_used(sym)
    for pkg in packages:
        for f in pkg.files:
            _mark_positional_literals(ctx, pkg, f.root)
    logger.debug(
        "definition table: %d symbols, %d used, %d interface contracts",
        len(ctx.defs),
        sum(1 for used in ctx.defs.values() if used),
        len(ctx.interfaces),
    )
    return ctx


def _is_main(sym: Symbol) -> bool:
    return (
        sym.pkg is not None
        and sym.pkg.name == "main"
        and sym.name == "main"
        and sym.pkg_scope
        and sym.is_function
        and not sym.is_method
    )


class Checker:
    """Finds unused symbols in a set of Go packages.

    Args:
        provider: program model provider; defaults to FrontendProvider().
        mode: kinds of symbols to report.
        verbose: surface front-end diagnostics instead of swallowing them.
    """

    def __init__(
        self,
        provider: Optional[ProgramModelProvider] = None,
        mode: CheckMode = CheckMode.ALL,
        verbose: bool = False,
        test_file_suffix: str = DEFAULT_TEST_FILE_SUFFIX,
        test_entry_prefixes: Sequence[str] = DEFAULT_TEST_ENTRY_PREFIXES,
    ):
        self.provider = provider if provider is not None else FrontendProvider()
        self.mode = mode
        self.verbose = verbose
        self.test_file_suffix = test_file_suffix
        self.test_entry_prefixes = tuple(test_entry_prefixes)

    def check(self, identifiers: Sequence[str]) -> List[Symbol]:
        canonical = self.provider.resolve_packages(list(identifiers))
        program = self.provider.load(canonical, include_tests=True, suppress_diagnostics=not self.verbose)
        return self.check_program(program)

    def check_program(self, program: ProgramModel) -> List[Symbol]:
        """Run both phases on an already loaded program."""
        ctx = build_context(program.initial_packages())
        return self.unused(ctx)

    def unused(self, ctx: AnalysisContext) -> List[Symbol]:
        """Filtering phase."""
        out = [sym for sym, used in ctx.defs.items() if not used and self._reportable(ctx, sym)]
        out.sort(key=lambda s: (s.pos.file, s.pos.line, s.pos.column, s.name))
        return out

    def selects(self, sym: Symbol) -> bool:
        bit = _KIND_MODE.get(sym.kind)
        return bit is not None and bool(self.mode & bit)

    def _in_test_file(self, sym: Symbol) -> bool:
        return sym.pos.file.endswith(self.test_file_suffix)

    def _exported_api(self, sym: Symbol) -> bool:
        if not sym.exported:
            return False
        if not (sym.pkg_scope or sym.is_method or sym.is_field):
            return False
        if not self._in_test_file(sym):
            return True
        return sym.name.startswith(self.test_entry_prefixes)

    def _reportable(self, ctx: AnalysisContext, sym: Symbol) -> bool:
        if sym.pkg is None:
            return False
        if not self.selects(sym):
            return False
        if sym.name == "_":
            return False
        if self._exported_api(sym):
            return False
        if _is_main(sym):
            return False
        if sym.is_function and not sym.is_method and sym.name == "init":
            return False
        if sym.is_method and ctx.satisfies_contract(sym):
            return False
        return True


def check(
    identifiers: Sequence[str],
    mode: CheckMode = CheckMode.ALL,
    provider: Optional[ProgramModelProvider] = None,
    verbose: bool = False,
) -> List[Symbol]:
    return Checker(provider=provider, mode=mode, verbose=verbose).check(identifiers)
