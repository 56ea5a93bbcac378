"""
Result formatting for the command line: one line per symbol, or a JSON report.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Sequence

from .model import Symbol


def format_symbol(sym: Symbol) -> str:
    return f"{sym.pos}: {sym.describe()} {sym.name} is unused"


def build_report(packages: Sequence[str], unused: Sequence[Symbol]) -> Dict[str, Any]:
    items: List[Dict[str, Any]] = []
    by_kind: Dict[str, int] = {}
    for sym in unused:
        kind = sym.describe()
        by_kind[kind] = by_kind.get(kind, 0) + 1
        items.append(
            {
                "package": sym.pkg.path if sym.pkg is not None else None,
                "name": sym.name,
                "kind": kind,
                "method": sym.is_method,
                "file": sym.pos.file,
                "line": sym.pos.line,
                "column": sym.pos.column,
            }
        )
    return {
        "packages": list(packages),
        "summary": {"unused": len(items), "by_kind": by_kind},
        "unused": items,
    }


def save_report(output: Path, packages: Sequence[str], unused: Sequence[Symbol]) -> Path:
    output.parent.mkdir(parents=True, exist_ok=True)
    report = build_report(packages, unused)
    output.write_text(json.dumps(report, ensure_ascii=False, indent=2), encoding="utf-8")
    return output
