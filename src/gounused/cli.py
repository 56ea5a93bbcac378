#!/usr/bin/env python3
"""
gounused command line

Reports unused constants, variables, functions, types and struct fields in
Go packages. Exit status: 0 nothing unused, 1 unused symbols found, 2 error.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .exceptions import GoUnusedError


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gounused", description="Find unused code in Go packages")
    parser.add_argument("packages", nargs="*", default=["."], help="Packages to check (default: .)")
    parser.add_argument("--config", default=None, help="Path to config (gounused.yaml or pyproject.toml)")
    parser.add_argument("--model", default=None, help="Analyze a JSON program model dump instead of running the front-end")
    parser.add_argument(
        "--checks",
        default=None,
        help="Comma separated kinds to report: constants,fields,functions,types,variables",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show front-end diagnostics and debug logs")
    parser.add_argument("--json", dest="json_out", default=None, help="Also write a JSON report to this path")
    parser.add_argument("--init", action="store_true", help="Write an example gounused.yaml and exit")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    # Lazy import to keep --help fast
    from .config_loader import load_config, save_example_config

    if args.init:
        target = Path("gounused.yaml")
        if target.exists():
            print(f"{target} already exists", file=sys.stderr)
            return 2
        print(f"wrote {save_example_config(target)}")
        return 0

    from .checker import CheckMode, Checker
    from .provider import DumpProvider, FrontendProvider
    from .report import format_symbol, save_report

    try:
        cfg = load_config(Path(args.config) if args.config else None)
        mode = CheckMode.parse(args.checks) if args.checks else cfg.mode
        verbose = args.verbose or cfg.verbose
        model = args.model or cfg.model
        if model:
            provider = DumpProvider(model)
        else:
            provider = FrontendProvider(
                command=cfg.frontend.command,
                go=cfg.frontend.go,
                timeout=cfg.frontend.timeout,
            )
        checker = Checker(
            provider=provider,
            mode=mode,
            verbose=verbose,
            test_file_suffix=cfg.test_file_suffix,
            test_entry_prefixes=cfg.test_entry_prefixes,
        )
        unused = checker.check(args.packages)
    except (GoUnusedError, ValueError) as e:
        print(f"gounused: {e}", file=sys.stderr)
        return 2

    for sym in unused:
        print(format_symbol(sym))
    if args.json_out:
        save_report(Path(args.json_out), args.packages, unused)
    return 1 if unused else 0


if __name__ == "__main__":
    sys.exit(main())
