"""
gounused - find unused constants, variables, functions, types and fields in Go

Simple API:

    from gounused import check, CheckMode, DumpProvider

    # Analyze a program model dumped by the Go front-end
    unused = check(["example.com/app"],provider=DumpProvider("program.json"))
    for sym in unused:
        print(f"{sym.pos}: {sym.describe()} {sym.name} is unused")

    # Only report functions and types
    unused = check(["./cmd/app"], mode=CheckMode.FUNCTIONS | CheckMode.TYPES)
"""

from importlib.metadata import PackageNotFoundError, version

from .checker import CheckMode, Checker, check
from .exceptions import ConfigError, GoUnusedError, LoadError, ResolutionError
from .provider import DumpProvider, FrontendProvider, ModelProvider, ProgramModelProvider

try:
    __version__ = version("gounused")
except PackageNotFoundError:
    # Fallback for development/uninstalled package
    __version__ = "unknown"

__all__ = [
    "CheckMode",
    "Checker",
    "check",
    "ProgramModelProvider",
    "ModelProvider",
    "DumpProvider",
    "FrontendProvider",
    "GoUnusedError",
    "ResolutionError",
    "LoadError",
    "ConfigError",
    "__version__",
]
