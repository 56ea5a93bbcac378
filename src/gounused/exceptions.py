"""
Error hierarchy for gounused.

ResolutionError and LoadError are fatal to a check run; nothing is reported
when either is raised.
"""

from __future__ import annotations

from typing import Optional


class GoUnusedError(Exception):
    """Base class for all gounused errors."""


class ResolutionError(GoUnusedError):
    """A requested package could not be located."""

    def __init__(self, identifier: str, reason: Optional[str] = None):
        self.identifier = identifier
        self.reason = reason
        msg = f"can't load package {identifier!r}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class LoadError(GoUnusedError):
    """Parsing or type-checking the resolved package set failed outright."""


class ConfigError(GoUnusedError):
    """Configuration file is missing, unreadable or holds invalid values."""
