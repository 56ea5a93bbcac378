"""
Program Model Provider boundary.

The analyzer never parses or type-checks Go itself; it asks a provider to
resolve package identifiers and to hand back a fully resolved ProgramModel.
"""

from __future__ import annotations

import logging
import os
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .exceptions import LoadError, ResolutionError
from .model import ProgramModel
from .model_json import load_program_model_file, loads_program_model

logger = logging.getLogger(__name__)

DEFAULT_FRONTEND_COMMAND = ["gounused-dump"]


class ProgramModelProvider(ABC):
    """Resolves package identifiers and loads type-checked programs."""

    @abstractmethod
    def resolve_packages(self, identifiers: Sequence[str]) -> List[str]:
        """Map caller identifiers to canonical package ids.

        Raises:
            ResolutionError: an identifier names no package.
        """

    @abstractmethod
    def load(
        self,
        canonical_ids: Sequence[str],
        include_tests: bool = True,
        suppress_diagnostics: bool = True,
    ) -> ProgramModel:
        """Parse and type-check ``canonical_ids`` (plus test variants).

        Raises:
            LoadError: the package set could not be loaded at all.
        """


def _report_diagnostics(model: ProgramModel, suppress: bool) -> None:
    if suppress:
        return
    for diag in model.diagnostics:
        logger.warning("%s", diag)


def _is_path_like(identifier: str) -> bool:
    return (
        identifier in (".", "..")
        or identifier.startswith(("./", "../"))
        or os.path.isabs(identifier)
    )


class ModelProvider(ProgramModelProvider):
    """Serves an already built program model.

    Useful when the front-end runs in-process or when a model was produced
    ahead of time. ``load`` marks the requested packages (and their external
    ``_test`` packages) as the initial set, on top of the packages the model
    itself declares initial.
    """

    def __init__(self, model: ProgramModel, cwd: str | Path | None = None):
        self.model = model
        self.cwd = Path(cwd) if cwd is not None else None
        self._declared_initial = {p.path for p in model.packages.values() if p.initial}

    def _by_dir(self) -> Dict[str, str]:
        out: Dict[str, str] = {}
        for pkg in self.model.packages.values():
            if pkg.dir and not pkg.path.endswith("_test"):
                out[os.path.normpath(pkg.dir)] = pkg.path
        return out

    def resolve_packages(self, identifiers: Sequence[str]) -> List[str]:
        cwd = self.cwd or Path.cwd()
        by_dir = self._by_dir()
        resolved: List[str] = []
        for ident in identifiers:
            if _is_path_like(ident):
                target = os.path.normpath(str((cwd / ident) if not os.path.isabs(ident) else Path(ident)))
                path = by_dir.get(target)
                if path is None:
                    raise ResolutionError(ident, f"no package in directory {target}")
                resolved.append(path)
                continue
            if ident not in self.model.packages:
                raise ResolutionError(ident, "not in program model")
            resolved.append(ident)
        return resolved

    def load(
        self,
        canonical_ids: Sequence[str],
        include_tests: bool = True,
        suppress_diagnostics: bool = True,
    ) -> ProgramModel:
        wanted = set(canonical_ids)
        if include_tests:
            wanted |= {f"{p}_test" for p in canonical_ids}
        missing = [p for p in canonical_ids if p not in self.model.packages]
        if missing:
            raise LoadError(f"packages missing from program model: {', '.join(missing)}")
        for pkg in self.model.packages.values():
            pkg.initial = pkg.path in self._declared_initial or pkg.path in wanted
        _report_diagnostics(self.model, suppress_diagnostics)
        return self.model


class DumpProvider(ModelProvider):
    """ModelProvider backed by a JSON dump file written by the front-end."""

    def __init__(self, path: str | Path, cwd: str | Path | None = None):
        self.path = Path(path)
        super().__init__(load_program_model_file(self.path), cwd=cwd)
        logger.debug("loaded program model %s (%d packages)", self.path, len(self.model.packages))


def _run(args: List[str], cwd: Optional[Path], timeout: Optional[float]) -> subprocess.CompletedProcess:
    logger.debug("running %s", " ".join(args))
    return subprocess.run(args, capture_output=True, text=True, cwd=cwd, timeout=timeout)


class FrontendProvider(ProgramModelProvider):
    """Drives the Go toolchain and an external front-end as subprocesses.

    Identifiers are resolved with ``go list``; loading runs ``command`` with
    ``-tests`` and the canonical ids and decodes the JSON dump it prints.
    """

    def __init__(
        self,
        command: Optional[Sequence[str]] = None,
        go: str = "go",
        timeout: Optional[float] = None,
        cwd: str | Path | None = None,
    ):
        self.command = list(command or DEFAULT_FRONTEND_COMMAND)
        self.go = go
        self.timeout = timeout
        self.cwd = Path(cwd) if cwd is not None else None

    def resolve_packages(self, identifiers: Sequence[str]) -> List[str]:
        resolved: List[str] = []
        for ident in identifiers:
            args = [self.go, "list", "-find", "-f", "{{.ImportPath}}", "--", ident]
            try:
                proc = _run(args, self.cwd, self.timeout)
            except FileNotFoundError as e:
                raise ResolutionError(ident, f"go toolchain not found: {e}") from e
            except subprocess.TimeoutExpired as e:
                raise ResolutionError(ident, f"timed out after {e.timeout}s") from e
            if proc.returncode != 0:
                raise ResolutionError(ident, (proc.stderr or "").strip() or f"exit status {proc.returncode}")
            # patterns such as ./... expand to several packages
            lines = [ln.strip() for ln in (proc.stdout or "").splitlines() if ln.strip()]
            if not lines:
                raise ResolutionError(ident, "matched no packages")
            resolved.extend(ln for ln in lines if ln not in resolved)
        return resolved

    def load(
        self,
        canonical_ids: Sequence[str],
        include_tests: bool = True,
        suppress_diagnostics: bool = True,
    ) -> ProgramModel:
        args = list(self.command)
        if include_tests:
            args.append("-tests")
        args.extend(canonical_ids)
        try:
            proc = _run(args, self.cwd, self.timeout)
        except FileNotFoundError as e:
            raise LoadError(f"front-end not found: {self.command[0]}") from e
        except subprocess.TimeoutExpired as e:
            raise LoadError(f"front-end timed out after {e.timeout}s") from e
        for line in (proc.stderr or "").splitlines():
            logger.debug("front-end: %s", line)
        if proc.returncode != 0:
            detail = (proc.stderr or "").strip().splitlines()
            raise LoadError(
                f"front-end exited with status {proc.returncode}"
                + (f": {detail[-1]}" if detail else "")
            )
        model = loads_program_model(proc.stdout or "")
        wanted = set(canonical_ids)
        if include_tests:
            wanted |= {f"{p}_test" for p in canonical_ids}
        for pkg in model.packages.values():
            pkg.initial = pkg.initial or pkg.path in wanted
        _report_diagnostics(model, suppress_diagnostics)
        return model
