"""
Configuration loader - YAML files or the [tool.gounused] table of pyproject.toml
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

try:  # py3.11+
    import tomllib as tomli
except ImportError:
    import tomli

from .checker import DEFAULT_TEST_ENTRY_PREFIXES, DEFAULT_TEST_FILE_SUFFIX, CheckMode
from .exceptions import ConfigError
from .provider import DEFAULT_FRONTEND_COMMAND

logger = logging.getLogger(__name__)

CONFIG_CANDIDATES = [
    "gounused.yaml",
    "gounused.yml",
    ".gounused.yaml",
    ".gounused.yml",
    "pyproject.toml",  # [tool.gounused]
]


@dataclass
class FrontendConfig:
    """How to run the external Go front-end"""
    command: List[str] = field(default_factory=lambda: list(DEFAULT_FRONTEND_COMMAND))
    go: str = "go"
    timeout: Optional[float] = None


@dataclass
class Config:
    checks: List[str] = field(
        default_factory=lambda: ["constants", "fields", "functions", "types", "variables"]
    )
    verbose: bool = False
    test_file_suffix: str = DEFAULT_TEST_FILE_SUFFIX
    test_entry_prefixes: List[str] = field(default_factory=lambda: list(DEFAULT_TEST_ENTRY_PREFIXES))
    # optional JSON dump; when set the front-end is not run
    model: Optional[str] = None
    frontend: FrontendConfig = field(default_factory=FrontendConfig)

    @property
    def mode(self) -> CheckMode:
        return CheckMode.parse(self.checks)


def load_config(config_path: Optional[Path] = None, cwd: Optional[Path] = None) -> Config:
    """
    Load configuration.

    Args:
        config_path: explicit file; when None the working directory is searched
        cwd: directory to search instead of the process working directory

    Returns:
        Config: loaded configuration, or defaults when no file exists
    """
    if config_path:
        return _load_config_file(Path(config_path))

    found = find_config_file(cwd)
    if found:
        logger.info("using config file %s", found)
        return _load_config_file(found)
    return Config()


def find_config_file(cwd: Optional[Path] = None) -> Optional[Path]:
    """Return the first config candidate that exists (and applies) in ``cwd``."""
    base = Path(cwd) if cwd is not None else Path.cwd()
    for name in CONFIG_CANDIDATES:
        candidate = base / name
        if not candidate.exists():
            continue
        if candidate.name == "pyproject.toml":
            if _has_gounused_config(candidate):
                return candidate
            continue
        return candidate
    return None


def _load_config_file(config_path: Path) -> Config:
    if not config_path.exists():
        raise ConfigError(f"config file does not exist: {config_path}")

    suffix = config_path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return _load_yaml_config(config_path)
    if suffix == ".toml":
        return _load_toml_config(config_path)
    raise ConfigError(f"unsupported config file format: {suffix}")


def _load_yaml_config(config_path: Path) -> Config:
    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {config_path}: {e}") from e
    if not data:
        return Config()
    return _parse_config_data(data, config_path)


def _load_toml_config(config_path: Path) -> Config:
    try:
        with config_path.open("rb") as f:
            data = tomli.load(f)
    except tomli.TOMLDecodeError as e:
        raise ConfigError(f"invalid TOML in {config_path}: {e}") from e
    if "tool" in data and "gounused" in data["tool"]:
        data = data["tool"]["gounused"]
    return _parse_config_data(data, config_path)


def _has_gounused_config(pyproject_path: Path) -> bool:
    try:
        with pyproject_path.open("rb") as f:
            data = tomli.load(f)
    except (OSError, tomli.TOMLDecodeError):
        return False
    return "gounused" in data.get("tool", {})


def _str_list(value: Any, key: str, source: Path) -> List[str]:
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return list(value)
    raise ConfigError(f"{source}: '{key}' must be a list of strings")


def _parse_config_data(data: Dict[str, Any], source: Path) -> Config:
    if not isinstance(data, dict):
        raise ConfigError(f"{source}: top level must be a mapping")
    config = Config()

    if "checks" in data:
        config.checks = _str_list(data["checks"], "checks", source)
        try:
            CheckMode.parse(config.checks)
        except ValueError as e:
            raise ConfigError(f"{source}: {e}") from e
    if "verbose" in data:
        if not isinstance(data["verbose"], bool):
            raise ConfigError(f"{source}: 'verbose' must be true or false")
        config.verbose = data["verbose"]
    if "test_file_suffix" in data:
        config.test_file_suffix = str(data["test_file_suffix"])
    if "test_entry_prefixes" in data:
        config.test_entry_prefixes = _str_list(data["test_entry_prefixes"], "test_entry_prefixes", source)
    if data.get("model") is not None:
        model = Path(str(data["model"]))
        if not model.is_absolute():
            model = source.parent / model
        config.model = str(model)

    fe = data.get("frontend")
    if fe is not None:
        if not isinstance(fe, dict):
            raise ConfigError(f"{source}: 'frontend' must be a mapping")
        if "command" in fe:
            config.frontend.command = _str_list(fe["command"], "frontend.command", source)
            if not config.frontend.command:
                raise ConfigError(f"{source}: 'frontend.command' must not be empty")
        if "go" in fe:
            config.frontend.go = str(fe["go"])
        if fe.get("timeout") is not None:
            try:
                config.frontend.timeout = float(fe["timeout"])
            except (TypeError, ValueError):
                raise ConfigError(f"{source}: 'frontend.timeout' must be a number") from None

    return config


def create_example_config() -> str:
    return """# gounused configuration
# kinds of symbols to report
checks:
  - constants
  - fields
  - functions
  - types
  - variables

# show front-end diagnostics (type errors are otherwise ignored)
verbose: false

# exported symbols declared in test files are reported unless their name
# starts with one of these prefixes
test_file_suffix: "_test.go"
test_entry_prefixes: [Test, Benchmark, Example, Fuzz]

# analyze a pre-built program model instead of running the front-end
# model: "build/program.json"

frontend:
  command: ["gounused-dump"]
  go: "go"
  # timeout: 300
"""


def save_example_config(output_path: Optional[Path] = None) -> Path:
    if output_path is None:
        output_path = Path("gounused.yaml")
    output_path.write_text(create_example_config(), encoding="utf-8")
    return output_path
