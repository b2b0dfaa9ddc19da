"""Configuration for the workspace build-and-test runner."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


DEFAULT_CONFIG_NAME = "workspace_runner.yaml"

ROOT_ENV = "WORKSPACE_RUNNER_ROOT"
CONFIG_ENV = "WORKSPACE_RUNNER_CONFIG"
LOG_LEVEL_ENV = "WORKSPACE_RUNNER_LOG_LEVEL"

PACKAGE_PLACEHOLDER = "{package}"

_COMMAND_KEYS = ("build_command", "fast_test_command", "full_test_command")


class ConfigError(ValueError):
    """Raised when the runner configuration cannot be used."""


@dataclass
class RunnerConfig:
    """Every fixed value the run depends on.

    Test commands may contain ``{package}``; it is replaced with the package
    name for each invocation.
    """

    package_prefix: str = "ted_"
    umbrella_package: str = "ted"
    build_command: List[str] = field(default_factory=lambda: ["cargo", "build"])
    fast_test_command: List[str] = field(
        default_factory=lambda: ["cargo", "test", "-q", "-p", PACKAGE_PLACEHOLDER, "--lib"]
    )
    full_test_command: List[str] = field(
        default_factory=lambda: ["cargo", "test", "-q", "-p", PACKAGE_PLACEHOLDER]
    )
    test_env: Dict[str, str] = field(default_factory=lambda: {"RUST_BACKTRACE": "1"})
    extended_mode_token: str = "full"
    failure_exit_code: int = 1


def resolve_root(explicit: Optional[str]) -> Path:
    """
    Determine the workspace root in this priority:
    1) --root argument
    2) WORKSPACE_RUNNER_ROOT env var
    3) the current working directory
    """
    if explicit:
        return Path(explicit).resolve()
    env_root = os.getenv(ROOT_ENV)
    if env_root:
        return Path(env_root).resolve()
    return Path.cwd()


def _check_command(key: str, value: Any) -> List[str]:
    if (
        not isinstance(value, list)
        or not value
        or not all(isinstance(part, str) and part for part in value)
    ):
        raise ConfigError(f"'{key}' must be a non-empty list of strings, got {value!r}")
    return list(value)


def parse_config(data: Any) -> RunnerConfig:
    """Build a RunnerConfig from an already-parsed YAML document."""
    if data is None:
        return RunnerConfig()
    if not isinstance(data, dict):
        raise ConfigError("Runner configuration must be a mapping at the top level.")

    known = {f.name for f in fields(RunnerConfig)}
    unknown = sorted(str(key) for key in data if key not in known)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {unknown}")

    values: Dict[str, Any] = {}
    for key in _COMMAND_KEYS:
        if key in data:
            values[key] = _check_command(key, data[key])

    for key in ("package_prefix", "umbrella_package", "extended_mode_token"):
        if key in data:
            value = data[key]
            if not isinstance(value, str) or not value:
                raise ConfigError(f"'{key}' must be a non-empty string, got {value!r}")
            values[key] = value

    if "test_env" in data:
        env = data["test_env"]
        if not isinstance(env, dict):
            raise ConfigError("'test_env' must be a mapping of variable names to values.")
        for name, value in env.items():
            if isinstance(value, bool) or not isinstance(value, (str, int, float)):
                raise ConfigError(
                    f"test_env value for {name!r} must be a string or number, got {value!r}"
                )
        # YAML turns `1` into an int; the child environment needs strings.
        values["test_env"] = {str(k): str(v) for k, v in env.items()}

    if "failure_exit_code" in data:
        code = data["failure_exit_code"]
        if isinstance(code, bool) or not isinstance(code, int) or not 1 <= code <= 255:
            # Exit statuses are truncated to 8 bits; 256 would read as success.
            raise ConfigError(f"'failure_exit_code' must be between 1 and 255, got {code!r}")
        values["failure_exit_code"] = code

    return replace(RunnerConfig(), **values)


def load_config(root: Path, explicit: Optional[str] = None) -> RunnerConfig:
    """Load the runner config for ``root``.

    An explicitly named file (argument or WORKSPACE_RUNNER_CONFIG) must exist;
    the default ``workspace_runner.yaml`` under the root is optional.
    """
    requested = explicit or os.getenv(CONFIG_ENV)
    if requested:
        path = Path(requested)
        if not path.is_absolute():
            path = root / path
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
    else:
        path = root / DEFAULT_CONFIG_NAME
        if not path.is_file():
            return RunnerConfig()

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Could not parse {path}: {exc}") from exc
    return parse_config(data)
