from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, Optional

from . import config as config_mod
from .discovery import DiscoveryError, discover_packages
from .runner import run_workspace, select_mode

log = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

# Options that consume the following token as their value.
_VALUE_OPTIONS = ("--root", "--config", "--log-level")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Build the workspace once, then run each package's tests in order.",
        allow_abbrev=False,
    )
    parser.add_argument(
        "mode",
        nargs="?",
        default=None,
        help="Pass the extended-mode token (default: 'full') to also run the full test suites.",
    )
    parser.add_argument(
        "--root",
        default=None,
        help="Workspace root (falls back to WORKSPACE_RUNNER_ROOT env or the current directory).",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="YAML config file (defaults to <root>/workspace_runner.yaml when present).",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=LOG_LEVELS,
        help="Logging level (default: WORKSPACE_RUNNER_LOG_LEVEL or INFO).",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="Print the package test order and exit without building.",
    )
    return parser


def _configure_logging(level: Optional[str]) -> None:
    env_level = os.getenv(config_mod.LOG_LEVEL_ENV, "")
    rejected = None
    if level is None:
        level = env_level.upper() or "INFO"
        if level not in LOG_LEVELS:
            rejected, level = env_level, "INFO"
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")
    logging.getLogger().setLevel(level)
    if rejected is not None:
        log.warning(
            "Ignoring %s=%r; expected one of %s.",
            config_mod.LOG_LEVEL_ENV,
            rejected,
            ", ".join(LOG_LEVELS),
        )


def first_argument(argv: List[str]) -> Optional[str]:
    """The first token that is not one of this command's own options."""
    tokens = iter(argv)
    for token in tokens:
        if token in _VALUE_OPTIONS:
            next(tokens, None)
        elif token == "--list" or token.startswith(tuple(f"{opt}=" for opt in _VALUE_OPTIONS)):
            continue
        else:
            return token
    return None


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = _build_parser()
    # Unrecognised arguments select nothing; they must not abort the run.
    # The mode comes from the first non-option token, not from argparse.
    args, _unknown = parser.parse_known_args(argv)
    _configure_logging(args.log_level)

    root = config_mod.resolve_root(args.root)
    try:
        cfg = config_mod.load_config(root, args.config)
    except config_mod.ConfigError as exc:
        log.error("%s", exc)
        return config_mod.RunnerConfig().failure_exit_code

    try:
        if args.list:
            for name in discover_packages(root, cfg.package_prefix, cfg.umbrella_package):
                print(name)
            return 0
        mode = select_mode(first_argument(argv), cfg.extended_mode_token)
        report = run_workspace(cfg, root, mode)
    except DiscoveryError as exc:
        log.error("%s", exc)
        return cfg.failure_exit_code

    return report.exit_code(cfg.failure_exit_code)


if __name__ == "__main__":
    raise SystemExit(main())
