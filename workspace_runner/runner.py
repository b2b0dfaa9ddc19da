"""Sequencing and status aggregation for one workspace run.

Order of events:
  1) discover packages (fatal on failure, raised as DiscoveryError)
  2) build the workspace once (fatal on failure, no tests run)
  3) fast tests for every package, continuing past failures
  4) extended mode only, and only if nothing has failed yet: full tests for
     every package in the same order, continuing past failures
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Sequence, Tuple

from . import steps
from .config import RunnerConfig
from .discovery import discover_packages

log = logging.getLogger(__name__)

FAST_MODE = "fast"
EXTENDED_MODE = "extended"


@dataclass(frozen=True)
class RunOutcome:
    """Aggregate status. Starts as success; any failed step flips it for good."""

    results: Tuple[steps.StepResult, ...] = ()
    failed: bool = False

    @property
    def passed(self) -> bool:
        return not self.failed

    def record(self, result: steps.StepResult) -> "RunOutcome":
        return RunOutcome(results=self.results + (result,), failed=self.failed or not result.passed)


@dataclass
class RunReport:
    mode: str
    packages: List[str]
    outcome: RunOutcome = field(default_factory=RunOutcome)
    build_failed: bool = False
    extended_skipped: bool = False

    def exit_code(self, failure_code: int = 1) -> int:
        return 0 if self.outcome.passed else failure_code


def select_mode(argument: str | None, extended_token: str) -> str:
    """Anything but the exact extended-mode token means fast mode."""
    return EXTENDED_MODE if argument == extended_token else FAST_MODE


def run_step_logged(step: steps.Step, execute: steps.Executor) -> steps.StepResult:
    log.info("Running %s: %s", step.name, " ".join(step.command))
    result = execute(step)
    if not result.passed:
        log.warning("%s failed with exit status %d", step.name, result.returncode)
    return result


def run_test_pass(
    config: RunnerConfig,
    root: Path,
    packages: Iterable[str],
    phase: str,
    outcome: RunOutcome,
    execute: steps.Executor = steps.run_step,
) -> RunOutcome:
    """Test every package in order; failures are recorded, never short-circuit."""
    for package in packages:
        step = steps.package_test_step(config, root, package, phase)
        outcome = outcome.record(run_step_logged(step, execute))
    return outcome


def run_workspace(
    config: RunnerConfig,
    root: Path,
    mode: str,
    discover: Callable[[Path], Sequence[str]] | None = None,
    execute: steps.Executor = steps.run_step,
) -> RunReport:
    if discover is None:
        packages = discover_packages(root, config.package_prefix, config.umbrella_package)
    else:
        packages = list(discover(root))
    log.info("Packages in test order: %s", ", ".join(packages))

    report = RunReport(mode=mode, packages=list(packages))

    build = run_step_logged(steps.build_step(config, root), execute)
    report.outcome = report.outcome.record(build)
    if not build.passed:
        log.error("Workspace build failed; no tests will run.")
        report.build_failed = True
        return report

    report.outcome = run_test_pass(config, root, packages, steps.FAST, report.outcome, execute)

    if mode == EXTENDED_MODE:
        if report.outcome.failed:
            log.warning("Fast tests failed; skipping the full test pass.")
            report.extended_skipped = True
        else:
            report.outcome = run_test_pass(
                config, root, packages, steps.FULL, report.outcome, execute
            )

    return report
