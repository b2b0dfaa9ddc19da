"""Build and test steps, each one a blocking child process."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

from .config import PACKAGE_PLACEHOLDER, RunnerConfig

log = logging.getLogger(__name__)

BUILD = "build"
FAST = "fast"
FULL = "full"

# Return code reported when a command could not be started at all.
NOT_STARTED = 127


@dataclass
class StepResult:
    name: str
    phase: str
    command: List[str]
    returncode: int
    package: Optional[str] = None
    details: List[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.returncode == 0


@dataclass
class Step:
    """A command to run, not yet executed."""

    name: str
    phase: str
    command: List[str]
    cwd: Path
    env: Dict[str, str] = field(default_factory=dict)
    package: Optional[str] = None


# Runs a Step to completion and reports how it went.
Executor = Callable[[Step], StepResult]


def run_step(step: Step) -> StepResult:
    """Run ``step`` in a child process; output passes straight through."""
    env = os.environ.copy()
    env.update(step.env)
    details: List[str] = []
    try:
        proc = subprocess.run(step.command, cwd=str(step.cwd), env=env, check=False)
        returncode = proc.returncode
    except OSError as exc:
        log.error("Could not start %s: %s", " ".join(step.command), exc)
        returncode = NOT_STARTED
        details.append(str(exc))
    return StepResult(
        name=step.name,
        phase=step.phase,
        command=list(step.command),
        returncode=returncode,
        package=step.package,
        details=details,
    )


def _expand(template: Sequence[str], package: str) -> List[str]:
    return [part.replace(PACKAGE_PLACEHOLDER, package) for part in template]


def build_step(config: RunnerConfig, root: Path) -> Step:
    return Step(name="workspace-build", phase=BUILD, command=list(config.build_command), cwd=root)


def package_test_step(config: RunnerConfig, root: Path, package: str, phase: str) -> Step:
    if phase == FAST:
        template = config.fast_test_command
    elif phase == FULL:
        template = config.full_test_command
    else:
        raise ValueError(f"Unknown test phase: {phase!r}")
    return Step(
        name=f"{phase}-test:{package}",
        phase=phase,
        command=_expand(template, package),
        cwd=root,
        env=dict(config.test_env),
        package=package,
    )
