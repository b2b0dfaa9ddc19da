"""Package discovery: which sub-projects get tested, and in what order."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, List

log = logging.getLogger(__name__)

# Maps a workspace root to the names of its direct child directories.
DirectoryLister = Callable[[Path], List[str]]


class DiscoveryError(RuntimeError):
    """Raised when the workspace root cannot be listed."""


def list_child_directories(root: Path) -> List[str]:
    try:
        return [entry.name for entry in root.iterdir() if entry.is_dir()]
    except OSError as exc:
        raise DiscoveryError(f"Cannot read workspace root {root}: {exc}") from exc


def normalize_name(raw: str) -> str:
    """Strip relative-path markers such as a leading ``./`` and trailing separators."""
    name = raw
    separators = {"/", os.sep}
    if os.altsep:
        separators.add(os.altsep)
    for sep in separators:
        marker = "." + sep
        while name.startswith(marker):
            name = name[len(marker):]
    return name.rstrip("".join(separators))


def discover_packages(
    root: Path,
    prefix: str,
    umbrella: str,
    lister: DirectoryLister = list_child_directories,
) -> List[str]:
    """Return the test order: prefix-matching directories sorted, then ``umbrella``.

    The umbrella name is always appended, even if it already matched the
    prefix, so it can appear twice.
    """
    names = sorted(
        name for name in (normalize_name(raw) for raw in lister(root)) if name.startswith(prefix)
    )
    if umbrella in names:
        log.warning(
            "Umbrella package %r also matches prefix %r; it will be tested twice.",
            umbrella,
            prefix,
        )
    names.append(umbrella)
    return names
