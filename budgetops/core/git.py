"""Thin git subprocess helpers."""

from __future__ import annotations

import logging
import shutil
import subprocess  # nosec B404 - git commands only
from pathlib import Path
from typing import Callable, List, Sequence

logger = logging.getLogger("budgetops.git")

GitRunner = Callable[[Sequence[str], Path], "subprocess.CompletedProcess[str]"]


def _resolve_command(cmd: Sequence[str]) -> List[str]:
    if not cmd:
        raise ValueError("Command must include at least one argument")
    executable = shutil.which(cmd[0])
    if executable:
        return [executable, *cmd[1:]]
    return list(cmd)


def run_process(cmd: Sequence[str], *, cwd: Path) -> subprocess.CompletedProcess[str]:
    resolved = _resolve_command(cmd)
    logger.debug("Running %s (cwd=%s)", " ".join(resolved), cwd)
    try:
        return subprocess.run(  # nosec B603 - command built from fixed argv
            resolved,
            cwd=cwd,
            text=True,
            capture_output=True,
            check=False,
        )
    except FileNotFoundError as exc:
        logger.debug("Executable missing for %s: %s", cmd[0], exc)
        return subprocess.CompletedProcess(list(cmd), 127, "", str(exc))


def run_git(args: Sequence[str], cwd: Path) -> subprocess.CompletedProcess[str]:
    return run_process(["git", *args], cwd=cwd)
