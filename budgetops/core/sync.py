"""Clone missing sibling repositories next to the orchestration repo."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

from .console import Console
from .git import GitRunner, run_git
from .manifest import WorkspaceManifest

logger = logging.getLogger("budgetops.sync")

CLONED = "cloned"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class SyncOutcome:
    name: str
    status: str
    message: str = ""


@dataclass
class SyncReport:
    parent_dir: Path
    outcomes: List[SyncOutcome] = field(default_factory=list)

    def _count(self, status: str) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def cloned(self) -> int:
        return self._count(CLONED)

    @property
    def skipped(self) -> int:
        return self._count(SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(FAILED)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def summary(self) -> str:
        return f"{self.cloned} cloned, {self.skipped} skipped, {self.failed} failed"

    def as_dict(self) -> Dict[str, object]:
        return {
            "parent_dir": str(self.parent_dir),
            "cloned": self.cloned,
            "skipped": self.skipped,
            "failed": self.failed,
            "ok": self.ok,
            "repositories": [
                {"name": o.name, "status": o.status, "message": o.message}
                for o in self.outcomes
            ],
        }


class RepoSync:
    """Best-effort, idempotent clone of every manifest repository."""

    def __init__(
        self,
        manifest: WorkspaceManifest,
        parent_dir: Path,
        *,
        runner: GitRunner | None = None,
        console: Console | None = None,
    ) -> None:
        self.manifest = manifest
        self.parent_dir = Path(parent_dir)
        self.runner = runner or run_git
        self.console = console or Console()

    def run(self) -> SyncReport:
        report = SyncReport(parent_dir=self.parent_dir)
        self.console.info("Cloning Budget Analyzer repositories...")
        self.console.info(f"Target directory: {self.parent_dir}")
        self.console.line()

        for name in self.manifest.sibling_repositories():
            report.outcomes.append(self._sync_one(name))

        self.console.line()
        self.console.info(f"Summary: {report.summary()}")
        if not report.ok:
            self.console.error(
                "Some repositories failed to clone. "
                "Check your network connection and try again."
            )
        else:
            self.console.success("All repositories ready!")
        return report

    def _sync_one(self, name: str) -> SyncOutcome:
        target = self.parent_dir / name
        if target.is_dir():
            self.console.warning(f"{name} already exists, skipping")
            return SyncOutcome(name, SKIPPED, "already exists")

        url = self.manifest.clone_url(name)
        self.console.info(f"Cloning {name}...")
        result = self.runner(["clone", url], self.parent_dir)
        if result.returncode == 0:
            self.console.success(f"Cloned {name}")
            return SyncOutcome(name, CLONED, url)

        detail = (result.stderr or result.stdout or "").strip()
        logger.debug("git clone %s exited %s: %s", url, result.returncode, detail)
        self.console.error(f"Failed to clone {name}")
        if detail:
            self.console.line(f"    {detail.splitlines()[-1]}")
        return SyncOutcome(name, FAILED, detail or f"exit {result.returncode}")
