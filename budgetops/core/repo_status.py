"""Check that every sibling repository is clean, on main and in sync."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List

from .console import Console
from .git import GitRunner, run_git
from .manifest import WorkspaceManifest


def parse_status(output: str) -> Dict[str, object]:
    """Parse ``git status --porcelain=2 --branch`` output."""
    tracked: List[str] = []
    untracked: List[str] = []
    ahead = behind = 0
    branch = "unknown"
    upstream = None
    for line in output.splitlines():
        if line.startswith("# branch.ab"):
            try:
                _, _, payload = line.partition("ab ")
                ahead_token, behind_token = payload.split()
                ahead = abs(int(ahead_token))
                behind = abs(int(behind_token))
            except ValueError:
                continue
        elif line.startswith("# branch.head"):
            branch = line.split()[-1]
        elif line.startswith("# branch.upstream"):
            upstream = line.split()[-1]
        elif line.startswith("? "):
            untracked.append(line)
        elif line.startswith("! "):
            continue
        elif line and not line.startswith("#"):
            tracked.append(line)
    return {
        "tracked": tracked,
        "untracked": untracked,
        "ahead": ahead,
        "behind": behind,
        "branch": branch,
        "upstream": upstream,
    }


@dataclass
class RepoState:
    name: str
    path: Path
    branch: str | None = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def as_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "path": str(self.path),
            "branch": self.branch,
            "ok": self.ok,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


def locate_repository(parent_dir: Path, name: str) -> RepoState:
    """Existence checks shared by every multi-repository command."""
    path = Path(parent_dir) / name
    state = RepoState(name, path)
    if not path.is_dir():
        state.errors.append(f"Repository not found: {path}")
    elif not (path / ".git").exists():
        state.errors.append(f"Not a git repository: {path}")
    return state


@dataclass
class StatusReport:
    repositories: List[RepoState] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(state.ok for state in self.repositories)

    def as_dict(self) -> Dict[str, object]:
        return {
            "ok": self.ok,
            "repositories": [state.as_dict() for state in self.repositories],
        }


class RepoStatusChecker:
    def __init__(
        self,
        manifest: WorkspaceManifest,
        parent_dir: Path,
        *,
        runner: GitRunner | None = None,
        console: Console | None = None,
        branch: str = "main",
        fetch: bool = True,
        fetch_tags: bool = False,
    ) -> None:
        self.manifest = manifest
        self.parent_dir = Path(parent_dir)
        self.runner = runner or run_git
        self.console = console or Console()
        self.branch = branch
        self.fetch = fetch
        self.fetch_tags = fetch_tags

    def check(self) -> StatusReport:
        report = StatusReport()
        self.console.info("Validating repositories...")
        for name in self.manifest.repositories:
            state = self.check_repository(name)
            report.repositories.append(state)
            for warning in state.warnings:
                self.console.warning(warning)
            for error in state.errors:
                self.console.error(error)
            if state.ok:
                self.console.success(f"✓ {name}")
        self.console.line()
        if report.ok:
            self.console.success("All repositories are valid and up to date!")
        else:
            self.console.error("Validation failed. Please fix the issues above.")
        return report

    def _status(self, path: Path) -> Dict[str, object] | None:
        result = self.runner(["status", "--porcelain=2", "--branch"], path)
        if result.returncode != 0:
            return None
        return parse_status(result.stdout)

    def check_repository(self, name: str) -> RepoState:
        state = locate_repository(self.parent_dir, name)
        if not state.ok:
            return state
        path = state.path

        status = self._status(path)
        if status is None:
            state.errors.append(f"Unable to read git status for {name}")
            return state
        state.branch = str(status["branch"])
        if status["tracked"]:
            state.errors.append(f"Uncommitted changes in {name}")
            return state
        if status["untracked"]:
            state.warnings.append(f"Untracked files in {name}")
        if state.branch != self.branch:
            state.errors.append(
                f"Not on {self.branch} branch in {name} (currently on: {state.branch})"
            )
            return state

        if self.fetch:
            self.console.info(f"Fetching latest from remote for {name}...")
            args = ["fetch", "origin", self.branch, "--quiet"]
            if self.fetch_tags:
                args.append("--tags")
            fetched = self.runner(args, path)
            if fetched.returncode != 0:
                state.errors.append(f"Failed to fetch from remote for {name}")
                return state
            status = self._status(path) or status

        if not status["upstream"]:
            state.errors.append(f"{name} has no upstream branch configured")
        elif status["ahead"] and status["behind"]:
            state.errors.append(
                f"{name} has diverged from remote. Please sync before tagging."
            )
        elif status["behind"]:
            state.errors.append(f"{name} is behind remote. Please pull latest changes.")
        elif status["ahead"]:
            state.errors.append(
                f"{name} has unpushed commits. Please push before tagging."
            )
        return state
