"""Shared fixtures for the budgetops tests."""

from __future__ import annotations

import io
import subprocess
from pathlib import Path
from typing import Callable, Dict, List, Sequence, Tuple

import pytest

from budgetops.core import Console, WorkspaceManifest
from budgetops.core.manifest import parse_manifest

REPOS = [
    "orchestration",
    "service-common",
    "transaction-service",
    "currency-service",
]


def manifest_payload(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "version": "1.0",
        "self_name": "orchestration",
        "github_org": "budgetanalyzer",
        "url_org": "budget-analyzer",
        "repositories": list(REPOS),
        "service_ports": {"transaction-service": 8082, "currency-service": 8084},
        "debug_ports": {"transaction-service": 5006, "currency-service": 5007},
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_manifest() -> Callable[..., WorkspaceManifest]:
    def _make(**overrides: object) -> WorkspaceManifest:
        return parse_manifest(manifest_payload(**overrides))

    return _make


@pytest.fixture
def manifest(make_manifest: Callable[..., WorkspaceManifest]) -> WorkspaceManifest:
    return make_manifest()


@pytest.fixture
def console() -> Console:
    return Console(stream=io.StringIO(), color=False)


class FakeGit:
    """Stand-in for ``run_git`` that records calls and replays canned results."""

    def __init__(self) -> None:
        self.calls: List[Tuple[Tuple[str, ...], Path]] = []
        self.responses: Dict[str, Tuple[int, str]] = {}
        self.per_repo: Dict[Tuple[str, str], Tuple[int, str]] = {}

    def set(self, command: str, returncode: int = 0, stdout: str = "", repo: str | None = None) -> None:
        if repo is None:
            self.responses[command] = (returncode, stdout)
        else:
            self.per_repo[(repo, command)] = (returncode, stdout)

    def __call__(self, args: Sequence[str], cwd: Path) -> subprocess.CompletedProcess[str]:
        self.calls.append((tuple(args), cwd))
        command = args[0]
        key = (Path(cwd).name, command)
        if command == "clone":
            key = (Path(args[1]).name.removesuffix(".git"), command)
        returncode, stdout = self.per_repo.get(key, self.responses.get(command, (0, "")))
        stderr = "" if returncode == 0 else f"fatal: {command} failed"
        return subprocess.CompletedProcess(list(args), returncode, stdout, stderr)

    def commands(self, name: str) -> List[Tuple[str, ...]]:
        return [args for args, _ in self.calls if args[0] == name]


@pytest.fixture
def fake_git() -> FakeGit:
    return FakeGit()


@pytest.fixture
def checkout(tmp_path: Path) -> Path:
    """Workspace where every manifest repository is a git checkout."""
    for name in REPOS:
        (tmp_path / name / ".git").mkdir(parents=True)
    return tmp_path
