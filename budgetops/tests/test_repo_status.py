"""Tests for the repository state checker."""

from __future__ import annotations

from pathlib import Path

from budgetops.core.repo_status import RepoStatusChecker, parse_status

CLEAN_MAIN = """# branch.oid 1234abcd
# branch.head main
# branch.upstream origin/main
# branch.ab +0 -0
"""


def _status(branch: str = "main", ahead: int = 0, behind: int = 0, extra: str = "") -> str:
    return (
        "# branch.oid 1234abcd\n"
        f"# branch.head {branch}\n"
        f"# branch.upstream origin/{branch}\n"
        f"# branch.ab +{ahead} -{behind}\n" + extra
    )


def test_parse_status_splits_tracked_and_untracked() -> None:
    data = parse_status(
        _status(ahead=2, behind=1, extra="1 .M N... 100644 100644 100644 a b README.md\n? notes.txt\n")
    )

    assert data["branch"] == "main"
    assert data["upstream"] == "origin/main"
    assert (data["ahead"], data["behind"]) == (2, 1)
    assert len(data["tracked"]) == 1
    assert data["untracked"] == ["? notes.txt"]


def test_all_clean_repositories_pass(manifest, console, fake_git, checkout: Path) -> None:
    fake_git.set("status", stdout=CLEAN_MAIN)

    report = RepoStatusChecker(manifest, checkout, runner=fake_git, console=console).check()

    assert report.ok
    assert len(fake_git.commands("fetch")) == 4


def test_problems_are_classified_per_repository(
    manifest, console, fake_git, checkout: Path
) -> None:
    fake_git.set("status", stdout=CLEAN_MAIN)
    fake_git.set("status", stdout=_status(extra="? scratch.md\n"), repo="orchestration")
    fake_git.set(
        "status",
        stdout=_status(extra="1 .M N... 100644 100644 100644 a b pom.xml\n"),
        repo="service-common",
    )
    fake_git.set("status", stdout=_status(branch="feature/x"), repo="transaction-service")
    fake_git.set("status", stdout=_status(behind=3), repo="currency-service")

    report = RepoStatusChecker(manifest, checkout, runner=fake_git, console=console).check()

    states = {state.name: state for state in report.repositories}
    assert states["orchestration"].ok
    assert states["orchestration"].warnings == ["Untracked files in orchestration"]
    assert "Uncommitted changes" in states["service-common"].errors[0]
    assert "currently on: feature/x" in states["transaction-service"].errors[0]
    assert "behind remote" in states["currency-service"].errors[0]
    assert not report.ok


def test_missing_and_non_git_directories(manifest, console, fake_git, tmp_path: Path) -> None:
    (tmp_path / "orchestration").mkdir()
    fake_git.set("status", stdout=CLEAN_MAIN)

    report = RepoStatusChecker(
        manifest, tmp_path, runner=fake_git, console=console, fetch=False
    ).check()

    errors = [state.errors[0] for state in report.repositories]
    assert errors[0].startswith("Not a git repository")
    assert all(e.startswith("Repository not found") for e in errors[1:])
    assert fake_git.calls == []


def test_fetch_failure_and_divergence(manifest, console, fake_git, checkout: Path) -> None:
    fake_git.set("status", stdout=_status(ahead=1, behind=1))
    fake_git.set("fetch", returncode=1, repo="service-common")

    report = RepoStatusChecker(manifest, checkout, runner=fake_git, console=console).check()

    states = {state.name: state for state in report.repositories}
    assert states["service-common"].errors == ["Failed to fetch from remote for service-common"]
    assert "diverged" in states["orchestration"].errors[0]


def test_no_fetch_skips_remote_calls(manifest, console, fake_git, checkout: Path) -> None:
    fake_git.set("status", stdout=_status(ahead=2))

    report = RepoStatusChecker(
        manifest, checkout, runner=fake_git, console=console, fetch=False
    ).check()

    assert fake_git.commands("fetch") == []
    assert "unpushed commits" in report.repositories[0].errors[0]


def test_fetch_can_include_tags(manifest, console, fake_git, checkout: Path) -> None:
    fake_git.set("status", stdout=CLEAN_MAIN)

    RepoStatusChecker(
        manifest, checkout, runner=fake_git, console=console, fetch_tags=True
    ).check()

    assert all(args[-1] == "--tags" for args in fake_git.commands("fetch"))
