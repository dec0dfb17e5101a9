"""Workspace-wide git operations: back to main, check out a tag, tag a release.

Every operation runs in two phases. All repositories are validated first and
nothing is changed unless every one passes; the change itself then runs per
repository, records failures and carries on with the rest.
"""

from __future__ import annotations

import logging
import re
import subprocess  # nosec B404 - result type only
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List

from .console import Console
from .git import GitRunner, run_git
from .manifest import WorkspaceManifest
from .repo_status import RepoState, RepoStatusChecker, locate_repository

logger = logging.getLogger("budgetops.release")

VERSION_RE = re.compile(r"^v[0-9]+\.[0-9]+\.[0-9]+$")

DONE = "done"
FAILED = "failed"
PUSH_FAILED = "push-failed"

Confirm = Callable[[str], bool]


def _decline(_question: str) -> bool:
    return False


@dataclass
class BatchOutcome:
    name: str
    status: str
    message: str = ""


@dataclass
class BatchReport:
    action: str
    target: str
    validation: List[RepoState] = field(default_factory=list)
    outcomes: List[BatchOutcome] = field(default_factory=list)
    aborted: bool = False

    @property
    def validated(self) -> bool:
        return all(state.ok for state in self.validation)

    @property
    def ok(self) -> bool:
        # A declined confirmation is not a failure.
        if not self.validated:
            return False
        return self.aborted or all(o.status == DONE for o in self.outcomes)

    def names(self, status: str) -> List[str]:
        return [o.name for o in self.outcomes if o.status == status]

    def as_dict(self) -> Dict[str, object]:
        return {
            "action": self.action,
            "target": self.target,
            "ok": self.ok,
            "validated": self.validated,
            "aborted": self.aborted,
            "validation": [state.as_dict() for state in self.validation],
            "repositories": [
                {"name": o.name, "status": o.status, "message": o.message}
                for o in self.outcomes
            ],
        }


def _detail(result: subprocess.CompletedProcess[str]) -> str:
    text = (result.stderr or result.stdout or "").strip()
    return text.splitlines()[-1] if text else f"exit {result.returncode}"


class WorkspaceRelease:
    def __init__(
        self,
        manifest: WorkspaceManifest,
        parent_dir: Path,
        *,
        runner: GitRunner | None = None,
        console: Console | None = None,
        confirm: Confirm | None = None,
        branch: str = "main",
    ) -> None:
        self.manifest = manifest
        self.parent_dir = Path(parent_dir)
        self.runner = runner or run_git
        self.console = console or Console()
        self.confirm = confirm or _decline
        self.branch = branch

    @property
    def repositories(self) -> List[str]:
        return list(self.manifest.repositories)

    def _git(self, name: str, *args: str) -> subprocess.CompletedProcess[str]:
        result = self.runner(list(args), self.parent_dir / name)
        if result.returncode != 0:
            logger.debug("git %s in %s exited %s", " ".join(args), name, result.returncode)
        return result

    def _checker(self, *, fetch_tags: bool = False) -> RepoStatusChecker:
        return RepoStatusChecker(
            self.manifest,
            self.parent_dir,
            runner=self.runner,
            console=self.console,
            branch=self.branch,
            fetch_tags=fetch_tags,
        )

    def _tag_exists(self, name: str, tag: str) -> bool:
        result = self._git(name, "rev-parse", "--verify", "--quiet", f"refs/tags/{tag}")
        return result.returncode == 0

    def _describe_head(self, name: str) -> str:
        result = self._git(name, "rev-parse", "--abbrev-ref", "HEAD")
        branch = result.stdout.strip() if result.returncode == 0 else ""
        if branch and branch != "HEAD":
            return f"branch {branch}"
        described = self._git(name, "describe", "--tags", "--exact-match")
        tag = described.stdout.strip() if described.returncode == 0 else ""
        return f"tag {tag or 'unknown'}"

    def _report_state(self, state: RepoState, ready: str) -> None:
        for warning in state.warnings:
            self.console.warning(warning)
        for error in state.errors:
            self.console.error(error)
        if state.ok:
            self.console.success(ready)

    def _finish_validation(self, report: BatchReport, failure: str) -> bool:
        self.console.line()
        if not report.validated:
            self.console.error(failure)
            return False
        self.console.success("All repositories validated")
        self.console.line()
        return True

    def _ask(self, report: BatchReport, heading: str, question: str) -> bool:
        self.console.info(heading)
        for name in self.repositories:
            self.console.line(f"  - {name}")
        self.console.line()
        if self.confirm(question):
            return True
        self.console.info("Aborted")
        report.aborted = True
        return False

    def _summary(self, report: BatchReport, done_label: str, success: str) -> None:
        self.console.line()
        self.console.info("=== Summary ===")
        done = report.names(DONE)
        if done:
            self.console.success(f"{done_label} {len(done)} repositories:")
            for name in done:
                self.console.line(f"  ✓ {name}")
        unpushed = report.names(PUSH_FAILED)
        if unpushed:
            self.console.warning(f"Tagged but failed to push {len(unpushed)} repositories:")
            for name in unpushed:
                self.console.line(f"  ! {name} (tag exists locally)")
        failed = [o for o in report.outcomes if o.status == FAILED]
        if failed:
            self.console.error(f"Failed in {len(failed)} repositories:")
            for outcome in failed:
                self.console.line(f"  ✗ {outcome.name} ({outcome.message})")
        self.console.line()
        if report.ok:
            self.console.success(success)
        else:
            self.console.warning(
                "Some repositories were not fully processed. "
                "Please review the summary above."
            )

    def checkout_main(self, pull: bool = False) -> BatchReport:
        """Switch every repository back to the main branch, optionally pulling."""
        branch = self.branch
        report = BatchReport("checkout-main", branch)
        self.console.info(f"Preparing to checkout {branch} branch in all repositories")
        if pull:
            self.console.info("Will also pull latest changes from remote")
        self.console.line()

        self.console.info("Phase 1: Validating repositories...")
        for name in self.repositories:
            state = locate_repository(self.parent_dir, name)
            report.validation.append(state)
            if not state.ok:
                self._report_state(state, "")
                continue
            self.console.info(f"  {name}: Currently on {self._describe_head(name)}")
        if not self._finish_validation(
            report, "Repository validation failed. Please fix the issues above."
        ):
            return report
        if not self._ask(
            report,
            f"The following repositories will be switched to {branch} branch:",
            "Continue?",
        ):
            return report

        self.console.info(f"Phase 2: Checking out {branch} branch...")
        for name in self.repositories:
            if self._git(name, "diff-index", "--quiet", "HEAD").returncode != 0:
                self.console.warning(f"⚠ {name} has uncommitted changes, skipping")
                report.outcomes.append(BatchOutcome(name, FAILED, "uncommitted changes"))
                continue
            result = self._git(name, "checkout", branch)
            if result.returncode != 0:
                self.console.error(f"✗ Failed to checkout {branch} in {name}")
                report.outcomes.append(BatchOutcome(name, FAILED, _detail(result)))
                continue
            self.console.success(f"✓ Checked out {branch} in {name}")
            outcome = BatchOutcome(name, DONE)
            if pull:
                if self._git(name, "pull", "origin", branch).returncode == 0:
                    self.console.success(f"  ↓ Pulled latest changes for {name}")
                else:
                    self.console.warning(f"  ⚠ Could not pull changes for {name}")
                    outcome.message = "pull failed"
            report.outcomes.append(outcome)

        self._summary(
            report,
            f"Successfully checked out {branch} in",
            f"All repositories successfully switched to {branch} branch!",
        )
        return report

    def checkout_tag(self, tag: str) -> BatchReport:
        """Check out ``tag`` everywhere, once every repository is clean and in sync."""
        report = BatchReport("checkout-tag", tag)
        self.console.info(f"Checking out tag '{tag}' across all repositories")
        self.console.line()

        self.console.info("Phase 1: Validating repository states...")
        checker = self._checker(fetch_tags=True)
        for name in self.repositories:
            state = checker.check_repository(name)
            if state.ok and not self._tag_exists(name, tag):
                state.errors.append(f"Tag '{tag}' does not exist in {name}")
            report.validation.append(state)
            self._report_state(state, f"{name}: Ready to checkout tag")
        if not self._finish_validation(
            report,
            "Validation failed. Please fix the issues above before checking out tags.",
        ):
            return report

        self.console.info(f"Phase 2: Checking out tag '{tag}'...")
        for name in self.repositories:
            result = self._git(name, "checkout", tag)
            if result.returncode == 0:
                self.console.success(f"{name}: Successfully checked out tag '{tag}'")
                report.outcomes.append(BatchOutcome(name, DONE))
            else:
                self.console.error(f"{name}: Failed to checkout tag '{tag}'")
                report.outcomes.append(BatchOutcome(name, FAILED, _detail(result)))

        self._summary(
            report,
            f"Checked out '{tag}' in",
            f"All repositories successfully checked out to tag '{tag}'",
        )
        return report

    def tag_release(self, version: str) -> BatchReport:
        """Tag every repository with ``version`` and push the tags."""
        report = BatchReport("tag-release", version)
        if not VERSION_RE.match(version):
            self.console.warning("Version doesn't match standard format (vX.Y.Z)")
            if not self.confirm("Continue anyway?"):
                self.console.info("Aborted")
                report.aborted = True
                return report

        self.console.info(f"Preparing to tag all repositories with version: {version}")
        self.console.line()
        self.console.info("Phase 1: Validating repositories...")
        checker = self._checker()
        for name in self.repositories:
            state = checker.check_repository(name)
            if state.ok and self._tag_exists(name, version):
                state.errors.append(f"Tag {version} already exists in {name}")
            report.validation.append(state)
            self._report_state(state, f"✓ {name}")
        if not self._finish_validation(
            report, "Validation failed. Please fix the issues above before tagging."
        ):
            return report
        if not self._ask(
            report,
            f"The following repositories will be tagged with {version} and pushed:",
            "Continue with tagging and pushing?",
        ):
            return report

        self.console.info("Phase 2: Tagging repositories...")
        tagged: List[str] = []
        for name in self.repositories:
            result = self._git(name, "tag", "-a", version, "-m", f"Release {version}")
            if result.returncode == 0:
                self.console.success(f"✓ Tagged {name} with {version}")
                tagged.append(name)
            else:
                self.console.error(f"✗ Failed to tag {name}")
                report.outcomes.append(BatchOutcome(name, FAILED, _detail(result)))

        if tagged:
            self.console.line()
            self.console.info("Phase 3: Pushing tags to remote...")
        for name in tagged:
            result = self._git(name, "push", "origin", version)
            if result.returncode == 0:
                self.console.success(f"✓ Pushed tag from {name}")
                report.outcomes.append(BatchOutcome(name, DONE))
            else:
                self.console.error(f"✗ Failed to push tag from {name}")
                report.outcomes.append(BatchOutcome(name, PUSH_FAILED, _detail(result)))

        self._summary(
            report,
            "Successfully tagged and pushed",
            f"All repositories successfully tagged with {version} and pushed!",
        )
        return report
