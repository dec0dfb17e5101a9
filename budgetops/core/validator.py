"""Validate ``@`` references in markdown across the sibling repositories."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from .console import Console
from .manifest import WorkspaceManifest
from .references import (
    Reference,
    cross_repo_url_counts,
    extract_references,
    is_illustrative,
    is_placeholder,
    resolve_reference,
)

logger = logging.getLogger("budgetops.validator")

ERROR = "error"
WARNING = "warning"
INFO = "info"


@dataclass
class Issue:
    severity: str
    file: str
    message: str

    def as_dict(self) -> Dict[str, str]:
        return {"severity": self.severity, "file": self.file, "message": self.message}


@dataclass
class FileResult:
    path: str
    skipped: Optional[str] = None
    references: int = 0
    issues: List[Issue] = field(default_factory=list)

    @property
    def errors(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == ERROR)

    @property
    def warnings(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == WARNING)

    def add(self, severity: str, message: str) -> None:
        self.issues.append(Issue(severity, self.path, message))


@dataclass
class RepositoryResult:
    name: str
    path: Path
    missing: bool = False
    files: List[FileResult] = field(default_factory=list)

    @property
    def errors(self) -> int:
        return sum(result.errors for result in self.files)

    @property
    def warnings(self) -> int:
        return sum(result.warnings for result in self.files)

    def as_dict(self) -> Dict[str, object]:
        return {
            "name": self.name,
            "path": str(self.path),
            "missing": self.missing,
            "errors": self.errors,
            "warnings": self.warnings,
            "files": [
                {
                    "path": result.path,
                    "skipped": result.skipped,
                    "references": result.references,
                    "issues": [issue.as_dict() for issue in result.issues],
                }
                for result in self.files
            ],
        }


@dataclass
class ValidationReport:
    repositories: List[RepositoryResult] = field(default_factory=list)

    @property
    def errors(self) -> int:
        return sum(repo.errors for repo in self.repositories)

    @property
    def warnings(self) -> int:
        return sum(repo.warnings for repo in self.repositories)

    @property
    def ok(self) -> bool:
        return self.errors == 0

    def issues(self) -> Iterable[Issue]:
        for repo in self.repositories:
            for result in repo.files:
                yield from result.issues

    def as_dict(self) -> Dict[str, object]:
        return {
            "ok": self.ok,
            "errors": self.errors,
            "warnings": self.warnings,
            "repositories": [repo.as_dict() for repo in self.repositories],
        }


def count_lines(text: str) -> int:
    """Newline-terminated lines plus a trailing unterminated one.

    Only line feeds end a line, unlike ``str.splitlines`` which also splits on
    form feeds and other separators.
    """
    return text.count("\n") + (1 if text and not text.endswith("\n") else 0)


class MarkdownValidator:
    """Scan every configured repository and classify its markdown references."""

    def __init__(
        self,
        manifest: WorkspaceManifest,
        parent_dir: Path,
        *,
        console: Console | None = None,
        which: Callable[[str], Optional[str]] = shutil.which,
    ) -> None:
        self.manifest = manifest
        self.settings = manifest.validation
        self.parent_dir = Path(parent_dir)
        self.console = console or Console()
        self.which = which

    def validate(self) -> ValidationReport:
        report = ValidationReport()
        self.console.info("Validating markdown files across all repositories...")
        for name in self.manifest.repositories:
            repo_path = self.parent_dir / name
            if not repo_path.is_dir():
                self.console.warning(f"Repository not found: {repo_path} (skipping)")
                report.repositories.append(
                    RepositoryResult(name, repo_path, missing=True)
                )
                continue
            report.repositories.append(self.validate_repository(name, repo_path))
        self._print_overall(report)
        return report

    def validate_repository(self, name: str, repo_path: Path) -> RepositoryResult:
        result = RepositoryResult(name, repo_path)
        self.console.line()
        self.console.info(f"=== Validating {name} ===")
        files = self.markdown_files(repo_path)
        if not files:
            self.console.warning(f"No markdown files found in {name}")
            return result
        for path in files:
            result.files.append(self.validate_file(path, repo_path))
        self._print_repository(result)
        return result

    def markdown_files(self, repo_path: Path) -> list[Path]:
        excluded = set(self.settings.exclude_dirs)
        found: list[Path] = []
        for path in repo_path.rglob("*.md"):
            relative = path.relative_to(repo_path)
            if excluded.intersection(relative.parts[:-1]):
                continue
            if path.is_file():
                found.append(path)
        return sorted(found)

    def _exemption(self, relative: str) -> Optional[str]:
        marker = f"/{relative}"
        for fragment in self.settings.exempt_path_fragments:
            if fragment in marker:
                return fragment
        return None

    def validate_file(self, path: Path, repo_path: Path) -> FileResult:
        relative = path.relative_to(repo_path).as_posix()
        result = FileResult(relative)
        self.console.line(f"  Checking: {relative}")

        fragment = self._exemption(relative)
        if fragment:
            result.skipped = f"exempt path ({fragment})"
            self.console.line(f"    Skipped ({fragment.strip('/')})")
            return result

        text = path.read_text(encoding="utf-8", errors="replace")
        references = extract_references(text)
        result.references = len(references)
        if references:
            self.console.line(
                f"    Found {len(references)} unique @references to validate..."
            )
        for reference in references:
            self._check_reference(reference, text, path, repo_path, result)

        self._check_discovery_commands(text, repo_path, result)
        self._check_context_size(path, text, result)
        return result

    def _check_reference(
        self,
        reference: Reference,
        text: str,
        path: Path,
        repo_path: Path,
        result: FileResult,
    ) -> None:
        token = reference.token
        if is_placeholder(reference, self.settings.placeholders):
            self.console.line(f"    Skipped (placeholder): {token}")
            return
        if (
            token in self.settings.ignore_references
            or reference.path in self.settings.ignore_references
        ):
            self.console.line(f"    Skipped (ignored): {token}")
            return
        if is_illustrative(reference, text):
            self.console.line(f"    Skipped (placeholder/example): {token}")
            return

        if self.manifest.is_known_repo(reference.first_segment):
            total, with_url = cross_repo_url_counts(reference, text)
            if total > with_url:
                message = (
                    f"Cross-repo reference {token} missing GitHub URL "
                    f"({with_url}/{total} instances have URL); expected "
                    f"[{token}](https://github.com/{self.manifest.link_org}/"
                    f"{reference.first_segment}/...)"
                )
                result.add(ERROR, message)
                self.console.line(f"    ✗ {message}")
                return

        resolution = resolve_reference(reference, path.parent, repo_path)
        if resolution.ok:
            suffix = " (cross-repo)" if resolution.cross_repo else ""
            logger.debug("%s -> %s%s", token, resolution.target, suffix)
            self.console.line(
                f"    ✓ Valid reference: {token} -> {resolution.target}{suffix}"
            )
            return
        tried = ", ".join(str(candidate) for candidate in resolution.tried)
        result.add(ERROR, f"Broken reference: {token} (tried: {tried})")
        self.console.line(f"    ✗ Broken reference: {token}")
        for candidate in resolution.tried:
            self.console.line(f"       Tried: {candidate}")

    def _check_discovery_commands(
        self, text: str, repo_path: Path, result: FileResult
    ) -> None:
        if "docker compose" in text and not self.which("docker"):
            message = "References docker compose but docker command not available"
            result.add(WARNING, message)
            self.console.line(f"    ⚠ Warning: {message}")
        if "mvnw" in text and not (
            (repo_path / "mvnw").is_file() or (repo_path.parent / "mvnw").is_file()
        ):
            message = "References ./mvnw (may be in service repo context)"
            result.add(INFO, message)
            self.console.line(f"    Note: {message}")

    def _check_context_size(self, path: Path, text: str, result: FileResult) -> None:
        if path.name not in self.settings.context_file_names:
            return
        lines = count_lines(text)
        limit = self.settings.max_context_lines
        if lines > limit:
            message = (
                f"File has {lines} lines (recommend < {limit} for "
                "pattern-based docs)"
            )
            result.add(WARNING, message)
            self.console.line(f"    ⚠ Warning: {message}")
        else:
            self.console.line(f"    ✓ File size OK: {lines} lines")

    def _print_repository(self, result: RepositoryResult) -> None:
        self.console.line()
        if result.errors == 0 and result.warnings == 0:
            self.console.success(
                f"✓ {result.name}: All markdown files valid (no errors, no warnings)"
            )
        elif result.errors == 0:
            self.console.warning(
                f"⚠ {result.name}: Validation passed with {result.warnings} warning(s)"
            )
        else:
            self.console.error(
                f"✗ {result.name}: Validation failed with {result.errors} error(s) "
                f"and {result.warnings} warning(s)"
            )

    def _print_overall(self, report: ValidationReport) -> None:
        self.console.line()
        self.console.info("=== Overall Summary ===")
        if report.errors == 0 and report.warnings == 0:
            self.console.success("All markdown files valid across all repositories!")
        elif report.errors == 0:
            self.console.warning("Validation passed with warnings")
        else:
            self.console.error("Validation failed")
        self.console.line(f"   Errors: {report.errors}")
        self.console.line(f"   Warnings: {report.warnings}")
