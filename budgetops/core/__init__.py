"""budgetops core package - workspace manifest, sync and validation."""

from .console import Console, NullConsole
from .manifest import ManifestError, WorkspaceManifest, load_manifest
from .release import BatchReport, WorkspaceRelease
from .repo_status import RepoStatusChecker, StatusReport
from .sync import RepoSync, SyncReport
from .validator import MarkdownValidator, ValidationReport
from .workspace import (
    UnknownServiceError,
    WorkspaceLayout,
    WorkspaceRootError,
    resolve_workspace_root,
)

__all__ = [
    "Console",
    "NullConsole",
    "ManifestError",
    "WorkspaceManifest",
    "load_manifest",
    "BatchReport",
    "WorkspaceRelease",
    "RepoStatusChecker",
    "StatusReport",
    "RepoSync",
    "SyncReport",
    "MarkdownValidator",
    "ValidationReport",
    "UnknownServiceError",
    "WorkspaceLayout",
    "WorkspaceRootError",
    "resolve_workspace_root",
]
