"""budgetops package root exposing the workspace tooling."""

from .core import (  # isort: skip
    ManifestError,
    MarkdownValidator,
    RepoStatusChecker,
    RepoSync,
    WorkspaceLayout,
    WorkspaceManifest,
    WorkspaceRelease,
    load_manifest,
    resolve_workspace_root,
)

__all__ = [
    "ManifestError",
    "MarkdownValidator",
    "RepoStatusChecker",
    "RepoSync",
    "WorkspaceLayout",
    "WorkspaceManifest",
    "WorkspaceRelease",
    "load_manifest",
    "resolve_workspace_root",
]
