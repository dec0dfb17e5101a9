"""Sibling repository paths and service port tables for the dev loop."""

from __future__ import annotations

import os
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from .manifest import WorkspaceManifest, find_checkout_root

WORKSPACE_ROOT_ENV = "BUDGETOPS_WORKSPACE_ROOT"


class UnknownServiceError(KeyError):
    """Raised when a port lookup names a service the manifest does not map."""


class WorkspaceRootError(RuntimeError):
    """Raised when no orchestration checkout is found to anchor the workspace."""


def resolve_workspace_root(
    override: Path | str | None = None, anchor: Path | str | None = None
) -> Path:
    """Return the directory that holds every sibling repository.

    An explicit ``override`` (or ``BUDGETOPS_WORKSPACE_ROOT``) wins; it is not
    checked for existence. Otherwise the orchestration checkout is found by
    walking up from ``anchor`` (the working directory by default) and its
    parent is used.
    """
    chosen = override or os.environ.get(WORKSPACE_ROOT_ENV)
    if chosen:
        return Path(os.path.abspath(Path(chosen).expanduser()))
    checkout = find_checkout_root(anchor)
    if checkout is None:
        start = anchor if anchor is not None else Path.cwd()
        raise WorkspaceRootError(
            f"No orchestration checkout found at or above {start}. "
            f"Run from inside the checkout, pass --workspace-root or set "
            f"{WORKSPACE_ROOT_ENV}."
        )
    return checkout.parent


class WorkspaceLayout:
    """Pure path/port lookups over a workspace root and a manifest."""

    def __init__(self, root: Path, manifest: WorkspaceManifest) -> None:
        self.root = Path(root)
        self.manifest = manifest
        self.service_ports: Mapping[str, int] = MappingProxyType(
            dict(manifest.service_ports)
        )
        self.debug_ports: Mapping[str, int] = MappingProxyType(
            dict(manifest.debug_ports)
        )

    def get_repo_path(self, name: str) -> Path:
        return self.root / name

    def service_port(self, name: str) -> int:
        try:
            return self.service_ports[name]
        except KeyError:
            raise UnknownServiceError(name) from None

    def debug_port(self, name: str) -> int:
        try:
            return self.debug_ports[name]
        except KeyError:
            raise UnknownServiceError(name) from None

    def tilt_settings(self) -> dict[str, Any]:
        """Settings consumed by tilt/common.star."""
        return {
            "main_dir": str(self.root),
            "repos": {
                name: str(self.get_repo_path(name))
                for name in self.manifest.repositories
            },
            "service_ports": dict(self.service_ports),
            "debug_ports": dict(self.debug_ports),
        }
