"""Workspace manifest: repositories, ports and validation settings."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Iterable, List

import yaml  # type: ignore[import-not-found]
from jsonschema import Draft202012Validator  # type: ignore[import-not-found]
from pydantic import BaseModel, ConfigDict, Field, model_validator

PACKAGE_ROOT = Path(__file__).resolve().parents[1]
MANIFEST_ENV = "BUDGETOPS_MANIFEST"
MANIFEST_FILENAME = "workspace.manifest.yaml"
DEFAULT_MANIFEST = PACKAGE_ROOT / "data" / MANIFEST_FILENAME
DEFAULT_SCHEMA = PACKAGE_ROOT / "schemas" / "workspace-manifest.schema.json"
# Files that only exist at the top of an orchestration checkout.
CHECKOUT_MARKERS = (MANIFEST_FILENAME, "tilt/common.star")

logger = logging.getLogger("budgetops.manifest")


class ManifestError(RuntimeError):
    """Raised when the workspace manifest is missing or invalid."""


class ValidationSettings(BaseModel):
    max_context_lines: int = Field(200, ge=1)
    context_file_names: List[str] = Field(
        default_factory=lambda: ["CLAUDE.md", "CLAUDE.local.md"]
    )
    exclude_dirs: List[str] = Field(
        default_factory=lambda: ["node_modules", "target", "bin", "build"]
    )
    exempt_path_fragments: List[str] = Field(
        default_factory=lambda: ["/docs/decisions/", "/templates/"]
    )
    placeholders: List[str] = Field(default_factory=lambda: ["path/to/file"])
    ignore_references: List[str] = Field(default_factory=list)


class WorkspaceManifest(BaseModel):
    version: str = "1.0"
    self_name: str
    github_org: str
    url_org: str | None = None
    repositories: List[str]
    service_ports: dict[str, int] = Field(default_factory=dict)
    debug_ports: dict[str, int] = Field(default_factory=dict)
    validation: ValidationSettings = Field(default_factory=ValidationSettings)  # type: ignore[arg-type]

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def _check_repositories(self) -> "WorkspaceManifest":
        seen: set[str] = set()
        for name in self.repositories:
            if name in seen:
                raise ValueError(f"Duplicate repository name: {name}")
            seen.add(name)
        for table in (self.service_ports, self.debug_ports):
            for service, port in table.items():
                if not 0 < port < 65536:
                    raise ValueError(f"Port for {service} out of range: {port}")
        return self

    @property
    def link_org(self) -> str:
        return self.url_org or self.github_org

    def is_known_repo(self, name: str) -> bool:
        return name in self.repositories

    def sibling_repositories(self) -> list[str]:
        """Repositories other than the orchestration repo itself."""
        return [name for name in self.repositories if name != self.self_name]

    def clone_url(self, name: str) -> str:
        return f"https://github.com/{self.github_org}/{name}.git"

    def consistency_warnings(self) -> list[str]:
        warnings: list[str] = []
        known = set(self.repositories)
        for label, table in (
            ("service_ports", self.service_ports),
            ("debug_ports", self.debug_ports),
        ):
            for service in table:
                if service not in known:
                    warnings.append(
                        f"{label}: '{service}' is not listed under repositories"
                    )
        return warnings

    def summary(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "self_name": self.self_name,
            "repositories": list(self.repositories),
            "service_ports": dict(self.service_ports),
            "debug_ports": dict(self.debug_ports),
            "warnings": self.consistency_warnings(),
        }


def find_checkout_root(start: Path | str | None = None) -> Path | None:
    """Walk up from ``start`` (the working directory by default) to the checkout.

    Returns ``None`` when no directory on the way holds a checkout marker.
    """
    current = Path(os.path.abspath(start if start is not None else Path.cwd()))
    for candidate in (current, *current.parents):
        if any((candidate / marker).is_file() for marker in CHECKOUT_MARKERS):
            return candidate
    return None


def resolve_manifest_path(
    path: Path | str | None = None, *, start: Path | str | None = None
) -> Path:
    """Pick the manifest: explicit path, env override, checkout copy, packaged default."""
    if path:
        return Path(path).expanduser()
    env_path = os.environ.get(MANIFEST_ENV)
    if env_path:
        return Path(env_path).expanduser()
    checkout = find_checkout_root(start)
    if checkout is not None and (checkout / MANIFEST_FILENAME).is_file():
        return checkout / MANIFEST_FILENAME
    return DEFAULT_MANIFEST


def _schema_validator(schema_path: Path) -> Draft202012Validator:
    if not schema_path.exists():
        raise ManifestError(f"Manifest schema missing at {schema_path}.")
    schema = json.loads(schema_path.read_text(encoding="utf-8"))
    return Draft202012Validator(schema)


def _iter_schema_errors(
    validator: Draft202012Validator, payload: Any
) -> Iterable[str]:
    errors = sorted(
        validator.iter_errors(payload), key=lambda e: [str(p) for p in e.path]
    )
    for error in errors:
        location = ".".join(str(part) for part in error.path) or "manifest"
        yield f"{location}: {error.message}"


def parse_manifest(
    payload: Any, *, schema_path: Path = DEFAULT_SCHEMA, source: str = "<memory>"
) -> WorkspaceManifest:
    """Validate a decoded manifest document and build the model."""
    if not isinstance(payload, dict):
        raise ManifestError(f"{source}: manifest must be a mapping")
    errors = list(_iter_schema_errors(_schema_validator(schema_path), payload))
    if errors:
        raise ManifestError(f"{source}:\n" + "\n".join(errors))
    try:
        return WorkspaceManifest.model_validate(payload)
    except ValueError as exc:
        raise ManifestError(f"{source}: {exc}") from exc


def load_manifest(
    path: Path | str | None = None, *, schema_path: Path = DEFAULT_SCHEMA
) -> WorkspaceManifest:
    manifest_path = resolve_manifest_path(path)
    if not manifest_path.exists():
        raise ManifestError(f"Manifest missing: {manifest_path}")
    logger.debug("Loading workspace manifest from %s", manifest_path)
    try:
        payload = yaml.safe_load(manifest_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ManifestError(f"Unable to parse {manifest_path}: {exc}") from exc
    return parse_manifest(payload, schema_path=schema_path, source=str(manifest_path))
