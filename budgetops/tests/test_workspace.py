"""Tests for workspace path and port resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from budgetops.core.workspace import (
    WORKSPACE_ROOT_ENV,
    UnknownServiceError,
    WorkspaceLayout,
    WorkspaceRootError,
    resolve_workspace_root,
)


@pytest.mark.parametrize("root", ["/srv/work", "/home/dev/src/budget", "/tmp/x"])
def test_get_repo_path_is_pure_concatenation(manifest, root: str) -> None:
    layout = WorkspaceLayout(Path(root), manifest)

    assert layout.get_repo_path("transaction-service") == Path(root) / "transaction-service"


def test_get_repo_path_does_not_touch_filesystem(manifest, monkeypatch) -> None:
    def _boom(*_args, **_kwargs):
        raise AssertionError("filesystem accessed")

    monkeypatch.setattr(Path, "exists", _boom)
    monkeypatch.setattr(Path, "is_dir", _boom)
    monkeypatch.setattr(Path, "stat", _boom)
    layout = WorkspaceLayout(Path("/nowhere"), manifest)

    assert str(layout.get_repo_path("currency-service")) == "/nowhere/currency-service"


def test_default_root_is_parent_of_checkout(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv(WORKSPACE_ROOT_ENV, raising=False)
    checkout = tmp_path / "orchestration"
    (checkout / "tilt").mkdir(parents=True)
    (checkout / "tilt" / "common.star").write_text("", encoding="utf-8")

    assert resolve_workspace_root(anchor=checkout / "docs" / "decisions") == tmp_path
    assert resolve_workspace_root(anchor=checkout) == tmp_path


def test_default_root_follows_working_directory(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv(WORKSPACE_ROOT_ENV, raising=False)
    checkout = tmp_path / "orchestration"
    (checkout / "scripts").mkdir(parents=True)
    (checkout / "workspace.manifest.yaml").write_text("", encoding="utf-8")
    monkeypatch.chdir(checkout / "scripts")

    assert resolve_workspace_root() == tmp_path


def test_installed_package_location_is_not_a_checkout(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv(WORKSPACE_ROOT_ENV, raising=False)
    site_packages = tmp_path / "venv" / "lib" / "python3.11" / "site-packages"
    (site_packages / "budgetops").mkdir(parents=True)

    with pytest.raises(WorkspaceRootError) as excinfo:
        resolve_workspace_root(anchor=site_packages / "budgetops")

    assert "--workspace-root" in str(excinfo.value)


def test_override_wins_and_is_not_checked(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv(WORKSPACE_ROOT_ENV, str(tmp_path / "from-env"))
    missing = tmp_path / "does" / "not" / "exist"

    assert resolve_workspace_root(missing) == missing
    assert resolve_workspace_root() == tmp_path / "from-env"


def test_port_lookups(manifest) -> None:
    layout = WorkspaceLayout(Path("/w"), manifest)

    assert layout.service_port("transaction-service") == 8082
    assert layout.debug_port("currency-service") == 5007


def test_unknown_service_raises_key_error(manifest) -> None:
    layout = WorkspaceLayout(Path("/w"), manifest)

    with pytest.raises(UnknownServiceError):
        layout.service_port("ledger-service")
    with pytest.raises(KeyError):
        layout.debug_port("service-common")


def test_port_tables_are_read_only(manifest) -> None:
    layout = WorkspaceLayout(Path("/w"), manifest)

    with pytest.raises(TypeError):
        layout.service_ports["transaction-service"] = 1  # type: ignore[index]


def test_tilt_settings_shape(manifest) -> None:
    settings = WorkspaceLayout(Path("/w"), manifest).tilt_settings()

    assert settings["main_dir"] == "/w"
    assert settings["repos"]["service-common"] == "/w/service-common"
    assert settings["service_ports"] == {
        "transaction-service": 8082,
        "currency-service": 8084,
    }
    assert settings["debug_ports"]["transaction-service"] == 5006
