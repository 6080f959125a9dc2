"""Tests to verify hexagonal architecture structure."""

from pathlib import Path

import pytest

# Compute project root relative to this test file
PROJECT_ROOT = Path(__file__).parent.parent.parent


@pytest.fixture
def package_path() -> Path:
    """Return the equiduty package path."""
    return PROJECT_ROOT / "equiduty"


def test_main_layers_exist(package_path: Path) -> None:
    """Verify all main layer directories exist."""
    for layer in ["domain", "application", "infrastructure", "config", "bootstrap"]:
        assert (package_path / layer).is_dir(), f"Missing layer: {layer}"
        assert (package_path / layer / "__init__.py").is_file(), (
            f"Missing {layer}/__init__.py"
        )


def test_application_subdirectories_exist(package_path: Path) -> None:
    """Verify application layer has dtos, ports and services."""
    application = package_path / "application"
    for subdir in ["dtos", "ports", "services"]:
        assert (application / subdir / "__init__.py").is_file(), (
            f"Missing application/{subdir}/__init__.py"
        )


def test_ports_are_protocols(package_path: Path) -> None:
    """Ports are typing.Protocol classes, never concrete adapters."""
    for py_file in (package_path / "application" / "ports").glob("*.py"):
        if py_file.name == "__init__.py":
            continue
        content = py_file.read_text()
        assert "(Protocol)" in content, f"{py_file.name} defines no Protocol"
        assert "httpx" not in content, f"{py_file.name} depends on httpx"


def test_domain_has_no_third_party_io(package_path: Path) -> None:
    """Domain code performs no I/O and depends on no client libraries."""
    for py_file in (package_path / "domain").rglob("*.py"):
        content = py_file.read_text()
        for forbidden in ("import httpx", "import structlog", "from pydantic"):
            assert forbidden not in content, f"{py_file} contains {forbidden}"


def test_adapters_implement_ports() -> None:
    """HTTP adapters and the in-memory backend satisfy every port."""
    from equiduty.infrastructure.adapters.http import (
        HttpPermissionChecker,
        HttpRoutineInstanceGateway,
        HttpSelectionProcessApi,
    )
    from equiduty.infrastructure.stubs import InMemorySelectionBackend

    api_methods = [
        "list_processes",
        "get_process",
        "get_stable_members",
        "compute_turn_order",
        "create_process",
        "start_process",
        "complete_turn",
        "cancel_process",
        "delete_process",
        "update_dates",
    ]
    routine_methods = ["get_instances_for_date_range", "assign_routine"]

    for name in api_methods:
        assert hasattr(HttpSelectionProcessApi, name)
        assert hasattr(InMemorySelectionBackend, name)
    for name in routine_methods:
        assert hasattr(HttpRoutineInstanceGateway, name)
        assert hasattr(InMemorySelectionBackend, name)
    assert hasattr(HttpPermissionChecker, "has_permission")
    assert hasattr(InMemorySelectionBackend, "has_permission")
