"""Tests for admin authentication and storage mode endpoints."""

from fastapi.testclient import TestClient

from art_teaching_tracker.api.app import create_app
from art_teaching_tracker.containers import AppContainer

HEADERS = {"X-Admin-Token": "admin-token"}


def test_public_health_needs_no_token(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_admin_health_requires_token(container: AppContainer) -> None:
    app = create_app(container)
    client = TestClient(app)

    response = client.get("/admin/health")

    assert response.status_code == 401


def test_admin_rejects_wrong_token(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.get("/admin/backup", headers={"X-Admin-Token": "nope"})

    assert response.status_code == 401


def test_admin_health_accepts_valid_token(container: AppContainer) -> None:
    app = create_app(container)
    client = TestClient(app)

    response = client.get("/admin/health", headers=HEADERS)

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_storage_mode_defaults_to_embedded(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.get("/admin/storage/mode", headers=HEADERS)

    assert response.status_code == 200
    assert response.json() == {"mode": "embedded", "external_configured": True}


def test_storage_mode_can_be_switched(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.put(
        "/admin/storage/mode", json={"mode": "external"}, headers=HEADERS
    )

    assert response.status_code == 200
    assert response.json() == {"mode": "external"}
    assert client.get("/admin/storage/mode", headers=HEADERS).json()["mode"] == (
        "external"
    )


def test_storage_mode_rejects_unknown_values(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.put(
        "/admin/storage/mode", json={"mode": "floppy"}, headers=HEADERS
    )

    assert response.status_code == 422
