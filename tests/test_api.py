"""Tests for the HTTP API."""

import inspect
import os

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from api.routes.sessions import get_session_store, router
from sessions.store import SessionStore


SESSION_ID = "0c6f3a52-9d1e-4c1b-8f43-2b8e6d1a7c90"
MISSING_ID = "99999999-9999-9999-9999-999999999999"


@pytest.fixture
def project(tmp_path, ten_turn_lines):
    """A project directory holding one ten-turn session."""
    project_dir = tmp_path / "-work-repo"
    project_dir.mkdir()
    path = project_dir / f"{SESSION_ID}.jsonl"
    path.write_text("\n".join(ten_turn_lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def client(tmp_path, project):
    """Test client wired to the temporary project."""
    app = create_app()
    store = SessionStore(projects_dir=str(tmp_path), project_path="/work/repo")
    app.dependency_overrides[get_session_store] = lambda: store
    return TestClient(app)


def backups_of(path):
    directory, name = os.path.split(str(path))
    return [entry for entry in os.listdir(directory) if entry.startswith(name + ".backup.")]


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "healthy"}


def test_list_sessions(client):
    r = client.get("/api/sessions")
    assert r.status_code == 200
    data = r.json()
    assert [s["session_id"] for s in data["sessions"]] == [SESSION_ID]
    assert data["sessions"][0]["tokens"] == 100000
    assert data["sessions"][0]["usage_pct"] == 50


def test_context_usage(client):
    r = client.get(f"/api/sessions/{SESSION_ID}/context")
    assert r.status_code == 200
    data = r.json()
    assert data["tokens"] == 100000
    assert data["messages"] == 10
    assert data["usage_pct"] == 50


def test_context_usage_latest(client):
    r = client.get("/api/sessions/latest/context", params={"ctx_limit": 400000})
    assert r.status_code == 200
    assert r.json()["session_id"] == SESSION_ID
    assert r.json()["usage_pct"] == 25


def test_preview_does_not_write(client, project):
    before = project.read_bytes()

    r = client.post(f"/api/sessions/{SESSION_ID}/preview", json={"target": 60000})
    assert r.status_code == 200
    data = r.json()
    assert data["preview"] is True
    assert data["applied"] is False
    assert data["plan"]["final_tokens"] == 60000
    assert len(data["plan"]["selection"]["removed_spans"]) == 4

    assert project.read_bytes() == before
    assert backups_of(project) == []


def test_compact_then_restore(client, project):
    before = project.read_bytes()

    r = client.post(f"/api/sessions/{SESSION_ID}/compact", json={"target": "70%"})
    assert r.status_code == 200
    data = r.json()
    assert data["applied"] is True
    assert data["plan"]["target_tokens"] == 60000
    assert project.read_bytes() != before
    assert len(backups_of(project)) == 1

    r = client.post(f"/api/sessions/{SESSION_ID}/restore")
    assert r.status_code == 200
    assert r.json()["status"] == "restored"
    assert project.read_bytes() == before


def test_compact_within_target(client, project):
    before = project.read_bytes()

    r = client.post(f"/api/sessions/{SESSION_ID}/compact", json={"target": 150000})
    assert r.status_code == 200
    assert r.json()["applied"] is False
    assert r.json()["plan"]["selection"] is None
    assert project.read_bytes() == before


def test_invalid_target(client):
    r = client.post(f"/api/sessions/{SESSION_ID}/preview", json={"target": "lots"})
    assert r.status_code == 400


def test_negative_protection_rejected(client):
    r = client.post(f"/api/sessions/{SESSION_ID}/preview", json={"protect_start": -1})
    assert r.status_code == 422


def test_unknown_session(client):
    r = client.post(f"/api/sessions/{MISSING_ID}/preview", json={})
    assert r.status_code == 404

    r = client.get("/api/sessions/not-a-uuid/context")
    assert r.status_code == 404


def test_restore_without_backup(client):
    r = client.post(f"/api/sessions/{SESSION_ID}/restore")
    assert r.status_code == 404


def test_session_routes_run_in_threadpool():
    endpoints = [route.endpoint for route in router.routes]
    assert endpoints
    assert not any(inspect.iscoroutinefunction(endpoint) for endpoint in endpoints)
