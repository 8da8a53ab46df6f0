"""
QA Bug Dashboard
Tests — API key authentication, roles and request middleware.
"""

import pytest

from qa_dashboard.auth import ApiKey, parse_api_keys

BUG = {"title": "Auth check bug", "description": "Created during auth tests"}


class TestParseApiKeys:

    def test_full_entries(self):
        keys = parse_api_keys("k1:admin:lead@x.com, k2:editor:qa@x.com ,k3:viewer")
        assert keys == {
            "k1": ApiKey("admin", "lead@x.com"),
            "k2": ApiKey("editor", "qa@x.com"),
            "k3": ApiKey("viewer", None),
        }

    def test_missing_or_unknown_role_is_viewer(self):
        keys = parse_api_keys("bare,odd:superuser")
        assert keys["bare"].role == "viewer"
        assert keys["odd"].role == "viewer"

    @pytest.mark.parametrize("raw", ["", "   ", None])
    def test_empty(self, raw):
        assert parse_api_keys(raw) == {}


class TestAccessRules:

    def test_reads_are_public(self, anon_client):
        assert anon_client.get("/api/v1/bugs").status_code == 200

    def test_mutation_requires_key(self, anon_client):
        res = anon_client.post("/api/v1/bugs", json=BUG)
        assert res.status_code == 401

    def test_invalid_key_rejected_even_for_reads(self, anon_client):
        res = anon_client.get("/api/v1/bugs", headers={"X-API-Key": "nope"})
        assert res.status_code == 401
        assert res.get_json()["error"] == "Invalid API key"

    def test_viewer_cannot_mutate(self, anon_client, viewer_headers):
        res = anon_client.post("/api/v1/bugs", json=BUG, headers=viewer_headers)
        assert res.status_code == 403

    def test_viewer_can_read(self, anon_client, viewer_headers):
        assert anon_client.get("/api/v1/bugs/stats", headers=viewer_headers).status_code == 200

    def test_editor_can_delete(self, client, make_bug):
        bug = make_bug()
        assert client.delete(f"/api/v1/bugs/{bug.id}").status_code == 200

    def test_admin_can_mutate(self, anon_client, admin_headers):
        res = anon_client.post("/api/v1/bugs", json=BUG, headers=admin_headers)
        assert res.status_code == 201
        assert res.get_json()["reporter"] == "admin@example.com"

    def test_key_in_query_string(self, anon_client):
        res = anon_client.post("/api/v1/bugs?api_key=test-editor-key", json=BUG)
        assert res.status_code == 201

    def test_non_json_body_rejected(self, client):
        res = client.post("/api/v1/bugs", data="title=x", content_type="application/x-www-form-urlencoded")
        assert res.status_code == 415

    def test_health_is_open(self, anon_client):
        res = anon_client.get("/api/v1/health", headers={"X-API-Key": "nope"})
        assert res.status_code == 200

    def test_auth_disabled_dev_user(self, app, anon_client, monkeypatch):
        monkeypatch.setitem(app.config, "API_AUTH_ENABLED", "false")
        res = anon_client.post("/api/v1/bugs", json=BUG)
        assert res.status_code == 201
        assert res.get_json()["reporter"] == "dev@localhost"


class TestRequestMiddleware:

    def test_timing_headers_on_rejected_request(self, anon_client):
        res = anon_client.post("/api/v1/bugs", json=BUG)
        assert res.status_code == 401
        assert "X-Request-ID" in res.headers
        assert float(res.headers["X-Request-Duration-Ms"]) >= 0

    def test_request_id_echoed(self, anon_client):
        res = anon_client.get("/api/v1/bugs", headers={"X-Request-ID": "abc123"})
        assert res.headers["X-Request-ID"] == "abc123"
