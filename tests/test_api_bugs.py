"""
QA Bug Dashboard
Tests — Bugs API.

Covers:
    - CRUD (create forces status open / no assignee, reporter from API key)
    - AND-combined list filters, newest-first ordering
    - Title search, distinct assignees, dashboard stats
    - Duplicate groups and per-bug issues endpoints
"""

import pytest

from qa_dashboard.models import db as _db
from qa_dashboard.models.tracking import Bug


def _create_bug(client, **kw):
    payload = {
        "title": "Search returns stale results",
        "description": "Results do not refresh after editing a record.",
        "severity": "high",
        "priority": "medium",
        "environment": "production",
        "steps": ["Edit a record", "Search for it"],
        "expected_result": "Updated record is shown",
        "actual_result": "Old values are shown",
        "tags": ["search", "cache"],
    }
    payload.update(kw)
    res = client.post("/api/v1/bugs", json=payload)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


# ═════════════════════════════════════════════════════════════════════════════
# CREATE
# ═════════════════════════════════════════════════════════════════════════════

class TestCreateBug:

    def test_create_forces_open_and_unassigned(self, client):
        bug = _create_bug(client, status="closed", assignee="mallory")
        assert bug["status"] == "open"
        assert bug["assignee"] is None
        assert bug["ai_analysis"] is None
        assert bug["suggested_fix"] is None
        assert bug["tags"] == ["search", "cache"]
        assert bug["steps"] == ["Edit a record", "Search for it"]
        assert bug["created_at"]

    def test_reporter_is_key_email(self, client):
        assert _create_bug(client)["reporter"] == "qa@example.com"

    def test_reporter_unknown_without_email(self, client, anon_editor_headers):
        res = client.post("/api/v1/bugs", headers=anon_editor_headers,
                          json={"title": "No mail", "description": "Key has no e-mail set"})
        assert res.status_code == 201
        assert res.get_json()["reporter"] == "Unknown"

    def test_defaults(self, client):
        res = client.post("/api/v1/bugs", json={"title": "Minimal", "description": "Only required"})
        data = res.get_json()
        assert data["severity"] == "medium"
        assert data["priority"] == "medium"
        assert data["steps"] == []
        assert data["tags"] == []

    @pytest.mark.parametrize("payload", [
        {"description": "No title"},
        {"title": "   ", "description": "Blank title"},
        {"title": "No description"},
    ])
    def test_required_fields(self, client, payload):
        res = client.post("/api/v1/bugs", json=payload)
        assert res.status_code == 400
        assert "required" in res.get_json()["error"]

    def test_invalid_severity(self, client):
        res = client.post("/api/v1/bugs", json={
            "title": "Bad", "description": "Bad severity", "severity": "blocker",
        })
        assert res.status_code == 400
        assert "severity" in res.get_json()["details"]

    def test_steps_must_be_list(self, client):
        res = client.post("/api/v1/bugs", json={
            "title": "Bad", "description": "Steps as text", "steps": "click it",
        })
        assert res.status_code == 400

    @pytest.mark.parametrize("field, size", [("title", 301), ("environment", 101)])
    def test_overlong_field(self, client, field, size):
        payload = {"title": "Too long", "description": "Field past its column width"}
        payload[field] = "x" * size
        res = client.post("/api/v1/bugs", json=payload)
        assert res.status_code == 400
        assert field in res.get_json()["details"]

    def test_title_at_limit(self, client):
        res = client.post("/api/v1/bugs", json={"title": "x" * 300, "description": "Exactly wide enough"})
        assert res.status_code == 201


# ═════════════════════════════════════════════════════════════════════════════
# READ / UPDATE / DELETE
# ═════════════════════════════════════════════════════════════════════════════

class TestBugDetail:

    def test_get(self, client):
        bug = _create_bug(client)
        res = client.get(f"/api/v1/bugs/{bug['id']}")
        assert res.status_code == 200
        assert res.get_json()["title"] == bug["title"]

    def test_get_missing(self, client):
        res = client.get("/api/v1/bugs/9999")
        assert res.status_code == 404
        assert res.get_json() == {"error": "Bug not found"}

    def test_update_fields(self, client):
        bug = _create_bug(client)
        res = client.put(f"/api/v1/bugs/{bug['id']}", json={
            "title": "Search shows stale data",
            "assignee": "alice@x.com",
            "status": "in-progress",
            "severity": "critical",
            "reporter": "ignored@x.com",
        })
        assert res.status_code == 200
        data = res.get_json()
        assert data["title"] == "Search shows stale data"
        assert data["assignee"] == "alice@x.com"
        assert data["status"] == "in-progress"
        assert data["severity"] == "critical"
        assert data["reporter"] == "qa@example.com"
        assert data["description"] == bug["description"]

    def test_blank_assignee_unassigns(self, client):
        bug = _create_bug(client)
        client.put(f"/api/v1/bugs/{bug['id']}", json={"assignee": "bob"})
        res = client.put(f"/api/v1/bugs/{bug['id']}", json={"assignee": "  "})
        assert res.get_json()["assignee"] is None

    def test_update_invalid_status(self, client):
        bug = _create_bug(client)
        res = client.put(f"/api/v1/bugs/{bug['id']}", json={"status": "done"})
        assert res.status_code == 400
        assert _db.session.get(Bug, bug["id"]).status == "open"

    def test_update_overlong_assignee(self, client):
        bug = _create_bug(client)
        res = client.put(f"/api/v1/bugs/{bug['id']}", json={"assignee": "a" * 151})
        assert res.status_code == 400
        assert res.get_json()["details"] == {"assignee": "at most 150 characters"}

    def test_update_missing(self, client):
        res = client.put("/api/v1/bugs/9999", json={"title": "x"})
        assert res.status_code == 404

    def test_patch_status(self, client):
        bug = _create_bug(client)
        res = client.patch(f"/api/v1/bugs/{bug['id']}/status", json={"status": "resolved"})
        assert res.status_code == 200
        assert res.get_json()["status"] == "resolved"

    def test_patch_status_required(self, client):
        bug = _create_bug(client)
        res = client.patch(f"/api/v1/bugs/{bug['id']}/status", json={})
        assert res.status_code == 400

    def test_patch_status_invalid(self, client):
        bug = _create_bug(client)
        res = client.patch(f"/api/v1/bugs/{bug['id']}/status", json={"status": "wontfix"})
        assert res.status_code == 400

    def test_delete(self, client):
        bug = _create_bug(client)
        res = client.delete(f"/api/v1/bugs/{bug['id']}")
        assert res.status_code == 200
        assert res.get_json()["message"] == "Bug deleted"
        assert client.get(f"/api/v1/bugs/{bug['id']}").status_code == 404

    def test_delete_unlinks_test_cases(self, client):
        bug = _create_bug(client)
        tc = client.post("/api/v1/test-cases", json={
            "name": "Search freshness", "category": "search", "related_bugs": [bug["id"]],
        }).get_json()
        assert tc["related_bugs"] == [bug["id"]]

        client.delete(f"/api/v1/bugs/{bug['id']}")
        res = client.get(f"/api/v1/test-cases/{tc['id']}")
        assert res.get_json()["related_bugs"] == []


# ═════════════════════════════════════════════════════════════════════════════
# LIST & FILTERS
# ═════════════════════════════════════════════════════════════════════════════

class TestListBugs:

    def test_newest_first(self, client):
        first = _create_bug(client, title="First bug")
        second = _create_bug(client, title="Second bug")
        data = client.get("/api/v1/bugs").get_json()
        assert data["total"] == 2
        assert [b["id"] for b in data["items"]] == [second["id"], first["id"]]

    def test_filters_are_anded(self, make_bug, client):
        match = make_bug(status="open", assignee="alice@x.com")
        make_bug(status="open", assignee="bob@x.com")
        make_bug(status="closed", assignee="alice@x.com")

        res = client.get("/api/v1/bugs?status=open&assignee=alice@x.com")
        ids = [b["id"] for b in res.get_json()["items"]]
        assert ids == [match.id]

    def test_severity_and_priority_filters(self, make_bug, client):
        make_bug(severity="critical", priority="urgent")
        make_bug(severity="critical", priority="low")
        res = client.get("/api/v1/bugs?severity=critical&priority=urgent")
        assert res.get_json()["total"] == 1

    def test_invalid_filter_value(self, client):
        assert client.get("/api/v1/bugs?status=pending").status_code == 400

    def test_pagination(self, make_bug, client):
        for i in range(5):
            make_bug(title=f"Bug number {i}")
        data = client.get("/api/v1/bugs?limit=2&offset=1").get_json()
        assert data["total"] == 5
        assert len(data["items"]) == 2

    def test_list_is_public(self, make_bug, anon_client):
        make_bug()
        assert anon_client.get("/api/v1/bugs").status_code == 200


# ═════════════════════════════════════════════════════════════════════════════
# SEARCH / ASSIGNEES / STATS
# ═════════════════════════════════════════════════════════════════════════════

class TestLookups:

    def test_search_case_insensitive(self, make_bug, client):
        hit = make_bug(title="Payment Gateway timeout")
        make_bug(title="Login fails")
        data = client.get("/api/v1/bugs/search?q=gateway").get_json()
        assert [b["id"] for b in data["items"]] == [hit.id]

    def test_search_capped_at_twenty(self, make_bug, client):
        for i in range(25):
            make_bug(title=f"Crash report {i}")
        data = client.get("/api/v1/bugs/search?q=crash").get_json()
        assert data["total"] == 20

    def test_search_with_status(self, make_bug, client):
        make_bug(title="Crash on save", status="open")
        closed = make_bug(title="Crash on load", status="closed")
        data = client.get("/api/v1/bugs/search?q=crash&status=closed").get_json()
        assert [b["id"] for b in data["items"]] == [closed.id]

    @pytest.mark.parametrize("term", ["_", "%"])
    def test_search_wildcards_are_literal(self, make_bug, client, term):
        make_bug(title="Login fails")
        make_bug(title="Cart empty")
        hit = make_bug(title=f"Discount shows 100{term} off")
        data = client.get("/api/v1/bugs/search", query_string={"q": term}).get_json()
        assert [b["id"] for b in data["items"]] == [hit.id]

    def test_search_requires_term(self, client):
        assert client.get("/api/v1/bugs/search").status_code == 400

    def test_assignees_distinct(self, make_bug, client):
        make_bug(assignee="alice")
        make_bug(assignee="bob")
        make_bug(assignee="alice")
        make_bug(assignee=None)
        data = client.get("/api/v1/bugs/assignees").get_json()
        assert data == {"assignees": ["alice", "bob"]}

    def test_stats(self, make_bug, client):
        make_bug(status="open", severity="critical")
        make_bug(status="open", assignee="alice")
        make_bug(status="in-progress", assignee="bob")
        make_bug(status="closed", severity="critical", assignee="carol")

        stats = client.get("/api/v1/bugs/stats").get_json()
        assert stats == {
            "total": 4,
            "open": 2,
            "in_progress": 1,
            "resolved": 0,
            "closed": 1,
            "unassigned": 1,
            "critical": 2,
            "missing_status": 0,
            "missing_assignee": 1,
        }

    def test_stats_empty(self, client):
        stats = client.get("/api/v1/bugs/stats").get_json()
        assert stats["total"] == 0
        assert stats["open"] == 0


# ═════════════════════════════════════════════════════════════════════════════
# QUALITY ENDPOINTS
# ═════════════════════════════════════════════════════════════════════════════

class TestQualityEndpoints:

    def test_duplicates_in_creation_order(self, make_bug, client):
        a = make_bug(title="Export hangs", description="Spinner never stops")
        make_bug(title="Unrelated", description="Logo is blurry")
        b = make_bug(title="export HANGS", description="CSV download stuck")
        data = client.get("/api/v1/bugs/duplicates").get_json()
        assert data["total"] == 1
        assert [x["id"] for x in data["items"][0]["bugs"]] == [a.id, b.id]

    def test_issues(self, make_bug, client):
        bug = make_bug(title="Bug", description="short")
        data = client.get(f"/api/v1/bugs/{bug.id}/issues").get_json()
        assert data["bug_id"] == bug.id
        assert len(data["issues"]) == 3

    def test_issues_missing_bug(self, client):
        assert client.get("/api/v1/bugs/9999/issues").status_code == 404
