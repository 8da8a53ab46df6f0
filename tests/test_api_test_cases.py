"""
QA Bug Dashboard
Tests — Test Cases API.
"""

from qa_dashboard.models import db as _db
from qa_dashboard.models.tracking import TestCase


def _create_test_case(client, **kw):
    payload = {
        "name": "Reset password e-mail",
        "description": "User receives a reset link",
        "steps": ["Open login page", "Click forgot password", "Submit e-mail"],
        "expected_result": "E-mail with reset link arrives",
        "category": "authentication",
        "priority": "high",
        "automated": True,
    }
    payload.update(kw)
    res = client.post("/api/v1/test-cases", json=payload)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


class TestCreateTestCase:

    def test_create_pending_without_last_run(self, client):
        tc = _create_test_case(client, status="pass")
        assert tc["status"] == "pending"
        assert tc["last_run"] is None
        assert tc["automated"] is True
        assert tc["related_bugs"] == []

    def test_related_bugs(self, client, make_bug):
        b1 = make_bug(title="First linked bug")
        b2 = make_bug(title="Second linked bug")
        tc = _create_test_case(client, related_bugs=[b2.id, b1.id])
        assert tc["related_bugs"] == [b1.id, b2.id]

    def test_unknown_related_bug(self, client):
        res = client.post("/api/v1/test-cases", json={
            "name": "Orphan", "category": "misc", "related_bugs": [4242],
        })
        assert res.status_code == 400
        assert res.get_json()["details"]["related_bugs"] == [4242]

    def test_name_and_category_required(self, client):
        assert client.post("/api/v1/test-cases", json={"category": "x"}).status_code == 400
        assert client.post("/api/v1/test-cases", json={"name": "x"}).status_code == 400

    def test_invalid_priority(self, client):
        res = client.post("/api/v1/test-cases", json={
            "name": "x", "category": "y", "priority": "urgent",
        })
        assert res.status_code == 400

    def test_overlong_name(self, client):
        res = client.post("/api/v1/test-cases", json={"name": "n" * 301, "category": "ui"})
        assert res.status_code == 400
        assert "name" in res.get_json()["details"]


class TestTestCaseStatus:

    def test_patch_status_stamps_last_run(self, client):
        tc = _create_test_case(client)
        res = client.patch(f"/api/v1/test-cases/{tc['id']}/status", json={"status": "fail"})
        assert res.status_code == 200
        data = res.get_json()
        assert data["status"] == "fail"
        assert data["last_run"] is not None

    def test_patch_status_invalid(self, client):
        tc = _create_test_case(client)
        res = client.patch(f"/api/v1/test-cases/{tc['id']}/status", json={"status": "skipped"})
        assert res.status_code == 400
        assert _db.session.get(TestCase, tc["id"]).last_run is None

    def test_patch_status_required(self, client):
        tc = _create_test_case(client)
        res = client.patch(f"/api/v1/test-cases/{tc['id']}/status", json={})
        assert res.status_code == 400

    def test_put_with_status_stamps_last_run(self, client):
        tc = _create_test_case(client)
        res = client.put(f"/api/v1/test-cases/{tc['id']}", json={"status": "pass", "priority": "low"})
        data = res.get_json()
        assert data["status"] == "pass"
        assert data["priority"] == "low"
        assert data["last_run"] is not None

    def test_put_without_status_keeps_last_run(self, client):
        tc = _create_test_case(client)
        res = client.put(f"/api/v1/test-cases/{tc['id']}", json={"name": "Renamed"})
        data = res.get_json()
        assert data["name"] == "Renamed"
        assert data["last_run"] is None


class TestTestCaseQueries:

    def test_get_missing(self, client):
        res = client.get("/api/v1/test-cases/9999")
        assert res.status_code == 404
        assert res.get_json() == {"error": "TestCase not found"}

    def test_filters(self, client, make_test_case):
        hit = make_test_case(category="payments", status="fail", priority="high")
        make_test_case(category="payments", status="pass", priority="high")
        make_test_case(category="search", status="fail", priority="high")

        data = client.get("/api/v1/test-cases?category=payments&status=fail").get_json()
        assert [tc["id"] for tc in data["items"]] == [hit.id]

    def test_newest_first(self, client, make_test_case):
        older = make_test_case(name="Older")
        newer = make_test_case(name="Newer")
        data = client.get("/api/v1/test-cases").get_json()
        assert [tc["id"] for tc in data["items"]] == [newer.id, older.id]

    def test_categories_distinct(self, client, make_test_case):
        make_test_case(category="search")
        make_test_case(category="payments")
        make_test_case(category="search")
        data = client.get("/api/v1/test-cases/categories").get_json()
        assert data == {"categories": ["search", "payments"]}

    def test_delete(self, client, make_test_case):
        tc = make_test_case()
        res = client.delete(f"/api/v1/test-cases/{tc.id}")
        assert res.status_code == 200
        assert res.get_json()["message"] == "Test case deleted"
        assert _db.session.get(TestCase, tc.id) is None
