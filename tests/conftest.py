"""
Shared pytest fixtures for the QA Bug Dashboard test suite.

Provides:
    - app: Flask application (session-scoped)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client authenticated as an editor (qa@example.com)
    - anon_client: Flask test client without an API key
    - viewer_headers / admin_headers / anon_editor_headers: per-request key overrides
    - fake_provider: scripted completion provider swapped into the app's gateway
    - make_bug / make_test_case: direct ORM factories
"""

import pytest

from qa_dashboard import create_app
from qa_dashboard.ai.gateway import LLMProvider
from qa_dashboard.models import db as _db
from qa_dashboard.models.tracking import Bug, TestCase

EDITOR_KEY = "test-editor-key"
EDITOR_EMAIL = "qa@example.com"


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app():
    """Create the Flask application once per test session."""
    application = create_app("testing")
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client sending the editor API key on every request."""
    test_client = app.test_client()
    test_client.environ_base["HTTP_X_API_KEY"] = EDITOR_KEY
    return test_client


@pytest.fixture()
def anon_client(app):
    return app.test_client()


@pytest.fixture()
def viewer_headers():
    return {"X-API-Key": "test-viewer-key"}


@pytest.fixture()
def admin_headers():
    return {"X-API-Key": "test-admin-key"}


@pytest.fixture()
def anon_editor_headers():
    """Editor key configured without an e-mail."""
    return {"X-API-Key": "test-anon-editor-key"}


# ── Completion provider ──────────────────────────────────────────────────


class FakeProvider(LLMProvider):
    """Returns ``reply`` (or raises ``error``) and records every call."""

    name = "fake"

    def __init__(self):
        self.reply = ""
        self.error = None
        self.calls = []

    def chat(self, messages, model, **kwargs):
        self.calls.append({"messages": messages, "model": model, **kwargs})
        if self.error is not None:
            raise self.error
        return {
            "content": self.reply,
            "prompt_tokens": 12,
            "completion_tokens": 8,
            "model": model,
        }

    @property
    def last_prompt(self):
        return self.calls[-1]["messages"][-1]["content"]


@pytest.fixture()
def fake_provider(app, monkeypatch):
    provider = FakeProvider()
    monkeypatch.setattr(app.extensions["llm_gateway"], "provider", provider)
    return provider


# ── Convenience fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def make_bug():
    """Insert and commit a Bug; keyword arguments override the defaults."""

    def _make(**kw):
        fields = {
            "title": "Checkout button unresponsive",
            "description": "Clicking the checkout button on the cart page does nothing.",
            "severity": "medium",
            "priority": "medium",
            "status": "open",
            "assignee": None,
            "reporter": EDITOR_EMAIL,
            "environment": "staging",
            "steps": ["Add an item to the cart", "Click checkout"],
            "expected_result": "Payment page opens",
            "actual_result": "Nothing happens",
            "tags": [],
        }
        fields.update(kw)
        bug = Bug(**fields)
        _db.session.add(bug)
        _db.session.commit()
        return bug

    return _make


@pytest.fixture()
def make_test_case():
    def _make(**kw):
        fields = {
            "name": "Login with valid credentials",
            "description": "User can sign in",
            "steps": ["Open login page", "Enter credentials", "Submit"],
            "expected_result": "Dashboard is shown",
            "category": "authentication",
            "priority": "high",
            "automated": False,
            "status": "pending",
        }
        fields.update(kw)
        tc = TestCase(**fields)
        _db.session.add(tc)
        _db.session.commit()
        return tc

    return _make
