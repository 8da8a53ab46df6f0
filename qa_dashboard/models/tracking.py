"""
QA Bug Dashboard
Tracking domain models.

Models:
    - Bug: defect report with severity / priority / status and repro details
    - TestCase: verification procedure with pass / fail / pending status
    - QAReport: immutable snapshot produced by the AI report generator

Bug lifecycle:   open → in-progress → resolved → closed
Test lifecycle:  pending → pass | fail   (last_run stamped on every status change)
"""

from datetime import datetime, timezone

from qa_dashboard.models import db


# ── Constants ────────────────────────────────────────────────────────────────

BUG_SEVERITIES = {"low", "medium", "high", "critical"}

BUG_PRIORITIES = {"low", "medium", "high", "urgent"}

BUG_STATUSES = {"open", "in-progress", "resolved", "closed"}

TEST_CASE_PRIORITIES = {"low", "medium", "high"}

TEST_CASE_STATUSES = {"pass", "fail", "pending"}

REPORT_GENERATOR = "QA Bug Checker AI"


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


# ── Association: test case ↔ related bugs ────────────────────────────────────

test_case_bugs = db.Table(
    "test_case_bugs",
    db.Column(
        "test_case_id", db.Integer,
        db.ForeignKey("test_cases.id", ondelete="CASCADE"), primary_key=True,
    ),
    db.Column(
        "bug_id", db.Integer,
        db.ForeignKey("bugs.id", ondelete="CASCADE"), primary_key=True,
    ),
)


# ── Bug ──────────────────────────────────────────────────────────────────────

class Bug(db.Model):
    """
    Bug report raised by a QA engineer.

    ``assignee`` is NULL while the bug is unassigned. ``ai_analysis`` is
    written by the bug analyst assistant; ``suggested_fix`` is reserved for
    manual follow-up and never set on creation.
    """

    __tablename__ = "bugs"

    id = db.Column(db.Integer, primary_key=True)

    # ── Identification
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, nullable=False, default="")

    # ── Classification
    severity = db.Column(
        db.String(20), nullable=False, default="medium",
        comment="low | medium | high | critical",
    )
    priority = db.Column(
        db.String(20), nullable=False, default="medium",
        comment="low | medium | high | urgent",
    )
    status = db.Column(
        db.String(20), nullable=False, default="open", index=True,
        comment="open | in-progress | resolved | closed",
    )

    # ── People
    assignee = db.Column(db.String(150), nullable=True, index=True)
    reporter = db.Column(db.String(150), nullable=False, default="Unknown")

    # ── Reproduction
    environment = db.Column(db.String(100), default="")
    steps = db.Column(db.JSON, default=list)
    expected_result = db.Column(db.Text, default="")
    actual_result = db.Column(db.Text, default="")
    tags = db.Column(db.JSON, default=list)

    # ── AI output
    ai_analysis = db.Column(db.Text, nullable=True)
    suggested_fix = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "severity": self.severity,
            "priority": self.priority,
            "status": self.status,
            "assignee": self.assignee,
            "reporter": self.reporter,
            "environment": self.environment,
            "steps": list(self.steps or []),
            "expected_result": self.expected_result,
            "actual_result": self.actual_result,
            "tags": list(self.tags or []),
            "ai_analysis": self.ai_analysis,
            "suggested_fix": self.suggested_fix,
            "created_at": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<Bug {self.id}: {self.title[:40]} [{self.status}]>"


# ── TestCase ─────────────────────────────────────────────────────────────────

class TestCase(db.Model):
    """Test case in the QA catalog."""

    __tablename__ = "test_cases"
    __test__ = False  # not a pytest collection target

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="")
    steps = db.Column(db.JSON, default=list)
    expected_result = db.Column(db.Text, default="")
    category = db.Column(db.String(100), nullable=False, default="", index=True)
    priority = db.Column(
        db.String(20), nullable=False, default="medium",
        comment="low | medium | high",
    )
    automated = db.Column(db.Boolean, nullable=False, default=False)
    status = db.Column(
        db.String(20), nullable=False, default="pending", index=True,
        comment="pass | fail | pending",
    )
    last_run = db.Column(db.DateTime(timezone=True), nullable=True)

    related_bugs = db.relationship(
        "Bug", secondary=test_case_bugs, lazy="select",
        backref=db.backref("test_cases", lazy="select"),
        order_by="Bug.id",
    )

    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "steps": list(self.steps or []),
            "expected_result": self.expected_result,
            "category": self.category,
            "priority": self.priority,
            "automated": bool(self.automated),
            "status": self.status,
            "last_run": _iso(self.last_run),
            "related_bugs": [b.id for b in self.related_bugs],
            "created_at": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<TestCase {self.id}: {self.name[:40]} [{self.status}]>"


# ── QAReport ─────────────────────────────────────────────────────────────────

class QAReport(db.Model):
    """
    Point-in-time QA summary. Rows are only ever inserted by the report
    generator; there is no update path.
    """

    __tablename__ = "qa_reports"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    summary = db.Column(db.Text, nullable=False, default="")
    bugs_found = db.Column(db.Integer, nullable=False, default=0)
    tests_run = db.Column(db.Integer, nullable=False, default=0)
    tests_passed = db.Column(db.Integer, nullable=False, default=0)
    tests_failed = db.Column(db.Integer, nullable=False, default=0)
    coverage = db.Column(db.Integer, nullable=False, default=0, comment="Pass rate in percent")
    ai_insights = db.Column(db.Text, nullable=True)
    recommendations = db.Column(db.JSON, default=list)
    report_date = db.Column(db.DateTime(timezone=True), default=_utcnow, index=True)
    generated_by = db.Column(db.String(100), nullable=False, default=REPORT_GENERATOR, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "summary": self.summary,
            "bugs_found": self.bugs_found,
            "tests_run": self.tests_run,
            "tests_passed": self.tests_passed,
            "tests_failed": self.tests_failed,
            "coverage": self.coverage,
            "ai_insights": self.ai_insights,
            "recommendations": list(self.recommendations or []),
            "report_date": _iso(self.report_date),
            "generated_by": self.generated_by,
        }

    def __repr__(self):
        return f"<QAReport {self.id}: {self.title}>"
