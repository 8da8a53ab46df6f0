"""Bug service layer: business logic behind bugs_bp.py and the AI assistants.

Transaction policy: functions use flush() for ID generation, never commit().
Caller (route handler) is responsible for db.session.commit().

Operations:
- Filtered listing (AND-combined status / severity / priority / assignee)
- Create (status forced to "open", reporter from the caller)
- Field update + status-only update + delete
- Title search, distinct assignees, dashboard counters
- Duplicate detection / issue scan over the whole bug table
"""
import logging

from sqlalchemy import func, or_

from qa_dashboard.core.exceptions import NotFoundError, ValidationError
from qa_dashboard.models import db
from qa_dashboard.models.tracking import (
    Bug, BUG_PRIORITIES, BUG_SEVERITIES, BUG_STATUSES,
)
from qa_dashboard.services.bug_quality import detect_duplicates, scan_for_issues
from qa_dashboard.utils.helpers import coerce_str_list

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 20

_UPDATABLE_FIELDS = ("title", "description", "status", "assignee", "severity", "priority")

# Column widths on Bug
MAX_LENGTHS = {"title": 300, "assignee": 150, "environment": 100}


# ── Validation helpers ───────────────────────────────────────────────────────

def _check_choice(field, value, allowed):
    if value not in allowed:
        raise ValidationError(
            f"Invalid {field}: {value!r}",
            details={field: f"must be one of {sorted(allowed)}"},
        )


def _check_text(field, value):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", details={field: "must be a non-empty string"})


def _check_length(field, value):
    limit = MAX_LENGTHS[field]
    if value and len(value) > limit:
        raise ValidationError(
            f"{field} is too long", details={field: f"at most {limit} characters"},
        )


def _check_list(field, value):
    if value is not None and not isinstance(value, list):
        raise ValidationError(f"{field} must be a list", details={field: "expected a JSON array"})


def _normalize_assignee(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


# ── Queries ──────────────────────────────────────────────────────────────────

def get_bug(bug_id):
    """Return the Bug or raise NotFoundError."""
    bug = db.session.get(Bug, bug_id)
    if bug is None:
        raise NotFoundError(resource="Bug", resource_id=bug_id)
    return bug


def newest_first(query):
    return query.order_by(Bug.created_at.desc(), Bug.id.desc())


def list_bugs_query(status=None, severity=None, priority=None, assignee=None):
    """Build the filtered bug query, newest first. All filters are ANDed."""
    if status:
        _check_choice("status", status, BUG_STATUSES)
    if severity:
        _check_choice("severity", severity, BUG_SEVERITIES)
    if priority:
        _check_choice("priority", priority, BUG_PRIORITIES)

    q = Bug.query
    if status:
        q = q.filter(Bug.status == status)
    if severity:
        q = q.filter(Bug.severity == severity)
    if priority:
        q = q.filter(Bug.priority == priority)
    if assignee:
        q = q.filter(Bug.assignee == assignee)
    return newest_first(q)


def list_bugs(**filters):
    return list_bugs_query(**filters).all()


def bugs_in_creation_order():
    """Every bug, oldest first; the order duplicate groups are reported in."""
    return Bug.query.order_by(Bug.created_at.asc(), Bug.id.asc()).all()


def search_bugs(term, status=None, limit=SEARCH_LIMIT):
    """Case-insensitive substring search over titles, at most ``limit`` rows."""
    if status:
        _check_choice("status", status, BUG_STATUSES)
    # LIKE wildcards in the term match literally
    pattern = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    q = Bug.query.filter(Bug.title.ilike(f"%{pattern}%", escape="\\"))
    if status:
        q = q.filter(Bug.status == status)
    return newest_first(q).limit(limit).all()


def get_assignees():
    """Distinct non-empty assignees in order of first appearance."""
    rows = (
        db.session.query(Bug.assignee)
        .filter(Bug.assignee.isnot(None), Bug.assignee != "")
        .order_by(Bug.created_at.asc(), Bug.id.asc())
        .all()
    )
    return list(dict.fromkeys(r[0] for r in rows))


def dashboard_stats():
    """Counters for the dashboard header."""
    by_status = dict(
        db.session.query(Bug.status, func.count(Bug.id)).group_by(Bug.status).all()
    )
    unassigned = Bug.query.filter(or_(Bug.assignee.is_(None), Bug.assignee == "")).count()
    missing_status = Bug.query.filter(or_(Bug.status.is_(None), Bug.status == "")).count()

    return {
        "total": Bug.query.count(),
        "open": by_status.get("open", 0),
        "in_progress": by_status.get("in-progress", 0),
        "resolved": by_status.get("resolved", 0),
        "closed": by_status.get("closed", 0),
        "unassigned": unassigned,
        "critical": Bug.query.filter(Bug.severity == "critical").count(),
        "missing_status": missing_status,
        "missing_assignee": unassigned,
    }


def find_duplicates():
    return detect_duplicates(bugs_in_creation_order())


def collect_issues(bugs):
    """Issue entries for every bug with at least one missing field."""
    entries = []
    for bug in bugs:
        issues = scan_for_issues(bug)
        if issues:
            entries.append({"bug_id": bug.id, "title": bug.title, "issues": issues})
    return entries


# ── Mutations ────────────────────────────────────────────────────────────────

def create_bug(data, reporter=None):
    """Create a new bug in status "open" with no assignee.

    Returns the new Bug instance (uncommitted; caller must commit).

    Raises:
        ValidationError: on missing text fields or bad enum values.
    """
    _check_text("title", data.get("title"))
    _check_length("title", data["title"])
    _check_length("environment", data.get("environment"))
    _check_text("description", data.get("description"))
    severity = data.get("severity", "medium")
    priority = data.get("priority", "medium")
    _check_choice("severity", severity, BUG_SEVERITIES)
    _check_choice("priority", priority, BUG_PRIORITIES)
    _check_list("steps", data.get("steps"))
    _check_list("tags", data.get("tags"))

    bug = Bug(
        title=data["title"],
        description=data["description"],
        severity=severity,
        priority=priority,
        status="open",
        assignee=None,
        reporter=reporter or "Unknown",
        environment=data.get("environment", "") or "",
        steps=coerce_str_list(data.get("steps")),
        expected_result=data.get("expected_result", "") or "",
        actual_result=data.get("actual_result", "") or "",
        tags=coerce_str_list(data.get("tags")),
        ai_analysis=None,
        suggested_fix=None,
    )
    db.session.add(bug)
    db.session.flush()
    logger.info("Bug created id=%s severity=%s reporter=%s", bug.id, bug.severity, bug.reporter)
    return bug


def update_bug(bug, data):
    """Patch title / description / status / assignee / severity / priority.

    Fields absent from ``data`` are left untouched. An empty assignee
    unassigns the bug.

    Raises:
        ValidationError: on bad enum values or blank title / description.
    """
    if "title" in data:
        _check_text("title", data["title"])
        _check_length("title", data["title"])
    if "description" in data:
        _check_text("description", data["description"])
    if "status" in data:
        _check_choice("status", data["status"], BUG_STATUSES)
    if "severity" in data:
        _check_choice("severity", data["severity"], BUG_SEVERITIES)
    if "priority" in data:
        _check_choice("priority", data["priority"], BUG_PRIORITIES)
    if "assignee" in data:
        _check_length("assignee", _normalize_assignee(data["assignee"]))

    for field in _UPDATABLE_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if field == "assignee":
            value = _normalize_assignee(value)
        setattr(bug, field, value)

    db.session.flush()
    return bug


def update_bug_status(bug, status):
    _check_choice("status", status, BUG_STATUSES)
    bug.status = status
    db.session.flush()
    return bug


def set_ai_analysis(bug, analysis):
    bug.ai_analysis = analysis
    db.session.flush()
    return bug


def delete_bug(bug):
    """Delete a bug; its test-case links go with it."""
    db.session.delete(bug)
    db.session.flush()
