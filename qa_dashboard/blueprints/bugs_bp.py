"""
QA Bug Dashboard
Bugs Blueprint.

Endpoints:
    GET    /api/v1/bugs                      — List (status, severity, priority, assignee filters)
    POST   /api/v1/bugs                      — Create (status forced to open)
    GET    /api/v1/bugs/<id>                 — Detail
    PUT    /api/v1/bugs/<id>                 — Update title/description/status/assignee/severity/priority
    PATCH  /api/v1/bugs/<id>/status          — Status-only update
    DELETE /api/v1/bugs/<id>                 — Delete
    GET    /api/v1/bugs/<id>/issues          — Missing-field issues for one bug

    GET    /api/v1/bugs/search?q=&status=    — Title search (max 20)
    GET    /api/v1/bugs/assignees            — Distinct assignees
    GET    /api/v1/bugs/stats                — Dashboard counters
    GET    /api/v1/bugs/duplicates           — Duplicate groups
"""

import logging

from flask import Blueprint, jsonify, request

from qa_dashboard.auth import current_user_email
from qa_dashboard.blueprints import json_body, paginate_query
from qa_dashboard.models.tracking import Bug
from qa_dashboard.services import bug_service
from qa_dashboard.services.bug_quality import scan_for_issues
from qa_dashboard.utils.helpers import db_commit_or_error, get_or_404

logger = logging.getLogger(__name__)

bugs_bp = Blueprint("bugs", __name__, url_prefix="/api/v1/bugs")


# ═════════════════════════════════════════════════════════════════════════════
# CRUD
# ═════════════════════════════════════════════════════════════════════════════

@bugs_bp.route("", methods=["GET"])
def list_bugs():
    """
    List bugs, newest first.
    Filters (AND-combined): status, severity, priority, assignee
    """
    q = bug_service.list_bugs_query(
        status=request.args.get("status"),
        severity=request.args.get("severity"),
        priority=request.args.get("priority"),
        assignee=request.args.get("assignee"),
    )
    bugs, total = paginate_query(q)
    return jsonify({"items": [b.to_dict() for b in bugs], "total": total})


@bugs_bp.route("", methods=["POST"])
def create_bug():
    """Create a bug. Reporter is the caller's e-mail, or "Unknown"."""
    bug = bug_service.create_bug(json_body(), reporter=current_user_email())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(bug.to_dict()), 201


@bugs_bp.route("/<int:bug_id>", methods=["GET"])
def get_bug(bug_id):
    bug, err = get_or_404(Bug, bug_id)
    if err:
        return err
    return jsonify(bug.to_dict())


@bugs_bp.route("/<int:bug_id>", methods=["PUT"])
def update_bug(bug_id):
    bug, err = get_or_404(Bug, bug_id)
    if err:
        return err

    bug_service.update_bug(bug, json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(bug.to_dict())


@bugs_bp.route("/<int:bug_id>/status", methods=["PATCH"])
def update_bug_status(bug_id):
    bug, err = get_or_404(Bug, bug_id)
    if err:
        return err

    status = json_body().get("status")
    if not status:
        return jsonify({"error": "status is required"}), 400

    bug_service.update_bug_status(bug, status)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(bug.to_dict())


@bugs_bp.route("/<int:bug_id>", methods=["DELETE"])
def delete_bug(bug_id):
    bug, err = get_or_404(Bug, bug_id)
    if err:
        return err

    bug_service.delete_bug(bug)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Bug deleted"}), 200


@bugs_bp.route("/<int:bug_id>/issues", methods=["GET"])
def bug_issues(bug_id):
    bug, err = get_or_404(Bug, bug_id)
    if err:
        return err
    return jsonify({"bug_id": bug.id, "issues": scan_for_issues(bug)})


# ═════════════════════════════════════════════════════════════════════════════
# LOOKUPS & AGGREGATES
# ═════════════════════════════════════════════════════════════════════════════

@bugs_bp.route("/search", methods=["GET"])
def search_bugs():
    term = (request.args.get("q") or "").strip()
    if not term:
        return jsonify({"error": "q is required"}), 400

    bugs = bug_service.search_bugs(term, status=request.args.get("status"))
    return jsonify({"items": [b.to_dict() for b in bugs], "total": len(bugs)})


@bugs_bp.route("/assignees", methods=["GET"])
def list_assignees():
    return jsonify({"assignees": bug_service.get_assignees()})


@bugs_bp.route("/stats", methods=["GET"])
def dashboard_stats():
    return jsonify(bug_service.dashboard_stats())


@bugs_bp.route("/duplicates", methods=["GET"])
def list_duplicates():
    groups = bug_service.find_duplicates()
    return jsonify({"items": groups, "total": len(groups)})
