"""
QA Bug Dashboard
AI Blueprint.

Endpoints:
    BUG          /api/v1/ai/bugs/<id>/analyze            POST  (stores ai_analysis)
                 /api/v1/ai/bugs/<id>/summary            POST
                 /api/v1/ai/bugs/<id>/suggest-assignee   POST

    SCAN         /api/v1/ai/scan                         POST

    REPORTS      /api/v1/ai/reports                      POST  (inserts a QAReport)

    TEST CASES   /api/v1/ai/test-cases/suggest           POST  body: feature, description

    USAGE        /api/v1/ai/usage                        GET

    PROMPTS      /api/v1/ai/prompts                      GET   (loaded templates)
"""

import logging

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy import func

from qa_dashboard.ai.assistants import BugAnalyst, BugScanner, ReportGenerator, TestCaseGenerator
from qa_dashboard.auth import current_user_email
from qa_dashboard.blueprints import json_body, paginate_query
from qa_dashboard.models import db
from qa_dashboard.models.ai import AI_PURPOSES, AIUsageLog
from qa_dashboard.utils.helpers import db_commit_or_error

logger = logging.getLogger(__name__)

ai_bp = Blueprint("ai", __name__, url_prefix="/api/v1/ai")

# ── Rate limiting ─────────────────────────────────────────────────────────
from qa_dashboard import limiter  # noqa: E402


def _ai_rate_limit():
    return current_app.config.get("AI_RATE_LIMIT", "30/minute")


_ai_generate_limit = limiter.shared_limit(_ai_rate_limit, scope="ai_generate")


# ── Per-app collaborators (built in create_app) ──────────────────────────

def _gateway():
    return current_app.extensions["llm_gateway"]


def _prompts():
    return current_app.extensions["prompt_registry"]


def _user():
    return current_user_email() or "system"


# ═════════════════════════════════════════════════════════════════════════════
# SINGLE BUG
# ═════════════════════════════════════════════════════════════════════════════

@ai_bp.route("/bugs/<int:bug_id>/analyze", methods=["POST"])
@_ai_generate_limit
def analyze_bug(bug_id):
    """AI root cause / impact analysis, saved on the bug."""
    result = BugAnalyst(_gateway(), _prompts()).analyze(bug_id, user=_user())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(result)


@ai_bp.route("/bugs/<int:bug_id>/summary", methods=["POST"])
@_ai_generate_limit
def summarize_bug(bug_id):
    result = BugAnalyst(_gateway(), _prompts()).summarize(bug_id, user=_user())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(result)


@ai_bp.route("/bugs/<int:bug_id>/suggest-assignee", methods=["POST"])
@_ai_generate_limit
def suggest_assignee(bug_id):
    """Suggested status + assignee; {"rawSuggestion": ...} when the reply is not JSON."""
    result = BugAnalyst(_gateway(), _prompts()).suggest_assignee_and_status(bug_id, user=_user())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(result)


# ═════════════════════════════════════════════════════════════════════════════
# FLEET
# ═════════════════════════════════════════════════════════════════════════════

@ai_bp.route("/scan", methods=["POST"])
@_ai_generate_limit
def scan_bugs():
    result = BugScanner(_gateway(), _prompts()).scan(user=_user())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(result)


@ai_bp.route("/reports", methods=["POST"])
@_ai_generate_limit
def generate_report():
    result = ReportGenerator(_gateway(), _prompts()).generate(user=_user())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(result), 201


@ai_bp.route("/test-cases/suggest", methods=["POST"])
@_ai_generate_limit
def suggest_test_cases():
    """Suggested test cases; {"rawSuggestions": ...} when the reply is not JSON."""
    data = json_body()
    result = TestCaseGenerator(_gateway(), _prompts()).suggest(
        data.get("feature"), data.get("description", ""), user=_user(),
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(result)


# ═════════════════════════════════════════════════════════════════════════════
# USAGE
# ═════════════════════════════════════════════════════════════════════════════

@ai_bp.route("/usage", methods=["GET"])
def usage():
    """Recent completion calls plus token / cost totals. Filter: purpose."""
    q = AIUsageLog.query
    purpose = request.args.get("purpose")
    if purpose and purpose not in AI_PURPOSES:
        return jsonify({"error": f"Unknown purpose '{purpose}'", "allowed": list(AI_PURPOSES)}), 400
    if purpose:
        q = q.filter(AIUsageLog.purpose == purpose)

    totals = q.with_entities(
        func.count(AIUsageLog.id),
        func.coalesce(func.sum(AIUsageLog.total_tokens), 0),
        func.coalesce(func.sum(AIUsageLog.cost_usd), 0.0),
    ).one()

    logs, total = paginate_query(
        q.order_by(AIUsageLog.created_at.desc(), AIUsageLog.id.desc()), default_limit=50,
    )
    return jsonify({
        "items": [log.to_dict() for log in logs],
        "total": total,
        "summary": {
            "calls": totals[0],
            "total_tokens": int(totals[1]),
            "cost_usd": round(float(totals[2]), 6),
        },
    })


@ai_bp.route("/prompts", methods=["GET"])
def list_prompts():
    templates = _prompts().list_templates()
    return jsonify({"items": templates, "total": len(templates)})
