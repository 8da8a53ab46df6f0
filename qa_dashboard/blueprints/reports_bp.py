"""
QA Bug Dashboard
Reports Blueprint (read-only; reports are created via POST /api/v1/ai/reports).

Endpoints:
    GET /api/v1/reports          — 10 most recent reports
    GET /api/v1/reports/<id>     — Detail
"""

from flask import Blueprint, jsonify

from qa_dashboard.models.tracking import QAReport
from qa_dashboard.services import report_service
from qa_dashboard.utils.helpers import get_or_404

reports_bp = Blueprint("reports", __name__, url_prefix="/api/v1/reports")


@reports_bp.route("", methods=["GET"])
def list_reports():
    reports = report_service.list_reports()
    return jsonify({"items": [r.to_dict() for r in reports], "total": len(reports)})


@reports_bp.route("/<int:report_id>", methods=["GET"])
def get_report(report_id):
    report, err = get_or_404(QAReport, report_id, label="Report")
    if err:
        return err
    return jsonify(report.to_dict())
