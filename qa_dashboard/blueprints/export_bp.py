"""
QA Bug Dashboard
Export Blueprint.

Endpoints:
    GET /api/v1/export/<dataset>?format=csv|json|xlsx
        dataset: bugs | test-cases | reports
"""

import io
import logging

from flask import Blueprint, jsonify, request, send_file

from qa_dashboard.services import bug_service, export_service, report_service, test_case_service

logger = logging.getLogger(__name__)

export_bp = Blueprint("export", __name__, url_prefix="/api/v1/export")


def _records(dataset):
    if dataset == "bugs":
        return [b.to_dict() for b in bug_service.list_bugs()]
    if dataset == "test-cases":
        return [tc.to_dict() for tc in test_case_service.list_test_cases()]
    return [r.to_dict() for r in report_service.list_reports()]


@export_bp.route("/<dataset>", methods=["GET"])
def export_dataset(dataset):
    """Download a dataset as an attachment. Empty dataset → 400."""
    if dataset not in export_service.DATASETS:
        return jsonify({"error": f"Unknown dataset '{dataset}'"}), 404

    fmt = (request.args.get("format") or "csv").lower()
    if fmt not in export_service.FORMATS:
        return jsonify({
            "error": f"Unsupported format '{fmt}'",
            "allowed": sorted(export_service.FORMATS),
        }), 400

    records = _records(dataset)
    _, columns = export_service.DATASETS[dataset]
    filename = export_service.export_filename(dataset, fmt)

    if fmt == "csv":
        buf = io.BytesIO(export_service.to_csv(records, columns).encode("utf-8"))
    elif fmt == "json":
        buf = io.BytesIO(export_service.to_json(records).encode("utf-8"))
    else:
        buf = export_service.to_xlsx(records, columns, sheet_title=dataset)

    logger.info("Export %s as %s (%d rows)", dataset, fmt, len(records))
    return send_file(
        buf,
        mimetype=export_service.FORMATS[fmt],
        as_attachment=True,
        download_name=filename,
    )
