"""QA report service layer. Reports are insert-only."""
import logging

from qa_dashboard.models import db
from qa_dashboard.models.tracking import QAReport, REPORT_GENERATOR

logger = logging.getLogger(__name__)

RECENT_LIMIT = 10


def list_reports(limit=RECENT_LIMIT):
    """Most recent reports by report date."""
    return (
        QAReport.query
        .order_by(QAReport.report_date.desc(), QAReport.id.desc())
        .limit(limit)
        .all()
    )


def create_report(*, title, summary, bugs_found, tests_run, tests_passed,
                  tests_failed, coverage, recommendations, ai_insights=None):
    """Insert a report row (uncommitted). ``generated_by`` is always the AI label."""
    report = QAReport(
        title=title,
        summary=summary,
        bugs_found=bugs_found,
        tests_run=tests_run,
        tests_passed=tests_passed,
        tests_failed=tests_failed,
        coverage=coverage,
        ai_insights=ai_insights,
        recommendations=list(recommendations),
        generated_by=REPORT_GENERATOR,
    )
    db.session.add(report)
    db.session.flush()
    logger.info("QA report created id=%s coverage=%s%%", report.id, coverage)
    return report
