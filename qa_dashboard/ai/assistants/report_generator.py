"""
QA Bug Dashboard
QA Report Generator.

Counts bugs and test cases, asks the model for insights, and inserts a
QAReport row. coverage = passed / total_tests * 100 rounded half up, 0 with no tests.
"""

import logging
import math
from datetime import datetime, timezone

from qa_dashboard.ai.prompt_registry import PromptRegistry
from qa_dashboard.models.tracking import Bug
from qa_dashboard.services import report_service, test_case_service

logger = logging.getLogger(__name__)

TEMPERATURE = 0.3
SUMMARY_FALLBACK = "Report generation failed"

DEFAULT_RECOMMENDATIONS = [
    "Focus on critical and high severity bugs",
    "Increase test coverage in failing areas",
    "Review and update test cases regularly",
]


def coverage_percent(passed: int, total: int) -> int:
    if total <= 0:
        return 0
    # half-up rounding
    return math.floor(passed / total * 100 + 0.5)


class ReportGenerator:
    """Builds and stores a QA report."""

    def __init__(self, gateway, prompt_registry=None):
        self.gateway = gateway
        self.prompt_registry = prompt_registry or PromptRegistry()

    def generate(self, *, user: str = "system") -> dict:
        """
        Returns:
            dict: report_id, insights, report
        """
        bugs = Bug.query.all()
        total_tests, passed, failed = test_case_service.status_counts()

        def count(attr, value):
            return sum(1 for b in bugs if getattr(b, attr) == value)

        messages = self.prompt_registry.render(
            "qa_report",
            total_bugs=len(bugs),
            open_bugs=count("status", "open"),
            critical_bugs=count("severity", "critical"),
            total_tests=total_tests,
            passed_tests=passed,
            failed_tests=failed,
            critical_count=count("severity", "critical"),
            high_count=count("severity", "high"),
            medium_count=count("severity", "medium"),
            low_count=count("severity", "low"),
        )
        reply = self.gateway.chat(messages, temperature=TEMPERATURE,
                                  purpose="qa_report", user=user)
        insights = reply["content"] or None

        today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        report = report_service.create_report(
            title=f"QA Report - {today}",
            summary=insights or SUMMARY_FALLBACK,
            bugs_found=len(bugs),
            tests_run=total_tests,
            tests_passed=passed,
            tests_failed=failed,
            coverage=coverage_percent(passed, total_tests),
            ai_insights=insights,
            recommendations=DEFAULT_RECOMMENDATIONS,
        )
        return {"report_id": report.id, "insights": insights, "report": report.to_dict()}
