"""
QA Bug Dashboard
Bug Scanner Assistant.

Fleet-wide scan:
    1. Missing-field issues per bug (newest first)
    2. Duplicate groups (title + description similarity)
    3. One completion call for workflow recommendations
Nothing is persisted.
"""

import logging

from qa_dashboard.ai.prompt_registry import PromptRegistry
from qa_dashboard.models.tracking import Bug
from qa_dashboard.services import bug_service

logger = logging.getLogger(__name__)

TEMPERATURE = 0.3


class BugScanner:
    """Scans every bug for quality problems and asks for recommendations."""

    def __init__(self, gateway, prompt_registry=None):
        self.gateway = gateway
        self.prompt_registry = prompt_registry or PromptRegistry()

    def scan(self, *, user: str = "system") -> dict:
        """
        Returns:
            dict: total_bugs, issues, duplicates, ai_recommendations, summary
        """
        bugs = bug_service.newest_first(Bug.query).all()
        issues = bug_service.collect_issues(bugs)
        duplicates = bug_service.find_duplicates()

        def count_status(status):
            return sum(1 for b in bugs if b.status == status)

        unassigned = sum(1 for b in bugs if not b.assignee)

        messages = self.prompt_registry.render(
            "bug_scan",
            total_bugs=len(bugs),
            issue_lines="\n".join(
                f'- Bug "{entry["title"]}": {", ".join(entry["issues"])}' for entry in issues
            ),
            duplicate_count=len(duplicates),
            duplicate_lines="\n".join(f"- {d['type']}: {d['value']}" for d in duplicates),
            open_count=count_status("open"),
            in_progress_count=count_status("in-progress"),
            resolved_count=count_status("resolved"),
            closed_count=count_status("closed"),
            unassigned_count=unassigned,
        )
        reply = self.gateway.chat(messages, temperature=TEMPERATURE,
                                  purpose="bug_scan", user=user)

        logger.info("Bug scan: %d bugs, %d with issues, %d duplicate groups",
                    len(bugs), len(issues), len(duplicates))
        return {
            "total_bugs": len(bugs),
            "issues": issues,
            "duplicates": duplicates,
            "ai_recommendations": reply["content"] or None,
            "summary": {
                "total_issues": len(issues),
                "duplicate_count": len(duplicates),
                "unassigned_count": unassigned,
                "missing_status_count": sum(1 for b in bugs if not b.status),
            },
        }
