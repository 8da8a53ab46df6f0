"""
QA Bug Dashboard
Bug Analyst Assistant.

Single-bug AI operations:
    - analyze: root cause / impact / fix write-up, stored on the bug
    - summarize: 2-3 sentence executive summary (not stored)
    - suggest_assignee_and_status: JSON suggestion, raw text fallback
"""

import logging

from qa_dashboard.ai.parsing import parse_json_reply, to_payload
from qa_dashboard.ai.prompt_registry import PromptRegistry
from qa_dashboard.models.tracking import Bug
from qa_dashboard.services import bug_service

logger = logging.getLogger(__name__)

TEMPERATURE = 0.3
ANALYSIS_FAILED = "Analysis failed"
SIMILAR_BUG_LIMIT = 3


def _numbered(steps):
    return "\n".join(f"{i}. {step}" for i, step in enumerate(steps or [], 1))


class BugAnalyst:
    """AI helper for a single bug record."""

    def __init__(self, gateway, prompt_registry=None):
        self.gateway = gateway
        self.prompt_registry = prompt_registry or PromptRegistry()

    # ── Analysis ──────────────────────────────────────────────────────────

    def analyze(self, bug_id: int, *, user: str = "system") -> dict:
        """
        Run the analysis prompt and store the reply in ``bug.ai_analysis``.

        An empty reply stores "Analysis failed"; the returned ``analysis`` is
        the reply as received (None when empty).
        """
        bug = bug_service.get_bug(bug_id)
        messages = self.prompt_registry.render(
            "bug_analysis",
            title=bug.title,
            description=bug.description,
            severity=bug.severity,
            priority=bug.priority,
            environment=bug.environment or "",
            steps=_numbered(bug.steps),
            expected_result=bug.expected_result or "",
            actual_result=bug.actual_result or "",
            tags=", ".join(bug.tags or []),
        )
        reply = self.gateway.chat(messages, temperature=TEMPERATURE,
                                  purpose="bug_analysis", user=user)
        analysis = reply["content"] or None
        bug_service.set_ai_analysis(bug, analysis or ANALYSIS_FAILED)
        logger.info("Bug %s analysed (%d chars)", bug.id, len(analysis or ""))
        return {"bug_id": bug.id, "analysis": analysis, "bug": bug.to_dict()}

    # ── Summary ───────────────────────────────────────────────────────────

    def summarize(self, bug_id: int, *, user: str = "system") -> dict:
        bug = bug_service.get_bug(bug_id)
        messages = self.prompt_registry.render(
            "bug_summary",
            title=bug.title,
            description=bug.description,
            severity=bug.severity,
            priority=bug.priority,
            status=bug.status,
            environment=bug.environment or "",
        )
        reply = self.gateway.chat(messages, temperature=TEMPERATURE,
                                  purpose="bug_summary", user=user)
        return {"bug_id": bug.id, "summary": reply["content"] or None}

    # ── Assignee / status suggestion ──────────────────────────────────────

    @staticmethod
    def _similar_bugs(bug, all_bugs):
        """Bugs sharing a tag or the severity with ``bug`` (itself included), newest first."""
        tags = set(bug.tags or [])
        similar = [
            b for b in all_bugs
            if tags.intersection(b.tags or []) or b.severity == bug.severity
        ]
        return similar[:SIMILAR_BUG_LIMIT]

    def suggest_assignee_and_status(self, bug_id: int, *, user: str = "system"):
        """
        Ask for {"suggestedStatus", "suggestedAssignee", "reasoning"}.

        Returns the decoded JSON, or {"rawSuggestion": text} when the reply
        is not valid JSON.
        """
        bug = bug_service.get_bug(bug_id)
        all_bugs = bug_service.newest_first(Bug.query).all()
        assignees = list(dict.fromkeys(b.assignee for b in all_bugs if b.assignee))

        similar_lines = "\n".join(
            f"- {b.title} ({b.status}, assigned to {b.assignee or 'unassigned'})"
            for b in self._similar_bugs(bug, all_bugs)
        )
        template = self.prompt_registry.require("assignee_suggestion")
        messages = template.render(
            title=bug.title,
            description=bug.description,
            severity=bug.severity,
            priority=bug.priority,
            environment=bug.environment or "",
            status=bug.status or "Not set",
            assignee=bug.assignee or "Not assigned",
            assignees=", ".join(assignees),
            similar_bugs=similar_lines,
        )
        reply = self.gateway.chat(messages, temperature=TEMPERATURE,
                                  purpose="assignee_suggestion", user=user)
        return to_payload(parse_json_reply(reply["content"], {}), template.fallback_key)
