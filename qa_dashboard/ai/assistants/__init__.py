"""
QA Bug Dashboard
AI Assistants package.

Assistants:
    - bug_analyst: analysis, executive summary, assignee/status suggestion
    - bug_scanner: fleet-wide issue + duplicate scan with recommendations
    - report_generator: QA report insights, persisted as QAReport
    - test_case_generator: feature → suggested test cases
"""

from qa_dashboard.ai.assistants.bug_analyst import BugAnalyst
from qa_dashboard.ai.assistants.bug_scanner import BugScanner
from qa_dashboard.ai.assistants.report_generator import ReportGenerator
from qa_dashboard.ai.assistants.test_case_generator import TestCaseGenerator
