"""
QA Bug Dashboard
AI usage tracking.

Models:
    - AIUsageLog: one row per completion call (tokens, cost, latency, outcome)

Rows are added by ``LLMGateway`` inside the caller's transaction.
"""

from datetime import datetime, timezone

from qa_dashboard.models import db


AI_PURPOSES = (
    "bug_analysis", "bug_scan", "assignee_suggestion",
    "bug_summary", "qa_report", "test_case_suggestion",
)

# USD per 1M tokens: (prompt, completion)
MODEL_PRICES = {
    "gpt-4.1-nano": (0.10, 0.40),
    "gpt-4.1-mini": (0.40, 1.60),
    "gpt-4o-mini": (0.15, 0.60),
    "gpt-4o": (2.50, 10.00),
    "claude-3-5-haiku-20241022": (0.80, 4.00),
    "claude-3-5-sonnet-20241022": (3.00, 15.00),
}


def calculate_cost(model: str, prompt_tokens: int, completion_tokens: int) -> float:
    """USD cost of one call; models without a price (local stub, custom endpoints) cost 0."""
    prompt_price, completion_price = MODEL_PRICES.get(model, (0.0, 0.0))
    return (prompt_tokens * prompt_price + completion_tokens * completion_price) / 1_000_000


class AIUsageLog(db.Model):
    __tablename__ = "ai_usage_logs"

    id = db.Column(db.Integer, primary_key=True)
    provider = db.Column(db.String(30), nullable=False, comment="openai | anthropic | local")
    model = db.Column(db.String(80), nullable=False)

    prompt_tokens = db.Column(db.Integer, default=0)
    completion_tokens = db.Column(db.Integer, default=0)
    total_tokens = db.Column(db.Integer, default=0)
    cost_usd = db.Column(db.Float, default=0.0)
    latency_ms = db.Column(db.Integer, default=0)

    user = db.Column(db.String(150), default="system", comment="Caller e-mail")
    purpose = db.Column(db.String(100), default="", comment="One of AI_PURPOSES")

    success = db.Column(db.Boolean, default=True)
    error_message = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "provider": self.provider,
            "model": self.model,
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
            "cost_usd": round(self.cost_usd or 0.0, 6),
            "latency_ms": self.latency_ms,
            "user": self.user,
            "purpose": self.purpose,
            "success": self.success,
            "error_message": self.error_message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        status = "ok" if self.success else "failed"
        return f"<AIUsageLog {self.id}: {self.purpose} via {self.provider}/{self.model} {status}>"
