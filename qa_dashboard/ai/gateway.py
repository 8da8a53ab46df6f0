"""
QA Bug Dashboard
LLM Gateway.

One gateway instance per Flask app, built from config in ``create_app`` and
stored in ``app.extensions["llm_gateway"]``. Assistants receive it through
their constructor; nothing in this module holds a process-wide client.

    - Providers: OpenAI-compatible (api key + optional base URL), Anthropic,
      local deterministic stub (dev/test, no key required)
    - Single attempt per call: provider errors surface as AIServiceError
    - Token / cost / latency logged to ai_usage_logs (flush only)

Usage:
    gw = LLMGateway.from_config(app.config)
    result = gw.chat(
        [{"role": "user", "content": "Summarise this bug..."}],
        temperature=0.3,
        purpose="bug_summary",
    )
    result["content"]
"""

import json
import logging
import time
from abc import ABC, abstractmethod

from qa_dashboard.core.exceptions import AIServiceError
from qa_dashboard.models import db
from qa_dashboard.models.ai import AIUsageLog, calculate_cost

logger = logging.getLogger(__name__)

DEFAULT_CHAT_MODEL = "gpt-4.1-nano"
DEFAULT_ANTHROPIC_MODEL = "claude-3-5-haiku-20241022"


# ── Provider Abstract Base ────────────────────────────────────────────────────

class LLMProvider(ABC):
    """Abstract interface for completion providers."""

    name = "abstract"

    @abstractmethod
    def chat(self, messages: list, model: str, **kwargs) -> dict:
        """
        Send a chat completion request.

        Args:
            messages: List of {"role": "...", "content": "..."} dicts.
            model: Model identifier string.
            **kwargs: temperature, max_tokens.

        Returns:
            dict with keys: content, prompt_tokens, completion_tokens, model
        """
        ...


# ── OpenAI Provider ───────────────────────────────────────────────────────────

class OpenAIProvider(LLMProvider):
    """OpenAI chat completions, or any OpenAI-compatible endpoint via base_url."""

    name = "openai"

    def __init__(self, api_key: str, base_url: str | None = None):
        self.api_key = api_key
        self.base_url = base_url or None
        self._client = None

    def _get_client(self):
        if self._client is None:
            import openai
            self._client = openai.OpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    def chat(self, messages: list, model: str = DEFAULT_CHAT_MODEL, **kwargs) -> dict:
        client = self._get_client()
        params = {
            "model": model,
            "messages": messages,
            "temperature": kwargs.get("temperature", 0.3),
        }
        if kwargs.get("max_tokens"):
            params["max_tokens"] = kwargs["max_tokens"]

        response = client.chat.completions.create(**params)
        choice = response.choices[0]
        usage = response.usage
        return {
            "content": choice.message.content,
            "prompt_tokens": usage.prompt_tokens if usage else 0,
            "completion_tokens": usage.completion_tokens if usage else 0,
            "model": model,
        }


# ── Anthropic Provider ────────────────────────────────────────────────────────

class AnthropicProvider(LLMProvider):
    """Claude API (Anthropic) provider."""

    name = "anthropic"

    def __init__(self, api_key: str):
        self.api_key = api_key
        self._client = None

    def _get_client(self):
        if self._client is None:
            import anthropic
            self._client = anthropic.Anthropic(api_key=self.api_key)
        return self._client

    def chat(self, messages: list, model: str = DEFAULT_ANTHROPIC_MODEL, **kwargs) -> dict:
        client = self._get_client()

        # System prompt travels outside the message list
        system_msg = ""
        chat_messages = []
        for m in messages:
            if m["role"] == "system":
                system_msg = m["content"]
            else:
                chat_messages.append(m)

        params = {
            "model": model,
            "messages": chat_messages,
            "max_tokens": kwargs.get("max_tokens") or 2048,
            "temperature": kwargs.get("temperature", 0.3),
        }
        if system_msg:
            params["system"] = system_msg

        response = client.messages.create(**params)
        text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        return {
            "content": text,
            "prompt_tokens": response.usage.input_tokens,
            "completion_tokens": response.usage.output_tokens,
            "model": model,
        }


# ── Local Stub Provider (for dev/test without API keys) ──────────────────────

class LocalStubProvider(LLMProvider):
    """
    Local stub that returns deterministic responses for dev/testing.
    No API key required. The reply shape follows the prompt: JSON for the
    assignee and test-case prompts, plain text for everything else.
    """

    name = "local"

    def chat(self, messages: list, model: str = "local-stub", **kwargs) -> dict:
        user_msg = ""
        for m in reversed(messages):
            if m["role"] == "user":
                user_msg = m["content"]
                break

        content = self._generate_stub_response(user_msg)
        return {
            "content": content,
            "prompt_tokens": len(user_msg.split()) * 2,  # rough estimate
            "completion_tokens": len(content.split()) * 2,
            "model": "local-stub",
        }

    @staticmethod
    def _generate_stub_response(user_msg: str) -> str:
        lower = user_msg.lower()

        if "suggestedstatus" in lower:
            return json.dumps({
                "suggestedStatus": "in-progress",
                "suggestedAssignee": "qa-lead",
                "reasoning": "Reproducible defect with clear steps; route to the team lead for triage.",
            })

        if "test cases for this feature" in lower:
            return json.dumps([
                {
                    "name": "Happy path",
                    "description": "Feature works with valid input",
                    "steps": ["Open the feature", "Enter valid data", "Submit"],
                    "expectedResult": "Operation succeeds",
                    "priority": "high",
                    "category": "functional",
                },
                {
                    "name": "Empty input",
                    "description": "Feature rejects empty input",
                    "steps": ["Open the feature", "Submit without data"],
                    "expectedResult": "Validation message is shown",
                    "priority": "medium",
                    "category": "validation",
                },
            ])

        if "qa report summary" in lower:
            return (
                "Overall quality is acceptable. Critical bugs remain the main release risk. "
                "Prioritise failing test areas before sign-off."
            )

        if "bug tracking data" in lower:
            return (
                "1. Several reports lack an assignee.\n"
                "2. Merge duplicate reports.\n"
                "3. Require repro steps on every new bug."
            )

        if "executive summary" in lower:
            return "The reported defect affects a user-facing flow and is tracked for resolution."

        return (
            "Root cause: input validation gap.\n"
            "Impact: moderate.\n"
            "Fix: validate input before submission.\n"
            "Prevention: add regression tests."
        )


# ── LLM Gateway (Main Interface) ─────────────────────────────────────────────

PROVIDER_NAMES = ("openai", "anthropic", "local")


class LLMGateway:
    """
    Central entry point for completion calls.

    Wraps exactly one provider. Every call is logged to AIUsageLog; a
    provider exception is logged as a failed call and re-raised as
    AIServiceError. No retry, no fallback provider.
    """

    def __init__(self, provider: LLMProvider, model: str | None = None):
        self.provider = provider
        self.model = model or (
            DEFAULT_ANTHROPIC_MODEL if provider.name == "anthropic" else DEFAULT_CHAT_MODEL
        )

    @classmethod
    def from_config(cls, config) -> "LLMGateway":
        """
        Build the gateway from a Flask config mapping.

        LLM_PROVIDER selects the provider explicitly. When unset, OpenAI is
        used if OPENAI_API_KEY is present, then Anthropic, then the local stub.
        """
        name = (config.get("LLM_PROVIDER") or "").strip().lower()
        if not name:
            if config.get("OPENAI_API_KEY"):
                name = "openai"
            elif config.get("ANTHROPIC_API_KEY"):
                name = "anthropic"
            else:
                name = "local"

        if name == "openai":
            provider = OpenAIProvider(
                api_key=config.get("OPENAI_API_KEY", ""),
                base_url=config.get("OPENAI_BASE_URL"),
            )
        elif name == "anthropic":
            provider = AnthropicProvider(api_key=config.get("ANTHROPIC_API_KEY", ""))
        elif name == "local":
            provider = LocalStubProvider()
        else:
            raise ValueError(f"Unknown LLM_PROVIDER '{name}'. Expected one of {PROVIDER_NAMES}")

        gateway = cls(provider, model=config.get("LLM_MODEL"))
        logger.info("LLM gateway ready: provider=%s model=%s", provider.name, gateway.model)
        return gateway

    def chat(
        self,
        messages: list,
        *,
        temperature: float,
        purpose: str = "",
        user: str = "system",
        model: str | None = None,
        **kwargs,
    ) -> dict:
        """
        Send one chat completion request.

        Returns:
            dict: {content, prompt_tokens, completion_tokens, model, cost_usd,
                   latency_ms, provider}. ``content`` is "" when the model
                   returned nothing.

        Raises:
            AIServiceError: when the provider call fails.
        """
        model = model or self.model
        start_time = time.time()
        try:
            result = self.provider.chat(messages, model, temperature=temperature, **kwargs)
        except Exception as e:
            latency_ms = int((time.time() - start_time) * 1000)
            logger.error("LLM call failed: %s", e,
                         extra={"purpose": purpose, "provider": self.provider.name, "model": model})
            usage = self._log_usage(
                provider=self.provider.name, model=model,
                prompt_tokens=0, completion_tokens=0,
                cost_usd=0.0, latency_ms=latency_ms,
                user=user, purpose=purpose,
                success=False, error_message=str(e),
            )
            raise AIServiceError(self.provider.name, str(e), usage=usage) from e

        latency_ms = int((time.time() - start_time) * 1000)
        cost = calculate_cost(result["model"], result["prompt_tokens"], result["completion_tokens"])
        result["content"] = result.get("content") or ""
        result["cost_usd"] = cost
        result["latency_ms"] = latency_ms
        result["provider"] = self.provider.name

        self._log_usage(
            provider=self.provider.name, model=result["model"],
            prompt_tokens=result["prompt_tokens"],
            completion_tokens=result["completion_tokens"],
            cost_usd=cost, latency_ms=latency_ms,
            user=user, purpose=purpose, success=True,
        )
        logger.debug("LLM call ok: tokens=%d+%d latency=%dms",
                     result["prompt_tokens"], result["completion_tokens"], latency_ms,
                     extra={"purpose": purpose, "provider": self.provider.name, "model": result["model"]})
        return result

    # ── Internal Logging ──────────────────────────────────────────────────

    @staticmethod
    def _log_usage(*, provider, model, prompt_tokens, completion_tokens,
                   cost_usd, latency_ms, user, purpose, success, error_message=None):
        """Add a usage row to the caller's transaction (flush, no commit).

        Returns the row's column values.
        """
        fields = dict(
            provider=provider, model=model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
            cost_usd=cost_usd, latency_ms=latency_ms,
            user=user, purpose=purpose,
            success=success, error_message=error_message,
        )
        db.session.add(AIUsageLog(**fields))
        db.session.flush()
        return fields
