"""
QA Bug Dashboard
Prompt Registry.

One YAML file per template under ``qa_dashboard/ai/prompts/``:

    name: bug_summary
    version: v1
    description: ...
    metadata:
      result: text | json
      fallback_key: rawSuggestion      # json templates only
    system: ...                        # optional
    user: |
      Title: {{title}}

``{{name}}`` placeholders are filled from keyword arguments at render time;
placeholders without a value stay in the text untouched.

Usage:
    registry = PromptRegistry()
    messages = registry.render("bug_summary", title="Login fails", ...)
"""

import logging
import re
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

PROMPTS_DIR = Path(__file__).parent / "prompts"

_PLACEHOLDER_RE = re.compile(r"\{\{\s*(\w+)\s*\}\}")

PREVIEW_CHARS = 200


def fill_placeholders(text: str, values: dict) -> str:
    return _PLACEHOLDER_RE.sub(
        lambda m: str(values[m.group(1)]) if m.group(1) in values else m.group(0),
        text,
    )


class PromptTemplate:
    """A named, versioned system + user prompt pair."""

    def __init__(self, name: str, version: str, user: str, system: str = "",
                 description: str = "", metadata: dict | None = None):
        self.name = name
        self.version = version
        self.user = user
        self.system = system
        self.description = description
        self.metadata = metadata or {}

    @classmethod
    def from_yaml(cls, path: Path) -> "PromptTemplate | None":
        with open(path, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
        if not isinstance(data, dict):
            return None
        return cls(
            name=data.get("name") or path.stem,
            version=str(data.get("version", "v1")),
            user=data.get("user") or "",
            system=data.get("system") or "",
            description=data.get("description") or "",
            metadata=data.get("metadata") or {},
        )

    @property
    def fallback_key(self) -> str | None:
        """Response key for unparseable replies of a JSON template."""
        return self.metadata.get("fallback_key")

    def render(self, **values) -> list[dict]:
        """Chat messages for this template; blank parts are left out."""
        messages = []
        for role, text in (("system", self.system), ("user", self.user)):
            content = fill_placeholders(text, values)
            if content.strip():
                messages.append({"role": role, "content": content})
        return messages

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "result": self.metadata.get("result", "text"),
            "system_preview": self.system[:PREVIEW_CHARS],
            "user_preview": self.user[:PREVIEW_CHARS],
        }


class PromptRegistry:
    """Templates from one directory, looked up by (name, version)."""

    def __init__(self, prompts_dir: str | Path | None = None):
        self.prompts_dir = Path(prompts_dir) if prompts_dir else PROMPTS_DIR
        if not self.prompts_dir.is_dir():
            raise FileNotFoundError(f"Prompts directory not found: {self.prompts_dir}")

        self._templates: dict[tuple[str, str], PromptTemplate] = {}
        for path in sorted(self.prompts_dir.glob("*.yaml")):
            tpl = PromptTemplate.from_yaml(path)
            if tpl is None:
                logger.warning("Skipping prompt file without a mapping: %s", path.name)
                continue
            self._templates[(tpl.name, tpl.version)] = tpl
        logger.debug("Loaded %d prompt templates from %s", len(self._templates), self.prompts_dir)

    def get(self, name: str, version: str = "v1") -> PromptTemplate | None:
        return self._templates.get((name, version))

    def require(self, name: str, version: str = "v1") -> PromptTemplate:
        tpl = self.get(name, version)
        if tpl is None:
            raise KeyError(f"Prompt template not found: {name} {version}")
        return tpl

    def render(self, name: str, /, version: str = "v1", **values) -> list[dict]:
        """
        Render a template into chat messages.

        ``name`` is positional-only so templates can use a ``{{name}}``
        placeholder; fill a ``{{version}}`` placeholder through
        ``require(...).render(...)``.

        Raises:
            KeyError: unknown name / version.
        """
        return self.require(name, version).render(**values)

    def list_templates(self) -> list[dict]:
        return [tpl.to_dict() for _, tpl in sorted(self._templates.items())]
