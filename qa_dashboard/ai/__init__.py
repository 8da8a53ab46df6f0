"""
QA Bug Dashboard
AI module.

Submodules:
    - gateway: LLM Gateway (provider selection, cost tracking)
    - prompt_registry: YAML prompt template loading
    - parsing: Parsed | RawText reply decoding
    - assistants: one class per AI operation
"""
