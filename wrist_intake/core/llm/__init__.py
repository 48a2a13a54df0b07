"""LLM integration layer.

This package is intentionally small:
- No prompt/output logging (prompts carry clinical data).
- Configurable via environment variables.
- Callers treat it as a stateless text/JSON generator that may fail.
"""
