"""Shared backend surface.

Backends do not inherit from a common base class.  Each one is a plain class
built from its own config variant; this protocol only describes what callers
may rely on.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from .modes import AuthMode


@runtime_checkable
class GenerationBackend(Protocol):
    """Anything that can turn a chat message list into a completion."""

    mode: AuthMode

    async def generate(self, messages: list[dict[str, Any]], **kwargs: Any) -> Any:
        """Send *messages* and return the provider response."""
        ...


def import_litellm():
    try:
        import litellm
    except ImportError:
        raise ImportError("Install LLM support with: pip install keyrelay[llm]")
    return litellm


def qualify_model(model: str, prefix: str) -> str:
    """Add a litellm provider prefix unless the model already has one."""
    return model if "/" in model else f"{prefix}/{model}"
