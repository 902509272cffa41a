"""
LLM Providers package for CallSight.

Two interchangeable classification backends:
- Groq: OpenAI-compatible chat completions (system + user messages)
- Gemini: Google's generateContent API (single prompt)

Use the ProviderFactory for creating provider instances:
    from callsight.providers import ProviderFactory
    provider = ProviderFactory.create("groq", {"model": "llama-3.3-70b-versatile"})
"""

from .base import LLMProvider
from .factory import ProviderFactory
from .gemini_provider import GeminiProvider
from .groq_provider import GroqProvider

__all__ = [
    "LLMProvider",
    "ProviderFactory",
    "GeminiProvider",
    "GroqProvider",
]
