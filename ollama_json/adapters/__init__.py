"""
Adapters for JSON completion backends.

Provider-agnostic architecture: Protocol defines WHAT, implementations define HOW.
"""

from .base import TextToJSONProvider
from .ollama import OllamaJSONProvider

__all__ = ["TextToJSONProvider", "OllamaJSONProvider"]
