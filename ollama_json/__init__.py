"""ollama-json: JSON chat completions from a local Ollama server."""

__version__ = "0.1.0"
