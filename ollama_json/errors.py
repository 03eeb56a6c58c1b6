"""
Error taxonomy for ollama-json.

Each phase of the provider lifecycle raises its own type so callers can
tell construction failures (the provider is unusable) apart from per-call
failures (the provider stays usable).
"""


class ProviderError(Exception):
    """Base class for all provider failures."""
    pass


class ConfigError(ProviderError):
    """Base URL could not be parsed. Fatal at construction."""
    pass


class StartupError(ProviderError):
    """Owned server process never became reachable."""
    pass


class BackendError(ProviderError):
    """Model listing or pull failed."""
    pass


class StreamError(ProviderError):
    """Chat stream failed mid-flight. Events already delivered stay delivered."""
    pass


class ShutdownError(ProviderError):
    """Owned server process could not be terminated."""
    pass
