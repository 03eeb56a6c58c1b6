"""
Configuration constants and Pydantic models for ollama-json.
"""

import os

from pydantic import BaseModel, ConfigDict, field_validator


# ─────────────────────────────────────────────────────────────────────
# DEFAULTS
# ─────────────────────────────────────────────────────────────────────

DEFAULT_BASE_URL: str = "http://localhost:11434"
DEFAULT_MODEL_FAST: str = "llama3.2:latest"
DEFAULT_BINARY: str = "ollama"


# ─────────────────────────────────────────────────────────────────────
# INTERNAL CONSTANTS
# ─────────────────────────────────────────────────────────────────────

DEFAULT_TIMEOUT_SECONDS: float = 10.0
DEFAULT_STOP_TIMEOUT_SECONDS: float = 5.0
DEFAULT_PULL_ATTEMPTS: int = 3


# ─────────────────────────────────────────────────────────────────────
# RETRY CONFIGURATION - For server readiness and model pulls
# ─────────────────────────────────────────────────────────────────────

def get_pull_attempts() -> int:
    """
    Get max list/pull rounds before giving up on a missing model.

    Set OLLAMA_PULL_ATTEMPTS in .env (default: 3, minimum: 1).
    """
    try:
        return max(1, int(os.environ.get("OLLAMA_PULL_ATTEMPTS", str(DEFAULT_PULL_ATTEMPTS))))
    except ValueError:
        return DEFAULT_PULL_ATTEMPTS


def get_ready_attempts() -> int:
    """
    Get max heartbeat attempts while waiting for a freshly started server.

    Set OLLAMA_READY_ATTEMPTS in .env (default: 10).
    """
    try:
        return max(1, int(os.environ.get("OLLAMA_READY_ATTEMPTS", "10")))
    except ValueError:
        return 10


def get_ready_min_wait() -> float:
    """
    Get minimum wait between heartbeat attempts in seconds.

    Set OLLAMA_READY_MIN_WAIT in .env (default: 0.5).
    """
    try:
        return float(os.environ.get("OLLAMA_READY_MIN_WAIT", "0.5"))
    except ValueError:
        return 0.5


def get_ready_max_wait() -> float:
    """
    Get maximum wait between heartbeat attempts in seconds.

    Set OLLAMA_READY_MAX_WAIT in .env (default: 5).
    """
    try:
        return float(os.environ.get("OLLAMA_READY_MAX_WAIT", "5"))
    except ValueError:
        return 5.0


# ─────────────────────────────────────────────────────────────────────
# ENVIRONMENT LOADING
# ─────────────────────────────────────────────────────────────────────

def get_ollama_host() -> str:
    """
    Get the Ollama server base URL from OLLAMA_HOST or default.

    Ollama itself accepts a bare "host:port" here, so a missing
    scheme is filled in with http://.
    """
    value = os.environ.get("OLLAMA_HOST", "").strip()
    if not value:
        return DEFAULT_BASE_URL
    if "://" not in value:
        value = f"http://{value}"
    return value.rstrip("/")


def get_ollama_model() -> str:
    """Get the model identifier from OLLAMA_MODEL (empty means default)."""
    return os.environ.get("OLLAMA_MODEL", "").strip()


def get_ollama_binary() -> str:
    """Get the server executable from OLLAMA_BINARY, or 'ollama' on PATH."""
    return os.environ.get("OLLAMA_BINARY") or DEFAULT_BINARY


# ─────────────────────────────────────────────────────────────────────
# DATA MODELS
# ─────────────────────────────────────────────────────────────────────

class ProviderConfig(BaseModel):
    """Server address and model identifier for a provider.

    An empty model identifier is replaced by the fast default.
    """
    model_config = ConfigDict(frozen=True, validate_default=True)

    base_url: str = DEFAULT_BASE_URL
    model: str = ""

    @field_validator("model", mode="before")
    @classmethod
    def _default_model(cls, value):
        if value is None or not str(value).strip():
            return DEFAULT_MODEL_FAST
        return value


def load_config_from_env() -> ProviderConfig:
    """Build a ProviderConfig from OLLAMA_HOST / OLLAMA_MODEL."""
    return ProviderConfig(base_url=get_ollama_host(), model=get_ollama_model())
