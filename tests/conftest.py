"""Shared test fixtures for ollama-json tests."""

import json

import pytest

from ollama_json.config import DEFAULT_MODEL_FAST, ProviderConfig


# ─────────────────────────────────────────────────────────────────────
# MOCK DATA
# ─────────────────────────────────────────────────────────────────────

MOCK_BASE_URL = "http://localhost:11434"
MOCK_MODEL = "qwen2.5:7b"

MOCK_JSON_FRAGMENTS = ['{"city"', ': "Paris"', ', "country"', ': "France"}']


def tags_response(model_names: list[str]) -> dict:
    """Build /api/tags response."""
    return {
        "models": [
            {"name": name, "model": name, "size": 2019393189, "digest": "a80c4f17acd5"}
            for name in model_names
        ]
    }


def ndjson(*lines: dict) -> bytes:
    """Encode dicts as a newline-delimited JSON body."""
    return "".join(json.dumps(line) + "\n" for line in lines).encode()


def chat_stream(fragments: list[str], model: str = MOCK_MODEL) -> bytes:
    """Build a streaming /api/chat body: one line per fragment, then done."""
    lines = [
        {
            "model": model,
            "created_at": "2024-07-22T20:33:28.123648Z",
            "message": {"role": "assistant", "content": fragment},
            "done": False,
        }
        for fragment in fragments
    ]
    lines.append({
        "model": model,
        "created_at": "2024-07-22T20:33:29.000000Z",
        "message": {"role": "assistant", "content": ""},
        "done": True,
        "done_reason": "stop",
        "total_duration": 4883583458,
        "eval_count": 12,
    })
    return ndjson(*lines)


def pull_stream(total: int = 2019393189) -> bytes:
    """Build a streaming /api/pull body."""
    return ndjson(
        {"status": "pulling manifest"},
        {"status": "pulling a80c4f17acd5", "digest": "sha256:a80c4f17acd5", "total": total, "completed": 0},
        {"status": "pulling a80c4f17acd5", "digest": "sha256:a80c4f17acd5", "total": total, "completed": total},
        {"status": "verifying sha256 digest"},
        {"status": "success"},
    )


# ─────────────────────────────────────────────────────────────────────
# FIXTURES
# ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def config():
    """Config pointing at the mock server with an explicit model."""
    return ProviderConfig(base_url=MOCK_BASE_URL, model=MOCK_MODEL)


@pytest.fixture
def default_config():
    """Config with no model: resolves to the fast default."""
    return ProviderConfig(base_url=MOCK_BASE_URL, model="")


@pytest.fixture
def fast_model():
    return DEFAULT_MODEL_FAST


@pytest.fixture
def progress_log():
    """Collects pull progress callbacks as (model, progress) tuples."""
    log = []

    def record(model, progress):
        log.append((model, progress))

    record.log = log
    return record


@pytest.fixture(autouse=True)
def _no_ollama_env(request, monkeypatch):
    """Keep the developer's OLLAMA_* environment out of unit tests."""
    if request.node.get_closest_marker("integration"):
        return
    for key in (
        "OLLAMA_HOST", "OLLAMA_MODEL", "OLLAMA_BINARY", "OLLAMA_PULL_ATTEMPTS",
        "OLLAMA_READY_ATTEMPTS", "OLLAMA_READY_MIN_WAIT", "OLLAMA_READY_MAX_WAIT",
    ):
        monkeypatch.delenv(key, raising=False)
