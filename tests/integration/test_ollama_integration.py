"""
Integration tests against a live Ollama server - skip if not reachable.

Prerequisites:
- `ollama serve` running (OLLAMA_HOST in .env, default localhost:11434)
- OLLAMA_MODEL set to a small model; it is pulled if missing

Run with: pytest tests/integration/ -v -m integration
"""

import asyncio
import json

import httpx
import pytest

from ollama_json.adapters.ollama import OllamaJSONProvider
from ollama_json.config import load_config_from_env
from ollama_json.core import OllamaClient
from ollama_json.schema import CompletionData, CompletionTombStone, Message, Role

pytestmark = pytest.mark.integration


async def _server_reachable(base_url: str) -> bool:
    client = OllamaClient(base_url)
    try:
        await client.heartbeat()
        return True
    except httpx.HTTPError:
        return False
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_json_completion_round_trip():
    config = load_config_from_env()
    if not await _server_reachable(config.base_url):
        pytest.skip(f"No Ollama server at {config.base_url}")

    provider = await OllamaJSONProvider.create(config, pull_attempts=1)
    try:
        queue: asyncio.Queue = asyncio.Queue()
        await provider.generate_completion(
            [
                Message(role=Role.SYSTEM, content="Reply with a JSON object only."),
                Message(role=Role.USER, content='Return {"sum": <2 + 2>}.'),
            ],
            queue,
        )
    finally:
        await provider.close()

    events = []
    while not queue.empty():
        events.append(queue.get_nowait())

    assert isinstance(events[-1], CompletionTombStone)
    assert all(isinstance(e, CompletionData) for e in events[:-1])
    assert events[-1].content == "".join(e.content for e in events[:-1])
    assert isinstance(json.loads(events[-1].content), dict)
