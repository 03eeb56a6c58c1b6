"""
Core logic: HTTP client for the Ollama REST API.

Streaming endpoints answer with newline-delimited JSON. Each stream is
exposed as a lazy async iterator that can be consumed once.
"""

import json
import logging
from typing import AsyncGenerator

import httpx
from pydantic import ValidationError

from ollama_json.schema import ChatChunk, PullProgress
from ollama_json.config import DEFAULT_TIMEOUT_SECONDS
from ollama_json.errors import ConfigError

logger = logging.getLogger(__name__)


class OllamaAPIError(Exception):
    """Human-readable error reported by the Ollama server."""
    pass


def parse_ollama_error(status_code: int, body: bytes) -> str:
    """Extract a user-friendly error message from an Ollama error body."""
    try:
        data = json.loads(body)
        # Ollama returns {"error": "..."}
        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, str) and error:
                return error
            if isinstance(error, dict) and error.get("message"):
                return error["message"]
    except ValueError:
        pass
    return f"HTTP {status_code}: {body.decode(errors='replace')[:200]}"


def parse_base_url(base_url: str) -> httpx.URL:
    """Parse and validate the server base URL, raising ConfigError if unusable."""
    try:
        url = httpx.URL(base_url)
    except (httpx.InvalidURL, TypeError) as e:
        raise ConfigError(f"Invalid Ollama base URL {base_url!r}: {e}") from e
    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigError(
            f"Invalid Ollama base URL {base_url!r}: expected http(s)://host[:port]"
        )
    return url


# ─────────────────────────────────────────────────────────────────────
# CLIENT
# ─────────────────────────────────────────────────────────────────────

class OllamaClient:
    """
    Thin async client bound to one Ollama server.

    Transport failures surface as httpx.HTTPError; errors reported by the
    server (status >= 400, or an {"error": ...} line mid-stream) surface
    as OllamaAPIError.
    """

    def __init__(self, base_url: str, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.base_url = parse_base_url(base_url)
        self._http = httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def heartbeat(self) -> None:
        """Raise unless the server answers its root endpoint."""
        response = await self._http.get("/")
        response.raise_for_status()

    async def list_models(self) -> list[str]:
        """Return names of models available locally on the server."""
        response = await self._http.get("/api/tags")
        if response.status_code >= 400:
            raise OllamaAPIError(parse_ollama_error(response.status_code, response.content))
        try:
            data = response.json()
            # Ollama returns {"models": [{"name": "llama3.2:latest", ...}, ...]}
            return [m["name"] for m in data.get("models") or []]
        except (ValueError, AttributeError, KeyError, TypeError) as e:
            raise OllamaAPIError(f"Malformed model list from {self.base_url}: {e}") from e

    async def pull(self, model: str) -> AsyncGenerator[PullProgress, None]:
        """Stream progress events while the server downloads a model."""
        payload = {"model": model, "stream": True}
        async for data in self._stream_ndjson("/api/pull", payload):
            try:
                progress = PullProgress.model_validate(data)
            except ValidationError as e:
                raise OllamaAPIError(f"Malformed pull progress: {e}") from e
            yield progress

    async def chat(self, payload: dict) -> AsyncGenerator[ChatChunk, None]:
        """Stream response chunks for a chat request."""
        async for data in self._stream_ndjson("/api/chat", payload):
            try:
                chunk = ChatChunk.model_validate(data)
            except ValidationError as e:
                raise OllamaAPIError(f"Malformed chat chunk: {e}") from e
            yield chunk

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _stream_ndjson(self, path: str, payload: dict) -> AsyncGenerator[dict, None]:
        logger.debug("POST %s%s model=%s", self.base_url, path, payload.get("model"))
        async with self._http.stream("POST", path, json=payload) as response:
            if response.status_code >= 400:
                # Read the error body for streaming responses
                error_body = await response.aread()
                raise OllamaAPIError(parse_ollama_error(response.status_code, error_body))

            async for line in response.aiter_lines():
                if not line.strip():
                    continue
                try:
                    data = json.loads(line)
                except json.JSONDecodeError as e:
                    raise OllamaAPIError(f"Malformed stream line from {path}: {line[:200]!r}") from e
                if not isinstance(data, dict):
                    raise OllamaAPIError(f"Unexpected stream line from {path}: {line[:200]!r}")
                if data.get("error"):
                    raise OllamaAPIError(str(data["error"]))
                yield data
