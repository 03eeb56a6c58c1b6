"""
OllamaJSONProvider - Ollama implementation of TextToJSONProvider.

Readiness is established once in create(): optional wait for a server we
started, then list/pull until the configured model is present.
"""

import asyncio
import logging
import subprocess
from contextlib import aclosing
from typing import AsyncGenerator, Callable, Optional, Sequence

import httpx
import humanize

from ollama_json.config import ProviderConfig, get_pull_attempts
from ollama_json.core import OllamaAPIError, OllamaClient
from ollama_json.errors import BackendError, ShutdownError, StreamError
from ollama_json.schema import (
    Completion,
    CompletionData,
    CompletionTombStone,
    Message,
    NoProcess,
    OwnedProcess,
    PullProgress,
    ServerProcess,
    Usage,
)
from ollama_json.server import stop_server, wait_for_server

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, PullProgress], None]


def format_pull_progress(model: str, progress: PullProgress) -> str:
    """Render a pull progress event with human-readable byte counts."""
    return (
        f"Pulling {model!r}: {progress.status} "
        f"[{humanize.naturalsize(progress.completed)}/{humanize.naturalsize(progress.total)}]"
    )


def print_pull_progress(model: str, progress: PullProgress) -> None:
    print(format_pull_progress(model, progress))


def build_chat_request(model: str, messages: Sequence[Message]) -> dict:
    """Build a streaming /api/chat payload that asks for JSON output."""
    return {
        "model": model,
        "stream": True,
        "format": "json",
        "messages": [
            {"role": m.role.value, "content": m.content} for m in messages
        ],
    }


def model_is_listed(model: str, available: list[str]) -> bool:
    """Check availability; an untagged name also matches its ':latest' tag."""
    if model in available:
        return True
    return ":" not in model and f"{model}:latest" in available


class OllamaJSONProvider:
    """
    Ollama implementation of TextToJSONProvider protocol.

    Build with `await OllamaJSONProvider.create(...)`; the returned provider
    is guaranteed to have its model present on the server.
    """

    def __init__(
        self,
        config: ProviderConfig,
        client: OllamaClient,
        process: Optional[ServerProcess] = None,
    ):
        self._config = config
        self._client = client
        self._process: ServerProcess = process or NoProcess()

    @classmethod
    async def create(
        cls,
        config: ProviderConfig,
        process: Optional[ServerProcess] = None,
        *,
        client: Optional[OllamaClient] = None,
        on_progress: Optional[ProgressCallback] = None,
        pull_attempts: Optional[int] = None,
    ) -> "OllamaJSONProvider":
        """
        Create a ready provider.

        Args:
            config: Server address and model
            process: OwnedProcess if the caller started the server for us
            client: Pre-built client (default: OllamaClient on config.base_url)
            on_progress: Receives pull progress (default: print to stdout)
            pull_attempts: Max list/pull rounds (default: OLLAMA_PULL_ATTEMPTS)

        Raises:
            ConfigError: base URL unusable
            StartupError: owned server never became ready
            BackendError: listing or pulling failed, or pulls exhausted
        """
        owns_client = client is None
        if client is None:
            client = OllamaClient(config.base_url)
        provider = cls(config, client, process)

        try:
            if isinstance(provider._process, OwnedProcess):
                await wait_for_server(client, provider._process)

            await provider._ensure_model(
                on_progress or print_pull_progress,
                pull_attempts if pull_attempts is not None else get_pull_attempts(),
            )
        except BaseException:
            # The caller never sees this provider, so release what we built
            if owns_client:
                await client.aclose()
            raise
        return provider

    async def _list_models(self) -> list[str]:
        try:
            return await self._client.list_models()
        except (httpx.HTTPError, OllamaAPIError) as e:
            raise BackendError(f"Error listing models: {e}") from e

    async def _pull(self, on_progress: ProgressCallback) -> None:
        model = self._config.model
        try:
            async for progress in self._client.pull(model):
                logger.debug("pull %s: %s %d/%d", model, progress.status,
                             progress.completed, progress.total)
                on_progress(model, progress)
        except (httpx.HTTPError, OllamaAPIError) as e:
            raise BackendError(f"Error pulling model {model!r}: {e}") from e

    async def _ensure_model(self, on_progress: ProgressCallback, attempts: int) -> None:
        model = self._config.model
        for attempt in range(1, attempts + 1):
            if model_is_listed(model, await self._list_models()):
                logger.info("Model %s is available", model)
                return
            logger.info("Model %s missing, pulling (attempt %d/%d)", model, attempt, attempts)
            await self._pull(on_progress)

        if model_is_listed(model, await self._list_models()):
            logger.info("Model %s is available", model)
            return
        raise BackendError(
            f"Model {model!r} still missing after {attempts} pulls: model pull exhausted retries"
        )

    def get_model(self) -> str:
        return self._config.model

    async def stream_completion(
        self, messages: Sequence[Message]
    ) -> AsyncGenerator[Completion, None]:
        """
        Stream completion events for one chat request.

        Yields CompletionData per fragment, then one CompletionTombStone
        carrying the concatenated text.
        """
        model = self._config.model
        payload = build_chat_request(model, messages)
        aggregated = []

        try:
            async for chunk in self._client.chat(payload):
                if chunk.done:
                    logger.debug("chat %s done (%s)", model, chunk.done_reason)
                    yield CompletionTombStone(
                        content="".join(aggregated),
                        model=model,
                        usage=Usage(),
                    )
                    return
                aggregated.append(chunk.content)
                yield CompletionData(content=chunk.content)
        except (httpx.HTTPError, OllamaAPIError) as e:
            raise StreamError(f"Error creating completion stream for {model!r}: {e}") from e

        raise StreamError(f"Completion stream for {model!r} ended before done")

    async def generate_completion(
        self,
        messages: Sequence[Message],
        out: "asyncio.Queue[Completion]",
    ) -> None:
        """Stream one completion into `out`. See TextToJSONProvider."""
        async with aclosing(self.stream_completion(messages)) as events:
            async for event in events:
                await out.put(event)

    async def close(self) -> None:
        """Stop the server if we own it, then release the HTTP client."""
        try:
            if isinstance(self._process, OwnedProcess):
                # We started the server, so we should stop it
                try:
                    await asyncio.to_thread(stop_server, self._process.handle)
                except (OSError, subprocess.SubprocessError) as e:
                    raise ShutdownError(f"Error stopping ollama server: {e}") from e
                self._process = NoProcess()
        finally:
            await self._client.aclose()

    async def __aenter__(self) -> "OllamaJSONProvider":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
