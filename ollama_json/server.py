"""
Ollama server process supervision: start, wait for readiness, stop.

The provider only stops a server it was handed as OwnedProcess; a server
started elsewhere is never touched.
"""

import logging
import os
import subprocess
from typing import Optional

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from ollama_json.config import (
    DEFAULT_STOP_TIMEOUT_SECONDS,
    get_ollama_binary,
    get_ready_attempts,
    get_ready_min_wait,
    get_ready_max_wait,
)
from ollama_json.core import OllamaClient
from ollama_json.errors import StartupError
from ollama_json.schema import OwnedProcess

logger = logging.getLogger(__name__)


def start_server(binary: Optional[str] = None, host: Optional[str] = None) -> OwnedProcess:
    """
    Launch `ollama serve` in the background.

    Args:
        binary: Server executable (default: OLLAMA_BINARY or "ollama")
        host: Value for OLLAMA_HOST, e.g. "127.0.0.1:11434"

    Returns:
        OwnedProcess wrapping the Popen handle. Pass it to the provider so
        that close() stops the server again.
    """
    binary = binary or get_ollama_binary()
    env = os.environ.copy()
    if host:
        env["OLLAMA_HOST"] = host

    args = [binary, "serve"]
    logger.info("Starting ollama server: %s", " ".join(args))
    try:
        proc = subprocess.Popen(
            args,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            stdin=subprocess.DEVNULL,
            env=env,
        )
    except OSError as e:
        raise StartupError(f"Failed to start {binary!r}: {e}") from e
    return OwnedProcess(handle=proc)


async def wait_for_server(
    client: OllamaClient,
    process: Optional[OwnedProcess] = None,
    attempts: Optional[int] = None,
    min_wait: Optional[float] = None,
    max_wait: Optional[float] = None,
) -> None:
    """
    Block until the server answers a heartbeat, retrying with exponential backoff.

    Raises:
        StartupError: retry budget exhausted, or the owned process exited
    """
    attempts = attempts if attempts is not None else get_ready_attempts()
    min_wait = min_wait if min_wait is not None else get_ready_min_wait()
    max_wait = max_wait if max_wait is not None else get_ready_max_wait()

    @retry(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=min_wait, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(httpx.HTTPError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def ping() -> None:
        if process is not None:
            rc = process.handle.poll()
            if rc is not None:
                raise StartupError(f"Ollama server exited during startup (exit code {rc})")
        await client.heartbeat()

    try:
        await ping()
    except httpx.HTTPError as e:
        raise StartupError(
            f"Ollama server at {client.base_url} not ready after {attempts} attempts: {e}"
        ) from e
    logger.info("Ollama server at %s is ready", client.base_url)


def stop_server(handle: subprocess.Popen, timeout: float = DEFAULT_STOP_TIMEOUT_SECONDS) -> None:
    """
    Terminate a server process, escalating to kill() if it does not exit in time.

    OS errors propagate to the caller.
    """
    if handle.poll() is not None:
        logger.debug("Ollama server (pid %s) already exited", handle.pid)
        return

    logger.info("Stopping ollama server (pid %s)", handle.pid)
    handle.terminate()
    try:
        handle.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.warning("Ollama server (pid %s) ignored terminate, killing", handle.pid)
        handle.kill()
        handle.wait(timeout=timeout)
