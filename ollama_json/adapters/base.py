"""
TextToJSONProvider Protocol - defines the contract for JSON completion backends.

This is the WHAT (interface), not the HOW (implementation).
See ollama.py for concrete implementation.
"""

import asyncio
from typing import Protocol, Sequence

from ollama_json.schema import Completion, Message


class TextToJSONProvider(Protocol):
    """
    Contract for backends that answer chat messages with JSON.

    Implementations must provide:
    - Teardown of anything they own (close)
    - The effective model identifier (get_model)
    - Streaming completion into a caller-owned queue (generate_completion)
    """

    async def close(self) -> None:
        """Release owned resources. A second call is a no-op."""
        ...

    def get_model(self) -> str:
        """Return the model identifier requests are sent with."""
        ...

    async def generate_completion(
        self,
        messages: Sequence[Message],
        out: "asyncio.Queue[Completion]",
    ) -> None:
        """
        Stream one completion into `out`.

        Args:
            messages: Conversation so far, oldest first
            out: Receives CompletionData events in arrival order, then
                exactly one CompletionTombStone on success

        Raises:
            StreamError on transport or server failure (no tombstone)
            asyncio.CancelledError when the calling task is cancelled
        """
        ...
