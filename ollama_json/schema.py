import subprocess
from dataclasses import dataclass
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    """Author of a chat message. The value is what goes on the wire."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class Message(BaseModel):
    """A single chat message. Only role and text content are sent."""
    role: Role
    content: str


class Usage(BaseModel):
    """Token accounting. Left at zero: the chat stream is not asked for it."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class CompletionData(BaseModel):
    """Incremental text fragment of a completion."""
    kind: Literal["data"] = "data"
    content: str


class CompletionTombStone(BaseModel):
    """
    Terminal event of a completion stream.

    Carries the aggregated text of every CompletionData that preceded it.
    Emitted exactly once per successful call, always last.
    """
    kind: Literal["tombstone"] = "tombstone"
    content: str
    model: str
    usage: Usage = Usage()


Completion = Union[CompletionData, CompletionTombStone]


class PullProgress(BaseModel):
    """One progress line from a streaming /api/pull."""
    model_config = ConfigDict(extra="ignore")

    status: str = ""
    digest: Optional[str] = None
    completed: int = 0
    total: int = 0


class ChatChunk(BaseModel):
    """One line from a streaming /api/chat."""
    model_config = ConfigDict(extra="ignore")

    model: str = ""
    message: Optional[Message] = None
    done: bool = False
    done_reason: Optional[str] = None

    @property
    def content(self) -> str:
        return self.message.content if self.message else ""


# ─────────────────────────────────────────────────────────────────────
# SERVER PROCESS OWNERSHIP
# ─────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class OwnedProcess:
    """Server process started on the provider's behalf; stopped on close()."""
    handle: subprocess.Popen


@dataclass(frozen=True)
class NoProcess:
    """Server is managed elsewhere; close() never touches it."""
    pass


ServerProcess = Union[OwnedProcess, NoProcess]
