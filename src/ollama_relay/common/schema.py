"""Pydantic models for request/response types and persisted records."""
from __future__ import annotations
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

class Provider(str, Enum):
    OpenAI = "OpenAI"
    Ollama = "Ollama"

class Role(str, Enum):
    User = "User"
    Assistant = "Assistant"

class Message(BaseModel):
    role: Role
    content: str

class Chat(BaseModel):
    """A conversation as stored by the front end."""
    id: str
    name: str
    messages: list[Message] = Field(default_factory=list)
    provider: Provider
    model: str

class GenerationRequest(BaseModel):
    """Body of ``POST /api/generate``."""
    model_config = ConfigDict(frozen=True)

    model: str
    prompt: str

class GenerationResponseChunk(BaseModel):
    """One reassembled record of a streamed generation.

    Fields other than ``response`` and ``done`` are dropped.
    """
    model_config = ConfigDict(extra="ignore")

    response: str
    done: bool = False

class PullRequest(BaseModel):
    """Body of ``POST /api/pull``."""
    model_config = ConfigDict(frozen=True)

    name: str

class AppConfig(BaseModel):
    openai_api_key: str | None = None
