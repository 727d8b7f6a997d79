from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


# --- Domain types ---


class BackendKind(str, Enum):
    REMOTE_API = "RemoteAPI"
    DAEMON = "Daemon"
    PROCESS = "Process"

    @classmethod
    def parse(cls, value: str) -> BackendKind:
        """Accept the canonical names plus the route-style aliases used by the UI."""
        key = value.strip().lower()
        kind = _BACKEND_ALIASES.get(key)
        if kind is None:
            raise ValueError(f"Unknown backend kind: {value!r}")
        return kind


_BACKEND_ALIASES = {
    "remoteapi": BackendKind.REMOTE_API,
    "remote": BackendKind.REMOTE_API,
    "gemini": BackendKind.REMOTE_API,
    "daemon": BackendKind.DAEMON,
    "ollama": BackendKind.DAEMON,
    "process": BackendKind.PROCESS,
    "gguf": BackendKind.PROCESS,
}


class ErrorKind(str, Enum):
    BACKEND_UNAVAILABLE = "BackendUnavailable"
    MODEL_NOT_FOUND = "ModelNotFound"
    REMOTE_ERROR = "RemoteError"
    PARSE_ERROR = "ParseError"
    PROCESS_TIMEOUT = "ProcessTimeout"
    PROCESS_FAILURE = "ProcessFailure"
    GPU_ERROR = "GpuError"

    @property
    def is_process_failure(self) -> bool:
        return self in (ErrorKind.PROCESS_FAILURE, ErrorKind.GPU_ERROR)


@dataclass(frozen=True)
class ModelDescriptor:
    name: str
    backend_kind: BackendKind
    locator: str | None = None


@dataclass(frozen=True)
class GenerationRequest:
    model_name: str
    backend_kind: BackendKind
    prompt: str
    locator: str | None = None


@dataclass(frozen=True)
class Success:
    text: str


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    detail: str
    hint: str = ""


GenerationResult = Success | Failure


# --- API models ---


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    backend_kind: BackendKind = Field(..., alias="backendKind")
    model_name: str = Field(default="", alias="modelName")
    prompt: str = Field(..., min_length=1)

    @field_validator("backend_kind", mode="before")
    @classmethod
    def parse_backend_kind(cls, value):
        if isinstance(value, str):
            return BackendKind.parse(value)
        return value


class MessageRequest(BaseModel):
    message: str = Field(..., min_length=1)


class ChatResponse(BaseModel):
    text: str


class LegacyChatResponse(BaseModel):
    response: str


class ErrorResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    error_kind: ErrorKind = Field(..., alias="errorKind")
    message: str
    hint: str = ""


class ModelInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    backend_kind: BackendKind = Field(..., alias="backendKind")
    locator: str | None = None

    @classmethod
    def from_descriptor(cls, descriptor: ModelDescriptor) -> ModelInfo:
        return cls(
            name=descriptor.name,
            backend_kind=descriptor.backend_kind,
            locator=descriptor.locator,
        )


class ModelListResponse(BaseModel):
    models: list[ModelInfo]
