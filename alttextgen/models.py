"""Shared data models used across the alt text gateway."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any


class ErrorKind(str, enum.Enum):
    """Why a request or a provider call failed."""

    UNAUTHORIZED = "unauthorized"
    INVALID_INPUT = "invalid_input"
    SERVICE_UNAVAILABLE = "service_unavailable"
    CREDENTIAL_MISSING = "credential_missing"
    IMAGE_MISSING = "image_missing"
    MALFORMED_RESPONSE = "malformed_response"
    PROVIDER_ERROR = "provider_error"


class FieldRenderer(str, enum.Enum):
    """Tag telling a settings form how to render a field."""

    API_KEY = "api_key"
    MODEL = "model"
    PROVIDER = "provider"
    LANGUAGE = "language"


@dataclass(frozen=True)
class CaptionRequest:
    """A request for alt text for one image."""

    image_id: int
    language: str
    model: str


@dataclass(frozen=True)
class CaptionResult:
    """Outcome of a caption request: either ``text`` or an error ``kind``.

    Build one with :meth:`ok` or :meth:`fail`; exactly one variant is set.
    """

    text: str | None = None
    kind: ErrorKind | None = None
    message: str = ""
    data: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        if (self.text is None) == (self.kind is None):
            raise ValueError("CaptionResult must be either a success or a failure")

    @classmethod
    def ok(cls, text: str) -> CaptionResult:
        return cls(text=text)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str,
             data: dict[str, Any] | None = None) -> CaptionResult:
        return cls(kind=kind, message=message, data=data)

    @property
    def is_success(self) -> bool:
        return self.kind is None


@dataclass(frozen=True)
class ProviderSettingsField:
    """One configuration input a provider needs."""

    key: str
    label: str
    renderer: FieldRenderer


@dataclass(frozen=True)
class ProviderInfo:
    """Static catalog entry for a provider."""

    provider_id: str
    display_name: str
    default_model: str
    models: dict[str, str] = field(default_factory=dict)  # model id -> display name
    env_var: str = ""


@dataclass(frozen=True)
class ResolvedConfig:
    """Provider, model, language and key in effect for one request."""

    provider: str
    model: str
    language: str
    api_key: str = field(default="", repr=False)


@dataclass(frozen=True)
class Caller:
    """Identity of whoever triggered a request."""

    user_id: str = ""
    origin: str = "unknown"
    capabilities: frozenset[str] = frozenset()

    def can(self, capability: str) -> bool:
        return capability in self.capabilities
