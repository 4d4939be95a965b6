from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class ResponseMeta(BaseModel):
    api_version: str = "1.0"
    processing_time_ms: int
    timestamp: datetime
    warnings: list[str] = Field(default_factory=list)


class ErrorLocation(BaseModel):
    field: str | None = None
    option: str | None = None
    page_id: str | None = None
    element_id: str | None = None
    audio_id: str | None = None
    index: int | None = None


class SuggestedAction(BaseModel):
    action: str
    command: str | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)


class ErrorInfo(BaseModel):
    code: str
    message: str
    location: ErrorLocation | None = None
    retryable: bool = False
    suggested_fix: str | None = None  # Human-readable fix suggestion
    suggested_actions: list[SuggestedAction] = Field(default_factory=list)


CommandOutcome = Literal["ok", "error", "cancelled"]


class CommandResult(BaseModel):
    """Result of one slash command or tool call.

    ``handled`` is always true once the registry has taken the input, even when
    the command failed; ``outcome`` separates a declined confirmation from a
    real failure.
    """

    success: bool
    message: str = ""
    handled: bool = True
    outcome: CommandOutcome = "ok"
    error: ErrorInfo | None = None
    data: Any | None = None

    @classmethod
    def ok(cls, message: str = "", data: Any | None = None) -> "CommandResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def cancelled(cls, message: str = "Cancelled") -> "CommandResult":
        return cls(success=False, message=message, outcome="cancelled")

    @classmethod
    def failure(cls, error: ErrorInfo) -> "CommandResult":
        return cls(success=False, message=f"❌ {error.message}", outcome="error", error=error)


class EnvelopeResponse(BaseModel):
    request_id: str
    data: Any | None = None
    error: ErrorInfo | None = None
    meta: ResponseMeta
