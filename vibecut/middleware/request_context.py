from dataclasses import dataclass, field
from datetime import datetime, timezone
from time import perf_counter
from uuid import uuid4

from vibecut.schemas.envelope import ResponseMeta

CONFIRMATION_WARNING = "Confirmation required: {prompt} (resend with confirm=true)"


@dataclass
class RequestContext:
    """Per-request bookkeeping that ends up in the envelope ``meta``."""

    request_id: str
    start_time: float
    # Prompts a destructive command showed that the caller did not confirm
    declined_prompts: list[str] = field(default_factory=list)

    def decline(self, prompt: str) -> bool:
        self.declined_prompts.append(prompt)
        return False


def create_request_context() -> RequestContext:
    return RequestContext(request_id=str(uuid4()), start_time=perf_counter())


def build_meta(context: RequestContext, api_version: str = "1.0") -> ResponseMeta:
    warnings = [CONFIRMATION_WARNING.format(prompt=p) for p in context.declined_prompts]
    return ResponseMeta(
        api_version=api_version,
        processing_time_ms=int((perf_counter() - context.start_time) * 1000),
        timestamp=datetime.now(timezone.utc),
        warnings=warnings,
    )
