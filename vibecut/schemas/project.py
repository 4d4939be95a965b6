from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from vibecut.schemas.composition import CamelModel, CompositionData, Number

ViewMode = Literal["edit", "view"]


class HistoryEntry(CamelModel):
    composition: CompositionData
    selected_element_id: str | None = None


class History(CamelModel):
    past: list[HistoryEntry] = Field(default_factory=list)
    future: list[HistoryEntry] = Field(default_factory=list)


class AppState(CamelModel):
    selected_element_id: str | None = None
    selected_page_id: str | None = None
    view_mode: ViewMode = "edit"
    zoom_level: float = 1.0
    show_grid: bool = True
    is_loading: bool = False
    error: str | None = None
    history: History = Field(default_factory=History)


class LocalFile(CamelModel):
    """A user-uploaded media file, inlined in project JSON as a data URI."""

    id: str
    name: str
    type: str  # MIME type
    size: int = Field(ge=0)
    data_url: str
    created_at: datetime
    updated_at: datetime
    width: int | None = None
    height: int | None = None
    duration: Number | None = None  # seconds, for audio/video


class Note(CamelModel):
    id: str
    time: int = Field(ge=0)  # ms on the global timeline
    text: str
    created_at: datetime
    updated_at: datetime


class ChatMessage(CamelModel):
    id: str
    role: Literal["user", "assistant", "system"]
    content: str
    created_at: datetime


class Project(CamelModel):
    id: str
    name: str
    created_at: datetime
    updated_at: datetime
    properties_enabled: bool = True
    composition: CompositionData
    app_state: AppState = Field(default_factory=AppState)
    files: list[LocalFile] = Field(default_factory=list)
    notes: list[Note] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
