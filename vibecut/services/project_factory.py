"""Constructors for blank pages, app state and projects."""

from vibecut.config import get_settings
from vibecut.schemas.composition import CompositionData, Page
from vibecut.schemas.project import AppState, Project
from vibecut.services.ids import IdGenerator, utcnow


def create_default_page(ids: IdGenerator, name: str = "Page 1", page_id: str | None = None) -> Page:
    settings = get_settings()
    return Page(
        id=page_id or ids.new_id("page"),
        name=name,
        duration=settings.default_page_duration_ms,
        background_color=settings.default_background_color,
        elements=[],
    )


def create_default_composition(ids: IdGenerator) -> CompositionData:
    settings = get_settings()
    return CompositionData(
        pages=[create_default_page(ids)],
        fps=settings.default_fps,
        width=settings.default_width,
        height=settings.default_height,
        audios=[],
    )


def create_default_app_state(selected_page_id: str | None = None) -> AppState:
    return AppState(selected_page_id=selected_page_id)


def create_default_project(
    ids: IdGenerator,
    *,
    project_id: str | None = None,
    name: str | None = None,
) -> Project:
    """A project with one blank page, selected."""
    now = utcnow()
    composition = create_default_composition(ids)
    return Project(
        id=project_id or ids.new_id("project"),
        name=name or get_settings().default_project_name,
        created_at=now,
        updated_at=now,
        properties_enabled=True,
        composition=composition,
        app_state=create_default_app_state(selected_page_id=composition.pages[0].id),
        files=[],
        metadata={},
    )
