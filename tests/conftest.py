"""
Pytest fixtures for vibecut tests.

Everything runs in memory: sessions use a deterministic id generator and
commands get a MemoryFileStorage, so no test touches the disk unless it asks
for ``tmp_path``.
"""

import os

# Keep the API app off the developer's disk while tests import it
os.environ.setdefault("VIBECUT_STORAGE_MODE", "ephemeral")

import pytest

from vibecut.commands import build_default_registry
from vibecut.commands.base import CommandContext
from vibecut.schemas.composition import Audio, CompositionData, ImageElement, Page, TextElement
from vibecut.services.file_storage import MemoryFileStorage
from vibecut.services.ids import SequentialIdGenerator
from vibecut.services.project_factory import create_default_project
from vibecut.services.session import EditorSession


class Confirmer:
    """Scripted confirm callback that remembers every prompt it was shown."""

    def __init__(self, answer: bool = True):
        self.answer = answer
        self.prompts: list[str] = []

    async def __call__(self, prompt: str) -> bool:
        self.prompts.append(prompt)
        return self.answer


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def ids() -> SequentialIdGenerator:
    return SequentialIdGenerator(start=100)


@pytest.fixture
def session(ids) -> EditorSession:
    """Session on a fresh default project (one 5000ms page, selected)."""
    return EditorSession(ids=ids, history_limit=100)


@pytest.fixture
def storage() -> MemoryFileStorage:
    return MemoryFileStorage()


@pytest.fixture
def registry():
    return build_default_registry()


@pytest.fixture
def confirmer() -> Confirmer:
    return Confirmer(answer=True)


@pytest.fixture
def declining_confirmer() -> Confirmer:
    return Confirmer(answer=False)


@pytest.fixture
def context(session, storage, registry, confirmer) -> CommandContext:
    return CommandContext(session=session, storage=storage, confirm=confirmer, registry=registry)


@pytest.fixture
def sample_composition() -> CompositionData:
    """Two pages (5s + 3s) at 30fps, a text and an image on page one, one audio track."""
    return CompositionData(
        pages=[
            Page(
                id="intro",
                name="Intro",
                duration=5000,
                elements=[
                    TextElement(id="title", text="Hello", left=10, top=20, width=300),
                    ImageElement(id="img-1", src="https://example.com/a.png", width=200, height=150),
                ],
            ),
            Page(id="outro", name="Outro", duration=3000, background_color="#000000"),
        ],
        fps=30,
        audios=[Audio(id="music", src="https://example.com/a.mp3", delay=0, duration=8000)],
    )


@pytest.fixture
def sample_session(ids, sample_composition) -> EditorSession:
    project = create_default_project(ids, project_id="project-sample", name="Sample")
    project = project.model_copy(update={"composition": sample_composition})
    project.app_state.selected_page_id = "intro"
    return EditorSession(project, ids=ids, history_limit=100)


@pytest.fixture
def sample_context(sample_session, storage, registry, confirmer) -> CommandContext:
    return CommandContext(session=sample_session, storage=storage, confirm=confirmer, registry=registry)
