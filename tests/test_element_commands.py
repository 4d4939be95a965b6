"""
Tests for text, image and video element commands.

Run with: pytest tests/test_element_commands.py -v
"""

from datetime import datetime, timezone

import pytest

from vibecut.commands.element import _SetElementCommand
from vibecut.schemas.project import LocalFile
from vibecut.services import mutations


def _element(context, element_id: str):
    return mutations.find_element(context.project.composition, element_id)[1]


def _stored_file(name: str, mime: str, **extra) -> LocalFile:
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return LocalFile(
        id=f"file-{name}",
        name=name,
        type=mime,
        size=2048,
        data_url=f"data:{mime};base64,AAAA",
        created_at=now,
        updated_at=now,
        **extra,
    )


# =============================================================================
# new-text
# =============================================================================


class TestNewText:
    """Text elements land on the selected page and become selected."""

    @pytest.mark.asyncio
    async def test_defaults(self, context, registry):
        result = await registry.execute("/new-text", context)

        assert result.success, result.message
        element = _element(context, result.data["elementId"])
        assert element.type == "text"
        assert (element.text, element.font_size, element.color) == ("New Text", 32, "#000000")
        assert (element.left, element.top, element.width) == (100, 100, 200)
        assert context.project.app_state.selected_element_id == element.id

    @pytest.mark.asyncio
    async def test_options(self, sample_context, registry):
        result = await registry.execute(
            '/new-text --text "Big title" -fs 64 -c #ff0000 --text-align CENTER -l 0 -tp 40 -w 800',
            sample_context,
        )

        assert result.success, result.message
        element = _element(sample_context, result.data["elementId"])
        assert (element.text, element.font_size, element.color, element.text_align) == (
            "Big title",
            64,
            "#ff0000",
            "center",
        )
        assert (element.left, element.top, element.width) == (0, 40, 800)
        assert sample_context.project.composition.pages[0].elements[-1].id == element.id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("args", ["--text-align justify", "--font-size 0", "--color nope!", "--width -5"])
    async def test_invalid_values(self, context, registry, args):
        result = await registry.execute(f"/new-text {args}", context)
        assert result.error.code == "INVALID_FIELD_VALUE"
        assert context.project.composition.pages[0].elements == []


# =============================================================================
# new-image / new-video
# =============================================================================


class TestNewImage:
    """Images are centered on the canvas unless positioned explicitly."""

    @pytest.mark.asyncio
    async def test_centered_default_size(self, context, registry):
        result = await registry.execute("/new-image --src https://example.com/cat.png", context)

        element = _element(context, result.data["elementId"])
        assert (element.width, element.height) == (200, 150)
        assert (element.left, element.top) == (860, 465)
        assert element.src == "https://example.com/cat.png"

    @pytest.mark.asyncio
    async def test_width_recenters_horizontally(self, context, registry):
        result = await registry.execute("/new-image -s cat.png -w 400 -tp 10", context)

        element = _element(context, result.data["elementId"])
        assert (element.left, element.top) == (760, 10)

    @pytest.mark.asyncio
    async def test_stored_file_dimensions(self, context, registry, storage):
        await storage.store_file(_stored_file("photo.png", "image/png", width=800, height=600))

        result = await registry.execute("/new-image --src photo.png", context)

        element = _element(context, result.data["elementId"])
        assert (element.width, element.height) == (800, 600)
        assert (element.left, element.top) == (560, 240)

    @pytest.mark.asyncio
    async def test_copy_existing_image(self, sample_context, registry):
        result = await registry.execute("/new-image --copy img-1", sample_context)

        assert result.success, result.message
        element = _element(sample_context, result.data["elementId"])
        assert element.src == "https://example.com/a.png"
        assert (element.width, element.height) == (200, 150)
        assert element.id != "img-1"

    @pytest.mark.asyncio
    async def test_copy_of_text_element(self, sample_context, registry):
        result = await registry.execute("/new-image --copy title", sample_context)
        assert result.error.code == "WRONG_ELEMENT_TYPE"

    @pytest.mark.asyncio
    async def test_src_required(self, context, registry):
        result = await registry.execute("/new-image -w 100", context)
        assert result.error.code == "MISSING_REQUIRED_FIELD"

    @pytest.mark.asyncio
    async def test_opacity_bounds(self, context, registry):
        result = await registry.execute("/new-image -s a.png --opacity 1.5", context)
        assert result.error.code == "OUT_OF_BOUNDS"


class TestNewVideo:
    """Videos are centered and may start later within their page."""

    @pytest.mark.asyncio
    async def test_defaults_and_delay(self, context, registry):
        result = await registry.execute("/new-video --src clip.mp4 --delay 1.5s", context)

        assert result.success, result.message
        element = _element(context, result.data["elementId"])
        assert element.type == "video"
        assert (element.width, element.height, element.delay) == (320, 240, 1500)
        assert (element.left, element.top) == (800, 420)

    @pytest.mark.asyncio
    async def test_src_required(self, context, registry):
        result = await registry.execute("/new-video", context)
        assert result.error.code == "MISSING_REQUIRED_FIELD"


# =============================================================================
# set-text / set-image / set-video
# =============================================================================


class TestSetElement:
    """Partial updates guarded by element type."""

    @pytest.mark.asyncio
    async def test_set_text_by_positional_id(self, sample_context, registry):
        result = await registry.execute('/set-text title --text "Bye" -fs 48', sample_context)

        assert result.success, result.message
        element = _element(sample_context, "title")
        assert (element.text, element.font_size) == ("Bye", 48)
        # Untouched fields survive the merge
        assert (element.left, element.top, element.width) == (10, 20, 300)

    @pytest.mark.asyncio
    async def test_set_text_uses_selected_element(self, sample_context, registry):
        sample_context.session.select_element("title")
        result = await registry.execute("/set-text --opacity 0.5", sample_context)
        assert result.success
        assert _element(sample_context, "title").opacity == 0.5

    @pytest.mark.asyncio
    async def test_no_target(self, sample_context, registry):
        result = await registry.execute("/set-text --text x", sample_context)
        assert result.error.code == "NO_ELEMENT_SELECTED"

    @pytest.mark.asyncio
    async def test_wrong_type(self, sample_context, registry):
        result = await registry.execute("/set-text --id img-1 --text x", sample_context)
        assert result.error.code == "WRONG_ELEMENT_TYPE"

    @pytest.mark.asyncio
    async def test_missing_element(self, sample_context, registry):
        result = await registry.execute("/set-image --id nope --width 10", sample_context)
        assert result.error.code == "ELEMENT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_no_updates(self, sample_context, registry):
        result = await registry.execute("/set-image img-1", sample_context)
        assert result.error.code == "NO_UPDATES_SPECIFIED"

    @pytest.mark.asyncio
    async def test_set_image(self, sample_context, registry):
        result = await registry.execute("/set-image --id img-1 --width 300 --src b.png -r 45", sample_context)

        assert result.success, result.message
        element = _element(sample_context, "img-1")
        assert (element.width, element.height, element.src, element.rotation) == (300, 150, "b.png", 45)

    @pytest.mark.asyncio
    async def test_set_video(self, context, registry):
        created = await registry.execute("/new-video -s clip.mp4", context)
        video_id = created.data["elementId"]

        result = await registry.execute(f"/set-video {video_id} --muted true -v 0.25 -d 2s", context)

        assert result.success, result.message
        element = _element(context, video_id)
        assert (element.muted, element.volume, element.delay) == (True, 0.25, 2000)

    @pytest.mark.asyncio
    async def test_edit_is_undoable(self, sample_context, registry):
        await registry.execute('/set-text title --text "Bye"', sample_context)
        sample_context.session.undo()
        assert _element(sample_context, "title").text == "Hello"

    def test_shared_set_flow_is_abstract(self):
        with pytest.raises(TypeError):
            _SetElementCommand()


# =============================================================================
# del-elem
# =============================================================================


class TestDeleteElement:
    """Deletion with confirmation and selection cleanup."""

    @pytest.mark.asyncio
    async def test_delete_selected(self, sample_context, registry, confirmer):
        sample_context.session.select_element("title")

        result = await registry.execute("/del-elem", sample_context)

        assert result.success, result.message
        assert confirmer.prompts == ["Delete element title?"]
        assert [e.id for e in sample_context.project.composition.pages[0].elements] == ["img-1"]
        assert sample_context.project.app_state.selected_element_id is None

    @pytest.mark.asyncio
    async def test_delete_by_id_with_yes(self, sample_context, registry, confirmer):
        result = await registry.execute("/del-elem img-1 -y", sample_context)

        assert result.success
        assert confirmer.prompts == []
        assert result.data == {"elementId": "img-1"}

    @pytest.mark.asyncio
    async def test_nothing_selected(self, sample_context, registry):
        result = await registry.execute("/del-elem", sample_context)
        assert result.error.code == "NO_ELEMENT_SELECTED"

    @pytest.mark.asyncio
    async def test_delete_inside_group(self, session, registry, context):
        session.replace_composition(
            {
                "pages": [
                    {
                        "id": "p",
                        "elements": [
                            {"id": "g", "type": "group", "elements": [{"id": "child", "type": "text"}]}
                        ],
                    }
                ]
            }
        )

        result = await registry.execute("/del-elem child -y", context)

        assert result.success, result.message
        group = session.project.composition.pages[0].elements[0]
        assert group.elements == []
