import logging
from abc import abstractmethod
from typing import Any

from vibecut.commands.base import YES_OPTION, CommandContext, Edit, EditCommand, target_id
from vibecut.commands.parser import OptionSpec, ParsedArgs
from vibecut.commands.values import (
    parse_bool,
    parse_float,
    parse_number,
    parse_time_value,
    validate_color,
)
from vibecut.exceptions import (
    CollaboratorError,
    InvalidFieldValueError,
    MissingRequiredFieldError,
    NoElementSelectedError,
    NoUpdatesSpecifiedError,
    WrongElementTypeError,
)
from vibecut.schemas.composition import ImageElement, TextElement, VideoElement
from vibecut.schemas.project import LocalFile
from vibecut.services import mutations
from vibecut.services.normalizer import collect_ids

logger = logging.getLogger(__name__)

TEXT_ALIGNS = ("left", "center", "right")

ID = OptionSpec("id", "--id", "-i", help="element id (defaults to the selected element)")
SRC = OptionSpec("src", "--src", "-s", help="URL, data URI or stored file name")
LEFT = OptionSpec("left", "--left", "-l")
TOP = OptionSpec("top", "--top", "-tp")
WIDTH = OptionSpec("width", "--width", "-w")
HEIGHT = OptionSpec("height", "--height", "-h")
OPACITY = OptionSpec("opacity", "--opacity", "-o", help="0-1")
ROTATION = OptionSpec("rotation", "--rotation", "-r", help="degrees")
DELAY = OptionSpec("delay", "--delay", "-d", help="start offset within the page, ms")
GEOMETRY = [LEFT, TOP, WIDTH, HEIGHT, OPACITY, ROTATION]

TEXT_STYLE = [
    OptionSpec("text", "--text", "-t"),
    OptionSpec("font_size", "--font-size", "-fs"),
    OptionSpec("color", "--color", "-c"),
    OptionSpec("font_family", "--font-family", "-ff"),
    OptionSpec("font_weight", "--font-weight", "-fw"),
    OptionSpec("text_align", "--text-align", "-ta", help="left, center or right"),
]

TEXT_DEFAULTS: dict[str, Any] = {
    "text": "New Text",
    "left": 100,
    "top": 100,
    "width": 200,
    "font_size": 32,
    "color": "#000000",
    "font_family": "Arial, sans-serif",
    "font_weight": "normal",
    "text_align": "left",
}
IMAGE_SIZE = (200, 150)
VIDEO_SIZE = (320, 240)


def geometry_updates(args: ParsedArgs) -> dict[str, Any]:
    updates: dict[str, Any] = {}
    for key in ("left", "top", "rotation"):
        if args.has(key):
            updates[key] = parse_number(f"--{key}", args.get(key))
    for key in ("width", "height"):
        if args.has(key):
            value = parse_number(f"--{key}", args.get(key))
            if value <= 0:
                raise InvalidFieldValueError(key, args.get(key), "must be greater than 0")
            updates[key] = value
    if args.has("opacity"):
        updates["opacity"] = parse_float("--opacity", args.get("opacity"), 0, 1)
    return updates


def text_style_updates(args: ParsedArgs) -> dict[str, Any]:
    updates: dict[str, Any] = {}
    if args.has("text"):
        updates["text"] = args.get("text")
    if args.has("font_size"):
        updates["font_size"] = parse_number("--font-size", args.get("font_size"))
        if updates["font_size"] <= 0:
            raise InvalidFieldValueError("font_size", args.get("font_size"), "must be greater than 0")
    if args.has("color"):
        updates["color"] = validate_color("--color", args.get("color"))
    if args.has("font_family"):
        updates["font_family"] = args.get("font_family")
    if args.has("font_weight"):
        updates["font_weight"] = args.get("font_weight")
    if args.has("text_align"):
        align = args.get("text_align").lower()
        if align not in TEXT_ALIGNS:
            raise InvalidFieldValueError("text_align", args.get("text_align"), "left, center or right")
        updates["text_align"] = align
    return updates


def new_element_id(context: CommandContext) -> str:
    taken = collect_ids(context.project.composition)
    element_id = context.session.ids.new_id("element")
    while element_id in taken:
        element_id = context.session.ids.new_id("element")
    return element_id


async def find_stored_file(context: CommandContext, src: str) -> LocalFile | None:
    """The stored file whose data URL or name is ``src``, if storage has one."""
    if context.storage is None:
        return None
    try:
        files = await context.storage.get_all_files()
    except CollaboratorError as e:
        logger.warning(f"Could not read file storage while resolving {src[:60]!r}: {e}")
        return None
    return next((f for f in files if f.data_url == src or f.name == src), None)


async def media_size(context: CommandContext, src: str, default: tuple[int, int]) -> tuple[int, int]:
    file = await find_stored_file(context, src)
    if file is not None and file.width and file.height:
        return file.width, file.height
    return default


async def media_duration_ms(context: CommandContext, src: str) -> int | None:
    file = await find_stored_file(context, src)
    if file is not None and file.duration:
        return int(round(file.duration * 1000))
    return None


def describe(updates: dict[str, Any]) -> str:
    return "\n".join(f"• {key.replace('_', ' ').title()}: {value}" for key, value in updates.items())


class NewTextCommand(EditCommand):
    name = "new-text"
    description = "Add a text element to the selected page"
    usage = (
        '/new-text [--text|-t "text"] [--font-size|-fs size] [--color|-c color] '
        "[--font-family|-ff family] [--font-weight|-fw weight] [--text-align|-ta align] "
        "[--left|-l x] [--top|-tp y] [--width|-w width]"
    )
    options = [*TEXT_STYLE, LEFT, TOP, WIDTH]

    async def validate(self, args: ParsedArgs, context: CommandContext) -> Edit:
        page = mutations.require_selected_page(context.project)
        fields = {**TEXT_DEFAULTS, **text_style_updates(args), **geometry_updates(args)}
        element = TextElement(id=new_element_id(context), **fields)
        project = mutations.add_element(context.project, page.id, element)
        return Edit(
            project,
            f'✅ **Text Added**\n\n"{element.text}" added to "{page.name}" (`{element.id}`).',
            data={"elementId": element.id},
        )


class NewImageCommand(EditCommand):
    name = "new-image"
    description = "Add an image element to the selected page, centered by default"
    usage = (
        "/new-image --src|-s url [--left|-l x] [--top|-tp y] [--width|-w width] "
        "[--height|-h height] [--opacity|-o opacity] [--rotation|-r degrees] [--copy elementId]"
    )
    options = [SRC, *GEOMETRY, OptionSpec("copy", "--copy", None, help="copy an existing image's properties")]

    async def validate(self, args: ParsedArgs, context: CommandContext) -> Edit:
        project = context.project
        fields: dict[str, Any] = {"opacity": 1, "rotation": 0}
        src = args.get("src")
        width, height = IMAGE_SIZE

        copy_from = args.get("copy")
        if copy_from:
            _, source = mutations.find_element(project.composition, copy_from)
            if source.type != "image":
                raise WrongElementTypeError(copy_from, "image", source.type)
            fields.update(source.model_dump(exclude={"id", "type"}, exclude_none=True))
            width, height = source.width or width, source.height or height
            src = src or source.src

        if not src:
            raise MissingRequiredFieldError("src", 'Pass --src "https://example.com/image.jpg" or --copy elementId')
        if not copy_from:
            width, height = await media_size(context, src, IMAGE_SIZE)

        page = mutations.require_selected_page(project)
        composition = project.composition
        fields.update(
            src=src,
            width=width,
            height=height,
            left=(composition.width - width) // 2,
            top=(composition.height - height) // 2,
        )
        fields.update(geometry_updates(args))
        if "left" not in args.options and "width" in args.options:
            fields["left"] = (composition.width - fields["width"]) // 2
        if "top" not in args.options and "height" in args.options:
            fields["top"] = (composition.height - fields["height"]) // 2

        element = ImageElement(id=new_element_id(context), **fields)
        project = mutations.add_element(project, page.id, element)
        copied = f" (copied from `{copy_from}`)" if copy_from else ""
        return Edit(
            project,
            f'✅ **Image Added**\n\nImage added to "{page.name}" (`{element.id}`){copied}.',
            data={"elementId": element.id},
        )


class NewVideoCommand(EditCommand):
    name = "new-video"
    description = "Add a video element to the selected page, centered by default"
    usage = (
        "/new-video --src|-s url [--left|-l x] [--top|-tp y] [--width|-w width] "
        "[--height|-h height] [--opacity|-o opacity] [--rotation|-r degrees] [--delay|-d ms]"
    )
    options = [SRC, *GEOMETRY, DELAY]

    async def validate(self, args: ParsedArgs, context: CommandContext) -> Edit:
        src = args.get("src")
        if not src:
            raise MissingRequiredFieldError("src", 'Pass --src "https://example.com/clip.mp4"')

        project = context.project
        width, height = await media_size(context, src, VIDEO_SIZE)
        page = mutations.require_selected_page(project)
        composition = project.composition
        fields: dict[str, Any] = {
            "src": src,
            "width": width,
            "height": height,
            "left": (composition.width - width) // 2,
            "top": (composition.height - height) // 2,
            "opacity": 1,
            "rotation": 0,
            "delay": 0,
        }
        fields.update(geometry_updates(args))
        if "left" not in args.options and "width" in args.options:
            fields["left"] = (composition.width - fields["width"]) // 2
        if "top" not in args.options and "height" in args.options:
            fields["top"] = (composition.height - fields["height"]) // 2
        if args.has("delay"):
            fields["delay"] = parse_time_value("--delay", args.get("delay"))

        element = VideoElement(id=new_element_id(context), **fields)
        project = mutations.add_element(project, page.id, element)
        return Edit(
            project,
            f'✅ **Video Added**\n\nVideo added to "{page.name}" (`{element.id}`).',
            data={"elementId": element.id},
        )


class _SetElementCommand(EditCommand):
    """Shared flow for set-text / set-image / set-video."""

    element_type: str

    @abstractmethod
    def updates(self, args: ParsedArgs) -> dict[str, Any]: ...

    async def validate(self, args: ParsedArgs, context: CommandContext) -> Edit:
        element_id = target_id(args) or context.project.app_state.selected_element_id
        if not element_id:
            raise NoElementSelectedError()
        updates = self.updates(args)
        if not updates:
            raise NoUpdatesSpecifiedError(self.usage)
        project = mutations.update_element(
            context.project, element_id, updates, expected_type=self.element_type
        )
        title = self.element_type.capitalize()
        return Edit(project, f"✅ **{title} Updated**\n\n`{element_id}`:\n{describe(updates)}")


class SetTextCommand(_SetElementCommand):
    name = "set-text"
    description = "Update a text element's content, style or geometry"
    usage = (
        '/set-text [elementId] [--text|-t "text"] [--font-size|-fs size] [--color|-c color] '
        "[--font-family|-ff family] [--font-weight|-fw weight] [--text-align|-ta align] "
        "[--left|-l x] [--top|-tp y] [--width|-w width] [--height|-h height] "
        "[--opacity|-o opacity] [--rotation|-r degrees]"
    )
    options = [ID, *TEXT_STYLE, *GEOMETRY]
    element_type = "text"

    def updates(self, args: ParsedArgs) -> dict[str, Any]:
        return {**text_style_updates(args), **geometry_updates(args)}


class SetImageCommand(_SetElementCommand):
    name = "set-image"
    description = "Update an image element's source or geometry"
    usage = (
        "/set-image [elementId] [--id|-i elementId] [--src|-s url] [--left|-l x] [--top|-tp y] "
        "[--width|-w width] [--height|-h height] [--opacity|-o opacity] [--rotation|-r degrees]"
    )
    options = [ID, SRC, *GEOMETRY]
    element_type = "image"

    def updates(self, args: ParsedArgs) -> dict[str, Any]:
        updates = geometry_updates(args)
        if args.has("src"):
            updates["src"] = args.get("src")
        return updates


class SetVideoCommand(_SetElementCommand):
    name = "set-video"
    description = "Update a video element's source, timing, audio or geometry"
    usage = (
        "/set-video [elementId] [--id|-i elementId] [--src|-s url] [--delay|-d ms] "
        "[--volume|-v 0-1] [--muted|-m true|false] [--left|-l x] [--top|-tp y] "
        "[--width|-w width] [--height|-h height] [--opacity|-o opacity] [--rotation|-r degrees]"
    )
    options = [
        ID,
        SRC,
        DELAY,
        OptionSpec("volume", "--volume", "-v", help="0-1"),
        OptionSpec("muted", "--muted", "-m", help="true or false"),
        *GEOMETRY,
    ]
    element_type = "video"

    def updates(self, args: ParsedArgs) -> dict[str, Any]:
        updates = geometry_updates(args)
        if args.has("src"):
            updates["src"] = args.get("src")
        if args.has("delay"):
            updates["delay"] = parse_time_value("--delay", args.get("delay"))
        if args.has("volume"):
            updates["volume"] = parse_float("--volume", args.get("volume"), 0, 1)
        if args.has("muted"):
            updates["muted"] = parse_bool("--muted", args.get("muted"))
        return updates


class DeleteElementCommand(EditCommand):
    name = "del-elem"
    description = "Delete an element (defaults to the selected element)"
    usage = "/del-elem [elementId] [--id|-i elementId] [--yes|-y]"
    options = [ID, YES_OPTION]
    requires_confirmation = True

    async def validate(self, args: ParsedArgs, context: CommandContext) -> Edit:
        element_id = target_id(args) or context.project.app_state.selected_element_id
        if not element_id:
            raise NoElementSelectedError()
        project, element = mutations.delete_element(context.project, element_id)
        return Edit(
            project,
            f"🗑️ **Element Deleted**\n\n{element.type} element `{element.id}` removed.",
            data={"elementId": element.id},
        )

    def confirmation_prompt(self, args: ParsedArgs, context: CommandContext) -> str | None:
        if args.flag("yes"):
            return None
        element_id = target_id(args) or context.project.app_state.selected_element_id
        return f"Delete element {element_id}?"
