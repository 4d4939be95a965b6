from vibecut.commands.base import CommandContext, Edit, EditCommand, ReadCommand
from vibecut.commands.parser import OptionSpec, ParsedArgs
from vibecut.commands.values import format_duration, parse_int, parse_percentage
from vibecut.exceptions import MissingRequiredFieldError, NoUpdatesSpecifiedError
from vibecut.schemas.envelope import CommandResult
from vibecut.services import mutations
from vibecut.services.time_mapping import total_frames

FPS_RANGE = (1, 120)
WIDTH_RANGE = (1, 7680)
HEIGHT_RANGE = (1, 4320)
ZOOM_RANGE = (10, 1000)  # percent


class SetCompositionCommand(EditCommand):
    name = "set-comp"
    description = "Set the project title, frame rate or canvas size"
    usage = '/set-comp [--title|-t "title"] [--fps|-f 1-120] [--width|-w 1-7680] [--height|-h 1-4320]'
    options = [
        OptionSpec("title", "--title", "-t"),
        OptionSpec("fps", "--fps", "-f"),
        OptionSpec("width", "--width", "-w"),
        OptionSpec("height", "--height", "-h"),
    ]

    async def validate(self, args: ParsedArgs, context: CommandContext) -> Edit:
        if not args.options:
            raise NoUpdatesSpecifiedError(self.usage)
        fps = parse_int("--fps", args.get("fps"), *FPS_RANGE) if args.has("fps") else None
        width = parse_int("--width", args.get("width"), *WIDTH_RANGE) if args.has("width") else None
        height = parse_int("--height", args.get("height"), *HEIGHT_RANGE) if args.has("height") else None
        title = args.get("title")

        project = context.project
        changes = []
        if title is not None:
            changes.append(f'Title: "{project.name}" → "{title}"')
        if fps is not None:
            changes.append(f"FPS: {project.composition.fps} → {fps}")
        if width is not None or height is not None:
            new_size = f"{width or project.composition.width}×{height or project.composition.height}"
            changes.append(f"Size: {project.composition.width}×{project.composition.height} → {new_size}")

        updated = mutations.update_composition_settings(project, title=title, fps=fps, width=width, height=height)
        return Edit(updated, "✅ **Composition Updated**\n\n• " + "\n• ".join(changes))


class ListCompositionCommand(ReadCommand):
    name = "ls-comp"
    description = "Show composition settings, timeline length and audio tracks"
    usage = "/ls-comp"

    async def validate(self, args: ParsedArgs, context: CommandContext) -> CommandResult:
        project = context.project
        composition = project.composition
        total_ms = composition.total_duration_ms
        frames = total_frames(composition.pages, composition.fps)
        lines = [
            f"🎬 **{project.name}**",
            "",
            f"• Size: {composition.width}×{composition.height} @ {composition.fps}fps",
            f"• Pages: {len(composition.pages)}",
            f"• Duration: {format_duration(total_ms)} ({frames} frames)",
            f"• Audio tracks: {len(composition.audios)}",
        ]
        for audio in composition.audios:
            muted = ", muted" if audio.muted else ""
            lines.append(
                f"   • `{audio.id}` at {format_duration(audio.delay)} for "
                f"{format_duration(audio.duration)}, volume {audio.volume:g}{muted}"
            )
        data = {
            "name": project.name,
            "fps": composition.fps,
            "width": composition.width,
            "height": composition.height,
            "pageCount": len(composition.pages),
            "durationMs": total_ms,
            "totalFrames": frames,
            "audioIds": [audio.id for audio in composition.audios],
        }
        return CommandResult.ok("\n".join(lines), data=data)


class ZoomTimelineCommand(EditCommand):
    name = "zoom-tl"
    description = "Set timeline zoom level to a percentage (10-1000%)"
    usage = "/zoom-tl <percentage>"
    record_history = False

    async def validate(self, args: ParsedArgs, context: CommandContext) -> Edit:
        raw = args.first_positional
        if raw is None:
            raise MissingRequiredFieldError("percentage", "Example: /zoom-tl 50% or /zoom-tl 150")
        requested = parse_percentage("percentage", raw)
        low, high = ZOOM_RANGE
        clamped = max(low, min(high, requested))

        project = context.project.model_copy(deep=True)
        project.app_state.zoom_level = clamped / 100

        message = f"🔍 **Timeline Zoom Updated**\n\nTimeline zoom set to {round(clamped)}%."
        if clamped != requested:
            message += (
                f"\n\n⚠️ *Zoom level was clamped from {requested:g}% to {round(clamped)}% "
                f"(valid range: {low}%-{high}%)*"
            )
        return Edit(project, message, data={"zoomLevel": clamped / 100, "clamped": clamped != requested})
