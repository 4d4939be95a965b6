from typing import Any

from vibecut.commands.base import YES_OPTION, CommandContext, Edit, EditCommand, target_id
from vibecut.commands.element import media_duration_ms
from vibecut.commands.parser import OptionSpec, ParsedArgs
from vibecut.commands.values import format_duration, parse_bool, parse_float, parse_time_value
from vibecut.exceptions import MissingRequiredFieldError, NoUpdatesSpecifiedError
from vibecut.schemas.composition import Audio
from vibecut.services import mutations

AUDIO_OPTIONS = [
    OptionSpec("src", "--src", "-s", help="URL, data URI or stored file name"),
    OptionSpec("volume", "--volume", "-v", help="0-1"),
    OptionSpec("trim_before", "--trim-before", "-b", help="ms cut from the start of the source"),
    OptionSpec("trim_after", "--trim-after", "-a", help="ms position where the source stops"),
    OptionSpec("playback_rate", "--playback-rate", "-r", help="greater than 0"),
    OptionSpec("muted", "--muted", "-m", help="true or false"),
    OptionSpec("loop", "--loop", "-l", help="true or false"),
    OptionSpec("tone_frequency", "--tone-frequency", "-f", help="0.01-2"),
    OptionSpec("delay", "--delay", "-d", help="start on the timeline, ms"),
    OptionSpec("duration", "--duration", "-dr", help="ms"),
]


def audio_updates(args: ParsedArgs) -> dict[str, Any]:
    updates: dict[str, Any] = {}
    if args.has("src"):
        updates["src"] = args.get("src")
    if args.has("volume"):
        updates["volume"] = parse_float("--volume", args.get("volume"), 0, 1)
    for key in ("trim_before", "trim_after", "delay", "duration"):
        if args.has(key):
            updates[key] = parse_time_value(f"--{key.replace('_', '-')}", args.get(key))
    if args.has("playback_rate"):
        updates["playback_rate"] = parse_float(
            "--playback-rate", args.get("playback_rate"), 0, exclusive_minimum=True
        )
    if args.has("tone_frequency"):
        updates["tone_frequency"] = parse_float("--tone-frequency", args.get("tone_frequency"), 0.01, 2)
    for key in ("muted", "loop"):
        if args.has(key):
            updates[key] = parse_bool(f"--{key}", args.get(key))
    return updates


def describe(updates: dict[str, Any]) -> str:
    lines = []
    for key, value in updates.items():
        label = key.replace("_", " ").capitalize()
        if key in ("trim_before", "trim_after", "delay", "duration"):
            value = format_duration(value)
        lines.append(f"• {label}: {value}")
    return "\n".join(lines)


class NewAudioCommand(EditCommand):
    name = "new-audio"
    description = "Add an audio track to the composition"
    usage = (
        "/new-audio --src|-s url [--volume|-v 0-1] [--delay|-d ms] [--duration|-dr ms] "
        "[--trim-before|-b ms] [--trim-after|-a ms] [--playback-rate|-r rate] "
        "[--muted|-m true|false] [--loop|-l true|false] [--tone-frequency|-f 0.01-2]"
    )
    options = AUDIO_OPTIONS

    async def validate(self, args: ParsedArgs, context: CommandContext) -> Edit:
        fields = audio_updates(args)
        src = fields.get("src")
        if not src:
            raise MissingRequiredFieldError("src", 'Pass --src "https://example.com/track.mp3"')

        project = context.project
        delay = fields.setdefault("delay", 0)
        if "duration" not in fields:
            remaining = max(0, project.composition.total_duration_ms - delay)
            source_ms = await media_duration_ms(context, src)
            fields["duration"] = min(source_ms, remaining) if source_ms else remaining

        taken = {audio.id for audio in project.composition.audios}
        audio_id = context.session.ids.new_id("audio")
        while audio_id in taken:
            audio_id = context.session.ids.new_id("audio")

        audio = Audio(id=audio_id, **fields)
        return Edit(
            mutations.add_audio(project, audio),
            f"🎵 **Audio Added**\n\n`{audio.id}` starts at {format_duration(audio.delay)} "
            f"and plays for {format_duration(audio.duration)}.",
            data={"audioId": audio.id},
        )


class SetAudioCommand(EditCommand):
    name = "set-audio"
    description = "Update an audio track"
    usage = (
        "/set-audio --id|-i audioId [--src|-s url] [--volume|-v 0-1] [--trim-before|-b ms] "
        "[--trim-after|-a ms] [--playback-rate|-r rate] [--muted|-m true|false] "
        "[--loop|-l true|false] [--tone-frequency|-f 0.01-2] [--delay|-d ms] [--duration|-dr ms]"
    )
    options = [OptionSpec("id", "--id", "-i"), *AUDIO_OPTIONS]

    async def validate(self, args: ParsedArgs, context: CommandContext) -> Edit:
        audio_id = target_id(args)
        if not audio_id:
            raise MissingRequiredFieldError("id", "Pass the audio id, see /ls-comp")
        updates = audio_updates(args)
        if not updates:
            raise NoUpdatesSpecifiedError(self.usage)
        project = mutations.update_audio(context.project, audio_id, updates)
        return Edit(project, f"🎵 **Audio Updated**\n\n`{audio_id}`:\n{describe(updates)}")


class DeleteAudioCommand(EditCommand):
    name = "del-audio"
    description = "Remove an audio track"
    usage = "/del-audio --id|-i audioId [--yes|-y]"
    options = [OptionSpec("id", "--id", "-i"), YES_OPTION]
    requires_confirmation = True

    async def validate(self, args: ParsedArgs, context: CommandContext) -> Edit:
        audio_id = target_id(args)
        if not audio_id:
            raise MissingRequiredFieldError("id", "Pass the audio id, see /ls-comp")
        project, audio = mutations.delete_audio(context.project, audio_id)
        return Edit(project, f"🗑️ **Audio Deleted**\n\n`{audio.id}` removed.", data={"audioId": audio.id})

    def confirmation_prompt(self, args: ParsedArgs, context: CommandContext) -> str | None:
        if args.flag("yes"):
            return None
        return f"Delete audio {target_id(args)}?"
