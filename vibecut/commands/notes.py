"""Timeline notes: free-text markers pinned to a time on the whole video."""

from vibecut.commands.base import CommandContext, Edit, EditCommand, ReadCommand, target_id
from vibecut.commands.parser import OptionSpec, ParsedArgs
from vibecut.commands.values import format_duration, parse_time_value
from vibecut.exceptions import MissingRequiredFieldError, NoUpdatesSpecifiedError
from vibecut.schemas.envelope import CommandResult
from vibecut.services import mutations
from vibecut.services.time_mapping import page_at_time_ms, page_start_ms

NOTE_ID = OptionSpec("id", "--id", "-i", help="note id")
TIME = OptionSpec("time", "--time", "-t", help="1500, 1500ms or 1.5s from the start of the video")
TEXT = OptionSpec("text", "--text", "-txt")


def _where(context: CommandContext, time_ms: int) -> str:
    pages = context.project.composition.pages
    page = pages[page_at_time_ms(time_ms, pages)]
    return f"{format_duration(time_ms)} on \"{page.name}\""


class NewNoteCommand(EditCommand):
    name = "new-note"
    description = "Pin a note to a point on the timeline"
    usage = "/new-note --text|-txt text [--time|-t time]"
    options = [TEXT, TIME]

    async def validate(self, args: ParsedArgs, context: CommandContext) -> Edit:
        text = args.get("text") or args.first_positional
        if not text:
            raise MissingRequiredFieldError("--text", self.usage)
        project = context.project
        if args.has("time"):
            time_ms = parse_time_value("--time", args.get("time"))
        else:
            index = mutations.selected_page_index(project) or 0
            time_ms = page_start_ms(index, project.composition.pages)
        updated, note = mutations.add_note(project, context.session.ids, time_ms, text)
        return Edit(
            updated,
            f"📝 **Note Added** (`{note.id}`)\n\n{_where(context, time_ms)}: {text}",
            data={"noteId": note.id, "time": time_ms},
        )


class ListNotesCommand(ReadCommand):
    name = "ls-notes"
    description = "List timeline notes in time order"
    usage = "/ls-notes"

    async def validate(self, args: ParsedArgs, context: CommandContext) -> CommandResult:
        notes = mutations.list_notes(context.project)
        if not notes:
            return CommandResult.ok("📝 No notes yet. Add one with `/new-note --text \"...\"`.", data=[])
        lines = [f"📝 **Notes** ({len(notes)})", ""]
        for note in notes:
            lines.append(f"• `{note.id}` at {_where(context, note.time)}: {note.text}")
        rows = [note.model_dump(mode="json", by_alias=True) for note in notes]
        return CommandResult.ok("\n".join(lines), data=rows)


class SetNoteCommand(EditCommand):
    name = "set-note"
    description = "Change a note's time or text"
    usage = "/set-note --id|-i noteId [--time|-t time] [--text|-txt text]"
    options = [NOTE_ID, TIME, TEXT]

    async def validate(self, args: ParsedArgs, context: CommandContext) -> Edit:
        note_id = args.get("id")
        if not note_id:
            raise MissingRequiredFieldError("--id", self.usage)
        if not args.has("time") and not args.has("text"):
            raise NoUpdatesSpecifiedError(self.usage)
        time_ms = parse_time_value("--time", args.get("time")) if args.has("time") else None
        updated, note = mutations.update_note(context.project, note_id, time_ms=time_ms, text=args.get("text"))
        return Edit(
            updated,
            f"✅ **Note Updated** (`{note.id}`)\n\n{_where(context, note.time)}: {note.text}",
            data={"noteId": note.id, "time": note.time},
        )


class DeleteNoteCommand(EditCommand):
    name = "del-note"
    description = "Remove a timeline note"
    usage = "/del-note --id|-i noteId"
    options = [NOTE_ID]

    async def validate(self, args: ParsedArgs, context: CommandContext) -> Edit:
        note_id = target_id(args)
        if not note_id:
            raise MissingRequiredFieldError("--id", self.usage)
        updated, note = mutations.delete_note(context.project, note_id)
        return Edit(updated, f"🗑️ **Note Deleted**\n\n\"{note.text}\"", data={"noteId": note.id})
