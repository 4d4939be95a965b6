import re

from vibecut.commands.base import YES_OPTION, CommandContext, Edit, EditCommand, ReadCommand, target_id
from vibecut.commands.parser import OptionSpec, ParsedArgs
from vibecut.commands.values import format_duration, parse_int, require_duration, validate_color
from vibecut.exceptions import NoUpdatesSpecifiedError, PageNotFoundError
from vibecut.schemas.envelope import CommandResult
from vibecut.services import mutations
from vibecut.services.time_mapping import frame_of_page_start, page_frame_counts

_RELATIVE = re.compile(r"^\d+$")


class NewPageCommand(EditCommand):
    name = "new-page"
    aliases = ("add-page",)
    description = "Insert blank pages after the selected page, or copies of a page"
    usage = "/new-page [--num|-n 1-20] [--copy|-c pageId]"
    options = [
        OptionSpec("num", "--num", "-n", help="number of pages to add (1-20)"),
        OptionSpec("copy", "--copy", "-c", help="id of a page to duplicate"),
    ]

    async def validate(self, args: ParsedArgs, context: CommandContext) -> Edit:
        count = 1
        if args.has("num"):
            count = parse_int("--num", args.get("num"), 1, mutations.MAX_NEW_PAGES)
        project, created = mutations.add_pages(
            context.project, context.session.ids, count=count, copy_from=args.get("copy")
        )
        names = ", ".join(f'"{page.name}"' for page in created)
        noun = "page" if count == 1 else "pages"
        return Edit(
            project,
            f"✅ **Added {count} {noun}**\n\n{names}. Selected \"{created[0].name}\".",
            data={"pageIds": [page.id for page in created]},
        )


class DeletePageCommand(EditCommand):
    name = "del-page"
    description = "Delete the selected page and optionally the pages after it"
    usage = "/del-page [--id|-i pageId] [--num|-n 1-50] [--yes|-y]"
    options = [
        OptionSpec("id", "--id", "-i", help="page to delete (defaults to the selected page)"),
        OptionSpec("num", "--num", "-n", help="number of pages to delete (1-50)"),
        YES_OPTION,
    ]
    requires_confirmation = True

    async def validate(self, args: ParsedArgs, context: CommandContext) -> Edit:
        count = 1
        if args.has("num"):
            count = parse_int("--num", args.get("num"), 1, mutations.MAX_DELETE_PAGES)
        project, deleted = mutations.delete_pages(context.project, target_id(args), count)
        names = ", ".join(f'"{page.name}"' for page in deleted)
        noun = "page" if len(deleted) == 1 else "pages"
        return Edit(
            project,
            f"🗑️ **Deleted {len(deleted)} {noun}**\n\n{names}",
            data={"pageIds": [page.id for page in deleted]},
        )

    def confirmation_prompt(self, args: ParsedArgs, context: CommandContext) -> str | None:
        if args.flag("yes"):
            return None
        count = args.get("num") or "1"
        return f"Delete {count} page(s)? This cannot be undone from the command line."


class SetPageCommand(EditCommand):
    name = "set-page"
    description = "Change a page's id, name, duration or background, or move it"
    usage = (
        "/set-page [pageId] [--id|-i newId] [--name|-n name] [--duration|-d duration] "
        "[--background-color|-bg color] [--after|-a id|n] [--before|-b id|n]"
    )
    options = [
        OptionSpec("id", "--id", "-i", help="new page id"),
        OptionSpec("name", "--name", "-n"),
        OptionSpec("duration", "--duration", "-d", help="1500, 1.5s, 2m"),
        OptionSpec("background_color", "--background-color", "-bg"),
        OptionSpec("after", "--after", "-a", help="page id, or number of positions forward"),
        OptionSpec("before", "--before", "-b", help="page id, or number of positions back"),
    ]

    async def validate(self, args: ParsedArgs, context: CommandContext) -> Edit:
        if not args.options:
            raise NoUpdatesSpecifiedError(self.usage)

        project = context.project
        pages = project.composition.pages
        target = args.first_positional
        if target:
            index, page = mutations.find_page(project.composition, target)
        else:
            index = mutations.selected_page_index(project)
            index = index if index is not None else 0
            page = pages[index]

        duration = None
        if args.has("duration"):
            duration = require_duration("--duration", args.get("duration"))
        color = None
        if args.has("background_color"):
            color = validate_color("--background-color", args.get("background_color"))

        new_index = index
        position = args.get("after") if args.has("after") else args.get("before")
        if position is not None:
            is_after = args.has("after")
            if _RELATIVE.match(position):
                offset = int(position) if is_after else -int(position)
                new_index = index + offset
            else:
                ref_index = next((i for i, p in enumerate(pages) if p.id == position), None)
                if ref_index is None:
                    raise PageNotFoundError(position)
                new_index = ref_index + 1 if is_after else ref_index
            new_index = max(0, min(len(pages) - 1, new_index))

        changes = []
        new_id = args.get("id")
        if new_id is not None:
            changes.append(f'ID: "{page.id}" → "{new_id}"')
        if args.has("name"):
            changes.append(f'Name: "{page.name}" → "{args.get("name")}"')
        if duration is not None:
            changes.append(f"Duration: {format_duration(page.duration)} → {format_duration(duration)}")
        if color is not None:
            changes.append(f'Background: "{page.background_color}" → "{color}"')
        if new_index != index:
            changes.append(f"Position: {index + 1} → {new_index + 1}")

        updated = mutations.update_page(
            project,
            page.id,
            new_id=new_id,
            name=args.get("name"),
            duration=duration,
            background_color=color,
        )
        if new_index != index:
            updated = mutations.move_page(updated, new_id or page.id, new_index)

        summary = "\n• ".join(changes) if changes else "No changes made"
        name = args.get("name") or page.name
        return Edit(updated, f'✅ **Page Updated**\n\nPage "{name}" has been updated:\n\n• {summary}')


class ListPagesCommand(ReadCommand):
    name = "ls-page"
    description = "List pages with their timing and element counts"
    usage = "/ls-page [--id|-i pageId]"
    options = [OptionSpec("id", "--id", "-i", help="only show this page")]

    async def validate(self, args: ParsedArgs, context: CommandContext) -> CommandResult:
        project = context.project
        composition = project.composition
        wanted = target_id(args)
        if wanted:
            mutations.find_page(composition, wanted)
        frames = page_frame_counts(composition.pages, composition.fps)
        selected = project.app_state.selected_page_id
        lines = [f"📄 **Pages** ({len(composition.pages)})", ""]
        rows = []
        for index, page in enumerate(composition.pages):
            if wanted and page.id != wanted:
                continue
            marker = " ← selected" if page.id == selected else ""
            start = frame_of_page_start(index, composition.pages, composition.fps)
            lines.append(
                f"{index + 1}. **{page.name}** (`{page.id}`) {format_duration(page.duration)}, "
                f"frames {start}-{start + frames[index]}, {len(page.elements)} element(s){marker}"
            )
            lines.extend(f"   • {element.type} `{element.id}`" for element in page.elements)
            rows.append(
                {
                    "id": page.id,
                    "name": page.name,
                    "duration": page.duration,
                    "startFrame": start,
                    "frames": frames[index],
                    "elementCount": len(page.elements),
                }
            )
        return CommandResult.ok("\n".join(lines), data=rows)
