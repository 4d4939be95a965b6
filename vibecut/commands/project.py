"""Whole-project commands: export, import, share, reset and the file list."""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from vibecut.commands.base import YES_OPTION, CommandContext, ReadCommand, SlashCommand
from vibecut.commands.parser import OptionSpec, ParsedArgs
from vibecut.exceptions import (
    CollaboratorError,
    InvalidFieldValueError,
    RendererError,
    RendererUnavailableError,
    VibecutError,
)
from vibecut.schemas.envelope import CommandResult
from vibecut.schemas.project import Project
from vibecut.services.file_storage import format_file_size, replace_files
from vibecut.services.project_factory import create_default_project
from vibecut.services.project_io import export_project_json, import_project

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "mp4", "webm")
_UNSAFE_FILENAME = re.compile(r"[^\w\-]+")


def export_filename(project: Project, extension: str) -> str:
    stem = _UNSAFE_FILENAME.sub("_", project.name).strip("_") or "project"
    return f"{stem}.{extension}"


@dataclass
class ExportPlan:
    format: str
    use_dialog: bool = False


class ExportCommand(SlashCommand):
    name = "export"
    description = "Export the project as JSON or render it to video"
    usage = "/export [--format|-f json|mp4|webm] [--yes|-y]"
    options = [OptionSpec("format", "--format", "-f", help="json, mp4 or webm"), YES_OPTION]

    async def validate(self, args: ParsedArgs, context: CommandContext) -> ExportPlan:
        fmt = (args.get("format") or "json").lower()
        if fmt not in EXPORT_FORMATS:
            raise InvalidFieldValueError("--format", args.get("format"), "json, mp4 or webm")
        if not args.flag("yes"):
            if context.open_export_dialog is None:
                raise CollaboratorError("Export dialog is not available; pass --yes to export directly")
            return ExportPlan(fmt, use_dialog=True)
        if fmt == "json" and context.save_export is None:
            raise CollaboratorError("No export destination is configured")
        if fmt != "json" and context.render_video is None:
            raise RendererUnavailableError()
        return ExportPlan(fmt)

    async def apply(self, plan: ExportPlan, context: CommandContext) -> CommandResult:
        if plan.use_dialog:
            await context.open_export_dialog(plan.format)
            return CommandResult.ok(f"📤 Opening the export dialog ({plan.format})", data={"format": plan.format})
        return await self._export(plan.format, context.project, context)

    async def _export(self, fmt: str, project: Project, context: CommandContext) -> CommandResult:
        if fmt == "json":
            filename = export_filename(project, "json")
            content = await export_project_json(project, context.storage)
            await context.save_export(filename, content)
            logger.info(f"Exported project {project.id} to {filename}")
            return CommandResult.ok(
                f"✅ **Exported**\n\nSaved `{filename}` ({format_file_size(len(content.encode()))})",
                data={"format": fmt, "filename": filename},
            )
        try:
            location = await context.render_video(project, fmt)
        except VibecutError:
            raise
        except Exception as e:
            logger.exception(f"Render of project {project.id} as {fmt} failed")
            raise RendererError(f"Video rendering failed: {e}") from e
        logger.info(f"Rendered project {project.id} as {fmt}")
        return CommandResult.ok(
            f"🎬 **Render Complete**\n\n{fmt.upper()} saved to {location}",
            data={"format": fmt, "location": location},
        )


@dataclass
class ImportPlan:
    project: Project | None
    source: str | None = None


class ImportCommand(SlashCommand):
    name = "import"
    description = "Replace the current project with a project JSON file"
    usage = "/import [--file|-f path] [--yes|-y]"
    options = [OptionSpec("file", "--file", "-f", help="path to an exported project .json"), YES_OPTION]
    requires_confirmation = True

    async def validate(self, args: ParsedArgs, context: CommandContext) -> ImportPlan:
        path = args.get("file") or args.first_positional
        if path is None:
            if context.open_import_dialog is None:
                raise CollaboratorError("Import dialog is not available; pass --file to import a file")
            return ImportPlan(project=None)
        try:
            raw = Path(path).expanduser().read_text(encoding="utf-8")
        except OSError as e:
            raise InvalidFieldValueError("--file", path, f"could not read file ({e.strerror})") from e
        project = import_project(raw, context.session.ids)
        return ImportPlan(project=project, source=path)

    def confirmation_prompt(self, args: ParsedArgs, context: CommandContext) -> str | None:
        if args.flag("yes") or not (args.get("file") or args.first_positional):
            return None
        return "Importing replaces the current project and its files. Continue?"

    async def apply(self, plan: ImportPlan, context: CommandContext) -> CommandResult:
        if plan.project is None:
            await context.open_import_dialog()
            return CommandResult.ok("📥 Opening the import dialog")

        imported = plan.project
        if context.storage is not None:
            await replace_files(context.storage, imported.files)
        project = context.session.replace_project(imported)
        pages = len(project.composition.pages)
        message = f"✅ **Project Imported**\n\n\"{project.name}\" with {pages} page(s) and {len(project.files)} file(s)."
        context.session.chat.reset()
        context.session.chat.add("assistant", message)
        return CommandResult.ok(message, data={"projectId": project.id, "source": plan.source})


class ShareCommand(SlashCommand):
    name = "share"
    description = "Upload an encrypted copy of the project and get a share link"
    usage = "/share [--yes|-y]"
    options = [YES_OPTION]
    requires_confirmation = True

    async def validate(self, args: ParsedArgs, context: CommandContext) -> Project:
        if context.share_service is None:
            raise CollaboratorError("Sharing is not configured")
        project = context.project
        if context.storage is not None:
            project = project.model_copy(update={"files": await context.storage.get_all_files()})
        return project

    def confirmation_prompt(self, args: ParsedArgs, context: CommandContext) -> str | None:
        if args.flag("yes"):
            return None
        return "Upload an encrypted copy of this project? Anyone with the link can view it."

    async def apply(self, plan: Project, context: CommandContext) -> CommandResult:
        link = await context.share_service.share_project(plan)
        return CommandResult.ok(
            f"🔗 **Project Shared**\n\n{link.url}\n\nThe key after `#` never leaves this link.",
            data={"shareId": link.share_id, "url": link.url},
        )


class ResetCommand(SlashCommand):
    name = "reset"
    description = "Start over with a blank project (files and history are cleared)"
    usage = "/reset"
    requires_confirmation = True

    async def validate(self, args: ParsedArgs, context: CommandContext) -> None:
        return None

    def confirmation_prompt(self, args: ParsedArgs, context: CommandContext) -> str | None:
        return "Reset the project? All pages, files and history will be lost."

    async def apply(self, plan: None, context: CommandContext) -> CommandResult:
        current = context.project
        if context.storage is not None:
            await context.storage.clear_all_files()
        fresh = create_default_project(context.session.ids, project_id=current.id)
        context.session.replace_project(fresh)
        context.session.chat.reset()
        logger.info(f"Reset project {current.id}")
        return CommandResult.ok("🔄 **Project Reset**\n\nStarted over with a blank page.")


class ListFilesCommand(ReadCommand):
    name = "ls-files"
    description = "List stored media files and total storage used"
    usage = "/ls-files"

    async def validate(self, args: ParsedArgs, context: CommandContext) -> CommandResult:
        if context.storage is None:
            files = context.project.files
            total = sum(f.size for f in files)
        else:
            files = await context.storage.get_all_files()
            total = (await context.storage.get_storage_stats())["total_size"]
        if not files:
            return CommandResult.ok("📁 No files stored.", data=[])

        lines = [f"📁 **Files** ({len(files)}, {format_file_size(total)})", ""]
        rows: list[dict[str, Any]] = []
        for file in sorted(files, key=lambda f: f.name.lower()):
            size = format_file_size(file.size)
            extra = f", {file.width}×{file.height}" if file.width and file.height else ""
            lines.append(f"• **{file.name}** ({file.type}, {size}{extra})")
            rows.append({"id": file.id, "name": file.name, "type": file.type, "size": file.size})
        return CommandResult.ok("\n".join(lines), data=rows)
