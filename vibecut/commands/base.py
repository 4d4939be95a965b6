"""Command contract and the context commands run against."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from vibecut.commands.parser import OptionSpec, ParsedArgs, parse_options
from vibecut.schemas.envelope import CommandResult
from vibecut.schemas.project import Project
from vibecut.services.file_storage import FileStorage
from vibecut.services.session import EditorSession
from vibecut.services.share_service import ShareService

if TYPE_CHECKING:
    from vibecut.commands.registry import CommandRegistry

ConfirmFn = Callable[[str], Awaitable[bool]]
ExportDialogFn = Callable[[str], Awaitable[None]]
ImportDialogFn = Callable[[], Awaitable[None]]
SaveExportFn = Callable[[str, str], Awaitable[None]]
RenderVideoFn = Callable[[Project, str], Awaitable[str]]

YES_OPTION = OptionSpec("yes", "--yes", "-y", takes_value=False, help="skip confirmation")


@dataclass
class CommandContext:
    """Everything a command may touch.

    The UI callbacks are optional; a command that needs a missing one fails
    with a ``CollaboratorError`` instead of guessing.
    """

    session: EditorSession
    storage: FileStorage | None = None
    share_service: ShareService | None = None
    confirm: ConfirmFn | None = None
    open_export_dialog: ExportDialogFn | None = None
    open_import_dialog: ImportDialogFn | None = None
    save_export: SaveExportFn | None = None
    render_video: RenderVideoFn | None = None
    registry: "CommandRegistry | None" = None

    @property
    def project(self) -> Project:
        return self.session.project


class SlashCommand(ABC):
    """A named, argument-validated edit.

    Execution is split so that nothing is mutated before the user confirms:
    ``validate`` parses values and builds whatever ``apply`` needs (usually
    the candidate project), raising on any problem; ``apply`` commits.
    """

    name: ClassVar[str]
    description: ClassVar[str]
    usage: ClassVar[str]
    options: ClassVar[list[OptionSpec]] = []
    requires_confirmation: ClassVar[bool] = False
    aliases: ClassVar[tuple[str, ...]] = ()

    def parse(self, tokens: list[str]) -> ParsedArgs:
        return parse_options(tokens, self.options, self.usage)

    def confirmation_prompt(self, args: ParsedArgs, context: CommandContext) -> str | None:
        """Question to ask before applying, or None to apply straight away."""
        if not self.requires_confirmation or args.flag("yes"):
            return None
        return f"Run /{self.name}?"

    @abstractmethod
    async def validate(self, args: ParsedArgs, context: CommandContext) -> Any: ...

    @abstractmethod
    async def apply(self, plan: Any, context: CommandContext) -> CommandResult: ...


@dataclass
class Edit:
    project: Project
    message: str
    data: Any = None


class EditCommand(SlashCommand):
    """A command whose whole effect is committing one precomputed project."""

    record_history: ClassVar[bool] = True

    @abstractmethod
    async def validate(self, args: ParsedArgs, context: CommandContext) -> Edit: ...

    async def apply(self, plan: Edit, context: CommandContext) -> CommandResult:
        context.session.commit(plan.project, record_history=self.record_history)
        return CommandResult.ok(plan.message, plan.data)


def target_id(args: ParsedArgs) -> str | None:
    """``--id`` value, else the first bare token."""
    return args.get("id") or args.first_positional


class ReadCommand(SlashCommand):
    """A command that only reports on the project and never commits."""

    @abstractmethod
    async def validate(self, args: ParsedArgs, context: CommandContext) -> CommandResult: ...

    async def apply(self, plan: CommandResult, context: CommandContext) -> CommandResult:
        return plan
