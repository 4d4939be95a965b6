"""Slash commands typed into the editor chat (``/new-page -n 3``)."""

from vibecut.commands.audio import DeleteAudioCommand, NewAudioCommand, SetAudioCommand
from vibecut.commands.base import CommandContext, SlashCommand
from vibecut.commands.chat import DeleteChatCommand, HelpCommand, NewChatCommand
from vibecut.commands.composition import ListCompositionCommand, SetCompositionCommand, ZoomTimelineCommand
from vibecut.commands.element import (
    DeleteElementCommand,
    NewImageCommand,
    NewTextCommand,
    NewVideoCommand,
    SetImageCommand,
    SetTextCommand,
    SetVideoCommand,
)
from vibecut.commands.notes import DeleteNoteCommand, ListNotesCommand, NewNoteCommand, SetNoteCommand
from vibecut.commands.page import DeletePageCommand, ListPagesCommand, NewPageCommand, SetPageCommand
from vibecut.commands.project import (
    ExportCommand,
    ImportCommand,
    ListFilesCommand,
    ResetCommand,
    ShareCommand,
)
from vibecut.commands.registry import CommandRegistry

DEFAULT_COMMANDS: list[type[SlashCommand]] = [
    NewPageCommand,
    DeletePageCommand,
    SetPageCommand,
    ListPagesCommand,
    NewTextCommand,
    NewImageCommand,
    NewVideoCommand,
    SetTextCommand,
    SetImageCommand,
    SetVideoCommand,
    DeleteElementCommand,
    NewAudioCommand,
    SetAudioCommand,
    DeleteAudioCommand,
    SetCompositionCommand,
    ListCompositionCommand,
    ZoomTimelineCommand,
    NewNoteCommand,
    ListNotesCommand,
    SetNoteCommand,
    DeleteNoteCommand,
    ListFilesCommand,
    ExportCommand,
    ImportCommand,
    ShareCommand,
    ResetCommand,
    NewChatCommand,
    DeleteChatCommand,
    HelpCommand,
]


def build_default_registry() -> CommandRegistry:
    registry = CommandRegistry()
    for command_cls in DEFAULT_COMMANDS:
        registry.register(command_cls())
    return registry


__all__ = ["CommandContext", "CommandRegistry", "SlashCommand", "build_default_registry"]
