from vibecut.commands.base import YES_OPTION, CommandContext, ReadCommand, SlashCommand
from vibecut.commands.parser import ParsedArgs
from vibecut.schemas.envelope import CommandResult


class NewChatCommand(SlashCommand):
    name = "new-chat"
    description = "Start a fresh conversation"
    usage = "/new-chat"

    async def validate(self, args: ParsedArgs, context: CommandContext) -> None:
        return None

    async def apply(self, plan: None, context: CommandContext) -> CommandResult:
        context.session.chat.reset()
        return CommandResult.ok("💬 Started a new chat.")


class DeleteChatCommand(SlashCommand):
    name = "del-chat"
    description = "Delete every message in the current chat"
    usage = "/del-chat [--yes|-y]"
    options = [YES_OPTION]
    requires_confirmation = True

    async def validate(self, args: ParsedArgs, context: CommandContext) -> int:
        return len(context.session.chat.messages)

    def confirmation_prompt(self, args: ParsedArgs, context: CommandContext) -> str | None:
        if args.flag("yes"):
            return None
        return f"Delete all {len(context.session.chat.messages)} chat message(s)?"

    async def apply(self, plan: int, context: CommandContext) -> CommandResult:
        context.session.chat.clear()
        return CommandResult.ok(f"🗑️ Deleted {plan} chat message(s).", data={"deleted": plan})


class HelpCommand(ReadCommand):
    name = "help"
    description = "List the available commands"
    usage = "/help [command]"

    async def validate(self, args: ParsedArgs, context: CommandContext) -> CommandResult:
        registry = context.registry
        if registry is None:
            return CommandResult.ok("No commands registered.")
        wanted = args.first_positional
        if wanted:
            command = registry.get(wanted.lstrip("/"))
            if command is not None:
                lines = [f"`{command.usage}`", "", command.description]
                for option in command.options:
                    aliases = "|".join(option.aliases)
                    lines.append(f"• `{aliases}` {option.help}".rstrip())
                return CommandResult.ok("\n".join(lines))
        return CommandResult.ok("📖 **Commands**\n\n" + registry.help_text(), data=registry.names())
