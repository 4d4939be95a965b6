"""Command registry and the execute pipeline.

``execute`` takes raw chat input and runs it through
parse -> validate -> confirm -> apply. Every failure becomes a
``CommandResult``; nothing raised by a command escapes this module.
"""

import logging

from vibecut.commands.base import CommandContext, SlashCommand
from vibecut.commands.parser import parse_slash_command
from vibecut.exceptions import UnknownCommandError, VibecutError
from vibecut.schemas.envelope import CommandResult, ErrorInfo

logger = logging.getLogger(__name__)


def match_score(query: str, candidate: str) -> int:
    """Fuzzy rank of ``candidate`` for ``query``; 0 means no match."""
    query = query.lower()
    candidate = candidate.lower()
    if not query:
        return 0
    if candidate == query:
        return 100
    if candidate.startswith(query):
        return 90 - (len(candidate) - len(query))
    index = candidate.find(query)
    if index >= 0:
        return 70 - index
    position = 0
    for char in candidate:
        if position < len(query) and char == query[position]:
            position += 1
    if position == len(query):
        return max(1, 50 - (len(candidate) - len(query)))
    return 0


class CommandRegistry:
    def __init__(self) -> None:
        self._commands: dict[str, SlashCommand] = {}
        self._aliases: dict[str, str] = {}

    def register(self, command: SlashCommand) -> None:
        if command.name in self._commands:
            logger.warning(f"Replacing registered command /{command.name}")
        self._commands[command.name] = command
        for alias in command.aliases:
            self._aliases[alias] = command.name

    def unregister(self, name: str) -> bool:
        self._aliases = {alias: target for alias, target in self._aliases.items() if target != name}
        return self._commands.pop(name, None) is not None

    def get(self, name: str) -> SlashCommand | None:
        name = name.lower()
        return self._commands.get(self._aliases.get(name, name))

    def has(self, name: str) -> bool:
        return self.get(name) is not None

    def names(self) -> list[str]:
        """Canonical command names; aliases are resolved by ``get`` only."""
        return sorted(self._commands)

    def usages(self) -> list[str]:
        return [self._commands[name].usage for name in self.names()]

    def help_text(self) -> str:
        lines = []
        for command in (self._commands[name] for name in self.names()):
            line = f"• `{command.usage}` - {command.description}"
            if command.aliases:
                line += " (alias: " + ", ".join(f"`/{alias}`" for alias in command.aliases) + ")"
            lines.append(line)
        return "\n".join(lines)

    def suggest(self, query: str, limit: int = 5) -> list[str]:
        """Registered names ranked by fuzzy match against ``query``."""
        scored = [(match_score(query, name), name) for name in self._commands]
        ranked = sorted((s for s in scored if s[0] > 0), key=lambda s: (-s[0], s[1]))
        return [name for _, name in ranked[:limit]]

    async def execute(self, message: str, context: CommandContext) -> CommandResult | None:
        """Run ``message`` if it is a slash command; returns None otherwise."""
        parsed = parse_slash_command(message)
        if parsed is None:
            return None
        if context.registry is None:
            context.registry = self

        async with context.session.lock:
            try:
                command = self.get(parsed.name)
                if command is None:
                    raise UnknownCommandError(parsed.name, self.usages(), self.suggest(parsed.name))

                args = command.parse(parsed.args)
                plan = await command.validate(args, context)

                prompt = command.confirmation_prompt(args, context)
                if prompt is not None:
                    confirmed = await context.confirm(prompt) if context.confirm else False
                    if not confirmed:
                        logger.info(f"/{command.name} declined")
                        return CommandResult.cancelled(f"/{command.name} cancelled")

                result = await command.apply(plan, context)
                logger.info(f"/{command.name} -> {'ok' if result.success else result.outcome}")
                return result
            except VibecutError as e:
                logger.info(f"/{parsed.name} failed: {e.code}: {e.message}")
                return CommandResult.failure(e.to_error_info())
            except Exception as e:
                logger.exception(f"Unhandled error in /{parsed.name}: {e}")
                return CommandResult.failure(
                    ErrorInfo(code="INTERNAL_ERROR", message=f"/{parsed.name} failed: {e}", retryable=True)
                )
