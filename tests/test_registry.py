"""
Tests for the command registry: lookup, fuzzy suggestions and the execute pipeline.

Run with: pytest tests/test_registry.py -v
"""

import asyncio

import pytest

from vibecut.commands import DEFAULT_COMMANDS, build_default_registry
from vibecut.commands.base import CommandContext, ReadCommand
from vibecut.commands.parser import ParsedArgs
from vibecut.commands.registry import CommandRegistry, match_score
from vibecut.schemas.envelope import CommandResult


class ExplodingCommand(ReadCommand):
    name = "explode"
    description = "Always fails"
    usage = "/explode"

    async def validate(self, args: ParsedArgs, context: CommandContext) -> CommandResult:
        raise RuntimeError("boom")


class SlowCommand(ReadCommand):
    name = "slow"
    description = "Records when it starts and finishes"
    usage = "/slow"
    events: list[str] = []

    async def validate(self, args: ParsedArgs, context: CommandContext) -> CommandResult:
        tag = args.first_positional
        self.events.append(f"start {tag}")
        await asyncio.sleep(0.01)
        self.events.append(f"end {tag}")
        return CommandResult.ok(tag)


# =============================================================================
# Fuzzy matching
# =============================================================================


class TestMatchScore:
    """Exact > prefix > substring > subsequence."""

    def test_ranks(self):
        assert match_score("new-page", "new-page") == 100
        assert match_score("new", "new-page") == 90 - 5
        assert match_score("page", "new-page") == 70 - 4
        assert match_score("nwpg", "new-page") == 50 - 4
        assert match_score("xyz", "new-page") == 0
        assert match_score("", "new-page") == 0

    def test_case_insensitive(self):
        assert match_score("NEW-PAGE", "new-page") == 100

    def test_suggestions_are_ranked(self):
        registry = build_default_registry()
        # "page" starts earliest in ls-page; ties break alphabetically
        assert registry.suggest("page")[:4] == ["ls-page", "del-page", "new-page", "set-page"]


# =============================================================================
# Registration
# =============================================================================


class TestRegistration:
    def test_default_registry_has_every_command(self):
        registry = build_default_registry()
        assert len(registry.names()) == len(DEFAULT_COMMANDS)
        for name in ("new-page", "del-page", "set-page", "new-text", "set-image", "new-audio", "zoom-tl"):
            assert registry.has(name)

    def test_lookup_is_case_insensitive(self):
        registry = build_default_registry()
        assert registry.get("NEW-PAGE").name == "new-page"

    def test_unregister(self):
        registry = build_default_registry()
        assert registry.unregister("help") is True
        assert registry.unregister("help") is False
        assert not registry.has("help")

    def test_aliases_resolve_to_the_command(self):
        registry = build_default_registry()
        assert registry.get("add-page") is registry.get("new-page")
        assert registry.has("ADD-PAGE")
        assert "add-page" not in registry.names()
        assert "(alias: `/add-page`)" in registry.help_text()

    def test_unregister_drops_aliases(self):
        registry = build_default_registry()
        registry.unregister("new-page")
        assert not registry.has("add-page")


# =============================================================================
# Execute pipeline
# =============================================================================


class TestExecute:
    """Every failure becomes a CommandResult."""

    @pytest.mark.asyncio
    async def test_plain_text_is_not_handled(self, context, registry):
        assert await registry.execute("make it pop", context) is None

    @pytest.mark.asyncio
    async def test_unknown_command_suggests(self, context, registry):
        result = await registry.execute("/new-pag -n 2", context)

        assert not result.success
        assert result.handled
        assert result.error.code == "UNKNOWN_COMMAND"
        assert "Did you mean: /new-page" in result.message
        assert "Available commands:" in result.message

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_internal_error(self, context):
        registry = CommandRegistry()
        registry.register(ExplodingCommand())

        result = await registry.execute("/explode", context)

        assert result.outcome == "error"
        assert result.error.code == "INTERNAL_ERROR"
        assert result.error.retryable is True
        assert "boom" in result.message

    @pytest.mark.asyncio
    async def test_error_info_carries_suggested_fix(self, context, registry):
        result = await registry.execute("/new-image", context)
        assert result.error.code == "MISSING_REQUIRED_FIELD"
        assert result.error.suggested_fix
        assert result.error.location.field == "src"

    @pytest.mark.asyncio
    async def test_registry_attaches_itself_to_context(self, session, registry):
        context = CommandContext(session=session)
        result = await registry.execute("/help", context)
        assert context.registry is registry
        assert "new-page" in result.data

    @pytest.mark.asyncio
    async def test_commands_are_serialized(self, context):
        SlowCommand.events = []
        registry = CommandRegistry()
        registry.register(SlowCommand())

        await asyncio.gather(registry.execute("/slow a", context), registry.execute("/slow b", context))

        assert SlowCommand.events in (
            ["start a", "end a", "start b", "end b"],
            ["start b", "end b", "start a", "end a"],
        )

    @pytest.mark.asyncio
    async def test_result_serializes_without_nones(self, context, registry):
        result = await registry.execute("/zoom-tl 50", context)
        dumped = result.model_dump(mode="json", exclude_none=True)
        assert dumped["success"] is True
        assert dumped["outcome"] == "ok"
        assert "error" not in dumped
