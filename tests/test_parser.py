"""
Tests for slash-command tokenizing, option parsing and value parsers.

Run with: pytest tests/test_parser.py -v
"""

import pytest

from vibecut.commands.parser import OptionSpec, parse_options, parse_slash_command, tokenize
from vibecut.commands.values import (
    format_duration,
    parse_bool,
    parse_duration,
    parse_float,
    parse_int,
    parse_number,
    parse_percentage,
    parse_time_value,
    require_duration,
    validate_color,
)
from vibecut.exceptions import (
    InvalidFieldValueError,
    MissingValueError,
    OutOfBoundsError,
    UnknownOptionError,
)

SPECS = [
    OptionSpec("name", "--name", "-n"),
    OptionSpec("duration", "--duration", "-d"),
    OptionSpec("left", "--left", "-l"),
    OptionSpec("yes", "--yes", "-y", takes_value=False),
]


# =============================================================================
# Tokenizer
# =============================================================================


class TestTokenize:
    """Whitespace splitting with quoted groups."""

    def test_plain_words(self):
        assert tokenize("a  b\tc") == ["a", "b", "c"]

    def test_quoted_group_keeps_spaces(self):
        assert tokenize('--name "Opening scene" -d 2s') == ["--name", "Opening scene", "-d", "2s"]

    def test_escaped_quote_is_literal(self):
        assert tokenize(r'--text "Say \"hi\""') == ["--text", 'Say "hi"']

    def test_empty_quotes_are_dropped(self):
        assert tokenize('--name ""') == ["--name"]

    def test_empty_input(self):
        assert tokenize("   ") == []


class TestParseSlashCommand:
    """Command-name extraction."""

    def test_not_a_command(self):
        assert parse_slash_command("make the intro longer") is None

    def test_name_is_lowercased(self):
        parsed = parse_slash_command("  /New-Page -n 2 ")
        assert parsed.name == "new-page"
        assert parsed.args == ["-n", "2"]

    def test_bare_slash(self):
        parsed = parse_slash_command("/")
        assert parsed.name == ""
        assert parsed.args == []


# =============================================================================
# Options
# =============================================================================


class TestParseOptions:
    """Flag matching against option specs."""

    def test_long_and_short_aliases(self):
        args = parse_options(["--name", "Intro", "-d", "2s"], SPECS)
        assert args.options == {"name": "Intro", "duration": "2s"}

    def test_positionals_are_collected(self):
        args = parse_options(["intro", "--name", "Intro", "extra"], SPECS)
        assert args.positionals == ["intro", "extra"]
        assert args.first_positional == "intro"

    def test_boolean_flag(self):
        args = parse_options(["-y"], SPECS)
        assert args.flag("yes") is True
        assert args.get("yes") is None

    def test_negative_number_is_a_value(self):
        args = parse_options(["--left", "-50"], SPECS)
        assert args.get("left") == "-50"

    def test_missing_value_at_end(self):
        with pytest.raises(MissingValueError) as exc_info:
            parse_options(["--name"], SPECS)
        assert exc_info.value.code == "MISSING_VALUE"

    def test_missing_value_before_flag(self):
        with pytest.raises(MissingValueError):
            parse_options(["--name", "--yes"], SPECS)

    def test_unknown_option_includes_usage(self):
        with pytest.raises(UnknownOptionError) as exc_info:
            parse_options(["--colour", "red"], SPECS, usage="/set-page [--name|-n name]")
        assert "--colour" in exc_info.value.message
        assert "/set-page" in exc_info.value.message


# =============================================================================
# Durations and times
# =============================================================================


class TestDurations:
    """Duration strings are milliseconds unless they carry a unit."""

    @pytest.mark.parametrize(
        "text,expected",
        [("1500", 1500), ("1500ms", 1500), ("1.5s", 1500), ("2s", 2000), ("2m", 120000), ("2.5S", 2500)],
    )
    def test_parse(self, text, expected):
        assert parse_duration(text) == expected

    @pytest.mark.parametrize("text", ["0", "0s", "abc", "-5", "2h", ""])
    def test_rejects_malformed_or_non_positive(self, text):
        assert parse_duration(text) is None

    def test_require_duration_raises(self):
        with pytest.raises(InvalidFieldValueError):
            require_duration("--duration", "soon")

    @pytest.mark.parametrize(
        "ms,expected",
        [(0, "0ms"), (2500, "2500ms"), (2000, "2s"), (120000, "2m"), (90000, "90s")],
    )
    def test_format(self, ms, expected):
        assert format_duration(ms) == expected

    def test_time_value_units(self):
        assert parse_time_value("--time", "1500") == 1500
        assert parse_time_value("--time", "1500ms") == 1500
        assert parse_time_value("--time", "1.5s") == 1500
        assert parse_time_value("--time", "0") == 0

    @pytest.mark.parametrize("text", ["-1", "later", "nan"])
    def test_time_value_rejects(self, text):
        with pytest.raises(InvalidFieldValueError):
            parse_time_value("--time", text)


# =============================================================================
# Numbers, colors and booleans
# =============================================================================


class TestValueParsers:
    """Bounded numeric and enumerated values."""

    def test_int_bounds(self):
        assert parse_int("--num", "20", 1, 20) == 20
        with pytest.raises(OutOfBoundsError) as exc_info:
            parse_int("--num", "21", 1, 20)
        assert exc_info.value.code == "OUT_OF_BOUNDS"

    def test_int_rejects_fraction(self):
        with pytest.raises(InvalidFieldValueError):
            parse_int("--num", "1.5")

    def test_float_exclusive_minimum(self):
        assert parse_float("--playback-rate", "0.5", 0, exclusive_minimum=True) == 0.5
        with pytest.raises(InvalidFieldValueError):
            parse_float("--playback-rate", "0", 0, exclusive_minimum=True)

    def test_float_rejects_infinity(self):
        with pytest.raises(InvalidFieldValueError):
            parse_float("--volume", "inf")

    def test_number_keeps_ints(self):
        assert parse_number("--left", "100") == 100
        assert isinstance(parse_number("--left", "100.0"), int)
        assert parse_number("--left", "10.5") == 10.5

    def test_percentage(self):
        assert parse_percentage("percentage", "150%") == 150
        assert parse_percentage("percentage", "50") == 50
        with pytest.raises(InvalidFieldValueError):
            parse_percentage("percentage", "0%")

    @pytest.mark.parametrize("color", ["#fff", "#FF0000", "rgb(1, 2, 3)", "rgba(0,0,0,0.5)", "white"])
    def test_valid_colors(self, color):
        assert validate_color("--color", color) == color

    @pytest.mark.parametrize("color", ["#12", "red!", "12345"])
    def test_invalid_colors(self, color):
        with pytest.raises(InvalidFieldValueError):
            validate_color("--color", color)

    def test_bool(self):
        assert parse_bool("--muted", "Yes") is True
        assert parse_bool("--muted", "off") is False
        with pytest.raises(InvalidFieldValueError):
            parse_bool("--muted", "maybe")
