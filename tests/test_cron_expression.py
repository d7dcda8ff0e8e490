"""Tests for cron expression evaluation."""

import pytest
from datetime import datetime

from cronwatch.core.errors import ValidationError
from cronwatch.core.utils import datetime_to_ms, ms_to_datetime
from cronwatch.cron.expression import (
    CronExpression,
    describe,
    field_matches,
    matches,
    next_run_time,
    validate,
)


def ts(*args) -> int:
    """Local datetime to epoch ms."""
    return datetime_to_ms(datetime(*args))


class TestValidate:
    """Tests for structural validation."""

    @pytest.mark.parametrize("expr", [
        "* * * * *",
        "*/5 * * * *",
        "0 9-17 * * 1-5",
        "0,15,30,45 * * * *",
        "59 23 31 12 6",
        "0 0 1 1 0",
        "  */15   *  * * *  ",
    ])
    def test_valid_expressions(self, expr):
        """Well-formed expressions are accepted."""
        assert validate(expr) is True

    @pytest.mark.parametrize("expr", [
        "",
        "* * * *",
        "* * * * * *",
        "*/0 * * * *",
        "*/ * * * *",
        "a * * * *",
        "60 * * * *",
        "* 24 * * *",
        "* * 0 * *",
        "* * * 13 *",
        "* * * * 7",
        "5-1 * * * *",
        "1-2-3 * * * *",
        "1,,2 * * * *",
        "0-30/5 * * * *",
        "1,5/2 * * * *",
        "-1 * * * *",
        "1-5/2 * * * *",
        "** * * * *",
    ])
    def test_invalid_expressions(self, expr):
        """Malformed expressions are rejected."""
        assert validate(expr) is False

    @pytest.mark.parametrize("value", [None, 5, ["* * * * *"]])
    def test_non_string_is_invalid_not_error(self, value):
        """Non-string input is reported invalid rather than raising."""
        assert validate(value) is False


class TestFieldMatches:
    """Tests for single-field matching."""

    def test_wildcard_matches_anything(self):
        assert all(field_matches("*", v) for v in range(60))

    def test_exact_value(self):
        assert field_matches("7", 7)
        assert not field_matches("7", 8)

    def test_range_is_inclusive(self):
        assert field_matches("9-17", 9)
        assert field_matches("9-17", 17)
        assert not field_matches("9-17", 18)

    def test_list_membership(self):
        assert field_matches("1,3,5", 3)
        assert not field_matches("1,3,5", 4)

    def test_step_divisibility(self):
        for v in range(60):
            assert field_matches("*/15", v) == (v % 15 == 0)

    def test_unrecognised_syntax_never_matches(self):
        assert not field_matches("abc", 0)
        assert not field_matches("*/x", 0)
        assert not field_matches("1-", 1)


class TestMatches:
    """Tests for full-expression matching against timestamps."""

    def test_every_minute(self):
        assert matches("* * * * *", ts(2024, 1, 1, 12, 3))

    def test_all_fields_are_combined(self):
        # 2024-01-01 is a Monday (day-of-week 1)
        monday_nine = ts(2024, 1, 1, 9, 0)
        assert matches("0 9 1 1 1", monday_nine)
        assert not matches("0 9 1 1 2", monday_nine)
        assert not matches("1 9 1 1 1", monday_nine)

    def test_sunday_is_zero(self):
        sunday = ts(2024, 1, 7, 0, 0)
        assert matches("0 0 * * 0", sunday)
        assert not matches("0 0 * * 1", sunday)

    def test_weekday_range(self):
        assert matches("* * * * 1-5", ts(2024, 1, 3, 10, 0))  # Wednesday
        assert not matches("* * * * 1-5", ts(2024, 1, 6, 10, 0))  # Saturday

    def test_wrong_field_count_never_matches(self):
        assert not matches("* * * *", ts(2024, 1, 1, 12, 0))

    def test_is_pure(self):
        t = ts(2024, 3, 15, 8, 45)
        assert matches("*/15 8 15 3 *", t) == matches("*/15 8 15 3 *", t)


class TestNextRunTime:
    """Tests for forward-simulation next-run lookup."""

    def test_step_five_lands_on_boundary(self):
        """Result minute is divisible by 5 and strictly after now."""
        for minute in range(0, 60, 7):
            now = ts(2024, 1, 1, 12, minute, 42)
            result = next_run_time("*/5 * * * *", now=now)
            dt = ms_to_datetime(result)
            assert result > now
            assert dt.minute % 5 == 0
            assert dt.second == 0

    def test_on_exact_match_moves_to_next(self):
        """A matching 'now' is never returned; the next match is."""
        now = ts(2024, 1, 1, 12, 15, 0)
        assert next_run_time("*/15 * * * *", now=now) == ts(2024, 1, 1, 12, 30)

    def test_top_of_hour(self):
        now = ts(2024, 1, 1, 12, 3, 30)
        assert next_run_time("0 * * * *", now=now) == ts(2024, 1, 1, 13, 0)

    def test_weekly_expression_found_within_window(self):
        now = ts(2024, 1, 1, 12, 0)  # Monday
        assert next_run_time("30 8 * * 0", now=now) == ts(2024, 1, 7, 8, 30)

    def test_none_outside_window(self):
        """A date more than a week away yields None, not an error."""
        now = ts(2024, 1, 1, 12, 0)
        assert next_run_time("0 0 1 6 *", now=now) is None

    def test_custom_lookahead(self):
        now = ts(2024, 1, 1, 12, 0)
        assert next_run_time("0 14 * * *", now=now, lookahead_minutes=60) is None
        assert next_run_time("0 14 * * *", now=now, lookahead_minutes=180) == ts(2024, 1, 1, 14, 0)

    def test_invalid_expression_returns_none(self):
        assert next_run_time("not a cron", now=ts(2024, 1, 1)) is None

    def test_defaults_to_clock(self):
        result = next_run_time("* * * * *")
        assert result is not None
        assert result % 60_000 == 0


class TestCronExpression:
    """Tests for the CronExpression value object."""

    def test_invalid_raises(self):
        with pytest.raises(ValidationError, match="Invalid cron expression"):
            CronExpression("61 * * * *")

    def test_fields_are_split(self):
        assert CronExpression("0 9 * * 1-5").fields == ("0", "9", "*", "*", "1-5")

    def test_equality_ignores_whitespace(self):
        assert CronExpression("0  9 * * *") == CronExpression("0 9 * * *")

    def test_matches_datetime(self):
        assert CronExpression("30 12 * * *").matches(datetime(2024, 5, 5, 12, 30))

    def test_describe(self):
        assert describe("* * * * *") == "every minute"
        assert describe("*/15 * * * *") == "every 15 minutes"
        assert describe("0 9 * * 1-5") == "at minute 0, hour 9, day-of-week 1-5"
        assert describe("bogus") == "invalid expression"
