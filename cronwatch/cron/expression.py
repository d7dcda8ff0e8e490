"""Five-field cron expression evaluation.

Supports the subset of cron syntax the scheduler needs, one form per field:

    *       any value
    5       exact value
    1-5     inclusive range
    1,3,5   list of values
    */15    step (value divisible by 15)

Next-run lookup is a forward simulation: starting at the minute boundary
after ``now``, every minute is probed until one matches or the lookahead
window (one week by default) is exhausted. This is O(window) but bounded at
10080 probes; callers go through ``next_run_time`` so a field-arithmetic
implementation can replace it without touching them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..core.errors import ValidationError
from ..core.utils import ms_to_datetime, now_ms

MINUTE_MS = 60_000

# One week of minutes
DEFAULT_LOOKAHEAD_MINUTES = 10080


@dataclass(frozen=True)
class FieldSpec:
    """Name and inclusive bounds of one cron field."""

    name: str
    minimum: int
    maximum: int


FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("minute", 0, 59),
    FieldSpec("hour", 0, 23),
    FieldSpec("day-of-month", 1, 31),
    FieldSpec("month", 1, 12),
    FieldSpec("day-of-week", 0, 6),
)


def _parse_int(token: str) -> int | None:
    """Parse a plain non-negative decimal integer, rejecting signs and blanks."""
    if not token or not token.isdigit():
        return None
    return int(token)


def _field_is_valid(field: str, spec: FieldSpec) -> bool:
    """Check one field's syntax and bounds."""
    if field == "*":
        return True

    if field.startswith("*/"):
        step = _parse_int(field[2:])
        return step is not None and step >= 1

    if "," in field:
        values = [_parse_int(part) for part in field.split(",")]
        return all(
            v is not None and spec.minimum <= v <= spec.maximum for v in values
        )

    if "-" in field:
        parts = field.split("-")
        if len(parts) != 2:
            return False
        low, high = _parse_int(parts[0]), _parse_int(parts[1])
        if low is None or high is None:
            return False
        return spec.minimum <= low <= high <= spec.maximum

    value = _parse_int(field)
    return value is not None and spec.minimum <= value <= spec.maximum


def field_matches(field: str, value: int) -> bool:
    """Match a single cron field against a time component.

    Unrecognised syntax never matches.
    """
    if field == "*":
        return True

    if field.startswith("*/"):
        step = _parse_int(field[2:])
        if not step:
            return False
        return value % step == 0

    if "," in field:
        return any(_parse_int(part) == value for part in field.split(","))

    if "-" in field:
        parts = field.split("-")
        if len(parts) != 2:
            return False
        low, high = _parse_int(parts[0]), _parse_int(parts[1])
        if low is None or high is None:
            return False
        return low <= value <= high

    exact = _parse_int(field)
    return exact is not None and exact == value


def time_components(dt: datetime) -> tuple[int, int, int, int, int]:
    """Split a datetime into (minute, hour, day, month, weekday).

    Weekday counts from Sunday = 0.
    """
    return (dt.minute, dt.hour, dt.day, dt.month, dt.isoweekday() % 7)


class CronExpression:
    """A validated five-field cron expression.

    Usage:
        expr = CronExpression("*/15 9-17 * * 1-5")

        if expr.matches(datetime.now()):
            ...

        next_ms = expr.next_run_after(now_ms())
    """

    def __init__(self, expression: str):
        """Parse and validate an expression.

        Args:
            expression: Five whitespace-separated fields.

        Raises:
            ValidationError: If the expression is malformed.
        """
        if not validate(expression):
            raise ValidationError(f"Invalid cron expression: {expression!r}")

        self.expression = expression
        self.fields: tuple[str, ...] = tuple(expression.split())

    def __repr__(self) -> str:
        return f"CronExpression({self.expression!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CronExpression):
            return NotImplemented
        return self.fields == other.fields

    def __hash__(self) -> int:
        return hash(self.fields)

    def matches(self, dt: datetime) -> bool:
        """Check whether every field matches the given local time."""
        return all(
            field_matches(field, value)
            for field, value in zip(self.fields, time_components(dt))
        )

    def matches_ms(self, timestamp_ms: int) -> bool:
        """Check a match against an epoch-millisecond timestamp."""
        return self.matches(ms_to_datetime(timestamp_ms))

    def next_run_after(
        self,
        after_ms: int,
        lookahead_minutes: int = DEFAULT_LOOKAHEAD_MINUTES,
    ) -> int | None:
        """Find the first matching minute boundary strictly after ``after_ms``.

        Args:
            after_ms: Reference time in epoch milliseconds.
            lookahead_minutes: Number of minutes to probe.

        Returns:
            Matching timestamp, or None if nothing matches in the window.
        """
        probe = after_ms - (after_ms % MINUTE_MS) + MINUTE_MS
        for _ in range(lookahead_minutes):
            if self.matches_ms(probe):
                return probe
            probe += MINUTE_MS
        return None

    def describe(self) -> str:
        """Render a short human-readable description."""
        minute, hour, day, month, weekday = self.fields

        if all(f == "*" for f in self.fields):
            return "every minute"

        parts = []
        if minute == "*":
            parts.append("every minute")
        elif minute.startswith("*/"):
            parts.append(f"every {minute[2:]} minutes")
        else:
            parts.append(f"at minute {minute}")

        for field, label in ((hour, "hour"), (day, "day-of-month"), (month, "month")):
            if field.startswith("*/"):
                parts.append(f"every {field[2:]} {label}s")
            elif field != "*":
                parts.append(f"{label} {field}")

        if weekday != "*":
            parts.append(f"day-of-week {weekday}")

        return ", ".join(parts)


def validate(expression: object) -> bool:
    """Check that an expression is a well-formed five-field cron expression.

    Malformed input, including non-strings, is reported as invalid rather
    than raising.
    """
    if not isinstance(expression, str):
        return False

    fields = expression.split()
    if len(fields) != len(FIELDS):
        return False

    return all(_field_is_valid(field, spec) for field, spec in zip(fields, FIELDS))


def matches(expression: str, timestamp_ms: int) -> bool:
    """Check whether ``timestamp_ms`` (local time) satisfies every field.

    Pure function of its inputs; an expression without exactly five fields
    never matches.
    """
    fields = expression.split()
    if len(fields) != len(FIELDS):
        return False

    components = time_components(ms_to_datetime(timestamp_ms))
    return all(field_matches(f, v) for f, v in zip(fields, components))


def next_run_time(
    expression: str,
    now: int | None = None,
    lookahead_minutes: int = DEFAULT_LOOKAHEAD_MINUTES,
) -> int | None:
    """Compute the next time an expression fires.

    Args:
        expression: Cron expression.
        now: Reference time in epoch milliseconds (defaults to the clock).
        lookahead_minutes: Probe window size.

    Returns:
        Epoch milliseconds of the next match, or None when the expression is
        invalid or nothing matches within the window. None means "no next run
        currently computable" and is not an error.
    """
    if not validate(expression):
        return None

    reference = now if now is not None else now_ms()
    return CronExpression(expression).next_run_after(reference, lookahead_minutes)


def describe(expression: str) -> str:
    """Describe an expression, or return 'invalid expression'."""
    if not validate(expression):
        return "invalid expression"
    return CronExpression(expression).describe()
