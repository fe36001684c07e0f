"""
Structural parsing of cron expressions.

Accepts the conventional five fields (minute, hour, day-of-month, month,
day-of-week) plus an optional sixth year field. Only the structure is
checked: every field must be made of `*`, `?`, numbers inside the field's
range, `a-b` ranges, `/n` steps, comma lists, month and weekday names,
and the `L`, `W`, `#` day modifiers.
"""

import re
from dataclasses import dataclass, field

from moraine.core.errors import MalformedCronError

_MONTHS = {
    name: i + 1
    for i, name in enumerate(
        ["JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC"]
    )
}
_WEEKDAYS = {name: i for i, name in enumerate(["SUN", "MON", "TUE", "WED", "THU", "FRI", "SAT"])}


@dataclass(frozen=True)
class _FieldSpec:
    name: str
    low: int
    high: int
    names: dict[str, int] = field(default_factory=dict)
    allows_question: bool = False


_MINUTE = _FieldSpec("minute", 0, 59)
_HOUR = _FieldSpec("hour", 0, 23)
_DAY_OF_MONTH = _FieldSpec("day-of-month", 1, 31, allows_question=True)
_MONTH = _FieldSpec("month", 1, 12, names=_MONTHS)
_DAY_OF_WEEK = _FieldSpec("day-of-week", 0, 7, names=_WEEKDAYS, allows_question=True)
_YEAR = _FieldSpec("year", 1970, 2199)

_FIELDS = (_MINUTE, _HOUR, _DAY_OF_MONTH, _MONTH, _DAY_OF_WEEK, _YEAR)

_DOM_MODIFIER = re.compile(r"^(L|LW|\d{1,2}W)$")
_DOW_LAST = re.compile(r"^([0-9A-Za-z]+)L$")
_DOW_NTH = re.compile(r"^([0-9A-Za-z]+)#([1-5])$")


def _check_value(expression: str, spec: _FieldSpec, value: str) -> None:
    if value.upper() in spec.names:
        return
    if not value.isdigit():
        raise MalformedCronError(expression, f"invalid {spec.name} value '{value}'")
    number = int(value)
    if not spec.low <= number <= spec.high:
        raise MalformedCronError(
            expression,
            f"{spec.name} value {number} outside {spec.low}-{spec.high}",
        )


def _check_token(expression: str, spec: _FieldSpec, token: str) -> None:
    if not token:
        raise MalformedCronError(expression, f"empty entry in {spec.name} field")

    base, slash, step = token.partition("/")
    if slash:
        if not step.isdigit() or int(step) == 0:
            raise MalformedCronError(expression, f"invalid step '{step}' in {spec.name} field")

    if base == "*":
        return
    if spec is _DAY_OF_MONTH and _DOM_MODIFIER.match(base) and not slash:
        if base[:-1].isdigit():
            _check_value(expression, spec, base[:-1])
        return
    if spec is _DAY_OF_WEEK and not slash:
        if base == "L":
            return
        for pattern in (_DOW_LAST, _DOW_NTH):
            match = pattern.match(base)
            if match:
                _check_value(expression, spec, match.group(1))
                return

    start, dash, end = base.partition("-")
    _check_value(expression, spec, start)
    if dash:
        _check_value(expression, spec, end)


def _check_field(expression: str, spec: _FieldSpec, value: str) -> None:
    if value == "?":
        if not spec.allows_question:
            raise MalformedCronError(expression, f"'?' is not allowed in {spec.name} field")
        return
    for token in value.split(","):
        _check_token(expression, spec, token)


def _aws_weekday(day: int) -> int:
    # Standard cron counts Sunday as 0 (or 7); EventBridge counts it as 1
    return 1 if day in (0, 7) else day + 1


def _shift_weekday_token(token: str) -> str:
    base, suffix = re.match(r"^([^/#]*)(.*)$", token).groups()
    if base in ("*", "?", "L"):
        return token
    if base == "0-7":
        # Sunday at both ends: the whole week
        return "1-7" + suffix if suffix else "*"
    shifted = re.sub(r"\d+", lambda m: str(_aws_weekday(int(m.group()))), base)
    start, dash, end = shifted.partition("-")
    if dash and not suffix and start.isdigit() and end.isdigit() and int(start) > int(end):
        return f"{start}-7,1-{end}"
    return shifted + suffix


@dataclass(frozen=True)
class CronExpression:
    """A structurally valid cron expression."""

    minute: str
    hour: str
    day_of_month: str
    month: str
    day_of_week: str
    year: str | None = None

    def fields(self) -> list[str]:
        values = [self.minute, self.hour, self.day_of_month, self.month, self.day_of_week]
        if self.year is not None:
            values.append(self.year)
        return values

    def to_aws(self) -> str:
        """
        Render as an EventBridge `cron(...)` expression.

        EventBridge wants six fields, exactly one of day-of-month and
        day-of-week set to `?`, and weekdays numbered from 1 = Sunday.

        Raises:
            ValueError: If both day-of-month and day-of-week are restricted
        """
        day_of_month = self.day_of_month
        day_of_week = self.day_of_week

        if day_of_week in ("*", "?"):
            day_of_week = "?"
            if day_of_month == "?":
                day_of_month = "*"
        elif day_of_month in ("*", "?"):
            day_of_month = "?"
        else:
            raise ValueError(
                f"Cron expression '{self}' restricts both day-of-month and "
                f"day-of-week, which EventBridge does not support"
            )

        if day_of_week != "?":
            day_of_week = ",".join(
                _shift_weekday_token(token) for token in day_of_week.split(",")
            )

        year = self.year or "*"
        return f"cron({self.minute} {self.hour} {day_of_month} {self.month} {day_of_week} {year})"

    def __str__(self):
        return " ".join(self.fields())


def parse_cron(expression: str) -> CronExpression:
    """
    Parse a cron expression, checking structure only.

    Args:
        expression: Five or six whitespace-separated fields

    Returns:
        CronExpression

    Raises:
        MalformedCronError: If the expression cannot be parsed

    Example:
        parse_cron("0 12 * * *")        # daily at noon
        parse_cron("*/15 9-17 ? * MON-FRI")
    """
    if not isinstance(expression, str):
        raise MalformedCronError(str(expression), "expression must be a string")

    parts = expression.split()
    if len(parts) not in (5, 6):
        raise MalformedCronError(
            expression, f"expected 5 or 6 fields, got {len(parts)}"
        )

    for spec, value in zip(_FIELDS, parts):
        _check_field(expression, spec, value)

    return CronExpression(*parts)
