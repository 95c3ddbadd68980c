"""
Duration values for pipeline timeouts and grace periods.

Durations are read from two wire encodings, an integer number of nanoseconds
(the legacy form) or a duration string such as ``"1h30m"``, and are always
written back as the canonical duration string. The grammar and the canonical
form follow Go's ``time.ParseDuration`` and ``time.Duration.String``, which is
what the rest of the CI stack reads and writes.
"""

import functools
import json
import re
from datetime import timedelta
from typing import Any, Union

from pydantic import GetCoreSchemaHandler, GetJsonSchemaHandler
from pydantic.json_schema import JsonSchemaValue
from pydantic_core import core_schema

from ci_plumber.exceptions import MalformedDuration

NANOSECOND = 1
MICROSECOND = 1000 * NANOSECOND
MILLISECOND = 1000 * MICROSECOND
SECOND = 1000 * MILLISECOND
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE

# Durations are signed 64-bit nanosecond counts.
MIN_NANOSECONDS = -(1 << 63)
MAX_NANOSECONDS = (1 << 63) - 1

_UNITS = {
    "ns": NANOSECOND,
    "us": MICROSECOND,
    "µs": MICROSECOND,  # micro sign
    "μs": MICROSECOND,  # greek small letter mu
    "ms": MILLISECOND,
    "s": SECOND,
    "m": MINUTE,
    "h": HOUR,
}

_COMPONENT = re.compile(r"([0-9]*)(?:\.([0-9]*))?([^0-9.]*)")


def parse_duration(text: str) -> int:
    """
    Parse a duration string into nanoseconds.

    A duration string is an optionally signed sequence of decimal numbers,
    each with an optional fraction and a unit suffix, e.g. ``"300ms"``,
    ``"-1.5h"`` or ``"2h45m"``. Valid units are ``ns``, ``us`` (or ``µs``),
    ``ms``, ``s``, ``m`` and ``h``. A bare ``"0"`` is the only number
    accepted without a unit.

    Args:
        text: The duration string

    Returns:
        The duration in nanoseconds

    Raises:
        MalformedDuration: If the string does not follow the grammar or
            overflows a signed 64-bit nanosecond count
    """
    s = text
    negative = False
    if s[:1] in ("-", "+"):
        negative = s[0] == "-"
        s = s[1:]

    if s == "0":
        return 0
    if not s:
        raise MalformedDuration(text)

    total = 0
    pos = 0
    while pos < len(s):
        match = _COMPONENT.match(s, pos)
        whole, frac, unit = match.groups()
        if not whole and not frac:
            raise MalformedDuration(text)
        if not unit:
            raise MalformedDuration(text, "missing unit in duration")
        if unit not in _UNITS:
            raise MalformedDuration(text, f"unknown unit {unit!r} in duration")

        whole = whole.lstrip("0")
        if len(whole) > 19:
            raise MalformedDuration(text, "duration out of range")
        # Digits past nanosecond precision for the largest unit are ignored.
        frac = (frac or "")[:20]

        scale = _UNITS[unit]
        total += int(whole or "0") * scale
        if frac:
            total += int(frac) * scale // 10 ** len(frac)
        if total > 1 << 63:
            raise MalformedDuration(text, "duration out of range")
        pos = match.end()

    if negative:
        total = -total
    if total > MAX_NANOSECONDS:
        raise MalformedDuration(text, "duration out of range")
    return total


def _split_fraction(value: int, precision: int) -> tuple[int, str]:
    whole, frac = divmod(value, 10**precision)
    if not frac:
        return whole, ""
    return whole, "." + f"{frac:0{precision}d}".rstrip("0")


def format_duration(nanoseconds: int) -> str:
    """
    Format nanoseconds as the canonical duration string.

    Sub-second durations use the largest fitting unit of ``ns``, ``µs`` and
    ``ms`` (``"300ms"``, ``"1.5µs"``); anything longer is written as hours,
    minutes and seconds with leading zero units omitted (``"1h30m0s"``,
    ``"2.5s"``). Zero is ``"0s"``.
    """
    if nanoseconds == 0:
        return "0s"

    sign = "-" if nanoseconds < 0 else ""
    u = abs(nanoseconds)

    if u < SECOND:
        if u < MICROSECOND:
            unit, precision = "ns", 0
        elif u < MILLISECOND:
            unit, precision = "µs", 3
        else:
            unit, precision = "ms", 6
        whole, frac = _split_fraction(u, precision)
        return f"{sign}{whole}{frac}{unit}"

    seconds, frac = _split_fraction(u, 9)
    minutes, seconds = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)

    out = f"{seconds}{frac}s"
    if hours or minutes:
        out = f"{minutes}m{out}"
    if hours:
        out = f"{hours}h{out}"
    return sign + out


@functools.total_ordering
class Duration:
    """
    An immutable elapsed time held as a signed count of nanoseconds.

    ``Duration.parse`` accepts integer nanoseconds or a duration string;
    ``str()`` always yields the canonical duration string. Used directly as a
    pydantic field type, it validates through ``parse`` and serializes to the
    string form.
    """

    __slots__ = ("_nanoseconds",)

    def __init__(self, nanoseconds: int = 0):
        if isinstance(nanoseconds, bool) or not isinstance(nanoseconds, int):
            raise TypeError(
                f"Duration expects integer nanoseconds, got {type(nanoseconds).__name__}"
            )
        if not MIN_NANOSECONDS <= nanoseconds <= MAX_NANOSECONDS:
            raise MalformedDuration(nanoseconds, "duration out of range")
        object.__setattr__(self, "_nanoseconds", nanoseconds)

    def __setattr__(self, name, value):
        raise AttributeError("Duration is immutable")

    def __reduce__(self):
        return (Duration, (self._nanoseconds,))

    @classmethod
    def parse(cls, value: Any) -> "Duration":
        """
        Build a Duration from integer nanoseconds or a duration string.

        Integers are tried first, then strings; anything else (floats,
        booleans, ``None``, strings outside the grammar) raises
        ``MalformedDuration`` carrying the offending value.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, timedelta):
            return cls.from_timedelta(value)

        if isinstance(value, int) and not isinstance(value, bool):
            if MIN_NANOSECONDS <= value <= MAX_NANOSECONDS:
                return cls(value)
            raise MalformedDuration(value, "integer nanoseconds out of range")

        if isinstance(value, str):
            return cls(parse_duration(value))

        raise MalformedDuration(
            value,
            f"expected integer nanoseconds or a duration string, got {type(value).__name__}",
        )

    @classmethod
    def from_timedelta(cls, value: timedelta) -> "Duration":
        seconds = value.days * 86400 + value.seconds
        return cls(seconds * SECOND + value.microseconds * MICROSECOND)

    @property
    def nanoseconds(self) -> int:
        return self._nanoseconds

    def total_seconds(self) -> float:
        return self._nanoseconds / SECOND

    def to_timedelta(self) -> timedelta:
        """Convert to a timedelta, rounding half to even on whole microseconds."""
        micros, rest = divmod(self._nanoseconds, MICROSECOND)
        if rest * 2 > MICROSECOND or (rest * 2 == MICROSECOND and micros % 2):
            micros += 1
        return timedelta(microseconds=micros)

    def __str__(self) -> str:
        return format_duration(self._nanoseconds)

    def __repr__(self) -> str:
        return f"Duration({str(self)!r})"

    def __eq__(self, other):
        if not isinstance(other, Duration):
            return NotImplemented
        return self._nanoseconds == other._nanoseconds

    def __lt__(self, other):
        if not isinstance(other, Duration):
            return NotImplemented
        return self._nanoseconds < other._nanoseconds

    def __hash__(self):
        return hash(self._nanoseconds)

    def __bool__(self):
        return self._nanoseconds != 0

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls.parse,
            serialization=core_schema.plain_serializer_function_ser_schema(
                str, when_used="always"
            ),
        )

    @classmethod
    def __get_pydantic_json_schema__(
        cls, schema: core_schema.CoreSchema, handler: GetJsonSchemaHandler
    ) -> JsonSchemaValue:
        return {
            "anyOf": [
                {"type": "integer", "description": "nanoseconds"},
                {"type": "string", "examples": ["1h30m", "300ms"]},
            ]
        }


def decode_duration(raw: Union[str, bytes]) -> Duration:
    """
    Decode a Duration from raw JSON text.

    ``300000000`` decodes as 300ms and ``"2h45m"`` (quoted) as 2h45m. Input
    that is not a JSON value, or decodes to anything but an integer or a
    duration string, raises ``MalformedDuration`` with the raw input.
    """
    try:
        value = json.loads(raw)
    except ValueError as e:
        raise MalformedDuration(raw, "not a JSON integer or string") from e

    try:
        return Duration.parse(value)
    except MalformedDuration as e:
        raise MalformedDuration(raw, e.reason) from e


def encode_duration(duration: Duration) -> str:
    """Encode a Duration as JSON text, always the quoted canonical string."""
    return json.dumps(str(duration), ensure_ascii=False)
