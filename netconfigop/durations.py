"""Parsing and formatting of duration strings such as "1m30s"."""

from __future__ import annotations

import re

_UNITS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_MAX = (1 << 63) - 1
_NUMBER = re.compile(r"(\d*)(?:\.(\d*))?")
_UNIT = re.compile(r"[^\d.]+")


def parse_duration(text: str) -> int:
    """Parse a duration string into whole nanoseconds."""

    def invalid(reason: str = "invalid duration") -> ValueError:
        return ValueError(f'{reason} "{text}"')

    rest = text
    negative = False
    if rest and rest[0] in "+-":
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return 0
    if not rest:
        raise invalid()
    total = 0
    while rest:
        number = _NUMBER.match(rest)
        whole, frac = number.group(1), number.group(2) or ""
        if not whole and not frac:
            raise invalid()
        rest = rest[number.end():]
        unit_match = _UNIT.match(rest)
        if not unit_match:
            raise invalid("missing unit in duration")
        unit = unit_match.group()
        rest = rest[unit_match.end():]
        if unit not in _UNITS:
            raise invalid(f'unknown unit "{unit}" in duration')
        scale = _UNITS[unit]
        value = int(whole or 0) * scale
        if frac:
            value += int(frac) * scale // 10 ** len(frac)
        total += value
        if total > _MAX:
            raise invalid()
    return -total if negative else total


def _fraction(value: int, digits: int) -> str:
    whole, frac = divmod(value, 10**digits)
    frac_text = str(frac).rjust(digits, "0").rstrip("0")
    return f"{whole}.{frac_text}" if frac_text else str(whole)


def format_duration(nanoseconds: int) -> str:
    """Format nanoseconds in the canonical "1h2m3.5s" form."""
    if nanoseconds == 0:
        return "0s"
    sign = "-" if nanoseconds < 0 else ""
    u = abs(nanoseconds)
    if u < 1_000_000_000:
        if u < 1_000:
            return f"{sign}{u}ns"
        if u < 1_000_000:
            return f"{sign}{_fraction(u, 3)}µs"
        return f"{sign}{_fraction(u, 6)}ms"
    seconds_total, frac = divmod(u, 1_000_000_000)
    minutes_total, seconds = divmod(seconds_total, 60)
    result = _fraction(seconds * 1_000_000_000 + frac, 9) + "s"
    if minutes_total:
        hours, minutes = divmod(minutes_total, 60)
        result = f"{minutes}m{result}"
        if hours:
            result = f"{hours}h{result}"
    return sign + result