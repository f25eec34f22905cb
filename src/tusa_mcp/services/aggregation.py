"""Grouping, ordering and display formatting of normalized arrivals.

Everything here is pure: the "current time" is already baked into each
arrival's offset when it was fetched.
"""

import re
from collections.abc import Iterable

from tusa_mcp.models.transit import ArrivalGroup, FormattedTime, NormalizedArrival

# Line codes starting with this letter are overnight services.
NIGHT_LINE_PREFIX = "N"

LINE_SUMMARY_DELIMITER = " - "

_NON_DIGITS = re.compile(r"[^0-9]")


def group_arrivals(arrivals: Iterable[NormalizedArrival]) -> list[ArrivalGroup]:
    """Collapse arrivals into one group per line code.

    Offsets within a group are ascending (ties keep provider order) and the
    groups are ordered by their soonest arrival, stably.

    The destination is the one from the first arrival seen for the line;
    later arrivals on the same line with another destination don't change it.

    Args:
        arrivals: Normalized arrivals in provider order.

    Returns:
        Sorted list of ArrivalGroup.
    """
    groups: dict[str, ArrivalGroup] = {}

    for arrival in arrivals:
        group = groups.get(arrival.line_code)
        if group is None:
            groups[arrival.line_code] = ArrivalGroup(
                line_code=arrival.line_code,
                destination=arrival.destination,
                offsets=[arrival.seconds_until_arrival],
            )
        else:
            group.offsets.append(arrival.seconds_until_arrival)
            group.offsets.sort()

    # dicts keep insertion order and sorted() is stable
    return sorted(groups.values(), key=lambda g: g.min_offset)


def format_minutes(minutes: int) -> FormattedTime:
    """Map whole minutes until arrival to a label and an urgency flag."""
    if minutes < 1:
        return FormattedTime(text="Imminent", is_urgent=True)
    if minutes == 1:
        return FormattedTime(text="1 min", is_urgent=True)
    if minutes >= 60:
        hours, remaining = divmod(minutes, 60)
        text = f"{hours}h {remaining}min" if remaining > 0 else f"{hours}h"
        return FormattedTime(text=text, is_urgent=False)
    return FormattedTime(text=f"{minutes} min", is_urgent=False)


def format_offset(seconds: int) -> FormattedTime:
    """Format an offset in seconds (floored to whole minutes)."""
    return format_minutes(seconds // 60)


def line_number(line_code: str) -> int:
    """Numeric part of a line code; 0 when it has no digits ("B" -> 0)."""
    digits = _NON_DIGITS.sub("", line_code)
    return int(digits) if digits else 0


def is_night_line(line_code: str) -> bool:
    return line_code.startswith(NIGHT_LINE_PREFIX)


def sort_lines(lines: Iterable[str]) -> list[str]:
    """Day lines first, then night lines, each ascending by line number.

    Equal numbers keep their input order.
    """
    return sorted(lines, key=lambda code: (is_night_line(code), line_number(code)))


def split_lines(summary: str | None, delimiter: str = LINE_SUMMARY_DELIMITER) -> list[str]:
    """Split a line summary such as "B1 - M6 - N2" into trimmed codes."""
    if not summary:
        return []
    return [code.strip() for code in summary.split(delimiter) if code.strip()]
