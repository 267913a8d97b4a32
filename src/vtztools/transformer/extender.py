# Copyright 2018 Brian T. Park
#
# MIT License

"""
Compile the unbounded (forever repeating) STANDARD and DAYLIGHT rules of a
VTIMEZONE into the POSIX TZ string placed in the footer of a TZif file, e.g.

    <CET>-01:00:00<CEST>-02:00:00M3.5.0/02:00:00M10.5.0/03:00:00

Only the subset of RRULE which maps losslessly onto the 'Mm.n.d/time' form
is accepted: FREQ=YEARLY, an optional INTERVAL=1, a single BYMONTH and a
single BYDAY with a week offset of 1 to 4 or -1 (last). Anything else raises
a VTimezoneError.
"""

import logging
import re
from datetime import timedelta
from typing import List
from typing import Optional
from typing import Tuple

from dateutil import tz

from vtztools.data_types.vtz_types import EXTEND_RULE_FIELDS
from vtztools.data_types.vtz_types import LAST_WEEK
from vtztools.data_types.vtz_types import VTimezoneError
from vtztools.data_types.vtz_types import WEEKDAY_CODES
from vtztools.data_types.vtz_types import ZoneRule
from vtztools.extractor.extractor import parse_local_date_time

# BYDAY token, e.g. '-1SU', '2MO', '+3TH'.
_BY_DAY_PATTERN = re.compile(r'([+-]?[0-9]+)([A-Z]{2})')

# BYMONTH token, e.g. '3', '10'.
_BY_MONTH_PATTERN = re.compile(r'[0-9]+')


def create_extend_string(
    std_rule: Optional[ZoneRule],
    dst_rule: Optional[ZoneRule],
) -> str:
    """Create the POSIX TZ string from the unbounded STANDARD rule and the
    optional unbounded DAYLIGHT rule. Returns an empty string if there is no
    unbounded STANDARD rule.
    """
    if std_rule is None:
        if dst_rule is not None:
            raise VTimezoneError(
                "daylight saving rule without standard rule is not supported")
        return ''

    segments: List[str] = []
    segments.append(format_extend_name(std_rule['name']))
    segments.append(format_extend_offset(-std_rule['offset_to']))
    if dst_rule is None:
        return ''.join(segments)

    segments.append(format_extend_name(dst_rule['name']))
    segments.append(format_extend_offset(-dst_rule['offset_to']))
    # The first rule is the transition from standard time to daylight time,
    # which is described by the DAYLIGHT component.
    segments.append(create_extend_rule(dst_rule))
    segments.append(create_extend_rule(std_rule))
    extend = ''.join(segments)
    logging.debug('Created extend string %s', extend)
    return extend


def format_extend_name(name: str) -> str:
    """Quote the zone abbreviation as '<name>'."""
    if '>' in name:
        raise VTimezoneError(f"zone name contains >: '{name}'")
    return f'<{name}>'


def format_extend_offset(offset: timedelta) -> str:
    """Convert the offset into '[-]hh:mm:ss'. Note that a POSIX TZ string
    uses the offset which is added to the local time to get UTC, so the
    caller must negate the UTC offset.
    """
    seconds = int(offset.total_seconds())
    if seconds < 0:
        sign = '-'
        seconds = -seconds
    else:
        sign = ''
    h, m, s = seconds_to_hms(seconds)
    return f'{sign}{h:02}:{m:02}:{s:02}'


def seconds_to_hms(seconds: int) -> Tuple[int, int, int]:
    """Convert seconds to (h,m,s). Works only for positive seconds.
    """
    s = seconds % 60
    minutes = seconds // 60
    m = minutes % 60
    h = minutes // 60
    return (h, m, s)


def create_extend_rule(rule: ZoneRule) -> str:
    """Convert the RRULE of an unbounded rule into 'Mm.n.d/hh:mm:ss'."""
    parts = rule['rrule_parts']

    freq = parts.get('FREQ', '')
    if freq != 'YEARLY':
        raise VTimezoneError(f"unsupported extend rule freq '{freq}'")
    interval = parts.get('INTERVAL')
    if interval is not None and interval != '1':
        raise VTimezoneError(f"unsupported extend rule interval '{interval}'")

    fields = set(parts.keys()) - {'FREQ', 'INTERVAL'}
    if fields != EXTEND_RULE_FIELDS:
        unsupported = fields - EXTEND_RULE_FIELDS
        names = sorted(unsupported if unsupported else fields)
        raise VTimezoneError(
            "unsupported combination of rule properties: "
            + (', '.join(names) if names else '(none)')
        )

    week, weekday = parse_by_day(parts['BYDAY'])
    month = parse_by_month(parts['BYMONTH'])
    clock = format_extend_time(rule)
    return f'M{month}.{week}.{weekday}/{clock}'


def parse_by_day(by_day: str) -> Tuple[int, int]:
    """Parse a single BYDAY token into the POSIX (week, weekday). Week 5
    means the last week of the month. Weekday 0 is Sunday.
    """
    if ',' in by_day:
        raise VTimezoneError(
            f"only a single element is supported in BYDAY: '{by_day}'")
    if len(by_day) < 2:
        raise VTimezoneError(
            f"BYDAY rule must include day and offset: '{by_day}'")
    match = _BY_DAY_PATTERN.fullmatch(by_day)
    if not match:
        raise VTimezoneError(f"parse BYDAY rule '{by_day}': invalid syntax")

    offset = int(match.group(1))
    if offset == -1:
        week = LAST_WEEK
    elif 0 < offset < 5:
        week = offset
    else:
        raise VTimezoneError(
            f"parse BYDAY rule '{by_day}': unsupported offset {offset}")

    code = match.group(2)
    weekday = WEEKDAY_CODES.get(code)
    if weekday is None:
        raise VTimezoneError(
            f"parse BYDAY rule '{by_day}': unknown week day '{code}'")
    return (week, weekday)


def parse_by_month(by_month: str) -> int:
    """Parse a single BYMONTH token into the month (1-12)."""
    if ',' in by_month:
        raise VTimezoneError(
            f"only a single element is supported in BYMONTH: '{by_month}'")
    if not _BY_MONTH_PATTERN.fullmatch(by_month):
        raise VTimezoneError(f"parse BYMONTH rule '{by_month}': not a number")
    month = int(by_month)
    if month < 1 or month > 12:
        raise VTimezoneError(
            f"parse BYMONTH rule '{by_month}': month out of range")
    return month


def format_extend_time(rule: ZoneRule) -> str:
    """Return the wall clock time of DTSTART as 'hh:mm:ss'. The time is
    relative to the UTC offset before the transition (offset_from).
    """
    from_zone = tz.tzoffset(None, rule['offset_from'])
    dtstart = parse_local_date_time(rule['dtstart']).replace(tzinfo=from_zone)
    return f'{dtstart.hour:02}:{dtstart.minute:02}:{dtstart.second:02}'
