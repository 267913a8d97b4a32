# Copyright 2018 Brian T. Park
#
# MIT License

"""
Read an iCalendar stream into a tree of ComponentRaw records, and extract
the STANDARD and DAYLIGHT sub-components of a VTIMEZONE into ZoneRule
records. Values are kept verbatim so that the transformer can check them
against the restricted grammar of the POSIX TZ string.

Usage:
    extractor = Extractor(text)
    extractor.parse()
    extractor.print_summary()
    vtimezones = extractor.get_data()
"""

import logging
import re
from collections import OrderedDict
from datetime import datetime
from datetime import timedelta
from typing import Any
from typing import List
from typing import Optional

from icalendar.parser import Contentlines

from vtztools.data_types.vtz_types import COMPONENT_DAYLIGHT
from vtztools.data_types.vtz_types import COMPONENT_TIMEZONE
from vtztools.data_types.vtz_types import ComponentRaw
from vtztools.data_types.vtz_types import LOCAL_DATE_TIME_FORMAT
from vtztools.data_types.vtz_types import LOCAL_DATE_TIME_LENGTH
from vtztools.data_types.vtz_types import PropertyRaw
from vtztools.data_types.vtz_types import VTimezoneError
from vtztools.data_types.vtz_types import ZoneRule

# Two ASCII digits of a UTC-OFFSET value.
_TWO_DIGITS = re.compile(r'[0-9]{2}')

# Digits of a floating DATE-TIME value, e.g. '19701025T030000'.
_LOCAL_DATE_TIME = re.compile(r'[0-9]{8}T[0-9]{6}')


class Extractor:
    """Reads the content lines of an iCalendar stream and builds the
    component tree. Every VTIMEZONE in the tree, either at the top level or
    nested inside a VCALENDAR, is returned by get_data().
    """

    def __init__(self, text: str):
        self.text = text
        self.components: List[ComponentRaw] = []
        self.vtimezones: List[ComponentRaw] = []
        self.line_count = 0

    def parse(self) -> None:
        """Parse the text into self.components. Raises VTimezoneError if the
        BEGIN and END lines are not balanced.
        """
        stack: List[ComponentRaw] = []
        for line in Contentlines.from_ical(self.text):
            if not line:
                continue
            self.line_count += 1
            name, params, value = line.parts()
            name = name.upper()
            if name == 'BEGIN':
                component = ComponentRaw(
                    name=value.upper(),
                    properties=OrderedDict(),
                    children=[],
                )
                if stack:
                    stack[-1]['children'].append(component)
                else:
                    self.components.append(component)
                stack.append(component)
            elif name == 'END':
                if not stack:
                    raise VTimezoneError(f"unexpected END:{value}")
                if stack[-1]['name'] != value.upper():
                    raise VTimezoneError(
                        f"END:{value} does not match "
                        f"BEGIN:{stack[-1]['name']}"
                    )
                stack.pop()
            else:
                if not stack:
                    raise VTimezoneError(
                        f"property {name} outside of a component")
                properties = stack[-1]['properties']
                # Only the first occurrence is used.
                if name not in properties:
                    properties[name] = PropertyRaw(
                        value=value,
                        params={
                            key.upper(): _to_param_string(param)
                            for key, param in params.items()
                        },
                    )
        if stack:
            raise VTimezoneError(f"missing END:{stack[-1]['name']}")

        self.vtimezones = _find_components(
            self.components, COMPONENT_TIMEZONE)

    def get_data(self) -> List[ComponentRaw]:
        return self.vtimezones

    def print_summary(self) -> None:
        logging.info(
            'Summary: lines=%d; components=%d; vtimezones=%d',
            self.line_count,
            len(self.components),
            len(self.vtimezones),
        )


def _to_param_string(param: Any) -> str:
    """Parameter values may be parsed into a list if they contain a comma."""
    if isinstance(param, (list, tuple)):
        return ','.join(str(p) for p in param)
    return str(param)


def _find_components(
    components: List[ComponentRaw],
    name: str,
) -> List[ComponentRaw]:
    """Depth-first search of all components with the given name. Matching
    components are not searched further.
    """
    found: List[ComponentRaw] = []
    for component in components:
        if component['name'] == name:
            found.append(component)
        else:
            found.extend(_find_components(component['children'], name))
    return found


def get_property_value(component: ComponentRaw, name: str) -> Optional[str]:
    """Return the raw value of the property 'name', or None if absent."""
    prop = component['properties'].get(name)
    if prop is None:
        return None
    return prop['value']


def parse_offset(offset: str) -> timedelta:
    """Parse a UTC-OFFSET value '[+-]hhmm[ss]' (RFC 5545, section 3.3.14)
    into a timedelta. The sign is optional and defaults to '+'.
    """
    s = offset
    negative = False
    if s.startswith('-'):
        negative = True
        s = s[1:]
    elif s.startswith('+'):
        s = s[1:]

    if len(s) != 4 and len(s) != 6:
        raise VTimezoneError(f"invalid time offset '{offset}'")

    hour = _parse_two_digits(s[0:2], 23)
    if hour is None:
        raise VTimezoneError(
            f"invalid hours in time offset '{offset}': '{s[0:2]}'")
    minute = _parse_two_digits(s[2:4], 59)
    if minute is None:
        raise VTimezoneError(
            f"invalid minutes in time offset '{offset}': '{s[2:4]}'")
    second = 0
    if len(s) == 6:
        parsed = _parse_two_digits(s[4:6], 59)
        if parsed is None:
            raise VTimezoneError(
                f"invalid seconds in time offset '{offset}': '{s[4:6]}'")
        second = parsed

    delta = timedelta(hours=hour, minutes=minute, seconds=second)
    return -delta if negative else delta


def _parse_two_digits(s: str, max_value: int) -> Optional[int]:
    """Return the integer value of the 2 ASCII digits, or None if it is not
    a number in the range [0, max_value].
    """
    if not _TWO_DIGITS.fullmatch(s):
        return None
    value = int(s)
    if value > max_value:
        return None
    return value


def parse_local_date_time(dtstart: str) -> datetime:
    """Parse a floating DATE-TIME value (e.g. '19701025T030000') into a naive
    datetime.
    """
    if len(dtstart) != LOCAL_DATE_TIME_LENGTH:
        raise VTimezoneError(
            f"dtstart must be specified in local date time format: "
            f"'{dtstart}'"
        )
    if not _LOCAL_DATE_TIME.fullmatch(dtstart):
        raise VTimezoneError(f"invalid local date time '{dtstart}'")
    try:
        return datetime.strptime(dtstart, LOCAL_DATE_TIME_FORMAT)
    except ValueError as e:
        raise VTimezoneError(f"invalid local date time '{dtstart}': {e}")


def parse_rrule_parts(rrule: str) -> 'OrderedDict[str, str]':
    """Split the RRULE value 'KEY=VALUE;KEY=VALUE' into an ordered map of
    KEY -> VALUE. Keys and values are not normalized.
    """
    parts: 'OrderedDict[str, str]' = OrderedDict()
    for part in rrule.split(';'):
        key_value = part.split('=')
        if len(key_value) != 2:
            raise VTimezoneError(
                f"rule part does not have single =: '{part}'")
        key, value = key_value
        if not value:
            raise VTimezoneError(f"rule option {key} has no value")
        if key in parts:
            raise VTimezoneError(f"duplicate rule option {key}")
        parts[key] = value
    return parts


def parse_rule(component: ComponentRaw) -> ZoneRule:
    """Extract the ZoneRule from a STANDARD or DAYLIGHT component."""
    dtstart = get_property_value(component, 'DTSTART')
    if dtstart is None:
        raise VTimezoneError("missing DTSTART")
    if len(dtstart) != LOCAL_DATE_TIME_LENGTH:
        raise VTimezoneError(
            f"dtstart must be specified in local date time format: "
            f"'{dtstart}'"
        )

    offset_from_string = get_property_value(component, 'TZOFFSETFROM')
    if offset_from_string is None:
        raise VTimezoneError("missing TZOFFSETFROM")
    try:
        offset_from = parse_offset(offset_from_string)
    except VTimezoneError as e:
        raise VTimezoneError(f"invalid TZOFFSETFROM: {e}")

    offset_to_string = get_property_value(component, 'TZOFFSETTO')
    if offset_to_string is None:
        raise VTimezoneError("missing TZOFFSETTO")
    try:
        offset_to = parse_offset(offset_to_string)
    except VTimezoneError as e:
        raise VTimezoneError(f"invalid TZOFFSETTO: {e}")

    # TZNAME is optional
    name = get_property_value(component, 'TZNAME') or ''

    rrule = get_property_value(component, 'RRULE')
    if rrule is None:
        raise VTimezoneError("missing RRULE")

    return ZoneRule(
        is_daylight=(component['name'] == COMPONENT_DAYLIGHT),
        dtstart=dtstart,
        offset_from=offset_from,
        offset_to=offset_to,
        name=name,
        rrule=rrule,
        rrule_parts=parse_rrule_parts(rrule),
    )
