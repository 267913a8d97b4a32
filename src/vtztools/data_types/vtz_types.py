# Copyright 2018 Brian T. Park
#
# MIT License

from collections import OrderedDict
from datetime import datetime
from datetime import timedelta
from types import MappingProxyType
from typing import Dict
from typing import FrozenSet
from typing import List
from typing import Mapping
from typing_extensions import TypedDict

"""
Data types created or consumed by the extractor, transformer and generator
packages. These allow typing checking to be performed using mypy. Also
contains global constants and lookup tables used by multiple packages.
"""

# -----------------------------------------------------------------------------
# Constants used by various modules.
# -----------------------------------------------------------------------------

# strptime() format of a floating (local) DATE-TIME value, e.g.
# '19701025T030000'.
LOCAL_DATE_TIME_FORMAT: str = '%Y%m%dT%H%M%S'

# Width of a local DATE-TIME value.
LOCAL_DATE_TIME_LENGTH: int = len('19701025T030000')

# Width of a UTC DATE-TIME value, e.g. '19701025T030000Z'.
UTC_DATE_TIME_LENGTH: int = len('19701025T030000Z')

# Sub-components of a VTIMEZONE.
COMPONENT_STANDARD: str = 'STANDARD'
COMPONENT_DAYLIGHT: str = 'DAYLIGHT'
COMPONENT_TIMEZONE: str = 'VTIMEZONE'

# Designation used by a TZif local time type which is not known.
UNSPECIFIED_DESIGNATION: str = '-00'

# POSIX week number meaning 'last week of the month'.
LAST_WEEK: int = 5

# Weekday codes of a BYDAY token, numbered as the POSIX 'Mm.n.d' rule.
WEEKDAY_CODES: Mapping[str, int] = MappingProxyType({
    'SU': 0,
    'MO': 1,
    'TU': 2,
    'WE': 3,
    'TH': 4,
    'FR': 5,
    'SA': 6,
})

# The only field signature (after removing FREQ and INTERVAL) which maps onto
# a POSIX 'Mm.n.d' transition rule.
EXTEND_RULE_FIELDS: FrozenSet[str] = frozenset(['BYMONTH', 'BYDAY'])


class VTimezoneError(Exception):
    """A VTIMEZONE cannot be converted into a location template."""


# -----------------------------------------------------------------------------
# Data types produced by extractor.py.
# -----------------------------------------------------------------------------

class PropertyRaw(TypedDict):
    """A single content line of a component, e.g.

    TZOFFSETFROM:+0200
    DTSTART;TZID=Europe/Paris:19701025T030000
    """
    value: str  # raw value, after unescaping
    params: Dict[str, str]  # parameter name -> value


class ComponentRaw(TypedDict):
    """A BEGIN:xxx ... END:xxx block of an iCalendar stream. Only the first
    occurrence of each property is kept.
    """
    name: str  # upper case, e.g. 'VTIMEZONE', 'STANDARD'
    properties: 'OrderedDict[str, PropertyRaw]'
    children: List['ComponentRaw']


class ZoneRule(TypedDict):
    """Represents one STANDARD or DAYLIGHT sub-component of a VTIMEZONE:

    BEGIN:DAYLIGHT
    TZOFFSETFROM:+0100
    TZOFFSETTO:+0200
    TZNAME:CEST
    DTSTART:19700329T020000
    RRULE:FREQ=YEARLY;BYMONTH=3;BYDAY=-1SU
    END:DAYLIGHT
    """
    is_daylight: bool  # DAYLIGHT (True) or STANDARD (False)
    dtstart: str  # local date time, interpreted in offset_from
    offset_from: timedelta  # UTC offset before the transition
    offset_to: timedelta  # UTC offset after the transition
    name: str  # TZNAME, may be empty
    rrule: str  # raw RRULE value
    rrule_parts: 'OrderedDict[str, str]'  # field name -> raw value


# -----------------------------------------------------------------------------
# Data types generated by transformer.py and consumed by the generators.
# -----------------------------------------------------------------------------

class Zone(TypedDict):
    """A local time type which a transition can switch into."""
    name: str
    offset: timedelta  # offset from UTC
    is_daylight: bool


class Change(TypedDict):
    """A transition into zones[zone_index] at the given instant."""
    start: datetime  # aware, UTC
    zone_index: int


class LocationTemplate(TypedDict):
    """The result of converting a VTIMEZONE. The 'changes' are sorted by
    'start'. The 'extend' string is a POSIX TZ string which describes the
    transitions after the last element of 'changes', or empty.
    """
    name: str
    zones: List[Zone]
    changes: List[Change]
    extend: str
