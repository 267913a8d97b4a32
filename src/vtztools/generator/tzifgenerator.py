# Copyright 2023 Brian T. Park
#
# MIT License

"""
Encode a LocationTemplate into a version 2 TZif file (RFC 8536):

    header (v1) | data block (32-bit times) |
    header (v2) | data block (64-bit times) |
    footer '\\n' TZ-string '\\n'

The local time types are the zones of the template, in the same order, so
that Change.zone_index can be written directly as the transition type index.
Leap seconds and the standard/wall and UT/local indicators are not written.
"""

import calendar
import logging
from datetime import timedelta
from typing import Callable
from typing import Dict
from typing import List
from typing import Tuple

from vtztools.data_types.vtz_types import LocationTemplate
from vtztools.data_types.vtz_types import UNSPECIFIED_DESIGNATION
from vtztools.data_types.vtz_types import VTimezoneError
from vtztools.data_types.vtz_types import Zone
from vtztools.generator.byteutils import hex_encode
from vtztools.generator.byteutils import is_i32
from vtztools.generator.byteutils import write_i32
from vtztools.generator.byteutils import write_i64
from vtztools.generator.byteutils import write_u32
from vtztools.generator.byteutils import write_u8

TZIF_MAGIC = b'TZif'

TZIF_VERSION = b'2'

# Number of unused bytes after the version.
TZIF_RESERVED_SIZE = 15

# List of (utoff, isdst, designation index) of each local time type.
LocalTimeTypes = List[Tuple[int, int, int]]


class TzifGenerator:
    """Generate the TZif representation of the given LocationTemplate."""

    def __init__(self, template: LocationTemplate):
        self.template = template

    def generate(self) -> bytes:
        template = self.template
        zones = template['zones']
        if not zones:
            # TZif requires at least one local time type.
            zones = [Zone(
                name=UNSPECIFIED_DESIGNATION,
                offset=timedelta(0),
                is_daylight=False,
            )]
        types, designations = create_local_time_types(zones)

        transitions: List[Tuple[int, int]] = [
            (calendar.timegm(change['start'].utctimetuple()),
                change['zone_index'])
            for change in template['changes']
        ]
        v1_transitions = [t for t in transitions if is_i32(t[0])]

        data = bytearray()
        write_data_block(
            data, v1_transitions, types, designations, write_i32)
        write_data_block(
            data, transitions, types, designations, write_i64)
        data.extend(b'\n')
        data.extend(to_ascii(template['extend'], 'extend string'))
        data.extend(b'\n')

        logging.debug('TZif header: %s', hex_encode(data[:44]))
        logging.info(
            "Created TZif for '%s': %d bytes; %d transitions; %d types",
            template['name'],
            len(data),
            len(transitions),
            len(types),
        )
        return bytes(data)


def create_local_time_types(
    zones: List[Zone],
) -> Tuple[LocalTimeTypes, bytes]:
    """Convert the zones into local time types, and collect the designations
    into a buffer of NUL-terminated strings without duplicates.
    """
    designation_indexes: Dict[str, int] = {}
    designations = bytearray()
    types: LocalTimeTypes = []
    for zone in zones:
        name = zone['name']
        index = designation_indexes.get(name)
        if index is None:
            index = len(designations)
            designation_indexes[name] = index
            designations.extend(to_ascii(name, 'zone name'))
            designations.append(0)
        types.append((
            int(zone['offset'].total_seconds()),
            1 if zone['is_daylight'] else 0,
            index,
        ))
    return types, bytes(designations)


def to_ascii(text: str, what: str) -> bytes:
    """TZif designations and the footer are restricted to ASCII."""
    try:
        return text.encode('ascii')
    except UnicodeEncodeError:
        raise VTimezoneError(f"{what} is not ASCII: '{text}'")


def write_data_block(
    data: bytearray,
    transitions: List[Tuple[int, int]],
    types: LocalTimeTypes,
    designations: bytes,
    write_time: Callable[[bytearray, int], None],
) -> None:
    """Write the header and the data block. The 'write_time' function
    determines the size of the transition times.
    """
    data.extend(TZIF_MAGIC)
    data.extend(TZIF_VERSION)
    data.extend(bytes(TZIF_RESERVED_SIZE))
    write_u32(data, 0)  # isutcnt
    write_u32(data, 0)  # isstdcnt
    write_u32(data, 0)  # leapcnt
    write_u32(data, len(transitions))  # timecnt
    write_u32(data, len(types))  # typecnt
    write_u32(data, len(designations))  # charcnt

    for seconds, _ in transitions:
        write_time(data, seconds)
    for _, type_index in transitions:
        write_u8(data, type_index)
    for utoff, isdst, designation_index in types:
        write_i32(data, utoff)
        write_u8(data, isdst)
        write_u8(data, designation_index)
    data.extend(designations)
