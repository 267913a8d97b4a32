# Copyright 2018 Brian T. Park
#
# MIT License.

import logging
from typing import List
from typing import Optional

from dateutil import tz
from dateutil.rrule import rrulestr

from vtztools.data_types.vtz_types import COMPONENT_DAYLIGHT
from vtztools.data_types.vtz_types import COMPONENT_STANDARD
from vtztools.data_types.vtz_types import Change
from vtztools.data_types.vtz_types import ComponentRaw
from vtztools.data_types.vtz_types import LocationTemplate
from vtztools.data_types.vtz_types import UTC_DATE_TIME_LENGTH
from vtztools.data_types.vtz_types import VTimezoneError
from vtztools.data_types.vtz_types import Zone
from vtztools.data_types.vtz_types import ZoneRule
from vtztools.extractor.extractor import parse_local_date_time
from vtztools.extractor.extractor import parse_rule
from vtztools.transformer.extender import create_extend_string


class Transformer:
    """
    Converts the STANDARD and DAYLIGHT sub-components of a VTIMEZONE into a
    LocationTemplate which can be consumed by the TzifGenerator and the
    JsonGenerator.

    Rules which are bounded by COUNT or UNTIL are expanded into explicit
    transitions, each rule allocating a new Zone. Rules which repeat forever
    cannot be expanded, so they are compiled into the POSIX TZ string
    ('extend') instead. At most one such rule of each kind is supported.

    Every call to transform() starts from a clean state, and any error aborts
    the whole conversion.
    """
    def __init__(self, name: str):
        """
        Args:
            name: name of the resulting LocationTemplate
        """
        self.name = name

    def transform(self, vtimezone: ComponentRaw) -> LocationTemplate:
        """Convert the given VTIMEZONE component."""
        template = LocationTemplate(
            name=self.name,
            zones=[],
            changes=[],
            extend='',
        )

        # Find unbounded yearly repeating rules to build extend string from.
        std_slot = UnboundedSlot('standard')
        dst_slot = UnboundedSlot('daylight')

        for child in vtimezone['children']:
            kind = child['name']
            if kind not in (COMPONENT_STANDARD, COMPONENT_DAYLIGHT):
                raise VTimezoneError(f"unsupported component type '{kind}'")
            rule = parse_rule(child)
            if is_unbounded(rule):
                logging.debug(
                    'Unbounded %s rule: %s', kind, rule['rrule'])
                if rule['is_daylight']:
                    dst_slot.set(rule)
                else:
                    std_slot.set(rule)
                continue
            logging.debug('Bounded %s rule: %s', kind, rule['rrule'])
            add_zones(template, rule)

        template['extend'] = create_extend_string(
            std_slot.rule, dst_slot.rule)

        # Stable sort, so that equal instants keep their discovery order.
        template['changes'].sort(key=lambda change: change['start'])
        return template

    def print_summary(self, template: LocationTemplate) -> None:
        logging.info(
            f"Summary: Template '{template['name']}'"
            f"; zones={len(template['zones'])}"
            f"; changes={len(template['changes'])}"
            f"; extend='{template['extend']}'")


class UnboundedSlot:
    """Holds at most one unbounded rule of the given kind ('standard' or
    'daylight').
    """
    def __init__(self, slot_name: str):
        self.slot_name = slot_name
        self.rule: Optional[ZoneRule] = None

    def set(self, rule: ZoneRule) -> None:
        if self.rule is not None:
            raise VTimezoneError(
                f"more than one unbounded {self.slot_name} rule "
                "is not supported")
        self.rule = rule


def is_unbounded(rule: ZoneRule) -> bool:
    """Return True if the rule repeats forever, i.e. has neither COUNT nor
    UNTIL.
    """
    parts = rule['rrule_parts']
    return 'COUNT' not in parts and 'UNTIL' not in parts


def create_rrule_string(rule: ZoneRule) -> str:
    """Return the RRULE value without the DTSTART field, which is passed to
    the evaluator separately.
    """
    return ';'.join(
        f'{key}={value}'
        for key, value in rule['rrule_parts'].items()
        if key != 'DTSTART'
    )


def add_zones(template: LocationTemplate, rule: ZoneRule) -> None:
    """Expand the bounded rule into explicit transitions. A new Zone is
    appended to the template, and every occurrence of the rule becomes a
    Change into that Zone.
    """
    parts = rule['rrule_parts']
    from_zone = tz.tzoffset(None, rule['offset_from'])

    dtstart_override = parts.get('DTSTART')
    if dtstart_override is not None:
        if 'TZID' in dtstart_override:
            raise VTimezoneError(
                "timezone start date cannot reference another timezone")
        if (
            len(dtstart_override) == UTC_DATE_TIME_LENGTH
            and dtstart_override.endswith('Z')
        ):
            dtstart = parse_local_date_time(dtstart_override[:-1]) \
                .replace(tzinfo=tz.UTC)
        else:
            dtstart = parse_local_date_time(dtstart_override) \
                .replace(tzinfo=from_zone)
    else:
        dtstart = parse_local_date_time(rule['dtstart']) \
            .replace(tzinfo=from_zone)

    until = parts.get('UNTIL')
    if until is not None and (
        len(until) != UTC_DATE_TIME_LENGTH or not until.endswith('Z')
    ):
        raise VTimezoneError("until in timezone must be specified as UTC time")

    # Errors from the evaluator (ValueError) are passed through unchanged.
    recurrence = rrulestr(create_rrule_string(rule), dtstart=dtstart)

    template['zones'].append(Zone(
        name=rule['name'],
        offset=rule['offset_to'],
        is_daylight=rule['is_daylight'],
    ))
    zone_index = len(template['zones']) - 1

    changes: List[Change] = template['changes']
    for occurrence in recurrence:
        changes.append(Change(
            start=occurrence.astimezone(tz.UTC),
            zone_index=zone_index,
        ))
