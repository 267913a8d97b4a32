# Copyright 2018 Brian T. Park
#
# MIT License

import unittest
from collections import OrderedDict
from datetime import datetime
from datetime import timedelta
from datetime import timezone

from vtztools.data_types.vtz_types import ComponentRaw
from vtztools.data_types.vtz_types import LocationTemplate
from vtztools.data_types.vtz_types import VTimezoneError
from vtztools.data_types.vtz_types import ZoneRule
from vtztools.extractor.extractor import Extractor
from vtztools.transformer.transformer import Transformer
from vtztools.transformer.transformer import UnboundedSlot
from vtztools.transformer.transformer import add_zones
from vtztools.transformer.transformer import create_rrule_string
from vtztools.transformer.transformer import is_unbounded

EUROPE_BERLIN = """\
BEGIN:VTIMEZONE
TZID:Europe/Berlin
BEGIN:DAYLIGHT
TZOFFSETFROM:+0100
TZOFFSETTO:+0200
TZNAME:CEST
DTSTART:19700329T020000
RRULE:FREQ=YEARLY;BYMONTH=3;BYDAY=-1SU
END:DAYLIGHT
BEGIN:STANDARD
TZOFFSETFROM:+0200
TZOFFSETTO:+0100
TZNAME:CET
DTSTART:19701025T030000
RRULE:FREQ=YEARLY;BYMONTH=10;BYDAY=-1SU
END:STANDARD
END:VTIMEZONE
"""

AMERICA_NEW_YORK = """\
BEGIN:VTIMEZONE
TZID:America/New_York
BEGIN:STANDARD
TZOFFSETFROM:-0400
TZOFFSETTO:-0500
TZNAME:EST
DTSTART:19671029T020000
RRULE:FREQ=YEARLY;BYMONTH=10;BYDAY=-1SU;UNTIL=20061029T060000Z
END:STANDARD
BEGIN:DAYLIGHT
TZOFFSETFROM:-0500
TZOFFSETTO:-0400
TZNAME:EDT
DTSTART:19870405T020000
RRULE:FREQ=YEARLY;BYMONTH=4;BYDAY=1SU;UNTIL=20060402T070000Z
END:DAYLIGHT
BEGIN:DAYLIGHT
TZOFFSETFROM:-0500
TZOFFSETTO:-0400
TZNAME:EDT
DTSTART:20070311T020000
RRULE:FREQ=YEARLY;BYMONTH=3;BYDAY=2SU
END:DAYLIGHT
BEGIN:STANDARD
TZOFFSETFROM:-0400
TZOFFSETTO:-0500
TZNAME:EST
DTSTART:20071104T020000
RRULE:FREQ=YEARLY;BYMONTH=11;BYDAY=1SU
END:STANDARD
END:VTIMEZONE
"""


def _parse_vtimezone(text: str) -> ComponentRaw:
    extractor = Extractor(text)
    extractor.parse()
    return extractor.get_data()[0]


def _sub_component(kind: str, dtstart: str, offset_from: str,
                   offset_to: str, name: str, rrule: str) -> str:
    return (
        f"BEGIN:{kind}\n"
        f"TZOFFSETFROM:{offset_from}\n"
        f"TZOFFSETTO:{offset_to}\n"
        f"TZNAME:{name}\n"
        f"DTSTART:{dtstart}\n"
        f"RRULE:{rrule}\n"
        f"END:{kind}\n"
    )


def _vtimezone(*sub_components: str) -> str:
    return "BEGIN:VTIMEZONE\nTZID:Test\n" + ''.join(sub_components) \
        + "END:VTIMEZONE\n"


def _make_rule(parts: 'OrderedDict[str, str]') -> ZoneRule:
    return ZoneRule(
        is_daylight=False,
        dtstart='19701025T030000',
        offset_from=timedelta(hours=2),
        offset_to=timedelta(hours=1),
        name='CET',
        rrule=';'.join(f'{k}={v}' for k, v in parts.items()),
        rrule_parts=parts,
    )


def _empty_template() -> LocationTemplate:
    return LocationTemplate(name='', zones=[], changes=[], extend='')


class TestTransformer(unittest.TestCase):
    def test_unbounded_standard_and_daylight(self) -> None:
        template = Transformer('Europe/Berlin').transform(
            _parse_vtimezone(EUROPE_BERLIN))
        self.assertEqual('Europe/Berlin', template['name'])
        self.assertEqual(
            '<CET>-01:00:00<CEST>-02:00:00M3.5.0/02:00:00M10.5.0/03:00:00',
            template['extend'])
        self.assertEqual([], template['zones'])
        self.assertEqual([], template['changes'])

    def test_bounded_and_unbounded(self) -> None:
        template = Transformer('America/New_York').transform(
            _parse_vtimezone(AMERICA_NEW_YORK))
        self.assertEqual(
            '<EST>05:00:00<EDT>04:00:00M3.2.0/02:00:00M11.1.0/02:00:00',
            template['extend'])

        # One zone per bounded rule, in the order of discovery.
        zones = template['zones']
        self.assertEqual(2, len(zones))
        self.assertEqual('EST', zones[0]['name'])
        self.assertEqual(timedelta(hours=-5), zones[0]['offset'])
        self.assertFalse(zones[0]['is_daylight'])
        self.assertEqual('EDT', zones[1]['name'])
        self.assertEqual(timedelta(hours=-4), zones[1]['offset'])
        self.assertTrue(zones[1]['is_daylight'])

        # 1967-2006 for EST, 1987-2006 for EDT.
        changes = template['changes']
        self.assertEqual(40 + 20, len(changes))
        starts = [change['start'] for change in changes]
        self.assertEqual(sorted(starts), starts)
        for change in changes:
            self.assertIn(change['zone_index'], range(len(zones)))

        self.assertEqual(
            datetime(1967, 10, 29, 6, 0, 0, tzinfo=timezone.utc),
            changes[0]['start'])
        self.assertEqual(0, changes[0]['zone_index'])
        self.assertEqual(
            datetime(1987, 4, 5, 7, 0, 0, tzinfo=timezone.utc),
            changes[20]['start'])
        self.assertEqual(1, changes[20]['zone_index'])
        self.assertEqual(
            datetime(2006, 10, 29, 6, 0, 0, tzinfo=timezone.utc),
            changes[-1]['start'])
        self.assertEqual(0, changes[-1]['zone_index'])

    def test_bounded_count_1(self) -> None:
        text = _vtimezone(_sub_component(
            'STANDARD', '19701025T030000', '+0200', '+0100', 'CET',
            'FREQ=YEARLY;COUNT=1'))
        template = Transformer('').transform(_parse_vtimezone(text))
        self.assertEqual('', template['extend'])
        self.assertEqual(1, len(template['zones']))
        self.assertEqual(1, len(template['changes']))
        self.assertEqual(
            datetime(1970, 10, 25, 1, 0, 0, tzinfo=timezone.utc),
            template['changes'][0]['start'])
        self.assertEqual(0, template['changes'][0]['zone_index'])

    def test_bounded_without_occurrences(self) -> None:
        text = _vtimezone(_sub_component(
            'STANDARD', '19701025T030000', '+0200', '+0100', 'CET',
            'FREQ=YEARLY;UNTIL=19600101T000000Z'))
        template = Transformer('').transform(_parse_vtimezone(text))
        self.assertEqual(1, len(template['zones']))
        self.assertEqual([], template['changes'])

    def test_changes_are_sorted(self) -> None:
        text = _vtimezone(
            _sub_component(
                'STANDARD', '19801026T030000', '+0200', '+0100', 'CET',
                'FREQ=YEARLY;BYMONTH=10;BYDAY=-1SU;COUNT=3'),
            _sub_component(
                'DAYLIGHT', '19800330T020000', '+0100', '+0200', 'CEST',
                'FREQ=YEARLY;BYMONTH=3;BYDAY=-1SU;COUNT=3'),
        )
        template = Transformer('').transform(_parse_vtimezone(text))
        indexes = [change['zone_index'] for change in template['changes']]
        self.assertEqual([1, 0, 1, 0, 1, 0], indexes)
        self.assertEqual(
            datetime(1980, 3, 30, 1, 0, 0, tzinfo=timezone.utc),
            template['changes'][0]['start'])

    def test_transform_is_repeatable(self) -> None:
        transformer = Transformer('Europe/Berlin')
        vtimezone = _parse_vtimezone(AMERICA_NEW_YORK)
        first = transformer.transform(vtimezone)
        second = transformer.transform(vtimezone)
        self.assertEqual(first, second)
        self.assertIsNot(first['changes'], second['changes'])

    def test_two_unbounded_standard_rules(self) -> None:
        text = _vtimezone(
            _sub_component(
                'STANDARD', '19701025T030000', '+0200', '+0100', 'CET',
                'FREQ=YEARLY;BYMONTH=10;BYDAY=-1SU'),
            _sub_component(
                'STANDARD', '19701025T030000', '+0200', '+0100', 'CET',
                'FREQ=YEARLY;BYMONTH=10;BYDAY=-1SU'),
        )
        with self.assertRaises(VTimezoneError) as cm:
            Transformer('').transform(_parse_vtimezone(text))
        self.assertEqual(
            'more than one unbounded standard rule is not supported',
            str(cm.exception))

    def test_two_unbounded_daylight_rules(self) -> None:
        text = _vtimezone(
            _sub_component(
                'DAYLIGHT', '19700329T020000', '+0100', '+0200', 'CEST',
                'FREQ=YEARLY;BYMONTH=3;BYDAY=-1SU'),
            _sub_component(
                'DAYLIGHT', '19700329T020000', '+0100', '+0200', 'CEST',
                'FREQ=YEARLY;BYMONTH=3;BYDAY=-1SU'),
        )
        with self.assertRaises(VTimezoneError) as cm:
            Transformer('').transform(_parse_vtimezone(text))
        self.assertIn('more than one unbounded daylight', str(cm.exception))

    def test_unbounded_daylight_without_standard(self) -> None:
        text = _vtimezone(_sub_component(
            'DAYLIGHT', '19700329T020000', '+0100', '+0200', 'CEST',
            'FREQ=YEARLY;BYMONTH=3;BYDAY=-1SU'))
        self.assertRaises(
            VTimezoneError,
            Transformer('').transform,
            _parse_vtimezone(text))

    def test_unsupported_extend_rule(self) -> None:
        text = EUROPE_BERLIN.replace(
            'BYMONTH=3;BYDAY=-1SU', 'BYMONTH=3;BYDAY=-1SU;BYHOUR=2')
        with self.assertRaises(VTimezoneError) as cm:
            Transformer('').transform(_parse_vtimezone(text))
        self.assertIn('BYHOUR', str(cm.exception))

    def test_unsupported_component(self) -> None:
        text = _vtimezone("BEGIN:X-RULE\nX-A:1\nEND:X-RULE\n")
        with self.assertRaises(VTimezoneError) as cm:
            Transformer('').transform(_parse_vtimezone(text))
        self.assertIn('X-RULE', str(cm.exception))

    def test_print_summary(self) -> None:
        transformer = Transformer('Europe/Berlin')
        template = transformer.transform(_parse_vtimezone(EUROPE_BERLIN))
        with self.assertLogs(level='INFO') as cm:
            transformer.print_summary(template)
        self.assertIn('zones=0', cm.output[0])


class TestUnboundedSlot(unittest.TestCase):
    def test_set_once(self) -> None:
        slot = UnboundedSlot('standard')
        self.assertIsNone(slot.rule)
        rule = _make_rule(OrderedDict([('FREQ', 'YEARLY')]))
        slot.set(rule)
        self.assertIs(rule, slot.rule)
        self.assertRaises(VTimezoneError, slot.set, rule)


class TestIsUnbounded(unittest.TestCase):
    def test_is_unbounded(self) -> None:
        self.assertTrue(is_unbounded(_make_rule(OrderedDict([
            ('FREQ', 'YEARLY'), ('BYMONTH', '10')]))))
        self.assertFalse(is_unbounded(_make_rule(OrderedDict([
            ('FREQ', 'YEARLY'), ('COUNT', '3')]))))
        self.assertFalse(is_unbounded(_make_rule(OrderedDict([
            ('FREQ', 'YEARLY'), ('UNTIL', '20061029T060000Z')]))))


class TestAddZones(unittest.TestCase):
    def test_create_rrule_string(self) -> None:
        rule = _make_rule(OrderedDict([
            ('FREQ', 'YEARLY'), ('DTSTART', '19801026T030000'),
            ('COUNT', '2')]))
        self.assertEqual('FREQ=YEARLY;COUNT=2', create_rrule_string(rule))

    def test_start_is_interpreted_in_offset_from(self) -> None:
        template = _empty_template()
        add_zones(template, _make_rule(OrderedDict([
            ('FREQ', 'YEARLY'), ('COUNT', '2')])))
        self.assertEqual(
            [
                datetime(1970, 10, 25, 1, 0, 0, tzinfo=timezone.utc),
                datetime(1971, 10, 25, 1, 0, 0, tzinfo=timezone.utc),
            ],
            [change['start'] for change in template['changes']])

    def test_dtstart_override(self) -> None:
        template = _empty_template()
        add_zones(template, _make_rule(OrderedDict([
            ('FREQ', 'YEARLY'), ('COUNT', '1'),
            ('DTSTART', '19801026T030000')])))
        self.assertEqual(
            datetime(1980, 10, 26, 1, 0, 0, tzinfo=timezone.utc),
            template['changes'][0]['start'])

        template = _empty_template()
        add_zones(template, _make_rule(OrderedDict([
            ('FREQ', 'YEARLY'), ('COUNT', '1'),
            ('DTSTART', '19801026T030000Z')])))
        self.assertEqual(
            datetime(1980, 10, 26, 3, 0, 0, tzinfo=timezone.utc),
            template['changes'][0]['start'])

    def test_dtstart_with_tzid(self) -> None:
        template = _empty_template()
        rule = _make_rule(OrderedDict([
            ('FREQ', 'YEARLY'), ('COUNT', '1'),
            ('DTSTART', 'TZID/Europe/Paris:19801026T030000')]))
        self.assertRaises(VTimezoneError, add_zones, template, rule)
        self.assertEqual([], template['zones'])

    def test_until_must_be_utc(self) -> None:
        template = _empty_template()
        rule = _make_rule(OrderedDict([
            ('FREQ', 'YEARLY'), ('UNTIL', '19801026T030000')]))
        self.assertRaises(VTimezoneError, add_zones, template, rule)
        self.assertEqual([], template['zones'])

    def test_evaluator_errors_are_propagated(self) -> None:
        template = _empty_template()
        rule = _make_rule(OrderedDict([
            ('FREQ', 'YEARLY'), ('COUNT', '2'), ('X-UNKNOWN', 'A')]))
        self.assertRaises(ValueError, add_zones, template, rule)
        self.assertEqual([], template['zones'])
        self.assertEqual([], template['changes'])


if __name__ == '__main__':
    unittest.main()
