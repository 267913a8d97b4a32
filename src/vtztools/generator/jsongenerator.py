# Copyright 2020 Brian T. Park
#
# MIT License

from typing import Any
from typing import Dict
import calendar
import logging
import json

from vtztools.data_types.vtz_types import LocationTemplate


def template_to_json_object(template: LocationTemplate) -> Dict[str, Any]:
    """Convert the timedelta and datetime fields of the LocationTemplate
    into JSON-serializable values.
    """
    return {
        'name': template['name'],
        'zones': [
            {
                'name': zone['name'],
                'offset_seconds': int(zone['offset'].total_seconds()),
                'is_daylight': zone['is_daylight'],
            }
            for zone in template['zones']
        ],
        'changes': [
            {
                'start': change['start'].isoformat(),
                'unix_seconds': calendar.timegm(
                    change['start'].utctimetuple()),
                'zone_index': change['zone_index'],
            }
            for change in template['changes']
        ],
        'extend': template['extend'],
    }


class JsonGenerator:
    """Generate the JSON representation of the LocationTemplate."""
    def __init__(self, template: LocationTemplate):
        self.template = template

    def generate(self) -> bytes:
        s = json.dumps(template_to_json_object(self.template), indent=2)
        logging.info(
            "Created JSON for '%s': %d bytes", self.template['name'], len(s))
        return (s + '\n').encode('utf-8')  # add terminating newline
