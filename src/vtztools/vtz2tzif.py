#!/usr/bin/env python3
#
# Copyright 2018 Brian T. Park
#
# MIT License.

"""
Read a single iCalendar VTIMEZONE definition from `--input_file` (default:
stdin) and write the equivalent TZif file to `--output_file` (default:
stdout).

The converter has a number of stages implemented by various helper classes:

* Extractor
    * Parse the iCalendar content lines into a component tree, and find the
      VTIMEZONE component.
* Transformer
    * Expand the STANDARD and DAYLIGHT rules bounded by COUNT or UNTIL into
      explicit transitions, and compile the rules which repeat forever into a
      POSIX TZ string.
* Generator
    * Encode the resulting location template in the format selected by the
      `--format` flag.

Flags:

* `--input_file {file}`
    * The iCalendar file, either a bare VTIMEZONE or a VCALENDAR containing
      exactly one VTIMEZONE.
* `--output_file {file}`
    * The generated file.
* `--format {tzif | json}`
    * tzif: binary TZif version 2 (default)
    * json: the location template, for debugging
* `--name {name}`
    * Name of the location template. Defaults to the TZID of the VTIMEZONE.
* `--verbose`
    * Log the progress of each stage to stderr.

Errors are printed to stderr, and the exit status is 1.

Examples:

    $ vtz2tzif < europe_berlin.ics > Berlin
    $ vtz2tzif --input_file europe_berlin.ics --format json
"""

import argparse
import logging
import sys
from typing import List
from typing import Optional
from typing_extensions import Protocol

from vtztools.data_types.vtz_types import VTimezoneError
from vtztools.extractor.extractor import Extractor
from vtztools.extractor.extractor import get_property_value
from vtztools.generator.jsongenerator import JsonGenerator
from vtztools.generator.tzifgenerator import TzifGenerator
from vtztools.transformer.transformer import Transformer


class Generator(Protocol):
    """Define an interface for Generator subclasses for mypy type checking."""
    def generate(self) -> bytes:
        ...


def convert(text: str, name: Optional[str], output_format: str) -> bytes:
    """Convert the VTIMEZONE in the iCalendar text into the requested
    output format. If 'name' is None, the TZID of the VTIMEZONE is used.
    """
    logging.info('======== Extracting VTIMEZONE')
    extractor = Extractor(text)
    extractor.parse()
    extractor.print_summary()
    vtimezones = extractor.get_data()
    if not vtimezones:
        raise VTimezoneError("no VTIMEZONE found")
    if len(vtimezones) > 1:
        raise VTimezoneError("only one VTIMEZONE can be present")
    vtimezone = vtimezones[0]

    if name is None:
        name = get_property_value(vtimezone, 'TZID') or ''

    logging.info('======== Transforming STANDARD and DAYLIGHT rules')
    transformer = Transformer(name)
    template = transformer.transform(vtimezone)
    transformer.print_summary(template)

    logging.info('======== Generating %s', output_format)
    generator: Generator
    if output_format == 'tzif':
        generator = TzifGenerator(template)
    elif output_format == 'json':
        generator = JsonGenerator(template)
    else:
        raise VTimezoneError(f"unknown format '{output_format}'")
    return generator.generate()


def main(argv: Optional[List[str]] = None) -> None:
    """
    Main driver for the VTIMEZONE to TZif converter.

    Usage:
        vtz2tzif.py [flags...]
    """
    # Configure command line flags.
    parser = argparse.ArgumentParser(
        description='Convert an iCalendar VTIMEZONE into a TZif file.')

    parser.add_argument(
        '--input_file',
        help='iCalendar file containing one VTIMEZONE (default: stdin)',
        default='',
    )
    parser.add_argument(
        '--output_file',
        help='Generated file (default: stdout)',
        default='',
    )
    parser.add_argument(
        '--format',
        choices=['tzif', 'json'],
        help='Output format (tzif|json) (default: tzif)',
        default='tzif',
    )
    parser.add_argument(
        '--name',
        help='Name of the location (default: TZID of the VTIMEZONE)',
    )
    parser.add_argument(
        '--verbose',
        help='Log progress to stderr',
        action='store_true',
    )

    # Parse the command line arguments
    args = parser.parse_args(argv)

    # Configure logging. This should normally be executed after the
    # parser.parse_args() because it allows us set the logging.level using a
    # flag.
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING)

    try:
        if args.input_file:
            with open(args.input_file, 'rb') as f:
                raw = f.read()
        else:
            raw = sys.stdin.buffer.read()
        data = convert(raw.decode('utf-8'), args.name, args.format)
        if args.output_file:
            with open(args.output_file, 'wb') as f:
                f.write(data)
        else:
            sys.stdout.buffer.write(data)
            sys.stdout.buffer.flush()
    except Exception as e:
        sys.stderr.write(f'{e}\n')
        sys.exit(1)


if __name__ == '__main__':
    main()
