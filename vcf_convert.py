import argparse
import glob
import logging
import os
import sys

from vcardcodec.core import generate_vcard, parse_blocks
from vcardcodec.properties import decode_value, encode_value


_handler = logging.StreamHandler()
_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)
logger.addHandler(_handler)


def _is_empty(value):
    if isinstance(value, str):
        return not value.strip()

    if isinstance(value, list):
        return all(_is_empty(item) for item in value)

    return False


def convert_card(card, warnings=None):
    lines = []

    for prop in card.lines:
        value = decode_value(prop, warnings)
        prop.parameters.pop('CHARSET', None)

        if _is_empty(value):
            logger.warning(f'empty {prop.name} property at line {prop.line}')
            continue

        prop.value = encode_value(prop.name, value, prop.parameters)
        lines.append(prop)

    return lines


def convert_vcard_text(text, *, validate=True, source='<input>'):
    result = parse_blocks(text)
    parts = []

    for warning in result.warnings:
        logger.warning(f'{source}: {warning}')

    for card in result.cards:
        warnings = []
        lines = convert_card(card, warnings)

        for warning in warnings:
            logger.warning(f'{source}: {warning}')

        card.warnings.extend(warnings)
        parts.append(generate_vcard(lines, validate=validate))

    return ''.join(parts)


def convert_vcard_file(input_pathname, output_pathname, *, validate=True):
    with open(input_pathname, 'r', encoding='utf-8') as input_stream:
        text = input_stream.read()

    output = convert_vcard_text(text, validate=validate, source=input_pathname)

    with open(output_pathname, 'w', encoding='utf-8', newline='') as output_stream:
        output_stream.write(output)


def _expand_inputs(parser, patterns):
    pathnames = set()

    for pattern in patterns:
        if not glob.has_magic(pattern):
            if not os.path.isfile(pattern):
                parser.error(f'input "{pattern}" is not an existing file')

            pathnames.add(pattern)
            continue

        pathnames.update(p for p in glob.glob(pattern, recursive=True) if os.path.isfile(p))

    return sorted(pathnames)


def _output_for(output_path, input_pathname):
    if os.path.isdir(output_path):
        return os.path.join(output_path, os.path.basename(input_pathname))

    return output_path


def main(argv=None):
    parser = argparse.ArgumentParser(description='rewrite vCard 2.1, 3.0 and 4.0 files as vCard 4.0.')
    parser.add_argument('-i', dest='input_files', action='append', required=True, metavar='INPUT',
                        help='vcf file to read, glob patterns allowed. may be repeated.')
    parser.add_argument('-o', dest='output_path', required=True, metavar='OUTPUT',
                        help='vcf file to write, or a directory when several inputs match.')
    parser.add_argument('--no-validate', dest='validate', action='store_false',
                        help='write cards even if they are missing required properties.')
    parser.add_argument('-v', '--verbose', action='store_true', help='log parser details.')
    parser.add_argument('-q', '--quiet', action='store_true', help='only log warnings and errors.')
    args = parser.parse_args(argv)

    if args.verbose:
        logger.setLevel(logging.DEBUG)
        library_logger = logging.getLogger('vcardcodec')
        library_logger.setLevel(logging.DEBUG)
        library_logger.addHandler(_handler)
    elif args.quiet:
        logger.setLevel(logging.WARNING)

    input_pathnames = _expand_inputs(parser, args.input_files)

    if not input_pathnames:
        logger.warning('no input files matched')
        sys.exit(0)

    if len(input_pathnames) > 1:
        if os.path.exists(args.output_path) and not os.path.isdir(args.output_path):
            parser.error(f'{len(input_pathnames)} inputs matched, output "{args.output_path}" must be a directory')

        os.makedirs(args.output_path, exist_ok=True)

    failed = 0

    for input_pathname in input_pathnames:
        output_pathname = _output_for(args.output_path, input_pathname)
        logger.info('%s -> %s', input_pathname, output_pathname)

        try:
            convert_vcard_file(input_pathname, output_pathname, validate=args.validate)
        except (OSError, ValueError) as exc:
            logger.error(f'{input_pathname}: {exc}')
            failed += 1

    sys.exit(failed)


if __name__ == '__main__':
    main()
