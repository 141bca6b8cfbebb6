import logging
import re

from vcardcodec.dates import parse_date_and_or_time
from vcardcodec.text import fold, quote_parameter_value, split_structured, unescape, unfold_numbered, \
    unquote_parameter_value


logger = logging.getLogger(__name__)

BEGIN_MARKER = 'BEGIN:VCARD'
END_MARKER = 'END:VCARD'
DEFAULT_VERSION = '4.0'
OUTPUT_VERSION = '4.0'

_BARE_PARAMETER_PATTERN = re.compile(r'^[A-Za-z0-9-]+$')
_QUOTED_PRINTABLE = 'QUOTED-PRINTABLE'


class VCardError(ValueError):
    def __init__(self, message, property_name=None):
        super().__init__(message)
        self.message = message
        self.property = property_name


class ParseWarning:
    def __init__(self, message, line=None):
        self.line = line
        self.message = message

    def __eq__(self, other):
        if not isinstance(other, ParseWarning):
            return NotImplemented

        return (self.line, self.message) == (other.line, other.message)

    def __repr__(self):
        return f'ParseWarning({self.message!r}, line={self.line!r})'

    def __str__(self):
        if self.line is None:
            return self.message

        return f'line {self.line}: {self.message}'


def add_warning(warnings, message, line=None):
    logger.debug('%s (line %s)', message, line)

    if warnings is not None:
        warnings.append(ParseWarning(message, line))


class LineSpan:
    def __init__(self):
        self.start = 1
        self.end = 1

    def __str__(self):
        return f'{self.start}:{self.end}'


class Parameters(dict):
    """Parameters of one content line, keyed by upper-case name.

    A value is a string, or a list of strings once the parameter holds more
    than one value, either from a comma separated value or because the name
    appeared more than once.
    """

    def __init__(self, items=()):
        super().__init__()

        if hasattr(items, 'items'):
            items = items.items()

        for name, value in items:
            self[name] = value

    def __getitem__(self, name):
        return super().__getitem__(name.upper())

    def __setitem__(self, name, value):
        if isinstance(value, (list, tuple)):
            value = list(value)

        super().__setitem__(name.upper(), value)

    def __delitem__(self, name):
        super().__delitem__(name.upper())

    def __contains__(self, name):
        return super().__contains__(name.upper())

    def get(self, name, default=None):
        return super().get(name.upper(), default)

    def pop(self, name, *args):
        return super().pop(name.upper(), *args)

    def copy(self):
        return Parameters(self)

    def add(self, name, value):
        values = value if isinstance(value, list) else [value]

        if not values:
            return

        existing = self.get(name)

        if existing is None:
            self[name] = values if len(values) > 1 else values[0]
        elif isinstance(existing, list):
            existing.extend(values)
        else:
            self[name] = [existing] + values

    def get_all(self, name):
        value = self.get(name)

        if value is None:
            return []
        elif isinstance(value, list):
            return list(value)

        return [value]


def _split_unquoted(string, separator):
    parts = []
    chars = []
    quoted = False
    index = 0
    end = len(string)

    while index < end:
        char = string[index]

        if quoted and char == '\\' and index + 1 < end:
            chars.append(string[index:index + 2])
            index += 2
            continue

        if char == '"':
            quoted = not quoted
        elif char == separator and not quoted:
            parts.append(''.join(chars))
            chars = []
            index += 1
            continue

        chars.append(char)
        index += 1

    parts.append(''.join(chars))

    return parts


def _find_unquoted(string, char):
    parts = _split_unquoted(string, char)

    if len(parts) == 1:
        return -1

    return len(parts[0])


def _parse_parameter_values(name, raw_value):
    values = []

    for item in _split_unquoted(raw_value, ','):
        value = unquote_parameter_value(item.strip())

        # TYPE values are tokens, so a quoted "work,voice" is still two values.
        if name == 'TYPE':
            values.extend(value.split(','))
        else:
            values.append(value)

    return values


def parse_parameters(string, warnings=None, line=None):
    parameters = Parameters()

    if not string:
        return parameters

    for parameter_data in _split_unquoted(string, ';'):
        parameter_data = parameter_data.strip()

        if not parameter_data:
            continue

        pair = parameter_data.split('=', 1)

        if len(pair) == 1:
            if _BARE_PARAMETER_PATTERN.match(parameter_data):
                parameters.add('TYPE', parameter_data.lower())
            else:
                add_warning(warnings, f'Ignoring malformed parameter: {parameter_data}', line)

            continue

        parameter_name = pair[0].strip().upper()

        if not parameter_name:
            add_warning(warnings, f'Ignoring malformed parameter: {parameter_data}', line)
            continue

        parameters.add(parameter_name, _parse_parameter_values(parameter_name, pair[1].strip()))

    return parameters


def serialize_parameters(parameters):
    parts = []

    for name, value in parameters.items():
        if isinstance(value, list):
            if not value:
                continue

            value = ','.join(quote_parameter_value(item) for item in value)
        else:
            value = quote_parameter_value(value)

        parts.append(f'{name.upper()}={value}')

    return ';'.join(parts)


def is_quoted_printable(parameters):
    encodings = parameters.get_all('ENCODING') + parameters.get_all('TYPE')

    return any(encoding.upper() == _QUOTED_PRINTABLE for encoding in encodings)


class ContentLine:
    __line_span__ = None

    def __init__(self, name='', value='', parameters=None, group=None):
        self.group = group
        self.name = name.upper()
        self.parameters = Parameters(parameters or ())
        self.value = value

    @property
    def line(self):
        if self.__line_span__ is None:
            return None

        return self.__line_span__.start

    def serialize(self):
        name = f'{self.group}.{self.name}' if self.group else self.name
        parameters = serialize_parameters(self.parameters)

        if parameters:
            return f'{name};{parameters}:{self.value}'

        return f'{name}:{self.value}'

    def __eq__(self, other):
        if not isinstance(other, ContentLine):
            return NotImplemented

        return (self.group, self.name, dict(self.parameters), self.value) == \
            (other.group, other.name, dict(other.parameters), other.value)

    def __repr__(self):
        return f'ContentLine({self.serialize()!r})'

    def __str__(self):
        return self.serialize()


def parse_content_line(line, warnings=None, line_number=None):
    delimiter_index = _find_unquoted(line, ':')

    if delimiter_index == -1:
        add_warning(warnings, f'Skipping line with no colon: {line[:40]}', line_number)
        return None

    name_and_parameters = line[:delimiter_index]
    value = line[delimiter_index + 1:]

    group_and_name, _, parameters_data = name_and_parameters.partition(';')

    if '.' in group_and_name:
        group, name = group_and_name.split('.', 1)
        group = group.strip() or None
    else:
        group, name = None, group_and_name

    name = name.strip().upper()

    if not name:
        add_warning(warnings, 'Skipping line with empty property name', line_number)
        return None

    prop = ContentLine(name, value, group=group)
    prop.parameters = parse_parameters(parameters_data, warnings, line_number)

    if line_number is not None:
        prop.__line_span__ = LineSpan()
        prop.__line_span__.start = line_number
        prop.__line_span__.end = line_number

    return prop


tokenize = parse_content_line


class RawCard:
    __line_span__ = None

    def __init__(self, version=DEFAULT_VERSION):
        self.version = version
        self.lines = []
        self.warnings = []

    def get_lines(self, name):
        name = name.upper()

        return [line for line in self.lines if line.name == name]

    def __iter__(self):
        return iter(self.lines)

    def __len__(self):
        return len(self.lines)


class ParseResult:
    def __init__(self):
        self.cards = []
        self.warnings = []

    def __iter__(self):
        return iter(self.cards)

    def __len__(self):
        return len(self.cards)

    def __getitem__(self, index):
        return self.cards[index]


def _is_marker(line, marker):
    return line.strip().upper() == marker


def _finish_card(result, card, end):
    card.__line_span__.end = end
    result.cards.append(card)
    result.warnings.extend(card.warnings)


def parse_blocks(string):
    """Split vCard text into cards of tokenized content lines.

    Never raises for malformed input. Anomalies are collected as
    ``ParseWarning`` values on each card and on the returned result.
    """
    result = ParseResult()
    lines = unfold_numbered(string)
    card = None
    index = 0
    line_number = 0

    while index < len(lines):
        line_number, line = lines[index]
        index += 1

        if _is_marker(line, BEGIN_MARKER):
            card = RawCard()
            card.__line_span__ = LineSpan()
            card.__line_span__.start = line_number
            continue

        if _is_marker(line, END_MARKER):
            if card is None:
                add_warning(result.warnings, f'Unexpected {END_MARKER} without {BEGIN_MARKER}', line_number)
            else:
                _finish_card(result, card, line_number)
                card = None

            continue

        if card is None:
            continue

        prop = parse_content_line(line, card.warnings, line_number)

        if prop is None:
            continue

        if is_quoted_printable(prop.parameters):
            while prop.value.endswith('=') and index < len(lines) and not _is_marker(lines[index][1], END_MARKER):
                line_number, line = lines[index]
                index += 1
                prop.value += '\n' + line
                prop.__line_span__.end = line_number

        if prop.name == 'VERSION':
            card.version = prop.value.strip()
            continue

        card.lines.append(prop)

    if card is not None:
        add_warning(card.warnings, f'Unclosed vCard (missing {END_MARKER}), parsing anyway', line_number)
        _finish_card(result, card, line_number)

    return result


def read_vcards(string):
    return parse_blocks(string)


def read_vcard(string):
    result = parse_blocks(string)

    if not result.cards:
        raise VCardError('No vCard found in input')

    return result.cards[0]


def validate_for_generation(lines):
    lines = list(lines)

    if not any(line.name == 'FN' for line in lines):
        raise VCardError('Missing required property: FN', 'FN')

    for line in lines:
        pref = line.parameters.get('PREF')

        if pref is None:
            continue

        try:
            pref = int(pref)
        except (TypeError, ValueError):
            raise VCardError(f'PREF parameter on {line.name} must be an integer, got: {pref}', line.name)

        if not 1 <= pref <= 100:
            raise VCardError(f'PREF parameter on {line.name} must be between 1 and 100, got: {pref}', line.name)

    for line in lines:
        if line.name == 'GENDER':
            sex = unescape(split_structured(line.value)[0])

            if sex not in ('M', 'F', 'O', 'N', 'U', ''):
                raise VCardError(f'Invalid GENDER sex value: {sex}. Must be one of M, F, O, N, U', 'GENDER')
        elif line.name == 'REV':
            timestamp = parse_date_and_or_time(line.value)

            if timestamp is None or None in (timestamp.year, timestamp.month, timestamp.day):
                raise VCardError(f'REV property contains invalid timestamp: {line.value}', 'REV')


_property_order = {
    'fn': 1,
    'n': 2,
    'nickname': 3,
    'gender': 4,
    'bday': 5,
    'anniversary': 6,
    'org': 7,
    'title': 8,
    'role': 9,
    'email': 10,
    'tel': 11,
    'adr': 12,
    'url': 13,
    'impp': 14,
    'lang': 15,
    'tz': 16,
    'geo': 17,
    'photo': 18,
    'logo': 19,
    'sound': 20,
    'note': 21,
    'categories': 22,
    'source': 23,
    'xml': 24,
    'key': 25,
    'fburl': 26,
    'caladruri': 27,
    'caluri': 28,
    'member': 29,
    'related': 30,
    'uid': 31,
    'rev': 32,
    'prodid': 33,
    'kind': 34,
    'clientpidmap': 35,
}


def _property_sort_key(prop):
    return _property_order.get(prop.name.lower(), 100)


def _sorted_properties(lines):
    return sorted(lines, key=_property_sort_key)


def assemble_output(begin_marker, version_line, content_lines, end_marker):
    parts = [fold(begin_marker), fold(version_line)]
    parts.extend(fold(line) for line in content_lines)
    parts.append(fold(end_marker))

    return ''.join(parts)


def generate_vcard(lines, *, validate=True):
    lines = [line for line in lines if line.name != 'VERSION']

    if validate:
        validate_for_generation(lines)

    content_lines = [line.serialize() for line in _sorted_properties(lines)]

    return assemble_output(BEGIN_MARKER, f'VERSION:{OUTPUT_VERSION}', content_lines, END_MARKER)


def write_vcard(stream, lines, *, validate=True):
    stream.write(generate_vcard(lines, validate=validate))
