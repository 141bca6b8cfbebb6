import quopri
import re


FOLD_LIMIT = 75
CRLF = '\r\n'

_NEEDS_QUOTING_PATTERN = re.compile(r'[;:,"]')


def escape(string):
    return (string
            .replace('\\', '\\\\')
            .replace('\n', '\\n')
            .replace(',', '\\,')
            .replace(';', '\\;'))


def unescape(string):
    # Unknown escapes keep the escaped character and lose the backslash.
    chars = []
    index = 0
    end = len(string)

    while index < end:
        char = string[index]
        index += 1

        if char == '\\' and index < end:
            next_char = string[index]
            index += 1

            if next_char in 'nN':
                chars.append('\n')
            else:
                chars.append(next_char)
        else:
            chars.append(char)

    return ''.join(chars)


def split_structured_value(string, separator):
    assert len(separator) == 1

    parts = []
    chars = []
    index = 0
    end = len(string)

    while index < end:
        char = string[index]

        if char == '\\' and index + 1 < end:
            chars.append(string[index:index + 2])
            index += 2
            continue

        if char == separator:
            parts.append(''.join(chars))
            chars = []
        else:
            chars.append(char)

        index += 1

    parts.append(''.join(chars))

    return parts


def split_structured(string):
    return split_structured_value(string, ';')


def split_list(string):
    return split_structured_value(string, ',')


def parse_structured(string):
    return [unescape(component) for component in split_structured(string)]


def parse_list(string):
    return [unescape(item) for item in split_list(string)]


def parse_structured_list(string):
    return [parse_list(component) for component in split_structured(string)]


def join_list(items):
    return ','.join(escape(item) for item in items)


def join_structured(components):
    parts = []

    for component in components:
        if isinstance(component, (list, tuple)):
            parts.append(join_list(component))
        else:
            parts.append(escape(component))

    return ';'.join(parts)


def needs_quoting(value):
    return _NEEDS_QUOTING_PATTERN.search(value) is not None


def quote_parameter_value(value):
    if not needs_quoting(value):
        return value

    return '"' + value.replace('\\', '\\\\').replace('"', '\\"') + '"'


def unquote_parameter_value(value):
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        return value[1:-1].replace('\\"', '"').replace('\\\\', '\\')

    return value


def _normalize_newlines(string):
    return string.replace('\r\n', '\n').replace('\r', '\n')


def unfold_numbered(string):
    lines = []
    physical_lines = _normalize_newlines(string).split('\n')
    previous = None

    for line_number, line in enumerate(physical_lines, 1):
        if previous is not None and line[:1] in (' ', '\t'):
            previous[1] += line[1:]
            continue

        previous = [line_number, line]
        lines.append(previous)

    return [(line_number, line) for line_number, line in lines if line]


def unfold(string):
    return [line for _, line in unfold_numbered(string)]


def utf8_width(char):
    code_point = ord(char)

    if code_point < 0x80:
        return 1
    elif code_point < 0x800:
        return 2
    elif code_point < 0x10000:
        return 3

    return 4


def fold(line, *, width=FOLD_LIMIT, newline=CRLF):
    if len(line.encode('utf-8', 'surrogatepass')) <= width:
        return line + newline

    parts = []
    start = 0
    end = len(line)
    budget = width

    while start < end:
        index = start
        octets = 0

        while index < end:
            char_width = utf8_width(line[index])

            if octets + char_width > budget:
                break

            octets += char_width
            index += 1

        if index == start:
            index += 1

        parts.append(line[start:index])
        start = index
        budget = width - 1

    return (newline + ' ').join(parts) + newline


def decode_quoted_printable(string):
    # Non-ASCII characters pass through as their own UTF-8 bytes, so the
    # whole octet stream is decoded once and split sequences reassemble.
    string = _normalize_newlines(string)

    # Only "=" before a line break is a soft break, a final "=" is literal.
    if string.endswith('='):
        string = string[:-1] + '=3D'

    data = quopri.decodestring(string.encode('utf-8'))

    return data.decode('utf-8', 'replace')
