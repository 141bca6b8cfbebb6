from vcardcodec.core import add_warning, is_quoted_printable
from vcardcodec.dates import DateAndOrTime, format_date_and_or_time, parse_date_and_or_time
from vcardcodec.text import decode_quoted_printable, escape, join_list, join_structured, parse_list, \
    parse_structured, parse_structured_list, unescape


_DATE_PROPERTIES = frozenset({'BDAY', 'ANNIVERSARY', 'REV'})


def _verbatim(value):
    return value


def _decode_date(value):
    result = parse_date_and_or_time(value)

    if result is None:
        return unescape(value)

    return result


def _encode_date(value):
    if isinstance(value, DateAndOrTime):
        return format_date_and_or_time(value)

    return escape(value)


VALUE_DECODERS = {
    'FN': unescape,
    'N': parse_structured_list,
    'NICKNAME': parse_list,
    'PHOTO': _verbatim,
    'BDAY': _decode_date,
    'ANNIVERSARY': _decode_date,
    'GENDER': parse_structured,
    'ADR': parse_structured_list,
    'LABEL': unescape,
    'TEL': _verbatim,
    'EMAIL': unescape,
    'IMPP': _verbatim,
    'LANG': _verbatim,
    'TZ': _verbatim,
    'GEO': _verbatim,
    'TITLE': unescape,
    'ROLE': unescape,
    'LOGO': _verbatim,
    'ORG': parse_structured,
    'MEMBER': _verbatim,
    'RELATED': _verbatim,
    'CATEGORIES': parse_list,
    'NOTE': unescape,
    'PRODID': unescape,
    'REV': _decode_date,
    'SOUND': _verbatim,
    'UID': _verbatim,
    'CLIENTPIDMAP': parse_structured,
    'URL': _verbatim,
    'KEY': _verbatim,
    'FBURL': _verbatim,
    'CALADRURI': _verbatim,
    'CALURI': _verbatim,
    'KIND': unescape,
    'XML': unescape,
    'SOURCE': _verbatim,
    'MAILER': _verbatim,
    'CLASS': _verbatim,
    'PROFILE': _verbatim,
    'NAME': _verbatim,
    'SORT-STRING': _verbatim,
}

VALUE_ENCODERS = {
    unescape: escape,
    parse_list: join_list,
    parse_structured: join_structured,
    parse_structured_list: join_structured,
    _decode_date: _encode_date,
    _verbatim: _verbatim,
}


def _is_extension(name):
    # A parsed "VND.X.Y" has group VND, so only names built as ContentLine('VND.X.Y', ...) match here.
    return name.startswith('X-') or name.startswith('VND.')


def _is_text_value(parameters):
    return any(value.lower() == 'text' for value in parameters.get_all('VALUE'))


def _get_decoder(name, parameters):
    if name in _DATE_PROPERTIES and _is_text_value(parameters):
        return unescape

    return VALUE_DECODERS.get(name, _verbatim)


def _remove_quoted_printable(parameters):
    parameters.pop('ENCODING', None)
    parameters.pop('CHARSET', None)

    types = [value for value in parameters.get_all('TYPE') if value.upper() != 'QUOTED-PRINTABLE']

    if not types:
        parameters.pop('TYPE', None)
    else:
        parameters['TYPE'] = types if len(types) > 1 else types[0]


def decode_value(line, warnings=None):
    """Interpret the still-escaped value of ``line`` by property name.

    Quoted-printable content is decoded first, and the ENCODING and CHARSET
    parameters that described it are removed from ``line.parameters``.
    Unknown, non-extension properties are returned verbatim with a warning.
    """
    value = line.value

    if is_quoted_printable(line.parameters):
        value = decode_quoted_printable(value)
        _remove_quoted_printable(line.parameters)

    if line.name not in VALUE_DECODERS and not _is_extension(line.name):
        add_warning(warnings, f'Unknown property: {line.name}, stored verbatim', line.line)

    decode = _get_decoder(line.name, line.parameters)

    return decode(value)


def encode_value(name, value, parameters=None):
    name = name.upper()
    decode = VALUE_DECODERS.get(name, _verbatim)

    if parameters is not None:
        decode = _get_decoder(name, parameters)

    encode = VALUE_ENCODERS[decode]

    return encode(value)
