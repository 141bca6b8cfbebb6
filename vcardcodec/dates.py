import re
from datetime import timezone


_OFFSET_PATTERN = re.compile(r'([Zz]|[+-]\d{2}:?\d{2})$')
_TIME_DESIGNATOR_PATTERN = re.compile(r'[Tt]')
_LEADING_DIGITS_PATTERN = re.compile(r'[0-9]*')


class DateAndOrTime:
    """A date, a time, or both, any component of which may be absent.

    Reduced accuracy forms such as ``1990`` or ``199012`` leave the lower
    components unset, and forms without a year such as ``--0315`` leave the
    year unset. ``utc_offset`` is kept verbatim (``Z``, ``+0500``, ``-05:00``).
    """

    def __init__(self, year=None, month=None, day=None,
                 hour=None, minute=None, second=None, utc_offset=None, has_time=False):
        self.year = year
        self.month = month
        self.day = day
        self.hour = hour
        self.minute = minute
        self.second = second
        self.utc_offset = utc_offset
        self.has_time = has_time

    @classmethod
    def from_datetime(cls, value):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)

        return cls(value.year, value.month, value.day,
                   value.hour, value.minute, value.second, utc_offset='Z', has_time=True)

    @property
    def has_date(self):
        return self.year is not None or self.month is not None or self.day is not None

    def is_empty(self):
        return not self.has_date and not self.has_time

    def _key(self):
        return (self.year, self.month, self.day, self.hour, self.minute, self.second,
                self.utc_offset, self.has_time)

    def __eq__(self, other):
        if not isinstance(other, DateAndOrTime):
            return NotImplemented

        return self._key() == other._key()

    def __hash__(self):
        return hash(self._key())

    def __repr__(self):
        return f'DateAndOrTime({format_date_and_or_time(self)!r})'

    def __str__(self):
        return format_date_and_or_time(self)


def _read_digits(string, *widths):
    # Trailing text after the leading digits (fractional seconds, junk) is ignored.
    digits = _LEADING_DIGITS_PATTERN.match(string).group()

    if string and not digits:
        return None

    values = []
    start = 0

    for width in widths:
        if len(digits) < start + width:
            values.append(None)
        else:
            values.append(int(digits[start:start + width]))

        start += width

    return values


def _parse_date(string, result):
    if string.startswith('---'):
        digits = string[3:]
        widths = (2,)
    elif string.startswith('--'):
        digits = string[2:].replace('-', '')
        widths = (2, 2)
    else:
        digits = string.replace('-', '')
        widths = (4, 2, 2)

    values = _read_digits(digits, *widths)

    if values is None:
        return False
    elif len(values) == 1:
        result.day, = values
    elif len(values) == 2:
        result.month, result.day = values
    else:
        result.year, result.month, result.day = values

    return True


def _parse_time(string, result):
    match = _OFFSET_PATTERN.search(string)

    if match:
        result.utc_offset = match.group(1).upper()
        string = string[:match.start()]

    values = _read_digits(string.replace(':', ''), 2, 2, 2)

    if values is None:
        return False

    result.hour, result.minute, result.second = values

    return True


def parse_date_and_or_time(value):
    string = ''.join(value.split())

    if not string:
        return None

    match = _TIME_DESIGNATOR_PATTERN.search(string)
    result = DateAndOrTime()

    if match is None:
        date_part, time_part = string, None
    else:
        date_part, time_part = string[:match.start()], string[match.end():]
        result.has_time = bool(time_part)

    if date_part and not _parse_date(date_part, result):
        return None

    if time_part is not None and not _parse_time(time_part, result):
        return None

    if result.is_empty():
        return None

    return result


def format_date_and_or_time(value):
    parts = []

    if value.year is None and value.month is not None:
        parts.append(f'--{value.month:02d}')

        if value.day is not None:
            parts.append(f'{value.day:02d}')
    elif value.year is None and value.day is not None:
        parts.append(f'---{value.day:02d}')
    elif value.year is not None:
        parts.append(f'{value.year:04d}')

        if value.month is not None:
            parts.append(f'{value.month:02d}')

        if value.day is not None:
            parts.append(f'{value.day:02d}')

    if value.has_time:
        parts.append('T')

        for component in (value.hour, value.minute, value.second):
            if component is None:
                break

            parts.append(f'{component:02d}')

        if value.utc_offset:
            parts.append(value.utc_offset)

    return ''.join(parts)
