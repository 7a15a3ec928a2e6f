#!/usr/bin/env python3
"""
Name: cal
Description: displays a calendar for a year, quarter, fiscal period or month range
Author: Michael E. Schechter, mschechter@earthlink.net (Original Perl Author)
License: gpl

Months are laid out three to a row. A date spec may name a year (2024),
a month (2024-03, 202403), a quarter (Q2, 2024Q2, 2024-Q2) or a fiscal
period (FY2024, FYQ1, FY2024Q3). A fiscal year N runs from July of N-1
through June of N.
"""

import sys
import os
import re
import argparse
import subprocess
from collections import namedtuple
from datetime import date, timedelta
from enum import Enum, IntEnum
from functools import reduce
from itertools import groupby

__version__ = "1.1"

EX_FAILURE = 1

MONTH_NAMES = ['', 'January', 'February', 'March', 'April', 'May', 'June',
               'July', 'August', 'September', 'October', 'November', 'December']

COLUMN_WIDTH = 20
COLUMN_GAP = "  "
MONTHS_PER_ROW = 3

HIGHLIGHT_ON = "\033[7m"
HIGHLIGHT_OFF = "\033[27m"


def _debug(msg):
    """Prints debug messages to stderr if DEBUG_PPT_CAL is set."""
    if os.environ.get('DEBUG_PPT_CAL'):
        sys.stderr.write(f"cal: {msg}\n")


# --- Types ---

class FirstDay(Enum):
    """The weekday shown in the leftmost column."""
    MONDAY = 'monday'
    SUNDAY = 'sunday'

    @property
    def weekdays(self):
        """date.weekday() numbers (0=Mon) in display order."""
        if self is FirstDay.SUNDAY:
            return (6, 0, 1, 2, 3, 4, 5)
        return (0, 1, 2, 3, 4, 5, 6)

    @property
    def last_weekday(self):
        return self.weekdays[-1]

    @property
    def header(self):
        names = ['Mo', 'Tu', 'We', 'Th', 'Fr', 'Sa', 'Su']
        return " ".join(names[d] for d in self.weekdays)


class YearStyle(Enum):
    CALENDAR = 'calendar'
    FISCAL = 'fiscal'


class Quarter(IntEnum):
    Q1 = 1
    Q2 = 2
    Q3 = 3
    Q4 = 4

    def months(self, style):
        """Returns (first month, last month) of the quarter for a year style."""
        first = (self - 1) * 3 + 1
        if style is YearStyle.FISCAL:
            # Fiscal Q1 starts in July.
            first = (first + 5) % 12 + 1
        return first, first + 2


Year = namedtuple('Year', ['style', 'year'])
YearSpec = namedtuple('YearSpec', ['year'])
YearMonthSpec = namedtuple('YearMonthSpec', ['year', 'month'])
YearQuarterSpec = namedtuple('YearQuarterSpec', ['year', 'quarter'])

# A week is a 7-tuple of date-or-None slots in display order.
Month = namedtuple('Month', ['start_date', 'first_day_of_week', 'weeks'])


class DateSpecError(ValueError):
    """Raised for date specs that cannot be understood."""


# --- Date Spec Parsing ---

_INT_RE = re.compile(r'^[+-]?\d+$')
_DIGITS_RE = re.compile(r'^\d+$')


def _parse_int(text):
    """Returns text as an int, or None if it isn't a plain signed integer."""
    if _INT_RE.match(text):
        return int(text)
    return None


def current_fiscal_year(today: date) -> int:
    """January-June belong to the fiscal year ending this June."""
    return today.year if today.month <= 6 else today.year + 1


def current_year(style: YearStyle, today: date) -> Year:
    if style is YearStyle.FISCAL:
        return Year(style, current_fiscal_year(today))
    return Year(style, today.year)


def expand_two_digit_year(year: int, reference: date) -> int:
    """Puts a two-digit year into the century of the reference date."""
    return reference.year // 100 * 100 + year


def _match_bare_quarter(token, style, today):
    if re.fullmatch(r'Q[1-4]', token):
        return YearQuarterSpec(current_year(style, today), Quarter(int(token[1])))
    return None


def _match_year(token, style, today):
    if _DIGITS_RE.match(token) and len(token) in (2, 4):
        return YearSpec(Year(style, int(token)))
    return None


def _match_compact_year_month(token, style, today):
    if not (_DIGITS_RE.match(token) and len(token) == 6):
        return None
    month = int(token[4:])
    if not 1 <= month <= 12:
        raise DateSpecError(f"invalid month: {token[4:]}")
    return YearMonthSpec(Year(style, int(token[:4])), month)


def _match_year_quarter(token, style, today):
    if '-Q' in token:
        year_part, _, quarter_part = token.partition('-Q')
    elif 'Q' in token:
        year_part, _, quarter_part = token.partition('Q')
    else:
        return None
    year = _parse_int(year_part)
    if year is None:
        return None
    if quarter_part not in ('1', '2', '3', '4'):
        raise DateSpecError(f"invalid quarter: {quarter_part!r}")
    return YearQuarterSpec(Year(style, year), Quarter(int(quarter_part)))


def _match_year_month(token, style, today):
    if '-' not in token:
        return None
    year_part, _, month_part = token.rpartition('-')
    year = _parse_int(year_part)
    if year is None:
        return None
    month = _parse_int(month_part)
    if month is None or not 1 <= month <= 12:
        raise DateSpecError(f"invalid month: {month_part!r}")
    return YearMonthSpec(Year(style, year), month)


# Tried in order; each returns None for "no match" or raises DateSpecError
# for a token it recognizes but cannot accept.
MATCHERS = [
    _match_bare_quarter,
    _match_year,
    _match_compact_year_month,
    _match_year_quarter,
    _match_year_month,
]


def parse_date_spec(token: str, today: date):
    """
    Parses a free-form date token into a YearSpec, YearMonthSpec or
    YearQuarterSpec. Raises DateSpecError if the token isn't understood.
    """
    normalized = token.strip().upper()
    style = YearStyle.CALENDAR
    if normalized.startswith('FY'):
        # FY re-runs the same rules on the rest of the token.
        normalized, style = normalized[2:], YearStyle.FISCAL
    for matcher in MATCHERS:
        spec = matcher(normalized, style, today)
        if spec is not None:
            return spec
    raise DateSpecError(f"invalid date format: {token!r}")


# --- Date Range Resolution ---

def add_months(year: int, month: int, count: int) -> tuple:
    """Returns (year, month) shifted by count months, which may be negative."""
    years, month_index = divmod(month - 1 + count, 12)
    return year + years, month_index + 1


def last_day_of_month(year: int, month: int) -> date:
    if not 1 <= month <= 12:
        raise ValueError(f"month must be in 1..12: {month}")
    next_year, next_month = add_months(year, month, 1)
    return date(next_year, next_month, 1) - timedelta(days=1)


def _calendar_year_of_month(year: Year, month: int) -> int:
    """Calendar year holding a month of a (possibly fiscal) year."""
    if year.style is YearStyle.FISCAL and month >= 7:
        return year.year - 1
    return year.year


def spec_range(spec):
    """Returns the inclusive (start, end) dates a parsed date spec covers."""
    if isinstance(spec, YearSpec):
        year = spec.year
        if year.style is YearStyle.FISCAL:
            return date(year.year - 1, 7, 1), date(year.year, 6, 30)
        return date(year.year, 1, 1), date(year.year, 12, 31)

    if isinstance(spec, YearMonthSpec):
        year = _calendar_year_of_month(spec.year, spec.month)
        return date(year, spec.month, 1), last_day_of_month(year, spec.month)

    if isinstance(spec, YearQuarterSpec):
        first, last = spec.quarter.months(spec.year.style)
        start = date(_calendar_year_of_month(spec.year, first), first, 1)
        end_year = _calendar_year_of_month(spec.year, last)
        return start, last_day_of_month(end_year, last)

    raise ValueError(f"not a date spec: {spec!r}")


def resolve_range(today: date, spec=None, year=None, month=None,
                  before=None, after=None) -> tuple:
    """
    Turns a date spec (or an explicit year and/or month) plus optional
    month offsets into an inclusive (start, end) pair of dates.

    Explicit year/month take precedence over the spec. With nothing to go
    on, the current month is used.
    """
    if year is not None and month is not None:
        spec = YearMonthSpec(Year(YearStyle.CALENDAR, year), month)
    elif year is not None:
        spec = YearSpec(Year(YearStyle.CALENDAR, year))
    elif month is not None:
        spec = YearMonthSpec(Year(YearStyle.CALENDAR, today.year), month)
    elif spec is None:
        spec = YearMonthSpec(Year(YearStyle.CALENDAR, today.year), today.month)

    start, end = spec_range(spec)

    if before:
        start = date(*add_months(start.year, start.month, -before), 1)
    if after:
        end = last_day_of_month(*add_months(end.year, end.month, after))

    return start, end


# --- Grid Building ---

def date_span(start: date, end: date):
    """Yields every date from start through end inclusive."""
    for offset in range((end - start).days + 1):
        yield start + timedelta(days=offset)


def _place_day(state, day):
    weeks, current, first_day = state
    slot = first_day.weekdays.index(day.weekday())
    current = current[:slot] + (day,) + current[slot + 1:]
    if day.weekday() == first_day.last_weekday:
        return weeks + [current], (None,) * 7, first_day
    return weeks, current, first_day


def build_month(start: date, first_day_of_week: FirstDay, end=None) -> Month:
    """
    Lays out the days of start's month, from start through the end of the
    month (or through end, if it comes sooner), as a list of 7-slot weeks.
    Slots without a date hold None; a trailing empty week is never kept.
    """
    last = last_day_of_month(start.year, start.month)
    if end is not None and end < last:
        last = end

    empty_week = (None,) * 7
    weeks, current, _ = reduce(_place_day, date_span(start, last),
                               ([], empty_week, first_day_of_week))
    if current != empty_week:
        weeks.append(current)
    return Month(start, first_day_of_week, weeks)


def build_month_range(start: date, end: date, first_day_of_week: FirstDay) -> list:
    """Builds one Month per calendar month touched by start..end, in order."""
    months = []
    for _, days in groupby(date_span(start, end), key=lambda d: (d.year, d.month)):
        days = list(days)
        months.append(build_month(days[0], first_day_of_week, days[-1]))
    return months


# --- Rendering ---

def month_title(month: Month) -> str:
    start = month.start_date
    return f"{MONTH_NAMES[start.month]} {start.year}".center(COLUMN_WIDTH)


def format_week(week, highlight=None) -> str:
    cells = []
    for day in week:
        if day is None:
            cells.append("  ")
            continue
        cell = f"{day.day:>2}"
        if day == highlight:
            cell = f"{HIGHLIGHT_ON}{cell}{HIGHLIGHT_OFF}"
        cells.append(cell)
    return " ".join(cells)


def render(months, color=False, today=None) -> str:
    """
    Renders months side by side, MONTHS_PER_ROW to a row. Every row of the
    output is newline-terminated. With color on, today's date (if shown)
    is drawn in reverse video.
    """
    highlight = today if color else None
    row_count = max((len(m.weeks) for m in months), default=0)
    lines = []

    for i in range(0, len(months), MONTHS_PER_ROW):
        chunk = months[i:i + MONTHS_PER_ROW]
        lines.append(COLUMN_GAP.join(month_title(m) for m in chunk))
        lines.append(COLUMN_GAP.join(m.first_day_of_week.header for m in chunk))
        for week_index in range(row_count):
            parts = []
            for month in chunk:
                if week_index < len(month.weeks):
                    parts.append(format_week(month.weeks[week_index], highlight))
                else:
                    parts.append(" " * COLUMN_WIDTH)
            lines.append(COLUMN_GAP.join(parts))

    return "".join(f"{line}\n" for line in lines)


# --- Command Line ---

DAY_NAMES = ['sunday', 'monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday']


def parse_day(value: str) -> int:
    """
    Parses a day of the week given as a full name, a two-letter
    abbreviation or a number from 1 (Sunday) to 7 (Saturday).
    Returns the day number.
    """
    text = value.strip().lower()
    for number, name in enumerate(DAY_NAMES, start=1):
        if text in (str(number), name[:2], name):
            return number
    raise ValueError(f"invalid day: {value}. Please provide a day of the week, "
                     f"its abbreviation, or a number from 1 to 7.")


def first_day_from_number(number: int) -> FirstDay:
    if number == 1:
        return FirstDay.SUNDAY
    if number == 2:
        return FirstDay.MONDAY
    raise ValueError(f"unsupported first day of week: {DAY_NAMES[number - 1].capitalize()} "
                     f"(only Sunday and Monday are supported)")


def first_day_arg(value):
    """argparse type for -f."""
    try:
        return first_day_from_number(parse_day(value))
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def ranged_int(low, high, what):
    """Makes an argparse type accepting integers from low to high."""
    def convert(value):
        number = _parse_int(value.strip())
        if number is None or not low <= number <= high:
            raise argparse.ArgumentTypeError(f"invalid {what}: '{value}' (expected {low}-{high})")
        return number
    return convert


def _locale_first_weekday():
    """glibc: first_weekday counts from week-1stday, where 1 is that day itself."""
    try:
        output = subprocess.check_output(['locale', 'week-1stday', 'first_weekday'],
                                         stderr=subprocess.DEVNULL).decode()
    except (OSError, subprocess.CalledProcessError):
        return None
    values = output.split()
    if len(values) != 2 or not _DIGITS_RE.match(values[0]) or not _DIGITS_RE.match(values[1]):
        return None
    base = values[0]
    try:
        base_day = date(int(base[:4]), int(base[4:6]), int(base[6:8]))
    except ValueError:
        return None
    # isoweekday: 1=Mon..7=Sun; day numbers here: 1=Sun..7=Sat
    weekday = (base_day.isoweekday() + int(values[1]) - 1) % 7
    return weekday + 1


def _macos_first_weekday():
    try:
        output = subprocess.check_output(['defaults', 'read', '-g', 'AppleFirstWeekday'],
                                         stderr=subprocess.DEVNULL).decode()
    except (OSError, subprocess.CalledProcessError):
        return None
    match = re.search(r'gregorian\s*=\s*(\d)', output)
    return int(match.group(1)) if match else None


def system_first_day():
    """Returns the operating system's first day of week, or None."""
    if sys.platform == 'darwin':
        number = _macos_first_weekday()
    elif sys.platform.startswith('linux'):
        number = _locale_first_weekday()
    else:
        number = None
    if number not in (1, 2):
        return None
    return first_day_from_number(number)


def resolve_first_day(flag=None) -> FirstDay:
    """-f, then CAL_FIRST_DAY, then the system preference, then Monday."""
    if flag is not None:
        return flag
    env_value = os.environ.get('CAL_FIRST_DAY')
    if env_value:
        try:
            return first_day_from_number(parse_day(env_value))
        except ValueError as e:
            _debug(f"ignoring CAL_FIRST_DAY: {e}")
    return system_first_day() or FirstDay.MONDAY


def use_color(mode: str, stream) -> bool:
    """CAL_COLOR overrides --color; 'auto' means only on a terminal."""
    override = os.environ.get('CAL_COLOR', '').strip().lower()
    if override in ('1', 'true'):
        return True
    if override in ('0', 'false'):
        return False
    if mode == 'always':
        return True
    if mode == 'never':
        return False
    return stream.isatty()


def build_parser():
    parser = argparse.ArgumentParser(
        prog='cal',
        description="Displays a calendar for a year, quarter, fiscal period or month range.",
        usage="%(prog)s [-hV] [-y year] [-m month] [-B n] [-A n] [-f day] "
              "[--color when] [date]"
    )
    parser.add_argument('-V', '--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('date', nargs='?',
                        help="year (2024), month (2024-03, 202403), quarter (Q1, 2024Q1, "
                             "2024-Q1) or fiscal period (FY2024, FYQ1, FY2024Q1)")
    parser.add_argument('-y', '--year', type=ranged_int(1, 9999, 'year'), help="year to display")
    parser.add_argument('-m', '--month', type=ranged_int(1, 12, 'month'), help="month to display")
    parser.add_argument('-B', '--before', type=ranged_int(1, 12, 'month count'), metavar='N',
                        help="also show N months before the range")
    parser.add_argument('-A', '--after', type=ranged_int(1, 12, 'month count'), metavar='N',
                        help="also show N months after the range")
    parser.add_argument('-f', '--first-day-of-week', type=first_day_arg, metavar='DAY',
                        help="first day of the week: a name ('Sunday'), abbreviation ('Su') "
                             "or number from 1 (Sunday) to 7 (Saturday); only Sunday and "
                             "Monday are supported. Defaults to the system preference.")
    parser.add_argument('--color', choices=['auto', 'always', 'never'], default='auto',
                        help="highlight today's date (default: auto)")
    return parser


def main(argv=None):
    """Parses arguments and prints the calendar."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.date is not None and (args.year is not None or args.month is not None):
        parser.error("cannot use a date with -y or -m")

    today = date.today()
    try:
        spec = parse_date_spec(args.date, today) if args.date is not None else None
    except DateSpecError as e:
        sys.stderr.write(f"cal: {e}\n")
        sys.exit(EX_FAILURE)
    _debug(f"date spec: {spec}")

    first_day = resolve_first_day(args.first_day_of_week)
    try:
        start, end = resolve_range(today, spec, args.year, args.month, args.before, args.after)
    except ValueError as e:
        sys.stderr.write(f"cal: {e}\n")
        sys.exit(EX_FAILURE)
    _debug(f"range: {start} .. {end}, first day of week: {first_day.name.capitalize()}")

    months = build_month_range(start, end, first_day)
    output = render(months, use_color(args.color, sys.stdout), today)

    try:
        sys.stdout.write(output)
        sys.stdout.flush()
    except BrokenPipeError:
        sys.stderr.close()


if __name__ == "__main__":
    main()
