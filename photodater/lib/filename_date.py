"""
Date extraction from filenames.

Patterns are tried in a fixed priority order, unambiguous layouts first:
- 2024-01-15 / 2024_01_15          (confidence 1.0)
- IMG_20240115.jpg                 (confidence 1.0)
- 01-15-2024 / 15-01-2024          (confidence 0.8, month/day guessed)
- 01-15-24 / 15/01/24              (confidence 0.6, two-digit year)

The first pattern that matches AND produces a real calendar date wins.
"""
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional
import logging
import re

from photodater.lib.evidence import (
    DateEvidence,
    DateSource,
    ProblemType,
    is_valid_calendar_date,
)

logger = logging.getLogger(__name__)

NO_PATTERN_REASON = 'no date pattern found'

TWO_DIGIT_YEAR_CONFIDENCE = 0.6

# Strip anything that is not a digit from both ends of a matched substring
_EDGE_NON_DIGITS = re.compile(r'^\D+|\D+$', re.ASCII)


@dataclass(frozen=True)
class DatePattern:
    """One row of the filename pattern table."""
    regex: re.Pattern
    extract: Callable[[re.Match], tuple[int, int, int]]
    confidence: float
    description: str


def _year_month_day(match: re.Match) -> tuple[int, int, int]:
    return int(match.group(1)), int(match.group(2)), int(match.group(3))


def order_month_day(first: int, second: int) -> tuple[int, int]:
    """
    Decide which of two numbers is the month.

    A value above 12 can only be the day. When neither is, month-day order
    is assumed.

    Returns:
        Tuple of (month, day)
    """
    if second > 12:
        return first, second
    if first > 12:
        return second, first
    return first, second


def expand_two_digit_year(year_short: int) -> int:
    """00-49 -> 2000s, 50-99 -> 1900s."""
    return 2000 + year_short if year_short < 50 else 1900 + year_short


def _ambiguous_four_digit_year(match: re.Match) -> tuple[int, int, int]:
    first, second, year = (int(g) for g in match.groups())
    month, day = order_month_day(first, second)
    return year, month, day


def _ambiguous_two_digit_year(match: re.Match) -> tuple[int, int, int]:
    first, second, year_short = (int(g) for g in match.groups())
    month, day = order_month_day(first, second)
    return expand_two_digit_year(year_short), month, day


# Priority order matters: first valid hit wins
DATE_PATTERNS: tuple[DatePattern, ...] = (
    DatePattern(
        regex=re.compile(r'(\d{4})[-_](\d{2})[-_](\d{2})', re.ASCII),
        extract=_year_month_day,
        confidence=1.0,
        description='YYYY-MM-DD with separators',
    ),
    DatePattern(
        regex=re.compile(r'(?<![0-9A-Za-z])(\d{4})(\d{2})(\d{2})(?!\d)', re.ASCII),
        extract=_year_month_day,
        confidence=1.0,
        description='YYYYMMDD without separators',
    ),
    DatePattern(
        regex=re.compile(r'(?<!\d)(\d{2})[-/_](\d{2})[-/_](\d{4})(?!\d)', re.ASCII),
        extract=_ambiguous_four_digit_year,
        confidence=0.8,
        description='MM-DD-YYYY or DD-MM-YYYY (ambiguous)',
    ),
    DatePattern(
        regex=re.compile(r'(?<!\d)(\d{2})[-/](\d{2})[-/](\d{2})(?!\d)', re.ASCII),
        extract=_ambiguous_two_digit_year,
        confidence=TWO_DIGIT_YEAR_CONFIDENCE,
        description='MM-DD-YY or DD-MM-YY (two-digit year)',
    ),
)


def match_pattern(pattern: DatePattern, filename: str) -> tuple[Optional[date], Optional[str], bool]:
    """
    Apply a single pattern to a filename.

    Every occurrence is checked in order; the first one that forms a valid
    calendar date is returned.

    Args:
        pattern: Row from DATE_PATTERNS
        filename: Text to search

    Returns:
        Tuple of (date or None, trimmed matched text or None, matched_at_all)
    """
    matched = False
    for match in pattern.regex.finditer(filename):
        matched = True
        year, month, day = pattern.extract(match)
        if not is_valid_calendar_date(year, month, day):
            logger.debug(
                f"'{filename}': {pattern.description} matched "
                f"{match.group(0)!r} but {year}-{month}-{day} is not a valid date"
            )
            continue
        raw = _EDGE_NON_DIGITS.sub('', match.group(0).strip())
        return date(year, month, day), raw, True
    return None, None, matched


def parse_filename(filename: str) -> DateEvidence:
    """
    Extract a date embedded in a filename.

    Args:
        filename: Filename with or without extension (not a full path)

    Returns:
        DateEvidence with source FILENAME. On failure the date is None,
        confidence is 0 and failure_reason is 'no date pattern found';
        problem is INVALID_DATE if something date-shaped matched but was
        not a real date, NO_DATE_FOUND otherwise.

    Example:
        >>> parse_filename('2024-01-15.jpg').date
        datetime.date(2024, 1, 15)
        >>> parse_filename('vacation_photo.jpg').confidence
        0.0
    """
    any_match = False

    for pattern in DATE_PATTERNS:
        found, raw, matched = match_pattern(pattern, filename)
        any_match = any_match or matched
        if found is not None:
            logger.debug(f"'{filename}': {pattern.description} -> {found} ({pattern.confidence})")
            return DateEvidence.found(found, DateSource.FILENAME, pattern.confidence, raw_text=raw)

    problem = ProblemType.INVALID_DATE if any_match else ProblemType.NO_DATE_FOUND
    return DateEvidence.failed(DateSource.FILENAME, NO_PATTERN_REASON, problem)


_AMBIGUOUS_REGEX = re.compile(r'(?<!\d)(\d{2})[-/_](\d{2})[-/_](\d{4}|\d{2})(?!\d)', re.ASCII)


def is_ambiguous_date(text: str) -> bool:
    """
    True if a NN-NN-YYYY or NN-NN-YY date could be read either way round.

    Used to warn about 0.8 and 0.6 confidence filename dates.
    """
    match = _AMBIGUOUS_REGEX.search(text)
    if not match:
        return False
    first, second = int(match.group(1)), int(match.group(2))
    return first <= 12 and second <= 12
