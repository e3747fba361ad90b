"""
Fallback date from the file's lastModified timestamp.

File system dates change when files are copied, so this is only used when
neither the filename nor the metadata yields a date. Timestamps are epoch
milliseconds (browser File.lastModified convention) decoded in UTC.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging
import math

from photodater.lib.evidence import (
    DateEvidence,
    DateSource,
    FileInput,
    MAX_VALID_YEAR,
    MIN_VALID_YEAR,
    ProblemType,
)

logger = logging.getLogger(__name__)

FILESYSTEM_CONFIDENCE = 0.5

# Consumer digital cameras did not exist before this
SUSPICIOUS_BEFORE_YEAR = 1990


def decode_timestamp(last_modified: float) -> datetime:
    """
    Convert epoch milliseconds to a UTC datetime.

    Raises:
        TypeError, ValueError, OverflowError, OSError: timestamp unusable
    """
    if isinstance(last_modified, bool) or not isinstance(last_modified, (int, float)):
        raise TypeError(f"timestamp must be a number, got {type(last_modified).__name__}")
    millis = float(last_modified)
    if not math.isfinite(millis):
        raise ValueError(f"non-finite timestamp {last_modified}")
    return datetime.fromtimestamp(millis / 1000.0, tz=timezone.utc)


def parse_file_timestamp(
    last_modified: Optional[float],
    min_year: Optional[int] = None
) -> DateEvidence:
    """
    Wrap a lastModified timestamp as low-confidence evidence.

    Any timestamp that decodes to a date between 1970 and 2100 succeeds,
    epoch 0 included. min_year optionally raises the floor (e.g. 2000 to
    reject cameras that never had their clock set).

    Args:
        last_modified: Epoch milliseconds, or None if unknown
        min_year: Optional stricter lower bound for the year

    Returns:
        DateEvidence with source FILESYSTEM, confidence 0.5 or 0
    """
    if last_modified is None:
        return DateEvidence.failed(
            DateSource.FILESYSTEM,
            'No lastModified timestamp',
            ProblemType.NO_DATE_FOUND,
        )

    try:
        decoded = decode_timestamp(last_modified)
    except (TypeError, ValueError, OverflowError, OSError) as e:
        logger.debug(f"Rejected lastModified {last_modified!r}: {e}")
        return DateEvidence.failed(
            DateSource.FILESYSTEM,
            'Invalid lastModified timestamp',
            ProblemType.NO_DATE_FOUND,
        )

    floor = max(MIN_VALID_YEAR, min_year) if min_year else MIN_VALID_YEAR
    if decoded.year < floor or decoded.year > MAX_VALID_YEAR:
        logger.debug(f"lastModified {last_modified} decodes to year {decoded.year}, outside {floor}-{MAX_VALID_YEAR}")
        return DateEvidence.failed(
            DateSource.FILESYSTEM,
            f"lastModified year {decoded.year} outside {floor}-{MAX_VALID_YEAR}",
            ProblemType.NO_DATE_FOUND,
        )

    iso = decoded.isoformat(timespec='milliseconds').replace('+00:00', 'Z')
    return DateEvidence.found(
        decoded.date(),
        DateSource.FILESYSTEM,
        FILESYSTEM_CONFIDENCE,
        raw_text=f"lastModified: {last_modified} ({iso})",
    )


def filesystem_evidence(file_input: FileInput, min_year: Optional[int] = None) -> DateEvidence:
    """Resolver chain link."""
    return parse_file_timestamp(file_input.last_modified, min_year)


def is_suspicious_file_date(last_modified: float, now: Optional[datetime] = None) -> bool:
    """
    True if a lastModified date is more than a day in the future or older
    than SUSPICIOUS_BEFORE_YEAR. Unreadable timestamps are not flagged.
    """
    try:
        decoded = decode_timestamp(last_modified)
    except (TypeError, ValueError, OverflowError, OSError):
        return False

    now = now or datetime.now(timezone.utc)
    return decoded > now + timedelta(days=1) or decoded.year < SUSPICIOUS_BEFORE_YEAR
