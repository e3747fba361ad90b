"""
Metadata date extraction.

Two halves:
- read_metadata_record() wraps PyExifTool and reduces the full tag dump to
  the four date fields the resolver cares about. This is the only part that
  touches file bytes.
- parse_metadata() picks the best of those fields and turns it into a
  DateEvidence. It never raises; every failure comes back as confidence 0.
"""
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Mapping, Optional
import logging
import os
import re

import exiftool

from photodater.lib.evidence import (
    DateEvidence,
    DateSource,
    FileInput,
    ProblemType,
    is_valid_calendar_date,
)

logger = logging.getLogger(__name__)

# Path to exiftool executable - use system default or override via environment
EXIFTOOL_PATH = os.environ.get('EXIFTOOL_PATH', 'exiftool')

METADATA_CONFIDENCE = 0.9

# Record fields, in priority order
METADATA_DATE_FIELDS = (
    'DateTimeOriginal',   # Capture time (best)
    'CreateDate',         # When digitized / file created
    'DateTime',           # Generic timestamp
    'ModifyDate',         # Last edit (least reliable)
)

# ExifTool tags feeding each record field, first present wins
EXIFTOOL_TAGS = {
    'DateTimeOriginal': ('EXIF:DateTimeOriginal', 'XMP:DateTimeOriginal'),
    'CreateDate': ('EXIF:CreateDate', 'QuickTime:CreateDate', 'XMP:CreateDate'),
    'DateTime': ('Composite:DateTimeCreated', 'XMP:DateCreated'),
    'ModifyDate': ('EXIF:ModifyDate', 'XMP:ModifyDate'),
}

# Content types that can carry EXIF in this application
METADATA_TYPE_MARKERS = ('jpeg', 'jpg', 'heic', 'heif')

# "2024:01:15 14:30:22" -> "2024-01-15 14:30:22"
_EXIF_DATE_PREFIX = re.compile(r'^(\d{4}):(\d{2}):(\d{2})', re.ASCII)
_ISO_DATE_PREFIX = re.compile(r'^(\d{4})-(\d{2})-(\d{2})(?!\d)', re.ASCII)

MetadataReader = Callable[[FileInput], Optional[Mapping[str, Any]]]


# ============================================================================
# Decoding (external collaborator)
# ============================================================================

def extract_metadata(file_path: Path | str, executable: Optional[str] = None) -> dict[str, Any]:
    """
    Extract all metadata from a file using ExifTool.

    Args:
        file_path: Path to the file
        executable: exiftool binary, defaults to EXIFTOOL_PATH

    Returns:
        Dictionary of metadata tags and values
    """
    path_str = str(file_path) if isinstance(file_path, Path) else file_path

    with exiftool.ExifToolHelper(executable=executable or EXIFTOOL_PATH) as et:
        metadata_list = et.get_metadata(path_str)
        if metadata_list:
            return metadata_list[0]
    return {}


def reduce_tags(tags: Mapping[str, Any]) -> dict[str, Any]:
    """Map an ExifTool tag dump onto the record fields."""
    record = {}
    for field_name, tag_names in EXIFTOOL_TAGS.items():
        for tag in tag_names:
            if tags.get(tag) not in (None, ''):
                record[field_name] = tags[tag]
                break
    return record


def read_metadata_record(file_path: Path | str, executable: Optional[str] = None) -> dict[str, Any]:
    """Decode a file and return only its date fields."""
    return reduce_tags(extract_metadata(file_path, executable))


def exiftool_reader(executable: Optional[str] = None) -> MetadataReader:
    """Build a MetadataReader that decodes FileInput.path with ExifTool."""
    def reader(file_input: FileInput) -> Optional[Mapping[str, Any]]:
        if file_input.path is None:
            return file_input.metadata
        return read_metadata_record(file_input.path, executable)
    return reader


def load_metadata(file_input: FileInput, reader: Optional[MetadataReader]) -> FileInput:
    """
    Run a metadata reader for one file.

    Safe to call from worker threads. A reader fault is recorded on the
    returned FileInput (metadata_error) instead of being raised, so it can
    surface later as an EXTRACTION_ERROR.
    """
    if reader is None:
        return file_input

    try:
        record = reader(file_input)
    except Exception as e:
        logger.warning(f"Metadata decode failed for {file_input.filename}: {e}")
        return replace(file_input, metadata=None, metadata_error=str(e) or type(e).__name__)

    return replace(file_input, metadata=record, metadata_error=None)


# ============================================================================
# Parsing
# ============================================================================

def has_metadata_support(content_type: Optional[str]) -> bool:
    """An empty declared type is given the benefit of the doubt."""
    if not content_type:
        return True
    lowered = content_type.lower()
    return any(marker in lowered for marker in METADATA_TYPE_MARKERS)


def normalize_exif_date_string(value: str) -> str:
    """Swap the colon date separators EXIF uses for dashes."""
    return _EXIF_DATE_PREFIX.sub(r'\1-\2-\3', value.strip())


def parse_date_value(value: Any) -> Optional[date]:
    """
    Turn a metadata value into a calendar date.

    Handles datetime/date objects and strings like '2024:01:15 14:30:22',
    '2024-01-15T14:30:22+02:00' or '2024-01-15'. Any time or zone part is
    ignored.

    Returns:
        date, or None if the value cannot be read as a valid date

    Raises:
        TypeError: value is neither a date nor a string
    """
    if isinstance(value, datetime):
        parts = (value.year, value.month, value.day)
    elif isinstance(value, date):
        parts = (value.year, value.month, value.day)
    elif isinstance(value, str):
        match = _ISO_DATE_PREFIX.match(normalize_exif_date_string(value))
        if not match:
            return None
        parts = tuple(int(g) for g in match.groups())
    else:
        raise TypeError(f"unexpected metadata value type {type(value).__name__}")

    if not is_valid_calendar_date(*parts):
        return None
    return date(*parts)


def select_date_field(record: Mapping[str, Any]) -> Optional[tuple[str, Any]]:
    """First present, non-empty field in priority order."""
    for field_name in METADATA_DATE_FIELDS:
        value = record.get(field_name)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return field_name, value
    return None


def parse_metadata(record: Optional[Mapping[str, Any]], content_type: str = '') -> DateEvidence:
    """
    Pick the best date from a decoded metadata record.

    Args:
        record: Field -> value mapping (see METADATA_DATE_FIELDS), or None
        content_type: Declared MIME type of the file

    Returns:
        DateEvidence with source METADATA; confidence 0.9 on success,
        0 with a failure_reason otherwise. Never raises.
    """
    try:
        if not has_metadata_support(content_type):
            return DateEvidence.failed(
                DateSource.METADATA,
                f"Unsupported file type for metadata: {content_type}",
                ProblemType.UNSUPPORTED_TYPE,
            )

        if not record:
            return DateEvidence.failed(
                DateSource.METADATA,
                'No metadata found in file',
                ProblemType.METADATA_MISSING,
            )

        selected = select_date_field(record)
        if selected is None:
            return DateEvidence.failed(
                DateSource.METADATA,
                'No date fields found in metadata',
                ProblemType.METADATA_MISSING,
            )

        field_name, value = selected
        try:
            found = parse_date_value(value)
        except TypeError:
            return DateEvidence.failed(
                DateSource.METADATA,
                'Unexpected metadata date format',
                ProblemType.INVALID_DATE,
            )

        if found is None:
            return DateEvidence.failed(
                DateSource.METADATA,
                'Invalid date in metadata',
                ProblemType.INVALID_DATE,
            )

        return DateEvidence.found(
            found,
            DateSource.METADATA,
            METADATA_CONFIDENCE,
            raw_text=f"{field_name}: {value}",
        )

    except Exception as e:
        logger.error(f"Unexpected error parsing metadata record: {e}", exc_info=True)
        return DateEvidence.failed(
            DateSource.METADATA,
            f"Metadata parsing error: {e}",
            ProblemType.EXTRACTION_ERROR,
        )


def metadata_evidence(file_input: FileInput) -> DateEvidence:
    """Resolver chain link: decode errors first, then the record itself."""
    if file_input.metadata_error:
        return DateEvidence.failed(
            DateSource.METADATA,
            f"Metadata parsing error: {file_input.metadata_error}",
            ProblemType.EXTRACTION_ERROR,
        )
    return parse_metadata(file_input.metadata, file_input.content_type)
