"""
Shared result types for date resolution.

Every extractor returns a DateEvidence; every input file ends up as exactly
one ResolvedAssignment. Both are frozen once built so a batch can be
re-run or renumbered without worrying about earlier results changing.
"""
from dataclasses import dataclass, field
from datetime import date
from enum import Enum as PyEnum
from pathlib import Path
from typing import Any, Mapping, Optional


MIN_VALID_YEAR = 1970
MAX_VALID_YEAR = 2100

SUPPORTED_CONTENT_TYPES = {'image/jpeg', 'image/heic', 'image/heif'}
SUPPORTED_EXTENSIONS = {'.jpg', '.jpeg', '.heic', '.heif'}


# ============================================================================
# Enums
# ============================================================================

class DateSource(str, PyEnum):
    """Where a date came from, in automatic precedence order."""
    FILENAME = "filename"        # Parsed from the original filename
    METADATA = "metadata"        # EXIF/HEIC tags
    FILESYSTEM = "filesystem"    # lastModified timestamp (least reliable)
    MANUAL = "manual"            # Operator override, outside the chain


class AssignmentStatus(str, PyEnum):
    """Outcome of a single file in a batch."""
    RESOLVED = "resolved"
    NEEDS_ATTENTION = "needs_attention"


class ProblemType(str, PyEnum):
    """Why a file could not be renamed automatically."""
    NO_DATE_FOUND = "no_date_found"
    INVALID_DATE = "invalid_date"
    UNSUPPORTED_TYPE = "unsupported_type"
    METADATA_MISSING = "metadata_missing"
    EXTRACTION_ERROR = "extraction_error"


# Reason and suggestion shown to the user for each problem code
PROBLEM_MESSAGES = {
    ProblemType.NO_DATE_FOUND: (
        'Could not find a date in filename, metadata, or file timestamp',
        'You may manually specify the creation date',
    ),
    ProblemType.INVALID_DATE: (
        'Found a date, but it is not a valid calendar date',
        'Check the filename or manually specify the creation date',
    ),
    ProblemType.UNSUPPORTED_TYPE: (
        'File type is not supported (only JPEG and HEIC/HEIF images)',
        'Convert the file to JPEG or HEIC, or remove it from the batch',
    ),
    ProblemType.METADATA_MISSING: (
        'The file has no usable date metadata',
        'You may manually specify the creation date',
    ),
    ProblemType.EXTRACTION_ERROR: (
        'An error occurred while reading the file',
        'Try re-exporting the file or manually specify the creation date',
    ),
}


# ============================================================================
# Validation helpers
# ============================================================================

def is_valid_calendar_date(year: int, month: int, day: int) -> bool:
    """
    Check that year/month/day is a real date inside the supported range.

    The triple is built into a date and compared back field by field, so
    values a lenient constructor would roll over (Feb 30 -> Mar 1) are
    rejected rather than corrected.

    Args:
        year: Four-digit year
        month: Month number (1-12)
        day: Day of month (1-31)

    Returns:
        True if the date exists and the year is within 1970-2100
    """
    if year < MIN_VALID_YEAR or year > MAX_VALID_YEAR:
        return False
    if month < 1 or month > 12:
        return False
    if day < 1 or day > 31:
        return False

    try:
        candidate = date(year, month, day)
    except ValueError:
        return False

    return (
        candidate.year == year
        and candidate.month == month
        and candidate.day == day
    )


def is_supported_type(content_type: Optional[str], filename: str) -> bool:
    """True if the declared type or the extension is JPEG/HEIC/HEIF."""
    has_valid_type = (content_type or '').strip().lower() in SUPPORTED_CONTENT_TYPES
    has_valid_extension = Path(filename).suffix.lower() in SUPPORTED_EXTENSIONS
    return has_valid_type or has_valid_extension


# ============================================================================
# Result types
# ============================================================================

@dataclass(frozen=True)
class DateEvidence:
    """Result of one extraction attempt."""

    date: Optional[date]
    source: DateSource
    confidence: float
    raw_text: Optional[str] = None
    failure_reason: Optional[str] = None
    problem: Optional[ProblemType] = None

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence {self.confidence} outside [0, 1]")

        if self.date is None:
            if self.confidence != 0:
                raise ValueError("evidence without a date must have confidence 0")
            return

        if self.confidence <= 0:
            raise ValueError("evidence with a date must have confidence > 0")
        if not MIN_VALID_YEAR <= self.date.year <= MAX_VALID_YEAR:
            raise ValueError(f"year {self.date.year} outside {MIN_VALID_YEAR}-{MAX_VALID_YEAR}")
        if self.failure_reason is not None or self.problem is not None:
            raise ValueError("successful evidence cannot carry a failure")

    @classmethod
    def found(
        cls,
        found_date: date,
        source: DateSource,
        confidence: float,
        raw_text: Optional[str] = None,
    ) -> 'DateEvidence':
        return cls(date=found_date, source=source, confidence=confidence, raw_text=raw_text)

    @classmethod
    def failed(
        cls,
        source: DateSource,
        reason: str,
        problem: Optional[ProblemType] = None,
    ) -> 'DateEvidence':
        return cls(date=None, source=source, confidence=0.0,
                   failure_reason=reason, problem=problem)

    @property
    def succeeded(self) -> bool:
        return self.confidence > 0

    def to_dict(self) -> dict:
        return {
            'date': self.date.isoformat() if self.date else None,
            'source': self.source.value,
            'confidence': self.confidence,
            'raw_text': self.raw_text,
            'failure_reason': self.failure_reason,
            'problem': self.problem.value if self.problem else None,
        }


def manual_evidence(manual_date: date) -> DateEvidence:
    """Evidence for an operator-supplied date (highest trust)."""
    return DateEvidence.found(
        manual_date,
        DateSource.MANUAL,
        1.0,
        raw_text=f"manual: {manual_date.isoformat()}",
    )


@dataclass(frozen=True)
class FileInput:
    """
    Identity of one file handed to the resolver.

    metadata is the already-decoded record (field -> value) or None when
    decoding found nothing; metadata_error is set when the decoder failed.
    """

    filename: str
    content_type: str = ''
    last_modified: Optional[float] = None
    metadata: Optional[Mapping[str, Any]] = None
    metadata_error: Optional[str] = None
    path: Optional[Path] = None

    @property
    def extension(self) -> str:
        """Extension including the dot, case preserved ('' if none)."""
        return Path(self.filename).suffix


@dataclass(frozen=True)
class ResolvedAssignment:
    """Final outcome for one input file."""

    filename: str
    position: int
    evidence: DateEvidence
    target_name: str
    status: AssignmentStatus
    problem: Optional[ProblemType] = None
    notes: tuple[str, ...] = ()  # Warnings about a low-confidence date

    @property
    def is_resolved(self) -> bool:
        return self.status == AssignmentStatus.RESOLVED

    def to_dict(self) -> dict:
        return {
            'filename': self.filename,
            'position': self.position,
            'target_name': self.target_name,
            'status': self.status.value,
            'problem': self.problem.value if self.problem else None,
            'notes': list(self.notes),
            'evidence': self.evidence.to_dict(),
        }


@dataclass(frozen=True)
class ProblemEntry:
    """Display view of a file that needs attention."""

    filename: str
    position: int
    problem: ProblemType
    reason: str
    suggestion: str

    @classmethod
    def from_assignment(cls, assignment: ResolvedAssignment) -> 'ProblemEntry':
        problem = assignment.problem or ProblemType.NO_DATE_FOUND
        reason, suggestion = PROBLEM_MESSAGES[problem]
        return cls(
            filename=assignment.filename,
            position=assignment.position,
            problem=problem,
            reason=reason,
            suggestion=suggestion,
        )

    def to_dict(self) -> dict:
        return {
            'filename': self.filename,
            'position': self.position,
            'problem': self.problem.value,
            'reason': self.reason,
            'suggestion': self.suggestion,
        }


@dataclass
class BatchResult:
    """Ordered assignments for one batch run."""

    assignments: list[ResolvedAssignment] = field(default_factory=list)

    @property
    def problems(self) -> list[ProblemEntry]:
        return [
            ProblemEntry.from_assignment(a)
            for a in self.assignments
            if not a.is_resolved
        ]

    @property
    def target_names(self) -> list[str]:
        return [a.target_name for a in self.assignments]

    def summary(self) -> dict:
        """Counts by status, winning source and problem code."""
        by_status = {status.value: 0 for status in AssignmentStatus}
        by_source = {source.value: 0 for source in DateSource}
        by_problem = {}

        for assignment in self.assignments:
            by_status[assignment.status.value] += 1
            if assignment.is_resolved:
                by_source[assignment.evidence.source.value] += 1
            elif assignment.problem:
                key = assignment.problem.value
                by_problem[key] = by_problem.get(key, 0) + 1

        return {
            'total': len(self.assignments),
            'by_status': by_status,
            'by_source': by_source,
            'by_problem': by_problem,
        }

    def to_dict(self) -> dict:
        return {
            'assignments': [a.to_dict() for a in self.assignments],
            'problems': [p.to_dict() for p in self.problems],
            'summary': self.summary(),
        }
