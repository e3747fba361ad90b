"""
Batch pipeline: resolve a date for every file, then name them.

Processing happens in two passes:
1. Evidence gathering. Metadata decoding can run in a thread pool; results
   are put back into input order before anything else happens.
2. Naming. One sequential pass in input order with a fresh CollisionLedger.
   Input order decides which file gets the bare name and which get -01,
   -02, ... so the same input order always yields the same names.

A failure on one file never stops the batch; it becomes a NEEDS_ATTENTION
assignment.
"""
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import date, datetime
from typing import Callable, Iterable, Mapping, Optional, Sequence
import logging
import os

from photodater.lib.evidence import (
    AssignmentStatus,
    BatchResult,
    DateEvidence,
    DateSource,
    FileInput,
    ProblemType,
    ResolvedAssignment,
    is_supported_type,
    manual_evidence,
)
from photodater.lib.filename_date import TWO_DIGIT_YEAR_CONFIDENCE, is_ambiguous_date
from photodater.lib.filesystem_date import is_suspicious_file_date
from photodater.lib.metadata import MetadataReader, load_metadata
from photodater.lib.naming import assign_target_name, generate_base_name, new_ledger
from photodater.lib.resolver import Extractor, build_chain, resolve_date

logger = logging.getLogger(__name__)

# Called with the number of files done so far
ProgressCallback = Callable[[int], None]


def unsupported_evidence(file_input: FileInput) -> DateEvidence:
    """Placeholder evidence for a file rejected before extraction."""
    declared = file_input.content_type or 'unknown type'
    return DateEvidence.failed(
        DateSource.FILENAME,
        f"Unsupported file type: {declared}",
        ProblemType.UNSUPPORTED_TYPE,
    )


def _needs_decoding(file_input: FileInput, position: int, manual_dates: Mapping[int, date]) -> bool:
    return position not in manual_dates and is_supported_type(file_input.content_type, file_input.filename)


def decode_metadata(
    files: Sequence[FileInput],
    reader: Optional[MetadataReader],
    max_workers: Optional[int] = None,
    manual_dates: Optional[Mapping[int, date]] = None,
    on_progress: Optional[ProgressCallback] = None
) -> list[FileInput]:
    """
    Attach decoded metadata to each file, preserving input order.

    Files that are unsupported or manually dated are passed through
    untouched and count as done straight away. Decoding runs in a thread
    pool when more than one file needs it.

    on_progress is always called from the calling thread, once for the
    pass-through files and then once per decoded file, ending at len(files).
    """
    manual_dates = manual_dates or {}
    decoded = list(files)

    pending = []
    if reader is not None:
        pending = [i for i, f in enumerate(files) if _needs_decoding(f, i, manual_dates)]

    done = len(files) - len(pending)
    if on_progress and done:
        on_progress(done)
    if not pending:
        return decoded

    workers = max_workers or os.cpu_count() or 1
    if workers == 1 or len(pending) == 1:
        for i in pending:
            decoded[i] = load_metadata(files[i], reader)
            done += 1
            if on_progress:
                on_progress(done)
        return decoded

    logger.info(f"Decoding metadata for {len(pending)} files with {workers} workers")
    with ThreadPoolExecutor(max_workers=workers) as executor:
        future_to_index = {
            executor.submit(load_metadata, files[i], reader): i
            for i in pending
        }
        for future in as_completed(future_to_index):
            # load_metadata converts reader faults itself
            decoded[future_to_index[future]] = future.result()
            done += 1
            if on_progress:
                on_progress(done)

    return decoded


def gather_evidence(
    files: Sequence[FileInput],
    chain: Sequence[Extractor],
    manual_dates: Optional[Mapping[int, date]] = None
) -> list[DateEvidence]:
    """
    Winning evidence for each file, in input order.

    Unsupported types are rejected before any extractor runs. Manual dates
    (keyed by position) bypass the chain entirely.
    """
    manual_dates = manual_dates or {}
    evidences = []

    for position, file_input in enumerate(files):
        if position in manual_dates:
            evidences.append(manual_evidence(manual_dates[position]))
            continue

        if not is_supported_type(file_input.content_type, file_input.filename):
            logger.info(f"Skipping unsupported file {file_input.filename} ({file_input.content_type})")
            evidences.append(unsupported_evidence(file_input))
            continue

        try:
            evidences.append(resolve_date(file_input, chain))
        except Exception as e:
            logger.error(f"Date resolution failed for {file_input.filename}: {e}", exc_info=True)
            evidences.append(DateEvidence.failed(
                DateSource.FILENAME,
                f"Extraction error: {e}",
                ProblemType.EXTRACTION_ERROR,
            ))

    return evidences


def assignment_notes(
    file_input: FileInput,
    evidence: DateEvidence,
    now: Optional[datetime] = None
) -> tuple[str, ...]:
    """
    Warnings to show next to a resolved name.

    Filename dates read with a month/day guess or a two-digit year, and
    dates taken from the file modification time, are flagged so the user
    can check them before renaming.
    """
    if not evidence.succeeded:
        return ()

    notes = []
    if evidence.source == DateSource.FILENAME:
        raw = evidence.raw_text or ''
        if evidence.confidence < 1.0 and is_ambiguous_date(raw):
            notes.append(f"Ambiguous date '{raw}' was read as month-day ({evidence.date.isoformat()})")
        if evidence.confidence == TWO_DIGIT_YEAR_CONFIDENCE:
            notes.append(f"Two-digit year in '{raw}' was read as {evidence.date.year}")

    elif evidence.source == DateSource.FILESYSTEM:
        notes.append('Date taken from file modification time')
        if is_suspicious_file_date(file_input.last_modified, now):
            notes.append(
                f"File modification date {evidence.date.isoformat()} "
                f"is in the future or before 1990"
            )

    return tuple(notes)


def classify(file_input: FileInput, position: int, evidence: DateEvidence, ledger: dict) -> ResolvedAssignment:
    """Build the assignment for one file, issuing a name if it has a date."""
    if evidence.succeeded:
        target_name = assign_target_name(
            generate_base_name(evidence.date),
            file_input.extension,
            ledger,
        )
        return ResolvedAssignment(
            filename=file_input.filename,
            position=position,
            evidence=evidence,
            target_name=target_name,
            status=AssignmentStatus.RESOLVED,
            notes=assignment_notes(file_input, evidence),
        )

    return ResolvedAssignment(
        filename=file_input.filename,
        position=position,
        evidence=evidence,
        target_name='',
        status=AssignmentStatus.NEEDS_ATTENTION,
        problem=evidence.problem or ProblemType.NO_DATE_FOUND,
    )


def assign_names(files: Sequence[FileInput], evidences: Sequence[DateEvidence]) -> BatchResult:
    """
    Collision pass over already-gathered evidence.

    Runs sequentially in input order with its own ledger, so it can be
    re-run on stored evidence (e.g. after a manual date change) and always
    gives the same names for the same inputs.
    """
    if len(files) != len(evidences):
        raise ValueError(f"{len(files)} files but {len(evidences)} evidence records")

    ledger = new_ledger()
    result = BatchResult()
    for position, (file_input, evidence) in enumerate(zip(files, evidences)):
        assignment = classify(file_input, position, evidence, ledger)
        result.assignments.append(assignment)
        logger.debug(f"[{position}] {file_input.filename} -> {assignment.target_name or assignment.problem.value}")

    return result


def process_batch(
    files: Iterable[FileInput],
    metadata_reader: Optional[MetadataReader] = None,
    max_workers: Optional[int] = None,
    manual_dates: Optional[Mapping[int, date]] = None,
    filesystem_min_year: Optional[int] = None,
    on_progress: Optional[ProgressCallback] = None
) -> BatchResult:
    """
    Resolve dates and target names for a batch of files.

    Args:
        files: Files in the order they should be numbered
        metadata_reader: Optional decoder called per file; when None the
                         metadata already on each FileInput is used
        max_workers: Thread count for metadata decoding
        manual_dates: Operator-supplied dates keyed by input position
        filesystem_min_year: Optional stricter floor for lastModified years
        on_progress: Optional callback fed the count of files decoded so far

    Returns:
        BatchResult with one assignment per input file, in input order
    """
    files = list(files)
    manual_dates = manual_dates or {}

    decoded = decode_metadata(files, metadata_reader, max_workers, manual_dates, on_progress)
    evidences = gather_evidence(decoded, build_chain(filesystem_min_year), manual_dates)
    result = assign_names(decoded, evidences)

    summary = result.summary()
    logger.info(
        f"Batch of {summary['total']} files: "
        f"{summary['by_status'][AssignmentStatus.RESOLVED.value]} resolved, "
        f"{summary['by_status'][AssignmentStatus.NEEDS_ATTENTION.value]} need attention"
    )
    return result
