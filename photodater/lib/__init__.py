"""
Library modules for PhotoDater.

Pure date-resolution and naming logic; nothing here touches Flask, the
database or the task queue.
"""
from photodater.lib.evidence import (
    DateSource, AssignmentStatus, ProblemType, PROBLEM_MESSAGES,
    DateEvidence, FileInput, ResolvedAssignment, ProblemEntry, BatchResult,
    is_valid_calendar_date, is_supported_type, manual_evidence,
)
from photodater.lib.filename_date import parse_filename, DATE_PATTERNS
from photodater.lib.metadata import parse_metadata, read_metadata_record, load_metadata
from photodater.lib.filesystem_date import parse_file_timestamp
from photodater.lib.resolver import resolve_date, build_chain
from photodater.lib.naming import generate_base_name, generate_filename, assign_target_name, new_ledger
from photodater.lib.batch import process_batch, assign_names

__all__ = [
    # Data model
    'DateSource',
    'AssignmentStatus',
    'ProblemType',
    'PROBLEM_MESSAGES',
    'DateEvidence',
    'FileInput',
    'ResolvedAssignment',
    'ProblemEntry',
    'BatchResult',
    'is_valid_calendar_date',
    'is_supported_type',
    'manual_evidence',
    # Extractors
    'parse_filename',
    'DATE_PATTERNS',
    'parse_metadata',
    'read_metadata_record',
    'load_metadata',
    'parse_file_timestamp',
    # Resolution
    'resolve_date',
    'build_chain',
    # Naming
    'generate_base_name',
    'generate_filename',
    'assign_target_name',
    'new_ledger',
    # Batch pipeline
    'process_batch',
    'assign_names',
]
