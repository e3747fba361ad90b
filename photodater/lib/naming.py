"""
Target filename generation and in-batch collision numbering.

Names follow YYYY-MM-DD[-NN].<ext>:
- first file for a date gets the bare name (2024-01-15.jpg)
- later files for the same date get -01, -02, ... (2024-01-15-01.jpg)

The ledger only knows about the current batch; nothing is checked on disk.
"""
from datetime import date
from typing import Optional


# Base-name key (YYYY-MM-DD) -> number of names already issued for it
CollisionLedger = dict[str, int]

BASE_NAME_FORMAT = '%Y-%m-%d'


def new_ledger() -> CollisionLedger:
    """Fresh ledger for one batch run."""
    return {}


def generate_base_name(resolved_date: date) -> str:
    """Date-only stem, e.g. '2024-01-15'."""
    return resolved_date.strftime(BASE_NAME_FORMAT)


def normalize_extension(extension: Optional[str]) -> str:
    """Ensure a leading dot; case is left alone."""
    if not extension:
        return ''
    return extension if extension.startswith('.') else f".{extension}"


def generate_filename(resolved_date: date, extension: Optional[str]) -> str:
    """
    Canonical filename for a date, without collision handling.

    Args:
        resolved_date: The resolved capture date
        extension: Original extension, with or without the dot. Case is
                   kept as-is ('.JPG' stays '.JPG').

    Returns:
        e.g. '2024-01-15.jpg'
    """
    return f"{generate_base_name(resolved_date)}{normalize_extension(extension)}"


def assign_target_name(base_key: str, extension: Optional[str], ledger: CollisionLedger) -> str:
    """
    Issue a unique name for base_key and record it in the ledger.

    The count for a key is bumped on every call, the first one included:
    the first call sees 0 and returns the bare name, the n-th call returns
    base_key + '-' + (n - 1) zero-padded to two digits.

    Callers must feed files in a stable order (batch input order); which
    file gets the bare name depends on it.

    Args:
        base_key: Date stem from generate_base_name()
        extension: Extension to append, case preserved
        ledger: Batch-scoped ledger, mutated in place

    Returns:
        e.g. '2024-01-15.jpg', then '2024-01-15-01.jpg', ...
    """
    issued = ledger.get(base_key, 0)
    ledger[base_key] = issued + 1

    suffix = '' if issued == 0 else f"-{issued:02d}"
    return f"{base_key}{suffix}{normalize_extension(extension)}"
