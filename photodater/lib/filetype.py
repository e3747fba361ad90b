"""
Content type detection for stored uploads.

Browsers sometimes send no type (or application/octet-stream) for HEIC
files, so the declared type is backed up by a magic-bytes check.
"""
from pathlib import Path
from typing import Optional
import logging

logger = logging.getLogger(__name__)

# Try to import python-magic, but handle gracefully if not available
try:
    import magic
    MAGIC_AVAILABLE = True
except ImportError:
    MAGIC_AVAILABLE = False
    logger.warning("python-magic not available - content type detection limited to declared types")

GENERIC_CONTENT_TYPES = {'', 'application/octet-stream'}


def sniff_content_type(file_path: Path | str) -> Optional[str]:
    """
    MIME type from magic bytes.

    Returns:
        e.g. 'image/jpeg', or None if detection is unavailable or fails
    """
    if not MAGIC_AVAILABLE:
        return None

    path = Path(file_path) if isinstance(file_path, str) else file_path
    try:
        return magic.from_file(str(path), mime=True)
    except Exception as e:
        logger.warning(f"Magic detection failed for {path.name}: {e}")
        return None


def resolve_content_type(declared: Optional[str], file_path: Optional[Path | str] = None) -> str:
    """
    Declared type unless it is missing or generic, then the sniffed one.

    Args:
        declared: Type sent by the client
        file_path: Stored file to inspect when the declared type is useless

    Returns:
        Lower-cased MIME type, '' if nothing is known
    """
    declared = (declared or '').strip().lower()
    if declared not in GENERIC_CONTENT_TYPES or file_path is None:
        return declared

    sniffed = sniff_content_type(file_path)
    if sniffed:
        logger.debug(f"Declared type {declared or 'none'} replaced by {sniffed} for {Path(file_path).name}")
        return sniffed.lower()
    return declared
