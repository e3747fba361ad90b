"""
Date resolution chain.

Extractors are plain callables FileInput -> DateEvidence tried in order:
filename, metadata, filesystem. The first one with confidence > 0 wins;
lower tiers are not consulted once a higher one has succeeded.
"""
from functools import partial
from typing import Callable, Optional, Sequence
import logging

from photodater.lib.evidence import DateEvidence, FileInput
from photodater.lib.filename_date import parse_filename
from photodater.lib.filesystem_date import filesystem_evidence
from photodater.lib.metadata import metadata_evidence

logger = logging.getLogger(__name__)

Extractor = Callable[[FileInput], DateEvidence]


def filename_evidence(file_input: FileInput) -> DateEvidence:
    """Resolver chain link."""
    return parse_filename(file_input.filename)


def build_chain(filesystem_min_year: Optional[int] = None) -> tuple[Extractor, ...]:
    """Default extractor chain in trust order."""
    return (
        filename_evidence,
        metadata_evidence,
        partial(filesystem_evidence, min_year=filesystem_min_year),
    )


DEFAULT_CHAIN = build_chain()


def resolve_date(
    file_input: FileInput,
    chain: Optional[Sequence[Extractor]] = None
) -> DateEvidence:
    """
    Run the extractor chain for one file.

    Args:
        file_input: File identity with decoded metadata already attached
        chain: Extractors in priority order (defaults to DEFAULT_CHAIN)

    Returns:
        The first evidence with confidence > 0, or the last evidence tried
        when every extractor failed
    """
    extractors = DEFAULT_CHAIN if chain is None else chain
    if not extractors:
        raise ValueError('extractor chain is empty')

    evidence = None
    for extractor in extractors:
        evidence = extractor(file_input)
        if evidence.succeeded:
            logger.debug(
                f"{file_input.filename}: {evidence.source.value} "
                f"-> {evidence.date} (confidence {evidence.confidence})"
            )
            return evidence
        logger.debug(f"{file_input.filename}: {evidence.source.value} failed: {evidence.failure_reason}")

    logger.info(f"{file_input.filename}: no date from any source")
    return evidence
