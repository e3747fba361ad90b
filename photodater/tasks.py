"""
Huey background tasks for batch date resolution.

Tasks run in worker processes/threads, separate from the Flask web server.
The huey-decorated task opens its own Flask application context; the plain
run_*/renumber_* functions expect to be called inside one.
"""
from datetime import datetime, timezone
import logging

from flask import current_app

from huey_config import huey
from photodater.lib.batch import assign_names, process_batch
from photodater.lib.evidence import BatchResult, manual_evidence
from photodater.lib.filetype import resolve_content_type
from photodater.lib.metadata import exiftool_reader
from photodater.models import BatchJob, JobStatus

logger = logging.getLogger(__name__)


def get_app():
    """
    Create Flask application for use in worker context.

    Must be called inside task to avoid import-time side effects.
    """
    from photodater import create_app
    return create_app()


def assign_job_names(records: list) -> BatchResult:
    """
    Collision pass over a job's stored evidence, manual dates applied.

    Records must be in batch position order. Metadata is not decoded again,
    so this is cheap enough to run after every manual date change.
    """
    evidences = [
        manual_evidence(record.manual_date) if record.manual_date else record.to_evidence()
        for record in records
    ]
    result = assign_names([record.to_file_input() for record in records], evidences)

    for record, assignment in zip(records, result.assignments):
        record.apply_outcome(assignment)
    return result


def run_batch_job(job_id: int) -> dict:
    """
    Resolve dates and names for every file in a stored job.

    Steps:
    1. Mark the job RUNNING
    2. Fill in missing content types from magic bytes
    3. Run the extractor chain for every file (metadata decoded in a
       thread pool) and store each file's automatic evidence
    4. Name all files in one collision pass, manual dates applied
    5. Mark the job COMPLETED, or FAILED and re-raise on an unexpected error

    Returns:
        Dict with job_id, status and counts
    """
    from photodater import db

    job = db.session.get(BatchJob, job_id)
    if job is None:
        logger.error(f"Job {job_id} not found")
        return {'error': f'Job {job_id} not found'}

    job.status = JobStatus.RUNNING
    job.started_at = datetime.now(timezone.utc)
    job.progress_total = len(job.files)
    job.progress_current = 0
    db.session.commit()

    try:
        records = list(job.files)
        for record in records:
            record.content_type = resolve_content_type(record.content_type, record.storage_path)

        def record_progress(done):
            job.progress_current = done
            # Commit progress frequently for responsive UI
            if done <= 20 or done % 5 == 0:
                db.session.commit()

        logger.info(f"Job {job_id} START: {len(records)} files")
        automatic = process_batch(
            [record.to_file_input() for record in records],
            metadata_reader=exiftool_reader(current_app.config.get('EXIFTOOL_PATH')),
            max_workers=current_app.config.get('WORKER_THREADS'),
            filesystem_min_year=current_app.config.get('FILESYSTEM_MIN_YEAR'),
            on_progress=record_progress,
        )

        for record, assignment in zip(records, automatic.assignments):
            record.apply_evidence(assignment.evidence)

        job.progress_current = len(records)
        result = assign_job_names(records)

        job.status = JobStatus.COMPLETED
        job.completed_at = datetime.now(timezone.utc)
        db.session.commit()

        summary = result.summary()
        logger.info(f"Job {job_id} completed: {summary['by_status']}")
        return {
            'job_id': job_id,
            'status': JobStatus.COMPLETED.value,
            'processed': summary['total'],
            'needs_attention': len(result.problems),
        }

    except Exception as e:
        db.session.rollback()
        job = db.session.get(BatchJob, job_id)
        job.status = JobStatus.FAILED
        job.error_message = str(e)[:500]  # Truncate long errors
        job.completed_at = datetime.now(timezone.utc)
        db.session.commit()
        logger.error(f"Job {job_id} failed with exception: {e}", exc_info=True)

        # Re-raise so Huey handles retry
        raise


def renumber_job(job_id: int) -> dict:
    """
    Re-run the collision pass for a completed job.

    Used after a manual date change: every name in the job is recomputed
    so suffixes stay consistent with input order. Commits the session.
    """
    from photodater import db

    job = db.session.get(BatchJob, job_id)
    if job is None:
        return {'error': f'Job {job_id} not found'}

    assign_job_names(list(job.files))
    db.session.commit()

    logger.info(f"Job {job_id} renumbered: {len(job.files)} files")
    return {'job_id': job_id, 'renumbered': len(job.files)}


@huey.task(retries=2, retry_delay=30)
def process_batch_job(job_id: int) -> dict:
    """Queue entry point for run_batch_job()."""
    app = get_app()
    with app.app_context():
        return run_batch_job(job_id)


def enqueue_batch_job(job_id: int) -> str:
    """
    Helper function to enqueue a job from web app.

    Returns:
        Huey task ID (can be used to check status)
    """
    result = process_batch_job(job_id)
    return result.id  # Huey task ID
