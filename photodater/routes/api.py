"""API routes for synchronous resolution, progress, results and manual dates."""
from datetime import date, datetime, timezone
import logging
import re

from flask import Blueprint, jsonify, request

from photodater import db
from photodater.lib.batch import process_batch
from photodater.lib.evidence import (
    AssignmentStatus,
    FileInput,
    PROBLEM_MESSAGES,
    is_valid_calendar_date,
)
from photodater.models import BatchJob, FileRecord, JobStatus
from photodater.tasks import renumber_job

logger = logging.getLogger(__name__)

api_bp = Blueprint('api', __name__, url_prefix='/api')

_ISO_DATE = re.compile(r'^(\d{4})-(\d{2})-(\d{2})$', re.ASCII)


def parse_manual_date(value) -> date:
    """
    Parse a 'YYYY-MM-DD' string supplied by the user.

    Raises:
        ValueError: not a string in that form, or not a real date in range
    """
    if not isinstance(value, str):
        raise ValueError(f"Date must be a YYYY-MM-DD string, got {value!r}")
    match = _ISO_DATE.match(value.strip())
    if not match:
        raise ValueError(f"Date must be in YYYY-MM-DD form, got {value!r}")
    year, month, day = (int(g) for g in match.groups())
    if not is_valid_calendar_date(year, month, day):
        raise ValueError(f"Not a valid date: {value}")
    return date(year, month, day)


def parse_file_inputs(items) -> list[FileInput]:
    """
    Validate the 'files' list of a resolve request.

    Raises:
        ValueError: with a message suitable for a 400 response
    """
    if not isinstance(items, list):
        raise ValueError("'files' must be a list")

    file_inputs = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValueError(f"files[{index}] must be an object")

        filename = item.get('filename')
        if not isinstance(filename, str) or not filename:
            raise ValueError(f"files[{index}].filename is required")

        content_type = item.get('content_type') or ''
        if not isinstance(content_type, str):
            raise ValueError(f"files[{index}].content_type must be a string")

        # Bad timestamps are left to the filesystem extractor to reject
        last_modified = item.get('last_modified')

        metadata = item.get('metadata')
        if metadata is not None and not isinstance(metadata, dict):
            raise ValueError(f"files[{index}].metadata must be an object")

        file_inputs.append(FileInput(
            filename=filename,
            content_type=content_type,
            last_modified=last_modified,
            metadata=metadata,
        ))
    return file_inputs


def parse_manual_dates(raw, file_count: int) -> dict[int, date]:
    """Manual dates keyed by position ('0', '1', ... in JSON)."""
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError("'manual_dates' must be an object")

    manual_dates = {}
    for key, value in raw.items():
        try:
            position = int(key)
        except (TypeError, ValueError):
            raise ValueError(f"manual_dates key {key!r} is not a file index")
        if not 0 <= position < file_count:
            raise ValueError(f"manual_dates key {key!r} out of range")
        manual_dates[position] = parse_manual_date(value)
    return manual_dates


def problem_dict(record: FileRecord) -> dict:
    reason, suggestion = PROBLEM_MESSAGES[record.problem]
    return {
        'file_id': record.id,
        'filename': record.original_filename,
        'position': record.position,
        'problem': record.problem.value,
        'reason': reason,
        'suggestion': suggestion,
    }


@api_bp.route('/resolve', methods=['POST'])
def resolve():
    """Resolve dates and names for a batch described in the request body.

    Files are numbered in the order given. Metadata must already be decoded
    (field -> value); nothing is read from disk.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or 'files' not in data:
        return jsonify({'error': 'No files provided'}), 400

    try:
        file_inputs = parse_file_inputs(data['files'])
        manual_dates = parse_manual_dates(data.get('manual_dates'), len(file_inputs))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    try:
        result = process_batch(file_inputs, manual_dates=manual_dates)
    except Exception as e:
        logger.error(f"Resolve error: {e}", exc_info=True)
        return jsonify({'error': str(e)}), 500

    return jsonify(result.to_dict())


@api_bp.route('/progress/<int:job_id>', methods=['GET'])
def get_progress(job_id):
    """Get job progress for polling."""
    # Force fresh read from database (bypass SQLAlchemy cache)
    db.session.expire_all()

    job = db.session.get(BatchJob, job_id)
    if not job:
        return jsonify({'error': 'Job not found'}), 404

    progress_percent = 0
    if job.progress_total > 0:
        progress_percent = round(job.progress_current / job.progress_total * 100, 1)

    elapsed_seconds = None
    if job.started_at:
        # SQLite stores naive datetimes as UTC
        started_at = job.started_at
        if started_at.tzinfo is None:
            started_at = started_at.replace(tzinfo=timezone.utc)
        end = job.completed_at or datetime.now(timezone.utc)
        if end.tzinfo is None:
            end = end.replace(tzinfo=timezone.utc)
        elapsed_seconds = int((end - started_at).total_seconds())

    response = {
        'job_id': job.id,
        'status': job.status.value,
        'progress_current': job.progress_current,
        'progress_total': job.progress_total,
        'progress_percent': progress_percent,
        'elapsed_seconds': elapsed_seconds,
        'error_message': job.error_message,
    }

    if job.status == JobStatus.COMPLETED:
        resolved = sum(1 for f in job.files if f.status == AssignmentStatus.RESOLVED)
        response['summary'] = {
            'resolved_count': resolved,
            'needs_attention_count': len(job.files) - resolved,
        }

    return jsonify(response)


@api_bp.route('/jobs/<int:job_id>/results', methods=['GET'])
def get_results(job_id):
    """Ordered assignments for a job."""
    job = db.session.get(BatchJob, job_id)
    if not job:
        return jsonify({'error': 'Job not found'}), 404

    return jsonify({
        'job_id': job.id,
        'status': job.status.value,
        'files': [record.to_dict() for record in job.files],
    })


@api_bp.route('/jobs/<int:job_id>/problems', methods=['GET'])
def get_problems(job_id):
    """Files that need attention, with reason and suggestion text."""
    job = db.session.get(BatchJob, job_id)
    if not job:
        return jsonify({'error': 'Job not found'}), 404

    problems = [
        problem_dict(record)
        for record in job.files
        if record.status == AssignmentStatus.NEEDS_ATTENTION and record.problem
    ]
    return jsonify({'job_id': job.id, 'problems': problems})


@api_bp.route('/jobs/<int:job_id>/files/<int:file_id>/date', methods=['POST'])
def set_manual_date(job_id, file_id):
    """Set (or clear with null) an operator date for one file.

    Accepts JSON body: {date: 'YYYY-MM-DD' | null}
    A completed job is renumbered immediately so suffixes stay consistent.
    """
    record = db.session.get(FileRecord, file_id)
    if not record or record.job_id != job_id:
        return jsonify({'error': 'File not found'}), 404

    data = request.get_json(silent=True)
    if not isinstance(data, dict) or 'date' not in data:
        return jsonify({'error': 'No date provided'}), 400

    try:
        record.manual_date = None if data['date'] is None else parse_manual_date(data['date'])
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    try:
        db.session.commit()
        if record.job.status == JobStatus.COMPLETED:
            renumber_job(job_id)
        logger.info(f"Job {job_id} file {file_id} manual date set to {record.manual_date}")
    except Exception as e:
        db.session.rollback()
        logger.error(f"Manual date error: {e}", exc_info=True)
        return jsonify({'error': str(e)}), 500

    return jsonify({
        'job_id': job_id,
        'files': [r.to_dict() for r in record.job.files],
    })
