"""File upload route.

Provides endpoint for:
- Browser file upload (POST /api/upload)

Every uploaded file is kept, whatever its type: unsupported files show up
later as UNSUPPORTED_TYPE problems instead of being dropped silently.
"""
from flask import Blueprint, request, jsonify, current_app
from werkzeug.utils import secure_filename
import json
import logging

from photodater import db
from photodater.models import BatchJob, FileRecord, JobStatus
from photodater.tasks import enqueue_batch_job

logger = logging.getLogger(__name__)

upload_bp = Blueprint('upload', __name__)


def parse_timestamps(raw: str | None) -> list:
    """
    Parse the optional 'timestamps' form field.

    The browser sends File.lastModified values (epoch ms) as a JSON list in
    upload order. Anything unreadable is ignored.
    """
    if not raw:
        return []
    try:
        timestamps = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Failed to parse timestamps JSON, ignoring")
        return []
    if not isinstance(timestamps, list):
        logger.warning("timestamps field is not a list, ignoring")
        return []
    return timestamps


def _timestamp_at(timestamps: list, index: int):
    if index >= len(timestamps):
        return None
    value = timestamps[index]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


@upload_bp.route('/api/upload', methods=['POST'])
def upload_files():
    """
    Handle browser file upload.

    Accepts multipart/form-data with 'files' field (multiple files) and an
    optional 'timestamps' JSON list. Creates BatchJob and FileRecord rows in
    upload order, saves files to UPLOAD_FOLDER and queues the job.

    Returns:
        JSON: {job_id, file_count, status: 'queued'}
    """
    try:
        if 'files' not in request.files:
            return jsonify({'error': 'No files provided'}), 400

        files = [f for f in request.files.getlist('files') if f.filename]
        if not files:
            return jsonify({'error': 'No valid files provided'}), 400

        timestamps = parse_timestamps(request.form.get('timestamps'))

        job = BatchJob(status=JobStatus.PENDING)
        db.session.add(job)
        db.session.flush()  # Get job.id without committing

        # Create unique subdirectory for this job
        job_upload_dir = current_app.config['UPLOAD_FOLDER'] / f'job_{job.id}'
        job_upload_dir.mkdir(parents=True, exist_ok=True)

        for position, file in enumerate(files):
            # Browsers may send folder-relative names
            original_name = file.filename.replace('\\', '/').rsplit('/', 1)[-1]

            # Position prefix keeps same-named uploads apart on disk
            safe_name = secure_filename(original_name) or 'upload'
            storage_path = job_upload_dir / f"{position:04d}_{safe_name}"
            file.save(str(storage_path))

            db.session.add(FileRecord(
                job=job,
                position=position,
                original_filename=original_name,
                storage_path=str(storage_path),
                content_type=file.mimetype or '',
                last_modified_ms=_timestamp_at(timestamps, position),
            ))

        job.progress_total = len(files)
        db.session.commit()
        logger.info(f"Job {job.id} created with {len(files)} files")

        enqueue_batch_job(job.id)

        return jsonify({
            'job_id': job.id,
            'file_count': len(files),
            'status': 'queued'
        }), 200

    except Exception as e:
        db.session.rollback()
        logger.error(f"Upload error: {e}", exc_info=True)
        return jsonify({'error': str(e)}), 500
