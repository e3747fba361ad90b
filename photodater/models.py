"""SQLAlchemy database models for PhotoDater.

Stores batch jobs and the per-file outcome of each run (resolved date,
evidence, target name, problem). Renamed files themselves are never stored.
Uses SQLAlchemy 2.x type-safe patterns with Mapped and mapped_column.
"""
from datetime import date, datetime, timezone
import json
from enum import Enum as PyEnum
from pathlib import Path
from typing import Optional, List
from sqlalchemy import Integer, String, DateTime, Date, Float, Text, ForeignKey, Index
from sqlalchemy import Enum as SQLEnum, event
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.engine import Engine
from photodater import db
from photodater.lib.evidence import (
    AssignmentStatus,
    DateEvidence,
    DateSource,
    FileInput,
    ProblemType,
    ResolvedAssignment,
)


# ============================================================================
# Enums
# ============================================================================

class JobStatus(str, PyEnum):
    """Batch job processing status."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# ============================================================================
# Models
# ============================================================================

class BatchJob(db.Model):
    """One batch of uploaded files, processed together."""
    __tablename__ = 'batch_jobs'

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    status: Mapped[JobStatus] = mapped_column(
        SQLEnum(JobStatus),
        default=JobStatus.PENDING,
        nullable=False
    )

    # Progress tracking
    progress_current: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    progress_total: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    # Error handling
    error_message: Mapped[Optional[str]] = mapped_column(Text)  # Job-level failure only

    # Relationships (ordered by batch position - numbering depends on it)
    files: Mapped[List["FileRecord"]] = relationship(
        back_populates="job",
        order_by="FileRecord.position",
        cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index('ix_batch_jobs_status', 'status'),
    )

    def __repr__(self):
        return f"<BatchJob {self.id}: {self.status.value}>"


class FileRecord(db.Model):
    """One input file and its latest outcome."""
    __tablename__ = 'file_records'

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    job_id: Mapped[int] = mapped_column(ForeignKey('batch_jobs.id'), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)  # Input order within the batch

    # Original file information
    original_filename: Mapped[str] = mapped_column(String(255), nullable=False)
    storage_path: Mapped[Optional[str]] = mapped_column(String(500))
    content_type: Mapped[Optional[str]] = mapped_column(String(100))
    last_modified_ms: Mapped[Optional[float]] = mapped_column(Float)

    # Operator override (bypasses the extractor chain)
    manual_date: Mapped[Optional[date]] = mapped_column(Date)

    # Winning evidence from the automatic chain (manual_date is kept apart)
    resolved_date: Mapped[Optional[date]] = mapped_column(Date)
    date_source: Mapped[Optional[DateSource]] = mapped_column(SQLEnum(DateSource))
    confidence: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    raw_text: Mapped[Optional[str]] = mapped_column(Text)
    failure_reason: Mapped[Optional[str]] = mapped_column(Text)
    evidence_problem: Mapped[Optional[ProblemType]] = mapped_column(SQLEnum(ProblemType))

    # Outcome
    target_name: Mapped[Optional[str]] = mapped_column(String(255))
    status: Mapped[Optional[AssignmentStatus]] = mapped_column(SQLEnum(AssignmentStatus))
    problem: Mapped[Optional[ProblemType]] = mapped_column(SQLEnum(ProblemType))
    notes: Mapped[Optional[str]] = mapped_column(Text)  # JSON array of warning strings

    processed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    job: Mapped["BatchJob"] = relationship(back_populates="files")

    __table_args__ = (
        Index('ix_file_records_job_id_position', 'job_id', 'position'),
    )

    def to_file_input(self) -> FileInput:
        """File identity for the resolver (metadata is decoded separately)."""
        return FileInput(
            filename=self.original_filename,
            content_type=self.content_type or '',
            last_modified=self.last_modified_ms,
            path=Path(self.storage_path) if self.storage_path else None,
        )

    def to_evidence(self) -> DateEvidence:
        """Rebuild the stored automatic evidence."""
        if self.resolved_date is not None:
            return DateEvidence.found(
                self.resolved_date,
                self.date_source,
                self.confidence,
                raw_text=self.raw_text,
            )
        return DateEvidence.failed(
            self.date_source or DateSource.FILENAME,
            self.failure_reason or '',
            self.evidence_problem,
        )

    def apply_evidence(self, evidence: DateEvidence):
        """Store the automatic chain's winning evidence (never a manual one)."""
        self.resolved_date = evidence.date
        self.date_source = evidence.source
        self.confidence = evidence.confidence
        self.raw_text = evidence.raw_text
        self.failure_reason = evidence.failure_reason
        self.evidence_problem = evidence.problem

    def apply_outcome(self, assignment: ResolvedAssignment):
        """Store the name and status from a collision pass."""
        self.target_name = assignment.target_name or None
        self.status = assignment.status
        self.problem = assignment.problem
        self.notes = json.dumps(list(assignment.notes)) if assignment.notes else None
        self.processed_at = datetime.now(timezone.utc)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'position': self.position,
            'filename': self.original_filename,
            'content_type': self.content_type,
            'target_name': self.target_name,
            'status': self.status.value if self.status else None,
            'problem': self.problem.value if self.problem else None,
            'notes': json.loads(self.notes) if self.notes else [],
            'manual_date': self.manual_date.isoformat() if self.manual_date else None,
            'resolved_by': DateSource.MANUAL.value if self.manual_date else (
                self.date_source.value if self.date_source else None
            ),
            'evidence': {
                'date': self.resolved_date.isoformat() if self.resolved_date else None,
                'source': self.date_source.value if self.date_source else None,
                'confidence': self.confidence,
                'raw_text': self.raw_text,
                'failure_reason': self.failure_reason,
            },
        }

    def __repr__(self):
        return f"<FileRecord {self.id}: {self.original_filename} -> {self.target_name}>"


# ============================================================================
# SQLite Foreign Key Enforcement
# ============================================================================

@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite connections."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
