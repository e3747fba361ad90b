"""Tests for shared result types."""
import dataclasses
import pytest
from datetime import date

from photodater.lib.evidence import (
    AssignmentStatus,
    BatchResult,
    DateEvidence,
    DateSource,
    FileInput,
    PROBLEM_MESSAGES,
    ProblemEntry,
    ProblemType,
    ResolvedAssignment,
    is_supported_type,
    is_valid_calendar_date,
    manual_evidence,
)


class TestCalendarValidation:
    """is_valid_calendar_date()."""

    @pytest.mark.parametrize('parts', [(2024, 2, 29), (1970, 1, 1), (2100, 12, 31)])
    def test_valid(self, parts):
        assert is_valid_calendar_date(*parts)

    @pytest.mark.parametrize('parts', [
        (2023, 2, 29), (2024, 2, 30), (2024, 4, 31), (2024, 13, 1),
        (2024, 0, 1), (2024, 1, 0), (1969, 12, 31), (2101, 1, 1),
    ])
    def test_invalid(self, parts):
        assert not is_valid_calendar_date(*parts)


class TestSupportedType:
    """Type OR extension must be JPEG/HEIC/HEIF."""

    def test_by_content_type(self):
        assert is_supported_type('image/heic', 'upload')

    def test_by_extension(self):
        assert is_supported_type('', 'IMG_0001.JPG')
        assert is_supported_type('application/octet-stream', 'a.heif')

    def test_neither(self):
        assert not is_supported_type('text/plain', 'notes.txt')
        assert not is_supported_type('image/png', 'shot.png')


class TestDateEvidence:
    """Evidence invariants."""

    def test_found_and_failed(self):
        found = DateEvidence.found(date(2024, 1, 15), DateSource.METADATA, 0.9, 'x')
        assert found.succeeded
        failed = DateEvidence.failed(DateSource.FILENAME, 'nope', ProblemType.NO_DATE_FOUND)
        assert not failed.succeeded
        assert failed.confidence == 0

    @pytest.mark.parametrize('kwargs', [
        {'date': date(2024, 1, 1), 'confidence': 0.0},
        {'date': None, 'confidence': 0.5},
        {'date': date(1969, 1, 1), 'confidence': 0.5},
        {'date': date(2024, 1, 1), 'confidence': 1.5},
        {'date': date(2024, 1, 1), 'confidence': 1.0, 'failure_reason': 'x'},
    ])
    def test_invariant_violations(self, kwargs):
        with pytest.raises(ValueError):
            DateEvidence(source=DateSource.FILENAME, **kwargs)

    def test_frozen(self):
        evidence = DateEvidence.found(date(2024, 1, 15), DateSource.FILENAME, 1.0)
        with pytest.raises(dataclasses.FrozenInstanceError):
            evidence.confidence = 0.5

    def test_manual_evidence(self):
        evidence = manual_evidence(date(2023, 3, 3))
        assert evidence.source == DateSource.MANUAL
        assert evidence.confidence == 1.0
        assert evidence.raw_text == 'manual: 2023-03-03'

    def test_to_dict(self):
        evidence = DateEvidence.failed(DateSource.METADATA, 'x', ProblemType.METADATA_MISSING)
        assert evidence.to_dict() == {
            'date': None,
            'source': 'metadata',
            'confidence': 0.0,
            'raw_text': None,
            'failure_reason': 'x',
            'problem': 'metadata_missing',
        }

    def test_file_input_extension(self):
        assert FileInput('IMG.JPG').extension == '.JPG'
        assert FileInput('README').extension == ''


class TestProblemReporting:
    """Problem entries and batch summaries."""

    def _assignment(self, position, problem=None):
        if problem:
            return ResolvedAssignment(
                filename=f'f{position}.jpg', position=position,
                evidence=DateEvidence.failed(DateSource.FILENAME, 'x', problem),
                target_name='', status=AssignmentStatus.NEEDS_ATTENTION, problem=problem,
            )
        return ResolvedAssignment(
            filename=f'f{position}.jpg', position=position,
            evidence=DateEvidence.found(date(2024, 1, 15), DateSource.FILENAME, 1.0),
            target_name='2024-01-15.jpg', status=AssignmentStatus.RESOLVED,
        )

    def test_every_problem_has_messages(self):
        assert set(PROBLEM_MESSAGES) == set(ProblemType)

    def test_problem_entry_text(self):
        entry = ProblemEntry.from_assignment(self._assignment(2, ProblemType.NO_DATE_FOUND))
        assert entry.position == 2
        assert entry.reason == 'Could not find a date in filename, metadata, or file timestamp'
        assert entry.suggestion == 'You may manually specify the creation date'

    def test_summary(self):
        result = BatchResult([
            self._assignment(0),
            self._assignment(1, ProblemType.UNSUPPORTED_TYPE),
            self._assignment(2, ProblemType.UNSUPPORTED_TYPE),
        ])
        summary = result.summary()
        assert summary['total'] == 3
        assert summary['by_status'] == {'resolved': 1, 'needs_attention': 2}
        assert summary['by_source']['filename'] == 1
        assert summary['by_source']['manual'] == 0
        assert summary['by_problem'] == {'unsupported_type': 2}
        assert [p.position for p in result.problems] == [1, 2]
        assert result.target_names == ['2024-01-15.jpg', '', '']
