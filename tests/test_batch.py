"""Tests for the batch pipeline."""
import pytest
from datetime import date, datetime, timezone
from unittest.mock import patch

from photodater.lib.batch import assign_names, assignment_notes, decode_metadata, process_batch
from photodater.lib.evidence import (
    AssignmentStatus,
    DateSource,
    FileInput,
    ProblemType,
)
from photodater.lib.filename_date import parse_filename
from photodater.lib.filesystem_date import parse_file_timestamp
from photodater.lib.resolver import resolve_date

TIMESTAMP = 1705334400000  # 2024-01-15T16:00:00Z


def jpeg(filename, **kwargs):
    return FileInput(filename, 'image/jpeg', **kwargs)


class TestCollisionNumbering:
    """Names across a batch."""

    def test_same_date_numbered_in_input_order(self):
        files = [jpeg('a_2024-01-15.jpg'), jpeg('b_2024-01-15.jpg'), jpeg('c_2024-01-15.jpg')]
        result = process_batch(files)
        assert result.target_names == ['2024-01-15.jpg', '2024-01-15-01.jpg', '2024-01-15-02.jpg']

    def test_reordering_swaps_suffixes(self):
        """Same multiset of names; input order decides who gets which."""
        files = [jpeg('a_2024-01-15.jpg'), jpeg('b_2024-01-15.jpg')]
        forward = process_batch(files)
        backward = process_batch(list(reversed(files)))

        assert forward.assignments[0].filename == 'a_2024-01-15.jpg'
        assert backward.assignments[0].filename == 'b_2024-01-15.jpg'
        assert forward.target_names == backward.target_names

    def test_rerun_is_deterministic(self):
        files = [jpeg('2024-01-15.jpg'), jpeg('IMG_0001.jpg', last_modified=TIMESTAMP)]
        assert process_batch(files).to_dict() == process_batch(files).to_dict()

    def test_mixed_extensions_share_counter(self):
        files = [jpeg('x_2024-01-15.jpg'), FileInput('y_2024-01-15.HEIC', 'image/heic')]
        assert process_batch(files).target_names == ['2024-01-15.jpg', '2024-01-15-01.HEIC']

    def test_unresolved_files_take_no_number(self):
        files = [jpeg('2024-01-15.jpg'), jpeg('mystery.jpg'), jpeg('2024-01-15 copy.jpg')]
        result = process_batch(files)
        assert result.target_names == ['2024-01-15.jpg', '', '2024-01-15-01.jpg']

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            assign_names([jpeg('a.jpg')], [])


class TestOutcomes:
    """Per-file status and problems."""

    def test_filesystem_fallback_resolves(self):
        result = process_batch([jpeg('IMG_0001.jpg', last_modified=TIMESTAMP)])
        assignment = result.assignments[0]
        assert assignment.status == AssignmentStatus.RESOLVED
        assert assignment.evidence.source == DateSource.FILESYSTEM
        assert assignment.evidence.confidence == 0.5
        assert assignment.target_name == '2024-01-15.jpg'

    def test_no_date_needs_attention(self):
        result = process_batch([jpeg('IMG_0001.jpg')])
        assignment = result.assignments[0]
        assert assignment.status == AssignmentStatus.NEEDS_ATTENTION
        assert assignment.problem == ProblemType.NO_DATE_FOUND
        assert assignment.target_name == ''

        problem = result.problems[0]
        assert problem.reason == 'Could not find a date in filename, metadata, or file timestamp'
        assert problem.suggestion == 'You may manually specify the creation date'

    def test_unsupported_type_skips_extractors(self):
        files = [FileInput('notes.txt', 'text/plain', TIMESTAMP), jpeg('2024-01-15.jpg')]
        with patch('photodater.lib.batch.resolve_date', wraps=resolve_date) as spy:
            result = process_batch(files)

        assert [c.args[0].filename for c in spy.call_args_list] == ['2024-01-15.jpg']
        assignment = result.assignments[0]
        assert assignment.problem == ProblemType.UNSUPPORTED_TYPE
        assert assignment.evidence.failure_reason == 'Unsupported file type: text/plain'
        assert result.assignments[1].target_name == '2024-01-15.jpg'

    def test_extraction_fault_isolated(self):
        def flaky(file_input, chain):
            if file_input.filename == 'bad.jpg':
                raise RuntimeError('decoder crashed')
            return resolve_date(file_input, chain)

        files = [jpeg('bad.jpg'), jpeg('2024-01-15.jpg')]
        with patch('photodater.lib.batch.resolve_date', side_effect=flaky):
            result = process_batch(files)

        assert result.assignments[0].problem == ProblemType.EXTRACTION_ERROR
        assert result.assignments[0].evidence.failure_reason == 'Extraction error: decoder crashed'
        assert result.assignments[1].status == AssignmentStatus.RESOLVED

    def test_manual_date_bypasses_chain(self):
        files = [jpeg('2024-01-15.jpg'), jpeg('mystery.jpg')]
        result = process_batch(files, manual_dates={1: date(2024, 1, 15)})

        manual = result.assignments[1]
        assert manual.evidence.source == DateSource.MANUAL
        assert manual.evidence.confidence == 1.0
        assert manual.target_name == '2024-01-15-01.jpg'

    def test_manual_date_overrides_unsupported(self):
        result = process_batch([FileInput('scan.png', 'image/png')], manual_dates={0: date(2022, 5, 1)})
        assert result.assignments[0].target_name == '2022-05-01.png'

    def test_filesystem_min_year(self):
        result = process_batch([jpeg('IMG_0001.jpg', last_modified=0)], filesystem_min_year=2000)
        assert result.assignments[0].status == AssignmentStatus.NEEDS_ATTENTION


class TestMetadataDecoding:
    """Reader plumbing and the thread pool."""

    @staticmethod
    def reader(file_input):
        number = int(file_input.filename[4:8])
        return {'DateTimeOriginal': f'2023:07:{number:02d} 12:00:00'}

    def test_threaded_decode_keeps_order(self):
        files = [jpeg(f'IMG_{n:04d}.jpg') for n in range(1, 11)]
        result = process_batch(files, metadata_reader=self.reader, max_workers=4)

        assert [a.filename for a in result.assignments] == [f.filename for f in files]
        assert result.target_names == [f'2023-07-{n:02d}.jpg' for n in range(1, 11)]
        assert all(a.evidence.source == DateSource.METADATA for a in result.assignments)

    def test_sequential_decode(self):
        files = [jpeg('IMG_0003.jpg'), jpeg('IMG_0004.jpg')]
        result = process_batch(files, metadata_reader=self.reader, max_workers=1)
        assert result.target_names == ['2023-07-03.jpg', '2023-07-04.jpg']

    def test_reader_fault_falls_back_to_filesystem(self):
        def broken(file_input):
            raise OSError('exiftool missing')

        result = process_batch([jpeg('IMG_0001.jpg', last_modified=TIMESTAMP)], metadata_reader=broken)
        assert result.assignments[0].evidence.source == DateSource.FILESYSTEM

    def test_reader_fault_without_fallback(self):
        """With nothing further down the chain the last failure is reported."""
        def broken(file_input):
            raise OSError('exiftool missing')

        result = process_batch([jpeg('IMG_0001.jpg')], metadata_reader=broken)
        assert result.assignments[0].problem == ProblemType.NO_DATE_FOUND

    def test_skips_unsupported_and_manual(self):
        seen = []

        def recording(file_input):
            seen.append(file_input.filename)
            return None

        files = [jpeg('a.jpg'), FileInput('notes.txt', 'text/plain'), jpeg('b.jpg')]
        decode_metadata(files, recording, max_workers=1, manual_dates={2: date(2024, 1, 1)})
        assert seen == ['a.jpg']


class TestProgress:
    """Progress reporting while metadata is decoded."""

    def test_sequential_counts_skipped_files_first(self):
        seen = []
        files = [jpeg('a.jpg'), FileInput('notes.txt', 'text/plain'), jpeg('b.jpg')]
        decode_metadata(files, lambda f: None, max_workers=1, on_progress=seen.append)
        assert seen == [1, 2, 3]

    def test_threaded_counts_every_file(self):
        seen = []
        files = [jpeg(f'IMG_{n:04d}.jpg') for n in range(1, 11)]
        decode_metadata(files, lambda f: None, max_workers=4, on_progress=seen.append)
        assert seen == list(range(1, 11))

    def test_progress_reported_before_later_decodes(self):
        """Each decode sees the count of files finished before it."""
        seen = []
        counts_at_decode = []

        def reader(file_input):
            counts_at_decode.append(seen[-1] if seen else 0)
            return None

        files = [jpeg('a.jpg'), jpeg('b.jpg'), jpeg('c.jpg')]
        process_batch(files, metadata_reader=reader, max_workers=1, on_progress=seen.append)
        assert counts_at_decode == [0, 1, 2]
        assert seen == [1, 2, 3]

    def test_without_reader(self):
        seen = []
        process_batch([jpeg('a.jpg'), jpeg('b.jpg')], on_progress=seen.append)
        assert seen == [2]


class TestNotes:
    """Warnings attached to low-confidence dates."""

    NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)

    def test_ambiguous_month_day(self):
        notes = assignment_notes(jpeg('03-04-2024.jpg'), parse_filename('03-04-2024.jpg'))
        assert notes == ("Ambiguous date '03-04-2024' was read as month-day (2024-03-04)",)

    def test_unambiguous_day_first(self):
        assert assignment_notes(jpeg('15-01-2024.jpg'), parse_filename('15-01-2024.jpg')) == ()

    def test_two_digit_year(self):
        notes = assignment_notes(jpeg('03-04-24.jpg'), parse_filename('03-04-24.jpg'))
        assert notes == (
            "Ambiguous date '03-04-24' was read as month-day (2024-03-04)",
            "Two-digit year in '03-04-24' was read as 2024",
        )

    def test_full_confidence_filename(self):
        assert assignment_notes(jpeg('2024-01-15.jpg'), parse_filename('2024-01-15.jpg')) == ()

    def test_suspicious_file_time(self):
        file_input = jpeg('IMG_0001.jpg', last_modified=0)
        notes = assignment_notes(file_input, parse_file_timestamp(0), now=self.NOW)
        assert notes == (
            'Date taken from file modification time',
            'File modification date 1970-01-01 is in the future or before 1990',
        )

    def test_notes_on_assignments(self):
        files = [jpeg('IMG_0001.jpg', last_modified=TIMESTAMP), jpeg('mystery.jpg')]
        result = process_batch(files, manual_dates={1: date(2024, 1, 15)})

        assert result.assignments[0].notes == ('Date taken from file modification time',)
        assert result.assignments[1].notes == ()
        assert result.to_dict()['assignments'][0]['notes'] == ['Date taken from file modification time']

    def test_unresolved_has_no_notes(self):
        result = process_batch([jpeg('mystery.jpg')])
        assert result.assignments[0].notes == ()
