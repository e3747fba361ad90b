"""Tests for target filename generation and collision numbering."""
from datetime import date

from photodater.lib.naming import (
    assign_target_name,
    generate_base_name,
    generate_filename,
    new_ledger,
    normalize_extension,
)


class TestGenerateFilename:
    """Date-only names."""

    def test_base_name_zero_padded(self):
        assert generate_base_name(date(2024, 1, 5)) == '2024-01-05'

    def test_extension_case_preserved(self):
        assert generate_filename(date(2024, 1, 15), '.JPG') == '2024-01-15.JPG'

    def test_extension_without_dot(self):
        assert generate_filename(date(2024, 1, 15), 'heic') == '2024-01-15.heic'

    def test_no_extension(self):
        assert generate_filename(date(2024, 1, 15), '') == '2024-01-15'
        assert normalize_extension(None) == ''


class TestCollisionLedger:
    """Suffix numbering within one batch."""

    def test_first_bare_then_numbered(self):
        ledger = new_ledger()
        names = [assign_target_name('2024-01-15', '.jpg', ledger) for _ in range(3)]
        assert names == ['2024-01-15.jpg', '2024-01-15-01.jpg', '2024-01-15-02.jpg']
        assert ledger == {'2024-01-15': 3}

    def test_keys_independent(self):
        ledger = new_ledger()
        assert assign_target_name('2024-01-15', '.jpg', ledger) == '2024-01-15.jpg'
        assert assign_target_name('2024-01-16', '.jpg', ledger) == '2024-01-16.jpg'
        assert assign_target_name('2024-01-15', '.jpg', ledger) == '2024-01-15-01.jpg'

    def test_extension_does_not_split_key(self):
        ledger = new_ledger()
        assert assign_target_name('2024-01-15', '.jpg', ledger) == '2024-01-15.jpg'
        assert assign_target_name('2024-01-15', '.HEIC', ledger) == '2024-01-15-01.HEIC'

    def test_large_suffixes(self):
        ledger = {'2024-01-15': 9}
        assert assign_target_name('2024-01-15', '.jpg', ledger) == '2024-01-15-09.jpg'
        ledger = {'2024-01-15': 100}
        assert assign_target_name('2024-01-15', '.jpg', ledger) == '2024-01-15-100.jpg'

    def test_new_ledger_is_fresh(self):
        first = new_ledger()
        first['2024-01-15'] = 1
        assert new_ledger() == {}
