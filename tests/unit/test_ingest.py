"""
Unit tests for the ingestion pipeline.
"""
import pytest

from crime_store import CsvRecordFile, NormalizedStore, open_record_file
from ingest import ingest_file, ingest_text, load_persisted


@pytest.mark.unit
class TestIngestText:
    """Test cases for ingest_text() reports and swaps."""

    def test_successful_pass(self, sample_export):
        store = NormalizedStore()
        report = ingest_text(sample_export, store, source="sample")
        assert report.swapped
        assert report.records == 17
        assert report.cities == 3
        assert report.dropped_lines == 2
        assert report.degraded
        assert len(store.snapshot()) == 17

    def test_zero_records_keeps_previous_table(self, sample_export):
        store = NormalizedStore()
        ingest_text(sample_export, store)
        before = store.snapshot()

        report = ingest_text("nothing useful in this export block\n", store)
        assert not report.swapped
        assert report.records == 0
        assert report.warnings
        assert store.snapshot() is before

    def test_repeated_ingestion_is_idempotent(self, sample_export):
        store = NormalizedStore()
        ingest_text(sample_export, store)
        first = store.snapshot()
        ingest_text(sample_export, store)
        assert store.snapshot() == first

    def test_merge_keeps_other_cities(self, sample_export):
        store = NormalizedStore()
        ingest_text(sample_export, store)
        ingest_text("Kollam\nCrime Head\t2023\nTheft\t9\n", store, merge=True)
        assert "Kollam" in store.cities()
        assert "Ernakulam" in store.cities()

    def test_persists_table(self, sample_export, temp_dir):
        store = NormalizedStore()
        record_file = CsvRecordFile(temp_dir / "normalized.csv")
        report = ingest_text(sample_export, store, persist=record_file)
        assert report.persisted == 17
        assert len(record_file.load()) == 17

    def test_unusable_database_file_is_a_warning(self, sample_export, temp_dir):
        """A .db path holding something other than SQLite never aborts the pass."""
        bad = temp_dir / "normalized.db"
        bad.write_text("this is not a sqlite database, just plain text\n" * 20)

        store = NormalizedStore()
        report = ingest_text(sample_export, store, persist=open_record_file(bad))
        assert report.swapped
        assert report.persisted == 0
        assert any("Could not persist" in w for w in report.warnings)
        assert len(store.snapshot()) == 17

    def test_unusable_database_file_through_ingest_file(self, sample_export, temp_dir):
        source = temp_dir / "raw.txt"
        source.write_text(sample_export, encoding="utf-8")
        bad = temp_dir / "normalized.db"
        bad.write_bytes(b"\x00garbage" * 64)

        report = ingest_file(source, NormalizedStore(), persist_path=bad)
        assert report.swapped
        assert any("Could not persist" in w for w in report.warnings)
        assert load_persisted(bad, NormalizedStore()) == 0


@pytest.mark.unit
class TestIngestFile:
    """Test cases for file-based ingestion and reload."""

    def test_unreadable_source_is_reported(self, temp_dir):
        store = NormalizedStore()
        report = ingest_file(temp_dir / "missing.txt", store)
        assert not report.swapped
        assert report.records == 0
        assert "Unreadable" in report.warnings[0]
        assert len(store.snapshot()) == 0

    @pytest.mark.parametrize("out_name", ["normalized.csv", "normalized.db"])
    def test_file_round_trip_through_persistence(self, sample_export, temp_dir, out_name):
        source = temp_dir / "raw.txt"
        source.write_text(sample_export, encoding="utf-8")
        out = temp_dir / out_name

        report = ingest_file(source, NormalizedStore(), persist_path=out)
        assert report.persisted == 17

        reloaded = NormalizedStore()
        assert load_persisted(out, reloaded) == 17
        assert reloaded.cities() == ["Ernakulam", "Kozhikode", "Wayanad"]
        assert len(open_record_file(out).load()) == 17

    def test_load_persisted_missing(self, temp_dir):
        assert load_persisted(temp_dir / "none.csv", NormalizedStore()) == 0
