"""Tests for doclinks.ledger module."""

import json

from doclinks.document import ErrorRecord
from doclinks.ledger import KnownErrorLedger

R1 = ErrorRecord("docs/a.html", "#missing", "x", "NOANCHOR: Anchor missing not found in a.html")
R2 = ErrorRecord("docs/b.html", "c.html", "c", "READ_FAILURE: Cannot read c.html: No such file or directory")


def _write(path, records):
    path.write_text(json.dumps([r.to_dict() for r in records], indent=2), encoding="utf-8")


class TestLoad:
    def test_missing_file(self, tmp_path):
        ledger = KnownErrorLedger.load(str(tmp_path / "known.json"))
        assert len(ledger) == 0

    def test_corrupt_file(self, tmp_path, caplog):
        path = tmp_path / "known.json"
        path.write_text("[{", encoding="utf-8")
        ledger = KnownErrorLedger.load(str(path))
        assert len(ledger) == 0
        assert "Failed to load known errors" in caplog.text

    def test_not_an_array(self, tmp_path):
        path = tmp_path / "known.json"
        path.write_text('{"a": 1}', encoding="utf-8")
        assert len(KnownErrorLedger.load(str(path))) == 0

    def test_duplicates_collapse(self, tmp_path):
        path = tmp_path / "known.json"
        _write(path, [R1, R1, R2])
        ledger = KnownErrorLedger.load(str(path))
        assert ledger.records == [R1, R2]

    def test_malformed_entries_skipped(self, tmp_path):
        path = tmp_path / "known.json"
        path.write_text(json.dumps([R1.to_dict(), {"partialPath": "x"}, "junk"]), encoding="utf-8")
        assert KnownErrorLedger.load(str(path)).records == [R1]


class TestIsKnown:
    def test_exact_match_only(self):
        ledger = KnownErrorLedger(records=[R1])
        assert ledger.is_known(R1)
        assert R1 in ledger
        assert not ledger.is_known(
            ErrorRecord(R1.partial_path, R1.reference, "other text", R1.error_text)
        )


class TestRecordAndPersist:
    def test_read_only_mode_never_records(self, tmp_path):
        path = tmp_path / "known.json"
        ledger = KnownErrorLedger(str(path))
        assert ledger.record(R1) is False
        assert not ledger.is_known(R1)
        assert ledger.persist() is False
        assert not path.exists()

    def test_write_mode_appends_in_order(self, tmp_path):
        path = tmp_path / "known.json"
        _write(path, [R2])
        ledger = KnownErrorLedger.load(str(path), write_mode=True)
        assert ledger.record(R1) is True
        assert ledger.record(R1) is False
        assert ledger.added == 1
        assert ledger.persist() is True

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data == [R2.to_dict(), R1.to_dict()]
        assert path.read_text(encoding="utf-8").startswith("[\n  {")

    def test_write_mode_without_new_records_leaves_file(self, tmp_path):
        path = tmp_path / "known.json"
        path.write_text("[]", encoding="utf-8")
        ledger = KnownErrorLedger.load(str(path), write_mode=True)
        assert ledger.persist() is False
        assert path.read_text(encoding="utf-8") == "[]"
