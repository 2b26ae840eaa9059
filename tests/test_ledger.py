"""Tests for the Completed Ledger and the Ledger Archive."""

import pytest

from unlock_kernel.ledger.ledger import CompletedLedger
from unlock_kernel.ledger.store import LedgerArchive


def _make_ledger(count: int) -> CompletedLedger:
    ledger = CompletedLedger()
    for i in range(count):
        ledger.append(f"unlock_{i:03d}", f"reward_{i}")
    return ledger


class TestCompletedLedger:
    def setup_method(self):
        self.ledger = CompletedLedger()

    def test_append_and_snapshot(self):
        self.ledger.append("b", "reward_b")
        self.ledger.append("a", "reward_a", restored=True)
        assert self.ledger.snapshot() == {"a", "b"}
        entries = self.ledger.entries()
        assert [e.unlock_id for e in entries] == ["b", "a"]
        assert [e.sequence for e in entries] == [0, 1]
        assert entries[1].restored is True
        assert self.ledger.is_achieved("a")
        assert "b" in self.ledger

    def test_append_twice_rejected(self):
        self.ledger.append("a", "reward_a")
        with pytest.raises(ValueError):
            self.ledger.append("a", "reward_a")
        assert len(self.ledger) == 1

    def test_entries_is_a_copy(self):
        self.ledger.append("a", "reward_a")
        self.ledger.entries().clear()
        assert len(self.ledger) == 1

    def test_clear(self):
        self.ledger.append("a", "reward_a")
        self.ledger.clear()
        assert self.ledger.snapshot() == set()
        assert len(self.ledger) == 0


class TestLedgerArchive:
    def setup_method(self):
        self.archive = LedgerArchive(db_path=":memory:")

    def teardown_method(self):
        self.archive.close()

    def test_save_and_load(self):
        ledger = _make_ledger(3)
        assert self.archive.save(ledger) == 3
        assert self.archive.load() == ["unlock_000", "unlock_001", "unlock_002"]

    def test_save_is_idempotent(self):
        ledger = _make_ledger(3)
        self.archive.save(ledger)
        assert self.archive.save(ledger) == 0
        assert self.archive.count() == 3

    def test_incremental_save(self):
        ledger = _make_ledger(2)
        self.archive.save(ledger)
        ledger.append("late", "reward_late")
        assert self.archive.save(ledger) == 1
        assert self.archive.load()[-1] == "late"

    def test_chain_integrity(self):
        self.archive.save(_make_ledger(25))
        assert self.archive.verify_chain_integrity() is True

    def test_tamper_detected(self):
        self.archive.save(_make_ledger(5))
        self.archive._conn.execute(
            "UPDATE achieved SET reward_id = 'stolen' WHERE unlock_id = 'unlock_002'"
        )
        assert self.archive.verify_chain_integrity() is False

    def test_empty_archive(self):
        assert self.archive.load() == []
        assert self.archive.count() == 0
        assert self.archive.verify_chain_integrity() is True

    def test_file_backed_archive(self, tmp_path):
        path = str(tmp_path / "save.db")
        first = LedgerArchive(db_path=path)
        first.save(_make_ledger(2))
        first.close()

        second = LedgerArchive(db_path=path)
        assert second.load() == ["unlock_000", "unlock_001"]
        second.close()

    def test_clear(self):
        self.archive.save(_make_ledger(2))
        self.archive.clear()
        assert self.archive.count() == 0
