"""Tests for the JSONL ledger snapshot."""

import json

import pytest

from church.errors import DuplicateIdError, IntegrityError, LedgerError
from church.hashing import CANONICAL_FIELDS
from church.ledger import Ledger
from church.store import append_event_line, load_ledger, read_ledger_tail, save_ledger


def _populated(n=3):
    ledger = Ledger()
    for i in range(n):
        ledger.record(
            actor_id="u1",
            deed_type="ecological_sustainability",
            tags=["tree_planting"],
            target_ids=["forest"],
            context_json={"index": i, "nested": {"b": 1, "a": 2}},
            timestamp=1000 + i,
        )
    return ledger


def test_save_and_load_preserves_chain(tmp_path):
    ledger = _populated(5)
    path = tmp_path / "ledger.jsonl"

    assert save_ledger(ledger, path) == 5
    loaded = load_ledger(path)

    assert loaded.snapshot() == ledger.snapshot()
    assert loaded.last_hash() == ledger.last_hash()
    loaded.verify_chain()


def test_lines_use_canonical_field_order(tmp_path):
    path = tmp_path / "ledger.jsonl"
    save_ledger(_populated(1), path)

    data = json.loads(path.read_text().strip())
    assert list(data.keys()) == [*CANONICAL_FIELDS, "self_hash"]


def test_missing_file_loads_empty(tmp_path):
    ledger = load_ledger(tmp_path / "missing.jsonl")
    assert len(ledger) == 0


def test_append_event_line_extends_snapshot(tmp_path):
    path = tmp_path / "ledger.jsonl"
    ledger = _populated(2)
    save_ledger(ledger, path)

    event = ledger.record(actor_id="u2", deed_type="forgiveness", timestamp=2000)
    append_event_line(event, path)

    loaded = load_ledger(path)
    assert len(loaded) == 3
    assert loaded.last_hash() == event.self_hash


def test_tampered_file_is_rejected(tmp_path):
    path = tmp_path / "ledger.jsonl"
    save_ledger(_populated(3), path)

    lines = path.read_text().splitlines()
    record = json.loads(lines[1])
    record["actor_id"] = "mallory"
    lines[1] = json.dumps(record)
    path.write_text("\n".join(lines) + "\n")

    with pytest.raises(IntegrityError) as exc_info:
        load_ledger(path)
    assert exc_info.value.index == 1


def test_reordered_file_is_rejected(tmp_path):
    path = tmp_path / "ledger.jsonl"
    save_ledger(_populated(3), path)

    lines = path.read_text().splitlines()
    lines[0], lines[1] = lines[1], lines[0]
    path.write_text("\n".join(lines) + "\n")

    with pytest.raises(IntegrityError) as exc_info:
        load_ledger(path)
    assert exc_info.value.index == 0


def test_duplicated_line_is_rejected(tmp_path):
    path = tmp_path / "ledger.jsonl"
    save_ledger(_populated(1), path)
    line = path.read_text()
    path.write_text(line + line)

    # The copy links to the wrong head before its id is even checked.
    with pytest.raises((IntegrityError, DuplicateIdError)):
        load_ledger(path)


def test_malformed_line_fails_load(tmp_path):
    path = tmp_path / "ledger.jsonl"
    save_ledger(_populated(2), path)
    with open(path, "a") as f:
        f.write("this is not json\n")

    with pytest.raises(LedgerError, match=":3:"):
        load_ledger(path)


def test_tail_reads_last_n(tmp_path):
    path = tmp_path / "ledger.jsonl"
    save_ledger(_populated(10), path)

    events = read_ledger_tail(path, n=4)
    assert [e.context_json["index"] for e in events] == [6, 7, 8, 9]


def test_tail_skips_malformed(tmp_path):
    path = tmp_path / "ledger.jsonl"
    save_ledger(_populated(2), path)
    with open(path, "a") as f:
        f.write("this is not json\n")
        f.write("{\"incomplete\": \n")

    events = read_ledger_tail(path, n=10)
    assert len(events) == 2


def test_tail_nonexistent_file(tmp_path):
    assert read_ledger_tail(tmp_path / "nope.jsonl") == []


@pytest.mark.parametrize("n", [0, -2])
def test_tail_non_positive_n_is_empty(tmp_path, n):
    path = tmp_path / "ledger.jsonl"
    save_ledger(_populated(5), path)
    assert read_ledger_tail(path, n=n) == []
