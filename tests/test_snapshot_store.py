import json

import pytest

from conftest import A, B, C, TOKEN
from ingestion.contract_probe import ContractType
from storage.snapshot_store import (
    Snapshot, SnapshotError, SnapshotStore, format_balance, merge_holders, sort_holders,
)

D = "0x" + "1" * 40
E18 = 10**18


def test_format_balance():
    assert format_balance(ContractType.FUNGIBLE, 15 * E18 // 10) == "1.500000000000000000"
    assert format_balance(ContractType.FUNGIBLE, 1) == "0.000000000000000001"
    assert format_balance(ContractType.FUNGIBLE, -2 * E18) == "-2.000000000000000000"
    assert format_balance(ContractType.SINGLE_OWNER, 3) == 3


def test_merge_overwrites_deletes_and_carries_forward():
    prior = [(A, "10.000000000000000000"), (B, "5.000000000000000000"), (C, "1.000000000000000000")]
    fresh = {A: 2 * E18, B: 0, D: 7 * E18}
    eligible = {A: 2 * E18}  # D turned out to be a contract
    merged = merge_holders(prior, fresh, eligible, ContractType.FUNGIBLE)
    assert merged == [(A, "2.000000000000000000"), (C, "1.000000000000000000")]


def test_merge_is_idempotent():
    prior = [(A, 4), (B, 9)]
    fresh = {A: 1, C: 3, B: 0}
    eligible = {A: 1, C: 3}
    once = merge_holders(prior, fresh, eligible, ContractType.SINGLE_OWNER)
    twice = merge_holders(once, fresh, eligible, ContractType.SINGLE_OWNER)
    assert once == twice == [(C, 3), (A, 1)]


def test_sort_is_descending_numeric_and_stable():
    rows = [(A, "2.5"), (B, "10.0"), (C, "2.5"), (D, "9.999999999999999999")]
    assert sort_holders(rows) == [(B, "10.0"), (D, "9.999999999999999999"), (A, "2.5"), (C, "2.5")]


def test_save_and_load_roundtrip(tmp_path):
    store = SnapshotStore(str(tmp_path))
    snap = Snapshot(holders=[(A, "1.000000000000000000")], last_checked_block=100, deployment_block=10, symbol="TKN")
    path, csv_path = store.save(snap, TOKEN, write_csv=True)

    assert path == str(tmp_path / f"TKN-{TOKEN}.json")
    data = json.loads((tmp_path / f"TKN-{TOKEN}.json").read_text())
    assert data == {
        "holders": [[A, "1.000000000000000000"]],
        "lastCheckedBlock": 100,
        "deploymentBlock": 10,
        "symbol": "TKN",
    }
    assert (tmp_path / f"TKN-{TOKEN}.csv").read_text() == f"Address,Balance\n{A},1.000000000000000000\n"
    assert not list(tmp_path.glob("*.tmp"))

    loaded = store.load("TKN", TOKEN)
    assert loaded.holders == [(A, "1.000000000000000000")]
    assert loaded.last_checked_block == 100
    assert loaded.deployment_block == 10


def test_load_missing_returns_none(tmp_path):
    assert SnapshotStore(str(tmp_path)).load("TKN", TOKEN) is None


def test_load_corrupt_raises(tmp_path):
    (tmp_path / f"TKN-{TOKEN}.json").write_text("not a valid json")
    with pytest.raises(SnapshotError):
        SnapshotStore(str(tmp_path)).load("TKN", TOKEN)


def test_symbol_is_made_file_safe(tmp_path):
    store = SnapshotStore(str(tmp_path))
    assert store.json_path("A/B C", TOKEN).endswith(f"A_B_C-{TOKEN}.json")
