# storage/snapshot_store.py
from __future__ import annotations

import csv
import json
import logging
import os
import re
from typing import Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from common.utils import format_fixed_point, to_decimal
from ingestion.contract_probe import ContractType

log = logging.getLogger(__name__)

Balance = Union[int, str]
HolderRow = Tuple[str, Balance]

_UNSAFE_NAME = re.compile(r"[^A-Za-z0-9._-]+")


class SnapshotError(Exception):
    pass


class Snapshot(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    holders: List[HolderRow] = Field(default_factory=list)
    last_checked_block: int = Field(alias="lastCheckedBlock")
    deployment_block: Optional[int] = Field(default=None, alias="deploymentBlock")
    symbol: str

    def to_json(self) -> dict:
        return {
            "holders": [[addr, bal] for addr, bal in self.holders],
            "lastCheckedBlock": self.last_checked_block,
            "deploymentBlock": self.deployment_block,
            "symbol": self.symbol,
        }


def format_balance(contract_type: ContractType, raw: int) -> Balance:
    """Fungible balances become 18 decimal fixed point strings, counts stay ints."""
    if ContractType(contract_type) == ContractType.FUNGIBLE:
        return format_fixed_point(raw)
    return int(raw)


def sort_holders(rows: List[HolderRow]) -> List[HolderRow]:
    # sorted() keeps equal keys in input order, reverse included
    return sorted(rows, key=lambda row: to_decimal(row[1]), reverse=True)


def merge_holders(
    prior: List[HolderRow],
    fresh: Dict[str, int],
    eligible: Dict[str, int],
    contract_type: ContractType,
) -> List[HolderRow]:
    """
    Overwrite every address of this run's computation: with its formatted
    balance when eligible, otherwise by removing it. Addresses this run did not
    touch keep their prior entry. Returns the merged list sorted by balance.
    """
    merged: Dict[str, Balance] = {addr: bal for addr, bal in prior}
    for address in fresh:
        if address in eligible and eligible[address] != 0:
            merged[address] = format_balance(contract_type, eligible[address])
        else:
            merged.pop(address, None)
    return sort_holders(list(merged.items()))


class SnapshotStore:
    """One JSON file (plus optional CSV) per (symbol, contract) pair in `directory`."""

    def __init__(self, directory: str = "."):
        self.directory = directory

    def base_name(self, symbol: str, contract: str) -> str:
        safe_symbol = _UNSAFE_NAME.sub("_", symbol) or "TOKEN"
        return f"{safe_symbol}-{contract}"

    def json_path(self, symbol: str, contract: str) -> str:
        return os.path.join(self.directory, self.base_name(symbol, contract) + ".json")

    def csv_path(self, symbol: str, contract: str) -> str:
        return os.path.join(self.directory, self.base_name(symbol, contract) + ".csv")

    def load(self, symbol: str, contract: str) -> Optional[Snapshot]:
        """Return the persisted snapshot, or None if there is none yet."""
        path = self.json_path(symbol, contract)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r") as f:
                data = json.load(f)
            return Snapshot.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            raise SnapshotError(f"Failed to read snapshot {path}: {e}") from e

    def save(self, snapshot: Snapshot, contract: str, write_csv: bool = False) -> Tuple[str, Optional[str]]:
        """Atomically replace the JSON snapshot, and the CSV when asked."""
        os.makedirs(self.directory, exist_ok=True)
        path = self.json_path(snapshot.symbol, contract)
        self._replace(path, lambda f: json.dump(snapshot.to_json(), f, indent=2))
        log.info("Snapshot saved to %s (%d holders)", path, len(snapshot.holders))

        csv_file = None
        if write_csv:
            csv_file = self.csv_path(snapshot.symbol, contract)
            self._replace(csv_file, lambda f: self._write_csv(f, snapshot.holders))
            log.info("CSV saved to %s", csv_file)
        return path, csv_file

    @staticmethod
    def _write_csv(f, holders: List[HolderRow]):
        w = csv.writer(f, lineterminator="\n")
        w.writerow(["Address", "Balance"])
        for address, balance in holders:
            w.writerow([address, balance])

    @staticmethod
    def _replace(path: str, write):
        tmp = path + ".tmp"
        try:
            with open(tmp, "w", newline="") as f:
                write(f)
            os.replace(tmp, path)
        except OSError as e:
            raise SnapshotError(f"Failed to write {path}: {e}") from e


__all__ = [
    "Snapshot",
    "SnapshotError",
    "SnapshotStore",
    "format_balance",
    "merge_holders",
    "sort_holders",
]
