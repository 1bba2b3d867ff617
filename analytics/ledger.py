"""
analytics.ledger

Turn a block ordered transfer stream into per address balances. The zero
address as sender is a mint (credit only), as recipient a burn (debit only).

Each function covers exactly the events it is given; balances from earlier
runs are combined later by the snapshot merge.
"""
from collections import defaultdict
from typing import Dict, Iterable

from etl.events import ZERO_ADDRESS, Transfer, TransferBatch, TransferEvent, TransferSingle
from ingestion.contract_probe import ContractType

BalanceMap = Dict[str, int]


def fungible_balances(events: Iterable[TransferEvent]) -> BalanceMap:
    balances: BalanceMap = defaultdict(int)
    for ev in events:
        if not isinstance(ev, Transfer):
            continue
        if ev.sender != ZERO_ADDRESS:
            balances[ev.sender] -= ev.value
        if ev.recipient != ZERO_ADDRESS:
            balances[ev.recipient] += ev.value
    return dict(balances)


def single_owner_counts(events: Iterable[TransferEvent]) -> BalanceMap:
    """
    Track token id -> owner, last write wins, then count ids per final owner.
    Addresses that own none of the ids moved in this range are left out.
    """
    owners: Dict[int, str] = {}
    for ev in events:
        if not isinstance(ev, Transfer):
            continue
        if ev.sender != ZERO_ADDRESS:
            owners.pop(ev.value, None)
        if ev.recipient != ZERO_ADDRESS:
            owners[ev.value] = ev.recipient
    counts: BalanceMap = defaultdict(int)
    for owner in owners.values():
        counts[owner] += 1
    return dict(counts)


def token_balances(events: Iterable[TransferEvent]) -> Dict[str, Dict[int, int]]:
    """Per address, per token id signed balances for ERC-1155 events."""
    balances: Dict[str, Dict[int, int]] = defaultdict(lambda: defaultdict(int))

    def move(sender: str, recipient: str, token_id: int, value: int):
        if sender != ZERO_ADDRESS:
            balances[sender][token_id] -= value
        if recipient != ZERO_ADDRESS:
            balances[recipient][token_id] += value

    for ev in events:
        if isinstance(ev, TransferSingle):
            move(ev.sender, ev.recipient, ev.token_id, ev.value)
        elif isinstance(ev, TransferBatch):
            for token_id, value in zip(ev.ids, ev.values):
                move(ev.sender, ev.recipient, token_id, value)
    return {addr: dict(ids) for addr, ids in balances.items()}


def multi_token_balances(events: Iterable[TransferEvent]) -> BalanceMap:
    # per id granularity is collapsed into one number per holder
    return {addr: sum(ids.values()) for addr, ids in token_balances(events).items()}


_LEDGERS = {
    ContractType.FUNGIBLE: fungible_balances,
    ContractType.SINGLE_OWNER: single_owner_counts,
    ContractType.MULTI_TOKEN: multi_token_balances,
}


def compute_balances(contract_type: ContractType, events: Iterable[TransferEvent]) -> BalanceMap:
    return _LEDGERS[ContractType(contract_type)](events)


__all__ = [
    "BalanceMap",
    "fungible_balances",
    "single_owner_counts",
    "token_balances",
    "multi_token_balances",
    "compute_balances",
]
