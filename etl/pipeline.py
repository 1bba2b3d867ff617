from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from analytics.holders import filter_contracts
from analytics.ledger import compute_balances
from common.settings import Settings
from ingestion.contract_probe import ContractType, detect_contract_type, fetch_token_info
from ingestion.deployment import (
    DeploymentBlockNotFoundError,
    find_deployment_block,
    verify_deployment_block,
)
from ingestion.fetcher import fetch_events
from ingestion.rpc import RpcClient, normalize_address
from storage.snapshot_store import HolderRow, Snapshot, SnapshotStore, merge_holders

log = logging.getLogger(__name__)

_EVENTS_BY_TYPE = {
    ContractType.FUNGIBLE: ("Transfer",),
    ContractType.SINGLE_OWNER: ("Transfer",),
    ContractType.MULTI_TOKEN: ("TransferSingle", "TransferBatch"),
}


@dataclass
class RunSummary:
    contract: str
    symbol: str
    name: str
    contract_type: ContractType
    deployment_block: int
    from_block: int
    to_block: int
    event_count: int
    touched: int
    excluded: int
    holders: List[HolderRow] = field(default_factory=list)
    path: str = ""
    csv_path: Optional[str] = None
    network: str = ""


def resolve_scan_start(
    client: RpcClient,
    contract: str,
    prior: Optional[Snapshot],
    start_block: int = 0,
    refresh: bool = False,
) -> Tuple[int, int]:
    """
    Return (deployment_block, first block to scan).

    A prior snapshot whose deployment block still verifies resumes right after
    its lastCheckedBlock, or from the deployment block when refreshing. Anything
    else rescans from the deployment block found via the start_block hint.
    """
    if prior is not None and prior.deployment_block is not None:
        if verify_deployment_block(client, contract, prior.deployment_block):
            if refresh:
                return prior.deployment_block, prior.deployment_block
            log.info("Found previous snapshot, fast-forwarding past block %d", prior.last_checked_block)
            return prior.deployment_block, prior.last_checked_block + 1
        log.warning("Couldn't verify cached deployment block, rescanning from block %d", start_block)

    deployment = find_deployment_block(client, contract, start_block)
    if deployment is None:
        raise DeploymentBlockNotFoundError(
            f"Couldn't find deployment of {contract} at or after block {start_block}"
        )
    return deployment, deployment


def fetch_transfer_events(
    client: RpcClient,
    contract: str,
    contract_type: ContractType,
    from_block: int,
    to_block: int,
    window: int,
    on_window: Optional[Callable[[int, int, int], None]] = None,
):
    events = []
    for name in _EVENTS_BY_TYPE[contract_type]:
        events.extend(fetch_events(client, contract, name, from_block, to_block, window, on_window))
    # TransferSingle and TransferBatch come back as two ascending runs
    events.sort(key=lambda ev: ev.block_number)
    return events


def run_snapshot(
    client: RpcClient,
    settings: Settings,
    contract: str,
    start_block: int = 0,
    write_csv: bool = False,
    refresh: bool = False,
    store: Optional[SnapshotStore] = None,
    on_window: Optional[Callable[[int, int, int], None]] = None,
) -> RunSummary:
    """
    Bring the holder snapshot of `contract` up to the current chain head.
    Nothing is written unless every step succeeds.
    """
    contract = normalize_address(contract)
    store = store or SnapshotStore(settings.output.directory)

    token = fetch_token_info(client, contract)
    symbol = token["symbol"]
    log.info("Token found: %s - %s", symbol, token["name"])

    prior = store.load(symbol, contract)
    deployment, from_block = resolve_scan_start(client, contract, prior, start_block, refresh)
    current = client.block_number()
    log.debug("Current block: %d", current)

    contract_type = detect_contract_type(client, contract)
    events = fetch_transfer_events(
        client, contract, contract_type, from_block, current, settings.scan.log_window, on_window
    )
    fresh = compute_balances(contract_type, events)

    log.info("Cleaning up contracts from holder list (%d addresses)", len(fresh))
    eligible, excluded = filter_contracts(client, fresh, settings.scan.contract_check_failure)

    holders = merge_holders(prior.holders if prior else [], fresh, eligible, contract_type)
    snapshot = Snapshot(
        holders=holders,
        last_checked_block=current,
        deployment_block=deployment,
        symbol=symbol,
    )
    path, csv_path = store.save(snapshot, contract, write_csv)

    return RunSummary(
        contract=contract,
        symbol=symbol,
        name=token["name"],
        contract_type=contract_type,
        deployment_block=deployment,
        from_block=from_block,
        to_block=current,
        event_count=len(events),
        touched=len(fresh),
        excluded=len(excluded),
        holders=holders,
        path=path,
        csv_path=csv_path,
        network=settings.network,
    )


__all__ = ["RunSummary", "resolve_scan_start", "fetch_transfer_events", "run_snapshot"]
