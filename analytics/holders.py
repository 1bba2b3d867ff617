import logging
from typing import Dict, Set, Tuple

from ingestion.contract_probe import is_contract
from ingestion.rpc import RpcClient, RpcError

log = logging.getLogger(__name__)

FAIL = "fail"
EXCLUDE = "exclude"


def filter_contracts(
    client: RpcClient,
    balances: Dict[str, int],
    on_failure: str = FAIL,
) -> Tuple[Dict[str, int], Set[str]]:
    """
    Split nonzero balances into externally owned holders and contract addresses.

    Every nonzero address costs one eth_getCode call. When a lookup fails the
    `on_failure` policy decides: "fail" re-raises and aborts the run,
    "exclude" drops the address from the holder list.
    Returns (eligible balances, excluded addresses).
    """
    if on_failure not in (FAIL, EXCLUDE):
        raise ValueError(f"unknown contract check policy {on_failure!r}")

    eligible: Dict[str, int] = {}
    excluded: Set[str] = set()
    for address, balance in balances.items():
        if balance == 0:
            continue
        try:
            contract = is_contract(client, address)
        except RpcError as e:
            if on_failure == FAIL:
                raise
            log.warning("Contract check failed for %s, excluding it: %s", address, e)
            contract = True
        if contract:
            excluded.add(address)
        else:
            eligible[address] = balance

    log.info("Contract filter: %d holders kept, %d contract addresses excluded", len(eligible), len(excluded))
    return eligible, excluded


__all__ = ["filter_contracts", "FAIL", "EXCLUDE"]
