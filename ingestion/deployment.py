# ingestion/deployment.py
"""
Locate the block that created a contract.

Scanning is linear in blocks times creation transactions; callers should pass
a starting block at or shortly before the deployment.
"""
from __future__ import annotations

import logging
from typing import Optional

from ingestion.rpc import RpcClient, normalize_address

log = logging.getLogger(__name__)


class DeploymentBlockNotFoundError(RuntimeError):
    pass


def block_creates_contract(client: RpcClient, address: str, block_number: int) -> bool:
    """True if a contract creation transaction in `block_number` deployed `address`."""
    target = normalize_address(address)
    block = client.get_block(block_number, True)
    for tx in block.get("transactions") or []:
        if not isinstance(tx, dict) or tx.get("to") is not None:
            continue
        receipt = client.get_transaction_receipt(tx["hash"])
        created = (receipt or {}).get("contractAddress")
        if created and created.lower() == target:
            return True
    return False


def find_deployment_block(
    client: RpcClient,
    address: str,
    start_block: int = 0,
    end_block: Optional[int] = None,
) -> Optional[int]:
    """
    Scan forward from start_block to end_block (default: chain head) and return
    the first block that deployed `address`, or None.
    """
    if start_block < 0:
        raise ValueError("start_block must be a non negative integer")
    if not start_block:
        log.warning("No deployment block hint given, scanning from genesis; this can take a long time")
    latest = client.block_number() if end_block is None else end_block

    log.info("Scanning blocks %d..%d for deployment of %s", start_block, latest, address)
    for block_number in range(start_block, latest + 1):
        if block_creates_contract(client, address, block_number):
            log.info("Found deployment block %d", block_number)
            return block_number

    log.error(
        "Could not find deployment of %s in blocks %d..%d; check the address and that the "
        "hint is at or before the deployment", address, start_block, latest,
    )
    return None


def verify_deployment_block(client: RpcClient, address: str, block_number: int) -> bool:
    if block_creates_contract(client, address, block_number):
        return True
    log.warning("Cached deployment block %d does not deploy %s", block_number, address)
    return False


__all__ = [
    "DeploymentBlockNotFoundError",
    "block_creates_contract",
    "find_deployment_block",
    "verify_deployment_block",
]
