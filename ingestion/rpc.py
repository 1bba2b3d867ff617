# ingestion/rpc.py
from __future__ import annotations

import logging
import re
import time
from typing import Any, List, Optional

import requests

from common.settings import RPC

log = logging.getLogger(__name__)

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")
_RETRYABLE_STATUS = (429, 500, 502, 503, 504)


class RpcError(RuntimeError):
    pass


class RpcRevertError(RpcError):
    """eth_call reverted; the node answered but the contract refused."""


def normalize_address(addr: str) -> str:
    """
    Returns lowercased 0x-prefixed 40-hex address or raises ValueError with a clear message.
    Accepts inputs with extra whitespace/quotes.
    """
    if not addr:
        raise ValueError("Empty address.")
    a = str(addr).strip().strip('"').strip("'")
    h = a[2:] if a[:2] in ("0x", "0X") else a
    if len(h) != 40 or not _HEX_RE.match(h):
        raise ValueError(f"Invalid address: {addr!r} (need 20-byte hex, e.g. 0x...40 hex chars)")
    return "0x" + h.lower()


def _is_revert(err: dict) -> bool:
    msg = str(err.get("message", "")).lower()
    return err.get("code") == 3 or "revert" in msg


class RpcClient:
    """
    Minimal JSON-RPC client. One instance is built from settings and handed to
    every component; calls are issued one at a time.
    """

    def __init__(self, cfg: RPC, session: Optional[Any] = None):
        self.url = cfg.url
        self.timeout = cfg.timeout
        self.max_retries = cfg.max_retries
        self.backoff_seconds = cfg.backoff_seconds
        self.session = session

    def call(self, method: str, params: List[Any]) -> Any:
        """
        Return the JSON RPC result field directly.
        """
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        attempt = 0
        while True:
            try:
                post = self.session.post if self.session is not None else requests.post
                resp = post(self.url, json=payload, timeout=self.timeout)
                if resp.status_code in _RETRYABLE_STATUS:
                    raise requests.HTTPError(f"{resp.status_code} server retryable", response=resp)
                resp.raise_for_status()
                data = resp.json()
            except (requests.Timeout, requests.ConnectionError, requests.HTTPError) as e:
                attempt += 1
                if attempt > self.max_retries:
                    raise RpcError(f"RPC transport failed for {method} url={self.url}: {e}") from e
                sleep_s = min(12.0, self.backoff_seconds * (2 ** (attempt - 1)))
                log.warning("%s failed (%s), retry %d/%d in %.1fs", method, e, attempt, self.max_retries, sleep_s)
                time.sleep(sleep_s)
                continue
            except requests.RequestException as e:
                raise RpcError(f"RPC transport failed for {method} url={self.url}: {e}") from e
            except ValueError as e:
                raise RpcError(f"RPC response for {method} was not JSON") from e

            if "error" in data:
                err = data["error"] if isinstance(data["error"], dict) else {"message": data["error"]}
                if method == "eth_call" and _is_revert(err):
                    raise RpcRevertError(f"eth_call reverted: {err}")
                raise RpcError(f"RPC error for {method} url={self.url} err={err}")
            return data.get("result")

    def block_number(self) -> int:
        return int(self.call("eth_blockNumber", []), 16)

    def get_block(self, block_number: int, full_transactions: bool = True) -> dict:
        if not isinstance(block_number, int) or block_number < 0:
            raise ValueError("block_number must be a non negative integer")
        block = self.call("eth_getBlockByNumber", [hex(block_number), full_transactions])
        if block is None:
            raise RpcError(f"block {block_number} not found")
        return block

    def get_transaction_receipt(self, tx_hash: str) -> Optional[dict]:
        if not isinstance(tx_hash, str) or not tx_hash.startswith("0x"):
            raise ValueError("tx_hash must be a 0x prefixed hex string")
        return self.call("eth_getTransactionReceipt", [tx_hash])

    def get_code(self, address: str) -> str:
        return self.call("eth_getCode", [normalize_address(address), "latest"]) or "0x"

    def eth_call(self, to: str, data: str) -> str:
        res = self.call("eth_call", [{"to": normalize_address(to), "data": data}, "latest"])
        return res or "0x"

    def get_logs(self, address: str, from_block: int, to_block: int,
                 topics: Optional[List[str]] = None) -> List[dict]:
        if not isinstance(from_block, int) or not isinstance(to_block, int):
            raise ValueError("from_block and to_block must be integers")
        if from_block < 0 or to_block < from_block:
            raise ValueError("invalid block range")
        params = {
            "address": normalize_address(address),
            "fromBlock": hex(from_block),
            "toBlock": hex(to_block),
        }
        if topics:
            # filter by topic0 so providers can optimize
            params["topics"] = topics
        result = self.call("eth_getLogs", [params])
        if not isinstance(result, list):
            raise RpcError("RPC response for eth_getLogs did not return a list")
        return result


__all__ = ["RpcClient", "RpcError", "RpcRevertError", "normalize_address"]
