# ingestion/contract_probe.py
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from ingestion.rpc import RpcClient, RpcError, RpcRevertError

log = logging.getLogger(__name__)

SUPPORTS_INTERFACE_SIG = "0x01ffc9a7"
ERC721_INTERFACE_ID = "0x80ac58cd"
ERC1155_INTERFACE_ID = "0xd9b67a26"
ERC20_ALLOWANCE_SIG = "0xdd62ed3e"
ERC20_NAME_SIG = "0x06fdde03"
ERC20_SYMBOL_SIG = "0x95d89b41"

_WORD_ZERO = "0" * 64


class ContractType(str, Enum):
    FUNGIBLE = "ERC20"
    SINGLE_OWNER = "ERC721"
    MULTI_TOKEN = "ERC1155"


class UnknownContractTypeError(RuntimeError):
    pass


def _decode_uint256(hex_data: str) -> int:
    if not hex_data or hex_data == "0x":
        return 0
    h = hex_data[2:] if hex_data.startswith("0x") else hex_data
    return int(h, 16)

def _decode_string(hex_data: str) -> str:
    """ABI string, falling back to a bytes32 right-padded value used by older tokens."""
    if not hex_data or hex_data == "0x":
        return ""
    h = hex_data[2:] if hex_data.startswith("0x") else hex_data
    try:
        if len(h) >= 128:
            length = int(h[64:128], 16)
            data = h[128:128 + length * 2]
            if len(data) == length * 2:
                return bytes.fromhex(data).decode("utf-8", errors="ignore")
        return bytes.fromhex(h[:64]).rstrip(b"\x00").decode("utf-8", errors="ignore")
    except ValueError:
        return ""


def supports_interface(client: RpcClient, address: str, interface_id: str) -> bool:
    """
    ERC-165 probe. A revert means unsupported; other RPC failures are also
    reported as unsupported, so a flaky node can misclassify a contract.
    """
    data = SUPPORTS_INTERFACE_SIG + interface_id[2:].ljust(64, "0")
    try:
        out = client.eth_call(address, data)
    except RpcRevertError:
        return False
    except RpcError as e:
        log.debug("supportsInterface(%s) on %s failed: %s", interface_id, address, e)
        return False
    return _decode_uint256(out) == 1


def responds_to_allowance(client: RpcClient, address: str) -> bool:
    data = ERC20_ALLOWANCE_SIG + _WORD_ZERO + _WORD_ZERO
    try:
        out = client.eth_call(address, data)
    except RpcError as e:
        log.debug("allowance probe on %s failed: %s", address, e)
        return False
    # an account without code answers 0x for any call
    return out not in ("", "0x")


def detect_contract_type(client: RpcClient, address: str) -> ContractType:
    if supports_interface(client, address, ERC721_INTERFACE_ID):
        found = ContractType.SINGLE_OWNER
    elif supports_interface(client, address, ERC1155_INTERFACE_ID):
        found = ContractType.MULTI_TOKEN
    elif responds_to_allowance(client, address):
        found = ContractType.FUNGIBLE
    else:
        raise UnknownContractTypeError(
            f"Unknown token type: {address} does not conform to ERC20, ERC721, or ERC1155"
        )
    log.info("Looks like an %s type contract", found.value)
    return found


def fetch_token_info(client: RpcClient, address: str) -> dict:
    """name() and symbol(); a missing symbol is an error since it names the snapshot file."""
    name = _decode_string(client.eth_call(address, ERC20_NAME_SIG))
    symbol = _decode_string(client.eth_call(address, ERC20_SYMBOL_SIG))
    if not symbol:
        raise RpcError(f"Token at {address} returned an empty symbol")
    return {"name": name, "symbol": symbol}


def is_contract(client: RpcClient, address: str) -> bool:
    code: Optional[str] = client.get_code(address)
    return bool(code) and code not in ("0x", "0x0")


__all__ = [
    "ContractType",
    "UnknownContractTypeError",
    "supports_interface",
    "detect_contract_type",
    "fetch_token_info",
    "is_contract",
]
