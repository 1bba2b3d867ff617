import pytest

from etl.events import (
    TRANSFER_BATCH_TOPIC0, TRANSFER_SINGLE_TOPIC0, TRANSFER_TOPIC0, ZERO_ADDRESS,
)
from ingestion.rpc import RpcError, RpcRevertError

TOKEN = "0x" + "7" * 40
A = "0x" + "a" * 40
B = "0x" + "b" * 40
C = "0x" + "c" * 40
POOL = "0x" + "d" * 40  # holds code


def addr_topic(addr: str) -> str:
    return "0x" + "00" * 12 + addr[2:]

def word(n: int) -> str:
    return format(n, "064x")

def abi_string(s: str) -> str:
    raw = s.encode().hex()
    padded = raw.ljust(((len(raw) + 63) // 64) * 64 or 64, "0")
    return "0x" + word(32) + word(len(s.encode())) + padded


def transfer_log(sender, recipient, value, block, token_id=False):
    topics = [TRANSFER_TOPIC0, addr_topic(sender), addr_topic(recipient)]
    data = "0x"
    if token_id:
        topics.append("0x" + word(value))
    else:
        data = "0x" + word(value)
    return {"address": TOKEN, "topics": topics, "data": data, "blockNumber": hex(block)}

def single_log(sender, recipient, token_id, value, block, operator=A):
    return {
        "address": TOKEN,
        "topics": [TRANSFER_SINGLE_TOPIC0, addr_topic(operator), addr_topic(sender), addr_topic(recipient)],
        "data": "0x" + word(token_id) + word(value),
        "blockNumber": hex(block),
    }

def batch_log(sender, recipient, ids, values, block, operator=A):
    ids_off = 64
    values_off = ids_off + 32 * (len(ids) + 1)
    data = word(ids_off) + word(values_off)
    data += word(len(ids)) + "".join(word(i) for i in ids)
    data += word(len(values)) + "".join(word(v) for v in values)
    return {
        "address": TOKEN,
        "topics": [TRANSFER_BATCH_TOPIC0, addr_topic(operator), addr_topic(sender), addr_topic(recipient)],
        "data": "0x" + data,
        "blockNumber": hex(block),
    }


class FakeChain:
    """
    In-memory stand in for RpcClient. `kind` picks which interface probes
    succeed: "ERC20", "ERC721", "ERC1155" or None for a non token.
    """

    def __init__(self, kind="ERC20", head=2500, deployed_at=10, symbol="TKN", name="Token"):
        self.kind = kind
        self.head = head
        self.deployed_at = deployed_at
        self.symbol = symbol
        self.name = name
        self.logs = []
        self.contracts = {TOKEN, POOL}
        self.broken_code = set()
        self.calls = []
        self.log_ranges = []

    # RpcClient surface
    def block_number(self):
        self.calls.append(("eth_blockNumber",))
        return self.head

    def get_block(self, n, full_transactions=True):
        self.calls.append(("eth_getBlockByNumber", n))
        txs = [{"hash": f"0xtransfer{n}", "to": TOKEN}]
        if n == self.deployed_at:
            txs.append({"hash": f"0xcreate{n}", "to": None})
        txs.append({"hash": f"0xother{n}", "to": None})
        return {"number": hex(n), "transactions": txs}

    def get_transaction_receipt(self, tx_hash):
        self.calls.append(("eth_getTransactionReceipt", tx_hash))
        if tx_hash.startswith("0xcreate"):
            return {"contractAddress": TOKEN.upper().replace("0X", "0x")}
        return {"contractAddress": "0x" + "e" * 40}

    def get_code(self, address):
        self.calls.append(("eth_getCode", address))
        if address in self.broken_code:
            raise RpcError("getCode timed out")
        return "0x6080" if address in self.contracts else "0x"

    def eth_call(self, to, data):
        self.calls.append(("eth_call", data[:10]))
        if data.startswith("0x01ffc9a7"):
            wanted = {"ERC721": "80ac58cd", "ERC1155": "d9b67a26"}.get(self.kind)
            if self.kind == "ERC20" or self.kind is None:
                raise RpcRevertError("execution reverted")
            return "0x" + word(1 if data[10:18] == wanted else 0)
        if data.startswith("0xdd62ed3e"):
            if self.kind is None:
                raise RpcRevertError("execution reverted")
            return "0x" + word(0)
        if data.startswith("0x06fdde03"):
            return abi_string(self.name)
        if data.startswith("0x95d89b41"):
            return abi_string(self.symbol)
        raise RpcRevertError("unknown selector")

    def get_logs(self, address, from_block, to_block, topics=None):
        self.log_ranges.append((from_block, to_block))
        t0 = topics[0] if topics else None
        return [
            lg for lg in self.logs
            if from_block <= int(lg["blockNumber"], 16) <= to_block
            and (t0 is None or lg["topics"][0] == t0)
        ]


@pytest.fixture
def chain():
    return FakeChain()


@pytest.fixture
def settings():
    from common.settings import Settings
    return Settings.model_validate({"rpc": {"url": "${RPC_URL}"}})
