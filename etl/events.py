# etl/events.py
"""
Decode raw transfer logs into one fixed-shape record per event kind.

Everything downstream of this module works with the dataclasses below and
never looks at topics or data words again.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple, Union

ZERO_ADDRESS = "0x" + "0" * 40

# keccak256("Transfer(address,address,uint256)"), shared by ERC-20 and ERC-721
TRANSFER_TOPIC0 = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
# keccak256("TransferSingle(address,address,address,uint256,uint256)")
TRANSFER_SINGLE_TOPIC0 = "0xc3d58168c5ae7397731d063d5bbf3d657854427343f4c083240f7aacaa2d0f62"
# keccak256("TransferBatch(address,address,address,uint256[],uint256[])")
TRANSFER_BATCH_TOPIC0 = "0x4a39dc06d4c0dbc64b70af90fd698a233a518aa5d07e595d983b8c0526c8f7fb"

EVENT_TOPICS = {
    "Transfer": TRANSFER_TOPIC0,
    "TransferSingle": TRANSFER_SINGLE_TOPIC0,
    "TransferBatch": TRANSFER_BATCH_TOPIC0,
}


@dataclass(frozen=True)
class Transfer:
    """ERC-20 amount or ERC-721 token id moved from sender to recipient."""
    sender: str
    recipient: str
    value: int
    block_number: int


@dataclass(frozen=True)
class TransferSingle:
    operator: str
    sender: str
    recipient: str
    token_id: int
    value: int
    block_number: int


@dataclass(frozen=True)
class TransferBatch:
    operator: str
    sender: str
    recipient: str
    ids: Tuple[int, ...]
    values: Tuple[int, ...]
    block_number: int

    def __post_init__(self):
        if len(self.ids) != len(self.values):
            raise ValueError(
                f"TransferBatch ids/values length mismatch: {len(self.ids)} != {len(self.values)}"
            )


TransferEvent = Union[Transfer, TransferSingle, TransferBatch]


def _strip_0x(s: str) -> str:
    return s[2:] if isinstance(s, str) and s.startswith("0x") else s

def _hex_to_addr(topic_32bytes: str) -> str:
    # topic is 32-byte hex; last 20 bytes are the address
    t = (_strip_0x(topic_32bytes) or "").lower()
    return "0x" + t[-40:].rjust(40, "0")

def _hex_to_int(hex_or_int) -> int:
    if hex_or_int is None:
        return 0
    if isinstance(hex_or_int, int):
        return hex_or_int
    s = str(hex_or_int).lower()
    if s in ("0x", ""):
        return 0
    return int(s, 16) if s.startswith("0x") else int(s)

def _words(data: str) -> List[int]:
    h = _strip_0x(data or "") or ""
    if len(h) % 64:
        raise ValueError(f"log data is not a whole number of 32-byte words ({len(h)} hex chars)")
    return [int(h[i:i + 64], 16) for i in range(0, len(h), 64)]

def _uint_array(words: List[int], byte_offset: int) -> Tuple[int, ...]:
    if byte_offset % 32:
        raise ValueError(f"misaligned dynamic array offset {byte_offset}")
    head = byte_offset // 32
    length = words[head]
    items = words[head + 1:head + 1 + length]
    if len(items) != length:
        raise ValueError("dynamic array runs past end of log data")
    return tuple(items)


def topic0(log: dict) -> Optional[str]:
    topics = log.get("topics") or []
    if not topics or not isinstance(topics, list):
        return None
    return str(topics[0]).lower()


def decode_transfer(log: dict) -> Transfer:
    """
    ERC-721 indexes the token id as a fourth topic; ERC-20 carries the amount
    in the data word.
    """
    topics = log.get("topics") or []
    if len(topics) < 3:
        raise ValueError("Transfer log needs from/to indexed topics")
    if len(topics) >= 4:
        value = _hex_to_int(topics[3])
    else:
        value = _hex_to_int(log.get("data", "0x0"))
    return Transfer(
        sender=_hex_to_addr(topics[1]),
        recipient=_hex_to_addr(topics[2]),
        value=value,
        block_number=_hex_to_int(log.get("blockNumber")),
    )


def decode_transfer_single(log: dict) -> TransferSingle:
    topics = log.get("topics") or []
    if len(topics) < 4:
        raise ValueError("TransferSingle log needs operator/from/to indexed topics")
    words = _words(log.get("data", "0x"))
    if len(words) < 2:
        raise ValueError("TransferSingle data needs id and value words")
    return TransferSingle(
        operator=_hex_to_addr(topics[1]),
        sender=_hex_to_addr(topics[2]),
        recipient=_hex_to_addr(topics[3]),
        token_id=words[0],
        value=words[1],
        block_number=_hex_to_int(log.get("blockNumber")),
    )


def decode_transfer_batch(log: dict) -> TransferBatch:
    topics = log.get("topics") or []
    if len(topics) < 4:
        raise ValueError("TransferBatch log needs operator/from/to indexed topics")
    words = _words(log.get("data", "0x"))
    if len(words) < 2:
        raise ValueError("TransferBatch data needs ids and values offsets")
    return TransferBatch(
        operator=_hex_to_addr(topics[1]),
        sender=_hex_to_addr(topics[2]),
        recipient=_hex_to_addr(topics[3]),
        ids=_uint_array(words, words[0]),
        values=_uint_array(words, words[1]),
        block_number=_hex_to_int(log.get("blockNumber")),
    )


_DECODERS = {
    TRANSFER_TOPIC0: decode_transfer,
    TRANSFER_SINGLE_TOPIC0: decode_transfer_single,
    TRANSFER_BATCH_TOPIC0: decode_transfer_batch,
}


def decode_log(log: dict) -> Optional[TransferEvent]:
    """
    Returns None if the log is not one of the three transfer events.
    Malformed logs of a known kind raise ValueError.
    """
    decoder = _DECODERS.get(topic0(log))
    if decoder is None:
        return None
    return decoder(log)


def decode_logs(logs: Iterable[dict]) -> List[TransferEvent]:
    out = []
    for lg in logs or []:
        ev = decode_log(lg)
        if ev is not None:
            out.append(ev)
    return out
