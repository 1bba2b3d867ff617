"""
analytics.airdrop

Split a fixed token amount across the holders listed in one or more snapshot
CSV files, either equally or weighted by balance.

All amounts are Decimal; results are quantized to 18 decimal places.
"""
import csv
from decimal import Context, Decimal, localcontext
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from common.utils import TOKEN_DECIMALS, to_decimal

QUANTUM = Decimal(1).scaleb(-TOKEN_DECIMALS)
# enough digits to quantize very large totals to 18 places
PRECISION = Context(prec=60)

Allocation = Tuple[str, Decimal]


def read_holder_csv(path: str) -> List[Tuple[str, Decimal]]:
    """Rows of an Address,Balance snapshot CSV."""
    rows = []
    with open(path, "r", newline="") as f:
        for rec in csv.DictReader(f):
            address = (rec.get("Address") or "").strip()
            if not address:
                continue
            rows.append((address, to_decimal(rec.get("Balance") or "0")))
    return rows


def equal_shares(addresses: Sequence[str], total: Decimal) -> List[Allocation]:
    if not addresses:
        return []
    with localcontext(PRECISION):
        share = (Decimal(total) / len(addresses)).quantize(QUANTUM)
        return _settle([(a, share) for a in addresses], Decimal(total))


def file_weights(rows: Iterable[Tuple[str, Decimal]], scale: Decimal = Decimal("0.5")) -> Dict[str, Decimal]:
    """
    Relative weight of each holder in one file: (balance / file total) ** scale,
    normalized to sum to 1. A scale below 1 flattens the distribution.
    """
    scale = Decimal(scale)
    if not Decimal("0.1") <= scale <= 1:
        raise ValueError("weight scale must be between 0.1 and 1")
    positive = {}
    for address, balance in rows:
        if balance > 0:
            positive[address] = balance
    total = sum(positive.values(), Decimal(0))
    if not positive:
        return {}
    with localcontext(PRECISION):
        raw = {a: (b / total) ** scale for a, b in positive.items()}
        raw_total = sum(raw.values(), Decimal(0))
        return {a: w / raw_total for a, w in raw.items()}


def merge_weights(per_file: Iterable[Dict[str, Decimal]]) -> Dict[str, Decimal]:
    """An address listed in several files keeps its largest weight."""
    merged: Dict[str, Decimal] = {}
    for weights in per_file:
        for address, w in weights.items():
            merged[address] = max(merged.get(address, w), w)
    return merged


def weighted_shares(
    weights: Dict[str, Decimal],
    total: Decimal,
    minimum: Decimal = Decimal(0),
    maximum: Optional[Decimal] = None,
) -> List[Allocation]:
    """
    Allocate `total` proportionally to weight. Amounts outside [minimum, maximum]
    are pinned to the bound and the rest is shared again among the unpinned
    addresses until nothing moves.
    """
    total = Decimal(total)
    minimum = Decimal(minimum)
    if maximum is not None and Decimal(maximum) < minimum:
        raise ValueError("maximum must not be below minimum")
    with localcontext(PRECISION):
        return _allocate(weights, total, minimum, maximum)


def _allocate(weights, total, minimum, maximum) -> List[Allocation]:
    fixed: Dict[str, Decimal] = {}
    amounts: Dict[str, Decimal] = {}
    while True:
        free = [a for a in weights if a not in fixed]
        if not free:
            break
        remaining = total - sum(fixed.values(), Decimal(0))
        weight_sum = sum((weights[a] for a in free), Decimal(0))
        clamped = False
        for a in free:
            amt = remaining * weights[a] / weight_sum if weight_sum else Decimal(0)
            if amt < minimum:
                fixed[a] = minimum
                clamped = True
            elif maximum is not None and amt > maximum:
                fixed[a] = Decimal(maximum)
                clamped = True
            else:
                amounts[a] = amt
        if not clamped:
            break
        amounts = {}

    amounts.update(fixed)
    rows = [(a, amounts[a].quantize(QUANTUM)) for a in weights]
    if len(fixed) < len(weights):
        return _settle(rows, total)
    return rows


def _settle(rows: List[Allocation], total: Decimal) -> List[Allocation]:
    """Move quantization dust onto the largest allocation so the sum is exact."""
    if not rows:
        return rows
    dust = total - sum((amt for _, amt in rows), Decimal(0))
    if not dust:
        return rows
    idx = max(range(len(rows)), key=lambda i: rows[i][1])
    address, amt = rows[idx]
    rows[idx] = (address, amt + dust)
    return rows


def write_allocations(path: str, rows: Iterable[Allocation]):
    with open(path, "w", newline="") as f:
        w = csv.writer(f, lineterminator="\n")
        for address, amount in rows:
            w.writerow([address, format(amount, "f")])


__all__ = [
    "read_holder_csv",
    "equal_shares",
    "file_weights",
    "merge_weights",
    "weighted_shares",
    "write_allocations",
]
