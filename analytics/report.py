from typing import List

from common.utils import commify


def format_report(summary, top_n: int = 10) -> List[str]:
    """Lines printed after a snapshot run."""
    lines = [f"Snapshot saved: {summary.path}"]
    if summary.csv_path:
        lines.append(f"CSV saved: {summary.csv_path}")
    chain = f" on {summary.network}" if summary.network else ""
    lines.append(f"Blocks scanned{chain}: {summary.from_block}..{summary.to_block} ({summary.contract_type.value})")
    lines.append(f"Tx count since last snapshot: {summary.event_count}")
    lines.append(f"Unique traders since last snapshot: {summary.touched}")
    lines.append(f"Contracts excluded: {summary.excluded}")
    lines.append(f"Current holders: {len(summary.holders)}")
    lines.append(f"Top {top_n} holders:")
    for i, (address, balance) in enumerate(summary.holders[:top_n], 1):
        lines.append(f"{i:02d}. {address}  {commify(balance)} {summary.symbol}")
    return lines
