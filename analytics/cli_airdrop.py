# analytics/cli_airdrop.py
import argparse
import os
import sys
from decimal import Decimal

from common.utils import to_decimal
from analytics.airdrop import (
    equal_shares, file_weights, merge_weights, read_holder_csv,
    weighted_shares, write_allocations,
)

OUTPUT_FILE = "AirdropRecipients.csv"


def main(argv=None) -> int:
    p = argparse.ArgumentParser(description="Build an airdrop recipient list from holder snapshot CSVs")
    p.add_argument("-f", "--files", nargs="+", required=True, help="Snapshot CSV files (Address,Balance)")
    p.add_argument("-t", "--total", type=to_decimal, required=True, help="Total amount to distribute")
    mode = p.add_mutually_exclusive_group(required=True)
    mode.add_argument("--equal", action="store_true", help="Distribute the total amount equally")
    mode.add_argument("--weighted", action="store_true", help="Distribute the total amount based on weight")
    p.add_argument("--weight-scale", type=to_decimal, default=Decimal("0.5"),
                   help="Weight scale factor between 0.1 and 1 (default: 0.5)")
    p.add_argument("--minimum", type=to_decimal, default=Decimal(0),
                   help="Minimum amount per address in weighted mode")
    p.add_argument("--maximum", type=to_decimal, default=None,
                   help="Maximum amount per address in weighted mode")
    p.add_argument("-o", "--output", default=OUTPUT_FILE, help="Output CSV path")
    args = p.parse_args(argv)

    files = [f for f in args.files if os.path.basename(f) != os.path.basename(args.output)]
    try:
        tables = [read_holder_csv(f) for f in files]
        if args.equal:
            addresses = list(dict.fromkeys(a for rows in tables for a, _ in rows))
            result = equal_shares(addresses, args.total)
        else:
            weights = merge_weights(file_weights(rows, args.weight_scale) for rows in tables)
            result = weighted_shares(weights, args.total, args.minimum, args.maximum)
    except (OSError, ValueError) as e:
        print(f"ERROR processing CSV files: {e}", file=sys.stderr)
        return 1

    write_allocations(args.output, result)
    distributed = sum((amt for _, amt in result), Decimal(0))
    print(f"Airdrop recipients saved to {args.output}")
    print(f"Number of recipients: {len(result)}")
    print(f"Total distributed: {distributed}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
