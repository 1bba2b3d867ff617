import argparse
import logging
import sys

from analytics.report import format_report
from common.logging_setup import setup_logging
from common.settings import load_settings
from etl.pipeline import run_snapshot
from ingestion.contract_probe import UnknownContractTypeError
from ingestion.deployment import DeploymentBlockNotFoundError
from ingestion.rpc import RpcClient, RpcError, normalize_address
from storage.snapshot_store import SnapshotError

log = logging.getLogger("holder_snapshot")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Take a holder snapshot of an ERC20, ERC721, or ERC1155 token")
    p.add_argument("-c", "--contract", required=True,
                   help="Contract address of the ERC20, ERC721, or ERC1155 token")
    p.add_argument("-b", "--block", type=int, default=0,
                   help="Contract deployment block (if known)")
    p.add_argument("--csv", action="store_true", default=None,
                   help="Also save the holder snapshot in CSV format")
    p.add_argument("--refresh", action="store_true",
                   help="Rebuild holder data from the deployment block even if a snapshot exists")
    p.add_argument("--debug", action="store_true", help="Enable debug output")
    p.add_argument("--config", default="config.yaml", help="Path to config.yaml")
    p.add_argument("--output-dir", dest="output_dir", default=None,
                   help="Directory for snapshot files (default from config)")
    return p


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        contract = normalize_address(args.contract)
        overrides = {"output": {"directory": args.output_dir}} if args.output_dir else None
        settings = load_settings(args.config, overrides)
    except (ValueError, RuntimeError) as e:
        print(f"ERROR {e}", file=sys.stderr)
        return 2
    if args.block < 0:
        print("ERROR --block must be a non negative block number", file=sys.stderr)
        return 2

    setup_logging(settings.log_level, debug=args.debug)
    write_csv = settings.output.csv if args.csv is None else args.csv

    def on_window(start: int, end: int, count: int):
        log.debug("Blocks %d..%d events %d", start, end, count)

    client = RpcClient(settings.rpc)
    try:
        summary = run_snapshot(
            client,
            settings,
            contract,
            start_block=args.block,
            write_csv=write_csv,
            refresh=args.refresh,
            on_window=on_window,
        )
    except (RpcError, UnknownContractTypeError, DeploymentBlockNotFoundError, SnapshotError, ValueError) as e:
        log.error("%s", e)
        return 1

    for line in format_report(summary, settings.output.top_n):
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
