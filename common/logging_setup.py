"""
common.logging_setup

Set up standard logging for the snapshot tools.
"""
import logging

def setup_logging(level="INFO", debug: bool = False):
    if debug:
        level = logging.DEBUG
    elif isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )
    # per request connection chatter drowns the scan progress at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
