# ingestion/fetcher.py
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from common.utils import chunked
from etl.events import EVENT_TOPICS, TransferEvent, decode_logs
from ingestion.rpc import RpcClient

log = logging.getLogger(__name__)

LOG_WINDOW = 1000

WindowCallback = Callable[[int, int, int], None]


def fetch_events(
    client: RpcClient,
    address: str,
    event: str,
    from_block: int,
    to_block: int,
    window: int = LOG_WINDOW,
    on_window: Optional[WindowCallback] = None,
) -> List[TransferEvent]:
    """
    Fetch and decode every `event` log of `address` in [from_block, to_block].

    Windows are queried one after another in ascending block order so the
    result is block ordered. A failing window aborts the whole fetch.
    """
    if event not in EVENT_TOPICS:
        raise ValueError(f"unsupported event {event!r}, expected one of {sorted(EVENT_TOPICS)}")
    if from_block < 0:
        raise ValueError("from_block must be a non negative integer")

    topics = [EVENT_TOPICS[event]]
    events: List[TransferEvent] = []
    for start, end in chunked(from_block, to_block, window):
        log.debug("Fetching %s events from block %d to %d", event, start, end)
        raw = client.get_logs(address, start, end, topics)
        decoded = decode_logs(raw)
        events.extend(decoded)
        if on_window is not None:
            on_window(start, end, len(decoded))

    log.info("Fetched %d %s events in blocks %d..%d", len(events), event, from_block, to_block)
    return events


__all__ = ["fetch_events", "LOG_WINDOW"]
