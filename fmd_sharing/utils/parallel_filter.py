"""
Parallel sharing filter.

Rings share no state inside an event, so they can be scanned concurrently.
Each worker fills its own histogram sink; the sinks are added into the
filter's sink once every ring is done. Sector order inside a ring is kept.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Optional

from fmd_sharing.detector_config import iter_rings
from fmd_sharing.sharing.diagnostics import DiagnosticsSink, HistogramSink
from fmd_sharing.sharing.filter import HitCounts, SharingFilter

from .parallel_config import DEFAULT_RING_WORKERS

logger = logging.getLogger(__name__)


def _worker_sink(sharing_filter: SharingFilter) -> DiagnosticsSink:
    if isinstance(sharing_filter.sink, HistogramSink):
        return HistogramSink()
    if type(sharing_filter.sink) is DiagnosticsSink:
        return sharing_filter.sink
    raise TypeError(f"Cannot fan out to a {type(sharing_filter.sink).__name__}; "
                    "use filter_event for sinks that cannot be merged")


def filter_event_parallel(sharing_filter: SharingFilter, event, max_workers: Optional[int] = None):
    """
    Filter one event with one task per ring.

    Parameters:
    -----------
    sharing_filter : SharingFilter
        Configured filter; its sink must be a HistogramSink or the no-op sink
    event : FMDEvent
        Input event
    max_workers : int, optional
        Number of worker threads (default: one per ring, capped at the CPU count)

    Returns:
    --------
    tuple: (output_event, HitCounts), identical to SharingFilter.filter_event
    """
    event.validate()
    sharing_filter.prepare()

    if max_workers is None:
        max_workers = DEFAULT_RING_WORKERS

    output = sharing_filter.new_output(event)
    rings = list(iter_rings())
    sinks = [_worker_sink(sharing_filter) for _ in rings]
    results = [None] * len(rings)

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_index = {
            executor.submit(sharing_filter.filter_ring, event, detector, ring, output, sinks[i]): i
            for i, (detector, ring) in enumerate(rings)
        }
        for future in as_completed(future_to_index):
            index = future_to_index[future]
            results[index] = future.result()

    counts = HitCounts()
    for ring_counts in results:
        counts = counts + ring_counts

    if isinstance(sharing_filter.sink, HistogramSink):
        for sink in sinks:
            sharing_filter.sink += sink
    sharing_filter.sink.end_event()

    logger.debug("single=%9d, double=%9d, triple=%9d", *counts)
    return output, counts
