"""
Configuration for parallel processing parameters.
"""

import os

from fmd_sharing.detector_config import DETECTOR_RINGS

N_RINGS = sum(len(rings) for rings in DETECTOR_RINGS.values())


def get_optimal_worker_count(num_tasks: int, io_bound: bool = True) -> int:
    """Get optimal number of workers based on system resources."""
    cpu_count = os.cpu_count() or 1

    if io_bound:
        # For I/O bound operations, use more workers than CPU cores
        optimal = min(32, cpu_count + 4, num_tasks)
    else:
        # For CPU bound operations, use number of CPU cores
        optimal = min(cpu_count, num_tasks)

    return max(1, optimal)


# Default configuration
DEFAULT_RING_WORKERS = get_optimal_worker_count(N_RINGS, io_bound=False)
