"""
Reading FMD events from ROOT files.

Each tree entry holds, per ring, the flattened (n_sectors * n_strips) arrays
``FMD<d><R>_mult``, ``FMD<d><R>_eta`` and optionally ``FMD<d><R>_phi``
(degrees), plus the scalars ``angle_corrected`` and ``vertex_x/y/z``.
"""

import os
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

import awkward as ak
import numpy as np
import uproot

from fmd_sharing.detector_config import get_ring_configs
from fmd_sharing.io.event_data import FMDEvent
from fmd_sharing.utils.parallel_config import get_optimal_worker_count


def ring_branch(detector, ring, quantity):
    return f"FMD{detector}{ring}_{quantity}"


def _branch_names(tree_keys, with_phi=True):
    names = []
    for (detector, ring) in get_ring_configs():
        names.append(ring_branch(detector, ring, 'mult'))
        names.append(ring_branch(detector, ring, 'eta'))
        phi = ring_branch(detector, ring, 'phi')
        if with_phi and phi in tree_keys:
            names.append(phi)
    for scalar in ('angle_corrected', 'vertex_x', 'vertex_y', 'vertex_z'):
        if scalar in tree_keys:
            names.append(scalar)
    return names


def _ring_array(record, name, shape):
    return np.asarray(ak.to_numpy(record[name]), dtype=float).reshape(shape)


def read_events(tree, entry_start: Optional[int] = None, entry_stop: Optional[int] = None,
                step_size: int = 100) -> Iterator[FMDEvent]:
    """
    Yield one FMDEvent per tree entry.

    Parameters:
    -----------
    tree : uproot.TTree
        Tree with the branches described in the module docstring
    entry_start, entry_stop : int, optional
        Entry range to read
    step_size : int
        Number of entries read per chunk
    """
    keys = set(tree.keys())
    names = _branch_names(keys)
    configs = get_ring_configs()

    for batch in tree.iterate(names, entry_start=entry_start, entry_stop=entry_stop,
                              step_size=step_size, library='ak'):
        for record in batch:
            mult, eta, phi = {}, {}, {}
            for key, config in configs.items():
                detector, ring = key
                mult[key] = _ring_array(record, ring_branch(detector, ring, 'mult'), config.shape)
                eta[key] = _ring_array(record, ring_branch(detector, ring, 'eta'), config.shape)
                phi_name = ring_branch(detector, ring, 'phi')
                if phi_name in names:
                    phi[key] = _ring_array(record, phi_name, config.shape)

            vertex = tuple(float(record[c]) if c in names else 0.0
                           for c in ('vertex_x', 'vertex_y', 'vertex_z'))
            angle_corrected = bool(record['angle_corrected']) if 'angle_corrected' in names else False
            yield FMDEvent(mult, eta, phi, angle_corrected=angle_corrected, vertex=vertex)


def open_single_file_with_error_handling(path: str, tree_name: str) -> Tuple[Optional[object], str, Optional[str]]:
    """
    Open a single ROOT file and return its event tree.

    Returns:
    --------
    tuple: (tree_object, path, error_message)
        tree_object is None if file failed to open
        error_message is None if successful
    """
    try:
        if not os.path.exists(path):
            return None, path, f"File does not exist: {path}"
        tree = uproot.open(f"{path}:{tree_name}")
        return tree, path, None
    except Exception as e:
        return None, path, f"Failed to open {path}: {str(e)}"


def open_files_parallel(paths: Sequence[str], tree_name: str = 'events',
                        max_workers: Optional[int] = None,
                        progress_callback: Optional[Callable] = None) -> Tuple[List[object], List[str]]:
    """
    Open multiple ROOT files in parallel.

    Parameters:
    -----------
    paths : sequence of str
        Files to open
    tree_name : str
        Name of the event tree in each file
    max_workers : int, optional
        Maximum number of worker threads
    progress_callback : callable, optional
        Function to call with progress updates (current_count, total_count)

    Returns:
    --------
    tuple: (successful_trees, failed_paths)
        successful_trees: opened trees in the order of ``paths``
        failed_paths: files that could not be opened
    """
    if max_workers is None:
        max_workers = get_optimal_worker_count(len(paths), io_bound=True)

    print(f"Opening {len(paths)} files using {max_workers} parallel workers...")

    results = [None] * len(paths)
    failed_paths = []
    start_time = time.time()

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_to_index = {
            executor.submit(open_single_file_with_error_handling, path, tree_name): i
            for i, path in enumerate(paths)
        }

        for completed_count, future in enumerate(as_completed(future_to_index), start=1):
            index = future_to_index[future]
            tree, path, error = future.result()

            if tree is not None:
                results[index] = tree
            else:
                failed_paths.append(path)
                print(f"Warning: {error}")

            if progress_callback:
                progress_callback(completed_count, len(paths))

    successful_trees = [tree for tree in results if tree is not None]
    print(f"Opened {len(successful_trees)}/{len(paths)} files in {time.time() - start_time:.2f}s")

    return successful_trees, failed_paths
