"""
Low and high multiplicity cuts consumed by the merge engine.

The engine only sees the :class:`CutProvider` capability. A non-positive cut
means no calibration is available for that bin; the comparisons in the engine
then never fire for the feature the cut controls.
"""

import logging
from typing import Dict, Optional, Sequence, Tuple

import hist
import numpy as np
import uproot

from fmd_sharing.detector_config import iter_rings, normalize_ring

logger = logging.getLogger(__name__)

MISSING_CUT = -1.0

RING_LABELS = ('FMD1i', 'FMD2i', 'FMD2o', 'FMD3i', 'FMD3o')


def ring_label(detector, ring) -> str:
    return f"FMD{detector}{normalize_ring(ring).lower()}"


class CutProvider:
    """Interface: low and high cut for (detector, ring, eta)."""

    def low_cut(self, detector, ring, eta) -> float:
        raise NotImplementedError

    def high_cut(self, detector, ring, eta) -> float:
        raise NotImplementedError

    def low_cuts(self, detector, ring, etas) -> np.ndarray:
        return np.array([self.low_cut(detector, ring, eta) for eta in np.asarray(etas)], dtype=float)

    def high_cuts(self, detector, ring, etas) -> np.ndarray:
        return np.array([self.high_cut(detector, ring, eta) for eta in np.asarray(etas)], dtype=float)


class FixedCuts(CutProvider):
    """
    Eta independent cuts.

    Parameters:
    -----------
    low : float
        Low cut for every ring
    high : float
        High cut for every ring
    per_ring : dict, optional
        {(detector, ring): (low, high)} overrides
    """

    def __init__(self, low: float = 0.15, high: float = MISSING_CUT,
                 per_ring: Optional[Dict[Tuple[int, str], Tuple[float, float]]] = None):
        self.low = float(low)
        self.high = float(high)
        self.per_ring = {}
        for (detector, ring), cuts in (per_ring or {}).items():
            self.per_ring[(int(detector), normalize_ring(ring))] = tuple(float(c) for c in cuts)

    def _cuts(self, detector, ring):
        return self.per_ring.get((int(detector), normalize_ring(ring)), (self.low, self.high))

    def low_cut(self, detector, ring, eta):
        return self._cuts(detector, ring)[0]

    def high_cut(self, detector, ring, eta):
        return self._cuts(detector, ring)[1]

    def low_cuts(self, detector, ring, etas):
        return np.full(np.shape(etas), self.low_cut(detector, ring, 0.0), dtype=float)

    def high_cuts(self, detector, ring, etas):
        return np.full(np.shape(etas), self.high_cut(detector, ring, 0.0), dtype=float)


class EtaBinnedCuts(CutProvider):
    """
    Cuts tabulated per ring over a common eta axis.

    Bins without calibration should hold a non-positive value; eta outside
    the axis and rings without a table give ``MISSING_CUT``.

    Parameters:
    -----------
    eta_edges : sequence of float
        Bin edges of the eta axis (n_bins + 1 values)
    low, high : dict
        {(detector, ring): array of n_bins cut values}
    """

    def __init__(self, eta_edges: Sequence[float], low: Dict, high: Dict):
        self.eta_edges = np.asarray(eta_edges, dtype=float)
        n_bins = self.eta_edges.size - 1
        if n_bins < 1 or np.any(np.diff(self.eta_edges) <= 0):
            raise ValueError("eta_edges must be strictly increasing with at least two edges")
        self.low = self._check_tables(low, n_bins)
        self.high = self._check_tables(high, n_bins)

    @staticmethod
    def _check_tables(tables, n_bins):
        checked = {}
        for (detector, ring), values in tables.items():
            values = np.asarray(values, dtype=float)
            if values.shape != (n_bins,):
                raise ValueError(f"Cut table for {ring_label(detector, ring)} has shape "
                                 f"{values.shape}, expected ({n_bins},)")
            checked[(int(detector), normalize_ring(ring))] = values
        return checked

    def _lookup(self, tables, detector, ring, etas):
        etas = np.asarray(etas, dtype=float)
        table = tables.get((int(detector), normalize_ring(ring)))
        if table is None:
            return np.full(etas.shape, MISSING_CUT)
        idx = np.searchsorted(self.eta_edges, etas, side='right') - 1
        inside = (idx >= 0) & (idx < table.size)
        return np.where(inside, table[np.clip(idx, 0, table.size - 1)], MISSING_CUT)

    def low_cut(self, detector, ring, eta):
        return float(self._lookup(self.low, detector, ring, eta))

    def high_cut(self, detector, ring, eta):
        return float(self._lookup(self.high, detector, ring, eta))

    def low_cuts(self, detector, ring, etas):
        return self._lookup(self.low, detector, ring, etas)

    def high_cuts(self, detector, ring, etas):
        return self._lookup(self.high, detector, ring, etas)

    @classmethod
    def from_root(cls, path, low_name='lowCuts', high_name='highCuts'):
        """
        Load a calibration snapshot: two TH2 (eta x ring) histograms whose y
        bins are FMD1i, FMD2i, FMD2o, FMD3i, FMD3o.
        """
        with uproot.open(path) as f:
            low_values, eta_edges, _ = f[low_name].to_numpy()
            high_values, high_edges, _ = f[high_name].to_numpy()

        if not np.allclose(eta_edges, high_edges):
            raise ValueError(f"{low_name} and {high_name} in {path} use different eta axes")

        low, high = {}, {}
        for ybin, key in enumerate(iter_rings()):
            if ybin >= low_values.shape[1]:
                logger.warning("No cut column for %s in %s", ring_label(*key), path)
                continue
            # empty bins are stored as zero, which reads as missing calibration
            low[key] = low_values[:, ybin]
            high[key] = high_values[:, ybin]
        return cls(eta_edges, low, high)


def tabulate_cuts(provider: CutProvider, eta_edges: Sequence[float]):
    """
    Summary of the cuts in use, evaluated at the eta bin centres.

    Returns two ``hist.Hist`` (eta x ring label), low and high; bins where the
    provider has no calibration stay empty.
    """
    eta_edges = np.asarray(eta_edges, dtype=float)
    centers = 0.5 * (eta_edges[1:] + eta_edges[:-1])

    def _book():
        return (
            hist.Hist.new.Var(eta_edges, name='eta', label=r'$\eta$')
            .StrCat(list(RING_LABELS), name='ring', label='Ring')
            .Double()
        )

    low_hist = _book()
    high_hist = _book()
    for detector, ring in iter_rings():
        label = ring_label(detector, ring)
        lows = provider.low_cuts(detector, ring, centers)
        highs = provider.high_cuts(detector, ring, centers)
        keep = lows > 0
        low_hist.fill(eta=centers[keep], ring=label, weight=lows[keep])
        keep = highs > 0
        high_hist.fill(eta=centers[keep], ring=label, weight=highs[keep])
    return low_hist, high_hist
