import logging
from typing import NamedTuple, Optional

import numpy as np

from fmd_sharing.detector_config import RingConfig, SharingConfig, iter_rings, normalize_ring
from fmd_sharing.errors import NumericError
from fmd_sharing.geometry.strip_geometry import eta_cos_ratio, eta_from_strip
from fmd_sharing.io.event_data import FMDEvent
from fmd_sharing.sharing.cuts import CutProvider
from fmd_sharing.sharing.dead_strips import DeadStripMask
from fmd_sharing.sharing.diagnostics import DiagnosticsSink
from fmd_sharing.sharing.merge_engine import scan_sector
from fmd_sharing.sharing.signal import normalize_sector

logger = logging.getLogger(__name__)


class HitCounts(NamedTuple):
    single: int = 0
    double: int = 0
    triple: int = 0

    def __add__(self, other):
        return HitCounts(self.single + other.single,
                         self.double + other.double,
                         self.triple + other.triple)


class SharingFilter:
    """
    Merges strip signals shared between neighbouring strips.

    Parameters:
    -----------
    config : SharingConfig
        Run configuration
    cuts : CutProvider
        Low and high cuts per (detector, ring, eta)
    dead : DeadStripMask, optional
        Extra dead strips
    sink : DiagnosticsSink, optional
        Receives the per-decision observations
    """

    def __init__(self, config: Optional[SharingConfig], cuts: CutProvider,
                 dead: Optional[DeadStripMask] = None, sink: Optional[DiagnosticsSink] = None):
        self.config = config if config is not None else SharingConfig()
        self.cuts = cuts
        self.dead = dead if dead is not None else DeadStripMask()
        self.sink = sink if sink is not None else DiagnosticsSink()

    def prepare(self):
        """Compact the dead-strip mask; called automatically on the first event."""
        if not self.dead.finalized:
            self.dead.finalize()

    def new_output(self, event: FMDEvent) -> FMDEvent:
        """Zeroed output event; the stored signal is always angle corrected."""
        return FMDEvent.empty(fill=0.0, angle_corrected=True, vertex=event.vertex)

    def filter_event(self, event: FMDEvent):
        """
        Filter one event.

        Returns:
        --------
        tuple: (output_event, HitCounts)

        Raises
        ------
        MalformedEventError
            If the event lacks a ring or has arrays of the wrong shape;
            nothing is written in that case.
        """
        event.validate()
        self.prepare()

        output = self.new_output(event)
        counts = HitCounts()
        for detector, ring in iter_rings():
            counts = counts + self.filter_ring(event, detector, ring, output)

        self.sink.end_event()
        logger.debug("single=%9d, double=%9d, triple=%9d", *counts)
        return output, counts

    def filter_ring(self, event: FMDEvent, detector, ring, output: FMDEvent,
                    sink: Optional[DiagnosticsSink] = None) -> HitCounts:
        """Filter every sector of one ring into ``output``."""
        ring = normalize_ring(ring)
        key = (detector, ring)
        sink = sink if sink is not None else self.sink
        config = RingConfig(detector, ring)

        counts = HitCounts()
        phis = np.deg2rad(event.ring_phi(detector, ring))
        for sector in range(config.n_sectors):
            raw = event.multiplicity[key][sector]
            eta_in = event.eta[key][sector]
            mult = normalize_sector(raw, event.angle_corrected, self.config.correct_angles, eta_in)

            eta = eta_in
            eta_corr = None
            if self.config.recalculate_eta:
                eta, eta_corr = self._recalculated_eta(config, sector, eta_in, event.zvtx)

            scan = scan_sector(
                mult, eta,
                self.cuts.low_cuts(detector, ring, eta),
                self.cuts.high_cuts(detector, ring, eta),
                self.dead.sector_mask(detector, ring, sector, config.n_strips),
                eta_corr=eta_corr,
                phi=phis[sector],
                three_strip=self.config.three_strip_sharing,
                correct_angles=self.config.correct_angles,
                invalid_is_empty=self.config.invalid_is_empty,
                sink=sink,
                ring_key=key,
            )
            output.multiplicity[key][sector] = scan.merged
            if sector == 0:
                output.eta[key][0] = eta_in
            counts = counts + HitCounts(scan.n_single, scan.n_double, scan.n_triple)
        return counts

    @staticmethod
    def _recalculated_eta(config, sector, eta_old, zvtx):
        strips = np.arange(config.n_strips)
        eta_new = eta_from_strip(config.detector, config.ring, sector, strips, zvtx, config=config)
        corr = np.empty(config.n_strips)
        for t in strips:
            try:
                corr[t] = eta_cos_ratio(eta_new[t], eta_old[t])
            except NumericError:
                corr[t] = np.nan
        return eta_new, corr

    def print_config(self):
        """Print the filter settings"""
        print("SharingFilter:")
        print(f"  Debug:                  {self.config.debug}")
        print(f"  Use corrected angles:   {self.config.correct_angles}")
        print(f"  Consider invalid null:  {self.config.invalid_is_empty}")
        print(f"  Allow 3 strip merging:  {self.config.three_strip_sharing}")
        print(f"  Recalculate eta:        {self.config.recalculate_eta}")
        print(f"  Cut provider:           {type(self.cuts).__name__}")
        print(f"  Extra dead strips:      {len(self.dead)}")
