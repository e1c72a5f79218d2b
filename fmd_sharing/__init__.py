"""Sharing correction for the strips of the forward multiplicity detector."""

from fmd_sharing.detector_config import SharingConfig
from fmd_sharing.io.event_data import FMDEvent
from fmd_sharing.sharing.cuts import EtaBinnedCuts, FixedCuts
from fmd_sharing.sharing.dead_strips import DeadStripMask
from fmd_sharing.sharing.filter import HitCounts, SharingFilter
from fmd_sharing.sharing.signal import INVALID_MULT

__version__ = '0.1'

__all__ = [
    'DeadStripMask',
    'EtaBinnedCuts',
    'FMDEvent',
    'FixedCuts',
    'HitCounts',
    'INVALID_MULT',
    'SharingConfig',
    'SharingFilter',
]
