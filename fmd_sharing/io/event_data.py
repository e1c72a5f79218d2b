"""Per-event strip data: one (n_sectors, n_strips) array per ring."""

from typing import Dict, Optional, Tuple

import numpy as np

from fmd_sharing.detector_config import get_ring_configs, iter_rings, normalize_ring
from fmd_sharing.errors import MalformedEventError

RingKey = Tuple[int, str]


class FMDEvent:
    """
    Strip readings of one event.

    Parameters:
    -----------
    multiplicity : dict
        {(detector, ring): array (n_sectors, n_strips)} of signals,
        ``INVALID_MULT`` for unusable strips
    eta : dict
        Same layout, pseudorapidity per strip
    phi : dict, optional
        Same layout, azimuth per strip in degrees
    angle_corrected : bool
        Whether the signals are already angle corrected
    vertex : tuple
        (x, y, z) of the event vertex in cm
    """

    def __init__(self, multiplicity: Dict[RingKey, np.ndarray], eta: Dict[RingKey, np.ndarray],
                 phi: Optional[Dict[RingKey, np.ndarray]] = None, angle_corrected=False,
                 vertex=(0.0, 0.0, 0.0)):
        self.multiplicity = {self._key(k): np.asarray(v, dtype=float) for k, v in multiplicity.items()}
        self.eta = {self._key(k): np.asarray(v, dtype=float) for k, v in eta.items()}
        self.phi = {self._key(k): np.asarray(v, dtype=float) for k, v in (phi or {}).items()}
        self.angle_corrected = bool(angle_corrected)
        self.vertex = tuple(float(c) for c in vertex)

    @staticmethod
    def _key(key):
        detector, ring = key
        return int(detector), normalize_ring(ring)

    @classmethod
    def empty(cls, fill=0.0, angle_corrected=False, vertex=(0.0, 0.0, 0.0)):
        """Event with every strip set to ``fill`` and zero eta/phi."""
        configs = get_ring_configs()
        mult = {key: np.full(cfg.shape, fill, dtype=float) for key, cfg in configs.items()}
        eta = {key: np.zeros(cfg.shape) for key, cfg in configs.items()}
        phi = {key: np.zeros(cfg.shape) for key, cfg in configs.items()}
        return cls(mult, eta, phi, angle_corrected, vertex)

    @property
    def zvtx(self):
        return self.vertex[2]

    def ring_phi(self, detector, ring):
        """Azimuth of a ring in degrees; sector centres when the input has none."""
        key = self._key((detector, ring))
        if key in self.phi:
            return self.phi[key]
        n_sectors, n_strips = self.multiplicity[key].shape
        centres = (np.arange(n_sectors) + 0.5) * 360.0 / n_sectors
        return np.repeat(centres[:, None], n_strips, axis=1)

    def validate(self):
        """
        Check that every ring is present with its nominal shape.

        Raises
        ------
        MalformedEventError
        """
        configs = get_ring_configs()
        if not self.multiplicity:
            raise MalformedEventError("Event has no strip data")
        for key in iter_rings():
            shape = configs[key].shape
            for label, arrays in (('multiplicity', self.multiplicity), ('eta', self.eta)):
                if key not in arrays:
                    raise MalformedEventError(f"Event is missing {label} for FMD{key[0]}{key[1]}")
                if arrays[key].shape != shape:
                    raise MalformedEventError(
                        f"FMD{key[0]}{key[1]} {label} has shape {arrays[key].shape}, expected {shape}")
            if key in self.phi and self.phi[key].shape != shape:
                raise MalformedEventError(
                    f"FMD{key[0]}{key[1]} phi has shape {self.phi[key].shape}, expected {shape}")

    def n_strips(self):
        return sum(arr.size for arr in self.multiplicity.values())
