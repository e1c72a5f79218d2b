"""Strip positions and the pseudorapidity seen from a displaced vertex."""

from typing import Optional

import numpy as np

from fmd_sharing.detector_config import RingConfig
from fmd_sharing.errors import NumericError


def strip_radius(config: RingConfig, strip) -> np.ndarray:
    """Radius (cm) of the strip centre, strips evenly spaced in r."""
    r_min = config.geometry['r_min']
    r_max = config.geometry['r_max']
    pitch = (r_max - r_min) / config.n_strips
    return r_min + pitch * (np.asarray(strip, dtype=float) + 0.5)


def sector_z(config: RingConfig, sector) -> np.ndarray:
    """z (cm) of the sensor holding a sector; even hybrids sit half a cm closer."""
    hybrid = np.asarray(sector) // 2
    return config.geometry['z'] - 0.5 * ((hybrid % 2) == 0)


def eta_from_strip(detector, ring, sector, strip, zvtx: float = 0.0,
                   config: Optional[RingConfig] = None):
    """
    Pseudorapidity of a strip as seen from a vertex at ``zvtx``.

    Parameters:
    -----------
    detector, ring, sector, strip :
        Strip address; ``sector`` and ``strip`` may be arrays
    zvtx : float
        Vertex z position in cm
    config : RingConfig, optional
        Geometry to use instead of the nominal one

    Returns:
    --------
    float or np.ndarray
    """
    if config is None:
        config = RingConfig(detector, ring)
    r = strip_radius(config, strip)
    z = sector_z(config, sector)
    theta = np.arctan2(r, z - zvtx)
    eta = -np.log(np.tan(0.5 * theta))
    return eta if np.ndim(eta) else float(eta)


def eta_to_cos(eta):
    """cos(theta) of |eta|, always positive."""
    return np.cos(2 * np.arctan(np.exp(-np.abs(eta))))


def eta_cos_ratio(eta_new, eta_old):
    """
    Path-length correction when the strip eta is recomputed.

    Raises
    ------
    NumericError
        If the old eta sits on theta = pi/2.
    """
    cos_old = eta_to_cos(eta_old)
    if abs(cos_old) < 1e-12:
        raise NumericError(f"Cannot rescale signal at eta={eta_old}")
    return float(eta_to_cos(eta_new) / cos_old)
