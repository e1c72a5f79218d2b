"""
Signal normalisation: bring a raw strip reading into the angle-corrected or
uncorrected representation that the merge engine works in.
"""

import math

import numpy as np

from fmd_sharing.errors import NumericError

# Multiplicity marker of the reconstruction for dead channels and gaps
INVALID_MULT = 1024.0

_MIN_COS = 1e-12


def theta_from_eta(eta):
    """Polar angle of ``eta``, shifted by -pi for negative eta so cos keeps its sign."""
    theta = 2 * math.atan(math.exp(-eta))
    if eta < 0:
        theta -= math.pi
    return theta


def angle_correct(mult, eta):
    """Angle correct the signal: scale by cos(theta)."""
    return mult * math.cos(theta_from_eta(eta))


def de_angle_correct(mult, eta):
    """
    Undo the angle correction: divide by cos(theta).

    Raises
    ------
    NumericError
        If cos(theta) vanishes (eta on the theta = pi/2 boundary).
    """
    cos_theta = math.cos(theta_from_eta(eta))
    if abs(cos_theta) < _MIN_COS:
        raise NumericError(f"Angle de-correction undefined at eta={eta}")
    return mult / cos_theta


def normalize_signal(raw, is_angle_corrected, want_angle_corrected, eta):
    """
    Convert a raw reading to the wanted angle-correction state.

    INVALID and zero readings, and readings already in the wanted state, are
    returned as they are.
    """
    if (raw == INVALID_MULT
            or raw == 0
            or bool(is_angle_corrected) == bool(want_angle_corrected)):
        return raw
    if want_angle_corrected:
        return angle_correct(raw, eta)
    return de_angle_correct(raw, eta)


def normalize_sector(raw, is_angle_corrected, want_angle_corrected, eta):
    """
    Normalise every strip of a sector.

    Strips whose normalisation raises :class:`NumericError` come back as
    ``INVALID_MULT``.
    """
    raw = np.asarray(raw, dtype=float)
    out = raw.copy()
    if bool(is_angle_corrected) == bool(want_angle_corrected):
        return out
    for t, value in enumerate(raw):
        try:
            out[t] = normalize_signal(value, is_angle_corrected, want_angle_corrected, eta[t])
        except NumericError:
            out[t] = INVALID_MULT
    return out
