"""
Sharing merge engine.

A single left-to-right pass over the strips of one sector. Each strip is
merged only with its right-hand neighbours: a pair of strips is either merged
at once (double hit), or deferred by one strip so the next step can decide
whether a third strip joins (triple hit) or not (double hit).

The pass is an explicit state machine, :func:`advance`, carried across
strips in a :class:`ScanState`; :func:`scan_sector` feeds it and handles
invalid, dead and empty strips.
"""

import enum
from typing import NamedTuple, Optional

import numpy as np

from fmd_sharing.sharing.signal import INVALID_MULT, angle_correct


class Phase(enum.Enum):
    IDLE = 'idle'
    # a two strip sum is waiting for the next strip to decide double/triple
    DEFERRED = 'deferred'
    # this strip was folded into the previous strip's merge
    CONSUMED = 'consumed'


class Hit(enum.IntEnum):
    NONE = 0
    SINGLE = 1
    DOUBLE = 2
    TRIPLE = 3


class ScanState(NamedTuple):
    phase: Phase = Phase.IDLE
    pending: float = 0.0
    # both strips of the last merge candidate were below the high cut
    two_low: bool = False


IDLE = ScanState()


class Step(NamedTuple):
    state: ScanState
    energy: float
    hit: Hit
    skipped: bool = False


class SectorScan(NamedTuple):
    merged: np.ndarray
    n_single: int
    n_double: int
    n_triple: int


def advance(state: ScanState, mult, mult_next, mult_next_next,
            low_cut, high_cut, three_strip=True) -> Step:
    """
    One transition of the merge state machine for a strip with a valid,
    non-zero signal.

    Parameters:
    -----------
    state : ScanState
        State left by the previous strip
    mult, mult_next, mult_next_next : float
        Signal in this strip and the two to its right (0 when absent)
    low_cut, high_cut : float
        Cuts at this strip's eta; non-positive means no calibration
    three_strip : bool
        Allow a deferred pair to absorb a third strip

    Returns:
    --------
    Step
        New state, the energy to store at this strip, the hit classified
        here (if any) and whether the strip was skipped as consumed.
    """
    next_valid = mult_next > low_cut
    next_small = mult_next < high_cut

    if state.phase is Phase.DEFERRED:
        if three_strip and next_valid and (next_small or state.two_low):
            total = state.pending + mult_next
            return Step(ScanState(Phase.CONSUMED, 0.0, False), total, Hit.TRIPLE)
        return Step(ScanState(Phase.IDLE, 0.0, state.two_low), state.pending, Hit.DOUBLE)

    if state.phase is Phase.CONSUMED:
        return Step(ScanState(Phase.IDLE, 0.0, state.two_low), 0.0, Hit.NONE, skipped=True)

    this_valid = mult > low_cut
    this_small = mult < high_cut
    two_low = state.two_low

    if this_valid and next_valid and (this_small or next_small):
        if this_small and next_small:
            two_low = True
        # bigger strip first and nothing after: merge now rather than wait
        if mult > mult_next and mult_next_next < low_cut:
            return Step(ScanState(Phase.CONSUMED, 0.0, two_low), mult + mult_next, Hit.DOUBLE)
        pending = mult + mult_next
        if pending > 0:
            return Step(ScanState(Phase.DEFERRED, pending, two_low), 0.0, Hit.NONE)
        return Step(ScanState(Phase.IDLE, 0.0, two_low), 0.0, Hit.NONE)

    if this_valid and mult > 0:
        return Step(ScanState(Phase.IDLE, 0.0, two_low), mult, Hit.SINGLE)
    return Step(ScanState(Phase.IDLE, 0.0, two_low), 0.0, Hit.NONE)


def _neighbour(values, t):
    if t >= values.size:
        return 0.0
    value = values[t]
    return 0.0 if value == INVALID_MULT else float(value)


def scan_sector(mult, eta, low_cuts, high_cuts, dead=None, *,
                eta_corr: Optional[np.ndarray] = None,
                phi: Optional[np.ndarray] = None,
                three_strip=True, correct_angles=False, invalid_is_empty=False,
                sink=None, ring_key=None) -> SectorScan:
    """
    Merge the shared signals of one sector.

    Parameters:
    -----------
    mult : np.ndarray
        Normalised signal per strip, ``INVALID_MULT`` for invalid readings
    eta : np.ndarray
        Pseudorapidity per strip (used for output angle correction)
    low_cuts, high_cuts : np.ndarray
        Cuts per strip, evaluated at the strip's eta
    dead : np.ndarray of bool, optional
        Strips forced invalid
    eta_corr : np.ndarray, optional
        Per strip factor applied to the strip and its two neighbours when the
        eta was recomputed; NaN marks a strip that could not be rescaled
    phi : np.ndarray, optional
        Azimuth per strip in radians, only passed on to the sink
    three_strip : bool
        Allow three strip merging
    correct_angles : bool
        Signals are already in the stored representation; when False the
        merged value is angle corrected before it is stored
    invalid_is_empty : bool
        Read an invalid signal as an empty strip (dead strips stay invalid)
    sink : DiagnosticsSink, optional
        Receives the per-decision observations
    ring_key : tuple, optional
        (detector, ring) passed to the sink

    Returns:
    --------
    SectorScan
        Merged array (same length as ``mult``) and the hit counts.
    """
    mult = np.asarray(mult, dtype=float)
    n_strips = mult.size
    merged = np.zeros(n_strips, dtype=float)
    if phi is None:
        phi = np.zeros(n_strips)
    counts = {Hit.SINGLE: 0, Hit.DOUBLE: 0, Hit.TRIPLE: 0}

    state = IDLE
    for t in range(n_strips):
        this = float(mult[t])
        nxt = _neighbour(mult, t + 1)
        nxt_nxt = _neighbour(mult, t + 2) if three_strip else 0.0
        strip_eta = float(eta[t])

        if this == INVALID_MULT and invalid_is_empty:
            this = 0.0

        if eta_corr is not None and this > 0 and this != INVALID_MULT:
            corr = eta_corr[t]
            if np.isfinite(corr):
                this *= corr
                nxt *= corr
                nxt_nxt *= corr
            else:
                this = INVALID_MULT

        if this == INVALID_MULT or (dead is not None and dead[t]):
            merged[t] = INVALID_MULT
            if sink is not None:
                sink.before(ring_key, -1.0)
            this = INVALID_MULT

        if this == INVALID_MULT or this == 0:
            if this == 0 and sink is not None:
                sink.summed(ring_key, strip_eta, phi[t], 0.0)
            # flush a deferred pair into the strip that started it
            if state.phase is Phase.DEFERRED and state.pending > 0 and t > 0:
                merged[t - 1] = state.pending
            state = IDLE
            continue

        if sink is not None:
            sink.before(ring_key, this)
            if t < n_strips - 1:
                sink.neighbors_before(ring_key, this, nxt)

        step = advance(state, this, nxt, nxt_nxt, low_cuts[t], high_cuts[t], three_strip)
        state = step.state
        if step.skipped:
            continue

        if step.hit is not Hit.NONE:
            counts[step.hit] += 1
            if sink is not None:
                sink.hit(ring_key, step.hit, step.energy, t)

        energy = step.energy
        if not correct_angles:
            energy = angle_correct(energy, strip_eta)

        if sink is not None:
            if t != 0:
                sink.neighbors_after(ring_key, merged[t - 1], energy)
            sink.before_after(ring_key, this, energy)
            if energy > 0:
                sink.after(ring_key, energy)
            sink.summed(ring_key, strip_eta, phi[t], energy)

        merged[t] = energy

    # a pair still deferred after the last strip is dropped
    return SectorScan(merged, counts[Hit.SINGLE], counts[Hit.DOUBLE], counts[Hit.TRIPLE])
