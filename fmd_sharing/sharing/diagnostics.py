"""
Diagnostics sinks for the sharing filter.

The merge engine reports what it sees at each decision. ``DiagnosticsSink``
ignores everything and is what the filter uses when nothing is attached;
``HistogramSink`` books one set of ``hist`` histograms per ring.
"""

from collections import defaultdict
from typing import Dict, Tuple

import hist
import numpy as np

from fmd_sharing.detector_config import iter_rings, normalize_ring
from fmd_sharing.sharing.merge_engine import Hit


class DiagnosticsSink:
    """Sink interface; every observation is a no-op here."""

    def before(self, ring_key, mult):
        pass

    def after(self, ring_key, merged):
        pass

    def neighbors_before(self, ring_key, mult, mult_next):
        pass

    def neighbors_after(self, ring_key, previous, merged):
        pass

    def before_after(self, ring_key, mult, merged):
        pass

    def hit(self, ring_key, kind, value, strip):
        pass

    def summed(self, ring_key, eta, phi, value):
        pass

    def end_event(self):
        pass


ELOSS_LABEL = r'$\Delta E/\Delta E_{mip}$'


def _eloss_hist(bins=640, start=-1, stop=15):
    return hist.Hist.new.Reg(bins, start, stop, name='eloss', label=ELOSS_LABEL).Double()


def _correlation_hist(first, second, first_label, second_label):
    n = int(16 / (15 / 300))
    return (
        hist.Hist.new.Reg(n, -1, 15, name=first, label=first_label)
        .Reg(n, -1, 15, name=second, label=second_label)
        .Double()
    )


class RingHistograms:
    """Histograms of one ring, filled in bulk from buffered observations"""

    def __init__(self, detector, ring):
        self.detector = int(detector)
        self.ring = normalize_ring(ring)
        self.name = f"FMD{self.detector}{self.ring.lower()}"
        inner = self.ring == 'I'
        n_strips = 512 if inner else 256
        n_sectors = 20 if inner else 40

        self.before = _eloss_hist()
        self.after = _eloss_hist()
        self.single = _eloss_hist(600, 0, 15)
        self.double = _eloss_hist(600, 0, 15)
        self.triple = _eloss_hist(600, 0, 15)
        self.single_per_strip = (
            hist.Hist.new.Reg(600, 0, 15, name='eloss', label=ELOSS_LABEL)
            .Reg(n_strips, 0, n_strips, name='strip', label='Strip #')
            .Double()
        )
        self.before_after = _correlation_hist('before', 'after', 'before', 'after')
        self.neighbors_before = _correlation_hist(
            'first', 'second', r'$\Delta E_{i}/\Delta E_{mip}$', r'$\Delta E_{i+1}/\Delta E_{mip}$')
        self.neighbors_after = _correlation_hist(
            'first', 'second', r'$\Delta E_{i}/\Delta E_{mip}$', r'$\Delta E_{i+1}/\Delta E_{mip}$')
        self.summed = (
            hist.Hist.new.Reg(200, -4, 6, name='eta', label=r'$\eta$')
            .Reg(n_sectors, 0, 2 * np.pi, name='phi', label=r'$\varphi$ [radians]')
            .Weight()
        )
        self._buffers = defaultdict(list)

    HISTOGRAMS = ('before', 'after', 'single', 'double', 'triple', 'single_per_strip',
                  'before_after', 'neighbors_before', 'neighbors_after', 'summed')

    def buffer(self, name, *values):
        self._buffers[name].append(values)

    def flush(self):
        """Fill the buffered observations into the histograms."""
        for name, rows in self._buffers.items():
            if not rows:
                continue
            columns = [np.asarray(col, dtype=float) for col in zip(*rows)]
            target = getattr(self, name)
            if name == 'summed':
                target.fill(columns[0], columns[1], weight=columns[2])
            else:
                target.fill(*columns)
        self._buffers.clear()

    def __iadd__(self, other):
        other.flush()
        self.flush()
        for name in self.HISTOGRAMS:
            setattr(self, name, getattr(self, name) + getattr(other, name))
        return self


class HistogramSink(DiagnosticsSink):
    """Books a RingHistograms per ring; observations are filled at end_event"""

    _HIT_HISTOGRAMS = {Hit.SINGLE: 'single', Hit.DOUBLE: 'double', Hit.TRIPLE: 'triple'}

    def __init__(self):
        self.rings: Dict[Tuple[int, str], RingHistograms] = {
            key: RingHistograms(*key) for key in iter_rings()
        }
        self.n_events = 0

    def __getitem__(self, ring_key):
        detector, ring = ring_key
        return self.rings[(int(detector), normalize_ring(ring))]

    def before(self, ring_key, mult):
        self.rings[ring_key].buffer('before', mult)

    def after(self, ring_key, merged):
        self.rings[ring_key].buffer('after', merged)

    def neighbors_before(self, ring_key, mult, mult_next):
        self.rings[ring_key].buffer('neighbors_before', mult, mult_next)

    def neighbors_after(self, ring_key, previous, merged):
        self.rings[ring_key].buffer('neighbors_after', previous, merged)

    def before_after(self, ring_key, mult, merged):
        self.rings[ring_key].buffer('before_after', mult, merged)

    def hit(self, ring_key, kind, value, strip):
        histos = self.rings[ring_key]
        histos.buffer(self._HIT_HISTOGRAMS[kind], value)
        if kind is Hit.SINGLE:
            histos.buffer('single_per_strip', value, strip)

    def summed(self, ring_key, eta, phi, value):
        self.rings[ring_key].buffer('summed', eta, phi, value)

    def end_event(self):
        for histos in self.rings.values():
            histos.flush()
        self.n_events += 1

    def flush(self):
        for histos in self.rings.values():
            histos.flush()

    def __iadd__(self, other):
        for key, histos in self.rings.items():
            histos += other.rings[key]
        self.n_events += other.n_events
        return self

    def scaled_summed(self, n_events=None):
        """
        Per-event summed signal of every ring, and its projection onto eta.

        Returns:
        --------
        dict : {ring name: (summed / n_events, eta projection)}
        """
        if n_events is None:
            n_events = self.n_events
        if n_events <= 0:
            return {}
        self.flush()
        scaled = {}
        for histos in self.rings.values():
            summed = histos.summed * (1.0 / n_events)
            scaled[histos.name] = (summed, summed.project('eta'))
        return scaled
