import logging

import numpy as np

from fmd_sharing.errors import ConfigurationError
from fmd_sharing.geometry.strip_index import (
    max_packed_address,
    pack,
    parse_strip_name,
    strip_name,
    unpack,
    validate_address,
)

logger = logging.getLogger(__name__)


class DeadStripMask:
    """
    Extra dead strips, forced invalid whatever their reading.

    Strips are stored by packed address. ``finalize`` compacts the set into a
    boolean bitmap; queries give the same answer before and after.
    """

    def __init__(self):
        self._dead = set()
        self._bits = None

    def add(self, detector, ring, sector, strip):
        """
        Mark a strip dead.

        Returns False (and logs a warning) when the address is outside the
        detector topology; nothing is added in that case.
        """
        try:
            detector, ring, sector, strip = validate_address(detector, ring, sector, strip)
        except ConfigurationError as exc:
            logger.warning("Not adding dead strip: %s", exc)
            return False

        self._dead.add(pack(detector, ring, sector, strip))
        self._bits = None
        return True

    def add_region(self, detector, ring, sector1, sector2, strip1, strip2):
        """Mark FMD<d><r>[sector1..sector2, strip1..strip2] dead, bounds inclusive."""
        added = 0
        for sector in range(sector1, sector2 + 1):
            for strip in range(strip1, strip2 + 1):
                added += self.add(detector, ring, sector, strip)
        return added

    def is_dead(self, detector, ring, sector, strip):
        try:
            packed = pack(detector, ring, sector, strip)
        except ValueError:
            return False
        if self._bits is not None:
            return packed < self._bits.size and bool(self._bits[packed])
        return packed in self._dead

    def sector_mask(self, detector, ring, sector, n_strips):
        """Boolean array of the dead strips in one sector."""
        if not self._dead:
            return np.zeros(n_strips, dtype=bool)
        # strip occupies the lowest bits, so a sector is a contiguous range
        base = pack(detector, ring, sector, 0)
        if self._bits is not None:
            return self._bits[base:base + n_strips].copy()
        return np.array([base + strip in self._dead for strip in range(n_strips)], dtype=bool)

    def finalize(self):
        """Compact the set into a bitmap indexed by packed address."""
        bits = np.zeros(max_packed_address() + 1, dtype=bool)
        if self._dead:
            bits[np.fromiter(self._dead, dtype=np.int64)] = True
        self._bits = bits

    @property
    def finalized(self):
        return self._bits is not None

    def __len__(self):
        return len(self._dead)

    def __contains__(self, address):
        return self.is_dead(*address)

    def names(self):
        """Masked strips as 'FMD<d><r>[ss,ttt]', in packed order."""
        return [strip_name(*unpack(packed)) for packed in sorted(self._dead)]

    @classmethod
    def from_names(cls, names):
        """Build a mask from strip names; unparseable names are logged and skipped."""
        mask = cls()
        for name in names:
            try:
                address = parse_strip_name(name)
            except ConfigurationError as exc:
                logger.warning("Skipping dead strip entry: %s", exc)
                continue
            mask.add(*address)
        return mask
