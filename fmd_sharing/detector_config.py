import logging

logger = logging.getLogger(__name__)


class RingConfig:
    """Configuration class for the rings of the forward multiplicity detector"""

    # Default ring geometry, radii in cm
    DEFAULT_RING_GEOMETRY = {
        'I': {'n_sectors': 20, 'n_strips': 512, 'r_min': 4.5213, 'r_max': 17.2},
        'O': {'n_sectors': 40, 'n_strips': 256, 'r_min': 15.4, 'r_max': 28.0},
    }

    # Nominal z position of each ring in cm
    DEFAULT_RING_Z = {
        (1, 'I'): 320.266,
        (2, 'I'): 83.666,
        (2, 'O'): 74.966,
        (3, 'I'): -63.066,
        (3, 'O'): -74.966,
    }

    def __init__(self, detector, ring, geometry=None):
        """
        Parameters:
        -----------
        detector : int
            Sub-detector number (1, 2 or 3)
        ring : str
            Ring identifier ('I' or 'O')
        geometry : dict, optional
            Override default ring geometry
        """
        self.detector = int(detector)
        self.ring = normalize_ring(ring)
        self.name = f"FMD{self.detector}{self.ring.lower()}"

        self.geometry = dict(self.DEFAULT_RING_GEOMETRY[self.ring])
        self.geometry['z'] = self.DEFAULT_RING_Z[(self.detector, self.ring)]
        if geometry:
            self.geometry.update(geometry)

    @property
    def key(self):
        return (self.detector, self.ring)

    @property
    def n_sectors(self):
        return self.geometry['n_sectors']

    @property
    def n_strips(self):
        return self.geometry['n_strips']

    @property
    def shape(self):
        return (self.n_sectors, self.n_strips)

    def __repr__(self):
        return f"RingConfig({self.name}, {self.n_sectors}x{self.n_strips})"


DETECTOR_RINGS = {1: ('I',), 2: ('I', 'O'), 3: ('I', 'O')}

_RING_ALIASES = {'i': 'I', 'inner': 'I', 'o': 'O', 'outer': 'O'}


def normalize_ring(ring):
    """Map 'I', 'i', 'inner' (and the outer equivalents) onto 'I' or 'O'."""
    try:
        return _RING_ALIASES[str(ring).lower()]
    except KeyError:
        raise ValueError(f"Unknown ring identifier: {ring!r}") from None


def get_ring_configs():

    RING_CONFIGS = {}
    for detector, rings in DETECTOR_RINGS.items():
        for ring in rings:
            config = RingConfig(detector, ring)
            RING_CONFIGS[config.key] = config

    return RING_CONFIGS


def iter_rings():
    """Yield (detector, ring) in the fixed scan order FMD1I, FMD2I, FMD2O, FMD3I, FMD3O."""
    for detector, rings in DETECTOR_RINGS.items():
        for ring in rings:
            yield detector, ring


class SharingConfig:
    """Run configuration of the sharing filter, set once before processing"""

    DEFAULTS = {
        # Store the merged signal angle corrected (see SharingFilter for polarity)
        'correct_angles': False,
        'three_strip_sharing': True,
        'invalid_is_empty': False,
        'recalculate_eta': False,
        'debug': 0,
    }

    def __init__(self, **kwargs):
        unknown = set(kwargs) - set(self.DEFAULTS)
        if unknown:
            raise TypeError(f"Unknown sharing options: {sorted(unknown)}")
        for name, default in self.DEFAULTS.items():
            setattr(self, name, kwargs.get(name, default))

    @classmethod
    def from_dict(cls, options):
        """Build a configuration from a dict, skipping keys that are not options."""
        known = {}
        for name, value in options.items():
            if name in cls.DEFAULTS:
                known[name] = value
            else:
                logger.warning("Ignoring unknown sharing option %r", name)
        return cls(**known)

    def as_dict(self):
        return {name: getattr(self, name) for name in self.DEFAULTS}

    def __repr__(self):
        args = ', '.join(f"{k}={v!r}" for k, v in self.as_dict().items())
        return f"SharingConfig({args})"
