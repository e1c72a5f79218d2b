import re

from fmd_sharing.detector_config import DETECTOR_RINGS, RingConfig, normalize_ring
from fmd_sharing.errors import ConfigurationError


# Strip in the lowest bits, then sector, ring (0 = inner, 1 = outer), detector
STRIP_DESCRIPTOR = "strip:9,sector:6,ring:1,detector:2"


class BitFieldElement:
    """One named field of a packed strip address"""
    def __init__(self, name, offset, width):
        """
        Args:
            name: Field name
            offset: Bit offset
            width: Bit width
        """
        self.name = name
        self.offset = offset
        self.width = width

        # Create mask for this field
        self.mask = ((1 << self.width) - 1) << offset
        self.max_val = (1 << self.width) - 1

    def value(self, packed):
        """Extract this field's value from a packed address"""
        # Convert to integer if numpy type
        packed = int(packed)
        return (packed & self.mask) >> self.offset

    def encode(self, value):
        value = int(value)
        if value < 0 or value > self.max_val:
            raise ValueError(f"Value {value} does not fit field {self.name} ({self.width} bits)")
        return value << self.offset


class BitFieldCoder:
    """Packs and unpacks named unsigned bitfields into a single integer"""
    def __init__(self, descriptor):
        """
        Args:
            descriptor: Field descriptor string e.g. "strip:9,sector:6,ring:1,detector:2"
        """
        self.fields = []
        self.field_map = {}

        # Parse descriptor string
        offset = 0
        for field_desc in descriptor.split(','):
            parts = field_desc.strip().split(':')

            if len(parts) == 2:
                # Just name:width
                name = parts[0]
                width = int(parts[1])
                this_offset = offset
                offset += width
            elif len(parts) == 3:
                # name:offset:width
                name = parts[0]
                this_offset = int(parts[1])
                width = int(parts[2])
                offset = this_offset + width
            else:
                raise ValueError(f"Invalid field descriptor: {field_desc}")

            field = BitFieldElement(name, this_offset, width)
            self.fields.append(field)
            self.field_map[name] = len(self.fields) - 1

        self.total_width = offset

    def get_field(self, name):
        """Get a field by name"""
        if name not in self.field_map:
            raise KeyError(f"Unknown field: {name}")
        return self.fields[self.field_map[name]]

    def encode(self, **values):
        packed = 0
        for field in self.fields:
            packed |= field.encode(values.get(field.name, 0))
        return packed

    def decode(self, packed):
        """Decode all fields from a packed address"""
        packed = int(packed)
        return {field.name: field.value(packed) for field in self.fields}


_CODER = BitFieldCoder(STRIP_DESCRIPTOR)


def pack(detector, ring, sector, strip):
    """
    Pack a strip address into a single non-negative integer.

    Pure and bijective over valid addresses; no topology check is done here,
    see :func:`validate_address`.
    """
    ring_bit = 0 if normalize_ring(ring) == 'I' else 1
    return _CODER.encode(strip=strip, sector=sector, ring=ring_bit, detector=detector)


def unpack(packed):
    """Inverse of :func:`pack`, returns (detector, ring, sector, strip)."""
    fields = _CODER.decode(packed)
    ring = 'I' if fields['ring'] == 0 else 'O'
    return fields['detector'], ring, fields['sector'], fields['strip']


def max_packed_address():
    """Largest packed value of a valid address (FMD3O[39,255])."""
    outer = RingConfig(3, 'O')
    return pack(3, 'O', outer.n_sectors - 1, outer.n_strips - 1)


def validate_address(detector, ring, sector, strip):
    """
    Check a strip address against the detector topology.

    Raises
    ------
    ConfigurationError
        If the detector, ring, sector or strip is out of range.
    """
    if detector not in DETECTOR_RINGS:
        raise ConfigurationError(f"Invalid detector FMD{detector}")
    try:
        ring = normalize_ring(ring)
    except ValueError:
        raise ConfigurationError(f"Invalid ring FMD{detector}{ring}") from None
    if ring not in DETECTOR_RINGS[detector]:
        raise ConfigurationError(f"Invalid ring FMD{detector}{ring}")

    config = RingConfig(detector, ring)
    if not 0 <= sector < config.n_sectors:
        raise ConfigurationError(f"Invalid sector FMD{detector}{ring}[{sector:02d}]")
    if not 0 <= strip < config.n_strips:
        raise ConfigurationError(f"Invalid strip FMD{detector}{ring}[{sector:02d},{strip:03d}]")
    return detector, ring, sector, strip


def strip_name(detector, ring, sector, strip):
    return f"FMD{detector}{normalize_ring(ring)}[{sector:02d},{strip:03d}]"


_NAME_RE = re.compile(r"^\s*FMD([0-9])([IiOo])\[\s*(\d+)\s*,\s*(\d+)\s*\]\s*$")


def parse_strip_name(name):
    """Parse 'FMD2I[03,100]' into (2, 'I', 3, 100)."""
    match = _NAME_RE.match(name)
    if match is None:
        raise ConfigurationError(f"Cannot parse strip name: {name!r}")
    detector, ring, sector, strip = match.groups()
    return int(detector), ring.upper(), int(sector), int(strip)
