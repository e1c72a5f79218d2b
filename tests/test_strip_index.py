import pytest

from fmd_sharing.detector_config import get_ring_configs
from fmd_sharing.errors import ConfigurationError
from fmd_sharing.geometry.strip_index import (
    BitFieldCoder,
    max_packed_address,
    pack,
    parse_strip_name,
    strip_name,
    unpack,
    validate_address,
)


def _boundary_addresses():
    for (detector, ring), config in get_ring_configs().items():
        for sector in (0, 1, config.n_sectors - 2, config.n_sectors - 1):
            for strip in (0, 1, config.n_strips - 2, config.n_strips - 1):
                yield detector, ring, sector, strip


@pytest.mark.parametrize("address", list(_boundary_addresses()))
def test_pack_unpack_round_trip_at_boundaries(address):
    assert unpack(pack(*address)) == address


def test_pack_is_injective_over_all_strips():
    seen = set()
    n_total = 0
    for (detector, ring), config in get_ring_configs().items():
        for sector in range(config.n_sectors):
            for strip in range(config.n_strips):
                seen.add(pack(detector, ring, sector, strip))
                n_total += 1
    assert n_total == 51200
    assert len(seen) == n_total
    assert max(seen) == max_packed_address()
    assert min(seen) >= 0


def test_pack_accepts_ring_aliases():
    assert pack(2, 'o', 5, 7) == pack(2, 'O', 5, 7) == pack(2, 'outer', 5, 7)


@pytest.mark.parametrize("address", [
    (0, 'I', 0, 0),
    (4, 'I', 0, 0),
    (1, 'O', 0, 0),
    (2, 'X', 0, 0),
    (1, 'I', 20, 0),
    (2, 'O', 40, 0),
    (1, 'I', 0, 512),
    (3, 'O', 0, 256),
    (3, 'I', -1, 0),
])
def test_validate_address_rejects_out_of_range(address):
    with pytest.raises(ConfigurationError):
        validate_address(*address)


def test_validate_address_accepts_last_strip():
    assert validate_address(3, 'o', 39, 255) == (3, 'O', 39, 255)
    assert validate_address(1, 'i', 19, 511) == (1, 'I', 19, 511)


def test_strip_name_round_trip():
    name = strip_name(2, 'I', 3, 100)
    assert name == 'FMD2I[03,100]'
    assert parse_strip_name(name) == (2, 'I', 3, 100)
    assert parse_strip_name(' FMD3o[ 39, 255] ') == (3, 'O', 39, 255)


def test_parse_strip_name_rejects_garbage():
    with pytest.raises(ConfigurationError):
        parse_strip_name('FMD2I-3-100')


def test_bitfield_coder_rejects_overflow():
    coder = BitFieldCoder("a:2,b:3")
    assert coder.decode(coder.encode(a=3, b=7)) == {'a': 3, 'b': 7}
    with pytest.raises(ValueError):
        coder.encode(a=4)


def test_bitfield_coder_explicit_offset():
    coder = BitFieldCoder("a:2,b:8:4")
    assert coder.get_field('b').offset == 8
    assert coder.encode(b=1) == 1 << 8
