import logging

import numpy as np

from fmd_sharing.sharing.dead_strips import DeadStripMask


def test_add_and_query():
    mask = DeadStripMask()
    assert mask.add(2, 'I', 3, 100)
    assert mask.is_dead(2, 'I', 3, 100)
    assert mask.is_dead(2, 'i', 3, 100)
    assert not mask.is_dead(2, 'I', 3, 101)
    assert not mask.is_dead(2, 'O', 3, 100)
    assert (2, 'I', 3, 100) in mask
    assert len(mask) == 1


def test_invalid_entries_are_reported_and_skipped(caplog):
    mask = DeadStripMask()
    with caplog.at_level(logging.WARNING, logger='fmd_sharing.sharing.dead_strips'):
        assert not mask.add(4, 'I', 0, 0)
        assert not mask.add(1, 'O', 0, 0)
        assert not mask.add(1, 'I', 20, 0)
        assert not mask.add(3, 'O', 0, 256)
    assert len(mask) == 0
    assert len(caplog.records) == 4
    assert 'Invalid detector FMD4' in caplog.text


def test_add_region_is_inclusive():
    mask = DeadStripMask()
    assert mask.add_region(2, 'O', 0, 1, 10, 12) == 6
    for sector in (0, 1):
        for strip in (10, 11, 12):
            assert mask.is_dead(2, 'O', sector, strip)
    assert not mask.is_dead(2, 'O', 2, 10)
    assert not mask.is_dead(2, 'O', 0, 13)


def test_add_region_skips_out_of_range_part():
    mask = DeadStripMask()
    assert mask.add_region(1, 'I', 19, 20, 511, 512) == 1
    assert mask.is_dead(1, 'I', 19, 511)


def test_queries_agree_before_and_after_finalize():
    mask = DeadStripMask()
    mask.add(1, 'I', 0, 0)
    mask.add(3, 'O', 39, 255)
    mask.add_region(2, 'I', 5, 5, 200, 210)
    probes = [(1, 'I', 0, 0), (1, 'I', 0, 1), (3, 'O', 39, 255), (3, 'O', 39, 254),
              (2, 'I', 5, 205), (2, 'I', 4, 205), (9, 'I', 0, 0)]
    before = [mask.is_dead(*p) for p in probes]
    sector_before = mask.sector_mask(2, 'I', 5, 512)

    mask.finalize()
    assert mask.finalized
    assert [mask.is_dead(*p) for p in probes] == before
    np.testing.assert_array_equal(mask.sector_mask(2, 'I', 5, 512), sector_before)
    assert sector_before.sum() == 11
    assert sector_before[200] and sector_before[210] and not sector_before[211]


def test_add_after_finalize_is_seen():
    mask = DeadStripMask()
    mask.finalize()
    mask.add(2, 'O', 1, 1)
    assert mask.is_dead(2, 'O', 1, 1)


def test_empty_sector_mask():
    assert not DeadStripMask().sector_mask(1, 'I', 0, 512).any()


def test_names_round_trip():
    mask = DeadStripMask.from_names(['FMD2I[03,100]', 'FMD1I[00,000]', 'nonsense', 'FMD1O[00,000]'])
    assert mask.names() == ['FMD1I[00,000]', 'FMD2I[03,100]']
