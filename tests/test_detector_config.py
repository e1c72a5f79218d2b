import logging

import pytest

from fmd_sharing.detector_config import (RingConfig, SharingConfig, get_ring_configs, iter_rings,
                                         normalize_ring)


def test_ring_order_and_shapes():
    assert list(iter_rings()) == [(1, 'I'), (2, 'I'), (2, 'O'), (3, 'I'), (3, 'O')]
    configs = get_ring_configs()
    assert configs[(1, 'I')].shape == (20, 512)
    assert configs[(3, 'O')].shape == (40, 256)
    assert configs[(2, 'O')].name == 'FMD2o'


@pytest.mark.parametrize('alias, ring', [('I', 'I'), ('i', 'I'), ('inner', 'I'),
                                          ('O', 'O'), ('o', 'O'), ('Outer', 'O')])
def test_normalize_ring(alias, ring):
    assert normalize_ring(alias) == ring


def test_normalize_ring_rejects_unknown():
    with pytest.raises(ValueError):
        normalize_ring('X')


def test_ring_geometry_override():
    config = RingConfig(2, 'O', geometry={'r_min': 16.0})
    assert config.geometry['r_min'] == 16.0
    assert config.geometry['z'] == pytest.approx(74.966)
    assert RingConfig(2, 'O').geometry['r_min'] == pytest.approx(15.4)


def test_sharing_config_defaults():
    config = SharingConfig()
    assert config.as_dict() == {
        'correct_angles': False,
        'three_strip_sharing': True,
        'invalid_is_empty': False,
        'recalculate_eta': False,
        'debug': 0,
    }


def test_sharing_config_rejects_unknown_keyword():
    with pytest.raises(TypeError):
        SharingConfig(three_strip=False)


def test_sharing_config_from_dict_skips_unknown(caplog):
    with caplog.at_level(logging.WARNING, logger='fmd_sharing.detector_config'):
        config = SharingConfig.from_dict({'recalculate_eta': True, 'lowCut': 0.2})
    assert config.recalculate_eta
    assert "'lowCut'" in caplog.text
    assert 'recalculate_eta=True' in repr(config)
