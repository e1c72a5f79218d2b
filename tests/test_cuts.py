import numpy as np
import pytest
import uproot

from fmd_sharing.sharing.cuts import (
    MISSING_CUT,
    RING_LABELS,
    EtaBinnedCuts,
    FixedCuts,
    tabulate_cuts,
)


def test_fixed_cuts_with_ring_override():
    cuts = FixedCuts(0.15, 1.2, per_ring={(2, 'o'): (0.2, 0.9)})
    assert cuts.low_cut(1, 'I', 2.5) == 0.15
    assert cuts.high_cut(1, 'I', 2.5) == 1.2
    assert cuts.low_cut(2, 'O', 2.5) == 0.2
    assert cuts.high_cut(2, 'outer', -1.0) == 0.9
    np.testing.assert_array_equal(cuts.low_cuts(2, 'O', np.zeros(3)), [0.2, 0.2, 0.2])


def test_fixed_cuts_default_high_cut_is_missing():
    assert FixedCuts().high_cut(1, 'I', 2.0) <= 0


def _binned():
    edges = [-4.0, -2.0, 0.0, 2.0, 4.0]
    low = {(1, 'I'): [0.1, 0.2, 0.3, 0.4]}
    high = {(1, 'I'): [1.1, 0.0, 1.3, 1.4]}
    return EtaBinnedCuts(edges, low, high)


def test_eta_binned_lookup():
    cuts = _binned()
    assert cuts.low_cut(1, 'I', -3.0) == pytest.approx(0.1)
    assert cuts.low_cut(1, 'I', 2.0) == pytest.approx(0.4)
    assert cuts.high_cut(1, 'I', 1.0) == pytest.approx(1.3)
    # bin without calibration
    assert cuts.high_cut(1, 'I', -1.0) == 0.0


def test_eta_binned_missing_calibration():
    cuts = _binned()
    assert cuts.low_cut(1, 'I', 4.5) == MISSING_CUT
    assert cuts.low_cut(1, 'I', -4.5) == MISSING_CUT
    assert cuts.low_cut(2, 'I', 1.0) == MISSING_CUT
    assert cuts.high_cut(3, 'O', 1.0) == MISSING_CUT


def test_eta_binned_vectorized_matches_scalar():
    cuts = _binned()
    etas = np.array([-5.0, -3.0, -1.0, 1.0, 3.0, 5.0])
    expected = [cuts.low_cut(1, 'I', eta) for eta in etas]
    np.testing.assert_allclose(cuts.low_cuts(1, 'I', etas), expected)


def test_eta_binned_rejects_bad_tables():
    with pytest.raises(ValueError):
        EtaBinnedCuts([0.0, 1.0], {(1, 'I'): [0.1, 0.2]}, {})
    with pytest.raises(ValueError):
        EtaBinnedCuts([1.0, 0.0], {}, {})


def test_eta_binned_from_root(tmp_path):
    eta_edges = np.linspace(-4.0, 6.0, 11)
    ring_edges = np.linspace(0.5, 5.5, 6)
    low = np.full((10, 5), 0.15)
    high = np.zeros((10, 5))
    high[:, 2] = 1.3
    path = tmp_path / 'cuts.root'
    with uproot.recreate(path) as f:
        f['lowCuts'] = (low, eta_edges, ring_edges)
        f['highCuts'] = (high, eta_edges, ring_edges)

    cuts = EtaBinnedCuts.from_root(str(path))
    assert cuts.low_cut(3, 'O', 2.5) == pytest.approx(0.15)
    assert cuts.high_cut(2, 'O', 2.5) == pytest.approx(1.3)
    assert cuts.high_cut(2, 'I', 2.5) == 0.0


def test_tabulate_cuts_skips_missing_bins():
    low_hist, high_hist = tabulate_cuts(_binned(), [-4.0, -2.0, 0.0, 2.0, 4.0])
    low = low_hist.values()
    high = high_hist.values()
    assert low.shape == (4, len(RING_LABELS))
    np.testing.assert_allclose(low[:, 0], [0.1, 0.2, 0.3, 0.4])
    np.testing.assert_allclose(high[:, 0], [1.1, 0.0, 1.3, 1.4])
    # rings without calibration stay empty
    assert not low[:, 1:].any()
