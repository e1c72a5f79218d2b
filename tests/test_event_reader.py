import numpy as np
import pytest
import uproot

from fmd_sharing.detector_config import get_ring_configs
from fmd_sharing.io.event_reader import open_files_parallel, read_events, ring_branch


@pytest.fixture
def event_file(tmp_path):
    path = tmp_path / 'events.root'
    n_events = 3
    branches = {}
    for (detector, ring), config in get_ring_configs().items():
        size = config.n_sectors * config.n_strips
        mult = np.zeros((n_events, size))
        mult[:, 0] = np.arange(n_events) + 1.0
        branches[ring_branch(detector, ring, 'mult')] = mult
        branches[ring_branch(detector, ring, 'eta')] = np.full((n_events, size), 2.0)
    branches['vertex_z'] = np.array([0.0, 1.5, -2.0])
    with uproot.recreate(path) as f:
        f['events'] = branches
    return path


def test_read_events(event_file):
    tree = uproot.open(f"{event_file}:events")
    events = list(read_events(tree, step_size=2))

    assert len(events) == 3
    assert [event.zvtx for event in events] == [0.0, 1.5, -2.0]
    for i, event in enumerate(events):
        event.validate()
        assert not event.angle_corrected
        assert event.multiplicity[(2, 'O')][0, 0] == i + 1.0
        assert event.multiplicity[(2, 'O')].shape == (40, 256)
        np.testing.assert_array_equal(event.eta[(1, 'I')], 2.0)
        assert event.ring_phi(1, 'I')[1, 0] == pytest.approx(27.0)


def test_read_event_range(event_file):
    tree = uproot.open(f"{event_file}:events")
    events = list(read_events(tree, entry_start=1, entry_stop=2))
    assert len(events) == 1
    assert events[0].zvtx == 1.5


def test_open_files_parallel_reports_failures(event_file, tmp_path, capsys):
    missing = str(tmp_path / 'missing.root')
    progress = []

    trees, failed = open_files_parallel([str(event_file), missing], max_workers=2,
                                        progress_callback=lambda i, n: progress.append((i, n)))

    assert len(trees) == 1
    assert trees[0].num_entries == 3
    assert failed == [missing]
    assert sorted(progress) == [(1, 2), (2, 2)]
    assert 'Warning: File does not exist' in capsys.readouterr().out
