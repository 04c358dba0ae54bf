import pytest

from pointcloudviewer.config import DEFAULT_POINT_SIZE, MAX_POINT_SIZE, MIN_POINT_SIZE
from pointcloudviewer.model.io import FileInfo
from pointcloudviewer.model.pipeline import process_point_cloud
from pointcloudviewer.model.pointcloud import ColorMode
from pointcloudviewer.model.state import ViewerState


@pytest.fixture
def state():
    return ViewerState()


@pytest.fixture
def info():
    return FileInfo(path="/data/a.xyz", name="a.xyz", type="XYZ", size="0.01 KB")


def test_defaults(state):
    assert state.color_mode == ColorMode.ALTITUDE
    assert state.point_size == DEFAULT_POINT_SIZE
    assert state.file_info is None
    assert not state.loading


@pytest.mark.parametrize("requested, stored", [
    (3.0, 3.0),
    (0.0, MIN_POINT_SIZE),
    (1000.0, MAX_POINT_SIZE),
])
def test_point_size_is_clamped(state, requested, stored):
    assert state.set_point_size(requested) == stored
    assert state.point_size == stored


def test_set_color_mode_reports_changes(state):
    assert state.set_color_mode(ColorMode.UNIFORM) is True
    assert state.set_color_mode(ColorMode.UNIFORM) is False
    assert state.color_mode == ColorMode.UNIFORM


def test_loading_lifecycle(state, info):
    state.begin_loading(info)
    assert state.loading
    assert state.file_info == info
    assert state.metadata is None

    metadata = process_point_cloud([(0, 0, 0), (1, 1, 1)]).metadata
    state.finish_loading(info, metadata)
    assert not state.loading
    assert state.metadata.point_count == 2


def test_abort_restores_previous_file(state, info):
    metadata = process_point_cloud([(0, 0, 0)]).metadata
    state.finish_loading(info, metadata)
    other = FileInfo(path="/data/b.xyz", name="b.xyz", type="XYZ", size="0.01 KB")

    state.begin_loading(other)
    state.abort_loading(info, metadata)

    assert state.file_info == info
    assert state.metadata == metadata
    assert not state.loading


def test_close_file_keeps_display_settings(state, info):
    state.set_color_mode(ColorMode.UNIFORM)
    state.set_point_size(5.0)
    state.finish_loading(info, process_point_cloud([(0, 0, 0)]).metadata)
    state.activity.add("Loaded point cloud file: a.xyz")

    state.close_file()

    assert state.file_info is None
    assert state.metadata is None
    assert not state.loading
    assert state.color_mode == ColorMode.UNIFORM
    assert state.point_size == 5.0
    assert len(state.activity) == 1


def test_close_file_while_loading(state, info):
    state.begin_loading(info)

    state.close_file()

    assert state.file_info is None
    assert not state.loading
