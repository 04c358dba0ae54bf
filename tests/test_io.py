import numpy as np
import pytest

from pointcloudviewer.config import SAMPLE_CLOUD_PATH
from pointcloudviewer.model.errors import DecodeFailureError, ErrorKind, UnsupportedFormatError
from pointcloudviewer.model.io import FileInfo, PointCloudFormat, PointCloudIO, detect_format
from pointcloudviewer.model.pipeline import process_point_cloud
from pointcloudviewer.model.pointcloud import EmptyReason

PCD_HEADER = """# .PCD v0.7 - Point Cloud Data file format
VERSION 0.7
FIELDS {fields}
SIZE 4 4 4
TYPE F F F
COUNT 1 1 1
WIDTH {count}
HEIGHT 1
VIEWPOINT 0 0 0 1 0 0 0
POINTS {count}
DATA ascii
"""


def write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return str(path)


# --- format detection ---

@pytest.mark.parametrize("name, fmt", [
    ("scan.pcd", PointCloudFormat.PCD),
    ("scan.xyz", PointCloudFormat.XYZ),
    ("SCAN.XYZ", PointCloudFormat.XYZ),
])
def test_detect_format(name, fmt):
    assert detect_format(name) == fmt


@pytest.mark.parametrize("name", ["scan.las", "scan.json", "scan", "pcd"])
def test_detect_format_rejects_other_extensions(name):
    with pytest.raises(UnsupportedFormatError) as excinfo:
        detect_format(name)
    assert excinfo.value.kind == ErrorKind.UNSUPPORTED_FORMAT
    assert "Only .pcd, .xyz files are allowed" in str(excinfo.value)


def test_file_info_reports_size_in_kilobytes(tmp_path):
    path = tmp_path / "cloud.xyz"
    path.write_bytes(b"0 0 0\n" * 512)  # 3072 bytes

    info = FileInfo.from_path(str(path))

    assert info.name == "cloud.xyz"
    assert info.type == "XYZ"
    assert info.size == "3.00 KB"


def test_file_info_missing_file(tmp_path):
    with pytest.raises(DecodeFailureError):
        FileInfo.from_path(str(tmp_path / "gone.pcd"))


def test_read_missing_file_is_decode_failure(tmp_path):
    with pytest.raises(DecodeFailureError):
        PointCloudIO.read_raw_points(str(tmp_path / "gone.xyz"))


# --- XYZ ---

def test_read_xyz_skips_comments_and_extra_columns(tmp_path):
    path = write(tmp_path, "cloud.xyz", "# x y z intensity\n0 0 0 17\n\n1 1 2 20\n3.5 -1 0.25 9\n")

    raw = PointCloudIO.read_raw_points(path)

    assert raw.fmt == PointCloudFormat.XYZ
    assert raw.source_rows == 3
    np.testing.assert_array_equal(raw.points, [[0, 0, 0], [1, 1, 2], [3.5, -1, 0.25]])


def test_read_xyz_keeps_non_finite_values_for_the_pipeline(tmp_path):
    path = write(tmp_path, "cloud.xyz", "0 0 0\nnan 1 1\n1 1 2\n")

    raw = PointCloudIO.read_raw_points(path)
    bundle = process_point_cloud(raw.points, source_rows=raw.source_rows)

    assert raw.points.shape == (3, 3)
    assert np.isnan(raw.points[1, 0])
    assert bundle.metadata.point_count == 2
    assert bundle.metadata.dropped_count == 1


def test_read_xyz_short_rows_are_counted_but_dropped(tmp_path):
    path = write(tmp_path, "cloud.xyz", "0 0 0\n1 2\n1 1 2\n")

    raw = PointCloudIO.read_raw_points(path)

    assert raw.source_rows == 3
    assert raw.points.shape == (2, 3)


def test_read_xyz_single_row(tmp_path):
    raw = PointCloudIO.read_raw_points(write(tmp_path, "one.xyz", "1 2 3\n"))

    np.testing.assert_array_equal(raw.points, [[1, 2, 3]])


def test_read_empty_xyz(tmp_path):
    raw = PointCloudIO.read_raw_points(write(tmp_path, "empty.xyz", "# nothing here\n\n"))
    bundle = process_point_cloud(raw.points, source_rows=raw.source_rows)

    assert raw.points.shape == (0, 3)
    assert raw.source_rows == 0
    assert bundle.metadata.empty_reason == EmptyReason.NO_ROWS


def test_bundled_sample_cloud_is_readable():
    raw = PointCloudIO.read_raw_points(SAMPLE_CLOUD_PATH)
    bundle = process_point_cloud(raw.points, source_rows=raw.source_rows)

    assert bundle.metadata.point_count == 2500
    assert bundle.metadata.dropped_count == 0
    assert bundle.framed


# --- PCD ---

def test_pcd_header_is_parsed(tmp_path):
    path = write(tmp_path, "cloud.pcd", PCD_HEADER.format(fields="x y z", count=2) + "0 0 0\n1 1 1\n")

    header = PointCloudIO._read_pcd_header(path)

    assert header.fields == ("x", "y", "z")
    assert header.points == 2
    assert header.data == "ascii"


def test_pcd_header_with_tabs_and_repeated_spaces(tmp_path):
    header = "VERSION 0.7\nFIELDS\tx\ty\tz\nSIZE 4 4 4\nTYPE F F F\nCOUNT 1 1 1\nWIDTH  2\nHEIGHT 1\nPOINTS   2\nDATA\t ascii\n"
    path = write(tmp_path, "cloud.pcd", header + "0 0 0\n1 1 1\n")

    parsed = PointCloudIO._read_pcd_header(path)

    assert parsed.fields == ("x", "y", "z")
    assert parsed.points == 2
    assert parsed.data == "ascii"


def test_pcd_header_without_fields_is_decode_failure(tmp_path):
    path = write(tmp_path, "cloud.pcd", "VERSION 0.7\nPOINTS 1\nDATA ascii\n0 0 0\n")

    with pytest.raises(DecodeFailureError, match="missing FIELDS"):
        PointCloudIO.read_raw_points(path)


def test_pcd_without_xyz_fields_is_decode_failure(tmp_path):
    path = write(tmp_path, "cloud.pcd", PCD_HEADER.format(fields="normal_x normal_y normal_z", count=1) + "0 0 1\n")

    with pytest.raises(DecodeFailureError, match="no x/y/z fields"):
        PointCloudIO.read_raw_points(path)


def test_garbage_pcd_is_decode_failure(tmp_path):
    path = tmp_path / "cloud.pcd"
    path.write_bytes(b"\x00\x01\x02 not a point cloud")

    with pytest.raises(DecodeFailureError):
        PointCloudIO.read_raw_points(str(path))


def test_read_ascii_pcd(tmp_path):
    pytest.importorskip("open3d")
    path = write(tmp_path, "cloud.pcd", PCD_HEADER.format(fields="x y z", count=3) + "0 0 0\n1 1 2\n2 0 1\n")

    raw = PointCloudIO.read_raw_points(path)

    assert raw.fmt == PointCloudFormat.PCD
    assert raw.source_rows == 3
    np.testing.assert_allclose(raw.points, [[0, 0, 0], [1, 1, 2], [2, 0, 1]])
