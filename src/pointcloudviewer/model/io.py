"""
Input Manager (Point Cloud Files)
Detects the file format and decodes PCD / XYZ files into raw coordinate triples.

The decoded triples are NOT cleaned here: NaN and infinite values are kept so
the pipeline can account for every row the file contained.
"""
from __future__ import annotations

import logging
import os
import warnings
from dataclasses import dataclass
from enum import StrEnum
from typing import Tuple

import numpy as np
import numpy.typing as npt

from pointcloudviewer.config import SUPPORTED_EXTENSIONS
from pointcloudviewer.model.errors import DecodeFailureError, UnsupportedFormatError

# Get module logger
logger = logging.getLogger(__name__)

# PCD headers are a handful of short ASCII lines
PCD_HEADER_PROBE_BYTES = 4096


class PointCloudFormat(StrEnum):
    PCD = "pcd"
    XYZ = "xyz"


@dataclass(frozen=True)
class RawPointData:
    """Loader output: unfiltered (N, 3) coordinates and the row count of the source."""
    points: npt.NDArray[np.float64]
    source_rows: int
    fmt: PointCloudFormat


@dataclass(frozen=True)
class PcdHeader:
    fields: Tuple[str, ...]
    points: int
    data: str


@dataclass(frozen=True)
class FileInfo:
    """What the sidebar shows about the selected file before processing ends."""
    path: str
    name: str
    type: str
    size: str

    @classmethod
    def from_path(cls, path: str) -> FileInfo:
        fmt = detect_format(path)
        try:
            size_bytes = os.path.getsize(path)
        except OSError as e:
            raise DecodeFailureError(f"Cannot access '{path}': {e}") from e
        return cls(
            path=path,
            name=os.path.basename(path),
            type=fmt.value.upper(),
            size=f"{size_bytes / 1024:.2f} KB",
        )


def detect_format(path: str) -> PointCloudFormat:
    """Resolve the format from the file extension (case-insensitive)."""
    ext = os.path.splitext(path)[1].lstrip(".").lower()
    if ext not in SUPPORTED_EXTENSIONS:
        allowed = ", ".join(f".{e}" for e in SUPPORTED_EXTENSIONS)
        raise UnsupportedFormatError(f"Only {allowed} files are allowed (got '{os.path.basename(path)}').")
    return PointCloudFormat(ext)


class PointCloudIO:
    @staticmethod
    def read_raw_points(path: str) -> RawPointData:
        """
        Decode a point cloud file into raw (N, 3) float64 coordinates.

        Raises:
            UnsupportedFormatError: Unknown extension.
            DecodeFailureError: The file could not be read or parsed.
        """
        fmt = detect_format(path)
        logger.info(f"Reading {fmt.value.upper()} point cloud from: {path}")

        if not os.path.isfile(path):
            raise DecodeFailureError(f"File not found: {path}")

        if fmt == PointCloudFormat.XYZ:
            raw = PointCloudIO._read_xyz(path)
        else:
            raw = PointCloudIO._read_pcd(path)

        logger.debug(f"Decoded {len(raw.points)} raw triples from {raw.source_rows} source rows.")
        return raw

    # --- XYZ ---

    @staticmethod
    def _read_xyz(path: str) -> RawPointData:
        """
        Plain text rows 'x y z [...]'. Lines starting with '#' are comments.
        Only the first three columns are used; unparsable tokens become NaN and
        rows with fewer than three columns are skipped.
        """
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                lines = [line for line in f if line.strip() and not line.lstrip().startswith("#")]
        except OSError as e:
            raise DecodeFailureError(f"Cannot read '{path}': {e}") from e

        if not lines:
            return RawPointData(np.empty((0, 3), dtype=np.float64), 0, PointCloudFormat.XYZ)

        try:
            with warnings.catch_warnings():
                # Short rows are reported as ConversionWarning; they are counted as dropped instead
                warnings.simplefilter("ignore")
                data = np.genfromtxt(
                    lines,
                    usecols=(0, 1, 2),
                    dtype=np.float64,
                    invalid_raise=False,
                )
        except ValueError as e:
            raise DecodeFailureError(f"Invalid XYZ data in '{path}': {e}") from e

        points = np.asarray(data, dtype=np.float64).reshape(-1, 3)
        return RawPointData(points, len(lines), PointCloudFormat.XYZ)

    # --- PCD ---

    @staticmethod
    def _read_pcd_header(path: str) -> PcdHeader:
        """Validates the PCD header before handing the file to the decoder."""
        try:
            with open(path, "rb") as f:
                head = f.read(PCD_HEADER_PROBE_BYTES)
        except OSError as e:
            raise DecodeFailureError(f"Cannot read '{path}': {e}") from e

        entries: dict[str, str] = {}
        for raw_line in head.splitlines():
            line = raw_line.decode("latin-1").strip()
            if not line or line.startswith("#"):
                continue
            # Keys and values may be separated by any run of whitespace
            key, *rest = line.split(None, 1)
            entries[key.upper()] = rest[0].strip() if rest else ""
            if key.upper() == "DATA":
                break

        missing = [key for key in ("FIELDS", "DATA") if key not in entries]
        if missing:
            raise DecodeFailureError(f"Invalid PCD header in '{path}': missing {', '.join(missing)}.")

        fields = tuple(entries["FIELDS"].split())
        if not {"x", "y", "z"}.issubset(fields):
            raise DecodeFailureError(f"PCD file '{path}' has no x/y/z fields (fields: {' '.join(fields)}).")

        try:
            if "POINTS" in entries:
                count = int(entries["POINTS"])
            else:
                count = int(entries.get("WIDTH", "0")) * int(entries.get("HEIGHT", "1"))
        except ValueError as e:
            raise DecodeFailureError(f"Invalid point count in PCD header of '{path}': {e}") from e

        return PcdHeader(fields=fields, points=count, data=entries["DATA"].lower())

    @staticmethod
    def _read_pcd(path: str) -> RawPointData:
        header = PointCloudIO._read_pcd_header(path)
        logger.debug(f"PCD header: {header.points} points, fields={header.fields}, data={header.data}")

        try:
            import open3d as o3d
        except ImportError as e:
            raise DecodeFailureError("Reading PCD files requires the 'open3d' package.") from e

        try:
            cloud = o3d.io.read_point_cloud(
                path,
                format="pcd",
                remove_nan_points=False,
                remove_infinite_points=False,
            )
        except RuntimeError as e:
            raise DecodeFailureError(f"Could not decode PCD file '{path}': {e}") from e

        points = np.array(cloud.points, dtype=np.float64).reshape(-1, 3)
        if len(points) == 0 and header.points > 0:
            raise DecodeFailureError(
                f"Could not decode PCD file '{path}': header advertises {header.points} points, none were read."
            )

        return RawPointData(points, max(header.points, len(points)), PointCloudFormat.PCD)
