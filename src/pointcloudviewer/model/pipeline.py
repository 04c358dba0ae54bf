"""
Point Cloud Ingestion Pipeline
==============================
Turns the raw coordinate triples produced by a loader into a render-ready
bundle.

Why is this file needed?
------------------------
1. Shared core: PCD and XYZ files go through exactly the same sanitizing,
   bounds, coloring and camera framing steps.
2. Purity: Every step is a plain function over NumPy arrays. No I/O, no Qt,
   no renderer. This is what the tests exercise directly.

Steps (in dependency order):
    sanitize -> compute_bounds -> {map_colors, frame_camera, report_metadata}
"""
from __future__ import annotations

import dataclasses
import logging
import math
from typing import Optional

import numpy as np
import numpy.typing as npt

from pointcloudviewer.config import MIN_FRAMING_DISTANCE, VIEW_DIRECTION
from pointcloudviewer.model.colormap import AltitudeRamp, default_ramp
from pointcloudviewer.model.errors import ContractViolationError
from pointcloudviewer.model.pointcloud import (
    BoundingBox, CameraPose, CloudStatus, ColorMode, DEFAULT_CAMERA_POSE,
    EmptyReason, Metadata, RenderBundle
)

logger = logging.getLogger(__name__)


def _as_triples(raw: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """Views a flat sequence or an (N, 3) array as (N, 3) float64."""
    try:
        arr = np.asarray(raw, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise ContractViolationError(f"Raw coordinates are not numeric: {e}") from e

    if arr.ndim == 1:
        if arr.size % 3 != 0:
            raise ContractViolationError(
                f"Flat coordinate sequence length {arr.size} is not a multiple of 3."
            )
        return arr.reshape(-1, 3)

    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ContractViolationError(f"Expected coordinate triples of shape (N, 3), got {arr.shape}.")
    return arr


def _require_buffer(points: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
    if not isinstance(points, np.ndarray) or points.ndim != 2 or points.shape[1] != 3:
        shape = getattr(points, "shape", type(points).__name__)
        raise ContractViolationError(f"Point buffer must be an (N, 3) array, got {shape}.")
    return points


# ------------------------------------------------------------------------------
# Sanitizer
# ------------------------------------------------------------------------------

def sanitize(raw: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """
    Keeps only the triples whose three components are finite.

    Non-finite triples (NaN, +/-inf) are dropped, never replaced, and the
    original order is preserved. Empty or all-invalid input gives an empty
    (0, 3) buffer.

    Args:
        raw: Flat sequence [x0, y0, z0, x1, ...] or an (N, 3) array.

    Returns:
        New contiguous (M, 3) float64 array with M <= N.

    Raises:
        ContractViolationError: If the input is not numeric or not made of triples.
    """
    triples = _as_triples(raw)
    mask = np.isfinite(triples).all(axis=1)
    # Boolean indexing allocates the result once, sized to the retained count
    return np.ascontiguousarray(triples[mask])


# ------------------------------------------------------------------------------
# Bounds
# ------------------------------------------------------------------------------

def compute_bounds(points: npt.NDArray[np.float64]) -> BoundingBox:
    """Axis-aligned bounds of a sanitized buffer. Empty buffer -> zero box."""
    points = _require_buffer(points)
    if len(points) == 0:
        return BoundingBox.zero()

    lo = points.min(axis=0)
    hi = points.max(axis=0)
    return BoundingBox(
        minimum=(float(lo[0]), float(lo[1]), float(lo[2])),
        maximum=(float(hi[0]), float(hi[1]), float(hi[2])),
    )


# ------------------------------------------------------------------------------
# Colors
# ------------------------------------------------------------------------------

def normalize_heights(z: npt.NDArray[np.float64], z_min: float, z_max: float) -> npt.NDArray[np.float64]:
    """(z - min) / (max - min), or 0.5 everywhere for a flat cloud."""
    # Halved operands keep the differences finite for coordinates near the float limit
    half_min = z_min / 2.0
    span = z_max / 2.0 - half_min
    if span > 0.0:
        return np.clip((z / 2.0 - half_min) / span, 0.0, 1.0)
    return np.full(z.shape, 0.5, dtype=np.float64)


def map_colors(
    points: npt.NDArray[np.float64],
    bounds: BoundingBox,
    mode: ColorMode,
    expected_count: Optional[int] = None,
    ramp: Optional[AltitudeRamp] = None,
) -> npt.NDArray[np.float32]:
    """
    One RGB triple per point.

    UNIFORM gives pure white. ALTITUDE normalizes z against the bounding box
    vertical extent and runs it through the altitude ramp.

    Raises:
        ContractViolationError: If the buffer disagrees with ``expected_count``
            or the produced colors are not aligned with the points.
    """
    points = _require_buffer(points)
    count = len(points)
    if expected_count is not None and expected_count != count:
        raise ContractViolationError(
            f"Point buffer holds {count} points but {expected_count} were expected."
        )

    mode = ColorMode(mode)
    if mode is ColorMode.UNIFORM or count == 0:
        colors = np.ones((count, 3), dtype=np.float32)
    else:
        z_min, z_max = bounds.z_range
        t = normalize_heights(points[:, 2], z_min, z_max)
        colors = (ramp or default_ramp())(t)

    if colors.shape != (count, 3):
        raise ContractViolationError(f"Color buffer shape {colors.shape} does not match {count} points.")
    return colors


# ------------------------------------------------------------------------------
# Camera
# ------------------------------------------------------------------------------

def frame_camera(bounds: BoundingBox) -> CameraPose:
    """
    Places the camera so the whole box is visible.

    The camera sits at ``center + diagonal * VIEW_DIRECTION`` and looks at the
    center. Empty boxes are not framed; callers use DEFAULT_CAMERA_POSE.
    """
    if bounds.empty:
        raise ContractViolationError("Cannot frame an empty bounding box.")

    center = np.asarray(bounds.center, dtype=np.float64)
    direction = np.asarray(VIEW_DIRECTION, dtype=np.float64)
    distance = bounds.diagonal
    if not math.isfinite(distance):
        distance = max(bounds.size)
    if distance <= 0.0:
        # Single distinct point (or unrepresentable extent): keep the camera off its own target
        distance = MIN_FRAMING_DISTANCE

    with np.errstate(over="ignore"):
        position = center + distance * direction
        # Pull the camera in until it is representable
        while not np.isfinite(position).all():
            distance /= 2.0
            position = center + distance * direction
    return CameraPose(
        position=(float(position[0]), float(position[1]), float(position[2])),
        look_at=(float(center[0]), float(center[1]), float(center[2])),
    )


# ------------------------------------------------------------------------------
# Metadata
# ------------------------------------------------------------------------------

def report_metadata(point_count: int, bounds: BoundingBox, source_rows: int) -> Metadata:
    """Assembles the sidebar record for a completed run."""
    if point_count < 0 or source_rows < 0:
        raise ContractViolationError(f"Negative counts: points={point_count}, rows={source_rows}.")

    if point_count > 0:
        return Metadata(
            point_count=point_count,
            bounding_box_label=bounds.label(),
            source_rows=source_rows,
        )

    reason = EmptyReason.NO_ROWS if source_rows == 0 else EmptyReason.ALL_INVALID
    return Metadata(
        point_count=0,
        bounding_box_label=bounds.label(),
        source_rows=source_rows,
        status=CloudStatus.EMPTY_POINT_SET,
        empty_reason=reason,
    )


# ------------------------------------------------------------------------------
# Orchestration
# ------------------------------------------------------------------------------

def process_point_cloud(
    raw: npt.ArrayLike,
    color_mode: ColorMode = ColorMode.ALTITUDE,
    generation: int = 0,
    source_rows: Optional[int] = None,
    ramp: Optional[AltitudeRamp] = None,
) -> RenderBundle:
    """
    Runs the full pipeline on raw coordinate triples.

    Args:
        raw: Decoded coordinates, possibly containing non-finite values.
        color_mode: Coloring strategy for this run.
        generation: Load generation id the result belongs to.
        source_rows: Row count declared by the file. Defaults to the number of raw triples.
        ramp: Optional custom altitude ramp.

    Returns:
        A complete RenderBundle. Empty inputs give an empty bundle with
        DEFAULT_CAMERA_POSE and an EMPTY_POINT_SET status.
    """
    color_mode = ColorMode(color_mode)
    triples = _as_triples(raw)
    rows = len(triples) if source_rows is None else source_rows

    points = sanitize(triples)
    bounds = compute_bounds(points)
    colors = map_colors(points, bounds, color_mode, expected_count=len(points), ramp=ramp)

    if len(points) > 0:
        camera = frame_camera(bounds)
        framed = True
    else:
        camera = DEFAULT_CAMERA_POSE
        framed = False

    metadata = report_metadata(len(points), bounds, rows)

    if metadata.dropped_count:
        logger.debug(f"Dropped {metadata.dropped_count} non-finite points.")
    logger.info(
        f"Processed point cloud (generation {generation}): "
        f"{metadata.point_count} points, bounds {metadata.bounding_box_label}."
    )

    return RenderBundle(
        positions=points,
        colors=colors,
        bounding_box=bounds,
        camera=camera,
        metadata=metadata,
        color_mode=color_mode,
        generation=generation,
        framed=framed,
    )


def recolor(bundle: RenderBundle, mode: ColorMode, ramp: Optional[AltitudeRamp] = None) -> RenderBundle:
    """New bundle with colors for another mode. Geometry and metadata are reused."""
    mode = ColorMode(mode)
    colors = map_colors(
        bundle.positions,
        bundle.bounding_box,
        mode,
        expected_count=bundle.point_count,
        ramp=ramp,
    )
    return dataclasses.replace(bundle, colors=colors, color_mode=mode)
