"""
Point Cloud Data Model
======================
Value types flowing through the ingestion pipeline.

Why is this file needed?
------------------------
1. Contracts: The pipeline stages (sanitize -> bounds -> colors/camera/metadata)
   exchange these objects instead of loose dicts, so every stage knows the
   exact shape of its input.
2. Immutability: A load's buffers are created once and never mutated. A new
   file or a new color mode produces new objects.

Classes:
    ColorMode: Closed choice of coloring strategies.
    BoundingBox: Axis-aligned bounds and their derived size.
    CameraPose: Camera position + look-at target.
    Metadata: What the sidebar shows once a file is fully processed.
    RenderBundle: Everything the renderer needs for one completed load.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Optional, Tuple

import numpy as np
import numpy.typing as npt

from pointcloudviewer.config import (
    DEFAULT_CAMERA_POSITION, DEFAULT_CAMERA_TARGET, VIEW_UP
)
from pointcloudviewer.model.errors import ContractViolationError

Vector3 = Tuple[float, float, float]


def _finite_or_zero(value: float) -> float:
    return value if math.isfinite(value) else 0.0


class ColorMode(StrEnum):
    ALTITUDE = "altitude"
    UNIFORM = "uniform"

    @property
    def label(self) -> str:
        if self is ColorMode.ALTITUDE:
            return "Color by Altitude"
        return "Single Color"


class CloudStatus(StrEnum):
    OK = "ok"
    EMPTY_POINT_SET = "empty_point_set"


class EmptyReason(StrEnum):
    NO_ROWS = "no_rows"          # The source file had no coordinate rows at all
    ALL_INVALID = "all_invalid"  # Rows existed but none survived sanitizing


@dataclass(frozen=True)
class BoundingBox:
    minimum: Vector3
    maximum: Vector3
    empty: bool = False

    @classmethod
    def zero(cls) -> BoundingBox:
        """Canonical box for an empty point buffer."""
        return cls(minimum=(0.0, 0.0, 0.0), maximum=(0.0, 0.0, 0.0), empty=True)

    @property
    def size(self) -> Vector3:
        """Extent per axis. An extent too large to represent is reported as 0."""
        sx, sy, sz = (_finite_or_zero(hi - lo) for lo, hi in zip(self.minimum, self.maximum))
        return (sx, sy, sz)

    @property
    def center(self) -> Vector3:
        # Halves first so that lo + hi cannot overflow
        cx, cy, cz = (lo / 2.0 + hi / 2.0 for lo, hi in zip(self.minimum, self.maximum))
        return (cx, cy, cz)

    @property
    def diagonal(self) -> float:
        """Length of the size vector; may be inf for extents near the float limit."""
        return math.hypot(*self.size)

    @property
    def z_range(self) -> Tuple[float, float]:
        return self.minimum[2], self.maximum[2]

    def label(self) -> str:
        """Sizes as 'W×H×D' with two decimals, X, Y, Z order."""
        return "×".join(f"{s:.2f}" for s in self.size)


@dataclass(frozen=True)
class CameraPose:
    position: Vector3
    look_at: Vector3
    view_up: Vector3 = VIEW_UP


DEFAULT_CAMERA_POSE = CameraPose(
    position=DEFAULT_CAMERA_POSITION,
    look_at=DEFAULT_CAMERA_TARGET,
)


@dataclass(frozen=True)
class Metadata:
    point_count: int
    bounding_box_label: str
    source_rows: int = 0
    status: CloudStatus = CloudStatus.OK
    empty_reason: Optional[EmptyReason] = None

    @property
    def dropped_count(self) -> int:
        return max(self.source_rows - self.point_count, 0)

    @property
    def is_empty(self) -> bool:
        return self.status == CloudStatus.EMPTY_POINT_SET


@dataclass(frozen=True, eq=False)
class RenderBundle:
    """
    Render-ready result of one pipeline run.
    Arrays are made read-only on construction.
    """
    positions: npt.NDArray[np.float64]  # (N, 3)
    colors: npt.NDArray[np.float32]     # (N, 3), values in [0, 1]
    bounding_box: BoundingBox
    camera: CameraPose
    metadata: Metadata
    color_mode: ColorMode = ColorMode.ALTITUDE
    generation: int = 0
    framed: bool = field(default=True)

    def __post_init__(self) -> None:
        if self.positions.ndim != 2 or self.positions.shape[1] != 3:
            raise ContractViolationError(f"Positions must have shape (N, 3), got {self.positions.shape}.")
        if self.colors.shape != self.positions.shape:
            raise ContractViolationError(
                f"Color buffer {self.colors.shape} is not aligned with positions {self.positions.shape}."
            )
        if self.metadata.point_count != len(self.positions):
            raise ContractViolationError(
                f"Metadata reports {self.metadata.point_count} points, buffer holds {len(self.positions)}."
            )
        self.positions.setflags(write=False)
        self.colors.setflags(write=False)

    @property
    def point_count(self) -> int:
        return len(self.positions)

    @property
    def is_empty(self) -> bool:
        return self.point_count == 0
