"""
Altitude Color Ramp
Maps normalized heights in [0, 1] to RGB using a matplotlib colormap.
"""
from __future__ import annotations

import logging

import numpy as np
import numpy.typing as npt
from matplotlib import colormaps
from matplotlib.colors import LinearSegmentedColormap

from pointcloudviewer.config import ALTITUDE_COLORMAP, COLORMAP_RESOLUTION

logger = logging.getLogger(__name__)


class AltitudeRamp:
    """
    Continuous, deterministic color ramp.

    The named colormap is sampled at its native resolution and re-interpolated
    linearly into a lookup table of ``resolution`` entries, so listed colormaps
    such as 'turbo' behave like a smooth gradient.
    """
    def __init__(self, name: str = ALTITUDE_COLORMAP, resolution: int = COLORMAP_RESOLUTION) -> None:
        if resolution < 2:
            raise ValueError(f"Ramp resolution must be at least 2, got {resolution}.")
        try:
            base = colormaps[name]
        except KeyError:
            raise ValueError(f"Unknown colormap '{name}'.") from None

        anchors = base(np.linspace(0.0, 1.0, base.N))
        self.name = name
        self._cmap = LinearSegmentedColormap.from_list(f"{name}_ramp", anchors, N=resolution)
        logger.debug(f"Altitude ramp '{name}' built with {resolution} entries.")

    def __call__(self, values: npt.ArrayLike) -> npt.NDArray[np.float32]:
        """
        Args:
            values: Scalar or array of normalized heights. Clipped to [0, 1].

        Returns:
            (..., 3) float32 RGB array.
        """
        t = np.clip(np.asarray(values, dtype=np.float64), 0.0, 1.0)
        rgba = self._cmap(t)
        return np.asarray(rgba, dtype=np.float64)[..., :3].astype(np.float32)

    @property
    def start(self) -> npt.NDArray[np.float32]:
        return self(0.0)

    @property
    def midpoint(self) -> npt.NDArray[np.float32]:
        return self(0.5)

    @property
    def end(self) -> npt.NDArray[np.float32]:
        return self(1.0)


_DEFAULT_RAMP: AltitudeRamp | None = None


def default_ramp() -> AltitudeRamp:
    """Shared ramp built from the configured colormap."""
    global _DEFAULT_RAMP
    if _DEFAULT_RAMP is None:
        _DEFAULT_RAMP = AltitudeRamp()
    return _DEFAULT_RAMP
