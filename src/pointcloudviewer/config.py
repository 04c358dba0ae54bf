"""
Configuration & Path Management
===============================
This module serves as the central registry for file paths and global constants.

Why is this file needed?
------------------------
1. Abstraction: It prevents magic numbers (colors, limits, camera offsets)
   scattered throughout the model and the view.
2. Deployment: It handles the logic required by PyInstaller (sys._MEIPASS) to
   find assets (sample clouds) when the app is frozen into an .exe.

Exports:
    ASSETS_PATH (str): Absolute path to the assets directory.
    SAMPLE_CLOUD_PATH (str): Absolute path to the bundled sample point cloud.
"""
import sys
import os
from pathlib import Path
from typing import Tuple


def get_resource_path(relative_path: str) -> str:
    """
    Get absolute path to resource, works for dev and for PyInstaller.
    """
    if hasattr(sys, '_MEIPASS'):
        # PyInstaller temp folder
        base_path: str = getattr(sys, '_MEIPASS')
        return os.path.join(base_path, relative_path)

    # Development mode: resolve relative to this file
    # config.py is in src/pointcloudviewer/
    current_file_path: Path = Path(__file__)
    project_root: Path = current_file_path.parent.parent.parent
    return os.path.join(str(project_root), relative_path)


# Paths
ASSETS_PATH: str = get_resource_path("assets")
SAMPLE_CLOUD_PATH: str = os.path.join(ASSETS_PATH, "sample_terrain.xyz")

# Supported inputs (lower-case, without the dot)
SUPPORTED_EXTENSIONS: Tuple[str, ...] = ("pcd", "xyz")

# Viewer appearance
VISIBLE_APP_NAME: str = "Point Cloud Viewer"
BACKGROUND_COLOR: str = "#0D1D44"  # Deep navy blue
TEXT_COLOR: str = "white"

# Point size is in screen pixels and only forwarded to the renderer
DEFAULT_POINT_SIZE: float = 2.0
MIN_POINT_SIZE: float = 0.5
MAX_POINT_SIZE: float = 20.0
POINT_SIZE_STEP: float = 0.5

# Altitude coloring
ALTITUDE_COLORMAP: str = "turbo"
COLORMAP_RESOLUTION: int = 1024

# Camera framing
VIEW_DIRECTION: Tuple[float, float, float] = (0.5, 0.5, 1.0)
VIEW_UP: Tuple[float, float, float] = (0.0, 0.0, 1.0)
MIN_FRAMING_DISTANCE: float = 1.0
DEFAULT_CAMERA_POSITION: Tuple[float, float, float] = (0.0, 0.0, 5.0)
DEFAULT_CAMERA_TARGET: Tuple[float, float, float] = (0.0, 0.0, 0.0)

# Activity log
ACTIVITY_LOG_LIMIT: int = 10
