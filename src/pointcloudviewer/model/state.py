"""
Viewer State (Data Model)
=========================
This module defines the central data structure for the running application.

Why is this file needed?
------------------------
1. State Management: It holds the user's display settings, the selected file
   and the metadata of the installed load in one place.
2. Decoupling: Views read from this object; the main window writes to it when
   a load is accepted.

Classes:
    ViewerState: The main container class.
"""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Optional

from pointcloudviewer.config import DEFAULT_POINT_SIZE, MAX_POINT_SIZE, MIN_POINT_SIZE
from pointcloudviewer.model.activity import ActivityLog
from pointcloudviewer.model.io import FileInfo
from pointcloudviewer.model.pointcloud import ColorMode, Metadata

logger = logging.getLogger(__name__)


@dataclass
class ViewerState:
    """
    Singleton-like class that holds the state of the open viewer.
    Pass this instance to your panels and widgets.
    """
    color_mode: ColorMode = ColorMode.ALTITUDE
    point_size: float = DEFAULT_POINT_SIZE

    # Selected file (may still be loading)
    file_info: Optional[FileInfo] = None
    # Metadata of the installed load; None while loading or when nothing is shown
    metadata: Optional[Metadata] = None
    loading: bool = False

    activity: ActivityLog = field(default_factory=ActivityLog)

    def set_point_size(self, size: float) -> float:
        """Clamp and store the point size. Returns the stored value."""
        self.point_size = min(max(float(size), MIN_POINT_SIZE), MAX_POINT_SIZE)
        return self.point_size

    def set_color_mode(self, mode: ColorMode) -> bool:
        """Returns True if the mode actually changed."""
        mode = ColorMode(mode)
        if mode == self.color_mode:
            return False
        self.color_mode = mode
        return True

    def begin_loading(self, file_info: FileInfo) -> None:
        self.file_info = file_info
        self.metadata = None
        self.loading = True

    def finish_loading(self, file_info: FileInfo, metadata: Metadata) -> None:
        self.file_info = file_info
        self.metadata = metadata
        self.loading = False

    def abort_loading(self, file_info: Optional[FileInfo], metadata: Optional[Metadata]) -> None:
        """Restore what was shown before the failed load."""
        self.file_info = file_info
        self.metadata = metadata
        self.loading = False

    def close_file(self) -> None:
        """Forget the shown file. Display settings and the activity log are kept."""
        self.file_info = None
        self.metadata = None
        self.loading = False
        logger.info("Viewer state cleared of the shown file.")
