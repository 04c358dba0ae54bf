"""
3D Visualization Widget (PyVista Wrapper) - Point Cloud Rendering
"""

from __future__ import annotations

from typing import Callable, Optional

import logging
import numpy as np
import numpy.typing as npt

from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QPushButton, QFrame, QStyle
)
from PySide6.QtGui import QCloseEvent, QResizeEvent

from pyvistaqt import QtInteractor
import pyvista as pv

from pointcloudviewer.config import BACKGROUND_COLOR, TEXT_COLOR
from pointcloudviewer.controller.session import LoadSession
from pointcloudviewer.model.pointcloud import CameraPose, DEFAULT_CAMERA_POSE, RenderBundle

logger = logging.getLogger(__name__)

PLACEHOLDER_TEXT = "Upload a point cloud file to view"
EMPTY_CLOUD_TEXT = "No valid points to display"
STATUS_ACTOR_NAME = "status_text"
CLOUD_ACTOR_NAME = "point_cloud"


def colors_to_rgb8(colors: npt.NDArray[np.float32]) -> npt.NDArray[np.uint8]:
    """[0, 1] float RGB -> 0..255 bytes for VTK direct scalars."""
    return np.clip(np.rint(np.asarray(colors) * 255.0), 0, 255).astype(np.uint8)


class PointCloudWidget(QWidget):
    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)

        self.layout_box: QVBoxLayout = QVBoxLayout(self)
        self.layout_box.setContentsMargins(0, 0, 0, 0)

        self.plotter: QtInteractor = QtInteractor(self)
        self.layout_box.addWidget(self.plotter)

        self._init_plotter()

        # --- Actors state ---
        self._cloud_actor: Optional[pv.Actor] = None
        self._cloud_generation: Optional[int] = None

        # Pose computed by the pipeline for the shown load
        self._framed_pose: CameraPose = DEFAULT_CAMERA_POSE

        self._setup_overlay_controls()
        self.show_placeholder(PLACEHOLDER_TEXT)

    # ------------------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------------------

    def show_session(self, session: LoadSession, point_size: float, reset_camera: bool = True) -> None:
        """
        Renders the bundle of an installed load and ties the actor's lifetime
        to the session: releasing the session removes the actor.
        """
        bundle = session.bundle
        logger.info(f"Rendering load {bundle.generation} ({bundle.point_count} points).")

        self._clear_cloud_layer()

        if bundle.is_empty:
            self.show_placeholder(EMPTY_CLOUD_TEXT)
        else:
            self._hide_status_text()
            self._cloud_actor = self._add_cloud_actor(bundle, point_size)
            self._cloud_generation = bundle.generation
            session.on_release(self._make_release_callback(bundle.generation))

        self._framed_pose = bundle.camera
        if reset_camera:
            self.apply_camera_pose(bundle.camera)

        self.plotter.render()

    def update_colors(self, bundle: RenderBundle) -> None:
        """Refreshes colors in place after a color-mode change of the shown load."""
        if self._cloud_actor is None or self._cloud_generation != bundle.generation:
            return

        dataset = self._cloud_actor.mapper.dataset
        dataset.point_data["rgb"] = colors_to_rgb8(bundle.colors)
        self._cloud_actor.mapper.dataset.Modified()
        self.plotter.render()

    def set_point_size(self, size: float) -> None:
        if self._cloud_actor is not None:
            self._cloud_actor.prop.point_size = float(size)
            self.plotter.render()

    def apply_camera_pose(self, pose: CameraPose) -> None:
        self.plotter.camera_position = [pose.position, pose.look_at, pose.view_up]
        self.plotter.reset_camera_clipping_range()

    def reset_view(self) -> None:
        """Back to the pose framed by the pipeline for the current cloud."""
        self.apply_camera_pose(self._framed_pose)
        self.plotter.render()

    def show_placeholder(self, text: str) -> None:
        self.plotter.add_text(
            text,
            position="upper_left",
            font_size=12,
            color=TEXT_COLOR,
            name=STATUS_ACTOR_NAME,
        )
        self.plotter.render()

    def clear(self) -> None:
        """Removes the cloud and shows the initial placeholder."""
        self._clear_cloud_layer()
        self._framed_pose = DEFAULT_CAMERA_POSE
        self.apply_camera_pose(DEFAULT_CAMERA_POSE)
        self.show_placeholder(PLACEHOLDER_TEXT)

    # ------------------------------------------------------------------------------
    # Internal: Layer Management
    # ------------------------------------------------------------------------------

    def _add_cloud_actor(self, bundle: RenderBundle, point_size: float) -> pv.Actor:
        cloud = pv.PolyData(np.asarray(bundle.positions, dtype=np.float64))
        cloud.point_data["rgb"] = colors_to_rgb8(bundle.colors)

        return self.plotter.add_mesh(
            cloud,
            scalars="rgb",
            rgb=True,
            style="points",
            point_size=point_size,
            render_points_as_spheres=False,
            lighting=False,
            pickable=False,
            show_scalar_bar=False,
            name=CLOUD_ACTOR_NAME,
        )

    def _make_release_callback(self, generation: int) -> Callable[[], None]:
        def release() -> None:
            # A newer load may already own the actor slot
            if self._cloud_generation == generation:
                self._clear_cloud_layer()
        return release

    def _clear_cloud_layer(self) -> None:
        """Removes the point cloud actor."""
        if self._cloud_actor is not None:
            self.plotter.remove_actor(self._cloud_actor, render=False)
            self._cloud_actor = None
            self._cloud_generation = None

    def _hide_status_text(self) -> None:
        self.plotter.remove_actor(STATUS_ACTOR_NAME, render=False)

    # ------------------------------------------------------------------------------
    # Internal: Setup
    # ------------------------------------------------------------------------------

    def _init_plotter(self) -> None:
        self.plotter.set_background(BACKGROUND_COLOR)
        self.plotter.enable_trackball_style()
        self.plotter.add_axes(color=TEXT_COLOR)
        self.apply_camera_pose(DEFAULT_CAMERA_POSE)

    def _setup_overlay_controls(self) -> None:
        """Floating view buttons."""
        self.overlay_widget = QFrame(self)
        self.overlay_widget.setStyleSheet("""
            QFrame { background-color: rgba(255, 255, 255, 200); border-radius: 6px; border: 1px solid #ccc; }
            QPushButton { background-color: transparent; border: none; padding: 4px; }
            QPushButton:hover { background-color: rgba(0, 0, 0, 10); }
        """)

        layout = QHBoxLayout(self.overlay_widget)
        layout.setContentsMargins(4, 4, 4, 4)

        def make_btn(icon, slot, tooltip) -> QPushButton:
            btn = QPushButton()
            btn.setIcon(self.style().standardIcon(icon))
            btn.setToolTip(tooltip)
            btn.clicked.connect(slot)
            layout.addWidget(btn)
            return btn

        self.btn_reset_view = make_btn(QStyle.SP_BrowserReload, self.reset_view, "Reset View")

        self.overlay_widget.adjustSize()
        self._place_overlay()

    def _place_overlay(self) -> None:
        margin = 8
        self.overlay_widget.move(self.width() - self.overlay_widget.width() - margin, margin)
        self.overlay_widget.raise_()

    def resizeEvent(self, event: QResizeEvent) -> None:
        super().resizeEvent(event)
        self._place_overlay()

    def closeEvent(self, event: QCloseEvent) -> None:
        self.plotter.close()
        event.accept()
