"""
Main Application Window
=======================
The primary GUI container that holds the Menu Bar, the sidebar panels and the
3D view.

Why is this file needed?
------------------------
1. Layout: It organizes the high-level visual structure of the application.
2. Routing: It connects user actions (open a file, change the color mode) to
   the background loader and the renderer, and keeps only the newest load on
   screen.
"""
import logging
import os
from typing import Dict

from PySide6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QSplitter, QFileDialog, QMessageBox
)
from PySide6.QtCore import Qt
from PySide6.QtGui import QAction, QCloseEvent

from pointcloudviewer.config import SAMPLE_CLOUD_PATH, VISIBLE_APP_NAME
from pointcloudviewer.controller.session import LoadCoordinator
from pointcloudviewer.controller.workers import PointCloudLoadWorker
from pointcloudviewer.model.activity import ActivityKind, describe_load
from pointcloudviewer.model.errors import ErrorKind, PointCloudError
from pointcloudviewer.model.io import FileInfo
from pointcloudviewer.model.pipeline import recolor
from pointcloudviewer.model.pointcloud import ColorMode, RenderBundle
from pointcloudviewer.model.state import ViewerState
from pointcloudviewer.view.panels.activity_panel import ActivityPanel
from pointcloudviewer.view.panels.upload_panel import FILE_FILTER, UploadControlPanel
from pointcloudviewer.view.widgets.plot_3d import PointCloudWidget

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    def __init__(self, viewer_state: ViewerState) -> None:
        super().__init__()
        self.state: ViewerState = viewer_state
        self.coordinator: LoadCoordinator = LoadCoordinator()

        # Running workers by generation; a reference must be kept until the thread finishes
        self.workers: Dict[int, PointCloudLoadWorker] = {}

        self.update_window_title()
        self.resize(1400, 900)

        # --- MAIN CONTAINER ---
        main_widget = QWidget()
        self.setCentralWidget(main_widget)

        main_layout = QVBoxLayout(main_widget)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)

        splitter = QSplitter(Qt.Horizontal)
        main_layout.addWidget(splitter)

        # --- LEFT SIDE: Sidebar (upload + activity) ---
        sidebar = QSplitter(Qt.Vertical)
        self.upload_panel = UploadControlPanel(self.state)
        self.activity_panel = ActivityPanel(self.state.activity)
        sidebar.addWidget(self.upload_panel)
        sidebar.addWidget(self.activity_panel)
        sidebar.setSizes([600, 300])
        splitter.addWidget(sidebar)

        # --- RIGHT SIDE: 3D Visualization ---
        self.visualizer = PointCloudWidget()
        splitter.addWidget(self.visualizer)

        # Set initial proportions (1 part sidebar : 4 parts 3D view)
        splitter.setSizes([350, 1050])

        # --- SIGNAL CONNECTIONS ---
        self.upload_panel.file_selected.connect(self.open_file)
        self.upload_panel.point_size_changed.connect(self.on_point_size_changed)
        self.upload_panel.color_mode_changed.connect(self.on_color_mode_changed)

        # --- ACTIONS & MENUS ---
        self._create_actions()
        self._create_menus()

    def _create_actions(self) -> None:
        # File Actions
        self.act_open = QAction("Open...", self)
        self.act_open.setShortcut("Ctrl+O")
        self.act_open.triggered.connect(self.on_file_open)

        self.act_open_sample = QAction("Open Sample", self)
        self.act_open_sample.triggered.connect(self.on_file_open_sample)
        self.act_open_sample.setEnabled(os.path.isfile(SAMPLE_CLOUD_PATH))

        self.act_close = QAction("Close", self)
        self.act_close.setShortcut("Ctrl+W")
        self.act_close.triggered.connect(self.on_file_close)
        self.act_close.setEnabled(False)

        self.act_exit = QAction("Exit", self)
        self.act_exit.triggered.connect(self.close)

        # View Actions
        self.act_reset_camera = QAction("Reset Camera", self)
        self.act_reset_camera.setShortcut("R")
        self.act_reset_camera.triggered.connect(self.visualizer.reset_view)

    def _create_menus(self) -> None:
        menu_bar = self.menuBar()

        file_menu = menu_bar.addMenu("&File")
        file_menu.addAction(self.act_open)
        file_menu.addAction(self.act_open_sample)
        file_menu.addAction(self.act_close)
        file_menu.addSeparator()
        file_menu.addAction(self.act_exit)

        view_menu = menu_bar.addMenu("&View")
        view_menu.addAction(self.act_reset_camera)

    # --- HELPER METHODS ---
    def update_window_title(self) -> None:
        """Updates the window title based on the shown file."""
        info = self.state.file_info
        if info is None:
            self.setWindowTitle(VISIBLE_APP_NAME)
        else:
            self.setWindowTitle(f"{VISIBLE_APP_NAME} - [{info.name}]")

    def refresh_ui_from_state(self) -> None:
        """Force the panels to read from the State again."""
        self.upload_panel.refresh()
        self.activity_panel.refresh()
        self.update_window_title()
        self.act_close.setEnabled(self.state.file_info is not None)

    def log_activity(self, message: str, kind: ActivityKind = ActivityKind.INFO) -> None:
        self.state.activity.add(message, kind)
        self.activity_panel.refresh()

    # --- FILE SLOTS ---

    def on_file_open(self) -> None:
        fname, _ = QFileDialog.getOpenFileName(self, "Open Point Cloud", "", FILE_FILTER)
        if fname:
            self.open_file(fname)

    def on_file_open_sample(self) -> None:
        self.open_file(SAMPLE_CLOUD_PATH)

    def on_file_close(self) -> None:
        """Release the shown cloud and return to the empty viewer."""
        info = self.state.file_info
        self.coordinator.close_current()
        self.visualizer.clear()
        self.state.close_file()
        self.upload_panel.show_error(None)
        self.refresh_ui_from_state()
        if info is not None:
            self.log_activity(f"Closed point cloud file: {info.name}")

    def open_file(self, path: str) -> None:
        """Validate the selection and start a background load for it."""
        name = os.path.basename(path)
        try:
            file_info = FileInfo.from_path(path)
        except PointCloudError as e:
            logger.warning(f"Rejected '{name}': {e}")
            self.upload_panel.show_error(str(e))
            self.log_activity(f"Failed to upload file: {name} - {self._describe_kind(e.kind)}", ActivityKind.ERROR)
            return

        self.upload_panel.show_error(None)

        ticket = self.coordinator.begin(file_info, self.state.color_mode)
        self.state.begin_loading(file_info)
        self.refresh_ui_from_state()

        worker = PointCloudLoadWorker(ticket)
        worker.bundle_ready.connect(self.on_bundle_ready)
        worker.error_occurred.connect(self.on_load_error)
        worker.finished.connect(lambda g=ticket.generation: self._on_worker_finished(g))
        self.workers[ticket.generation] = worker
        worker.start()

    # --- WORKER SLOTS ---

    def on_bundle_ready(self, generation: int, bundle: RenderBundle) -> None:
        session = self.coordinator.accept(generation, bundle)
        if session is None:
            return

        # Loads started before a color-mode change still carry the old mode
        if session.bundle.color_mode != self.state.color_mode:
            session.replace_bundle(recolor(session.bundle, self.state.color_mode))

        self.visualizer.show_session(session, self.state.point_size)
        self.state.finish_loading(session.file_info, session.bundle.metadata)
        self.refresh_ui_from_state()

        self.log_activity(*describe_load(session.file_info.name, session.bundle.metadata))

    def on_load_error(self, generation: int, kind: str, message: str) -> None:
        if not self.coordinator.reject(generation):
            return

        error_kind = ErrorKind(kind)
        # Keep showing the previous cloud (if any)
        current = self.coordinator.current
        if current is not None:
            self.state.abort_loading(current.file_info, current.bundle.metadata)
        else:
            self.state.abort_loading(None, None)
        self.refresh_ui_from_state()

        self.log_activity(f"Failed to process file: {message}", ActivityKind.ERROR)

        if error_kind == ErrorKind.CONTRACT_VIOLATION:
            QMessageBox.critical(self, "Internal Error", f"The point cloud could not be processed:\n{message}")
        else:
            self.upload_panel.show_error(message)

    def _on_worker_finished(self, generation: int) -> None:
        worker = self.workers.pop(generation, None)
        if worker is not None:
            worker.deleteLater()

    # --- DISPLAY SLOTS ---

    def on_point_size_changed(self, size: float) -> None:
        stored = self.state.set_point_size(size)
        self.visualizer.set_point_size(stored)
        self.log_activity(f"Changed point size to {stored:.4f}")

    def on_color_mode_changed(self, mode: ColorMode) -> None:
        if not self.state.set_color_mode(mode):
            return

        session = self.coordinator.current
        if session is not None:
            session.replace_bundle(recolor(session.bundle, self.state.color_mode))
            self.visualizer.update_colors(session.bundle)

        self.upload_panel.refresh()
        self.log_activity(f"Changed color mode to {self.state.color_mode.label}")

    @staticmethod
    def _describe_kind(kind: ErrorKind) -> str:
        if kind == ErrorKind.UNSUPPORTED_FORMAT:
            return "Invalid file type"
        return str(kind)

    def closeEvent(self, event: QCloseEvent, /) -> None:
        # In-flight loads become stale; their results are dropped on arrival
        self.coordinator.dispose()
        for worker in list(self.workers.values()):
            worker.wait()

        # Close the PyVista plotter safely
        if self.visualizer and self.visualizer.plotter:
            self.visualizer.plotter.close()

        event.accept()
