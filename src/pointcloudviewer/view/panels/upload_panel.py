"""
Upload & Display Control Panel
"""
from typing import Optional

from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QDoubleSpinBox, QGroupBox, QFormLayout,
    QFileDialog, QButtonGroup
)
from PySide6.QtCore import Signal, Qt

from pointcloudviewer.config import MAX_POINT_SIZE, MIN_POINT_SIZE, POINT_SIZE_STEP, SUPPORTED_EXTENSIONS
from pointcloudviewer.model.pointcloud import ColorMode, EmptyReason
from pointcloudviewer.model.state import ViewerState

FILE_FILTER = "Point Clouds ({})".format(" ".join(f"*.{ext}" for ext in SUPPORTED_EXTENSIONS))


class UploadControlPanel(QWidget):
    # Signals for the main window
    file_selected = Signal(str)
    point_size_changed = Signal(float)
    color_mode_changed = Signal(object)  # ColorMode

    def __init__(self, viewer_state: ViewerState) -> None:
        super().__init__()
        self.state = viewer_state

        layout = QVBoxLayout(self)

        # --- Upload Group ---
        grp_upload = QGroupBox("Upload Data")
        l_upload = QVBoxLayout(grp_upload)

        self.btn_open = QPushButton("Open Point Cloud...")
        self.btn_open.setMinimumHeight(40)
        self.btn_open.clicked.connect(self.on_open_clicked)
        l_upload.addWidget(self.btn_open)

        self.lbl_error = QLabel("")
        self.lbl_error.setWordWrap(True)
        self.lbl_error.setStyleSheet("color: red;")
        self.lbl_error.setVisible(False)
        l_upload.addWidget(self.lbl_error)

        layout.addWidget(grp_upload)

        # --- File Info Group ---
        self.grp_info = QGroupBox("File")
        form_info = QFormLayout(self.grp_info)

        self.lbl_name = QLabel("-")
        self.lbl_type = QLabel("-")
        self.lbl_size = QLabel("-")
        self.lbl_points = QLabel("-")
        self.lbl_dimensions = QLabel("-")
        for lbl in (self.lbl_name, self.lbl_type, self.lbl_size, self.lbl_points, self.lbl_dimensions):
            lbl.setAlignment(Qt.AlignRight | Qt.AlignVCenter)
            lbl.setTextInteractionFlags(Qt.TextSelectableByMouse)

        form_info.addRow("Filename:", self.lbl_name)
        form_info.addRow("Type:", self.lbl_type)
        form_info.addRow("Size:", self.lbl_size)
        form_info.addRow("Points:", self.lbl_points)
        form_info.addRow("Dimensions:", self.lbl_dimensions)

        self.lbl_notice = QLabel("")
        self.lbl_notice.setWordWrap(True)
        self.lbl_notice.setStyleSheet("color: gray;")
        form_info.addRow(self.lbl_notice)

        layout.addWidget(self.grp_info)

        # --- Display Group ---
        self.grp_display = QGroupBox("Display")
        form_display = QFormLayout(self.grp_display)

        self.spin_point_size = QDoubleSpinBox()
        self.spin_point_size.setRange(MIN_POINT_SIZE, MAX_POINT_SIZE)
        self.spin_point_size.setSingleStep(POINT_SIZE_STEP)
        self.spin_point_size.setDecimals(1)
        self.spin_point_size.setSuffix(" px")
        self.spin_point_size.setValue(self.state.point_size)
        self.spin_point_size.valueChanged.connect(self.on_point_size_changed)
        form_display.addRow("Point Size:", self.spin_point_size)

        hbox_mode = QHBoxLayout()
        self.mode_group = QButtonGroup(self)
        self.mode_group.setExclusive(True)
        self.mode_buttons: dict[ColorMode, QPushButton] = {}
        for mode in ColorMode:
            btn = QPushButton(mode.label)
            btn.setCheckable(True)
            btn.setChecked(mode == self.state.color_mode)
            btn.clicked.connect(lambda _checked=False, m=mode: self.on_color_mode_clicked(m))
            self.mode_group.addButton(btn)
            self.mode_buttons[mode] = btn
            hbox_mode.addWidget(btn)
        form_display.addRow(hbox_mode)

        layout.addWidget(self.grp_display)
        layout.addStretch()

        self.refresh()

    # --- SLOTS ---

    def on_open_clicked(self) -> None:
        fname, _ = QFileDialog.getOpenFileName(self, "Open Point Cloud", "", FILE_FILTER)
        if fname:
            self.file_selected.emit(fname)

    def on_point_size_changed(self, value: float) -> None:
        self.point_size_changed.emit(float(value))

    def on_color_mode_clicked(self, mode: ColorMode) -> None:
        if mode != self.state.color_mode:
            self.color_mode_changed.emit(mode)

    # --- STATE SYNC ---

    def show_error(self, message: Optional[str]) -> None:
        self.lbl_error.setText(message or "")
        self.lbl_error.setVisible(bool(message))

    def refresh(self) -> None:
        """Re-read labels and controls from the ViewerState."""
        info = self.state.file_info
        has_file = info is not None

        self.grp_info.setVisible(has_file)
        # Display controls only make sense once a cloud is selected
        self.grp_display.setVisible(has_file)

        if info is not None:
            self.lbl_name.setText(info.name)
            self.lbl_type.setText(info.type)
            self.lbl_size.setText(info.size)

        metadata = self.state.metadata
        if self.state.loading:
            self.lbl_points.setText("Loading...")
            self.lbl_dimensions.setText("Calculating...")
            self.lbl_notice.setText("")
        elif metadata is not None:
            self.lbl_points.setText(f"{metadata.point_count:,}")
            self.lbl_dimensions.setText(metadata.bounding_box_label)
            self.lbl_notice.setText(self._empty_notice(metadata.empty_reason))
        else:
            self.lbl_points.setText("-")
            self.lbl_dimensions.setText("-")
            self.lbl_notice.setText("")

        self.spin_point_size.blockSignals(True)
        self.spin_point_size.setValue(self.state.point_size)
        self.spin_point_size.blockSignals(False)

        for mode, btn in self.mode_buttons.items():
            btn.setChecked(mode == self.state.color_mode)

    @staticmethod
    def _empty_notice(reason: Optional[EmptyReason]) -> str:
        if reason == EmptyReason.NO_ROWS:
            return "The file contains no points."
        if reason == EmptyReason.ALL_INVALID:
            return "No valid points: every point had invalid coordinates."
        return ""
