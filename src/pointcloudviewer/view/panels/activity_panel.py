"""
Activity Log Panel
"""
from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QListWidget, QListWidgetItem, QGroupBox, QPushButton
)
from PySide6.QtGui import QColor

from pointcloudviewer.model.activity import ActivityKind, ActivityLog

KIND_COLORS = {
    ActivityKind.INFO: QColor("#333333"),
    ActivityKind.SUCCESS: QColor("#2E7D32"),
    ActivityKind.ERROR: QColor("#C62828"),
}


class ActivityPanel(QWidget):
    def __init__(self, activity_log: ActivityLog) -> None:
        super().__init__()
        self.activity = activity_log

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        grp = QGroupBox("Recent Activity")
        l_grp = QVBoxLayout(grp)

        self.list_entries = QListWidget()
        self.list_entries.setWordWrap(True)
        l_grp.addWidget(self.list_entries)

        hbox = QHBoxLayout()
        hbox.addStretch()
        self.btn_clear = QPushButton("Clear")
        self.btn_clear.clicked.connect(self.on_clear_clicked)
        hbox.addWidget(self.btn_clear)
        l_grp.addLayout(hbox)

        layout.addWidget(grp)

        self.refresh()

    def on_clear_clicked(self) -> None:
        self.activity.clear()
        self.refresh()

    def refresh(self) -> None:
        self.list_entries.clear()
        for entry in self.activity:
            item = QListWidgetItem(f"{entry.timestamp:%H:%M:%S}  {entry.message}")
            item.setForeground(KIND_COLORS[entry.kind])
            self.list_entries.addItem(item)
        self.btn_clear.setEnabled(len(self.activity) > 0)
