"""
Application Initialization
==========================
This module constructs the MVC (Model-View-Controller) architecture and starts
the Qt Event Loop.

Why is this file needed?
------------------------
It acts as the "Dependency Injection" root. It:
1. Instantiates the Viewer State (model).
2. Instantiates the Main Window (view), which owns the load coordinator.
3. Passes the Model into the View so they can communicate.
4. Optionally opens a file given on the command line.
"""
import argparse
import logging
import sys
from typing import List, Optional

from PySide6.QtWidgets import QApplication

from pointcloudviewer.config import VISIBLE_APP_NAME
from pointcloudviewer.logging_config import setup_logging
from pointcloudviewer.model.state import ViewerState
from pointcloudviewer.view.main_window import MainWindow


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="pointcloudviewer", description="View .pcd and .xyz point clouds.")
    parser.add_argument("file", nargs="?", help="Point cloud to open on startup.")
    parser.add_argument("--debug", action="store_true", help="Verbose logging.")
    parser.add_argument("--log-file", default=None, help="Also write the log to this file.")
    return parser.parse_args(argv)


def main() -> None:
    args = parse_args(sys.argv[1:])

    # 1. Setup Logging (Console + Optional File)
    setup_logging(level=logging.DEBUG if args.debug else logging.INFO, log_file=args.log_file)

    # 2. Create the Qt Application
    app = QApplication(sys.argv[:1])
    app.setApplicationName(VISIBLE_APP_NAME)

    # 3. Initialize the Data Model
    state = ViewerState()

    # 4. Initialize the Main Window, passing the model
    window = MainWindow(state)
    window.show()

    if args.file:
        window.open_file(args.file)

    # 5. Start Event Loop
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
