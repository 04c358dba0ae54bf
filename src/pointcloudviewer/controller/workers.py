"""
Background Workers (Threading)
==============================
This module contains QThread subclasses for handling long-running tasks.

Why is this file needed?
------------------------
1. Responsiveness: Decoding a large point cloud on the main thread freezes
   the GUI. The worker decodes the file and runs the pipeline in the
   background.
2. Signals: Results go back to the GUI thread through typed Qt Signals that
   carry the load generation, so the receiver can drop stale results.

Classes:
    PointCloudLoadWorker: Decodes one file and builds its RenderBundle.
"""
import logging

from PySide6.QtCore import QThread, Signal

from pointcloudviewer.controller.session import LoadTicket
from pointcloudviewer.model.errors import ErrorKind, PointCloudError
from pointcloudviewer.model.io import PointCloudIO
from pointcloudviewer.model.pipeline import process_point_cloud

logger = logging.getLogger(__name__)


class PointCloudLoadWorker(QThread):
    # Signals to update the UI from the background
    bundle_ready = Signal(int, object)      # (generation, RenderBundle)
    error_occurred = Signal(int, str, str)  # (generation, ErrorKind, message)

    def __init__(self, ticket: LoadTicket) -> None:
        super().__init__()
        self.ticket = ticket

    @property
    def generation(self) -> int:
        return self.ticket.generation

    def run(self) -> None:
        generation = self.ticket.generation
        logger.info(f"Load {generation}: decoding '{self.ticket.path}' in background thread...")

        # 1. Decode (external readers)
        try:
            raw = PointCloudIO.read_raw_points(self.ticket.path)
        except PointCloudError as e:
            logger.error(f"Load {generation} failed ({e.kind}): {e}")
            self.error_occurred.emit(generation, str(e.kind), str(e))
            return
        except Exception as e:
            logger.exception(f"Unexpected decoder error in load {generation}")
            self.error_occurred.emit(generation, str(ErrorKind.DECODE_FAILURE), str(e))
            return

        # 2. Pipeline (pure, synchronous)
        try:
            bundle = process_point_cloud(
                raw.points,
                color_mode=self.ticket.color_mode,
                generation=generation,
                source_rows=raw.source_rows,
            )
        except PointCloudError as e:
            logger.error(f"Load {generation} aborted ({e.kind}): {e}")
            self.error_occurred.emit(generation, str(e.kind), str(e))
            return
        except Exception as e:
            logger.exception(f"Pipeline fault in load {generation}")
            self.error_occurred.emit(generation, str(ErrorKind.CONTRACT_VIOLATION), str(e))
            return

        self.bundle_ready.emit(generation, bundle)
