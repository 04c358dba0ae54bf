"""
Load Sessions & Generations
===========================
Tracks which file load is the latest one and owns the resources of the load
currently on screen.

Why is this file needed?
------------------------
1. Stale results: Decoding runs in the background. If the user opens a second
   file before the first finishes, the first result must be thrown away. Each
   request gets a monotonically increasing generation id and only the latest
   generation is accepted.
2. Cleanup: The buffers of a load (and anything the renderer built from them)
   are released automatically when a newer load is installed or the viewer
   closes, instead of relying on callers to remember.

Classes:
    LoadTicket: Immutable description of one load request.
    LoadSession: Resources of an installed load.
    LoadCoordinator: Issues generations, accepts/discards results.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from pointcloudviewer.model.errors import ContractViolationError
from pointcloudviewer.model.io import FileInfo
from pointcloudviewer.model.pointcloud import ColorMode, RenderBundle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadTicket:
    generation: int
    file_info: FileInfo
    color_mode: ColorMode

    @property
    def path(self) -> str:
        return self.file_info.path


class LoadSession:
    """
    Owns the bundle of one accepted load.

    Release callbacks (e.g. removing a renderer actor) run exactly once, when
    the session is superseded or disposed. After that the bundle is gone and
    any access is a contract violation.
    """
    def __init__(self, ticket: LoadTicket, bundle: RenderBundle) -> None:
        self.ticket = ticket
        self._bundle: Optional[RenderBundle] = bundle
        self._release_callbacks: List[Callable[[], None]] = []
        self.released: bool = False

    @property
    def generation(self) -> int:
        return self.ticket.generation

    @property
    def file_info(self) -> FileInfo:
        return self.ticket.file_info

    @property
    def bundle(self) -> RenderBundle:
        if self._bundle is None:
            raise ContractViolationError(f"Load {self.generation} was released; its buffers are stale.")
        return self._bundle

    def replace_bundle(self, bundle: RenderBundle) -> None:
        """Swap in a re-rendered bundle (e.g. another color mode) of the same load."""
        if self.released:
            raise ContractViolationError(f"Cannot update released load {self.generation}.")
        if bundle.generation != self.generation:
            raise ContractViolationError(
                f"Bundle of generation {bundle.generation} cannot replace load {self.generation}."
            )
        self._bundle = bundle

    def on_release(self, callback: Callable[[], None]) -> None:
        if self.released:
            raise ContractViolationError(f"Load {self.generation} is already released.")
        self._release_callbacks.append(callback)

    def release(self) -> None:
        if self.released:
            return
        self.released = True
        self._bundle = None

        callbacks, self._release_callbacks = self._release_callbacks, []
        for callback in reversed(callbacks):
            try:
                callback()
            except Exception as e:
                logger.warning(f"Release callback of load {self.generation} failed: {e}")
        logger.debug(f"Released load {self.generation}.")

    def __enter__(self) -> LoadSession:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class LoadCoordinator:
    def __init__(self) -> None:
        self._latest_generation: int = 0
        self._pending: Dict[int, LoadTicket] = {}
        self._current: Optional[LoadSession] = None

    # --- PROPERTIES ---

    @property
    def latest_generation(self) -> int:
        return self._latest_generation

    @property
    def current(self) -> Optional[LoadSession]:
        return self._current

    @property
    def pending(self) -> bool:
        return self._latest_generation in self._pending

    def is_current(self, generation: int) -> bool:
        return generation == self._latest_generation

    # --- LIFECYCLE ---

    def begin(self, file_info: FileInfo, color_mode: ColorMode) -> LoadTicket:
        """Start a new load. Every earlier pending load becomes stale."""
        self._latest_generation += 1
        ticket = LoadTicket(
            generation=self._latest_generation,
            file_info=file_info,
            color_mode=ColorMode(color_mode),
        )
        self._pending[ticket.generation] = ticket
        logger.info(f"Load {ticket.generation} started for '{file_info.name}'.")
        return ticket

    def accept(self, generation: int, bundle: RenderBundle) -> Optional[LoadSession]:
        """
        Install the result of a load.

        Returns:
            The new session, or None if the result belongs to a superseded load
            (it is discarded).
        """
        ticket = self._pending.pop(generation, None)
        if bundle.generation != generation:
            raise ContractViolationError(
                f"Result tagged with generation {bundle.generation} delivered as {generation}."
            )

        if ticket is None or not self.is_current(generation):
            logger.info(f"Discarding stale result of load {generation} (latest is {self._latest_generation}).")
            return None

        previous = self._current
        if previous is not None:
            previous.release()

        self._current = LoadSession(ticket, bundle)
        logger.info(f"Load {generation} installed ({bundle.point_count} points).")
        return self._current

    def reject(self, generation: int) -> bool:
        """
        Drop a failed load. Returns True if it was the latest one, i.e. the
        failure should be reported to the user.
        """
        self._pending.pop(generation, None)
        if not self.is_current(generation):
            logger.info(f"Ignoring failure of stale load {generation}.")
            return False
        return True

    def close_current(self) -> bool:
        """
        Release the shown load and invalidate in-flight ones. The coordinator
        stays usable for the next load.

        Returns:
            True if a load was on screen.
        """
        self._latest_generation += 1
        self._pending.clear()

        session, self._current = self._current, None
        if session is None:
            return False
        session.release()
        logger.info(f"Closed load {session.generation}.")
        return True

    def dispose(self) -> None:
        """Release everything. In-flight loads become stale."""
        self.close_current()
        logger.info("Load coordinator disposed.")
