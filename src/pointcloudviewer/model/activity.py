"""
Activity Log
Short, newest-first history of what the user did and what happened.
"""
from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Iterator, List, Tuple

from pointcloudviewer.config import ACTIVITY_LOG_LIMIT
from pointcloudviewer.model.pointcloud import Metadata


class ActivityKind(StrEnum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class ActivityEntry:
    id: int
    timestamp: datetime
    kind: ActivityKind
    message: str


@dataclass
class ActivityLog:
    limit: int = ACTIVITY_LOG_LIMIT
    _entries: List[ActivityEntry] = field(default_factory=list)
    _ids: Iterator[int] = field(default_factory=lambda: itertools.count(1), repr=False)

    def add(self, message: str, kind: ActivityKind = ActivityKind.INFO) -> ActivityEntry:
        entry = ActivityEntry(
            id=next(self._ids),
            timestamp=datetime.now(),
            kind=ActivityKind(kind),
            message=message,
        )
        self._entries.insert(0, entry)
        del self._entries[self.limit:]
        return entry

    def clear(self) -> None:
        self._entries.clear()

    @property
    def entries(self) -> List[ActivityEntry]:
        return list(self._entries)

    def __iter__(self) -> Iterator[ActivityEntry]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)


def describe_load(file_name: str, metadata: Metadata) -> Tuple[str, ActivityKind]:
    """
    Activity entry for an installed load. An empty point set is a normal
    outcome (the sidebar explains it), so it is never logged as an error.
    """
    if metadata.is_empty:
        return f"Loaded point cloud file with no valid points: {file_name}", ActivityKind.INFO
    return f"Loaded point cloud file: {file_name}", ActivityKind.SUCCESS
