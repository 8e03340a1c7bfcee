"""
Size and date based rotation rules for the file sink.

Everything here is pure; the file sink owns the I/O.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterable

DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_MAX_FILES = 5
DEFAULT_FILE_PREFIX = "app"


class RotationDecision(Enum):
    NO_ROTATION = "no_rotation"
    ROTATE_SAME_DAY = "rotate_same_day"
    ROTATE_NEW_DAY = "rotate_new_day"


@dataclass(frozen=True)
class RotationPolicy:
    """Decides when the file sink rolls over and which files it evicts.

    Files are named ``<prefix>_<YYYY-MM-DD>_<index>.log``. Indices grow
    monotonically within a day; once ``max_files`` exist for a day the lowest
    indices are evicted to make room.
    """

    max_bytes: int = DEFAULT_MAX_BYTES
    max_files: int = DEFAULT_MAX_FILES
    file_prefix: str = DEFAULT_FILE_PREFIX

    def __post_init__(self) -> None:
        if self.max_bytes <= 0:
            raise ValueError("max_bytes must be positive")
        if self.max_files <= 0:
            raise ValueError("max_files must be positive")
        if not self.file_prefix:
            raise ValueError("file_prefix must not be empty")

    def decide(
        self,
        current_date: date | None,
        event_date: date,
        current_index: int,
        current_size: int,
        pending_size: int,
    ) -> RotationDecision:
        # Only a later day rolls over; a straggler from an earlier day
        # (clock moved back, late stdlib record) goes to the current file.
        if current_date is None or event_date > current_date:
            return RotationDecision.ROTATE_NEW_DAY
        # An empty file takes the line whatever its size; rotating would loop.
        if current_size > 0 and current_size + pending_size > self.max_bytes:
            return RotationDecision.ROTATE_SAME_DAY
        return RotationDecision.NO_ROTATION

    @staticmethod
    def next_index(decision: RotationDecision, current_index: int) -> int:
        if decision is RotationDecision.ROTATE_NEW_DAY:
            return 0
        if decision is RotationDecision.ROTATE_SAME_DAY:
            return current_index + 1
        return current_index

    def indices_to_evict(self, existing: Iterable[int], new_index: int) -> list[int]:
        """Lowest indices to delete so that, with ``new_index``, at most ``max_files`` remain."""
        others = sorted(set(existing) - {new_index})
        excess = len(others) + 1 - self.max_files
        if excess <= 0:
            return []
        return others[:excess]

    def file_name(self, day: date, index: int) -> str:
        return f"{self.file_prefix}_{day.isoformat()}_{index}.log"

    def parse_file_name(self, name: str) -> tuple[date, int] | None:
        """Inverse of :meth:`file_name`; ``None`` for foreign files."""
        match = re.fullmatch(rf"{re.escape(self.file_prefix)}_(\d{{4}}-\d{{2}}-\d{{2}})_(\d+)\.log", name)
        if match is None:
            return None
        try:
            return date.fromisoformat(match.group(1)), int(match.group(2))
        except ValueError:
            return None
