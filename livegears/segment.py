"""Deciding when to split a recording and managing the files it is written to."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

log = logging.getLogger(__name__)


@dataclass
class Segmentable:
    """Tracks elapsed time (seconds) and written size (bytes) against split limits.

    A time limit, when given, takes precedence over a size limit.
    """

    expected_time: Optional[float] = None
    expected_size: Optional[int] = None
    time_start: float = field(default=0.0, init=False)
    time_current: float = field(default=0.0, init=False)
    size_current: int = field(default=0, init=False)

    def needed(self) -> bool:
        """Whether the current segment has reached its limit."""
        if self.expected_time is not None:
            return self.time_current - self.time_start >= self.expected_time
        if self.expected_size is not None:
            return self.size_current > self.expected_size
        return False

    def increase_time(self, seconds: float) -> None:
        self.time_current += seconds

    def set_time_position(self, seconds: float) -> None:
        self.time_current = seconds

    def set_start_time(self, seconds: float) -> None:
        self.time_start = seconds

    def increase_size(self, number: int) -> None:
        self.size_current += number

    def set_size_position(self, number: int) -> None:
        self.size_current = number

    def reset(self) -> None:
        self.size_current = 0
        self.time_current = 0.0


def format_filename(file_name: str) -> str:
    """Expand strftime directives in ``file_name`` with the current local time."""
    return datetime.now().strftime(file_name)


class LifecycleFile:
    """A recording file written under a ``.part`` name and renamed when finished."""

    def __init__(
        self,
        fmt_file_name: str,
        extension: str,
        hook: Optional[Callable[[str], object]] = None,
    ) -> None:
        self.fmt_file_name = fmt_file_name
        self.extension = extension
        self.hook: Callable[[str], object] = hook if hook is not None else (lambda _name: None)
        self.file_name = ""
        self.path = Path()

    def create(self) -> Path:
        """Pick a fresh file name, make its directory and return the ``.part`` path."""
        self.file_name = f"{format_filename(self.fmt_file_name)}.{self.extension}"
        final = Path(self.file_name)
        final.parent.mkdir(parents=True, exist_ok=True)
        self.path = final.with_name(f"{final.stem}.{self.extension}.part")
        log.info("Save to %s", self.path)
        return self.path

    def rename(self) -> None:
        """Move the ``.part`` file to its final name and call the hook."""
        try:
            os.replace(self.path, self.file_name)
        except OSError as exc:
            log.error("drop %s %s", self.path, exc)
            return
        self.hook(self.file_name)