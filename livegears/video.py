"""Local video files read in fixed-size chunks for uploading."""

from __future__ import annotations

import os
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Union


class VideoStream:
    """Reads a file in chunks of ``capacity`` bytes."""

    def __init__(self, file: BinaryIO, capacity: int) -> None:
        self.file = file
        self.capacity = capacity

    def read(self) -> Optional[bytes]:
        """Return the next chunk, filled as far as the file allows, or None at end."""
        parts = []
        remaining = self.capacity
        while remaining > 0:
            data = self.file.read(remaining)
            if not data:
                break
            parts.append(data)
            remaining -= len(data)
        return b"".join(parts) if parts else None

    def __iter__(self) -> Iterator[bytes]:
        while (chunk := self.read()) is not None:
            yield chunk


class VideoFile:
    """An open video file with its size and name."""

    def __init__(self, filepath: Union[str, os.PathLike]) -> None:
        path = Path(filepath)
        if path.name in ("", ".."):
            raise FileNotFoundError("the path terminates in ..")
        self.file = open(path, "rb")
        self.total_size = os.fstat(self.file.fileno()).st_size
        self.file_name = path.name
        self.filepath = path

    def get_stream(self, capacity: int) -> VideoStream:
        """Return a chunked stream sharing this file's position."""
        handle = open(os.dup(self.file.fileno()), "rb", buffering=0)
        return VideoStream(handle, capacity)

    def __enter__(self) -> "VideoFile":
        return self

    def __exit__(self, *args: object) -> None:
        self.file.close()