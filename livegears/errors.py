"""Exception types raised by the uploader and the downloader."""

from __future__ import annotations


class BiliupError(Exception):
    """A failure reported by the upload side of the package."""


class DownloadError(Exception):
    """A failure reported while recording a live stream."""


class IncompleteParseError(DownloadError):
    """The stream ended before enough bytes arrived to parse a structure."""

    def __init__(self, what: str, needed: int | None) -> None:
        self.what = what
        self.needed = needed
        amount = "an unknown number of" if needed is None else str(needed)
        super().__init__(f"Parsing {what} requires {amount} bytes/chars.")