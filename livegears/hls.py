"""Recording an HLS live stream by following its media playlist."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import BinaryIO, List, Optional, Union
from urllib.parse import urljoin

from .client import StatelessClient
from .errors import DownloadError
from .segment import LifecycleFile, Segmentable

log = logging.getLogger(__name__)

_STREAM_INF = "#EXT-X-STREAM-INF"


@dataclass
class MediaSegment:
    """One entry of a media playlist."""

    uri: str
    duration: float
    title: str = ""
    discontinuity: bool = False


@dataclass
class MediaPlaylist:
    """A playlist listing the media segments of a stream."""

    media_sequence: int = 0
    target_duration: float = 0.0
    end_list: bool = False
    segments: List[MediaSegment] = field(default_factory=list)


@dataclass
class MasterPlaylist:
    """A playlist listing the URIs of variant media playlists."""

    variants: List[str] = field(default_factory=list)


Playlist = Union[MasterPlaylist, MediaPlaylist]


def _lines(data: Union[bytes, str]) -> List[str]:
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValueError(f"playlist is not UTF-8: {exc}") from None
    lines = [line.strip() for line in data.lstrip("\ufeff").splitlines()]
    lines = [line for line in lines if line]
    if not lines or lines[0] != "#EXTM3U":
        raise ValueError("playlist does not start with #EXTM3U")
    return lines[1:]


def _is_master(lines: List[str]) -> bool:
    return any(line.startswith(_STREAM_INF) for line in lines)


def _parse_master(lines: List[str]) -> MasterPlaylist:
    playlist = MasterPlaylist()
    expecting_uri = False
    for line in lines:
        if line.startswith(_STREAM_INF):
            expecting_uri = True
        elif not line.startswith("#") and expecting_uri:
            playlist.variants.append(line)
            expecting_uri = False
    if not playlist.variants:
        raise ValueError("master playlist has no variants")
    return playlist


def _value(line: str) -> str:
    return line.split(":", 1)[1]


def _parse_media(lines: List[str]) -> MediaPlaylist:
    playlist = MediaPlaylist()
    duration: Optional[float] = None
    title = ""
    discontinuity = False
    try:
        for line in lines:
            if line.startswith("#EXT-X-MEDIA-SEQUENCE:"):
                playlist.media_sequence = int(_value(line))
            elif line.startswith("#EXT-X-TARGETDURATION:"):
                playlist.target_duration = float(_value(line))
            elif line == "#EXT-X-ENDLIST":
                playlist.end_list = True
            elif line == "#EXT-X-DISCONTINUITY":
                discontinuity = True
            elif line.startswith("#EXTINF:"):
                raw_duration, _, title = _value(line).partition(",")
                duration = float(raw_duration)
            elif line.startswith("#"):
                continue
            else:
                if duration is None:
                    raise ValueError(f"segment {line} has no #EXTINF")
                playlist.segments.append(MediaSegment(line, duration, title, discontinuity))
                duration, title, discontinuity = None, "", False
    except (IndexError, TypeError) as exc:
        raise ValueError(f"malformed playlist: {exc}") from None
    return playlist


def parse_playlist(data: Union[bytes, str]) -> Playlist:
    """Parse a master or media playlist; raise ValueError if it is neither."""
    lines = _lines(data)
    if _is_master(lines):
        return _parse_master(lines)
    return _parse_media(lines)


def parse_media_playlist(data: Union[bytes, str]) -> MediaPlaylist:
    """Parse a media playlist; raise ValueError for anything else."""
    lines = _lines(data)
    if _is_master(lines):
        raise ValueError("expected a media playlist, got a master playlist")
    return _parse_media(lines)


def _open_ts(path) -> BinaryIO:
    try:
        out = open(path, "wb")
    except OSError as exc:
        raise OSError(exc.errno, f"Unable to create file {path}") from exc
    log.info("create file %s", path)
    return out


class TsFile:
    """A transport-stream output file renamed to its final name when closed."""

    def __init__(self, file: LifecycleFile) -> None:
        self.file = file
        self.buf_writer: BinaryIO = _open_ts(file.create())
        self._closed = False

    def create_new(self) -> None:
        """Finish the current file and start the next one."""
        self.buf_writer.close()
        self.file.rename()
        self.buf_writer = _open_ts(self.file.create())

    def close(self) -> None:
        """Close the file and move it to its final name."""
        if self._closed:
            return
        self._closed = True
        self.buf_writer.close()
        self.file.rename()

    def __enter__(self) -> "TsFile":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def download_to_file(url: str, client: StatelessClient, out: BinaryIO) -> int:
    """Append the body at ``url`` to ``out``; return the number of bytes written."""
    log.debug("url: %s", url)
    response = client.retryable(url)
    length = 0
    for chunk in response.iter_content(chunk_size=8192):
        length += len(chunk)
        out.write(chunk)
    return length


def download(
    url: str, client: StatelessClient, file: LifecycleFile, segment: Segmentable
) -> None:
    """Follow the playlist at ``url`` until it runs dry, writing segments to files."""
    log.info("Downloading %s...", url)
    response = client.retryable(url)
    log.info("%s", response.status_code)
    content = response.content
    with TsFile(file) as ts_file:
        media_url = url
        try:
            playlist = parse_playlist(content)
        except ValueError as exc:
            raise DownloadError(f"Parsing error: \n{exc}") from exc
        if isinstance(playlist, MasterPlaylist):
            log.info("Master playlist:\n%s", playlist)
            media_url = urljoin(url, playlist.variants[0])
            log.info("media url: %s", media_url)
            body = client.retryable(media_url).content
            try:
                playlist = parse_media_playlist(body)
            except ValueError as exc:
                with open("test.fmp4", "wb") as dump:
                    dump.write(body)
                raise DownloadError("Unable to parse the content.") from exc
        else:
            log.info("Media playlist:\n%s", playlist)
            log.info("index %d", playlist.media_sequence)

        previous_last_segment = 0
        while playlist.segments:
            for seq, media in enumerate(playlist.segments, start=playlist.media_sequence):
                if seq <= previous_last_segment:
                    continue
                if previous_last_segment > 0 and seq > previous_last_segment + 1:
                    log.warning("SEGMENT INFO SKIPPED")
                log.debug("Yield segment")
                if media.discontinuity:
                    log.warning("#EXT-X-DISCONTINUITY")
                    ts_file.create_new()
                    segment.reset()
                length = download_to_file(
                    urljoin(media_url, media.uri), client, ts_file.buf_writer
                )
                segment.increase_size(length)
                segment.increase_time(int(media.duration))
                if segment.needed():
                    ts_file.create_new()
                    segment.reset()
                previous_last_segment = seq
            body = client.retryable(media_url).content
            try:
                playlist = parse_media_playlist(body)
            except ValueError:
                pass
        log.info("Segments array is empty - stream finished")
    log.info("Done...")