"""Recording an HTTP-FLV stream, split into segments at key frames."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional, Tuple, TypeVar

import requests

from .errors import DownloadError, IncompleteParseError
from .flv_parser import (
    AACPacketType,
    AudioData,
    AVCPacketType,
    CodecId,
    FrameType,
    Incomplete,
    ParseError,
    SoundFormat,
    TagHeader,
    VideoData,
    aac_audio_packet_header,
    avc_video_packet_header,
    script_data,
    tag_data,
    tag_header,
)
from .flv_writer import AudioTagData, FlvFile, FlvTag, ScriptTagData, VideoTagData
from .segment import LifecycleFile, Segmentable

log = logging.getLogger(__name__)

T = TypeVar("T")

_HEADER_AND_FIRST_SIZE = 9 + 4

CachedTag = Tuple[TagHeader, bytes, bytes]


class Connection:
    """Buffers an iterable of byte chunks and hands it out in frames of a requested size."""

    def __init__(self, chunks: Iterable[bytes]) -> None:
        self._chunks = iter(chunks)
        self._buffer = bytearray()

    def read_frame(self, chunk_size: int) -> bytes:
        """Return the next ``chunk_size`` bytes, or whatever is left once the stream ends."""
        while len(self._buffer) < chunk_size:
            try:
                chunk = next(self._chunks, None)
            except requests.RequestException:
                chunk = None
            if chunk is None:
                data = bytes(self._buffer)
                self._buffer.clear()
                return data
            self._buffer += chunk
        data = bytes(self._buffer[:chunk_size])
        del self._buffer[:chunk_size]
        return data


def _checked(parse: Callable[[], T], what: str) -> T:
    try:
        return parse()
    except Incomplete as exc:
        raise IncompleteParseError(what, exc.needed) from exc
    except ParseError as exc:
        raise ParseError(f"parse {what} err: {exc}") from exc


def parse_flv(connection: Connection, file: LifecycleFile, segment: Segmentable) -> None:
    """Copy FLV tags from ``connection`` into files, splitting as ``segment`` demands.

    The 9-byte file header must already have been read from the connection.
    """
    cache: List[CachedTag] = []
    connection.read_frame(4)

    with FlvFile(file) as out:
        segment.set_size_position(_HEADER_AND_FIRST_SIZE)
        on_meta_data: Optional[CachedTag] = None
        aac_sequence_header: Optional[CachedTag] = None
        h264_sequence_header: Optional[CachedTag] = None
        prev_timestamp = 0
        create_new = False

        while True:
            header_bytes = connection.read_frame(11)
            if not header_bytes:
                break
            _, head = _checked(lambda: tag_header(header_bytes), "tag header")
            body = connection.read_frame(head.data_size)
            previous_tag_size = connection.read_frame(4)
            _, parsed = _checked(
                lambda: tag_data(head.tag_type, head.data_size, body), "tag data"
            )
            entry: CachedTag = (head, body, previous_tag_size)

            if isinstance(parsed, AudioData):
                packet_type = None
                if parsed.sound_format is SoundFormat.AAC:
                    _, packet = aac_audio_packet_header(parsed.sound_data)
                    if packet.packet_type is AACPacketType.SEQUENCE_HEADER:
                        if aac_sequence_header is not None:
                            log.warning("Unexpected aac sequence header tag. %s", head)
                        aac_sequence_header = entry
                    packet_type = packet.packet_type
                flv_tag = FlvTag(
                    head,
                    AudioTagData(
                        parsed.sound_format,
                        parsed.sound_rate,
                        parsed.sound_size,
                        parsed.sound_type,
                        packet_type,
                    ),
                )
            elif isinstance(parsed, VideoData):
                packet_type = composition_time = None
                if parsed.codec_id is CodecId.H264:
                    _, avc = avc_video_packet_header(parsed.video_data)
                    if avc.packet_type is AVCPacketType.SEQUENCE_HEADER:
                        if h264_sequence_header is not None:
                            log.warning("Unexpected h264 sequence header tag. %s", head)
                            if body != h264_sequence_header[1]:
                                create_new = True
                                log.warning("Different h264 sequence header tag. %s", head)
                        h264_sequence_header = entry
                    packet_type = avc.packet_type
                    composition_time = avc.composition_time
                flv_tag = FlvTag(
                    head,
                    VideoTagData(parsed.frame_type, parsed.codec_id, packet_type, composition_time),
                )
            else:
                _, script = script_data(body)
                if on_meta_data is not None:
                    log.warning("Unexpected script tag. %s", head)
                on_meta_data = entry
                flv_tag = FlvTag(head, ScriptTagData(script))
            log.debug("%s", flv_tag)

            is_key = (
                isinstance(flv_tag.data, VideoTagData)
                and flv_tag.data.frame_type is FrameType.KEY
            )
            if not is_key:
                cache.append(entry)
                continue

            seconds = head.timestamp / 1000
            if prev_timestamp == 0 and head.timestamp != 0:
                segment.set_start_time(seconds)
            segment.set_time_position(seconds)
            for cached_head, cached_body, cached_size in cache:
                if cached_head.timestamp < prev_timestamp:
                    log.warning(
                        "Non-monotonous DTS in output stream; previous: %d, current: %d;",
                        prev_timestamp,
                        cached_head.timestamp,
                    )
                out.write_tag(cached_head, cached_body, cached_size)
                segment.increase_size(11 + cached_head.data_size + 4)
                prev_timestamp = cached_head.timestamp
            cache.clear()

            if segment.needed() or create_new:
                segment.set_start_time(seconds)
                segment.set_size_position(_HEADER_AND_FIRST_SIZE)
                if on_meta_data is None:
                    raise RuntimeError("on_meta_data does not exist")
                cache.append(on_meta_data)
                if aac_sequence_header is None:
                    raise RuntimeError("aac_sequence_header does not exist")
                cache.append(aac_sequence_header)
                if not create_new:
                    if h264_sequence_header is None:
                        raise RuntimeError("h264_sequence_header does not exist")
                    cache.append(h264_sequence_header)
                log.info("%s splitting.%s", out.file.file_name, segment)
                out.create_new()
                create_new = False
            cache.append(entry)


def download(connection: Connection, file: LifecycleFile, segment: Segmentable) -> None:
    """Record the stream, logging rather than raising stream and I/O failures."""
    try:
        parse_flv(connection, file, segment)
    except (DownloadError, OSError) as exc:
        log.warning("%s", exc)
        return
    log.info("Done... %s", file.file_name)