"""Writing FLV files tag by tag, and JSON dumps of parsed tag headers."""

from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, BinaryIO, Optional, TextIO, Union

from .flv_parser import (
    AACPacketType,
    AVCPacketType,
    CodecId,
    FrameType,
    ScriptData,
    ScriptDataValue,
    SoundFormat,
    SoundRate,
    SoundSize,
    SoundType,
    TagHeader,
)
from .segment import LifecycleFile

log = logging.getLogger(__name__)

FLV_HEADER = bytes(
    [
        0x46,  # 'F'
        0x4C,  # 'L'
        0x56,  # 'V'
        0x01,  # version
        0x05,  # audio and video tags present
        0x00, 0x00, 0x00, 0x09,  # header size
    ]
)


def write_previous_tag_size(writer: BinaryIO, previous_tag_size: int) -> int:
    """Write a big-endian 32-bit previous-tag-size field; return the bytes written."""
    return writer.write(previous_tag_size.to_bytes(4, "big"))


def _open_flv(path) -> BinaryIO:
    try:
        out = open(path, "wb")
    except OSError as exc:
        raise OSError(exc.errno, f"Unable to create flv file {path}") from exc
    log.info("create flv file %s", path)
    out.write(FLV_HEADER)
    write_previous_tag_size(out, 0)
    return out


class FlvFile:
    """An FLV output file that is renamed to its final name when closed."""

    def __init__(self, file: LifecycleFile) -> None:
        self.file = file
        self.buf_writer: BinaryIO = _open_flv(file.create())
        self._closed = False

    def create_new(self) -> None:
        """Finish the current file and start the next one."""
        self.buf_writer.close()
        self.file.rename()
        self.buf_writer = _open_flv(self.file.create())

    def write_tag(self, tag_header: TagHeader, body: bytes, previous_tag_size: bytes) -> int:
        """Write a whole tag; return the bytes written for the previous-tag-size field."""
        self.write_tag_header(tag_header)
        self.buf_writer.write(body)
        return self.buf_writer.write(previous_tag_size)

    def write_tag_header(self, tag_header: TagHeader) -> None:
        """Write the 11-byte header of a tag."""
        timestamp = tag_header.timestamp
        self.buf_writer.write(
            bytes([int(tag_header.tag_type)])
            + tag_header.data_size.to_bytes(3, "big")
            + (timestamp & 0xFFFFFF).to_bytes(3, "big")
            + bytes([(timestamp >> 24) & 0xFF])
            + tag_header.stream_id.to_bytes(3, "big")
        )

    def close(self) -> None:
        """Flush and close the file, then move it to its final name."""
        if self._closed:
            return
        self._closed = True
        self.buf_writer.close()
        self.file.rename()

    def __enter__(self) -> "FlvFile":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


@dataclass(frozen=True)
class AudioTagData:
    sound_format: SoundFormat
    sound_rate: SoundRate
    sound_size: SoundSize
    sound_type: SoundType
    packet_type: Optional[AACPacketType] = None


@dataclass(frozen=True)
class VideoTagData:
    frame_type: FrameType
    codec_id: CodecId
    packet_type: Optional[AVCPacketType] = None
    composition_time: Optional[int] = None


@dataclass(frozen=True)
class ScriptTagData:
    script: ScriptData


TagDataHeader = Union[AudioTagData, VideoTagData, ScriptTagData]


@dataclass(frozen=True)
class FlvTag:
    header: TagHeader
    data: TagDataHeader


def _fields(obj: Any) -> dict:
    return {f.name: _plain(getattr(obj, f.name)) for f in dataclasses.fields(obj)}


def _plain(obj: Any) -> Any:
    if isinstance(obj, Enum):
        return obj.name
    if isinstance(obj, ScriptDataValue):
        if obj.value is None:
            return obj.kind.name
        return {obj.kind.name: _plain(obj.value)}
    if isinstance(obj, ScriptTagData):
        return {"Script": _plain(obj.script)}
    if isinstance(obj, AudioTagData):
        return {"Audio": _fields(obj)}
    if isinstance(obj, VideoTagData):
        return {"Video": _fields(obj)}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return _fields(obj)
    if isinstance(obj, (list, tuple)):
        return [_plain(item) for item in obj]
    if isinstance(obj, (bytes, bytearray)):
        return list(obj)
    return obj


def to_json(writer: TextIO, obj: Any) -> int:
    """Write ``obj`` as one line of JSON to a text stream; return what the newline write returns."""
    writer.write(json.dumps(_plain(obj), ensure_ascii=False))
    return writer.write("\n")