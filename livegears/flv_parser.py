"""Streaming parsers for FLV headers, tags and script data.

Every parser takes a bytes object and returns ``(rest, value)``, where
``rest`` is the input left after the parsed structure. A parser raises
:class:`Incomplete` when the input ends too early and :class:`ParseError`
when the bytes cannot be what was asked for.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Optional, Tuple, Type, TypeVar, Union

E = TypeVar("E", bound=Enum)


class Incomplete(Exception):
    """More input is required; ``needed`` is the byte count asked for, if known."""

    def __init__(self, needed: Optional[int] = None) -> None:
        self.needed = needed
        super().__init__(f"needed: {needed}")


class ParseError(ValueError):
    """The input does not hold the expected structure."""


def _need(data: bytes, n: int) -> None:
    if len(data) < n:
        raise Incomplete(n - len(data))


def _u8(data: bytes) -> Tuple[bytes, int]:
    _need(data, 1)
    return data[1:], data[0]


def _u16(data: bytes) -> Tuple[bytes, int]:
    _need(data, 2)
    return data[2:], int.from_bytes(data[:2], "big")


def _i16(data: bytes) -> Tuple[bytes, int]:
    _need(data, 2)
    return data[2:], int.from_bytes(data[:2], "big", signed=True)


def _u24(data: bytes) -> Tuple[bytes, int]:
    _need(data, 3)
    return data[3:], int.from_bytes(data[:3], "big")


def _i24(data: bytes) -> Tuple[bytes, int]:
    _need(data, 3)
    return data[3:], int.from_bytes(data[:3], "big", signed=True)


def _u32(data: bytes) -> Tuple[bytes, int]:
    _need(data, 4)
    return data[4:], int.from_bytes(data[:4], "big")


def _f64(data: bytes) -> Tuple[bytes, float]:
    _need(data, 8)
    return data[8:], struct.unpack(">d", data[:8])[0]


def _tag(data: bytes, expected: bytes) -> Tuple[bytes, bytes]:
    n = min(len(data), len(expected))
    if data[:n] != expected[:n]:
        raise ParseError(f"expected {expected!r}")
    _need(data, len(expected))
    return data[len(expected):], data[: len(expected)]


def _enum(cls: Type[E], value: int) -> E:
    try:
        return cls(value)
    except ValueError:
        raise ParseError(f"invalid {cls.__name__} value {value}") from None


# ---------------------------------------------------------------- header


@dataclass(frozen=True)
class Header:
    version: int
    audio: bool
    video: bool
    offset: int


def header(data: bytes) -> Tuple[bytes, Header]:
    """Parse the 9-byte FLV file header."""
    rest, _ = _tag(data, b"FLV")
    rest, version = _u8(rest)
    rest, flags = _u8(rest)
    rest, offset = _u32(rest)
    return rest, Header(version, flags & 4 == 4, flags & 1 == 1, offset)


# ---------------------------------------------------------------- enums


class TagType(IntEnum):
    AUDIO = 8
    VIDEO = 9
    SCRIPT = 18


class SoundFormat(IntEnum):
    PCM_NE = 0
    ADPCM = 1
    MP3 = 2
    PCM_LE = 3
    NELLYMOSER_16KHZ_MONO = 4
    NELLYMOSER_8KHZ_MONO = 5
    NELLYMOSER = 6
    PCM_ALAW = 7
    PCM_ULAW = 8
    AAC = 10
    SPEEX = 11
    MP3_8KHZ = 14
    DEVICE_SPECIFIC = 15


class SoundRate(IntEnum):
    KHZ_5_5 = 0
    KHZ_11 = 1
    KHZ_22 = 2
    KHZ_44 = 3


class SoundSize(IntEnum):
    SND_8BIT = 0
    SND_16BIT = 1


class SoundType(IntEnum):
    MONO = 0
    STEREO = 1


class AACPacketType(IntEnum):
    SEQUENCE_HEADER = 0
    RAW = 1


class FrameType(IntEnum):
    KEY = 1
    INTER = 2
    DISPOSABLE_INTER = 3
    GENERATED = 4
    COMMAND = 5


class CodecId(IntEnum):
    JPEG = 1
    SORENSON_H263 = 2
    SCREEN = 3
    VP6 = 4
    VP6A = 5
    SCREEN2 = 6
    H264 = 7
    H263 = 8
    MPEG4_PART2 = 9


class AVCPacketType(IntEnum):
    SEQUENCE_HEADER = 0
    NALU = 1
    END_OF_SEQUENCE = 2


# ---------------------------------------------------------------- tags


@dataclass(frozen=True)
class TagHeader:
    tag_type: TagType
    data_size: int
    timestamp: int
    stream_id: int


def _tag_type(data: bytes) -> Tuple[bytes, TagType]:
    rest, value = _u8(data)
    return rest, _enum(TagType, value)


def tag_header(data: bytes) -> Tuple[bytes, TagHeader]:
    """Parse the 11-byte header in front of every FLV tag."""
    rest, tag_type = _tag_type(data)
    rest, data_size = _u24(rest)
    rest, timestamp = _u24(rest)
    rest, extended = _u8(rest)
    rest, stream_id = _u24(rest)
    return rest, TagHeader(tag_type, data_size, (extended << 24) + timestamp, stream_id)


@dataclass(frozen=True)
class AudioData:
    sound_format: SoundFormat
    sound_rate: SoundRate
    sound_size: SoundSize
    sound_type: SoundType
    sound_data: bytes


@dataclass(frozen=True)
class AudioDataHeader:
    sound_format: SoundFormat
    sound_rate: SoundRate
    sound_size: SoundSize
    sound_type: SoundType


@dataclass(frozen=True)
class VideoData:
    frame_type: FrameType
    codec_id: CodecId
    video_data: bytes


@dataclass(frozen=True)
class VideoDataHeader:
    frame_type: FrameType
    codec_id: CodecId


TagBody = Union[AudioData, VideoData, None]


@dataclass(frozen=True)
class Tag:
    """A full tag; ``data`` is None for script tags, whose body is left unparsed."""

    header: TagHeader
    data: TagBody


def tag_data(tag_type: TagType, size: int, data: bytes) -> Tuple[bytes, TagBody]:
    """Parse a tag body of ``size`` bytes; script bodies are not consumed."""
    if tag_type is TagType.VIDEO:
        return video_data(data, size)
    if tag_type is TagType.AUDIO:
        return audio_data(data, size)
    return data, None


def complete_tag(data: bytes) -> Tuple[bytes, Tag]:
    """Parse a tag header together with its body."""
    head_rest, head = tag_header(data)
    rest, body = tag_data(head.tag_type, head.data_size, head_rest)
    return rest, Tag(head, body)


# ---------------------------------------------------------------- audio


@dataclass(frozen=True)
class AACAudioPacketHeader:
    packet_type: AACPacketType


@dataclass(frozen=True)
class AACAudioPacket:
    packet_type: AACPacketType
    aac_data: bytes


def aac_audio_packet_header(data: bytes) -> Tuple[bytes, AACAudioPacketHeader]:
    rest, value = _u8(data)
    return rest, AACAudioPacketHeader(_enum(AACPacketType, value))


def aac_audio_packet(data: bytes, size: int) -> Tuple[bytes, AACAudioPacket]:
    if len(data) < size:
        raise Incomplete(size)
    if size < 1:
        raise Incomplete(1)
    packet_type = _enum(AACPacketType, data[0])
    return data[size:], AACAudioPacket(packet_type, data[1:size])


def _audio_flags(byte: int) -> AudioDataHeader:
    return AudioDataHeader(
        _enum(SoundFormat, byte >> 4),
        _enum(SoundRate, (byte >> 2) & 3),
        _enum(SoundSize, (byte >> 1) & 1),
        _enum(SoundType, byte & 1),
    )


def audio_data(data: bytes, size: int) -> Tuple[bytes, AudioData]:
    if len(data) < size:
        raise Incomplete(size)
    if size < 1:
        raise Incomplete(1)
    flags = _audio_flags(data[0])
    return data[size:], AudioData(
        flags.sound_format, flags.sound_rate, flags.sound_size, flags.sound_type, data[1:size]
    )


def audio_data_header(data: bytes) -> Tuple[bytes, AudioDataHeader]:
    if not data:
        raise Incomplete(1)
    return data[1:], _audio_flags(data[0])


# ---------------------------------------------------------------- video


@dataclass(frozen=True)
class AVCVideoPacketHeader:
    packet_type: AVCPacketType
    composition_time: int


@dataclass(frozen=True)
class AVCVideoPacket:
    packet_type: AVCPacketType
    composition_time: int
    avc_data: bytes


def _avc_packet_type(data: bytes) -> Tuple[bytes, AVCPacketType]:
    rest, value = _u8(data)
    return rest, _enum(AVCPacketType, value)


def avc_video_packet_header(data: bytes) -> Tuple[bytes, AVCVideoPacketHeader]:
    rest, packet_type = _avc_packet_type(data)
    rest, composition_time = _i24(rest)
    return rest, AVCVideoPacketHeader(packet_type, composition_time)


def avc_video_packet(data: bytes, size: int) -> Tuple[bytes, AVCVideoPacket]:
    if len(data) < size:
        raise Incomplete(size)
    if size < 4:
        raise Incomplete(4)
    _, head = avc_video_packet_header(data)
    return data[size:], AVCVideoPacket(head.packet_type, head.composition_time, data[4:size])


def _video_flags(byte: int) -> VideoDataHeader:
    return VideoDataHeader(_enum(FrameType, byte >> 4), _enum(CodecId, byte & 0xF))


def video_data(data: bytes, size: int) -> Tuple[bytes, VideoData]:
    if len(data) < size:
        raise Incomplete(size)
    if size < 1:
        raise Incomplete(1)
    flags = _video_flags(data[0])
    return data[size:], VideoData(flags.frame_type, flags.codec_id, data[1:size])


def video_data_header(data: bytes) -> Tuple[bytes, VideoDataHeader]:
    if not data:
        raise Incomplete(1)
    return data[1:], _video_flags(data[0])


# ---------------------------------------------------------------- script data


class ScriptDataType(IntEnum):
    NUMBER = 0
    BOOLEAN = 1
    STRING = 2
    OBJECT = 3
    MOVIE_CLIP = 4
    NULL = 5
    UNDEFINED = 6
    REFERENCE = 7
    ECMA_ARRAY = 8
    STRICT_ARRAY = 10
    DATE = 11
    LONG_STRING = 12


@dataclass(frozen=True)
class ScriptDataDate:
    date_time: float
    local_date_time_offset: int


@dataclass(frozen=True)
class ScriptDataValue:
    """An AMF0 value: its type and the decoded payload (None for null/undefined)."""

    kind: ScriptDataType
    value: Any = None


@dataclass(frozen=True)
class ScriptDataObject:
    name: str
    data: ScriptDataValue


@dataclass(frozen=True)
class ScriptData:
    name: str
    arguments: ScriptDataValue


_OBJECT_END = b"\x00\x00\x09"


def script_data(data: bytes) -> Tuple[bytes, ScriptData]:
    """Parse a script tag body: a name string followed by one value."""
    rest, _ = _tag(data, b"\x02")
    rest, name = script_data_string(rest)
    rest, arguments = script_data_value(rest)
    return rest, ScriptData(name, arguments)


def script_data_value(data: bytes) -> Tuple[bytes, ScriptDataValue]:
    rest, code = _u8(data)
    try:
        kind = ScriptDataType(code)
    except ValueError:
        raise ParseError(f"unknown script data type {code}") from None
    value: Any = None
    if kind is ScriptDataType.NUMBER:
        rest, value = _f64(rest)
    elif kind is ScriptDataType.BOOLEAN:
        rest, raw = _u8(rest)
        value = raw != 0
    elif kind in (ScriptDataType.STRING, ScriptDataType.MOVIE_CLIP):
        rest, value = script_data_string(rest)
    elif kind is ScriptDataType.OBJECT:
        rest, value = script_data_objects(rest)
    elif kind is ScriptDataType.REFERENCE:
        rest, value = _u16(rest)
    elif kind is ScriptDataType.ECMA_ARRAY:
        rest, value = script_data_ecma_array(rest)
    elif kind is ScriptDataType.STRICT_ARRAY:
        rest, value = script_data_strict_array(rest)
    elif kind is ScriptDataType.DATE:
        rest, value = script_data_date(rest)
    elif kind is ScriptDataType.LONG_STRING:
        rest, value = script_data_long_string(rest)
    return rest, ScriptDataValue(kind, value)


def script_data_objects(data: bytes) -> Tuple[bytes, list]:
    """Parse name/value pairs up to the object end marker."""
    objects = []
    rest = data
    while True:
        try:
            rest, obj = script_data_object(rest)
        except ParseError:
            break
        objects.append(obj)
    rest, _ = script_data_object_end(rest)
    return rest, objects


def script_data_object(data: bytes) -> Tuple[bytes, ScriptDataObject]:
    rest, name = script_data_string(data)
    rest, value = script_data_value(rest)
    return rest, ScriptDataObject(name, value)


def script_data_object_end(data: bytes) -> Tuple[bytes, bytes]:
    return _tag(data, _OBJECT_END)


def _decode(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError(str(exc)) from None


def script_data_string(data: bytes) -> Tuple[bytes, str]:
    rest, length = _u16(data)
    _need(rest, length)
    return rest[length:], _decode(rest[:length])


def script_data_long_string(data: bytes) -> Tuple[bytes, str]:
    rest, length = _u32(data)
    _need(rest, length)
    return rest[length:], _decode(rest[:length])


def script_data_date(data: bytes) -> Tuple[bytes, ScriptDataDate]:
    rest, date_time = _f64(data)
    rest, offset = _i16(rest)
    return rest, ScriptDataDate(date_time, offset)


def script_data_ecma_array(data: bytes) -> Tuple[bytes, list]:
    rest, _count = _u32(data)
    return script_data_objects(rest)


def script_data_strict_array(data: bytes) -> Tuple[bytes, list]:
    """Parse between one and the announced count of values."""
    rest, count = _u32(data)
    if count < 1:
        raise ParseError("strict array must hold at least one value")
    values = []
    for _ in range(count):
        try:
            rest, value = script_data_value(rest)
        except ParseError:
            if not values:
                raise
            break
        values.append(value)
    return rest, values