import io
import json

from livegears.flv_parser import (
    AACPacketType,
    ScriptData,
    ScriptDataType,
    ScriptDataValue,
    SoundFormat,
    SoundRate,
    SoundSize,
    SoundType,
    TagHeader,
    TagType,
    tag_header,
)
from livegears.flv_writer import (
    FLV_HEADER,
    AudioTagData,
    FlvFile,
    FlvTag,
    ScriptTagData,
    to_json,
    write_previous_tag_size,
)
from livegears.segment import LifecycleFile

FLV_PREFIX = b"FLV\x01\x05\x00\x00\x00\x09\x00\x00\x00\x00"


def make_file(tmp_path, calls):
    return LifecycleFile(str(tmp_path / "out"), "flv", calls.append)


def test_new_file_starts_with_header_and_is_renamed_on_close(tmp_path):
    calls = []
    with FlvFile(make_file(tmp_path, calls)) as out:
        assert out.file.path.name == "out.flv.part"
    final = tmp_path / "out.flv"
    assert final.read_bytes() == FLV_PREFIX
    assert FLV_HEADER == FLV_PREFIX[:9]
    assert calls == [str(final)]
    assert not (tmp_path / "out.flv.part").exists()


def test_written_tag_header_parses_back(tmp_path):
    head = TagHeader(TagType.VIDEO, 5, 0x01020304, 0)
    with FlvFile(make_file(tmp_path, [])) as out:
        out.write_tag_header(head)
    data = (tmp_path / "out.flv").read_bytes()[len(FLV_PREFIX):]
    rest, parsed = tag_header(data)
    assert parsed == head
    assert rest == b""


def test_write_tag_writes_header_body_and_size(tmp_path):
    head = TagHeader(TagType.AUDIO, 3, 40, 0)
    body = b"abc"
    size = (11 + 3).to_bytes(4, "big")
    with FlvFile(make_file(tmp_path, [])) as out:
        written = out.write_tag(head, body, size)
    assert written == 4
    data = (tmp_path / "out.flv").read_bytes()
    assert data.startswith(FLV_PREFIX)
    assert data.endswith(body + size)
    assert len(data) == len(FLV_PREFIX) + 11 + 3 + 4


def test_create_new_finishes_file_and_calls_hook(tmp_path):
    calls = []
    contents = []

    def hook(name):
        calls.append(name)
        contents.append(open(name, "rb").read())

    out = FlvFile(LifecycleFile(str(tmp_path / "seg"), "flv", hook))
    out.write_tag(TagHeader(TagType.AUDIO, 1, 0, 0), b"x", b"\x00\x00\x00\x0c")
    out.create_new()
    assert calls == [str(tmp_path / "seg.flv")]
    assert contents[0].startswith(FLV_PREFIX)
    assert contents[0].endswith(b"x\x00\x00\x00\x0c")
    out.close()
    assert len(calls) == 2
    assert contents[1] == FLV_PREFIX


def test_close_twice_renames_once(tmp_path):
    calls = []
    out = FlvFile(make_file(tmp_path, calls))
    out.close()
    out.close()
    assert len(calls) == 1


def test_write_previous_tag_size_round_trip():
    buffer = io.BytesIO()
    assert write_previous_tag_size(buffer, 300) == 4
    assert int.from_bytes(buffer.getvalue(), "big") == 300


def test_to_json_audio_tag():
    tag = FlvTag(
        TagHeader(TagType.AUDIO, 10, 20, 0),
        AudioTagData(
            SoundFormat.AAC,
            SoundRate.KHZ_44,
            SoundSize.SND_16BIT,
            SoundType.STEREO,
            AACPacketType.RAW,
        ),
    )
    writer = io.StringIO()
    to_json(writer, tag)
    text = writer.getvalue()
    assert text.endswith("\n")
    parsed = json.loads(text)
    assert parsed["header"]["data_size"] == 10
    assert parsed["header"]["tag_type"] == TagType.AUDIO.name
    audio = parsed["data"]["Audio"]
    assert audio["sound_format"] == SoundFormat.AAC.name
    assert audio["packet_type"] == AACPacketType.RAW.name


def test_to_json_script_tag():
    script = ScriptData("onMetaData", ScriptDataValue(ScriptDataType.NUMBER, 1.0))
    tag = FlvTag(TagHeader(TagType.SCRIPT, 0, 0, 0), ScriptTagData(script))
    writer = io.StringIO()
    to_json(writer, tag)
    parsed = json.loads(writer.getvalue())
    assert parsed["data"]["Script"]["name"] == "onMetaData"
    assert parsed["data"]["Script"]["arguments"] == {ScriptDataType.NUMBER.name: 1.0}