import io

import pytest

from livegears.video import VideoFile, VideoStream


@pytest.fixture
def sample(tmp_path):
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"0123456789")
    return path


def test_video_file_metadata(sample):
    with VideoFile(sample) as video:
        assert video.total_size == 10
        assert video.file_name == "clip.mp4"
        assert video.filepath == sample


def test_stream_yields_fixed_chunks(sample):
    with VideoFile(sample) as video:
        chunks = list(video.get_stream(4))
    assert chunks == [b"0123", b"4567", b"89"]


def test_stream_round_trip(sample):
    with VideoFile(sample) as video:
        stream = video.get_stream(3)
        data = b"".join(stream)
        stream.file.close()
    assert data == sample.read_bytes()


def test_read_returns_none_at_end():
    stream = VideoStream(io.BytesIO(b"abc"), 8)
    assert stream.read() == b"abc"
    assert stream.read() is None


def test_read_fills_chunk_across_short_reads():
    class Trickle(io.RawIOBase):
        def __init__(self, data):
            self.data = data

        def readable(self):
            return True

        def read(self, n=-1):
            out, self.data = self.data[:1], self.data[1:]
            return out

    stream = VideoStream(Trickle(b"abcdef"), 4)
    assert stream.read() == b"abcd"
    assert stream.read() == b"ef"


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        VideoFile(tmp_path / "absent.mp4")


def test_path_ending_in_parent_raises(tmp_path):
    with pytest.raises(FileNotFoundError, match="terminates"):
        VideoFile(tmp_path / "..")