# livegears

`livegears` is a library for recording live streams to local files. It
reads an HTTP-FLV stream tag by tag, or follows an HLS (m3u8) playlist, and
writes the recording out in segments. A new segment begins after a set time
or once a file passes a set size.

Site extractors are included for bilibili live, Huya and Douyu. Each one
turns a room page URL into a direct stream URL.

## Recording from a room page

```python
from livegears.client import StatelessClient
from livegears.extractor import find_extractor
from livegears.segment import Segmentable

url = "https://live.bilibili.com/12345"
extractor = find_extractor(url)
if extractor is None:
    raise SystemExit(f"no extractor for {url}")

site = extractor.get_site(url, StatelessClient({}, None))
print(site)  # name, title and direct URL
site.download("{title}-%Y-%m-%d_%H-%M-%S", Segmentable(1800, None), None)
```

`{title}` in the file name is replaced with the room title. Extractors
raise `livegears.errors.DownloadError` when a room is offline, when its URL
is not recognised, or when the site's answer holds no usable stream.
`Site.download` reads the stream as HTTP-FLV or HLS, depending on the
site's `extension`.

## Recording an HTTP-FLV URL

`livegears.httpflv.Connection` wraps any iterable of byte chunks, such as a
`requests` response body, and hands it out in frames of the size asked for.
The nine-byte FLV header has to be read before the tags are passed on:

```python
from livegears import httpflv
from livegears.client import StatelessClient
from livegears.flv_parser import header
from livegears.segment import LifecycleFile, Segmentable

client = StatelessClient({"Referer": "https://example.com"}, None)
response = client.retryable("https://example.com/live/stream.flv")
connection = httpflv.Connection(response.iter_content(chunk_size=8192))
_, flv_header = header(connection.read_frame(9))

httpflv.download(
    connection,
    LifecycleFile("recordings/room-%Y-%m-%dT%H_%M_%S", "flv", None),
    Segmentable(3600, None),  # start a new file every hour
)
```

`httpflv.download` logs a stream that breaks off mid-tag, or a file that
cannot be written, and then returns. `httpflv.parse_flv` does the same work
but raises these errors.

A new FLV file only begins at a video key frame. Each new file starts with
the stream's metadata and sequence headers, so every segment can be played
on its own. A change in the H.264 sequence header also starts a new file.

## Recording an HLS playlist

```python
from livegears import hls
from livegears.client import StatelessClient
from livegears.segment import LifecycleFile, Segmentable

def finished(path):
    print("completed:", path)

hls.download(
    "https://example.com/live/index.m3u8",
    StatelessClient({}, None),
    LifecycleFile("hls-%Y%m%d-%H%M%S", "ts", finished),
    Segmentable(None, 512 * 1024 * 1024),
)
```

If the URL points to a master playlist, its first variant is followed. The
media playlist is fetched again after each pass until it lists no segments.
An `#EXT-X-DISCONTINUITY` starts a new file. `hls.parse_playlist` and
`hls.parse_media_playlist` can also be used alone. They return
`MasterPlaylist` or `MediaPlaylist` objects and raise `ValueError` on
malformed input.

## Output files and segmenting

`LifecycleFile(fmt_file_name, extension, hook)` names the output. The file
name goes through `strftime` each time a new file is created, so every
segment gets its own timestamped name. Missing parent directories are
created. A file is written as `<name>.<ext>.part` and renamed to
`<name>.<ext>` when it is finished. The hook, if one is given, is then
called with the final file name.

`Segmentable(expected_time, expected_size)` decides when a new file begins:

- `Segmentable(600, None)`: every 600 seconds of stream time.
- `Segmentable(None, 200 * 1024 * 1024)`: once a file grows past 200 MiB.
- `Segmentable(None, None)`: never, so the whole stream goes to one file.

If both limits are given, the time limit is the one used.

## Reading and writing FLV data

`livegears.flv_parser` parses FLV headers, tag headers, audio and video tag
bodies, AAC and AVC packet headers, and AMF0 script data such as
`onMetaData`. Every parser takes bytes and returns `(rest, value)`:

```python
from livegears.flv_parser import header

with open("recording.flv", "rb") as f:
    rest, flv = header(f.read(9))
print(flv.version, flv.audio, flv.video, flv.offset)
```

A parser raises `livegears.flv_parser.Incomplete` when it needs more input,
and `livegears.flv_parser.ParseError` when the input is malformed.

`livegears.flv_writer.FlvFile` writes FLV files tag by tag.
`livegears.flv_writer.to_json` writes a parsed tag (`FlvTag`) as one line
of JSON.

## Reading local video files in chunks

`livegears.video.VideoFile(path)` opens a file and records its size and
name. `get_stream(capacity)` returns a `VideoStream`. Iterating over it
yields chunks of `capacity` bytes, and the last chunk may be shorter.

## HTTP clients, proxies and retries

`livegears.client.StatelessClient(headers, proxy)` and
`StatefulClient(headers, proxy)` wrap `requests` sessions. The stateful
client keeps cookies. A proxy URL such as `"http://127.0.0.1:8080"` is used
for both HTTP and HTTPS. `StatelessClient.retryable` retries a failed
request up to three times, with exponential backoff and jitter, and raises
on an HTTP error status. `livegears.client.retry` applies the same policy
to any callable.

## What the package does not do

- It has no command-line program. Recording is started from Python code.
- It has no single function that takes a bare stream URL and works out by
  itself whether the stream is FLV or HLS. The caller chooses `httpflv` or
  `hls`, or uses an extractor's `Site`, which carries the choice.
- It does not upload videos or log in to any site. `VideoFile` and
  `VideoStream` only read local files in chunks.

## Requirements

Python 3.10 or later, and `requests`.