"""Finding the direct stream URL of a live room and recording it."""

from __future__ import annotations

import hashlib
import json
import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from . import hls, httpflv
from .client import StatelessClient
from .errors import DownloadError
from .segment import LifecycleFile, Segmentable

log = logging.getLogger(__name__)

_REFERER = "https://live.bilibili.com"


class Extension(Enum):
    FLV = "flv"
    TS = "ts"


@dataclass(eq=False)
class Site:
    """A live room that is online, with the URL its stream can be read from."""

    name: str
    title: str
    direct_url: str
    extension: Extension
    client: StatelessClient

    def __str__(self) -> str:
        return f"Name: {self.name}\nTitle: {self.title}\nDirect url: {self.direct_url}"

    def download(
        self,
        fmt_file_name: str,
        segment: Segmentable,
        hook: Optional[Callable[[str], object]] = None,
    ) -> None:
        """Record the stream; ``{title}`` in the file name becomes the room title."""
        fmt_file_name = fmt_file_name.replace("{title}", self.title)
        self.client.headers["Accept-Encoding"] = "gzip, deflate"
        log.info("%s", self)
        if self.extension is Extension.FLV:
            file = LifecycleFile(fmt_file_name, "flv", hook)
            response = self.client.retryable(self.direct_url)
            connection = httpflv.Connection(response.iter_content(chunk_size=8192))
            connection.read_frame(9)
            httpflv.parse_flv(connection, file, segment)
        else:
            file = LifecycleFile(fmt_file_name, "ts", hook)
            hls.download(self.direct_url, self.client, file, segment)


def _json_text(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def _get(value: Any, *keys: Any) -> Any:
    """Index nested JSON, giving None where a key or index is missing."""
    for key in keys:
        if isinstance(key, int):
            if not isinstance(value, list) or not -len(value) <= key < len(value):
                return None
        elif not isinstance(value, dict):
            return None
        value = value[key] if isinstance(key, int) else value.get(key)
    return value


def _is_int(value: Any, expected: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value == expected


def _require_str(value: Any, what: str) -> str:
    if not isinstance(value, str):
        raise DownloadError(f"{what} is not a string: {_json_text(value)}")
    return value


class SiteDefinition(ABC):
    """A live-streaming site that can turn a room URL into a :class:`Site`."""

    pattern: str = ""

    def can_handle_url(self, url: str) -> bool:
        """Whether this site can handle ``url``."""
        return re.search(self.pattern, url) is not None

    @abstractmethod
    def get_site(self, url: str, client: StatelessClient) -> Site:
        """Look the room up and return where its stream is."""


class BiliLive(SiteDefinition):
    pattern = r"(?:https?://)?(?:(?:www|m|live)\.)?bilibili\.com"

    def get_site(self, url: str, client: StatelessClient) -> Site:
        match = re.search(r"/(\d+)", url)
        if match is None:
            raise DownloadError(f"Wrong url: {url}")
        rid = int(match.group(1))
        room_info = client.client.get(
            "https://api.live.bilibili.com/xlive/web-room/v1/index/getInfoByRoom"
            f"?room_id={rid}"
        ).json()
        if not _is_int(_get(room_info, "code"), 0):
            raise DownloadError(_json_text(_get(room_info, "message")))
        vid = _get(room_info, "data", "room_info", "room_id")
        if not _is_int(_get(room_info, "data", "room_info", "live_status"), 1):
            raise DownloadError(f"Not online: {url}")

        params = [
            ("room_id", _json_text(vid)),
            ("qn", "10000"),
            ("platform", "web"),
            ("codec", "0,1"),
            ("protocol", "0,1"),
            ("format", "0,1,2"),
            ("ptype", "8"),
            ("dolby", "5"),
        ]
        room_play_info = client.client.get(
            "https://api.live.bilibili.com/xlive/web-room/v2/index/getRoomPlayInfo",
            params=params,
        ).json()
        if not _is_int(_get(room_play_info, "code"), 0):
            raise DownloadError(_json_text(_get(room_play_info, "msg")))

        direct_url = self._flv_url(room_play_info)
        if direct_url is None:
            raise DownloadError(_json_text(room_play_info))
        client.headers["Referer"] = _REFERER
        title = _require_str(_get(room_info, "data", "room_info", "title"), "title")
        return Site("bilibili", title, direct_url, Extension.FLV, client)

    @staticmethod
    def _flv_url(room_play_info: Any) -> Optional[str]:
        streams = _get(room_play_info, "data", "playurl_info", "playurl", "stream")
        if not isinstance(streams, list):
            return None
        formats = (
            fmt
            for stream in streams
            if isinstance(_get(stream, "format"), list)
            for fmt in stream["format"]
        )
        chosen = next((fmt for fmt in formats if _get(fmt, "format_name") == "flv"), None)
        if chosen is None:
            return None
        infos = _get(chosen, "codec", 0, "url_info")
        url_info = None
        if isinstance(infos, list):
            url_info = next(
                (i for i in infos if ".mcdn." not in _json_text(_get(i, "host"))), None
            )
        if url_info is None:
            url_info = _get(chosen, "codec", 0, "url_info", 0)
        host = _get(url_info, "host")
        base_url = _get(chosen, "codec", 0, "base_url")
        extra = _get(url_info, "extra")
        if all(isinstance(part, str) for part in (host, base_url, extra)):
            return f"{host}{base_url}{extra}"
        return None


class HuyaLive(SiteDefinition):
    pattern = r"(?:https?://)?(?:(?:www|m)\.)?huya\.com"

    def get_site(self, url: str, client: StatelessClient) -> Site:
        text = client.client.get(url).text
        match = re.search(r"stream: (\{.+)\n.*?\};", text)
        if match is None:
            raise DownloadError(f"Not online: {text}")
        try:
            stream = json.loads(match.group(1))
        except json.JSONDecodeError as exc:
            raise DownloadError(str(exc)) from exc
        game = _get(stream, "data", 0)
        infos = _get(game, "gameStreamInfoList")
        if not isinstance(infos, list) or not infos:
            raise DownloadError(f"Not online: {_json_text(game)}")
        info = infos[0]
        bit_rate = _get(stream, "vMultiStreamInfo", 0, "iBitRate")
        direct_url = "{}/{}.{}?{}&ratio={}".format(
            _require_str(_get(info, "sFlvUrl"), "sFlvUrl"),
            _require_str(_get(info, "sStreamName"), "sStreamName"),
            _require_str(_get(info, "sFlvUrlSuffix"), "sFlvUrlSuffix"),
            _require_str(_get(info, "sFlvAntiCode"), "sFlvAntiCode"),
            _json_text(bit_rate),
        )
        title = _require_str(_get(game, "gameLiveInfo", "introduction"), "introduction")
        return Site("huya", title, direct_url, Extension.FLV, client)


class DouyuLive(SiteDefinition):
    pattern = r"(?:https?://)?(?:(?:www|m)\.)?douyu\.com"

    _ROOM_ID_PATTERNS = (
        r"\$ROOM\.room_id\s*=\s*(\d+)",
        r"room_id\s*=\s*(\d+)",
        r'"room_id.?":(\d+)',
        r"data-onlineid=(\d+)",
    )

    def get_site(self, url: str, client: StatelessClient) -> Site:
        text = client.client.get(url).text
        room_id = next(
            (m.group(1) for m in (re.search(p, text) for p in self._ROOM_ID_PATTERNS) if m),
            None,
        )
        if room_id is None:
            raise DownloadError(f"Wrong url: {url}")

        room_info = client.client.get(f"https://www.douyu.com/betard/{room_id}").json()
        now = time.time_ns() // 1000
        sign = hashlib.md5(f"{room_id}{now}".encode()).hexdigest()
        data = {"did": "10000000000000000000000000001501", "rid": room_id}
        log.info("%s", room_id)
        result = client.client.post(
            f"https://playweb.douyucdn.cn/lapi/live/hlsH5Preview/{room_id}",
            headers={"rid": room_id, "time": str(now), "auth": sign},
            data=data,
        ).json()
        if _is_int(_get(result, "error"), 0):
            key = re.search(
                r"(\d{1,8}[0-9a-zA-Z]+)_?\d{0,4}(/playlist|.m3u8)",
                _json_text(_get(result, "data", "rtmp_live")),
            )
            if key is not None:
                name = _get(room_info, "room", "room_name")
                return Site(
                    "douyu",
                    name if isinstance(name, str) else "",
                    f"https://hw-tct.douyucdn.cn/live/{key.group(1)}.flv?uuid=",
                    Extension.FLV,
                    client,
                )
        raise DownloadError(_json_text(result))


EXTRACTORS = (BiliLive(), HuyaLive(), DouyuLive())


def find_extractor(url: str) -> Optional[SiteDefinition]:
    """Return the first site definition that can handle ``url``."""
    return next((e for e in EXTRACTORS if e.can_handle_url(url)), None)