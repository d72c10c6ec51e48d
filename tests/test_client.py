from unittest import mock

import pytest
import requests
import responses

from livegears.client import StatefulClient, StatelessClient, generate_buvid, retry

URL = "https://stream.example.com/live.flv"


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


def _flaky(failures, value="ok"):
    calls = []

    def func():
        calls.append(1)
        if len(calls) <= failures:
            raise ValueError("transient")
        return value

    return func, calls


@mock.patch("livegears.client.time.sleep")
def test_retry_returns_first_success(sleep):
    func, calls = _flaky(0, "done")
    assert retry(func) == "done"
    assert len(calls) == 1
    sleep.assert_not_called()


@mock.patch("livegears.client.time.sleep")
def test_retry_recovers_after_failures(sleep):
    func, calls = _flaky(2, "done")
    assert retry(func) == "done"
    assert len(calls) == 3
    assert sleep.call_count == 2
    first, second = (c.args[0] for c in sleep.call_args_list)
    assert 2 <= first < 3
    assert 4 <= second < 5


@mock.patch("livegears.client.time.sleep")
def test_retry_gives_up_after_three_retries(sleep):
    func, calls = _flaky(10)
    with pytest.raises(ValueError, match="transient"):
        retry(func)
    assert len(calls) == 4
    assert sleep.call_count == 3


def test_buvid_shape():
    buvid = generate_buvid()
    assert buvid.startswith("Y")
    assert len(buvid) == 36
    assert set(buvid[1:]) <= set("0123456789ABCDE")


def test_buvid_prefix_repeats_digits():
    for _ in range(20):
        buvid = generate_buvid()
        body = buvid[4:]
        assert buvid[1:4] == body[2] + body[12] + body[22]


def test_stateless_client_headers_and_proxy():
    client = StatelessClient({"Referer": "https://live.example.com"}, "http://localhost:8080")
    assert client.client.headers["Referer"] == "https://live.example.com"
    assert client.client.headers["User-Agent"].startswith("Mozilla/5.0 (X11; Linux x86_64; rv:60.1)")
    assert client.client.proxies["https"] == "http://localhost:8080"
    assert client.headers == {}


def test_retryable_returns_body_and_sends_extra_headers(mocked):
    mocked.add(responses.GET, URL, body=b"FLV-bytes", status=200)
    client = StatelessClient()
    client.headers["Accept-Encoding"] = "gzip, deflate"
    response = client.retryable(URL)
    assert response.content == b"FLV-bytes"
    assert mocked.calls[0].request.headers["Accept-Encoding"] == "gzip, deflate"


def test_retryable_raises_on_error_status(mocked):
    mocked.add(responses.GET, URL, status=404)
    with pytest.raises(requests.HTTPError) as excinfo:
        StatelessClient().retryable(URL)
    assert excinfo.value.response.status_code == 404


@mock.patch("livegears.client.time.sleep")
def test_retryable_retries_connection_errors(sleep, mocked):
    mocked.add(responses.GET, URL, body=requests.ConnectionError("reset"))
    mocked.add(responses.GET, URL, body=b"second try", status=200)
    response = StatelessClient().retryable(URL)
    assert response.content == b"second try"
    assert sleep.call_count == 1


def test_stateful_client_has_buvid_and_cookie_jar():
    client = StatefulClient(None, None)
    assert client.buvid.startswith("Y") and len(client.buvid) == 36
    assert client.cookie_store is client.client.cookies
    assert "Chrome/63.0.3239.108" in client.client.headers["User-Agent"]