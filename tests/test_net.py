import pytest
import requests

import slategen.net as net_mod
from slategen.config import ResolverConfig
from slategen.net import HttpClient, _parse_retry_after_seconds


class FakeResponse:
    def __init__(self, status_code: int, text: str = "", headers: dict[str, str] | None = None) -> None:
        self.status_code = status_code
        self.text = text
        self.content = text.encode("utf-8")
        self.headers = headers or {}
        self.url = "https://www.esrb.org/search/"
        self.closed = False

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def close(self) -> None:
        self.closed = True


class FakeSession:
    def __init__(self, responses: list[FakeResponse | Exception]) -> None:
        self.responses = list(responses)
        self.headers: dict[str, str] = {}
        self.calls: list[dict] = []

    def get(self, url, *, params=None, headers=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        outcome = self.responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def sleeps(monkeypatch) -> list[float]:
    recorded: list[float] = []
    monkeypatch.setattr(net_mod.time, "sleep", lambda s: recorded.append(s))
    return recorded


def _cfg(**overrides) -> ResolverConfig:
    values = {"min_request_interval_s": 0.0, "max_retries": 2, "retry_backoff_s": 1.0}
    values.update(overrides)
    return ResolverConfig(**values)


def test_session_headers_and_timeout(sleeps):
    session = FakeSession([FakeResponse(200, "ok")])
    client = HttpClient(_cfg(user_agent="slate-test/1.0"), session=session)
    assert client.get_text("https://www.esrb.org/search/", params={"pg": 1}) == "ok"
    assert session.headers["User-Agent"] == "slate-test/1.0"
    assert session.calls[0]["params"] == {"pg": 1}
    assert session.calls[0]["timeout"] == 20
    assert sleeps == []


def test_retries_retryable_status_with_backoff(sleeps):
    first = FakeResponse(503)
    second = FakeResponse(429, headers={"Retry-After": "5"})
    session = FakeSession([first, second, FakeResponse(200, "<svg/>")])
    client = HttpClient(_cfg(), session=session)

    assert client.get_bytes("https://example.test/E.svg") == b"<svg/>"
    assert sleeps == [1.0, 5.0]
    assert first.closed and second.closed


def test_gives_up_after_max_retries(sleeps):
    session = FakeSession([FakeResponse(503), FakeResponse(503), FakeResponse(503)])
    client = HttpClient(_cfg(), session=session)
    with pytest.raises(requests.HTTPError, match="503"):
        client.get("https://example.test/")
    assert len(session.calls) == 3
    assert sleeps == [1.0, 2.0]


def test_non_retryable_error_raises_immediately(sleeps):
    session = FakeSession([FakeResponse(404)])
    client = HttpClient(_cfg(), session=session)
    with pytest.raises(requests.HTTPError, match="404"):
        client.get("https://example.test/")
    assert len(session.calls) == 1


def test_min_request_interval_spaces_requests(sleeps, monkeypatch):
    clock = iter([100.0, 100.2, 100.5])
    monkeypatch.setattr(net_mod.time, "monotonic", lambda: next(clock))
    session = FakeSession([FakeResponse(200), FakeResponse(200)])
    client = HttpClient(_cfg(min_request_interval_s=0.5), session=session)
    client.get("https://example.test/a")
    client.get("https://example.test/b")
    assert sleeps == [pytest.approx(0.3)]


@pytest.mark.parametrize(
    "raw, expected",
    [(None, 0.0), ("", 0.0), ("12", 12.0), ("-3", 0.0), ("Wed, 21 Oct 2015 07:28:00 GMT", 0.0)],
)
def test_parse_retry_after(raw, expected):
    assert _parse_retry_after_seconds(raw) == expected


def test_dropped_connections_and_timeouts_are_retried(sleeps):
    session = FakeSession(
        [
            requests.ConnectionError("connection reset"),
            requests.Timeout("read timed out"),
            FakeResponse(200, "<html></html>"),
        ]
    )
    client = HttpClient(_cfg(), session=session)
    assert client.get_text("https://www.esrb.org/ratings/1/") == "<html></html>"
    assert len(session.calls) == 3
    assert sleeps == [1.0, 2.0]


def test_connection_error_raises_after_max_retries(sleeps):
    session = FakeSession([requests.ConnectionError("down")] * 3)
    client = HttpClient(_cfg(), session=session)
    with pytest.raises(requests.ConnectionError, match="down"):
        client.get("https://www.esrb.org/")
    assert len(session.calls) == 3
    assert sleeps == [1.0, 2.0]
