import io
import json
import urllib.error

import pytest

from services import staffbase_client
from services.staffbase_client import StaffbaseAPIError, StaffbaseClient


class _FakeResponse:
    def __init__(self, status=200, body=b""):
        self.status = status
        self._body = body

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.fixture
def captured(monkeypatch):
    sent = []
    responses = []

    def fake_urlopen(req, timeout=None):
        sent.append((req, timeout))
        response = responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(staffbase_client.urllib.request, "urlopen", fake_urlopen)
    return sent, responses


def test_request_sends_json_with_token(captured):
    sent, responses = captured
    responses.append(_FakeResponse(200, b'{"id": "ch1"}'))
    client = StaffbaseClient("https://staffbase.test/api/", "Basic secret", timeout=5)

    result = client.request("POST", "/spaces/s1/installations", {"pluginID": "news"})

    req, timeout = sent[0]
    assert result == {"id": "ch1"}
    assert req.full_url == "https://staffbase.test/api/spaces/s1/installations"
    assert req.get_method() == "POST"
    assert req.get_header("Authorization") == "Basic secret"
    assert json.loads(req.data) == {"pluginID": "news"}
    assert timeout == 5
    assert client.request_log.last()["headers"]["Authorization"] == "***"


def test_no_content_returns_empty_dict(captured):
    _, responses = captured
    responses.append(_FakeResponse(204, b""))
    client = StaffbaseClient("https://staffbase.test/api", "t")

    assert client.request("DELETE", "/installations/ch1") == {}


def test_http_error_raises_with_status(captured):
    _, responses = captured
    responses.append(urllib.error.HTTPError(
        "https://staffbase.test/api/posts/1", 403, "Forbidden", {}, io.BytesIO(b"Access denied")
    ))
    client = StaffbaseClient("https://staffbase.test/api", "t")

    with pytest.raises(StaffbaseAPIError) as exc:
        client.request("GET", "/posts/1")

    assert exc.value.status == 403
    assert str(exc.value) == "Staffbase API 403: Access denied"


def test_iter_paged_stops_on_short_page(captured):
    sent, responses = captured
    responses.append(_FakeResponse(200, json.dumps({"data": [{"id": 1}, {"id": 2}]}).encode()))
    responses.append(_FakeResponse(200, json.dumps({"data": [{"id": 3}]}).encode()))
    client = StaffbaseClient("https://staffbase.test/api", "t")

    pages = list(staffbase_client.iter_paged(client, "/users", page_size=2))

    assert pages == [[{"id": 1}, {"id": 2}], [{"id": 3}]]
    assert [req.full_url for req, _ in sent] == [
        "https://staffbase.test/api/users?limit=2&offset=0",
        "https://staffbase.test/api/users?limit=2&offset=2",
    ]


def test_iter_paged_accepts_bare_list_and_ignores_other_shapes(captured):
    sent, responses = captured
    responses.append(_FakeResponse(200, json.dumps([{"id": 1}]).encode()))
    client = StaffbaseClient("https://staffbase.test/api", "t")

    assert list(staffbase_client.iter_paged(client, "/users", page_size=2)) == [[{"id": 1}]]

    responses.append(_FakeResponse(200, json.dumps("unexpected").encode()))
    assert list(staffbase_client.iter_paged(client, "/users", page_size=2)) == []
