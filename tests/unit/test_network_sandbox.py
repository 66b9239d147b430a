from __future__ import annotations

import json
import socket
from typing import Any

import pytest
import requests
from requests.auth import HTTPBasicAuth
from requests.structures import CaseInsensitiveDict

from langop_agent.config.settings import RuntimeSettings
from langop_agent.constants import DEFAULT_USER_AGENT
from langop_agent.enums import ErrorKind
from langop_agent.errors import SecurityDisabledError
from langop_agent.sandbox.network import NetworkSandbox
from langop_agent.utilities.logger_manager import CustomLogger

DNS = {
    "example.com": ["93.184.216.34"],
    "api.example.com": ["93.184.216.35"],
    "other.example.org": ["93.184.216.36"],
    "internal.example.com": ["10.0.0.7"],
}


def fake_resolver(host: str) -> list[str]:
    if host not in DNS:
        raise socket.gaierror(f"unknown host {host}")
    return DNS[host]


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        text: str = "",
        headers: dict[str, str] | None = None,
    ) -> None:
        self.status_code = status_code
        self.text = text
        self.headers = CaseInsensitiveDict(headers or {})

    def json(self) -> Any:
        return json.loads(self.text)


class FakeSession:
    def __init__(self, *responses: FakeResponse | Exception) -> None:
        self.responses = list(responses)
        self.calls: list[tuple[str, str, dict[str, Any]]] = []
        self.closed = False

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append((method, url, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self) -> None:
        self.closed = True


def _sandbox(session: FakeSession, logger: CustomLogger, **settings: Any) -> NetworkSandbox:
    return NetworkSandbox(
        RuntimeSettings(**settings), session=session, resolver=fake_resolver, logger=logger
    )


def test_get_returns_normalized_result(logger: CustomLogger) -> None:
    session = FakeSession(
        FakeResponse(200, '{"users": [1, 2]}', {"Content-Type": "application/json; charset=utf-8"})
    )
    result = _sandbox(session, logger).get("https://api.example.com/users", params={"page": 2})

    assert result.success is True
    assert result.status == 200
    assert result.json == {"users": [1, 2]}
    assert result.body == '{"users": [1, 2]}'
    assert result.headers["Content-Type"].startswith("application/json")
    method, url, kwargs = session.calls[0]
    assert (method, url) == ("GET", "https://api.example.com/users")
    assert kwargs["params"] == {"page": 2}
    assert kwargs["allow_redirects"] is False
    assert kwargs["timeout"] == (10.0, 30.0)
    assert kwargs["headers"]["User-Agent"] == DEFAULT_USER_AGENT


def test_payload_uses_json_key(logger: CustomLogger) -> None:
    session = FakeSession(FakeResponse(200, '{"a": 1}', {"content-type": "application/json"}))
    payload = _sandbox(session, logger).get("https://example.com/").to_payload()
    assert payload["json"] == {"a": 1}
    assert payload["success"] is True


def test_non_json_content_type_is_not_parsed(logger: CustomLogger) -> None:
    session = FakeSession(FakeResponse(200, '{"a": 1}', {"Content-Type": "text/plain"}))
    assert _sandbox(session, logger).get("https://example.com/").json is None


def test_invalid_json_body_leaves_json_empty(logger: CustomLogger) -> None:
    session = FakeSession(FakeResponse(200, "{broken", {"Content-Type": "application/json"}))
    result = _sandbox(session, logger).get("https://example.com/")
    assert result.success is True
    assert result.json is None
    assert result.body == "{broken"


def test_non_2xx_is_not_success(logger: CustomLogger) -> None:
    session = FakeSession(FakeResponse(404, "missing"))
    result = _sandbox(session, logger).get("https://example.com/nothing")
    assert result.success is False
    assert result.status == 404
    assert result.error is None


def test_caller_user_agent_is_kept(logger: CustomLogger) -> None:
    session = FakeSession(FakeResponse(200))
    _sandbox(session, logger).get("https://example.com/", headers={"user-agent": "custom/1"})
    headers = session.calls[0][2]["headers"]
    assert headers == {"user-agent": "custom/1"}


def test_post_sends_json_body(logger: CustomLogger) -> None:
    session = FakeSession(FakeResponse(201, '{"created": true}', {"Content-Type": "application/json"}))
    result = _sandbox(session, logger).post("https://example.com/api", json={"data": "test"})
    assert result.status == 201
    assert result.success is True
    method, _, kwargs = session.calls[0]
    assert method == "POST"
    assert kwargs["json"] == {"data": "test"}
    assert "data" not in kwargs


def test_put_sends_raw_body(logger: CustomLogger) -> None:
    session = FakeSession(FakeResponse(204))
    _sandbox(session, logger).put("https://example.com/api", data="raw")
    assert session.calls[0][0] == "PUT"
    assert session.calls[0][2]["data"] == "raw"


@pytest.mark.parametrize(
    ("call", "url", "fragment"),
    [
        ("get", "http://127.0.0.1:8080/api", "loopback address"),
        ("post", "file:///etc/passwd", "URL scheme 'file' not allowed"),
        ("post", "http://192.168.1.1/api", "private IP range (RFC 1918)"),
        ("put", "ftp://example.com/file", "URL scheme 'ftp' not allowed"),
        ("delete", "http://127.0.0.1:8080/api", "loopback address"),
        ("head", "http://169.254.169.254/", "cloud metadata endpoint"),
        ("get", "http://internal.example.com/", "resolves to blocked IP address 10.0.0.7"),
    ],
)
def test_every_verb_rejects_before_connecting(
    logger: CustomLogger, call: str, url: str, fragment: str
) -> None:
    session = FakeSession()
    result = getattr(_sandbox(session, logger), call)(url)
    assert result.success is False
    assert result.status == 0
    assert fragment in (result.error or "")
    assert result.error_kind is ErrorKind.SANDBOX_REJECTION
    assert session.calls == []


def test_none_url_is_rejected(logger: CustomLogger) -> None:
    result = _sandbox(FakeSession(), logger).get(None)
    assert result.error == "URL cannot be nil"
    assert result.success is False


def test_transport_failure_becomes_result(logger: CustomLogger) -> None:
    session = FakeSession(requests.ConnectionError("connection refused"))
    result = _sandbox(session, logger).get("https://example.com/")
    assert result.success is False
    assert result.status == 0
    assert "connection refused" in (result.error or "")
    assert result.error_kind is ErrorKind.EXTERNAL_FAILURE


def test_timeout_override_applies_to_both_phases(logger: CustomLogger) -> None:
    session = FakeSession(FakeResponse(200), FakeResponse(200))
    sandbox = _sandbox(session, logger, http_connect_timeout=2.0, http_read_timeout=4.0)
    sandbox.get("https://example.com/")
    sandbox.get("https://example.com/", timeout=7)
    assert session.calls[0][2]["timeout"] == (2.0, 4.0)
    assert session.calls[1][2]["timeout"] == (7.0, 7.0)


@pytest.mark.parametrize(
    ("auth", "header"),
    [
        ({"type": "bearer", "token": "abc"}, "Bearer abc"),
        ({"type": "token", "token": "abc"}, "Token abc"),
    ],
)
def test_token_auth_schemes(logger: CustomLogger, auth: dict, header: str) -> None:
    session = FakeSession(FakeResponse(200))
    _sandbox(session, logger).get("https://example.com/", auth=auth)
    assert session.calls[0][2]["headers"]["Authorization"] == header


def test_basic_auth_uses_requests_auth(logger: CustomLogger) -> None:
    session = FakeSession(FakeResponse(200))
    _sandbox(session, logger).post(
        "https://example.com/", auth={"type": "basic", "username": "u", "password": "p"}
    )
    auth = session.calls[0][2]["auth"]
    assert isinstance(auth, HTTPBasicAuth)
    assert (auth.username, auth.password) == ("u", "p")


def test_custom_header_auth(logger: CustomLogger) -> None:
    session = FakeSession(FakeResponse(200))
    _sandbox(session, logger).get(
        "https://example.com/", auth={"type": "header", "name": "X-Api-Key", "value": "k"}
    )
    assert session.calls[0][2]["headers"]["X-Api-Key"] == "k"


def test_unknown_auth_type_is_rejected_as_data(logger: CustomLogger) -> None:
    session = FakeSession()
    result = _sandbox(session, logger).get("https://example.com/", auth={"type": "digest"})
    assert result.success is False
    assert "Unsupported auth type" in (result.error or "")
    assert session.calls == []


def test_single_redirect_is_followed_and_revalidated(logger: CustomLogger) -> None:
    session = FakeSession(
        FakeResponse(302, headers={"Location": "/moved"}),
        FakeResponse(200, "final"),
    )
    result = _sandbox(session, logger).get("https://example.com/start")
    assert result.body == "final"
    assert [call[1] for call in session.calls] == [
        "https://example.com/start",
        "https://example.com/moved",
    ]


def test_redirect_to_blocked_address_is_rejected(logger: CustomLogger) -> None:
    session = FakeSession(
        FakeResponse(301, headers={"Location": "http://169.254.169.254/latest/meta-data/"})
    )
    result = _sandbox(session, logger).get("https://example.com/start")
    assert result.success is False
    assert "cloud metadata endpoint" in (result.error or "")
    assert len(session.calls) == 1


def test_second_redirect_is_returned_as_is(logger: CustomLogger) -> None:
    session = FakeSession(
        FakeResponse(302, headers={"Location": "https://example.com/one"}),
        FakeResponse(302, headers={"Location": "https://example.com/two"}),
    )
    result = _sandbox(session, logger).get("https://example.com/start")
    assert result.status == 302
    assert result.headers["Location"] == "https://example.com/two"
    assert len(session.calls) == 2


def test_post_does_not_follow_redirects_by_default(logger: CustomLogger) -> None:
    session = FakeSession(FakeResponse(307, headers={"Location": "https://example.com/else"}))
    result = _sandbox(session, logger).post("https://example.com/api", json={})
    assert result.status == 307
    assert len(session.calls) == 1


def test_redirect_limit_zero_disables_following(logger: CustomLogger) -> None:
    session = FakeSession(FakeResponse(302, headers={"Location": "https://example.com/x"}))
    result = _sandbox(session, logger, http_max_redirects=0).get("https://example.com/")
    assert result.status == 302
    assert len(session.calls) == 1


def test_cross_host_redirect_drops_credentials(logger: CustomLogger) -> None:
    session = FakeSession(
        FakeResponse(302, headers={"Location": "https://other.example.org/landing"}),
        FakeResponse(200),
    )
    _sandbox(session, logger).get(
        "https://example.com/", auth={"type": "bearer", "token": "secret"}
    )
    redirected_headers = session.calls[1][2]["headers"]
    assert "Authorization" not in redirected_headers
    assert redirected_headers["User-Agent"] == DEFAULT_USER_AGENT


@pytest.mark.parametrize("helper", ["curl", "fetch"])
def test_removed_helpers_raise(logger: CustomLogger, helper: str) -> None:
    sandbox = _sandbox(FakeSession(), logger)
    with pytest.raises(SecurityDisabledError, match="removed for security reasons"):
        getattr(sandbox, helper)("https://example.com/")


def test_injected_session_is_not_closed(logger: CustomLogger) -> None:
    session = FakeSession()
    sandbox = _sandbox(session, logger)
    sandbox.close()
    assert session.closed is False


@pytest.mark.parametrize(
    ("start", "location"),
    [
        ("https://example.com/secure", "http://example.com/plain"),
        ("https://example.com/secure", "https://example.com:8443/other"),
        ("https://example.com/secure", "https://other.example.org/landing"),
    ],
    ids=["scheme-downgrade", "port-change", "host-change"],
)
def test_redirect_drops_credentials_when_origin_changes(
    logger: CustomLogger, start: str, location: str
) -> None:
    session = FakeSession(FakeResponse(302, headers={"Location": location}), FakeResponse(200))
    _sandbox(session, logger).get(
        start,
        headers={"Cookie": "sid=1"},
        auth={"type": "bearer", "token": "s3cret"},
    )
    redirected_headers = session.calls[1][2]["headers"]
    assert session.calls[1][1] == location
    assert redirected_headers == {"User-Agent": DEFAULT_USER_AGENT}


def test_scheme_downgrade_drops_basic_auth(logger: CustomLogger) -> None:
    session = FakeSession(
        FakeResponse(301, headers={"Location": "http://example.com/plain"}), FakeResponse(200)
    )
    _sandbox(session, logger).get(
        "https://example.com/secure", auth={"type": "basic", "username": "u", "password": "p"}
    )
    assert "auth" in session.calls[0][2]
    assert "auth" not in session.calls[1][2]


def test_same_origin_redirect_keeps_credentials(logger: CustomLogger) -> None:
    session = FakeSession(FakeResponse(302, headers={"Location": "/next"}), FakeResponse(200))
    _sandbox(session, logger).get(
        "https://example.com/start", auth={"type": "bearer", "token": "s3cret"}
    )
    assert session.calls[1][2]["headers"]["Authorization"] == "Bearer s3cret"
