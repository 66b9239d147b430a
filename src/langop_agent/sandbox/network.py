"""Outbound HTTP for generated code, mediated by the address policy.

Every request, including the single redirect hop that may be followed, is
validated before any connection is made. Failures of any kind come back as
``HttpResult`` values; nothing is raised to the caller except for the
permanently removed ``curl`` and ``fetch`` helpers.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import urljoin

import requests
from requests.auth import HTTPBasicAuth
from requests.sessions import SessionRedirectMixin

from langop_agent.config.settings import RuntimeSettings
from langop_agent.enums import AuthScheme
from langop_agent.errors import SecurityDisabledError
from langop_agent.sandbox.address_policy import Resolver, system_resolver, validate_url
from langop_agent.schema.results import HttpResult, SandboxDecision
from langop_agent.utilities.logger_manager import CustomLogger, get_default_logger

REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})
_CREDENTIAL_HEADERS = ("authorization", "proxy-authorization", "cookie")
# Credential stripping follows the rule requests uses for its own redirects.
_REDIRECT_RULES = SessionRedirectMixin()

Timeout = float | tuple[float, float]


def _has_header(headers: Mapping[str, str], name: str) -> bool:
    lowered = name.lower()
    return any(key.lower() == lowered for key in headers)


class NetworkSandbox:
    """HTTP client that refuses internal, loopback, and metadata addresses."""

    def __init__(
        self,
        settings: RuntimeSettings | None = None,
        session: Any | None = None,
        resolver: Resolver | None = None,
        logger: CustomLogger | None = None,
    ) -> None:
        self.settings = settings or RuntimeSettings()
        self._session = session
        self._owns_session = session is None
        self._resolver = resolver or system_resolver
        self.logger = logger or get_default_logger("sandbox.http")

    @property
    def session(self) -> Any:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def close(self) -> None:
        if self._owns_session and self._session is not None:
            self._session.close()
            self._session = None

    def validate(self, url: str | None) -> SandboxDecision:
        """Check ``url`` against the scheme and blocked-address policy."""
        return validate_url(url, self._resolver)

    def get(
        self,
        url: str | None,
        *,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
        auth: Mapping[str, Any] | None = None,
        timeout: Timeout | None = None,
        follow_redirects: bool = True,
    ) -> HttpResult:
        return self.request(
            "GET",
            url,
            headers=headers,
            params=params,
            auth=auth,
            timeout=timeout,
            follow_redirects=follow_redirects,
        )

    def head(
        self,
        url: str | None,
        *,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
        auth: Mapping[str, Any] | None = None,
        timeout: Timeout | None = None,
        follow_redirects: bool = True,
    ) -> HttpResult:
        return self.request(
            "HEAD",
            url,
            headers=headers,
            params=params,
            auth=auth,
            timeout=timeout,
            follow_redirects=follow_redirects,
        )

    def delete(
        self,
        url: str | None,
        *,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
        auth: Mapping[str, Any] | None = None,
        timeout: Timeout | None = None,
        follow_redirects: bool = False,
    ) -> HttpResult:
        return self.request(
            "DELETE",
            url,
            headers=headers,
            params=params,
            auth=auth,
            timeout=timeout,
            follow_redirects=follow_redirects,
        )

    def post(
        self,
        url: str | None,
        *,
        json: Any = None,
        data: Any = None,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
        auth: Mapping[str, Any] | None = None,
        timeout: Timeout | None = None,
        follow_redirects: bool = False,
    ) -> HttpResult:
        return self.request(
            "POST",
            url,
            json=json,
            data=data,
            headers=headers,
            params=params,
            auth=auth,
            timeout=timeout,
            follow_redirects=follow_redirects,
        )

    def put(
        self,
        url: str | None,
        *,
        json: Any = None,
        data: Any = None,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
        auth: Mapping[str, Any] | None = None,
        timeout: Timeout | None = None,
        follow_redirects: bool = False,
    ) -> HttpResult:
        return self.request(
            "PUT",
            url,
            json=json,
            data=data,
            headers=headers,
            params=params,
            auth=auth,
            timeout=timeout,
            follow_redirects=follow_redirects,
        )

    def request(
        self,
        method: str,
        url: str | None,
        *,
        json: Any = None,
        data: Any = None,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, Any] | None = None,
        auth: Mapping[str, Any] | None = None,
        timeout: Timeout | None = None,
        follow_redirects: bool = False,
    ) -> HttpResult:
        """Validate, send, and normalize one request plus at most one redirect."""
        method = method.upper()
        decision = self.validate(url)
        if url is None or not decision.allowed:
            return self._reject(method, url, decision)

        request_headers = dict(headers or {})
        if not _has_header(request_headers, "User-Agent"):
            request_headers["User-Agent"] = self.settings.user_agent
        try:
            basic_auth = self._apply_auth(request_headers, auth)
        except ValueError as exc:
            return self._reject(method, url, SandboxDecision.deny(str(exc)))

        kwargs: dict[str, Any] = {
            "headers": request_headers,
            "params": dict(params) if params else None,
            "timeout": self._timeout(timeout),
            "allow_redirects": False,
        }
        if basic_auth is not None:
            kwargs["auth"] = basic_auth
        if json is not None:
            kwargs["json"] = json
        elif data is not None:
            kwargs["data"] = data

        try:
            with self.logger.timed("HTTP request", method=method, url=url):
                response = self.session.request(method, url, **kwargs)
        except requests.RequestException as exc:
            self.logger.warning("HTTP request failed", method=method, url=url, error=str(exc))
            return HttpResult.failed(str(exc))

        if (
            follow_redirects
            and self.settings.http_max_redirects > 0
            and response.status_code in REDIRECT_STATUSES
            and response.headers.get("Location")
        ):
            return self._follow_redirect(method, url, response, kwargs)
        return self._to_result(response)

    def _follow_redirect(
        self,
        method: str,
        url: str,
        response: Any,
        kwargs: dict[str, Any],
    ) -> HttpResult:
        target = urljoin(url, response.headers["Location"])
        decision = self.validate(target)
        if not decision.allowed:
            return self._reject(method, target, decision)

        redirect_kwargs = dict(kwargs)
        redirect_kwargs["params"] = None
        if _REDIRECT_RULES.should_strip_auth(url, target):
            redirect_kwargs["headers"] = {
                key: value
                for key, value in kwargs["headers"].items()
                if key.lower() not in _CREDENTIAL_HEADERS
            }
            redirect_kwargs.pop("auth", None)
        redirect_method = method
        if response.status_code == 303 and method != "HEAD":
            redirect_method = "GET"
            redirect_kwargs.pop("json", None)
            redirect_kwargs.pop("data", None)

        self.logger.info(
            "Following redirect", status=response.status_code, location=target
        )
        try:
            followed = self.session.request(redirect_method, target, **redirect_kwargs)
        except requests.RequestException as exc:
            self.logger.warning(
                "HTTP request failed", method=redirect_method, url=target, error=str(exc)
            )
            return HttpResult.failed(str(exc))
        return self._to_result(followed)

    def _reject(self, method: str, url: str | None, decision: SandboxDecision) -> HttpResult:
        self.logger.warning(
            "Outbound request rejected", method=method, url=url, reason=decision.reason
        )
        return HttpResult.rejected(decision)

    def _timeout(self, timeout: Timeout | None) -> tuple[float, float]:
        if timeout is None:
            return (self.settings.http_connect_timeout, self.settings.http_read_timeout)
        if isinstance(timeout, tuple):
            return (float(timeout[0]), float(timeout[1]))
        return (float(timeout), float(timeout))

    @staticmethod
    def _apply_auth(
        headers: dict[str, str], auth: Mapping[str, Any] | None
    ) -> HTTPBasicAuth | None:
        if not auth:
            return None
        raw_type = str(auth.get("type", "")).lower()
        try:
            scheme = AuthScheme(raw_type)
        except ValueError as exc:
            raise ValueError(f"Unsupported auth type: '{raw_type}'") from exc

        if scheme is AuthScheme.BASIC:
            username, password = auth.get("username"), auth.get("password")
            if username is None or password is None:
                raise ValueError("basic auth requires username and password")
            return HTTPBasicAuth(str(username), str(password))
        if scheme is AuthScheme.HEADER:
            name, value = auth.get("name"), auth.get("value")
            if not name or value is None:
                raise ValueError("header auth requires name and value")
            headers[str(name)] = str(value)
            return None
        token = auth.get("token")
        if not token:
            raise ValueError(f"{scheme.value} auth requires a token")
        prefix = "Bearer" if scheme is AuthScheme.BEARER else "Token"
        headers["Authorization"] = f"{prefix} {token}"
        return None

    @staticmethod
    def _to_result(response: Any) -> HttpResult:
        status = int(response.status_code)
        response_headers = {str(k): str(v) for k, v in response.headers.items()}
        parsed: Any = None
        content_type = response.headers.get("Content-Type", "") or ""
        if "json" in content_type.lower():
            try:
                parsed = response.json()
            except ValueError:
                parsed = None
        return HttpResult(
            status=status,
            headers=response_headers,
            body=response.text or "",
            success=200 <= status < 300,
            json_body=parsed,
        )

    def curl(self, *args: Any, **kwargs: Any) -> HttpResult:
        raise SecurityDisabledError("HTTP.curl", "NetworkSandbox.get")

    def fetch(self, *args: Any, **kwargs: Any) -> HttpResult:
        raise SecurityDisabledError("HTTP.fetch", "NetworkSandbox.get")


__all__ = ["NetworkSandbox", "REDIRECT_STATUSES"]
