"""Provider configuration and OpenID Connect endpoint discovery."""

from __future__ import annotations

import json
import urllib.error
import urllib.request
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Optional

DISCOVERY_ENDPOINT = "/.well-known/openid-configuration"
SUPPORTED_AUTH_METHODS = ("client_secret_basic", "client_secret_post", "none")
FETCH_TIMEOUT = 30.0


class DiscoveryError(Exception):
    """Raised when the provider's configuration cannot be discovered."""


class IssuerInvalidError(DiscoveryError):
    """Raised when the discovered issuer does not match the configured one."""

    def __init__(self, message: str = "issuer did not match the issuer url") -> None:
        super().__init__(message)


@dataclass
class HttpResponse:
    """A minimal HTTP response: status, body and headers."""

    status_code: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)

    def json(self) -> Any:
        """Decode the body as JSON."""
        return json.loads(self.body)


Fetch = Callable[[str, Optional[Mapping[str, str]]], HttpResponse]


def urllib_fetch(url: str, headers: Optional[Mapping[str, str]] = None) -> HttpResponse:
    """GET ``url`` with the standard library; HTTP error statuses are returned."""
    request = urllib.request.Request(url, headers=dict(headers or {}), method="GET")
    try:
        with urllib.request.urlopen(request, timeout=FETCH_TIMEOUT) as reply:
            return HttpResponse(reply.status, reply.read(), dict(reply.headers.items()))
    except urllib.error.HTTPError as exc:
        with exc:
            return HttpResponse(exc.code, exc.read(), dict(exc.headers.items()))


# Maps JSON member names to DiscoveryConfiguration attribute names.
_JSON_FIELDS = {
    "issuer": "issuer",
    "authorization_endpoint": "authorization_endpoint",
    "pushed_authorization_request_endpoint": "pushed_authorization_request_endpoint",
    "token_endpoint": "token_endpoint",
    "introspection_endpoint": "introspection_endpoint",
    "userinfo_endpoint": "userinfo_endpoint",
    "revocation_endpoint": "revocation_endpoint",
    "device_authorization_endpoint": "device_authorization_endpoint",
    "jwks_uri": "jwks_uri",
    "token_endpoint_auth_methods_supported": "token_endpoint_auth_methods",
}


@dataclass
class DiscoveryConfiguration:
    """The parts of a provider's discovery document that are used."""

    issuer: str = ""
    authorization_endpoint: str = ""
    pushed_authorization_request_endpoint: str = ""
    token_endpoint: str = ""
    introspection_endpoint: str = ""
    userinfo_endpoint: str = ""
    revocation_endpoint: str = ""
    device_authorization_endpoint: str = ""
    jwks_uri: str = ""
    token_endpoint_auth_methods: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "DiscoveryConfiguration":
        """Build from a decoded discovery document; unknown members are ignored."""
        if not isinstance(data, Mapping):
            raise TypeError("discovery document must be a JSON object")
        values: dict[str, Any] = {}
        for key, attr in _JSON_FIELDS.items():
            value = data.get(key)
            if value is None:
                continue
            if attr == "token_endpoint_auth_methods":
                if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                    raise TypeError(f"{key} must be a list of strings")
                values[attr] = list(value)
            else:
                if not isinstance(value, str):
                    raise TypeError(f"{key} must be a string")
                values[attr] = value
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        """Return the non-empty members under their JSON names."""
        result: dict[str, Any] = {}
        for key, attr in _JSON_FIELDS.items():
            value = getattr(self, attr)
            if value:
                result[key] = value
        return result


@dataclass
class Config:
    """Client and provider settings shared by all flows."""

    client_id: str = ""
    client_secret: str = ""
    issuer_url: str = ""
    discovery_endpoint: str = ""
    authorization_endpoint: str = ""
    pushed_authorization_request_endpoint: str = ""
    token_endpoint: str = ""
    device_authorization_endpoint: str = ""
    introspection_endpoint: str = ""
    userinfo_endpoint: str = ""
    jwks_endpoint: str = ""
    auth_method: str = ""
    supported_auth_methods: tuple[str, ...] = SUPPORTED_AUTH_METHODS

    def discover(self, fetch: Fetch = urllib_fetch) -> DiscoveryConfiguration:
        """Fetch the discovery document.

        An explicit discovery endpoint is used as given; otherwise the
        well-known path under the issuer is used and the issuer is checked.
        """
        if self.discovery_endpoint:
            url = self.discovery_endpoint
        else:
            url = self.issuer_url.rstrip("/") + DISCOVERY_ENDPOINT

        try:
            response = fetch(url, None)
        except OSError as exc:
            raise DiscoveryError(f"failed to discover endpoints: {exc}") from exc
        if response.status_code != 200:
            raise DiscoveryError(
                f"discovery request failed with status {response.status_code}"
            )

        try:
            discovered = DiscoveryConfiguration.from_dict(response.json())
        except (ValueError, TypeError) as exc:
            raise DiscoveryError(f"failed to parse discovery response: {exc}") from exc

        if not self.discovery_endpoint and discovered.issuer != self.issuer_url:
            raise IssuerInvalidError()
        return discovered

    def discover_endpoints(self, fetch: Fetch = urllib_fetch) -> None:
        """Fill in every endpoint and the auth method not already set."""
        try:
            discovered = self.discover(fetch)
        except DiscoveryError as exc:
            raise DiscoveryError(f"endpoint discovery failed: {exc}") from exc

        self.authorization_endpoint = (
            self.authorization_endpoint or discovered.authorization_endpoint
        )
        self.pushed_authorization_request_endpoint = (
            self.pushed_authorization_request_endpoint
            or discovered.pushed_authorization_request_endpoint
        )
        self.token_endpoint = self.token_endpoint or discovered.token_endpoint
        self.device_authorization_endpoint = (
            self.device_authorization_endpoint or discovered.device_authorization_endpoint
        )
        self.introspection_endpoint = (
            self.introspection_endpoint or discovered.introspection_endpoint
        )
        self.userinfo_endpoint = self.userinfo_endpoint or discovered.userinfo_endpoint
        self.jwks_endpoint = self.jwks_endpoint or discovered.jwks_uri

        if not self.auth_method:
            self.auth_method = next(
                (
                    method
                    for method in discovered.token_endpoint_auth_methods
                    if method in self.supported_auth_methods
                ),
                "",
            )

    def field_names(self) -> list[str]:
        """Names of all settings, in declaration order."""
        return [f.name for f in fields(self)]