"""Blocked address ranges and URL validation for outbound HTTP.

Validation fails closed: anything that cannot be parsed, resolved, or
classified is rejected before a connection is attempted.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
import ipaddress
import socket
from urllib.parse import urlsplit

from langop_agent.constants import ALLOWED_URL_SCHEMES
from langop_agent.schema.results import SandboxDecision

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address
Resolver = Callable[[str], Iterable[str]]


@dataclass(frozen=True)
class BlockedRange:
    """A network that generated code may never reach, with its policy label."""

    network: ipaddress.IPv4Network | ipaddress.IPv6Network
    label: str

    def __contains__(self, address: object) -> bool:
        if not isinstance(address, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
            return False
        return address.version == self.network.version and address in self.network


BLOCKED_RANGES: tuple[BlockedRange, ...] = (
    BlockedRange(ipaddress.ip_network("10.0.0.0/8"), "private IP range (RFC 1918)"),
    BlockedRange(ipaddress.ip_network("172.16.0.0/12"), "private IP range (RFC 1918)"),
    BlockedRange(ipaddress.ip_network("192.168.0.0/16"), "private IP range (RFC 1918)"),
    BlockedRange(ipaddress.ip_network("127.0.0.0/8"), "loopback address"),
    BlockedRange(ipaddress.ip_network("::1/128"), "IPv6 loopback address"),
    BlockedRange(
        ipaddress.ip_network("169.254.0.0/16"),
        "link-local address (cloud metadata endpoint)",
    ),
    BlockedRange(ipaddress.ip_network("fe80::/10"), "IPv6 link-local address"),
    BlockedRange(ipaddress.ip_network("255.255.255.255/32"), "broadcast address"),
)


def normalize_address(address: IPAddress) -> IPAddress:
    """Map ``::ffff:a.b.c.d`` to its IPv4 form so IPv4 rules apply."""
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped is not None:
        return address.ipv4_mapped
    return address


def blocked_reason(address: IPAddress | str) -> str | None:
    """Return the policy label blocking ``address``, or ``None`` if allowed."""
    parsed = ipaddress.ip_address(address) if isinstance(address, str) else address
    candidate = normalize_address(parsed)
    for blocked in BLOCKED_RANGES:
        if candidate in blocked:
            return blocked.label
    return None


def system_resolver(host: str) -> list[str]:
    """Resolve ``host`` to every address ``getaddrinfo`` reports."""
    infos = socket.getaddrinfo(host, None, proto=socket.IPPROTO_TCP)
    addresses: list[str] = []
    for info in infos:
        address = str(info[4][0]).split("%", 1)[0]
        if address not in addresses:
            addresses.append(address)
    return addresses


def _literal_address(host: str) -> IPAddress | None:
    try:
        return ipaddress.ip_address(host.split("%", 1)[0])
    except ValueError:
        return None


def validate_url(url: str | None, resolver: Resolver = system_resolver) -> SandboxDecision:
    """Run a URL through the scheme, host, and address checks."""
    if url is None:
        return SandboxDecision.deny("URL cannot be nil")
    if not isinstance(url, str):
        return SandboxDecision.deny(f"Invalid URL: {url!r}")
    try:
        parts = urlsplit(url.strip())
        host = parts.hostname
        # Accessing the port validates it.
        parts.port  # noqa: B018
    except ValueError as exc:
        return SandboxDecision.deny(f"Invalid URL: {exc}")

    scheme = parts.scheme.lower()
    if scheme not in ALLOWED_URL_SCHEMES:
        return SandboxDecision.deny(f"URL scheme '{scheme}' not allowed")
    if not host:
        return SandboxDecision.deny(f"Invalid URL: missing host in {url!r}")

    literal = _literal_address(host)
    if literal is not None:
        reason = blocked_reason(literal)
        if reason:
            return SandboxDecision.deny(f"Blocked IP address {literal} ({reason})")
        return SandboxDecision.allow()

    try:
        resolved = list(resolver(host))
    except (OSError, UnicodeError):
        return SandboxDecision.deny(f"Unable to resolve hostname: {host}")
    if not resolved:
        return SandboxDecision.deny(f"Unable to resolve hostname: {host}")

    for raw in resolved:
        address = _literal_address(str(raw))
        if address is None:
            return SandboxDecision.deny(f"Unable to resolve hostname: {host}")
        reason = blocked_reason(address)
        if reason:
            return SandboxDecision.deny(
                f"Host '{host}' resolves to blocked IP address {address} ({reason})"
            )
    return SandboxDecision.allow()


__all__ = [
    "BLOCKED_RANGES",
    "BlockedRange",
    "Resolver",
    "blocked_reason",
    "normalize_address",
    "system_resolver",
    "validate_url",
]
