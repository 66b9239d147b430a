"""Sandboxes mediating outbound HTTP and external processes."""

from __future__ import annotations

from .address_policy import BLOCKED_RANGES, blocked_reason, validate_url
from .network import NetworkSandbox
from .process import ProcessSandbox

__all__ = [
    "BLOCKED_RANGES",
    "NetworkSandbox",
    "ProcessSandbox",
    "blocked_reason",
    "validate_url",
]
