"""Explicit default settings for the execution runtime."""

from __future__ import annotations

from langop_agent.constants import DEFAULT_USER_AGENT

RUNTIME_DEFAULTS: dict[str, object] = {
    "http_connect_timeout": 10.0,
    "http_read_timeout": 30.0,
    "http_max_redirects": 1,
    "user_agent": DEFAULT_USER_AGENT,
    "process_timeout": 30.0,
    "trace_excerpt_frames": 5,
    "coercion_cache_size": 1000,
    "log_level": "INFO",
    "log_format": "pretty",
}

ENV_PREFIX = "LANGOP_"
"""Every runtime default can be overridden by ``LANGOP_<UPPER_NAME>``."""
