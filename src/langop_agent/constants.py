"""Global constants shared by the execution core."""

from __future__ import annotations

RUNTIME_NAME = "langop-agent"
RUNTIME_VERSION = "0.4.0"
"""Version reported in the default outbound User-Agent header."""
DEFAULT_USER_AGENT = f"{RUNTIME_NAME}/{RUNTIME_VERSION}"

IDENTIFIER_PATTERN = r"[A-Za-z_][A-Za-z0-9_]*"
"""Field names in task schemas and step names in workflows must match this."""

ALLOWED_URL_SCHEMES: frozenset[str] = frozenset({"http", "https"})

SECURITY_DISABLED_SUFFIX = "has been removed for security reasons"
