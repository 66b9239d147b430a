from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
import logging
import os
from pathlib import Path
import tempfile
import uuid

from _pytest.monkeypatch import MonkeyPatch
import pytest

from langop_agent.contracts.types import clear_cache
from langop_agent.utilities.logger_manager import (
    CustomLogger,
    LoggerConfig,
    LoggerManager,
)

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ALLOWED_ARTIFACTS_ROOT = PROJECT_ROOT / "artifacts" / "test"
EXEMPT_PATH_SEGMENTS = {
    ".venv",
    ".pytest_cache",
    ".hypothesis",
    "site-packages",
    "__pycache__",
}


def _assert_within_allowed(path: Path) -> None:
    resolved = path.resolve()
    if resolved == ALLOWED_ARTIFACTS_ROOT or ALLOWED_ARTIFACTS_ROOT in resolved.parents:
        return
    if any(segment in resolved.parts for segment in EXEMPT_PATH_SEGMENTS):
        return
    raise RuntimeError(
        "Writes, temporary files, and artifacts must stay under 'artifacts/test/'"
    )


@pytest.fixture(scope="session", autouse=True)
def enforce_artifact_boundary() -> Iterator[None]:
    ALLOWED_ARTIFACTS_ROOT.mkdir(parents=True, exist_ok=True)

    mp = MonkeyPatch()
    mp.setattr(tempfile, "gettempdir", lambda: str(ALLOWED_ARTIFACTS_ROOT))

    original_mkdir = Path.mkdir
    original_write_text = Path.write_text
    original_write_bytes = Path.write_bytes

    def guarded_mkdir(self, *args, **kwargs):
        _assert_within_allowed(self)
        return original_mkdir(self, *args, **kwargs)

    def guarded_write_text(self, *args, **kwargs):
        _assert_within_allowed(self)
        return original_write_text(self, *args, **kwargs)

    def guarded_write_bytes(self, *args, **kwargs):
        _assert_within_allowed(self)
        return original_write_bytes(self, *args, **kwargs)

    mp.setattr(Path, "mkdir", guarded_mkdir, raising=False)
    mp.setattr(Path, "write_text", guarded_write_text, raising=False)
    mp.setattr(Path, "write_bytes", guarded_write_bytes, raising=False)

    yield

    mp.undo()


@pytest.fixture(autouse=True)
def isolated_runtime_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep ambient ``LANGOP_*`` variables and cached coercions out of tests."""
    for name in list(os.environ):
        if name.startswith("LANGOP_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LANGOP_SKIP_DOTENV", "1")
    clear_cache()
    yield
    clear_cache()


@pytest.fixture
def test_artifacts_dir(request) -> Path:
    safe_name = (
        request.node.nodeid.replace("::", "__").replace("/", "_").replace("\\", "_")
    )
    target = ALLOWED_ARTIFACTS_ROOT / safe_name
    target.mkdir(parents=True, exist_ok=True)
    return target


@pytest.fixture
def tmp_path(test_artifacts_dir: Path) -> Path:
    return test_artifacts_dir


@pytest.fixture
def logger_manager() -> LoggerManager:
    # Console handler only, so a handler filter sees each record once.
    name = f"langop_agent_test_{uuid.uuid4().hex}"
    return LoggerManager(name, LoggerConfig(log_level="DEBUG"))


@dataclass
class RecordingFilter:
    """Handler filter that keeps every record it sees."""

    records: list[logging.LogRecord] = field(default_factory=list)

    def __call__(self, record: logging.LogRecord) -> bool:
        self.records.append(record)
        return True

    def messages(self) -> list[str]:
        return [record.getMessage() for record in self.records]

    def find(self, message: str) -> logging.LogRecord:
        for record in self.records:
            if record.getMessage() == message:
                return record
        raise AssertionError(f"no record with message {message!r}")


@pytest.fixture
def log_records(logger_manager: LoggerManager) -> RecordingFilter:
    recorder = RecordingFilter()
    logger_manager.add_filter("recorder", recorder)
    return recorder


@pytest.fixture
def logger(logger_manager: LoggerManager, log_records: RecordingFilter) -> CustomLogger:
    return logger_manager.get_logger()
