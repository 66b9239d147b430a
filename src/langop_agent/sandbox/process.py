"""External process execution for generated code.

Commands run as a true argument vector with ``shell=False``: no shell ever
sees the arguments, so metacharacters in them are inert. The escaped
rendering from ``shlex`` is only used for log lines and ``build``. Each
command starts its own session, and a timeout kills the whole session so
background children cannot outlive it.
"""

from __future__ import annotations

from collections.abc import Mapping
import os
from pathlib import Path
import shlex
import shutil
import signal
import subprocess
from typing import Any

from langop_agent.config.settings import RuntimeSettings
from langop_agent.errors import CommandFailedError, SecurityDisabledError
from langop_agent.schema.results import ProcessResult
from langop_agent.utilities.logger_manager import CustomLogger, get_default_logger


def _text(stream: str | bytes | None) -> str:
    if stream is None:
        return ""
    if isinstance(stream, bytes):
        return stream.decode("utf-8", errors="replace")
    return stream


def _kill_group(process: subprocess.Popen[str]) -> None:
    """Kill ``process`` and everything it spawned into its session."""
    if hasattr(os, "killpg"):
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
    else:
        process.kill()


class ProcessSandbox:
    """Runs commands with escaped display, env overlay, and a hard timeout."""

    def __init__(
        self,
        settings: RuntimeSettings | None = None,
        logger: CustomLogger | None = None,
    ) -> None:
        self.settings = settings or RuntimeSettings()
        self.logger = logger or get_default_logger("sandbox.shell")

    def run(
        self,
        command: str,
        *args: Any,
        env: Mapping[str, Any] | None = None,
        working_dir: str | Path | None = None,
        timeout: float | None = None,
    ) -> ProcessResult:
        """Execute ``command`` with ``args`` and return a ``ProcessResult``."""
        argv = [str(command), *(str(arg) for arg in args)]
        if not argv[0]:
            return ProcessResult.rejected("Command cannot be empty")
        if any("\x00" in part for part in argv):
            return ProcessResult.rejected("Command arguments must not contain NUL bytes")

        limit = self.settings.process_timeout if timeout is None else float(timeout)
        if limit <= 0:
            return ProcessResult.rejected("Timeout must be positive")
        child_env = dict(os.environ)
        if env:
            child_env.update({str(key): str(value) for key, value in env.items()})

        display = shlex.join(argv)
        self.logger.info("Running command", command=display, working_dir=working_dir)
        try:
            process = subprocess.Popen(
                argv,
                shell=False,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                text=True,
                env=child_env,
                cwd=working_dir,
                start_new_session=True,
            )
        except (OSError, ValueError) as exc:
            self.logger.warning("Command could not be started", command=display, error=str(exc))
            return ProcessResult.failed(str(exc))

        try:
            stdout, stderr = process.communicate(timeout=limit)
        except subprocess.TimeoutExpired:
            _kill_group(process)
            process.communicate()
            self.logger.warning("Command timed out", command=display, timeout=limit)
            return ProcessResult.failed(
                f"Command timed out after {limit:g} seconds", timed_out=True
            )

        success = process.returncode == 0
        log = self.logger.info if success else self.logger.warning
        log("Command finished", command=display, exitcode=process.returncode)
        return ProcessResult(
            success=success,
            output=_text(stdout),
            error=_text(stderr),
            exitcode=process.returncode,
            timeout=False,
        )

    def capture(self, command: str, *args: Any, **options: Any) -> str | None:
        """Return stdout on success, otherwise ``None``."""
        result = self.run(command, *args, **options)
        return result.output if result.success else None

    def capture_strict(self, command: str, *args: Any, **options: Any) -> str:
        """Return stdout on success, otherwise raise ``CommandFailedError``."""
        result = self.run(command, *args, **options)
        if not result.success:
            raise CommandFailedError(result.exitcode, result.error)
        return result.output

    @staticmethod
    def command_exists(name: str) -> bool:
        return shutil.which(name) is not None

    @staticmethod
    def build(command: str, *args: Any) -> str:
        """Render an escaped command line for display. It is never executed."""
        return shlex.join([str(command), *(str(arg) for arg in args)])

    @staticmethod
    def escape(arg: Any) -> str:
        return shlex.quote(str(arg))

    def raw(self, *args: Any, **kwargs: Any) -> ProcessResult:
        raise SecurityDisabledError("Shell.raw", "ProcessSandbox.run")

    def spawn(self, *args: Any, **kwargs: Any) -> ProcessResult:
        raise SecurityDisabledError("Shell.spawn", "ProcessSandbox.run")


__all__ = ["ProcessSandbox"]
