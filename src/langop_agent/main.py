"""Command-line driver: run an agent module once or check a URL."""

from __future__ import annotations

import argparse
import importlib.util
import json
from pathlib import Path
import sys
from types import ModuleType
from typing import Any

from langop_agent.agent import AgentDefinition
from langop_agent.config.env import load_environment
from langop_agent.config.settings import RuntimeSettings
from langop_agent.constants import RUNTIME_NAME, RUNTIME_VERSION
from langop_agent.contracts.types import configure_cache
from langop_agent.errors import LangopError
from langop_agent.sandbox.network import NetworkSandbox
from langop_agent.utilities.logger_manager import LoggerConfig, configure_default_logging

AGENT_ATTRIBUTE = "agent"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog=RUNTIME_NAME,
        description="Run a synthesized agent under the langop execution core.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--version",
        "-V",
        action="version",
        version=f"{RUNTIME_NAME} {RUNTIME_VERSION}",
        help="Show the runtime version and exit.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run an agent module once.")
    run_parser.add_argument(
        "agent_file",
        type=str,
        help=f"Python file exposing a module-level `{AGENT_ATTRIBUTE}`.",
    )
    source = run_parser.add_mutually_exclusive_group()
    source.add_argument("--input", type=str, default=None, help="Inputs as a JSON object.")
    source.add_argument(
        "--input-file", type=str, default=None, help="Path to a JSON file with inputs."
    )
    run_parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Optional YAML file with a `runtime` section.",
    )

    check_parser = subparsers.add_parser(
        "check-url", help="Show the sandbox decision for a URL without requesting it."
    )
    check_parser.add_argument("url", type=str, help="URL to validate.")
    check_parser.add_argument("--config", type=str, default=None, help=argparse.SUPPRESS)
    return parser.parse_args(argv)


def load_agent(path: str | Path) -> AgentDefinition:
    """Import an agent file and return its ``agent`` attribute."""
    agent_path = Path(path)
    if not agent_path.is_file():
        raise FileNotFoundError(f"Agent file not found: {agent_path}")
    spec = importlib.util.spec_from_file_location(
        f"langop_agent_module_{agent_path.stem}", agent_path
    )
    if spec is None or spec.loader is None:
        raise ImportError(f"Cannot load agent module from {agent_path}")
    module: ModuleType = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    agent = getattr(module, AGENT_ATTRIBUTE, None)
    if not isinstance(agent, AgentDefinition):
        raise TypeError(
            f"{agent_path} must define a module-level `{AGENT_ATTRIBUTE}` AgentDefinition"
        )
    return agent


def read_inputs(args: argparse.Namespace) -> dict[str, Any]:
    raw: str | None = args.input
    if args.input_file:
        raw = Path(args.input_file).read_text(encoding="utf-8")
    if raw is None or not raw.strip():
        return {}
    parsed = json.loads(raw)
    if not isinstance(parsed, dict):
        raise ValueError("Agent inputs must be a JSON object")
    return parsed


def _run_agent(args: argparse.Namespace, settings: RuntimeSettings) -> int:
    inputs = read_inputs(args)
    agent = load_agent(args.agent_file)
    agent.apply_settings(settings)
    result = agent.run(inputs)
    print(json.dumps(result, indent=2, ensure_ascii=False, default=str))
    return 0


def _check_url(args: argparse.Namespace, settings: RuntimeSettings) -> int:
    sandbox = NetworkSandbox(settings)
    decision = sandbox.validate(args.url)
    print(json.dumps(decision.model_dump(), indent=2))
    return 0 if decision.allowed else 1


def main(argv: list[str] | None = None) -> int:
    """Entry point returning the process exit code."""
    args = parse_args(argv)
    load_environment()
    try:
        settings = RuntimeSettings.load(args.config)
    except (OSError, ValueError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 1
    configure_default_logging(LoggerConfig.from_settings(settings))
    configure_cache(settings.coercion_cache_size)

    try:
        if args.command == "check-url":
            return _check_url(args, settings)
        return _run_agent(args, settings)
    except LangopError as exc:
        print(f"{type(exc).__name__}: {exc}", file=sys.stderr)
        return 1
    except (OSError, ImportError, TypeError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
