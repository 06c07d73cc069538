"""Conduit CLI - Command line interface for running agent graphs.

Usage:
    conduit run <agent.json> [--input TEXT] [--arg key=value]... [--agents-file FILE] [--artifacts-dir DIR]
    conduit order <agent.json>
    conduit kinds
    conduit --version
    conduit --help

Examples:
    conduit run examples/summarize.json --input "Long text..."
    conduit run examples/triage.json --arg priority=3 --arg subject="Server down"
    conduit order examples/triage.json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import math
import sys
from pathlib import Path
from typing import Any

from conduit import __version__
from conduit.domain.models import RunResult
from conduit.errors import CycleError
from conduit.execution.resolver import render_value
from conduit.execution.scheduler import order
from conduit.registry import get_global_registry
from conduit.runner import AgentFileError, AgentRunner, default_collaborators, load_agent_file

RULE = "─" * 70


_LITERALS = {"true": True, "false": False, "null": None, "none": None}


def parse_arg_value(value: str) -> Any:
    """Turn one ``--arg`` value into the field stored in the run input object.

    ``@path`` reads the field from a text file (``@@`` escapes a leading
    ``@``). Literals, JSON and finite numbers are decoded; single-quoted
    text and anything else stays a string.

    Raises:
        ValueError: If an ``@path`` file cannot be read
    """
    if value.startswith("@@"):
        return value[1:]
    if value.startswith("@"):
        path = Path(value[1:]).expanduser()
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise ValueError(f"Cannot read argument file {path}: {e.strerror or e}") from e

    if len(value) >= 2 and value[0] == value[-1] == "'":
        return value[1:-1]
    if value.lower() in _LITERALS:
        return _LITERALS[value.lower()]

    try:
        parsed = json.loads(value)
    except ValueError:
        return value
    # json accepts NaN and Infinity; keep those as text.
    if isinstance(parsed, float) and not math.isfinite(parsed):
        return value
    return parsed


def build_input(text: str | None, args: list[str] | None) -> Any:
    """Combine ``--input`` and ``--arg`` pairs into the run input.

    Without ``--arg`` the input is the text itself. With arguments the input is
    an object of them, holding the text under ``input`` when given.

    Raises:
        ValueError: If an argument is not in key=value form
    """
    if not args:
        return text or ""

    values: dict[str, Any] = {}
    if text is not None:
        values["input"] = text
    for arg in args:
        if "=" not in arg:
            raise ValueError(f"Invalid argument format: {arg}")
        key, value = arg.split("=", 1)
        values[key.strip()] = parse_arg_value(value.strip())
    return values


def print_result(result: RunResult) -> None:
    print(RULE)
    if result.status == "completed":
        print("✓ Success!")
    elif result.status == "cancelled":
        print("■ Cancelled")
    else:
        print("✗ Error!")
    print()

    if result.error:
        print(f"Error: {result.error}")
    elif isinstance(result.output, (dict, list)):
        print(json.dumps(result.output, indent=2, default=str))
    else:
        print(f"Output: {render_value(result.output)}")
    print()

    if result.trace:
        print("Trace:")
        for entry in result.trace:
            mark = "✓" if entry.status == "completed" else "✗"
            line = f"  {mark} {entry.node_id:<20} {entry.kind:<20} {entry.duration_ms:>8.0f}ms"
            if entry.tokens_in or entry.tokens_out:
                line += f"  tokens {entry.tokens_in}/{entry.tokens_out}"
            if entry.error:
                line += f"  {entry.error}"
            print(line)
        print()

    metrics = result.metrics
    print(
        f"Nodes: {metrics.success_count} ok, {metrics.fail_count} failed of {metrics.node_count}"
        f" | Tokens: {metrics.total_tokens_in} in / {metrics.total_tokens_out} out"
        f" | {metrics.total_duration_ms:.0f}ms"
    )
    print(RULE)


def cmd_run(args: argparse.Namespace) -> int:
    """Run an agent graph from a JSON file.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    agent_file = Path(args.file)

    try:
        run_input = build_input(args.input, args.arg)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Use: --arg key=value", file=sys.stderr)
        return 1

    try:
        agent = load_agent_file(agent_file)
    except (FileNotFoundError, AgentFileError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"▶ Executing: {agent_file}")
    print(f"  Agent: {agent.name or agent.id}")
    if isinstance(run_input, dict):
        print(f"  Arguments: {json.dumps(run_input, indent=2)}")
    print()

    runner = AgentRunner(
        collaborators=default_collaborators(
            artifacts_dir=args.artifacts_dir,
            agents_file=args.agents_file,
        )
    )
    result = asyncio.run(runner.run_agent(agent, run_input))
    print_result(result)
    return 0 if result.success else 1


def cmd_order(args: argparse.Namespace) -> int:
    """Print the execution order of an agent graph."""
    try:
        agent = load_agent_file(args.file)
    except (FileNotFoundError, AgentFileError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        sequence = order(agent.nodes, agent.edges)
    except CycleError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    nodes = agent.node_map()
    print(f"Agent: {agent.name or agent.id}")
    print()
    for index, node_id in enumerate(sequence, start=1):
        node = nodes[node_id]
        print(f"  {index:>3}. {node_id} ({node.kind}) {node.label if node.label != node.kind else ''}".rstrip())
    return 0


def cmd_kinds(args: argparse.Namespace) -> int:
    """List registered node kinds."""
    kinds = get_global_registry().kinds()
    print(f"Node kinds: {len(kinds)}")
    for kind in kinds:
        print(f"  • {kind}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        prog="conduit",
        description="Conduit - Agent graph execution engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  conduit run examples/summarize.json --input "Long text..."
  conduit run examples/triage.json --arg priority=3
  conduit order examples/triage.json
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"conduit {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    run_parser = subparsers.add_parser("run", help="Run an agent graph from a JSON file")
    run_parser.add_argument("file", help="Path to the agent JSON file")
    run_parser.add_argument("--input", default=None, help="Run input text")
    run_parser.add_argument(
        "--arg",
        action="append",
        help="Input field as key=value, or key=@file to read the value from a file (repeatable)",
    )
    run_parser.add_argument(
        "--agents-file",
        default=None,
        help='JSON file with {"agents": [...]} used to resolve sub-agents',
    )
    run_parser.add_argument(
        "--artifacts-dir",
        default=None,
        help="Directory for generated files (default: ./artifacts)",
    )

    order_parser = subparsers.add_parser("order", help="Print the execution order of an agent graph")
    order_parser.add_argument("file", help="Path to the agent JSON file")

    subparsers.add_parser("kinds", help="List registered node kinds")

    args = parser.parse_args(argv)

    if args.command == "run":
        return cmd_run(args)
    elif args.command == "order":
        return cmd_order(args)
    elif args.command == "kinds":
        return cmd_kinds(args)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
