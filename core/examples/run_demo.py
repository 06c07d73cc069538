#!/usr/bin/env python3
"""Demo script to run the example agents.

The triage agent runs offline. The summarize agent needs an OpenAI key in
``CONDUIT_CRED_OPENAI_API_KEY`` and is skipped without one.
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

# Add core to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from conduit.library.credentials import CredentialBag
from conduit.library.progress import CallbackProgressSink
from conduit.runner import AgentRunner, default_collaborators, run_agent_sync

EXAMPLES = Path(__file__).parent


def show_step(event, payload):
    if event == "step" and payload["status"] != "running":
        mark = "✓" if payload["status"] == "completed" else "✗"
        print(f"  {mark} {payload['node_id']} ({payload['kind']})")


async def demo_triage():
    """Route two tickets through the triage agent."""
    print("=" * 60)
    print("Conduit - Ticket Triage Demo")
    print("=" * 60)

    runner = AgentRunner(
        collaborators=default_collaborators(progress=CallbackProgressSink(show_step)),
    )
    tickets = [
        {"subject": "Database is down", "priority": 4},
        {"subject": "Typo on pricing page", "priority": 1},
    ]
    for ticket in tickets:
        print(f"\n▶ Ticket: {json.dumps(ticket)}")
        result = await runner.run_agent_file(EXAMPLES / "triage.json", ticket)
        print(f"  Output: {result.output}")


def demo_summarize():
    """Summarize a paragraph with the summarize agent."""
    print("\n\n" + "=" * 60)
    print("Conduit - Summarize Demo")
    print("=" * 60)

    if not CredentialBag.from_env().get_api_key("openai"):
        print("\n  Skipped: set CONDUIT_CRED_OPENAI_API_KEY to run this demo.")
        return

    text = (
        "The new release cut cold-start time in half and fixed the long-standing "
        "memory leak in the scheduler. Users on older hardware still report slow "
        "exports, which the team plans to address next quarter."
    )
    result = run_agent_sync(EXAMPLES / "summarize.json", text)

    print("\n" + "─" * 60)
    if result.success:
        print("✓ Success!")
        print(f"  Output: {result.output}")
        print(f"  Tokens: {result.metrics.total_tokens_in} in / {result.metrics.total_tokens_out} out")
    else:
        print("✗ Error!")
        print(f"  {result.error}")
    print("─" * 60)


if __name__ == "__main__":
    print("\n🚀 Starting Conduit Demo\n")

    asyncio.run(demo_triage())
    demo_summarize()

    print("\n\n✨ Demo complete!\n")
