"""Kinds that hand work to another collaborator: mail and sub-agents."""

from __future__ import annotations

import json
import sys
from typing import Any

from conduit.domain.models import Artifact
from conduit.errors import NodeExecutionError
from conduit.execution.cancellation import run_cancellable
from conduit.execution.resolver import render_value
from conduit.executors.helpers import load_json
from conduit.ports import MailAttachment, MailMessage, MailTransport
from conduit.registry import NodeRequest, register_node_kind


def upstream_artifacts(request: NodeRequest) -> list[Artifact]:
    """Artifacts recorded by the nodes feeding into this one, in edge order."""
    outputs = request.context.node_outputs
    return [
        outputs[edge.source]
        for edge in request.edges
        if edge.target == request.node_id and isinstance(outputs.get(edge.source), Artifact)
    ]


def _mail_transport(request: NodeRequest) -> MailTransport:
    transport = request.collaborators.mail_transport
    if transport is not None:
        return transport

    from conduit.library.mail import SmtpMailTransport

    return SmtpMailTransport.from_credentials(request.credentials)


@register_node_kind("EmailNode")
async def execute_email(request: NodeRequest) -> dict[str, Any]:
    """Send the input as an HTML email.

    ``bodyTemplate`` and ``subject`` may reference ``{{input}}``; the subject
    only sees the first 100 characters. With ``attachFromUpstream`` every
    upstream artifact is attached.
    """
    data = request.data
    transport = _mail_transport(request)

    to = data.get("to")
    if not to:
        raise NodeExecutionError('EmailNode: no "to" address configured.')

    text = render_value(request.input)
    body = (data.get("bodyTemplate") or "{{input}}").replace("{{input}}", text)
    subject = (data.get("subject") or "Agent Output").replace("{{input}}", text[:100])

    attachments: tuple[MailAttachment, ...] = ()
    if data.get("attachFromUpstream"):
        attachments = tuple(
            MailAttachment(filename=artifact.filename, path=artifact.path)
            for artifact in upstream_artifacts(request)
        )

    message = MailMessage(
        to=to,
        subject=subject,
        html=body,
        cc=data.get("cc") or None,
        bcc=data.get("bcc") or None,
        attachments=attachments,
    )
    message_id = await run_cancellable(transport.send(message), request.token)
    return {"sent": True, "message_id": message_id, "to": to, "subject": subject}


def map_input(value: Any, mapping: dict[str, str]) -> Any:
    """Build the sub-agent input from ``{target_key: source_key}``.

    Missing source keys fall back to the whole input. When the input is not a
    JSON object the raw input is passed through unchanged.
    """
    if not mapping:
        return value
    try:
        source = load_json(value)
    except ValueError:
        return value
    if not isinstance(source, dict):
        return value

    mapped = {}
    for target_key, source_key in mapping.items():
        picked = source.get(source_key)
        mapped[target_key] = value if picked is None else picked
    return json.dumps(mapped)


@register_node_kind("SubAgentNode")
async def execute_sub_agent(request: NodeRequest) -> Any:
    """Run another agent with this node's input and return its final output.

    The nested run gets its own execution: nothing is shared with this run
    except credentials and settings. A failed nested run fails this node.
    """
    agent_id = request.data.get("agentId")
    if not agent_id:
        raise NodeExecutionError("SubAgentNode: no agentId specified.")

    store = request.collaborators.agent_store
    agent = store.find_by_id(agent_id) if store is not None else None
    if agent is None:
        raise NodeExecutionError(f'SubAgentNode: agent "{agent_id}" not found.')

    if request.invoker is None:
        raise NodeExecutionError("SubAgentNode: no engine available to run sub-agents.")

    sub_input = map_input(request.input, request.data.get("inputMapping") or {})

    sys.stderr.write(f"[ENGINE] Sub-agent {agent_id} from node {request.node_id}\n")
    sys.stderr.flush()

    result = await run_cancellable(
        request.invoker.execute(
            agent,
            sub_input,
            credentials=request.credentials,
            settings=request.settings,
        ),
        request.token,
    )
    if not result.success:
        raise NodeExecutionError(
            f'SubAgentNode: agent "{agent_id}" {result.status}: {result.error or "no output"}'
        )
    return result.output if result.output is not None else ""
