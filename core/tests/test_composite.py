"""Tests for the email and sub-agent kinds."""

from __future__ import annotations

import json

import pytest

pytest_plugins = ('pytest_asyncio',)

from conduit.domain.models import Artifact
from conduit.errors import NodeExecutionError, TransportError
from conduit.execution.engine import AgentEngine
from conduit.executors.composite import execute_email, execute_sub_agent, map_input, upstream_artifacts
from conduit.library.agents import InMemoryAgentStore
from conduit.ports import Collaborators
from conftest import FakeMailTransport, chain, edge, graph, make_request, node


def _artifact(tmp_path, name):
    path = tmp_path / name
    path.write_bytes(b"data")
    return Artifact(id=f"art_{name}", path=path.as_posix(), filename=name, kind="pdf")


class TestEmailNode:
    @pytest.mark.asyncio
    async def test_sends_input_as_html(self):
        transport = FakeMailTransport()
        request = make_request(
            "EmailNode",
            {"to": "ops@example.com", "subject": "Report: {{input}}", "bodyTemplate": "<h1>{{input}}</h1>"},
            "all green",
            collaborators=Collaborators(mail_transport=transport),
        )

        result = await execute_email(request)

        assert result == {
            "sent": True,
            "message_id": "<msg-1@test>",
            "to": "ops@example.com",
            "subject": "Report: all green",
        }
        message = transport.sent[0]
        assert message.html == "<h1>all green</h1>"
        assert message.attachments == ()

    @pytest.mark.asyncio
    async def test_subject_sees_first_100_characters(self):
        transport = FakeMailTransport()
        request = make_request(
            "EmailNode",
            {"to": "a@b.c", "subject": "{{input}}"},
            "x" * 300,
            collaborators=Collaborators(mail_transport=transport),
        )

        result = await execute_email(request)

        assert result["subject"] == "x" * 100
        assert transport.sent[0].html == "x" * 300

    @pytest.mark.asyncio
    async def test_defaults_and_copies(self):
        transport = FakeMailTransport()
        request = make_request(
            "EmailNode",
            {"to": "a@b.c", "cc": "c@d.e", "bcc": ""},
            "body",
            collaborators=Collaborators(mail_transport=transport),
        )

        await execute_email(request)

        message = transport.sent[0]
        assert message.subject == "Agent Output"
        assert message.cc == "c@d.e"
        assert message.bcc is None

    @pytest.mark.asyncio
    async def test_attaches_upstream_artifacts(self, tmp_path):
        transport = FakeMailTransport()
        report = _artifact(tmp_path, "report.pdf")
        edges = [edge("pdf", "mail"), edge("text", "mail"), edge("other", "elsewhere")]
        request = make_request(
            "EmailNode",
            {"to": "a@b.c", "attachFromUpstream": True},
            "see attached",
            node_id="mail",
            edges=edges,
            outputs={"pdf": report, "text": "not an artifact", "other": _artifact(tmp_path, "x.pdf")},
            collaborators=Collaborators(mail_transport=transport),
        )

        assert upstream_artifacts(request) == [report]
        await execute_email(request)

        attachments = transport.sent[0].attachments
        assert [(a.filename, a.path) for a in attachments] == [("report.pdf", report.path)]

    @pytest.mark.asyncio
    async def test_missing_recipient(self):
        request = make_request("EmailNode", {}, "x", collaborators=Collaborators(mail_transport=FakeMailTransport()))

        with pytest.raises(NodeExecutionError, match='no "to" address'):
            await execute_email(request)

    @pytest.mark.asyncio
    async def test_transport_errors_propagate(self):
        transport = FakeMailTransport(error=TransportError("SMTP send failed: 550"))
        request = make_request("EmailNode", {"to": "a@b.c"}, "x", collaborators=Collaborators(mail_transport=transport))

        with pytest.raises(TransportError, match="550"):
            await execute_email(request)

    @pytest.mark.asyncio
    async def test_smtp_needs_credentials(self):
        request = make_request("EmailNode", {"to": "a@b.c"}, "x")

        with pytest.raises(TransportError, match="SMTP not configured"):
            await execute_email(request)


class TestMapInput:
    def test_no_mapping_passes_through(self):
        assert map_input("raw", {}) == "raw"

    def test_maps_keys(self):
        value = '{"title": "T", "body": "B"}'
        assert json.loads(map_input(value, {"subject": "title", "text": "body"})) == {"subject": "T", "text": "B"}

    def test_missing_key_uses_whole_input(self):
        value = {"title": "T"}
        assert json.loads(map_input(value, {"text": "body"})) == {"text": {"title": "T"}}

    def test_non_object_input_passes_through(self):
        assert map_input("plain text", {"a": "b"}) == "plain text"
        assert map_input("[1, 2]", {"a": "b"}) == "[1, 2]"


def _child_agent():
    source = node("in", "InputNode")
    upper = node("upper", "TransformNode", transformType="uppercase")
    out = node("out", "OutputNode")
    return graph([source, upper, out], chain(source, upper, out), agent_id="child")


class TestSubAgentNode:
    @pytest.mark.asyncio
    async def test_runs_child_agent(self):
        store = InMemoryAgentStore([_child_agent()])
        engine = AgentEngine(Collaborators(agent_store=store))
        request = make_request(
            "SubAgentNode",
            {"agentId": "child"},
            "shout this",
            collaborators=engine.collaborators,
            invoker=engine,
        )

        assert await execute_sub_agent(request) == "SHOUT THIS"
        assert engine.active_executions() == []

    @pytest.mark.asyncio
    async def test_input_mapping(self):
        store = InMemoryAgentStore([_child_agent()])
        engine = AgentEngine(Collaborators(agent_store=store))
        request = make_request(
            "SubAgentNode",
            {"agentId": "child", "inputMapping": {"q": "question"}},
            {"question": "why?"},
            collaborators=engine.collaborators,
            invoker=engine,
        )

        assert await execute_sub_agent(request) == '{"Q": "WHY?"}'

    @pytest.mark.asyncio
    async def test_child_failure_fails_node(self):
        a = node("a", "CodeNode", code="return 1")
        b = node("b", "CodeNode", code="return 2")
        looping = graph([a, b], [edge("a", "b"), edge("b", "a")], agent_id="loop")
        engine = AgentEngine(Collaborators(agent_store=InMemoryAgentStore([looping])))
        request = make_request(
            "SubAgentNode", {"agentId": "loop"}, "x", collaborators=engine.collaborators, invoker=engine
        )

        with pytest.raises(NodeExecutionError, match='agent "loop" failed'):
            await execute_sub_agent(request)

    @pytest.mark.asyncio
    async def test_empty_child_output(self):
        empty = graph([node("out", "OutputNode")], agent_id="empty")
        engine = AgentEngine(Collaborators(agent_store=InMemoryAgentStore([empty])))
        request = make_request(
            "SubAgentNode", {"agentId": "empty"}, None, collaborators=engine.collaborators, invoker=engine
        )

        assert await execute_sub_agent(request) == ""

    @pytest.mark.asyncio
    async def test_missing_agent_id(self):
        with pytest.raises(NodeExecutionError, match="no agentId"):
            await execute_sub_agent(make_request("SubAgentNode", {}))

    @pytest.mark.asyncio
    async def test_unknown_agent(self):
        request = make_request(
            "SubAgentNode",
            {"agentId": "ghost"},
            collaborators=Collaborators(agent_store=InMemoryAgentStore()),
            invoker=AgentEngine(),
        )

        with pytest.raises(NodeExecutionError, match='agent "ghost" not found'):
            await execute_sub_agent(request)
