"""Entry and exit kinds: inputs, outputs and triggers."""

from __future__ import annotations

import json
from typing import Any

from conduit.registry import NodeRequest, register_node_kind


@register_node_kind("InputNode")
def execute_input(request: NodeRequest) -> Any:
    """Pass the run's original input through (or a configured default)."""
    return request.data.get("defaultValue") or request.original_input


@register_node_kind("OutputNode")
def execute_output(request: NodeRequest) -> Any:
    if request.data.get("outputFormat") == "json" and isinstance(request.input, str):
        try:
            return json.loads(request.input)
        except ValueError:
            return request.input
    return request.input


@register_node_kind("ScheduleTriggerNode")
def execute_schedule_trigger(request: NodeRequest) -> Any:
    cron = request.data.get("cronExpression") or "0 * * * *"
    return request.original_input or f"Scheduled trigger: {cron}"


@register_node_kind("WebhookTriggerNode")
def execute_webhook_trigger(request: NodeRequest) -> Any:
    method = request.data.get("webhookMethod") or "POST"
    path = request.data.get("webhookPath") or "webhook"
    return request.original_input or f"Webhook: {method} /{path}"


@register_node_kind("ChatTriggerNode")
def execute_chat_trigger(request: NodeRequest) -> Any:
    return request.original_input or ""
