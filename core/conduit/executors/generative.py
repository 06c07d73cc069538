"""Kinds that call a language model through the provider router."""

from __future__ import annotations

import json
from typing import Any

from conduit.config import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL,
    DEFAULT_PROVIDER,
    DEFAULT_TEMPERATURE,
    PROCESSING_MAX_TOKENS,
    PROCESSING_TEMPERATURE,
    RunSettings,
)
from conduit.domain.models import ProviderConfig
from conduit.errors import NodeExecutionError
from conduit.execution.cancellation import run_cancellable
from conduit.execution.resolver import render_value
from conduit.registry import NodeOutput, NodeRequest, register_node_kind


async def call_provider(request: NodeRequest, provider: str, config: ProviderConfig, text: str) -> NodeOutput:
    router = request.collaborators.provider_router
    if router is None:
        raise NodeExecutionError(f"{request.kind}: no provider router configured.")

    result = await run_cancellable(
        router.call(provider, config, text, request.credentials),
        request.token,
    )
    return NodeOutput(output=result.text, tokens=result.tokens)


@register_node_kind("LLMNode")
async def execute_llm(request: NodeRequest) -> NodeOutput:
    """Generate text from the input.

    Each setting resolves from node data, then run settings, then the defaults.
    A temperature of 0 in node data is honoured.
    """
    data = request.data
    settings = request.settings or RunSettings()

    temperature = data.get("temperature")
    if temperature is None:
        temperature = settings.temperature if settings.temperature is not None else DEFAULT_TEMPERATURE

    provider = data.get("provider") or settings.default_provider or DEFAULT_PROVIDER
    config = ProviderConfig(
        model=data.get("model") or settings.default_model or DEFAULT_MODEL,
        system_prompt=data.get("systemPrompt") or "",
        temperature=float(temperature),
        max_tokens=int(data.get("maxTokens") or settings.max_tokens or DEFAULT_MAX_TOKENS),
    )
    return await call_provider(request, provider, config, render_value(request.input))


async def process(request: NodeRequest, system_prompt: str, text: Any | None = None) -> NodeOutput:
    """Run a fixed-prompt processing call with the run's default provider and model."""
    settings = request.settings or RunSettings()
    config = ProviderConfig(
        model=settings.default_model or DEFAULT_MODEL,
        system_prompt=system_prompt,
        temperature=PROCESSING_TEMPERATURE,
        max_tokens=PROCESSING_MAX_TOKENS,
    )
    provider = settings.default_provider or DEFAULT_PROVIDER
    return await call_provider(
        request, provider, config, render_value(request.input if text is None else text)
    )


@register_node_kind("TextClassifierNode")
async def execute_text_classifier(request: NodeRequest) -> NodeOutput:
    categories = ", ".join(request.data.get("categories") or [])
    if request.data.get("multiLabel"):
        labelling = "You may assign multiple labels."
    else:
        labelling = "Assign exactly one label."
    prompt = (
        f"You are a text classifier. Classify the following text into one of these "
        f"categories: {categories}. {labelling}\n\n"
        'Respond with ONLY a JSON object: {"label": "category"} '
        '(or {"labels": ["cat1","cat2"]} if multi-label). No other text.'
    )
    return await process(request, prompt)


@register_node_kind("SentimentNode")
async def execute_sentiment(request: NodeRequest) -> NodeOutput:
    granularity = request.data.get("granularity") or "document"
    output_format = request.data.get("outputFormat") or "json"
    prompt = (
        f"You are a sentiment analyzer. Analyze the sentiment of the following text "
        f"at the {granularity} level.\n\n"
        'Respond with ONLY a JSON object: {"sentiment": "positive|negative|neutral|mixed", '
        '"score": <-1.0 to 1.0>, "confidence": <0.0 to 1.0>}. No other text.'
    )
    result = await process(request, prompt)
    if output_format == "json":
        return result

    try:
        parsed = json.loads(result.output)
    except ValueError:
        return result
    if not isinstance(parsed, dict):
        return result

    if output_format == "label" and parsed.get("sentiment"):
        return NodeOutput(output=parsed["sentiment"], tokens=result.tokens)
    if output_format == "score" and parsed.get("score") is not None:
        return NodeOutput(output=str(parsed["score"]), tokens=result.tokens)
    return result


@register_node_kind("InfoExtractorNode")
async def execute_info_extractor(request: NodeRequest) -> NodeOutput:
    fields = ", ".join(request.data.get("extractionFields") or [])
    prompt = (
        f"You are a structured data extractor. Extract the following fields from the text: {fields}.\n\n"
        "Respond with ONLY a JSON object containing the extracted fields. "
        "Use null for fields not found. No other text."
    )
    return await process(request, prompt)


@register_node_kind("SummarizerNode")
async def execute_summarizer(request: NodeRequest) -> NodeOutput:
    max_length = request.data.get("maxLength") or 200
    style = request.data.get("summaryStyle") or "concise"
    prompt = (
        f"You are a summarizer. Summarize the following text in a {style} style. "
        f"Keep the summary under {max_length} words. Return ONLY the summary text, no preamble."
    )
    return await process(request, prompt)


@register_node_kind("QAChainNode")
async def execute_qa_chain(request: NodeRequest) -> NodeOutput:
    style = request.data.get("responseStyle") or "detailed"
    text = request.input
    manual_context = request.data.get("manualContext")
    if request.data.get("contextSource") == "manual" and manual_context:
        # The upstream input becomes the question.
        text = f"Context:\n{manual_context}\n\nQuestion:\n{render_value(request.input)}"

    prompt = (
        "You are a Q&A assistant. The user has provided context and a question. "
        f"Answer based ONLY on the provided context. Give a {style} response. "
        "If the answer is not in the context, say \"I don't have enough information to answer that.\""
    )
    return await process(request, prompt, text)
