from __future__ import annotations

import sys
from typing import Any, Callable, Mapping

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from conduit.domain.models import ProviderConfig, ProviderResult, TokenUsage
from conduit.errors import ProviderError

# OpenAI-compatible endpoints, keyed by provider name.
PROVIDER_ENDPOINTS: dict[str, tuple[str | None, str]] = {
    "openai": (None, "openai-api-key"),
    "minimax": ("https://api.minimax.io/v1", "minimax-api-key"),
    "kimi": ("https://api.moonshot.ai/v1", "kimi-api-key"),
}

LOCAL_ENDPOINT_KEY = "local-endpoint"


def llm_model(
    config: ProviderConfig,
    provider: str = "openai",
    credentials: Mapping[str, str] | None = None,
) -> BaseChatModel:
    """Initialize a LangChain chat model for ``provider``.

    Args:
        config: Model, temperature and token limit for the call.
        provider: One of ``openai``, ``minimax``, ``kimi`` or ``local``.
        credentials: Secret map holding ``<provider>-api-key`` or ``local-endpoint``.
    """
    credentials = credentials or {}
    kwargs: dict[str, Any] = {"model": config.model}
    if config.temperature is not None:
        kwargs["temperature"] = config.temperature
    if config.max_tokens:
        kwargs["max_tokens"] = config.max_tokens

    if provider == "local":
        endpoint = credentials.get(LOCAL_ENDPOINT_KEY)
        if not endpoint:
            raise ProviderError("Local endpoint is not configured.")
        return ChatOpenAI(base_url=endpoint, api_key=credentials.get("local-api-key") or "not-needed", **kwargs)

    if provider not in PROVIDER_ENDPOINTS:
        raise ProviderError(f"Unknown LLM provider: {provider}")

    base_url, key_name = PROVIDER_ENDPOINTS[provider]
    api_key = credentials.get(key_name)
    if not api_key:
        raise ProviderError(f"{provider} API key is not configured.")
    if base_url:
        kwargs["base_url"] = base_url
    return ChatOpenAI(api_key=api_key, **kwargs)


def _message_text(message: BaseMessage) -> str:
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for part in content:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


class LangChainProviderRouter:
    """Provider router backed by LangChain chat models.

    Each call builds a fresh model from the run's credentials, so routers can be
    shared between runs with different keys.
    """

    def __init__(
        self,
        model_factory: Callable[[ProviderConfig, str, Mapping[str, str]], BaseChatModel] = llm_model,
    ) -> None:
        self._model_factory = model_factory

    async def call(
        self,
        provider: str,
        config: ProviderConfig,
        text: str,
        credentials: Mapping[str, str],
    ) -> ProviderResult:
        model = self._model_factory(config, provider, credentials)

        messages: list[BaseMessage] = []
        if config.system_prompt:
            messages.append(SystemMessage(content=config.system_prompt))
        messages.append(HumanMessage(content=text))

        sys.stderr.write(f"[LLM] Calling {provider}:{config.model}\n")
        sys.stderr.flush()

        try:
            response = await model.ainvoke(messages)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(f"{provider} call failed: {type(e).__name__}: {e}") from e

        usage = getattr(response, "usage_metadata", None) or {}
        return ProviderResult(
            text=_message_text(response),
            tokens=TokenUsage(
                input=int(usage.get("input_tokens", 0) or 0),
                output=int(usage.get("output_tokens", 0) or 0),
            ),
        )
