"""Run settings and hard defaults.

Settings resolve in three layers for generative nodes: node data, then the
run's ``RunSettings``, then the constants below.
"""

from __future__ import annotations

import os
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PROVIDER = "openai"
DEFAULT_MODEL = "gpt-4o"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 4096

# AI-processing kinds (classifier, summarizer, ...) run cooler and shorter.
PROCESSING_TEMPERATURE = 0.3
PROCESSING_MAX_TOKENS = 2048

DEFAULT_MEMORY_MESSAGES = 20
DEFAULT_LOOP_ITERATIONS = 10

ENV_PREFIX = "CONDUIT_"


class RunSettings(BaseModel):
    """Caller-supplied settings for one run.

    Unknown keys are kept so that editors can pass through their own values.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    default_provider: str | None = Field(default=None, alias="defaultProvider")
    default_model: str | None = Field(default=None, alias="defaultModel")
    temperature: float | None = Field(default=None)
    max_tokens: int | None = Field(default=None, alias="maxTokens")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> "RunSettings":
        """Build settings from ``CONDUIT_*`` environment variables."""
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        provider = env.get(f"{ENV_PREFIX}DEFAULT_PROVIDER")
        if provider:
            values["default_provider"] = provider
        model = env.get(f"{ENV_PREFIX}DEFAULT_MODEL")
        if model:
            values["default_model"] = model
        temperature = env.get(f"{ENV_PREFIX}TEMPERATURE")
        if temperature:
            values["temperature"] = float(temperature)
        max_tokens = env.get(f"{ENV_PREFIX}MAX_TOKENS")
        if max_tokens:
            values["max_tokens"] = int(max_tokens)

        return cls(**values)
