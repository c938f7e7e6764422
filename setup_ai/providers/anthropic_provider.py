"""Anthropic (Claude) AI provider."""

from __future__ import annotations

import logging
from typing import Optional

logger = logging.getLogger("setup_ai.providers.anthropic")

STRUCTURED_TOOL_NAME = "record_analysis"


class AnthropicProvider:
    name = "anthropic"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, timeout: float = 120):
        from setup_ai.core.config_service import get_config_service

        config_svc = get_config_service()
        self.api_key = api_key or config_svc.get_api_key("anthropic")
        self.model = model or config_svc.get_provider_model("anthropic")
        self.timeout = timeout

    def is_available(self) -> bool:
        return self.api_key is not None

    def structured(self, system: str, user: str, schema: dict, max_tokens: int = 2000) -> dict:
        """Ask for a single tool call whose input must match ``schema``.

        Forcing the tool makes the model emit arguments shaped by the
        schema; the arguments are returned as a plain dict.
        """
        import anthropic

        from setup_ai.errors import (
            CapabilityAuthError,
            CapabilityError,
            CapabilityModelError,
            CapabilityQuotaError,
            CapabilityTimeoutError,
            CapabilityUnavailableError,
        )

        if not self.is_available():
            raise CapabilityUnavailableError(
                "ANTHROPIC_API_KEY is not set.",
                backend=self.name,
                model=self.model,
            )

        client = anthropic.Anthropic(api_key=self.api_key, timeout=self.timeout, max_retries=0)

        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": user}],
            "tools": [
                {
                    "name": STRUCTURED_TOOL_NAME,
                    "description": "Record the structured project analysis.",
                    "input_schema": schema,
                }
            ],
            "tool_choice": {"type": "tool", "name": STRUCTURED_TOOL_NAME},
        }
        if system:
            kwargs["system"] = system

        try:
            message = client.messages.create(**kwargs)
        except anthropic.AuthenticationError as e:
            raise CapabilityAuthError(
                "Anthropic API key is invalid or expired.",
                backend=self.name,
                model=self.model,
            ) from e
        except anthropic.RateLimitError as e:
            raise CapabilityQuotaError(
                "Anthropic rate limit exceeded.",
                backend=self.name,
                model=self.model,
            ) from e
        except anthropic.NotFoundError as e:
            raise CapabilityModelError(
                f"Model '{self.model}' not found on Anthropic.",
                backend=self.name,
                model=self.model,
            ) from e
        except anthropic.APITimeoutError as e:
            raise CapabilityTimeoutError(
                f"Anthropic did not answer within {self.timeout:g}s.",
                backend=self.name,
                model=self.model,
            ) from e
        except anthropic.APIError as e:
            raise CapabilityError(
                f"Anthropic API error: {e}",
                backend=self.name,
                model=self.model,
            ) from e

        for block in message.content:
            if getattr(block, "type", None) == "tool_use" and block.name == STRUCTURED_TOOL_NAME:
                return dict(block.input)

        raise CapabilityError(
            "Anthropic response contained no structured output.",
            backend=self.name,
            model=self.model,
        )
