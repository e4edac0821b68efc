"""Core LLM interface.

Framework choice: **Pydantic AI**
- Native OpenRouter provider (no manual base_url wiring).
- Built-in TestModel / FunctionModel for deterministic unit tests without
  real API calls.
- Provider HTTP failures surface as ``ModelHTTPError`` with a ``status_code``,
  which the rate-limit retry policy inspects.
"""

from __future__ import annotations

import logging

from pydantic_ai import Agent
from pydantic_ai.models import Model
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openrouter import OpenRouterProvider

from qfix.config import DEFAULT_MODEL
from qfix.core.errors import ConfigError

logger = logging.getLogger(__name__)


def _build_model(model: str | None = None, api_key: str = "") -> Model:
    """Create an OpenAI-compatible model backed by OpenRouter."""
    if not api_key:
        raise ConfigError(
            "OPENROUTER_API_KEY is not set. "
            "Add it to your .env file or export it in your shell."
        )
    return OpenAIChatModel(
        model or DEFAULT_MODEL,
        provider=OpenRouterProvider(api_key=api_key),
    )


async def complete(
    prompt: str,
    *,
    system_prompt: str | None = None,
    model: str | None = None,
    api_key: str = "",
    temperature: float | None = None,
    _model_override: Model | None = None,
) -> str:
    """Send a prompt, get a text response.

    Parameters
    ----------
    prompt:
        The user prompt to send to the model.
    system_prompt:
        Optional instructions placed before the user prompt.
    model:
        OpenRouter model string (e.g. ``"google/gemini-2.5-flash"``).
        Falls back to ``DEFAULT_MODEL`` when *None*.
    api_key:
        OpenRouter key. Only required when no ``_model_override`` is given.
    temperature:
        Sampling temperature passed as a model setting.
    _model_override:
        Inject a Pydantic-AI ``Model`` instance directly (used by tests to
        supply ``TestModel`` / ``FunctionModel`` without needing an API key).
    """
    llm = _model_override or _build_model(model, api_key)
    logger.debug("LLM call (text): model=%s, prompt_len=%d", llm, len(prompt))
    agent: Agent[None, str] = Agent(
        llm,
        output_type=str,
        system_prompt=system_prompt or (),
    )
    settings = {"temperature": temperature} if temperature is not None else None
    result = await agent.run(prompt, model_settings=settings)
    return result.output
