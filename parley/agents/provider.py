"""pydantic-ai backed reply provider.

One ``Agent`` is built per distinct instruction text and reused; the turn
history is handed over as pydantic-ai message history.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx
from pydantic_ai import Agent
from pydantic_ai.exceptions import AgentRunError, UserError
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    TextPart,
    UserPromptPart,
)
from pydantic_ai.models import Model
from pydantic_ai.settings import ModelSettings

from parley.core.metrics import LLM_CALLS_TOTAL, LLM_TOKENS_TOTAL
from parley.core.telemetry import get_tracer
from parley.errors import ServiceUnavailableError
from parley.models.turns import SenderRole, Turn

logger = logging.getLogger(__name__)
_TRACER = get_tracer("parley.agents")

_PROVIDER_ERRORS = (AgentRunError, UserError, httpx.HTTPError, OSError)


def to_message_history(history: Sequence[Turn]) -> list[ModelMessage]:
    messages: list[ModelMessage] = []
    for turn in history:
        if turn.sender is SenderRole.actor:
            messages.append(ModelRequest(parts=[UserPromptPart(content=turn.text)]))
        else:
            messages.append(ModelResponse(parts=[TextPart(content=turn.text)]))
    return messages


def _record_usage(result: object, model_name: str) -> None:
    usage_fn = getattr(result, "usage", None)
    if not callable(usage_fn):
        return
    usage = usage_fn()
    input_tokens = getattr(usage, "input_tokens", None)
    output_tokens = getattr(usage, "output_tokens", None)
    if input_tokens:
        LLM_TOKENS_TOTAL.labels(model=model_name, direction="input").inc(input_tokens)
    if output_tokens:
        LLM_TOKENS_TOTAL.labels(model=model_name, direction="output").inc(output_tokens)


class PydanticAIReplyProvider:
    def __init__(
        self,
        model: str | Model,
        *,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> None:
        self.model = model
        self.model_name = model if isinstance(model, str) else model.model_name
        self._settings = ModelSettings(temperature=temperature, max_tokens=max_tokens)
        self._agents: dict[str, Agent[None, str]] = {}

    def _agent_for(self, instructions: str) -> Agent[None, str]:
        agent = self._agents.get(instructions)
        if agent is not None:
            return agent
        try:
            agent = Agent(
                self.model,
                output_type=str,
                instructions=instructions,
                model_settings=self._settings,
            )
        except (ImportError, ValueError, TypeError, RuntimeError, UserError) as exc:
            logger.warning("failed to initialize reply agent for %s: %s", self.model_name, exc)
            raise ServiceUnavailableError(f"model {self.model_name} unavailable: {exc}") from exc
        self._agents[instructions] = agent
        return agent

    async def complete(self, instructions: str, history: Sequence[Turn], prompt: str) -> str:
        agent = self._agent_for(instructions)
        with _TRACER.start_as_current_span("agent.reply") as span:
            span.set_attribute("parley.model", self.model_name)
            span.set_attribute("parley.history_turns", len(history))
            LLM_CALLS_TOTAL.labels(model=self.model_name).inc()
            try:
                result = await agent.run(prompt, message_history=to_message_history(history))
            except _PROVIDER_ERRORS as exc:
                logger.warning("provider call to %s failed: %s", self.model_name, exc)
                raise ServiceUnavailableError(f"provider call failed: {exc}") from exc
            _record_usage(result, self.model_name)
        return result.output


__all__ = ["PydanticAIReplyProvider", "to_message_history"]
