"""Model invocation loop: sanitize, resolve profile, trim history, call, validate, retry."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from parley.agents.structured import ReplyFormatError, parse_reply
from parley.core.history import HistoryWindowOptimizer
from parley.core.metrics import LLM_RETRIES_TOTAL
from parley.core.retry import RetryPolicy, linear_backoff
from parley.core.telemetry import get_tracer
from parley.errors import GeneralError, MalformedResponseError, ServiceUnavailableError
from parley.models.turns import Contact, Turn
from parley.protocols.provider import ProfileResolver, ReplyProvider

logger = logging.getLogger(__name__)
_TRACER = get_tracer("parley.agents")

DEFAULT_MAX_INPUT_CHARS = 500
DEFAULT_MAX_REPLY_CHARS = 1000


def sanitize_input(text: str, max_chars: int = DEFAULT_MAX_INPUT_CHARS) -> str:
    cleaned = text.replace("<", "").replace(">", "").replace("\r", "").replace("\n", " ")
    return cleaned.strip()[:max_chars]


def _is_format_error(exc: BaseException) -> bool:
    return isinstance(exc, ReplyFormatError)


def default_retry_policy(max_attempts: int = 3, base_delay_seconds: float = 0.5) -> RetryPolicy:
    """Retry malformed output only, with a linearly growing delay."""
    return RetryPolicy(
        max_attempts=max_attempts,
        backoff=linear_backoff(base_delay_seconds),
        retry_on=_is_format_error,
    )


class ReplyGenerator:
    def __init__(
        self,
        provider: ReplyProvider,
        resolver: ProfileResolver,
        *,
        optimizer: HistoryWindowOptimizer | None = None,
        retry_policy: RetryPolicy | None = None,
        max_input_chars: int = DEFAULT_MAX_INPUT_CHARS,
        max_reply_chars: int = DEFAULT_MAX_REPLY_CHARS,
        model_name: str = "unknown",
    ) -> None:
        self._provider = provider
        self._resolver = resolver
        self._optimizer = optimizer or HistoryWindowOptimizer()
        self._retry_policy = retry_policy or default_retry_policy()
        self._max_input_chars = max_input_chars
        self._max_reply_chars = max_reply_chars
        self._model_name = model_name

    async def generate_reply(
        self,
        actor_id: str,
        input_text: str,
        history: Sequence[Turn],
        counterpart: Contact,
    ) -> str:
        """Produce one validated counterpart reply for ``input_text``.

        Raises ``GeneralError`` for empty input, ``ServiceUnavailableError``
        when no profile resolves or the provider fails, and
        ``MalformedResponseError`` once every attempt returned an invalid
        payload.
        """
        prompt = sanitize_input(input_text, self._max_input_chars)
        if not prompt:
            raise GeneralError("message is empty after sanitizing")

        profile = await self._resolver.resolve(counterpart)
        if profile is None:
            raise ServiceUnavailableError(
                f"no instruction profile for counterpart {counterpart.contact_id!r}"
            )

        window = self._optimizer.optimize(history)

        async def _attempt() -> str:
            raw = await self._provider.complete(profile.instructions, window, prompt)
            return parse_reply(raw)

        def _on_retry(attempt: int, exc: BaseException) -> None:
            LLM_RETRIES_TOTAL.labels(model=self._model_name).inc()

        with _TRACER.start_as_current_span("reply.generate") as span:
            span.set_attribute("parley.actor_id", actor_id)
            span.set_attribute("parley.counterpart", counterpart.contact_id)
            span.set_attribute("parley.history_window", len(window))
            try:
                reply = await self._retry_policy.run(_attempt, on_retry=_on_retry)
            except ReplyFormatError as exc:
                logger.warning(
                    "provider output stayed malformed after %d attempts: %s",
                    self._retry_policy.max_attempts,
                    exc,
                )
                raise MalformedResponseError(str(exc)) from exc

        return reply[: self._max_reply_chars]


__all__ = ["ReplyGenerator", "default_retry_policy", "sanitize_input"]
