from __future__ import annotations

import logging

from parley.protocols.channels import NewTurnEvent

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 50


def preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    return f"{text[:limit]}..." if len(text) > limit else text


class LoggingNotifier:
    """Announces new counterpart turns on the application log."""

    def notify(self, event: NewTurnEvent) -> None:
        logger.info(
            "new %s turn for %s in %s: %s",
            event.surface,
            event.actor_id,
            event.conversation_id,
            preview(event.turn.text),
        )


__all__ = ["LoggingNotifier", "preview"]
