from parley.chat.identity import ContextIdentity, StaticIdentity
from parley.chat.messages import ERROR_MESSAGES, select_error_message
from parley.chat.notifications import LoggingNotifier
from parley.chat.orchestrator import ConversationOrchestrator
from parley.chat.surfaces import (
    DIRECT,
    MESSENGER,
    SURFACES,
    ChatSurface,
    ContactProfileResolver,
    KindProfileResolver,
    build_orchestrator,
)

__all__ = [
    "DIRECT",
    "ERROR_MESSAGES",
    "MESSENGER",
    "SURFACES",
    "ChatSurface",
    "ContactProfileResolver",
    "ContextIdentity",
    "ConversationOrchestrator",
    "KindProfileResolver",
    "LoggingNotifier",
    "StaticIdentity",
    "build_orchestrator",
    "select_error_message",
]
