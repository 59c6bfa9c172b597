"""In-character error replies shown in place of a failed counterpart turn."""

from __future__ import annotations

import random

from parley.errors import ErrorKind
from parley.models.turns import CounterpartKind

ERROR_MESSAGES: dict[CounterpartKind, dict[ErrorKind, tuple[str, ...]]] = {
    CounterpartKind.scripted: {
        ErrorKind.rate_limited: (
            "The line is crowded. Give it a moment before you reach out again.",
            "Our security system is overloaded. Stand by for a while.",
            "The encrypted channel is unstable. Try again in a minute.",
            "Protocol forbids frequent contact. Slow down.",
            "To avoid surveillance we need to talk less often. Leave a gap.",
        ),
        ErrorKind.storage_error: (
            "Security protocol blocked the message from being recorded.",
            "The encryption system failed. Your message could not be logged.",
            "Our archive is temporarily down.",
            "A security audit interrupted the communication log.",
        ),
        ErrorKind.auth_error: (
            "Authentication anomaly detected. A security check is required.",
            "Access verification failed. We may need to confirm who you are.",
            "Your credentials were revoked by security protocol.",
            "There is a problem with the encryption key. Contact your handler.",
        ),
        ErrorKind.service_unavailable: (
            "Our analysis system is offline for now. Wait a while.",
            "The agent response system needs maintenance.",
            "Intelligence processing is disabled for security reasons.",
            "We cannot reach the internal processing servers.",
        ),
        ErrorKind.malformed_response: (
            "The agent response could not be parsed. Something is wrong on our side.",
            "Decrypting the response failed.",
            "The agent response did not meet our standards.",
            "The response failed its integrity check.",
        ),
        ErrorKind.general: (
            "Communication error. Checking security protocols...",
            "The encryption system has a problem. Recovery is under way.",
            "Our network is unstable. Wait a little.",
            "Contact was interrupted for security reasons.",
            "An anomaly was detected. Re-establishing a secure connection.",
        ),
    },
    CounterpartKind.default: {
        ErrorKind.rate_limited: (
            "Please wait a moment and try again.",
            "Please try again shortly.",
            "Too many messages right now. Try again in a minute.",
        ),
        ErrorKind.storage_error: (
            "Your message could not be saved. Please try again shortly.",
            "A database connection error occurred.",
            "Temporary save error. Please try again.",
        ),
        ErrorKind.auth_error: (
            "Authentication failed. Please sign in again.",
            "Your session has expired. Please sign in again.",
            "An authentication error occurred. Please check your account.",
        ),
        ErrorKind.service_unavailable: (
            "The reply service is temporarily unavailable. Please try again shortly.",
            "The reply service is under maintenance. Please try again later.",
            "Could not reach the reply service. Please check your connection.",
            "The reply service is overloaded. Please try again later.",
        ),
        ErrorKind.malformed_response: (
            "Something went wrong while processing the reply. Please try again.",
            "The reply had an unexpected format.",
            "The reply could not be read. Please try again shortly.",
            "The reply data was inconsistent.",
        ),
        ErrorKind.general: (
            "Sorry, something went wrong.",
            "A communication error occurred. Please try again shortly.",
            "A system error occurred.",
        ),
    },
}


def select_error_message(
    kind: ErrorKind,
    counterpart_kind: CounterpartKind,
    rng: random.Random | None = None,
) -> str:
    pool = ERROR_MESSAGES.get(counterpart_kind, ERROR_MESSAGES[CounterpartKind.default])
    options = pool.get(kind) or pool[ErrorKind.general]
    return (rng or random).choice(options)


__all__ = ["ERROR_MESSAGES", "select_error_message"]
