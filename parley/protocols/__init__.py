from parley.protocols.admission import AdmissionController
from parley.protocols.cache import CacheBackend
from parley.protocols.channels import IdentityProvider, NewTurnEvent, Notifier
from parley.protocols.provider import ProfileResolver, ReplyProvider
from parley.protocols.store import ProfileStore, TurnStore

__all__ = [
    "AdmissionController",
    "CacheBackend",
    "IdentityProvider",
    "NewTurnEvent",
    "Notifier",
    "ProfileResolver",
    "ProfileStore",
    "ReplyProvider",
    "TurnStore",
]
