from parley.cache.file_backend import JsonFileCacheBackend
from parley.cache.turn_cache import TurnCache, cache_key, contacts_key

__all__ = ["JsonFileCacheBackend", "TurnCache", "cache_key", "contacts_key"]
