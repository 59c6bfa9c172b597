"""JSON-file persistence for the client cache: one document per key."""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from urllib.parse import quote, unquote

logger = logging.getLogger(__name__)

_SUFFIX = ".json"


class JsonFileCacheBackend:
    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def load(self, namespace: str) -> dict[str, str]:
        directory = self._namespace_dir(namespace)
        if not directory.is_dir():
            return {}
        loaded: dict[str, str] = {}
        for path in sorted(directory.glob(f"*{_SUFFIX}")):
            try:
                loaded[unquote(path.name.removesuffix(_SUFFIX))] = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                logger.warning("unreadable cache document %s; skipping", path)
        return loaded

    def save(self, namespace: str, key: str, payload: str) -> None:
        path = self._path(namespace, key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(payload, encoding="utf-8")
        os.replace(tmp, path)

    def delete(self, namespace: str, key: str) -> None:
        self._path(namespace, key).unlink(missing_ok=True)

    def clear(self, namespace: str) -> None:
        shutil.rmtree(self._namespace_dir(namespace), ignore_errors=True)

    def _namespace_dir(self, namespace: str) -> Path:
        return self._root / quote(namespace, safe="")

    def _path(self, namespace: str, key: str) -> Path:
        return self._namespace_dir(namespace) / f"{quote(key, safe='')}{_SUFFIX}"


__all__ = ["JsonFileCacheBackend"]
