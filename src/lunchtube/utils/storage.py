"""JSON key-value persistence for the synced and local state scopes."""

import json
import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Tuple

logger = logging.getLogger(__name__)


class JsonStore:
    """A single JSON document holding top-level keys.

    Every write rewrites the whole document through a temporary file and
    ``os.replace`` so readers never observe a half-written file.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = threading.RLock()
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable store {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed store {self.path}")
            return {}
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self.path)

    @contextmanager
    def transaction(self):
        """Yield the document for read-modify-write under the store lock."""
        with self._lock:
            data = self._read()
            yield data
            self._write(data)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self.transaction() as data:
            data[key] = value
        logger.debug(f"Saved '{key}' to {self.path.name}")

    def remove(self, *keys: str) -> None:
        with self.transaction() as data:
            for key in keys:
                data.pop(key, None)


def open_stores(config: Dict) -> Tuple[JsonStore, JsonStore]:
    """Open the (synced, local) store pair named in the configuration."""
    sync_store = JsonStore(config["sync_store_path"])
    local_store = JsonStore(config["local_store_path"])
    logger.info(f"State stores at {sync_store.path.parent}")
    return sync_store, local_store
