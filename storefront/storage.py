# storefront/storage.py
import json
import logging
import os
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class LocalStorage:
    """JSON-file key/value store. With no path the values live in memory only."""

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._data: Dict[str, Any] = self._read()

    def _read(self) -> Dict[str, Any]:
        if not self.path or not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error("Could not read local storage %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self):
        if not self.path:
            return
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self._data, f)
        os.replace(tmp_path, self.path)

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any):
        self._data[key] = value
        self._write()

    def remove(self, key: str):
        if self._data.pop(key, None) is not None:
            self._write()

    def __contains__(self, key: str) -> bool:
        return key in self._data
