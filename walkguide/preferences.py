"""Persisted user preferences."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from .types import Backend

LOGGER = logging.getLogger("walkguide.preferences")


class JsonPreferenceStore:
    """Persist the selected backend in a small JSON file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with self.path.open(encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            LOGGER.warning("Ignoring unreadable preferences %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def get_selected_backend(self) -> Backend | None:
        value = self._read().get("selected_backend")
        if not isinstance(value, str):
            if value is not None:
                LOGGER.warning("Ignoring non-string backend preference %r", value)
            return None
        return Backend.parse(value)

    def set_selected_backend(self, backend: Backend) -> None:
        data = self._read()
        data["selected_backend"] = backend.value
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as handle:
                json.dump(data, handle, ensure_ascii=False, indent=2)
        except OSError as exc:
            LOGGER.error("Could not save preferences to %s: %s", self.path, exc)


__all__ = ["JsonPreferenceStore"]
