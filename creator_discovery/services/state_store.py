"""Persistence for the controller's view state (mode, filters, sort, page)."""
from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Dict, Optional

from pydantic import ValidationError

from creator_discovery.models.creator import ViewState

logger = logging.getLogger(__name__)

STATE_KEYS = ("mode", "filters", "sort", "page")


class StateStore(ABC):
    """Flat key/value persistence read once at startup and written on every transition."""

    @abstractmethod
    def load(self) -> Optional[ViewState]:
        ...

    @abstractmethod
    def save(self, state: ViewState) -> None:
        ...


def _decode(values: Dict[str, str]) -> Optional[ViewState]:
    if not values:
        return None
    try:
        payload = {key: json.loads(values[key]) for key in STATE_KEYS if key in values}
        return ViewState.model_validate(payload)
    except (TypeError, ValueError, ValidationError) as exc:
        logger.warning("Ignoring unreadable persisted view state: %s", exc)
        return None


def _encode(state: ViewState) -> Dict[str, str]:
    data = state.model_dump(mode="json")
    return {key: json.dumps(data[key]) for key in STATE_KEYS}


class MemoryStateStore(StateStore):
    def __init__(self, initial: Optional[ViewState] = None) -> None:
        self.values: Dict[str, str] = _encode(initial) if initial else {}
        self.saves = 0

    def load(self) -> Optional[ViewState]:
        return _decode(self.values)

    def save(self, state: ViewState) -> None:
        self.values = _encode(state)
        self.saves += 1


class JsonFileStateStore(StateStore):
    """Keeps each state key as a serialized string inside one JSON file."""

    def __init__(self, path: str) -> None:
        self.path = path

    def load(self) -> Optional[ViewState]:
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                values = json.load(handle)
        except (OSError, ValueError) as exc:
            logger.warning("Could not read view state from %s: %s", self.path, exc)
            return None
        return _decode(values if isinstance(values, dict) else {})

    def save(self, state: ViewState) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(_encode(state), handle, indent=2)
        os.replace(tmp_path, self.path)
