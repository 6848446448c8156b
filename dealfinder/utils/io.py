"""IO helpers for loading board snapshots from disk."""

from __future__ import annotations

import json
import os
from typing import Any, Dict, List

from .logging import get_logger

LOGGER = get_logger("utils.io")

DATA_DIR = os.getenv("DATA_DIR", os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "data"))


def resolve_path(name: str) -> str:
    return name if os.path.isabs(name) else os.path.join(DATA_DIR, name)


def load_json(name: str, key: str = "items") -> List[Dict[str, Any]]:
    """Load a JSON array of records by filename from the data directory.

    A top-level object is unwrapped through ``key``: ``items`` for the board
    export, ``features`` for a GeoJSON FeatureCollection.
    """

    path = resolve_path(name)
    if not os.path.exists(path):
        raise FileNotFoundError(f"Data file not found: {path}")
    LOGGER.debug("loading_json path=%s", path)
    with open(path, "r", encoding="utf-8") as infile:
        payload = json.load(infile)
    if isinstance(payload, dict):
        payload = payload.get(key, [])
    if not isinstance(payload, list):
        raise ValueError(f"Expected a JSON array of records in {path}")
    return payload


__all__ = ["load_json", "resolve_path", "DATA_DIR"]
