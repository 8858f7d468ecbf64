"""Configuration management for marker grouping.

Provides the default configuration, JSON loading merged over the defaults,
schema validation, and marker construction from configuration.
"""
from __future__ import annotations

import copy
import json
import pathlib

from jsonschema import validate, ValidationError

from grouping.base import Marker

_DEFAULT = {
    "grouping": {"min_per_group": 3},
    "markers": {
        "default": {"name": "default", "width": 20, "height": 34},
        "group": {"name": "group", "width": 40, "height": 40},
    },
    "view": {"width": 1024, "height": 768, "tile_size": 256, "zoom": 12},
    "input": {"x_col": "lon", "y_col": "lat", "title_col": None},
}

_MARKER_SCHEMA = {
    "type": "object",
    "required": ["name", "width", "height"],
    "properties": {
        "name": {"type": "string"},
        "width": {"type": "integer", "minimum": 0},
        "height": {"type": "integer", "minimum": 0},
    },
}

CONFIG_SCHEMA = {
    "type": "object",
    "required": ["grouping", "markers", "view", "input"],
    "properties": {
        "grouping": {
            "type": "object",
            "properties": {
                "min_per_group": {"type": "integer", "minimum": 1},
            },
        },
        "markers": {
            "type": "object",
            "properties": {
                "default": {"oneOf": [_MARKER_SCHEMA, {"type": "null"}]},
                "group": {"oneOf": [_MARKER_SCHEMA, {"type": "null"}]},
            },
        },
        "view": {
            "type": "object",
            "properties": {
                "width": {"type": "integer", "minimum": 0},
                "height": {"type": "integer", "minimum": 0},
                "tile_size": {"type": "integer", "minimum": 1},
                "zoom": {"type": "integer", "minimum": 0},
            },
        },
        "input": {
            "type": "object",
            "properties": {
                "x_col": {"type": "string"},
                "y_col": {"type": "string"},
                "title_col": {"type": ["string", "null"]},
            },
        },
    },
}


def default_config() -> dict:
    """Return a fresh copy of the default configuration."""
    return copy.deepcopy(_DEFAULT)


def validate_config(cfg: dict) -> dict:
    """Validate a configuration dictionary against :data:`CONFIG_SCHEMA`.

    Raises:
        ValueError: If the configuration does not match the schema.
    """
    try:
        validate(instance=cfg, schema=CONFIG_SCHEMA)
    except ValidationError as e:
        raise ValueError(f"Invalid grouping config: {e.message}") from e
    return cfg


def load_config(path: str | None = None) -> dict:
    """Load grouping configuration from JSON file.

    Loads user configuration file and merges with default configuration.
    Sections present in both are updated key by key; other user keys
    replace the defaults.

    Args:
        path: Path to configuration JSON file. If None or file doesn't exist,
            returns default configuration.

    Returns:
        dict: Merged and validated configuration dictionary.

    Raises:
        ValueError: If the merged configuration is invalid.
    """
    merged = default_config()
    p = pathlib.Path(path) if path else None
    if p and p.exists():
        with p.open("r", encoding="utf-8") as f:
            user = json.load(f)
        for k, v in user.items():
            if isinstance(v, dict) and isinstance(merged.get(k), dict):
                merged[k].update(v)
            else:
                merged[k] = v
    return validate_config(merged)


def markers_from_config(cfg: dict) -> tuple[Marker | None, Marker | None]:
    """Build (default_marker, group_marker) from a configuration.

    A null marker entry yields None; a null group marker disables grouping.
    """

    def build(entry: dict | None) -> Marker | None:
        if entry is None:
            return None
        return Marker(entry["name"], entry["width"], entry["height"])

    markers = cfg.get("markers", {})
    return build(markers.get("default")), build(markers.get("group"))
