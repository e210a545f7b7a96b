"""
Reader configuration.

Settings can be given in code, loaded from a YAML file, or picked up from
the environment:

    batch_size: 5000
    vertex_id_key: _id
    edge_id_key: _id
    value_profile:
      use_float: true
      allow_non_finite: false

Environment:
- GRAPHSON_IO_CONFIG: path of a YAML config file
- GRAPHSON_IO_BATCH_SIZE: overrides ``batch_size``
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from graphson_io.formats.values import ValueProfile
from graphson_io.storage.batch import DEFAULT_BATCH_SIZE, DEFAULT_ID_KEY

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "GRAPHSON_IO_CONFIG"
BATCH_SIZE_ENV = "GRAPHSON_IO_BATCH_SIZE"


@dataclass
class ReaderConfig:
    """Construction settings for a GraphSONReader."""
    batch_size: int = DEFAULT_BATCH_SIZE
    vertex_id_key: str = DEFAULT_ID_KEY
    edge_id_key: str = DEFAULT_ID_KEY
    value_profile: ValueProfile = field(default_factory=ValueProfile)

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        if not isinstance(self.batch_size, int) or isinstance(self.batch_size, bool) \
                or self.batch_size < 1:
            raise ValueError(f"batch_size must be a positive integer, got {self.batch_size!r}")
        for name in ("vertex_id_key", "edge_id_key"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value:
                raise ValueError(f"{name} must be a non-empty string, got {value!r}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "batch_size": self.batch_size,
            "vertex_id_key": self.vertex_id_key,
            "edge_id_key": self.edge_id_key,
            "value_profile": self.value_profile.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ReaderConfig":
        data = data or {}
        unknown = set(data) - {"batch_size", "vertex_id_key", "edge_id_key", "value_profile"}
        if unknown:
            raise ValueError(f"Unknown reader config options: {sorted(unknown)}")
        return cls(
            batch_size=data.get("batch_size", DEFAULT_BATCH_SIZE),
            vertex_id_key=data.get("vertex_id_key", DEFAULT_ID_KEY),
            edge_id_key=data.get("edge_id_key", DEFAULT_ID_KEY),
            value_profile=ValueProfile.from_dict(data.get("value_profile") or {}),
        )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "ReaderConfig":
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if data is not None and not isinstance(data, dict):
            raise ValueError(f"Reader config in {path} must be a mapping")
        return cls.from_dict(data)

    def save_yaml(self, path: Union[str, Path]) -> None:
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.to_dict(), f, sort_keys=False)


def load_config(path: Optional[Union[str, Path]] = None) -> ReaderConfig:
    """
    Load reader settings.

    Uses ``path`` if given, else the file named by GRAPHSON_IO_CONFIG, else
    defaults. GRAPHSON_IO_BATCH_SIZE overrides the batch size either way.
    """
    path = path or os.environ.get(CONFIG_PATH_ENV)
    if path:
        logger.info(f"Loading reader config from {path}")
        config = ReaderConfig.from_yaml(path)
    else:
        config = ReaderConfig()

    batch_size = os.environ.get(BATCH_SIZE_ENV)
    if batch_size:
        try:
            config.batch_size = int(batch_size)
        except ValueError:
            raise ValueError(f"{BATCH_SIZE_ENV} must be an integer, got {batch_size!r}")
        config.validate()
    return config
