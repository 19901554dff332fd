"""
Source definitions for the ingestion scheduler.

config/sources.json holds a list of sources:

    {
      "name": "tokyo-weather",
      "type": "http_fetch",
      "category": "environmental",
      "frequency_seconds": 300,
      "config": {"url": "...", "response_path": "$.main.temp", ...}
    }

Every definition is validated on load; one bad entry fails the load.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List

from processor.ingestion.http_fetch import HANDLERS
from processor.models import Category

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SourceConfig:
    name: str
    type: str
    category: Category
    frequency_seconds: int
    config: Dict[str, Any] = field(default_factory=dict)


def parse_source(raw: Dict[str, Any]) -> SourceConfig:
    """
    Validate and convert one raw source definition.

    Raises:
        ValueError: describing the first problem found.
    """
    if not isinstance(raw, dict):
        raise ValueError("source definition must be an object")

    name = raw.get("name")
    if not name:
        raise ValueError("source name cannot be empty")

    source_type = raw.get("type")
    if not source_type:
        raise ValueError("source type cannot be empty")
    if source_type not in HANDLERS:
        raise ValueError(f"unknown handler type: {source_type}")

    raw_category = raw.get("category")
    if not raw_category:
        raise ValueError("source category cannot be empty")
    category = Category.parse(raw_category)
    if category is None:
        valid = ", ".join(c.value for c in Category)
        raise ValueError(f"invalid category '{raw_category}'. Valid categories are: {valid}")

    frequency = raw.get("frequency_seconds")
    if isinstance(frequency, bool) or not isinstance(frequency, int) or frequency <= 0:
        raise ValueError(f"frequency_seconds must be a positive integer, got {frequency!r}")

    config = raw.get("config") or {}
    if not isinstance(config, dict):
        raise ValueError("config must be an object")
    HANDLERS[source_type]["validate"](config)

    return SourceConfig(
        name=name,
        type=source_type,
        category=category,
        frequency_seconds=frequency,
        config=config,
    )


def load_source_configs(path: str) -> List[SourceConfig]:
    """
    Load and validate all source definitions from a JSON file.

    Raises:
        FileNotFoundError: the file does not exist.
        ValueError: the file is not valid JSON or a definition is invalid.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Sources config not found at {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            raw_sources = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"failed to parse {path}: {e}") from e

    if not isinstance(raw_sources, list):
        raise ValueError(f"{path} must contain a list of sources")

    sources = []
    for position, raw in enumerate(raw_sources):
        try:
            sources.append(parse_source(raw))
        except ValueError as e:
            label = raw.get("name") if isinstance(raw, dict) and raw.get("name") else f"#{position}"
            raise ValueError(f"invalid source {label} in {path}: {e}") from e

    logger.info("Loaded %d source configurations from %s", len(sources), path)
    return sources
