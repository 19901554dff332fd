"""
HTTP fetch source handler.

Polls a JSON endpoint and turns one value from the response into a
Reading. Per-source options (the "config" block of a source definition):

    url            required
    method         GET by default
    headers        [{"key": ..., "value": ...}]; "${VAR}" values are read from the environment
    params         [{"key": ..., "value": ...}] query parameters, same "${VAR}" rule
    response_path  dotted path to the value, default "$.main.temp"
    variable       default "temperature"
    units          default "celsius"
    coordinates    {"lat": .., "lon": ..} or {"lat_path": .., "lon_path": ..}

Handles timeouts, HTTP errors, malformed JSON and missing paths by
logging and returning no readings.
"""

import logging
import os
import re
import time
from typing import Any, Callable, Dict, List, Optional

import httpx

from processor.models import Reading

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30  # seconds
DEFAULT_RESPONSE_PATH = "$.main.temp"

_ENV_REF = re.compile(r"^\$\{([^}]+)\}$")
_INDEX_REF = re.compile(r"\[(\d+)\]")


def _expand_env(value: str) -> str:
    """Replace a whole-value "${VAR}" reference with the environment value."""
    match = _ENV_REF.match(value)
    if match:
        return os.environ.get(match.group(1), "")
    return value


def _pairs(items: Optional[List[Dict[str, Any]]]) -> Dict[str, str]:
    return {str(item["key"]): str(item["value"]) for item in (items or [])}


def extract_path(data: Any, path: str) -> Any:
    """
    Resolve a dotted JSON path ("$.list[0].main.temp" or "list.0.main.temp").

    Returns None if any segment is missing.
    """
    path = _INDEX_REF.sub(r".\1", path.strip())
    if path.startswith("$"):
        path = path[1:]
    current = data
    for segment in (s for s in path.split(".") if s):
        if isinstance(current, dict):
            if segment not in current:
                return None
            current = current[segment]
        elif isinstance(current, list) and segment.isdigit():
            idx = int(segment)
            if idx >= len(current):
                return None
            current = current[idx]
        else:
            return None
    return current


def _safe_float(val) -> Optional[float]:
    """Safely convert a value to float, returning None on failure."""
    if val is None or isinstance(val, bool) or val == "":
        return None
    try:
        return float(val)
    except (TypeError, ValueError):
        return None


def _coordinate(data: Any, coords: Dict[str, Any], axis: str) -> float:
    path = coords.get(f"{axis}_path")
    if path:
        value = _safe_float(extract_path(data, path))
    else:
        value = _safe_float(coords.get(axis))
    return value if value is not None else 0.0


def validate_config(config: Dict[str, Any]) -> None:
    """
    Raises:
        ValueError: url is missing.
    """
    if not config.get("url"):
        raise ValueError("url is required for http_fetch")


def fetch_readings(source) -> List[Reading]:
    """
    Fetch the current value for an http_fetch source.

    Args:
        source: SourceConfig with name, category and the handler config.

    Returns:
        A one-element list with the Reading, or [] on any failure.
    """
    cfg = source.config
    url = cfg["url"]
    method = str(cfg.get("method", "GET")).upper()
    headers = {k: _expand_env(v) for k, v in _pairs(cfg.get("headers")).items()}
    params = {k: _expand_env(v) for k, v in _pairs(cfg.get("params")).items()}

    try:
        resp = httpx.request(method, url, headers=headers, params=params, timeout=REQUEST_TIMEOUT)
        resp.raise_for_status()
    except httpx.TimeoutException:
        logger.error("Request timed out for source %s", source.name)
        return []
    except httpx.HTTPStatusError as e:
        logger.error("HTTP %s from source %s", e.response.status_code, source.name)
        return []
    except httpx.RequestError as e:
        logger.error("Network error for source %s: %s", source.name, e)
        return []

    try:
        data = resp.json()
    except ValueError:
        logger.error("Source %s returned malformed JSON", source.name)
        return []

    response_path = cfg.get("response_path", DEFAULT_RESPONSE_PATH)
    value = _safe_float(extract_path(data, response_path))
    if value is None:
        logger.error("response_path %s not found (or not numeric) for source %s",
                     response_path, source.name)
        return []

    coords = cfg.get("coordinates") or {}
    reading = Reading(
        source=source.name,
        category=source.category,
        variable=cfg.get("variable", "temperature"),
        value=value,
        units=cfg.get("units", "celsius"),
        lat=_coordinate(data, coords, "lat"),
        lon=_coordinate(data, coords, "lon"),
        epoch_ms=int(time.time() * 1000),
    )
    logger.info(
        "Received: %s = %.2f %s from %s at (%.4f, %.4f)",
        reading.variable, reading.value, reading.units, reading.source,
        reading.lat, reading.lon,
    )
    return [reading]


# handler type → (config validator, fetch function)
HANDLERS: Dict[str, Dict[str, Callable]] = {
    "http_fetch": {"validate": validate_config, "fetch": fetch_readings},
}


def get_handler(handler_type: str) -> Callable:
    """
    Fetch function for a source type.

    Raises:
        ValueError: unknown handler type.
    """
    handler = HANDLERS.get(handler_type)
    if handler is None:
        raise ValueError(f"unknown handler type: {handler_type}")
    return handler["fetch"]
