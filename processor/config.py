"""
Processor configuration.

Loaded once from environment variables (a local .env is honoured via
python-dotenv). Defaults mirror the reference deployment: validation,
enrichment, aggregation and quality scoring all enabled, InfluxDB on
localhost:8086, GeoNames dump at ./allCountries.txt.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_SOURCES_CONFIG = os.path.join(
    os.path.dirname(os.path.dirname(__file__)), "config", "sources.json"
)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean (true/false), got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


@dataclass(frozen=True)
class ValidationRules:
    """Configurable bounds for the environmental category."""
    temperature_min: float = -100.0
    temperature_max: float = 100.0
    humidity_min: float = 0.0
    humidity_max: float = 100.0


@dataclass(frozen=True)
class ProcessingConfig:
    enable_validation: bool = True
    enable_enrichment: bool = True
    enable_aggregation: bool = True
    enable_quality_score: bool = True
    batch_size: int = 100
    workers: int = 1
    validation_rules: ValidationRules = field(default_factory=ValidationRules)


@dataclass(frozen=True)
class InfluxDbConfig:
    host: str = "localhost"
    port: int = 8086
    org: str = "emma"
    bucket: str = "climate"
    token: str = "emma-token"
    timeout: float = 10.0

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"


@dataclass(frozen=True)
class GeocoderConfig:
    geonames_file_path: str = "allCountries.txt"


@dataclass(frozen=True)
class ProcessorConfig:
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    influxdb: InfluxDbConfig = field(default_factory=InfluxDbConfig)
    geocoder: GeocoderConfig = field(default_factory=GeocoderConfig)
    sources_path: str = DEFAULT_SOURCES_CONFIG

    @classmethod
    def load(cls) -> "ProcessorConfig":
        """
        Build the configuration from the environment.

        Raises:
            ValueError: if a variable is present but cannot be parsed.
        """
        rules = ValidationRules(
            temperature_min=_env_float("PROCESSOR_TEMPERATURE_MIN", -100.0),
            temperature_max=_env_float("PROCESSOR_TEMPERATURE_MAX", 100.0),
            humidity_min=_env_float("PROCESSOR_HUMIDITY_MIN", 0.0),
            humidity_max=_env_float("PROCESSOR_HUMIDITY_MAX", 100.0),
        )
        processing = ProcessingConfig(
            enable_validation=_env_bool("PROCESSOR_ENABLE_VALIDATION", True),
            enable_enrichment=_env_bool("PROCESSOR_ENABLE_ENRICHMENT", True),
            enable_aggregation=_env_bool("PROCESSOR_ENABLE_AGGREGATION", True),
            enable_quality_score=_env_bool("PROCESSOR_ENABLE_QUALITY_SCORE", True),
            batch_size=_env_int("PROCESSOR_BATCH_SIZE", 100),
            workers=_env_int("PROCESSOR_WORKERS", 1),
            validation_rules=rules,
        )
        if processing.batch_size < 1:
            raise ValueError("PROCESSOR_BATCH_SIZE must be at least 1")
        if processing.workers < 1:
            raise ValueError("PROCESSOR_WORKERS must be at least 1")

        influxdb = InfluxDbConfig(
            host=os.environ.get("INFLUXDB_HOST", "localhost"),
            port=_env_int("INFLUXDB_PORT", 8086),
            org=os.environ.get("INFLUXDB_ORG", "emma"),
            bucket=os.environ.get("INFLUXDB_BUCKET", "climate"),
            token=os.environ.get("INFLUXDB_TOKEN", "emma-token"),
            timeout=_env_float("INFLUXDB_TIMEOUT", 10.0),
        )
        geocoder = GeocoderConfig(
            geonames_file_path=os.environ.get("GEONAMES_FILE_PATH", "allCountries.txt"),
        )

        config = cls(
            processing=processing,
            influxdb=influxdb,
            geocoder=geocoder,
            sources_path=os.environ.get("SOURCES_CONFIG", DEFAULT_SOURCES_CONFIG),
        )
        logger.info(
            "Configuration loaded: validation=%s enrichment=%s aggregation=%s "
            "quality_score=%s influxdb=%s bucket=%s",
            processing.enable_validation, processing.enable_enrichment,
            processing.enable_aggregation, processing.enable_quality_score,
            influxdb.url, influxdb.bucket,
        )
        return config
