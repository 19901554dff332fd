"""
Validator for sensor Readings.

Validates:
- Required fields (source, variable, category) are present
- Category is one of the known categories
- Value is within the bounds defined for the (category, variable) pair
- Value is finite and the coordinate is valid (every reading)

Failure is an expected outcome: it is logged, never raised.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from processor.config import ValidationRules
from processor.models import Category, Reading, valid_coordinate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Bound:
    """Acceptable domain for one variable. None means unbounded on that side."""
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    exclusive_minimum: bool = False
    integral: bool = False

    def check(self, variable: str, value: float) -> Optional[str]:
        """Return a failure reason, or None if value is acceptable."""
        if self.minimum is not None:
            if self.exclusive_minimum and not value > self.minimum:
                return f"{variable}={value} must be greater than {self.minimum}"
            if not self.exclusive_minimum and value < self.minimum:
                return f"{variable}={value} below minimum {self.minimum}"
        if self.maximum is not None and value > self.maximum:
            return f"{variable}={value} exceeds maximum {self.maximum}"
        if self.integral and math.isfinite(value) and not float(value).is_integer():
            return f"{variable}={value} must be a whole number"
        return None


NON_NEGATIVE = Bound(minimum=0.0)
POSITIVE = Bound(minimum=0.0, exclusive_minimum=True)
PERCENT = Bound(minimum=0.0, maximum=100.0)
NON_NEGATIVE_COUNT = Bound(minimum=0.0, integral=True)

# Fixed per-category bounds. Environmental temperature/humidity come from
# ValidationRules and are merged in by build_rule_table().
CATEGORY_BOUNDS: Dict[Category, Dict[str, Bound]] = {
    Category.environmental: {
        "air_quality": NON_NEGATIVE,
        "pm2.5":       NON_NEGATIVE,
        "pm10":        NON_NEGATIVE,
    },
    Category.health: {
        "heart_rate":  Bound(minimum=30.0, maximum=250.0),   # bpm
        "temperature": Bound(minimum=35.0, maximum=42.0),    # body °C
    },
    Category.infrastructure: {
        "temperature": Bound(minimum=-50.0, maximum=200.0),  # equipment °C
        "pressure":    POSITIVE,
        "flow_rate":   NON_NEGATIVE,
    },
    Category.economic: {
        "price":   NON_NEGATIVE,
        "cost":    NON_NEGATIVE,
        "revenue": NON_NEGATIVE,
    },
    Category.social: {
        "population": NON_NEGATIVE_COUNT,
        "count":      NON_NEGATIVE_COUNT,
        "percentage": PERCENT,
        "rate":       PERCENT,
    },
}


def build_rule_table(rules: ValidationRules) -> Dict[Category, Dict[str, Bound]]:
    """Per-category bounds with the configured environmental ranges applied."""
    table = {category: dict(bounds) for category, bounds in CATEGORY_BOUNDS.items()}
    table[Category.environmental]["temperature"] = Bound(
        minimum=rules.temperature_min, maximum=rules.temperature_max,
    )
    table[Category.environmental]["humidity"] = Bound(
        minimum=rules.humidity_min, maximum=rules.humidity_max,
    )
    return table


@dataclass
class ValidationResult:
    """Result of validating a single Reading."""
    is_valid: bool
    reasons: List[str] = field(default_factory=list)

    def add_error(self, msg: str):
        self.reasons.append(msg)
        self.is_valid = False

    def __bool__(self) -> bool:
        return self.is_valid

    def __str__(self) -> str:
        if self.is_valid:
            return "Valid"
        return "Invalid: " + "; ".join(self.reasons)


class Validator:
    """Category-aware reading validator. Stateless after construction."""

    def __init__(self, rules: Optional[ValidationRules] = None):
        self._table = build_rule_table(rules or ValidationRules())

    def check(self, reading: Reading) -> ValidationResult:
        """Validate a Reading and collect every failure reason."""
        result = ValidationResult(is_valid=True)

        # 1. Required fields
        if not reading.source:
            result.add_error("Missing required field: source")
        if not reading.variable:
            result.add_error("Missing required field: variable")
        if not reading.category:
            result.add_error("Missing required field: category")

        # 2. Category-specific bounds
        category = Category.parse(reading.category)
        if category is None:
            if reading.category:
                result.add_error(f"Unknown category: {reading.category!r}")
        else:
            bound = self._table[category].get(reading.variable)
            if bound is not None:
                reason = bound.check(reading.variable, reading.value)
                if reason:
                    result.add_error(reason)

        # 3. Universal checks
        if not math.isfinite(reading.value):
            result.add_error(f"value must be finite, got {reading.value}")
        if not valid_coordinate(reading.lat, reading.lon):
            result.add_error(f"Invalid coordinate ({reading.lat}, {reading.lon})")

        if not result.is_valid:
            logger.warning(
                "Validation failed for source=%s category=%s variable=%s: %s",
                reading.source or "unknown", reading.category or "-",
                reading.variable or "-", result.reasons,
            )
        return result

    def validate(self, reading: Reading) -> bool:
        return self.check(reading).is_valid


def validate_reading(reading: Reading, rules: Optional[ValidationRules] = None) -> ValidationResult:
    """
    Validate a Reading object.

    Args:
        reading: The decoded Reading.
        rules: Environmental bounds; defaults to ValidationRules().

    Returns:
        ValidationResult with is_valid flag and list of failure reasons.
    """
    return Validator(rules).check(reading)


def validate(reading: Reading, rules: Optional[ValidationRules] = None) -> bool:
    return validate_reading(reading, rules).is_valid
