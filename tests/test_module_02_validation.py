"""
Tests for Module 02 — Reading Validation.
Tests category bounds, configurable environmental ranges and universal checks.
"""

import pytest

from processor.config import ValidationRules
from processor.models import Category
from processor.validation.validator import (
    Bound, ValidationResult, Validator, validate, validate_reading
)

from conftest import make_reading


class TestBound:
    def test_inclusive_minimum(self):
        assert Bound(minimum=0.0).check("x", 0.0) is None
        assert Bound(minimum=0.0).check("x", -0.1) is not None

    def test_exclusive_minimum(self):
        bound = Bound(minimum=0.0, exclusive_minimum=True)
        assert bound.check("x", 0.0) is not None
        assert bound.check("x", 0.001) is None

    def test_integral(self):
        bound = Bound(minimum=0.0, integral=True)
        assert bound.check("x", 3.0) is None
        assert "whole number" in bound.check("x", 3.5)


class TestEnvironmental:
    @pytest.mark.parametrize("value", [0.0, 55.5, 100.0])
    def test_humidity_in_range(self, value):
        assert validate(make_reading(variable="humidity", value=value, units="percent"))

    @pytest.mark.parametrize("value", [-0.1, 100.1, 150.0])
    def test_humidity_out_of_range(self, value):
        assert not validate(make_reading(variable="humidity", value=value, units="percent"))

    def test_temperature_default_bounds(self):
        assert validate(make_reading(value=-100.0))
        assert validate(make_reading(value=100.0))
        assert not validate(make_reading(value=100.5))

    def test_temperature_bounds_from_config(self):
        rules = ValidationRules(temperature_min=-10.0, temperature_max=40.0)
        assert validate(make_reading(value=39.0), rules)
        assert not validate(make_reading(value=45.0), rules)

    def test_negative_pm25_fails(self):
        assert not validate(make_reading(variable="pm2.5", value=-1.0))

    def test_variable_without_bounds_passes(self):
        assert validate(make_reading(variable="wind_speed", value=-3.0))


class TestHealth:
    @pytest.mark.parametrize("value,expected", [
        (29.9, False), (30.0, True), (72.0, True), (250.0, True), (250.1, False),
    ])
    def test_heart_rate_bounds(self, value, expected):
        reading = make_reading(category=Category.health, variable="heart_rate",
                               value=value, units="bpm")
        assert validate(reading) is expected

    def test_body_temperature(self):
        assert validate(make_reading(category=Category.health, value=37.0))
        assert not validate(make_reading(category=Category.health, value=25.0))


class TestInfrastructureEconomicSocial:
    def test_pressure_must_be_positive(self):
        assert not validate(make_reading(category=Category.infrastructure,
                                         variable="pressure", value=0.0))
        assert validate(make_reading(category=Category.infrastructure,
                                     variable="pressure", value=0.5))

    def test_equipment_temperature(self):
        assert validate(make_reading(category=Category.infrastructure, value=150.0))
        assert not validate(make_reading(category=Category.infrastructure, value=-60.0))

    def test_negative_price_fails(self):
        assert not validate(make_reading(category=Category.economic, variable="price", value=-0.01))

    def test_population_negative_fails(self):
        assert not validate(make_reading(category=Category.social, variable="population", value=-5.0))

    def test_population_fractional_fails(self):
        assert not validate(make_reading(category=Category.social, variable="population", value=10.5))

    def test_population_whole_passes(self):
        assert validate(make_reading(category=Category.social, variable="population", value=1000.0))

    def test_rate_is_percentage(self):
        assert not validate(make_reading(category=Category.social, variable="rate", value=101.0))


class TestUniversalChecks:
    def test_empty_category_fails(self):
        result = validate_reading(make_reading(category=""))
        assert not result.is_valid
        assert any("category" in r for r in result.reasons)

    def test_unknown_category_fails(self):
        result = validate_reading(make_reading(category="weather"))
        assert not result
        assert "Unknown category" in str(result)

    def test_plain_string_category_accepted(self):
        assert validate(make_reading(category="environmental"))

    def test_missing_source_fails(self):
        assert not validate(make_reading(source=""))

    def test_nan_value_fails(self):
        assert not validate(make_reading(variable="wind_speed", value=float("nan")))

    def test_infinite_value_fails(self):
        assert not validate(make_reading(category=Category.economic, variable="price",
                                         value=float("inf")))

    def test_invalid_coordinate_fails(self):
        assert not validate(make_reading(lat=91.0))

    def test_collects_all_reasons(self):
        result = Validator().check(make_reading(source="", variable="humidity", value=150.0, lat=-91.0))
        assert len(result.reasons) == 3

    def test_valid_result_str(self):
        assert str(ValidationResult(is_valid=True)) == "Valid"


if __name__ == "__main__":
    import subprocess, sys
    sys.exit(subprocess.call(["pytest", __file__, "-v"]))
