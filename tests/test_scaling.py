import pytest
from cooking_mode.scaling import (
    format_amount, format_quantity, readable_quantity, scale_amount, scale_display_quantity, scaling_factor
)


def test_scaling_factor_is_diners_over_servings():
    assert scaling_factor(4, 2) == 2


@pytest.mark.parametrize("servings", [None, 0])
def test_scaling_factor_defaults_to_one(servings):
    assert scaling_factor(3, servings) == 1


def test_scaling_factor_treats_zero_diners_as_one():
    assert scaling_factor(0, 2) == 0.5


@pytest.mark.parametrize("amount,factor", [(1, 2), (0.5, 3), (2.25, 0.5)])
def test_scaled_amount_is_product(amount, factor):
    assert scale_amount(amount, factor) == amount * factor


def test_display_quantity_kept_when_unscaled():
    assert scale_display_quantity("2 cups", 1) == "2 cups"


def test_display_quantity_cleared_when_scaled():
    assert scale_display_quantity("2 cups", 2) is None
    assert scale_display_quantity("2 cups", 0.5) is None


def test_format_amount_trims_trailing_zero():
    assert format_amount(2.0) == "2"
    assert format_amount(1.5) == "1.5"
    assert format_amount(0.333) == "0.3"


def test_format_quantity_prefers_display_text():
    assert format_quantity(2, "cup", "1 heaping cup") == "1 heaping cup"
    assert format_quantity(2, "cup") == "2 cup"
    assert format_quantity(3, "") == "3"


def test_format_quantity_as_needed():
    assert format_quantity(0, "tsp") == "As needed"
    assert readable_quantity(0, "tsp") is None
