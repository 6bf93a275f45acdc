from __future__ import annotations
from typing import Optional

AS_NEEDED = "As needed"


def scaling_factor(diner_count: int, native_servings: Optional[int]) -> float:
    if not native_servings:
        return 1.0
    return max(diner_count, 1) / native_servings


def scale_amount(amount: float, factor: float) -> float:
    return amount * factor


def scale_display_quantity(display_quantity: Optional[str], factor: float) -> Optional[str]:
    # Only an unscaled ingredient may keep its pre-formatted quantity text.
    if factor == 1:
        return display_quantity
    return None


def format_amount(amount: float) -> str:
    rounded = round(amount, 1)
    if rounded == int(rounded):
        return str(int(rounded))
    return f"{rounded:.1f}"


def format_quantity(amount: float, unit: str, display_quantity: Optional[str] = None) -> str:
    if display_quantity:
        return display_quantity
    if amount > 0:
        return f"{format_amount(amount)} {unit}".strip()
    return AS_NEEDED


def readable_quantity(amount: float, unit: str, display_quantity: Optional[str] = None) -> Optional[str]:
    value = format_quantity(amount, unit, display_quantity)
    return None if value == AS_NEEDED else value
