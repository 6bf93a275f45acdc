from __future__ import annotations
from typing import Iterable, Optional
from cooking_mode.categorizer import categorize, classify_importance
from cooking_mode.models import BaseIngredient, CategorizedIngredient, Diner, IngredientReplacementDetails
from cooking_mode.scaling import scale_amount, scale_display_quantity, scaling_factor


def in_kitchen(name: str, kitchen_items: Iterable[str]) -> bool:
    lower = name.lower()
    return any(item.lower() in lower or lower in item.lower() for item in kitchen_items if item)


def derive_ingredients(
    base_ingredients: list[BaseIngredient],
    diners: list[Diner],
    replacements: dict[str, IngredientReplacementDetails],
    kitchen_items: list[str],
    checked: set[str],
    native_servings: Optional[int] = None,
) -> list[CategorizedIngredient]:
    """Build the categorized, scaled ingredient list from the session inputs.

    Replacements are overlays keyed by the original ingredient id: they change
    the displayed name, quantity text and image, and only change the amount or
    unit when the replacement carries its own.
    """
    factor = scaling_factor(len(diners), native_servings)
    derived = []
    for ingredient in base_ingredients:
        replacement = replacements.get(ingredient.id)
        name = replacement.name if replacement and replacement.name else ingredient.name
        amount = ingredient.amount
        unit = ingredient.unit
        image = ingredient.image
        display_quantity = ingredient.display_quantity
        if replacement:
            if replacement.amount is not None:
                amount = replacement.amount
            unit = replacement.unit or unit
            image = replacement.image or image
            display_quantity = replacement.display_quantity or display_quantity

        category = categorize(name)
        derived.append(
            CategorizedIngredient(
                id=ingredient.id,
                name=name,
                amount=scale_amount(amount, factor),
                unit=unit,
                image=image,
                display_quantity=scale_display_quantity(display_quantity, factor),
                category=category,
                in_kitchen=in_kitchen(name, kitchen_items),
                checked=name in checked,
                importance=classify_importance(name, amount, category),
            )
        )
    return derived
