import pytest
from cooking_mode.models import BaseIngredient, Recipe


@pytest.fixture
def recipe():
    return Recipe(
        id="recipe-42",
        name="Chicken Stir Fry",
        servings=2,
        ingredients=[
            BaseIngredient(id="ing-1", name="chicken breast", amount=1, unit="lb"),
            BaseIngredient(id="ing-2", name="onion", amount=1, unit="", display_quantity="1 large"),
            BaseIngredient(id="ing-3", name="salt", amount=1, unit="tsp"),
            BaseIngredient(id="ing-4", name="spinach", amount=1, unit="cup"),
        ],
        instructions=[
            "Heat the oil and brown the chicken breast for 5 minutes.",
            "Add the onion and stir.",
            "Season with salt.",
            "Fold in the spinach and rest 90 seconds.",
        ],
    )
