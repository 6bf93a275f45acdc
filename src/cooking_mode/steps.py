from __future__ import annotations
import logging
import re
from typing import Optional
from cooking_mode.categorizer import CATEGORY_ORDER, category_rank
from cooking_mode.models import BaseIngredient, CategorizedIngredient, CookingStep
from cooking_mode.prep_steps import PrepStepError

logger = logging.getLogger(__name__)

DURATION_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(hour|hr|minute|min|second|sec)", re.IGNORECASE)

UNIT_SECONDS = {"hour": 3600, "hr": 3600, "minute": 60, "min": 60, "second": 1, "sec": 1}

UNMATCHED_RANK = len(CATEGORY_ORDER)


def parse_duration(text: str) -> Optional[int]:
    match = DURATION_PATTERN.search(text)
    if not match:
        return None
    seconds = int(float(match.group(1)) * UNIT_SECONDS[match.group(2).lower()])
    return seconds if seconds > 0 else None


def mentions(text: str, name: str) -> bool:
    if not name:
        return False
    return re.search(rf"\b{re.escape(name)}\b", text, re.IGNORECASE) is not None


def ingredients_needed(text: str, ingredients: list[CategorizedIngredient]) -> list[str]:
    return [ingredient.name for ingredient in ingredients if mentions(text, ingredient.name)]


def step_rank(text: str, ingredients: list[CategorizedIngredient]) -> int:
    ranks = [category_rank(i.category) for i in ingredients if mentions(text, i.name)]
    return min(ranks) if ranks else UNMATCHED_RANK


def sort_prep_steps(prep_steps: list[str], ingredients: list[CategorizedIngredient]) -> list[str]:
    # sorted() is stable, so equal ranks keep the service's order.
    return sorted(prep_steps, key=lambda step: step_rank(step, ingredients))


def ingredient_line(ingredient: BaseIngredient) -> str:
    parts = [f"{ingredient.amount:g}", ingredient.unit, ingredient.name]
    return " ".join(p for p in parts if p)


def build_steps(
    prep_steps: list[str],
    instructions: list[str],
    ingredients: list[CategorizedIngredient],
    completed: set[int],
) -> list[CookingStep]:
    steps = []
    for index, text in enumerate([*prep_steps, *instructions]):
        steps.append(
            CookingStep(
                number=index + 1,
                instruction=text,
                is_prep_step=index < len(prep_steps),
                estimated_time=parse_duration(text),
                ingredients_needed=ingredients_needed(text, ingredients),
                completed=index in completed,
            )
        )
    return steps


class StepSequencer:
    """Merges derived prep steps with a recipe's literal instructions."""

    def __init__(self, analyzer=None):
        self.analyzer = analyzer

    async def fetch_prep_steps(
        self,
        base_ingredients: list[BaseIngredient],
        instructions: list[str],
        ingredients: list[CategorizedIngredient],
    ) -> list[str]:
        if self.analyzer is None:
            return []
        try:
            prep_steps = await self.analyzer.analyze(
                [ingredient_line(i) for i in base_ingredients], instructions
            )
        except PrepStepError as e:
            logger.warning("Prep step analysis failed, using recipe instructions only: %s", e)
            return []
        usable = [step.strip() for step in prep_steps if isinstance(step, str) and step.strip()]
        return sort_prep_steps(usable, ingredients)
