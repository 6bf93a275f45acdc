from __future__ import annotations
import logging
import re
from typing import Optional
from cooking_mode.models import CategorizedIngredient, IngredientReplacementDetails, ReplacementRequest
from cooking_mode.scaling import readable_quantity
from cooking_mode.spoonacular import ServiceError, ingredient_image

logger = logging.getLogger(__name__)

LEADING_FILLER = re.compile(r"^\s*(use|try|about|or)\s+", re.IGNORECASE)
AMOUNT_PREFIX = re.compile(r"^([\d/.,\s]+[a-zA-Z%°]+)\s+(.*)$")
PARENTHETICAL = re.compile(r"\s*\(.*?\)\s*")
FETCH_ERROR = "Unable to fetch suggestions right now."


class IngredientNotReplaceable(Exception):
    pass


def _squash(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def parse_replacement_label(text: str, fallback_quantity: Optional[str] = None) -> tuple[str, Optional[str]]:
    """Split a substitute suggestion like "1 cup = 2 tbsp of olive oil" into (name, quantity)."""
    raw = text.strip()
    if not raw:
        return raw, fallback_quantity

    working = raw.split("=", 1)[1].strip() if "=" in raw else raw
    working = LEADING_FILLER.sub("", working).strip()

    name = working
    quantity = fallback_quantity
    of_index = working.lower().rfind(" of ")
    if of_index > 0:
        possible_name = working[of_index + 4:].strip()
        if possible_name:
            quantity = working[:of_index].strip() or quantity
            name = possible_name
    else:
        match = AMOUNT_PREFIX.match(working)
        if match and match.group(2):
            quantity = match.group(1).strip() or quantity
            name = match.group(2).strip()

    cleaned_name = _squash(PARENTHETICAL.sub(" ", name))
    cleaned_quantity = _squash(quantity) if quantity else None
    return cleaned_name or raw, cleaned_quantity or fallback_quantity


class ReplacementCoordinator:
    """Runs the substitute workflow for one ingredient at a time.

    A newer request supersedes the active one; results that resolve for a
    superseded request are dropped.
    """

    def __init__(self, catalog=None):
        self.catalog = catalog
        self.active: Optional[ReplacementRequest] = None

    def dismiss(self) -> None:
        self.active = None

    async def request(self, ingredient: CategorizedIngredient) -> ReplacementRequest:
        if ingredient.importance == "crucial":
            raise IngredientNotReplaceable(f"{ingredient.name} is essential and can't be replaced")

        request = ReplacementRequest(
            ingredient_id=ingredient.id,
            ingredient_name=ingredient.name,
            fallback_quantity=readable_quantity(
                ingredient.amount, ingredient.unit, ingredient.display_quantity
            ),
        )
        self.active = request
        fallback = [f"{ingredient.name} alternative"]

        try:
            if self.catalog is None:
                raise ServiceError("No substitutes service configured.")
            suggestions = await self.catalog.substitutes(ingredient.name)
        except ServiceError as e:
            logger.warning("Substitute lookup for %s failed: %s", ingredient.name, e)
            suggestions, error = fallback, FETCH_ERROR
        else:
            suggestions, error = (suggestions or fallback), None

        if self.active is not request:
            logger.debug("Discarding substitutes for superseded request %s", ingredient.id)
            return request
        request.suggestions = suggestions
        request.error = error
        request.is_loading = False
        return request

    async def _lookup(self, name: str) -> tuple[str, str]:
        if self.catalog is not None:
            try:
                match = await self.catalog.search(name)
            except ServiceError as e:
                logger.warning("Ingredient metadata lookup for %s failed: %s", name, e)
            else:
                if match is not None:
                    resolved = match.name or name
                    return resolved, ingredient_image(resolved, match.image)
        return name, ingredient_image(name)

    async def apply(self, selection: str) -> Optional[IngredientReplacementDetails]:
        """Resolve a chosen or typed substitute for the active request.

        Returns None when there is nothing to apply or the request was
        superseded while the metadata lookup was in flight.
        """
        request = self.active
        text = selection.strip()
        if request is None or not text:
            return None

        name, quantity = parse_replacement_label(text, request.fallback_quantity)
        resolved, image = await self._lookup(name)

        if self.active is not request:
            logger.debug("Discarding replacement for superseded request %s", request.ingredient_id)
            return None
        details = IngredientReplacementDetails(
            name=resolved,
            display_quantity=quantity or request.fallback_quantity,
            image=image,
        )
        request.applied = details
        self.active = None
        return details
