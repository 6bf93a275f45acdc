import asyncio
from unittest.mock import AsyncMock, MagicMock
import pytest
from cooking_mode.models import CategorizedIngredient, IngredientMatch
from cooking_mode.replacement import IngredientNotReplaceable, ReplacementCoordinator, parse_replacement_label
from cooking_mode.spoonacular import INGREDIENT_IMAGE_BASE, ServiceError


def _ingredient(id="ing-3", name="salt", importance="replaceable", amount=1, unit="tsp"):
    return CategorizedIngredient(
        id=id, name=name, amount=amount, unit=unit, category="ready-to-use", importance=importance
    )


def _catalog(substitutes=None, match=None):
    catalog = MagicMock()
    catalog.substitutes = AsyncMock(return_value=substitutes or [])
    catalog.search = AsyncMock(return_value=match)
    return catalog


@pytest.mark.parametrize("text,name,quantity", [
    ("2 tbsp of olive oil", "olive oil", "2 tbsp"),
    ("1 cup = 1 cup margarine", "margarine", "1 cup"),
    ("use 2 tbsp of olive oil", "olive oil", "2 tbsp"),
    ("Try 1/2 cup applesauce", "applesauce", "1/2 cup"),
    ("ghee", "ghee", "1 tsp"),
    ("coconut oil (refined)", "coconut oil", "1 tsp"),
    ("1 cup = 7/8 cup of shortening (plus 1/2 tsp salt)", "shortening", "7/8 cup"),
])
def test_parse_replacement_label(text, name, quantity):
    assert parse_replacement_label(text, "1 tsp") == (name, quantity)


def test_parse_replacement_label_without_fallback():
    assert parse_replacement_label("ghee") == ("ghee", None)


@pytest.mark.asyncio
async def test_crucial_ingredient_rejected_without_lookup():
    catalog = _catalog()
    coordinator = ReplacementCoordinator(catalog)
    with pytest.raises(IngredientNotReplaceable, match="chicken is essential and can't be replaced"):
        await coordinator.request(_ingredient(name="chicken", importance="crucial"))
    catalog.substitutes.assert_not_called()
    assert coordinator.active is None


@pytest.mark.asyncio
async def test_request_exposes_suggestions():
    coordinator = ReplacementCoordinator(_catalog(["sea salt", "soy sauce"]))
    request = await coordinator.request(_ingredient())
    assert request.suggestions == ["sea salt", "soy sauce"]
    assert request.is_loading is False
    assert request.error is None
    assert request.fallback_quantity == "1 tsp"


@pytest.mark.asyncio
async def test_empty_suggestions_fall_back_to_synthetic_entry():
    request = await ReplacementCoordinator(_catalog([])).request(_ingredient())
    assert request.suggestions == ["salt alternative"]
    assert request.error is None


@pytest.mark.asyncio
async def test_service_failure_falls_back_with_error():
    catalog = _catalog()
    catalog.substitutes.side_effect = ServiceError("down")
    request = await ReplacementCoordinator(catalog).request(_ingredient())
    assert request.suggestions == ["salt alternative"]
    assert request.error == "Unable to fetch suggestions right now."


@pytest.mark.asyncio
async def test_stale_substitutes_are_discarded():
    release = asyncio.Event()

    async def slow_substitutes(name):
        if name == "salt":
            await release.wait()
            return ["sea salt"]
        return ["lime juice"]

    catalog = _catalog()
    catalog.substitutes.side_effect = slow_substitutes
    coordinator = ReplacementCoordinator(catalog)

    first = asyncio.ensure_future(coordinator.request(_ingredient()))
    await asyncio.sleep(0)
    second = await coordinator.request(_ingredient(id="ing-9", name="lemon"))
    release.set()
    stale = await first

    assert coordinator.active is second
    assert second.suggestions == ["lime juice"]
    assert stale.suggestions == []
    assert stale.is_loading is True


@pytest.mark.asyncio
async def test_apply_uses_metadata_match():
    catalog = _catalog(match=IngredientMatch(name="extra virgin olive oil", image="https://img/evoo.jpg"))
    coordinator = ReplacementCoordinator(catalog)
    await coordinator.request(_ingredient())

    details = await coordinator.apply("2 tbsp of olive oil")

    catalog.search.assert_awaited_once_with("olive oil")
    assert details.name == "extra virgin olive oil"
    assert details.display_quantity == "2 tbsp"
    assert details.image == "https://img/evoo.jpg"
    assert coordinator.active is None


@pytest.mark.asyncio
async def test_apply_metadata_failure_keeps_parsed_name():
    catalog = _catalog()
    catalog.search.side_effect = ServiceError("down")
    coordinator = ReplacementCoordinator(catalog)
    await coordinator.request(_ingredient())

    details = await coordinator.apply("sea salt")

    assert details.name == "sea salt"
    assert details.display_quantity == "1 tsp"
    assert details.image == f"{INGREDIENT_IMAGE_BASE}sea-salt.jpg"


@pytest.mark.asyncio
async def test_apply_without_active_request_is_noop():
    assert await ReplacementCoordinator(_catalog()).apply("ghee") is None


@pytest.mark.asyncio
async def test_apply_blank_selection_is_noop():
    coordinator = ReplacementCoordinator(_catalog())
    await coordinator.request(_ingredient())
    assert await coordinator.apply("   ") is None
    assert coordinator.active is not None


@pytest.mark.asyncio
async def test_apply_discarded_when_superseded():
    release = asyncio.Event()

    async def slow_search(name):
        await release.wait()
        return None

    catalog = _catalog()
    catalog.search.side_effect = slow_search
    coordinator = ReplacementCoordinator(catalog)
    await coordinator.request(_ingredient())

    pending = asyncio.ensure_future(coordinator.apply("sea salt"))
    await asyncio.sleep(0)
    await coordinator.request(_ingredient(id="ing-9", name="lemon"))
    release.set()

    assert await pending is None
    assert coordinator.active.ingredient_id == "ing-9"
