from __future__ import annotations
import re
from typing import Optional
import httpx
from cooking_mode.config import Config
from cooking_mode.models import IngredientMatch

INGREDIENT_IMAGE_BASE = "https://img.spoonacular.com/ingredients_250x250/"


class ServiceError(Exception):
    pass


def ingredient_image(name: str, image: Optional[str] = None) -> str:
    if image:
        return image if image.startswith("http") else f"{INGREDIENT_IMAGE_BASE}{image}"
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return f"{INGREDIENT_IMAGE_BASE}{slug}.jpg"


class SpoonacularClient:
    """Ingredient substitutes and ingredient search against the Spoonacular API."""

    def __init__(self, config: Config):
        self.config = config

    async def _get(self, path: str, params: dict) -> dict:
        url = f"{self.config.spoonacular_base_url}{path}"
        params = {**params, "apiKey": self.config.spoonacular_api_key}
        try:
            async with httpx.AsyncClient(timeout=self.config.request_timeout) as client:
                response = await client.get(url, params=params)
        except httpx.ConnectError:
            raise ServiceError(f"Could not connect to {self.config.spoonacular_base_url}.")
        except httpx.TimeoutException:
            raise ServiceError(f"Request to {path} timed out.")
        except httpx.RequestError as e:
            raise ServiceError(f"Request to {path} failed: {e}") from e

        if response.status_code in (401, 402):
            raise ServiceError(f"Spoonacular rejected the API key or quota ({response.status_code}).")
        if response.status_code >= 400:
            raise ServiceError(f"HTTP {response.status_code} error calling {path}")

        try:
            data = response.json()
        except ValueError as e:
            raise ServiceError(f"Invalid JSON from {path}: {e}") from e
        if not isinstance(data, dict):
            raise ServiceError(f"Unexpected response from {path}: {type(data).__name__}")
        return data

    async def substitutes(self, ingredient_name: str) -> list[str]:
        data = await self._get("/food/ingredients/substitutes", {"ingredientName": ingredient_name})
        names = []
        for sub in data.get("substitutes") or []:
            name = sub.get("name") if isinstance(sub, dict) else sub
            if isinstance(name, str) and name.strip():
                names.append(name.strip())
        return names

    async def search(self, query: str) -> Optional[IngredientMatch]:
        data = await self._get("/food/ingredients/search", {"query": query, "number": 5})
        results = [r for r in data.get("results") or [] if isinstance(r, dict)]
        if not results:
            return None
        first = results[0]
        name = first.get("name") or query
        return IngredientMatch(name=name, image=ingredient_image(name, first.get("image")))
