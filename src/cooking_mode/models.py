from __future__ import annotations
from datetime import datetime
from typing import Literal, Optional, Union
from pydantic import BaseModel, Field

Phase = Literal["ingredients", "cooking", "completed"]
CategoryType = Literal["needs-prep", "needs-cooking", "needs-thawing", "needs-washing", "ready-to-use"]
Importance = Literal["crucial", "replaceable"]
DietaryPreference = Literal["none", "vegan", "vegetarian", "gluten-free", "keto", "dairy-free"]
Theme = Literal["light", "dark"]


class BaseIngredient(BaseModel):
    id: str
    name: str
    amount: float = 0.0
    unit: str = ""
    image: Optional[str] = None
    display_quantity: Optional[str] = None


class NutritionFacts(BaseModel):
    calories: Optional[str] = None
    protein: Optional[str] = None
    carbs: Optional[str] = None
    fat: Optional[str] = None
    fiber: Optional[str] = None


class Recipe(BaseModel):
    id: str
    name: str
    ingredients: list[BaseIngredient] = Field(default_factory=list)
    instructions: list[str] = Field(default_factory=list)
    servings: Optional[int] = None
    prep_time: Optional[int] = None
    cook_time: Optional[int] = None
    nutrition: Optional[NutritionFacts] = None


class CategorizedIngredient(BaseIngredient):
    category: CategoryType
    in_kitchen: bool = False
    checked: bool = False
    importance: Importance = "replaceable"


class IngredientGroup(BaseModel):
    type: CategoryType
    name: str
    icon: str
    ingredients: list[CategorizedIngredient] = Field(default_factory=list)


class IngredientReplacementDetails(BaseModel):
    name: str
    amount: Optional[float] = None
    unit: Optional[str] = None
    display_quantity: Optional[str] = None
    image: Optional[str] = None


class IngredientMatch(BaseModel):
    name: str
    image: Optional[str] = None


class Diner(BaseModel):
    id: str
    name: str
    dietary_preferences: list[DietaryPreference] = Field(default_factory=list)
    allergies: list[str] = Field(default_factory=list)
    custom_substitutions: dict[str, str] = Field(default_factory=dict)


class CookingStep(BaseModel):
    number: int
    instruction: str
    is_prep_step: bool = False
    estimated_time: Optional[int] = None
    ingredients_needed: list[str] = Field(default_factory=list)
    completed: bool = False


class TimerState(BaseModel):
    total_time: int
    remaining_time: int
    is_running: bool = True


class ReplacementRequest(BaseModel):
    ingredient_id: str
    ingredient_name: str
    fallback_quantity: Optional[str] = None
    suggestions: list[str] = Field(default_factory=list)
    is_loading: bool = True
    error: Optional[str] = None
    applied: Optional[IngredientReplacementDetails] = None


class SessionSnapshot(BaseModel):
    version: int = 1
    recipe_id: str
    phase: Phase = "ingredients"
    current_step: int = 0
    completed_steps: list[int] = Field(default_factory=list)
    checked_ingredients: list[str] = Field(default_factory=list)
    prep_steps: list[str] = Field(default_factory=list)
    updated_at: Optional[datetime] = None


class PhaseChanged(BaseModel):
    kind: Literal["phase_changed"] = "phase_changed"
    previous: Phase
    phase: Phase


class StepChanged(BaseModel):
    kind: Literal["step_changed"] = "step_changed"
    index: int


class TimerExpired(BaseModel):
    kind: Literal["timer_expired"] = "timer_expired"
    step_number: int


class ThemeChangeRequested(BaseModel):
    kind: Literal["theme_change_requested"] = "theme_change_requested"
    theme: Theme


class ReplacementApplied(BaseModel):
    kind: Literal["replacement_applied"] = "replacement_applied"
    ingredient_id: str
    replacement: IngredientReplacementDetails


class SessionClosed(BaseModel):
    kind: Literal["session_closed"] = "session_closed"


SessionEvent = Union[
    PhaseChanged, StepChanged, TimerExpired, ThemeChangeRequested, ReplacementApplied, SessionClosed
]
