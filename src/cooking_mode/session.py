from __future__ import annotations
import asyncio
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional
from pydantic import ValidationError
from cooking_mode.categorizer import group_by_category
from cooking_mode.ingredients import derive_ingredients, in_kitchen
from cooking_mode.models import (
    CategorizedIngredient,
    CookingStep,
    Diner,
    IngredientGroup,
    IngredientReplacementDetails,
    Phase,
    PhaseChanged,
    Recipe,
    ReplacementApplied,
    ReplacementRequest,
    SessionClosed,
    SessionEvent,
    SessionSnapshot,
    StepChanged,
    ThemeChangeRequested,
    TimerExpired,
)
from cooking_mode.replacement import ReplacementCoordinator
from cooking_mode.scaling import scaling_factor
from cooking_mode.steps import StepSequencer, build_steps
from cooking_mode.timer import TimerController
from cooking_mode.voice import VoiceCommand, VoiceCommandRouter

logger = logging.getLogger(__name__)

KEY_NEXT = "ArrowRight"
KEY_PREVIOUS = "ArrowLeft"
KEY_COMPLETE = " "
KEY_EXIT = "Escape"


class UnknownIngredient(Exception):
    pass


class UnknownDiner(Exception):
    pass


class DinerLimitReached(Exception):
    pass


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


class SessionStore:
    """Key-value store of session snapshots, one JSON file per recipe id."""

    def __init__(self, base_dir: Path | None = None):
        self.base_dir = base_dir or (Path.home() / ".cooking_mode")
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, recipe_id: str) -> Path:
        key = re.sub(r"[^\w-]", "_", recipe_id)
        return self.base_dir / f"session-{key}.json"

    def load(self, recipe_id: str) -> Optional[SessionSnapshot]:
        path = self._path(recipe_id)
        if not path.exists():
            return None
        try:
            return SessionSnapshot.model_validate_json(path.read_text())
        except ValidationError:
            logger.warning("Could not read session file %s", path.name)
            return None

    def save(self, snapshot: SessionSnapshot) -> None:
        snapshot.updated_at = _now()
        self._path(snapshot.recipe_id).write_text(snapshot.model_dump_json(indent=2))

    def clear(self, recipe_id: str) -> bool:
        path = self._path(recipe_id)
        if not path.exists():
            return False
        path.unlink()
        return True

    def list(self) -> list[SessionSnapshot]:
        snapshots = []
        for path in sorted(self.base_dir.glob("session-*.json")):
            try:
                snapshots.append(SessionSnapshot.model_validate_json(path.read_text()))
            except ValidationError:
                logger.warning("Could not read session file %s", path.name)
        return snapshots


class CookingSession:
    """One guided cooking run over a recipe.

    Phases move ingredients -> cooking -> completed, with restart going back
    to the first cooking step. Every action method is a synchronous mutation
    that re-derives ingredients and steps, re-evaluates the timer and the
    voice command table, and writes the snapshot through to the store.
    The awaiting operations re-check their request before applying results.
    """

    def __init__(
        self,
        recipe: Recipe,
        kitchen_items: list[str] | None = None,
        sequencer: StepSequencer | None = None,
        catalog=None,
        store: SessionStore | None = None,
        add_time_seconds: int = 120,
        max_diners: int = 8,
    ):
        self.recipe = recipe
        self.kitchen_items = list(kitchen_items or [])
        self.sequencer = sequencer or StepSequencer()
        self.replacement = ReplacementCoordinator(catalog)
        self.store = store
        self.add_time_seconds = add_time_seconds
        self.max_diners = max_diners

        self.timer = TimerController()
        self.router = VoiceCommandRouter()
        self.diners: list[Diner] = [Diner(id="diner-1", name="Person 1")]
        self.replacements: dict[str, IngredientReplacementDetails] = {}

        self.phase: Phase = "ingredients"
        self.current_step = 0
        self.completed_steps: set[int] = set()
        self.checked_ingredients: set[str] = set()
        self.prep_steps: list[str] = []
        self.closed = False

        self.ingredients: list[CategorizedIngredient] = []
        self.steps: list[CookingStep] = []

        self._subscribers: list[Callable[[SessionEvent], None]] = []
        self._tasks: set[asyncio.Task] = set()
        self._prep_requested = False
        self._diner_seq = 1

        snapshot = store.load(recipe.id) if store else None
        if snapshot is not None:
            self._restore(snapshot)
        self._refresh()

    # -- derived state -------------------------------------------------

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def current(self) -> Optional[CookingStep]:
        if 0 <= self.current_step < len(self.steps):
            return self.steps[self.current_step]
        return None

    @property
    def scaling_factor(self) -> float:
        return scaling_factor(len(self.diners), self.recipe.servings)

    @property
    def ingredient_groups(self) -> list[IngredientGroup]:
        return group_by_category(self.ingredients)

    def ingredient(self, ingredient_id: str) -> CategorizedIngredient:
        for ingredient in self.ingredients:
            if ingredient.id == ingredient_id:
                return ingredient
        raise UnknownIngredient(f"No ingredient with id '{ingredient_id}'.")

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            recipe_id=self.recipe.id,
            phase=self.phase,
            current_step=self.current_step,
            completed_steps=sorted(self.completed_steps),
            checked_ingredients=sorted(self.checked_ingredients),
            prep_steps=list(self.prep_steps),
        )

    def _restore(self, snapshot: SessionSnapshot) -> None:
        self.phase = snapshot.phase
        self.current_step = snapshot.current_step
        self.completed_steps = set(snapshot.completed_steps)
        self.checked_ingredients = set(snapshot.checked_ingredients)
        self.prep_steps = list(snapshot.prep_steps)

    def _refresh(self) -> None:
        self.ingredients = derive_ingredients(
            self.recipe.ingredients,
            self.diners,
            self.replacements,
            self.kitchen_items,
            self.checked_ingredients,
            self.recipe.servings,
        )
        self.steps = build_steps(
            self.prep_steps, self.recipe.instructions, self.ingredients, self.completed_steps
        )
        self.current_step = max(0, min(self.current_step, self.total_steps - 1))
        self.router.rebuild(self.phase, self.current_step, self.total_steps)
        self._sync_timer()

    def _sync_timer(self) -> None:
        step = self.current
        if self.phase != "cooking" or step is None:
            self.timer.discard()
            return
        if step.estimated_time and self.timer.state is None:
            self.timer.start(step.estimated_time)

    def _commit(self) -> None:
        self._refresh()
        if self.store is not None:
            self.store.save(self.snapshot())

    # -- events --------------------------------------------------------

    def subscribe(self, callback: Callable[[SessionEvent], None]) -> None:
        self._subscribers.append(callback)

    def _emit(self, event: SessionEvent) -> None:
        if self.closed:
            return
        for callback in list(self._subscribers):
            callback(event)

    def _set_phase(self, phase: Phase) -> None:
        if phase == self.phase:
            return
        previous, self.phase = self.phase, phase
        self.timer.discard()
        self._emit(PhaseChanged(previous=previous, phase=phase))

    def _move_to(self, index: int) -> bool:
        index = max(0, min(index, self.total_steps - 1))
        if index == self.current_step:
            return False
        self.current_step = index
        self.timer.discard()
        self._emit(StepChanged(index=index))
        return True

    # -- phase and step actions ----------------------------------------

    def start_cooking(self) -> None:
        if self.closed or self.phase != "ingredients":
            return
        self._set_phase("cooking")
        self._commit()

    def go_to_step(self, index: int) -> None:
        if self.closed or self.phase != "cooking":
            return
        if self._move_to(index):
            self._commit()

    def next_step(self) -> None:
        if self.closed or self.phase != "cooking":
            return
        self.completed_steps.add(self.current_step)
        target = min(self.total_steps - 1, self.current_step + 1)
        self._move_to(target)
        self.timer.discard()
        if target >= self.total_steps - 1 and len(self.completed_steps) >= self.total_steps:
            self._set_phase("completed")
        self._commit()

    def previous_step(self) -> None:
        self.go_to_step(self.current_step - 1)

    def complete_step(self) -> None:
        if self.closed or self.phase != "cooking":
            return
        self.completed_steps.add(self.current_step)
        if self.current_step + 1 >= self.total_steps:
            self.timer.discard()
            self._set_phase("completed")
        else:
            self._move_to(self.current_step + 1)
        self._commit()

    def skip_step(self) -> None:
        if self.closed or self.phase != "cooking":
            return
        if self.current_step + 1 >= self.total_steps:
            self.timer.discard()
            self._set_phase("completed")
        else:
            self._move_to(self.current_step + 1)
        self._commit()

    def finish(self) -> None:
        """Jump to the last step, mark every step done and complete the session."""
        if self.closed or self.phase != "cooking":
            return
        self._move_to(self.total_steps - 1)
        self.completed_steps.update(range(self.total_steps))
        self._refresh()
        self.complete_step()

    def restart(self) -> None:
        """Clear progress and return to the first cooking step."""
        if self.closed or self.phase == "ingredients":
            return
        self.completed_steps.clear()
        self.checked_ingredients.clear()
        self._move_to(0)
        self.timer.discard()
        self._set_phase("cooking")
        self._commit()

    def reset_all(self) -> None:
        """Forget all progress, including prep steps, and go back to the ingredient review."""
        if self.closed:
            return
        self.completed_steps.clear()
        self.checked_ingredients.clear()
        self.prep_steps = []
        self._prep_requested = False
        self.current_step = 0
        self._set_phase("ingredients")
        self._refresh()
        if self.store is not None:
            self.store.clear(self.recipe.id)

    def add_time(self, seconds: int | None = None) -> None:
        if self.closed:
            return
        self.timer.add_time(seconds if seconds is not None else self.add_time_seconds)

    def tick(self) -> None:
        if self.closed:
            return
        if self.timer.tick():
            self._emit(TimerExpired(step_number=self.current_step + 1))

    # -- ingredient and diner actions ----------------------------------

    def toggle_ingredient(self, name: str) -> None:
        if self.closed:
            return
        if name in self.checked_ingredients:
            self.checked_ingredients.discard(name)
        else:
            self.checked_ingredients.add(name)
        self._commit()

    def toggle_in_kitchen(self, name: str) -> None:
        if self.closed:
            return
        if in_kitchen(name, self.kitchen_items):
            self.kitchen_items = [item for item in self.kitchen_items if not in_kitchen(name, [item])]
        else:
            self.kitchen_items.append(name)
        self._refresh()

    def add_diner(self, name: str | None = None) -> Optional[Diner]:
        if self.closed:
            return None
        if len(self.diners) >= self.max_diners:
            raise DinerLimitReached(f"A table seats at most {self.max_diners} diners.")
        self._diner_seq += 1
        diner = Diner(id=f"diner-{self._diner_seq}", name=name or f"Person {len(self.diners) + 1}")
        self.diners.append(diner)
        self._refresh()
        return diner

    def update_diner(self, diner: Diner) -> None:
        if self.closed:
            return
        preferences = [p for p in dict.fromkeys(diner.dietary_preferences) if p != "none"]
        updated = diner.model_copy(update={"dietary_preferences": preferences or ["none"]})
        for index, existing in enumerate(self.diners):
            if existing.id == diner.id:
                self.diners[index] = updated
                self._refresh()
                return
        raise UnknownDiner(f"No diner with id '{diner.id}'.")

    def remove_diner(self, diner_id: str) -> None:
        if self.closed:
            return
        remaining = [d for d in self.diners if d.id != diner_id]
        if len(remaining) == len(self.diners):
            raise UnknownDiner(f"No diner with id '{diner_id}'.")
        self.diners = remaining
        self._refresh()

    # -- asynchronous enrichment ---------------------------------------

    async def prepare(self) -> None:
        """Fetch prep steps once per session unless they were restored."""
        if self.prep_steps or self._prep_requested:
            return
        self._prep_requested = True
        prep_steps = await self.sequencer.fetch_prep_steps(
            self.recipe.ingredients, self.recipe.instructions, self.ingredients
        )
        if self.closed or not prep_steps:
            return
        if self.phase != "ingredients":
            logger.info("Cooking already started, not inserting %d prep steps", len(prep_steps))
            return
        self.prep_steps = prep_steps
        self._commit()

    async def request_replacement(self, ingredient_id: str) -> Optional[ReplacementRequest]:
        if self.closed:
            return None
        return await self.replacement.request(self.ingredient(ingredient_id))

    async def apply_replacement(self, selection: str) -> Optional[IngredientReplacementDetails]:
        request = self.replacement.active
        details = await self.replacement.apply(selection)
        if details is None or self.closed:
            return None
        self.replacements[request.ingredient_id] = details
        self._commit()
        self._emit(ReplacementApplied(ingredient_id=request.ingredient_id, replacement=details))
        return details

    # -- command input -------------------------------------------------

    def handle_transcript(self, transcript: str) -> Optional[VoiceCommand]:
        if self.closed:
            return None
        command = self.router.match(transcript)
        if command is not None:
            self._execute(command)
        return command

    def _execute(self, command: VoiceCommand) -> None:
        if command.action == "theme":
            self._emit(ThemeChangeRequested(theme=command.theme))
        elif command.action == "go_to":
            self.go_to_step(command.target)
        elif command.action == "finish":
            self.finish()
        elif command.action == "restart":
            self.restart()
        elif command.action == "skip":
            self.skip_step()

    def handle_key(self, key: str) -> bool:
        if self.closed or self.phase != "cooking":
            return False
        if key == KEY_NEXT:
            self.next_step()
        elif key == KEY_PREVIOUS:
            self.previous_step()
        elif key == KEY_COMPLETE:
            self.complete_step()
        elif key == KEY_EXIT:
            self.close()
        else:
            return False
        return True

    # -- lifecycle -----------------------------------------------------

    def run_in_background(self, coro) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def close(self) -> None:
        if self.closed:
            return
        self.timer.discard()
        self.replacement.dismiss()
        for task in list(self._tasks):
            task.cancel()
        self._emit(SessionClosed())
        self.closed = True
