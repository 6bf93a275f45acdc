from __future__ import annotations
import asyncio
from pathlib import Path
import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table
from cooking_mode.config import Config
from cooking_mode.kitchen import load_kitchen_items
from cooking_mode.models import Recipe, ReplacementApplied, SessionEvent, ThemeChangeRequested, TimerExpired
from cooking_mode.prep_steps import PrepStepAnalyzer
from cooking_mode.replacement import IngredientNotReplaceable
from cooking_mode.scaling import format_quantity
from cooking_mode.session import (
    KEY_COMPLETE,
    KEY_EXIT,
    KEY_NEXT,
    KEY_PREVIOUS,
    CookingSession,
    DinerLimitReached,
    SessionStore,
    UnknownDiner,
)
from cooking_mode.spoonacular import SpoonacularClient
from cooking_mode.steps import StepSequencer
from cooking_mode.timer import format_clock, run_clock

console = Console()
err_console = Console(stderr=True)

SHORTCUTS = {"": KEY_COMPLETE, ">": KEY_NEXT, "<": KEY_PREVIOUS, "q": KEY_EXIT, "quit": KEY_EXIT}


@click.group()
def cli():
    """Cooking Mode: step-by-step guided cooking from a recipe file."""
    pass


def build_session(recipe: Recipe, config: Config, kitchen_file: Path | None = None) -> CookingSession:
    analyzer = PrepStepAnalyzer(config) if config.anthropic_api_key else None
    catalog = SpoonacularClient(config) if config.spoonacular_api_key else None
    kitchen_items = load_kitchen_items(kitchen_file or (config.cooking_dir / "kitchen.json"))
    return CookingSession(
        recipe,
        kitchen_items=kitchen_items,
        sequencer=StepSequencer(analyzer),
        catalog=catalog,
        store=SessionStore(base_dir=config.cooking_dir),
        add_time_seconds=config.add_time_seconds,
        max_diners=config.max_diners,
    )


def _load_config() -> Config:
    try:
        return Config()
    except ValidationError as e:
        err_console.print(f"[red]Error:[/red] Invalid configuration: {e}")
        raise SystemExit(1)


@cli.command()
@click.argument("recipe_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--kitchen", "kitchen_file", default=None, type=click.Path(dir_okay=False, path_type=Path),
    help="JSON list of ingredients you already have (defaults to kitchen.json in the cooking dir)"
)
@click.option("--diners", default=1, type=int, show_default=True, help="Number of people eating")
def start(recipe_file: Path, kitchen_file: Path | None, diners: int):
    """Open a recipe in cooking mode."""
    config = _load_config()
    try:
        recipe = Recipe.model_validate_json(recipe_file.read_text())
    except ValidationError as e:
        err_console.print(f"[red]Error:[/red] {recipe_file} is not a valid recipe: {e}")
        raise SystemExit(1)

    if not recipe.instructions:
        err_console.print(f"[red]Error:[/red] {recipe.name} has no cooking instructions.")
        raise SystemExit(1)

    session = build_session(recipe, config, kitchen_file)
    try:
        for _ in range(diners - 1):
            session.add_diner()
    except DinerLimitReached as e:
        console.print(f"[yellow]{e}[/yellow]")

    try:
        asyncio.run(_run(session))
    except click.Abort:
        console.print("\n[dim]Left cooking mode. Progress is saved.[/dim]")


async def _prompt(label: str) -> str:
    return (await asyncio.to_thread(click.prompt, label, default="", show_default=False)).strip()


def _print_event(event: SessionEvent) -> None:
    if isinstance(event, TimerExpired):
        console.print(f"\n[bold red]⏰ Time's up[/bold red] for step {event.step_number}!")
    elif isinstance(event, ThemeChangeRequested):
        console.print(f"[dim]Switching to {event.theme} theme.[/dim]")
    elif isinstance(event, ReplacementApplied):
        console.print(f"[green]✓[/green] Swapped for [bold]{event.replacement.name}[/bold]")


async def _run(session: CookingSession) -> None:
    session.subscribe(_print_event)
    console.print(f"\n[bold]{session.recipe.name}[/bold]")
    console.print("[dim]Looking for prep steps...[/dim]")
    await session.prepare()
    clock = session.run_in_background(run_clock(session))
    try:
        while not session.closed and session.phase != "completed":
            if session.phase == "ingredients":
                _show_review(session)
                line = await _prompt("  start | replace N | check N | have N | diner add | diner remove N | quit")
                await _review_command(session, line)
            else:
                _show_step(session)
                line = await _prompt("  Say a command (Enter = done, > next, < back, + time, q quit)")
                _cooking_command(session, line)
        if session.phase == "completed":
            console.print("\n[green]✓[/green] [bold]All steps done. Enjoy your meal![/bold]\n")
    finally:
        session.close()
        await asyncio.gather(clock, return_exceptions=True)


def _show_review(session: CookingSession) -> None:
    factor = session.scaling_factor
    table = Table(title=f"Ingredients for {len(session.diners)} (×{factor:g})")
    table.add_column("#", justify="right")
    table.add_column("Ingredient")
    table.add_column("Quantity")
    table.add_column("Category")
    table.add_column("Importance")
    table.add_column("Kitchen")

    index = {ingredient.id: i for i, ingredient in enumerate(session.ingredients, start=1)}
    for group in session.ingredient_groups:
        for ingredient in group.ingredients:
            name = f"[strike]{ingredient.name}[/strike]" if ingredient.checked else ingredient.name
            table.add_row(
                str(index[ingredient.id]),
                name,
                format_quantity(ingredient.amount, ingredient.unit, ingredient.display_quantity),
                f"{group.icon} {group.name}",
                "[bold]crucial[/bold]" if ingredient.importance == "crucial" else "replaceable",
                "[green]✓[/green]" if ingredient.in_kitchen else "[red]✗[/red]",
            )
    console.print(table)
    prep = sum(1 for step in session.steps if step.is_prep_step)
    console.print(f"[dim]{session.total_steps} steps ({prep} prep)[/dim]")


def _show_step(session: CookingSession) -> None:
    step = session.current
    if step is None:
        return
    label = "Prep" if step.is_prep_step else "Step"
    console.print(f"\n[bold]{label} {step.number}/{session.total_steps}[/bold]  {step.instruction}")
    if step.ingredients_needed:
        console.print(f"  [dim]Uses: {', '.join(step.ingredients_needed)}[/dim]")
    timer = session.timer.state
    if timer is not None:
        console.print(f"  ⏱  {format_clock(timer.remaining_time)} / {format_clock(timer.total_time)}")


def _pick_ingredient(session: CookingSession, arg: str):
    if not arg.isdigit() or not 1 <= int(arg) <= len(session.ingredients):
        console.print(f"[red]✗[/red] No ingredient number {arg or '?'}.")
        return None
    return session.ingredients[int(arg) - 1]


async def _review_command(session: CookingSession, line: str) -> None:
    command, _, arg = line.partition(" ")
    command, arg = command.lower(), arg.strip()
    if command == "start":
        session.start_cooking()
    elif command in ("q", "quit"):
        session.close()
    elif command == "replace":
        ingredient = _pick_ingredient(session, arg)
        if ingredient is not None:
            await _replace(session, ingredient.id)
    elif command == "check":
        ingredient = _pick_ingredient(session, arg)
        if ingredient is not None:
            session.toggle_ingredient(ingredient.name)
    elif command == "have":
        ingredient = _pick_ingredient(session, arg)
        if ingredient is not None:
            session.toggle_in_kitchen(ingredient.name)
    elif command == "diner":
        _diner_command(session, arg)
    elif session.handle_transcript(line) is None:
        console.print("[yellow]Unknown command.[/yellow]")


def _diner_command(session: CookingSession, arg: str) -> None:
    action, _, target = arg.partition(" ")
    try:
        if action == "add":
            diner = session.add_diner()
            console.print(f"[green]✓[/green] Added {diner.name}")
        elif action == "remove" and target.strip().isdigit():
            index = int(target) - 1
            if not 0 <= index < len(session.diners):
                raise UnknownDiner(f"No diner number {target.strip()}.")
            session.remove_diner(session.diners[index].id)
        else:
            console.print("[yellow]Use: diner add | diner remove N[/yellow]")
    except (DinerLimitReached, UnknownDiner) as e:
        console.print(f"[red]✗[/red] {e}")


async def _replace(session: CookingSession, ingredient_id: str) -> None:
    try:
        console.print("  Fetching substitutes...", end="\r")
        request = await session.request_replacement(ingredient_id)
    except IngredientNotReplaceable as e:
        console.print(f"  [yellow]{e}[/yellow]")
        return
    if request is None:
        return
    if request.error:
        console.print(f"  [yellow]{request.error}[/yellow]")
    console.print(f"\n  [bold]Replace {request.ingredient_name}[/bold]")
    for i, suggestion in enumerate(request.suggestions, start=1):
        console.print(f"  {i}. {suggestion}")
    choice = await _prompt("  Pick a number or type your own (Enter to cancel)")
    if not choice:
        session.replacement.dismiss()
        return
    if choice.isdigit() and 1 <= int(choice) <= len(request.suggestions):
        choice = request.suggestions[int(choice) - 1]
    if await session.apply_replacement(choice) is None:
        console.print("  [red]✗[/red] Unable to update ingredient")


def _cooking_command(session: CookingSession, line: str) -> None:
    if line.lower() in SHORTCUTS:
        session.handle_key(SHORTCUTS[line.lower()])
    elif line == "+":
        session.add_time()
    elif line.lower().startswith("check "):
        ingredient = _pick_ingredient(session, line[6:].strip())
        if ingredient is not None:
            session.toggle_ingredient(ingredient.name)
    elif session.handle_transcript(line) is None:
        console.print(f"[yellow]Didn't catch that.[/yellow] Try: {', '.join(session.router.phrases)}")


@cli.command("sessions")
def list_sessions():
    """Show saved cooking sessions."""
    config = _load_config()
    snapshots = SessionStore(base_dir=config.cooking_dir).list()
    if not snapshots:
        console.print("No saved sessions. Run [bold]cook start RECIPE.json[/bold] to begin.")
        return

    table = Table(title="Cooking Sessions")
    table.add_column("Recipe", style="cyan")
    table.add_column("Phase")
    table.add_column("Step", justify="right")
    table.add_column("Done", justify="right")
    table.add_column("Updated")

    for s in snapshots:
        updated = s.updated_at.strftime("%Y-%m-%d %H:%M") if s.updated_at else "—"
        table.add_row(s.recipe_id, s.phase, str(s.current_step + 1), str(len(s.completed_steps)), updated)

    console.print(table)


@cli.command("reset")
@click.argument("recipe_id")
def reset(recipe_id: str):
    """Forget saved progress for a recipe."""
    config = _load_config()
    if SessionStore(base_dir=config.cooking_dir).clear(recipe_id):
        console.print(f"[green]✓[/green] Cleared session for [bold]{recipe_id}[/bold]")
    else:
        err_console.print(f"[red]Error:[/red] No saved session for '{recipe_id}'.")
        raise SystemExit(1)
