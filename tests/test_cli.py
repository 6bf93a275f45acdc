import json
from unittest.mock import patch
import pytest
from click.testing import CliRunner
from cooking_mode.cli import build_session, cli
from cooking_mode.config import Config
from cooking_mode.models import SessionSnapshot
from cooking_mode.session import SessionStore


@pytest.fixture
def env(tmp_path):
    return {
        "COOKING_DIR": str(tmp_path / "cooking"),
        "ANTHROPIC_API_KEY": "",
        "SPOONACULAR_API_KEY": "",
    }


@pytest.fixture
def recipe_file(tmp_path, recipe):
    path = tmp_path / "recipe.json"
    path.write_text(recipe.model_dump_json())
    return path


def test_module_invocation_works():
    """python -m cooking_mode must work (requires __main__.py)."""
    import subprocess, sys
    result = subprocess.run(
        [sys.executable, "-m", "cooking_mode", "--help"],
        capture_output=True, text=True,
        env={**__import__("os").environ, "PYTHONPATH": str(__import__("pathlib").Path(__file__).parents[1] / "src")},
    )
    assert result.returncode == 0
    assert "cooking" in result.stdout.lower() or "Usage" in result.stdout


def test_sessions_empty(env):
    runner = CliRunner()
    result = runner.invoke(cli, ["sessions"], env=env)
    assert result.exit_code == 0
    assert "No saved sessions" in result.output


def test_sessions_lists_saved_progress(env, tmp_path):
    SessionStore(base_dir=tmp_path / "cooking").save(
        SessionSnapshot(recipe_id="recipe-42", phase="cooking", current_step=1, completed_steps=[0])
    )
    runner = CliRunner()
    result = runner.invoke(cli, ["sessions"], env=env)
    assert result.exit_code == 0
    assert "recipe-42" in result.output
    assert "cooking" in result.output


def test_reset_exits_nonzero_when_missing(env):
    runner = CliRunner()
    result = runner.invoke(cli, ["reset", "nope"], env=env)
    assert result.exit_code == 1
    assert "No saved session" in result.output


def test_reset_clears_saved_session(env, tmp_path):
    store = SessionStore(base_dir=tmp_path / "cooking")
    store.save(SessionSnapshot(recipe_id="recipe-42"))
    runner = CliRunner()
    result = runner.invoke(cli, ["reset", "recipe-42"], env=env)
    assert result.exit_code == 0
    assert store.load("recipe-42") is None


def test_start_rejects_recipe_without_instructions(env, tmp_path, recipe):
    path = tmp_path / "empty.json"
    path.write_text(recipe.model_copy(update={"instructions": []}).model_dump_json())
    runner = CliRunner()
    result = runner.invoke(cli, ["start", str(path)], env=env)
    assert result.exit_code == 1
    assert "has no cooking instructions" in result.output


def test_start_rejects_invalid_recipe(env, tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"name": "No id"}))
    runner = CliRunner()
    result = runner.invoke(cli, ["start", str(path)], env=env)
    assert result.exit_code == 1
    assert "Error" in result.output


def test_start_shows_ingredients_and_quits(env, recipe_file):
    runner = CliRunner()
    result = runner.invoke(cli, ["start", str(recipe_file), "--diners", "2"], env=env, input="quit\n")
    assert result.exit_code == 0
    assert "Ingredients for 2" in result.output
    assert "chicken breast" in result.output


def test_start_runs_through_to_completion(env, recipe_file, tmp_path):
    runner = CliRunner()
    result = runner.invoke(cli, ["start", str(recipe_file)], env=env, input="start\ncomplete\n")
    assert result.exit_code == 0
    assert "Step 1/4" in result.output
    assert "All steps done" in result.output
    snapshot = SessionStore(base_dir=tmp_path / "cooking").load("recipe-42")
    assert snapshot.phase == "completed"
    assert snapshot.completed_steps == [0, 1, 2, 3]


def test_build_session_skips_services_without_keys(recipe, tmp_path):
    config = Config(cooking_dir=tmp_path, anthropic_api_key="", spoonacular_api_key="")
    session = build_session(recipe, config)
    assert session.sequencer.analyzer is None
    assert session.replacement.catalog is None
    assert session.kitchen_items == []


@patch("cooking_mode.cli.SpoonacularClient")
@patch("cooking_mode.cli.PrepStepAnalyzer")
def test_build_session_wires_services_with_keys(MockAnalyzer, MockClient, recipe, tmp_path):
    (tmp_path / "kitchen.json").write_text(json.dumps(["salt"]))
    config = Config(cooking_dir=tmp_path, anthropic_api_key="a", spoonacular_api_key="s")
    session = build_session(recipe, config)
    assert session.sequencer.analyzer is MockAnalyzer.return_value
    assert session.replacement.catalog is MockClient.return_value
    assert session.ingredient("ing-3").in_kitchen is True
