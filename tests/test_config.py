from pathlib import Path
import pytest
from cooking_mode.config import Config


def test_config_reads_keys_from_env(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test-key-123")
    monkeypatch.setenv("SPOONACULAR_API_KEY", "spoon-key")
    config = Config()
    assert config.anthropic_api_key == "test-key-123"
    assert config.spoonacular_api_key == "spoon-key"


def test_config_keys_optional(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.delenv("SPOONACULAR_API_KEY", raising=False)
    config = Config()
    assert config.anthropic_api_key == ""


def test_config_defaults():
    config = Config()
    assert config.add_time_seconds == 120
    assert config.max_diners == 8
    assert config.spoonacular_base_url == "https://api.spoonacular.com"


def test_config_cooking_dir_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("COOKING_DIR", str(tmp_path))
    assert Config().cooking_dir == Path(tmp_path)


def test_config_rejects_non_positive_add_time(monkeypatch):
    monkeypatch.setenv("ADD_TIME_SECONDS", "0")
    with pytest.raises(ValueError, match="greater than zero"):
        Config()


def test_config_system_prompt_asks_for_json():
    assert "JSON array" in Config().prep_steps_system_prompt
