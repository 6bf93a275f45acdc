from __future__ import annotations
from pathlib import Path
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-5"
    spoonacular_api_key: str = ""
    spoonacular_base_url: str = "https://api.spoonacular.com"
    request_timeout: float = 15.0
    cooking_dir: Path = Path.home() / ".cooking_mode"
    add_time_seconds: int = 120
    max_diners: int = 8
    prep_steps_system_prompt: str = (
        "You are a professional chef's assistant helping with mise en place. "
        "Given a recipe's ingredients and instructions, identify explicit preparation steps "
        "(cutting, washing, marinating, chopping, slicing, etc.) that are required for the "
        "ingredients but might be implied or buried in the main instructions.\n\n"
        "Rules:\n"
        "- Only include steps that happen BEFORE the main cooking process starts\n"
        "- Do not include obvious things like 'get ingredients out'\n"
        "- Focus on knife work, washing, and measuring if complex\n"
        "- Mention each ingredient by the name used in the ingredient list\n\n"
        "Return ONLY a JSON array of strings, e.g.\n"
        '["Dice the onions finely", "Peel and chop the carrots", "Wash the spinach thoroughly"]'
    )

    @field_validator("add_time_seconds", "max_diners", "request_timeout", mode="after")
    @classmethod
    def require_positive(cls, v):
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v
