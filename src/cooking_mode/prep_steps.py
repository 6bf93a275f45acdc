from __future__ import annotations
import json
import re
import anthropic
from cooking_mode.config import Config


class PrepStepError(Exception):
    pass


def _extract_json(text: str) -> str:
    """Extract a JSON array or object from text that may contain extra prose."""
    match = re.search(r"[\[{].*[\]}]", text, re.DOTALL)
    if match:
        return match.group(0)
    return text


def _steps_from(data) -> list[str]:
    if isinstance(data, list):
        return [s for s in data if isinstance(s, str)]
    if isinstance(data, dict):
        for key in ("prepSteps", "prep_steps", "steps"):
            if isinstance(data.get(key), list):
                return [s for s in data[key] if isinstance(s, str)]
        # Some responses wrap the array under an arbitrary key.
        return [s for value in data.values() if isinstance(value, list) for s in value if isinstance(s, str)]
    raise PrepStepError(f"Unexpected prep step payload: {type(data).__name__}")


class PrepStepAnalyzer:
    """Asks an LLM to decompose a recipe into mise en place steps."""

    def __init__(self, config: Config):
        self.config = config

    async def analyze(self, ingredients: list[str], instructions: list[str]) -> list[str]:
        client = anthropic.AsyncAnthropic(api_key=self.config.anthropic_api_key)
        user_content = (
            f"Ingredients:\n{json.dumps(ingredients)}\n\n"
            f"Instructions:\n{json.dumps(instructions)}"
        )

        try:
            response = await client.messages.create(
                model=self.config.anthropic_model,
                max_tokens=1024,
                system=self.config.prep_steps_system_prompt,
                messages=[{"role": "user", "content": user_content}],
            )
        except anthropic.APIError as e:
            raise PrepStepError(f"Prep step request failed: {e}") from e

        try:
            raw_text = response.content[0].text
        except (IndexError, AttributeError) as e:
            raise PrepStepError(f"Empty prep step response: {e}") from e
        try:
            data = json.loads(_extract_json(raw_text))
        except (json.JSONDecodeError, AttributeError) as e:
            raise PrepStepError(
                f"Failed to parse LLM response as JSON: {e}\n\nRaw response:\n{raw_text}"
            ) from e
        return _steps_from(data)
