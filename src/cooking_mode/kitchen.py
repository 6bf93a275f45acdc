from __future__ import annotations
import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def load_kitchen_items(path: Path) -> list[str]:
    """Read ingredient names from a kitchen inventory file.

    Accepts a JSON list of names or of objects with a ``name`` field.
    A missing or unreadable file is treated as an empty kitchen.
    """
    if not path.exists():
        return []
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError):
        logger.warning("Could not read kitchen inventory %s", path.name)
        return []
    if not isinstance(data, list):
        logger.warning("Kitchen inventory %s is not a list", path.name)
        return []
    names = []
    for item in data:
        name = item.get("name", "") if isinstance(item, dict) else item
        if isinstance(name, str) and name.strip():
            names.append(name.strip())
    return names
