"""
Stored pricing preferences.

The engine always takes ``tax_included`` as an explicit argument. This
module is where call sites read the user's default for it: the
``CART_TAX_INCLUDED`` environment variable wins, then the
``tax_included`` key of a JSON preferences file.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

ENV_TAX_INCLUDED = "CART_TAX_INCLUDED"
ENV_PREFERENCES = "CART_TAX_PREFERENCES"
DEFAULT_PREFERENCES_PATH = Path.home() / ".cart_tax" / "preferences.json"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def parse_flag(value: object) -> Optional[bool]:
    """Read a yes/no flag from a bool or a string; None if unrecognised."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    return None


def preferences_path(path: Union[str, Path, None] = None) -> Path:
    if path is not None:
        return Path(path)
    env_path = os.getenv(ENV_PREFERENCES)
    return Path(env_path) if env_path else DEFAULT_PREFERENCES_PATH


def _read_preferences(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable preferences file %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def get_tax_included_setting(
    default: bool = False,
    path: Union[str, Path, None] = None,
) -> bool:
    """Return the stored tax-inclusive pricing preference, or ``default``."""
    env_value = os.getenv(ENV_TAX_INCLUDED)
    if env_value is not None:
        parsed = parse_flag(env_value)
        if parsed is not None:
            return parsed
        logger.warning("Ignoring %s=%r", ENV_TAX_INCLUDED, env_value)

    parsed = parse_flag(_read_preferences(preferences_path(path)).get("tax_included"))
    return default if parsed is None else parsed


def set_tax_included_setting(
    value: bool,
    path: Union[str, Path, None] = None,
) -> Path:
    """Persist the tax-inclusive preference, keeping other stored keys."""
    target = preferences_path(path)
    data = _read_preferences(target)
    data["tax_included"] = bool(value)
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    return target
