"""Settings for the controller, loaded from the ``[swipe_unlock]`` table of a TOML file."""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

from .registry import POLICY_MULTI, POLICY_SINGLE, SessionPolicy
from .scanner import DEFAULT_RESCAN_DELAY_SECONDS

logger = logging.getLogger("swipe_unlock.config")

CONFIG_ENV_VAR = "SWIPE_UNLOCK_CONFIG"
CONFIG_TABLE = "swipe_unlock"
VALID_POLICIES = [POLICY_MULTI, POLICY_SINGLE]


def normalize_choice(value: str, allowed: list[str], fallback: str) -> str:
    """Normalize a user value to an allowed choice."""
    candidate = value.strip().lower()
    for option in allowed:
        if candidate == option.lower():
            return option
    return fallback


def _as_bool(value: Any, fallback: bool | None) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    return fallback


@dataclass
class SwipeUnlockSettings:
    session_policy: str = POLICY_MULTI
    close_on_transcript_change: bool | None = None
    rescan_delay: float = DEFAULT_RESCAN_DELAY_SECONDS
    user_name: str = "User"
    char_name: str = ""
    translation_db: str | None = None
    dedupe_lookups: bool = True

    def policy(self) -> SessionPolicy:
        return SessionPolicy.from_name(self.session_policy, self.close_on_transcript_change)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "session_policy": self.session_policy,
            "rescan_delay": self.rescan_delay,
            "user_name": self.user_name,
            "char_name": self.char_name,
            "dedupe_lookups": self.dedupe_lookups,
        }
        if self.close_on_transcript_change is not None:
            data["close_on_transcript_change"] = self.close_on_transcript_change
        if self.translation_db is not None:
            data["translation_db"] = self.translation_db
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SwipeUnlockSettings:
        defaults = cls()
        try:
            rescan_delay = float(data.get("rescan_delay", defaults.rescan_delay))
        except (TypeError, ValueError):
            rescan_delay = defaults.rescan_delay
        if rescan_delay < 0:
            rescan_delay = defaults.rescan_delay

        translation_db = data.get("translation_db")
        return cls(
            session_policy=normalize_choice(
                str(data.get("session_policy", defaults.session_policy)),
                VALID_POLICIES,
                defaults.session_policy,
            ),
            close_on_transcript_change=_as_bool(data.get("close_on_transcript_change"), None),
            rescan_delay=rescan_delay,
            user_name=str(data.get("user_name") or defaults.user_name),
            char_name=str(data.get("char_name") or ""),
            translation_db=str(translation_db) if translation_db else None,
            dedupe_lookups=bool(_as_bool(data.get("dedupe_lookups"), defaults.dedupe_lookups)),
        )


def load_settings(path: Union[str, Path, None] = None) -> SwipeUnlockSettings:
    """Load settings from *path* (or ``$SWIPE_UNLOCK_CONFIG``); defaults when absent."""
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR)
    if not path:
        return SwipeUnlockSettings()

    config_path = Path(path).expanduser()
    try:
        with config_path.open("rb") as handle:
            document = tomllib.load(handle)
    except FileNotFoundError:
        logger.debug("[SwipeUnlock Config] %s not found; using defaults.", config_path)
        return SwipeUnlockSettings()

    table = document.get(CONFIG_TABLE, {})
    if not isinstance(table, dict):
        logger.warning(
            "[SwipeUnlock Config] [%s] in %s is not a table; using defaults.", CONFIG_TABLE, config_path
        )
        return SwipeUnlockSettings()
    return SwipeUnlockSettings.from_dict(table)
