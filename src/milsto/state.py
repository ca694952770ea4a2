"""State directory and display-toggle settings shared by the CLI views."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)

STATE_DIR_NAME = ".milsto"
SETTINGS_FILENAME = "settings.json"
HOME_ENV_VAR = "MILSTO_HOME"

# CLI name -> persisted key
FLAG_KEYS = {
    "title": "showTitle",
    "target": "showTarget",
    "countdown": "showCountdown",
    "notes": "showNotes",
}


def default_state_dir() -> Path:
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / STATE_DIR_NAME


def _settings_path(state_dir: Path) -> Path:
    return state_dir / SETTINGS_FILENAME


@dataclass(frozen=True)
class DisplayFlags:
    showTitle: bool = True
    showTarget: bool = True
    showCountdown: bool = True
    showNotes: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DisplayFlags":
        defaults = cls()
        values = {}
        for key in FLAG_KEYS.values():
            value = data.get(key)
            # only real JSON booleans count; "false" or 0 fall back to the default
            values[key] = value if isinstance(value, bool) else getattr(defaults, key)
        return cls(**values)

    def to_dict(self) -> Dict[str, bool]:
        return asdict(self)

    def toggled(self, name: str) -> "DisplayFlags":
        key = flag_key(name)
        return replace(self, **{key: not getattr(self, key)})


def flag_key(name: str) -> str:
    """Map ``notes`` or ``showNotes`` to the persisted key."""
    if name in FLAG_KEYS:
        return FLAG_KEYS[name]
    if name in FLAG_KEYS.values():
        return name
    raise ValueError(f"Unknown display flag '{name}'. Choose from: {', '.join(FLAG_KEYS)}")


def load_display_flags(state_dir: Path) -> DisplayFlags:
    path = _settings_path(state_dir)
    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable settings file %s", path)
            data = {}
        if isinstance(data, dict):
            return DisplayFlags.from_dict(data)
    return DisplayFlags()


def save_display_flags(state_dir: Path, flags: DisplayFlags) -> None:
    state_dir.mkdir(parents=True, exist_ok=True)
    path = _settings_path(state_dir)
    path.write_text(json.dumps(flags.to_dict(), indent=2), encoding="utf-8")


def ensure_display_flags(state_dir: Path) -> DisplayFlags:
    """Write the default flags on first launch; leave existing settings alone."""
    if not _settings_path(state_dir).exists():
        flags = DisplayFlags()
        save_display_flags(state_dir, flags)
        return flags
    return load_display_flags(state_dir)


def toggle_flag(state_dir: Path, name: str) -> DisplayFlags:
    flags = load_display_flags(state_dir).toggled(name)
    save_display_flags(state_dir, flags)
    logger.info("Toggled %s to %s", flag_key(name), getattr(flags, flag_key(name)))
    return flags
