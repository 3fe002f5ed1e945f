"""Reading and writing the per-user configuration file."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path

CONFIG_FILE_NAME = ".gatorconfig.json"

_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def config_file_path() -> Path:
    """Return the location of the configuration file in the home directory."""
    return Path.home() / CONFIG_FILE_NAME


@dataclass
class Config:
    """Database location and the name of the user currently logged in."""

    db_url: str = ""
    current_user_name: str = ""
    path: Path | None = field(default=None, compare=False, repr=False)

    def set_user(self, user_name: str) -> None:
        """Make ``user_name`` the current user and save the configuration."""
        self.current_user_name = user_name
        self.write()

    def write(self) -> None:
        """Save the configuration as a single line of JSON."""
        target = self.path if self.path is not None else config_file_path()
        text = json.dumps(
            {"db_url": self.db_url, "current_user_name": self.current_user_name},
            separators=(",", ":"),
            ensure_ascii=False,
        )
        for raw, escaped in _JSON_ESCAPES.items():
            text = text.replace(raw, escaped)
        Path(target).write_text(text + "\n", encoding="utf-8")


_FIELD_NAMES = {f.name for f in fields(Config) if f.name != "path"}


def read_config(path: str | Path | None = None) -> Config:
    """Load the configuration from ``path``, by default the home directory file.

    Only the first JSON value in the file is read; unknown keys are ignored
    and keys are matched without regard to case.
    """
    target = Path(path) if path is not None else config_file_path()
    text = target.read_text(encoding="utf-8")
    decoder = json.JSONDecoder()
    stripped = text.lstrip()
    value, _ = decoder.raw_decode(stripped)

    config = Config(path=target)
    if value is None:
        return config
    if not isinstance(value, dict):
        raise ValueError("configuration must be a JSON object")

    exact = {key: item for key, item in value.items() if key in _FIELD_NAMES}
    folded = {
        key.lower(): item
        for key, item in value.items()
        if key not in _FIELD_NAMES and key.lower() in _FIELD_NAMES
    }
    for name in _FIELD_NAMES:
        if name in exact:
            item = exact[name]
        elif name in folded:
            item = folded[name]
        else:
            continue
        if item is None:
            continue
        if not isinstance(item, str):
            raise ValueError(f"configuration field {name!r} must be a string")
        setattr(config, name, item)
    return config