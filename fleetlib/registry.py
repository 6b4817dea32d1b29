from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ConfigMalformed, ConfigMissing


@dataclass(frozen=True)
class BotDescriptor:
    name: str
    extra: dict[str, Any] = field(default_factory=dict, compare=False)


def load_bots(path: Path) -> list[BotDescriptor]:
    """Read the ordered bot list from `bots.json`.

    Accepts either a top-level list or the `{"bots": [...]}` wrapper. Every
    entry must be an object with a string `name`; other keys are kept as-is.
    """

    if not path.exists():
        raise ConfigMissing(f"File {path} not found! Please make sure it exists.")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ConfigMalformed(f"Could not parse {path}: {exc}") from exc

    if isinstance(data, dict) and "bots" in data:
        data = data["bots"]
    if not isinstance(data, list):
        raise ConfigMalformed(f"{path} must contain a list of bots, got {type(data).__name__}")

    bots: list[BotDescriptor] = []
    for i, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ConfigMalformed(f"{path}: entry #{i} is not an object")
        name = entry.get("name")
        if not isinstance(name, str):
            raise ConfigMalformed(f"{path}: entry #{i} has no string 'name'")
        extra = {k: v for k, v in entry.items() if k != "name"}
        bots.append(BotDescriptor(name=name, extra=extra))
    return bots
