from __future__ import annotations

from pathlib import Path
from typing import Any
import yaml


def load_yaml(path: str | Path) -> dict[str, Any]:
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config at {p} must be a mapping")
    return data


def get_section(cfg: dict[str, Any], name: str) -> dict[str, Any]:
    section = cfg.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ValueError(f"Config section {name!r} must be a mapping")
    return section
