"""YAML configuration and batch manifests.

Config file example (ipskit.yaml):

    log_level: INFO
    expand: true          # grow ROMs to the size a patch assumes
    uppercase_ext: false  # prefer GAME.IPS over game.ips

Manifest example:

    jobs:
      - rom: roms/game.nes
        patch: patches/translation.ips   # optional, defaults to roms/game.ips
        out: build/game_en.nes
        expand: false                    # optional, overrides config
"""
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_FILE = "ipskit.yaml"

DEFAULTS: dict[str, Any] = {
    "log_level": "WARNING",
    "expand": False,
    "uppercase_ext": False,
}

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _load_yaml(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def load_config(path: str | Path | None = None) -> dict[str, Any]:
    """Return DEFAULTS updated with the mapping in ``path``.

    Without a path, ``ipskit.yaml`` in the working directory is used when present.
    """
    config = dict(DEFAULTS)
    if path is None:
        path = Path(DEFAULT_CONFIG_FILE)
        if not path.exists():
            return config
    raw = _load_yaml(Path(path))
    if raw is None:
        return config
    if not isinstance(raw, dict):
        raise ValueError(f"Config '{path}' must be a mapping")

    unknown = set(raw) - set(DEFAULTS)
    if unknown:
        raise ValueError(f"Unknown config keys in '{path}': {', '.join(sorted(unknown))}")
    config.update(raw)

    level = str(config["log_level"]).upper()
    if level not in LOG_LEVELS:
        raise ValueError(f"Invalid log_level '{config['log_level']}', expected one of {', '.join(LOG_LEVELS)}")
    config["log_level"] = level
    for key in ("expand", "uppercase_ext"):
        if not isinstance(config[key], bool):
            raise ValueError(f"Config key '{key}' must be true or false, got {config[key]!r}")
    return config


def load_manifest(path: str | Path) -> list[dict[str, Any]]:
    """Return the jobs of a batch manifest with paths resolved against its directory."""
    path = Path(path)
    raw = _load_yaml(path)
    if not isinstance(raw, dict) or not isinstance(raw.get("jobs"), list):
        raise ValueError(f"Manifest '{path}' must define a 'jobs' list")

    base = path.parent
    jobs = []
    for i, entry in enumerate(raw["jobs"], 1):
        if not isinstance(entry, dict):
            raise ValueError(f"Job #{i} must be a mapping")
        for key in ("rom", "out"):
            if not entry.get(key):
                raise ValueError(f"Job #{i} is missing '{key}'")
        job = {
            "rom": base / entry["rom"],
            "out": base / entry["out"],
            "patch": base / entry["patch"] if entry.get("patch") else None,
            "expand": entry.get("expand"),
        }
        if job["expand"] is not None and not isinstance(job["expand"], bool):
            raise ValueError(f"Job #{i}: 'expand' must be true or false")
        jobs.append(job)
    return jobs
