from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from isa import InstructionSet

"""Config loader and validator.

Provides `load_config` which accepts either a path to a YAML file,
a dictionary or None and returns a normalized configuration dict
using DEFAULTS for missing values.
"""


DEFAULTS: dict[str, Any] = {
    "instruction_set": InstructionSet.EXTENDED.value,
    "trace": True,
    "search_target": 19690720,
    "search_limit": 99,
    "patch_noun": 12,
    "patch_verb": 2,
}


class ConfigError(ValueError):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


def _convert_types(cfg: dict[str, Any]) -> None:
    """Normalize types for configuration values in-place.

    Raises ConfigError on conversion failure.
    """
    try:
        # instruction_set: accept enum members or their names/values
        iset = cfg.get("instruction_set", DEFAULTS["instruction_set"])
        if isinstance(iset, InstructionSet):
            cfg["instruction_set"] = iset
        else:
            cfg["instruction_set"] = InstructionSet(str(iset).strip().lower())

        # trace (bool coercion)
        cfg["trace"] = bool(cfg.get("trace", DEFAULTS["trace"]))

        for key in ("search_target", "search_limit", "patch_noun", "patch_verb"):
            v = cfg.get(key)
            cfg[key] = int(DEFAULTS[key] if v is None else v)
    except Exception as e:
        msg = f"Bad types in config: {e}"
        raise ConfigError(msg) from e


def _validate_cfg(cfg: dict[str, Any]) -> None:
    """Perform semantic validation on normalized config dict.

    Raises ConfigError on invalid values.
    """
    if cfg["search_limit"] <= 0:
        msg = "search_limit must be positive"
        raise ConfigError(msg)

    if cfg["patch_noun"] < 0 or cfg["patch_verb"] < 0:
        msg = "patch_noun and patch_verb must be non-negative"
        raise ConfigError(msg)

    unknown = sorted(set(cfg) - set(DEFAULTS))
    if unknown:
        msg = f"Unknown config keys: {', '.join(unknown)}"
        raise ConfigError(msg)


def load_config(path_or_dict: str | dict[str, Any] | None = None) -> dict[str, Any]:
    """Load and normalize configuration.

    Accepts:
      - None -> returns DEFAULTS copy
      - dict -> overlay DEFAULTS with provided dict
      - str (path) -> load YAML and overlay DEFAULTS

    Returns a normalized dict or raises ConfigError.
    """
    if path_or_dict is None:
        cfg: dict[str, Any] = dict(DEFAULTS)
    elif isinstance(path_or_dict, dict):
        cfg = dict(DEFAULTS)
        cfg.update(path_or_dict)
    elif isinstance(path_or_dict, str):
        p = Path(path_or_dict)
        if not p.exists():
            msg = f"Config file not found: {path_or_dict}"
            raise ConfigError(msg)
        try:
            with p.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except Exception as e:
            msg = f"Failed to load config file {path_or_dict}: {e}"
            raise ConfigError(msg) from e
        if not isinstance(data, dict):
            msg = f"Config file {path_or_dict} does not contain a mapping"
            raise ConfigError(msg)
        cfg = dict(DEFAULTS)
        cfg.update(data)
    else:
        msg = "Unsupported config input"
        raise ConfigError(msg)

    # convert types and validate semantics
    _convert_types(cfg)
    _validate_cfg(cfg)

    return cfg
