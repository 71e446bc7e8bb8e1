"""
Predictor Configuration Schema - Self-Validating Config for the CS Predictor

This module defines PredictorConfig: the player assumptions, collectible
multipliers and evaluator settings that the model needs. Nothing here is
process-wide state; a config object is built once and passed down.

Consumed by:
- model.py (pipeline)
- predict.py (CLI)

Design Principles:
- Self-validating: JSON Schema (Draft 2020-12) checked with jsonschema
- Self-healing: missing/unknown fields -> defaults + warnings (non-strict)
- Immutable: frozen after load
"""

from __future__ import annotations

import hashlib
import json
import warnings
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from jsonschema import Draft202012Validator

from coopsim.constants import COLLECTIBLES, DEFAULT_TOKENS, IHR_SET


__all__ = [
    'PredictorConfig',
    'load',
    'default',
    'from_dict',
]


# =============================================================================
# JSON Schema Definition (Draft 2020-12)
# =============================================================================

_COLLECTIBLE_KEYS = ("elr_mult", "ship_mult", "ihr_mult", "chicken_mult")

_JSON_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "PredictorConfig",
    "description": "Assumptions and evaluator settings for the max CS predictor",
    "type": "object",
    "properties": {
        "version": {
            "type": "string",
            "pattern": r"^\d+\.\d+$",
            "default": "1.0"
        },
        "average_te": {
            "type": "number",
            "description": "Average trust equity feeding the hatchery rate",
            "minimum": 0,
            "default": 100
        },
        "tokens_per_player": {
            "type": ["integer", "null"],
            "description": "Fixed baseline tokens; null or 0 picks the fastest max-habitat option",
            "minimum": 0,
            "default": DEFAULT_TOKENS
        },
        "swap_bonus": {
            "type": "boolean",
            "description": "Add the swap chicken bonus per other player",
            "default": False
        },
        "new_teamwork_mode": {
            "type": "boolean",
            "description": "Use the current teamwork/bonus-trust formulas",
            "default": True
        },
        "siab_percent": {
            "type": "number",
            "minimum": 0,
            "default": IHR_SET["siab_percent"]
        },
        "collectibles": {
            "type": "object",
            "properties": {key: {"type": "number", "exclusiveMinimum": 0} for key in _COLLECTIBLE_KEYS},
            "additionalProperties": False
        },
        "max_workers": {
            "type": ["integer", "null"],
            "minimum": 1,
            "default": None
        },
        "progress_interval": {
            "type": "number",
            "minimum": 0,
            "default": 0.5
        }
    },
    "additionalProperties": False
}

_COMPILED_VALIDATOR = Draft202012Validator(_JSON_SCHEMA)

_DEFAULTS: Dict[str, Any] = {
    "version": "1.0",
    "average_te": 100,
    "tokens_per_player": DEFAULT_TOKENS,
    "swap_bonus": False,
    "new_teamwork_mode": True,
    "siab_percent": IHR_SET["siab_percent"],
    "collectibles": dict(COLLECTIBLES),
    "max_workers": None,
    "progress_interval": 0.5,
}


def _compute_hash(data: Dict[str, Any]) -> str:
    """Compute SHA3-256 hash of config content."""
    canonical = json.dumps(data, sort_keys=True, separators=(',', ':'))
    return hashlib.sha3_256(canonical.encode()).hexdigest()[:16]


# =============================================================================
# PredictorConfig Dataclass
# =============================================================================

@dataclass(frozen=True)
class PredictorConfig:
    """
    Predictor assumptions.

    Attributes:
        version: Config schema version
        average_te: Average trust equity of the co-op
        tokens_per_player: Fixed baseline token count (None = fastest max-habitat)
        swap_bonus: Include the swap chicken bonus
        new_teamwork_mode: Current bonus-trust and teamwork formulas
        siab_percent: Bonus-trust percent a worn SIAB gives
        collectibles: Collectible multipliers (elr, ship, ihr, chicken)
        max_workers: Evaluator pool size (None = CPU count)
        progress_interval: Seconds between progress callbacks
    """
    version: str = "1.0"
    average_te: float = 100
    tokens_per_player: Optional[int] = DEFAULT_TOKENS
    swap_bonus: bool = False
    new_teamwork_mode: bool = True
    siab_percent: float = IHR_SET["siab_percent"]
    collectibles: Dict[str, float] = field(default_factory=lambda: dict(COLLECTIBLES))
    max_workers: Optional[int] = None
    progress_interval: float = 0.5

    def __post_init__(self) -> None:
        """Fill collectible keys not given and keep a private copy."""
        merged = dict(COLLECTIBLES)
        merged.update(self.collectibles or {})
        object.__setattr__(self, 'collectibles', merged)

    @property
    def has_fixed_tokens(self) -> bool:
        return self.tokens_per_player is not None and self.tokens_per_player > 0

    @property
    def schema(self) -> Dict[str, Any]:
        """Returns JSON Schema dict for external validation."""
        return json.loads(json.dumps(_JSON_SCHEMA))

    @property
    def config_hash(self) -> str:
        return _compute_hash(self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        """Export as dictionary."""
        return asdict(self)

    def to_json(self, pretty: bool = False) -> str:
        return json.dumps(self.to_dict(), indent=2 if pretty else None, sort_keys=True)

    def save(self, path: str) -> None:
        """Save as JSON, or YAML when the suffix is .yaml/.yml."""
        path_obj = Path(path)
        if path_obj.suffix in ('.yaml', '.yml'):
            path_obj.write_text(yaml.safe_dump(self.to_dict(), sort_keys=True))
        else:
            path_obj.write_text(self.to_json(pretty=True))


# =============================================================================
# Loading
# =============================================================================

def load(path: str, validate: bool = True, strict: bool = False) -> PredictorConfig:
    """
    Load config from JSON/YAML file.

    Args:
        path: Path to config file
        validate: Whether to validate (default True)
        strict: If True, raise on invalid; if False, self-heal with warnings

    Returns:
        Validated, frozen PredictorConfig

    Raises:
        FileNotFoundError: If path doesn't exist
        ValueError: If validation fails (strict, or still invalid after healing)
    """
    path_obj = Path(path)
    if not path_obj.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    content = path_obj.read_text()
    if path_obj.suffix in ('.yaml', '.yml'):
        data = yaml.safe_load(content) or {}
    else:
        data = json.loads(content)

    return from_dict(data, validate=validate, strict=strict)


def default() -> PredictorConfig:
    """Default assumptions: TE 100, 6 tokens, new teamwork mode."""
    return PredictorConfig()


def from_dict(data: Dict[str, Any], validate: bool = True, strict: bool = False) -> PredictorConfig:
    """Build a PredictorConfig from plain data (validated and optionally healed)."""
    if not isinstance(data, dict):
        raise ValueError(f"Config must be a mapping, got {type(data).__name__}")

    all_warnings: List[str] = []
    if validate:
        errors = _validate(data)
        if errors:
            if strict:
                raise ValueError("Config validation failed:\n" + "\n".join(f"  - {e}" for e in errors))
            data = _self_heal(data, errors, all_warnings)
            errors = _validate(data)
            if errors:
                raise ValueError("Config validation failed after self-healing:\n" +
                                 "\n".join(f"  - {e}" for e in errors))

    for w in all_warnings:
        warnings.warn(f"PredictorConfig: {w}", UserWarning, stacklevel=3)

    merged = {**_DEFAULTS, **data}
    return PredictorConfig(
        version=str(merged["version"]),
        average_te=float(merged["average_te"]),
        tokens_per_player=None if merged["tokens_per_player"] is None else int(merged["tokens_per_player"]),
        swap_bonus=bool(merged["swap_bonus"]),
        new_teamwork_mode=bool(merged["new_teamwork_mode"]),
        siab_percent=float(merged["siab_percent"]),
        collectibles=dict(merged["collectibles"]),
        max_workers=None if merged["max_workers"] is None else int(merged["max_workers"]),
        progress_interval=float(merged["progress_interval"]),
    )


def _validate(data: Dict[str, Any]) -> List[str]:
    """Return schema error messages (empty when valid)."""
    errors = []
    for err in sorted(_COMPILED_VALIDATOR.iter_errors(data), key=lambda e: list(e.path)):
        location = ".".join(str(p) for p in err.path) or "<root>"
        errors.append(f"{location}: {err.message}")
    return errors


def _self_heal(data: Dict[str, Any], errors: List[str], warns: List[str]) -> Dict[str, Any]:
    """
    Self-healing behavior:
    - Unknown field -> ignore, add warning
    - Invalid value -> default, add warning
    """
    healed = dict(data)

    unknown = set(healed) - set(_DEFAULTS)
    for key in sorted(unknown):
        del healed[key]
        warns.append(f"Ignoring unknown field: {key}")

    for key in list(healed):
        schema = {**_JSON_SCHEMA, "properties": {key: _JSON_SCHEMA["properties"][key]}}
        if list(Draft202012Validator(schema).iter_errors({key: healed[key]})):
            warns.append(f"Invalid value for '{key}' ({healed[key]!r}), using default: {_DEFAULTS[key]!r}")
            healed[key] = _DEFAULTS[key]

    return healed


def collectible_multipliers(config: PredictorConfig) -> Tuple[float, float, float, float]:
    """(elr, ship, ihr, chicken) multipliers of a config."""
    c = config.collectibles
    return c["elr_mult"], c["ship_mult"], c["ihr_mult"], c["chicken_mult"]
