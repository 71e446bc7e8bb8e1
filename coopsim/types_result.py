"""
coopsim/types_result.py - Scenario Result Dataclasses

Immutable simulation result containers.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional, Tuple

from .types_config import StoneLayout


@dataclass(frozen=True)
class PlayerSummary:
    """Per-player outcome of one scenario."""
    index: int
    deflector: float
    contribution_ratio: float
    teamwork: float
    cs: int
    completion_time: float
    time_to_boost: Optional[float]
    stone_layout: StoneLayout = field(default_factory=StoneLayout)
    siab_percent: float = 0.0
    siab_always_on: bool = False
    btv_ratio: float = 0.0
    siab_btv_ratio: float = 0.0
    eggs_delivered: float = 0.0


@dataclass(frozen=True)
class ScenarioResult:
    """Immutable scenario result."""
    player_deflectors: Tuple[float, ...]
    summaries: Tuple[PlayerSummary, ...]
    max_cs: float
    min_cs: float
    mean_cs: float
    completion_time: float
    tokens_per_player: Tuple[int, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AdjustedSummaries:
    """Summaries rescored under display deflectors."""
    summaries: Tuple[PlayerSummary, ...]
    max_cs: float
    min_cs: float
    mean_cs: float
