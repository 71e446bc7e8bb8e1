"""
coopsim/types_config.py - Contract, Player and Scenario Configuration

Immutable configuration for simulation runs.
Frozen dataclasses, no behavior beyond derived properties.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from .constants import SECONDS_PER_DAY


@dataclass(frozen=True)
class ContractParameters:
    """Contract inputs handed over by the command layer."""
    players: int
    duration_seconds: float
    target_eggs: float
    token_timer_minutes: float
    gift_minutes: float
    double_gift: bool = False
    modifier_type: Optional[str] = None
    modifier_value: Optional[float] = None

    @property
    def duration_days(self) -> float:
        return self.duration_seconds / SECONDS_PER_DAY

    @property
    def gift_multiplier(self) -> int:
        return 2 if self.double_gift else 1


@dataclass(frozen=True)
class StoneLayout:
    """Result of the greedy stone allocation."""
    num_tach: int = 0
    num_quant: int = 0
    elr: float = 0.0
    sr: float = 0.0
    total_slots: int = 0


@dataclass(frozen=True)
class PlayerConfig:
    """Per-player rates derived once per variant."""
    max_chickens: float
    elr_per_chicken_no_stones: float
    elr_per_chicken_with_stones: float
    sr_no_stones: float
    sr_with_stones: float
    stone_layout: StoneLayout = field(default_factory=StoneLayout)
    siab_percent: float = 0.0
    siab_always_on: bool = False


@dataclass(frozen=True)
class ScenarioRequest:
    """One fully specified simulator run.

    `tokens_per_player` and `player_deflectors` hold one entry per player.
    """
    players: int
    player_deflectors: Tuple[float, ...]
    player_configs: Tuple[PlayerConfig, ...]
    duration_seconds: float
    target_eggs: float
    token_timer_minutes: float
    gift_minutes: float
    double_gift: bool
    base_ihr: float
    tokens_per_player: Tuple[int, ...]
    new_mode: bool = True

    def __post_init__(self):
        """Convert list inputs to tuples so requests stay hashable and immutable."""
        for name in ("player_deflectors", "player_configs", "tokens_per_player"):
            value = getattr(self, name)
            if not isinstance(value, tuple):
                object.__setattr__(self, name, tuple(value))
