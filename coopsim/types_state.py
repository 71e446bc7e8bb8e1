"""
coopsim/types_state.py - PlayerState Dataclass

Mutable per-player state owned by a single simulator run.
A fresh set is built for every scenario; nothing survives between runs.
"""

from dataclasses import dataclass
from typing import Optional

from .types_config import PlayerConfig


@dataclass
class PlayerState:
    """Player progress inside one scenario run.

    Attributes:
        index: 1-based player number
        config: Rates for this player (shared, immutable)
        deflector: Own deflector percent
        other_deflector: Sum of every other player's deflector percent
        tokens: Tokens this player spends on its boost
        chickens: Current population
        eggs_delivered: Cumulative eggs shipped
        btv: Bonus trust accumulated from the deflector
        siab_btv: Bonus trust accumulated from the SIAB
        boost_multi: Current habitat fill multiplier (1 until boosted)
        max_hab: True once population reached max_chickens
        time_to_boost: Elapsed seconds when the boost was bought
    """
    index: int
    config: PlayerConfig
    deflector: float
    other_deflector: float
    tokens: int
    chickens: float = 0.0
    eggs_delivered: float = 0.0
    btv: float = 0.0
    siab_btv: float = 0.0
    boost_multi: float = 1
    max_hab: bool = False
    time_to_boost: Optional[float] = None

    @property
    def elr_per_chicken(self) -> float:
        if self.max_hab:
            return self.config.elr_per_chicken_with_stones
        return self.config.elr_per_chicken_no_stones

    @property
    def ship_rate(self) -> float:
        if self.max_hab:
            return self.config.sr_with_stones
        return self.config.sr_no_stones

    @property
    def active_siab_percent(self) -> float:
        """SIAB counts while ramping, or for the whole run when always on."""
        if self.config.siab_always_on or not self.max_hab:
            return self.config.siab_percent
        return 0.0
