"""
deflector.py - Deflector Tier Planner

Works out how much "other players'" deflector the co-op actually needs so the
bottleneck player stays shipping-bound, then moves trailing players down to
cheaper deflector tiers until the spare percentage is used up.

One canonical strategy: the unused-budget heuristic. Tiers are taken from
DEFLECTOR_TIERS (quant-scrub 0%, epic+ 19%, legendary 20%).
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from receipts import emit_receipt
from coopsim.constants import DEFLECTOR_TIERS, QUANT_SCRUB_STEP
from coopsim.types_config import PlayerConfig


# Module exports for receipt types
RECEIPT_SCHEMA = ["deflector_display"]


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class DeflectorDisplay:
    """Recommended deflector per player and the tier breakdown behind it."""
    display_deflectors: Tuple[float, ...]
    tier_counts: Dict[str, int]
    recommended_plan: str
    unused_deflector: float
    can_quant_scrub: bool
    required_other_deflector: float = 0.0


@dataclass(frozen=True)
class DeflectorPlan:
    """Tier summary of a deflector assignment."""
    total_deflector: float
    min_tier: dict
    tiers: List[dict] = field(default_factory=list)


# =============================================================================
# RECEIPT TYPE 1: deflector_display
# =============================================================================

def emit_deflector_display_receipt(display: DeflectorDisplay) -> dict:
    """Emit deflector_display receipt for the recommended tiers."""
    return emit_receipt("deflector_display", {
        "display_deflectors": list(display.display_deflectors),
        "tier_counts": dict(display.tier_counts),
        "recommended_plan": display.recommended_plan,
        "unused_deflector": display.unused_deflector,
        "can_quant_scrub": display.can_quant_scrub,
        "required_other_deflector": display.required_other_deflector,
    })


# =============================================================================
# HELPERS
# =============================================================================

def _has_rates(config: Optional[PlayerConfig]) -> bool:
    return bool(
        config
        and config.max_chickens
        and config.elr_per_chicken_with_stones
        and config.sr_with_stones
    )


def _tier_for_percent(percent: float, tiers: Sequence[dict] = DEFLECTOR_TIERS) -> Optional[dict]:
    for tier in tiers:
        if tier["percent"] == percent:
            return tier
    return None


# =============================================================================
# CORE FUNCTION 1: required_other_deflector
# =============================================================================

def required_other_deflector(player_configs: Sequence[PlayerConfig]) -> float:
    """
    Minimum "other players'" deflector percent any player needs to become
    shipping-bound at max habitat.

    Args:
        player_configs: One PlayerConfig per player

    Returns:
        Percent (0 for a single player or no usable configs)
    """
    if len(player_configs) <= 1:
        return 0.0

    max_required = 0.0
    for config in player_configs:
        if not _has_rates(config):
            continue
        lay_rate = config.max_chickens * config.elr_per_chicken_with_stones
        if lay_rate <= 0:
            continue
        required = max(0.0, (config.sr_with_stones / lay_rate - 1) * 100)
        max_required = max(max_required, required)
    return max_required


# =============================================================================
# CORE FUNCTION 2: unused_deflector_percent
# =============================================================================

def unused_deflector_percent(
    players: int,
    player_deflectors: Sequence[float],
    player_configs: Sequence[PlayerConfig]
) -> float:
    """
    Deflector percent the co-op could drop without the bottleneck player
    becoming lay-rate bound.

    The bottleneck is the player with the smallest lay/ship ratio. A ratio
    below 1 means nothing is spare.
    """
    total_deflector = sum(player_deflectors)
    if players < 2:
        return round(total_deflector)

    min_ratio = math.inf
    min_defl_multiplier = 1.0

    for deflector, config in zip(player_deflectors, player_configs):
        if not _has_rates(config):
            continue
        other = total_deflector - deflector
        lay_rate = config.max_chickens * config.elr_per_chicken_with_stones * (1 + other / 100)
        ratio = lay_rate / config.sr_with_stones
        if ratio < min_ratio:
            min_ratio = ratio
            min_defl_multiplier = other / 100 + 1

    if not math.isfinite(min_ratio) or min_ratio < 1:
        return 0
    unused = (min_defl_multiplier - 1) * 100 - (min_defl_multiplier / min_ratio - 1) * 100
    return min(math.floor(unused), round(total_deflector))


# =============================================================================
# CORE FUNCTION 3: build_deflector_display
# =============================================================================

def build_deflector_display(
    players: int,
    baseline_deflectors: Sequence[float],
    required_other: float,
    player_configs: Sequence[PlayerConfig]
) -> DeflectorDisplay:
    """
    Convert trailing players to cheaper tiers until the unused budget is spent.

    Whole 20-point steps become quant-scrubs (0%) at the end of the list; the
    remainder becomes epic+ (19%) on the players just before them.

    Args:
        players: Co-op size
        baseline_deflectors: All-legendary starting assignment
        required_other: Required other-deflector percent (reported only)
        player_configs: Per-player rates

    Returns:
        DeflectorDisplay
    """
    scrub_tier, epic_tier, highest_tier = DEFLECTOR_TIERS[0], DEFLECTOR_TIERS[-2], DEFLECTOR_TIERS[-1]

    display = list(baseline_deflectors)
    initial_unused = unused_deflector_percent(players, display, player_configs)
    scrub_count = max(0, min(players, math.floor(initial_unused / QUANT_SCRUB_STEP)))
    remaining = max(0, initial_unused - scrub_count * QUANT_SCRUB_STEP)
    epic_count = max(0, min(players - scrub_count, math.floor(remaining)))

    for i in range(len(display) - scrub_count, len(display)):
        if i >= 0:
            display[i] = scrub_tier["percent"]

    epic_start = max(0, len(display) - scrub_count - epic_count)
    epic_end = max(0, len(display) - scrub_count)
    for i in range(epic_start, epic_end):
        display[i] = epic_tier["percent"]

    unused = unused_deflector_percent(players, display, player_configs)

    legendary_count = max(0, players - scrub_count - epic_count)
    plan_parts = [f"{legendary_count}x {highest_tier['label']}"]
    if epic_count > 0:
        plan_parts.append(f"{epic_count}x {epic_tier['label']}")
    if scrub_count > 0:
        plan_parts.append(f"{scrub_count}x {scrub_tier['label']}")

    return DeflectorDisplay(
        display_deflectors=tuple(display),
        tier_counts={
            highest_tier["label"]: legendary_count,
            epic_tier["label"]: epic_count,
            scrub_tier["label"]: scrub_count,
        },
        recommended_plan=" + ".join(plan_parts),
        unused_deflector=unused,
        can_quant_scrub=scrub_count > 0,
        required_other_deflector=required_other,
    )


# =============================================================================
# CORE FUNCTION 4: build_deflector_plan
# =============================================================================

def build_deflector_plan(
    player_deflectors: Sequence[float],
    tiers: Sequence[dict] = DEFLECTOR_TIERS
) -> DeflectorPlan:
    """
    Summarize an assignment by tier, highest tier first.

    Percentages that match no tier are left out of the counts.
    """
    counts: Dict[str, int] = {}
    for value in player_deflectors:
        tier = _tier_for_percent(value, tiers)
        if tier is None:
            continue
        counts[tier["label"]] = counts.get(tier["label"], 0) + 1

    summary = [
        {"tier": next(t for t in tiers if t["label"] == label), "count": count}
        for label, count in counts.items()
        if count > 0
    ]
    summary.sort(key=lambda entry: entry["tier"]["percent"], reverse=True)
    min_tier = summary[-1]["tier"] if summary else tiers[0]

    return DeflectorPlan(
        total_deflector=sum(player_deflectors),
        min_tier=min_tier,
        tiers=summary,
    )
