"""
coopsim - Co-op Contribution Score Simulation Package

Public API for the deterministic second-by-second co-op simulator.
Flat, focused files. One file = one responsibility.
"""

# =============================================================================
# TYPES (Dataclasses)
# =============================================================================
from .types_config import ContractParameters, PlayerConfig, ScenarioRequest, StoneLayout
from .types_state import PlayerState
from .types_result import AdjustedSummaries, PlayerSummary, ScenarioResult

# =============================================================================
# CONSTANTS
# =============================================================================
from .constants import (
    BASES,
    BOOSTED_SET,
    COLLECTIBLES,
    DEFLECTOR_TIERS,
    IHR_SET,
    MODIFIER_DIMENSIONS,
    TOKEN_CANDIDATES,
    TOKEN_PLAN_OPTIONS,
)

# =============================================================================
# SCORING
# =============================================================================
from .scoring import (
    BOOST_MULTIPLIERS,
    bonus_trust_rate,
    calc_boost_multi,
    contribution_score,
    teamwork,
)

# =============================================================================
# CORE SIMULATION
# =============================================================================
from .cycle import (
    apply_next_boost,
    compute_total_tokens,
    emit_scenario_receipt,
    initialize_states,
    run_scenario,
    simulate_tick,
)

# =============================================================================
# MEASUREMENT
# =============================================================================
from .measurement import aggregate_cs, build_player_summary, compute_adjusted_summaries

# =============================================================================
# VALIDATION
# =============================================================================
from .validation import contract_errors, validate_contract, validate_scenario_request


__all__ = [
    # Types
    "ContractParameters",
    "PlayerConfig",
    "ScenarioRequest",
    "StoneLayout",
    "PlayerState",
    "PlayerSummary",
    "ScenarioResult",
    "AdjustedSummaries",
    # Constants
    "BASES",
    "BOOSTED_SET",
    "COLLECTIBLES",
    "DEFLECTOR_TIERS",
    "IHR_SET",
    "MODIFIER_DIMENSIONS",
    "TOKEN_CANDIDATES",
    "TOKEN_PLAN_OPTIONS",
    # Scoring
    "BOOST_MULTIPLIERS",
    "bonus_trust_rate",
    "calc_boost_multi",
    "contribution_score",
    "teamwork",
    # Simulation
    "apply_next_boost",
    "compute_total_tokens",
    "emit_scenario_receipt",
    "initialize_states",
    "run_scenario",
    "simulate_tick",
    # Measurement
    "aggregate_cs",
    "build_player_summary",
    "compute_adjusted_summaries",
    # Validation
    "contract_errors",
    "validate_contract",
    "validate_scenario_request",
]
