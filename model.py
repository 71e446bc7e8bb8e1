"""
model.py - Max CS Prediction Pipeline

Contract parameters in, PredictionReport out:

    validate contract
      -> base rates (artifact sets, collectibles, trust equity, modifier)
      -> per-player configs (stone allocator)
      -> deflector planner
      -> token optimizer (parallel scenario batches)

The whole optimization runs for two variants, without and with player 1
wearing the SIAB (losing the gusset chicken bonus and one stone slot). The
better variant is kept unless an override picks one.
"""

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Tuple

from receipts import emit_receipt
from config_schema import PredictorConfig, collectible_multipliers, default
from coopsim.constants import (
    BASES,
    BOOSTED_SET,
    DEFLECTOR_TIERS,
    IHR_EXTRA_STONE_SLOTS,
    IHR_SET,
    IHR_STONE_MULT,
    MODIFIER_DIMENSIONS,
    SWAP_CHICKEN_JUMP,
    TE_IHR_MULT,
    TOKEN_CANDIDATES,
)
from coopsim.types_config import ContractParameters, PlayerConfig, StoneLayout
from coopsim.types_result import AdjustedSummaries, PlayerSummary
from coopsim.validation import validate_contract
from deflector import (
    DeflectorDisplay,
    DeflectorPlan,
    build_deflector_display,
    build_deflector_plan,
    emit_deflector_display_receipt,
    required_other_deflector,
)
from stones import apply_stones, optimize_stones_with_receipt
from tokens import (
    OptimizationResult,
    TokenPlan,
    build_token_plan,
    optimization_steps,
    optimize_tokens,
    tokens_for_prediction,
)

logger = logging.getLogger(__name__)

# Module exports for receipt types
RECEIPT_SCHEMA = ["prediction"]


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class BaseRates:
    """Per-player rates before stones, shared by every player."""
    max_chickens: float
    base_chickens: float
    elr_per_chicken: float
    ship_rate: float
    ihr: float
    total_slots: int


@dataclass(frozen=True)
class VariantResult:
    """Outcome of one full optimization (with or without player-1 SIAB)."""
    use_player1_siab: bool
    player_configs: Tuple[PlayerConfig, ...]
    required_deflector: float
    deflector_display: DeflectorDisplay
    optimization: OptimizationResult
    receipts: Tuple[dict, ...] = field(default_factory=tuple)

    @property
    def score(self) -> float:
        return self.optimization.best_score


@dataclass(frozen=True)
class PredictionReport:
    """Everything the presentation layer renders."""
    contract: ContractParameters
    config: PredictorConfig
    base_rates: BaseRates
    tokens_for_prediction: int
    has_fixed_tokens: bool
    tokens_by_player: Tuple[int, ...]
    use_player1_siab: bool
    siab_score_delta: int
    player_configs: Tuple[PlayerConfig, ...]
    required_deflector: float
    deflector_display: DeflectorDisplay
    deflector_plan: DeflectorPlan
    token_plan: TokenPlan
    optimization: OptimizationResult
    adjusted: AdjustedSummaries
    receipts: Tuple[dict, ...] = field(default_factory=tuple)

    @property
    def stone_layouts(self) -> Tuple[StoneLayout, ...]:
        return tuple(config.stone_layout for config in self.player_configs)

    @property
    def summaries(self) -> Tuple[PlayerSummary, ...]:
        return self.adjusted.summaries

    @property
    def max_cs(self) -> float:
        return self.adjusted.max_cs

    @property
    def mean_cs(self) -> float:
        return self.adjusted.mean_cs

    @property
    def min_cs(self) -> float:
        return self.adjusted.min_cs


# =============================================================================
# RECEIPT TYPE 1: prediction
# =============================================================================

def emit_prediction_receipt(report: PredictionReport) -> dict:
    """Emit prediction receipt summarizing the selected variant."""
    return emit_receipt("prediction", {
        "players": report.contract.players,
        "duration_seconds": report.contract.duration_seconds,
        "target_eggs": report.contract.target_eggs,
        "config_hash": report.config.config_hash,
        "tokens_by_player": list(report.tokens_by_player),
        "display_deflectors": list(report.deflector_display.display_deflectors),
        "use_player1_siab": report.use_player1_siab,
        "siab_score_delta": report.siab_score_delta,
        "max_cs": report.max_cs,
        "mean_cs": report.mean_cs,
        "min_cs": report.min_cs,
    })


# =============================================================================
# CORE FUNCTION 1: compute_base_rates
# =============================================================================

def contract_adjusted_bases(contract: ContractParameters) -> Dict[str, float]:
    """Game base rates with the contract modifier applied to its dimension."""
    bases = dict(BASES)
    if contract.modifier_type is not None and contract.modifier_value is not None:
        key = MODIFIER_DIMENSIONS[contract.modifier_type]
        bases[key] = bases[key] * contract.modifier_value
    return bases


def ihr_stone_slots() -> int:
    return (
        IHR_SET["chalice"]["slots"]
        + IHR_SET["monocle"]["slots"]
        + IHR_SET["deflector"]["slots"]
        + IHR_EXTRA_STONE_SLOTS
    )


def swap_chicken_jump(players: int) -> float:
    return SWAP_CHICKEN_JUMP * max(players - 1, 0)


def compute_base_rates(contract: ContractParameters, config: PredictorConfig) -> BaseRates:
    """
    Rates of one player wearing the boosted set (metro, compass, gusset, deflector).

    Args:
        contract: Validated ContractParameters
        config: PredictorConfig with collectibles and trust equity

    Returns:
        BaseRates
    """
    elr_mult, ship_mult, ihr_mult, chicken_mult = collectible_multipliers(config)
    bases = contract_adjusted_bases(contract)

    max_chickens = bases["base_chickens"] * BOOSTED_SET["gusset"]["chick_mult"] * chicken_mult
    if config.swap_bonus:
        max_chickens += swap_chicken_jump(contract.players)

    ihr = (
        bases["base_ihr"]
        * TE_IHR_MULT ** config.average_te
        * ihr_mult
        * IHR_SET["chalice"]["ihr_mult"]
        * IHR_SET["monocle"]["ihr_mult"]
        * IHR_STONE_MULT ** ihr_stone_slots()
    )

    return BaseRates(
        max_chickens=max_chickens,
        base_chickens=bases["base_chickens"],
        elr_per_chicken=bases["base_elr"] * BOOSTED_SET["metro"]["elr_mult"] * elr_mult,
        ship_rate=bases["base_ship"] * BOOSTED_SET["compass"]["sr_mult"] * ship_mult,
        ihr=ihr,
        total_slots=sum(BOOSTED_SET[name]["slots"] for name in ("metro", "compass", "gusset", "deflector")),
    )


# =============================================================================
# CORE FUNCTION 2: build_player_configs
# =============================================================================

def build_player_configs(
    players: int,
    rates: BaseRates,
    baseline_other_deflector: float,
    use_player1_siab: bool,
    config: PredictorConfig
) -> Tuple[Tuple[PlayerConfig, ...], Tuple[dict, ...]]:
    """
    Per-player configs plus their stone_allocation receipts.

    Player 1 in the SIAB variant gives up the gusset bonus chickens and one
    stone slot, and has the SIAB bonus trust for the whole run.
    """
    chicken_mult = config.collectibles["chicken_mult"]
    gusset_bonus = max(0.0, BOOSTED_SET["gusset"]["chick_mult"] - 1)
    player1_chicken_penalty = rates.base_chickens * chicken_mult * gusset_bonus
    siab_percent = config.siab_percent

    configs = []
    receipts = []
    for index in range(players):
        is_siab_player = index == 0 and use_player1_siab
        max_chickens = max(0.0, rates.max_chickens - (player1_chicken_penalty if is_siab_player else 0))
        slots = max(0, rates.total_slots - (1 if is_siab_player else 0))
        elr_for_stones = max_chickens * rates.elr_per_chicken * (1 + baseline_other_deflector / 100)

        layout, receipt = optimize_stones_with_receipt(elr_for_stones, rates.ship_rate, slots)
        receipts.append(receipt)
        configs.append(PlayerConfig(
            max_chickens=max_chickens,
            elr_per_chicken_no_stones=rates.elr_per_chicken,
            elr_per_chicken_with_stones=apply_stones(rates.elr_per_chicken, layout.num_tach),
            sr_no_stones=rates.ship_rate,
            sr_with_stones=apply_stones(rates.ship_rate, layout.num_quant),
            stone_layout=layout,
            siab_percent=siab_percent,
            siab_always_on=is_siab_player and siab_percent > 0,
        ))
    return tuple(configs), tuple(receipts)


# =============================================================================
# CORE FUNCTION 3: build_variant
# =============================================================================

def build_variant(
    contract: ContractParameters,
    config: PredictorConfig,
    rates: BaseRates,
    base_tokens: int,
    use_player1_siab: bool,
    on_progress=None,
    progress_offset: int = 0,
    **evaluator_kwargs
) -> VariantResult:
    """Stones, deflector plan and token optimization for one SIAB placement."""
    players = contract.players
    highest = DEFLECTOR_TIERS[-1]["percent"]
    baseline_deflectors = tuple(highest for _ in range(players))
    baseline_other_deflector = (players - 1) * highest

    player_configs, stone_receipts = build_player_configs(
        players, rates, baseline_other_deflector, use_player1_siab, config
    )

    required = required_other_deflector(player_configs)
    display = build_deflector_display(
        players,
        baseline_deflectors,
        math.ceil(required),
        player_configs,
    )

    optimization = optimize_tokens(
        contract,
        player_configs,
        baseline_deflectors,
        display.display_deflectors,
        rates.ihr,
        base_tokens,
        new_mode=config.new_teamwork_mode,
        on_progress=on_progress,
        progress_offset=progress_offset,
        **evaluator_kwargs
    )
    logger.info(
        f"Variant siab={use_player1_siab}: score {optimization.best_score} "
        f"tokens {optimization.tokens_by_player}"
    )

    receipts = stone_receipts + (emit_deflector_display_receipt(display),) + optimization.receipts
    return VariantResult(
        use_player1_siab=use_player1_siab,
        player_configs=player_configs,
        required_deflector=required,
        deflector_display=display,
        optimization=optimization,
        receipts=receipts,
    )


# =============================================================================
# CORE FUNCTION 4: build_model
# =============================================================================

def build_model(
    contract: ContractParameters,
    config: Optional[PredictorConfig] = None,
    siab_override: Optional[bool] = None,
    on_progress=None,
    **evaluator_kwargs
) -> PredictionReport:
    """
    Run the whole prediction.

    Args:
        contract: Contract parameters (validated here, before any simulation)
        config: PredictorConfig (default assumptions when None)
        siab_override: True/False forces the player-1 SIAB variant; None picks the better
        on_progress: ProgressUpdate callback; counts run across both variants
        **evaluator_kwargs: Passed to evaluate_scenarios (max_workers, executor_cls, ...)

    Returns:
        PredictionReport

    Raises:
        ContractValidationError: If any contract field is missing or invalid
        EvaluationError: If a whole batch of scenario evaluations failed
    """
    validate_contract(contract)
    config = config or default()
    evaluator_kwargs.setdefault("max_workers", config.max_workers)
    evaluator_kwargs.setdefault("progress_interval", config.progress_interval)

    players = contract.players
    rates = compute_base_rates(contract, config)

    token_plan = build_token_plan(
        contract.token_timer_minutes,
        contract.gift_minutes,
        contract.double_gift,
        players,
        rates.ihr,
        rates.max_chickens,
    )
    if config.has_fixed_tokens:
        base_tokens = config.tokens_per_player
    else:
        base_tokens = tokens_for_prediction(token_plan)

    variant_steps = optimization_steps(players, TOKEN_CANDIDATES)
    base_variant = build_variant(
        contract, config, rates, base_tokens, False,
        on_progress=on_progress, progress_offset=0, **evaluator_kwargs
    )
    siab_variant = build_variant(
        contract, config, rates, base_tokens, True,
        on_progress=on_progress, progress_offset=variant_steps, **evaluator_kwargs
    )

    if siab_override is True:
        selected = siab_variant
    elif siab_override is False:
        selected = base_variant
    elif siab_variant.score > base_variant.score:
        selected = siab_variant
    else:
        selected = base_variant

    siab_score_delta = round(siab_variant.score - base_variant.score)
    deflector_plan = build_deflector_plan(selected.deflector_display.display_deflectors)

    report = PredictionReport(
        contract=contract,
        config=config,
        base_rates=rates,
        tokens_for_prediction=base_tokens,
        has_fixed_tokens=config.has_fixed_tokens,
        tokens_by_player=selected.optimization.tokens_by_player,
        use_player1_siab=selected.use_player1_siab,
        siab_score_delta=siab_score_delta,
        player_configs=selected.player_configs,
        required_deflector=selected.required_deflector,
        deflector_display=selected.deflector_display,
        deflector_plan=deflector_plan,
        token_plan=token_plan,
        optimization=selected.optimization,
        adjusted=selected.optimization.adjusted,
        receipts=base_variant.receipts + siab_variant.receipts,
    )
    return _with_receipt(report)


def _with_receipt(report: PredictionReport) -> PredictionReport:
    return replace(report, receipts=report.receipts + (emit_prediction_receipt(report),))
