"""
tokens.py - Token Pacing Plan and Token Optimizer

Two jobs:
- build_token_plan: how long each boost size takes to afford and to fill the
  habitats, used to pick the baseline token count.
- optimize_tokens: two-pass coordinate ascent over per-player token counts
  (backward sweep, then forward sweep). Every sweep step evaluates all
  candidates for one player as one parallel batch and keeps a candidate only
  when it strictly beats the current best player-1 score.

Failed candidates score -inf. A batch where every candidate failed raises
EvaluationError carrying the error of the last failed request in submission
order. The selected scenario is recorded in a scenario receipt.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from receipts import emit_receipt, EvaluationError
from coopsim.cycle import emit_scenario_receipt
from coopsim.constants import DEFAULT_TOKENS, HATCH_HABS, TOKEN_CANDIDATES, TOKEN_PLAN_OPTIONS
from coopsim.measurement import compute_adjusted_summaries
from coopsim.scoring import calc_boost_multi
from coopsim.types_config import ContractParameters, PlayerConfig, ScenarioRequest
from coopsim.types_result import AdjustedSummaries, ScenarioResult
from evaluator import EvaluationOutcome, ProgressUpdate, evaluate_scenarios

logger = logging.getLogger(__name__)

# Module exports for receipt types
RECEIPT_SCHEMA = ["token_sweep_step", "token_optimization", "evaluation_failure"]


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class TokenOption:
    """Timing of one boost size."""
    tokens: int
    boost_multi: float
    minutes_to_tokens: float
    minutes_to_max: float
    total_minutes: float
    efficiency: float


@dataclass(frozen=True)
class TokenPlan:
    """Token income and per-option timings."""
    token_rate: float
    results: Tuple[TokenOption, ...]
    best_efficiency: Optional[TokenOption]
    best_time: Optional[TokenOption]


@dataclass(frozen=True)
class OptimizationResult:
    """Best token assignment found by the coordinate ascent."""
    tokens_by_player: Tuple[int, ...]
    scenario: ScenarioResult
    adjusted: AdjustedSummaries
    best_score: float
    baseline_score: float
    improvements: int
    late_max_count: int
    early_max_count: int
    evaluations: int
    receipts: Tuple[dict, ...] = field(default_factory=tuple)


# =============================================================================
# CORE FUNCTION 1: build_token_plan
# =============================================================================

def build_token_plan(
    token_timer_minutes: float,
    gift_minutes: float,
    double_gift: bool,
    players: int,
    base_ihr: float,
    max_chickens: float,
    options: Sequence[int] = TOKEN_PLAN_OPTIONS
) -> TokenPlan:
    """
    Time-to-afford plus time-to-fill for each boost size.

    Args:
        token_timer_minutes: Minutes per passive token per player
        gift_minutes: Minutes per gifted token per player
        double_gift: Gifts arrive two at a time
        players: Co-op size
        base_ihr: Internal hatchery rate per habitat per minute
        max_chickens: Habitat capacity

    Returns:
        TokenPlan with best-efficiency and best-time options
    """
    token_rate = (players / token_timer_minutes) + (2 if double_gift else 1) * (players / gift_minutes)
    results = []
    for tokens in options:
        boost_multi = calc_boost_multi(tokens)
        minutes_to_tokens = tokens / token_rate
        minutes_to_max = max_chickens / (base_ihr * HATCH_HABS * boost_multi)
        results.append(TokenOption(
            tokens=tokens,
            boost_multi=boost_multi,
            minutes_to_tokens=minutes_to_tokens,
            minutes_to_max=minutes_to_max,
            total_minutes=minutes_to_tokens + minutes_to_max,
            efficiency=boost_multi / tokens,
        ))

    best_efficiency = None
    for option in results:
        if best_efficiency is None or option.efficiency > best_efficiency.efficiency:
            best_efficiency = option
        elif option.efficiency == best_efficiency.efficiency and option.total_minutes < best_efficiency.total_minutes:
            best_efficiency = option

    best_time = None
    for option in results:
        if best_time is None or option.total_minutes < best_time.total_minutes:
            best_time = option

    return TokenPlan(
        token_rate=token_rate,
        results=tuple(results),
        best_efficiency=best_efficiency,
        best_time=best_time,
    )


def tokens_for_prediction(plan: TokenPlan) -> int:
    """Token count with the fastest time to max habitat (DEFAULT_TOKENS if none)."""
    return plan.best_time.tokens if plan.best_time is not None else DEFAULT_TOKENS


# =============================================================================
# HELPERS
# =============================================================================

def count_tokens_from_start(tokens_by_player: Sequence[int], value: int) -> int:
    count = 0
    for tokens in tokens_by_player:
        if tokens != value:
            break
        count += 1
    return count


def count_tokens_from_end(tokens_by_player: Sequence[int], value: int) -> int:
    return count_tokens_from_start(list(reversed(tokens_by_player)), value)


def _with_candidate(tokens_by_player: Tuple[int, ...], index: int, candidate: int) -> Tuple[int, ...]:
    return tuple(candidate if idx == index else tokens for idx, tokens in enumerate(tokens_by_player))


@dataclass
class _Entry:
    tokens_by_player: Tuple[int, ...]
    scenario: Optional[ScenarioResult]
    adjusted: Optional[AdjustedSummaries]
    score: float


# =============================================================================
# CORE FUNCTION 2: optimize_tokens
# =============================================================================

def optimize_tokens(
    contract: ContractParameters,
    player_configs: Sequence[PlayerConfig],
    baseline_deflectors: Sequence[float],
    display_deflectors: Sequence[float],
    base_ihr: float,
    base_tokens: int,
    new_mode: bool = True,
    candidates: Sequence[int] = TOKEN_CANDIDATES,
    on_progress=None,
    progress_offset: int = 0,
    **evaluator_kwargs
) -> OptimizationResult:
    """
    Coordinate ascent over per-player token counts.

    Scenarios are simulated with the baseline deflectors; each is scored as
    player 1's cs after rescoring with the display deflectors.

    Args:
        contract: Validated ContractParameters
        player_configs: One PlayerConfig per player
        baseline_deflectors: Deflectors used inside the simulation
        display_deflectors: Deflectors used for scoring
        base_ihr: Internal hatchery rate
        base_tokens: Starting token count for every player
        new_mode: Teamwork formula variant
        candidates: Token counts tried per player
        on_progress: ProgressUpdate callback (completed counts include progress_offset)
        progress_offset: Work units already completed before this call
        **evaluator_kwargs: Passed to evaluate_scenarios

    Returns:
        OptimizationResult

    Raises:
        EvaluationError: If every candidate of a batch failed
    """
    players = contract.players
    receipts: List[dict] = []
    evaluations = 0

    def make_request(tokens_by_player: Tuple[int, ...]) -> ScenarioRequest:
        return ScenarioRequest(
            players=players,
            player_deflectors=tuple(baseline_deflectors),
            player_configs=tuple(player_configs),
            duration_seconds=contract.duration_seconds,
            target_eggs=contract.target_eggs,
            token_timer_minutes=contract.token_timer_minutes,
            gift_minutes=contract.gift_minutes,
            double_gift=contract.double_gift,
            base_ihr=base_ihr,
            tokens_per_player=tokens_by_player,
            new_mode=new_mode,
        )

    def score_outcome(tokens_by_player: Tuple[int, ...], outcome: EvaluationOutcome) -> _Entry:
        if not outcome.ok:
            receipts.append(emit_receipt("evaluation_failure", {
                "tokens_per_player": list(tokens_by_player),
                "error": repr(outcome.error),
            }))
            return _Entry(tokens_by_player, None, None, -math.inf)
        adjusted = compute_adjusted_summaries(
            outcome.result.summaries,
            display_deflectors,
            contract.duration_seconds,
            players,
            new_mode,
        )
        score = adjusted.summaries[0].cs if adjusted.summaries else 0
        return _Entry(tokens_by_player, outcome.result, adjusted, score)

    def evaluate_batch(batch: List[Tuple[int, ...]]) -> List[_Entry]:
        nonlocal evaluations
        offset = progress_offset + evaluations
        callback = None
        if on_progress is not None:
            def callback(update: ProgressUpdate) -> None:
                on_progress(ProgressUpdate(
                    completed=offset + update.completed,
                    active=update.active,
                    queued=update.queued,
                    total=update.total,
                ))

        outcomes = evaluate_scenarios(
            [make_request(tokens) for tokens in batch],
            on_progress=callback,
            **evaluator_kwargs
        )
        evaluations += len(batch)
        # submission order: failures[-1] is the last failed request
        failures = [outcome for outcome in outcomes if not outcome.ok]
        if failures and len(failures) == len(outcomes):
            raise EvaluationError(
                f"All {len(outcomes)} scenario evaluations failed: {failures[-1].error!r}",
                failures[-1].error,
            )
        return [score_outcome(tokens, outcome) for tokens, outcome in zip(batch, outcomes)]

    baseline_tokens = tuple(base_tokens for _ in range(players))
    best = evaluate_batch([baseline_tokens])[0]
    baseline_score = best.score
    improvements = 0

    sweeps = (
        ("backward", range(players - 1, -1, -1)),
        ("forward", range(players)),
    )
    for direction, indices in sweeps:
        for index in indices:
            batch = [_with_candidate(best.tokens_by_player, index, candidate) for candidate in candidates]
            scored = evaluate_batch(batch)

            top = best
            for entry in scored:
                if entry.score > top.score:
                    top = entry
            adopted = top is not best
            if adopted:
                best = top
                improvements += 1

            receipts.append(emit_receipt("token_sweep_step", {
                "direction": direction,
                "player_index": index,
                "adopted": adopted,
                "tokens_per_player": list(best.tokens_by_player),
                "score": best.score,
            }))
            logger.debug(f"{direction} sweep player {index + 1}: score {best.score} tokens {best.tokens_by_player}")

    max_candidate = max(candidates)
    late_max_count = count_tokens_from_end(best.tokens_by_player, max_candidate)
    early_max_count = count_tokens_from_start(best.tokens_by_player, max_candidate)

    receipts.append(emit_scenario_receipt(best.scenario))
    receipts.append(emit_receipt("token_optimization", {
        "tokens_per_player": list(best.tokens_by_player),
        "baseline_score": baseline_score,
        "best_score": best.score,
        "improvements": improvements,
        "evaluations": evaluations,
        "late_max_count": late_max_count,
        "early_max_count": early_max_count,
    }))

    return OptimizationResult(
        tokens_by_player=best.tokens_by_player,
        scenario=best.scenario,
        adjusted=best.adjusted,
        best_score=best.score,
        baseline_score=baseline_score,
        improvements=improvements,
        late_max_count=late_max_count,
        early_max_count=early_max_count,
        evaluations=evaluations,
        receipts=tuple(receipts),
    )


def optimization_steps(players: int, candidates: Sequence[int] = TOKEN_CANDIDATES) -> int:
    """Scenario evaluations one optimize_tokens call performs."""
    return 1 + players * len(candidates) * 2
