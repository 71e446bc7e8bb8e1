"""
coopsim/cycle.py - Core Simulation Loop

Main simulation entry points: initialize_states, simulate_tick, run_scenario,
emit_scenario_receipt. One-second ticks, no randomness: identical requests produce
identical results.
"""

import math
from typing import List, Sequence, Tuple

from receipts import emit_receipt

from .constants import HATCH_HABS, SECONDS_PER_HOUR, TICK_SECONDS
from .measurement import aggregate_cs, build_player_summary
from .scoring import bonus_trust_rate, calc_boost_multi
from .types_config import ScenarioRequest
from .types_result import ScenarioResult
from .types_state import PlayerState
from .validation import validate_scenario_request


def initialize_states(request: ScenarioRequest) -> List[PlayerState]:
    """
    Build a fresh PlayerState per player.

    Args:
        request: ScenarioRequest with deflectors, configs and token counts

    Returns:
        List of PlayerState in player order
    """
    total_deflector = sum(request.player_deflectors)
    return [
        PlayerState(
            index=index + 1,
            config=config,
            deflector=deflector,
            other_deflector=total_deflector - deflector,
            tokens=tokens,
        )
        for index, (deflector, config, tokens) in enumerate(zip(
            request.player_deflectors,
            request.player_configs,
            request.tokens_per_player,
        ))
    ]


def simulate_tick(
    states: Sequence[PlayerState],
    dt: float,
    base_ihr: float,
    new_mode: bool
) -> float:
    """
    Advance every player by one tick.

    Args:
        states: Player states (mutated in place)
        dt: Tick length in seconds
        base_ihr: Internal hatchery rate per habitat per minute
        new_mode: Bonus-trust formula variant

    Returns:
        Cumulative eggs delivered across all players
    """
    for player in states:
        if not player.max_hab:
            increase = base_ihr * HATCH_HABS * player.boost_multi / 60 * dt
            player.chickens = min(player.chickens + increase, player.config.max_chickens)
            if player.chickens == player.config.max_chickens:
                player.max_hab = True

        lay_rate = player.chickens * player.elr_per_chicken * (1 + player.other_deflector / 100)
        delivery_rate = min(lay_rate, player.ship_rate)
        player.eggs_delivered += dt * delivery_rate / SECONDS_PER_HOUR
        player.btv += dt * bonus_trust_rate(player.deflector, 0, new_mode)
        player.siab_btv += dt * bonus_trust_rate(0, player.active_siab_percent, new_mode)

    return sum(player.eggs_delivered for player in states)


def compute_total_tokens(
    elapsed: float,
    players: int,
    gift_seconds: float,
    timer_seconds: float,
    gift_mult: int
) -> int:
    """Tokens earned by the whole co-op after `elapsed` seconds."""
    total = 0
    if gift_seconds > 0:
        total += math.floor(elapsed * players / gift_seconds) * gift_mult
    if timer_seconds > 0:
        total += math.floor(elapsed / timer_seconds) * players
    return total


def apply_next_boost(
    states: Sequence[PlayerState],
    number_boosting: int,
    total_tokens: int,
    tokens_used: int,
    elapsed: float
) -> Tuple[int, int]:
    """
    Boost the next player in index order if the pool covers its tokens.

    Returns:
        (number_boosting, tokens_used) after the check
    """
    if number_boosting >= len(states):
        return number_boosting, tokens_used

    player = states[number_boosting]
    if player.tokens <= total_tokens - tokens_used:
        player.boost_multi = calc_boost_multi(player.tokens)
        if player.time_to_boost is None:
            player.time_to_boost = elapsed
        return number_boosting + 1, tokens_used + player.tokens

    return number_boosting, tokens_used


def run_scenario(request: ScenarioRequest) -> ScenarioResult:
    """
    Run one complete scenario.

    The tick during which cumulative delivery reaches the target is the
    completion time; otherwise the run ends at the contract duration.

    Args:
        request: ScenarioRequest

    Returns:
        ScenarioResult with per-player summaries and cs aggregates
    """
    validate_scenario_request(request)
    states = initialize_states(request)

    players = request.players
    duration = request.duration_seconds
    gift_seconds = request.gift_minutes * 60
    timer_seconds = request.token_timer_minutes * 60
    gift_mult = 2 if request.double_gift else 1

    elapsed = 0
    tokens_used = 0
    number_boosting = 0

    while elapsed < duration:
        eggs_delivered = simulate_tick(states, TICK_SECONDS, request.base_ihr, request.new_mode)

        if number_boosting < players:
            total_tokens = compute_total_tokens(elapsed, players, gift_seconds, timer_seconds, gift_mult)
            number_boosting, tokens_used = apply_next_boost(
                states, number_boosting, total_tokens, tokens_used, elapsed
            )

        if eggs_delivered >= request.target_eggs:
            break
        elapsed += TICK_SECONDS

    completion_time = min(elapsed, duration)
    fair_share = request.target_eggs / players
    summaries = tuple(
        build_player_summary(player, fair_share, completion_time, duration, players, request.new_mode)
        for player in states
    )
    max_cs, min_cs, mean_cs = aggregate_cs(summaries)

    return ScenarioResult(
        player_deflectors=tuple(request.player_deflectors),
        summaries=summaries,
        max_cs=max_cs,
        min_cs=min_cs,
        mean_cs=mean_cs,
        completion_time=completion_time,
        tokens_per_player=tuple(request.tokens_per_player),
    )


def emit_scenario_receipt(result: ScenarioResult) -> dict:
    """Emit scenario receipt summarizing one run."""
    return emit_receipt("scenario", {
        "completion_time": result.completion_time,
        "tokens_per_player": list(result.tokens_per_player),
        "player_deflectors": list(result.player_deflectors),
        "max_cs": result.max_cs,
        "min_cs": result.min_cs,
        "mean_cs": result.mean_cs,
    })
