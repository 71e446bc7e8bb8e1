"""
coopsim/measurement.py - Player Summaries and Rescoring

Turns final PlayerState values into PlayerSummary records and rescores
summaries when the deflector assignment shown to players differs from the
one that was simulated.
"""

from typing import Sequence

import numpy as np

from .constants import MAX_CRT, SECONDS_PER_DAY
from .scoring import bonus_trust_rate, contribution_score, teamwork
from .types_result import AdjustedSummaries, PlayerSummary
from .types_state import PlayerState


def aggregate_cs(summaries: Sequence[PlayerSummary]):
    """Return (max, min, mean) cs across summaries; zeros when empty."""
    if not summaries:
        return 0.0, 0.0, 0.0
    scores = np.array([s.cs for s in summaries], dtype=np.float64)
    return float(np.max(scores)), float(np.min(scores)), float(np.mean(scores))


def build_player_summary(
    player: PlayerState,
    fair_share: float,
    completion_time: float,
    duration_seconds: float,
    players: int,
    new_mode: bool
) -> PlayerSummary:
    """
    Score one player at the end of a run.

    Args:
        player: Final state
        fair_share: target / players
        completion_time: Seconds until target (or duration)
        duration_seconds: Contract length
        players: Co-op size
        new_mode: Teamwork formula variant

    Returns:
        PlayerSummary
    """
    contribution_ratio = player.eggs_delivered / fair_share if fair_share > 0 else 0.0
    if completion_time > 0:
        btv_ratio = player.btv / completion_time
        siab_btv_ratio = player.siab_btv / completion_time
    else:
        btv_ratio = 0.0
        siab_btv_ratio = 0.0
    tw = teamwork(
        btv_ratio + siab_btv_ratio,
        players,
        duration_seconds / SECONDS_PER_DAY,
        min(players - 1, MAX_CRT),
        0,
        new_mode,
    )
    cs = contribution_score(contribution_ratio, duration_seconds, completion_time, tw)

    return PlayerSummary(
        index=player.index,
        deflector=player.deflector,
        contribution_ratio=contribution_ratio,
        teamwork=tw,
        cs=cs,
        completion_time=completion_time,
        time_to_boost=player.time_to_boost,
        stone_layout=player.config.stone_layout,
        siab_percent=player.config.siab_percent,
        siab_always_on=player.config.siab_always_on,
        btv_ratio=btv_ratio,
        siab_btv_ratio=siab_btv_ratio,
        eggs_delivered=player.eggs_delivered,
    )


def compute_adjusted_summaries(
    summaries: Sequence[PlayerSummary],
    display_deflectors: Sequence[float],
    duration_seconds: float,
    players: int,
    new_mode: bool
) -> AdjustedSummaries:
    """
    Rescore summaries with the deflectors players will actually wear.

    The deflector share of bonus trust is taken at the display percentage's
    constant rate; the SIAB share keeps what the run accumulated.
    """
    duration_days = duration_seconds / SECONDS_PER_DAY
    adjusted = []
    for summary, deflector in zip(summaries, display_deflectors):
        deflector_ratio = bonus_trust_rate(deflector, 0, new_mode)
        tw = teamwork(deflector_ratio + summary.siab_btv_ratio, players, duration_days, min(players - 1, MAX_CRT), 0, new_mode)
        cs = contribution_score(summary.contribution_ratio, duration_seconds, summary.completion_time, tw)
        adjusted.append(PlayerSummary(
            index=summary.index,
            deflector=deflector,
            contribution_ratio=summary.contribution_ratio,
            teamwork=tw,
            cs=cs,
            completion_time=summary.completion_time,
            time_to_boost=summary.time_to_boost,
            stone_layout=summary.stone_layout,
            siab_percent=summary.siab_percent,
            siab_always_on=summary.siab_always_on,
            btv_ratio=deflector_ratio,
            siab_btv_ratio=summary.siab_btv_ratio,
            eggs_delivered=summary.eggs_delivered,
        ))

    max_cs, min_cs, mean_cs = aggregate_cs(adjusted)
    return AdjustedSummaries(
        summaries=tuple(adjusted),
        max_cs=max_cs,
        min_cs=min_cs,
        mean_cs=mean_cs,
    )
