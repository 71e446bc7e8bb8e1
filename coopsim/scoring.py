"""
coopsim/scoring.py - Contribution Score Functions

Pure functions turning simulation outcomes into a contribution score:
boost multiplier table, bonus-trust rate, teamwork and the CS formula.
No state. Evaluation order of the CS formula is fixed so results are
bit-for-bit reproducible.
"""

import math

from .constants import DEFAULT_BOOST_MULTI, SCORE_LENGTH_UNIT


# =============================================================================
# BOOST MULTIPLIER TABLE
# =============================================================================

# Literal game data. Do not simplify the expressions.
BOOST_MULTIPLIERS = {
    1: (4 * 10) * 2,
    2: (100 + 4 * 10),
    3: (100 + 3 * 10) * 2,
    4: (1000 + 4 * 10),
    5: (1000 + 3 * 10) * 2,
    6: (1000 + 2 * 10) * 4,
    7: (1000 + 10) * 6,
    8: (1000 + 3 * 10) * 10,
    9: (1000 + 2 * 10) * 12,
    10: (1000 + 10) * 14,
    11: (1000) * 16,
    12: (1000 + 3 * 10) * 50,
}


def calc_boost_multi(tokens: int) -> int:
    """Habitat fill multiplier bought with `tokens` tokens (50 outside 1..12)."""
    return BOOST_MULTIPLIERS.get(tokens, DEFAULT_BOOST_MULTI)


# =============================================================================
# BONUS TRUST
# =============================================================================

def bonus_trust_rate(deflector_percent: float, siab_percent: float, new_mode: bool) -> float:
    """
    Bonus-trust gained per second.

    Legacy:  7.5 * (deflector + siab / 10) / 100
    New:     (12.5 * min(deflector, 12) + 0.75 * min(siab, 50)) / 100
    """
    if new_mode:
        rate = 12.5 * min(deflector_percent, 12) + 0.75 * min(siab_percent, 50)
    else:
        rate = 7.5 * (deflector_percent + siab_percent / 10)
    return rate / 100


# =============================================================================
# TEAMWORK
# =============================================================================

def teamwork(
    btv_ratio: float,
    players: int,
    duration_days: float,
    crt: float,
    t: float = 0,
    new_mode: bool = True
) -> float:
    """
    Teamwork bonus from bonus-trust ratio, contribution-rate term and token term.

    Args:
        btv_ratio: Accumulated bonus trust divided by completion time
        players: Co-op size
        duration_days: Contract length in days
        crt: Contribution-rate transfers (capped at 20)
        t: Token-transfer term (ignored in new mode)
        new_mode: Use the flat contribution-rate term

    Returns:
        Teamwork score fed into the CS formula
    """
    b = min(btv_ratio, 2)
    crt = min(crt, 20)
    f_cr = max(12 / players / duration_days, 0.3)
    cr = min(f_cr * crt, 6)
    if new_mode:
        cr = 5 if players > 1 else 0
        t = 0
    return (5 * b + cr + t) / 19


# =============================================================================
# CONTRIBUTION SCORE
# =============================================================================

def contribution_factor(contribution_ratio: float) -> float:
    if contribution_ratio > 2.5:
        return 0.02221 * min(contribution_ratio, 12.5) + 4.386486
    return 3 * math.pow(contribution_ratio, 0.15) + 1


def completion_factor(completion_time: float, duration_seconds: float) -> float:
    return 4 * math.pow(1 - completion_time / duration_seconds, 3) + 1


def contribution_score(
    contribution_ratio: float,
    duration_seconds: float,
    completion_time: float,
    teamwork_score: float
) -> int:
    """
    Final contribution score (ceil'd integer).

    Multiplication order is part of the contract: length term, x7,
    contribution factor, completion factor, teamwork, x1.05, then ceil(x187.5).
    """
    cs = 1 + duration_seconds / SCORE_LENGTH_UNIT
    cs *= 7
    cs *= contribution_factor(contribution_ratio)
    cs *= completion_factor(completion_time, duration_seconds)
    cs *= (0.19 * teamwork_score + 1)
    cs *= 1.05
    return math.ceil(cs * 187.5)
