"""
coopsim/constants.py - Game Constants

Artifact sets, collectible multipliers, base rates and tick constants used by
the co-op simulator. Centralized for tuning.
Pure data, no behavior.
"""

# =============================================================================
# DEFLECTOR TIERS (lowest first)
# =============================================================================

DEFLECTOR_TIERS = (
    {"label": "quant-scrub", "percent": 0},
    {"label": "epic+", "percent": 19},
    {"label": "legendary", "percent": 20},
)

QUANT_SCRUB_STEP = 20  # Percent freed by moving one player from legendary to 0%

# =============================================================================
# ARTIFACT SETS
# =============================================================================

BOOSTED_SET = {
    "metro": {"elr_mult": 1.35, "slots": 3},
    "compass": {"sr_mult": 1.5, "slots": 2},
    "gusset": {"chick_mult": 1.25, "slots": 3},
    "deflector": {"slots": 2},
}

IHR_SET = {
    "chalice": {"ihr_mult": 1.4, "slots": 3},
    "monocle": {"ihr_mult": 1.3, "slots": 3},
    "siab_percent": 100,
    "deflector": {"slots": 2},
}

IHR_STONE_MULT = 1.04
IHR_EXTRA_STONE_SLOTS = 2

# =============================================================================
# COLLECTIBLES AND BASE RATES
# =============================================================================

COLLECTIBLES = {
    "elr_mult": 1.05,
    "ship_mult": 1.1025,
    "ihr_mult": 1.05,
    "chicken_mult": 1.05,
}

BASES = {
    "base_elr": 332640,
    "base_ship": 2978359222414.5 * 2400,
    "base_chickens": 11340000000,
    "base_ihr": 7440,
}

TE_IHR_MULT = 1.01          # Internal hatchery bonus per point of trust equity
SWAP_CHICKEN_JUMP = 5e8     # Extra chickens per other player with swap bonus

# Contract modifier dimension -> base rate it scales
MODIFIER_DIMENSIONS = {
    "egg_laying_rate": "base_elr",
    "shipping_capacity": "base_ship",
    "habitat_capacity": "base_chickens",
    "internal_hatchery_rate": "base_ihr",
}

# =============================================================================
# STONES
# =============================================================================

STONE_MULT = 1.05

# =============================================================================
# TOKENS
# =============================================================================

TOKEN_CANDIDATES = (0, 1, 2, 3, 4, 5, 6, 8)
TOKEN_PLAN_OPTIONS = (4, 5, 6, 8)
DEFAULT_TOKENS = 6
DEFAULT_BOOST_MULTI = 50

# =============================================================================
# SIMULATION CLOCK AND SCORE
# =============================================================================

TICK_SECONDS = 1
SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400
SCORE_LENGTH_UNIT = 259200   # Contract length normalizer (3 days)
HATCH_HABS = 12              # Internal hatcheries (habitats) per player
MAX_CRT = 20                 # Cap on the contribution-rate term's player count
