"""
stones.py - Greedy Stone Allocator

Spreads a fixed number of stone slots between lay-rate (tachyon) and
shipping (quantum) stones. Each stone multiplies its side by 1.05. The slot
always goes to the strictly smaller side; ties go to shipping. The rule is
part of the contract: downstream scores depend on reproducible counts.
"""

from typing import Tuple

from receipts import emit_receipt
from coopsim.constants import STONE_MULT
from coopsim.types_config import StoneLayout


# Module exports for receipt types
RECEIPT_SCHEMA = ["stone_allocation"]


# =============================================================================
# RECEIPT TYPE 1: stone_allocation
# =============================================================================

# --- SCHEMA ---
STONE_ALLOCATION_SCHEMA = {
    "receipt_type": "stone_allocation",
    "ts": "ISO8601",
    "tenant_id": "str",
    "start_elr": "float",
    "start_sr": "float",
    "total_slots": "int",
    "num_tach": "int",
    "num_quant": "int",
    "payload_hash": "str (SHA256:BLAKE3)"
}


# --- EMIT ---
def emit_stone_allocation_receipt(start_elr: float, start_sr: float, layout: StoneLayout) -> dict:
    """Emit stone_allocation receipt for one player's layout."""
    return emit_receipt("stone_allocation", {
        "start_elr": start_elr,
        "start_sr": start_sr,
        "total_slots": layout.total_slots,
        "num_tach": layout.num_tach,
        "num_quant": layout.num_quant,
        "final_elr": layout.elr,
        "final_sr": layout.sr,
    })


# =============================================================================
# CORE FUNCTION 1: optimize_stones
# =============================================================================

def optimize_stones(elr: float, sr: float, total_slots: int) -> StoneLayout:
    """
    Allocate stone slots one at a time to the smaller of the two rates.

    Args:
        elr: Starting lay rate (already including deflector bonus)
        sr: Starting shipping rate
        total_slots: Slot budget; zero or less gives an empty layout

    Returns:
        StoneLayout with final rates and stone counts
    """
    num_tach = 0
    num_quant = 0
    cur_elr = elr
    cur_sr = sr
    slots = max(0, int(total_slots))

    for _ in range(slots):
        if cur_elr < cur_sr:
            cur_elr *= STONE_MULT
            num_tach += 1
        else:
            cur_sr *= STONE_MULT
            num_quant += 1

    return StoneLayout(
        num_tach=num_tach,
        num_quant=num_quant,
        elr=cur_elr,
        sr=cur_sr,
        total_slots=slots,
    )


def optimize_stones_with_receipt(elr: float, sr: float, total_slots: int) -> Tuple[StoneLayout, dict]:
    """optimize_stones plus its stone_allocation receipt."""
    layout = optimize_stones(elr, sr, total_slots)
    return layout, emit_stone_allocation_receipt(elr, sr, layout)


# =============================================================================
# CORE FUNCTION 2: apply_stones
# =============================================================================

def apply_stones(base: float, count: int) -> float:
    """Rate after `count` stones: base * 1.05 ** count."""
    return base * STONE_MULT ** count
