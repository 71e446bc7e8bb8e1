"""
coopsim/validation.py - Contract and Scenario Validation

Rejects bad inputs before any simulation starts. Every invalid field is
reported at once; nothing is defaulted silently.
"""

import math
from numbers import Real
from typing import List

from receipts import emit_receipt, ContractValidationError

from .constants import MODIFIER_DIMENSIONS
from .types_config import ContractParameters, ScenarioRequest


def _is_positive(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, Real):
        return False
    return math.isfinite(value) and value > 0


def contract_errors(params: ContractParameters) -> List[str]:
    """
    List the contract fields that are missing or invalid.

    Args:
        params: ContractParameters to check

    Returns:
        Field names in declaration order (empty when valid)
    """
    errors = []
    players = params.players
    if isinstance(players, bool) or not isinstance(players, int) or players < 1:
        errors.append("players")
    if not _is_positive(params.duration_seconds):
        errors.append("duration")
    if not _is_positive(params.target_eggs):
        errors.append("target")
    if not _is_positive(params.token_timer_minutes):
        errors.append("token_timer")
    if not _is_positive(params.gift_minutes):
        errors.append("gift_minutes")

    if params.modifier_type is not None or params.modifier_value is not None:
        if params.modifier_type not in MODIFIER_DIMENSIONS:
            errors.append("modifier_type")
        if not _is_positive(params.modifier_value):
            errors.append("modifier_value")
    return errors


def validate_contract(params: ContractParameters) -> bool:
    """
    Validate contract parameters.

    Returns:
        bool: True if valid

    Raises:
        ContractValidationError: Listing every invalid field
    """
    errors = contract_errors(params)
    if errors:
        receipt = emit_receipt("contract_invalid", {
            "fields": errors,
            "action": "halt",
        })
        raise ContractValidationError(errors, receipt)
    return True


def validate_scenario_request(request: ScenarioRequest) -> bool:
    """
    Validate a simulator request: contract fields plus per-player vector lengths.

    Raises:
        ContractValidationError: Listing every invalid field
    """
    errors = contract_errors(ContractParameters(
        players=request.players,
        duration_seconds=request.duration_seconds,
        target_eggs=request.target_eggs,
        token_timer_minutes=request.token_timer_minutes,
        gift_minutes=request.gift_minutes,
        double_gift=request.double_gift,
    ))
    if "players" not in errors:
        if len(request.player_deflectors) != request.players:
            errors.append("player_deflectors")
        if len(request.player_configs) != request.players:
            errors.append("player_configs")
        if len(request.tokens_per_player) != request.players:
            errors.append("tokens_per_player")
    if errors:
        raise ContractValidationError(errors, emit_receipt("contract_invalid", {
            "fields": errors,
            "action": "halt",
        }))
    return True
