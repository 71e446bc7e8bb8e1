"""
receipts.py - Receipt Foundation Module

Canonical emit_receipt() for the predictor. Every stage of the pipeline
(stones, scenarios, deflector display, token sweeps, predictions) reports
what it decided through a receipt built here.

Never single hash. Always dual_hash (SHA256:BLAKE3).
"""

import hashlib
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import blake3

__all__ = [
    "dual_hash",
    "emit_receipt",
    "write_receipt_jsonl",
    "StopRule",
    "ContractValidationError",
    "EvaluationError",
    "RECEIPT_SCHEMA",
    "DEFAULT_TENANT",
]

# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_TENANT = "predictmaxcs"

RECEIPT_SCHEMA = {
    "receipt_type": "str",
    "ts": "ISO8601",
    "tenant_id": "str",
    "payload_hash": "str (SHA256:BLAKE3)",
}


# =============================================================================
# CORE FUNCTION 1: dual_hash
# =============================================================================

def dual_hash(data: Any) -> str:
    """
    SHA256:BLAKE3 - ALWAYS use this, never single hash.

    Args:
        data: Bytes or string to hash

    Returns:
        str: "sha256_hex:blake3_hex" format
    """
    if isinstance(data, str):
        data = data.encode()
    sha = hashlib.sha256(data).hexdigest()
    b3 = blake3.blake3(data).hexdigest()
    return f"{sha}:{b3}"


# =============================================================================
# CORE FUNCTION 2: emit_receipt
# =============================================================================

def emit_receipt(receipt_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build a receipt for one pipeline decision.

    Args:
        receipt_type: Type identifier for this receipt
        data: Receipt payload (tenant_id defaults to DEFAULT_TENANT)

    Returns:
        dict: Complete receipt with ts, tenant_id, payload_hash, and data fields
    """
    payload = {"tenant_id": DEFAULT_TENANT, **data}
    receipt = {
        "receipt_type": receipt_type,
        "ts": datetime.now(timezone.utc).isoformat(),
        "payload_hash": dual_hash(json.dumps(payload, sort_keys=True, default=str)),
        **payload
    }
    return receipt


# =============================================================================
# CORE FUNCTION 3: write_receipt_jsonl
# =============================================================================

def write_receipt_jsonl(receipt: Dict[str, Any], fh) -> None:
    """
    Append receipt as single JSON line to file handle.

    Args:
        receipt: Receipt dict to write
        fh: File handle (must be open for writing)
    """
    line = json.dumps(receipt, separators=(",", ":"), default=str)
    fh.write(line + "\n")


# =============================================================================
# STOPRULE EXCEPTIONS
# =============================================================================

class StopRule(Exception):
    """Raised when stoprule triggers. Never catch silently."""
    pass


class ContractValidationError(StopRule):
    """Contract parameters rejected before any simulation ran."""

    def __init__(self, fields: List[str], receipt: Optional[Dict[str, Any]] = None):
        self.fields = list(fields)
        self.receipt = receipt
        super().__init__(f"Missing or invalid contract data: {', '.join(self.fields)}")


class EvaluationError(StopRule):
    """Every candidate of an evaluation batch failed."""

    def __init__(self, message: str, last_error: Optional[BaseException] = None):
        self.last_error = last_error
        super().__init__(message)
