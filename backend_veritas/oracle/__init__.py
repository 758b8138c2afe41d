"""
Oracle package — attestation of computed scores and the score-gated claim.
"""

from backend_veritas.oracle.attester import Attestation, Attester, authority_id
from backend_veritas.oracle.claim_gate import ClaimGate, ClaimReceipt, FundsTransfer

__all__ = [
    "Attestation",
    "Attester",
    "ClaimGate",
    "ClaimReceipt",
    "FundsTransfer",
    "authority_id",
]
