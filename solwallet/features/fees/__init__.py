"""Fee estimation and balance sufficiency for Solana Quick Wallet."""

from solwallet.features.fees.service import FeeEstimator, PriorityLevel
from solwallet.features.fees.validators import (
    SufficiencyCheck,
    check_sufficiency,
    has_sufficient_balance,
)

__all__ = [
    "FeeEstimator",
    "PriorityLevel",
    "SufficiencyCheck",
    "check_sufficiency",
    "has_sufficient_balance",
]
