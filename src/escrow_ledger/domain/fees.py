"""Service fee arithmetic.

The fee truncates the amount to whole hundreds before applying the rate:

    fee = (amount // 100) * rate_percent

so an amount of 199 at 1% yields a fee of 1, and an amount of 99 yields 0.
This is deliberately not a rounded percentage.
"""

from __future__ import annotations

MIN_FEE_RATE_PERCENT = 0
MAX_FEE_RATE_PERCENT = 100

# Largest value a BIGINT amount, balance or ledger total column can hold
MAX_AMOUNT = 2**63 - 1


def validate_fee_rate(rate_percent: int) -> int:
    """Return the rate if it is an integer percentage in [0, 100]."""
    if isinstance(rate_percent, bool) or not isinstance(rate_percent, int):
        raise ValueError(f"Fee rate must be an integer, got {rate_percent!r}")
    if not MIN_FEE_RATE_PERCENT <= rate_percent <= MAX_FEE_RATE_PERCENT:
        raise ValueError(
            f"Fee rate must be between {MIN_FEE_RATE_PERCENT} and "
            f"{MAX_FEE_RATE_PERCENT}, got {rate_percent}"
        )
    return rate_percent


def compute_fee(amount: int, rate_percent: int) -> int:
    """Service cut taken from an agreement amount."""
    return (amount // 100) * rate_percent


def compute_payout(amount: int, fee: int) -> int:
    """Net value credited to the receiver (on pay) or sender (on cancel)."""
    return amount - fee
