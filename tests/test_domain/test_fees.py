"""Tests for the service fee arithmetic."""

from __future__ import annotations

import pytest

from escrow_ledger.domain.fees import compute_fee, compute_payout, validate_fee_rate


class TestComputeFee:
    def test_one_percent_of_hundred(self) -> None:
        assert compute_fee(100, 1) == 1

    def test_truncates_to_whole_hundreds(self) -> None:
        # 199 // 100 == 1, not a rounded 1.99
        assert compute_fee(199, 1) == 1
        assert compute_fee(250, 3) == 6

    def test_amounts_below_hundred_pay_no_fee(self) -> None:
        assert compute_fee(99, 100) == 0

    def test_zero_rate(self) -> None:
        assert compute_fee(10_000, 0) == 0

    def test_full_rate_never_exceeds_amount(self) -> None:
        assert compute_fee(1234, 100) == 1200


def test_payout_is_amount_net_of_fee() -> None:
    assert compute_payout(100, 1) == 99


class TestValidateFeeRate:
    @pytest.mark.parametrize("rate", [0, 1, 50, 100])
    def test_accepts_percentages(self, rate: int) -> None:
        assert validate_fee_rate(rate) == rate

    @pytest.mark.parametrize("rate", [-1, 101])
    def test_rejects_out_of_range(self, rate: int) -> None:
        with pytest.raises(ValueError, match="between 0 and 100"):
            validate_fee_rate(rate)

    @pytest.mark.parametrize("rate", [1.5, "5", True])
    def test_rejects_non_integers(self, rate: object) -> None:
        with pytest.raises(ValueError, match="integer"):
            validate_fee_rate(rate)  # type: ignore[arg-type]
