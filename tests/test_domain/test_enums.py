"""Tests for domain enumerations."""

from __future__ import annotations

from escrow_ledger.domain.enums import (
    SERVICE_ACCOUNT,
    AgreementStatus,
    EventType,
    PayoutFeeBasis,
    Role,
)


class TestAgreementStatus:
    def test_all_statuses_exist(self) -> None:
        assert {s.value for s in AgreementStatus} == {"CREATED", "PAID", "CANCELED"}

    def test_status_is_str_enum(self) -> None:
        assert isinstance(AgreementStatus.CREATED, str)
        assert AgreementStatus.PAID == "PAID"


class TestRole:
    def test_precedence_order(self) -> None:
        assert list(Role) == [Role.NONE, Role.SENDER, Role.RECEIVER, Role.MIDDLEMAN]


class TestEventType:
    def test_one_event_per_mutation(self) -> None:
        assert len(EventType) == 3


class TestPayoutFeeBasis:
    def test_values(self) -> None:
        assert PayoutFeeBasis("creation") is PayoutFeeBasis.CREATION
        assert PayoutFeeBasis("payout") is PayoutFeeBasis.PAYOUT


def test_service_account_is_not_a_role_value() -> None:
    assert SERVICE_ACCOUNT not in {r.value for r in Role}
