"""Application services — use case orchestration."""

from escrow_ledger.services.escrow_service import EscrowService
from escrow_ledger.services.ledger_service import LedgerService
from escrow_ledger.services.notification_service import LoggingNotifier
from escrow_ledger.services.owner_admin import OwnerAdminService
from escrow_ledger.services.payout_service import SimulatedPayoutGateway

__all__ = [
    "EscrowService",
    "LedgerService",
    "LoggingNotifier",
    "OwnerAdminService",
    "SimulatedPayoutGateway",
]
