"""Agreement notifications.

Notifications are fire-and-forget: a failing notifier is logged and never
undoes the agreement mutation that triggered it. Consumers that need
guaranteed delivery read the agreement_events audit log instead.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from escrow_ledger.logging_config import get_logger

if TYPE_CHECKING:
    from escrow_ledger.domain.protocols import AgreementNotifier

logger = get_logger(__name__)


class LoggingNotifier:
    """Default notifier: emits one structured log line per notification."""

    async def on_agreement_created(self, agreement_id: int) -> None:
        logger.info("notify.agreement_created", agreement_id=agreement_id)

    async def on_agreement_status_changed(self, agreement_id: int, new_status: str) -> None:
        logger.info(
            "notify.agreement_status_changed",
            agreement_id=agreement_id,
            new_status=new_status,
        )


async def notify_created(notifier: AgreementNotifier, agreement_id: int) -> None:
    try:
        await notifier.on_agreement_created(agreement_id)
    except Exception:
        logger.exception("notify.created_failed", agreement_id=agreement_id)


async def notify_status_changed(
    notifier: AgreementNotifier, agreement_id: int, new_status: str
) -> None:
    try:
        await notifier.on_agreement_status_changed(agreement_id, new_status)
    except Exception:
        logger.exception(
            "notify.status_changed_failed",
            agreement_id=agreement_id,
            new_status=new_status,
        )
