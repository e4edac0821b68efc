"""Per-user daily quota: atomic reservation plus an advisory status read.

Both operations apply the same decision rule so the number shown to a user
matches what a reservation would decide at that moment. Only ``reserve``
writes, and it does so inside a single store transaction: the slot is taken
at grant time, before any generation runs, and is not refunded if the
downstream work later fails.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Callable

from qfix.core.database import QuotaStore
from qfix.core.errors import QuotaInfrastructureFault
from qfix.core.models import UNLIMITED, QuotaDecision, QuotaRecord

logger = logging.getLogger(__name__)


def utc_today() -> date:
    """Current calendar day in UTC. The daily limit resets at midnight UTC."""
    return datetime.now(timezone.utc).date()


def limit_reached_reason(limit: int) -> str:
    noun = "conversion" if limit == 1 else "conversions"
    return (
        f"You have reached your daily limit of {limit} {noun}. "
        "Please try again tomorrow."
    )


class QuotaLedger:
    """Daily reservation ledger over a :class:`QuotaStore`."""

    def __init__(
        self,
        store: QuotaStore,
        *,
        daily_limit: int = 1,
        today: Callable[[], date] = utc_today,
        now: Callable[[], datetime] | None = None,
    ):
        if daily_limit < 1:
            raise ValueError(f"daily_limit must be >= 1, got {daily_limit}")
        self.store = store
        self.daily_limit = daily_limit
        self._today = today
        self._now = now or (lambda: datetime.now(timezone.utc))

    # ------------------------------------------------------------------
    # Decision rule
    # ------------------------------------------------------------------

    def _evaluate(self, record: QuotaRecord | None, today: date) -> QuotaDecision:
        """Decide without side effects. Shared by ``status`` and ``reserve``."""
        if record is not None and record.is_special:
            return QuotaDecision(allowed=True, remaining=UNLIMITED, is_special=True)

        used = record.count_on(today) if record is not None else 0
        if used >= self.daily_limit:
            return QuotaDecision(
                allowed=False,
                remaining=0,
                reason=limit_reached_reason(self.daily_limit),
            )
        return QuotaDecision(allowed=True, remaining=self.daily_limit - used)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def reserve(self, user_id: str) -> QuotaDecision:
        """Atomically check and consume one slot for *user_id*.

        Raises ``QuotaInfrastructureFault`` if storage is unavailable; a
        storage failure is never reported as a denial.
        """
        today = self._today()
        stamp = self._now()

        def _reserve(
            record: QuotaRecord | None,
        ) -> tuple[QuotaDecision, QuotaRecord | None]:
            decision = self._evaluate(record, today)
            if decision.is_special or not decision.allowed:
                return decision, None

            current = record or QuotaRecord(user_id=user_id)
            if current.last_reservation_date == today:
                count = current.reservations_today + 1
            else:
                # New day or first reservation: counter restarts at 1.
                count = 1
            updated = current.model_copy(
                update={
                    "last_reservation_date": today,
                    "reservations_today": count,
                    "last_reservation_at": stamp,
                    "updated_at": stamp,
                }
            )
            granted = QuotaDecision(allowed=True, remaining=self.daily_limit - count)
            return granted, updated

        decision = await self.store.run_transaction(user_id, _reserve)
        if decision.allowed:
            logger.info(
                "Reserved slot for %s (remaining=%d, special=%s)",
                user_id, decision.remaining, decision.is_special,
            )
        else:
            logger.info("Denied reservation for %s: %s", user_id, decision.reason)
        return decision

    async def status(self, user_id: str) -> QuotaDecision:
        """Read-only view of what ``reserve`` would decide right now.

        Advisory only: if storage is unavailable this fails open and reports
        a full day's allowance so the UI keeps working. Enforcement still
        happens in ``reserve``.
        """
        try:
            record = await self.store.get(user_id)
        except QuotaInfrastructureFault as exc:
            logger.warning("Quota status unavailable for %s, failing open: %s", user_id, exc)
            return QuotaDecision(allowed=True, remaining=self.daily_limit)
        return self._evaluate(record, self._today())

    async def set_special(self, user_id: str, is_special: bool = True) -> QuotaRecord:
        """Administrative action: exempt (or stop exempting) a user."""
        record = await self.store.set_special(user_id, is_special)
        logger.info("User %s special=%s", user_id, is_special)
        return record
