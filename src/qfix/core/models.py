from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field

# Sentinel for "no daily limit" in QuotaDecision.remaining.
UNLIMITED = -1


# ---------------------------------------------------------------------------
# Quota
# ---------------------------------------------------------------------------

class QuotaRecord(BaseModel):
    user_id: str
    is_special: bool = False
    last_reservation_date: date | None = None
    reservations_today: int = Field(default=0, ge=0)
    last_reservation_at: datetime | None = None
    updated_at: datetime | None = None

    def count_on(self, day: date) -> int:
        """Reservations made on *day*; 0 when the stored day is a different one."""
        if self.last_reservation_date == day:
            return self.reservations_today
        return 0


class QuotaDecision(BaseModel):
    allowed: bool
    remaining: int
    reason: str | None = None
    is_special: bool = False


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

class GenerationAttempt(BaseModel):
    """One pass of the fit-seeking loop. Never persisted."""

    iteration: int
    shorten_hint: str | None = None
    markup: str
    document: bytes
    page_count: int = Field(ge=0)


class TailoredResume(BaseModel):
    markup: str
    document: bytes
    page_count: int = Field(ge=0)
    iterations: int = Field(ge=1)

    @property
    def fit_ok(self) -> bool:
        return self.page_count <= 1
