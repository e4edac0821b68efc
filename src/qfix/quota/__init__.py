"""Per-user daily quota enforcement."""

from qfix.quota.ledger import QuotaLedger, utc_today

__all__ = ["QuotaLedger", "utc_today"]
