"""Retry of provider calls on rate-limit / quota errors.

Scoped to a single generation call. Other errors propagate immediately;
rate-limit errors are retried on a fixed backoff schedule, and once the
attempts run out they surface as ``ProviderRateLimited`` so the boundary can
answer "service busy" instead of a generic failure.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from qfix.core.errors import ProviderRateLimited

logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_STATUS = 429

_RATE_LIMIT_PATTERN = re.compile(
    r"rate[\s_-]?limit|quota|resource[\s_-]?exhausted|too many requests|\b429\b",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    delays: tuple[float, ...] = (2.0, 4.0)

    def delay_before(self, attempt: int) -> float:
        """Delay before retry number *attempt* (1-based). Reuses the last delay."""
        if not self.delays:
            return 0.0
        return self.delays[min(attempt - 1, len(self.delays) - 1)]


def is_rate_limit_error(exc: BaseException) -> bool:
    """True if *exc* is a provider-side rate-limit or quota failure."""
    for attr in ("status_code", "code", "status"):
        if getattr(exc, attr, None) == RATE_LIMIT_STATUS:
            return True
    return bool(_RATE_LIMIT_PATTERN.search(str(exc)))


async def call_with_rate_limit_retry(
    call: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    label: str = "generation",
    _sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> T:
    """Await ``call()``, retrying on rate-limit errors per *policy*.

    Backoff suspends only the calling task. ``_sleep`` is injectable so
    tests can record delays without waiting.
    """
    policy = policy or RetryPolicy()
    attempt = 1
    while True:
        try:
            return await call()
        except Exception as exc:
            if not is_rate_limit_error(exc):
                raise
            if attempt >= policy.max_attempts:
                logger.warning(
                    "%s still rate limited after %d attempts: %s",
                    label, attempt, exc,
                )
                raise ProviderRateLimited(
                    f"{label} rate limited after {attempt} attempts: {exc}"
                ) from exc
            delay = policy.delay_before(attempt)
            logger.info(
                "%s hit a rate/quota limit (attempt %d/%d). Retrying in %.1fs",
                label, attempt, policy.max_attempts, delay,
            )
            await _sleep(delay)
            attempt += 1
