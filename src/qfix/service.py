"""Tailoring service: request-boundary logic shared by the HTTP API and CLI.

Order of checks for a tailoring request: identity, then input, then the
quota reservation, then generation. Nothing is generated (and no slot is
consumed) for a request that fails the earlier checks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial

from pydantic_ai.models import Model

from qfix.config import Settings
from qfix.core.database import QuotaStore, SqliteQuotaStore
from qfix.core.errors import ConfigError, InvalidInput, MissingIdentity, QuotaDenied
from qfix.core.models import TailoredResume
from qfix.generation.fit_loop import FitSeekingLoop
from qfix.generation.retry import RetryPolicy
from qfix.generation.tailor_generator import generate_markup
from qfix.quota.ledger import QuotaLedger
from qfix.rendering.pdf_renderer import render_pdf

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LimitStatus:
    remaining: int
    is_special: bool


class TailorService:
    def __init__(
        self,
        ledger: QuotaLedger,
        loop: FitSeekingLoop,
        *,
        generation_configured: bool = True,
    ):
        self.ledger = ledger
        self.loop = loop
        self.generation_configured = generation_configured

    async def tailor(
        self,
        user_id: str | None,
        resume_text: str | None,
        job_description: str | None,
    ) -> TailoredResume:
        user_id = (user_id or "").strip()
        if not user_id:
            raise MissingIdentity("Tailor request without a user id")

        job_description = (job_description or "").strip()
        resume_text = (resume_text or "").strip()
        if not job_description:
            raise InvalidInput("Job description is required.")
        if not resume_text:
            raise InvalidInput(
                "Resume text is empty. Please provide a valid resume file "
                "or paste resume content."
            )
        if not self.generation_configured:
            # Before reserve(): configuration faults never consume a slot.
            raise ConfigError("OPENROUTER_API_KEY is not set.")

        decision = await self.ledger.reserve(user_id)
        if not decision.allowed:
            raise QuotaDenied(decision)

        result = await self.loop.run(resume_text, job_description)
        logger.info(
            "Tailored resume for %s: %d page(s) after %d iteration(s), fit_ok=%s",
            user_id, result.page_count, result.iterations, result.fit_ok,
        )
        return result

    async def limit_status(self, user_id: str) -> LimitStatus:
        decision = await self.ledger.status(user_id)
        return LimitStatus(remaining=decision.remaining, is_special=decision.is_special)


def build_store(settings: Settings) -> SqliteQuotaStore:
    """Create and initialise the quota store. Raises QuotaInfrastructureFault."""
    store = SqliteQuotaStore(settings.db_path, busy_timeout=settings.db_busy_timeout)
    store.initialize()
    return store


def build_service(
    settings: Settings,
    store: QuotaStore,
    *,
    _model_override: Model | None = None,
) -> TailorService:
    """Wire ledger, generator, renderer and loop from *settings*."""
    ledger = QuotaLedger(store, daily_limit=settings.daily_limit)
    generate = partial(
        generate_markup,
        model=settings.model,
        api_key=settings.api_key,
        retry_policy=RetryPolicy(
            max_attempts=settings.retry_max_attempts,
            delays=settings.retry_delays,
        ),
        _model_override=_model_override,
    )
    loop = FitSeekingLoop(generate, render_pdf, max_iterations=settings.max_iterations)
    return TailorService(
        ledger,
        loop,
        generation_configured=bool(settings.api_key) or _model_override is not None,
    )
