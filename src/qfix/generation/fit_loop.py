"""Fit-seeking generation loop.

Generates tailored markup, renders it, and regenerates with increasingly
strict shortening instructions until the document fits on one page or the
iteration budget runs out. Each iteration is a fresh generation conditioned
on the hint, never an edit of the previous markup. On exhaustion the last
attempt is returned as-is, with ``fit_ok`` false.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from qfix.core.errors import RenderError
from qfix.core.models import GenerationAttempt, TailoredResume
from qfix.generation.config import SHORTEN_HINTS

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 3
TARGET_PAGES = 1

GenerateFn = Callable[[str, str, str | None], Awaitable[str]]
RenderFn = Callable[[str], tuple[bytes, int]]


def shorten_hint(iteration: int) -> str | None:
    """Shortening instruction for *iteration*; severity never decreases."""
    if iteration <= 0:
        return None
    return SHORTEN_HINTS[min(iteration, len(SHORTEN_HINTS) - 1)]


class FitSeekingLoop:
    """Regenerate until the rendered resume fits on one page.

    Parameters
    ----------
    generate:
        ``async generate(resume_text, job_description, shorten_hint) -> markup``.
    render:
        ``render(markup) -> (document, page_count)``. Blocking; it runs on a
        worker thread.
    max_iterations:
        Total generate+render passes, including the first draft.
    """

    def __init__(
        self,
        generate: GenerateFn,
        render: RenderFn,
        *,
        max_iterations: int = MAX_ITERATIONS,
    ):
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {max_iterations}")
        self.generate = generate
        self.render = render
        self.max_iterations = max_iterations

    async def _attempt(
        self, iteration: int, resume_text: str, job_description: str
    ) -> GenerationAttempt:
        hint = shorten_hint(iteration)
        markup = await self.generate(resume_text, job_description, hint)
        document, page_count = await asyncio.to_thread(self.render, markup)
        return GenerationAttempt(
            iteration=iteration,
            shorten_hint=hint,
            markup=markup,
            document=document,
            page_count=page_count,
        )

    async def run(self, resume_text: str, job_description: str) -> TailoredResume:
        last: GenerationAttempt | None = None
        for iteration in range(self.max_iterations):
            final = iteration == self.max_iterations - 1
            try:
                attempt = await self._attempt(iteration, resume_text, job_description)
            except RenderError as exc:
                if final:
                    raise
                logger.warning(
                    "Iteration %d produced unrenderable markup, retrying: %s",
                    iteration, exc,
                )
                continue

            last = attempt
            logger.info("Iteration %d rendered %d page(s)", iteration, attempt.page_count)
            if attempt.page_count <= TARGET_PAGES:
                break

        # A render fault on the final iteration raises above, so at least one
        # attempt has succeeded by the time we get here.
        assert last is not None
        if last.page_count > TARGET_PAGES:
            logger.warning(
                "Resume still %d pages after %d iterations; returning best effort",
                last.page_count, self.max_iterations,
            )
        return TailoredResume(
            markup=last.markup,
            document=last.document,
            page_count=last.page_count,
            iterations=last.iteration + 1,
        )
