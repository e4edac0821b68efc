"""Resume tailoring: asks the model for LaTeX resume body markup."""

from __future__ import annotations

import logging
import re

from pydantic_ai.models import Model

from qfix.core.errors import GenerationError
from qfix.generation.config import TAILOR_SYSTEM_PROMPT, TAILOR_TEMPERATURE
from qfix.generation.retry import RetryPolicy, call_with_rate_limit_retry
from qfix.llm.engine import complete

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n(.*?)\n?```\s*$", re.DOTALL)
_DOCUMENT_WRAPPER_RE = re.compile(
    r"\\documentclass.*?\\begin\{document\}(.*?)\\end\{document\}", re.DOTALL
)


def _build_tailor_prompt(
    resume_text: str,
    job_description: str,
    shorten_hint: str | None = None,
) -> str:
    """Build the user prompt for one tailoring attempt."""
    parts = [
        "Tailor this candidate's resume to the job description below.",
        "",
        "## Candidate Resume",
        resume_text.strip(),
        "",
        "## Job Description",
        job_description.strip(),
    ]
    if shorten_hint:
        parts.extend(["", "## Length Constraint", shorten_hint])
    parts.extend(["", "LaTeX body for the tailored resume:"])
    return "\n".join(parts)


def clean_markup(text: str) -> str:
    """Strip Markdown fences and a full-document wrapper the model may add."""
    text = text.strip()
    fenced = _FENCE_RE.match(text)
    if fenced:
        text = fenced.group(1).strip()
    wrapped = _DOCUMENT_WRAPPER_RE.search(text)
    if wrapped:
        text = wrapped.group(1).strip()
    # Bare document markers without a preamble.
    _, begin, body = text.partition("\\begin{document}")
    if begin:
        text = body
    text = text.split("\\end{document}", 1)[0]
    return text.strip()


async def generate_markup(
    resume_text: str,
    job_description: str,
    shorten_hint: str | None = None,
    *,
    model: str | None = None,
    api_key: str = "",
    retry_policy: RetryPolicy | None = None,
    _model_override: Model | None = None,
) -> str:
    """Generate tailored resume markup, retrying on provider rate limits."""
    prompt = _build_tailor_prompt(resume_text, job_description, shorten_hint)

    async def _call() -> str:
        return await complete(
            prompt,
            system_prompt=TAILOR_SYSTEM_PROMPT,
            model=model,
            api_key=api_key,
            temperature=TAILOR_TEMPERATURE,
            _model_override=_model_override,
        )

    raw = await call_with_rate_limit_retry(_call, retry_policy)
    markup = clean_markup(raw)
    if not markup:
        raise GenerationError("Model returned an empty resume")
    logger.debug("Generated markup (%d chars, hint=%s)", len(markup), bool(shorten_hint))
    return markup
