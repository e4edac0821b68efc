"""Tailored resume generation and the one-page fit-seeking loop."""

from qfix.generation.fit_loop import MAX_ITERATIONS, FitSeekingLoop, shorten_hint
from qfix.generation.retry import RetryPolicy, call_with_rate_limit_retry, is_rate_limit_error
from qfix.generation.tailor_generator import generate_markup

__all__ = [
    "MAX_ITERATIONS",
    "FitSeekingLoop",
    "RetryPolicy",
    "call_with_rate_limit_retry",
    "generate_markup",
    "is_rate_limit_error",
    "shorten_hint",
]
