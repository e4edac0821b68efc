"""Error taxonomy shared by the quota ledger, the generation loop and the
request boundaries.

Every error carries the HTTP-equivalent ``status_code`` the boundary should
answer with, and a ``user_message`` that is safe to show to the end user.
The exception text itself (``str(exc)``) may hold more detail and is meant
for the server log.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from qfix.core.models import QuotaDecision


class QfixError(Exception):
    """Base class for all errors raised by qfix."""

    status_code = 500
    default_user_message = "Failed to tailor resume. Please try again later."

    def __init__(self, message: str, *, user_message: str | None = None):
        super().__init__(message)
        self.user_message = user_message or self.default_user_message


class InvalidInput(QfixError):
    """Missing or unusable resume text / job description."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message, user_message=message)


class MissingIdentity(QfixError):
    """The request did not identify a user."""

    status_code = 401
    default_user_message = "You must be signed in to tailor a resume."


class QuotaDenied(QfixError):
    """The user has no reservation left for the current UTC day."""

    status_code = 429

    def __init__(self, decision: QuotaDecision):
        reason = decision.reason or "Daily limit reached."
        super().__init__(reason, user_message=reason)
        self.decision = decision


class QuotaInfrastructureFault(QfixError):
    """Quota storage is unreachable or misconfigured."""

    status_code = 500
    default_user_message = "Service is temporarily unavailable. Please try again later."


class ProviderRateLimited(QfixError):
    """The generation provider kept throttling after all retries."""

    status_code = 503
    default_user_message = (
        "The AI service is busy right now. Please try again in a few minutes."
    )


class GenerationError(QfixError):
    """The generation provider returned nothing usable."""


class RenderError(QfixError):
    """Generated markup could not be rendered to a document."""

    default_user_message = (
        "Failed to convert the tailored resume to PDF. Please try again."
    )


class ConfigError(QfixError):
    """Configuration is missing or malformed."""

    default_user_message = "Service is misconfigured. Please contact support."
