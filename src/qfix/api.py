"""HTTP API.

Two endpoints share one ``TailorService`` built at startup:

- ``POST /api/tailor`` reserves the user's daily slot and runs the
  fit-seeking generation loop.
- ``POST /api/rate-limit`` reports the remaining allowance (advisory only).
"""

from __future__ import annotations

import base64
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic_ai.models import Model

from qfix.config import Settings, load_settings
from qfix.core.database import QuotaStore
from qfix.core.errors import QfixError
from qfix.service import TailorService, build_service, build_store

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Failed to tailor resume. Please try again later."


class TailorRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str | None = Field(default=None, alias="userId")
    resume_text: str | None = Field(default=None, alias="resumeText")
    job_description: str | None = Field(default=None, alias="jobDescription")


class RateLimitRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str | None = Field(default=None, alias="userId")
    action: str | None = None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _qfix_error_response(exc: QfixError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s: %s", type(exc).__name__, exc)
    else:
        logger.info("Rejected request (%d): %s", exc.status_code, exc)
    return _error(exc.status_code, exc.user_message)


def create_app(
    settings: Settings | None = None,
    *,
    store: QuotaStore | None = None,
    _model_override: Model | None = None,
) -> FastAPI:
    """Build the FastAPI app. Store and service are created in the lifespan."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app_settings = settings or load_settings()
        app_store = store or build_store(app_settings)
        app.state.settings = app_settings
        app.state.store = app_store
        app.state.service = build_service(
            app_settings, app_store, _model_override=_model_override
        )
        logger.info("qfix API ready (db=%s)", app_settings.db_path)
        try:
            yield
        finally:
            await app_store.close()

    app = FastAPI(title="qfix", lifespan=lifespan)

    @app.exception_handler(RequestValidationError)
    async def _invalid_body(request: Request, exc: RequestValidationError):
        return _error(400, "Invalid request body.")

    @app.exception_handler(QfixError)
    async def _qfix_error(request: Request, exc: QfixError):
        return _qfix_error_response(exc)

    @app.post("/api/tailor")
    async def tailor(body: TailorRequest, request: Request):
        service: TailorService = request.app.state.service
        try:
            result = await service.tailor(
                body.user_id, body.resume_text, body.job_description
            )
        except QfixError as exc:
            return _qfix_error_response(exc)
        except Exception:
            logger.exception("Unexpected error while tailoring for %s", body.user_id)
            return _error(500, GENERIC_ERROR)

        return {
            "tailoredResumePdf": base64.b64encode(result.document).decode("ascii"),
            "tailoredResumeText": result.markup,
            "pageCount": result.page_count,
            "fitOk": result.fit_ok,
            "iterations": result.iterations,
        }

    @app.post("/api/rate-limit")
    async def rate_limit(body: RateLimitRequest, request: Request):
        if not (body.user_id or "").strip():
            return _error(400, "User ID is required.")

        service: TailorService = request.app.state.service
        if body.action == "check":
            status = await service.limit_status(body.user_id.strip())
            return {"remaining": status.remaining, "isSpecial": status.is_special}
        if body.action == "record":
            return {"message": "Conversions are recorded by the tailor API."}
        return _error(400, "Invalid action.")

    return app
