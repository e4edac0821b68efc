"""Tests for the tailoring service request boundary."""

from __future__ import annotations

import pytest
from pydantic_ai.models.test import TestModel

from qfix.config import Settings
from qfix.core.database import SqliteQuotaStore
from qfix.core.errors import (
    ConfigError,
    GenerationError,
    InvalidInput,
    MissingIdentity,
    QuotaDenied,
)
from qfix.generation.fit_loop import FitSeekingLoop
from qfix.quota.ledger import QuotaLedger
from qfix.service import TailorService, build_service, build_store


class CountingGenerator:
    def __init__(self, error: Exception | None = None) -> None:
        self.calls = 0
        self.error = error

    async def __call__(self, resume_text, job_description, hint):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return "markup"


def one_page(markup: str) -> tuple[bytes, int]:
    return b"%PDF-1.3 fake", 1


@pytest.fixture
def generator() -> CountingGenerator:
    return CountingGenerator()


@pytest.fixture
def service(ledger: QuotaLedger, generator: CountingGenerator) -> TailorService:
    return TailorService(ledger, FitSeekingLoop(generator, one_page))


class TestTailor:
    async def test_success(self, service: TailorService, generator: CountingGenerator):
        result = await service.tailor("alice", "resume", "job")
        assert result.fit_ok is True
        assert result.document == b"%PDF-1.3 fake"
        assert generator.calls == 1

    async def test_second_request_is_denied_before_generation(
        self, service: TailorService, generator: CountingGenerator
    ):
        await service.tailor("alice", "resume", "job")
        with pytest.raises(QuotaDenied) as exc_info:
            await service.tailor("alice", "resume", "job")

        assert exc_info.value.status_code == 429
        assert "daily limit of 1 conversion" in exc_info.value.user_message
        assert generator.calls == 1

    @pytest.mark.parametrize("user_id", [None, "", "   "])
    async def test_missing_identity(self, service: TailorService, user_id):
        with pytest.raises(MissingIdentity):
            await service.tailor(user_id, "resume", "job")
        assert (await service.limit_status("alice")).remaining == 1

    async def test_blank_job_description_keeps_slot(self, service: TailorService):
        with pytest.raises(InvalidInput, match="Job description is required"):
            await service.tailor("alice", "resume", "  ")
        assert (await service.limit_status("alice")).remaining == 1

    async def test_blank_resume_keeps_slot(self, service: TailorService):
        with pytest.raises(InvalidInput, match="Resume text is empty"):
            await service.tailor("alice", "", "job")
        assert (await service.limit_status("alice")).remaining == 1

    async def test_unconfigured_generation_keeps_slot(
        self, ledger: QuotaLedger, generator: CountingGenerator
    ):
        service = TailorService(
            ledger, FitSeekingLoop(generator, one_page), generation_configured=False
        )
        with pytest.raises(ConfigError):
            await service.tailor("alice", "resume", "job")
        assert (await service.limit_status("alice")).remaining == 1
        assert generator.calls == 0

    async def test_failed_generation_is_not_refunded(self, ledger: QuotaLedger):
        service = TailorService(
            ledger, FitSeekingLoop(CountingGenerator(GenerationError("empty")), one_page)
        )
        with pytest.raises(GenerationError):
            await service.tailor("alice", "resume", "job")
        assert (await service.limit_status("alice")).remaining == 0


class TestLimitStatus:
    async def test_fresh_and_special(self, service: TailorService, ledger: QuotaLedger):
        fresh = await service.limit_status("alice")
        assert (fresh.remaining, fresh.is_special) == (1, False)

        await ledger.set_special("vip")
        vip = await service.limit_status("vip")
        assert (vip.remaining, vip.is_special) == (-1, True)


class TestBuildService:
    async def test_end_to_end_with_test_model(self, settings: Settings, short_markup: str):
        store = build_store(settings)
        service = build_service(
            settings, store, _model_override=TestModel(custom_output_text=short_markup)
        )
        result = await service.tailor("alice", "resume text", "job text")

        assert result.page_count == 1
        assert result.iterations == 1
        assert result.document.startswith(b"%PDF-")
        assert isinstance(store, SqliteQuotaStore)
        assert settings.db_path.exists()

    async def test_without_key_is_not_configured(self, settings: Settings):
        service = build_service(settings, build_store(settings))
        with pytest.raises(ConfigError):
            await service.tailor("alice", "resume", "job")

    async def test_uses_configured_iteration_cap(
        self, settings: Settings, overflowing_markup: str
    ):
        settings = settings.model_copy(update={"max_iterations": 2})
        service = build_service(
            settings,
            build_store(settings),
            _model_override=TestModel(custom_output_text=overflowing_markup),
        )
        result = await service.tailor("alice", "resume", "job")
        assert result.iterations == 2
        assert result.fit_ok is False
