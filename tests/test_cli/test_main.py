from __future__ import annotations

from pathlib import Path

import pytest
from pydantic_ai.models.test import TestModel
from typer.testing import CliRunner

from qfix.cli import tailor_cmd
from qfix.main import app
from qfix.service import build_service

runner = CliRunner()


@pytest.fixture(autouse=True)
def cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the CLI at a temp database with no provider key."""
    db_path = tmp_path / "cli.db"
    monkeypatch.setenv("QFIX_DB_PATH", str(db_path))
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    return db_path


@pytest.fixture
def files(tmp_path: Path) -> tuple[Path, Path]:
    resume = tmp_path / "resume.txt"
    resume.write_text("Jane Doe\nBackend developer, Python, FastAPI", encoding="utf-8")
    job = tmp_path / "job.txt"
    job.write_text("Senior Python engineer", encoding="utf-8")
    return resume, job


@pytest.fixture
def fake_model(monkeypatch: pytest.MonkeyPatch, short_markup: str) -> None:
    def _build(settings, store):
        return build_service(
            settings, store, _model_override=TestModel(custom_output_text=short_markup)
        )

    monkeypatch.setattr(tailor_cmd, "build_service", _build)


def test_version_flag():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "qfix 0.1.0" in result.output


def test_no_args_shows_help():
    result = runner.invoke(app, [])
    assert "Tailor resumes to job descriptions" in result.output


def test_debug_flag():
    """--debug flag should be accepted and not error."""
    result = runner.invoke(app, ["--debug", "status", "--user", "alice"])
    assert result.exit_code == 0


class TestStatus:
    def test_fresh_user(self):
        result = runner.invoke(app, ["status", "--user", "alice"])
        assert result.exit_code == 0
        assert "1 remaining today" in result.output

    def test_invalid_config_exits(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("QFIX_DAILY_LIMIT", "many")
        result = runner.invoke(app, ["status", "--user", "alice"])
        assert result.exit_code == 1
        assert "QFIX_DAILY_LIMIT" in result.output


class TestQuotaSpecial:
    def test_grant_and_revoke(self):
        result = runner.invoke(app, ["quota", "special", "vip"])
        assert result.exit_code == 0
        assert "special user" in result.output

        result = runner.invoke(app, ["status", "--user", "vip"])
        assert "unlimited" in result.output

        result = runner.invoke(app, ["quota", "special", "vip", "--revoke"])
        assert result.exit_code == 0
        assert "back on the daily limit" in result.output

        result = runner.invoke(app, ["status", "--user", "vip"])
        assert "1 remaining today" in result.output


class TestTailor:
    def test_writes_pdf_and_source(self, files, fake_model, tmp_path: Path):
        resume, job = files
        out = tmp_path / "out" / "tailored.pdf"
        result = runner.invoke(
            app, ["tailor", str(resume), "--job", str(job), "--user", "alice", "--out", str(out)]
        )
        assert result.exit_code == 0, result.output
        assert out.read_bytes().startswith(b"%PDF-")
        assert "Jane Doe" in out.with_suffix(".tex").read_text(encoding="utf-8")

    def test_default_output_path(self, files, fake_model):
        resume, job = files
        result = runner.invoke(app, ["tailor", str(resume), "-j", str(job), "-u", "alice"])
        assert result.exit_code == 0, result.output
        assert (resume.parent / "resume-tailored.pdf").exists()

    def test_second_run_hits_daily_limit(self, files, fake_model):
        resume, job = files
        args = ["tailor", str(resume), "--job", str(job), "--user", "alice"]
        assert runner.invoke(app, args).exit_code == 0

        result = runner.invoke(app, args)
        assert result.exit_code == 1
        assert "daily limit" in result.output

        status = runner.invoke(app, ["status", "--user", "alice"])
        assert "daily limit reached" in status.output

    def test_missing_api_key(self, files):
        resume, job = files
        result = runner.invoke(app, ["tailor", str(resume), "--job", str(job), "--user", "alice"])
        assert result.exit_code == 1
        assert "OPENROUTER_API_KEY" in result.output

    def test_missing_resume_file(self, files, tmp_path: Path):
        _, job = files
        result = runner.invoke(
            app, ["tailor", str(tmp_path / "nope.pdf"), "--job", str(job), "--user", "alice"]
        )
        assert result.exit_code == 1
        assert "File not found" in result.output
