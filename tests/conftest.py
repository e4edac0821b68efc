"""Shared test fixtures available to all test modules."""

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from qfix.config import Settings
from qfix.core.database import SqliteQuotaStore
from qfix.quota.ledger import QuotaLedger

DAY = date(2025, 1, 15)
NEXT_DAY = date(2025, 1, 16)

SHORT_MARKUP = r"""
\begin{center}
{\Large \textbf{Jane Doe}} \\
jane@example.com | +1 555 0100 | \href{https://github.com/jdoe}{github.com/jdoe}
\end{center}

\section{Experience}
\textbf{Backend Developer} \hfill 2021 -- Present \\
\textit{Acme Corp}
\begin{itemize}
\item Built REST APIs in Python \& FastAPI
\item Cut p95 latency by 40\%
\end{itemize}

\section{Skills}
\begin{tabular}{ll}
\textbf{Languages} & Python, SQL \\
\textbf{Tools} & Docker, Git \\
\end{tabular}
"""


def long_markup(roles: int = 12, bullets: int = 8) -> str:
    """Markup that cannot fit on one A4 page."""
    parts = [r"\begin{center}{\Large \textbf{Jane Doe}}\end{center}", r"\section{Experience}"]
    for r in range(roles):
        parts.append(rf"\textbf{{Engineer {r}}} \hfill 20{10 + r} -- 20{11 + r} \\ \textit{{Company {r}}}")
        parts.append(r"\begin{itemize}")
        for b in range(bullets):
            parts.append(
                rf"\item Delivered project {r}.{b} improving throughput of the "
                r"ingestion pipeline and reducing operational toil for the team"
            )
        parts.append(r"\end{itemize}")
    return "\n".join(parts)


@pytest.fixture
def store(tmp_path: Path) -> SqliteQuotaStore:
    """Return an initialised SQLite quota store in a temp directory."""
    s = SqliteQuotaStore(tmp_path / "quota.db")
    s.initialize()
    return s


@pytest.fixture
def ledger(store: SqliteQuotaStore) -> QuotaLedger:
    """Ledger pinned to a fixed UTC day."""
    return QuotaLedger(store, today=lambda: DAY)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with a temp database, no API key and zero backoff."""
    return Settings(
        db_path=tmp_path / "quota.db",
        api_key="",
        retry_delays=(0.0, 0.0),
    )


@pytest.fixture
def short_markup() -> str:
    return SHORT_MARKUP


@pytest.fixture
def overflowing_markup() -> str:
    return long_markup()
