"""Pytest configuration and fixtures for backend tests."""

from collections.abc import AsyncGenerator, Iterator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from pregsafe.core.config import settings
from pregsafe.main import app
from pregsafe.services.audit_store import reset_audit_store
from pregsafe.services.risk_calculator import reset_risk_calculator_service


@pytest.fixture(autouse=True)
def audit_log_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Point the audit store at a per-test file.

    Keeps tests from writing to the real audit trail.
    """
    path = tmp_path / "audit" / "pregnancy-audit-log.json"
    monkeypatch.setattr(settings, "audit_log_path", path)
    reset_audit_store()
    reset_risk_calculator_service()
    yield path
    reset_audit_store()
    reset_risk_calculator_service()


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
