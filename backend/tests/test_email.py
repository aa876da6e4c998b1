"""
Tests for outbound email logging.
"""

import pytest
from structlog.testing import capture_logs

from eventflow.services import email_service

RESET_TOKEN = "f00dfeed" * 8


@pytest.mark.asyncio
async def test_reset_token_stays_out_of_production_logs(monkeypatch):
    monkeypatch.setattr(email_service.settings, "ENVIRONMENT", "production")

    with capture_logs() as logs:
        await email_service.send_password_reset_email("fan@example.com", RESET_TOKEN)

    assert [entry["event"] for entry in logs] == ["email_sent"]
    assert logs[0]["to"] == "fan@example.com"
    assert "body" not in logs[0]
    assert RESET_TOKEN not in repr(logs)


@pytest.mark.asyncio
async def test_development_logs_include_the_message(monkeypatch):
    monkeypatch.setattr(email_service.settings, "ENVIRONMENT", "development")

    with capture_logs() as logs:
        await email_service.send_password_reset_email("fan@example.com", RESET_TOKEN)

    assert RESET_TOKEN in logs[0]["body"]
