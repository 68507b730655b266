"""Pytest configuration and fixtures."""

import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import httplib2
import pytest
from googleapiclient.errors import HttpError

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

SETTINGS_ENV_VARS = (
    "SHEETS_CONFIG",
    "SHEETS_CONFIG_PATH",
    "GOOGLE_SERVICE_ACCOUNT_KEY",
    "GOOGLE_SERVICE_ACCOUNT_PATH",
    "SHEET_DELAY_SECONDS",
    "RETRY_MAX_ATTEMPTS",
    "RETRY_BASE_DELAY",
    "WEBHOOK_TIMEOUT",
    "TIMEZONE",
    "LOG_LEVEL",
    "LOG_REDACT",
    "SENTRY_DSN",
    "ENVIRONMENT",
)

# Friday, October 17th 2025, noon in New York
FIXED_NOW = datetime(2025, 10, 17, 16, 0, tzinfo=UTC)

WEBHOOK_URL = "https://discord.com/api/webhooks/123/abc-token"


@pytest.fixture
def make_http_error():
    """Factory for real googleapiclient HttpErrors with a JSON error body."""

    def factory(status: int, message: str) -> HttpError:
        resp = httplib2.Response({"status": status})
        content = json.dumps({"error": {"code": status, "message": message}}).encode()
        return HttpError(resp, content, uri="https://sheets.googleapis.com/v4/spreadsheets/doc")

    return factory


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Keep host environment and .env files out of Settings."""
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)

    from supply_monitor.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def restore_root_logging():
    """Drop handlers installed by setup_logging() during a test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def sheet_record():
    """Raw JSON record for one sheet, as found in sheets.json."""
    return {
        "name": "Warehouse A",
        "sheetId": "doc-a",
        "sheetName": "Inventory",
        "currentSuppliesCell": "B2",
        "dailyConsumptionCell": "B3",
        "webhookUrl": WEBHOOK_URL,
    }


@pytest.fixture
def sheet_config(sheet_record):
    from supply_monitor.config import SheetConfig

    return SheetConfig.model_validate(sheet_record)


@pytest.fixture
def sleeps():
    """Async sleep replacement that records requested delays."""
    calls: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        calls.append(seconds)

    fake_sleep.calls = calls
    return fake_sleep


@pytest.fixture
def mock_transport():
    """JSON webhook transport that records payloads."""
    transport = MagicMock()
    transport.post_json = AsyncMock(return_value="")
    return transport


@pytest.fixture
def notifier(mock_transport):
    from supply_monitor.notifier import DiscordNotifier

    return DiscordNotifier(mock_transport, clock=lambda: FIXED_NOW)


@pytest.fixture
def mock_sheets():
    """Sheets client stand-in with async cell operations."""
    sheets = MagicMock()
    sheets.get_cell_values_batch = AsyncMock(return_value={"B2": "100", "B3": "10"})
    sheets.update_cell_value = AsyncMock(return_value={"updatedCells": 1})
    sheets.validate_sheet_config = AsyncMock()
    return sheets


@pytest.fixture
def mock_service():
    """Mocked googleapiclient Sheets service resource."""
    service = MagicMock()
    service.spreadsheets.return_value.get.return_value.execute.return_value = {
        "properties": {"title": "Supplies", "locale": "en_US"},
        "sheets": [
            {"properties": {"title": "Inventory", "sheetId": 0}},
            {"properties": {"title": "History", "sheetId": 1}},
        ],
    }
    return service
