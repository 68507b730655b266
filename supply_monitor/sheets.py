from __future__ import annotations

import asyncio
import logging
from typing import Any

from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from supply_monitor.config import Settings
from supply_monitor.errors import (
    ConfigurationError,
    InvalidInput,
    RemoteApiError,
    RemoteQuotaError,
    SheetNotFoundError,
)
from supply_monitor.models import SheetInfo, SheetTab, SheetValidation
from supply_monitor.monitoring import is_quota_error

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

SHEET_INFO_FIELDS = "properties(title,locale),sheets(properties(title,sheetId))"

CellValue = str | int | float


def quote_range(sheet_title: str, cell: str) -> str:
    """Build an A1 range like 'My Sheet'!B7, escaping quotes in the title."""
    escaped = sheet_title.replace("'", "''")
    return f"'{escaped}'!{cell}"


def translate_http_error(error: HttpError, action: str) -> RemoteApiError:
    status = getattr(error.resp, "status", None)
    message = f"{action} failed: {error}"
    if is_quota_error(error):
        return RemoteQuotaError(message, status=status)
    return RemoteApiError(message, status=status)


def _first_value(values: list[list[Any]] | None) -> CellValue | None:
    if not values or not values[0]:
        return None
    value = values[0][0]
    if value == "":
        return None
    return value


class SheetsClient:
    """Google Sheets client with sync methods and async wrappers."""

    def __init__(
        self,
        credentials_info: dict | None = None,
        service: Any = None,
    ):
        self._credentials_info = credentials_info
        self._service = service

    @classmethod
    def from_settings(cls, settings: Settings) -> SheetsClient:
        return cls(credentials_info=settings.get_google_credentials_info())

    @property
    def service(self):
        """Lazy-loaded Sheets service."""
        if self._service is None:
            if self._credentials_info is None:
                raise ConfigurationError("Google credentials are not configured")
            creds = Credentials.from_service_account_info(self._credentials_info, scopes=SCOPES)
            self._service = build("sheets", "v4", credentials=creds, cache_discovery=False)
            logger.info("Google Sheets service initialized successfully")
        return self._service

    def _execute(self, request: Any, action: str) -> dict[str, Any]:
        try:
            return request.execute()
        except HttpError as e:
            raise translate_http_error(e, action) from e

    # -------------------------------------------------------------------------
    # Low-level sync methods (blocking)
    # -------------------------------------------------------------------------
    def _get_sheet_info_sync(self, doc_id: str) -> SheetInfo:
        data = self._execute(
            self.service.spreadsheets().get(spreadsheetId=doc_id, fields=SHEET_INFO_FIELDS),
            f"Getting sheet info for {doc_id}",
        )
        properties = data.get("properties", {})
        return SheetInfo(
            title=properties.get("title", ""),
            locale=properties.get("locale", ""),
            sheets=[
                SheetTab(
                    title=s["properties"]["title"],
                    sheet_id=s["properties"].get("sheetId", 0),
                )
                for s in data.get("sheets", [])
            ],
        )

    def _get_values_sync(self, doc_id: str, a1: str) -> list[list[Any]]:
        resp = self._execute(
            self.service.spreadsheets().values().get(spreadsheetId=doc_id, range=a1),
            f"Reading {a1} from {doc_id}",
        )
        return resp.get("values", [])

    def _batch_get_values_sync(self, doc_id: str, ranges: list[str]) -> list[list[list[Any]]]:
        """Read several ranges in a single API call, preserving request order."""
        resp = self._execute(
            self.service.spreadsheets().values().batchGet(spreadsheetId=doc_id, ranges=ranges),
            f"Batch reading {len(ranges)} ranges from {doc_id}",
        )
        value_ranges = resp.get("valueRanges", [])
        return [
            value_ranges[i].get("values", []) if i < len(value_ranges) else []
            for i in range(len(ranges))
        ]

    def _update_values_sync(self, doc_id: str, a1: str, values: list[list[Any]]) -> dict[str, Any]:
        return self._execute(
            self.service.spreadsheets().values().update(
                spreadsheetId=doc_id,
                range=a1,
                valueInputOption="RAW",
                body={"values": values},
            ),
            f"Updating {a1} in {doc_id}",
        )

    # -------------------------------------------------------------------------
    # Async API
    # -------------------------------------------------------------------------
    async def get_sheet_info(self, doc_id: str) -> SheetInfo:
        return await asyncio.to_thread(self._get_sheet_info_sync, doc_id)

    async def list_sheets(self, doc_id: str) -> list[SheetTab]:
        info = await self.get_sheet_info(doc_id)
        return info.sheets

    async def resolve_sheet_title(self, doc_id: str, sheet_name: str | None = None) -> str:
        """
        Pick the target tab title.
        Defaults to the first sheet when no name is given.
        """
        info = await self.get_sheet_info(doc_id)
        if not info.sheets:
            raise RemoteApiError(f"Spreadsheet {doc_id} has no sheets.")

        if not sheet_name:
            return info.sheets[0].title

        if sheet_name not in info.titles:
            raise SheetNotFoundError(
                f'Sheet "{sheet_name}" not found in spreadsheet {doc_id}. '
                f"Available sheets: {', '.join(info.titles)}",
                available=info.titles,
            )
        return sheet_name

    async def get_cell_value(
        self, doc_id: str, cell: str, sheet_name: str | None = None
    ) -> CellValue:
        title = await self.resolve_sheet_title(doc_id, sheet_name)
        logger.debug('Getting cell value from sheet %s, sheet "%s", cell %s', doc_id, title, cell)

        values = await asyncio.to_thread(self._get_values_sync, doc_id, quote_range(title, cell))
        value = _first_value(values)
        if value is None:
            raise InvalidInput(f'No data found in cell {cell} of sheet "{title}"')

        logger.debug('Retrieved cell value from "%s": %s', title, value)
        return value

    async def get_cell_values_batch(
        self, doc_id: str, cells: list[str], sheet_name: str | None = None
    ) -> dict[str, CellValue | None]:
        """Read several cells with one values call. Empty cells map to None."""
        title = await self.resolve_sheet_title(doc_id, sheet_name)
        ranges = [quote_range(title, cell) for cell in cells]
        logger.debug('Batch reading %s from sheet %s, sheet "%s"', cells, doc_id, title)

        results = await asyncio.to_thread(self._batch_get_values_sync, doc_id, ranges)
        return {cell: _first_value(values) for cell, values in zip(cells, results)}

    async def update_cell_value(
        self,
        doc_id: str,
        cell: str,
        value: CellValue,
        sheet_name: str | None = None,
    ) -> dict[str, Any]:
        title = await self.resolve_sheet_title(doc_id, sheet_name)
        logger.debug(
            'Updating cell value in sheet %s, sheet "%s", cell %s to value: %s',
            doc_id,
            title,
            cell,
            value,
        )
        return await asyncio.to_thread(
            self._update_values_sync, doc_id, quote_range(title, cell), [[value]]
        )

    async def validate_sheet_config(
        self, doc_id: str, sheet_name: str | None = None
    ) -> SheetValidation:
        """Check that the document is reachable and the target tab exists."""
        info = await self.get_sheet_info(doc_id)
        result = SheetValidation(
            spreadsheet_title=info.title,
            total_sheets=len(info.sheets),
            available_sheets=info.titles,
        )

        if not info.sheets:
            result.message = "Spreadsheet has no sheets"
            return result

        if sheet_name:
            if sheet_name in info.titles:
                result.target_sheet = sheet_name
                result.is_valid = True
                result.message = f'Found target sheet "{sheet_name}"'
            else:
                result.message = (
                    f'Sheet "{sheet_name}" not found. '
                    f"Available sheets: {', '.join(info.titles)}"
                )
        else:
            result.target_sheet = info.sheets[0].title
            result.is_valid = True
            result.message = f'Using first sheet "{result.target_sheet}" (no sheetName specified)'

        return result
