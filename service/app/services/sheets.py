"""
Google Sheets client for the expert database.

Reads the first worksheet with a service account. The snapshot is returned
raw, in the Sheets API shape {"values": [[header...], [row...], ...]};
column meaning is left to the matching model.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import gspread

from app.config import Settings
from app.logging_config import get_logger
from app.services.errors import DataSourceUnavailable

logger = get_logger("sheets")


class GoogleSheetsSource:
    """Fetches raw sheet snapshots; one gspread client per process."""

    def __init__(self, sheet_id: str, service_account_key: str, sheet_range: str = "A:Z"):
        self.sheet_id = sheet_id
        self.sheet_range = sheet_range
        self._service_account_key = service_account_key
        self._client: gspread.Client | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "GoogleSheetsSource":
        return cls(
            sheet_id=settings.google_sheet_id,
            service_account_key=settings.google_service_account_key,
            sheet_range=settings.google_sheet_range,
        )

    @property
    def source_id(self) -> str:
        return f"google_sheets://{self.sheet_id}"

    def _get_client(self) -> gspread.Client:
        if self._client is None:
            credentials = json.loads(self._service_account_key)
            self._client = gspread.service_account_from_dict(credentials)
        return self._client

    def _fetch_values(self) -> list[list[str]]:
        worksheet = self._get_client().open_by_key(self.sheet_id).sheet1
        return [list(row) for row in worksheet.get(self.sheet_range)]

    async def fetch(self) -> dict[str, Any]:
        """
        Fetch the current snapshot.

        Raises:
            DataSourceUnavailable: credentials, network or API failure
        """
        try:
            values = await asyncio.to_thread(self._fetch_values)
        except Exception as e:
            logger.error(f"Google Sheets API error for {self.source_id}: {e}", exc_info=True)
            raise DataSourceUnavailable("Unable to access Google Sheets") from e

        logger.info(f"Fetched {len(values)} rows from {self.source_id}")
        return {"values": values}
