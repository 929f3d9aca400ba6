# attendancr/modules/sheets.py

import httpx
import logging
from typing import List, Optional

from pydantic import ValidationError

from ..config.config import settings
from ..models.roster_models import (
    REQUIRED_COLUMNS, ROSTER_COLUMNS, RosterRow, RosterSnapshot,
)

logger = logging.getLogger(__name__)


class RosterSourceError(Exception):
    """Raised when the roster cannot be fetched or its layout is unusable."""
    pass


class RosterConfigError(RosterSourceError):
    """Raised when the Google Sheets credentials are missing."""
    pass


class RosterSourceClient:
    """
    Reads the student roster from a Google Sheet through the Sheets v4 values API.
    The HTTP client is injected and its lifecycle belongs to the caller.
    """

    def __init__(self, http_client: httpx.AsyncClient, api_key: Optional[str] = None,
                 sheet_id: Optional[str] = None, sheet_range: Optional[str] = None,
                 api_base: Optional[str] = None):
        self._client = http_client
        self._api_key = api_key if api_key is not None else settings.GOOGLE_SHEETS_API_KEY
        self._sheet_id = sheet_id if sheet_id is not None else settings.GOOGLE_SHEET_ID
        self._range = sheet_range or settings.GOOGLE_SHEET_RANGE
        self._api_base = (api_base or settings.GOOGLE_SHEETS_API_BASE).rstrip("/")

    async def fetch_values(self) -> List[List[str]]:
        """
        Returns the raw rectangular table, header row first.
        Raises RosterConfigError or RosterSourceError.
        """
        if not self._api_key or not self._sheet_id:
            raise RosterConfigError("Google Sheets API not configured")

        url = f"{self._api_base}/{self._sheet_id}/values/{self._range}"
        logger.info(f"Fetching roster from sheet '{self._sheet_id}' ({self._range}).")
        try:
            response = await self._client.get(url, params={"key": self._api_key})
        except httpx.RequestError as e:
            logger.error(f"Network error while fetching roster: {e}", exc_info=True)
            raise RosterSourceError(f"Google Sheets API unreachable: {e}") from e

        if response.status_code >= 400:
            raise RosterSourceError(f"Google Sheets API error: {response.text}")

        try:
            data = response.json()
        except ValueError as e:
            raise RosterSourceError("Google Sheets API returned a non-JSON body") from e
        return data.get("values") or []

    async def fetch_snapshot(self) -> RosterSnapshot:
        return parse_roster(await self.fetch_values())


def parse_roster(values: List[List[str]]) -> RosterSnapshot:
    """
    Validates the header and turns each data row into a RosterRow.

    A missing required column fails the whole parse. A data row lacking a
    required value is skipped and reported in ``errors``.
    """
    if not values or len(values) < 2:
        raise RosterSourceError("No data found in sheet")

    header_map = {}
    for index, header in enumerate(values[0]):
        header_map[str(header).strip()] = index

    for column in REQUIRED_COLUMNS:
        if column not in header_map:
            raise RosterSourceError(f"Missing required column: {column}")

    snapshot = RosterSnapshot()
    for offset, row in enumerate(values[1:]):
        row_number = offset + 2  # sheet rows are 1-based and the header is row 1
        cells = {"row_number": row_number}
        for field, column in ROSTER_COLUMNS.items():
            index = header_map.get(column)
            if index is not None and index < len(row):
                cells[field] = row[index]
        try:
            snapshot.rows.append(RosterRow(**cells))
        except ValidationError:
            snapshot.errors.append(f"Row {row_number}: Missing required fields")
    return snapshot
