"""
Spreadsheet API client.

Reads snapshot collections from the Apps Script web app that fronts the
order, serialization, sales, inventory and price list sheets.

The web app takes a form POST whose ``payload`` field is a JSON object
(``{"action": "read", "sheetType": ...}``) and answers with
``{"status": "success", "data": [...]}`` or
``{"status": "error", "message": ...}``.
"""

import json
from typing import Any, Dict, List, Optional

import requests
import structlog

from config import get_settings
from exceptions import SnapshotFetchError

logger = structlog.get_logger(__name__)


# Snapshot collection -> sheetType understood by the web app
SHEET_TYPES: Dict[str, str] = {
    "orders": "orders",
    "serialized_units": "serialization",
    "sales": "sales",
    "inventory": "INVENTORY",
    "price_list": "price-list",
}


class SheetsClient:
    """Thin requests wrapper around the spreadsheet web app."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        settings = get_settings()
        self.base_url = base_url or settings.sheets_api_url
        self.timeout = timeout or settings.sheets_timeout_seconds
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    def fetch_collection(self, sheet_type: str) -> List[Dict[str, Any]]:
        """
        Read every row of one sheet.

        Args:
            sheet_type: Web app sheet type (e.g., "orders", "price-list")

        Returns:
            Raw rows as dicts

        Raises:
            SnapshotFetchError: On network failure, HTTP error, malformed
                response, or an error reported by the web app
        """
        if not self.configured:
            raise SnapshotFetchError(sheet_type, "SHEETS_API_URL is not configured")

        payload = {"payload": json.dumps({"action": "read", "sheetType": sheet_type})}

        try:
            logger.debug("fetching_sheet", sheet_type=sheet_type)
            response = self.session.post(self.base_url, data=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error("sheet_request_failed", sheet_type=sheet_type, error=str(e))
            raise SnapshotFetchError(sheet_type, f"Failed to read sheet '{sheet_type}': {str(e)}")

        try:
            result = response.json()
        except ValueError:
            logger.error("sheet_response_not_json", sheet_type=sheet_type, body=response.text[:200])
            raise SnapshotFetchError(sheet_type, f"Sheet '{sheet_type}' returned a non-JSON response")

        if not isinstance(result, dict):
            raise SnapshotFetchError(sheet_type, f"Sheet '{sheet_type}' returned an unexpected response")

        if result.get("status") == "error":
            error_msg = result.get("message", "Unknown error")
            logger.error("sheet_api_error", sheet_type=sheet_type, error=error_msg)
            raise SnapshotFetchError(sheet_type, f"Sheet API error: {error_msg}")

        rows = result.get("data")
        if not isinstance(rows, list):
            raise SnapshotFetchError(
                sheet_type,
                f"Sheet '{sheet_type}' did not return a list of rows",
                details={"type": type(rows).__name__},
            )

        logger.info("sheet_fetched", sheet_type=sheet_type, rows=len(rows))
        return rows

    def fetch_snapshot(self) -> Dict[str, List[Dict[str, Any]]]:
        """Read all five collections, keyed by collection name."""
        return {
            collection: self.fetch_collection(sheet_type)
            for collection, sheet_type in SHEET_TYPES.items()
        }


# Singleton instance
_sheets_client: Optional[SheetsClient] = None


def get_sheets_client() -> SheetsClient:
    """Get singleton instance of SheetsClient."""
    global _sheets_client
    if _sheets_client is None:
        _sheets_client = SheetsClient()
    return _sheets_client
