"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets can back the key-value store because:
1. Users can see (and back up) their data directly in Sheets
2. No database setup required
3. Data follows the user across machines

The sheet has two columns, `key` and `value_json`, one row per key.

TRADEOFFS:
- Every operation reads the whole worksheet (fine for a handful of keys)
- No transactions across keys (the ledger never needs them)
"""

import json
from typing import Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from moneymate.config import get_settings
from moneymate.services.storage.interface import (
    ConnectionError,
    JSONValue,
    KeyValueStoreInterface,
    SerializationError,
    StorageError,
)


KV_COLUMNS = ["key", "value_json"]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_kv_sheet(self) -> gspread.Worksheet:
        """Get or create the key/value worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.kv_sheet_name)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=self._settings.kv_sheet_name,
                rows=200,
                cols=len(KV_COLUMNS),
            )
            sheet.append_row(KV_COLUMNS)
        return sheet


class GoogleSheetsKeyValueStore(KeyValueStoreInterface):
    """
    Google Sheets implementation of the key-value store.

    Values are JSON-encoded into the second column.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _rows(self, sheet: gspread.Worksheet) -> list[list[str]]:
        # Skip header
        return sheet.get_all_values()[1:]

    @staticmethod
    def _find_row(rows: list[list[str]], key: str) -> Optional[int]:
        """1-based sheet row index for a key (row 1 is the header)."""
        for idx, row in enumerate(rows, start=2):
            if row and row[0] == key:
                return idx
        return None

    async def get(self, key: str) -> Optional[JSONValue]:
        """Read a value from the sheet."""
        try:
            sheet = self._client.get_kv_sheet()
            for row in self._rows(sheet):
                if row and row[0] == key:
                    raw = row[1] if len(row) > 1 else ""
                    return json.loads(raw) if raw else None
            return None
        except json.JSONDecodeError as e:
            raise SerializationError(f"Corrupt value for {key}: {e}")
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {key}: {e}")

    @retry(
        retry=retry_if_not_exception_type(SerializationError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def set(self, key: str, value: JSONValue) -> bool:
        """Upsert a value into the sheet."""
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Value is not JSON-serializable: {e}")

        try:
            sheet = self._client.get_kv_sheet()
            row_idx = self._find_row(self._rows(sheet), key)
            if row_idx is None:
                sheet.append_row([key, encoded], value_input_option="RAW")
            else:
                sheet.update_cell(row_idx, 2, encoded)
            return True
        except Exception as e:
            raise StorageError(f"Failed to write {key}: {e}")

    async def remove(self, key: str) -> bool:
        """Delete the row holding a key."""
        try:
            sheet = self._client.get_kv_sheet()
            row_idx = self._find_row(self._rows(sheet), key)
            if row_idx is None:
                return False
            sheet.delete_rows(row_idx)
            return True
        except Exception as e:
            raise StorageError(f"Failed to remove {key}: {e}")

    async def keys(self, prefix: str = "") -> list[str]:
        try:
            sheet = self._client.get_kv_sheet()
            return sorted(
                row[0] for row in self._rows(sheet)
                if row and row[0] and row[0].startswith(prefix)
            )
        except Exception as e:
            raise StorageError(f"Failed to list keys: {e}")
