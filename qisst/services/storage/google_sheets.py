"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a backend because:
1. The organizer can keep the committee data in their own Google account
2. Nothing to install or back up on the device
3. The same data can be opened from a phone and a laptop (one at a time)

LAYOUT: a single worksheet with one row per bucket:
    key | snapshot | updated_at
The snapshot cell holds the same JSON the local file store writes.

TRADEOFFS:
- A cell holds at most 50,000 characters; fine for committee-sized data
- No transactions (save_many writes the rows one after another)
- Every call is a network round-trip, so they are retried with backoff
"""

from typing import Optional

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from qisst.config import GoogleSheetsSettings, get_settings
from qisst.models.committee import utc_now
from qisst.services.storage.interface import (
    Bucket,
    BucketStore,
    ConnectionError,
    StorageError,
)


logger = structlog.get_logger(__name__)

# Column layout of the Buckets sheet
BUCKET_COLUMNS = [
    "key",
    "snapshot",
    "updated_at",
]

# Hard limit Google enforces per cell
MAX_CELL_CHARS = 50_000


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

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

    def get_buckets_sheet(self) -> gspread.Worksheet:
        """Get or create the Buckets worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.buckets_sheet_name)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=self._settings.buckets_sheet_name,
                rows=10,
                cols=len(BUCKET_COLUMNS),
            )
            sheet.append_row(BUCKET_COLUMNS)
        return sheet


class GoogleSheetsBucketStore(BucketStore):
    """
    Google Sheets implementation of bucket storage.

    Rows are found by key on every call; the sheet is tiny (four rows).
    """

    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        key_prefix: str = "qisst_",
    ):
        super().__init__(key_prefix=key_prefix)
        self._client = client or GoogleSheetsClient()

    def _find_row(self, sheet, key: str) -> tuple[Optional[int], Optional[list]]:
        """Return (1-based row number, row values) for a key, skipping the header."""
        all_rows = sheet.get_all_values()
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == key:
                return idx, row
        return None, None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def load(self, bucket: Bucket) -> Optional[str]:
        """Read a bucket's snapshot cell."""
        try:
            sheet = self._client.get_buckets_sheet()
            _, row = self._find_row(sheet, self.key_for(bucket))
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to load bucket: {e}")

        if row is None or len(row) < 2 or not row[1]:
            return None
        return row[1]

    def save(self, bucket: Bucket, snapshot: str) -> bool:
        """Replace a bucket's row, appending it on first save."""
        if len(snapshot) > MAX_CELL_CHARS:
            raise StorageError(
                f"Snapshot for '{Bucket(bucket).value}' is {len(snapshot)} characters; "
                f"Google Sheets cells hold at most {MAX_CELL_CHARS}"
            )

        return self._write_row(self.key_for(bucket), snapshot)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _write_row(self, key: str, snapshot: str) -> bool:
        updated_at = utc_now().isoformat()
        try:
            sheet = self._client.get_buckets_sheet()
            row_number, _ = self._find_row(sheet, key)
            if row_number is None:
                sheet.append_row([key, snapshot, updated_at], value_input_option="RAW")
            else:
                sheet.update(
                    range_name=f"B{row_number}:C{row_number}",
                    values=[[snapshot, updated_at]],
                    value_input_option="RAW",
                )
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save bucket: {e}")

        logger.debug("bucket_saved", key=key, backend="google_sheets")
        return True

    def delete(self, bucket: Bucket) -> bool:
        """Delete a bucket's row."""
        try:
            sheet = self._client.get_buckets_sheet()
            row_number, _ = self._find_row(sheet, self.key_for(bucket))
            if row_number is None:
                return False
            sheet.delete_rows(row_number)
            return True
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete bucket: {e}")
