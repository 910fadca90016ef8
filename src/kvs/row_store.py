"""Row stores backing the key-value store.

A row store is a two-column table whose first row is a header and whose
remaining rows hold one encoded key and one encoded value each.
"""

import asyncio
import logging
import re
from pathlib import Path
from typing import Any, Optional

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .config import DEFAULT_MAX_RETRIES, KvsConfig

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

# Upper bound for a single backoff wait, in seconds
MAX_BACKOFF_SECONDS = 64

_UPDATED_RANGE_ROW = re.compile(r"![A-Z]+(\d+)")


class RowStoreError(Exception):
    """Base class of row store errors."""


class SheetNotFoundError(RowStoreError):
    """Raised when the configured sheet does not exist in the spreadsheet."""


class RowDeletedError(RowStoreError):
    """Raised when a deleted row is saved or deleted again."""


class Row:
    """A data row of a row store."""

    def __init__(self, row_number: int, key: str, value: str) -> None:
        """Initialize a row.

        Args:
            row_number (int): The 1-based position of the row in its table,
            the header being row 1.
            key (str): The encoded key cell.
            value (str): The encoded value cell.

        """
        self.row_number = row_number
        self.key = key
        self.value = value
        self.is_deleted = False

    def __repr__(self) -> str:
        state = " deleted" if self.is_deleted else ""
        return f"<Row {self.row_number}{state} key={self.key!r}>"


class RowStore:
    """Abstract async access to a two-column table.

    The store remembers the rows it handed out so that deleting one row
    can renumber the rows below it. Rows returned by an earlier call to
    get_rows() are not renumbered after the next call.
    """

    def __init__(self) -> None:
        self._rows: list[Row] = []

    async def connect(self) -> None:
        """Open the underlying table."""
        raise NotImplementedError()

    async def get_header_row(self) -> list[str]:
        raise NotImplementedError()

    async def set_header_row(self, values: list[str]) -> None:
        raise NotImplementedError()

    async def get_rows(self) -> list[Row]:
        """Return every data row, in table order."""
        raise NotImplementedError()

    async def add_row(self, key: str, value: str) -> Row:
        """Append a row and return it."""
        raise NotImplementedError()

    async def update_row(self, row: Row) -> None:
        """Write the row's key and value cells back to the table."""
        raise NotImplementedError()

    async def delete_row(self, row: Row) -> None:
        """Remove the row from the table."""
        raise NotImplementedError()

    def _track(self, rows: list[Row]) -> list[Row]:
        self._rows = list(rows)
        return rows

    def _check_live(self, row: Row) -> None:
        if row.is_deleted:
            raise RowDeletedError(f"Row for key {row.key!r} was deleted.")

    def _forget(self, row: Row) -> None:
        """Mark a row deleted and shift the rows below it up by one."""
        row.is_deleted = True
        if row in self._rows:
            self._rows.remove(row)
        for other in self._rows:
            if other.row_number > row.row_number:
                other.row_number -= 1


class MemoryRowStore(RowStore):
    """A row store kept in a Python list, for tests and local use."""

    def __init__(
        self,
        header: Optional[list[str]] = None,
        rows: Optional[list[tuple[str, str]]] = None,
    ) -> None:
        """Initialize the table.

        Args:
            header (Optional[list[str]]): The header row, empty if None.
            rows (Optional[list[tuple[str, str]]]): Initial (key, value)
            data rows.

        """
        super().__init__()
        self.table: list[list[str]] = [list(header or [])]
        for key, value in rows or []:
            self.table.append([key, value])

    async def connect(self) -> None:
        pass

    async def get_header_row(self) -> list[str]:
        return list(self.table[0])

    async def set_header_row(self, values: list[str]) -> None:
        self.table[0] = list(values)

    async def get_rows(self) -> list[Row]:
        return self._track(
            [
                Row(number, *cells)
                for number, cells in enumerate(self.table[1:], start=2)
            ],
        )

    async def add_row(self, key: str, value: str) -> Row:
        self.table.append([key, value])
        row = Row(len(self.table), key, value)
        self._rows.append(row)
        return row

    async def update_row(self, row: Row) -> None:
        self._check_live(row)
        self.table[row.row_number - 1] = [row.key, row.value]

    async def delete_row(self, row: Row) -> None:
        self._check_live(row)
        del self.table[row.row_number - 1]
        self._forget(row)


def _is_rate_limit_error(exception: HttpError) -> bool:
    return exception.resp.status in (429, 503)


def _get_retry_after(exception: HttpError) -> Optional[int]:
    """Return the number of seconds a Retry-After header asks for."""
    retry_after = exception.resp.get("retry-after")
    if retry_after:
        try:
            return int(retry_after)
        except (ValueError, TypeError):
            pass
    return None


def _quote_sheet_title(title: str) -> str:
    return "'" + title.replace("'", "''") + "'"


class SheetsRowStore(RowStore):
    """A row store backed by one sheet of a Google spreadsheet."""

    def __init__(
        self,
        spreadsheet_id: str,
        credentials_path: Optional[Path] = None,
        sheet_id: Optional[str] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        service: Any = None,
    ) -> None:
        """Initialize the store without touching the network.

        Args:
            spreadsheet_id (str): The id of the spreadsheet.
            credentials_path (Optional[Path]): The service-account key
            file. Not needed when `service` is given.
            sheet_id (Optional[str]): The id of the sheet holding the
            rows. The first sheet is used when None.
            max_retries (int): How many times a rate-limited request
            is retried.
            service (Any): A ready Sheets API service resource.

        """
        super().__init__()
        self.spreadsheet_id = spreadsheet_id
        self.credentials_path = credentials_path
        self.sheet_id = sheet_id
        self.max_retries = max_retries
        self.service = service
        self.sheet_title = ""
        self._numeric_sheet_id = 0

    @classmethod
    def from_config(cls, config: KvsConfig) -> "SheetsRowStore":
        return cls(
            config.spreadsheet_id,
            config.credentials_path,
            config.sheet_id,
            config.max_retries,
        )

    def _build_service(self) -> Any:
        if self.credentials_path is None:
            raise RowStoreError("No service-account credentials configured.")
        credentials = service_account.Credentials.from_service_account_file(
            str(self.credentials_path),
            scopes=SCOPES,
        )
        return build(
            "sheets",
            "v4",
            credentials=credentials,
            cache_discovery=False,
        )

    async def _execute(self, request: Any) -> Any:
        """Run a prepared API request in a worker thread.

        Requests answered with HTTP 429 or 503 are retried with
        exponential backoff.

        Raises:
            HttpError: If the request fails for another reason or keeps
            being rate limited after max_retries attempts.

        """
        attempt = 0
        while True:
            try:
                return await asyncio.to_thread(request.execute)
            except HttpError as e:
                if not _is_rate_limit_error(e) or attempt >= self.max_retries:
                    raise
                wait_time = _get_retry_after(e)
                if wait_time is None:
                    wait_time = min(2**attempt, MAX_BACKOFF_SECONDS)
                attempt += 1
                logger.warning(
                    "Rate limited (status %s, attempt %d), retrying in %ss",
                    e.resp.status,
                    attempt,
                    wait_time,
                )
                await asyncio.sleep(wait_time)

    def _range(self, cells: str) -> str:
        return f"{_quote_sheet_title(self.sheet_title)}!{cells}"

    async def connect(self) -> None:
        """Authenticate and select the sheet.

        Raises:
            SheetNotFoundError: If `sheet_id` names no sheet, or the
            spreadsheet has no sheets at all.

        """
        if self.service is None:
            self.service = await asyncio.to_thread(self._build_service)

        spreadsheet = await self._execute(
            self.service.spreadsheets().get(
                spreadsheetId=self.spreadsheet_id,
                fields="sheets.properties",
            ),
        )
        sheets = [
            sheet["properties"] for sheet in spreadsheet.get("sheets", [])
        ]

        if self.sheet_id is not None:
            matches = [p for p in sheets if str(p["sheetId"]) == self.sheet_id]
            if not matches:
                raise SheetNotFoundError(
                    f"Sheet {self.sheet_id} not found in spreadsheet "
                    f"{self.spreadsheet_id}.",
                )
            properties = matches[0]
        elif sheets:
            properties = sheets[0]
        else:
            raise SheetNotFoundError(
                f"Spreadsheet {self.spreadsheet_id} has no sheets.",
            )

        self.sheet_title = properties["title"]
        self._numeric_sheet_id = int(properties["sheetId"])
        logger.info(
            "Connected to sheet '%s' (%d) of spreadsheet %s",
            self.sheet_title,
            self._numeric_sheet_id,
            self.spreadsheet_id,
        )

    async def get_header_row(self) -> list[str]:
        response = await self._execute(
            self.service.spreadsheets()
            .values()
            .get(spreadsheetId=self.spreadsheet_id, range=self._range("1:1")),
        )
        values = response.get("values", [])
        return list(values[0]) if values else []

    async def set_header_row(self, values: list[str]) -> None:
        await self._execute(
            self.service.spreadsheets()
            .values()
            .update(
                spreadsheetId=self.spreadsheet_id,
                range=self._range("A1"),
                valueInputOption="RAW",
                body={"values": [values]},
            ),
        )

    async def get_rows(self) -> list[Row]:
        response = await self._execute(
            self.service.spreadsheets()
            .values()
            .get(spreadsheetId=self.spreadsheet_id, range=self._range("A2:B")),
        )
        rows = []
        for number, cells in enumerate(response.get("values", []), start=2):
            # The API drops trailing empty cells
            cells = list(cells) + [""] * (2 - len(cells))
            rows.append(Row(number, cells[0], cells[1]))
        return self._track(rows)

    async def add_row(self, key: str, value: str) -> Row:
        response = await self._execute(
            self.service.spreadsheets()
            .values()
            .append(
                spreadsheetId=self.spreadsheet_id,
                range=self._range("A:B"),
                valueInputOption="RAW",
                insertDataOption="INSERT_ROWS",
                body={"values": [[key, value]]},
            ),
        )
        updated_range = response["updates"]["updatedRange"]
        match = _UPDATED_RANGE_ROW.search(updated_range)
        if match is None:
            raise RowStoreError(
                f"Unexpected range in append response: {updated_range}",
            )
        row = Row(int(match.group(1)), key, value)
        self._rows.append(row)
        return row

    async def update_row(self, row: Row) -> None:
        self._check_live(row)
        await self._execute(
            self.service.spreadsheets()
            .values()
            .update(
                spreadsheetId=self.spreadsheet_id,
                range=self._range(f"A{row.row_number}:B{row.row_number}"),
                valueInputOption="RAW",
                body={"values": [[row.key, row.value]]},
            ),
        )

    async def delete_row(self, row: Row) -> None:
        self._check_live(row)
        await self._execute(
            self.service.spreadsheets().batchUpdate(
                spreadsheetId=self.spreadsheet_id,
                body={
                    "requests": [
                        {
                            "deleteDimension": {
                                "range": {
                                    "sheetId": self._numeric_sheet_id,
                                    "dimension": "ROWS",
                                    "startIndex": row.row_number - 1,
                                    "endIndex": row.row_number,
                                },
                            },
                        },
                    ],
                },
            ),
        )
        self._forget(row)
