from unittest.mock import MagicMock

import pytest

from src.kvs.row_store import MemoryRowStore

# Rows as another writer of the sheet would have left them
SAMPLE_ROWS = [
    ('["users",2]', '{"name":"bob"}'),
    ('["users",1]', '{"name":"alice"}'),
    ('["config"]', '"dark"'),
    ('["users",1,"tags"]', '["admin"]'),
]


@pytest.fixture
def memory_store():
    """A row store with a valid header and the sample rows."""
    return MemoryRowStore(header=["key", "value"], rows=SAMPLE_ROWS)


@pytest.fixture
def sheets_service():
    """A MagicMock standing in for a Sheets API v4 service resource.

    The spreadsheet holds two sheets; tests set the execute() return
    values of the other requests they make.
    """
    service = MagicMock()
    spreadsheets = service.spreadsheets.return_value
    spreadsheets.get.return_value.execute.return_value = {
        "sheets": [
            {"properties": {"sheetId": 0, "title": "Sheet1"}},
            {"properties": {"sheetId": 777, "title": "Kv Store's"}},
        ],
    }
    return service
