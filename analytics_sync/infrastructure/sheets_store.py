from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Iterable, Sequence, TypeVar

import gspread
import requests
from google.auth.exceptions import DefaultCredentialsError, TransportError
from gspread.utils import ValueInputOption, ValueRenderOption

from analytics_sync.domain.errors import UpstreamError
from analytics_sync.domain.models import Destination
from analytics_sync.domain.ports import RowRange
from analytics_sync.infrastructure.sheets_errors import map_gspread_exception
from analytics_sync.infrastructure.sheets_store_puros import (
    build_clear_ranges,
    build_delete_requests,
    column_letter,
    flatten_column,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

NEW_TAB_ROWS = 1000
NEW_TAB_COLUMNS = 30
CLEAR_MIN_COLUMNS = 45


class GspreadSpreadsheetStore:
    """SpreadsheetStore backed by gspread and a Google service account.

    Single attempt per call: retries and pacing belong to the caller. Every
    library failure leaves this class already mapped to the sync taxonomy.
    """

    def __init__(
        self,
        credentials_path: Path,
        *,
        folder_id: str | None = None,
        client_factory: Callable[..., Any] = gspread.service_account,
    ) -> None:
        self._credentials_path = credentials_path
        self._folder_id = folder_id or None
        self._client_factory = client_factory
        self._client: Any | None = None
        self._spreadsheets: dict[str, Any] = {}
        self._worksheets: dict[tuple[str, str], Any] = {}

    def resolve_or_create_destination(self, group_key: str, tab_key: str) -> Destination:
        spreadsheet = self._call(lambda: self._open_or_create(group_key))
        worksheet = self._call(lambda: self._worksheet_or_create(spreadsheet, tab_key))
        self._spreadsheets[spreadsheet.id] = spreadsheet
        self._worksheets[(spreadsheet.id, worksheet.title)] = worksheet
        return Destination(
            spreadsheet_id=spreadsheet.id,
            spreadsheet_title=spreadsheet.title,
            tab_name=worksheet.title,
            sheet_id=getattr(worksheet, "id", None),
        )

    def read_column(self, destination: Destination, column_index: int) -> list[Any]:
        worksheet = self._worksheet(destination)
        return self._call(
            lambda: worksheet.col_values(column_index, value_render_option=ValueRenderOption.unformatted)
        )

    def read_column_display(self, destination: Destination, column_index: int, max_rows: int) -> list[str]:
        worksheet = self._worksheet(destination)
        letter = column_letter(column_index)
        values = self._call(lambda: worksheet.get(f"{letter}1:{letter}{max_rows}"))
        return [str(value) for value in flatten_column(values)]

    def read_header(self, destination: Destination) -> list[str]:
        worksheet = self._worksheet(destination)
        return self._call(lambda: worksheet.row_values(1))

    def write_header(self, destination: Destination, headers: Sequence[str]) -> None:
        worksheet = self._worksheet(destination)
        if len(headers) > worksheet.col_count:
            self._call(lambda: worksheet.resize(cols=len(headers)))
        self._call(
            lambda: worksheet.update(
                range_name="A1",
                values=[list(headers)],
                value_input_option=ValueInputOption.user_entered,
            )
        )

    def delete_rows(self, destination: Destination, ranges: Iterable[RowRange]) -> None:
        if destination.sheet_id is None:
            raise UpstreamError(f"Tab {destination.tab_name} has no sheet id")
        requests_body = build_delete_requests(destination.sheet_id, ranges)
        if not requests_body:
            return
        spreadsheet = self._spreadsheet(destination.spreadsheet_id)
        self._call(lambda: spreadsheet.batch_update({"requests": requests_body}))
        # Grid size changed; refetch the worksheet on next use.
        self._worksheets.pop((destination.spreadsheet_id, destination.tab_name), None)

    def clear_ranges(self, destination: Destination, ranges: Iterable[RowRange]) -> None:
        worksheet = self._worksheet(destination)
        a1_ranges = build_clear_ranges(ranges, max(worksheet.col_count, CLEAR_MIN_COLUMNS))
        if a1_ranges:
            self._call(lambda: worksheet.batch_clear(a1_ranges))

    def ensure_capacity(self, destination: Destination, min_rows: int, min_cols: int) -> None:
        worksheet = self._worksheet(destination)
        rows, cols = worksheet.row_count, worksheet.col_count
        if min_rows <= rows and min_cols <= cols:
            return
        target_rows, target_cols = max(rows, min_rows), max(cols, min_cols)
        logger.info(
            "Growing %s from %sx%s to %sx%s",
            destination.tab_name,
            rows,
            cols,
            target_rows,
            target_cols,
        )
        self._call(lambda: worksheet.resize(rows=target_rows, cols=target_cols))

    def write_rows(self, destination: Destination, start_row: int, rows: Sequence[Sequence[Any]]) -> None:
        if not rows:
            return
        worksheet = self._worksheet(destination)
        self._call(
            lambda: worksheet.update(
                range_name=f"A{start_row}",
                values=[list(row) for row in rows],
                value_input_option=ValueInputOption.user_entered,
            )
        )

    def _client_or_connect(self) -> Any:
        if self._client is None:
            logger.info("Connecting to Google Sheets with %s", self._credentials_path.name)
            self._client = self._client_factory(filename=str(self._credentials_path))
        return self._client

    def _open_or_create(self, title: str) -> Any:
        client = self._client_or_connect()
        try:
            return client.open(title, folder_id=self._folder_id)
        except gspread.exceptions.SpreadsheetNotFound:
            logger.info("Creating spreadsheet %r", title)
            return client.create(title, folder_id=self._folder_id)

    def _worksheet_or_create(self, spreadsheet: Any, tab_name: str) -> Any:
        try:
            return spreadsheet.worksheet(tab_name)
        except gspread.exceptions.WorksheetNotFound:
            logger.info("Creating tab %r in %s", tab_name, spreadsheet.title)
            return spreadsheet.add_worksheet(title=tab_name, rows=NEW_TAB_ROWS, cols=NEW_TAB_COLUMNS)

    def _spreadsheet(self, spreadsheet_id: str) -> Any:
        spreadsheet = self._spreadsheets.get(spreadsheet_id)
        if spreadsheet is None:
            client = self._client_or_connect()
            spreadsheet = self._call(lambda: client.open_by_key(spreadsheet_id))
            self._spreadsheets[spreadsheet_id] = spreadsheet
        return spreadsheet

    def _worksheet(self, destination: Destination) -> Any:
        key = (destination.spreadsheet_id, destination.tab_name)
        worksheet = self._worksheets.get(key)
        if worksheet is None:
            spreadsheet = self._spreadsheet(destination.spreadsheet_id)
            worksheet = self._call(lambda: spreadsheet.worksheet(destination.tab_name))
            self._worksheets[key] = worksheet
        return worksheet

    @staticmethod
    def _call(operation: Callable[[], T]) -> T:
        try:
            return operation()
        except (
            gspread.exceptions.GSpreadException,
            requests.RequestException,
            TransportError,
            FileNotFoundError,
            json.JSONDecodeError,
            DefaultCredentialsError,
        ) as exc:
            raise map_gspread_exception(exc) from exc
