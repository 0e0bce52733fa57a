"""Report Converter - turns the shrink tool's CSV log into an Excel workbook."""

import asyncio
import csv
import io
import logging
import os
import re
import threading
from pathlib import Path
from typing import Optional, Union

import aiofiles
from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from ..config import Settings
from ..core.exceptions import ConversionError
from ..models import WorkbookInfo

_INT_RE = re.compile(r"^-?(0|[1-9]\d*)$")
_FLOAT_RE = re.compile(r"^-?(0|[1-9]\d*)\.\d+$")
MAX_COLUMN_WIDTH = 60


def coerce_cell(value: str) -> Union[str, int, float]:
    """Numbers become numbers, like Excel's own CSV import, but leading zeros stay text."""
    text = value.strip()
    if _INT_RE.match(text):
        return int(text)
    if _FLOAT_RE.match(text):
        return float(text)
    return ILLEGAL_CHARACTERS_RE.sub("", value)


class ReportConverter:
    """Converts a CSV report to .xlsx with openpyxl."""

    def __init__(self, settings: Settings):
        self._settings = settings

    async def convert_to_workbook(
        self, csv_path: Union[str, Path], workbook_path: Union[str, Path]
    ) -> WorkbookInfo:
        csv_path = Path(csv_path)
        workbook_path = Path(workbook_path)

        rows = await self._read_rows(csv_path)
        logging.info(f"Converting {len(rows)} report rows from {csv_path} to {workbook_path}")

        abandoned = threading.Event()
        try:
            info = await asyncio.wait_for(
                asyncio.to_thread(self._write_workbook, rows, workbook_path, abandoned),
                timeout=self._settings.conversion_timeout_seconds,
            )
        except asyncio.CancelledError:
            abandoned.set()
            raise
        except asyncio.TimeoutError:
            # The worker thread cannot be stopped, only told not to publish its result
            abandoned.set()
            raise ConversionError(
                f"Saving {workbook_path} timed out after {self._settings.conversion_timeout_seconds}s"
            )
        except (OSError, ValueError) as e:
            raise ConversionError(f"Could not write workbook {workbook_path}", str(e)) from e

        logging.info(f"Workbook written: {info.path} ({info.rows} rows, {info.columns} columns)")
        return info

    async def _read_rows(self, csv_path: Path) -> list[list[str]]:
        try:
            async with aiofiles.open(csv_path, mode="r", encoding="utf-8-sig", newline="") as f:
                content = await f.read()
        except FileNotFoundError:
            raise ConversionError(f"Shrink report not found: {csv_path}")
        except (OSError, UnicodeDecodeError) as e:
            raise ConversionError(f"Could not read shrink report {csv_path}", str(e)) from e

        try:
            reader = csv.reader(io.StringIO(content), delimiter=self._settings.csv_delimiter)
            rows = [row for row in reader if any(cell.strip() for cell in row)]
        except csv.Error as e:
            raise ConversionError(f"Malformed CSV in {csv_path}", str(e)) from e

        if not rows:
            raise ConversionError(f"Shrink report is empty: {csv_path}")
        return rows

    def _write_workbook(
        self, rows: list[list[str]], workbook_path: Path, abandoned: threading.Event
    ) -> Optional[WorkbookInfo]:
        workbook_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = workbook_path.with_name(f"{workbook_path.stem}.partial{workbook_path.suffix}")

        wb: Optional[Workbook] = None
        try:
            wb = Workbook()
            ws = wb.active
            ws.title = self._settings.workbook_sheet_title[:31]

            widths: dict[int, int] = {}
            for row_index, row in enumerate(rows, start=1):
                for col_index, raw in enumerate(row, start=1):
                    # Header cells stay text so column names like "2024" are not numbers
                    value = ILLEGAL_CHARACTERS_RE.sub("", raw) if row_index == 1 else coerce_cell(raw)
                    cell = ws.cell(row=row_index, column=col_index, value=value)
                    if isinstance(value, str) and value.startswith("="):
                        cell.data_type = "s"
                    if row_index == 1:
                        cell.font = Font(bold=True)
                    widths[col_index] = max(widths.get(col_index, 0), len(str(raw)))

            for col_index, width in widths.items():
                ws.column_dimensions[get_column_letter(col_index)].width = min(width + 2, MAX_COLUMN_WIDTH)

            columns = max(len(row) for row in rows)
            ws.freeze_panes = "A2"
            ws.auto_filter.ref = f"A1:{get_column_letter(columns)}{len(rows)}"

            if abandoned.is_set():
                return None
            wb.save(temp_path)
            if abandoned.is_set():
                logging.debug(f"Discarding abandoned save of {workbook_path}")
                return None
            os.replace(temp_path, workbook_path)
        finally:
            if wb is not None:
                wb.close()
            if temp_path.exists():
                temp_path.unlink()

        return WorkbookInfo(path=workbook_path, rows=len(rows), columns=columns)
