"""Excel workbooks for batch process lists.

Reads and writes the first sheet of an ``.xlsx`` workbook with openpyxl.
The sheet holds a header row followed by one row per process, the same
columns the CSV format uses.  This module is imported only when a batch
file has the ``.xlsx`` suffix, so openpyxl stays an optional extra.
"""

import zipfile
from collections.abc import Iterable, Mapping
from pathlib import Path

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from py_memsim.batch import BatchError


def read_rows(path: Path) -> list[dict[str, object]]:
    """Return the rows of the first sheet keyed by its header row.

    Blank rows are skipped; blank header cells are ignored.

    Raises:
        BatchError: If the workbook cannot be opened.

    """
    try:
        workbook = load_workbook(path, read_only=True, data_only=True)
    except (OSError, InvalidFileException, zipfile.BadZipFile) as e:
        msg = f"Cannot read {path}: {e}"
        raise BatchError(msg) from e

    try:
        sheet = workbook.active
        if sheet is None:
            return []
        rows = sheet.iter_rows(values_only=True)
        header = next(rows, None)
        if header is None:
            return []
        names = [str(cell).strip() if cell is not None else "" for cell in header]
        records: list[dict[str, object]] = []
        for row in rows:
            if all(cell is None for cell in row):
                continue
            records.append({name: cell for name, cell in zip(names, row, strict=False) if name and cell is not None})
        return records
    finally:
        workbook.close()


def write_rows(rows: Iterable[Mapping[str, object]], fields: Iterable[str], path: Path) -> None:
    """Write *rows* to a new workbook at *path* under a *fields* header."""
    columns = list(fields)
    workbook = Workbook()
    sheet = workbook.active
    if sheet is None:
        sheet = workbook.create_sheet()
    sheet.title = "Processes"
    sheet.append(columns)
    for row in rows:
        sheet.append([row.get(column) for column in columns])
    workbook.save(path)
