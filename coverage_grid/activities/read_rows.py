"""Tabular point file reading.

Reads CSV/TSV exports and spreadsheets into raw rows for
``extract_points``.  For delimited text the delimiter is sniffed from a
sample (comma, semicolon or tab) and falls back to comma when sniffing is
inconclusive; a UTF-8 byte-order mark is tolerated.  Spreadsheets
(``.xlsx``/``.xlsm`` through openpyxl, ``.xls`` through xlrd) are read with
pandas; only the first sheet is used and every cell becomes text.
"""

from __future__ import annotations

import csv
import logging
import math
import zipfile
from pathlib import Path

import pandas as pd

from coverage_grid.activities.extract_points import ParseError

logger = logging.getLogger("coverage_grid.activities.read_rows")

DELIMITERS = ",;\t"
SPREADSHEET_SUFFIXES = frozenset({".xlsx", ".xlsm", ".xls"})
_SNIFF_SAMPLE_CHARS = 64 * 1024


def read_rows(path: str | Path) -> list[list[str]]:
    """Read every row of a delimited text file or the first sheet of a spreadsheet.

    Raises:
        ParseError: If the file cannot be read, decoded as UTF-8 or opened
            as a workbook.
    """
    path = Path(path)
    if path.suffix.lower() in SPREADSHEET_SUFFIXES:
        rows = read_spreadsheet_rows(path)
    else:
        try:
            text = path.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as exc:
            msg = f"Cannot read point file {path}: {exc}"
            raise ParseError(msg) from exc
        rows = parse_rows_text(text)

    logger.info("Point file read | path=%s | rows=%d", path, len(rows))
    return rows


def read_spreadsheet_rows(path: Path) -> list[list[str]]:
    """First sheet of a workbook as rows of text cells; empty cells become ``""``."""
    try:
        frame = pd.read_excel(path, sheet_name=0, header=None, dtype=object)
    except (OSError, ValueError, ImportError, zipfile.BadZipFile) as exc:
        msg = f"Cannot read spreadsheet {path}: {exc}"
        raise ParseError(msg) from exc

    rows: list[list[str]] = []
    for record in frame.itertuples(index=False, name=None):
        cells = [_cell_text(value) for value in record]
        while cells and not cells[-1]:
            cells.pop()
        rows.append(cells)
    return rows


def _cell_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def parse_rows_text(text: str) -> list[list[str]]:
    """Split delimited *text* into rows of cells."""
    if not text.strip():
        return []
    delimiter = sniff_delimiter(text[:_SNIFF_SAMPLE_CHARS])
    try:
        return [row for row in csv.reader(text.splitlines(), delimiter=delimiter)]
    except csv.Error as exc:
        msg = f"Malformed delimited text: {exc}"
        raise ParseError(msg) from exc


def sniff_delimiter(sample: str) -> str:
    """Guess the delimiter of *sample*; comma when unsure.

    A semicolon on every line wins outright: such files usually use the
    comma as decimal separator, which would otherwise fool the sniffer.
    """
    lines = [line for line in sample.splitlines() if line.strip()]
    if lines and all(";" in line for line in lines):
        return ";"
    try:
        dialect = csv.Sniffer().sniff(sample, delimiters=DELIMITERS)
    except csv.Error:
        logger.debug("Delimiter sniffing inconclusive; assuming comma")
        return ","
    return dialect.delimiter
