"""
Input file loader.
Reads CSV and spreadsheet exports into raw rows for the canonicalizer.
"""

from pathlib import Path
from typing import Any
import logging

import pandas as pd

from ..utils.exceptions import InputFileError

logger = logging.getLogger(__name__)

SPREADSHEET_SUFFIXES = (".xlsx", ".xls")


def load_rows(file_path: Path, encoding: str = "utf-8", delimiter: str = ",") -> list[dict[str, Any]]:
    """
    Read a CSV or spreadsheet file into a list of raw rows.

    Every cell is read as text so identifiers such as "00123" keep their
    leading zeros; empty cells are dropped from the row.

    Args:
        file_path: Path to a .csv, .xlsx or .xls file
        encoding: Text encoding for CSV files
        delimiter: Field delimiter for CSV files

    Returns:
        Rows in file order

    Raises:
        InputFileError: If the file cannot be read
    """
    logger.info(f"Loading rows from: {file_path}")
    suffix = file_path.suffix.lower()

    try:
        if suffix in SPREADSHEET_SUFFIXES:
            df = pd.read_excel(file_path, dtype=str, engine="openpyxl" if suffix == ".xlsx" else None)
        else:
            df = pd.read_csv(file_path, encoding=encoding, delimiter=delimiter, dtype=str)
    except Exception as e:
        logger.error(f"Failed to read {file_path}: {e}")
        raise InputFileError(f"Failed to read {file_path}: {e}") from e

    rows = _frame_to_rows(df)
    logger.info(f"Loaded {len(rows)} rows from {file_path.name}")
    return rows


def _frame_to_rows(df: pd.DataFrame) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for _, series in df.iterrows():
        rows.append({str(k): v for k, v in series.items() if pd.notna(v) and str(v).strip() != ""})
    return rows
