"""CSV and Excel utility functions."""

from __future__ import annotations

import base64
import io
import math
import re
from typing import Any, Optional

import pandas as pd

EXCEL_EPOCH_MS = int(pd.Timestamp("1899-12-30", tz="UTC").value // 1_000_000)
MS_PER_DAY = 24 * 60 * 60 * 1000

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_NON_NUMERIC = re.compile(r"[^0-9.+\-eE]")


def parse_csv(csv_content: str) -> pd.DataFrame:
    """Parse CSV content into a DataFrame of raw strings; blanks stay empty strings."""
    return pd.read_csv(
        io.StringIO(csv_content),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
    )


def decode_base64(content: str) -> bytes:
    """Decode a base64 upload, tolerating a data-URL prefix."""
    if content.startswith("data:") and "," in content:
        content = content.split(",", 1)[1]
    return base64.b64decode(content, validate=True)


def read_excel_first_sheet(content: bytes) -> tuple[list[str], pd.DataFrame]:
    """
    Read the first sheet of an .xlsx workbook as raw strings.

    Returns the workbook sheet names alongside the frame; the frame is empty
    when the workbook has no sheets.
    """
    with pd.ExcelFile(io.BytesIO(content), engine="openpyxl") as workbook:
        sheet_names = [str(name) for name in workbook.sheet_names]
        if not sheet_names:
            return sheet_names, pd.DataFrame()
        df = workbook.parse(sheet_name=0, dtype=str, keep_default_na=False)
    return sheet_names, df


def normalize_header(name: str) -> str:
    """Lowercase, collapse non-alphanumerics to underscores, trim underscores."""
    return _NON_ALNUM.sub("_", str(name).strip().lower()).strip("_")


def normalize_headers(df: pd.DataFrame) -> pd.DataFrame:
    """Normalize every column header of ``df`` in place and return it."""
    df.columns = [normalize_header(col) for col in df.columns]
    return df


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip() == ""


def coerce_numeric(value: Any) -> Optional[float]:
    """Coerce value to float, dropping currency symbols and separators; None if it fails."""
    if is_blank(value):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    cleaned = _NON_NUMERIC.sub("", str(value))
    try:
        return float(cleaned)
    except ValueError:
        return None


def coerce_side(side_str: Any) -> Optional[str]:
    """Coerce side to BUY or SELL; None when unrecognized."""
    if is_blank(side_str):
        return None
    side = str(side_str).strip().upper()
    if side in ("BUY", "LONG"):
        return "BUY"
    if side in ("SELL", "SHORT"):
        return "SELL"
    return None


def coerce_timestamp(value: Any) -> Optional[int]:
    """
    Coerce a timestamp to epoch milliseconds.

    Numbers between 20,000 and 60,000 are Excel serial days, numbers below
    1e10 are epoch seconds, larger numbers are epoch milliseconds. Strings
    are parsed as dates; naive values are taken as UTC.
    """
    if is_blank(value):
        return None

    number = None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            number = None

    if number is not None:
        if math.isnan(number):
            return None
        if 20_000 < number < 60_000:
            return int(round(EXCEL_EPOCH_MS + number * MS_PER_DAY))
        if number < 10_000_000_000:
            return int(round(number * 1000))
        return int(round(number))

    try:
        parsed = pd.Timestamp(str(value).strip())
    except (ValueError, TypeError):
        return None
    if parsed is pd.NaT:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.tz_localize("UTC")
    return int(parsed.value // 1_000_000)
