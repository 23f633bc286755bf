"""CSV and Excel ingestion and normalization service."""

from __future__ import annotations

import zipfile
from typing import Any, Union

import pandas as pd

from biaslens.core.errors import TradeParseError
from biaslens.core.logging import logger
from biaslens.models.schemas import ParseTradesResult, Trade
from biaslens.utils.csv_utils import (
    coerce_numeric,
    coerce_side,
    coerce_timestamp,
    decode_base64,
    is_blank,
    normalize_headers,
    parse_csv,
    read_excel_first_sheet,
)

REQUIRED_COLUMNS = ["timestamp", "side", "asset", "pnl"]
EXTENDED_COLUMNS = ["entry_price", "exit_price", "account_balance"]

HEADER_ALIASES: dict[str, list[str]] = {
    "timestamp": ["timestamp", "time", "date"],
    "side": ["side", "buy_sell", "action", "type"],
    "asset": ["asset", "symbol", "ticker"],
    "pnl": ["pnl", "p_l", "pl", "profit_loss"],
    "entry_price": ["entry_price", "entry", "entryprice", "entry_px"],
    "exit_price": ["exit_price", "exit", "exitprice", "exit_px"],
    "account_balance": ["account_balance", "balance", "acct_balance"],
    "qty": ["qty", "quantity", "shares"],
    "position_size": ["position_size", "position", "size", "notional"],
    "hold_minutes": ["hold_minutes", "hold_time", "hold"],
}


def _pick_field(row: dict[str, Any], field: str) -> Any:
    """First non-blank value among the aliases of ``field``."""
    for alias in HEADER_ALIASES[field]:
        value = row.get(alias)
        if not is_blank(value):
            return value
    return None


def parse_trades(csv_content: str, allow_legacy: bool = False) -> ParseTradesResult:
    """
    Parse CSV text into validated trades.

    Required columns: timestamp, side, asset, pnl, plus entry_price,
    exit_price and account_balance unless ``allow_legacy`` is set.
    Optional: qty, position_size, hold_minutes.
    """
    try:
        df = parse_csv(csv_content)
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise TradeParseError(f"CSV parse error: {exc}") from exc
    return parse_trades_from_frame(df, allow_legacy=allow_legacy)


def parse_trades_xlsx(content: Union[bytes, str], allow_legacy: bool = False) -> ParseTradesResult:
    """
    Parse the first sheet of an .xlsx workbook into validated trades.

    ``content`` is the raw workbook or its base64 text. Rows go through the
    same validation as CSV rows.
    """
    try:
        data = decode_base64(content) if isinstance(content, str) else content
        sheet_names, df = read_excel_first_sheet(data)
    except (zipfile.BadZipFile, ValueError) as exc:
        raise TradeParseError(f"Excel parse error: {exc}") from exc
    if not sheet_names:
        raise TradeParseError("Excel file contains no sheets.")
    return parse_trades_from_frame(df, allow_legacy=allow_legacy)


def parse_trades_from_frame(df: pd.DataFrame, allow_legacy: bool = False) -> ParseTradesResult:
    """Validate and normalize DataFrame rows into trades sorted by timestamp."""
    df = normalize_headers(df.copy())
    missing_fields: set[str] = set()
    trades: list[Trade] = []

    for i, row in enumerate(df.to_dict("records")):
        row_number = i + 1
        timestamp_raw = _pick_field(row, "timestamp")
        side_raw = _pick_field(row, "side")
        asset_raw = _pick_field(row, "asset")
        pnl_raw = _pick_field(row, "pnl")

        if timestamp_raw is None or side_raw is None or asset_raw is None or pnl_raw is None:
            raise TradeParseError(
                "missing required field(s). Required: " + ", ".join(REQUIRED_COLUMNS),
                row=row_number,
            )

        timestamp = coerce_timestamp(timestamp_raw)
        if timestamp is None:
            raise TradeParseError(f'invalid timestamp "{timestamp_raw}"', row=row_number)

        side = coerce_side(side_raw)
        if side is None:
            raise TradeParseError(f'side must be BUY or SELL, got "{side_raw}"', row=row_number)

        pnl = coerce_numeric(pnl_raw)
        if pnl is None:
            raise TradeParseError(f'pnl must be a number, got "{pnl_raw}"', row=row_number)

        extended = {field: coerce_numeric(_pick_field(row, field)) for field in EXTENDED_COLUMNS}
        row_missing = [field for field, value in extended.items() if value is None]
        missing_fields.update(row_missing)
        if row_missing and not allow_legacy:
            raise TradeParseError(
                "missing required extended fields. Required: " + ", ".join(EXTENDED_COLUMNS),
                row=row_number,
            )

        asset = str(asset_raw).strip()
        trades.append(
            Trade(
                id=f"{timestamp}-{asset}-{i}",
                timestamp=timestamp,
                side=side,
                asset=asset,
                pnl=pnl,
                qty=coerce_numeric(_pick_field(row, "qty")),
                position_size=coerce_numeric(_pick_field(row, "position_size")),
                hold_minutes=coerce_numeric(_pick_field(row, "hold_minutes")),
                **extended,
            )
        )

    warnings: list[str] = []
    if allow_legacy:
        for field in EXTENDED_COLUMNS:
            if field in missing_fields:
                warnings.append(
                    f"Missing {field.replace('_', ' ')}; analysis will be limited for some bias signals."
                )

    trades.sort(key=lambda t: t.timestamp)
    logger.info("Parsed %d trades (legacy=%s, missing=%s)", len(trades), allow_legacy, sorted(missing_fields))

    return ParseTradesResult(
        trades=trades,
        warnings=warnings,
        missing_fields=[field for field in EXTENDED_COLUMNS if field in missing_fields],
    )
