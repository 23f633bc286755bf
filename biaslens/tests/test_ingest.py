"""Unit tests for CSV ingestion."""

import base64
import io

import pandas as pd
import pytest

from biaslens.core.errors import TradeParseError
from biaslens.services import ingest
from biaslens.services.ingest import parse_trades, parse_trades_from_frame, parse_trades_xlsx
from biaslens.utils.csv_utils import (
    coerce_numeric,
    coerce_side,
    coerce_timestamp,
    decode_base64,
    normalize_header,
)

NEW_YEAR_2025_MS = 1_735_689_600_000

FULL_CSV = """timestamp,side,asset,pnl,entry_price,exit_price,account_balance,qty,hold_minutes
2025-01-02T10:15:00Z,BUY,AAPL,25.5,100,102.55,10000,10,12
2025-01-02T09:30:00Z,SELL,TSLA,-40,250,254,10000,4,35
"""


def test_parse_full_csv_sorted_by_timestamp():
    result = parse_trades(FULL_CSV)

    assert [t.asset for t in result.trades] == ["TSLA", "AAPL"]
    assert result.warnings == []
    assert result.missing_fields == []

    tsla = result.trades[0]
    assert tsla.side == "SELL"
    assert tsla.pnl == -40
    assert tsla.entry_price == 250
    assert tsla.hold_minutes == 35
    assert tsla.position_size is None


def test_trade_ids_use_row_position():
    result = parse_trades(FULL_CSV)
    aapl = result.trades[1]

    assert aapl.id == f"{aapl.timestamp}-AAPL-0"


def test_header_aliases_and_currency_values():
    csv = 'Date,Buy/Sell,Symbol,P/L,Entry,Exit,Balance\n2025-01-02 10:00,long,MSFT,"$1,234.50",10,11,"$5,000"\n'
    trade = parse_trades(csv).trades[0]

    assert trade.side == "BUY"
    assert trade.asset == "MSFT"
    assert trade.pnl == 1234.5
    assert trade.account_balance == 5000


def test_missing_extended_fields_rejected_by_default():
    csv = "timestamp,side,asset,pnl\n2025-01-02T10:00:00Z,BUY,AAPL,10\n"

    with pytest.raises(TradeParseError, match="Row 1: missing required extended fields") as exc_info:
        parse_trades(csv)
    assert exc_info.value.row == 1


def test_legacy_mode_warns_for_missing_fields():
    csv = "timestamp,side,asset,pnl\n2025-01-02T10:00:00Z,BUY,AAPL,10\n2025-01-02T10:05:00Z,SELL,AAPL,-4\n"
    result = parse_trades(csv, allow_legacy=True)

    assert len(result.trades) == 2
    assert result.missing_fields == ["entry_price", "exit_price", "account_balance"]
    assert result.warnings[0] == "Missing entry price; analysis will be limited for some bias signals."
    assert result.trades[0].entry_price is None


def test_invalid_side_reports_row():
    csv = FULL_CSV + "2025-01-03T10:00:00Z,HOLD,AAPL,5,1,1,100,1,1\n"

    with pytest.raises(TradeParseError, match='Row 3: side must be BUY or SELL, got "HOLD"'):
        parse_trades(csv)


def test_invalid_pnl_reports_row():
    csv = "timestamp,side,asset,pnl\n2025-01-02T10:00:00Z,BUY,AAPL,abc\n"

    with pytest.raises(TradeParseError, match="Row 1: pnl must be a number"):
        parse_trades(csv, allow_legacy=True)


def test_missing_required_column():
    csv = "timestamp,side,pnl\n2025-01-02T10:00:00Z,BUY,10\n"

    with pytest.raises(TradeParseError, match="missing required field"):
        parse_trades(csv, allow_legacy=True)


def test_parse_error_is_value_error():
    with pytest.raises(ValueError):
        parse_trades("", allow_legacy=True)


def test_parse_from_frame():
    df = pd.DataFrame(
        {
            "Timestamp": ["1735689600", "1735689660"],
            "Side": ["buy", "sell"],
            "Ticker": ["SPY", "SPY"],
            "PnL": ["1", "-2"],
        }
    )
    result = parse_trades_from_frame(df, allow_legacy=True)

    assert [t.timestamp for t in result.trades] == [NEW_YEAR_2025_MS, NEW_YEAR_2025_MS + 60_000]


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("1735689600", NEW_YEAR_2025_MS),  # epoch seconds
        ("1735689600000", NEW_YEAR_2025_MS),  # epoch milliseconds
        ("45658", NEW_YEAR_2025_MS),  # Excel serial day
        ("2025-01-01T00:00:00Z", NEW_YEAR_2025_MS),
        ("2025-01-01 00:00:00", NEW_YEAR_2025_MS),  # naive is UTC
        ("2025-01-01T00:00:00-05:00", NEW_YEAR_2025_MS + 5 * 3_600_000),
        ("not a date", None),
        ("", None),
    ],
)
def test_coerce_timestamp(raw, expected):
    assert coerce_timestamp(raw) == expected


def test_coerce_helpers():
    assert normalize_header(" Entry Price ") == "entry_price"
    assert normalize_header("P/L") == "p_l"
    assert coerce_side("short") == "SELL"
    assert coerce_side("hold") is None
    assert coerce_numeric("1,000") == 1000
    assert coerce_numeric("") is None
    assert coerce_numeric("-12.5") == -12.5


@pytest.fixture
def workbook_bytes():
    frame = pd.DataFrame(
        {
            "Date": ["2025-01-02 10:15:00", "2025-01-02 09:30:00"],
            "Action": ["Long", "Short"],
            "Ticker": ["AAPL", "TSLA"],
            "P/L": [25.5, -40.0],
            "Entry Price": [100.0, 250.0],
            "Exit Price": [102.55, 254.0],
            "Balance": [10_000, 10_000],
        }
    )
    buffer = io.BytesIO()
    frame.to_excel(buffer, index=False, sheet_name="Trades")
    return buffer.getvalue()


def test_parse_xlsx_bytes(workbook_bytes):
    result = parse_trades_xlsx(workbook_bytes)

    assert [t.asset for t in result.trades] == ["TSLA", "AAPL"]
    assert [t.side for t in result.trades] == ["SELL", "BUY"]
    assert result.trades[1].pnl == 25.5
    assert result.trades[1].account_balance == 10_000
    assert result.missing_fields == []


def test_parse_xlsx_base64_matches_bytes(workbook_bytes):
    encoded = base64.b64encode(workbook_bytes).decode("ascii")
    assert parse_trades_xlsx(encoded) == parse_trades_xlsx(workbook_bytes)


def test_parse_xlsx_reads_first_sheet_only(workbook_bytes):
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer) as writer:
        pd.read_excel(io.BytesIO(workbook_bytes)).to_excel(writer, index=False, sheet_name="First")
        pd.DataFrame({"junk": ["x"]}).to_excel(writer, index=False, sheet_name="Second")

    assert len(parse_trades_xlsx(buffer.getvalue()).trades) == 2


def test_parse_xlsx_rejects_garbage():
    with pytest.raises(TradeParseError, match="Excel parse error"):
        parse_trades_xlsx(b"not a workbook")


def test_parse_xlsx_rejects_bad_base64():
    with pytest.raises(TradeParseError):
        parse_trades_xlsx("%%% not base64 %%%")


def test_parse_xlsx_without_sheets(monkeypatch):
    monkeypatch.setattr(ingest, "read_excel_first_sheet", lambda content: ([], pd.DataFrame()))

    with pytest.raises(TradeParseError, match="Excel file contains no sheets."):
        parse_trades_xlsx(b"")


def test_decode_base64_data_url():
    assert decode_base64("data:application/octet-stream;base64,aGVsbG8=") == b"hello"
