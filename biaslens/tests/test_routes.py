"""API tests through FastAPI's TestClient."""

import base64
import io

import pandas as pd
import pytest
from fastapi.testclient import TestClient

from biaslens.main import app
from biaslens.services import coach

LEGACY_CSV = """timestamp,side,asset,pnl
2025-01-02T10:00:00Z,BUY,AAPL,25
2025-01-02T10:05:00Z,SELL,AAPL,-40
2025-01-02T10:09:00Z,BUY,TSLA,-15
"""


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture(autouse=True)
def no_llm(monkeypatch):
    """Keep coaching on the template path regardless of the environment."""
    config = type("Unconfigured", (), {"is_configured": staticmethod(lambda: False)})()
    monkeypatch.setattr(coach, "get_ai_config", lambda: config)


def test_health(client):
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_analyze_trades(client, scenario_b_trades):
    payload = {"trades": [t.model_dump(by_alias=True) for t in scenario_b_trades]}
    response = client.post("/api/v1/analyze", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert body["overallRiskScore"] == 30
    assert body["metrics"]["totalTrades"] == 10
    assert [r["severity"] for r in body["biasResults"]] == ["LOW", "LOW", "LOW"]
    assert body["riskProfile"]["level"] == "LOW"


def test_analyze_csv_merges_import_warnings(client):
    response = client.post("/api/v1/analyze", json={"csv": LEGACY_CSV, "allowLegacy": True})

    assert response.status_code == 200
    warnings = response.json()["warnings"]
    assert warnings[0] == "Missing entry price; analysis will be limited for some bias signals."


def test_analyze_empty_trades(client):
    response = client.post("/api/v1/analyze", json={"trades": []})

    assert response.status_code == 400
    assert response.json()["detail"] == "No trades to analyze"


def test_analyze_requires_input(client):
    response = client.post("/api/v1/analyze", json={})
    assert response.status_code == 400


def test_analyze_bad_csv(client):
    response = client.post("/api/v1/analyze", json={"csv": LEGACY_CSV, "allowLegacy": False})

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Row 1:")


def test_import_csv(client):
    response = client.post("/api/v1/import/csv", json={"csv": LEGACY_CSV, "allowLegacy": True})

    assert response.status_code == 200
    body = response.json()
    assert len(body["trades"]) == 3
    assert body["missingFields"] == ["entry_price", "exit_price", "account_balance"]


def test_coach_fallback(client, scenario_a_trades):
    analysis = client.post(
        "/api/v1/analyze", json={"trades": [t.model_dump(by_alias=True) for t in scenario_a_trades]}
    ).json()
    response = client.post("/api/v1/coach", json=analysis["metrics"])

    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "fallback"
    assert body["overallRiskScore"] == 100
    assert body["restModePlan"]["recommendedCooldownMinutes"] == 60


def test_sample(client):
    response = client.get("/api/v1/sample")

    assert response.status_code == 200
    trades = response.json()
    assert trades[0]["timestamp"] == 1737970200000
    assert "holdMinutes" in trades[0]


def test_coach_snapshot_without_severities(client, scenario_b_trades):
    analysis = client.post(
        "/api/v1/analyze", json={"trades": [t.model_dump(by_alias=True) for t in scenario_b_trades]}
    ).json()
    metrics = {**analysis["metrics"], "severities": {}}
    response = client.post("/api/v1/coach", json=metrics)

    assert response.status_code == 200
    assert response.json()["overallRiskScore"] == 66


def test_import_xlsx(client):
    response = client.post("/api/v1/import/csv", json={"xlsx": _workbook_base64(), "allowLegacy": True})

    assert response.status_code == 200
    body = response.json()
    assert [t["asset"] for t in body["trades"]] == ["AAPL", "TSLA"]
    assert body["missingFields"] == ["entry_price", "exit_price", "account_balance"]


def test_analyze_xlsx(client):
    response = client.post("/api/v1/analyze", json={"xlsx": _workbook_base64(), "allowLegacy": True})

    assert response.status_code == 200
    assert response.json()["metrics"]["totalTrades"] == 2


def test_import_bad_xlsx(client):
    response = client.post("/api/v1/import/csv", json={"xlsx": "bm90IGEgd29ya2Jvb2s="})

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Excel parse error")


def test_import_requires_input(client):
    assert client.post("/api/v1/import/csv", json={}).status_code == 400


def _workbook_base64():
    frame = pd.DataFrame(
        {
            "Timestamp": ["2025-01-02T10:00:00Z", "2025-01-02T10:05:00Z"],
            "Side": ["BUY", "SELL"],
            "Symbol": ["AAPL", "TSLA"],
            "PnL": [25.0, -40.0],
        }
    )
    buffer = io.BytesIO()
    frame.to_excel(buffer, index=False)
    return base64.b64encode(buffer.getvalue()).decode("ascii")
