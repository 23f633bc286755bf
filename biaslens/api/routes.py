"""FastAPI routes for the bias analysis API."""

from __future__ import annotations

from fastapi import APIRouter, Body, HTTPException

from biaslens.core.config import get_settings
from biaslens.core.errors import BiasLensError, EmptyInputError
from biaslens.core.logging import logger
from biaslens.models.schemas import (
    AnalysisResult,
    AnalyzeRequest,
    CoachOutput,
    HealthResponse,
    ImportRequest,
    ParseTradesResult,
    SummaryMetrics,
    Trade,
)
from biaslens.services.analysis import analyze_trades
from biaslens.services.coach import generate_coaching
from biaslens.services.ingest import parse_trades, parse_trades_xlsx
from biaslens.services.sample_data import generate_sample_trades

router = APIRouter(prefix="/api/v1", tags=["trading"])


def _check_upload_size(content: str) -> None:
    max_bytes = get_settings().max_csv_size_mb * 1024 * 1024
    if len(content.encode("utf-8")) > max_bytes:
        raise HTTPException(status_code=413, detail=f"Upload exceeds {get_settings().max_csv_size_mb} MB limit")


def _allow_legacy(requested: bool | None) -> bool:
    return get_settings().allow_legacy_import if requested is None else requested


def _parse_upload(csv: str | None, xlsx: str | None, allow_legacy: bool | None) -> ParseTradesResult | None:
    """Parse whichever upload is present; None when neither is."""
    if csv is not None:
        _check_upload_size(csv)
        return parse_trades(csv, allow_legacy=_allow_legacy(allow_legacy))
    if xlsx is not None:
        _check_upload_size(xlsx)
        return parse_trades_xlsx(xlsx, allow_legacy=_allow_legacy(allow_legacy))
    return None


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="ok", version=get_settings().api_version)


@router.post("/import/csv", response_model=ParseTradesResult, response_model_by_alias=True)
async def import_csv(request: ImportRequest = Body(...)):
    """
    Parse CSV text or a base64 .xlsx workbook into trades.

    Returns the parsed trades with import warnings and any optional
    field groups the file does not carry.
    """
    try:
        result = _parse_upload(request.csv, request.xlsx, request.allow_legacy)
    except BiasLensError as exc:
        logger.warning("CSV import rejected: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc))
    if result is None:
        raise HTTPException(status_code=400, detail="Must provide either csv or xlsx")
    return result


@router.post("/analyze", response_model=AnalysisResult, response_model_by_alias=True)
async def analyze(request: AnalyzeRequest = Body(...)):
    """
    Analyze trades for behavioural biases.

    Accepts parsed ``trades``, raw ``csv`` text or a base64 ``xlsx``
    workbook. Import warnings are merged into the result warnings.
    """
    import_warnings: list[str] = []
    try:
        if request.trades is not None:
            trades = request.trades
        else:
            parsed = _parse_upload(request.csv, request.xlsx, request.allow_legacy)
            if parsed is None:
                raise HTTPException(status_code=400, detail="Must provide trades, csv or xlsx")
            trades = parsed.trades
            import_warnings = parsed.warnings

        result = analyze_trades(trades)
    except EmptyInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except BiasLensError as exc:
        logger.warning("Analysis rejected: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc))

    if import_warnings:
        result = result.model_copy(update={"warnings": import_warnings + result.warnings})
    return result


@router.post("/coach", response_model=CoachOutput, response_model_by_alias=True)
async def coach(metrics: SummaryMetrics = Body(...)):
    """Coaching output for a metrics snapshot; falls back to templates without an LLM."""
    return await generate_coaching(metrics)


@router.get("/sample", response_model=list[Trade], response_model_by_alias=True)
async def sample_trades(seed: int = 42):
    """Deterministic sample dataset."""
    return generate_sample_trades(seed)
