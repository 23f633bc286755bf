"""Pydantic schemas for trades, metrics, bias verdicts and API payloads."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

BiasType = Literal["OVERTRADING", "LOSS_AVERSION", "REVENGE_TRADING"]
Severity = Literal["LOW", "MEDIUM", "HIGH"]
RiskLevel = Literal["LOW", "MEDIUM", "HIGH"]
PnlTrend = Literal["POSITIVE", "NEGATIVE", "FLAT"]


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys, populated by either name."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Trade(CamelModel):
    """One executed transaction. Optional fields stay None when absent."""

    id: str
    timestamp: int  # ms epoch
    side: Literal["BUY", "SELL"]
    asset: str
    pnl: float
    qty: Optional[float] = None
    position_size: Optional[float] = None
    hold_minutes: Optional[float] = None
    entry_price: Optional[float] = None
    exit_price: Optional[float] = None
    account_balance: Optional[float] = None

    @property
    def size(self) -> Optional[float]:
        """Notional size: |position_size|, else |qty * entry_price|, else unknown."""
        if self.position_size is not None:
            return abs(self.position_size)
        if self.qty is not None and self.entry_price is not None:
            return abs(self.qty * self.entry_price)
        return None

    @property
    def return_pct(self) -> Optional[float]:
        """Fractional return signed by side; None without both prices."""
        if self.entry_price is None or self.exit_price is None or self.entry_price == 0:
            return None
        if self.side == "BUY":
            diff = self.exit_price - self.entry_price
        else:
            diff = self.entry_price - self.exit_price
        return diff / self.entry_price


class DataCompleteness(CamelModel):
    """Coverage of the optional field groups across a trade batch."""

    entry_exit_coverage: float
    balance_coverage: float
    size_coverage: float
    missing_fields: list[str] = Field(default_factory=list)


class SummaryMetrics(CamelModel):
    """
    Immutable snapshot of one analysis run, detection output included.

    Sequence fields are tuples so the snapshot cannot be edited in place.
    The mapping fields are plain dicts: pydantic freezes assignment only,
    so each snapshot gets its own dicts and nothing in the engine mutates them.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    trading_window: str
    total_trades: int
    active_days: int

    trades_per_day_avg: float
    trades_per_day_max: int
    avg_minutes_between_trades: float
    intraday_gap_count: int = 0

    win_rate: float
    avg_win: float
    avg_loss: float
    profit_factor: float

    avg_hold_minutes_wins: Optional[float] = None
    avg_hold_minutes_losses: Optional[float] = None

    post_loss_trades_within_30_min_avg: float
    post_loss_win_rate: float
    post_loss_trade_count: int = 0

    avg_account_balance: Optional[float] = None
    avg_trade_size: Optional[float] = None
    balance_turnover: Optional[float] = None
    asset_switch_rate: float = 0.0
    side_flip_rate: float = 0.0
    hourly_trade_counts: tuple[int, ...] = (0,) * 24
    max_hourly_trade_share: float = 0.0
    post_win_trades_within_30_min_avg: Optional[float] = None
    large_win_threshold: Optional[float] = None
    avg_win_return_pct: Optional[float] = None
    avg_loss_return_pct: Optional[float] = None
    risk_reward_ratio: Optional[float] = None
    small_win_rate: Optional[float] = None
    small_win_threshold: Optional[float] = None
    avg_trade_size_after_loss: Optional[float] = None
    size_after_loss_ratio: Optional[float] = None
    avg_trade_size_after_streak: Optional[float] = None
    avg_minutes_between_trades_after_streak: Optional[float] = None

    worst_hours: tuple[str, ...] = ()
    data_completeness: DataCompleteness

    detected_biases: tuple[BiasType, ...] = ()
    severities: dict[str, Severity] = Field(default_factory=dict)
    evidence: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    bias_scores: dict[str, int] = Field(default_factory=dict)


class BiasResult(CamelModel):
    """Verdict for one bias type."""

    bias: BiasType
    severity: Severity
    evidence: list[str]
    score: int = 0


class InstrumentRecommendation(CamelModel):
    """Diversified instrument suggested on the safer-alternatives screen."""

    ticker: str
    name: str
    description: str
    is_sponsor_pick: bool


class RiskProfile(CamelModel):
    """Coarse behavioural risk rating with reasons."""

    level: RiskLevel
    reasons: list[str]
    pnl_trend: PnlTrend
    recommendations: list[InstrumentRecommendation]


class BrokerageComparison(CamelModel):
    """Illustrative annual fee estimate for one fee schedule."""

    name: str
    per_trade: float
    monthly_fee: float
    estimated_annual_cost: int
    is_partner: bool = False
    highlight: Optional[str] = None


class AnalysisResult(CamelModel):
    """Complete output of one analyze action."""

    metrics: SummaryMetrics
    bias_results: list[BiasResult]
    overall_risk_score: int = Field(ge=0, le=100)
    risk_profile: RiskProfile
    warnings: list[str] = Field(default_factory=list)
    brokerage_comparison: list[BrokerageComparison] = Field(default_factory=list)
    brokerage_savings_message: str = ""


class ParseTradesResult(CamelModel):
    """Trades parsed from a CSV along with import warnings."""

    trades: list[Trade]
    warnings: list[str] = Field(default_factory=list)
    missing_fields: list[str] = Field(default_factory=list)


# ── Coaching output ──────────────────────────────────────────────────────────


class CoachRule(CamelModel):
    title: str
    details: str


class CoachBiasCard(CamelModel):
    bias: str
    severity: str
    evidence: list[str]
    why_it_hurts: str
    rules: list[CoachRule]
    micro_habit: str


class LiteracyModule(CamelModel):
    title: str
    minutes: int
    lesson: str
    one_rule: str
    reflection_question: str
    mini_challenge: str


class BrokerageFit(CamelModel):
    summary: str
    recommendations: list[str]


class RestModePlan(CamelModel):
    recommended_cooldown_minutes: int
    trigger_rule: str
    script: str


class CoachOutput(CamelModel):
    """Coaching text built from SummaryMetrics by an LLM or the template fallback."""

    headline: str
    overall_risk_score: int = Field(ge=0, le=100)
    bias_cards: list[CoachBiasCard]
    literacy_modules: list[LiteracyModule]
    brokerage_fit: BrokerageFit
    rest_mode_plan: RestModePlan
    one_sentence_nudge: str
    source: Literal["llm", "fallback"] = "fallback"


# ── API payloads ─────────────────────────────────────────────────────────────


class AnalyzeRequest(CamelModel):
    """Analyze request: parsed trades, raw CSV text or a base64 Excel workbook."""

    trades: Optional[list[Trade]] = None
    csv: Optional[str] = None
    xlsx: Optional[str] = None
    allow_legacy: Optional[bool] = None


class ImportRequest(CamelModel):
    """Import request: raw CSV text or a base64 Excel workbook."""

    csv: Optional[str] = None
    xlsx: Optional[str] = None
    allow_legacy: Optional[bool] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
