"""Coaching text from SummaryMetrics: LLM enrichment with a template fallback."""

from __future__ import annotations

import asyncio
import json
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional

from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import ValidationError

from biaslens.core.ai_config import get_ai_config
from biaslens.core.logging import logger
from biaslens.models.schemas import CoachOutput, SummaryMetrics
from biaslens.services.analysis import DEFAULT_SEVERITY, bias_results_from_metrics
from biaslens.services.risk import compute_overall_risk_score

# Thread pool for blocking LLM operations
_executor = ThreadPoolExecutor(max_workers=2)

STRICT_JSON_SUFFIX = "\n\nIMPORTANT: Respond with ONLY valid JSON, no markdown."
_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")

SYSTEM_PROMPT = """You are a behavioral finance coach analyzing a retail trader's patterns.

STRICT RULES:
1. Use ONLY the evidence lines and metrics provided below. Do NOT invent statistics or numbers.
2. Respond with ONLY valid JSON matching the exact schema specified.
3. Be empathetic but direct. This trader needs actionable advice.
4. Reference specific numbers from the evidence when giving recommendations.
5. Keep each field concise; this renders on a mobile screen.

OUTPUT JSON SCHEMA:
{
  "headline": "One-sentence summary of the trader's key behavioral patterns",
  "overallRiskScore": <number 0-100>,
  "biasCards": [
    {
      "bias": "OVERTRADING|LOSS_AVERSION|REVENGE_TRADING",
      "severity": "LOW|MEDIUM|HIGH",
      "evidence": ["evidence line 1", "evidence line 2"],
      "whyItHurts": "Brief explanation of impact",
      "rules": [{"title": "Rule name", "details": "Rule description"}],
      "microHabit": "One small actionable habit"
    }
  ],
  "literacyModules": [
    {
      "title": "Module title",
      "minutes": 3,
      "lesson": "Educational content about the bias",
      "oneRule": "Single actionable rule",
      "reflectionQuestion": "A question for self-reflection",
      "miniChallenge": "A challenge for their next session"
    }
  ],
  "brokerageFit": {
    "summary": "How their trading style relates to brokerage choice",
    "recommendations": ["recommendation 1", "recommendation 2"]
  },
  "restModePlan": {
    "recommendedCooldownMinutes": <number>,
    "triggerRule": "When to activate rest mode",
    "script": "Step-by-step cooldown instructions"
  },
  "oneSentenceNudge": "A motivational closing sentence"
}"""


def build_prompt(metrics: SummaryMetrics) -> tuple[str, str]:
    """Build the system and user prompts; every number comes from ``metrics``."""
    m = metrics
    lines = [
        f"- Trading window: {m.trading_window}",
        f"- Total trades: {m.total_trades}",
        f"- Active days: {m.active_days}",
        f"- Trades/day avg: {m.trades_per_day_avg}",
        f"- Trades/day max: {m.trades_per_day_max}",
        f"- Avg minutes between trades: {m.avg_minutes_between_trades}",
        f"- Win rate: {m.win_rate * 100:.1f}%",
        f"- Avg win: ${m.avg_win}",
        f"- Avg loss: ${m.avg_loss}",
        f"- Profit factor: {m.profit_factor}",
    ]
    if m.avg_hold_minutes_wins is not None:
        lines.append(f"- Avg hold time (wins): {m.avg_hold_minutes_wins} min")
    if m.avg_hold_minutes_losses is not None:
        lines.append(f"- Avg hold time (losses): {m.avg_hold_minutes_losses} min")
    lines.append(f"- Post-loss trades within 30min (avg): {m.post_loss_trades_within_30_min_avg}")
    lines.append(f"- Post-loss win rate: {m.post_loss_win_rate * 100:.1f}%")
    if m.balance_turnover is not None:
        lines.append(f"- Balance turnover: {m.balance_turnover}x")
    if m.risk_reward_ratio is not None:
        lines.append(f"- Risk/reward ratio: {m.risk_reward_ratio}")
    lines.append(f"- Worst hours: {', '.join(m.worst_hours) or 'N/A'}")

    bias_blocks = []
    for bias in m.detected_biases:
        evidence = "\n".join(f"    • {line}" for line in m.evidence.get(bias, ()))
        bias_blocks.append(f"- {bias} ({m.severities.get(bias, DEFAULT_SEVERITY)})\n  Evidence:\n{evidence}")

    user_prompt = (
        "Here are the trader's metrics and detected biases. Analyze them and generate coaching output.\n\n"
        "TRADER METRICS:\n" + "\n".join(lines) + "\n\n"
        "DETECTED BIASES:\n" + "\n\n".join(bias_blocks) + "\n\n"
        "Generate the coaching JSON now. Remember: use ONLY the numbers above, do not invent any statistics."
    )
    return SYSTEM_PROMPT, user_prompt


def _bias_templates(m: SummaryMetrics) -> dict[str, dict[str, Any]]:
    return {
        "OVERTRADING": {
            "why_it_hurts": (
                "Each trade carries transaction costs and emotional toll. Overtrading erodes returns "
                "through fees and increases the chance of impulsive decisions."
            ),
            "rules": [
                {
                    "title": "Set a Daily Trade Cap",
                    "details": f"Limit yourself to {round(m.trades_per_day_avg * 0.6)} trades/day "
                    "(60% of current average).",
                },
                {
                    "title": "Pre-Trade Checklist",
                    "details": "Before every trade: (1) Clear thesis, (2) Defined exit, (3) Proper sizing.",
                },
                {
                    "title": "Session Windows",
                    "details": "Trade in 2 focused 45-minute sessions per day with breaks in between.",
                },
            ],
            "micro_habit": "Before your next session, write down your top 3 setups. Only trade those.",
        },
        "LOSS_AVERSION": {
            "why_it_hurts": (
                "Holding losers too long and cutting winners short means your losses outsize your gains, "
                "the opposite of profitable trading."
            ),
            "rules": [
                {
                    "title": "Define Exit Before Entry",
                    "details": "Set your stop-loss before placing any trade. Never widen a stop.",
                },
                {
                    "title": "Symmetric Exits",
                    "details": "If your stop is X%, your take-profit should be at least 1.5X%.",
                },
                {
                    "title": "Time-Based Stops",
                    "details": "If a trade hasn't moved in your favor within your expected timeframe, exit.",
                },
            ],
            "micro_habit": "For your next 5 trades, set stop-loss orders immediately after entry.",
        },
        "REVENGE_TRADING": {
            "why_it_hurts": (
                "Trading to 'win back' losses triggers stress-driven decisions. "
                "Your win rate drops after losses."
            ),
            "rules": [
                {
                    "title": "Mandatory Cooldown",
                    "details": "After any loss, wait at least 30 minutes before your next trade.",
                },
                {
                    "title": "If-Then Plan",
                    "details": "If I take a loss, then I close the app and review my trading checklist.",
                },
                {
                    "title": "Daily Loss Limit",
                    "details": "Set a maximum daily loss. Once hit, you're done for the day.",
                },
            ],
            "micro_habit": "After your next loss, set a 30-minute timer before returning.",
        },
    }


def _literacy_modules(m: SummaryMetrics) -> dict[str, dict[str, Any]]:
    return {
        "OVERTRADING": {
            "title": "The Cost of Overtrading",
            "minutes": 3,
            "lesson": (
                "Every trade has an expected cost: commission + spread + slippage. "
                f"At {m.trades_per_day_avg} trades/day, these costs compound quickly."
            ),
            "one_rule": "Never trade without a written thesis for the specific setup.",
            "reflection_question": "Of your last 10 trades, how many had a clear rationale before entry?",
            "mini_challenge": "Tomorrow, cut your usual trade count in half. Note whether your P&L improves.",
        },
        "LOSS_AVERSION": {
            "title": "Understanding the Disposition Effect",
            "minutes": 3,
            "lesson": (
                "Loss aversion makes losses feel about twice as painful as equivalent gains feel good. "
                "This leads to holding losers and selling winners too early."
            ),
            "one_rule": "Always set your stop-loss before entering a trade.",
            "reflection_question": "When did you last move a stop-loss further away? What was the outcome?",
            "mini_challenge": "For your next 3 trades, pre-commit to stop-loss and take-profit levels.",
        },
        "REVENGE_TRADING": {
            "title": "Emotions, Stress & Cooldowns",
            "minutes": 3,
            "lesson": (
                "After a loss, stress rises and rational thinking gets suppressed. "
                f"Your post-loss win rate is {m.post_loss_win_rate * 100:.0f}% vs overall {m.win_rate * 100:.0f}%."
            ),
            "one_rule": "If I take a loss, I close the app for at least 10 minutes.",
            "reflection_question": "Think of your worst trading day: how many were revenge trades?",
            "mini_challenge": "After your next loss, set a 30-minute timer and journal what you feel.",
        },
    }


def generate_fallback(metrics: SummaryMetrics) -> CoachOutput:
    """Template coaching built only from ``metrics``; never raises for a valid snapshot."""
    m = metrics
    risk_score = compute_overall_risk_score(bias_results_from_metrics(m))
    templates = _bias_templates(m)
    modules = _literacy_modules(m)
    flagged = [bias for bias in m.detected_biases if m.severities.get(bias) != "LOW"]

    revenge_high = m.severities.get("REVENGE_TRADING") == "HIGH"
    if flagged:
        headline = f"We detected {len(flagged)} behavioral patterns affecting your trading performance."
    else:
        headline = "No strong harmful patterns detected. Keep your process consistent."

    return CoachOutput.model_validate(
        {
            "headline": headline,
            "overall_risk_score": risk_score,
            "bias_cards": [
                {
                    "bias": bias,
                    "severity": m.severities.get(bias, DEFAULT_SEVERITY),
                    "evidence": list(m.evidence.get(bias, ())),
                    **templates[bias],
                }
                for bias in m.detected_biases
            ],
            "literacy_modules": [modules[bias] for bias in m.detected_biases],
            "brokerage_fit": {
                "summary": (
                    f"With {m.trades_per_day_avg} trades/day, your commission costs add up significantly. "
                    "Consider fee structures that reward your volume."
                ),
                "recommendations": [
                    "Compare commission structures across brokerages",
                    "Consider flat-fee or subscription models for high-volume trading",
                    "Factor in hidden costs like ECN fees and currency conversion",
                ],
            },
            "rest_mode_plan": {
                "recommended_cooldown_minutes": 60 if revenge_high else 30,
                "trigger_rule": (
                    "Activate after any loss exceeding your average loss"
                    if revenge_high
                    else "Activate after 2 consecutive losses"
                ),
                "script": (
                    "Step away from your trading station. Take 5 deep breaths. Review your trading plan. "
                    "Only return when you can articulate your next trade's thesis calmly."
                ),
            },
            "one_sentence_nudge": (
                "The best traders don't trade more, they trade better. "
                "Today, focus on one less trade and one more review."
            ),
            "source": "fallback",
        }
    )


def parse_coach_json(text: str) -> Optional[dict[str, Any]]:
    """Parse an LLM reply into a dict, tolerating a markdown code fence; None if not JSON."""
    cleaned = _CODE_FENCE.sub("", text.strip())
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


async def generate_coaching(metrics: SummaryMetrics) -> CoachOutput:
    """
    Coaching output for ``metrics``.

    Uses the LLM when an OpenAI key is configured; one retry with a stricter
    JSON instruction, then schema validation. Any failure falls back to the
    deterministic template. When the LLM omits a risk score, the severity
    weighted score is used.
    """
    ai_config = get_ai_config()
    if not ai_config.is_configured():
        return generate_fallback(metrics)

    system_prompt, user_prompt = build_prompt(metrics)
    timeout = ai_config.settings.coach_timeout_seconds
    loop = asyncio.get_running_loop()

    parsed: Optional[dict[str, Any]] = None
    try:
        llm = ai_config.get_llm()
        for suffix in ("", STRICT_JSON_SUFFIX):
            messages = [SystemMessage(content=system_prompt), HumanMessage(content=user_prompt + suffix)]
            response = await asyncio.wait_for(
                loop.run_in_executor(_executor, llm.invoke, messages),
                timeout=timeout,
            )
            content = response.content if isinstance(response.content, str) else str(response.content)
            parsed = parse_coach_json(content)
            if parsed is not None:
                break
            logger.warning("Coach reply was not valid JSON, retrying with stricter instruction")
    except asyncio.TimeoutError:
        logger.error("Coach request timed out after %.0f seconds. Using fallback.", timeout)
        return generate_fallback(metrics)
    except Exception as exc:
        logger.error("Coach request failed: %s. Using fallback.", exc)
        return generate_fallback(metrics)

    if parsed is None:
        logger.warning("Both coach attempts returned invalid JSON. Using fallback.")
        return generate_fallback(metrics)

    if parsed.get("overallRiskScore") is None:
        parsed["overallRiskScore"] = compute_overall_risk_score(bias_results_from_metrics(metrics))

    try:
        return CoachOutput.model_validate({**parsed, "source": "llm"})
    except ValidationError as exc:
        logger.warning("Coach reply failed schema validation (%d errors). Using fallback.", exc.error_count())
        return generate_fallback(metrics)
