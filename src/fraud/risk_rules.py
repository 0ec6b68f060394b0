from __future__ import annotations

from dataclasses import dataclass, field

from common.config import FraudConfig
from common.models import FraudFlag, RiskLevel


@dataclass(frozen=True)
class RiskContext:
    """Inputs used by the deterministic fraud rules.

    Counter fields hold the value each velocity counter reached *after* this
    transaction was counted, so the first transaction of a window sees 1.
    """

    amount: float
    hour_utc: int

    hourly_count: int = 0
    daily_count: int = 0
    rapid_count: int = 0
    same_amount_count: int = 0


@dataclass(frozen=True)
class RuleResult:
    flag: FraudFlag
    triggered: bool
    weight: int


@dataclass(frozen=True)
class RuleOutcome:
    score: int
    level: RiskLevel
    flags: frozenset[FraudFlag] = field(default_factory=frozenset)


def rule_amount(ctx: RiskContext, cfg: FraudConfig) -> RuleResult:
    """Very high amount outranks high amount; at most one of the two fires."""

    if ctx.amount >= cfg.very_high_amount:
        return RuleResult(FraudFlag.VERY_HIGH_AMOUNT, True, cfg.weight_very_high_amount)
    if ctx.amount >= cfg.high_amount:
        return RuleResult(FraudFlag.HIGH_AMOUNT, True, cfg.weight_high_amount)
    return RuleResult(FraudFlag.HIGH_AMOUNT, False, cfg.weight_high_amount)


def rule_round_amount(ctx: RiskContext, cfg: FraudConfig) -> RuleResult:
    triggered = float(ctx.amount) in cfg.suspicious_round_amounts
    return RuleResult(FraudFlag.SUSPICIOUS_ROUND_AMOUNT, triggered, cfg.weight_round_amount)


def rule_hourly_velocity(ctx: RiskContext, cfg: FraudConfig) -> RuleResult:
    triggered = ctx.hourly_count > cfg.max_per_hour
    return RuleResult(FraudFlag.HIGH_FREQUENCY_HOUR, triggered, cfg.weight_high_frequency_hour)


def rule_daily_velocity(ctx: RiskContext, cfg: FraudConfig) -> RuleResult:
    triggered = ctx.daily_count > cfg.max_per_day
    return RuleResult(FraudFlag.HIGH_FREQUENCY_DAY, triggered, cfg.weight_high_frequency_day)


def rule_rapid_transactions(ctx: RiskContext, cfg: FraudConfig) -> RuleResult:
    triggered = ctx.rapid_count > cfg.max_rapid
    return RuleResult(FraudFlag.RAPID_TRANSACTIONS, triggered, cfg.weight_rapid_transactions)


def is_business_hour(hour: int, start: int, end: int) -> bool:
    if start <= end:
        return start <= hour < end
    # Windows spanning midnight, e.g. 22 -> 6.
    return hour >= start or hour < end


def rule_unusual_hours(ctx: RiskContext, cfg: FraudConfig) -> RuleResult:
    triggered = not is_business_hour(ctx.hour_utc, cfg.business_hours_start, cfg.business_hours_end)
    return RuleResult(FraudFlag.UNUSUAL_HOURS, triggered, cfg.weight_unusual_hours)


def rule_repeated_amount(ctx: RiskContext, cfg: FraudConfig) -> RuleResult:
    triggered = ctx.same_amount_count > cfg.max_repeated_amount
    return RuleResult(FraudFlag.REPEATED_AMOUNT, triggered, cfg.weight_repeated_amount)


RULES = (
    rule_amount,
    rule_round_amount,
    rule_hourly_velocity,
    rule_daily_velocity,
    rule_rapid_transactions,
    rule_unusual_hours,
    rule_repeated_amount,
)


def risk_level_for(score: int, cfg: FraudConfig) -> RiskLevel:
    if score >= cfg.critical_threshold:
        return RiskLevel.CRITICAL
    if score >= cfg.high_threshold:
        return RiskLevel.HIGH
    if score >= cfg.medium_threshold:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def clamp_score(score: int) -> int:
    return max(0, min(100, int(score)))


def compute_risk(ctx: RiskContext, cfg: FraudConfig | None = None) -> RuleOutcome:
    """Evaluate all rules, sum the weights of those that fired, clamp to 0..100."""

    cfg = FraudConfig() if cfg is None else cfg

    fired: set[FraudFlag] = set()
    score = 0
    for rule_fn in RULES:
        result = rule_fn(ctx, cfg)
        if result.triggered:
            fired.add(result.flag)
            score += int(result.weight)

    score = clamp_score(score)
    return RuleOutcome(score=score, level=risk_level_for(score, cfg), flags=frozenset(fired))
