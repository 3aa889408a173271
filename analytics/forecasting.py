"""
Analytics — Forecast Arithmetic

Pure functions over a monthly consumption series: projection, safety stock,
urgency, confidence and the reorder quantity. No database access here;
analytics.services feeds these from the stock ledger.

The estimators are deliberately simple so every recommendation can be
explained from the numbers shown next to it:

  projection  — linear trend over the last 3–6 months when it fits
                (R² ≥ 0.5), otherwise the trailing 3-month moving average
  safety      — factor × lead time × average daily consumption
  confidence  — 100 × (1 − coefficient of variation) × window coverage

@file analytics/forecasting.py
"""

import math
import statistics
from dataclasses import asdict, dataclass, field
from datetime import date

DAYS_PER_MONTH = 30
MOVING_AVERAGE_SPAN = 3
TREND_MIN_POINTS = 3
TREND_MAX_POINTS = 6
TREND_MIN_R_SQUARED = 0.5

METHOD_MOVING_AVERAGE = 'moving_average'
METHOD_LINEAR_TREND = 'linear_trend'

URGENCY_HIGH = 'high'
URGENCY_MEDIUM = 'medium'
URGENCY_LOW = 'low'
URGENCY_RANK = {URGENCY_HIGH: 0, URGENCY_MEDIUM: 1, URGENCY_LOW: 2}


@dataclass
class ForecastPoint:
    period: str
    actual_consumption: int | None
    projected_consumption: float | None = None


@dataclass
class Forecast:
    scope: str
    scope_id: str
    period_months: int
    method: str
    projected_demand: float
    average_daily_consumption: float
    current_stock: int
    minimum_threshold: int
    lead_time_days: int
    safety_stock: float
    days_until_stockout: float | None
    urgency: str
    recommended_order: int
    confidence: float
    data_points: int
    series: list[ForecastPoint] = field(default_factory=list)
    label: str = ''

    def to_dict(self) -> dict:
        return asdict(self)


def month_window(today: date, period_months: int) -> list[date]:
    """First days of the ``period_months`` complete months before ``today``'s month, oldest first."""
    months = []
    year, month = today.year, today.month
    for _ in range(period_months):
        month -= 1
        if month == 0:
            year, month = year - 1, 12
        months.append(date(year, month, 1))
    return list(reversed(months))


def next_month(day: date) -> date:
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)


def trim_leading_empty(values: list[int]) -> list[int]:
    """Drop the months before the first recorded consumption."""
    for index, value in enumerate(values):
        if value:
            return values[index:]
    return []


def moving_average(values: list[int], span: int = MOVING_AVERAGE_SPAN) -> float:
    if not values:
        return 0.0
    window = values[-span:]
    return sum(window) / len(window)


def linear_fit(values: list[int]) -> tuple[float, float, float]:
    """
    Least-squares line over x = 0..n-1. Returns (slope, intercept, r_squared);
    a flat series has r_squared 0.
    """
    n = len(values)
    xs = range(n)
    mean_x = (n - 1) / 2
    mean_y = sum(values) / n
    sxx = sum((x - mean_x) ** 2 for x in xs)
    sxy = sum((x - mean_x) * (y - mean_y) for x, y in zip(xs, values))
    syy = sum((y - mean_y) ** 2 for y in values)
    slope = sxy / sxx if sxx else 0.0
    intercept = mean_y - slope * mean_x
    r_squared = (sxy * sxy) / (sxx * syy) if sxx and syy else 0.0
    return slope, intercept, r_squared


def project_demand(values: list[int]) -> tuple[float, str]:
    """Next-month demand and the method used. Never negative."""
    if len(values) >= TREND_MIN_POINTS:
        recent = values[-TREND_MAX_POINTS:]
        slope, intercept, r_squared = linear_fit(recent)
        if r_squared >= TREND_MIN_R_SQUARED:
            return max(0.0, intercept + slope * len(recent)), METHOD_LINEAR_TREND
    return max(0.0, moving_average(values)), METHOD_MOVING_AVERAGE


def average_daily_consumption(values: list[int]) -> float:
    if not values:
        return 0.0
    return statistics.fmean(values) / DAYS_PER_MONTH


def safety_stock(lead_time_days: int, daily_consumption: float, factor: float = 1.0) -> float:
    return factor * lead_time_days * daily_consumption


def days_until_stockout(current_stock: int, daily_consumption: float) -> float | None:
    if daily_consumption <= 0:
        return None
    return max(0, current_stock) / daily_consumption


def classify_urgency(days_left: float | None, lead_time_days: int) -> str:
    if days_left is None:
        return URGENCY_LOW
    if days_left <= lead_time_days:
        return URGENCY_HIGH
    if days_left <= 2 * lead_time_days:
        return URGENCY_MEDIUM
    return URGENCY_LOW


def confidence_score(values: list[int], window: int) -> float:
    """0–100: stable, well-covered history scores high; volatile or sparse history low."""
    if len(values) < 2 or window <= 0:
        return 0.0
    mean = statistics.fmean(values)
    if mean <= 0:
        return 0.0
    cv = statistics.pstdev(values) / mean
    coverage = min(1.0, len(values) / window)
    return round(min(100.0, max(0.0, 100.0 * (1.0 - cv) * coverage)), 1)


def recommend_order(
    projected: float,
    safety: float,
    current_stock: int,
    minimum_threshold: int,
    data_points: int,
) -> int:
    if data_points < 2:
        return max(0, minimum_threshold - current_stock)
    return max(0, math.ceil(projected + safety - current_stock))


def build_forecast(
    *,
    scope: str,
    scope_id: str,
    label: str,
    months: list[date],
    monthly_totals: dict[date, int],
    current_stock: int,
    minimum_threshold: int,
    lead_time_days: int,
    safety_factor: float,
) -> Forecast:
    """Assemble a Forecast from the raw monthly totals of a scope."""
    raw = [int(monthly_totals.get(month, 0)) for month in months]
    history = trim_leading_empty(raw)
    skipped = len(raw) - len(history)

    projected, method = project_demand(history)
    daily = average_daily_consumption(history)
    safety = safety_stock(lead_time_days, daily, safety_factor)
    days_left = days_until_stockout(current_stock, daily)

    series = [
        ForecastPoint(period=month.strftime('%Y-%m'), actual_consumption=value)
        for month, value in zip(months[skipped:], history)
    ]
    if months:
        series.append(ForecastPoint(
            period=next_month(months[-1]).strftime('%Y-%m'),
            actual_consumption=None,
            projected_consumption=round(projected, 2),
        ))

    return Forecast(
        scope=scope,
        scope_id=scope_id,
        label=label,
        period_months=len(months),
        method=method,
        projected_demand=round(projected, 2),
        average_daily_consumption=round(daily, 2),
        current_stock=current_stock,
        minimum_threshold=minimum_threshold,
        lead_time_days=lead_time_days,
        safety_stock=round(safety, 2),
        days_until_stockout=round(days_left, 1) if days_left is not None else None,
        urgency=classify_urgency(days_left, lead_time_days),
        recommended_order=recommend_order(projected, safety, current_stock, minimum_threshold, len(history)),
        confidence=confidence_score(history, len(months)),
        data_points=len(history),
        series=series,
    )
