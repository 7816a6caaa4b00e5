"""
AI usage statistics over a time period: totals, a per-model breakdown and a
per-day breakdown, built from the recorded AIUsage rows.
"""
import calendar
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from app.lib.time import isoformat, utcnow_naive
from app.models import AIUsage

logger = logging.getLogger(__name__)

PERIODS = ('day', 'week', 'month', 'year', 'custom')
DEFAULT_PERIOD = 'month'


class UsageQueryError(ValueError):
    """Rejected period or date range; the message is returned to the caller."""


def parse_date(value: str, name: str) -> datetime:
    """ISO 8601 date or datetime, returned as naive UTC."""
    try:
        parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    except ValueError:
        label = 'Start date' if name == 'start_date' else 'End date'
        raise UsageQueryError(f"{label} must be a valid ISO date string")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _months_back(value: datetime, months: int) -> datetime:
    month_index = value.year * 12 + value.month - 1 - months
    year, month = divmod(month_index, 12)
    day = min(value.day, calendar.monthrange(year, month + 1)[1])
    return value.replace(year=year, month=month + 1, day=day)


def date_range(period: str, start_date: Optional[str] = None, end_date: Optional[str] = None,
               now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    now = now or utcnow_naive()
    if period not in PERIODS:
        raise UsageQueryError("Invalid period specified")

    if period == 'custom':
        if not start_date or not end_date:
            raise UsageQueryError("Custom period requires both start_date and end_date")
        start, end = parse_date(start_date, 'start_date'), parse_date(end_date, 'end_date')
        if start >= end:
            raise UsageQueryError("Start date must be before end date")
        return start, end

    if period == 'day':
        return now - timedelta(days=1), now
    if period == 'week':
        return now - timedelta(days=7), now
    if period == 'month':
        return _months_back(now, 1), now
    return _months_back(now, 12), now


def usage_summary(user_id: str, period: str = DEFAULT_PERIOD, start_date: Optional[str] = None,
                  end_date: Optional[str] = None, now: Optional[datetime] = None) -> dict:
    start, end = date_range(period, start_date, end_date, now)

    rows = AIUsage.query.filter(
        AIUsage.user_id == user_id,
        AIUsage.created_at >= start,
        AIUsage.created_at <= end,
    ).order_by(AIUsage.created_at.asc()).all()

    total_input = total_output = 0
    total_cost = 0.0
    models = {}
    days = {}
    for row in rows:
        cost = row.cost or 0.0
        total_input += row.input_tokens or 0
        total_output += row.output_tokens or 0
        total_cost += cost

        model = models.setdefault(row.model or 'unknown', {'generations': 0, 'cost': 0.0})
        model['generations'] += 1
        model['cost'] += cost

        day = days.setdefault(row.created_at.date().isoformat(), {'generations': 0, 'cost': 0.0})
        day['generations'] += 1
        day['cost'] += cost

    # Float sums drift; six places keeps sub-cent model prices visible
    for stats in list(models.values()) + list(days.values()):
        stats['cost'] = round(stats['cost'], 6)

    logger.debug(f"AI usage for {user_id} ({period}): {len(rows)} generations")
    return {
        'period': period,
        'start_date': isoformat(start),
        'end_date': isoformat(end),
        'total_generations': len(rows),
        'total_input_tokens': total_input,
        'total_output_tokens': total_output,
        'total_cost': round(total_cost, 6),
        'models_used': models,
        'daily_breakdown': [dict(date=date, **stats) for date, stats in sorted(days.items())],
    }
