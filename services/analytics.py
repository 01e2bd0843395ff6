# services/analytics.py
"""
Shared analytics building blocks for the admin dashboards

Resolves the caller's date range into a current and a comparison window,
aligns daily vendor series over those windows, and computes the dashboard
card figures (total, average per day, peak day, latest day, change versus
the comparable prior day). Finished reports can be cached in Redis.
"""

import json
import logging
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Mapping, Optional

import pandas as pd
import redis

from core.exceptions import BadRequestError

logger = logging.getLogger(__name__)

DEFAULT_PERIOD_DAYS = 7
MAX_PERIOD_DAYS = 3650
PRESET_PATTERN = re.compile(r'^(\d+)\s*days$', re.IGNORECASE)
DAY_LABEL_FORMAT = '%b %d'


@dataclass(frozen=True)
class ReportWindow:
    """A current window and the equally long window right before it"""
    start: date
    end: date
    previous_start: date
    previous_end: date

    @property
    def period_days(self) -> int:
        return (self.end - self.start).days + 1

    @property
    def cache_key(self) -> str:
        return f"{self.start.isoformat()}:{self.end.isoformat()}"

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {
            'dateRange': {'start': self.start.isoformat(), 'end': self.end.isoformat()},
            'previousDateRange': {
                'start': self.previous_start.isoformat(),
                'end': self.previous_end.isoformat()
            },
        }


def _parse_date(value: str, field_name: str) -> date:
    try:
        return pd.to_datetime(value).date()
    except (ValueError, TypeError):
        raise BadRequestError(f'Invalid {field_name}: {value!r}')


def resolve_window(date_range: Optional[str] = None,
                   start_date: Optional[str] = None,
                   end_date: Optional[str] = None,
                   today: Optional[date] = None) -> ReportWindow:
    """
    Turn dashboard query parameters into report windows

    Args:
        date_range: ``<N>days`` preset or ``custom``
        start_date: First day of a custom range (ISO date)
        end_date: Last day of a custom range (ISO date)
        today: Reference day, defaults to the current date

    Returns:
        ReportWindow whose comparison window has the same length and ends
        the day before the current window starts
    """
    today = today or date.today()
    date_range = (date_range or '').strip()

    if date_range == 'custom' and start_date and end_date:
        start = _parse_date(start_date, 'startDate')
        end = _parse_date(end_date, 'endDate')
        if end < start:
            raise BadRequestError('endDate must not be before startDate')
        if (end - start).days + 1 > MAX_PERIOD_DAYS:
            raise BadRequestError(f'Date range cannot exceed {MAX_PERIOD_DAYS} days')
    else:
        match = PRESET_PATTERN.match(date_range)
        days = int(match.group(1)) if match else 0
        if days <= 0:
            days = DEFAULT_PERIOD_DAYS
        if days > MAX_PERIOD_DAYS:
            raise BadRequestError(f'Date range cannot exceed {MAX_PERIOD_DAYS} days')
        end = today
        start = today - timedelta(days=days - 1)

    period_days = (end - start).days + 1
    try:
        previous_end = start - timedelta(days=1)
        previous_start = previous_end - timedelta(days=period_days - 1)
    except OverflowError:
        raise BadRequestError('Date range is out of bounds')
    # Daily series are reindexed with pandas, which cannot go below Timestamp.min
    if previous_start <= pd.Timestamp.min.date():
        raise BadRequestError('Date range is out of bounds')
    return ReportWindow(start, end, previous_start, previous_end)


def percentage_change(current: float, previous: float) -> float:
    """
    Relative change of ``current`` against ``previous`` in percent

    A previous value of zero reports 100 when the current value is positive
    and 0 otherwise.
    """
    if previous > 0:
        return (current - previous) / previous * 100
    if current > 0:
        return 100.0
    return 0.0


def daily_series(values: Mapping[date, int], start: date, end: date) -> pd.Series:
    """Values re-indexed over every day from start to end, missing days as 0"""
    days = pd.date_range(start, end, freq='D')
    series = pd.Series(
        list(values.values()),
        index=pd.to_datetime(list(values.keys())),
        dtype='int64'
    )
    series = series.groupby(level=0).sum()
    return series.reindex(days, fill_value=0)


def build_daily_comparison(current: Optional[Mapping[date, int]],
                           previous: Optional[Mapping[date, int]],
                           window: ReportWindow) -> pd.DataFrame:
    """
    Align the current and previous daily series by day offset

    Day ``i`` of the current window sits next to day ``i`` of the previous
    window. ``current`` of None means the vendor gave no daily breakdown and
    yields an empty frame.
    """
    if current is None:
        return pd.DataFrame(columns=['date', 'current', 'previous'])

    current_series = daily_series(current, window.start, window.end)
    previous_series = daily_series(previous or {}, window.previous_start, window.previous_end)

    return pd.DataFrame({
        'date': current_series.index.strftime(DAY_LABEL_FORMAT),
        'current': current_series.to_numpy(),
        'previous': previous_series.to_numpy(),
    })


@dataclass
class VisitorSummary:
    total_visitors: int
    average_daily: float
    peak_visitors: int
    current_visitors: int
    percentage_change: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'totalVisitors': self.total_visitors,
            'averageDaily': self.average_daily,
            'peakVisitors': self.peak_visitors,
            'currentVisitors': self.current_visitors,
            'percentageChange': self.percentage_change,
        }


def summarize_visitors(daily: pd.DataFrame, users: int, period_days: int) -> VisitorSummary:
    """
    Dashboard card figures for a daily visitor comparison

    The daily series is used when it carries visitors (or the aggregate user
    count is zero too); otherwise the aggregate count is spread evenly over
    the period.
    """
    if not daily.empty:
        total = int(daily['current'].sum())
        if total > 0 or users == 0:
            last = daily.iloc[-1]
            latest = int(last['current'])
            return VisitorSummary(
                total_visitors=total,
                average_daily=total / len(daily),
                peak_visitors=int(daily['current'].max()),
                current_visitors=latest,
                percentage_change=percentage_change(latest, int(last['previous']))
            )

    return VisitorSummary(
        total_visitors=users,
        average_daily=users / period_days if period_days > 0 else 0,
        peak_visitors=users,
        current_visitors=users,
        percentage_change=0.0
    )


class AnalyticsCache:
    """Redis cache for finished reports; a no-op without a client"""

    def __init__(self, redis_client: Optional[redis.Redis] = None, ttl: int = 300):
        self.redis_client = redis_client
        self.ttl = ttl

    @classmethod
    def from_url(cls, url: str, ttl: int = 300) -> 'AnalyticsCache':
        if not url:
            return cls(None, ttl)
        return cls(redis.Redis.from_url(url, decode_responses=True), ttl)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        if self.redis_client is None:
            return None
        try:
            cached = self.redis_client.get(f"analytics:{key}")
        except redis.RedisError as e:
            logger.warning(f"Analytics cache read failed: {e}")
            return None
        if not cached:
            return None
        try:
            return json.loads(cached)
        except ValueError as e:
            logger.warning(f"Cache deserialization failed: {e}")
            return None

    def set(self, key: str, report: Dict[str, Any]) -> None:
        if self.redis_client is None:
            return
        try:
            self.redis_client.setex(f"analytics:{key}", self.ttl, json.dumps(report, default=str))
        except redis.RedisError as e:
            logger.warning(f"Failed to cache analytics: {e}")
