# services/linkedin_analytics.py
"""
LinkedIn follower analytics through the Metricool API
"""

import logging
from datetime import datetime, time
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

import pandas as pd
import requests

from core.exceptions import ConfigurationError, FoundationError, VendorError
from services.analytics import AnalyticsCache, ReportWindow, percentage_change

logger = logging.getLogger(__name__)

FOLLOWER_DISTRIBUTIONS = {
    'distributionData': 'followerCountsByFunction',
    'industryDistributionData': 'aggregatedFollowerCountsByIndustry',
}


def shape_distribution(payload: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """``{key, value}`` items sorted by value, largest first"""
    items = (payload or {}).get('data')
    if not isinstance(items, list):
        return []

    shaped = []
    for item in items:
        try:
            value = float(item.get('value') or 0)
        except (TypeError, ValueError):
            value = 0.0
        shaped.append({'key': item.get('key') or 'Unknown', 'value': value})
    shaped.sort(key=lambda entry: entry['value'], reverse=True)
    return shaped


def summarize_followers(payload: Optional[Dict[str, Any]], tz: ZoneInfo) -> Dict[str, Any]:
    """
    Follower series and card metrics from a Metricool timeline

    The series is sorted oldest first. ``previousFollowers`` is the first
    point of the range and ``currentFollowers`` the last one.
    """
    metrics = {
        'totalFollowers': 0,
        'currentFollowers': 0,
        'previousFollowers': 0,
        'changePercentage': 0.0,
        'peakFollowers': 0,
        'averageFollowers': 0.0,
    }

    series = (payload or {}).get('data') or []
    values = series[0].get('values') if series and isinstance(series[0], dict) else None
    if not values:
        return {'followersData': [], 'metrics': metrics}

    frame = pd.DataFrame(values)
    if 'dateTime' not in frame:
        logger.warning("Metricool timeline values carry no dateTime")
        return {'followersData': [], 'metrics': metrics}
    frame['dateTime'] = pd.to_datetime(frame['dateTime'], utc=True)
    if 'value' not in frame:
        frame['value'] = 0
    frame['value'] = pd.to_numeric(frame['value'], errors='coerce').fillna(0)
    frame = frame.sort_values('dateTime', kind='stable')

    labels = frame['dateTime'].dt.tz_convert(tz).dt.strftime('%b %d')
    followers = [
        {'date': label, 'value': _number(value)}
        for label, value in zip(labels, frame['value'])
    ]

    current = _number(frame['value'].iloc[-1])
    previous = _number(frame['value'].iloc[0])
    metrics.update({
        'totalFollowers': current,
        'currentFollowers': current,
        'previousFollowers': previous,
        'changePercentage': percentage_change(current, previous),
        'peakFollowers': _number(frame['value'].max()),
        'averageFollowers': float(frame['value'].mean()),
    })
    return {'followersData': followers, 'metrics': metrics}


def _number(value):
    value = float(value)
    return int(value) if value.is_integer() else value


class MetricoolClient:
    """Metricool v2 analytics endpoints for one brand"""

    BASE_URL = 'https://app.metricool.com/api/v2/analytics'

    def __init__(self, api_key: str, user_id: str, blog_id: str, timeout: float = 30,
                 session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.user_id = user_id
        self.blog_id = blog_id
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.user_id and self.blog_id)

    def _get(self, path: str, params: Dict[str, str]) -> requests.Response:
        params = dict(params, userId=self.user_id, blogId=self.blog_id)
        try:
            return self.session.get(
                f"{self.BASE_URL}/{path}",
                params=params,
                headers={'X-Mc-Auth': self.api_key, 'Content-Type': 'application/json'},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise VendorError(f'Metricool API unreachable: {e}', 502)

    def followers_timeline(self, start: str, end: str, timezone: str) -> Dict[str, Any]:
        response = self._get('timelines', {
            'from': start,
            'to': end,
            'metric': 'Followers',
            'network': 'linkedin',
            'timezone': timezone,
            'metricType': 'account',
        })
        if not response.ok:
            logger.error(f"Metricool timeline error {response.status_code}: {response.text}")
            raise VendorError(
                f'Failed to fetch LinkedIn analytics from Metricool API: {response.text}',
                response.status_code, body=response.text
            )
        return response.json()

    def distribution(self, metric: str, start: str, end: str) -> Optional[Dict[str, Any]]:
        response = self._get('distribution', {
            'from': start,
            'to': end,
            'metric': metric,
            'network': 'linkedin',
            'subject': 'account',
        })
        if not response.ok:
            logger.warning(f"Metricool distribution {metric} returned {response.status_code}")
            return None
        return response.json()


class LinkedInAnalyticsService:
    """Builds the LinkedIn analytics dashboard report"""

    NOT_CONFIGURED = (
        'Metricool API credentials not configured. Please set METRICOOL_API_KEY, '
        'METRICOOL_USER_ID, and METRICOOL_BLOG_ID environment variables.'
    )

    def __init__(self, client: MetricoolClient, timezone: str = 'America/Indianapolis',
                 cache: Optional[AnalyticsCache] = None):
        self.client = client
        self.timezone = timezone
        self.tz = ZoneInfo(timezone)
        self.cache = cache or AnalyticsCache()

    def ensure_configured(self) -> None:
        if not self.client.configured:
            raise ConfigurationError(self.NOT_CONFIGURED, 400)

    def report(self, window: ReportWindow, force_refresh: bool = False) -> Dict[str, Any]:
        self.ensure_configured()

        cache_key = f"linkedin:{self.client.blog_id}:{window.cache_key}"
        if not force_refresh:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        # Timeline bounds carry the brand's UTC offset; distributions take local days
        timeline_from = datetime.combine(window.start, time.min, self.tz)
        timeline_to = datetime.combine(window.end, time(23, 59, 59), self.tz)
        timeline = self.client.followers_timeline(
            timeline_from.isoformat(timespec='seconds'),
            timeline_to.isoformat(timespec='seconds'),
            self.timezone
        )

        distribution_from = f"{window.start.isoformat()}T00:00:00"
        distribution_to = f"{window.end.isoformat()}T23:59:59"

        report = summarize_followers(timeline, self.tz)
        for field_name, metric in FOLLOWER_DISTRIBUTIONS.items():
            try:
                payload = self.client.distribution(metric, distribution_from, distribution_to)
            except FoundationError as e:
                logger.warning(f"Metricool distribution {metric} failed: {e.message}")
                payload = None
            report[field_name] = shape_distribution(payload)

        report['dateRange'] = window.to_dict()['dateRange']

        logger.info(
            f"LinkedIn analytics {window.start}..{window.end}: "
            f"{len(report['followersData'])} points, "
            f"current={report['metrics']['currentFollowers']}"
        )

        self.cache.set(cache_key, report)
        return report
