# services/google_analytics.py
"""
Website analytics from the Google Analytics Data API (GA4)

Runs an overview report over the current and comparison windows, a top-pages
report and two daily visitor reports, then shapes them into the admin
dashboard payload.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import requests

from core.exceptions import ConfigurationError, FoundationError, VendorError
from core.google_oauth import GoogleOAuthClient
from services.analytics import (
    AnalyticsCache, ReportWindow, build_daily_comparison, summarize_visitors
)

logger = logging.getLogger(__name__)

OVERVIEW_METRICS = [
    'activeUsers', 'sessions', 'screenPageViews', 'newUsers',
    'eventCount', 'bounceRate', 'averageSessionDuration',
]

CURRENT_PERIOD = 'currentPeriod'
PREVIOUS_PERIOD = 'previousPeriod'


def _metric_int(values: List[Dict[str, Any]], index: int) -> int:
    try:
        return int(float(values[index].get('value') or 0))
    except (IndexError, ValueError, TypeError):
        return 0


def _metric_float(values: List[Dict[str, Any]], index: int) -> float:
    try:
        return float(values[index].get('value') or 0)
    except (IndexError, ValueError, TypeError):
        return 0.0


def _dimension(row: Dict[str, Any], index: int, default: str = '') -> str:
    dimensions = row.get('dimensionValues') or []
    if index < len(dimensions):
        return dimensions[index].get('value') or default
    return default


class GoogleAnalyticsClient:
    """runReport calls against one GA4 property"""

    API_URL = 'https://analyticsdata.googleapis.com/v1beta/properties/{property_id}:runReport'

    def __init__(self, property_id: str, timeout: float = 30,
                 session: Optional[requests.Session] = None):
        self.property_id = (property_id or '').strip()
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def valid_property(self) -> bool:
        return self.property_id.isdigit()

    def run_report(self, access_token: str, body: Dict[str, Any]) -> Dict[str, Any]:
        url = self.API_URL.format(property_id=self.property_id)
        try:
            response = self.session.post(
                url,
                headers={
                    'Authorization': f'Bearer {access_token}',
                    'Content-Type': 'application/json',
                },
                json=body,
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise VendorError(f'Google Analytics API unreachable: {e}', 502)

        if not response.ok:
            logger.error(f"Google Analytics API error {response.status_code}: {response.text}")
            raise VendorError(
                f'Google Analytics API error: {response.status_code}',
                response.status_code, body=response.text
            )
        return response.json()


class WebsiteAnalyticsService:
    """Builds the website analytics dashboard report"""

    NOT_CONFIGURED = (
        'Google Analytics API not configured. Please set GA_CLIENT_ID and '
        'GA_CLIENT_SECRET environment variables.'
    )
    INVALID_PROPERTY = (
        'Invalid Property ID. Please set GA_PROPERTY_ID environment variable with a '
        'numeric Property ID (not the Measurement ID G-XXXXXXXXX). Find it in Google '
        'Analytics Admin → Property Settings.'
    )
    AUTH_FAILED = (
        'Failed to authenticate with Google Analytics. Please check your credentials '
        'and complete the OAuth2 setup.'
    )
    FETCH_FAILED = (
        'Failed to fetch analytics data from Google Analytics API. Please verify your '
        'property ID and API access.'
    )

    def __init__(self, oauth: GoogleOAuthClient, client: GoogleAnalyticsClient,
                 refresh_token: str, cache: Optional[AnalyticsCache] = None):
        self.oauth = oauth
        self.client = client
        self.refresh_token = refresh_token
        self.cache = cache or AnalyticsCache()

    def ensure_configured(self) -> None:
        if not self.oauth.configured:
            raise ConfigurationError(self.NOT_CONFIGURED, 400)
        if not self.client.valid_property:
            raise ConfigurationError(self.INVALID_PROPERTY, 400)

    def report(self, window: ReportWindow, force_refresh: bool = False) -> Dict[str, Any]:
        """
        Assemble the dashboard report for ``window``

        Args:
            window: Current and comparison windows
            force_refresh: Skip the report cache

        Returns:
            Report dictionary ready to serialize as the ``data`` field
        """
        self.ensure_configured()

        cache_key = f"ga:{self.client.property_id}:{window.cache_key}"
        if not force_refresh:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Serving website analytics from cache ({cache_key})")
                return cached

        try:
            access_token = self.oauth.access_token(self.refresh_token)
        except VendorError as e:
            logger.error(f"Google Analytics token exchange failed: {e.message}")
            raise VendorError(self.AUTH_FAILED, 401)

        try:
            overview = self._overview(access_token, window)
        except VendorError:
            raise VendorError(self.FETCH_FAILED, 500)

        pages = self._top_pages(access_token, window)
        current_daily = self._daily_users(access_token, window.start, window.end)
        previous_daily = self._daily_users(access_token, window.previous_start,
                                           window.previous_end)

        daily = build_daily_comparison(current_daily, previous_daily, window)
        summary = summarize_visitors(daily, overview['users'], window.period_days)

        logger.info(
            f"Website analytics {window.start}..{window.end}: users={overview['users']} "
            f"daily_rows={len(daily)} total={summary.total_visitors}"
        )

        report = dict(overview)
        report.update(summary.to_dict())
        report['pageViewsList'] = pages
        report['dailyComparisonData'] = [
            {
                'date': row.date,
                CURRENT_PERIOD: int(row.current),
                PREVIOUS_PERIOD: int(row.previous),
            }
            for row in daily.itertuples(index=False)
        ]
        report.update(window.to_dict())

        self.cache.set(cache_key, report)
        return report

    def _overview(self, access_token: str, window: ReportWindow) -> Dict[str, Any]:
        data = self.client.run_report(access_token, {
            'dateRanges': [
                {
                    'startDate': window.start.isoformat(),
                    'endDate': window.end.isoformat(),
                    'name': CURRENT_PERIOD,
                },
                {
                    'startDate': window.previous_start.isoformat(),
                    'endDate': window.previous_end.isoformat(),
                    'name': PREVIOUS_PERIOD,
                },
            ],
            'metrics': [{'name': name} for name in OVERVIEW_METRICS],
        })

        rows = data.get('rows') or []
        by_period: Dict[str, List[Dict[str, Any]]] = {}
        for position, row in enumerate(rows):
            # Rows are tagged with the date range name; fall back to order
            period = _dimension(row, 0) or (CURRENT_PERIOD if position == 0 else PREVIOUS_PERIOD)
            by_period.setdefault(period, row.get('metricValues') or [])

        current = by_period.get(CURRENT_PERIOD, [])
        previous = by_period.get(PREVIOUS_PERIOD, [])

        return {
            'users': _metric_int(current, 0),
            'sessions': _metric_int(current, 1),
            'pageViews': _metric_int(current, 2),
            'newUsers': _metric_int(current, 3),
            'eventCount': _metric_int(current, 4),
            'bounceRate': _metric_float(current, 5) * 100,
            'avgSessionDuration': _metric_float(current, 6),
            'previousUsers': _metric_int(previous, 0),
        }

    def _top_pages(self, access_token: str, window: ReportWindow) -> List[Dict[str, Any]]:
        try:
            data = self.client.run_report(access_token, {
                'dateRanges': [{
                    'startDate': window.start.isoformat(),
                    'endDate': window.end.isoformat(),
                }],
                'dimensions': [{'name': 'pagePath'}, {'name': 'pageTitle'}],
                'metrics': [{'name': 'screenPageViews'}, {'name': 'activeUsers'}],
                'orderBys': [{'metric': {'metricName': 'screenPageViews'}, 'desc': True}],
                'limit': 50,
            })
        except FoundationError as e:
            logger.warning(f"Top pages report failed: {e.message}")
            return []

        return [
            {
                'page': _dimension(row, 0, 'Unknown'),
                'title': _dimension(row, 1, 'Unknown'),
                'views': _metric_int(row.get('metricValues') or [], 0),
                'users': _metric_int(row.get('metricValues') or [], 1),
            }
            for row in data.get('rows') or []
        ]

    def _daily_users(self, access_token: str, start: date,
                     end: date) -> Optional[Dict[date, int]]:
        """Active users per day, or None when the report failed"""
        try:
            data = self.client.run_report(access_token, {
                'dateRanges': [{'startDate': start.isoformat(), 'endDate': end.isoformat()}],
                'dimensions': [{'name': 'date'}],
                'metrics': [{'name': 'activeUsers'}],
                'orderBys': [{'dimension': {'dimensionName': 'date'}}],
            })
        except FoundationError as e:
            logger.warning(f"Daily users report {start}..{end} failed: {e.message}")
            return None

        daily: Dict[date, int] = {}
        for row in data.get('rows') or []:
            raw_day = _dimension(row, 0)
            try:
                day = datetime.strptime(raw_day, '%Y%m%d').date()
            except ValueError:
                logger.debug(f"Skipping daily row with unexpected date {raw_day!r}")
                continue
            daily[day] = daily.get(day, 0) + _metric_int(row.get('metricValues') or [], 0)
        return daily
