"""
Tests for the website analytics report built from GA4 responses
"""

from datetime import date
from unittest.mock import MagicMock

import pytest

from core.exceptions import ConfigurationError, VendorError
from services.analytics import resolve_window
from services.google_analytics import GoogleAnalyticsClient, WebsiteAnalyticsService
from tests.helpers import ga_rows, make_response

WINDOW = resolve_window('custom', '2024-03-01', '2024-03-03', today=date(2024, 3, 15))

OVERVIEW = ga_rows(
    (['currentPeriod'], [120, 150, 400, 80, 900, '0.42', '65.5']),
    (['previousPeriod'], [100, 130, 350, 70, 800, '0.5', '60']),
)
PAGES = ga_rows(
    (['/', 'Home'], [300, 90]),
    (['/apply', 'Apply'], [100, 40]),
)
CURRENT_DAILY = ga_rows((['20240301'], [40]), (['20240302'], [30]), (['20240303'], [50]))
PREVIOUS_DAILY = ga_rows((['20240227'], [20]), (['20240229'], [25]))


def fake_run_report(token, body):
    if 'dimensions' not in body:
        return OVERVIEW
    if body['dimensions'][0]['name'] == 'pagePath':
        return PAGES
    if body['dateRanges'][0]['startDate'] == WINDOW.start.isoformat():
        return CURRENT_DAILY
    return PREVIOUS_DAILY


@pytest.fixture
def oauth():
    mock = MagicMock()
    mock.configured = True
    mock.access_token.return_value = 'ga-token'
    return mock


@pytest.fixture
def ga_client():
    mock = MagicMock()
    mock.property_id = '123456789'
    mock.valid_property = True
    mock.run_report.side_effect = fake_run_report
    return mock


@pytest.fixture
def service(oauth, ga_client):
    return WebsiteAnalyticsService(oauth, ga_client, 'refresh-token')


def test_report_combines_overview_pages_and_daily(service, oauth):
    report = service.report(WINDOW)

    oauth.access_token.assert_called_once_with('refresh-token')
    assert report['users'] == 120
    assert report['previousUsers'] == 100
    assert report['pageViews'] == 400
    assert report['bounceRate'] == pytest.approx(42.0)
    assert report['avgSessionDuration'] == pytest.approx(65.5)
    assert report['pageViewsList'][0] == {'page': '/', 'title': 'Home', 'views': 300, 'users': 90}

    assert report['dailyComparisonData'] == [
        {'date': 'Mar 01', 'currentPeriod': 40, 'previousPeriod': 20},
        {'date': 'Mar 02', 'currentPeriod': 30, 'previousPeriod': 0},
        {'date': 'Mar 03', 'currentPeriod': 50, 'previousPeriod': 25},
    ]
    assert report['totalVisitors'] == 120
    assert report['averageDaily'] == pytest.approx(40.0)
    assert report['peakVisitors'] == 50
    assert report['currentVisitors'] == 50
    assert report['percentageChange'] == pytest.approx(100.0)
    assert report['dateRange'] == {'start': '2024-03-01', 'end': '2024-03-03'}


def test_overview_requests_named_date_ranges(service, ga_client):
    service.report(WINDOW)

    overview_body = ga_client.run_report.call_args_list[0][0][1]
    assert [r['name'] for r in overview_body['dateRanges']] == ['currentPeriod', 'previousPeriod']
    assert overview_body['dateRanges'][1] == {
        'startDate': '2024-02-27', 'endDate': '2024-02-29', 'name': 'previousPeriod'
    }


def test_failed_daily_report_falls_back_to_overview_users(service, ga_client):
    def run_report(token, body):
        if 'dimensions' in body and body['dimensions'][0]['name'] == 'date':
            raise VendorError('quota exceeded', 429)
        return fake_run_report(token, body)
    ga_client.run_report.side_effect = run_report

    report = service.report(WINDOW)

    assert report['dailyComparisonData'] == []
    assert report['totalVisitors'] == 120
    assert report['averageDaily'] == pytest.approx(40.0)
    assert report['percentageChange'] == 0.0


def test_failed_pages_report_yields_empty_list(service, ga_client):
    def run_report(token, body):
        if 'dimensions' in body and body['dimensions'][0]['name'] == 'pagePath':
            raise VendorError('bad dimension', 400)
        return fake_run_report(token, body)
    ga_client.run_report.side_effect = run_report

    assert service.report(WINDOW)['pageViewsList'] == []


def test_missing_client_credentials(service, oauth):
    oauth.configured = False

    with pytest.raises(ConfigurationError) as exc_info:
        service.report(WINDOW)

    assert exc_info.value.status_code == 400
    assert 'GA_CLIENT_ID' in exc_info.value.message


def test_measurement_id_rejected(service, ga_client):
    ga_client.valid_property = False

    with pytest.raises(ConfigurationError) as exc_info:
        service.report(WINDOW)

    assert 'Invalid Property ID' in exc_info.value.message


def test_token_exchange_failure_is_401(service, oauth, ga_client):
    oauth.access_token.side_effect = VendorError('Failed to get access token: 400', 401)

    with pytest.raises(VendorError) as exc_info:
        service.report(WINDOW)

    assert exc_info.value.status_code == 401
    assert exc_info.value.message == WebsiteAnalyticsService.AUTH_FAILED
    ga_client.run_report.assert_not_called()


def test_overview_failure_is_500(service, ga_client):
    ga_client.run_report.side_effect = VendorError('Google Analytics API error: 403', 403)

    with pytest.raises(VendorError) as exc_info:
        service.report(WINDOW)

    assert exc_info.value.status_code == 500
    assert exc_info.value.message == WebsiteAnalyticsService.FETCH_FAILED


def test_cached_report_skips_vendor_calls(oauth, ga_client):
    cache = MagicMock()
    cache.get.return_value = {'users': 7}
    service = WebsiteAnalyticsService(oauth, ga_client, 'refresh-token', cache=cache)

    assert service.report(WINDOW) == {'users': 7}
    oauth.access_token.assert_not_called()

    service.report(WINDOW, force_refresh=True)
    oauth.access_token.assert_called_once()
    cache.set.assert_called_once()


class TestGoogleAnalyticsClient:

    def test_valid_property_requires_numeric_id(self):
        assert GoogleAnalyticsClient('123456789').valid_property
        assert not GoogleAnalyticsClient('G-ABC123XYZ').valid_property
        assert not GoogleAnalyticsClient('').valid_property

    def test_run_report_posts_with_bearer_token(self):
        session = MagicMock()
        session.post.return_value = make_response(200, {'rows': []})
        client = GoogleAnalyticsClient('42', session=session)

        assert client.run_report('tok', {'metrics': []}) == {'rows': []}

        url = session.post.call_args[0][0]
        assert url == 'https://analyticsdata.googleapis.com/v1beta/properties/42:runReport'
        assert session.post.call_args[1]['headers']['Authorization'] == 'Bearer tok'

    def test_run_report_error_carries_vendor_status(self):
        session = MagicMock()
        session.post.return_value = make_response(403, text='PERMISSION_DENIED')
        client = GoogleAnalyticsClient('42', session=session)

        with pytest.raises(VendorError) as exc_info:
            client.run_report('tok', {})

        assert exc_info.value.status_code == 403
        assert exc_info.value.body == 'PERMISSION_DENIED'
