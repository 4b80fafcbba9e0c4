"""Tests for FastAPI endpoints"""

import pytest
from fastapi.testclient import TestClient

from rxguard.web import app


@pytest.fixture
def client():
    """Create test client"""
    with TestClient(app) as c:
        yield c


class TestHealthEndpoint:
    """Tests for the health/root endpoint"""

    def test_health_returns_ok(self, client):
        response = client.get('/')
        assert response.status_code == 200
        data = response.json()
        assert data['status'] == 'ok'
        assert data['app_version']

    def test_health_includes_constants(self, client):
        data = client.get('/').json()
        assert data['constants']['STAR_HEIGHT_LIMIT'] == 1
        assert data['constants']['REPETITION_LIMIT'] == 1000
        assert data['constants']['UNBOUNDED_REPETITION'] == 1_000_000

    def test_health_includes_caches(self, client):
        client.get('/v1/check', params={'regex': 'abc'})
        data = client.get('/').json()
        assert set(data['caches']) == {'pattern', 'replacement', 'glob'}
        assert data['caches']['pattern']['size'] == 1


class TestMetricsEndpoint:
    """Tests for the Prometheus metrics endpoint"""

    def test_metrics_exposed(self, client):
        client.get('/v1/check', params={'regex': '(a+)+'})
        response = client.get('/metrics')
        assert response.status_code == 200
        assert 'rxguard_safety_checks_total' in response.text
        assert 'rxguard_cache_lookups_total' in response.text


class TestCheckEndpoint:
    """Tests for /v1/check"""

    def test_safe_pattern(self, client):
        response = client.get('/v1/check', params={'regex': '^[a-z]+$'})
        assert response.status_code == 200
        data = response.json()
        assert data['safe'] is True
        assert data['profile']['star_height'] == 1
        assert data['error_type'] is None

    def test_star_height_exceeded(self, client):
        data = client.get('/v1/check', params={'regex': '(a+)+'}).json()
        assert data['safe'] is False
        assert data['error_type'] == 'unsafe_pattern'
        assert data['reason'] == 'star_height_exceeded'
        assert data['value'] == 2
        assert data['limit'] == 1
        assert data['profile']['star_height'] == 2

    def test_custom_limits(self, client):
        params = {'regex': '(a+)+', 'star_height_limit': 2, 'repetition_limit': 1000}
        data = client.get('/v1/check', params=params).json()
        assert data['safe'] is True
        assert data['limits']['star_height_limit'] == 2

    def test_backreference(self, client):
        data = client.get('/v1/check', params={'regex': r'(a)\1'}).json()
        assert data['reason'] == 'backreference_present'
        data = client.get('/v1/check', params={'regex': r'(a)\1', 'allow_backreference': True}).json()
        assert data['safe'] is True

    def test_malformed_pattern(self, client):
        data = client.get('/v1/check', params={'regex': 'a[b'}).json()
        assert data['safe'] is False
        assert data['error_type'] == 'pattern_error'
        assert data['position'] == 1
        assert data['profile'] is None

    def test_missing_regex(self, client):
        assert client.get('/v1/check').status_code == 422

    def test_negative_limit(self, client):
        response = client.get('/v1/check', params={'regex': 'a', 'star_height_limit': -1})
        assert response.status_code == 422


class TestReplacementEndpoint:
    """Tests for /v1/replacement"""

    def test_valid(self, client):
        data = client.get('/v1/replacement', params={'regex': '(?<x>a)(b)', 'template': '$1-${x}'}).json()
        assert data['valid'] is True
        assert data['references'] == [1, 'x']

    def test_unknown_group_number(self, client):
        data = client.get('/v1/replacement', params={'regex': '(a)', 'template': '$2'}).json()
        assert data['valid'] is False
        assert data['error_type'] == 'template_error'
        assert data['reason'] == 'unknown_group_number'
        assert data['position'] == 1

    def test_invalid_pattern(self, client):
        data = client.get('/v1/replacement', params={'regex': '(a', 'template': '$1'}).json()
        assert data['valid'] is False
        assert data['error_type'] == 'pattern_error'


class TestGlobEndpoint:
    """Tests for /v1/glob"""

    def test_translation(self, client):
        response = client.get('/v1/glob', params={'glob': 'foo.*'})
        assert response.status_code == 200
        assert response.json()['regex'] == r'foo\..*'

    def test_invalid_glob(self, client):
        response = client.get('/v1/glob', params={'glob': '[abc'})
        assert response.status_code == 400
        assert 'unterminated' in response.json()['detail']


class TestMatchEndpoint:
    """Tests for /v1/match"""

    @pytest.mark.parametrize(
        'a,b,expected',
        [
            ('', '', True),
            ('anything', '*', True),
            ('foo.bar', 'foo.*', True),
            ('foo.bar', 'baz.*', False),
        ],
    )
    def test_match(self, client, a, b, expected):
        response = client.get('/v1/match', params={'a': a, 'b': b})
        assert response.status_code == 200
        assert response.json()['matches'] is expected
