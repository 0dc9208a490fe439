"""Tests for /health and /api/pipeline."""


class TestHealth:

    def test_health_check(self, client):
        resp = client.get('/health')
        assert resp.status_code == 200
        assert resp.get_json() == {'status': 'healthy'}


class TestPipelineInfo:

    def test_requires_login(self, client):
        assert client.get('/api/pipeline').status_code == 401

    def test_describes_stages_and_columns(self, login, client_user):
        resp = login(client_user).get('/api/pipeline')
        assert resp.status_code == 200
        data = resp.get_json()
        assert [s['stage'] for s in data['stages']] == ['parsing', 'computing', 'storing']
        assert all(s['description'] for s in data['stages'])
        assert data['maxUploadBytes'] == 5 * 1024 * 1024
        assert data['requiredColumns'] == ['Impressions', 'Clicks', 'Conversions', 'Cost']
        assert data['optionalColumns'] == ['Revenue']

    def test_unknown_route_is_json_404(self, login, client_user):
        resp = login(client_user).get('/api/nowhere')
        assert resp.status_code == 404
        assert resp.get_json()['code'] == 'not_found'
