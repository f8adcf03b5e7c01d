"""Tests for /api/cascade/config endpoints."""


class TestConfigCrud:

    def test_get_when_empty(self, client):
        resp = client.get('/api/cascade/config')
        assert resp.status_code == 200
        assert resp.get_json() == {'active': None, 'configs': []}

    def test_create(self, client):
        resp = client.post('/api/cascade/config', json={'queue': [1, 2], 'sla_hours_per_step': 6})
        assert resp.status_code == 201
        data = resp.get_json()
        assert data['active'] is True
        assert data['queue'] == [1, 2]

        listing = client.get('/api/cascade/config').get_json()
        assert listing['active']['id'] == data['id']

    def test_create_empty_queue_is_400(self, client):
        resp = client.post('/api/cascade/config', json={'queue': []})
        assert resp.status_code == 400

    def test_create_without_body_is_400(self, client):
        resp = client.post('/api/cascade/config')
        assert resp.status_code == 400

    def test_update(self, client):
        created = client.post('/api/cascade/config', json={'queue': [1, 2]}).get_json()
        resp = client.put(f"/api/cascade/config/{created['id']}", json={'distribution_method': 'round-robin'})
        assert resp.status_code == 200
        assert resp.get_json()['distribution_method'] == 'round-robin'

    def test_update_unknown_is_404(self, client):
        resp = client.put('/api/cascade/config/999', json={'active': True})
        assert resp.status_code == 404

    def test_activate_and_deactivate(self, client):
        first = client.post('/api/cascade/config', json={'queue': [1]}).get_json()
        client.post('/api/cascade/config', json={'queue': [2]})

        resp = client.post(f"/api/cascade/config/{first['id']}/activate")
        assert resp.get_json()['active'] is True
        assert client.get('/api/cascade/config').get_json()['active']['id'] == first['id']

        resp = client.post(f"/api/cascade/config/{first['id']}/deactivate")
        assert resp.get_json()['active'] is False
        assert client.get('/api/cascade/config').get_json()['active'] is None
