"""Tests for the health check blueprint."""


class TestHealth:

    def test_ready(self, client):
        res = client.get("/api/health/ready")
        assert res.status_code == 200
        assert res.get_json() == {"status": "ok"}

    def test_live_probes_database(self, client):
        res = client.get("/api/health/live")
        assert res.status_code == 200
        body = res.get_json()
        assert body["status"] == "healthy"
        assert body["checks"]["database"]["status"] == "ok"
        assert body["checks"]["app"]["testing"] is True
