def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_config_diag_has_no_secrets(client):
    body = client.get("/api/diag/config").json()
    assert body["database_backend"] == "sqlite"
    assert body["push_provider"] == "mock"
    assert "GCM_API_KEY" not in body and "has_gcm_key" in body


def test_realtime_diag_lists_namespaces(client):
    body = client.get("/api/diag/realtime").json()
    assert set(body) == {"/users", "/users/application", "/tickets", "/gamify"}


def test_metrics_exposes_grant_counter(client, make_user):
    _, auth = make_user()
    client.post("/gamify/points", json={"points": 1, "src": "a", "reason": "r", "pid": "p"}, auth=auth)
    text = client.get("/metrics/").text
    assert "point_grants_total" in text
