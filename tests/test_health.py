from sqlalchemy import text


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert payload["service"] == "RMS-ORDERS"
    assert payload["trace_id"]
    assert response.headers["X-Trace-ID"] == payload["trace_id"]


def test_ready_echoes_caller_trace_id(client):
    response = client.get("/ready", headers={"X-Trace-ID": "trace-ready-1"})
    assert response.status_code == 200
    assert response.json() == {"status": "ready", "database": "sqlite", "trace_id": "trace-ready-1"}
    assert response.headers["X-Trace-ID"] == "trace-ready-1"


def test_ready_fails_without_schema(client, db_session):
    db_session.execute(text("DROP TABLE order_sequences"))
    db_session.commit()

    response = client.get("/ready")

    assert response.status_code == 503
    assert response.json()["code"] == "DB_UNAVAILABLE"
    assert response.json()["message"] == "Database unavailable"


def test_metrics_exposes_request_counters(client):
    client.get("/health")

    response = client.get("/rms/ops/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert 'http_requests_total{route="/health",method="GET",status="200"}' in response.text
