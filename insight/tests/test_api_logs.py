"""
HTTP edge tests for /logs: status codes, error bodies, query-parameter defaults.
"""
from __future__ import annotations

from unittest.mock import patch

from insight.errors import StoreError


def _post(client, **body):
    payload = {"service_name": "api", "message": "hello"}
    payload.update(body)
    return client.post("/logs", json=payload)


def test_health_and_version(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json().get("status") == "ok"

    v = client.get("/version")
    assert v.status_code == 200
    assert v.json().get("app") == "insight-api"


def test_create_returns_201_with_assigned_id(client):
    r = _post(client, log_level="INFO", timestamp="2024-05-01T12:00:00Z", trace_id="", metadata=None)
    assert r.status_code == 201
    body = r.json()
    assert isinstance(body["id"], int)
    assert body["service_name"] == "api"
    assert body["log_level"] == "INFO"
    assert body["trace_id"] is None
    assert body["span_id"] is None
    assert body["metadata"] == {}
    assert body["timestamp"].startswith("2024-05-01T12:00:00")


def test_create_ignores_client_id(client):
    first = _post(client).json()
    second = _post(client, id=first["id"]).json()
    assert second["id"] != first["id"]


def test_create_validation_errors(client):
    r = _post(client, service_name="")
    assert r.status_code == 400
    assert r.text == "service name is required"
    assert r.headers["content-type"].startswith("text/plain")

    r = _post(client, message="")
    assert r.status_code == 400
    assert r.text == "message is required"

    r = _post(client, log_level="TRACE")
    assert r.status_code == 400
    assert r.text == "invalid log level: TRACE"

    assert _post(client, log_level="WARN").status_code == 201


def test_create_bad_body(client):
    r = client.post("/logs", content=b"{not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 400
    assert r.text == "Invalid request body"

    r = client.post("/logs", json={"service_name": ["x"], "message": "m"})
    assert r.status_code == 400
    assert r.text == "Invalid request body"


def test_create_store_failure(client):
    with patch("insight.routes.logs.save_log", side_effect=StoreError("disk full")):
        r = _post(client)
    assert r.status_code == 500
    assert r.text == "Failed to save log"


def test_other_methods_not_allowed(client):
    assert client.put("/logs", json={}).status_code == 405
    assert client.delete("/logs").status_code == 405


def test_list_empty(client):
    r = client.get("/logs")
    assert r.status_code == 200
    assert r.json() == []


def test_list_round_trip(client):
    created = _post(
        client,
        service_name="billing",
        log_level="ERROR",
        message="Timeout occurred",
        timestamp="2024-05-01T12:00:00Z",
        trace_id="t-9",
        metadata={"attempt": 3},
    ).json()
    _post(client, service_name="billing", message="fine", timestamp="2024-05-02T12:00:00Z")

    r = client.get("/logs", params={
        "service": "billing",
        "message": "TIMEOUT",
        "start_time": "2024-05-01T00:00:00Z",
        "end_time": "2024-05-01T23:59:59Z",
    })
    assert r.status_code == 200
    assert r.json() == [created]


def test_list_level_filter_and_paging(client):
    for i in range(3):
        _post(client, message=f"m{i}", log_level="INFO", timestamp=f"2024-05-01T12:0{i}:00Z")
    _post(client, message="warned", log_level="WARN", timestamp="2024-05-01T13:00:00Z")

    assert [x["message"] for x in client.get("/logs", params={"level": "INFO"}).json()] == ["m2", "m1", "m0"]
    page = client.get("/logs", params={"level": "INFO", "limit": "1", "offset": "1"}).json()
    assert [x["message"] for x in page] == ["m1"]


def test_list_query_defaults(client):
    cases = [
        ({}, 100, 0),
        ({"limit": "abc", "offset": "xyz"}, 100, 0),
        ({"limit": "0", "offset": "5"}, 100, 5),
        ({"limit": "-3", "offset": "-1"}, 100, 0),
        ({"limit": "25", "offset": "50"}, 25, 50),
        ({"limit": "99999999999999999999", "offset": "99999999999999999999"}, 100, 0),
        ({"limit": "9223372036854775808", "offset": "-9223372036854775809"}, 100, 0),
        ({"limit": "9223372036854775807"}, 9223372036854775807, 0),
    ]
    for params, limit, offset in cases:
        with patch("insight.routes.logs.fetch_logs", return_value=[]) as fetch:
            assert client.get("/logs", params=params).status_code == 200
        criteria = fetch.call_args.args[0]
        assert (criteria.limit, criteria.offset) == (limit, offset)


def test_list_bad_times_are_ignored(client):
    with patch("insight.routes.logs.fetch_logs", return_value=[]) as fetch:
        client.get("/logs", params={"start_time": "yesterday", "end_time": "2024-01-01"})
    criteria = fetch.call_args.args[0]
    assert criteria.start_time is None
    assert criteria.end_time is None


def test_list_store_failure(client):
    with patch("insight.routes.logs.fetch_logs", side_effect=StoreError("locked")):
        r = client.get("/logs")
    assert r.status_code == 500
    assert r.text == "Failed to fetch logs"


def test_huge_limit_and_offset_fall_back_to_defaults(client):
    _post(client, timestamp="2024-05-01T12:00:00Z")
    r = client.get("/logs", params={"limit": "99999999999999999999", "offset": "99999999999999999999"})
    assert r.status_code == 200
    assert len(r.json()) == 1


def test_year_before_1000_round_trips(client):
    created = _post(client, service_name="old", timestamp="0999-06-01T00:00:00Z")
    assert created.status_code == 201
    assert created.json()["timestamp"].startswith("0999-06-01T00:00:00")

    _post(client, service_name="old", message="newer", timestamp="2024-01-01T00:00:00Z")
    found = client.get("/logs", params={"service": "old"}).json()
    assert [x["message"] for x in found] == ["newer", "hello"]
    assert found[1] == created.json()

    window = client.get("/logs", params={
        "service": "old",
        "start_time": "0999-01-01T00:00:00Z",
        "end_time": "1000-01-01T00:00:00Z",
    }).json()
    assert window == [created.json()]


def test_timestamp_out_of_utc_range_is_bad_body(client):
    r = _post(client, timestamp="0001-01-01T00:30:00+01:00")
    assert r.status_code == 400
    assert r.text == "Invalid request body"


def test_bound_out_of_utc_range_is_ignored(client):
    _post(client, timestamp="2024-05-01T12:00:00Z")
    r = client.get("/logs", params={"start_time": "0001-01-01T00:30:00+01:00"})
    assert r.status_code == 200
    assert len(r.json()) == 1
