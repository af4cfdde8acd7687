import threading

import httpx
import pytest

from conftest import make_point
from routeseq.services.routing.errors import OracleError
from routeseq.services.routing.osrm_client import OSRMClient


def _points(count):
    # Points on a meridian one degree apart; the fake server charges 1 km per degree.
    return [make_point(f"P{i}", lat=float(i), lon=0.0) for i in range(count)]


def _table_handler(calls):
    lock = threading.Lock()

    def handler(request: httpx.Request) -> httpx.Response:
        with lock:
            calls.append(request)
        coordinates = request.url.path.rsplit("/", 1)[-1].split(";")
        lats = [float(item.split(",")[1]) for item in coordinates]
        sources = request.url.params.get("sources")
        destinations = request.url.params.get("destinations")
        src = [int(i) for i in sources.split(";")] if sources else list(range(len(lats)))
        dst = [int(i) for i in destinations.split(";")] if destinations else list(range(len(lats)))
        distances = [[abs(lats[s] - lats[d]) * 1000 for d in dst] for s in src]
        durations = [[abs(lats[s] - lats[d]) * 60 for d in dst] for s in src]
        return httpx.Response(200, json={"code": "Ok", "distances": distances, "durations": durations})

    return handler


def _client(monkeypatch, handler, **kwargs) -> OSRMClient:
    client = OSRMClient(base_url="http://osrm.test/", backoff_seconds=0, **kwargs)
    monkeypatch.setattr(client, "_get_client", lambda: httpx.Client(transport=httpx.MockTransport(handler)))
    return client


def test_matrix_single_request(monkeypatch):
    calls = []
    client = _client(monkeypatch, _table_handler(calls))

    matrix = client.matrix(_points(3))

    assert len(calls) == 1
    assert calls[0].url.path == "/table/v1/driving/0.0,0.0;0.0,1.0;0.0,2.0"
    assert calls[0].url.params["annotations"] == "duration,distance"
    assert matrix.size == 3
    assert matrix.leg(0, 2).distance_m == 2000
    assert matrix.leg(2, 1).duration_s == 60


def test_matrix_for_one_point_skips_the_server(monkeypatch):
    calls = []
    client = _client(monkeypatch, _table_handler(calls))

    matrix = client.matrix(_points(1))

    assert calls == []
    assert matrix.leg(0, 0).distance_m == 0


def test_large_matrix_is_chunked(monkeypatch):
    calls = []
    client = _client(monkeypatch, _table_handler(calls), max_coordinates_per_request=4)
    points = _points(5)

    matrix = client.matrix(points)

    # Chunks of two coordinates: three ranges, so nine source/destination requests.
    assert len(calls) == 9
    assert matrix.size == 5
    for i in range(5):
        for j in range(5):
            assert matrix.leg(i, j).distance_m == abs(i - j) * 1000


def test_null_cells_become_missing_legs(monkeypatch):
    def handler(request):
        return httpx.Response(
            200,
            json={"code": "Ok", "distances": [[0, None], [None, 0]], "durations": [[0, None], [None, 0]]},
        )

    matrix = _client(monkeypatch, handler).matrix(_points(2))

    assert matrix.leg(0, 1) is None
    assert matrix.distance_costs()[0][1] == float("inf")


def test_retries_server_errors(monkeypatch, caplog):
    calls = []
    table = _table_handler([])

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            return httpx.Response(503)
        return table(request)

    client = _client(monkeypatch, handler, max_retries=2)
    with caplog.at_level("WARNING"):
        matrix = client.matrix(_points(2))

    assert len(calls) == 2
    assert matrix.leg(0, 1).distance_m == 1000
    assert "retrying" in caplog.text


def test_gives_up_after_max_retries(monkeypatch):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(502)

    client = _client(monkeypatch, handler, max_retries=1)
    with pytest.raises(OracleError):
        client.matrix(_points(2))
    assert len(calls) == 2


def test_error_code_is_an_oracle_error(monkeypatch):
    def handler(request):
        return httpx.Response(400, json={"code": "InvalidQuery", "message": "Query string malformed"})

    with pytest.raises(OracleError, match="Query string malformed"):
        _client(monkeypatch, handler).matrix(_points(2))


def test_unreadable_body_is_an_oracle_error(monkeypatch):
    def handler(request):
        return httpx.Response(200, text="<html>gateway</html>")

    with pytest.raises(OracleError):
        _client(monkeypatch, handler).matrix(_points(2))


def test_requires_base_url(monkeypatch):
    from routeseq.services.routing import osrm_client

    monkeypatch.setattr(osrm_client.settings, "osrm_base_url", None)
    with pytest.raises(ValueError):
        OSRMClient()
