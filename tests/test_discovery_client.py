import types

import pytest
import requests

from gridscout.core.contracts import GeoBounds, GridCell, LatLng
from gridscout.core.errors import DiscoveryServiceError, DiscoveryTimeoutError
from gridscout.providers.discovery import (
    DiscoveryClient,
    parse_capacity,
    parse_candidate,
    parse_timestamp,
)
from gridscout.providers.http import make_session

URL = "https://functions.example.test/satellite-analysis"


class _Resp:
    def __init__(self, status=200, text="", json_obj=None):
        self.status_code = status
        self.text = text
        self._json = json_obj

    def json(self):
        if isinstance(self._json, Exception):
            raise self._json
        return self._json


def _cell():
    b = GeoBounds(north=40.0, south=39.0, east=-96.0, west=-97.0)
    return GridCell(id=7, bounds=b, center=b.center)


def _client(fake_post, calls=None):
    sess = make_session()

    def _post(self, url, json=None, timeout=None):
        if calls is not None:
            calls.append({"url": url, "json": json, "timeout": timeout})
        return fake_post()

    sess.post = types.MethodType(_post, sess)
    return DiscoveryClient(url=URL, session=sess, rpm=6000, timeout=12)


DISCOVERIES = {
    "success": True,
    "discoveries": [
        {
            "id": "sat_real_1_42",
            "name": "Detected Substation 39.5000, -96.5000",
            "coordinates": {"lat": 39.5, "lng": -96.5},
            "confidence_score": 87,
            "voltage_indicators": ["345kV connection", "Wind farm cluster"],
            "capacity_estimate": "200-400 MVA",
            "infrastructure_features": ["Grid connections", "Infrastructure visible"],
            "satellite_timestamp": "2025-03-01T10:00:00.000Z",
            "analysis_method": "Google Maps + AI Vision Analysis",
            "verification_status": "pending",
        },
        {
            "name": "Flat coords",
            "latitude": 39.2,
            "longitude": -96.8,
            "confidence_score": "71",
            "capacity_estimate": {"min": 50, "max": 120, "confidence": 64},
        },
        {"name": "No coordinates at all", "confidence_score": 99},
    ],
    "analysis_summary": {"total_discovered": 3},
}


def test_discover_parses_candidates():
    calls = []
    client = _client(
        lambda: _Resp(200, "{...}", DISCOVERIES), calls=calls
    )
    out = client.discover(_cell())

    assert len(out) == 2  # record without coordinates skipped
    first, second = out
    assert first.name.startswith("Detected Substation")
    assert first.coordinates == LatLng(39.5, -96.5)
    assert first.confidence_score == 87.0
    assert first.voltage_indicators == ["345kV connection", "Wind farm cluster"]
    assert first.infrastructure_features == frozenset(
        {"Grid connections", "Infrastructure visible"}
    )
    assert first.external_id == "sat_real_1_42"
    assert first.satellite_timestamp is not None
    assert first.satellite_timestamp.year == 2025
    # "200-400 MVA" back to MW with the detection confidence
    assert first.capacity_estimate.min_mw == pytest.approx(160.0)
    assert first.capacity_estimate.max_mw == pytest.approx(320.0)
    assert first.capacity_estimate.confidence == 87.0

    assert second.coordinates == LatLng(39.2, -96.8)
    assert second.confidence_score == 71.0
    assert second.capacity_estimate.max_mw == 120.0
    assert second.capacity_estimate.confidence == 64.0
    assert second.satellite_timestamp is None

    # request shape
    sent = calls[0]
    assert sent["url"] == URL
    assert sent["timeout"] == 12
    body = sent["json"]
    assert body["action"] == "discover_substations"
    assert body["coordinates"]["lat"] == pytest.approx(39.5)
    assert body["coordinates"]["lng"] == pytest.approx(-96.5)
    assert body["coordinates"]["radius"] > 0
    assert body["bounds"] == {
        "north": 40.0,
        "south": 39.0,
        "east": -96.0,
        "west": -97.0,
    }


def test_discover_falls_back_to_substations_key():
    payload = {
        "substations": [
            {"name": "A", "latitude": 39.1, "longitude": -96.1, "id": 5}
        ]
    }
    out = _client(lambda: _Resp(200, "ok", payload)).discover(_cell())
    assert [c.name for c in out] == ["A"]
    assert out[0].external_id == "5"


def test_discover_empty_list():
    out = _client(
        lambda: _Resp(200, "ok", {"success": True, "discoveries": []})
    ).discover(_cell())
    assert out == []


def test_timeout_translated():
    def boom():
        raise requests.ReadTimeout("read timed out")

    with pytest.raises(DiscoveryTimeoutError):
        _client(boom).discover(_cell())


def test_transport_error_translated():
    def boom():
        raise requests.ConnectionError("refused")

    with pytest.raises(DiscoveryServiceError) as ei:
        _client(boom).discover(_cell())
    assert ei.value.status == -1
    assert "ConnectionError" in ei.value.message


def test_http_error_status_and_message():
    client = _client(
        lambda: _Resp(500, '{"error":"Invalid action"}', {"error": "Invalid action"})
    )
    with pytest.raises(DiscoveryServiceError) as ei:
        client.discover(_cell())
    assert ei.value.status == 500
    assert ei.value.message == "Invalid action"


def test_http_error_without_json_uses_snippet():
    client = _client(
        lambda: _Resp(503, "Service Unavailable", ValueError("no json"))
    )
    with pytest.raises(DiscoveryServiceError) as ei:
        client.discover(_cell())
    assert ei.value.status == 503
    assert "Service Unavailable" in ei.value.message


def test_invalid_json_on_200():
    client = _client(lambda: _Resp(200, "not-json", ValueError("boom")))
    with pytest.raises(DiscoveryServiceError) as ei:
        client.discover(_cell())
    assert "not-json" in ei.value.message


def test_success_false_is_an_error():
    client = _client(
        lambda: _Resp(200, "x", {"success": False, "message": "quota exceeded"})
    )
    with pytest.raises(DiscoveryServiceError) as ei:
        client.discover(_cell())
    assert ei.value.message == "quota exceeded"


def test_debug_output(capsys):
    sess = make_session()
    sess.post = types.MethodType(
        lambda self, url, json=None, timeout=None: _Resp(
            200, "ok", {"discoveries": []}
        ),
        sess,
    )
    DiscoveryClient(url=URL, session=sess, rpm=6000, debug=True).discover(
        _cell()
    )
    err = capsys.readouterr().err
    assert "[discovery POST]" in err
    assert "status=200" in err


@pytest.mark.parametrize("records", [5, "none", {"name": "x"}])
def test_non_list_discoveries_is_service_error(records):
    client = _client(lambda: _Resp(200, "x", {"success": True, "discoveries": records}))
    with pytest.raises(DiscoveryServiceError) as ei:
        client.discover(_cell())
    assert ei.value.status == 200
    assert "malformed body" in ei.value.message


def test_scalar_label_fields_are_ignored():
    payload = {
        "discoveries": [
            {
                "name": "A",
                "latitude": 39.1,
                "longitude": -96.1,
                "voltage_indicators": 5,
                "infrastructure_features": 3,
            },
            {
                "name": "B",
                "latitude": 39.2,
                "longitude": -96.2,
                "voltage_indicators": ("138kV", None),
                "infrastructure_features": {"k": "v"},
            },
        ]
    }
    out = _client(lambda: _Resp(200, "ok", payload)).discover(_cell())
    assert [c.name for c in out] == ["A", "B"]
    assert out[0].voltage_indicators == []
    assert out[0].infrastructure_features == frozenset()
    assert out[1].voltage_indicators == ["138kV"]
    assert out[1].infrastructure_features == frozenset()


def test_confidence_is_clamped():
    payload = {
        "discoveries": [
            {
                "name": "hot",
                "latitude": 39.1,
                "longitude": -96.1,
                "confidence_score": 250,
                "capacity_estimate": {"min": 1, "max": 2, "confidence": -4},
            },
            {
                "name": "text",
                "latitude": 39.2,
                "longitude": -96.2,
                "confidence_score": 180,
                "capacity_estimate": "100-200 MW",
            },
        ]
    }
    hot, text = _client(lambda: _Resp(200, "ok", payload)).discover(_cell())
    assert hot.confidence_score == 100.0
    assert hot.capacity_estimate.confidence == 0.0
    assert text.confidence_score == 100.0
    assert text.capacity_estimate.confidence == 100.0


class TestParsers:
    def test_capacity_dict_without_bounds(self):
        assert parse_capacity({"min": 10}) is None

    def test_capacity_text_mw(self):
        est = parse_capacity("300-100 MW", fallback_confidence=55)
        assert (est.min_mw, est.max_mw, est.confidence) == (100.0, 300.0, 55)

    def test_capacity_garbage(self):
        assert parse_capacity("lots") is None
        assert parse_capacity(42) is None

    def test_timestamp(self):
        assert parse_timestamp("2025-08-24T12:00:00+00:00").hour == 12
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp(None) is None

    def test_out_of_range_coordinates_rejected(self):
        assert parse_candidate({"name": "x", "latitude": 95, "longitude": 0}) is None
