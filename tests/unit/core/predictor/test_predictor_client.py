"""Tests for PredictorClient (prediction service REST wrapper)."""

from __future__ import annotations

import pytest
import requests

from vitalwatch.core.predictor.client import (
    PredictorClient,
    PredictorConnectionError,
    PredictorHTTPError,
    PredictorResponseError,
    PredictorTimeoutError,
)


class TestPredictorClient:
    def test_requires_base_url(self):
        with pytest.raises(ValueError):
            PredictorClient("")

    def test_strips_trailing_slash(self, fake_session):
        client = PredictorClient("http://predictor.test/", session=fake_session)
        assert client.base_url == "http://predictor.test"

    def test_fetch_returns_records(self, fake_session):
        client = PredictorClient("http://predictor.test", timeout_s=5, session=fake_session)
        records = client.fetch_dashboard_data(limit=10)
        assert [r["patient_id"] for r in records] == ["PATIENT_001", "PATIENT_002"]
        url, params, timeout = fake_session.calls[-1]
        assert url == "http://predictor.test/dashboard/data"
        assert params == {"limit": 10}
        assert timeout == 5

    def test_optional_filters_sent(self, fake_session):
        client = PredictorClient("http://predictor.test", session=fake_session)
        client.fetch_dashboard_data(limit=5, patient_id="PATIENT_002", start_time="2025-03-01T00:00:00Z")
        _, params, _ = fake_session.calls[-1]
        assert params == {
            "limit": 5,
            "patient_id": "PATIENT_002",
            "start_time": "2025-03-01T00:00:00Z",
        }

    def test_health_ok(self, fake_session):
        assert PredictorClient("http://predictor.test", session=fake_session).check_health() is True

    def test_health_false_on_error_status(self, session_factory, response_factory):
        session = session_factory({"/health": response_factory(500, {})})
        assert PredictorClient("http://predictor.test", session=session).check_health() is False

    def test_health_false_when_unreachable(self, session_factory):
        session = session_factory({"/health": requests.exceptions.ConnectionError("refused")})
        assert PredictorClient("http://predictor.test", session=session).check_health() is False

    def test_timeout_raises(self, session_factory):
        session = session_factory({"/dashboard/data": requests.exceptions.Timeout("slow")})
        with pytest.raises(PredictorTimeoutError):
            PredictorClient("http://predictor.test", session=session).fetch_dashboard_data()

    def test_connection_error_raises(self, session_factory):
        session = session_factory({"/dashboard/data": requests.exceptions.ConnectionError("refused")})
        with pytest.raises(PredictorConnectionError):
            PredictorClient("http://predictor.test", session=session).fetch_dashboard_data()

    def test_http_error_carries_status(self, session_factory, response_factory):
        session = session_factory({"/dashboard/data": response_factory(404, {"detail": "nope"})})
        with pytest.raises(PredictorHTTPError) as exc_info:
            PredictorClient("http://predictor.test", session=session).fetch_dashboard_data()
        assert exc_info.value.status_code == 404

    def test_invalid_json_raises(self, session_factory, response_factory):
        session = session_factory({"/dashboard/data": response_factory(200, bad_json=True)})
        with pytest.raises(PredictorResponseError, match="Invalid JSON"):
            PredictorClient("http://predictor.test", session=session).fetch_dashboard_data()

    @pytest.mark.parametrize("payload", [[], {"data": "nope"}, {"status": "ok"}])
    def test_unexpected_envelope_raises(self, session_factory, response_factory, payload):
        session = session_factory({"/dashboard/data": response_factory(200, payload)})
        with pytest.raises(PredictorResponseError):
            PredictorClient("http://predictor.test", session=session).fetch_dashboard_data()
