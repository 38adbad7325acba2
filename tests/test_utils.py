"""
Tests for utility modules: logging, validation, retry, http.

Run with: pytest tests/test_utils.py -v
"""

import json
import logging
from unittest.mock import MagicMock, Mock

import pytest
import requests

from evolvinghome.core.errors import UpstreamUnavailable
from evolvinghome.utils import (
    ConsoleFormatter,
    JsonLineFormatter,
    RetryConfig,
    ValidationError,
    get_logger,
    is_in_uk,
    retry_with_backoff,
    setup_logging,
    validate_coordinates,
    validate_efficiency,
    validate_positive,
    validate_postcode,
)
from evolvinghome.utils.http import build_session, request_json
from evolvinghome.utils.retry import calculate_delay


class TestLogging:
    """Tests for logging configuration."""

    def test_get_logger(self):
        logger = get_logger("test_module")
        assert logger.name == "test_module"

    def test_setup_installs_console_handler(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging("debug")
            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, ConsoleFormatter)
            assert logging.getLogger("urllib3").level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    def test_setup_with_log_file(self, tmp_path):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        log_file = tmp_path / "logs" / "evolvinghome.jsonl"
        try:
            setup_logging("warning", log_file)
            logging.getLogger("evolvinghome.test").info("Claimed home", extra={"home_id": "h-1"})
            for handler in root.handlers:
                handler.flush()
        finally:
            for handler in root.handlers:
                if handler not in saved_handlers:
                    handler.close()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

        entry = json.loads(log_file.read_text().strip())
        assert entry["message"] == "Claimed home"
        assert entry["home_id"] == "h-1"

    def test_console_formatter_appends_context(self):
        record = logging.LogRecord("evolvinghome", logging.INFO, __file__, 1, "Recalculated", None, None)
        record.home_id = "h-1"
        record.category = "heat_pump"

        line = ConsoleFormatter(use_colors=False).format(record)

        assert line.endswith("| Recalculated [home_id=h-1, category=heat_pump]")

    def test_json_line_formatter(self):
        record = logging.LogRecord("evolvinghome", logging.WARNING, __file__, 1, "Nominatim slow", None, None)
        record.postcode = "TV1 2AB"

        entry = json.loads(JsonLineFormatter().format(record))

        assert entry["level"] == "WARNING"
        assert entry["postcode"] == "TV1 2AB"
        assert entry["timestamp"].endswith("+00:00")


class TestPostcodeValidation:
    """UK postcode normalisation."""

    @pytest.mark.parametrize("raw,expected", [
        ("TV1 2AB", "TV1 2AB"),
        ("tv12ab", "TV1 2AB"),
        ("  sw1a   1aa ", "SW1A 1AA"),
        ("M1 1AE", "M1 1AE"),
        ("EC1A1BB", "EC1A 1BB"),
    ])
    def test_normalises(self, raw, expected):
        assert validate_postcode(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", None])
    def test_empty(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            validate_postcode(raw)
        assert exc_info.value.field == "postcode"

    @pytest.mark.parametrize("raw", ["12345", "SW1A", "ABC 123", "TV1 2A"])
    def test_malformed(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            validate_postcode(raw)
        assert exc_info.value.suggestions


class TestCoordinateValidation:
    """Latitude and longitude ranges."""

    def test_valid(self):
        assert validate_coordinates("51.5074", -0.1278) == (51.5074, -0.1278)

    @pytest.mark.parametrize("lat,lon,field", [
        (91, 0, "latitude"),
        (-90.5, 0, "latitude"),
        (0, 180.1, "longitude"),
        ("north", 0, "latitude"),
        (float("nan"), 0, "latitude"),
        (0, float("inf"), "longitude"),
    ])
    def test_invalid(self, lat, lon, field):
        with pytest.raises(ValidationError) as exc_info:
            validate_coordinates(lat, lon)
        assert exc_info.value.field == field

    def test_warns_outside_uk(self, caplog):
        with caplog.at_level(logging.WARNING):
            validate_coordinates(48.8566, 2.3522, warn_outside_uk=True)
        assert "outside the UK" in caplog.text

    def test_is_in_uk(self):
        assert is_in_uk(51.5074, -0.1278)
        assert not is_in_uk(40.4168, -3.7038)


class TestQuantityValidation:
    """Positive quantities and efficiency ratings."""

    def test_positive(self):
        assert validate_positive("12.5", "roof_area_m2") == 12.5

    @pytest.mark.parametrize("value", [0, -1, None, "lots", True, float("nan")])
    def test_positive_rejects(self, value):
        with pytest.raises(ValidationError):
            validate_positive(value, "roof_area_m2", "m²")

    @pytest.mark.parametrize("value", [0, 62, "75", 100])
    def test_efficiency(self, value):
        assert validate_efficiency(value) == float(value)

    def test_efficiency_missing_suggests_manual_entry(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_efficiency(None)
        assert exc_info.value.field == "baseline_efficiency"
        assert exc_info.value.suggestions

    @pytest.mark.parametrize("value", [-0.1, 100.1, "high"])
    def test_efficiency_out_of_range(self, value):
        with pytest.raises(ValidationError):
            validate_efficiency(value)


class TestRetry:
    """Caller-side retry with exponential backoff."""

    def test_delay_grows_exponentially(self):
        config = RetryConfig(base_delay=1.0, exponential_base=2.0, jitter=False)
        assert [calculate_delay(a, config) for a in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_delay_capped(self):
        config = RetryConfig(base_delay=1.0, max_delay=5.0, jitter=False)
        assert calculate_delay(10, config) == 5.0

    def test_jitter_bounded(self):
        config = RetryConfig(base_delay=2.0, jitter=True)
        for _ in range(20):
            assert 2.0 <= calculate_delay(0, config) <= 2.5

    def test_retries_upstream_unavailable(self):
        func = Mock(side_effect=[
            UpstreamUnavailable("down", service="nominatim"),
            UpstreamUnavailable("down", service="nominatim"),
            "ok",
        ])
        func.__name__ = "func"
        sleeps = []

        wrapped = retry_with_backoff(func, max_retries=3, sleep=sleeps.append)

        assert wrapped() == "ok"
        assert func.call_count == 3
        assert len(sleeps) == 2

    def test_gives_up_after_max_retries(self):
        func = Mock(side_effect=UpstreamUnavailable("down", service="overpass"))
        func.__name__ = "func"

        wrapped = retry_with_backoff(func, max_retries=2, sleep=lambda _: None)

        with pytest.raises(UpstreamUnavailable):
            wrapped()
        assert func.call_count == 3

    def test_validation_errors_not_retried(self):
        func = Mock(side_effect=ValidationError("bad postcode", field="postcode"))
        func.__name__ = "func"

        wrapped = retry_with_backoff(func, max_retries=3, sleep=lambda _: None)

        with pytest.raises(ValidationError):
            wrapped()
        assert func.call_count == 1

    def test_decorator_with_arguments(self):
        attempts = []

        @retry_with_backoff(max_retries=1, sleep=lambda _: None, on_retry=lambda exc, n: attempts.append(n))
        def flaky():
            if not attempts:
                raise UpstreamUnavailable("blip", service="pvgis")
            return 42

        assert flaky() == 42
        assert attempts == [0]


class TestRequestJson:
    """Upstream failures become UpstreamUnavailable."""

    def _session(self, **kwargs):
        session = MagicMock(spec=requests.Session)
        for key, value in kwargs.items():
            setattr(session.request, key, value)
        return session

    def test_returns_json(self):
        session = self._session()
        session.request.return_value.json.return_value = [{"lat": "51.5"}]

        result = request_json(session, "GET", "https://example.org", service="nominatim", timeout=5.0)

        assert result == [{"lat": "51.5"}]
        assert session.request.call_args.kwargs["timeout"] == 5.0

    @pytest.mark.parametrize("error", [
        requests.Timeout(),
        requests.ConnectionError("refused"),
    ])
    def test_transport_errors(self, error):
        session = self._session(side_effect=error)
        with pytest.raises(UpstreamUnavailable) as exc_info:
            request_json(session, "GET", "https://example.org", service="overpass", timeout=5.0)
        assert exc_info.value.service == "overpass"

    def test_http_error(self):
        session = self._session()
        response = Mock(status_code=429)
        session.request.return_value.raise_for_status.side_effect = requests.HTTPError(response=response)

        with pytest.raises(UpstreamUnavailable, match="429"):
            request_json(session, "POST", "https://example.org", service="overpass", timeout=5.0)

    def test_undecodable_body(self):
        session = self._session()
        session.request.return_value.json.side_effect = ValueError("Expecting value")

        with pytest.raises(UpstreamUnavailable, match="undecodable"):
            request_json(session, "GET", "https://example.org", service="pvgis", timeout=5.0)

    def test_build_session_sets_user_agent(self):
        assert build_session("evolvinghome-test/1.0").headers["User-Agent"] == "evolvinghome-test/1.0"
