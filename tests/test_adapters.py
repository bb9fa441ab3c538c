"""Unit tests for provider adapters."""

import json
import threading
import time
from unittest.mock import patch

import pytest
import requests
from urllib3.exceptions import ReadTimeoutError

from cepfinder.adapters import (
    AdapterBodyReadError,
    AdapterCancelledError,
    AdapterConfigurationError,
    AdapterDecodeError,
    AdapterError,
    AdapterHTTPError,
    AdapterNotFoundError,
    AdapterTimeoutError,
    AdapterTransportError,
    BrasilAPIAdapter,
    ViaCEPAdapter,
    build_adapters,
    get_adapter,
)
from cepfinder.adapters.base import BaseAdapter
from cepfinder.config.models import AppConfig, HttpConfig, ProviderConfig
from cepfinder.domain.models import (
    CanonicalAddress,
    FailureReason,
    ProviderFailure,
    ProviderSuccess,
)
from cepfinder.race import AllProvidersFailed, run_race
from tests.helpers.fake_responses import make_response
from tests.helpers.slow_server import SlowBodyServer


# ============================================================================
# Base Adapter Tests
# ============================================================================


class TestBaseAdapter:
    """Tests for BaseAdapter shared behavior."""

    def test_cannot_instantiate_abstract_class(self):
        """Test that BaseAdapter cannot be instantiated directly."""
        with pytest.raises(TypeError, match="Can't instantiate abstract class"):
            BaseAdapter(timeout=1)

    @pytest.mark.parametrize("timeout", [0, 0.001, 301])
    def test_rejects_out_of_range_timeout(self, timeout):
        with pytest.raises(AdapterConfigurationError, match="Timeout must be between"):
            ViaCEPAdapter(timeout=timeout)

    def test_rejects_blank_user_agent(self):
        with pytest.raises(AdapterConfigurationError, match="user_agent cannot be empty"):
            ViaCEPAdapter(user_agent="   ")

    def test_session_sends_user_agent(self):
        adapter = BrasilAPIAdapter(user_agent="  cepfinder-tests/1.0 ")

        assert adapter.user_agent == "cepfinder-tests/1.0"
        assert adapter._session.headers["User-Agent"] == "cepfinder-tests/1.0"

    def test_request_uses_timeout_and_streaming(self, brasilapi_body):
        adapter = BrasilAPIAdapter(timeout=0.5)

        with patch.object(adapter._session, "get", return_value=make_response(brasilapi_body)) as mock_get:
            adapter.lookup("01001000")

        mock_get.assert_called_once_with(
            "https://brasilapi.com.br/api/cep/v1/01001000", timeout=0.5, stream=True
        )

    def test_response_is_closed(self, brasilapi_body):
        adapter = BrasilAPIAdapter()
        response = make_response(brasilapi_body)

        with patch.object(adapter._session, "get", return_value=response):
            adapter.lookup("01001000")

        response.close.assert_called_once()

    def test_response_is_closed_on_http_error(self):
        adapter = BrasilAPIAdapter()
        response = make_response(b"{}", status_code=404, reason="Not Found")

        with patch.object(adapter._session, "get", return_value=response):
            adapter.lookup("99999999")

        response.close.assert_called_once()

    def test_postal_code_is_passed_through_unvalidated(self):
        adapter = ViaCEPAdapter()

        assert adapter.build_url("0100-1000x") == "https://viacep.com.br/ws/0100-1000x/json/"


# ============================================================================
# Failure Classification Tests
# ============================================================================


class TestFailureClassification:
    """Each upstream problem maps to its own failure reason."""

    def test_connection_error_is_transport_failure(self):
        adapter = BrasilAPIAdapter()
        error = requests.exceptions.ConnectionError("Connection refused")

        with patch.object(adapter._session, "get", side_effect=error):
            outcome = adapter.lookup("01001000")

        assert isinstance(outcome, ProviderFailure)
        assert outcome.provider == "BrasilAPI"
        assert outcome.reason == FailureReason.TRANSPORT
        assert "Connection refused" in outcome.message

    def test_timeout_is_timeout_failure(self):
        adapter = ViaCEPAdapter(timeout=0.25)

        with patch.object(adapter._session, "get", side_effect=requests.exceptions.ReadTimeout()):
            outcome = adapter.lookup("01001000")

        assert isinstance(outcome, ProviderFailure)
        assert outcome.reason == FailureReason.TIMEOUT
        assert "timed out after 0.25 seconds" in outcome.message

    def test_http_status_failure(self):
        adapter = ViaCEPAdapter()
        response = make_response(b"<html>Bad Request</html>", status_code=400, reason="Bad Request")

        with patch.object(adapter._session, "get", return_value=response):
            outcome = adapter.lookup("123")

        assert isinstance(outcome, ProviderFailure)
        assert outcome.reason == FailureReason.HTTP_STATUS
        assert "HTTP 400" in outcome.message
        response.iter_content.assert_not_called()

    def test_status_check_disabled_decodes_error_page(self):
        """Without the status check an HTML error page surfaces as a decode failure."""
        adapter = ViaCEPAdapter(check_status=False)
        response = make_response(b"<html>Bad Request</html>", status_code=400, reason="Bad Request")

        with patch.object(adapter._session, "get", return_value=response):
            outcome = adapter.lookup("123")

        assert outcome.reason == FailureReason.DECODE

    def test_status_check_disabled_accepts_valid_body(self, brasilapi_body):
        adapter = BrasilAPIAdapter(check_status=False)

        with patch.object(adapter._session, "get", return_value=make_response(brasilapi_body, status_code=203)):
            outcome = adapter.lookup("01001000")

        assert isinstance(outcome, ProviderSuccess)

    def test_body_read_failure(self):
        adapter = BrasilAPIAdapter()
        response = make_response(read_error=requests.exceptions.ChunkedEncodingError("broken"))

        with patch.object(adapter._session, "get", return_value=response):
            outcome = adapter.lookup("01001000")

        assert outcome.reason == FailureReason.BODY_READ
        assert "broken" in outcome.message

    @pytest.mark.parametrize("body", [b"", b"not json", b'{"cep": "0100', b"\xff\xfe"])
    def test_malformed_json_is_decode_failure(self, body):
        adapter = BrasilAPIAdapter()

        with patch.object(adapter._session, "get", return_value=make_response(body)):
            outcome = adapter.lookup("01001000")

        assert isinstance(outcome, ProviderFailure)
        assert outcome.reason == FailureReason.DECODE

    def test_non_object_json_is_decode_failure(self):
        adapter = ViaCEPAdapter()

        with patch.object(adapter._session, "get", return_value=make_response(b"[1, 2, 3]")):
            outcome = adapter.lookup("01001000")

        assert outcome.reason == FailureReason.DECODE
        assert "Expected JSON object" in outcome.message

    def test_schema_mismatch_is_decode_failure(self):
        adapter = BrasilAPIAdapter()
        body = json.dumps({"cep": "01001000", "city": "São Paulo"}).encode()

        with patch.object(adapter._session, "get", return_value=make_response(body)):
            outcome = adapter.lookup("01001000")

        assert outcome.reason == FailureReason.DECODE
        assert "state" in outcome.message

    def test_empty_required_field_is_decode_failure(self):
        adapter = ViaCEPAdapter()
        body = json.dumps(
            {"cep": "01001-000", "logradouro": "", "bairro": "", "localidade": "", "uf": "SP"}
        ).encode()

        with patch.object(adapter._session, "get", return_value=make_response(body)):
            outcome = adapter.lookup("01001000")

        assert outcome.reason == FailureReason.DECODE

    def test_adapter_never_raises_adapter_errors(self):
        adapter = ViaCEPAdapter()

        with patch.object(adapter, "_fetch_json", side_effect=AdapterDecodeError("nope")):
            outcome = adapter.lookup("01001000")

        assert outcome == ProviderFailure(
            provider="ViaCEP", reason=FailureReason.DECODE, message="nope"
        )


def local_viacep(server, timeout):
    """ViaCEP adapter pointed at a local server, ignoring any proxy settings."""
    adapter = ViaCEPAdapter(timeout=timeout, base_url=server.url)
    adapter._session.trust_env = False
    return adapter


# ============================================================================
# Request Timeout Tests
# ============================================================================


class TestRequestTimeout:
    """The per-request timeout bounds the whole exchange, body included."""

    def test_slow_body_times_out(self, viacep_body):
        adapter = ViaCEPAdapter(timeout=0.1)
        adapter.CHUNK_SIZE = 16
        response = make_response(viacep_body, on_chunk=lambda index: time.sleep(0.05))

        with patch.object(adapter._session, "get", return_value=response):
            started = time.monotonic()
            outcome = adapter.lookup("01001000")
            elapsed = time.monotonic() - started

        assert isinstance(outcome, ProviderFailure)
        assert outcome.reason == FailureReason.TIMEOUT
        assert elapsed < 0.5
        response.close.assert_called()

    def test_budget_spent_before_body_is_timeout_failure(self, viacep_body):
        adapter = ViaCEPAdapter(timeout=0.05)
        response = make_response(viacep_body)

        def slow_headers(*args, **kwargs):
            time.sleep(0.1)
            return response

        with patch.object(adapter._session, "get", side_effect=slow_headers):
            outcome = adapter.lookup("01001000")

        assert outcome.reason == FailureReason.TIMEOUT
        response.iter_content.assert_not_called()
        response.close.assert_called_once()

    def test_read_timeout_while_streaming_is_timeout_failure(self):
        adapter = ViaCEPAdapter(timeout=0.3)
        url = adapter.build_url("01001000")
        error = requests.exceptions.ConnectionError(
            ReadTimeoutError(None, url, "Read timed out.")
        )

        with patch.object(adapter._session, "get", return_value=make_response(read_error=error)):
            outcome = adapter.lookup("01001000")

        assert outcome.reason == FailureReason.TIMEOUT
        assert "timed out after 0.3 seconds" in outcome.message

    def test_other_connection_error_while_streaming_is_body_read_failure(self):
        adapter = ViaCEPAdapter()
        error = requests.exceptions.ConnectionError("Connection reset by peer")

        with patch.object(adapter._session, "get", return_value=make_response(read_error=error)):
            outcome = adapter.lookup("01001000")

        assert outcome.reason == FailureReason.BODY_READ

    def test_fast_body_within_timeout_succeeds(self, viacep_body):
        with SlowBodyServer.trickle(viacep_body, size=64, interval=0.01) as server:
            outcome = local_viacep(server, timeout=1.0).lookup("01001000")

        assert isinstance(outcome, ProviderSuccess)
        assert outcome.address.city == "São Paulo"

    def test_trickled_body_cannot_outlive_timeout(self, viacep_body):
        with SlowBodyServer.trickle(viacep_body, size=8, interval=0.1) as server:
            adapter = local_viacep(server, timeout=0.3)
            started = time.monotonic()
            outcome = adapter.lookup("01001000")
            elapsed = time.monotonic() - started

        assert isinstance(outcome, ProviderFailure)
        assert outcome.reason == FailureReason.TIMEOUT
        assert elapsed < 1.0

    def test_trickled_body_does_not_win_the_race(self, viacep_body):
        with SlowBodyServer.trickle(viacep_body, size=8, interval=0.1) as server:
            adapter = local_viacep(server, timeout=0.3)
            result = run_race("01001000", [adapter], deadline_seconds=5.0)

        assert isinstance(result, AllProvidersFailed)
        assert result.failures[0].reason == FailureReason.TIMEOUT
        assert result.elapsed_seconds < 1.0

    def test_stall_after_partial_body_is_timeout_failure(self, viacep_body):
        chunks = [viacep_body[:7], viacep_body[7:]]

        with SlowBodyServer(chunks, interval=1.0) as server:
            outcome = local_viacep(server, timeout=0.3).lookup("01001000")

        assert isinstance(outcome, ProviderFailure)
        assert outcome.reason == FailureReason.TIMEOUT


# ============================================================================
# Cancellation Tests
# ============================================================================


class TestCancellation:
    """Cancellation token checkpoints."""

    def test_cancelled_before_request(self):
        adapter = BrasilAPIAdapter()
        cancel_event = threading.Event()
        cancel_event.set()

        with patch.object(adapter._session, "get") as mock_get:
            outcome = adapter.lookup("01001000", cancel_event)

        assert outcome.reason == FailureReason.CANCELLED
        mock_get.assert_not_called()

    def test_cancelled_while_reading_body(self, viacep_body):
        adapter = ViaCEPAdapter()
        adapter.CHUNK_SIZE = 16
        cancel_event = threading.Event()
        response = make_response(viacep_body, on_chunk=lambda index: cancel_event.set())

        with patch.object(adapter._session, "get", return_value=response):
            outcome = adapter.lookup("01001000", cancel_event)

        assert outcome.reason == FailureReason.CANCELLED
        response.close.assert_called_once()

    def test_unset_token_does_not_interfere(self, viacep_body):
        adapter = ViaCEPAdapter()
        adapter.CHUNK_SIZE = 16

        with patch.object(adapter._session, "get", return_value=make_response(viacep_body)):
            outcome = adapter.lookup("01001000", threading.Event())

        assert isinstance(outcome, ProviderSuccess)


# ============================================================================
# BrasilAPI Adapter Tests
# ============================================================================


class TestBrasilAPIAdapter:
    """Tests for BrasilAPIAdapter."""

    def test_build_url(self):
        adapter = BrasilAPIAdapter()

        assert adapter.build_url("01001000") == "https://brasilapi.com.br/api/cep/v1/01001000"

    def test_build_url_with_custom_base(self):
        adapter = BrasilAPIAdapter(base_url="http://localhost:8001/")

        assert adapter.build_url("01001000") == "http://localhost:8001/api/cep/v1/01001000"

    def test_field_mapping(self, brasilapi_body):
        adapter = BrasilAPIAdapter()

        with patch.object(adapter._session, "get", return_value=make_response(brasilapi_body)):
            outcome = adapter.lookup("01001000")

        assert isinstance(outcome, ProviderSuccess)
        assert outcome.address == CanonicalAddress(
            postal_code="01001000",
            street="Praça da Sé",
            neighborhood="Sé",
            city="São Paulo",
            region="SP",
            source="BrasilAPI",
        )
        assert outcome.provider == "BrasilAPI"
        assert outcome.elapsed_seconds >= 0

    def test_null_optional_fields_become_empty(self):
        adapter = BrasilAPIAdapter()
        body = json.dumps(
            {"cep": "69945000", "state": "AC", "city": "Acrelândia", "neighborhood": None, "street": None}
        ).encode()

        with patch.object(adapter._session, "get", return_value=make_response(body)):
            outcome = adapter.lookup("69945000")

        assert outcome.address.street == ""
        assert outcome.address.neighborhood == ""
        assert outcome.address.city == "Acrelândia"

    def test_not_found_is_http_status_failure(self, brasilapi_not_found_body):
        adapter = BrasilAPIAdapter()
        response = make_response(brasilapi_not_found_body, status_code=404, reason="Not Found")

        with patch.object(adapter._session, "get", return_value=response):
            outcome = adapter.lookup("99999999")

        assert outcome.reason == FailureReason.HTTP_STATUS


# ============================================================================
# ViaCEP Adapter Tests
# ============================================================================


class TestViaCEPAdapter:
    """Tests for ViaCEPAdapter."""

    def test_build_url(self):
        adapter = ViaCEPAdapter()

        assert adapter.build_url("01001000") == "https://viacep.com.br/ws/01001000/json/"

    def test_field_mapping(self, viacep_body):
        adapter = ViaCEPAdapter()

        with patch.object(adapter._session, "get", return_value=make_response(viacep_body)):
            outcome = adapter.lookup("01001000")

        assert isinstance(outcome, ProviderSuccess)
        address = outcome.address
        assert address.postal_code == "01001-000"
        assert address.street == "Praça da Sé"
        assert address.neighborhood == "Sé"
        assert address.city == "São Paulo"
        assert address.region == "SP"
        assert address.source == "ViaCEP"

    def test_minimal_body_maps(self):
        adapter = ViaCEPAdapter()
        body = json.dumps({
            "cep": "01001-000",
            "logradouro": "Praça da Sé",
            "complemento": "lado ímpar",
            "bairro": "Sé",
            "localidade": "São Paulo",
            "uf": "SP",
        }).encode()

        with patch.object(adapter._session, "get", return_value=make_response(body)):
            outcome = adapter.lookup("01001000")

        assert outcome.address.street == "Praça da Sé"
        assert outcome.address.region == "SP"

    def test_erro_body_is_not_found(self, viacep_not_found_body):
        adapter = ViaCEPAdapter()

        with patch.object(adapter._session, "get", return_value=make_response(viacep_not_found_body)):
            outcome = adapter.lookup("99999999")

        assert outcome.reason == FailureReason.NOT_FOUND

    def test_erro_boolean_is_not_found(self):
        adapter = ViaCEPAdapter()

        with patch.object(adapter._session, "get", return_value=make_response(b'{"erro": true}')):
            outcome = adapter.lookup("99999999")

        assert outcome.reason == FailureReason.NOT_FOUND


# ============================================================================
# Factory Tests
# ============================================================================


class TestAdapterFactory:
    """Tests for get_adapter and build_adapters."""

    def test_factory_creates_brasilapi_adapter(self):
        adapter = get_adapter(ProviderConfig(name="BrasilAPI"), HttpConfig())

        assert isinstance(adapter, BrasilAPIAdapter)
        assert adapter.base_url == "https://brasilapi.com.br"

    def test_factory_creates_viacep_adapter(self):
        adapter = get_adapter(ProviderConfig(name="ViaCEP"), HttpConfig())

        assert isinstance(adapter, ViaCEPAdapter)

    def test_factory_passes_http_config(self):
        http_config = HttpConfig(request_timeout="750ms", user_agent="Custom/2.0", check_status=False)
        provider_config = ProviderConfig(name="ViaCEP", base_url="http://localhost:9000")

        adapter = get_adapter(provider_config, http_config)

        assert adapter.timeout == pytest.approx(0.75)
        assert adapter.user_agent == "Custom/2.0"
        assert adapter.check_status is False
        assert adapter.base_url == "http://localhost:9000"

    def test_factory_unknown_provider_raises(self):
        provider_config = ProviderConfig(name="ViaCEP")
        provider_config.name = "Correios"

        with pytest.raises(AdapterConfigurationError, match="Unknown provider"):
            get_adapter(provider_config, HttpConfig())

    def test_build_adapters_uses_enabled_providers_in_order(self):
        app_config = AppConfig(
            providers=[
                {"name": "ViaCEP"},
                {"name": "BrasilAPI", "enabled": False},
            ]
        )

        adapters = build_adapters(app_config)

        assert [type(adapter) for adapter in adapters] == [ViaCEPAdapter]

    def test_build_adapters_defaults_to_both(self):
        adapters = build_adapters(AppConfig())

        assert [adapter.provider_name for adapter in adapters] == ["BrasilAPI", "ViaCEP"]


# ============================================================================
# Exception Tests
# ============================================================================


class TestAdapterExceptions:
    """Tests for the adapter exception taxonomy."""

    def test_adapter_http_error_attributes(self):
        error = AdapterHTTPError("Test error", status_code=404, url="https://example.com")

        assert error.status_code == 404
        assert error.url == "https://example.com"
        assert error.reason == FailureReason.HTTP_STATUS

    def test_adapter_timeout_error_is_transport_error(self):
        error = AdapterTimeoutError("Test timeout", url="https://example.com")

        assert isinstance(error, AdapterTransportError)
        assert error.url == "https://example.com"
        assert error.reason == FailureReason.TIMEOUT

    def test_exception_inheritance(self):
        for exc_class in (
            AdapterTransportError,
            AdapterHTTPError,
            AdapterBodyReadError,
            AdapterDecodeError,
            AdapterNotFoundError,
            AdapterCancelledError,
            AdapterConfigurationError,
        ):
            assert issubclass(exc_class, AdapterError)

    def test_reasons_are_distinct(self):
        reasons = [
            AdapterTransportError.reason,
            AdapterTimeoutError.reason,
            AdapterHTTPError.reason,
            AdapterBodyReadError.reason,
            AdapterDecodeError.reason,
            AdapterNotFoundError.reason,
            AdapterCancelledError.reason,
        ]

        assert len(set(reasons)) == len(reasons)
