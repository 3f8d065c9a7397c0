"""Tests for the gateway error hierarchy."""

from polaris_rest.errors import (
    ConfigurationError,
    ConnectionLostError,
    GatewayError,
    MissingParametersError,
    SessionUnavailableError,
    TransportError,
)


class TestGatewayError:
    """Test GatewayError base class."""

    def test_basic_error_creation(self) -> None:
        error = GatewayError(code="polaris:test/error", message="Test error message")

        assert error.code == "polaris:test/error"
        assert error.message == "Test error message"
        assert error.details == {}
        assert str(error) == "Test error message"

    def test_to_dict(self) -> None:
        error = GatewayError("polaris:test/error", "boom", {"value": 42})

        assert error.to_dict() == {
            "code": "polaris:test/error",
            "message": "boom",
            "details": {"value": 42},
        }

    def test_error_details_not_shared(self) -> None:
        error1 = GatewayError("code", "msg")
        error2 = GatewayError("code", "msg")
        error1.details["key"] = "value"

        assert error2.details == {}


class TestMissingParametersError:
    def test_message_quotes_parameters(self) -> None:
        error = MissingParametersError(["chatId", "content"])

        assert isinstance(error, GatewayError)
        assert error.code == "polaris:request/missing_parameters"
        assert error.message == "Missing required parameters 'chatId' or 'content'"
        assert error.parameters == ["chatId", "content"]
        assert error.details["parameters"] == ["chatId", "content"]


class TestSessionUnavailableError:
    def test_timeout_message(self) -> None:
        error = SessionUnavailableError("connecting", 30.0)

        assert error.code == "polaris:session/unavailable"
        assert error.message == "WebSocket session not open after 30s (state: connecting)"
        assert error.details == {"timeout": 30.0, "state": "connecting"}

    def test_immediate_check_message(self) -> None:
        error = SessionUnavailableError("disconnected")

        assert error.timeout is None
        assert error.message == "WebSocket session is not open (state: disconnected)"


class TestConnectionErrors:
    def test_connection_lost(self) -> None:
        error = ConnectionLostError("connection closed")

        assert error.code == "polaris:session/connection_lost"
        assert error.reason == "connection closed"
        assert str(error) == "WebSocket connection lost: connection closed"

    def test_transport_error(self) -> None:
        error = TransportError("connection refused")

        assert error.code == "polaris:transport/error"
        assert error.reason == "connection refused"
        assert "connection refused" in error.message


class TestConfigurationError:
    def test_problems_are_joined(self) -> None:
        error = ConfigurationError(["SERVER is required", "CONFIG is required"])

        assert error.code == "polaris:config/invalid"
        assert error.problems == ["SERVER is required", "CONFIG is required"]
        assert error.message == "Invalid configuration: SERVER is required; CONFIG is required"
