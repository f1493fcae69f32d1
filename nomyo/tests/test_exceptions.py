import pytest

from nomyo.exceptions import (
    APIError,
    AuthenticationError,
    ConfigurationError,
    InsecureChannelError,
    InvalidKeyLengthError,
    InvalidRequestError,
    KeyDecryptionError,
    KeyLoadError,
    MalformedPackageError,
    NomyoError,
    PayloadTooLargeError,
    RateLimitError,
    SecurityError,
    ServerError,
)


def test_nomyo_error_str_without_context() -> None:
    error = NomyoError("Something failed")

    assert str(error) == "Something failed"


def test_nomyo_error_str_with_context() -> None:
    error = NomyoError("Failed", endpoint="/pki/public_key", attempt=3)

    assert "Failed" in str(error)
    assert "endpoint='/pki/public_key'" in str(error)
    assert "attempt=3" in str(error)


def test_invalid_key_length_error_exposes_lengths() -> None:
    error = InvalidKeyLengthError("bad key", expected=32, actual=16)

    assert error.expected == 32
    assert error.actual == 16
    assert isinstance(error, ConfigurationError)


def test_payload_too_large_error_exposes_size_and_limit() -> None:
    error = PayloadTooLargeError("too big", size=11, limit=10)

    assert error.size == 11
    assert error.limit == 10


@pytest.mark.parametrize(
    "error_type",
    [MalformedPackageError, KeyLoadError, InvalidKeyLengthError, PayloadTooLargeError],
)
def test_input_errors_are_configuration_errors(error_type: type) -> None:
    assert issubclass(error_type, ConfigurationError)


def test_insecure_channel_error_is_security_error() -> None:
    assert issubclass(InsecureChannelError, SecurityError)


def test_key_decryption_error_has_generic_default_message() -> None:
    assert str(KeyDecryptionError()) == "Failed to decrypt private key"


def test_authentication_error_has_status_401() -> None:
    assert AuthenticationError("nope").status_code == 401


def test_invalid_request_error_has_status_400() -> None:
    assert InvalidRequestError("bad").status_code == 400


def test_rate_limit_error_has_status_429_and_retry_after() -> None:
    error = RateLimitError(retry_after=30)

    assert error.status_code == 429
    assert error.retry_after == 30
    assert error.message == "Rate limit exceeded"


def test_server_error_defaults_to_500() -> None:
    assert ServerError("boom").status_code == 500
    assert ServerError("bad gateway", status_code=502).status_code == 502


def test_api_error_keeps_error_details() -> None:
    error = APIError("oops", status_code=418, error_details={"detail": "teapot"})

    assert error.error_details == {"detail": "teapot"}
    assert APIError("oops").error_details == {}
