from pathlib import Path

import pytest

from nomyo.config import DEFAULT_MAX_PAYLOAD_SIZE, DEFAULT_ROUTER_URL, ClientConfig
from nomyo.exceptions import ConfigurationError


def test_defaults() -> None:
    config = ClientConfig()

    assert config.router_url == DEFAULT_ROUTER_URL
    assert config.allow_http is False
    assert config.secure_memory is True
    assert config.key_size == 4096
    assert config.timeout == 60.0
    assert config.max_payload_size == DEFAULT_MAX_PAYLOAD_SIZE == 10 * 1024 * 1024
    assert config.key_dir == Path("client_keys")
    assert config.is_secure_transport


def test_trailing_slash_is_stripped() -> None:
    config = ClientConfig(router_url="https://router.example:12434/")

    assert config.router_url == "https://router.example:12434"


def test_key_dir_is_coerced_to_path() -> None:
    config = ClientConfig(key_dir="keys")  # type: ignore[arg-type]

    assert config.key_dir == Path("keys")


def test_http_router_is_not_secure_transport() -> None:
    config = ClientConfig(router_url="http://localhost:12434")

    assert not config.is_secure_transport


def test_api_key_hidden_from_repr() -> None:
    config = ClientConfig(api_key="sk-secret")

    assert "sk-secret" not in repr(config)


@pytest.mark.parametrize("url", ["localhost:12434", "ftp://router.example", "https://"])
def test_invalid_router_url_raises(url: str) -> None:
    with pytest.raises(ConfigurationError):
        ClientConfig(router_url=url)


def test_unsupported_key_size_raises() -> None:
    with pytest.raises(ConfigurationError):
        ClientConfig(key_size=1024)


def test_non_positive_timeout_raises() -> None:
    with pytest.raises(ConfigurationError):
        ClientConfig(timeout=0)


def test_non_positive_payload_limit_raises() -> None:
    with pytest.raises(ConfigurationError):
        ClientConfig(max_payload_size=0)


def test_config_is_frozen() -> None:
    config = ClientConfig()

    with pytest.raises(AttributeError):
        config.allow_http = True  # type: ignore[misc]
