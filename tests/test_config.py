"""
Unit tests for TxdConfig.
"""

import pytest

from txd import ConfigurationError, Ed25519Signer, TxdConfig
from txd.config import DEFAULT_POLL_INTERVAL, DEFAULT_POLL_TIMEOUT

from conftest import BASE_URL, KEY_URI


@pytest.fixture
def environ(private_key_jwk) -> dict:
    return {
        "BASE_URI_TXD": f"{BASE_URL}/",
        "DID_KEY_URI": KEY_URI,
        "SECRET_SIGNING_KEY": private_key_jwk,
    }


class TestFromEnv:

    def test_required_values(self, environ):
        config = TxdConfig.from_env(environ)
        assert config.base_url == BASE_URL
        assert config.key_uri == KEY_URI
        assert config.poll_interval == DEFAULT_POLL_INTERVAL
        assert config.poll_timeout == DEFAULT_POLL_TIMEOUT

    @pytest.mark.parametrize("missing", ["BASE_URI_TXD", "DID_KEY_URI", "SECRET_SIGNING_KEY"])
    def test_missing_value_is_fatal(self, environ, missing):
        del environ[missing]
        with pytest.raises(ConfigurationError, match=missing):
            TxdConfig.from_env(environ)

    def test_numeric_settings(self, environ):
        environ.update({"TXD_POLL_INTERVAL": "0.5", "TXD_POLL_TIMEOUT": "30", "TXD_HTTP_TIMEOUT": "2"})
        config = TxdConfig.from_env(environ)
        assert config.poll_interval == 0.5
        assert config.poll_timeout == 30.0
        assert config.http_timeout == 2.0

    @pytest.mark.parametrize("value", ["soon", "0", "-5"])
    def test_invalid_numeric_setting(self, environ, value):
        environ["TXD_POLL_TIMEOUT"] = value
        with pytest.raises(ConfigurationError, match="TXD_POLL_TIMEOUT"):
            TxdConfig.from_env(environ)

    @pytest.mark.parametrize("url", ["txd.example.com", "ftp://txd.test", "http://[::1", "https://"])
    def test_invalid_base_url(self, environ, url):
        environ["BASE_URI_TXD"] = url
        with pytest.raises(ConfigurationError, match="BASE_URI_TXD"):
            TxdConfig.from_env(environ)

    def test_http_base_url_allowed(self, environ):
        environ["BASE_URI_TXD"] = "http://localhost:8080/"
        assert TxdConfig.from_env(environ).base_url == "http://localhost:8080"

    def test_overrides_win(self, environ):
        config = TxdConfig.from_env(environ, base_url="https://other.test", poll_timeout=10)
        assert config.base_url == "https://other.test"
        assert config.poll_timeout == 10.0

    def test_none_override_ignored(self, environ):
        config = TxdConfig.from_env(environ, base_url=None)
        assert config.base_url == BASE_URL

    def test_override_supplies_missing_value(self, environ):
        del environ["BASE_URI_TXD"]
        config = TxdConfig.from_env(environ, base_url=BASE_URL)
        assert config.base_url == BASE_URL

    def test_unknown_override(self, environ):
        with pytest.raises(TypeError):
            TxdConfig.from_env(environ, seed="abandon abandon")

    def test_reads_process_environment(self, environ, monkeypatch):
        for name, value in environ.items():
            monkeypatch.setenv(name, value)
        assert TxdConfig.from_env().key_uri == KEY_URI


class TestSigner:

    def test_make_signer(self, config):
        signer = config.make_signer()
        assert isinstance(signer, Ed25519Signer)
        assert signer.identity_reference() == KEY_URI

    def test_make_signer_from_seed(self):
        config = TxdConfig(base_url=BASE_URL, key_uri=KEY_URI, signing_key="0x" + "22" * 32)
        assert len(config.make_signer().public_key_bytes()) == 32

    def test_unusable_key(self):
        config = TxdConfig(base_url=BASE_URL, key_uri=KEY_URI, signing_key="0x1234")
        with pytest.raises(ConfigurationError, match="SECRET_SIGNING_KEY"):
            config.make_signer()

    def test_repr_hides_key(self, config, private_key_jwk):
        assert private_key_jwk not in repr(config)
        assert "***" in repr(config)
