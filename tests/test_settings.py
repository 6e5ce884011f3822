import pytest
from pydantic import ValidationError

from schema_cache.settings import RegistrySettings, get_settings


@pytest.mark.unit
class TestRegistrySettings:
    def test_defaults(self):
        settings = RegistrySettings()

        assert settings.url_list == ["http://localhost:8081"]
        assert settings.timeout_seconds == 10.0
        assert settings.cache_responses is True
        assert settings.cache_not_found is False
        assert settings.codecs_enabled is True
        assert settings.latest_refresh is True

    def test_url_list_is_normalized(self):
        settings = RegistrySettings(urls=" http://a:8081/ ,https://b:8081,, ")

        assert settings.url_list == ["http://a:8081", "https://b:8081"]

    @pytest.mark.parametrize("urls", ["", " , ", "registry:8081", "ftp://registry:8081"])
    def test_invalid_urls(self, urls):
        with pytest.raises(ValidationError):
            RegistrySettings(urls=urls)

    @pytest.mark.parametrize("timeout", [0, -1, 301])
    def test_timeout_bounds(self, timeout):
        with pytest.raises(ValidationError):
            RegistrySettings(timeout_seconds=timeout)

    def test_user_info_needs_password(self):
        with pytest.raises(ValidationError, match="user:password"):
            RegistrySettings(basic_auth_user_info="key-only")

    def test_one_auth_method(self):
        with pytest.raises(ValidationError, match="either basic auth or a bearer token"):
            RegistrySettings(basic_auth_user_info="key:secret", bearer_token="tok")

    def test_key_requires_certificate(self):
        with pytest.raises(ValidationError):
            RegistrySettings(ssl_key_location="/etc/ssl/client.key")

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("SCHEMA_REGISTRY_URLS", "http://registry-a:8081,http://registry-b:8081")
        monkeypatch.setenv("SCHEMA_REGISTRY_CACHE_NOT_FOUND", "true")
        monkeypatch.setenv("SCHEMA_REGISTRY_LOG_FORMAT", "json")

        settings = get_settings()

        assert settings.url_list == ["http://registry-a:8081", "http://registry-b:8081"]
        assert settings.cache_not_found is True
        assert settings.log_format == "json"

    def test_unknown_log_level_rejected(self, monkeypatch):
        monkeypatch.setenv("SCHEMA_REGISTRY_LOG_LEVEL", "TRACE")

        with pytest.raises(ValidationError):
            get_settings()
