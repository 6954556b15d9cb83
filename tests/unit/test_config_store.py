"""Unit tests for the credential store and server settings."""

import json
import os
from unittest.mock import patch

import pytest

from nanobanana_utils.configStore import (
    CONFIG_FILE_NAME,
    SOURCE_CONFIG_FILE,
    SOURCE_ENVIRONMENT,
    SOURCE_NOT_CONFIGURED,
    CredentialStore,
    ServerSettings,
    readConfigFile,
    readEnvironmentKey,
    validateApiKey,
)
from nanobanana_utils.errors import FileAccessError, InvalidInputError, PreconditionFailedError
from nanobanana_utils.geminiUtils import DEFAULT_API_BASE_URL, DEFAULT_TIMEOUT, GeminiClient


def make_store(settings):
    return CredentialStore(settings, clientFactory=lambda apiKey: ("client", apiKey))


def write_config(settings, content):
    with open(settings.config_path, "w", encoding="utf-8") as f:
        f.write(content)


@pytest.mark.unit
class TestValidateApiKey:
    @pytest.mark.parametrize("value", ["", "   ", "\n\t", None, 123])
    def test_rejects_blank_or_non_string(self, value):
        with pytest.raises(InvalidInputError) as exc_info:
            validateApiKey(value)
        assert "Invalid API key" in str(exc_info.value)

    def test_keeps_key_as_given(self):
        assert validateApiKey("  AIza-key  ") == "  AIza-key  "


@pytest.mark.unit
class TestConfigure:
    def test_configure_then_status_reports_persisted_file(self, settings):
        store = make_store(settings)
        assert store.configure("AIza-secret") == "configured"
        assert store.status() == {"configured": True, "source": SOURCE_CONFIG_FILE}

    def test_configure_persists_key_as_json(self, settings):
        store = make_store(settings)
        store.configure("AIza-secret")
        with open(settings.config_path, encoding="utf-8") as f:
            assert json.load(f) == {"geminiApiKey": "AIza-secret"}

    def test_configure_stores_key_verbatim(self, settings):
        store = make_store(settings)
        store.configure(" AIza-padded\n")
        with open(settings.config_path, encoding="utf-8") as f:
            assert json.load(f) == {"geminiApiKey": " AIza-padded\n"}
        assert store.client == ("client", " AIza-padded\n")

    def test_configure_overwrites_previous_file(self, settings):
        write_config(settings, json.dumps({"geminiApiKey": "old", "extra": 1}))
        store = make_store(settings)
        store.configure("new-key")
        with open(settings.config_path, encoding="utf-8") as f:
            assert json.load(f) == {"geminiApiKey": "new-key"}
        assert store.apiKey == "new-key"
        assert store.client == ("client", "new-key")

    def test_configure_blank_key_raises_and_keeps_state(self, settings):
        store = make_store(settings)
        with pytest.raises(InvalidInputError):
            store.configure("   ")
        assert store.status() == {"configured": False, "source": SOURCE_NOT_CONFIGURED}
        assert not os.path.exists(settings.config_path)

    def test_configure_unwritable_config_raises_file_access_error(self, tmp_path):
        settings = ServerSettings(config_path=str(tmp_path / "missing-dir" / CONFIG_FILE_NAME))
        store = make_store(settings)
        with pytest.raises(FileAccessError):
            store.configure("AIza-secret")


@pytest.mark.unit
class TestLoadOnStartup:
    def test_environment_takes_precedence_over_file(self, settings):
        write_config(settings, json.dumps({"geminiApiKey": "from-file"}))
        store = make_store(settings)
        assert store.loadOnStartup({"GEMINI_API_KEY": "from-env"}) == SOURCE_ENVIRONMENT
        assert store.apiKey == "from-env"
        assert store.status() == {"configured": True, "source": SOURCE_ENVIRONMENT}

    def test_environment_key_is_not_persisted(self, settings):
        store = make_store(settings)
        store.loadOnStartup({"GEMINI_API_KEY": "from-env"})
        assert not os.path.exists(settings.config_path)

    def test_invalid_environment_falls_back_to_file(self, settings):
        write_config(settings, json.dumps({"geminiApiKey": "from-file"}))
        store = make_store(settings)
        assert store.loadOnStartup({"GEMINI_API_KEY": "   "}) == SOURCE_CONFIG_FILE
        assert store.apiKey == "from-file"

    def test_file_only(self, settings):
        write_config(settings, json.dumps({"geminiApiKey": "from-file"}))
        store = make_store(settings)
        assert store.loadOnStartup({}) == SOURCE_CONFIG_FILE

    def test_missing_file_leaves_unset(self, settings):
        store = make_store(settings)
        assert store.loadOnStartup({}) == SOURCE_NOT_CONFIGURED
        assert store.status() == {"configured": False, "source": SOURCE_NOT_CONFIGURED}

    @pytest.mark.parametrize(
        "content",
        ["not json", "[1, 2]", json.dumps({"geminiApiKey": ""}), json.dumps({"other": "x"})],
    )
    def test_corrupt_file_leaves_unset(self, settings, content):
        write_config(settings, content)
        store = make_store(settings)
        assert store.loadOnStartup({}) == SOURCE_NOT_CONFIGURED
        assert store.client is None

    def test_reads_process_environment_by_default(self, settings):
        store = make_store(settings)
        with patch.dict(os.environ, {"GEMINI_API_KEY": "process-env"}, clear=False):
            store.loadOnStartup()
        assert store.apiKey == "process-env"


@pytest.mark.unit
class TestLookups:
    def test_environment_lookup_reports_problem(self):
        lookup = readEnvironmentKey({})
        assert lookup.apiKey is None
        assert "GEMINI_API_KEY" in lookup.problem

    def test_file_lookup_reports_problem(self, tmp_path):
        lookup = readConfigFile(str(tmp_path / "nope.json"))
        assert lookup.apiKey is None
        assert "no config file" in lookup.problem


@pytest.mark.unit
class TestRequireClient:
    def test_raises_when_not_configured(self, settings):
        with pytest.raises(PreconditionFailedError) as exc_info:
            make_store(settings).requireClient()
        assert "not configured" in str(exc_info.value)

    def test_returns_client(self, settings):
        store = make_store(settings)
        store.configure("k")
        assert store.requireClient() == ("client", "k")

    def test_default_client_factory_builds_gemini_client(self, settings):
        store = CredentialStore(settings)
        store.configure("secret-key-123")
        assert isinstance(store.client, GeminiClient)
        assert store.client.apiKey == "secret-key-123"
        assert "secret-key-123" not in repr(store.client)


@pytest.mark.unit
class TestServerSettings:
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            s = ServerSettings.from_env()
        assert s.api_base_url == DEFAULT_API_BASE_URL
        assert s.request_timeout == DEFAULT_TIMEOUT
        assert s.preferred_model is None
        assert s.config_path.endswith(CONFIG_FILE_NAME)

    def test_from_env(self):
        env = {
            "GEMINI_IMAGE_MODEL": "  my-model ",
            "GEMINI_API_BASE_URL": "http://localhost:9000/v1beta",
            "GEMINI_REQUEST_TIMEOUT": "12.5",
        }
        with patch.dict(os.environ, env, clear=True):
            s = ServerSettings.from_env()
        assert s.preferred_model == "my-model"
        assert s.api_base_url == "http://localhost:9000/v1beta"
        assert s.request_timeout == 12.5
