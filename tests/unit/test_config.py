"""
Unit tests for settings and user mapping loading.
"""

import json

import pytest
from pydantic import ValidationError

from adf_bridge.config import Settings, email_resolver, load_user_mapping


@pytest.fixture
def mapping_file(tmp_path):
    path = tmp_path / "users.json"
    path.write_text(json.dumps({"@jane@example.com": "5b10ac8d"}))
    return path


@pytest.mark.unit
class TestSettings:
    """Environment-driven settings."""

    def test_defaults(self, monkeypatch):
        for name in (
            "ADF_BRIDGE_USER_MAPPING",
            "ADF_BRIDGE_DIALECT",
            "ADF_BRIDGE_REGISTRY_FILE",
            "ADF_BRIDGE_LOG_LEVEL",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = Settings()

        assert settings.user_mapping_file == ""
        assert settings.dialect == "markdown"
        assert settings.registry_file == ""
        assert settings.log_level == "WARNING"
        assert settings.user_mapping() == {}
        settings.validate()

    def test_unknown_dialect(self, monkeypatch):
        monkeypatch.setenv("ADF_BRIDGE_DIALECT", "confluence")
        with pytest.raises(ValueError, match="ADF_BRIDGE_DIALECT"):
            Settings().validate()

    def test_missing_mapping_file(self, monkeypatch, tmp_path):
        monkeypatch.setenv("ADF_BRIDGE_USER_MAPPING", str(tmp_path / "nope.json"))
        with pytest.raises(ValueError, match="missing file"):
            Settings().validate()

    def test_mapping_from_environment(self, monkeypatch, mapping_file):
        monkeypatch.setenv("ADF_BRIDGE_USER_MAPPING", str(mapping_file))
        settings = Settings()

        settings.validate()
        assert settings.user_mapping() == {"@jane@example.com": "5b10ac8d"}


@pytest.mark.unit
class TestUserMapping:
    """Mapping file parsing and reverse resolution."""

    def test_load(self, mapping_file):
        assert load_user_mapping(mapping_file) == {"@jane@example.com": "5b10ac8d"}

    def test_rejects_non_string_values(self, tmp_path):
        path = tmp_path / "users.json"
        path.write_text('{"@jane@example.com": 42}')
        with pytest.raises(ValidationError):
            load_user_mapping(path)

    def test_resolver(self):
        resolve = email_resolver({"@jane@example.com": "5b10ac8d"})

        assert resolve("5b10ac8d") == "@jane@example.com"
        assert resolve("@bob@example.com") == "@bob@example.com"
        assert resolve("unknown-id") is None
