"""Tests for verifier configuration loading."""

from pathlib import Path

import pytest

from dac_common.config import AttestationConfig, get_config, get_environment
from dac_common.exceptions import ConfigurationError

CONFIG_DIR = Path(__file__).resolve().parents[3] / "config"


def test_defaults():
    config = AttestationConfig()
    assert config.trust_store.type == "test"
    assert config.trust_store.path is None
    assert config.verifier.max_vendor_reserved == 2
    assert config.verifier.check_certificate_validity is True
    assert config.logging.level == "INFO"


def test_from_dict_normalizes_values():
    config = AttestationConfig.from_dict(
        {"trust_store": {"type": "FILE", "path": "/paa"}, "logging": {"level": "debug"}}
    )
    assert config.trust_store.type == "file"
    assert config.logging.level == "DEBUG"


@pytest.mark.parametrize(
    "data",
    [
        {"trust_store": {"type": "database"}},
        {"verifier": {"max_vendor_reserved": -1}},
        {"verifier": {"max_vendor_reserved": 17}},
        {"logging": {"level": "LOUD"}},
    ],
)
def test_from_dict_rejects_invalid_values(data):
    with pytest.raises(ConfigurationError):
        AttestationConfig.from_dict(data)


def test_from_file_expands_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("PAA_DIR", "/var/lib/paa")
    monkeypatch.delenv("UNSET_LEVEL", raising=False)
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        "trust_store:\n"
        "  type: file\n"
        "  path: ${PAA_DIR}\n"
        "logging:\n"
        "  level: ${UNSET_LEVEL:-WARNING}\n"
    )

    config = AttestationConfig.from_file(config_file)

    assert config.trust_store.path == "/var/lib/paa"
    assert config.logging.level == "WARNING"


def test_from_file_empty_document(tmp_path):
    config_file = tmp_path / "empty.yaml"
    config_file.write_text("")
    assert AttestationConfig.from_file(config_file) == AttestationConfig()


@pytest.mark.parametrize("content", ["trust_store: [unclosed", "- just\n- a list\n"])
def test_from_file_rejects_bad_yaml(tmp_path, content):
    config_file = tmp_path / "bad.yaml"
    config_file.write_text(content)
    with pytest.raises(ConfigurationError):
        AttestationConfig.from_file(config_file)


def test_from_file_missing(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        AttestationConfig.from_file(tmp_path / "missing.yaml")


def test_from_env(monkeypatch):
    monkeypatch.setenv("DAC_TRUST_STORE_TYPE", "file")
    monkeypatch.setenv("DAC_TRUST_STORE_PATH", "/etc/paa")
    monkeypatch.setenv("DAC_MAX_VENDOR_RESERVED", "4")
    monkeypatch.setenv("DAC_CHECK_CERTIFICATE_VALIDITY", "false")
    monkeypatch.setenv("LOG_LEVEL", "ERROR")

    config = AttestationConfig.from_env()

    assert config.trust_store.type == "file"
    assert config.trust_store.path == "/etc/paa"
    assert config.verifier.max_vendor_reserved == 4
    assert config.verifier.check_certificate_validity is False
    assert config.logging.level == "ERROR"


def test_get_environment(monkeypatch):
    monkeypatch.setenv("DAC_ENV", "Production")
    assert get_environment() == "production"
    monkeypatch.delenv("DAC_ENV")
    assert get_environment() == "development"


class TestGetConfig:
    def test_explicit_file_wins(self, tmp_path, monkeypatch):
        config_file = tmp_path / "explicit.yaml"
        config_file.write_text("verifier:\n  max_vendor_reserved: 5\n")
        monkeypatch.setenv("DAC_CONFIG_FILE", str(config_file))

        assert get_config().verifier.max_vendor_reserved == 5

    def test_environment_file(self, tmp_path, monkeypatch):
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "staging.yaml").write_text("verifier:\n  max_vendor_reserved: 7\n")
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("DAC_CONFIG_FILE", raising=False)
        monkeypatch.setenv("DAC_ENV", "staging")

        assert get_config().verifier.max_vendor_reserved == 7

    def test_falls_back_to_environment(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("DAC_CONFIG_FILE", raising=False)
        monkeypatch.setenv("DAC_MAX_VENDOR_RESERVED", "3")

        assert get_config().verifier.max_vendor_reserved == 3


@pytest.mark.parametrize("name", ["development", "testing", "production"])
def test_shipped_configuration_files_load(name):
    config = AttestationConfig.from_file(CONFIG_DIR / f"{name}.yaml")
    assert config.verifier.max_vendor_reserved == 2
