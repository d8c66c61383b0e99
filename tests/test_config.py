"""Tests for runtime configuration and the defaults file."""
import pytest

from pvekit.core.config import (
    ConfigError,
    PvekitConfig,
    find_defaults_file,
    get_config,
    load_defaults,
    set_config,
)


class TestPvekitConfig:

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("PVEKIT_START_VMID", "500")
        monkeypatch.setenv("PVEKIT_LOCK_FILE", "/tmp/custom.lock")
        monkeypatch.setenv("PVEKIT_SSH_KEY", "~/keys/deploy")

        config = PvekitConfig.from_env()

        assert config.start_vmid == 500
        assert config.lock_file == "/tmp/custom.lock"
        assert config.boot_wait == 10
        assert config.ssh_key.name == "deploy"
        assert "~" not in str(config.ssh_key)

    def test_get_config_reads_env_after_reset(self, monkeypatch):
        monkeypatch.setenv("PVEKIT_BOOT_WAIT", "3")
        set_config(None)

        assert get_config().boot_wait == 3


class TestLoadDefaults:

    def test_container_section(self, tmp_path):
        path = tmp_path / "pvekit.yml"
        path.write_text("container:\n  storage: local-lvm\n  memory: 4096\n")

        assert load_defaults(str(path)) == {'storage': 'local-lvm', 'memory': 4096}

    def test_missing_file(self, tmp_path):
        assert load_defaults(str(tmp_path / "absent.yml")) == {}

    def test_env_var_location(self, monkeypatch, tmp_path):
        path = tmp_path / "defaults.yml"
        path.write_text("container:\n  cores: 4\n")
        monkeypatch.setenv("PVEKIT_DEFAULTS", str(path))

        assert find_defaults_file() == path
        assert load_defaults() == {'cores': 4}

    def test_unknown_key(self, tmp_path):
        path = tmp_path / "pvekit.yml"
        path.write_text("container:\n  swap: 512\n")

        with pytest.raises(ConfigError) as exc_info:
            load_defaults(str(path))

        assert "swap" in str(exc_info.value)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "pvekit.yml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigError):
            load_defaults(str(path))

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "pvekit.yml"
        path.write_text("container: [unclosed\n")

        with pytest.raises(ConfigError):
            load_defaults(str(path))
