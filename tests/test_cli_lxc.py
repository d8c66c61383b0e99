"""Tests for the lxc CLI commands."""
import pytest
from typer.testing import CliRunner

from pvekit.cli import app
from pvekit.services.proxmox.orchestrator import ContainerOrchestrator, ProvisionResult

runner = CliRunner()


@pytest.fixture(autouse=True)
def mock_mode(monkeypatch, tmp_path):
    monkeypatch.setenv('PVEKIT_MOCK', '1')
    monkeypatch.setenv('PVEKIT_DEFAULTS', str(tmp_path / "no-defaults.yml"))


class TestCreate:

    def test_create_with_flags(self):
        result = runner.invoke(app, ['lxc', 'create', '-n', 'docker-host', '-p', 'budget', '-e', 'staging'])

        assert result.exit_code == 0, result.output
        assert "Container created successfully" in result.output
        assert "103" in result.output
        assert "budget-staging" in result.output
        assert "http://192.168.1.50:9000" in result.output
        assert "pvekit lxc ssh-setup --id 103" in result.output

    def test_prompts_for_name(self):
        result = runner.invoke(app, ['lxc', 'create'], input="prompted-host\n")

        assert result.exit_code == 0, result.output
        assert "prompted-host" in result.output

    def test_empty_name_exits(self):
        result = runner.invoke(app, ['lxc', 'create'], input="\n")

        assert result.exit_code == 1
        assert "Container name is required" in result.output

    def test_id_in_use(self):
        result = runner.invoke(app, ['lxc', 'create', '-n', 'docker-host', '-i', '100'])

        assert result.exit_code == 1
        assert "Container ID 100 is already in use" in result.output

    def test_missing_template_lists_available(self):
        result = runner.invoke(app, ['lxc', 'create', '-n', 'docker-host', '-t', 'alpine.tar.xz'])

        assert result.exit_code == 1
        assert "Available templates" in result.output
        assert "pveam download local alpine.tar.xz" in result.output

    def test_invalid_disk(self):
        result = runner.invoke(app, ['lxc', 'create', '-n', 'docker-host', '-d', 'big'])

        assert result.exit_code == 1
        assert "disk" in result.output

    def test_defaults_file_applied(self, monkeypatch, tmp_path):
        defaults = tmp_path / "pvekit.yml"
        defaults.write_text("container:\n  memory: 4096\n  storage: local-lvm\n")
        monkeypatch.setenv('PVEKIT_DEFAULTS', str(defaults))
        captured = {}

        def fake_create(self, spec, quick=False):
            captured['spec'] = spec
            captured['quick'] = quick
            return ProvisionResult(vmid=103, name=spec.name, hostname=spec.hostname, ip=None)

        monkeypatch.setattr(ContainerOrchestrator, 'create', fake_create)
        result = runner.invoke(app, ['lxc', 'create', '-n', 'docker-host', '-m', '1024', '--quick'])

        assert result.exit_code == 0, result.output
        assert captured['spec'].memory == 1024
        assert captured['spec'].storage == 'local-lvm'
        assert captured['quick'] is True


def test_next_id():
    result = runner.invoke(app, ['lxc', 'next-id'])

    assert result.exit_code == 0
    assert result.output.strip() == "103"


def test_next_id_with_start():
    result = runner.invoke(app, ['lxc', 'next-id', '--start', '500'])

    assert result.output.strip() == "500"


class TestSshSetup:

    def test_running_container(self):
        result = runner.invoke(app, ['lxc', 'ssh-setup', '-i', '100'])

        assert result.exit_code == 0, result.output
        assert "Deploy user ready in container 100" in result.output
        assert "PORTAINER_SSH_KEY" in result.output
        assert "PORTAINER_SSH_USER" in result.output
        assert "BEGIN OPENSSH PRIVATE KEY" in result.output

    def test_stopped_container(self):
        result = runner.invoke(app, ['lxc', 'ssh-setup', '-i', '101'])

        assert result.exit_code == 1
        assert "not running" in result.output

    def test_missing_container(self):
        result = runner.invoke(app, ['lxc', 'ssh-setup', '-i', '999'])

        assert result.exit_code == 1
        assert "does not exist" in result.output

    def test_prompted_id_must_be_numeric(self):
        result = runner.invoke(app, ['lxc', 'ssh-setup'], input="abc\n")

        assert result.exit_code == 1
        assert "Invalid container ID" in result.output
