"""Tests for Docker/Portainer provisioning inside a container."""
import pytest
import yaml

from pvekit.services.provision import (
    PASSWORD_FILE,
    PASSWORD_REFERENCE_FILE,
    DockerHostProvisioner,
    ProvisionError,
    api_compose_template,
    portainer_compose,
    write_file_script,
)


class RecordingLifecycle:
    """Lifecycle stand-in that records scripts and fails on request."""

    def __init__(self, fail_on=None):
        self.fail_on = fail_on
        self.steps = []

    def run_script(self, vmid, script, description="script"):
        self.steps.append((vmid, description, script))
        return description != self.fail_on


@pytest.fixture
def provisioner():
    return DockerHostProvisioner(RecordingLifecycle())


class TestSteps:

    def test_full_sequence(self, provisioner):
        provisioner.provision(105)

        assert [d for _, d, _ in provisioner.lifecycle.steps] == [
            "Updating system and installing prerequisites",
            "Installing Docker",
            "Installing Docker Compose",
            "Setting up Portainer",
            "Starting Portainer",
            "Creating Portainer systemd service",
            "Creating deployment directories",
        ]
        assert all(vmid == 105 for vmid, _, _ in provisioner.lifecycle.steps)

    def test_quick_sequence(self, provisioner):
        provisioner.provision(105, quick=True)

        steps = provisioner.lifecycle.steps
        assert [d for _, d, _ in steps] == ["Installing Docker", "Setting up Portainer"]
        assert "docker run -d --name portainer" in steps[1][2]

    def test_stops_at_first_failure(self):
        lifecycle = RecordingLifecycle(fail_on="Installing Docker Compose")
        provisioner = DockerHostProvisioner(lifecycle)

        with pytest.raises(ProvisionError) as exc_info:
            provisioner.provision(105)

        assert exc_info.value.step == "Installing Docker Compose"
        assert len(lifecycle.steps) == 3

    def test_every_script_aborts_on_error(self, provisioner):
        for description, script in provisioner.steps():
            assert "set -e" in script(), description


class TestPortainerSetup:

    def test_compose_mounts_password_file(self):
        portainer = portainer_compose()['services']['portainer']

        assert f"{PASSWORD_FILE}:/tmp/portainer_password:ro" in portainer['volumes']
        assert portainer['command'] == '--admin-password-file /tmp/portainer_password'
        assert portainer['ports'] == ['9000:9000', '9443:9443']

    def test_compose_has_no_version_key(self):
        assert 'version' not in portainer_compose()
        assert 'version' not in api_compose_template()

    def test_setup_script_writes_parseable_compose(self, provisioner):
        script = provisioner.portainer_setup_script()

        body = script.split("<< 'PVEKIT_EOF'\n", 1)[1].split("\nPVEKIT_EOF\n", 1)[0]
        assert yaml.safe_load(body) == portainer_compose()
        assert f"chmod 600 {PASSWORD_REFERENCE_FILE}" in script
        assert "openssl rand -base64 32" in script

    def test_api_template_keeps_compose_variables(self):
        api = api_compose_template()['services']['api']

        assert api['image'] == '${API_IMAGE:-mcr.microsoft.com/dotnet/samples:aspnetapp}'
        assert '${API_PORT:-5000}:80' in api['ports']

    def test_systemd_unit_enabled(self, provisioner):
        script = provisioner.systemd_unit_script()

        assert "/etc/systemd/system/portainer.service" in script
        assert "systemctl daemon-reload" in script
        assert "systemctl enable portainer.service" in script

    def test_deployment_dirs(self, provisioner):
        script = provisioner.deployment_dirs_script()

        assert "mkdir -p /opt/deployments/staging /opt/deployments/production" in script
        assert "/opt/deployments/docker-compose.template.yml" in script


def test_write_file_script_is_quoted_heredoc():
    script = write_file_script("/tmp/x", "echo $HOME\n")

    assert script == "cat > /tmp/x << 'PVEKIT_EOF'\necho $HOME\nPVEKIT_EOF\n"
