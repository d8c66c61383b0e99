"""Shared test fixtures for pvekit tests."""
import subprocess
from types import SimpleNamespace

import pytest

from pvekit.core.config import PvekitConfig, set_config
from pvekit.models.container import ContainerSpec


@pytest.fixture(autouse=True)
def pvekit_config(tmp_path):
    """Point lock and key paths at tmp_path and skip boot waits."""
    config = PvekitConfig(
        boot_wait=0,
        lock_file=str(tmp_path / "run" / "vmid.lock"),
        lock_timeout=0,
        ssh_key_path=str(tmp_path / "ssh" / "portainer_deploy"),
        http_timeout=5,
    )
    set_config(config)
    yield config
    set_config(None)


@pytest.fixture
def container_spec():
    """Docker host for the budget project's staging environment."""
    return ContainerSpec(name='docker-host', project='budget', environment='staging')


@pytest.fixture
def guests():
    """Fake host inventory for subprocess-level discovery tests: vmid -> tool."""
    return {100: 'pct', 101: 'qm', 103: 'pct'}


@pytest.fixture
def fake_status_run(guests):
    """subprocess.run replacement answering `pct/qm status` from `guests`."""
    calls = []

    def fake_run(cmd, capture_output=True, text=True, check=False, **kwargs):
        calls.append(cmd)
        tool, action, vmid = cmd[0], cmd[1], int(cmd[2])
        if action == 'status' and guests.get(vmid) == tool:
            return SimpleNamespace(returncode=0, stdout="status: running\n", stderr="")
        raise subprocess.CalledProcessError(2, cmd, output="", stderr=f"Configuration file for {vmid} does not exist")

    fake_run.calls = calls
    return fake_run
