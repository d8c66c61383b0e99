"""Tests for workflow, scaffold and deploy CLI commands."""
import pytest
import yaml
from typer.testing import CliRunner

from pvekit.cli import app
from pvekit.services.portainer import PortainerClient

runner = CliRunner()


@pytest.fixture(autouse=True)
def mock_mode(monkeypatch):
    monkeypatch.setenv('PVEKIT_MOCK', '1')
    for var in ('PORTAINER_URL', 'PORTAINER_USERNAME', 'PORTAINER_PASSWORD', 'PORTAINER_ENDPOINT_ID'):
        monkeypatch.delenv(var, raising=False)


class TestWorkflowPortainer:

    def test_api_only_with_flags(self, tmp_path):
        result = runner.invoke(app, [
            'workflow', 'portainer', '-p', 'budget', '-t', 'api-only', '--output-dir', str(tmp_path),
        ])

        assert result.exit_code == 0, result.output
        path = tmp_path / ".github" / "workflows" / "deploy-to-portainer.yml"
        assert yaml.safe_load(path.read_text())['name'] == "Deploy Budget API to Portainer"
        assert "budget-api-staging" in result.output
        assert "PORTAINER_ENDPOINT_ID" in result.output

    def test_prompted_webapp(self, tmp_path):
        result = runner.invoke(
            app,
            ['workflow', 'portainer', '--output-dir', str(tmp_path)],
            input="budget\n2\n",
        )

        assert result.exit_code == 0, result.output
        data = yaml.safe_load((tmp_path / ".github/workflows/deploy-to-portainer.yml").read_text())
        assert 'build-web' in data['jobs']

    def test_invalid_type_choice(self, tmp_path):
        result = runner.invoke(
            app,
            ['workflow', 'portainer', '-p', 'budget', '--output-dir', str(tmp_path)],
            input="3\n",
        )

        assert result.exit_code == 1
        assert "Invalid deployment type" in result.output
        assert not (tmp_path / ".github").exists()

    def test_empty_project(self, tmp_path):
        result = runner.invoke(app, ['workflow', 'portainer', '--output-dir', str(tmp_path)], input="\n")

        assert result.exit_code == 1


def test_workflow_build_deploy(tmp_path):
    result = runner.invoke(app, ['workflow', 'build-deploy', '-s', 'budget', '--output-dir', str(tmp_path)])

    assert result.exit_code == 0, result.output
    assert (tmp_path / ".github" / "workflows" / "deploy.yml").exists()
    assert "src/BUDGET.Api/Dockerfile.api" in result.output
    assert "src/budget.web/Dockerfile.web" in result.output


class TestScaffold:

    def test_skip_tools(self, tmp_path):
        result = runner.invoke(app, [
            'scaffold', 'dotnet', '-s', 'budget', '--skip-tools', '--output-dir', str(tmp_path),
        ])

        assert result.exit_code == 0, result.output
        assert (tmp_path / "budget" / "src" / "BUDGET.Api" / "Dockerfile.api").exists()
        assert "pvekit workflow build-deploy --solution budget" in result.output

    def test_no_web(self, tmp_path):
        result = runner.invoke(app, [
            'scaffold', 'dotnet', '-s', 'budget', '--skip-tools', '--no-web', '--output-dir', str(tmp_path),
        ])

        assert result.exit_code == 0, result.output
        assert not (tmp_path / "budget" / "src" / "budget.web").exists()

    def test_non_empty_directory(self, tmp_path):
        (tmp_path / "budget").mkdir()
        (tmp_path / "budget" / "existing.txt").write_text("x")

        result = runner.invoke(app, [
            'scaffold', 'dotnet', '-s', 'budget', '--skip-tools', '--output-dir', str(tmp_path),
        ])

        assert result.exit_code == 1
        assert "not empty" in result.output


class TestDeploy:

    ARGS = ['deploy', '--image', 'acme/budget-api', '--name', 'budget-api-staging', '--port', '5001']

    def test_missing_connection_settings(self):
        result = runner.invoke(app, self.ARGS)

        assert result.exit_code == 1
        assert "--url" in result.output

    def test_env_fallback_in_mock_mode(self, monkeypatch):
        monkeypatch.setenv('PORTAINER_URL', 'http://portainer.local:9000')
        monkeypatch.setenv('PORTAINER_USERNAME', 'admin')
        monkeypatch.setenv('PORTAINER_PASSWORD', 'secret')

        result = runner.invoke(app, self.ARGS + ['--tag', 'staging'])

        assert result.exit_code == 0, result.output
        assert "MOCK: Would deploy acme/budget-api:staging" in result.output

    def test_redeploy_called(self, monkeypatch):
        monkeypatch.delenv('PVEKIT_MOCK')
        captured = {}

        def fake_redeploy(self, target):
            captured['client'] = self
            captured['target'] = target
            return "0123456789abcdef"

        monkeypatch.setattr(PortainerClient, 'redeploy', fake_redeploy)
        result = runner.invoke(app, self.ARGS + [
            '--url', 'http://portainer.local:9000',
            '--username', 'admin',
            '--password', 'secret',
            '--endpoint', '3',
            '-e', 'ASPNETCORE_ENVIRONMENT=Staging',
        ])

        assert result.exit_code == 0, result.output
        assert captured['client'].endpoint_id == 3
        assert captured['target'].env == ['ASPNETCORE_ENVIRONMENT=Staging']
        assert "0123456789ab" in result.output

    def test_invalid_env_entry(self):
        result = runner.invoke(app, self.ARGS + [
            '--url', 'http://p', '--username', 'a', '--password', 'b', '-e', 'NOVALUE',
        ])

        assert result.exit_code == 1
