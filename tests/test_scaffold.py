"""Tests for .NET/Vue solution scaffolding."""
import json
import subprocess

import pytest

from pvekit.models.project import ProjectName
from pvekit.scaffold import ScaffoldError, SolutionScaffolder


@pytest.fixture
def budget():
    return ProjectName(raw="budget")


@pytest.fixture
def scaffolder():
    return SolutionScaffolder()


class TestSkipTools:
    """Template-only scaffolding (no dotnet/npm)."""

    def test_layout(self, scaffolder, budget, tmp_path):
        root = scaffolder.scaffold(budget, tmp_path, run_tools=False)

        assert root == tmp_path / "budget"
        for relative in [
            "BUDGET.sln",
            "src/BUDGET.Api/BUDGET.Api.csproj",
            "src/BUDGET.Api/Program.cs",
            "src/BUDGET.Api/appsettings.json",
            "src/BUDGET.Api/appsettings.Staging.json",
            "src/BUDGET.Api/appsettings.Production.json",
            "src/BUDGET.Api/Dockerfile.api",
            "src/budget.web/package.json",
            "src/budget.web/index.html",
            "src/budget.web/src/main.js",
            "src/budget.web/Dockerfile.web",
            "src/budget.web/nginx.conf",
            ".gitignore",
            "README.md",
        ]:
            assert (root / relative).exists(), relative

    def test_api_project(self, scaffolder, budget, tmp_path):
        api = scaffolder.scaffold(budget, tmp_path, run_tools=False) / "src" / "BUDGET.Api"

        assert '<Project Sdk="Microsoft.NET.Sdk.Web">' in (api / "BUDGET.Api.csproj").read_text()
        assert "<TargetFramework>net8.0</TargetFramework>" in (api / "BUDGET.Api.csproj").read_text()
        assert 'app.MapGet("/health"' in (api / "Program.cs").read_text()

    def test_appsettings_are_valid_json(self, scaffolder, budget, tmp_path):
        api = scaffolder.scaffold(budget, tmp_path, run_tools=False) / "src" / "BUDGET.Api"

        for name in ["appsettings.json", "appsettings.Staging.json", "appsettings.Production.json"]:
            settings = json.loads((api / name).read_text())
            assert settings["Kestrel"]["Endpoints"]["Http"]["Url"] == "http://+:8080"
            assert settings["AllowedHosts"] == "*"

        production = json.loads((api / "appsettings.Production.json").read_text())
        assert production["Logging"]["LogLevel"]["Default"] == "Warning"

    def test_dockerfiles(self, scaffolder, budget, tmp_path):
        root = scaffolder.scaffold(budget, tmp_path, run_tools=False)

        api = (root / "src/BUDGET.Api/Dockerfile.api").read_text()
        assert "FROM mcr.microsoft.com/dotnet/sdk:8.0 AS build" in api
        assert "FROM mcr.microsoft.com/dotnet/aspnet:8.0" in api
        assert "EXPOSE 8080" in api
        assert 'ENTRYPOINT ["dotnet", "BUDGET.Api.dll"]' in api

        web = (root / "src/budget.web/Dockerfile.web").read_text()
        assert "FROM nginx:alpine" in web
        assert "EXPOSE 80" in web
        assert "try_files $uri $uri/ /index.html;" in (root / "src/budget.web/nginx.conf").read_text()

    def test_package_json(self, scaffolder, budget, tmp_path):
        root = scaffolder.scaffold(budget, tmp_path, run_tools=False)
        package = json.loads((root / "src/budget.web/package.json").read_text())

        assert package["name"] == "budget.web"
        assert package["scripts"]["build"] == "vite build"

    def test_no_web(self, scaffolder, budget, tmp_path):
        root = scaffolder.scaffold(budget, tmp_path, include_web=False, run_tools=False)

        assert not (root / "src" / "budget.web").exists()
        assert "budget.web" not in (root / "README.md").read_text()

    def test_refuses_non_empty_directory(self, scaffolder, budget, tmp_path):
        (tmp_path / "budget").mkdir()
        (tmp_path / "budget" / "notes.txt").write_text("keep me")

        with pytest.raises(ScaffoldError):
            scaffolder.scaffold(budget, tmp_path, run_tools=False)

        scaffolder.scaffold(budget, tmp_path, run_tools=False, force=True)
        assert (tmp_path / "budget" / "notes.txt").read_text() == "keep me"


class TestTools:
    """dotnet/npm invocation."""

    def test_commands(self, monkeypatch, budget, tmp_path):
        calls = []

        def fake_run(cmd, cwd, capture_output, text, check, timeout):
            calls.append((cmd, cwd))
            return subprocess.CompletedProcess(cmd, 0, "", "")

        monkeypatch.setattr("pvekit.scaffold.core.subprocess.run", fake_run)
        root = SolutionScaffolder().scaffold(budget, tmp_path)

        assert [cmd for cmd, _ in calls] == [
            ['dotnet', 'new', 'sln', '-n', 'BUDGET'],
            ['dotnet', 'new', 'webapi', '-n', 'BUDGET.Api', '-o', 'src/BUDGET.Api'],
            ['dotnet', 'sln', 'BUDGET.sln', 'add', 'src/BUDGET.Api/BUDGET.Api.csproj'],
            ['npm', 'create', 'vue@latest', 'budget.web', '--', '--default'],
            ['npm', 'install'],
        ]
        assert calls[0][1] == str(root)
        assert calls[3][1] == str(root / "src")
        assert calls[4][1] == str(root / "src" / "budget.web")
        assert (root / "src/BUDGET.Api/Dockerfile.api").exists()

    def test_missing_tool(self, monkeypatch, budget, tmp_path):
        def fake_run(cmd, **kwargs):
            raise FileNotFoundError(cmd[0])

        monkeypatch.setattr("pvekit.scaffold.core.subprocess.run", fake_run)

        with pytest.raises(ScaffoldError) as exc_info:
            SolutionScaffolder().scaffold(budget, tmp_path)

        assert "dotnet not found" in str(exc_info.value)

    def test_tool_failure(self, monkeypatch, budget, tmp_path):
        def fake_run(cmd, **kwargs):
            raise subprocess.CalledProcessError(1, cmd, stderr="template not found")

        monkeypatch.setattr("pvekit.scaffold.core.subprocess.run", fake_run)

        with pytest.raises(ScaffoldError) as exc_info:
            SolutionScaffolder().scaffold(budget, tmp_path)

        assert "template not found" in str(exc_info.value)

    def test_mock_writes_templates(self, monkeypatch, budget, tmp_path):
        def boom(*args, **kwargs):
            raise AssertionError("subprocess.run called in mock mode")

        monkeypatch.setattr("pvekit.scaffold.core.subprocess.run", boom)
        root = SolutionScaffolder(mock=True).scaffold(budget, tmp_path)

        assert (root / "src/BUDGET.Api/BUDGET.Api.csproj").exists()
