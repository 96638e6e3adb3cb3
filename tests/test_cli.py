import json
import shutil
from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

from api_doc_gen.cli import main
from api_doc_gen.errors import OutputError

FIXTURES = Path(__file__).parent / "fixtures"


def _invoke(*args: str, env: dict | None = None):
    runner = CliRunner()
    return runner.invoke(main, list(args), env={"API_DOC_GEN_CONFIG": None, **(env or {})})


class TestCliGenerate:
    def test_generate_fixture_project(self, tmp_path):
        out = tmp_path / "docs"
        result = _invoke("generate", str(FIXTURES / "project"), "-o", str(out))

        assert result.exit_code == 0, result.output
        assert sorted(p.name for p in out.iterdir()) == ["API.md", "index.html", "openapi.json"]
        assert "Found 9 routes." in result.output
        doc = json.loads((out / "openapi.json").read_text())
        assert doc["info"]["title"] == "Fixture API"

    def test_warnings_do_not_fail_the_run(self, tmp_path):
        result = _invoke("generate", str(FIXTURES / "project"), "-o", str(tmp_path), "-f", "openapi")
        assert result.exit_code == 0
        assert "RouteCollisionWarning" in result.output
        assert "(4 warnings)" in result.output

    def test_format_all(self, tmp_path):
        result = _invoke("generate", str(FIXTURES / "project"), "-o", str(tmp_path), "-f", "all")
        assert result.exit_code == 0, result.output
        assert (tmp_path / "openapi.yaml").exists()

    def test_flags_override_config(self, tmp_path):
        result = _invoke(
            "generate", str(FIXTURES / "project"),
            "-o", str(tmp_path),
            "-f", "openapi",
            "--title", "Flagged",
            "--api-version", "9.9",
            "--server", "https://api.example.com",
        )
        assert result.exit_code == 0, result.output
        doc = json.loads((tmp_path / "openapi.json").read_text())
        assert doc["info"]["title"] == "Flagged"
        assert doc["info"]["version"] == "9.9"
        assert doc["servers"] == [{"url": "https://api.example.com"}]

    def test_exclude_adds_to_defaults(self, tmp_path):
        result = _invoke(
            "generate", str(FIXTURES / "project"),
            "-o", str(tmp_path), "-f", "openapi",
            "--exclude", "**/users.js",
        )
        assert result.exit_code == 0, result.output
        doc = json.loads((tmp_path / "openapi.json").read_text())
        assert "/users" not in doc["paths"]
        assert "/vendor" not in doc["paths"]

    def test_config_file_from_env(self, tmp_path):
        config = tmp_path / "custom.yaml"
        config.write_text("title: From Env\n")
        out = tmp_path / "out"
        result = _invoke(
            "generate", str(FIXTURES / "project"), "-o", str(out), "-f", "openapi",
            env={"API_DOC_GEN_CONFIG": str(config)},
        )
        assert result.exit_code == 0, result.output
        assert json.loads((out / "openapi.json").read_text())["info"]["title"] == "From Env"

    def test_missing_root_exits_2(self, tmp_path):
        result = _invoke("generate", str(tmp_path / "missing"), "-o", str(tmp_path / "out"))
        assert result.exit_code == 2
        assert "does not exist" in result.output

    def test_invalid_config_exits_2(self, tmp_path):
        project = tmp_path / "project"
        shutil.copytree(FIXTURES / "project" / "routes", project / "routes")
        (project / "api-doc-gen.yaml").write_text("output:\n  formats: [pdf]\n")
        result = _invoke("generate", str(project), "-o", str(tmp_path / "out"))
        assert result.exit_code == 2

    def test_unwritable_output_exits_3(self, tmp_path):
        blocker = tmp_path / "docs"
        blocker.write_text("not a directory")
        result = _invoke("generate", str(FIXTURES / "project"), "-o", str(blocker))
        assert result.exit_code == 3

    @patch("api_doc_gen.cli.run_pipeline", side_effect=OutputError("No artifact could be written"))
    def test_output_error_message(self, mock_run, tmp_path):
        result = _invoke("generate", str(FIXTURES / "project"), "-o", str(tmp_path))
        assert result.exit_code == 3
        assert "Error: No artifact could be written" in result.output
        mock_run.assert_called_once()


class TestCliRoutes:
    def test_lists_routes(self):
        result = _invoke("routes", str(FIXTURES / "project"))
        assert result.exit_code == 0, result.output
        assert "GET     /items/:id  routes/items.js:11" in result.output
        assert "GET     /health  controllers/health.ts:11" in result.output
        assert "9 routes." in result.output

    def test_writes_nothing(self, tmp_path):
        project = tmp_path / "project"
        shutil.copytree(FIXTURES / "project", project)
        before = sorted(p.relative_to(project) for p in project.rglob("*"))
        result = _invoke("routes", str(project))
        assert result.exit_code == 0
        assert sorted(p.relative_to(project) for p in project.rglob("*")) == before
