"""
CLI tests.
"""
import json
import os
import subprocess
import sys

from click.testing import CliRunner

from deploymap.cli import cli

FIXTURES = os.path.join(os.path.dirname(__file__), "fixtures")
APP = os.path.join(FIXTURES, "app.yaml")
OUTPUTS = os.path.join(FIXTURES, "outputs.yaml")


def test_module_execution():
    """Test that 'python -m deploymap' works."""
    result = subprocess.run(
        [sys.executable, "-m", "deploymap", "--help"],
        capture_output=True,
        text=True
    )
    assert result.returncode == 0
    assert "deploymap" in result.stdout


class TestPublish:
    def test_manifest_written(self, tmp_path):
        manifest = tmp_path / "manifest.json"
        result = CliRunner().invoke(cli, ["publish", APP, "-o", str(manifest), "--summary"])
        assert result.exit_code == 0, result.output
        document = json.loads(manifest.read_text(encoding="utf-8"))
        resources = document["resources"]
        assert list(resources) == ["adminPassword", "region", "store", "db", "api"]
        assert resources["store"]["path"] == "storage.bicep"
        assert resources["db"]["connectionString"] == "{db.outputs.connectionString}"
        assert resources["db"]["params"]["tags"] == ["web", "prod"]
        assert resources["api"]["params"] == {
            "blobEndpoint": "{store.outputs.blobEndpoint}",
            "dbConnection": "{db.connectionString}",
        }

    def test_lf_newlines(self, tmp_path):
        manifest = tmp_path / "manifest.json"
        CliRunner().invoke(cli, ["publish", APP, "-o", str(manifest)])
        raw = manifest.read_bytes()
        assert b"\r\n" not in raw

    def test_definition_error_exit_code(self, tmp_path):
        bad = tmp_path / "bad.yaml"
        bad.write_text("resources:\n  r:\n    inline: x\n    asset: storage.bicep\n")
        result = CliRunner().invoke(cli, ["publish", str(bad), "-o", str(tmp_path / "m.json")])
        assert result.exit_code == 2

    def test_missing_template_file_is_not_published(self, tmp_path):
        app = tmp_path / "app.yaml"
        app.write_text("resources:\n  r:\n    template: nope.bicep\n")
        manifest = tmp_path / "m.json"
        result = CliRunner().invoke(cli, ["publish", str(app), "-o", str(manifest)])
        assert result.exit_code == 2
        assert not manifest.exists()


class TestChecksum:
    def test_requires_run_outputs(self):
        result = CliRunner().invoke(cli, ["checksum", APP])
        assert result.exit_code == 2

    def test_missing_template_file(self, tmp_path):
        app = tmp_path / "app.yaml"
        app.write_text("resources:\n  r:\n    template: nope.bicep\n")
        result = CliRunner().invoke(cli, ["checksum", str(app)])
        assert result.exit_code == 2
        assert "not found" in result.output

    def test_json_output(self):
        result = CliRunner().invoke(cli, ["checksum", APP, "--outputs", OUTPUTS, "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert list(data) == ["store", "db", "api"]
        assert all(len(v) == 8 for v in data.values())

    def test_selected_resources(self):
        result = CliRunner().invoke(cli, ["checksum", APP, "store", "--json"])
        assert result.exit_code == 0, result.output
        assert list(json.loads(result.stdout)) == ["store"]

    def test_stable_across_invocations(self):
        runner = CliRunner()
        first = runner.invoke(cli, ["checksum", APP, "--outputs", OUTPUTS, "--json"])
        second = runner.invoke(cli, ["checksum", APP, "--outputs", OUTPUTS, "--json"])
        assert first.stdout == second.stdout


class TestInspect:
    def test_markdown(self):
        result = CliRunner().invoke(cli, ["inspect", APP])
        assert result.exit_code == 0, result.output
        assert "# Deployment Overview" in result.output
        assert "`{store.outputs.blobEndpoint}`" in result.output

    def test_json_report_file(self, tmp_path):
        out = tmp_path / "report.json"
        result = CliRunner().invoke(
            cli, ["inspect", APP, "--format", "json", "--outputs", OUTPUTS, "-o", str(out)]
        )
        assert result.exit_code == 0, result.output
        report = json.loads(out.read_text(encoding="utf-8"))
        names = [r["name"] for r in report["resources"]]
        assert names == ["store", "db", "api"]
        assert all(r["checksum"] for r in report["resources"])

    def test_checksum_unavailable_without_outputs(self, tmp_path):
        out = tmp_path / "report.json"
        CliRunner().invoke(cli, ["inspect", APP, "--format", "json", "-o", str(out)])
        report = json.loads(out.read_text(encoding="utf-8"))
        by_name = {r["name"]: r for r in report["resources"]}
        assert by_name["store"]["checksum"] is not None
        assert by_name["api"]["checksum"] is None
