"""
Integration tests for the scatter CLI.
"""

from __future__ import annotations

import json

import pytest
import typer.testing

from scatter.cli.main import app

runner = typer.testing.CliRunner()

QUIET = ["--log-level", "CRITICAL"]


def _encode(src, out_dir, *extra):
    return runner.invoke(app, QUIET + ["encode", str(src), "--out", str(out_dir), "--seed", "7", *extra])


class TestCLIBasics:
    def test_help(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for cmd in ("encode", "inspect", "verify", "version"):
            assert cmd in result.stdout

    def test_version(self) -> None:
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert result.stdout.startswith("scatter ")

    def test_config(self, monkeypatch) -> None:
        monkeypatch.setenv("SCATTER_PARITY_SHARDS", "3")
        result = runner.invoke(app, QUIET + ["config", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["stripe"]["parity_shards"] == 3

    def test_config_reflects_log_flags(self) -> None:
        result = runner.invoke(app, ["--log-level", "error", "--log-format", "json", "config", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["logging"] == {"level": "ERROR", "format": "json"}


class TestEncode:
    def test_encode_json(self, make_input, out_dir) -> None:
        src = make_input(10000)
        result = _encode(src, out_dir, "--json")
        assert result.exit_code == 0, result.output
        doc = json.loads(result.stdout)
        assert doc["ok"] is True
        assert doc["stripe_count"] == 3 and doc["padding"] == 2288
        assert len(doc["shards"]) == 6
        assert (out_dir / "blob.bin.manifest.json").exists()

    def test_encode_human_output(self, make_input, out_dir) -> None:
        result = _encode(make_input(100), out_dir)
        assert result.exit_code == 0, result.output
        assert "Encoded" in result.stdout
        assert "stripes" in result.stdout

    def test_flags_override_profile(self, make_input, out_dir) -> None:
        result = _encode(make_input(100), out_dir, "-k", "2", "-m", "1", "--block-size", "0x10", "--json")
        assert result.exit_code == 0, result.output
        doc = json.loads(result.stdout)
        assert doc["stripe_count"] == 4
        assert sorted(p.name for p in out_dir.glob("blob.bin.?")) == ["blob.bin.0", "blob.bin.1", "blob.bin.2"]

    def test_invalid_profile_exit_code(self, make_input, out_dir) -> None:
        result = _encode(make_input(100), out_dir, "-k", "200", "-m", "57", "--json")
        assert result.exit_code == 2
        assert json.loads(result.stdout)["error"]["type"] == "urn:scatter:config_invalid"
        assert not out_dir.exists()

    def test_missing_input_exit_code(self, tmp_path, out_dir) -> None:
        result = _encode(tmp_path / "missing.bin", out_dir)
        assert result.exit_code == 3

    def test_rerun_needs_force(self, make_input, out_dir) -> None:
        src = make_input(100)
        assert _encode(src, out_dir).exit_code == 0
        assert _encode(src, out_dir).exit_code == 3
        assert _encode(src, out_dir, "--force").exit_code == 0

    def test_flags_override_invalid_environment(self, make_input, out_dir, monkeypatch) -> None:
        monkeypatch.setenv("SCATTER_DATA_SHARDS", "300")
        monkeypatch.setenv("SCATTER_SHUFFLE", "fancy")
        result = _encode(make_input(100), out_dir, "-k", "4", "--shuffle", "keyed", "--json")
        assert result.exit_code == 0, result.output
        doc = json.loads(result.stdout)
        assert doc["shuffle"] == "keyed" and len(doc["shards"]) == 6

    def test_invalid_environment_without_override_is_rejected(self, make_input, out_dir, monkeypatch) -> None:
        monkeypatch.setenv("SCATTER_DATA_SHARDS", "300")
        result = _encode(make_input(100), out_dir, "--json")
        assert result.exit_code == 2
        assert not out_dir.exists()

    def test_environment_values_are_trimmed(self, make_input, out_dir, monkeypatch) -> None:
        monkeypatch.setenv("SCATTER_SHUFFLE", " Keyed ")
        monkeypatch.setenv("SCATTER_OVERWRITE", "truncate ")
        result = _encode(make_input(100), out_dir, "--json")
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["shuffle"] == "keyed"

    def test_metrics_file(self, make_input, out_dir, tmp_path) -> None:
        prom = tmp_path / "scatter.prom"
        result = _encode(make_input(5000), out_dir, "--metrics-file", str(prom))
        assert result.exit_code == 0, result.output
        text = prom.read_text()
        assert "scatter_stripes_total 2.0" in text
        assert 'scatter_encode_runs_total{outcome="ok"} 1.0' in text


class TestInspectVerify:
    @pytest.fixture
    def manifest(self, make_input, out_dir):
        assert _encode(make_input(3000), out_dir, "--shuffle", "keyed").exit_code == 0
        return out_dir / "blob.bin.manifest.json"

    def test_inspect_json(self, manifest) -> None:
        result = runner.invoke(app, QUIET + ["inspect", str(manifest), "--json"])
        assert result.exit_code == 0
        doc = json.loads(result.stdout)
        assert doc["shuffle"]["mode"] == "keyed"
        assert len(doc["ledger"]) == doc["stripe_count"] == 1

    def test_inspect_table(self, manifest) -> None:
        result = runner.invoke(app, QUIET + ["inspect", str(manifest)])
        assert result.exit_code == 0
        assert "Distribution ledger" in result.stdout
        assert "Shard files" in result.stdout

    def test_inspect_bad_manifest(self, tmp_path) -> None:
        bad = tmp_path / "x.manifest.json"
        bad.write_text("{}")
        result = runner.invoke(app, QUIET + ["inspect", str(bad)])
        assert result.exit_code == 5

    def test_verify_ok_and_damaged(self, manifest, out_dir) -> None:
        result = runner.invoke(app, QUIET + ["verify", str(manifest), "--json"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["ok"] is True

        (out_dir / "blob.bin.4").write_bytes(b"")
        result = runner.invoke(app, QUIET + ["verify", str(manifest)])
        assert result.exit_code == 1
        assert "issue(s)" in result.stdout

        result = runner.invoke(app, QUIET + ["verify", str(manifest), "--json"])
        assert result.exit_code == 1
        kinds = {i["kind"] for i in json.loads(result.stdout)["issues"]}
        assert "size_mismatch" in kinds

    def test_verify_other_directory(self, manifest, out_dir, tmp_path) -> None:
        elsewhere = tmp_path / "elsewhere"
        elsewhere.mkdir()
        manifest_copy = elsewhere / manifest.name
        manifest_copy.write_bytes(manifest.read_bytes())
        result = runner.invoke(app, QUIET + ["verify", str(manifest_copy), "--dir", str(out_dir)])
        assert result.exit_code == 0, result.output
