"""Integration tests for the mdconf CLI"""

import json
import logging
from pathlib import Path

import pytest
from typer.testing import CliRunner

from mdconf.cli.cli import app


runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Run every command from an empty project directory with its own database."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("MDCONF_DB_URL", f"sqlite:///{tmp_path / 'store.db'}")
    yield
    app_logger = logging.getLogger("mdconf")
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
    app_logger.setLevel(logging.NOTSET)


@pytest.fixture(name="site")
def site_fixture(tmp_path) -> Path:
    root = tmp_path / "site"
    (root / "index").mkdir(parents=True)
    (root / "index.md").write_text("# Home\n\n[see child](index/page.md)\n")
    (root / "index" / "page.md").write_text("# Child Page\n\nBody.\n")
    return root


def _convert(site: Path):
    return runner.invoke(app, ["convert", str(site), "--out-dir", "out"])


def test_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("convert", "publish", "convert-and-publish", "dump", "model-overview", "init"):
        assert command in result.output


def test_convert(site, tmp_path):
    result = _convert(site)
    assert result.exit_code == 0, result.output
    assert "Converted 2 page(s)" in result.output
    assert (tmp_path / "out" / "index.wiki").read_text() == "h1. Home\n\n[see child|Child Page]\n"
    model = json.loads((tmp_path / "out" / "confluence-content-model.json").read_text())
    assert model["pages"][0]["children"][0]["title"] == "Child Page"


def test_convert_remove_title(site, tmp_path):
    result = runner.invoke(app, ["convert", str(site), "--out-dir", "out", "--remove-title"])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "out" / "index" / "page.wiki").read_text() == "Body.\n"


def test_convert_reads_config_yaml(site, tmp_path):
    (tmp_path / "config.yaml").write_text(f"input_dir: '{site.as_posix()}'\noutput_dir: built\ntitle_prefix: 'KB: '\n")
    result = runner.invoke(app, ["convert"])
    assert result.exit_code == 0, result.output
    assert "KB: Home" in result.output
    assert (tmp_path / "built" / "index.wiki").exists()


def test_convert_missing_input(tmp_path):
    result = runner.invoke(app, ["convert", str(tmp_path / "nope")])
    assert result.exit_code == 1
    assert "Conversion failed" in result.output


def test_convert_invalid_config(site):
    result = runner.invoke(app, ["convert", str(site), "--child-layout", "flat"])
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


def test_model_overview(site):
    _convert(site)
    result = runner.invoke(app, ["model-overview", "--model", "out/confluence-content-model.json"])
    assert result.exit_code == 0, result.output
    assert result.output.splitlines() == ["- Home", "  - Child Page", "2 page(s)"]


def test_model_overview_missing_model():
    result = runner.invoke(app, ["model-overview", "--model", "missing.json"])
    assert result.exit_code == 1
    assert "Cannot load content model" in result.output


def test_publish_then_republish(site):
    _convert(site)
    first = runner.invoke(app, ["publish", "--model", "out"])
    assert first.exit_code == 0, first.output
    assert "2 created" in first.output

    second = runner.invoke(app, ["publish", "--model", "out"])
    assert "0 created" in second.output
    assert "2 unchanged" in second.output


def test_publish_missing_parent(site):
    _convert(site)
    result = runner.invoke(app, ["publish", "--model", "out", "--parent-title", "Nowhere"])
    assert result.exit_code == 1
    assert "Publish failed" in result.output


def test_convert_and_publish_then_dump(site, tmp_path):
    result = runner.invoke(app, ["convert-and-publish", str(site), "--out-dir", "out"])
    assert result.exit_code == 0, result.output
    assert "Publish complete - 2 created" in result.output

    dumped = runner.invoke(app, ["dump", "--out-dir", "dump"])
    assert dumped.exit_code == 0, dumped.output
    assert "Dumped 2 page(s)" in dumped.output
    assert (tmp_path / "dump" / "home" / "child-page.wiki").read_text() == "h1. Child Page\n\nBody.\n"


def test_init_and_reset(site):
    assert runner.invoke(app, ["init"]).exit_code == 0
    runner.invoke(app, ["convert-and-publish", str(site), "--out-dir", "out"])

    reset = runner.invoke(app, ["init", "--reset"])
    assert reset.exit_code == 0
    assert "Existing data cleared." in reset.output

    again = runner.invoke(app, ["publish", "--model", "out"])
    assert "2 created" in again.output


def test_verbose_logging_goes_to_stderr(site):
    result = runner.invoke(app, ["-vv", "convert", str(site), "--out-dir", "out"])
    assert result.exit_code == 0, result.output
    assert "[    INFO] Converting" in result.output


def test_repeated_verbose_invocations(site):
    _convert(site)
    for _ in range(2):
        result = runner.invoke(app, ["-v", "model-overview", "--model", "out"])
        assert result.exit_code == 0, result.output
    handlers = [h for h in logging.getLogger("mdconf").handlers if getattr(h, "_mdconf", False)]
    assert len(handlers) == 1
