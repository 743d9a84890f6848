import json
from contextlib import contextmanager
from pathlib import Path
import textwrap

from click.testing import CliRunner

from pagesync.cli import cli


def write_multi_doc_yaml(tmp_path: Path) -> Path:
    y = textwrap.dedent(
        """
        name: alpha
        steps:
          - action: click_button
            locator: Start
        ---
        name: beta
        steps:
          - action: check
            locator: Terms
          - action: click_on
            locator: Continue
        """
    )
    p = tmp_path / "demo.yaml"
    p.write_text(y, encoding="utf-8")
    return p


def test_cli_validate_with_dir(tmp_path: Path):
    write_multi_doc_yaml(tmp_path)
    runner = CliRunner()
    result = runner.invoke(cli, ["validate", str(tmp_path)])
    assert result.exit_code == 0
    assert result.output.count("OK  ") == 2


def test_cli_validate_reports_errors(tmp_path: Path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("name: bad\nsteps:\n  - action: fill_in\n    locator: Name\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["validate", str(bad)])
    assert result.exit_code == 1
    assert "ERR" in result.output


def test_cli_config_prints_sync_settings():
    runner = CliRunner()
    result = runner.invoke(cli, ["config"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert "DEFAULT_WAIT_MS" in data
    assert "POLL_INTERVAL_MS" in data


def test_cli_run_monkeypatch_session(tmp_path: Path, monkeypatch):
    wf = write_multi_doc_yaml(tmp_path)
    opened = []

    class FakeSession:
        def __init__(self, settings):
            self.settings = settings
            self.calls = []

        def visit(self, url):
            self.calls.append(("visit", url))

        def __getattr__(self, name):
            return lambda *a, **kw: self.calls.append((name, a))

    @contextmanager
    def fake_open_session(settings=None):
        session = FakeSession(settings)
        opened.append(session)
        yield session

    monkeypatch.setattr("pagesync.session.open_session", fake_open_session)

    runner = CliRunner()
    result = runner.invoke(cli, ["run", str(wf), "--wait-ms", "4000", "--json-out", str(tmp_path / "out.json")])

    assert result.exit_code == 0, result.output
    assert result.output.count("OK  ") == 2
    assert len(opened) == 2
    assert opened[0].settings.DEFAULT_WAIT_MS == 4000
    assert opened[1].calls == [("check", ("Terms", {})), ("click_link_or_button", ("Continue", {}))]
    summary = json.loads((tmp_path / "out.json").read_text(encoding="utf-8"))
    assert all(r["ok"] for r in summary["results"])
