# pagesync/cli.py
from __future__ import annotations

"""Command-line interface
------------------------
Convenience commands to validate and run interaction scripts and to view the
effective config. Thin wrapper around the script loader, runner and session.
"""

import contextlib
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import click

from pagesync.utils.config import get_settings
from pagesync.utils.logger import configure_logging, file_logging, get_logger, log_context
from pagesync.core.runner import run_script
from pagesync.core.script_loader import find_script_files, load_scripts_file


# -------- helpers --------


def _echo_json(obj) -> None:
    click.echo(json.dumps(obj, indent=2, ensure_ascii=False, default=str))


def _collect(targets: List[str]) -> List[Path]:
    paths: List[Path] = []
    for p in (Path(t).resolve() for t in targets):
        if p.is_dir():
            paths.extend(find_script_files(p, recursive=True))
        else:
            paths.append(p)
    return paths


# -------- CLI root --------


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Override LOG_LEVEL from settings",
)
@click.version_option(package_name="pagesync")
def cli(log_level: Optional[str]):
    _ = get_settings()
    if log_level:
        configure_logging(log_level, force=True)


# -------- commands --------


@cli.command("config")
def cmd_config():
    """Print effective configuration (after .env & env vars)."""
    _echo_json(get_settings().model_dump(mode="json"))


@cli.command("validate")
@click.argument("targets", nargs=-1, required=True)
def cmd_validate(targets: List[str]):
    """Validate script files or directories (supports multi-doc YAML)."""
    ok = True
    for fp in _collect(targets):
        try:
            for script in load_scripts_file(fp):
                click.echo(f"OK  {fp}  ->  {script.name} ({len(script.steps)} steps)")
        except Exception as e:
            ok = False
            click.echo(f"ERR {fp}  ->  {e}")

    sys.exit(0 if ok else 1)


@cli.command("run")
@click.argument("targets", nargs=-1, required=True)
@click.option("--wait-ms", type=click.IntRange(min=0), default=None, help="Override DEFAULT_WAIT_MS from settings")
@click.option("--headed", is_flag=True, default=False, help="Show the browser window")
@click.option("--log-file", type=click.Path(dir_okay=False), default=None, help="Also write JSON logs to this file")
@click.option("--json-out", type=click.Path(dir_okay=False), default=None, help="Write a JSON summary to this file")
def cmd_run(
    targets: List[str],
    wait_ms: Optional[int],
    headed: bool,
    log_file: Optional[str],
    json_out: Optional[str],
):
    """
    Run one or more interaction scripts, each in a fresh browser session.

    Examples:
      pagesync run scripts/signup.yaml
      pagesync run scripts/ --wait-ms 5000 --headed
    """
    # local import keeps `validate`/`config` usable without a browser install
    from pagesync.session import open_session

    settings = get_settings()
    overrides = {}
    if wait_ms is not None:
        overrides["DEFAULT_WAIT_MS"] = wait_ms
    if headed:
        overrides["HEADLESS"] = False
    if overrides:
        settings = settings.model_copy(update=overrides)

    log = get_logger(__name__)
    results: List[dict] = []
    with contextlib.ExitStack() as stack:
        if log_file:
            stack.enter_context(file_logging(log_file))
        stack.enter_context(log_context(run_id=datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")))

        for fp in _collect(targets):
            try:
                scripts = load_scripts_file(fp)
            except Exception as e:
                results.append({"ok": False, "file": str(fp), "error": str(e), "error_type": type(e).__name__})
                continue
            for script in scripts:
                log.info(f"Running {script.name} from {fp}")
                with open_session(settings) as session:
                    res = run_script(script, session)
                res["file"] = str(fp)
                results.append(res)

    for res in results:
        name = res.get("script", "-")
        if res.get("ok"):
            click.echo(f"OK  {res['file']} [{name}] ({res.get('steps_run', 0)} steps)")
        else:
            failed = res.get("failed_step") or {}
            step_desc = f" [step {failed.get('index', '?')} {failed.get('action', '')}]" if failed else ""
            prefix = f"{res['error_type']}: " if res.get("error_type") else ""
            click.echo(f"ERR {res['file']} [{name}]{step_desc} -> {prefix}{res.get('error', 'unknown error')}")

    ok_count = sum(1 for r in results if r.get("ok"))
    fail_count = len(results) - ok_count
    click.echo(f"Done. OK={ok_count}  FAIL={fail_count}")

    if json_out:
        outp = Path(json_out).resolve()
        outp.parent.mkdir(parents=True, exist_ok=True)
        outp.write_text(json.dumps({"results": results}, indent=2, default=str), encoding="utf-8")
        click.echo(f"Wrote summary: {outp}")

    sys.exit(0 if fail_count == 0 and results else 1)


def main() -> None:
    cli(prog_name="pagesync")


if __name__ == "__main__":
    main()
