# pagesync/core/runner.py
from __future__ import annotations

"""Script runner
----------------
Maps validated script steps onto the action facade of a session.
"""

from typing import Any

from pagesync.core.actions import Actions
from pagesync.core.script_loader import ActionName, Script
from pagesync.utils.logger import get_logger, log_context

__all__ = ["run_script", "run_step"]


def _options(step: Any) -> dict[str, Any]:
    opts = dict(step.options)
    if step.wait_ms is not None:
        opts["wait"] = step.wait_ms
    return opts


def run_step(session: Actions, step: Any) -> None:
    action = step.action
    opts = _options(step)

    if action == ActionName.visit:
        session.visit(step.url)  # type: ignore[attr-defined]
    elif action == ActionName.click_link_or_button:
        session.click_link_or_button(step.locator, opts)
    elif action == ActionName.click_link:
        if step.href is not None:
            opts["href"] = step.href
        session.click_link(step.locator, opts)
    elif action == ActionName.click_button:
        session.click_button(step.locator, opts)
    elif action == ActionName.fill_in:
        session.fill_in(step.locator, {**opts, "with": step.value})
    elif action == ActionName.choose:
        session.choose(step.locator, opts)
    elif action == ActionName.check:
        session.check(step.locator, opts)
    elif action == ActionName.uncheck:
        session.uncheck(step.locator, opts)
    elif action in (ActionName.select, ActionName.unselect):
        if step.select_box is not None:
            opts["from"] = step.select_box
        op = session.select if action == ActionName.select else session.unselect
        op(step.option, opts)
    elif action == ActionName.attach_file:
        session.attach_file(step.locator, [str(p) for p in step.files], opts)
    else:
        raise NotImplementedError(f"Unsupported action: {action}")


def run_script(script: Script, session: Actions) -> dict:
    """
    Run every step of `script` against `session` in order.

    Returns {"ok": bool, "script": name, "steps_run": int, ...}; on failure
    also "error", "error_type" and "failed_step". Steps marked optional log
    their failure and the run continues.
    """
    with log_context(script=script.name):
        return _run_steps(script, session)


def _run_steps(script: Script, session: Actions) -> dict:
    log = get_logger(__name__)
    result: dict = {"ok": True, "script": script.name, "steps_run": 0}

    steps: list[Any] = list(script.steps)
    if script.start_url:
        session.visit(script.start_url)  # type: ignore[attr-defined]

    for idx, step in enumerate(steps, start=1):
        label = step.name or step.action.value
        try:
            with log_context(step=idx):
                run_step(session, step)
        except Exception as e:
            if step.optional:
                log.warning(f"Optional step {idx} ({label}) failed: {e}")
                continue
            log.error(f"Step {idx} ({label}) failed: {type(e).__name__}: {e}")
            result.update(
                ok=False,
                error=str(e),
                error_type=type(e).__name__,
                failed_step={"index": idx, "action": step.action.value, "name": step.name},
            )
            return result
        result["steps_run"] += 1
        log.info(f"Step {idx} ({label}) ok")

    return result
