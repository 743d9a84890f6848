from pagesync.core.actions import Actions
from pagesync.core.errors import ElementNotFound
from pagesync.core.runner import run_script
from pagesync.core.script_loader import Script


class RecordingSession(Actions):
    """Actions over the fake page, plus a visit() that just records the URL."""

    def __init__(self, page, sync):
        super().__init__(page, sync)
        self.visited = []

    def visit(self, url):
        self.visited.append(url)


def make_script(steps, **kw):
    return Script.model_validate({"name": "demo", "steps": steps, **kw})


def test_run_script_dispatches_every_step(page, sync, tmp_path):
    doc = tmp_path / "cv.pdf"
    doc.write_text("cv")
    session = RecordingSession(page, sync)
    script = make_script(
        [
            {"action": "fill_in", "locator": "Name", "with": "Bob"},
            {"action": "check", "locator": "Terms"},
            {"action": "select", "option": "March", "from": "Month", "wait_ms": 300},
            {"action": "click_link", "locator": "Next", "href": "/step2"},
            {"action": "attach_file", "locator": "CV", "files": [str(doc)]},
        ],
        start_url="https://example.com/apply",
    )

    result = run_script(script, session)

    assert result == {"ok": True, "script": "demo", "steps_run": 5}
    assert session.visited == ["https://example.com/apply"]
    assert page.values[("fillable_field", "Name")] == "Bob"
    assert page.values[("checkbox", "Terms")] is True
    assert page.values[("file_field", "CV")] == [str(doc)]
    assert ("select", "Month", {}) in page.lookups
    assert ("link", "Next", {"href": "/step2"}) in page.lookups
    assert 300 in sync.calls


def test_run_script_stops_at_first_failure(page, sync):
    page.find_failures[("button", "Pay")] = [ElementNotFound("no pay button")] * 100
    session = RecordingSession(page, sync)
    script = make_script(
        [
            {"action": "click_button", "locator": "Pay", "wait_ms": 100},
            {"action": "check", "locator": "Never reached"},
        ]
    )

    result = run_script(script, session)

    assert result["ok"] is False
    assert result["steps_run"] == 0
    assert result["error_type"] == "SyncTimeoutError"
    assert result["failed_step"] == {"index": 1, "action": "click_button", "name": None}
    assert ("checkbox", "Never reached") not in page.values


def test_optional_step_failure_is_skipped(page, sync):
    page.find_failures[("button", "Dismiss")] = [ElementNotFound("no banner")] * 100
    session = RecordingSession(page, sync)
    script = make_script(
        [
            {"action": "click_button", "locator": "Dismiss", "optional": True, "wait_ms": 100},
            {"action": "uncheck", "locator": "Newsletter"},
        ]
    )

    result = run_script(script, session)

    assert result["ok"] is True
    assert result["steps_run"] == 1
    assert page.values[("checkbox", "Newsletter")] is False
