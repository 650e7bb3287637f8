from __future__ import annotations

import asyncio

from callmeout.presenter import QueuePresenter, render_report

REPORT = {
    "summary": ["changed auth flow", "token now loaded lazily"],
    "risk_level": "high",
    "risk_reasons": ["touches tokens"],
    "impacted_files": [{"path": "src/auth.rs", "score": 0.9, "why": ["big change"]}],
    "impacted_symbols": [{"name": "load_token", "kind": "fn", "file": "src/auth.rs", "score": 0.7}],
    "suggested_actions": [{"label": "Add tests", "explanation": "This path has no coverage"}],
    "confidence": 0.9,
}


def test_render_report_includes_all_sections():
    text = render_report(REPORT)

    assert "Risk: HIGH" in text
    assert "confidence 90%" in text
    assert "- changed auth flow" in text
    assert "- touches tokens" in text
    assert "0.90  src/auth.rs  (big change)" in text
    assert "fn load_token in src/auth.rs" in text
    assert "* Add tests: This path has no coverage" in text


def test_render_report_tolerates_sparse_payload():
    text = render_report({"summary": ["only a summary"]})

    assert "Risk: UNKNOWN" in text
    assert "only a summary" in text
    assert "Impacted files" not in text


def test_render_report_falls_back_to_json_for_non_objects():
    assert render_report(["a", "b"]).startswith("[")


def test_queue_presenter_posts_messages_in_order():
    async def scenario():
        presenter = QueuePresenter()
        presenter.show()
        presenter.set_loading(True)
        presenter.set_result(REPORT)
        presenter.set_error("boom")
        presenter.set_loading(False)
        return presenter.drain()

    messages = asyncio.run(scenario())

    assert [m["type"] for m in messages] == ["show", "loading", "result", "error", "idle"]
    assert messages[2]["result"] is REPORT
    assert messages[3]["message"] == "boom"


def test_queue_presenter_drops_oldest_when_full():
    async def scenario():
        presenter = QueuePresenter(maxsize=2)
        presenter.show()
        presenter.set_loading(True)
        presenter.set_error("latest")
        return presenter.drain()

    messages = asyncio.run(scenario())

    assert [m["type"] for m in messages] == ["loading", "error"]
