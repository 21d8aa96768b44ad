# tests/unit/logging/test_unit_context.py
"""Tests for logging/context.py."""

from __future__ import annotations

from docreview.logging.context import (
    LogContext,
    clear_context,
    get_context,
    set_session_context,
    set_stage_context,
)


class TestLogContext:
    def teardown_method(self):
        clear_context()

    def test_empty_by_default(self):
        clear_context()
        assert get_context().as_dict() == {}

    def test_session_resets_stage(self):
        set_session_context("s1")
        set_stage_context("logic")
        set_session_context("s2")
        ctx = get_context()
        assert ctx.session_id == "s2"
        assert ctx.stage is None

    def test_as_dict_skips_none(self):
        assert LogContext(session_id="s1").as_dict() == {"session_id": "s1"}
