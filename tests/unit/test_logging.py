"""
Unit tests for the structlog processor chain.

Tests cover:
- App and environment tags added by the context processor
- Independent tag sets per configured service
- Processor chain ordering and renderers
"""

import structlog

from shared.logging.structured_logger import add_trace_context, app_context, build_processors


class TestAppContext:
    """Test application tags on log entries."""

    def test_tags_added(self):
        processor = app_context("booknview-api", "test")
        assert processor(None, "info", {"event": "booking_created"}) == {
            "event": "booking_created",
            "app": "booknview-api",
            "environment": "test",
        }

    def test_entry_values_win(self):
        processor = app_context("booknview-api", "test")
        assert processor(None, "info", {"event": "x", "app": "runner"})["app"] == "runner"

    def test_services_do_not_share_tags(self):
        api = app_context("booknview-api", "production")
        runner = app_context("booknview-e2e", "development")
        assert runner(None, "info", {})["app"] == "booknview-e2e"
        assert api(None, "info", {}) == {"app": "booknview-api", "environment": "production"}


class TestBuildProcessors:
    """Test the shared processor chain."""

    def test_renderer_last(self):
        assert isinstance(build_processors(True)[-1], structlog.processors.JSONRenderer)
        assert isinstance(build_processors(False)[-1], structlog.dev.ConsoleRenderer)

    def test_given_tags_used(self):
        tags = app_context("booknview-api", "test")
        processors = build_processors(True, tags)
        assert tags in processors
        assert processors.index(tags) < processors.index(add_trace_context)

    def test_default_tags(self):
        processors = build_processors(True)
        tagger = processors[processors.index(add_trace_context) - 1]
        assert tagger(None, "info", {}) == {"app": "booknview", "environment": "production"}
