"""
Unit tests for batch mode

Tests queueing, the merged flush pass, sort-failure atomicity and partial
success reporting.
"""

import pytest
from unittest.mock import Mock

from colorrouter.core.enums import UpdateMode
from colorrouter.errors.taxonomy import CircularDependencyError, ErrorKind, ResolutionError


class TestQueueing:
    """Test that batch mutations are deferred."""

    def test_define_only_queues(self, batch_engine):
        """Nothing is resolved or announced before flush."""
        handler = Mock()
        batch_engine.on_change(handler)

        batch_engine.define("base.a", "#fff")
        batch_engine.define("base.b", batch_engine.ref("base.a"))

        assert batch_engine.batch_queue_size == 2
        handler.assert_not_called()

    def test_repeated_key_queued_once(self, batch_engine):
        """Queue is a set of keys."""
        batch_engine.define("base.a", "#fff")
        batch_engine.set("base.a", "#000")
        batch_engine.set("base.a", "#111")
        assert batch_engine.batch_queue_size == 1

    def test_cycle_not_detected_until_flush(self, batch_engine):
        """Batch define never raises for cycles."""
        batch_engine.define("base.a", batch_engine.ref("base.b"))
        batch_engine.define("base.b", batch_engine.ref("base.a"))
        assert batch_engine.has("base.a")
        assert batch_engine.has("base.b")


class TestFlush:
    """Test flush()."""

    def test_flush_outside_batch_mode(self, engine):
        """Auto mode has nothing to flush."""
        assert engine.flush() is None

    def test_flush_resolves_queue(self, batch_engine):
        """Queued keys resolve prerequisites first, in one pass."""
        batch_engine.define("base.c", batch_engine.ref("base.b"))
        batch_engine.define("base.b", batch_engine.ref("base.a"))
        batch_engine.define("base.a", "#abcdef")

        report = batch_engine.flush()

        assert report.processed_keys == ["base.a", "base.b", "base.c"]
        assert report.errors == []
        assert batch_engine.resolve("base.c") == "#abcdef"
        assert report.error_report.total_errors == 0
        assert batch_engine.batch_queue_size == 0

    def test_flush_fires_one_change_event(self, batch_engine):
        """Change and completion events fire once per flush."""
        changes = Mock()
        complete = Mock()
        batch_engine.on_change(changes)
        batch_engine.on_batch_complete(complete)

        batch_engine.define("base.a", "1")
        batch_engine.define("base.b", "2")
        report = batch_engine.flush()

        changes.assert_called_once()
        assert [c.key for c in changes.call_args[0][0]] == ["base.a", "base.b"]
        complete.assert_called_once_with(report)
        assert report.changed_keys == ["base.a", "base.b"]

    def test_flush_recomputes_dependents(self, batch_engine):
        """Dependents of a queued key are recomputed even if not queued."""
        batch_engine.define("base.a", "#fff")
        batch_engine.define("base.b", batch_engine.ref("base.a"))
        batch_engine.flush()

        batch_engine.set("base.a", "#000")
        report = batch_engine.flush()

        assert report.queued_keys == ["base.a"]
        assert report.processed_keys == ["base.a", "base.b"]
        assert batch_engine.resolve("base.b") == "#000"

    def test_watchers_fire_after_flush(self, batch_engine):
        watcher = Mock()
        batch_engine.define("base.a", "#fff")
        batch_engine.flush()
        batch_engine.watch("base.a", watcher)

        batch_engine.set("base.a", "#000")
        watcher.assert_not_called()
        batch_engine.flush()
        watcher.assert_called_once_with("#000", "#fff")

    def test_empty_flush(self, batch_engine):
        """Flushing an empty queue reports nothing and fires no change."""
        handler = Mock()
        batch_engine.on_change(handler)
        report = batch_engine.flush()
        assert report.processed_keys == []
        handler.assert_not_called()


class TestSortFailure:
    """Test cycle handling during flush."""

    def test_cycle_fails_whole_batch(self, batch_engine):
        """Nothing is applied and every queued key is reported."""
        batch_engine.define("base.x", "#fff")
        batch_engine.flush()

        failed = Mock()
        complete = Mock()
        batch_engine.on_batch_failed(failed)
        batch_engine.on_batch_complete(complete)

        batch_engine.set("base.x", "#000")
        batch_engine.define("base.a", batch_engine.ref("base.b"))
        batch_engine.define("base.b", batch_engine.ref("base.a"))

        report = batch_engine.flush()

        assert report.failed is True
        assert report.stage == "sorting"
        assert isinstance(report.error, CircularDependencyError)
        assert report.queued_keys == ["base.x", "base.a", "base.b"]
        assert "3 keys" in report.summary
        failed.assert_called_once_with(report)
        complete.assert_not_called()

        assert batch_engine.resolve("base.x") == "#fff"
        assert batch_engine.batch_queue_size == 0


class TestPartialSuccess:
    """Test per-key failures during flush."""

    def test_failing_key_does_not_stop_batch(self, batch_engine):
        """Other keys still resolve; the failure is in the report."""
        batch_engine.define("base.broken", batch_engine.ref("base.missing"))
        batch_engine.define("base.ok", "#fff")

        report = batch_engine.flush()

        assert report.failed is False
        assert [f.key for f in report.errors] == ["base.broken"]
        assert report.errors[0].kind == ErrorKind.DEFINITION.value
        assert report.changed_keys == ["base.ok"]
        assert "1 errors" in report.summary
        assert report.error_report.by_kind == {"definition": 1}
        assert report.to_dict()["error_report"]["keys"] == ["base.broken"]

    def test_failing_function(self, batch_engine):
        """Exceptions from functions are wrapped and reported."""
        def explode(value):
            raise RuntimeError("boom")

        batch_engine.register_value_modifier("explode", explode)
        batch_engine.define("base.a", "#fff")
        batch_engine.define("base.b", batch_engine.call("explode", "base.a"))

        report = batch_engine.flush()

        assert report.errors[0].kind == ErrorKind.RESOLUTION.value
        assert report.error_report.summary == "1 key(s) failed (1 resolution)"
        assert report.errors[0].to_dict()["error"]["function_name"] == "explode"
        with pytest.raises(ResolutionError):
            batch_engine.resolve("base.b")


class TestModeSwitching:
    """Test switching between auto and batch."""

    def test_switch_does_not_flush(self, batch_engine):
        """The queue survives a switch to auto and back."""
        batch_engine.define("base.a", "#fff")
        batch_engine.mode = UpdateMode.AUTO

        assert batch_engine.batch_queue_size == 1
        assert batch_engine.flush() is None

        batch_engine.mode = "batch"
        report = batch_engine.flush()
        assert report.processed_keys == ["base.a"]

    def test_auto_mode_resolves_immediately_after_switch(self, batch_engine):
        batch_engine.mode = "auto"
        batch_engine.define("base.a", "#fff")
        assert batch_engine.batch_queue_size == 0
        assert batch_engine.get_event_history(limit=1)[0][1][0].key == "base.a"
