"""Tests for task event fan-out."""

from soragen.tasks import Notifier, Task

from fakes import EventRecorder


class TestNotifier:
    """Tests for Notifier."""

    def test_publish_reaches_all_observers(self) -> None:
        notifier = Notifier()
        first, second = EventRecorder(), EventRecorder()
        notifier.subscribe(first)
        notifier.subscribe(second)

        notifier.publish("task_created", Task(id="t1", prompt="p"))

        assert first.types == ["task_created"]
        assert second.types == ["task_created"]
        assert first.events[0].to_message()["task"]["id"] == "t1"

    def test_subscribe_is_idempotent(self) -> None:
        notifier = Notifier()
        recorder = EventRecorder()
        notifier.subscribe(recorder)
        notifier.subscribe(recorder)
        assert notifier.observer_count == 1

        notifier.unsubscribe(recorder)
        notifier.unsubscribe(recorder)
        assert notifier.observer_count == 0

    def test_failing_observer_is_skipped(self, caplog) -> None:
        """Test one broken observer does not block the others."""
        notifier = Notifier()
        recorder = EventRecorder()

        def broken(event):
            raise RuntimeError("socket gone")

        notifier.subscribe(broken)
        notifier.subscribe(recorder)

        notifier.publish("task_update", Task(id="t1", prompt="p"))

        assert recorder.types == ["task_update"]
        assert "Dropped task_update for task t1" in caplog.text
