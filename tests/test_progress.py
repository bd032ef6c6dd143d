"""Tests for render progress tracking."""

from vedit.render.progress import ProgressTracker, RenderEventType


def _collect(tracker):
    events = []
    tracker.subscribe(events.append)
    return events


def test_start_carries_command():
    tracker = ProgressTracker("rotate")
    events = _collect(tracker)
    tracker.start("ffmpeg -i in.mp4 out.mp4")
    assert events[0].type == RenderEventType.START
    assert events[0].command == "ffmpeg -i in.mp4 out.mp4"


def test_percent_is_clamped():
    tracker = ProgressTracker()
    tracker.update(150)
    assert tracker.percent == 100.0

    tracker = ProgressTracker()
    tracker.update(-10)
    assert tracker.percent == 0.0


def test_percent_never_moves_backwards():
    tracker = ProgressTracker()
    events = _collect(tracker)
    tracker.update(40)
    tracker.update(30)
    tracker.update(60, "Encoding", stage="encode")
    assert [e.percent for e in events] == [40.0, 60.0]
    assert tracker.stage == "encode"


def test_single_terminal_event():
    tracker = ProgressTracker()
    events = _collect(tracker)
    tracker.update(50)
    tracker.complete()
    tracker.fail("late failure")
    tracker.update(70)

    terminal = [e for e in events if e.terminal]
    assert len(terminal) == 1
    assert terminal[0].type == RenderEventType.COMPLETE
    assert tracker.get_progress()["percent"] == 100.0


def test_failure_keeps_last_percent():
    tracker = ProgressTracker()
    events = _collect(tracker)
    tracker.update(35)
    tracker.fail("exit code 1")
    assert events[-1].type == RenderEventType.ERROR
    assert events[-1].percent == 35.0
    assert tracker.finished


def test_listener_failure_is_isolated():
    tracker = ProgressTracker()

    def broken(event):
        raise RuntimeError("listener bug")

    tracker.subscribe(broken)
    events = _collect(tracker)
    tracker.update(10)
    assert len(events) == 1


def test_unsubscribe():
    tracker = ProgressTracker()
    events = []
    unsubscribe = tracker.subscribe(events.append)
    tracker.update(10)
    unsubscribe()
    unsubscribe()
    tracker.update(20)
    assert len(events) == 1
    assert len(tracker.events) == 2
