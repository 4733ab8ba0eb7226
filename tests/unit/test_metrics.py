# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from observability import metrics
from observability.metrics import (
    METRIC_ANSWER_PLAYBACK_MS,
    METRIC_INTERRUPTIONS,
    METRIC_QUESTION_RECORDING_MS,
    counter_value,
    increment,
    reset_counters,
    start_timer,
    stop_timer,
    timed,
)


def test_timed_emits_one_metric_and_leaks_nothing(events):
    before = len(metrics._active_timers)

    with timed(METRIC_ANSWER_PLAYBACK_MS, session_id="s1", state="THINKING"):
        pass

    emitted = [e for e in events if e["event_type"] == "METRIC_TIMER"]
    assert len(emitted) == 1
    assert emitted[0]["metric"] == "answer_playback_ms"
    assert emitted[0]["session_id"] == "s1"
    assert emitted[0]["state"] == "THINKING"
    assert emitted[0]["value_ms"] >= 0
    assert len(metrics._active_timers) == before


def test_timed_stops_timer_when_block_raises(events):
    before = len(metrics._active_timers)

    with pytest.raises(RuntimeError):
        with timed(METRIC_QUESTION_RECORDING_MS):
            raise RuntimeError("mic failed")

    assert len(metrics._active_timers) == before
    assert [e["metric"] for e in events if e["event_type"] == "METRIC_TIMER"] == ["question_recording_ms"]


def test_stop_timer_twice_emits_once(events):
    timer_id = start_timer("barge_in_to_playback_stop_ms")

    assert stop_timer(timer_id) is not None
    assert stop_timer(timer_id) is None
    assert stop_timer("timer_unknown") is None
    assert len([e for e in events if e["event_type"] == "METRIC_TIMER"]) == 1


def test_counter_totals_are_per_session(events):
    reset_counters("s1")
    reset_counters("s2")

    assert increment(METRIC_INTERRUPTIONS, session_id="s1", state="PLAYING") == 1
    assert increment(METRIC_INTERRUPTIONS, session_id="s1") == 2
    assert increment(METRIC_INTERRUPTIONS, session_id="s2") == 1

    assert counter_value(METRIC_INTERRUPTIONS, session_id="s1") == 2
    emitted = [e for e in events if e["event_type"] == "METRIC_COUNTER"]
    assert [(e["session_id"], e["value"]) for e in emitted] == [("s1", 1), ("s1", 2), ("s2", 1)]
    assert emitted[0]["metric"] == "interruptions"
    assert emitted[0]["state"] == "PLAYING"


def test_reset_counters_forgets_only_that_session():
    increment(METRIC_INTERRUPTIONS, session_id="keep")
    increment(METRIC_INTERRUPTIONS, session_id="drop")

    reset_counters("drop")

    assert counter_value(METRIC_INTERRUPTIONS, session_id="drop") == 0
    assert counter_value(METRIC_INTERRUPTIONS, session_id="keep") >= 1
    reset_counters("keep")
