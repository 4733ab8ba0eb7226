# pylint: disable=missing-module-docstring,missing-function-docstring

from context.transcript import ScriptTranscript


def test_consecutive_script_fragments_merge():
    transcript = ScriptTranscript()

    transcript.add_script("Welcome. ")
    transcript.add_script("Today: black holes.")

    assert len(transcript) == 1
    assert transcript.script_text() == "Welcome. Today: black holes."


def test_exchange_splits_script_entries():
    transcript = ScriptTranscript()

    transcript.add_script("Part one. ")
    transcript.add_exchange("Why?", "Because.")
    transcript.add_script("Part two.")

    assert len(transcript) == 4
    assert transcript.script_text() == "Part one. Part two."


def test_long_script_keeps_most_recent_text():
    transcript = ScriptTranscript(max_chars=10)

    transcript.add_script("0123456789")
    transcript.add_script("abc")

    assert transcript.script_text() == "3456789abc"


def test_oldest_entries_dropped_over_budget(events):
    transcript = ScriptTranscript("s1", max_chars=12)

    transcript.add_script("script")
    transcript.add_exchange("question", "ans")

    assert transcript.script_text() == ""
    assert len(transcript) == 2
    dropped = [e for e in events if e["event_type"] == "transcript_entry_dropped"]
    assert [e["role"] for e in dropped] == ["script"]


def test_single_oversized_entry_is_kept(events):
    transcript = ScriptTranscript(max_chars=4)

    transcript.add_exchange("", "a much longer answer")

    assert len(transcript) == 1
    assert any(e["event_type"] == "transcript_single_entry_oversized" for e in events)


def test_clear_empties_transcript():
    transcript = ScriptTranscript()
    transcript.add_script("x")
    transcript.clear()

    assert len(transcript) == 0
    assert transcript.script_text() == ""
