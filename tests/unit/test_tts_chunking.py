# tests/unit/test_tts_chunking.py

import random

import pytest

from orchestrator.chunking import needs_split, split_text
from constants import TTS_MAX_INPUT_BYTES


def _sizes(chunks: list[str]) -> list[int]:
    return [len(c.encode("utf-8")) for c in chunks]


def test_short_text_is_a_single_chunk():
    assert split_text("Hello world.") == ["Hello world."]


def test_empty_text_yields_no_chunks():
    assert split_text("") == []


def test_text_of_exactly_max_bytes_is_not_split():
    text = "x" * TTS_MAX_INPUT_BYTES

    assert split_text(text) == [text]
    assert needs_split(text) is False
    assert needs_split(text + "x") is True


def test_sentence_terminator_past_midpoint_wins():
    # 1300 bytes, periods at 700 and 1200; only the first is in the window
    text = "a" * 700 + "." + "b" * 499 + "." + "c" * 99
    assert len(text.encode("utf-8")) == 1300

    chunks = split_text(text)

    assert chunks == ["a" * 700 + ".", "b" * 499 + "." + "c" * 99]


def test_sentence_terminator_preferred_over_later_clause_separator():
    text = "a" * 11 + "." + "bb," + "b" * 20

    chunks = split_text(text, max_bytes=20)

    assert chunks[0] == "a" * 11 + "."
    assert "".join(chunks) == text


def test_clause_separator_used_when_no_sentence_terminator():
    text = "a" * 12 + "," + "b" * 20

    chunks = split_text(text, max_bytes=20)

    assert chunks == ["a" * 12 + ",", "b" * 20]


def test_break_before_midpoint_is_ignored():
    text = "aaa." + "b" * 30

    chunks = split_text(text, max_bytes=20)

    # Forced cut at 80% of the window
    assert chunks == ["aaa." + "b" * 12, "b" * 18]


def test_wide_punctuation_is_a_sentence_break():
    text = "你" * 6 + "。" + "好" * 10

    chunks = split_text(text, max_bytes=30)

    assert chunks == ["你" * 6 + "。", "好" * 10]


def test_forced_cut_moves_forward_onto_character_boundary():
    text = "你" * 20

    chunks = split_text(text, max_bytes=10)

    assert chunks == ["你你你"] * 6 + ["你你"]


def test_forced_cut_falls_back_when_window_ends_mid_character():
    # Window "ab" + 3 of the emoji's 4 bytes; forward walk reaches the end
    chunks = split_text("ab\U0001F600c", max_bytes=5)

    assert chunks == ["ab", "\U0001F600c"]


def test_invalid_max_bytes_raises():
    with pytest.raises(ValueError):
        split_text("hello", max_bytes=0)


def test_character_larger_than_max_bytes_raises():
    with pytest.raises(ValueError):
        split_text("你", max_bytes=2)


def test_random_texts_preserve_content_and_byte_ceiling():
    rng = random.Random(1234)
    alphabet = ["a", "b", " ", ".", ",", "你", "。", "，", "é", "\U0001F600", "!", "；"]

    for _ in range(300):
        text = "".join(rng.choice(alphabet) for _ in range(rng.randint(0, 400)))
        max_bytes = rng.randint(4, 64)

        chunks = split_text(text, max_bytes=max_bytes)

        assert "".join(chunks) == text
        assert all(chunks)
        assert all(size <= max_bytes for size in _sizes(chunks))
