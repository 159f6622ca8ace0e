"""Tests for echo removal on generated continuations."""
from continuum.post_processors.remove_echo import RemoveEcho, clean, _longest_char_overlap


def test_full_echo_removed():
    assert clean("The cat sat.", "The cat sat. Then it slept.") == " Then it slept."


def test_word_run_echo_removed():
    assert clean("I love the quiet morning air", "quiet morning air was perfect for reading.") == " was perfect for reading."


def test_unrelated_continuation_only_respaced():
    assert clean("Hello world", "Goodbye moon.") == " Goodbye moon."


def test_longest_word_run_wins():
    # a shorter run ("d e f") also matches, the four-word run must be taken
    assert clean("a b c d e f", "c d e f g") == " g"


def test_character_overlap_removed():
    assert clean("The weather today is wonderful", "is wonderful and sunny") == " and sunny"


def test_character_overlap_inside_a_word():
    assert clean("I went to the supermarket", "upermarket to buy milk.") == " to buy milk."


def test_short_character_overlap_is_kept():
    # under ten characters is not treated as an echo
    assert clean("I went to the market", "arket stall.") == " arket stall."


def test_longest_character_overlap_is_kept_not_first():
    assert _longest_char_overlap("xx abab abab abab", "abab abab abab rest") == 14


def test_sentence_echo_removed():
    original = "It rained. We stayed in! Then the sun came out"
    raw = "We stayed in. Then the sun came out, and we went for a walk."
    assert clean(original, raw) == " and we went for a walk."


def test_matching_ignores_case_but_keeps_raw_casing():
    assert clean("the old man", "THE OLD MAN Walked home.") == " Walked home."


def test_no_space_added_after_trailing_space():
    assert clean("Once upon a time ", "there was a fox.") == "there was a fox."


def test_leading_separators_stripped():
    assert clean("Hello there", ", friend.") == " friend."


def test_no_space_before_sentence_punctuation():
    assert clean("She paused", "! Then she ran.") == "! Then she ran."


def test_empty_and_fully_echoed():
    assert clean("abc", "") == ""
    assert clean("The cat sat.", "The cat sat.") == ""
    assert clean("The cat sat.", "  ...  ") == ""


def test_cleaning_twice_changes_nothing():
    cases = [
        ("The cat sat.", "The cat sat. Then it slept."),
        ("I love the quiet morning air", "quiet morning air was perfect for reading."),
        ("Hello world", "Goodbye moon."),
        ("The weather today is wonderful", "is wonderful and sunny"),
        ("Once upon a time ", "there was a fox."),
    ]
    for original, raw in cases:
        once = clean(original, raw)
        assert clean(original, once) == once


def test_post_processor_shape():
    assert RemoveEcho().process("Hello world", "Goodbye moon.") == " Goodbye moon."
