from __future__ import annotations
import logging
import re

logger = logging.getLogger("continuum")

MAX_WORD_RUN = 20
MIN_WORD_RUN = 3
MIN_CHAR_OVERLAP = 10

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_LEADING_JUNK = re.compile(r"^[.\s,;:]+")
_SENTENCE_PUNCT = (".", ",", "!", "?", ";", ":")


def _starts_with_ci(text: str, head: str) -> bool:
    # slice before folding so the comparison never shifts lengths
    return text[: len(head)].lower() == head.lower()


def _drop_full_echo(original: str, completion: str) -> str:
    whole = original.strip()
    if whole and _starts_with_ci(completion, whole):
        logger.debug("echo: removed full text repetition")
        return completion[len(original):].strip()
    return completion


def _drop_word_run_echo(original: str, completion: str) -> str:
    words = original.split()
    for n in range(min(MAX_WORD_RUN, len(words)), MIN_WORD_RUN - 1, -1):
        run = " ".join(words[-n:])
        if _starts_with_ci(completion, run):
            logger.debug("echo: removed %d word repetition", n)
            return completion[len(run):].strip()
    return completion


def _longest_char_overlap(original: str, completion: str) -> int:
    best = 0
    for i in range(MIN_CHAR_OVERLAP, min(len(original), len(completion)) + 1):
        if original[-i:].lower() == completion[:i].lower():
            best = i
    return best


def _drop_char_overlap(original: str, completion: str) -> str:
    n = _longest_char_overlap(original, completion)
    if n:
        logger.debug("echo: removed %d character repetition", n)
        return completion[n:].strip()
    return completion


def _drop_sentence_echo(original: str, completion: str) -> str:
    sentences = [s for s in _SENTENCE_SPLIT.split(original) if s.strip()]
    for k in range(len(sentences), 0, -1):
        tail = ".".join(sentences[-k:]).strip()
        if tail and _starts_with_ci(completion, tail):
            logger.debug("echo: removed %d sentence repetition", k)
            return completion[len(tail):].strip()
    return completion


def _tidy(original: str, completion: str) -> str:
    completion = _LEADING_JUNK.sub("", completion).strip()
    if completion and not original.endswith(" ") and not completion.startswith(_SENTENCE_PUNCT):
        completion = " " + completion
    return completion


def clean(original: str, raw: str) -> str:
    """
    Strip `raw` of any leading material that repeats the tail of `original`.

    Generators echo their prompt at several granularities, so the passes run
    coarsest first: whole text, trailing word run (20 down to 3 words),
    longest raw character overlap (>= 10 chars), trailing sentences. Matching
    ignores case; the returned text keeps the casing of `raw`. The result is
    trimmed and, when it needs one, prefixed with a single joining space. An
    empty string means there is nothing new to add.
    """
    completion = raw
    completion = _drop_full_echo(original, completion)
    completion = _drop_word_run_echo(original, completion)
    completion = _drop_char_overlap(original, completion)
    completion = _drop_sentence_echo(original, completion)
    return _tidy(original, completion)


class RemoveEcho:
    def process(self, original: str, completion: str) -> str:
        return clean(original, completion)
