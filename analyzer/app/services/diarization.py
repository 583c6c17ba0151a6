"""Heuristic speaker attribution over a plain transcript.

Splits a transcript into sentences and assigns each one to one of two
speaker labels using an ordered rule chain. The first rule whose
predicate matches decides whether the label flips; rule order is part of
the observable behavior.

This is a best-effort heuristic, not acoustic diarization.
"""

import re
from dataclasses import dataclass
from typing import Callable, FrozenSet, List, Sequence, Tuple

SPEAKER_A = "Speaker 1"
SPEAKER_B = "Speaker 2"

AGREEMENT_WORDS = frozenset({"yes", "yeah", "sure", "okay", "right", "exactly"})
DISAGREEMENT_WORDS = frozenset({"no", "nope", "not", "don't", "doesn't"})
FIRST_PERSON_WORDS = frozenset({"i", "i'm", "i've", "i'll", "my", "me"})
SECOND_PERSON_WORDS = frozenset({"you", "you're", "you've", "your"})

_CLOSERS = "\"')]”’"
# Terminal punctuation, optionally followed by one closing quote or bracket
_SENTENCE_SPLIT_RE = re.compile(r"""(?:(?<=[.!?])|(?<=[.!?]["')\]”’]))\s+""")
_WORD_RE = re.compile(r"[a-z0-9]+(?:'[a-z]+)?")


@dataclass(frozen=True)
class TranscriptSegment:
    speaker: str
    text: str

    def to_dict(self) -> dict:
        return {"speaker": self.speaker, "text": self.text}


@dataclass(frozen=True)
class AttributionRule:
    """One entry of the rule chain.

    Attributes:
        name: Identifier used in logs and tests
        applies: Predicate over (segments so far, words of the sentence)
        flip: Whether a match switches to the other speaker
    """
    name: str
    applies: Callable[[Sequence[TranscriptSegment], FrozenSet[str]], bool]
    flip: bool


def split_sentences(transcript: str) -> List[str]:
    """Split on terminal punctuation followed by whitespace, dropping empties."""
    return [s.strip() for s in _SENTENCE_SPLIT_RE.split(transcript or "") if s.strip()]


def sentence_words(sentence: str) -> FrozenSet[str]:
    normalized = sentence.lower().replace("’", "'")
    return frozenset(_WORD_RE.findall(normalized))


def _follows_question(history: Sequence[TranscriptSegment], words: FrozenSet[str]) -> bool:
    return history[-1].text.rstrip(_CLOSERS).endswith("?")


def _has_reaction(history: Sequence[TranscriptSegment], words: FrozenSet[str]) -> bool:
    return bool(words & AGREEMENT_WORDS or words & DISAGREEMENT_WORDS)


def _first_person_only(history: Sequence[TranscriptSegment], words: FrozenSet[str]) -> bool:
    return bool(words & FIRST_PERSON_WORDS) and not words & SECOND_PERSON_WORDS


def _second_person_only(history: Sequence[TranscriptSegment], words: FrozenSet[str]) -> bool:
    return bool(words & SECOND_PERSON_WORDS) and not words & FIRST_PERSON_WORDS


def _label_held_twice(history: Sequence[TranscriptSegment], words: FrozenSet[str]) -> bool:
    return len(history) >= 2 and history[-1].speaker == history[-2].speaker


SPEAKER_RULES: Tuple[AttributionRule, ...] = (
    AttributionRule("question_answered", _follows_question, flip=True),
    AttributionRule("agreement_or_disagreement", _has_reaction, flip=True),
    AttributionRule("first_person_continues", _first_person_only, flip=False),
    AttributionRule("second_person_addresses", _second_person_only, flip=True),
    AttributionRule("turn_taking", _label_held_twice, flip=True),
)


def other_speaker(label: str) -> str:
    return SPEAKER_B if label == SPEAKER_A else SPEAKER_A


def next_speaker(
    history: Sequence[TranscriptSegment],
    sentence: str,
    rules: Sequence[AttributionRule] = SPEAKER_RULES,
) -> str:
    """Label for ``sentence`` given the segments attributed so far."""
    if not history:
        return SPEAKER_A

    current = history[-1].speaker
    words = sentence_words(sentence)
    for rule in rules:
        if rule.applies(history, words):
            return other_speaker(current) if rule.flip else current
    return current


def attribute_speakers(transcript: str) -> List[TranscriptSegment]:
    """Attribute every sentence of ``transcript`` to one of two speakers.

    Pure: the same transcript always yields the same segments.

    Example:
        >>> [s.speaker for s in attribute_speakers("Is this ready? Yes it is.")]
        ['Speaker 1', 'Speaker 2']
    """
    segments: List[TranscriptSegment] = []
    for sentence in split_sentences(transcript):
        segments.append(TranscriptSegment(next_speaker(segments, sentence), sentence))
    return segments
