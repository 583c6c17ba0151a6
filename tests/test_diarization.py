"""Tests for two-speaker attribution of transcripts."""

import pytest

from analyzer.app.services.diarization import (
    SPEAKER_A,
    SPEAKER_B,
    SPEAKER_RULES,
    AttributionRule,
    TranscriptSegment,
    attribute_speakers,
    next_speaker,
    other_speaker,
    sentence_words,
    split_sentences,
)


def speakers(transcript: str) -> list[str]:
    return [s.speaker for s in attribute_speakers(transcript)]


class TestSplitting:
    """Tests for sentence and word splitting."""

    def test_split_on_terminal_punctuation(self):
        assert split_sentences("Is this ready? Yes it is. Great!  Ship it.") == [
            "Is this ready?",
            "Yes it is.",
            "Great!",
            "Ship it.",
        ]

    def test_split_drops_empty_fragments(self):
        assert split_sentences("   ") == []
        assert split_sentences("") == []

    def test_trailing_text_without_punctuation_is_kept(self):
        assert split_sentences("Hello there. and then") == ["Hello there.", "and then"]

    def test_split_after_closing_quote_or_bracket(self):
        assert split_sentences('He asked "is it ready?" Then he left. (Really.) Done.') == [
            'He asked "is it ready?"',
            "Then he left.",
            "(Really.)",
            "Done.",
        ]

    def test_words_ignore_punctuation_and_case(self):
        assert sentence_words("Yes, I'm HERE!") == frozenset({"yes", "i'm", "here"})

    def test_curly_apostrophes_are_normalized(self):
        assert "don't" in sentence_words("Don’t do that.")


class TestAttributeSpeakers:
    """Tests for the rule chain over whole transcripts."""

    def test_documented_example(self):
        """Question flips, then a first-person sentence stays with the answerer."""
        segments = attribute_speakers("Is this ready? Yes it is. I will send it tomorrow.")

        assert segments == [
            TranscriptSegment(SPEAKER_A, "Is this ready?"),
            TranscriptSegment(SPEAKER_B, "Yes it is."),
            TranscriptSegment(SPEAKER_B, "I will send it tomorrow."),
        ]

    def test_empty_transcript(self):
        assert attribute_speakers("") == []

    def test_single_sentence_is_speaker_a(self):
        assert speakers("Just one statement here.") == [SPEAKER_A]

    def test_second_person_addresses_other_speaker(self):
        assert speakers("We went home. You should come too.") == [SPEAKER_A, SPEAKER_B]

    def test_agreement_flips(self):
        assert speakers("We ship today. Okay then.") == [SPEAKER_A, SPEAKER_B]

    def test_disagreement_with_apostrophe_flips(self):
        assert speakers("The build is green. Don't merge it yet.") == [SPEAKER_A, SPEAKER_B]

    def test_turn_taking_after_two_segments(self):
        """Neutral sentences flip once a label has held two segments."""
        assert speakers("The sky is blue. The grass is green. The sun is hot.") == [
            SPEAKER_A,
            SPEAKER_A,
            SPEAKER_B,
        ]

    def test_question_outranks_first_person(self):
        assert speakers("Did the deploy finish? I think so.") == [SPEAKER_A, SPEAKER_B]

    def test_quoted_question_flips(self):
        """A question mark before a closing quote or bracket still counts."""
        assert speakers('She asked "is it done?" I finished it.') == [SPEAKER_A, SPEAKER_B]
        assert speakers("(Did it ship?) The build is green.") == [SPEAKER_A, SPEAKER_B]

    def test_reaction_outranks_first_person(self):
        assert speakers("That plan works. Yes, I agree.") == [SPEAKER_A, SPEAKER_B]

    def test_mixed_person_falls_through_to_turn_taking(self):
        """A sentence with both "I" and "you" matches neither person rule."""
        assert speakers("Budget is fixed. I told you so.") == [SPEAKER_A, SPEAKER_A]

    def test_is_pure(self):
        transcript = (
            "Welcome everyone. Can you hear me? Yes, loud and clear. "
            "I have the slides ready. Your first point looks good."
        )
        assert attribute_speakers(transcript) == attribute_speakers(transcript)

    @pytest.mark.parametrize(
        "transcript",
        [
            "Is it done? Yes. No. Maybe? Sure. I guess. You think so? Right.",
            "One. Two. Three. Four. Five. Six. Seven.",
            "I think. You know. I do. You do. Okay. Nope.",
        ],
    )
    def test_at_most_two_labels_and_first_is_a(self, transcript):
        labels = speakers(transcript)

        assert labels[0] == SPEAKER_A
        assert set(labels) <= {SPEAKER_A, SPEAKER_B}

    def test_segments_serialize(self):
        segment = attribute_speakers("Hello there.")[0]
        assert segment.to_dict() == {"speaker": SPEAKER_A, "text": "Hello there."}


class TestNextSpeaker:
    """Tests for single-step attribution and rule ordering."""

    def test_no_history_is_speaker_a(self):
        assert next_speaker([], "You there?") == SPEAKER_A

    def test_other_speaker(self):
        assert other_speaker(SPEAKER_A) == SPEAKER_B
        assert other_speaker(SPEAKER_B) == SPEAKER_A

    def test_rule_order(self):
        assert [rule.name for rule in SPEAKER_RULES] == [
            "question_answered",
            "agreement_or_disagreement",
            "first_person_continues",
            "second_person_addresses",
            "turn_taking",
        ]

    def test_no_matching_rule_keeps_speaker(self):
        history = [TranscriptSegment(SPEAKER_B, "Something.")]
        assert next_speaker(history, "Nothing to see.", rules=()) == SPEAKER_B

    def test_custom_rule_chain(self):
        always_flip = AttributionRule("always", lambda history, words: True, flip=True)
        history = [TranscriptSegment(SPEAKER_A, "First.")]

        assert next_speaker(history, "Second.", rules=(always_flip,)) == SPEAKER_B
