import pytest

from conftest import recognition_result, two_speaker_result, words_for
from conversation_pipeline.domain.segmenter import DiarizationSegmenter
from conversation_pipeline.domain.structurer import (
    ConversationStructurer,
    classify_message,
)


@pytest.mark.parametrize(
    ("content", "expected"),
    [
        ("What time is it?", "question"),
        ("Yes, that works.", "response"),
        ("ok", "interruption"),
        ("The meeting starts at noon.", "statement"),
        ("Could you send the agenda over", "question"),
        ("That is right?", "question"),
        ("Well I think we should wait a bit longer", "response"),
        ("Sorry to jump in but the numbers are off", "interruption"),
        ("Hold on, the screen just froze completely", "interruption"),
        ("We are still waiting for the final numbers", "interruption"),
        ("The awaited release finally shipped this week", "interruption"),
        ("Whatever happens we ship on Friday", "statement"),
    ],
)
def test_classify_message(content, expected):
    assert classify_message(content) == expected


def test_classification_is_deterministic():
    assert classify_message("Right, let's go.") == classify_message("Right, let's go.")


def _structure(result):
    return ConversationStructurer().structure(DiarizationSegmenter().segment(result))


def test_speakers_and_messages_from_two_speaker_call():
    speakers, messages = _structure(two_speaker_result())

    assert [s.id for s in speakers] == ["speaker_1", "speaker_2"]
    assert [s.label for s in speakers] == ["Speaker 1", "Speaker 2"]
    assert [m.message_id for m in messages] == ["msg_001", "msg_002", "msg_003"]
    assert [m.message_type for m in messages] == ["question", "response", "statement"]
    assert speakers[0].total_speaking_time == 40.0
    assert speakers[1].total_speaking_time == 13.0


def test_message_counts_match_messages():
    speakers, messages = _structure(two_speaker_result())

    assert sum(s.message_count for s in speakers) == len(messages)
    speaker_ids = {s.id for s in speakers}
    assert all(m.speaker_id in speaker_ids for m in messages)
    assert [s.message_count for s in speakers] == [2, 1]


def test_order_follows_start_time():
    speakers, messages = _structure(two_speaker_result())

    assert [m.order for m in messages] == [1, 2, 3]
    starts = [m.start_time for m in messages]
    assert starts == sorted(starts)


def test_speakers_sorted_by_tag():
    words = words_for("first words here", 0.0, 3.0, tag=3) + words_for(
        "and then more", 3.0, 6.0, tag=1
    )

    speakers, messages = _structure(recognition_result(words))

    assert [s.id for s in speakers] == ["speaker_1", "speaker_3"]
    assert messages[0].speaker_id == "speaker_3"


def test_characteristics_are_rounded():
    speakers, _ = _structure(two_speaker_result())

    characteristics = speakers[0].characteristics
    assert characteristics.confidence_score == 0.9
    assert characteristics.average_segment_length == 20.0


def test_word_count_by_whitespace():
    _, messages = _structure(two_speaker_result())

    assert [m.word_count for m in messages] == [6, 3, 9]
