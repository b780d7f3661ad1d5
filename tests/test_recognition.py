import pytest

from conversation_pipeline.domain.cost_policy import config_for_tier
from conversation_pipeline.domain.recognition import (
    AudioLocation,
    AudioProperties,
    RecognitionRequest,
    estimate_sample_rate,
    infer_encoding,
)


@pytest.mark.parametrize(
    ("mime_type", "expected"),
    [
        ("audio/wav", "LINEAR16"),
        ("audio/x-wav", "LINEAR16"),
        ("audio/mpeg", "MP3"),
        ("audio/m4a", "MP3"),
        ("audio/flac", "FLAC"),
        ("audio/webm", "WEBM_OPUS"),
        ("audio/ogg", "OGG_OPUS"),
    ],
)
def test_encoding_from_mime_type(mime_type, expected):
    assert infer_encoding("recording.bin", mime_type) == expected


@pytest.mark.parametrize(
    ("file_name", "expected"),
    [
        ("call.wav", "LINEAR16"),
        ("call.FLAC", "FLAC"),
        ("call.m4a", "MP3"),
        ("call.webm", "WEBM_OPUS"),
        ("ogg", "OGG_OPUS"),
    ],
)
def test_encoding_from_extension(file_name, expected):
    assert infer_encoding(file_name) == expected


def test_mime_type_takes_precedence_over_extension():
    assert infer_encoding("call.mp3", "audio/wav") == "LINEAR16"


def test_unknown_format_defaults_to_mp3():
    assert infer_encoding("call.aiff", "audio/aiff") == "MP3"
    assert infer_encoding("") == "MP3"


@pytest.mark.parametrize(
    ("sample_rate", "expected"),
    [(None, 16000), (8000, 8000), (16000, 16000), (44100, 16000)],
)
def test_sample_rate_is_capped(sample_rate, expected):
    assert estimate_sample_rate(sample_rate) == expected


def test_request_carries_resolved_features():
    location = AudioLocation(
        bucket_name="conversations", object_name="conversations/c1/audio/original.mp3"
    )
    audio = AudioProperties(encoding="MP3", sample_rate_hertz=16000, language_code="en-GB")

    request = RecognitionRequest.build(location, audio, config_for_tier("premium"))

    assert request.audio_uri == "s3://conversations/conversations/c1/audio/original.mp3"
    assert request.language_code == "en-GB"
    assert request.min_speaker_count == 1
    assert request.max_speaker_count == 8
    assert request.model == "latest_long"
    assert request.use_enhanced is True
    assert request.enable_word_time_offsets is True
    assert request.enable_data_logging is False
    assert request.max_alternatives == 1
