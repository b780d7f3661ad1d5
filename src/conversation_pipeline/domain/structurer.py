"""Builds the speaker roster and ordered message list from speaker segments."""

import logging
import re

from conversation_pipeline.domain.models import (
    Message,
    MessageType,
    Speaker,
    SpeakerCharacteristics,
)
from conversation_pipeline.domain.recognition import DiarizationResult, SpeakerSegment

logger = logging.getLogger(__name__)

QUESTION_OPENERS = frozenset(
    {
        "what",
        "how",
        "when",
        "where",
        "why",
        "who",
        "can",
        "could",
        "would",
        "should",
        "do",
        "does",
        "did",
        "is",
        "are",
        "will",
    }
)
RESPONSE_OPENERS = frozenset({"yes", "no", "sure", "okay", "right", "exactly"})
RESPONSE_PHRASES = ("i think", "i believe", "i would say")
INTERRUPTION_MARKERS = ("wait", "sorry", "excuse me", "hold on")
INTERRUPTION_MAX_LENGTH = 10

_FIRST_TOKEN = re.compile(r"[a-z']+")


def classify_message(content: str) -> MessageType:
    """
    Classifies a message with an ordered lexical decision list.

    First match wins: question, response, interruption, then statement.
    """
    text = content.strip().lower()
    match = _FIRST_TOKEN.match(text)
    first_token = match.group(0) if match else ""

    if text.endswith("?") or first_token in QUESTION_OPENERS:
        return "question"
    if first_token in RESPONSE_OPENERS or any(p in text for p in RESPONSE_PHRASES):
        return "response"
    if len(content.strip()) < INTERRUPTION_MAX_LENGTH or any(
        marker in text for marker in INTERRUPTION_MARKERS
    ):
        return "interruption"
    return "statement"


class ConversationStructurer:
    """Converts diarization output into speakers and messages."""

    def structure(
        self, diarization: DiarizationResult
    ) -> tuple[list[Speaker], list[Message]]:
        """
        Builds speakers and chronologically ordered messages.

        Args:
            diarization: Segments produced by the segmenter.

        Returns:
            Tuple of (speakers sorted by tag, messages in start-time order).
        """
        segments = sorted(diarization.segments, key=lambda s: s.start_time)

        by_tag: dict[int, list[SpeakerSegment]] = {}
        for segment in segments:
            by_tag.setdefault(segment.speaker_tag, []).append(segment)

        speakers = [
            self._build_speaker(tag, by_tag[tag]) for tag in sorted(by_tag)
        ]

        messages: list[Message] = []
        for segment in segments:
            content = segment.transcript.strip()
            if not content:
                continue
            order = len(messages) + 1
            messages.append(
                Message(
                    message_id=f"msg_{order:03d}",
                    speaker_id=self._speaker_id(segment.speaker_tag),
                    content=content,
                    start_time=round(segment.start_time, 2),
                    end_time=round(segment.end_time, 2),
                    confidence=round(min(max(segment.confidence, 0.0), 1.0), 2),
                    message_type=classify_message(content),
                    order=order,
                    word_count=len(content.split()),
                )
            )

        for speaker in speakers:
            speaker.message_count = sum(
                1 for message in messages if message.speaker_id == speaker.id
            )

        logger.info(
            "Converted to conversation format",
            extra={"speaker_count": len(speakers), "message_count": len(messages)},
        )
        return speakers, messages

    def _speaker_id(self, tag: int) -> str:
        return f"speaker_{tag}"

    def _build_speaker(self, tag: int, segments: list[SpeakerSegment]) -> Speaker:
        lengths = [s.end_time - s.start_time for s in segments]
        average_confidence = sum(s.confidence for s in segments) / len(segments)

        return Speaker(
            id=self._speaker_id(tag),
            label=f"Speaker {tag}",
            total_speaking_time=round(sum(lengths), 2),
            characteristics=SpeakerCharacteristics(
                confidence_score=round(average_confidence, 2),
                average_segment_length=round(sum(lengths) / len(lengths), 2),
            ),
        )
