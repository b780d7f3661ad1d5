"""Speaker segmentation of word-level recognition output."""

import logging

from conversation_pipeline.domain.recognition import (
    DiarizationResult,
    RecognitionResult,
    RecognizedWord,
    SpeakerSegment,
)
from conversation_pipeline.exceptions import NoSpeakerSegmentsError

logger = logging.getLogger(__name__)


class DiarizationSegmenter:
    """Groups speaker-tagged words into contiguous per-speaker segments."""

    def segment(self, result: RecognitionResult) -> DiarizationResult:
        """
        Converts recognition output into speaker segments.

        Only the best alternative of each recognition segment is used, and
        segments without any positively tagged word are skipped entirely.

        Args:
            result: Normalized recognition result.

        Returns:
            DiarizationResult with segments in chronological order.

        Raises:
            NoSpeakerSegmentsError: If no speaker segment could be formed.
        """
        segments: list[SpeakerSegment] = []
        speaker_totals: dict[int, float] = {}
        total_duration = 0.0

        for recognition_segment in result.segments:
            alternative = recognition_segment.best
            if alternative is None or not alternative.words:
                continue

            words = sorted(alternative.words, key=lambda w: w.start_time)
            total_duration = max(total_duration, max(w.end_time for w in words))

            if not any(w.speaker_tag > 0 for w in words):
                continue

            current: SpeakerSegment | None = None
            for word in words:
                speaker_tag = word.speaker_tag or 1

                if current is not None and current.speaker_tag == speaker_tag:
                    self._extend(current, word)
                    continue

                if current is not None:
                    self._close(current, segments, speaker_totals)
                current = SpeakerSegment(
                    speaker_tag=speaker_tag,
                    start_time=word.start_time,
                    end_time=word.end_time,
                    confidence=word.confidence,
                    transcript=word.word,
                )

            if current is not None:
                self._close(current, segments, speaker_totals)

        if not segments:
            raise NoSpeakerSegmentsError(len(result.segments))

        logger.info(
            "Diarization complete",
            extra={
                "speaker_count": len(speaker_totals),
                "segment_count": len(segments),
                "total_duration": round(total_duration, 2),
            },
        )

        return DiarizationResult(
            segments=segments,
            speaker_count=len(speaker_totals),
            total_duration=total_duration,
        )

    def _extend(self, segment: SpeakerSegment, word: RecognizedWord) -> None:
        segment.word_count += 1
        segment.end_time = max(segment.end_time, word.end_time)
        segment.transcript = f"{segment.transcript} {word.word}"
        # Running arithmetic mean of the word confidences seen so far.
        segment.confidence += (word.confidence - segment.confidence) / segment.word_count

    def _close(
        self,
        segment: SpeakerSegment,
        segments: list[SpeakerSegment],
        speaker_totals: dict[int, float],
    ) -> None:
        segments.append(segment)
        speaker_totals[segment.speaker_tag] = speaker_totals.get(
            segment.speaker_tag, 0.0
        ) + (segment.end_time - segment.start_time)
