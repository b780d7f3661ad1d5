"""Conversation-level insight aggregation."""

import logging

from conversation_pipeline.domain.models import (
    ConversationFlow,
    ConversationInsights,
    LongestMessage,
    Message,
    Speaker,
    SpeakingTimeShare,
)

logger = logging.getLogger(__name__)


class InsightGenerator:
    """Derives conversation insights from speakers and messages."""

    def generate(
        self, speakers: list[Speaker], messages: list[Message], total_duration: float
    ) -> ConversationInsights:
        """
        Computes message-type counts, lengths, flow and speaking-time shares.

        Args:
            speakers: Speaker roster from the structurer.
            messages: Ordered messages from the structurer.
            total_duration: Conversation length in seconds.

        Returns:
            ConversationInsights computed from scratch.
        """
        counts = {"question": 0, "response": 0, "statement": 0, "interruption": 0}
        for message in messages:
            if message.message_type in counts:
                counts[message.message_type] += 1

        average_length = (
            round(sum(m.word_count for m in messages) / len(messages), 2)
            if messages
            else 0.0
        )

        longest = LongestMessage()
        for message in messages:
            if message.word_count > longest.length:
                longest = LongestMessage(
                    message_id=message.message_id, length=message.word_count
                )

        flow = self._classify_flow(
            counts["question"], counts["response"], counts["statement"], len(messages)
        )

        insights = ConversationInsights(
            total_messages=len(messages),
            question_count=counts["question"],
            response_count=counts["response"],
            statement_count=counts["statement"],
            interruption_count=counts["interruption"],
            average_message_length=average_length,
            longest_message=longest,
            conversation_flow=flow,
            speaking_time_distribution=self._distribution(speakers, total_duration),
        )

        logger.info(
            "Insights generated",
            extra={"conversation_flow": flow, "total_messages": len(messages)},
        )
        return insights

    def _classify_flow(
        self, questions: int, responses: int, statements: int, total: int
    ) -> ConversationFlow:
        if total == 0:
            return "unknown"

        question_ratio = questions / total
        response_ratio = responses / total

        if question_ratio > 0.4 and response_ratio > 0.3:
            return "question_answer_pattern"
        if question_ratio > 0.3:
            return "interview"
        if total > 20 and question_ratio > 0.2:
            return "meeting"
        if response_ratio < 0.2 and statements > total * 0.6:
            return "monologue"
        return "discussion"

    def _distribution(
        self, speakers: list[Speaker], total_duration: float
    ) -> list[SpeakingTimeShare]:
        # Shares are of the whole recording, so pauses leave the sum below 100.
        return [
            SpeakingTimeShare(
                speaker_id=speaker.id,
                percentage=(
                    round(speaker.total_speaking_time / total_duration * 100, 2)
                    if total_duration > 0
                    else 0.0
                ),
                total_time=speaker.total_speaking_time,
            )
            for speaker in speakers
        ]
