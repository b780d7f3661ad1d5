"""Conversation processing pipeline: recognition, diarization, structuring and cost control."""
