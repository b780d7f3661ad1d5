import json

import pytest

from conftest import FakeGateway
from conversation_pipeline.config import CostConfig, RabbitMQConfig
from conversation_pipeline.exceptions import (
    ConversationPersistenceError,
    NoSpeechDetectedError,
)
from conversation_pipeline.handlers import ConversationPipeline
from conversation_pipeline.infrastructure.interfaces import MessageBroker
from conversation_pipeline.worker import Worker


class FakeBroker(MessageBroker):
    def __init__(self):
        self.acked = []
        self.rejected = []
        self.published = []

    def publish(self, routing_key, payload):
        self.published.append((routing_key, payload))

    def acknowledge(self, delivery_tag):
        self.acked.append(delivery_tag)

    def reject(self, delivery_tag, requeue=True):
        self.rejected.append((delivery_tag, requeue))

    def consume(self, callback):
        pass

    def setup(self):
        pass


@pytest.fixture
def broker():
    return FakeBroker()


@pytest.fixture
def rabbitmq_config():
    return RabbitMQConfig(host="localhost", user="guest", password="guest")


def _body(**payload):
    return json.dumps(payload).encode()


def test_processes_message_and_publishes_result(pipeline, broker, rabbitmq_config):
    worker = Worker(broker, pipeline, rabbitmq_config)

    worker._on_message(_body(conversation_id="conv-1"), 7, {"x-delivery-count": 1})

    assert broker.acked == [7]
    assert broker.rejected == []
    routing_key, payload = broker.published[0]
    assert routing_key == "conversation.processing.completed"
    assert payload["conversation_id"] == "conv-1"
    assert payload["status"] == "completed"
    assert payload["speaker_count"] == 2


def test_tier_from_message_is_used(pipeline, broker, rabbitmq_config, gateway):
    worker = Worker(broker, pipeline, rabbitmq_config)

    worker._on_message(_body(conversation_id="conv-1", tier="quality"), 1, None)

    assert gateway.calls[0][2].tier == "quality"


def test_invalid_message_is_dead_lettered(pipeline, broker, rabbitmq_config):
    worker = Worker(broker, pipeline, rabbitmq_config)

    worker._on_message(b'{"unexpected": true}', 3, None)
    worker._on_message(b"not json", 4, None)

    assert broker.rejected == [(3, False), (4, False)]
    assert broker.published == []


def test_skipped_conversation_is_acknowledged_without_event(
    pipeline, broker, rabbitmq_config
):
    worker = Worker(broker, pipeline, rabbitmq_config)
    pipeline.process("conv-1")

    worker._on_message(_body(conversation_id="conv-1"), 9, None)

    assert broker.acked == [9]
    assert broker.published == []


def test_failed_run_is_dead_lettered(store, storage, cost_monitor, broker, rabbitmq_config):
    gateway = FakeGateway(error=NoSpeechDetectedError("s3://conversations/x"))
    pipeline = ConversationPipeline(store, storage, gateway, cost_monitor, CostConfig())
    worker = Worker(broker, pipeline, rabbitmq_config)

    worker._on_message(_body(conversation_id="conv-1"), 5, None)

    assert broker.rejected == [(5, False)]
    assert store.records["conv-1"].status == "failed"


def test_store_outage_is_requeued(pipeline, broker, rabbitmq_config, store, monkeypatch):
    def unavailable(conversation_id):
        raise ConversationPersistenceError(conversation_id)

    monkeypatch.setattr(store, "get", unavailable)
    worker = Worker(broker, pipeline, rabbitmq_config)

    worker._on_message(_body(conversation_id="conv-1"), 6, None)

    assert broker.rejected == [(6, True)]
