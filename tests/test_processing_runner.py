import pytest

from conftest import FakeGateway
from conversation_pipeline.config import CostConfig
from conversation_pipeline.exceptions import (
    ConversationNotFoundError,
    RecognitionUnavailableError,
)
from conversation_pipeline.handlers import ConversationPipeline, ProcessingRunner


@pytest.fixture
def runner(pipeline):
    runner = ProcessingRunner(pipeline, max_workers=2)
    yield runner
    runner.shutdown()


def test_submit_returns_future_with_result(runner, store):
    future = runner.submit("conv-1")

    result = future.result(timeout=10)
    assert result.status == "completed"
    assert store.records["conv-1"].status == "completed"


def test_submit_unknown_conversation_fails_fast(runner):
    with pytest.raises(ConversationNotFoundError):
        runner.submit("missing")


def test_failure_is_visible_on_future(store, storage, cost_monitor):
    error = RecognitionUnavailableError("s3://conversations/x")
    pipeline = ConversationPipeline(
        store, storage, FakeGateway(error=error), cost_monitor, CostConfig()
    )
    runner = ProcessingRunner(pipeline, max_workers=1)

    future = runner.submit("conv-1")
    runner.shutdown()

    assert isinstance(future.exception(timeout=10), RecognitionUnavailableError)
    assert store.records["conv-1"].status == "failed"


def test_duplicate_submissions_process_once(runner, gateway):
    futures = [runner.submit("conv-1") for _ in range(3)]
    results = [f.result(timeout=10) for f in futures]

    assert sum(1 for r in results if r is not None) == 1
    assert len(gateway.calls) == 1


def test_run_is_synchronous(runner, store):
    result = runner.run("conv-1", "budget")

    assert result.status == "completed"
    assert store.records["conv-1"].metadata.cost_info.tier == "budget"
