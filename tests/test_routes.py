import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from conversation_pipeline.config import (
    AppConfig,
    CostConfig,
    MinioConfig,
    PostgresConfig,
    RabbitMQConfig,
    RedisConfig,
    RunnerConfig,
    SpeechConfig,
)
from conversation_pipeline.dependencies import (
    get_config,
    get_cost_monitor,
    get_pipeline,
    get_runner,
)
from conversation_pipeline.routes import conversations_router, costs_router


class RecordingRunner:
    def __init__(self, pipeline):
        self._pipeline = pipeline
        self.submitted = []

    def submit(self, conversation_id, selection=None):
        self._pipeline.require(conversation_id)
        self.submitted.append((conversation_id, selection))


@pytest.fixture
def app_config():
    return AppConfig(
        minio=MinioConfig(endpoint="localhost:9000", user="minio", password="minio"),
        postgres=PostgresConfig(
            host="localhost", user="app", password="app", port=5432, database="app"
        ),
        redis=RedisConfig(host="localhost"),
        rabbitmq=RabbitMQConfig(host="localhost", user="guest", password="guest"),
        speech=SpeechConfig(),
        cost=CostConfig(),
        runner=RunnerConfig(),
    )


@pytest.fixture
def runner(pipeline):
    return RecordingRunner(pipeline)


@pytest.fixture
def client(pipeline, runner, cost_monitor, app_config):
    app = FastAPI()
    app.include_router(conversations_router)
    app.include_router(costs_router)
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    app.dependency_overrides[get_runner] = lambda: runner
    app.dependency_overrides[get_cost_monitor] = lambda: cost_monitor
    app.dependency_overrides[get_config] = lambda: app_config
    return TestClient(app)


def test_start_processing_is_accepted(client, runner):
    response = client.post("/conversations/conv-1/processing")

    assert response.status_code == 202
    assert response.json() == {"conversation_id": "conv-1", "status": "accepted"}
    assert runner.submitted == [("conv-1", None)]


def test_start_processing_with_tier(client, runner):
    response = client.post("/conversations/conv-1/processing", json={"tier": "premium"})

    assert response.status_code == 202
    assert runner.submitted == [("conv-1", "premium")]


def test_overrides_take_precedence_over_tier(client, runner):
    response = client.post(
        "/conversations/conv-1/processing",
        json={"tier": "premium", "overrides": {"tier": "budget", "max_speakers": 2}},
    )

    assert response.status_code == 202
    selection = runner.submitted[0][1]
    assert selection.tier == "budget"
    assert selection.max_speakers == 2


def test_start_processing_unknown_tier(client, runner):
    response = client.post("/conversations/conv-1/processing", json={"tier": "gold"})

    assert response.status_code == 422
    assert runner.submitted == []


def test_start_processing_unknown_conversation(client):
    response = client.post("/conversations/missing/processing")

    assert response.status_code == 404


def test_start_processing_conflict(client, store, runner):
    store.records["conv-1"].status = "processing"

    response = client.post("/conversations/conv-1/processing")

    assert response.status_code == 409
    assert runner.submitted == []


def test_start_processing_unexpected_error(client, runner, monkeypatch):
    def boom(*args):
        raise RuntimeError("executor gone")

    monkeypatch.setattr(runner, "submit", boom)

    response = client.post("/conversations/conv-1/processing")

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}


def test_progress(client):
    response = client.get("/conversations/conv-1/progress")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "uploaded"
    assert body["percentage"] == 0


def test_progress_after_processing(client, pipeline):
    pipeline.process("conv-1")

    body = client.get("/conversations/conv-1/progress").json()

    assert body["status"] == "completed"
    assert body["percentage"] == 100


def test_progress_unknown_conversation(client):
    assert client.get("/conversations/missing/progress").status_code == 404


def test_list_tiers(client):
    response = client.get("/costs/tiers", params={"duration_minutes": 10})

    assert response.status_code == 200
    tiers = [item["tier"] for item in response.json()]
    assert sorted(tiers) == ["balanced", "budget", "premium", "quality"]


def test_list_tiers_rejects_negative_duration(client):
    assert client.get("/costs/tiers", params={"duration_minutes": -1}).status_code == 422


@pytest.mark.parametrize(
    "requirements, expected",
    [
        ({"accuracy_priority": "high"}, "premium"),
        ({"accuracy_priority": "low"}, "budget"),
        ({"accuracy_priority": "low", "privacy_required": True}, "premium"),
        ({"min_speakers": 5, "accuracy_priority": "low"}, "quality"),
    ],
)
def test_recommendation(client, requirements, expected):
    response = client.post("/costs/recommendation", json=requirements)

    assert response.status_code == 200
    body = response.json()
    assert body["tier"] == expected
    assert body["features"]
    assert body["reference_estimate"]["currency"] == "USD"


def test_recommendation_without_candidates(client):
    response = client.post("/costs/recommendation", json={"min_speakers": 9})

    assert response.status_code == 422


def test_projection(client):
    response = client.get(
        "/costs/projection",
        params={"calls_per_day": 10, "average_duration_minutes": 5, "tier": "budget"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["monthly_cost"] > 0
    assert body["free_minutes_used"] == 60


def test_projection_unknown_tier(client):
    response = client.get(
        "/costs/projection",
        params={"calls_per_day": 10, "average_duration_minutes": 5, "tier": "gold"},
    )

    assert response.status_code == 422


def test_cost_status(client, cost_monitor):
    cost_monitor.track_usage(120, 85)

    response = client.get("/costs/status", params={"tier": "premium"})

    assert response.status_code == 200
    body = response.json()
    assert body["month"] == "2024-03"
    assert body["tier"] == "premium"
    assert body["limits"]["within_limits"] is True
    assert body["limits"]["percentage_used"] == 85.0
    assert len(body["limits"]["warnings"]) == 1
    assert body["recommendations"]


def test_cost_status_defaults_to_configured_tier(client):
    body = client.get("/costs/status").json()

    assert body["tier"] == "balanced"
    assert body["recommendations"] == []


def test_cost_status_unknown_tier(client):
    assert client.get("/costs/status", params={"tier": "gold"}).status_code == 422
