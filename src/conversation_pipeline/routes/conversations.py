"""Conversation processing endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from conversation_pipeline.dependencies import get_pipeline, get_runner
from conversation_pipeline.domain.cost_policy import get_tier
from conversation_pipeline.domain.models import ProcessingProgress
from conversation_pipeline.exceptions import ConversationNotFoundError
from conversation_pipeline.handlers import ConversationPipeline, ProcessingRunner
from conversation_pipeline.logging import setup_logging
from conversation_pipeline.response_models import (
    ProcessingAccepted,
    ProcessingStartRequest,
)

logger = setup_logging()

router = APIRouter(prefix="/conversations", tags=["conversations"])

PipelineDep = Annotated[ConversationPipeline, Depends(get_pipeline)]
RunnerDep = Annotated[ProcessingRunner, Depends(get_runner)]


@router.post(
    "/{conversation_id}/processing",
    status_code=202,
    response_model=ProcessingAccepted,
)
def start_processing(
    conversation_id: str,
    pipeline: PipelineDep,
    runner: RunnerDep,
    request: ProcessingStartRequest | None = None,
):
    """Starts processing in the background; poll the progress endpoint for status."""
    selection = None
    if request is not None:
        selection = request.overrides or request.tier
        if request.tier is not None:
            try:
                get_tier(request.tier)
            except ValueError as e:
                raise HTTPException(status_code=422, detail=str(e))

    try:
        record = pipeline.require(conversation_id)
        if record.status != "uploaded":
            raise HTTPException(
                status_code=409,
                detail=f"Conversation is {record.status}, expected uploaded",
            )
        runner.submit(conversation_id, selection)
    except ConversationNotFoundError:
        raise HTTPException(status_code=404, detail="Conversation not found")
    except HTTPException:
        raise
    except Exception as e:
        logger.error(
            "Error starting processing",
            extra={"conversation_id": conversation_id, "error": str(e)},
        )
        raise HTTPException(status_code=500, detail="Internal server error")

    return ProcessingAccepted(conversation_id=conversation_id)


@router.get("/{conversation_id}/progress", response_model=ProcessingProgress)
def get_progress(conversation_id: str, pipeline: PipelineDep):
    """Returns the current processing stage and estimates."""
    try:
        return pipeline.get_progress(conversation_id)
    except ConversationNotFoundError:
        raise HTTPException(status_code=404, detail="Conversation not found")
    except Exception as e:
        logger.error(
            "Error getting progress",
            extra={"conversation_id": conversation_id, "error": str(e)},
        )
        raise HTTPException(status_code=500, detail="Internal server error")
