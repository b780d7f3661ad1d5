"""Background execution of pipeline runs."""

from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial

from conversation_pipeline.domain.cost_policy import CostOverrides
from conversation_pipeline.domain.models import ProcessingResult
from conversation_pipeline.handlers.conversation_pipeline import ConversationPipeline
from conversation_pipeline.logging import setup_logging

logger = setup_logging()


class ProcessingRunner:
    """Submits pipeline runs to a thread pool and reports their outcome."""

    def __init__(self, pipeline: ConversationPipeline, max_workers: int = 4):
        self._pipeline = pipeline
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="conversation-pipeline"
        )

    def submit(
        self,
        conversation_id: str,
        selection: str | CostOverrides | None = None,
    ) -> Future:
        """
        Starts a run in the background and returns immediately.

        The record is looked up before submission so unknown ids fail fast
        with ConversationNotFoundError. The returned future resolves to the
        run's ProcessingResult (or None for a skipped run) and carries any
        pipeline exception.
        """
        self._pipeline.require(conversation_id)

        future = self._executor.submit(
            self._pipeline.process, conversation_id, selection
        )
        future.add_done_callback(partial(self._on_done, conversation_id))
        logger.info(
            "Conversation processing submitted",
            extra={"conversation_id": conversation_id},
        )
        return future

    def run(
        self,
        conversation_id: str,
        selection: str | CostOverrides | None = None,
    ) -> ProcessingResult | None:
        """Runs the pipeline on the calling thread."""
        return self._pipeline.process(conversation_id, selection)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _on_done(self, conversation_id: str, future: Future) -> None:
        if future.cancelled():
            logger.warning(
                "Conversation processing cancelled",
                extra={"conversation_id": conversation_id},
            )
            return

        error = future.exception()
        if error is not None:
            logger.error(
                "Background conversation processing failed",
                extra={"conversation_id": conversation_id, "error": str(error)},
            )
            return

        result = future.result()
        logger.info(
            "Background conversation processing finished",
            extra={
                "conversation_id": conversation_id,
                "status": result.status if result else "skipped",
            },
        )
