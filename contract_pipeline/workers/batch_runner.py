"""
Batch Runner Worker.

Lists every document under the incoming prefix and runs the document
pipeline over them one at a time, pausing between documents as a simple
rate limit. A failing document is recorded and the batch moves on.

Start with:
    python -m contract_pipeline.workers.batch_runner
"""

from __future__ import annotations

import asyncio
import signal
from typing import Awaitable, Callable, Optional

from dotenv import load_dotenv

from contract_pipeline.config import Settings, get_settings
from contract_pipeline.exceptions import PipelineError
from contract_pipeline.logging_config import batch_scope, get_logger, setup_logging
from contract_pipeline.schemas.document import BatchItemFailure, BatchOutcome
from contract_pipeline.schemas.extraction import ExtractionOptions
from contract_pipeline.services.document_pipeline import DocumentPipeline
from contract_pipeline.services.extraction.router import build_extraction_router
from contract_pipeline.storage import StorageGateway, build_storage_gateway

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class BatchRunner:
    """
    Runs the document pipeline over all incoming documents.

    Flow:
    1. List objects under the incoming prefix (empty -> zero outcome)
    2. Process each in listing order, never concurrently
    3. Record success or failure per document
    4. Wait ``delay_between_docs_ms`` between documents (not after the last)
    """

    def __init__(
        self,
        pipeline: DocumentPipeline,
        storage: StorageGateway,
        settings: Settings | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        settings = settings or get_settings()
        self._pipeline = pipeline
        self._storage = storage
        self._incoming_prefix = settings.incoming_prefix
        self._default_delay_ms = settings.batch_delay_ms
        self._sleep = sleep

    async def run(self, options: Optional[ExtractionOptions] = None) -> BatchOutcome:
        options = options or ExtractionOptions()
        with batch_scope():
            return await self._run(options)

    async def _run(self, options: ExtractionOptions) -> BatchOutcome:
        logger.info("batch_started", prefix=self._incoming_prefix)

        documents = await self._storage.list(self._incoming_prefix)
        if not documents:
            logger.info("batch_no_documents")
            return BatchOutcome()

        delay_ms = options.delay_between_docs_ms
        if delay_ms is None:
            delay_ms = self._default_delay_ms

        outcome = BatchOutcome()
        total = len(documents)
        logger.info("batch_documents_found", count=total)

        for index, document in enumerate(documents, start=1):
            logger.info("batch_item_started", position=index, total=total, key=document.key)

            try:
                result = await self._pipeline.process_document(document.key, options)
            except Exception as e:
                logger.error("batch_item_failed", key=document.key, error=str(e))
                outcome.results.append(
                    BatchItemFailure(
                        key=document.key,
                        error=str(e),
                        error_code=getattr(e, "error_code", PipelineError.error_code),
                    )
                )
                outcome.failed += 1
            else:
                outcome.results.append(result)
                outcome.processed += 1

            if index < total and delay_ms > 0:
                logger.debug("batch_waiting", delay_ms=delay_ms)
                await self._sleep(delay_ms / 1000)

        logger.info("batch_complete", processed=outcome.processed, failed=outcome.failed)
        return outcome


class BatchWorker:
    """
    Runs batches until stopped.

    With ``batch_poll_interval_seconds == 0`` a single batch is run and
    the worker exits; otherwise it sleeps that long between batches.
    """

    def __init__(
        self,
        runner: BatchRunner,
        poll_interval: float = 0.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._runner = runner
        self._poll_interval = poll_interval
        self._sleep = sleep
        self._running = False

    async def start(self) -> None:
        self._running = True
        logger.info("batch_worker_started", poll_interval=self._poll_interval)

        while self._running:
            try:
                await self._runner.run()
            except PipelineError as e:
                # Listing failed; nothing was processed this round
                logger.error("batch_worker_error", error=str(e))

            if not self._poll_interval:
                break
            await self._sleep(self._poll_interval)

        self._running = False

    async def stop(self) -> None:
        self._running = False
        logger.info("batch_worker_stopped")


def build_batch_runner(settings: Settings | None = None) -> BatchRunner:
    """Wire storage, extraction and pipeline from configuration."""
    settings = settings or get_settings()
    storage = build_storage_gateway(settings)
    pipeline = DocumentPipeline(storage, build_extraction_router(settings), settings)
    return BatchRunner(pipeline, storage, settings)


async def main() -> None:
    load_dotenv(".env.local")
    setup_logging()
    settings = get_settings()

    worker = BatchWorker(build_batch_runner(settings), settings.batch_poll_interval_seconds)

    loop = asyncio.get_running_loop()
    stopping: set[asyncio.Task[None]] = set()

    def shutdown_handler() -> None:
        logger.info("shutdown_signal_received")
        task = loop.create_task(worker.stop())
        stopping.add(task)
        task.add_done_callback(stopping.discard)

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown_handler)
        except NotImplementedError:
            pass

    try:
        await worker.start()
    except KeyboardInterrupt:
        await worker.stop()


if __name__ == "__main__":
    asyncio.run(main())
