"""
Streaming reconciliation pipeline.

Phase 1 (analyze) drives one generation request and turns its chunks into
progress events followed by at most one result event. Phase 2 (export) is a
separate explicit call made by the caller with the captured result.
"""

from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Union
import inspect
import logging

from ..config import ReconContext
from ..llm.backend import GenerationBackend, OpenAIBackend
from ..llm.prompts import reconcile_prompt
from ..models.events import (
    ExportOutcome,
    ProgressEvent,
    ReconciliationRun,
    ResultEvent,
    StreamEvent,
)
from ..models.ledger import LedgerDocument, ReconciliationResult
from ..reports.exporter import ReportExporter
from ..reports.sheets_exporter import GoogleSheetsExporter
from ..utils.exceptions import (
    NoResultCapturedError,
    RunSealedError,
    UpstreamGenerationError,
)
from .classifier import Progress, classify_chunk

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], Union[None, Awaitable[None]]]


class ReconciliationPipeline:
    """
    Orchestrates ledger reconciliation against a hosted model.

    Each call to analyze() opens its own run; runs share no mutable state,
    so one pipeline may serve independent callers.
    """

    def __init__(
        self,
        context: ReconContext,
        backend: Optional[GenerationBackend] = None,
        exporter: Optional[ReportExporter] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            context: Configuration and connection handles
            backend: Generation backend; an OpenAIBackend is built when omitted
            exporter: Export Trigger; Google Sheets when omitted
        """
        self.context = context
        self.pipeline_config = context.config.pipeline
        if backend is None:
            backend = OpenAIBackend(context)
        if exporter is None:
            exporter = GoogleSheetsExporter(context)
        self.backend = backend
        self.exporter = exporter

    def new_run(self) -> ReconciliationRun:
        return ReconciliationRun(
            party_a_label=self.pipeline_config.party_a_label,
            party_b_label=self.pipeline_config.party_b_label,
        )

    async def analyze(
        self,
        party_a: LedgerDocument,
        party_b: LedgerDocument,
        run: Optional[ReconciliationRun] = None,
    ) -> AsyncIterator[StreamEvent]:
        """
        Reconcile two ledgers, yielding events as the model works.

        Progress events are yielded in arrival order. A single ResultEvent
        follows once the stream has ended, and only if some chunk validated
        as a full result. A stream that ends without one simply stops.

        Args:
            party_a: Party A ledger
            party_b: Party B ledger
            run: Optional run object to record into, for callers that want
                the run state after iteration

        Yields:
            ProgressEvent, then at most one ResultEvent

        Raises:
            UpstreamGenerationError: If the generation call fails
            RunSealedError: If the given run has already been used
        """
        run = run if run is not None else self.new_run()
        if run.completed:
            raise RunSealedError("Reconciliation run is already sealed; start a new run")
        replace = self.pipeline_config.candidate_policy == "last"
        prompt = reconcile_prompt(party_a.label, party_b.label)

        logger.info(
            f"Starting reconciliation: {party_a.label}={party_a.filename} "
            f"({party_a.size} bytes), {party_b.label}={party_b.filename} ({party_b.size} bytes)"
        )

        chunks = self.backend.stream(prompt, [party_a, party_b])
        try:
            async for chunk in chunks:
                if not chunk or (self.pipeline_config.skip_blank_chunks and not chunk.strip()):
                    continue

                classified = classify_chunk(chunk)
                if isinstance(classified, Progress):
                    run.record_progress(classified.text)
                    yield ProgressEvent(classified.text)
                    continue

                kept = run.capture(classified.result, replace=replace)
                logger.debug(
                    f"Result candidate #{run.candidates_seen} "
                    f"{'buffered' if kept else 'ignored'} ({len(classified.raw_text)} chars)"
                )
        except UpstreamGenerationError as e:
            logger.error(f"Generation failed: {e}")
            run.seal(error=e)
            raise
        except Exception as e:
            # Anything else escaping the backend is still an upstream failure
            logger.error(f"Generation stream broke: {e}")
            error = UpstreamGenerationError(f"Generation stream broke: {e}")
            run.seal(error=error)
            raise error from e
        finally:
            # Also reached through aclose() when the caller stops iterating early
            run.seal()
            aclose = getattr(chunks, "aclose", None)
            if aclose is not None:
                await aclose()

        if run.result is None:
            logger.warning(
                f"Stream ended without a valid result after {len(run.progress)} progress message(s)"
            )
            return

        logger.info(
            f"Reconciliation result captured: {run.result.match_count} match(es), "
            f"{run.result.discrepancy_count} discrepancy(ies)"
        )
        yield ResultEvent(run.result)

    async def reconcile(
        self,
        party_a: LedgerDocument,
        party_b: LedgerDocument,
        on_progress: Optional[ProgressCallback] = None,
        run: Optional[ReconciliationRun] = None,
    ) -> ReconciliationResult:
        """
        Consume the whole analyze stream and return its result.

        Args:
            party_a: Party A ledger
            party_b: Party B ledger
            on_progress: Optional callback invoked with each progress message
            run: Optional run object to record into

        Returns:
            The captured reconciliation result

        Raises:
            UpstreamGenerationError: If the generation call fails
            NoResultCapturedError: If the stream ended without a valid result
        """
        result: Optional[ReconciliationResult] = None
        async for event in self.analyze(party_a, party_b, run=run):
            if isinstance(event, ResultEvent):
                result = event.result
            elif on_progress is not None:
                maybe = on_progress(event.progress)
                if inspect.isawaitable(maybe):
                    await maybe

        if result is None:
            raise NoResultCapturedError(
                "The model finished without producing a valid reconciliation result"
            )
        return result

    async def export(self, result: Any, access_token: Optional[str]) -> ExportOutcome:
        """
        Export a captured result through the configured Export Trigger.

        Each call creates a new report; nothing is deduplicated or retried.
        """
        return await self.exporter.export(result, access_token)
