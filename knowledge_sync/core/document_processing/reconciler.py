"""
Stuck/failed reconciler.

Invoked on its own schedule, independent of processQueue. One pass runs
six capped sweeps, each committed on its own:

    stuck        processing jobs idle past the staleness threshold
    failed       failed jobs under the retry ceiling past the cooldown
    splits       documents left in splitting with no page-window jobs
    orphans      failed documents with a timeout error and no job rows
    links        active agent links whose chunk is inactive or gone
    documents    documents with no active job whose status or jobs drifted

A pass that changes nothing writes nothing, so running reconcile() twice
in a row leaves the second pass a no-op.

Dependencies: sqlalchemy, knowledge_sync.boundary.db
System role: Correctness backstop for the ingestion pipeline
"""

import logging
from datetime import timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_sync.boundary.db.base import utc_now
from knowledge_sync.boundary.db.CRUD import job_crud, maintenance_log_crud
from knowledge_sync.boundary.db.models import DocumentStatus, JobStatus
from knowledge_sync.configs import PipelineSettings
from knowledge_sync.core.document_processing.lifecycle import DocumentLifecycle
from knowledge_sync.core.document_processing.models import ReconcileResult
from knowledge_sync.core.document_processing.variants import VARIANTS, all_variants
from knowledge_sync.observability.log_utils import log_exception_with_context

logger = logging.getLogger(__name__)

DRIFT_CANDIDATE_STATUSES = (
    DocumentStatus.INGESTED,
    DocumentStatus.CHUNKED,
    DocumentStatus.PROCESSING,
)


class Reconciler:
    """Recovers stuck, failed and orphaned work."""

    def __init__(self, lifecycle: DocumentLifecycle, settings: PipelineSettings) -> None:
        self.lifecycle = lifecycle
        self.settings = settings

    async def reconcile(self, session: AsyncSession) -> ReconcileResult:
        """
        Run one reconciliation pass.

        A sweep that hits a database error is rolled back and reported in
        errors; the remaining sweeps still run.

        Args:
            session: Async database session (committed per sweep)

        Returns:
            ReconcileResult: Per-sweep counters and errors
        """
        started_at = utc_now()
        result = ReconcileResult()
        details: dict[str, list[dict]] = {}

        sweeps = (
            ("stuck", self._sweep_stuck),
            ("failed_recovery", self._sweep_failed),
            ("splits", self._sweep_splits),
            ("orphans", self._sweep_orphans),
            ("links", self._sweep_links),
            ("documents", self._sweep_documents),
        )
        for name, sweep in sweeps:
            try:
                counts, items = await sweep(session)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                result.errors.append(f"{name}: {type(e).__name__}: {e}")
                log_exception_with_context(
                    logger, f"{__name__}:reconcile - Sweep failed", e, sweep=name
                )
                continue
            for counter, value in counts.items():
                setattr(result, counter, getattr(result, counter) + value)
            if items:
                details[name] = items

        if result.changes or result.errors:
            await self._write_execution_log(session, result, details, started_at)

        logger.info(
            f"{__name__}:reconcile - Reconcile pass finished",
            extra={
                "stuck_reset": result.stuck_reset,
                "stuck_failed": result.stuck_failed,
                "failed_recovered": result.failed_recovered,
                "splits_abandoned": result.splits_abandoned,
                "orphans_recovered": result.orphans_recovered,
                "links_cleaned": result.links_cleaned,
                "documents_reconciled": result.documents_reconciled,
                "errors": len(result.errors),
            },
        )
        return result

    async def _write_execution_log(
        self,
        session: AsyncSession,
        result: ReconcileResult,
        details: dict[str, list[dict]],
        started_at,
    ) -> None:
        try:
            await maintenance_log_crud.create(
                session,
                execution_status="partial_failure" if result.errors else "success",
                started_at=started_at,
                completed_at=utc_now(),
                stuck_reset=result.stuck_reset,
                stuck_failed=result.stuck_failed,
                failed_recovered=result.failed_recovered,
                splits_abandoned=result.splits_abandoned,
                orphans_recovered=result.orphans_recovered,
                links_cleaned=result.links_cleaned,
                documents_reconciled=result.documents_reconciled,
                details={**details, "errors": result.errors},
            )
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            result.errors.append(f"execution_log: {type(e).__name__}: {e}")
            log_exception_with_context(
                logger, f"{__name__}:_write_execution_log - Could not write execution log", e
            )

    async def _sweep_stuck(self, session: AsyncSession) -> tuple[dict[str, int], list[dict]]:
        """processing -> pending (retry_count + 1), or failed at the ceiling."""
        minutes = self.settings.stuck_threshold_minutes
        cutoff = utc_now() - timedelta(minutes=minutes)
        jobs = await job_crud.get_stuck(session, cutoff, self.settings.reconcile_batch_size)
        snapshots = [(job.id, job.document_id, job.pipeline, job.retry_count) for job in jobs]

        counts = {"stuck_reset": 0, "stuck_failed": 0}
        items = []
        message = f"timeout: job stuck in processing for more than {minutes} minutes"
        for job_id, document_id, pipeline, retry_count in snapshots:
            new_status = await job_crud.record_failure(
                session, job_id, retry_count, self.settings.max_retries, message
            )
            if new_status == JobStatus.PENDING:
                counts["stuck_reset"] += 1
            elif new_status == JobStatus.FAILED:
                counts["stuck_failed"] += 1
                variant = VARIANTS.get(pipeline)
                if variant is not None:
                    await self.lifecycle.fail_document(session, variant, document_id, message)
            else:
                continue
            items.append(
                {
                    "job_id": str(job_id),
                    "document_id": str(document_id),
                    "retry_count": retry_count + 1,
                    "status": new_status.value,
                }
            )
        return counts, items

    async def _sweep_failed(self, session: AsyncSession) -> tuple[dict[str, int], list[dict]]:
        """failed -> pending after the cooldown, restoring the document's entry state."""
        cutoff = utc_now() - timedelta(minutes=self.settings.failed_recovery_cooldown_minutes)
        jobs = await job_crud.get_recoverable(
            session, cutoff, self.settings.max_retries, self.settings.reconcile_batch_size
        )
        snapshots = [(job.id, job.document_id, job.pipeline, job.job_type) for job in jobs]

        recovered = 0
        items = []
        for job_id, document_id, pipeline, job_type in snapshots:
            if not await job_crud.recover(session, job_id, self.settings.max_retries):
                continue
            recovered += 1
            restored = None
            variant = VARIANTS.get(pipeline)
            if variant is not None:
                restored = await self.lifecycle.restore_after_recovery(
                    session, variant, document_id, job_type
                )
            items.append(
                {
                    "job_id": str(job_id),
                    "document_id": str(document_id),
                    "document_status": restored.value if restored else None,
                }
            )
        return {"failed_recovered": recovered}, items

    async def _sweep_splits(self, session: AsyncSession) -> tuple[dict[str, int], list[dict]]:
        """
        splitting -> failed for splits abandoned past the staleness threshold.

        The failure carries the orphan marker, so the orphan sweep that
        follows sends the document back through extraction.
        """
        minutes = self.settings.stuck_threshold_minutes
        cutoff = utc_now() - timedelta(minutes=minutes)
        message = f"timeout: split abandoned in splitting for more than {minutes} minutes"
        remaining = self.settings.reconcile_batch_size
        abandoned = 0
        items = []
        for variant in all_variants():
            if remaining <= 0:
                break
            documents = await variant.documents.get_abandoned_splits(session, cutoff, remaining)
            for document_id in [document.id for document in documents]:
                moved = await variant.documents.transition(
                    session,
                    document_id,
                    DocumentStatus.FAILED,
                    from_statuses=[DocumentStatus.SPLITTING],
                    error_message=message,
                )
                if not moved:
                    continue
                abandoned += 1
                remaining -= 1
                items.append({"document_id": str(document_id), "pipeline": variant.name})
        return {"splits_abandoned": abandoned}, items

    async def _sweep_orphans(self, session: AsyncSession) -> tuple[dict[str, int], list[dict]]:
        """Failed documents with a timeout error and no job rows go back to ingested."""
        remaining = self.settings.reconcile_batch_size
        recovered = 0
        items = []
        for variant in all_variants():
            if remaining <= 0:
                break
            orphans = await variant.documents.get_timeout_orphans(
                session, self.settings.orphan_error_marker, remaining
            )
            for document_id in [document.id for document in orphans]:
                moved = await variant.documents.transition(
                    session,
                    document_id,
                    DocumentStatus.INGESTED,
                    from_statuses=[DocumentStatus.FAILED],
                    error_message=None,
                )
                if not moved:
                    continue
                queued = await self.lifecycle.rederive_jobs(session, variant, document_id)
                recovered += 1
                remaining -= 1
                items.append(
                    {
                        "document_id": str(document_id),
                        "pipeline": variant.name,
                        "queued": queued.value if queued else None,
                    }
                )
        return {"orphans_recovered": recovered}, items

    async def _sweep_links(self, session: AsyncSession) -> tuple[dict[str, int], list[dict]]:
        """Deactivate agent links that point at inactive or deleted chunks."""
        remaining = self.settings.link_cleanup_batch_size
        cleaned = 0
        items = []
        for variant in all_variants():
            if remaining <= 0:
                break
            count = await variant.knowledge.deactivate_orphaned(
                session, variant.chunks.model, remaining
            )
            if count:
                cleaned += count
                remaining -= count
                items.append({"pipeline": variant.name, "links": count})
        return {"links_cleaned": cleaned}, items

    async def _sweep_documents(self, session: AsyncSession) -> tuple[dict[str, int], list[dict]]:
        """Recompute status and re-derive jobs for idle in-flight documents."""
        remaining = self.settings.reconcile_batch_size
        reconciled = 0
        items = []
        for variant in all_variants():
            if remaining <= 0:
                break
            documents = await variant.documents.get_without_active_jobs(
                session, DRIFT_CANDIDATE_STATUSES, remaining
            )
            for document_id in [document.id for document in documents]:
                remaining -= 1
                new_status = await self.lifecycle.reconcile_document_status(
                    session, variant, document_id
                )
                queued = await self.lifecycle.rederive_jobs(session, variant, document_id)
                if new_status is None and queued is None:
                    continue
                reconciled += 1
                items.append(
                    {
                        "document_id": str(document_id),
                        "pipeline": variant.name,
                        "status": new_status.value if new_status else None,
                        "queued": queued.value if queued else None,
                    }
                )
        return {"documents_reconciled": reconciled}, items
