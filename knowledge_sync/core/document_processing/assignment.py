"""
Bulk assignment dispatcher.

assign() validates the request, submits the work as a background task and
acknowledges immediately. The background task resolves each document's
pipeline variant, snapshots the agent's existing links, and hands
fixed-size document batches to the variant's sync handler. A failing
batch or backup is counted and skipped; the outcome is only visible
through logs and the assignment audit row, since the caller has already
gone. restore_backup() re-links an agent to the chunks a backup recorded.

Dependencies: sqlalchemy, knowledge_sync.workers
System role: Agent knowledge assignment fan-out
"""

import logging
from typing import Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from knowledge_sync.boundary.db.CRUD import (
    agent_crud,
    assignment_audit_crud,
    assignment_backup_crud,
)
from knowledge_sync.configs import PipelineSettings
from knowledge_sync.core.document_processing.models import (
    AssignmentAck,
    AssignmentReport,
    RestoreResult,
)
from knowledge_sync.core.document_processing.variants import (
    PipelineVariant,
    all_variants,
    get_variant,
)
from knowledge_sync.core.exceptions import (
    AgentNotFoundError,
    BackupNotFoundError,
    ValidationError,
)
from knowledge_sync.observability.log_utils import log_exception_with_context, truncate_error
from knowledge_sync.workers.dispatcher import TaskDispatcher

logger = logging.getLogger(__name__)


class BulkAssignmentDispatcher:
    """Assigns documents' ready chunks to an agent in the background."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        dispatcher: TaskDispatcher,
        settings: PipelineSettings,
    ) -> None:
        """
        Args:
            session_factory: Background work opens its own session
            dispatcher: Fire-and-forget task submission
            settings: Assignment batch size
        """
        self.session_factory = session_factory
        self.dispatcher = dispatcher
        self.settings = settings

    async def assign(
        self,
        session: AsyncSession,
        agent_id: UUID,
        document_ids: Sequence[UUID],
        pipeline: str | None = None,
    ) -> AssignmentAck:
        """
        Validate and accept a bulk assignment.

        Returns before any document is processed.

        Args:
            session: Request session, used only to validate the agent
            agent_id: Target agent
            document_ids: Documents to assign (non-empty; duplicates ignored)
            pipeline: Variant tag shared by all documents (resolved per document when None)

        Returns:
            AssignmentAck: accepted=True with the de-duplicated document count

        Raises:
            ValidationError: If document_ids is empty or the pipeline is unknown
            AgentNotFoundError: If the agent does not exist
        """
        if not document_ids:
            raise ValidationError("At least one document id is required", field="document_ids")
        if pipeline is not None:
            pipeline = get_variant(pipeline).name

        agent = await agent_crud.get_by_id(session, agent_id)
        if agent is None:
            raise AgentNotFoundError(str(agent_id))

        unique_ids = list(dict.fromkeys(document_ids))
        self.dispatcher.submit(
            f"assignment:{agent_id}",
            self.run_assignment(agent_id, unique_ids, pipeline),
        )
        logger.info(
            f"{__name__}:assign - Assignment accepted",
            extra={
                "agent_id": str(agent_id),
                "document_count": len(unique_ids),
                "pipeline": pipeline,
            },
        )
        return AssignmentAck(
            agent_id=agent_id,
            agent_name=agent.name,
            document_count=len(unique_ids),
            pipeline=pipeline,
        )

    async def _group_by_variant(
        self,
        session: AsyncSession,
        document_ids: list[UUID],
        pipeline: str | None,
    ) -> list[tuple[PipelineVariant, list[UUID]]]:
        """Resolve each document's variant by looking it up in the variant tables."""
        candidates = (get_variant(pipeline),) if pipeline else all_variants()
        remaining = list(document_ids)
        groups = []
        for variant in candidates:
            if not remaining:
                break
            found = await variant.documents.get_existing_ids(session, remaining)
            if found:
                groups.append((variant, [doc_id for doc_id in remaining if doc_id in found]))
                remaining = [doc_id for doc_id in remaining if doc_id not in found]
        return groups

    async def _backup_links(
        self,
        session: AsyncSession,
        variant: PipelineVariant,
        agent_id: UUID,
    ) -> None:
        chunk_ids = await variant.knowledge.get_chunk_ids(session, agent_id)
        await assignment_backup_crud.create(
            session,
            agent_id=agent_id,
            pipeline=variant.name,
            reason="pre_bulk_assignment",
            chunk_ids=[str(chunk_id) for chunk_id in chunk_ids],
        )
        await session.commit()


    async def run_assignment(
        self,
        agent_id: UUID,
        document_ids: list[UUID],
        pipeline: str | None = None,
    ) -> AssignmentReport:
        """
        Background body of a bulk assignment.

        Any error in one batch, or in one variant's backup, is recorded and
        the remaining work continues. The audit row is written even when the
        run is cut short.

        Returns:
            AssignmentReport: Aggregate counts (also persisted as an audit row)
        """
        report = AssignmentReport(agent_id=agent_id, document_count=len(document_ids))
        batch_size = self.settings.assignment_batch_size
        status = "failed"

        async with self.session_factory() as session:
            try:
                groups = await self._group_by_variant(session, document_ids, pipeline)
                resolved = sum(len(ids) for _, ids in groups)
                if resolved < len(document_ids):
                    report.errors.append(
                        f"{len(document_ids) - resolved} documents not found in any pipeline"
                    )

                for variant, ids in groups:
                    try:
                        await self._backup_links(session, variant, agent_id)
                    except Exception as e:
                        await session.rollback()
                        report.errors.append(f"{variant.name} backup: {truncate_error(e, 500)}")
                        log_exception_with_context(
                            logger,
                            f"{__name__}:run_assignment - Link backup failed, skipping variant",
                            e,
                            agent_id=agent_id,
                            pipeline=variant.name,
                            document_count=len(ids),
                        )
                        continue

                    for start in range(0, len(ids), batch_size):
                        batch = ids[start:start + batch_size]
                        report.batches += 1
                        try:
                            synced = await variant.sync_handler(session, variant, agent_id, batch)
                            await session.commit()
                        except Exception as e:
                            await session.rollback()
                            report.errors.append(
                                f"{variant.name} batch {report.batches}: {truncate_error(e, 500)}"
                            )
                            log_exception_with_context(
                                logger,
                                f"{__name__}:run_assignment - Assignment batch failed",
                                e,
                                agent_id=agent_id,
                                pipeline=variant.name,
                                batch_size=len(batch),
                            )
                            continue
                        report.success_count += len(batch)
                        report.chunks_synced += synced
            except Exception as e:
                await session.rollback()
                report.errors.append(f"assignment aborted: {truncate_error(e, 500)}")
                log_exception_with_context(
                    logger,
                    f"{__name__}:run_assignment - Assignment aborted",
                    e,
                    agent_id=agent_id,
                )
            finally:
                # Whatever did not succeed counts as failed, including skipped variants
                report.failure_count = report.document_count - report.success_count
                if report.failure_count == 0:
                    status = "completed"
                elif report.success_count == 0:
                    status = "failed"
                else:
                    status = "partial_failure"
                await assignment_audit_crud.create(
                    session,
                    agent_id=agent_id,
                    pipeline=pipeline,
                    status=status,
                    document_count=report.document_count,
                    success_count=report.success_count,
                    failure_count=report.failure_count,
                    chunks_synced=report.chunks_synced,
                    details={"batches": report.batches, "errors": report.errors},
                )
                await session.commit()

        logger.info(
            f"{__name__}:run_assignment - Assignment finished",
            extra={
                "agent_id": str(agent_id),
                "assignment_status": status,
                "document_count": report.document_count,
                "success_count": report.success_count,
                "failure_count": report.failure_count,
                "chunks_synced": report.chunks_synced,
            },
        )
        return report

    async def restore_backup(
        self,
        session: AsyncSession,
        backup_id: UUID,
        document_ids: Sequence[UUID] | None = None,
    ) -> RestoreResult:
        """
        Re-link an agent to the chunks recorded in a link backup.

        Restore is additive: links created since the backup are kept, and
        inactive links recorded in the backup are switched back on. Chunks
        deleted since the backup are counted as missing.

        Args:
            session: Async database session
            backup_id: Backup row to restore
            document_ids: Only restore chunks of these documents (all when None)

        Returns:
            RestoreResult: Counts of backed-up, missing and restored links

        Raises:
            BackupNotFoundError: If the backup does not exist
            AgentNotFoundError: If the backed-up agent was deleted
        """
        backup = await assignment_backup_crud.get_by_id(session, backup_id)
        if backup is None:
            raise BackupNotFoundError(str(backup_id))
        if await agent_crud.get_by_id(session, backup.agent_id) is None:
            raise AgentNotFoundError(str(backup.agent_id))

        variant = get_variant(backup.pipeline)
        backed_up = [UUID(chunk_id) for chunk_id in backup.chunk_ids]
        existing = await variant.chunks.filter_existing_ids(session, backed_up)
        to_link = existing
        if document_ids is not None:
            to_link = await variant.chunks.filter_existing_ids(session, existing, document_ids)
        restored = await variant.knowledge.link_chunks(
            session, backup.agent_id, to_link, reactivate=True
        )
        await session.commit()

        result = RestoreResult(
            backup_id=backup.id,
            agent_id=backup.agent_id,
            pipeline=variant.name,
            chunks_in_backup=len(backed_up),
            chunks_missing=len(backed_up) - len(existing),
            links_restored=restored,
        )
        logger.info(
            f"{__name__}:restore_backup - Backup restored",
            extra={
                "backup_id": str(backup_id),
                "agent_id": str(backup.agent_id),
                "pipeline": variant.name,
                "links_restored": restored,
                "chunks_missing": result.chunks_missing,
            },
        )
        return result
