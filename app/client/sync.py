import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from app.client.connectivity import ConnectivityMonitor
from app.client.store import OfflineStore, PendingOperation

logger = logging.getLogger(__name__)


class PendingDependencyError(Exception):
    """An operation targets a local record whose create has not replayed yet."""


class OperationExecutor:
    """Replays queued operations for one entity kind against the backend."""

    entity = ""

    async def execute(self, operation: PendingOperation) -> None:
        raise NotImplementedError


@dataclass
class SyncReport:
    applied: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)
    skipped: bool = False


class SyncService:
    """
    Replays the offline operation queue.

    Operations run one at a time in ascending timestamp order. A success
    deletes the queued record; a failure bumps its retry counter and the
    pass moves on. Only one pass runs at a time.
    """

    def __init__(
        self,
        store: OfflineStore,
        connectivity: Optional[ConnectivityMonitor] = None,
        startup_delay: float = 0.0,
    ):
        self.store = store
        self.connectivity = connectivity
        self.startup_delay = startup_delay
        self.executors: Dict[str, OperationExecutor] = {}
        self.pending_count = store.count_operations()
        self._syncing = False
        if connectivity is not None:
            connectivity.add_listener(self._on_connectivity_change)

    @property
    def is_syncing(self) -> bool:
        return self._syncing

    @property
    def is_online(self) -> bool:
        return self.connectivity.is_online if self.connectivity is not None else True

    def register_executor(self, executor: OperationExecutor) -> None:
        self.executors[executor.entity] = executor

    def refresh_pending_count(self) -> int:
        self.pending_count = self.store.count_operations()
        return self.pending_count

    async def add_pending_operation(self, op_type: str, entity: str, payload: dict) -> int:
        operation_id = self.store.add_operation(op_type, entity, payload)
        self.refresh_pending_count()
        logger.info(f"Queued {op_type} {entity} for sync (id {operation_id}, {self.pending_count} pending)")
        return operation_id

    async def start(self) -> Optional[SyncReport]:
        """Replay right away when work is pending and the backend is reachable"""
        count = self.refresh_pending_count()
        logger.info(f"Pending operations at startup: {count}")
        if count > 0 and self.is_online:
            if self.startup_delay:
                await asyncio.sleep(self.startup_delay)
            return await self.sync_pending_operations()
        return None

    async def _on_connectivity_change(self, online: bool) -> None:
        if online:
            logger.info("Connection restored, syncing pending operations")
            await self.sync_pending_operations()
        else:
            logger.info("Connection lost, mutations will be queued")

    async def sync_pending_operations(self) -> SyncReport:
        if self._syncing:
            logger.info("Sync already in progress, trigger ignored")
            return SyncReport(skipped=True)
        if not self.is_online:
            logger.info("Backend unreachable, sync postponed")
            return SyncReport(skipped=True)

        self._syncing = True
        report = SyncReport()
        try:
            for operation in self.store.list_operations():
                executor = self.executors.get(operation.entity)
                if executor is None:
                    logger.error(f"No executor for entity '{operation.entity}', operation {operation.id} kept")
                    self.store.increment_retries(operation.id)
                    report.failed.append(operation.id)
                    continue
                try:
                    await executor.execute(operation)
                except Exception as e:
                    logger.warning(
                        f"Replay of {operation.type} {operation.entity} (id {operation.id}) failed: {str(e)}"
                    )
                    self.store.increment_retries(operation.id)
                    report.failed.append(operation.id)
                    continue

                self.store.delete_operation(operation.id)
                self.pending_count = max(0, self.pending_count - 1)
                report.applied.append(operation.id)
                logger.info(f"Replayed {operation.type} {operation.entity} (id {operation.id})")
        finally:
            self._syncing = False
            self.refresh_pending_count()

        logger.info(f"Sync finished: {len(report.applied)} applied, {len(report.failed)} failed")
        return report

    async def clear_pending_operations(self) -> None:
        self.store.clear_operations()
        self.refresh_pending_count()
        logger.info("Pending operations cleared")
