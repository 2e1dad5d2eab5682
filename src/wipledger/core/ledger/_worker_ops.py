# src/wipledger/core/ledger/_worker_ops.py
"""Worker (sprite) operations for BoardGateway.

The idle-worker sweep lives outside this package; it calls
update_worker_status() like any other caller, so its changes are ledgered.
"""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import select

from wipledger.contracts.board import Worker
from wipledger.contracts.enums import Operation, WorkerStatus
from wipledger.contracts.inputs import CreateWorker, UpdateWorkerStatus
from wipledger.core.ledger._helpers import generate_id, now
from wipledger.core.ledger._support import GatewaySupport
from wipledger.core.ledger.projections import GROUPS, WORKERS
from wipledger.core.ledger.schema import workers_table

logger = structlog.get_logger(__name__)


class WorkerOpsMixin(GatewaySupport):
    """Worker methods. Mixed into BoardGateway."""

    def create_worker(self, spec: CreateWorker | dict[str, Any]) -> Worker:
        """Register a worker. It starts idle; the id is generated when omitted.

        Raises:
            NotFoundError: If group_id names a missing group
            PersistenceError: If a worker with the same id exists
        """
        data = self._validate(CreateWorker, spec, "create_worker")
        worker_id = data.id or generate_id()
        with self._transaction("create_worker") as conn:
            if data.group_id is not None:
                self._require(conn, GROUPS, data.group_id)
            timestamp = now()
            conn.execute(
                workers_table.insert().values(
                    id=worker_id,
                    sigil=data.sigil,
                    status=WorkerStatus.IDLE.value,
                    group_id=data.group_id,
                    last_seen=timestamp,
                    created_at=timestamp,
                    updated_at=timestamp,
                )
            )
            worker, event_id = self._record(conn, WORKERS, Operation.CREATED, worker_id)
        logger.debug("Worker created", worker_id=worker_id, event_id=event_id)
        return worker

    def list_workers(self, group_id: int | None = None) -> list[Worker]:
        query = select(workers_table).order_by(workers_table.c.created_at, workers_table.c.id)
        if group_id is not None:
            query = query.where(workers_table.c.group_id == group_id)
        with self._reading("list_workers") as conn:
            return [WORKERS.repository.load(row) for row in conn.execute(query)]

    def get_worker(self, worker_id: str) -> Worker:
        with self._reading("get_worker") as conn:
            worker: Worker = self._require(conn, WORKERS, worker_id)
            return worker

    def update_worker_status(self, worker_id: str, status: WorkerStatus | str) -> Worker:
        """Set a worker's status; also refreshes last_seen."""
        data = self._validate(UpdateWorkerStatus, {"status": status}, "update_worker_status")
        with self._transaction("update_worker_status") as conn:
            self._require(conn, WORKERS, worker_id)
            timestamp = now()
            self._ops.execute_update(
                conn,
                workers_table.update()
                .where(workers_table.c.id == worker_id)
                .values(status=data.status.value, last_seen=timestamp, updated_at=timestamp),
            )
            worker, event_id = self._record(conn, WORKERS, Operation.UPDATED, worker_id)
        logger.debug("Worker status updated", worker_id=worker_id, status=str(data.status), event_id=event_id)
        return worker

    def heartbeat(self, worker_id: str) -> Worker:
        """Record that a worker is alive. Status is unchanged."""
        with self._transaction("heartbeat") as conn:
            self._require(conn, WORKERS, worker_id)
            timestamp = now()
            self._ops.execute_update(
                conn,
                workers_table.update().where(workers_table.c.id == worker_id).values(last_seen=timestamp, updated_at=timestamp),
            )
            worker, _ = self._record(conn, WORKERS, Operation.UPDATED, worker_id)
        return worker

    def delete_worker(self, worker_id: str) -> bool:
        with self._transaction("delete_worker") as conn:
            current: Worker = self._require(conn, WORKERS, worker_id)
            event_id = self._record_deletion(conn, WORKERS, current)
        logger.debug("Worker deleted", worker_id=worker_id, event_id=event_id)
        return True
