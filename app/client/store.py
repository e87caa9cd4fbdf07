import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Column,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    delete,
    func,
    insert,
    select,
    update,
)
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

CREATE = "CREATE"
UPDATE = "UPDATE"
DELETE = "DELETE"
OPERATION_TYPES = (CREATE, UPDATE, DELETE)

LOCAL_ID_PREFIX = "local:"

metadata = MetaData()

pending_operations = Table(
    "pending_operations",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("type", String(10), nullable=False, index=True),
    Column("entity", String(30), nullable=False),
    Column("payload", JSON, nullable=False),
    Column("timestamp", BigInteger, nullable=False, index=True),
    Column("retries", Integer, nullable=False, default=0),
)

local_entities = Table(
    "local_entities",
    metadata,
    Column("local_id", Integer, primary_key=True, autoincrement=True),
    Column("entity", String(30), nullable=False, index=True),
    Column("server_id", String(64), nullable=True, index=True),
    Column("payload", JSON, nullable=False),
    Column("updated_at", BigInteger, nullable=False),
)


def _create_pending_operations(conn):
    pending_operations.create(conn, checkfirst=True)


def _create_local_entities(conn):
    local_entities.create(conn, checkfirst=True)


# schema version -> upgrade step
MIGRATIONS: Dict[int, Callable] = {
    1: _create_pending_operations,
    2: _create_local_entities,
}
SCHEMA_VERSION = max(MIGRATIONS)


def now_ms() -> int:
    return int(time.time() * 1000)


def local_ref(local_id: int) -> str:
    return f"{LOCAL_ID_PREFIX}{local_id}"


def parse_local_ref(record_id: Any) -> Optional[int]:
    if isinstance(record_id, str) and record_id.startswith(LOCAL_ID_PREFIX):
        return int(record_id[len(LOCAL_ID_PREFIX):])
    return None


@dataclass
class PendingOperation:
    id: int
    type: str
    entity: str
    payload: dict
    timestamp: int
    retries: int


class OfflineStore:
    """
    Embedded SQLite store for the offline client.

    Holds the queue of mutations waiting to be replayed and a local copy of
    catalog records, including records created offline that only have a
    placeholder id until the server assigns one.
    """

    def __init__(self, url: str = "sqlite:///funko_offline.db"):
        options = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            options["poolclass"] = StaticPool
        self.engine = create_engine(url, **options)
        self.migrate()

    @property
    def schema_version(self) -> int:
        with self.engine.connect() as conn:
            return conn.exec_driver_sql("PRAGMA user_version").scalar()

    def migrate(self) -> int:
        """Apply every migration above the stored schema version"""
        with self.engine.begin() as conn:
            current = conn.exec_driver_sql("PRAGMA user_version").scalar() or 0
            for version in range(current + 1, SCHEMA_VERSION + 1):
                logger.info(f"Migrating offline store to schema version {version}")
                MIGRATIONS[version](conn)
                conn.exec_driver_sql(f"PRAGMA user_version = {version}")
        return SCHEMA_VERSION

    def close(self):
        self.engine.dispose()

    # pending operations

    def add_operation(self, op_type: str, entity: str, payload: dict, timestamp: Optional[int] = None) -> int:
        if op_type not in OPERATION_TYPES:
            raise ValueError(f"Unknown operation type {op_type}")
        with self.engine.begin() as conn:
            result = conn.execute(
                insert(pending_operations).values(
                    type=op_type,
                    entity=entity,
                    payload=payload,
                    timestamp=timestamp if timestamp is not None else now_ms(),
                    retries=0,
                )
            )
            return result.inserted_primary_key[0]

    def list_operations(self) -> List[PendingOperation]:
        query = select(pending_operations).order_by(pending_operations.c.timestamp, pending_operations.c.id)
        with self.engine.connect() as conn:
            return [PendingOperation(**row._mapping) for row in conn.execute(query)]

    def count_operations(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(pending_operations)).scalar()

    def delete_operation(self, operation_id: int) -> None:
        with self.engine.begin() as conn:
            conn.execute(delete(pending_operations).where(pending_operations.c.id == operation_id))

    def increment_retries(self, operation_id: int) -> None:
        with self.engine.begin() as conn:
            conn.execute(
                update(pending_operations)
                .where(pending_operations.c.id == operation_id)
                .values(retries=pending_operations.c.retries + 1)
            )

    def clear_operations(self) -> None:
        with self.engine.begin() as conn:
            conn.execute(delete(pending_operations))

    def delete_operations_for(self, entity: str, local_id: int) -> int:
        """Drop queued operations that target a record known only by its local id"""
        ids = [
            operation.id for operation in self.list_operations()
            if operation.entity == entity and operation.payload.get("local_id") == local_id
        ]
        if ids:
            with self.engine.begin() as conn:
                conn.execute(delete(pending_operations).where(pending_operations.c.id.in_(ids)))
        return len(ids)

    # local records

    def save_local(self, entity: str, payload: dict, server_id: Any = None) -> int:
        with self.engine.begin() as conn:
            result = conn.execute(
                insert(local_entities).values(
                    entity=entity,
                    server_id=str(server_id) if server_id is not None else None,
                    payload=payload,
                    updated_at=now_ms(),
                )
            )
            return result.inserted_primary_key[0]

    def upsert_server_record(self, entity: str, record: dict) -> int:
        server_id = str(record["id"])
        with self.engine.begin() as conn:
            row = conn.execute(
                select(local_entities.c.local_id).where(
                    local_entities.c.entity == entity,
                    local_entities.c.server_id == server_id,
                )
            ).first()
            if row is None:
                result = conn.execute(
                    insert(local_entities).values(
                        entity=entity, server_id=server_id, payload=record, updated_at=now_ms(),
                    )
                )
                return result.inserted_primary_key[0]
            conn.execute(
                update(local_entities)
                .where(local_entities.c.local_id == row.local_id)
                .values(payload=record, updated_at=now_ms())
            )
            return row.local_id

    def replace_snapshot(self, entity: str, records: List[dict]) -> None:
        """
        Bring the synced copy of an entity in line with a server listing.

        Known records keep their local id and records the server no longer
        lists are removed. Records that only exist locally are untouched.
        """
        listed = {str(record["id"]): record for record in records}
        with self.engine.begin() as conn:
            known = {
                row.server_id: row.local_id
                for row in conn.execute(
                    select(local_entities.c.local_id, local_entities.c.server_id).where(
                        local_entities.c.entity == entity,
                        local_entities.c.server_id.is_not(None),
                    )
                )
            }
            stale = [local_id for server_id, local_id in known.items() if server_id not in listed]
            if stale:
                conn.execute(delete(local_entities).where(local_entities.c.local_id.in_(stale)))
            for server_id, record in listed.items():
                if server_id in known:
                    conn.execute(
                        update(local_entities)
                        .where(local_entities.c.local_id == known[server_id])
                        .values(payload=record, updated_at=now_ms())
                    )
                else:
                    conn.execute(
                        insert(local_entities).values(
                            entity=entity, server_id=server_id, payload=record, updated_at=now_ms(),
                        )
                    )

    def assign_server_id(self, local_id: int, server_id: Any, payload: Optional[dict] = None) -> None:
        values = {"server_id": str(server_id), "updated_at": now_ms()}
        if payload is not None:
            values["payload"] = payload
        with self.engine.begin() as conn:
            conn.execute(update(local_entities).where(local_entities.c.local_id == local_id).values(**values))

    def update_local(self, local_id: int, payload: dict) -> None:
        with self.engine.begin() as conn:
            conn.execute(
                update(local_entities)
                .where(local_entities.c.local_id == local_id)
                .values(payload=payload, updated_at=now_ms())
            )

    def server_id_for(self, local_id: int) -> Optional[str]:
        record = self._row(local_id)
        return record.server_id if record is not None else None

    def find_local_id(self, entity: str, server_id: Any) -> Optional[int]:
        with self.engine.connect() as conn:
            return conn.execute(
                select(local_entities.c.local_id).where(
                    local_entities.c.entity == entity,
                    local_entities.c.server_id == str(server_id),
                )
            ).scalar()

    def get_record(self, local_id: int) -> Optional[dict]:
        row = self._row(local_id)
        return self._to_record(row) if row is not None else None

    def list_records(self, entity: str) -> List[dict]:
        query = select(local_entities).where(local_entities.c.entity == entity).order_by(local_entities.c.local_id)
        with self.engine.connect() as conn:
            return [self._to_record(row) for row in conn.execute(query)]

    def delete_local(self, local_id: int) -> None:
        with self.engine.begin() as conn:
            conn.execute(delete(local_entities).where(local_entities.c.local_id == local_id))

    def _row(self, local_id: int):
        with self.engine.connect() as conn:
            return conn.execute(select(local_entities).where(local_entities.c.local_id == local_id)).first()

    @staticmethod
    def _to_record(row) -> dict:
        record = dict(row.payload)
        if row.server_id is None:
            record["id"] = local_ref(row.local_id)
        else:
            record.setdefault("id", row.server_id)
        return record
