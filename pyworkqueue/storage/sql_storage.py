# pyworkqueue/storage/sql_storage.py
from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import (
    Engine,
    Float,
    Integer,
    String,
    Text,
    create_engine,
    delete,
    func,
    select,
    update,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from pyworkqueue.common.exceptions import PayloadDecodeError
from pyworkqueue.serialization.base import BaseSerializer
from pyworkqueue.serialization.json_serializer import JsonSerializer
from pyworkqueue.storage.base import JobStorage

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class QueueModel(Base):
    __tablename__ = "pyworkqueue_queues"

    name: Mapped[str] = mapped_column(String(100), primary_key=True)


class QueueEntryModel(Base):
    __tablename__ = "pyworkqueue_queue_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    queue: Mapped[str] = mapped_column(String(100), index=True)
    payload: Mapped[str] = mapped_column(Text)


class StatusModel(Base):
    __tablename__ = "pyworkqueue_statuses"

    job_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    data: Mapped[str] = mapped_column(Text)
    expires_at: Mapped[Optional[float]] = mapped_column(Float, nullable=True)


class FailureModel(Base):
    __tablename__ = "pyworkqueue_failures"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    data: Mapped[str] = mapped_column(Text)


class StatModel(Base):
    __tablename__ = "pyworkqueue_stats"

    name: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[int] = mapped_column(Integer, default=0)


class SqlStorage(JobStorage):
    def __init__(
        self,
        connection_url: Optional[str] = None,
        engine: Optional[Engine] = None,
        create_tables: bool = True,
        serializer: Optional[BaseSerializer] = None,
        poll_interval: float = 0.05,
    ) -> None:
        if engine is None and connection_url is None:
            raise ValueError("connection_url or engine is required")
        self.engine = engine or create_engine(connection_url)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        if create_tables:
            Base.metadata.create_all(self.engine)

        self.serializer = serializer or JsonSerializer()
        self.poll_interval = poll_interval
        self._supports_skip_locked = self.engine.dialect.name in {
            "postgresql",
            "mysql",
            "mariadb",
        }

    # --- Queues ---

    def push(self, queue: str, payload: Dict[str, Any]) -> None:
        data = self.serializer.serialize_payload(payload)
        with self._session_factory.begin() as session:
            if session.get(QueueModel, queue) is None:
                session.add(QueueModel(name=queue))
            session.add(QueueEntryModel(queue=queue, payload=data))

    def _claim(self, session: Session, queues: List[str]) -> Optional[Tuple[str, Dict[str, Any]]]:
        while True:
            query = (
                select(QueueEntryModel)
                .where(QueueEntryModel.queue.in_(queues))
                .order_by(QueueEntryModel.id)
                .limit(1)
            )
            if self._supports_skip_locked:
                query = query.with_for_update(skip_locked=True)

            entry = session.execute(query).scalar_one_or_none()
            if entry is None:
                return None
            entry_id, queue, data = entry.id, entry.queue, entry.payload

            # Deleting the row is the claim: only one session gets rowcount 1
            claimed = session.execute(
                delete(QueueEntryModel).where(QueueEntryModel.id == entry_id)
            )
            if claimed.rowcount != 1:
                continue
            try:
                return queue, self.serializer.deserialize_payload(data)
            except PayloadDecodeError:
                logger.warning(f"Dropping undecodable payload from queue {queue}: {data!r}")

    def pop(self, queue: str) -> Optional[Dict[str, Any]]:
        with self._session_factory.begin() as session:
            item = self._claim(session, [queue])
        return item[1] if item else None

    def blocking_pop(
        self, queues: List[str], timeout: Optional[float] = None
    ) -> Optional[Tuple[str, Dict[str, Any]]]:
        if not queues:
            return None

        # Queues are checked in the order given
        deadline = time.monotonic() + timeout if timeout else None
        while True:
            for queue in queues:
                with self._session_factory.begin() as session:
                    item = self._claim(session, [queue])
                if item:
                    return item

            if deadline is not None and time.monotonic() >= deadline:
                return None
            time.sleep(self.poll_interval)

    def queue_size(self, queue: str) -> int:
        with self._session_factory() as session:
            result = session.execute(
                select(func.count(QueueEntryModel.id)).where(QueueEntryModel.queue == queue)
            ).scalar_one()
            return int(result or 0)

    def queues(self) -> List[str]:
        with self._session_factory() as session:
            rows = session.execute(select(QueueModel.name).order_by(QueueModel.name)).scalars()
            return list(rows)

    # --- Status tracking ---

    def set_status(
        self, job_id: str, record: Dict[str, Any], ttl: Optional[int] = None
    ) -> None:
        data = self.serializer.serialize_record(record)
        expires_at = time.time() + ttl if ttl else None
        with self._session_factory.begin() as session:
            entry = session.get(StatusModel, job_id)
            if entry:
                entry.data = data
                entry.expires_at = expires_at
            else:
                session.add(StatusModel(job_id=job_id, data=data, expires_at=expires_at))

    def get_status(self, job_id: str) -> Optional[Dict[str, Any]]:
        with self._session_factory() as session:
            entry = session.get(StatusModel, job_id)
            if entry is None:
                return None
            if entry.expires_at is not None and entry.expires_at <= time.time():
                return None
            return self.serializer.deserialize_record(entry.data)

    def delete_status(self, job_id: str) -> None:
        with self._session_factory.begin() as session:
            session.execute(delete(StatusModel).where(StatusModel.job_id == job_id))

    def purge_expired_statuses(self) -> int:
        with self._session_factory.begin() as session:
            result = session.execute(
                delete(StatusModel).where(
                    StatusModel.expires_at.is_not(None),
                    StatusModel.expires_at <= time.time(),
                )
            )
            return result.rowcount

    # --- Failures ---

    def record_failure(self, record: Dict[str, Any]) -> None:
        with self._session_factory.begin() as session:
            session.add(FailureModel(data=self.serializer.serialize_record(record)))

    def failure_count(self) -> int:
        with self._session_factory() as session:
            return int(session.execute(select(func.count(FailureModel.id))).scalar_one() or 0)

    def get_failures(self, start: int, count: int) -> List[Dict[str, Any]]:
        with self._session_factory() as session:
            rows = session.execute(
                select(FailureModel.data).order_by(FailureModel.id).offset(start).limit(count)
            ).scalars()
            return [self.serializer.deserialize_record(row) for row in rows]

    def clear_failures(self) -> None:
        with self._session_factory.begin() as session:
            session.execute(delete(FailureModel))

    # --- Counters ---

    def incr_stat(self, name: str, by: int = 1) -> int:
        with self._session_factory.begin() as session:
            updated = session.execute(
                update(StatModel)
                .where(StatModel.name == name)
                .values(value=StatModel.value + by)
            )
            if updated.rowcount == 0:
                session.add(StatModel(name=name, value=by))
                return by
            return session.execute(
                select(StatModel.value).where(StatModel.name == name)
            ).scalar_one()

    def get_stat(self, name: str) -> int:
        with self._session_factory() as session:
            entry = session.get(StatModel, name)
            return entry.value if entry else 0

    def clear_stat(self, name: str) -> None:
        with self._session_factory.begin() as session:
            session.execute(delete(StatModel).where(StatModel.name == name))
