"""
Transactional volume record store.

A single-bucket key-value store over SQLite:
- key: volume name
- value: serialized volume record

Writers are serialized by a process-wide lock held for the whole
``update()`` scope, so a check-then-put inside one scope cannot race with
another writer. ``view()`` scopes read committed data without the lock.
"""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Tuple, Union

from sqlalchemy import Column, LargeBinary, String, create_engine, event, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from ..errors import VolumeStorageError

logger = logging.getLogger(__name__)

Base = declarative_base()

VOLUMES_BUCKET = "volumes"


class VolumeRecord(Base):
    """One row per volume"""
    __tablename__ = VOLUMES_BUCKET

    name = Column(String, primary_key=True)
    data = Column(LargeBinary, nullable=False)


class Transaction:
    """Key-value view of the volumes bucket inside one store transaction."""

    def __init__(self, session: Session, writable: bool):
        self._session = session
        self.writable = writable

    def get(self, key: str) -> Optional[bytes]:
        record = self._session.get(VolumeRecord, key)
        if record is None:
            return None
        return record.data

    def put(self, key: str, value: bytes) -> None:
        self._check_writable(key)
        record = self._session.get(VolumeRecord, key)
        if record is None:
            self._session.add(VolumeRecord(name=key, data=value))
        else:
            record.data = value
        self._session.flush()

    def delete(self, key: str) -> bool:
        """Remove ``key``; returns False if it was not present."""
        self._check_writable(key)
        record = self._session.get(VolumeRecord, key)
        if record is None:
            return False
        self._session.delete(record)
        self._session.flush()
        return True

    def items(self) -> Iterator[Tuple[str, bytes]]:
        """Iterate (key, value) pairs in key order."""
        stmt = select(VolumeRecord).order_by(VolumeRecord.name)
        for record in self._session.scalars(stmt):
            yield record.name, record.data

    def count(self) -> int:
        return self._session.scalar(select(func.count()).select_from(VolumeRecord)) or 0

    def _check_writable(self, key: str) -> None:
        if not self.writable:
            raise VolumeStorageError(
                operation="writing volume record",
                reason="transaction is read-only",
                volume=key,
            )


class RecordStore:
    """
    Volume record store backed by a SQLite file.

    Use ``update()`` for read-modify-write and ``view()`` for reads:

        with store.update() as tx:
            if tx.get(name) is None:
                tx.put(name, data)

    Leaving an ``update()`` block normally commits; an exception rolls the
    transaction back and propagates. SQLAlchemy failures surface as
    VolumeStorageError.
    """

    def __init__(self, db_path: Union[str, Path], timeout_sec: float = 10.0):
        self.db_path = Path(db_path)
        self.engine = create_engine(
            f"sqlite:///{self.db_path}",
            connect_args={"check_same_thread": False, "timeout": timeout_sec},
        )
        event.listen(self.engine, "connect", _set_sqlite_pragma)
        self._session_factory = sessionmaker(
            bind=self.engine,
            autoflush=False,
            expire_on_commit=False,
        )
        self._write_lock = threading.Lock()

    @classmethod
    def open(cls, db_path: Union[str, Path], timeout_sec: float = 10.0) -> "RecordStore":
        """Open the store and create the volumes bucket if it does not exist."""
        store = cls(db_path, timeout_sec=timeout_sec)
        try:
            Base.metadata.create_all(bind=store.engine)
        except SQLAlchemyError as e:
            store.close()
            raise VolumeStorageError(
                operation="creating volume bucket in database",
                reason=str(e),
            ) from e
        logger.info(f"Opened volume database at {store.db_path}")
        return store

    def close(self) -> None:
        self.engine.dispose()

    @contextmanager
    def update(self) -> Iterator[Transaction]:
        """Read-write transaction; one writer at a time."""
        with self._write_lock:
            session = self._session_factory()
            try:
                yield Transaction(session, writable=True)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise VolumeStorageError(
                    operation="writing volume database",
                    reason=str(e),
                ) from e
            except BaseException:
                session.rollback()
                raise
            finally:
                session.close()

    @contextmanager
    def view(self) -> Iterator[Transaction]:
        """Read-only transaction."""
        session = self._session_factory()
        try:
            yield Transaction(session, writable=False)
        except SQLAlchemyError as e:
            raise VolumeStorageError(
                operation="reading volume database",
                reason=str(e),
            ) from e
        finally:
            session.rollback()
            session.close()


def _set_sqlite_pragma(dbapi_connection, connection_record) -> None:
    # WAL lets view() readers proceed while a writer holds its transaction open
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


__all__ = ["RecordStore", "Transaction", "VolumeRecord", "VOLUMES_BUCKET"]
