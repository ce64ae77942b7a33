"""SQLAlchemy storage backends for Postgres and SQLite."""
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional
import logging

from sqlalchemy import desc, asc, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from database import create_postgres_engine, create_sqlite_engine
from errors import NotFoundError, StorageError
from models import Base, User, Thread, Message, MessageRole, DEFAULT_THREAD_TITLE, utcnow
from schemas.threads import ThreadSummary
from schemas.messages import MessageRecord
from services.storage import StorageBackend, THREAD_LIST_LIMIT, HISTORY_LIMIT

logger = logging.getLogger(__name__)


class SQLAlchemyStorage(StorageBackend):
    """
    ORM implementation shared by the durable backends.

    Each operation runs in its own session and commits before returning.
    Driver and SQL errors surface as StorageError.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self.SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    @contextmanager
    def session(self) -> Iterator[Session]:
        db = self.SessionLocal()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"{self.kind} storage error: {e}")
            raise StorageError(f"database error: {e.__class__.__name__}: {e}") from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def migrate(self) -> None:
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            raise StorageError(f"migration failed: {e}") from e
        logger.info(f"{self.kind} schema is up to date")

    def close(self) -> None:
        self.engine.dispose()

    def ensure_user(self, anon_user_id: str) -> None:
        with self.session() as db:
            self._ensure_user(db, anon_user_id)

    def _ensure_user(self, db: Session, anon_user_id: str) -> None:
        stmt = self.dialect_insert(User).values(anon_user_id=anon_user_id, created_at=utcnow())
        db.execute(stmt.on_conflict_do_nothing(index_elements=["anon_user_id"]))

    def create_thread(self, thread_id: str, anon_user_id: str, title: Optional[str] = None) -> None:
        with self.session() as db:
            self._ensure_user(db, anon_user_id)
            ts = utcnow()
            db.add(Thread(
                thread_id=thread_id,
                anon_user_id=anon_user_id,
                title=title or DEFAULT_THREAD_TITLE,
                created_at=ts,
                updated_at=ts,
            ))

    def list_threads(self, anon_user_id: str) -> List[ThreadSummary]:
        with self.session() as db:
            rows = db.query(Thread).filter(
                Thread.anon_user_id == anon_user_id
            ).order_by(
                desc(Thread.updated_at)
            ).limit(THREAD_LIST_LIMIT).all()
            return [ThreadSummary.model_validate(row) for row in rows]

    def thread_owned_by(self, thread_id: str, anon_user_id: str) -> bool:
        with self.session() as db:
            found = db.query(Thread.thread_id).filter(
                Thread.thread_id == thread_id,
                Thread.anon_user_id == anon_user_id
            ).first()
            return found is not None

    def rename_thread(self, thread_id: str, anon_user_id: str, title: str) -> None:
        with self.session() as db:
            thread = db.query(Thread).filter(
                Thread.thread_id == thread_id,
                Thread.anon_user_id == anon_user_id
            ).first()

            if not thread:
                raise NotFoundError("thread not found")

            thread.title = title
            thread.updated_at = utcnow()

    def insert_message(self, msg_id: str, thread_id: str, role: MessageRole, content: Optional[str]) -> None:
        role = MessageRole(role)
        with self.session() as db:
            db.add(Message(
                msg_id=msg_id,
                thread_id=thread_id,
                role=role.value,
                content=content,
                created_at=utcnow(),
            ))

    def touch_thread(self, thread_id: str) -> None:
        with self.session() as db:
            db.query(Thread).filter(
                Thread.thread_id == thread_id
            ).update({Thread.updated_at: utcnow()}, synchronize_session=False)

    def get_history(self, thread_id: str) -> List[MessageRecord]:
        with self.session() as db:
            rows = db.query(Message).filter(
                Message.thread_id == thread_id
            ).order_by(
                asc(Message.created_at)
            ).limit(HISTORY_LIMIT).all()
            return [MessageRecord.model_validate(row) for row in rows]

    def _ping(self) -> bool:
        with self.session() as db:
            return db.execute(text("select 1 as ok")).scalar() == 1


class PostgresStorage(SQLAlchemyStorage):
    """Postgres backend with a connection pool."""

    kind = "pg"
    dialect_insert = staticmethod(pg_insert)

    def __init__(self, database_url: str, ssl: bool = True):
        super().__init__(create_postgres_engine(database_url, ssl=ssl))

    def health_check(self) -> Dict[str, Any]:
        return {"db": self._ping(), "kind": self.kind}


class SQLiteStorage(SQLAlchemyStorage):
    """Embedded SQLite backend stored in a single file."""

    kind = "sqlite"
    dialect_insert = staticmethod(sqlite_insert)

    def __init__(self, path: str):
        self.path = path
        super().__init__(create_sqlite_engine(path))

    def health_check(self) -> Dict[str, Any]:
        return {"db": self._ping(), "kind": self.kind, "path": self.path}
